"""
Physical key layout and manifest model.

A logical key K is represented in the store by exactly one of:
- K                       the value verbatim
- K.zip                   comma text of the gzip-compressed value
- K[0].zip + K[1..n].zip  a manifest plus n ordered parts of the comma text

The manifest is compact JSON:
    {"hash": ..., "size": ..., "zip": {"hash": ..., "size": ...}, "num_parts": n}
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import orjson

from supercache.cache.base import MAX_STORE_ENTRIES

ZIP_SUFFIX = ".zip"

_PART_INDEX_RE = re.compile(r"\[[0-9]+\]\Z")


def zip_key(key: str) -> str:
    """Key holding a compressed, unsplit value."""
    return f"{key}{ZIP_SUFFIX}"


def part_key(key: str, index: int) -> str:
    """Key of part ``index``; index 0 is the manifest slot."""
    return f"{key}[{index}]{ZIP_SUFFIX}"


def manifest_key(key: str) -> str:
    return part_key(key, 0)


def slot_keys(key: str) -> tuple[str, str, str]:
    """The three physical keys fetched for a logical key on read."""
    return (key, zip_key(key), manifest_key(key))


def part_keys(key: str, num_parts: int) -> list[str]:
    """Keys of parts 1..num_parts, in concatenation order."""
    return [part_key(key, i) for i in range(1, num_parts + 1)]


def has_part_index(key: str) -> bool:
    """True if ``key`` ends in ``[n]``, so that ``key.zip`` would name a part of another key."""
    return _PART_INDEX_RE.search(key) is not None


@dataclass(frozen=True)
class ZipInfo:
    """Fingerprint and size of the pre-split comma text."""

    hash: str | None
    size: int | None


@dataclass(frozen=True)
class Manifest:
    """Reconstruction record stored at K[0].zip for split values."""

    num_parts: int
    hash: str | None = None
    size: int | None = None
    zip: ZipInfo | None = None

    def to_json(self) -> str:
        payload: dict[str, Any] = {}
        if self.hash is not None:
            payload["hash"] = self.hash
        if self.size is not None:
            payload["size"] = self.size
        if self.zip is not None:
            payload["zip"] = {"hash": self.zip.hash, "size": self.zip.size}
        payload["num_parts"] = self.num_parts
        return orjson.dumps(payload).decode("utf-8")

    @classmethod
    def parse(cls, text: str) -> Manifest | None:
        """Parse manifest text, returning None if it is not manifest-shaped.

        Only ``num_parts`` (an integer in 1..999) is required. Fingerprints
        that are absent are simply not checked on read.
        """
        try:
            data = orjson.loads(text)
        except orjson.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None

        num_parts = data.get("num_parts")
        if isinstance(num_parts, bool) or not isinstance(num_parts, int):
            return None
        if not 1 <= num_parts < MAX_STORE_ENTRIES:
            return None

        zip_info = None
        raw_zip = data.get("zip")
        if isinstance(raw_zip, dict):
            zip_hash = raw_zip.get("hash")
            zip_size = raw_zip.get("size")
            zip_info = ZipInfo(
                hash=zip_hash if isinstance(zip_hash, str) else None,
                size=zip_size if isinstance(zip_size, int) else None,
            )

        value_hash = data.get("hash")
        size = data.get("size")
        return cls(
            num_parts=num_parts,
            hash=value_hash if isinstance(value_hash, str) else None,
            size=size if isinstance(size, int) else None,
            zip=zip_info,
        )
