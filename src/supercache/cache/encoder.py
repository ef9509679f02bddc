"""
Chunk encoder.

Maps one logical (key, value) pair onto the physical entries that represent
it in a bounded store. Performs no store I/O.
"""

from __future__ import annotations

import gzip
import math
from dataclasses import dataclass

from supercache.cache.base import MAX_STORE_ENTRIES, MAX_STORE_VALUE_BYTES
from supercache.cache.layout import Manifest, ZipInfo, manifest_key, part_key, zip_key
from supercache.exceptions import TooManyPartsError, ValueTooLargeError
from supercache.types import LayoutKind
from supercache.utils.digest import content_digest
from supercache.utils.size import estimate_bytes


def compress_to_text(value: str, compresslevel: int = 9) -> str:
    """Gzip ``value`` and render the bytes as comma-separated signed decimals.

    Signed rendering (-128..127) matches payloads written by existing
    deployments, whose byte arrays are signed.
    """
    data = gzip.compress(value.encode("utf-8", "surrogatepass"), compresslevel, mtime=0)
    return ",".join(str(b - 256 if b > 127 else b) for b in data)


@dataclass(frozen=True)
class EncodedLayout:
    """Result of planning the physical layout of one logical value."""

    key: str
    kind: LayoutKind
    entries: dict[str, str]
    value_bytes: int
    zip_bytes: int | None = None
    manifest: Manifest | None = None

    @property
    def num_parts(self) -> int:
        return self.manifest.num_parts if self.manifest else 0


class ChunkEncoder:
    """Decides between direct, compressed and split representations.

    Args:
        max_value_bytes: Per-entry byte cap of the underlying store.
        max_parts: Encoding fails when the part count reaches this value.
        compresslevel: gzip compression level.
    """

    def __init__(
        self,
        max_value_bytes: int = MAX_STORE_VALUE_BYTES,
        max_parts: int = MAX_STORE_ENTRIES,
        compresslevel: int = 9,
    ) -> None:
        self.max_value_bytes = max_value_bytes
        self.max_parts = max_parts
        self.compresslevel = compresslevel

    def encode(self, key: str, value: str) -> dict[str, str]:
        """Return the physical key -> value mapping for ``value``."""
        return self.plan(key, value).entries

    def plan(self, key: str, value: str) -> EncodedLayout:
        """Plan the layout of ``value`` under ``key``.

        Raises:
            TooManyPartsError: If the compressed value needs max_parts or more parts.
            ValueTooLargeError: If the manifest itself exceeds the cap.
        """
        cap = self.max_value_bytes
        value_bytes = estimate_bytes(value)

        if value_bytes <= cap:
            return EncodedLayout(
                key=key,
                kind=LayoutKind.DIRECT,
                entries={key: value},
                value_bytes=value_bytes,
            )

        zip_text = compress_to_text(value, self.compresslevel)
        zip_bytes = estimate_bytes(zip_text)

        if zip_bytes <= cap:
            return EncodedLayout(
                key=key,
                kind=LayoutKind.COMPRESSED,
                entries={zip_key(key): zip_text},
                value_bytes=value_bytes,
                zip_bytes=zip_bytes,
            )

        # Comma text is ASCII, so character slices are byte slices.
        num_parts = math.ceil(len(zip_text) / cap)
        if num_parts >= self.max_parts:
            raise TooManyPartsError(
                "Too many parts",
                context={"key": key, "num_parts": num_parts, "max_parts": self.max_parts},
            )

        entries: dict[str, str] = {}
        for index in range(num_parts):
            entries[part_key(key, index + 1)] = zip_text[index * cap:(index + 1) * cap]

        manifest = Manifest(
            num_parts=num_parts,
            hash=content_digest(value),
            size=value_bytes,
            zip=ZipInfo(hash=content_digest(zip_text), size=zip_bytes),
        )
        manifest_text = manifest.to_json()
        manifest_bytes = estimate_bytes(manifest_text)
        if manifest_bytes > cap:
            raise ValueTooLargeError(
                "Manifest exceeds the per-entry cap",
                context={"key": key, "manifest_bytes": manifest_bytes, "max_value_bytes": cap},
            )
        entries[manifest_key(key)] = manifest_text

        return EncodedLayout(
            key=key,
            kind=LayoutKind.SPLIT,
            entries=entries,
            value_bytes=value_bytes,
            zip_bytes=zip_bytes,
            manifest=manifest,
        )
