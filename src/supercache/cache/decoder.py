"""
Chunk decoder.

Reconstructs logical values from the physical entries fetched for them.
Decoding runs in two passes that mirror the facade's two batched reads:

1. first_pass() classifies the entries found at K, K.zip and K[0].zip.
   Direct and compressed values are resolved immediately; manifests are
   kept pending and name the part keys still to fetch.
2. second_pass() joins the fetched parts, verifies both fingerprints and
   decompresses.

Reconstruction failures are expected under normal operation (a chunk set
partly expired, or two writers interleaved). They never raise: the key is
left out of the result and reported for purge.
"""

from __future__ import annotations

import gzip
import zlib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import orjson

from supercache.cache.layout import Manifest, manifest_key, part_keys, zip_key
from supercache.exceptions import IntegrityError
from supercache.logging import get_logger
from supercache.utils.digest import content_digest

logger = get_logger(__name__)


def text_to_bytes(zip_text: str) -> bytes:
    """Parse comma-separated decimal bytes, signed or unsigned.

    Raises:
        IntegrityError: If the text is not a list of integers in -128..255.
    """
    try:
        numbers = orjson.loads(f"[{zip_text}]")
    except orjson.JSONDecodeError as e:
        raise IntegrityError("Payload is not comma-separated bytes", {"reason": "encoding"}) from e

    if not numbers:
        raise IntegrityError("Payload is empty", {"reason": "encoding"})
    for n in numbers:
        if isinstance(n, bool) or not isinstance(n, int) or not -128 <= n <= 255:
            raise IntegrityError("Payload holds a non-byte value", {"reason": "encoding"})

    return bytes(n & 0xFF for n in numbers)


def decompress_text(zip_text: str) -> str:
    """Invert compress_to_text().

    Raises:
        IntegrityError: If the payload is not valid gzip of UTF-8 text.
    """
    data = text_to_bytes(zip_text)
    try:
        raw = gzip.decompress(data)
        return raw.decode("utf-8", "surrogatepass")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise IntegrityError("Payload does not decompress", {"reason": "gzip"}) from e


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding a batch of logical keys.

    Keys in ``values`` are hits. Every other requested key is a miss; misses
    listed in ``purge`` had corrupted or partial remnants that should be
    deleted from the store.
    """

    values: dict[str, str]
    purge: frozenset[str]


@dataclass
class DecodeState:
    """Intermediate state between the two decoding passes."""

    values: dict[str, str] = field(default_factory=dict)
    purge: set[str] = field(default_factory=set)
    manifests: dict[str, Manifest] = field(default_factory=dict)

    def part_keys(self) -> list[str]:
        """All part keys needed to resolve the pending manifests."""
        keys: list[str] = []
        for key, manifest in self.manifests.items():
            keys.extend(part_keys(key, manifest.num_parts))
        return keys


class ChunkDecoder:
    """Reassembles and verifies logical values."""

    def first_pass(
        self, logical_keys: Iterable[str], raw: Mapping[str, str]
    ) -> DecodeState:
        """Classify the entries found at each key's K, K.zip and K[0].zip.

        Args:
            logical_keys: Keys requested by the caller.
            raw: Physical entries returned by the store.

        Returns:
            DecodeState with resolved values, purge set and pending manifests.
        """
        state = DecodeState()

        for key in logical_keys:
            if key in state.values or key in state.purge or key in state.manifests:
                continue

            if key in raw:
                state.values[key] = raw[key]
                continue

            # A manifest slot that does not parse as a manifest holds a payload.
            candidates = [raw.get(manifest_key(key)), raw.get(zip_key(key))]
            payload: str | None = None
            for text in candidates:
                if text is None:
                    continue
                manifest = Manifest.parse(text)
                if manifest is not None:
                    state.manifests[key] = manifest
                    break
                if payload is None:
                    payload = text
            else:
                if payload is not None:
                    self._resolve_payload(state, key, payload)

        return state

    def second_pass(self, state: DecodeState, raw_parts: Mapping[str, str]) -> DecodeResult:
        """Resolve pending manifests from the fetched parts."""
        values = dict(state.values)
        purge = set(state.purge)

        for key, manifest in state.manifests.items():
            try:
                values[key] = self._reassemble(key, manifest, raw_parts)
            except IntegrityError as e:
                logger.debug("Split value failed verification", key=key, **e.context)
                purge.add(key)

        return DecodeResult(values=values, purge=frozenset(purge))

    def decode(
        self, logical_keys: Iterable[str], raw_entries: Mapping[str, str]
    ) -> DecodeResult:
        """Decode in one call when every physical entry is already in hand."""
        state = self.first_pass(logical_keys, raw_entries)
        return self.second_pass(state, raw_entries)

    def _resolve_payload(self, state: DecodeState, key: str, payload: str) -> None:
        try:
            state.values[key] = decompress_text(payload)
        except IntegrityError as e:
            logger.debug("Compressed value failed to decode", key=key, **e.context)
            state.purge.add(key)

    def _reassemble(self, key: str, manifest: Manifest, raw_parts: Mapping[str, str]) -> str:
        chunks: list[str] = []
        for name in part_keys(key, manifest.num_parts):
            chunk = raw_parts.get(name)
            if not chunk:
                raise IntegrityError("Missing part", {"reason": "missing_part", "part": name})
            chunks.append(chunk)
        zip_text = "".join(chunks)

        if manifest.zip is not None and manifest.zip.hash:
            if content_digest(zip_text) != manifest.zip.hash:
                raise IntegrityError("Compressed fingerprint mismatch", {"reason": "zip_hash"})

        value = decompress_text(zip_text)

        if manifest.hash and content_digest(value) != manifest.hash:
            raise IntegrityError("Value fingerprint mismatch", {"reason": "hash"})

        return value
