"""
In-memory bounded store.

A dict-backed stand-in for the host cache service with the same
constraints: key length limit, per-entry byte cap, entry count ceiling and
per-entry expiration. Used by tests and for local, single-process caching.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Iterable, Mapping

from supercache.cache.base import (
    MAX_STORE_ENTRIES,
    MAX_STORE_KEY_LENGTH,
    MAX_STORE_VALUE_BYTES,
    MAX_TTL_SECONDS,
    MIN_TTL_SECONDS,
    BoundedStore,
)
from supercache.exceptions import StoreLimitError
from supercache.logging import get_logger
from supercache.utils.size import estimate_bytes

logger = get_logger(__name__)


class InMemoryBoundedStore(BoundedStore):
    """Dict-based bounded store with TTL expiry and LRU eviction.

    When a write would exceed ``max_entries``, the least recently used
    entries are evicted first, as the host service may evict at any time.

    Args:
        max_entries: Entry count ceiling.
        max_value_bytes: Per-entry byte cap.
        max_key_length: Longest accepted key.
        clock: Monotonic clock in seconds, injectable for tests.
    """

    def __init__(
        self,
        max_entries: int = MAX_STORE_ENTRIES,
        max_value_bytes: int = MAX_STORE_VALUE_BYTES,
        max_key_length: int = MAX_STORE_KEY_LENGTH,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.max_value_bytes = max_value_bytes
        self.max_key_length = max_key_length
        self._clock = clock
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()

    def __len__(self) -> int:
        self._expire()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def keys(self) -> set[str]:
        """Live keys currently held."""
        self._expire()
        return set(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def get(self, key: str) -> str | None:
        item = self._entries.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def get_all(self, keys: Iterable[str]) -> dict[str, str]:
        result: dict[str, str] = {}
        for key in keys:
            value = self.get(key)
            if value is not None:
                result[key] = value
        return result

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self.put_all({key: value}, ttl_seconds)

    def put_all(self, values: Mapping[str, str], ttl_seconds: int) -> None:
        self._check_ttl(ttl_seconds)
        for key, value in values.items():
            self._check_entry(key, value)

        expires_at = self._clock() + ttl_seconds
        for key, value in values.items():
            self._entries[key] = (value, expires_at)
            self._entries.move_to_end(key)

        self._evict()

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def remove_all(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._entries.pop(key, None)

    def _check_ttl(self, ttl_seconds: int) -> None:
        if (
            isinstance(ttl_seconds, bool)
            or not isinstance(ttl_seconds, int)
            or not MIN_TTL_SECONDS <= ttl_seconds <= MAX_TTL_SECONDS
        ):
            raise StoreLimitError(
                "Expiration out of range",
                context={"limit": "ttl", "ttl_seconds": ttl_seconds},
            )

    def _check_entry(self, key: str, value: str) -> None:
        if not isinstance(key, str) or not key or len(key) > self.max_key_length:
            raise StoreLimitError("Key is empty or too long", context={"key": key, "limit": "key_length"})
        if not isinstance(value, str):
            raise StoreLimitError("Value must be a string", context={"key": key, "limit": "value_type"})
        size = estimate_bytes(value)
        if size > self.max_value_bytes:
            raise StoreLimitError(
                "Value too large",
                context={"key": key, "limit": "value_bytes", "size": size},
            )

    def _expire(self) -> None:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def _evict(self) -> None:
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        self._expire()
        while len(self._entries) > self.max_entries:
            key, _ = self._entries.popitem(last=False)
            logger.debug("Evicted entry", key=key)
