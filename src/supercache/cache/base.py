"""
Base classes for the underlying bounded store.

The store is an external collaborator: a text key/value cache with a
per-entry byte cap, a key length limit, an entry count ceiling and a
caller-supplied expiration. SuperCache is parameterized by an already-bound
instance of this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

MAX_STORE_KEY_LENGTH = 250
MAX_STORE_VALUE_BYTES = 100 * 1024
MAX_STORE_ENTRIES = 1000
MIN_TTL_SECONDS = 1
MAX_TTL_SECONDS = 21600


class BoundedStore(ABC):
    """Abstract interface for bounded key/value stores."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Get a value from the store, or None if absent."""
        ...

    @abstractmethod
    def get_all(self, keys: Iterable[str]) -> dict[str, str]:
        """Get several values. Only keys that were found are returned."""
        ...

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value, silently overwriting any previous one."""
        ...

    @abstractmethod
    def put_all(self, values: Mapping[str, str], ttl_seconds: int) -> None:
        """Store several values with the same expiration."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a value. Removing an absent key is a no-op."""
        ...

    @abstractmethod
    def remove_all(self, keys: Iterable[str]) -> None:
        """Remove several values. Absent keys are ignored."""
        ...
