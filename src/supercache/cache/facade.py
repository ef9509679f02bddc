"""
SuperCache facade.

Stores values larger than the underlying store's per-entry cap by
compressing them and, if needed, splitting them into parts. Reads verify
fingerprints; a value that cannot be reconstructed reads as a miss and its
remnants are purged.

Example:
    >>> from supercache import SuperCache
    >>> from supercache.cache.memory_store import InMemoryBoundedStore
    >>> cache = SuperCache(InMemoryBoundedStore())
    >>> cache.put("report", "x" * 300_000, ttl=60)
    >>> len(cache.get("report"))
    300000
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from supercache.cache.base import MAX_TTL_SECONDS, MIN_TTL_SECONDS, BoundedStore
from supercache.cache.decoder import ChunkDecoder
from supercache.cache.encoder import ChunkEncoder
from supercache.cache.layout import (
    ZIP_SUFFIX,
    Manifest,
    has_part_index,
    manifest_key,
    part_keys,
    slot_keys,
    zip_key,
)
from supercache.cache.scopes import CacheScope, ScopeRegistry, default_registry
from supercache.config import Settings, get_settings
from supercache.exceptions import CacheValidationError
from supercache.logging import get_logger, log_context
from supercache.types import CacheStats

logger = get_logger(__name__)


class SuperCache:
    """Large-value cache over a bounded key/value store.

    Args:
        store: Already-bound underlying store.
        scope: Scope the store belongs to (used for log context only).
        settings: Limits and defaults; loaded from the environment if omitted.
        encoder: Chunk encoder; built from settings if omitted.
        decoder: Chunk decoder.
    """

    def __init__(
        self,
        store: BoundedStore,
        *,
        scope: CacheScope | str | None = None,
        settings: Settings | None = None,
        encoder: ChunkEncoder | None = None,
        decoder: ChunkDecoder | None = None,
    ) -> None:
        self._store = store
        self.settings = settings or get_settings()
        self.scope = CacheScope.resolve(scope) if scope is not None else None
        self._encoder = encoder or ChunkEncoder(
            max_value_bytes=self.settings.MAX_VALUE_BYTES,
            max_parts=self.settings.MAX_PARTS,
            compresslevel=self.settings.COMPRESS_LEVEL,
        )
        self._decoder = decoder or ChunkDecoder()
        self.stats = CacheStats()

    @classmethod
    def for_scope(
        cls,
        scope: CacheScope | str | None = None,
        registry: ScopeRegistry | None = None,
        settings: Settings | None = None,
    ) -> SuperCache:
        """Bind a cache to one of the document, script or user tiers."""
        settings = settings or get_settings()
        resolved = CacheScope.resolve(scope if scope is not None else settings.DEFAULT_SCOPE)
        store = (registry or default_registry()).store_for(resolved)
        return cls(store, scope=resolved, settings=settings)

    @property
    def store(self) -> BoundedStore:
        return self._store

    def __repr__(self) -> str:
        scope = self.scope.value if self.scope else None
        return f"{self.__class__.__name__}(scope={scope!r})"

    # --- validation ---------------------------------------------------------

    def is_valid_key(self, key: Any) -> bool:
        """Logical keys are 1..MAX_KEY_LENGTH chars, or an internal .zip form.

        Keys ending in ``[n]`` are rejected: their compressed slot would be
        part n of the key without that suffix.
        """
        if not isinstance(key, str) or has_part_index(key):
            return False
        return 0 < len(key) <= self.settings.MAX_KEY_LENGTH or key.endswith(ZIP_SUFFIX)

    def _validate_key(self, key: Any) -> str:
        if not self.is_valid_key(key):
            raise CacheValidationError(
                "Invalid cache key",
                context={"field": "key", "value": _short_repr(key)},
            )
        return key

    def _validate_keys(self, keys: Any) -> list[str]:
        if not isinstance(keys, (list, tuple)):
            raise CacheValidationError(
                "Keys must be a list",
                context={"field": "keys", "type": type(keys).__name__},
            )
        for key in keys:
            self._validate_key(key)
        return list(dict.fromkeys(keys))

    def _validate_ttl(self, ttl: Any) -> int:
        if ttl is None:
            return self.settings.DEFAULT_TTL_SECONDS
        if isinstance(ttl, bool) or not isinstance(ttl, int) or not MIN_TTL_SECONDS <= ttl <= MAX_TTL_SECONDS:
            raise CacheValidationError(
                f"Expiration must be an integer between {MIN_TTL_SECONDS} and {MAX_TTL_SECONDS}",
                context={"field": "ttl", "value": _short_repr(ttl)},
            )
        return ttl

    def _validate_values(self, values: Any) -> dict[str, str]:
        if not isinstance(values, Mapping):
            raise CacheValidationError(
                "Values must be a mapping of keys to strings",
                context={"field": "values", "type": type(values).__name__},
            )
        for key, value in values.items():
            self._validate_key(key)
            if not isinstance(value, str):
                raise CacheValidationError(
                    "Cache values must be strings",
                    context={"field": "value", "key": key, "type": type(value).__name__},
                )
        return dict(values)

    # --- reads ----------------------------------------------------------------

    def get(self, key: str) -> str | None:
        """Get the value for ``key``, or None if absent or unrecoverable."""
        self._validate_key(key)
        return self.get_all([key]).get(key)

    def get_all(self, keys: list[str]) -> dict[str, str]:
        """Get the values found for ``keys``.

        Two batched reads are made at most: one for each key's direct,
        compressed and manifest slots, and one for all parts named by the
        manifests found. Keys that fail verification are omitted and purged.
        """
        keys = self._validate_keys(keys)
        if not keys:
            return {}

        with log_context(scope=self._scope_name, operation="get_all"):
            try:
                raw = self._store.get_all([slot for key in keys for slot in slot_keys(key)])
                state = self._decoder.first_pass(keys, raw)
                needed = state.part_keys()
                raw_parts = self._store.get_all(needed) if needed else {}
                result = self._decoder.second_pass(state, raw_parts)
            except Exception as e:
                logger.warning("Read failed, treating as miss", keys=len(keys), error=str(e))
                self.stats.misses += len(keys)
                return {}

            if result.purge:
                self._purge(result.purge)

            self.stats.hits += len(result.values)
            self.stats.misses += len(keys) - len(result.values)
            logger.debug("Read complete", requested=len(keys), found=len(result.values))
            return result.values

    def _purge(self, keys: frozenset[str]) -> None:
        self.stats.purged += len(keys)
        logger.info("Purging unrecoverable values", keys=sorted(keys))
        try:
            self._remove_physical(sorted(keys))
        except Exception as e:
            logger.warning("Purge failed", keys=sorted(keys), error=str(e))

    # --- writes ---------------------------------------------------------------

    def put(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (default 600)."""
        self._validate_key(key)
        if not isinstance(value, str):
            raise CacheValidationError(
                "Cache values must be strings",
                context={"field": "value", "key": key, "type": type(value).__name__},
            )
        self.put_all({key: value}, ttl)

    def put_all(self, values: Mapping[str, str], ttl: int | None = None) -> None:
        """Store several values with the same expiration.

        Any previous layout of each key is removed first so that a value
        never coexists with remnants of a differently shaped predecessor.

        Raises:
            CacheValidationError: On invalid keys, values or ttl.
            ValueTooLargeError: If a value is too large even when split
                (TooManyPartsError when the part ceiling is reached).
        """
        ttl = self._validate_ttl(ttl)
        values = self._validate_values(values)
        if not values:
            return

        entries: dict[str, str] = {}
        for key, value in values.items():
            entries.update(self._encoder.encode(key, value))

        with log_context(scope=self._scope_name, operation="put_all"):
            self._remove_physical(list(values))
            self._store.put_all(entries, ttl)
            self.stats.writes += len(values)
            logger.debug("Wrote values", keys=len(values), entries=len(entries), ttl=ttl)

    # --- removal --------------------------------------------------------------

    def remove(self, key: str) -> None:
        """Remove ``key`` and every physical entry belonging to it."""
        self._validate_key(key)
        self.remove_all([key])

    def remove_all(self, keys: list[str]) -> None:
        """Remove several keys and every physical entry belonging to them."""
        keys = self._validate_keys(keys)
        if not keys:
            return
        with log_context(scope=self._scope_name, operation="remove_all"):
            self._remove_physical(keys)
            self.stats.removals += len(keys)

    def _remove_physical(self, keys: list[str]) -> None:
        manifests = self._store.get_all([manifest_key(key) for key in keys])

        doomed: list[str] = []
        for key in keys:
            doomed.extend((key, zip_key(key), manifest_key(key)))
            text = manifests.get(manifest_key(key))
            if not text:
                continue
            manifest = Manifest.parse(text)
            if manifest is None:
                continue
            doomed.extend(part_keys(key, manifest.num_parts))

        self._store.remove_all(list(dict.fromkeys(doomed)))

    @property
    def _scope_name(self) -> str | None:
        return self.scope.value if self.scope else None


def _short_repr(value: Any, limit: int = 60) -> str:
    text = repr(value)
    return text if len(text) <= limit else f"{text[:limit]}..."


def get_document_cache(registry: ScopeRegistry | None = None) -> SuperCache:
    """Cache bound to the current document's tier."""
    return SuperCache.for_scope(CacheScope.DOCUMENT, registry)


def get_script_cache(registry: ScopeRegistry | None = None) -> SuperCache:
    """Cache bound to the script-wide tier."""
    return SuperCache.for_scope(CacheScope.SCRIPT, registry)


def get_user_cache(registry: ScopeRegistry | None = None) -> SuperCache:
    """Cache bound to the current user's tier."""
    return SuperCache.for_scope(CacheScope.USER, registry)


def is_cache(obj: Any) -> bool:
    return isinstance(obj, SuperCache)
