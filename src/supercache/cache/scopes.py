"""
Cache scopes.

The host cache service exposes three tiers: one bound to the current
document, one shared by the script, and one per user. A ScopeRegistry binds
each tier to a BoundedStore; unbound tiers get a fresh in-memory store on
first use.
"""

from __future__ import annotations

from enum import Enum

from supercache.cache.base import BoundedStore
from supercache.cache.memory_store import InMemoryBoundedStore
from supercache.exceptions import CacheValidationError


class CacheScope(str, Enum):
    """Tier of the host cache service a SuperCache binds to."""

    DOCUMENT = "document"
    SCRIPT = "script"
    USER = "user"

    @classmethod
    def resolve(cls, scope: CacheScope | str) -> CacheScope:
        """Coerce a scope name, rejecting unknown tiers."""
        try:
            return cls(scope)
        except ValueError:
            raise CacheValidationError(
                "The scope parameter has an invalid value",
                context={"field": "scope", "value": scope},
            ) from None


class ScopeRegistry:
    """Maps each CacheScope to the store backing it."""

    def __init__(self, stores: dict[CacheScope, BoundedStore] | None = None) -> None:
        self._stores: dict[CacheScope, BoundedStore] = dict(stores or {})

    def bind(self, scope: CacheScope | str, store: BoundedStore) -> None:
        """Back ``scope`` with ``store``, replacing any previous binding."""
        self._stores[CacheScope.resolve(scope)] = store

    def store_for(self, scope: CacheScope | str) -> BoundedStore:
        resolved = CacheScope.resolve(scope)
        store = self._stores.get(resolved)
        if store is None:
            store = InMemoryBoundedStore()
            self._stores[resolved] = store
        return store


_default_registry = ScopeRegistry()


def default_registry() -> ScopeRegistry:
    """Process-wide registry used when none is given."""
    return _default_registry
