"""
supercache - large values on top of a size-bounded key/value cache.

Values larger than the per-entry cap of the underlying store are gzip
compressed and, when still too large, split into numbered parts described
by a manifest. Reads verify fingerprints and purge corrupted chunk sets.
"""

from __future__ import annotations

__version__ = "1.0.1"

from supercache.cache.scopes import CacheScope
from supercache.cache.facade import (
    SuperCache,
    get_document_cache,
    get_script_cache,
    get_user_cache,
    is_cache,
)

__all__ = [
    "__version__",
    "CacheScope",
    "SuperCache",
    "get_document_cache",
    "get_script_cache",
    "get_user_cache",
    "is_cache",
]
