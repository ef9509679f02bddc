"""Storage footprint estimation."""

from __future__ import annotations

from supercache.exceptions import CacheValidationError


def estimate_bytes(value: str) -> int:
    """Return the number of bytes ``value`` occupies in the store's accounting.

    The store charges by UTF-8 length. Lone surrogates, which UTF-8 cannot
    represent, are counted at their 3-byte surrogatepass width.
    """
    if not isinstance(value, str):
        raise CacheValidationError(
            "The input parameter has an invalid value",
            context={"field": "value", "type": type(value).__name__},
        )
    if value.isascii():
        return len(value)
    return len(value.encode("utf-8", "surrogatepass"))
