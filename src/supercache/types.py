"""
Core types for supercache.

This module defines:
- LayoutKind: which physical representation a logical value uses
- CacheStats: mutable counters kept by a SuperCache instance
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum


class LayoutKind(str, Enum):
    """Physical representation of a logical value."""

    DIRECT = "direct"  # K holds the value verbatim
    COMPRESSED = "compressed"  # K.zip holds the comma-text gzip payload
    SPLIT = "split"  # K[0].zip manifest plus K[1..n].zip parts


@dataclass
class CacheStats:
    """Counters for cache activity.

    hits and misses count logical keys requested through get/get_all.
    purged counts logical keys dropped because reconstruction failed.
    """

    hits: int = 0
    misses: int = 0
    purged: int = 0
    writes: int = 0
    removals: int = 0

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups that returned a value."""
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> dict[str, int | float]:
        data: dict[str, int | float] = asdict(self)
        data["hit_rate"] = self.hit_rate
        return data
