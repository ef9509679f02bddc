"""
Configuration management using pydantic-settings.

Loads configuration from environment variables (prefixed SUPERCACHE_) and
.env files. Validates limits against the underlying store's constraints.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from supercache.cache.base import (
    MAX_STORE_ENTRIES,
    MAX_STORE_KEY_LENGTH,
    MAX_STORE_VALUE_BYTES,
    MAX_TTL_SECONDS,
    MIN_TTL_SECONDS,
)

# Longest suffix appended to a logical key: "[999].zip"
PART_SUFFIX_RESERVE = 10

# Smallest cap that still holds a split value's manifest
MIN_VALUE_BYTES = 256


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        SUPERCACHE_MAX_VALUE_BYTES: Per-entry byte cap of the underlying store
        SUPERCACHE_MAX_KEY_LENGTH: Longest accepted logical key
        SUPERCACHE_MAX_PARTS: Part ceiling for split values
        SUPERCACHE_DEFAULT_TTL_SECONDS: Expiration used when none is given
        SUPERCACHE_COMPRESS_LEVEL: gzip compression level
        SUPERCACHE_DEFAULT_SCOPE: Scope bound by SuperCache.for_scope()
        SUPERCACHE_LOG_LEVEL: Logging level
        SUPERCACHE_LOG_FILE: JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPERCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    MAX_VALUE_BYTES: int = Field(
        default=MAX_STORE_VALUE_BYTES,
        ge=MIN_VALUE_BYTES,
        le=MAX_STORE_VALUE_BYTES,
        description="Per-entry byte cap of the underlying store",
    )
    MAX_KEY_LENGTH: int = Field(
        default=MAX_STORE_KEY_LENGTH - PART_SUFFIX_RESERVE,
        ge=1,
        description="Longest accepted logical key",
    )
    MAX_PARTS: int = Field(
        default=MAX_STORE_ENTRIES,
        ge=2,
        le=MAX_STORE_ENTRIES,
        description="Part ceiling; encoding fails when the count reaches it",
    )
    DEFAULT_TTL_SECONDS: int = Field(
        default=600,
        ge=MIN_TTL_SECONDS,
        le=MAX_TTL_SECONDS,
        description="Expiration used when none is given",
    )
    COMPRESS_LEVEL: int = Field(default=9, ge=1, le=9, description="gzip level")
    DEFAULT_SCOPE: Literal["document", "script", "user"] = Field(
        default="script", description="Default cache scope"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("MAX_KEY_LENGTH")
    @classmethod
    def validate_key_length_leaves_suffix_room(cls, v: int) -> int:
        """Keep room for the "[n].zip" suffix within the store's key limit."""
        limit = MAX_STORE_KEY_LENGTH - PART_SUFFIX_RESERVE
        if v > limit:
            raise ValueError(
                f"MAX_KEY_LENGTH must be <= {limit} so part suffixes fit "
                f"the store's {MAX_STORE_KEY_LENGTH}-character key limit"
            )
        return v

    def redacted_display(self) -> dict[str, str | int | None]:
        """Return settings for display."""
        return {
            "MAX_VALUE_BYTES": self.MAX_VALUE_BYTES,
            "MAX_KEY_LENGTH": self.MAX_KEY_LENGTH,
            "MAX_PARTS": self.MAX_PARTS,
            "DEFAULT_TTL_SECONDS": self.DEFAULT_TTL_SECONDS,
            "COMPRESS_LEVEL": self.COMPRESS_LEVEL,
            "DEFAULT_SCOPE": self.DEFAULT_SCOPE,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
