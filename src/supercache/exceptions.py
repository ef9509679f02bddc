"""
Custom exception hierarchy for supercache.

All exceptions inherit from SuperCacheError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class SuperCacheError(Exception):
    """Base exception for all supercache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class CacheValidationError(SuperCacheError, TypeError):
    """Raised when caller arguments fail validation.

    Always raised before the underlying store is touched.

    Context should include:
        - field: The argument that failed validation (key, value, ttl, keys)
        - value: A short repr of the invalid value
    """

    pass


class DigestError(SuperCacheError, ValueError):
    """Raised when a fingerprint cannot be computed for the given arguments.

    Context should include:
        - field: key, value or charset
    """

    pass


class ValueTooLargeError(SuperCacheError):
    """Raised when a value cannot be laid out within the per-entry cap.

    Context should include:
        - key: The logical key being encoded
    """

    pass


class TooManyPartsError(ValueTooLargeError):
    """Raised when a compressed value would need too many parts.

    Context should include:
        - key: The logical key being encoded
        - max_parts: The configured part ceiling
    """

    pass


class StoreLimitError(SuperCacheError):
    """Raised by a bounded store when an entry violates its limits.

    Context should include:
        - key: The physical key
        - limit: Which limit was violated (key_length, value_bytes, ttl)
    """

    pass


class IntegrityError(SuperCacheError):
    """Raised inside the decoder when a chunk set cannot be reconstructed.

    Never leaves a read path: the decoder turns it into a miss plus purge.

    Context should include:
        - key: The logical key
        - reason: missing_part, zip_hash, hash, gzip, manifest
    """

    pass
