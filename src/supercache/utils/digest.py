"""
Content fingerprints used for corruption detection.

Fingerprints are lowercase hex MD5 digests (HMAC-MD5 for the keyed form),
matching the hashes recorded in manifests by existing deployments. They
detect torn or tampered chunk sets; they are never used for addressing.
"""

from __future__ import annotations

import hashlib
import hmac
from enum import Enum

from supercache.exceptions import DigestError

DIGEST_ALGORITHM = "md5"


class Charset(str, Enum):
    """Byte interpretation applied to text before hashing."""

    UTF_8 = "UTF-8"
    US_ASCII = "US-ASCII"

    @property
    def codec(self) -> str:
        """Python codec name for this charset."""
        return "utf-8" if self is Charset.UTF_8 else "ascii"


def _resolve_charset(charset: Charset | str) -> Charset:
    try:
        return Charset(charset)
    except ValueError:
        raise DigestError(
            "The charset parameter has an invalid value",
            context={"field": "charset", "value": charset},
        ) from None


def _encode(field: str, text: str, charset: Charset) -> bytes:
    if not isinstance(text, str) or not text.strip():
        raise DigestError(
            f"The {field} parameter has an invalid value",
            context={"field": field},
        )
    try:
        return text.encode(charset.codec)
    except UnicodeEncodeError:
        raise DigestError(
            f"The {field} parameter cannot be encoded as {charset.value}",
            context={"field": field, "charset": charset.value},
        ) from None


def content_digest(text: str) -> str:
    """Fingerprint arbitrary text (including blank text) as UTF-8.

    Used by the chunk codec, where any string is a legal cache value.
    """
    data = text.encode("utf-8", "surrogatepass")
    return hashlib.new(DIGEST_ALGORITHM, data, usedforsecurity=False).hexdigest()


def fingerprint(value: str, charset: Charset | str = Charset.UTF_8) -> str:
    """Compute the hex fingerprint of a string.

    Args:
        value: Non-blank text to hash.
        charset: Byte interpretation of ``value``.

    Returns:
        Lowercase hex digest.

    Raises:
        DigestError: If ``value`` is blank or ``charset`` is unsupported.
    """
    resolved = _resolve_charset(charset)
    data = _encode("value", value, resolved)
    return hashlib.new(DIGEST_ALGORITHM, data, usedforsecurity=False).hexdigest()


def keyed_fingerprint(key: str, value: str, charset: Charset | str = Charset.UTF_8) -> str:
    """Compute the hex HMAC fingerprint of a string.

    Args:
        key: Non-blank HMAC key.
        value: Non-blank text to sign.
        charset: Byte interpretation of both ``key`` and ``value``.

    Returns:
        Lowercase hex HMAC digest.

    Raises:
        DigestError: If ``key`` or ``value`` is blank or ``charset`` is unsupported.
    """
    resolved = _resolve_charset(charset)
    key_bytes = _encode("key", key, resolved)
    value_bytes = _encode("value", value, resolved)
    return hmac.new(key_bytes, value_bytes, DIGEST_ALGORITHM).hexdigest()
