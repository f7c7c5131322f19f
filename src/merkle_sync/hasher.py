"""Content fingerprinting for Merkle trees."""

import hashlib

from .errors import MissingContentError

# Fingerprint of the padding node paired with an odd node at any level
SENTINEL_FINGERPRINT = "0" * 64

DEFAULT_LABEL_LENGTH = 16


def fingerprint(content: str | None) -> str:
    """Compute the SHA-256 fingerprint of a content string.

    The empty string is valid content; None is not.
    """
    if content is None:
        raise MissingContentError()
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def combine(left: str, right: str) -> str:
    """Compute a parent fingerprint from its two children."""
    return fingerprint(left + right)


def short_label(value: str | None, length: int = DEFAULT_LABEL_LENGTH) -> str:
    """Truncate a fingerprint for display. Never use the result for equality."""
    if value is None:
        return "-"
    return value[:length]
