"""Tests for content fingerprinting."""

import hashlib

import pytest

from merkle_sync.errors import MissingContentError, MissingFieldError
from merkle_sync.hasher import SENTINEL_FINGERPRINT, combine, fingerprint, short_label


class TestFingerprint:
    """Tests for the fingerprint function."""

    def test_matches_sha256_hexdigest(self):
        """Fingerprint is the SHA-256 hex digest of the UTF-8 content."""
        assert fingerprint("alice") == hashlib.sha256(b"alice").hexdigest()

    def test_fixed_width(self):
        assert len(fingerprint("a")) == 64
        assert len(fingerprint("a much longer piece of content" * 100)) == 64

    def test_deterministic(self):
        """Same content always yields the same fingerprint."""
        assert fingerprint("bob") == fingerprint("bob")

    def test_different_content_differs(self):
        assert fingerprint("charlie") != fingerprint("charlie-updated")

    def test_non_ascii_content(self):
        assert fingerprint("zoë") == hashlib.sha256("zoë".encode("utf-8")).hexdigest()

    def test_empty_string_is_valid_content(self):
        assert fingerprint("") == hashlib.sha256(b"").hexdigest()

    def test_none_content_raises(self):
        """A record must always carry a content string."""
        with pytest.raises(MissingContentError) as exc_info:
            fingerprint(None)

        assert isinstance(exc_info.value, MissingFieldError)
        assert exc_info.value.field == "content"


class TestCombine:
    """Tests for parent fingerprint computation."""

    def test_combine_hashes_concatenation(self):
        left = fingerprint("a")
        right = fingerprint("b")

        assert combine(left, right) == fingerprint(left + right)

    def test_combine_is_order_sensitive(self):
        left = fingerprint("a")
        right = fingerprint("b")

        assert combine(left, right) != combine(right, left)

    def test_sentinel_is_all_zero(self):
        assert SENTINEL_FINGERPRINT == "0" * 64


class TestShortLabel:
    """Tests for display truncation."""

    def test_default_length(self):
        assert short_label(fingerprint("a")) == fingerprint("a")[:16]

    def test_custom_length(self):
        assert short_label(fingerprint("a"), 8) == fingerprint("a")[:8]

    def test_absent_fingerprint(self):
        assert short_label(None) == "-"
