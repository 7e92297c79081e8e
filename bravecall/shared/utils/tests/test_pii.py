"""Tests for PII helpers."""
import pytest

from bravecall.shared.utils import configure_pii_salt, hash_pii, hash_text_for_audit, mask_contact


@pytest.fixture(autouse=True)
def setup_pii_salt():
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


class TestConfigurePiiSalt:
    """Tests for salt configuration."""

    def test_short_salt_rejected(self):
        with pytest.raises(ValueError):
            configure_pii_salt("too_short")

    def test_empty_salt_rejected(self):
        with pytest.raises(ValueError):
            configure_pii_salt("")


class TestHashPii:
    """Tests for identifier hashing."""

    def test_hash_is_deterministic(self):
        assert hash_pii("child_123") == hash_pii("child_123")

    def test_hash_differs_per_value(self):
        assert hash_pii("child_123") != hash_pii("child_456")

    def test_hash_does_not_contain_value(self):
        hashed = hash_pii("child_123")
        assert "child_123" not in hashed
        assert len(hashed) == 64

    def test_hash_depends_on_salt(self):
        first = hash_pii("child_123")
        configure_pii_salt("another_salt_that_is_at_least_32_characters")

        assert hash_pii("child_123") != first


class TestHashTextForAudit:
    """Tests for message fingerprints."""

    def test_fingerprint_is_stable(self):
        assert hash_text_for_audit("hello") == hash_text_for_audit("hello")
        assert hash_text_for_audit("hello") != hash_text_for_audit("hello!")


class TestMaskContact:
    """Tests for parent contact masking."""

    def test_keeps_last_four(self):
        assert mask_contact("+15551234567") == "***4567"

    def test_strips_whitespace(self):
        assert mask_contact(" +1 555 123 4567 ") == "***4567"

    def test_empty_contact(self):
        assert mask_contact("") == ""
        assert mask_contact(None) == ""
