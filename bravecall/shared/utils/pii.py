"""PII handling: no raw child identifiers, message text or phone numbers in logs.

Child identifiers are salted and hashed before logging; message text is
fingerprinted; parent phone numbers are masked to their last four characters
before they are logged or stored.
"""
import hashlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)


# Loaded from the environment at process start (PII_HASH_SALT)
_PII_SALT: Optional[str] = None

_VISIBLE_CONTACT_CHARS = 4


def configure_pii_salt(salt: str) -> None:
    """Configure the PII hashing salt.

    Must be called during application startup before any PII hashing.

    Args:
        salt: Secret salt value

    Raises:
        ValueError: If salt is empty or too short
    """
    global _PII_SALT
    if not salt or len(salt) < 32:
        logger.critical(
            "PII_SALT_CONFIGURATION_FAILED",
            extra={"reason": "Salt too short or empty", "min_length": 32}
        )
        raise ValueError("PII salt must be at least 32 characters")

    _PII_SALT = salt
    logger.info("PII_SALT_CONFIGURED", extra={"salt_length": len(salt)})


def hash_pii(value: str) -> str:
    """Hash a child identifier for safe logging.

    Args:
        value: The identifier to hash

    Returns:
        64-char hex SHA-256 of salt + value

    Raises:
        RuntimeError: If PII salt has not been configured
    """
    if _PII_SALT is None:
        logger.critical(
            "PII_HASH_FAILED",
            extra={"reason": "Salt not configured", "action": "call configure_pii_salt()"}
        )
        raise RuntimeError("PII salt not configured. Call configure_pii_salt() first.")

    salted = f"{_PII_SALT}{value}"
    return hashlib.sha256(salted.encode()).hexdigest()


def hash_text_for_audit(text: str) -> str:
    """Fingerprint message text without exposing its content."""
    return hashlib.sha256(text.encode()).hexdigest()


def mask_contact(contact: Optional[str]) -> str:
    """Mask a parent contact down to its last four characters.

    Example:
        >>> mask_contact("+15551234567")
        '***4567'
    """
    if not contact:
        return ""
    trimmed = "".join(contact.split())
    return "***" + trimmed[-_VISIBLE_CONTACT_CHARS:]
