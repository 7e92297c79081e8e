"""Shared utilities for Brave Call."""
from .pii import hash_pii, hash_text_for_audit, configure_pii_salt, mask_contact
from .json_reply import parse_json_array_reply, parse_json_reply

__all__ = [
    "hash_pii",
    "hash_text_for_audit",
    "configure_pii_salt",
    "mask_contact",
    "parse_json_reply",
    "parse_json_array_reply",
]
