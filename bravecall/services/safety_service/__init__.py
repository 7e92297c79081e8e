"""Safety Service: first stage of every turn.

A cheap keyword pre-filter decides whether the safety model is consulted
at all. The model verdict fails open on unreadable replies and fails
closed (block + flag parent) when the call itself errors.

Components:
- checker.py: SafetyChecker (quick_check, check_safety, get_redirection_message)
- config.py: Pre-filter keywords and redirection lines

Usage:
    from bravecall.services.safety_service import SafetyChecker
    checker = SafetyChecker(llm)
    if checker.quick_check(message):
        verdict = await checker.check_safety(message)
"""

from .checker import (
    SafetyChecker,
    VerdictShapeError,
    permissive_verdict,
    system_error_verdict,
    verdict_from_payload,
)
from .config import SafetyConfig, HARMFUL_KEYWORDS, REDIRECTION_MESSAGES, SYSTEM_ERROR_CONCERN

__all__ = [
    "SafetyChecker",
    "VerdictShapeError",
    "permissive_verdict",
    "system_error_verdict",
    "verdict_from_payload",
    "SafetyConfig",
    "HARMFUL_KEYWORDS",
    "REDIRECTION_MESSAGES",
    "SYSTEM_ERROR_CONCERN",
]
