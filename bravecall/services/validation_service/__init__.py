"""Validation Service: post-generation review of the drafted reply.

Fails open, unlike the Safety Service: it runs after the turn has
already been cleared, and must never leave the child without a reply.
"""

from .validator import ResponseValidator, VALIDATION_ERROR_ISSUE

__all__ = ["ResponseValidator", "VALIDATION_ERROR_ISSUE"]
