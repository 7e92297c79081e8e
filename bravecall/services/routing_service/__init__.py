"""Routing Service: chooses the specialist agent for a message.

Two thresholds, intentionally different:
- 0.7 decides whether a keyword-rule match is trusted without the model
- 0.5 decides whether the routing model's own answer is trusted
"""

from .router import Router, default_decision
from .config import (
    ROUTING_RULES,
    QUICK_ROUTE_CONFIDENCE,
    QUICK_ROUTE_TRUST_THRESHOLD,
    MODEL_ROUTE_MIN_CONFIDENCE,
    UNCERTAIN_REASONING,
    ERROR_REASONING,
)

__all__ = [
    "Router",
    "default_decision",
    "ROUTING_RULES",
    "QUICK_ROUTE_CONFIDENCE",
    "QUICK_ROUTE_TRUST_THRESHOLD",
    "MODEL_ROUTE_MIN_CONFIDENCE",
    "UNCERTAIN_REASONING",
    "ERROR_REASONING",
]
