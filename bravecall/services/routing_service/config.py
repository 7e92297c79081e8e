"""Routing rules and thresholds."""
from typing import FrozenSet, Tuple

from bravecall.shared.models import AgentType

# Confidence given to any keyword-rule match
QUICK_ROUTE_CONFIDENCE = 0.8

# Below this, a quick-route match is not trusted and the model is asked
QUICK_ROUTE_TRUST_THRESHOLD = 0.7

# Below this, the model's own answer is not trusted either
MODEL_ROUTE_MIN_CONFIDENCE = 0.5

DEFAULT_CONFIDENCE = 0.5
UNCERTAIN_REASONING = "Default routing due to uncertainty"
ERROR_REASONING = "Error during routing, using fallback"

# Evaluated in order; first match wins
ROUTING_RULES: Tuple[Tuple[AgentType, FrozenSet[str], str], ...] = (
    (
        AgentType.EDUCATIONAL,
        frozenset({"homework", "math", "reading", "science", "study", "learn", "teach", "explain"}),
        "Educational keywords detected",
    ),
    (
        AgentType.EMOTIONAL,
        frozenset({"sad", "scared", "afraid", "worried", "angry", "lonely", "cry", "upset"}),
        "Emotional keywords detected",
    ),
    (
        AgentType.CREATIVE,
        frozenset({"story", "game", "play", "pretend", "imagine", "draw", "create"}),
        "Creative keywords detected",
    ),
    (
        AgentType.PROBLEM_SOLVING,
        frozenset({"problem", "conflict", "fight", "argue", "disagree", "help me decide"}),
        "Problem-solving keywords detected",
    ),
)
