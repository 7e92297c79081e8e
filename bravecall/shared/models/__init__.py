"""Shared domain models for Brave Call."""
from .turn import (
    Severity,
    SuggestedAction,
    AgentType,
    ResponseShape,
    MessageRole,
    PARENT_FLAG_SEVERITIES,
    SafetyVerdict,
    RoutingDecision,
    ValidationResult,
    EscalationResult,
    ConversationMessage,
    ConversationContext,
    ChildProfile,
    ParentAlert,
)
from .activity import (
    MissionDifficulty,
    Mission,
    BookRecommendation,
    GrowthMoment,
    ParentReport,
)

__all__ = [
    "Severity",
    "SuggestedAction",
    "AgentType",
    "ResponseShape",
    "MessageRole",
    "PARENT_FLAG_SEVERITIES",
    "SafetyVerdict",
    "RoutingDecision",
    "ValidationResult",
    "EscalationResult",
    "ConversationMessage",
    "ConversationContext",
    "ChildProfile",
    "ParentAlert",
    "MissionDifficulty",
    "Mission",
    "BookRecommendation",
    "GrowthMoment",
    "ParentReport",
]
