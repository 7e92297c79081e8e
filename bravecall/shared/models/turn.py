"""Domain models for a single conversational turn.

Verdicts, decisions and results are created fresh per message and never
mutated; they are only logged or stored as facts. ParentAlert is the one
record with a mutable field (`reviewed`), flipped by the parent portal.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from bravecall.shared.utils import mask_contact


class Severity(Enum):
    """Severity reported by the safety model."""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Severities that always flag the turn for the parent
PARENT_FLAG_SEVERITIES = frozenset({Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL})


class SuggestedAction(Enum):
    """Action the safety model suggests for the message."""
    ALLOW = "allow"
    REDIRECT = "redirect"
    ALERT_PARENT = "alert_parent"
    CRISIS_PROTOCOL = "crisis_protocol"


class AgentType(Enum):
    """Specialist persona that answers a message."""
    CONVERSATIONAL = "conversational"
    EDUCATIONAL = "educational"
    EMOTIONAL = "emotional"
    CREATIVE = "creative"
    PROBLEM_SOLVING = "problem_solving"


class ResponseShape(Enum):
    """How the reply must be shaped for the assigned escalation tier."""
    NORMAL = "normal"
    LONGER_EMPATHY = "longer_empathy"
    ADD_GROWN_UP_SUGGESTION = "add_grown_up_suggestion"
    CALM_PLUS_ALERT = "calm_plus_alert"


class MessageRole(Enum):
    USER = "user"
    MODEL = "model"


@dataclass(frozen=True)
class SafetyVerdict:
    """Safety verdict for one child message.

    `flag_for_parent` is derived: it is forced to True whenever the
    severity is medium or above, whatever the upstream producer said.
    """
    safe: bool
    severity: Severity = Severity.NONE
    concerns: Tuple[str, ...] = ()
    suggested_action: SuggestedAction = SuggestedAction.ALLOW
    flag_for_parent: bool = False

    def __post_init__(self):
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "concerns", tuple(self.concerns))
        if self.severity in PARENT_FLAG_SEVERITIES:
            object.__setattr__(self, "flag_for_parent", True)

    @property
    def first_concern(self) -> Optional[str]:
        return self.concerns[0] if self.concerns else None

    def to_dict(self) -> dict:
        return {
            "safe": self.safe,
            "severity": self.severity.value,
            "concerns": list(self.concerns),
            "suggested_action": self.suggested_action.value,
            "flag_for_parent": self.flag_for_parent,
        }


@dataclass(frozen=True)
class RoutingDecision:
    """Which specialist answers the message, and how sure the router is."""
    agent: AgentType
    confidence: float
    reasoning: str

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")

    def to_dict(self) -> dict:
        return {
            "agent": self.agent.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Post-generation review of a drafted reply."""
    approved: bool
    issues: Tuple[str, ...] = ()
    suggested_edit: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "issues", tuple(self.issues))

    @property
    def has_edit(self) -> bool:
        return not self.approved and bool(self.suggested_edit)

    def to_dict(self) -> dict:
        return {
            "approved": self.approved,
            "issues": list(self.issues),
            "suggested_edit": self.suggested_edit,
        }


@dataclass(frozen=True)
class EscalationResult:
    """Escalation tier for one turn.

    `message_to_parent` is only set at tier 3 and never carries the
    child's own words.
    """
    tier: int
    response_shape: ResponseShape
    reason: Optional[str] = None
    message_to_parent: Optional[str] = None

    def __post_init__(self):
        if self.tier not in (0, 1, 2, 3):
            raise ValueError(f"Tier must be 0-3, got {self.tier}")

    def to_dict(self) -> dict:
        return {
            "tier": self.tier,
            "response_shape": self.response_shape.value,
            "reason": self.reason,
            "message_to_parent": self.message_to_parent,
        }


@dataclass(frozen=True)
class ConversationMessage:
    """One stored line of conversation."""
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_user(self) -> bool:
        return self.role == MessageRole.USER.value

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ConversationContext:
    """Per-turn context supplied by the caller. Read-only to the pipeline.

    `recent_messages` is chronological, most recent last.
    """
    child_name: str
    character_name: str = "Shelly"
    character_type: str = "Turtle"
    recent_messages: Tuple[ConversationMessage, ...] = ()
    child_age: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "recent_messages", tuple(self.recent_messages))


@dataclass(frozen=True)
class ChildProfile:
    """Child profile as stored by the parent portal."""
    child_id: str
    child_name: str
    child_age: Optional[int] = None
    character_name: str = "Shelly"
    character_type: str = "Turtle"
    parent_contact: Optional[str] = None

    def to_context(self, recent_messages: List[ConversationMessage]) -> ConversationContext:
        return ConversationContext(
            child_name=self.child_name,
            character_name=self.character_name,
            character_type=self.character_type,
            recent_messages=tuple(recent_messages),
            child_age=self.child_age,
        )

    def to_dict(self) -> dict:
        """Portal view; the raw parent contact is never echoed back."""
        return {
            "child_id": self.child_id,
            "child_name": self.child_name,
            "child_age": self.child_age,
            "character_name": self.character_name,
            "character_type": self.character_type,
            "parent_contact_masked": mask_contact(self.parent_contact) if self.parent_contact else None,
        }


@dataclass
class ParentAlert:
    """Record written after a tier-3 SMS actually went out.

    Holds only the masked parent contact. `reviewed` starts False and is
    flipped by the parent portal.
    """
    alert_id: str
    child_id: str
    tier: int
    severity: Severity
    action: SuggestedAction
    message: str
    child_message: str
    parent_contact_masked: str
    reviewed: bool = False
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "alert_id": self.alert_id,
            "child_id": self.child_id,
            "tier": self.tier,
            "severity": self.severity.value,
            "action": self.action.value,
            "message": self.message,
            "child_message": self.child_message,
            "parent_contact_masked": self.parent_contact_masked,
            "reviewed": self.reviewed,
            "timestamp": self.timestamp.isoformat(),
        }
