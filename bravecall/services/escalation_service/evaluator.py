"""Escalation evaluator - assigns tier 0-3 to a turn.

Pure function of its inputs: no I/O, no randomness, no stored state.
Rules are checked top to bottom and the first match wins; lower tiers are
never reported alongside a higher one.

    Tier 3  severe safety verdict            -> calm_plus_alert (+ parent SMS text)
    Tier 2  distress on >=2 days this week   -> add_grown_up_suggestion
    Tier 1  >=2 distress words this session  -> longer_empathy
    Tier 0  otherwise                        -> normal

The multi-day signal is computed by the caller (see distress_pattern.py)
and arrives here as a boolean.
"""
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from bravecall.shared.models import (
    ConversationContext,
    ConversationMessage,
    EscalationResult,
    ResponseShape,
    SafetyVerdict,
)
from .config import (
    DEFAULT_CHILD_NAME,
    DISTRESS_PATTERN,
    FLAGGED_SEVERITIES,
    PARENT_MESSAGE_TEMPLATE,
    RECENT_USER_MESSAGES_FOR_DISTRESS,
    REPEATED_DISTRESS_THRESHOLD,
    SEVERE_ACTIONS,
    SEVERE_SEVERITIES,
    TIER1_REASON,
    TIER2_REASON,
    TIER3_DEFAULT_REASON,
)


class EscalationInput(NamedTuple):
    """Everything one evaluation looks at."""
    user_message: str
    recent_messages: Sequence[ConversationMessage]
    safety_verdict: Optional[SafetyVerdict]
    context: Optional[ConversationContext]
    pattern_over_days: bool


def count_distress_words(text: str) -> int:
    """Count distress-word occurrences; repeats are counted each time."""
    if not text:
        return 0
    normalized = text.replace("’", "'")
    return len(DISTRESS_PATTERN.findall(normalized))


def recent_user_texts(
    messages: Sequence[ConversationMessage],
    limit: int = RECENT_USER_MESSAGES_FOR_DISTRESS,
) -> List[str]:
    """Content of the last `limit` user messages, chronological."""
    user_texts = [m.content for m in messages if m.is_user]
    return user_texts[-limit:] if limit > 0 else []


def session_distress_count(
    user_message: str,
    recent_messages: Sequence[ConversationMessage],
) -> int:
    combined = " ".join([user_message or ""] + recent_user_texts(recent_messages))
    return count_distress_words(combined)


def build_parent_message(child_name: Optional[str], concern: Optional[str]) -> str:
    """Tier-3 SMS body; the first concern is appended in parentheses."""
    base = PARENT_MESSAGE_TEMPLATE.format(child_name=child_name or DEFAULT_CHILD_NAME)
    if concern and concern.strip():
        return f"{base} ({concern.strip()})"
    return base


def _is_severe(verdict: Optional[SafetyVerdict]) -> bool:
    if verdict is None:
        return False
    if verdict.suggested_action in SEVERE_ACTIONS:
        return True
    if verdict.severity in SEVERE_SEVERITIES:
        return True
    return verdict.flag_for_parent and verdict.severity in FLAGGED_SEVERITIES


def _tier3(inputs: EscalationInput) -> EscalationResult:
    concern = inputs.safety_verdict.first_concern if inputs.safety_verdict else None
    child_name = inputs.context.child_name if inputs.context else None
    return EscalationResult(
        tier=3,
        response_shape=ResponseShape.CALM_PLUS_ALERT,
        reason=concern or TIER3_DEFAULT_REASON,
        message_to_parent=build_parent_message(child_name, concern),
    )


def _tier2(inputs: EscalationInput) -> EscalationResult:
    return EscalationResult(
        tier=2,
        response_shape=ResponseShape.ADD_GROWN_UP_SUGGESTION,
        reason=TIER2_REASON,
    )


def _tier1(inputs: EscalationInput) -> EscalationResult:
    return EscalationResult(
        tier=1,
        response_shape=ResponseShape.LONGER_EMPATHY,
        reason=TIER1_REASON,
    )


# Highest tier first
ESCALATION_LADDER: Sequence[
    Tuple[Callable[[EscalationInput], bool], Callable[[EscalationInput], EscalationResult]]
] = (
    (lambda i: _is_severe(i.safety_verdict), _tier3),
    (lambda i: i.pattern_over_days is True, _tier2),
    (
        lambda i: session_distress_count(i.user_message, i.recent_messages)
        >= REPEATED_DISTRESS_THRESHOLD,
        _tier1,
    ),
)

NORMAL = EscalationResult(tier=0, response_shape=ResponseShape.NORMAL)


def evaluate_escalation(
    user_message: str,
    recent_messages: Sequence[ConversationMessage] = (),
    safety_verdict: Optional[SafetyVerdict] = None,
    context: Optional[ConversationContext] = None,
    pattern_over_days: bool = False,
) -> EscalationResult:
    """Assign the escalation tier for one turn.

    Args:
        user_message: The child's current message
        recent_messages: Conversation history, chronological
        safety_verdict: Verdict for this message; None means no concerns
        context: Supplies the child's name for the parent message
        pattern_over_days: Caller-computed multi-day distress signal

    Returns:
        EscalationResult for the highest matching tier
    """
    inputs = EscalationInput(
        user_message=user_message or "",
        recent_messages=recent_messages or (),
        safety_verdict=safety_verdict,
        context=context,
        pattern_over_days=pattern_over_days,
    )

    for guard, build in ESCALATION_LADDER:
        if guard(inputs):
            return build(inputs)
    return NORMAL
