"""Escalation tiers: distress vocabulary, thresholds and parent message."""
import re
from typing import FrozenSet, Tuple

from bravecall.shared.models import Severity, SuggestedAction

# Root words; every occurrence counts, including common inflections
# ("hated", "hurting", "sadness") but not longer words ("badger", "madcap")
DISTRESS_WORDS: Tuple[str, ...] = (
    "sad",
    "scared",
    "worried",
    "worry",
    "worries",
    "upset",
    "afraid",
    "mad",
    "angry",
    "hurt",
    "unhappy",
    "frustrated",
    "lonely",
    "anxious",
    "nervous",
    "stressed",
    "hate",
    "hating",
    "don't like",
    "dont like",
    "bad",
    "terrible",
    "awful",
)

DISTRESS_SUFFIXES: Tuple[str, ...] = ("s", "es", "d", "ed", "ing", "ting", "ness", "ly")

DISTRESS_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(word) for word in DISTRESS_WORDS) + r")"
    r"(?:" + "|".join(DISTRESS_SUFFIXES) + r")?\b",
    re.IGNORECASE,
)

# Tier 1: distress words across the current message and recent user messages
REPEATED_DISTRESS_THRESHOLD = 2
RECENT_USER_MESSAGES_FOR_DISTRESS = 5

# Tier 2 helper: distinct distress days within the trailing window
PATTERN_WINDOW_DAYS = 7
PATTERN_MIN_DAYS = 2

# Tier 3 triggers
SEVERE_ACTIONS: FrozenSet[SuggestedAction] = frozenset({
    SuggestedAction.ALERT_PARENT,
    SuggestedAction.CRISIS_PROTOCOL,
})
SEVERE_SEVERITIES: FrozenSet[Severity] = frozenset({Severity.HIGH, Severity.CRITICAL})
FLAGGED_SEVERITIES: FrozenSet[Severity] = frozenset({
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
})

# Never includes the child's own words
PARENT_MESSAGE_TEMPLATE = "Brave Call: {child_name} may need your support. Please check in when you can."
DEFAULT_CHILD_NAME = "Your child"

TIER3_DEFAULT_REASON = "Safety concern"
TIER2_REASON = "Distress pattern over multiple days"
TIER1_REASON = "Repeated distress words"

# Long SMS limit; longer bodies are truncated before sending
MAX_SMS_LENGTH = 1600
