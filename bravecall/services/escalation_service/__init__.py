"""Escalation Service: tiers a turn and notifies the parent on tier 3.

Components:
- evaluator.py: evaluate_escalation, a pure ladder from tier 3 down to 0
- distress_pattern.py: Multi-day distress signal fed to the evaluator
- notifier.py: NotificationDispatcher (contact validation + SMS send)
- sms_transport.py: SmsTransport interface and the SNS implementation
- config.py: Distress words, thresholds, parent message template

Usage:
    from bravecall.services.escalation_service import evaluate_escalation
    result = evaluate_escalation(message, history, verdict, context)
"""

from .evaluator import (
    evaluate_escalation,
    count_distress_words,
    build_parent_message,
    recent_user_texts,
)
from .distress_pattern import (
    is_distress_message,
    distress_days,
    has_distress_pattern_over_days,
    window_start,
)
from .notifier import (
    NotificationDispatcher,
    NotifyResult,
    looks_like_e164,
    NO_PARENT_CONTACT,
    PARENT_CONTACT_NOT_PHONE,
)
from .sms_transport import (
    SmsConfig,
    SmsSendResult,
    SmsTransport,
    SnsSmsTransport,
    SMS_NOT_CONFIGURED,
)
from .config import DISTRESS_WORDS, MAX_SMS_LENGTH, PATTERN_WINDOW_DAYS

__all__ = [
    "evaluate_escalation",
    "count_distress_words",
    "build_parent_message",
    "recent_user_texts",
    "is_distress_message",
    "distress_days",
    "has_distress_pattern_over_days",
    "window_start",
    "NotificationDispatcher",
    "NotifyResult",
    "looks_like_e164",
    "NO_PARENT_CONTACT",
    "PARENT_CONTACT_NOT_PHONE",
    "SmsConfig",
    "SmsSendResult",
    "SmsTransport",
    "SnsSmsTransport",
    "SMS_NOT_CONFIGURED",
    "DISTRESS_WORDS",
    "MAX_SMS_LENGTH",
    "PATTERN_WINDOW_DAYS",
]
