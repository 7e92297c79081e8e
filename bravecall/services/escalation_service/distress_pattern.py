"""Multi-day distress pattern.

Computes the boolean the evaluator receives as `pattern_over_days`: distress
messages on at least two distinct calendar days (UTC) within the last week.
Callers fetch the timestamped user messages; everything here is pure.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Set

from bravecall.shared.models import ConversationMessage
from .config import PATTERN_MIN_DAYS, PATTERN_WINDOW_DAYS
from .evaluator import count_distress_words


def is_distress_message(text: str) -> bool:
    """True if the text contains at least one distress word."""
    return count_distress_words(text) > 0


def _utc_date(moment: datetime) -> date:
    # Naive timestamps are stored as UTC
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def window_start(now: datetime, window_days: int = PATTERN_WINDOW_DAYS) -> date:
    """First calendar date of a window of `window_days` dates ending today."""
    return _utc_date(now) - timedelta(days=max(window_days, 1) - 1)


def distress_days(
    messages: Iterable[ConversationMessage],
    now: datetime,
    window_days: int = PATTERN_WINDOW_DAYS,
) -> Set[date]:
    """Distinct dates in the window that carry a distress-themed user message.

    Args:
        messages: Timestamped conversation messages, any order
        now: Reference time; today is the last date of the window
        window_days: Number of calendar dates in the window, today included

    Returns:
        Set of UTC dates
    """
    today = _utc_date(now)
    first = window_start(now, window_days)

    days = set()
    for message in messages:
        if not message.is_user:
            continue
        day = _utc_date(message.timestamp)
        if first <= day <= today and is_distress_message(message.content):
            days.add(day)
    return days


def has_distress_pattern_over_days(
    messages: Iterable[ConversationMessage],
    now: datetime,
    window_days: int = PATTERN_WINDOW_DAYS,
    min_days: int = PATTERN_MIN_DAYS,
) -> bool:
    return len(distress_days(messages, now, window_days)) >= min_days
