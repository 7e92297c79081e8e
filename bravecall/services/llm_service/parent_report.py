"""Parent report writer.

Summarises a child's recent conversations for the parent portal: what the
child is into or feeling, suggestions for the parent, a safety read,
book ideas and growth moments. Unlike the turn pipeline there is no
child waiting on this, so a failed or unreadable report is reported as
None and the caller decides what to show.
"""
import logging
import uuid
from typing import Any, List, Optional, Sequence

from bravecall.shared.models import (
    BookRecommendation,
    ConversationMessage,
    GrowthMoment,
    ParentReport,
)
from bravecall.shared.utils import hash_pii, parse_json_reply
from .agent_profiles import PARENT_REPORT_PROFILE, format_transcript
from .base_llm import BaseLLM, ChatMessage

logger = logging.getLogger(__name__)

# Messages handed to the model per report
REPORT_MESSAGE_LIMIT = 50
DEFAULT_SAFETY_STATUS = "No safety assessment available"


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _books(value: Any) -> List[BookRecommendation]:
    if not isinstance(value, list):
        return []
    return [
        BookRecommendation(
            title=str(item.get("title", "")),
            author=str(item.get("author", "")),
            reason=str(item.get("reason", "")),
        )
        for item in value
        if isinstance(item, dict) and item.get("title")
    ]


def _moments(value: Any) -> List[GrowthMoment]:
    if not isinstance(value, list):
        return []
    return [
        GrowthMoment(
            moment=str(item.get("moment", "")),
            description=str(item.get("description", "")),
        )
        for item in value
        if isinstance(item, dict) and item.get("moment")
    ]


def report_from_payload(child_id: str, payload: dict) -> Optional[ParentReport]:
    """Build a report from the model's JSON; None without a summary."""
    summary = payload.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        return None

    safety_status = payload.get("safety_status")
    if not isinstance(safety_status, str) or not safety_status.strip():
        safety_status = DEFAULT_SAFETY_STATUS

    return ParentReport(
        report_id=str(uuid.uuid4()),
        child_id=child_id,
        summary=summary.strip(),
        safety_status=safety_status.strip(),
        suggestions=_strings(payload.get("suggestions")),
        book_recommendations=_books(payload.get("book_recommendations")),
        growth_moments=_moments(payload.get("growth_moments")),
    )


class ParentReportWriter:
    """Asks the model for a parent report over recent messages."""

    def __init__(self, llm: BaseLLM):
        self.llm = llm

    async def write_report(
        self,
        child_id: str,
        messages: Sequence[ConversationMessage],
    ) -> Optional[ParentReport]:
        """Write a report from the child's most recent messages.

        Args:
            child_id: Child the report is about (hashed before logging)
            messages: Conversation, oldest first; only the last 50 are used

        Returns:
            ParentReport, or None when there is nothing to report on, the
            call fails, or the reply has no usable summary
        """
        child_id_hash = hash_pii(child_id)
        if not messages:
            logger.info("PARENT_REPORT_SKIPPED", extra={"child_id_hash": child_id_hash, "reason": "no_messages"})
            return None

        transcript = format_transcript(list(messages)[-REPORT_MESSAGE_LIMIT:])

        try:
            response = await self.llm.generate(
                messages=[ChatMessage(role="user", content=f"Chat logs:\n{transcript}")],
                system_prompt=PARENT_REPORT_PROFILE.system_message,
                json_mode=True,
                temperature=PARENT_REPORT_PROFILE.temperature,
                max_tokens=PARENT_REPORT_PROFILE.max_tokens,
            )
        except Exception as e:
            logger.error(
                "PARENT_REPORT_GENERATION_FAILED",
                extra={
                    "child_id_hash": child_id_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return None

        payload = parse_json_reply(response.text)
        report = report_from_payload(child_id, payload) if payload else None
        if report is None:
            logger.warning("PARENT_REPORT_UNPARSEABLE", extra={"child_id_hash": child_id_hash})
            return None

        logger.info(
            "PARENT_REPORT_WRITTEN",
            extra={
                "child_id_hash": child_id_hash,
                "report_id": report.report_id,
                "messages_used": min(len(messages), REPORT_MESSAGE_LIMIT),
            }
        )
        return report
