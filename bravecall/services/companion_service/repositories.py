"""PostgreSQL repositories for the companion service.

Tables:
    messages(id, child_id, role, content, created_at)
    child_profiles(id, child_name, child_age, character_name, character_type,
                   parent_contact, created_at)
    parent_alerts(id, child_id, tier, severity, action, message_sent,
                  child_message, parent_contact_masked, reviewed, created_at)
    parent_reports(id, child_id, summary, safety_status, suggestions,
                   book_recommendations, growth_moments, created_at)

The report list columns hold JSON text.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from bravecall.shared.database import BaseRepository, ConnectionManager, NotFoundError
from bravecall.shared.models import (
    BookRecommendation,
    ChildProfile,
    ConversationMessage,
    GrowthMoment,
    MessageRole,
    ParentAlert,
    ParentReport,
    Severity,
    SuggestedAction,
)
from bravecall.shared.utils import hash_pii

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredMessage:
    """A conversation line as stored, keyed to its child."""
    message_id: str
    child_id: str
    role: str
    content: str
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_message(self) -> ConversationMessage:
        return ConversationMessage(
            role=self.role,
            content=self.content,
            timestamp=self.created_at,
        )


class ConversationRepository(BaseRepository[StoredMessage]):
    """Conversation history per child."""

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "messages")

    def _row_to_entity(self, row: tuple) -> StoredMessage:
        """Columns: id, child_id, role, content, created_at."""
        return StoredMessage(
            message_id=row[0],
            child_id=row[1],
            role=row[2],
            content=row[3],
            created_at=row[4],
        )

    def _entity_to_params(self, entity: StoredMessage) -> Dict[str, Any]:
        return {
            "id": entity.message_id,
            "child_id": entity.child_id,
            "role": entity.role,
            "content": entity.content,
            "created_at": entity.created_at,
        }

    def append(self, child_id: str, role: str, content: str) -> ConversationMessage:
        stored = self.save(StoredMessage(
            message_id=str(uuid.uuid4()),
            child_id=child_id,
            role=role,
            content=content,
        ))
        return stored.to_message()

    def recent_messages(self, child_id: str, limit: int = 10) -> List[ConversationMessage]:
        """Last `limit` messages for a child, oldest first."""
        rows = self._fetch_many(
            f"SELECT * FROM {self.table_name} WHERE child_id = %s "
            "ORDER BY created_at DESC LIMIT %s",
            (child_id, limit),
        )
        return [stored.to_message() for stored in reversed(rows)]

    def user_messages_since(self, child_id: str, since: datetime) -> List[ConversationMessage]:
        """The child's own messages at or after `since`, oldest first."""
        rows = self._fetch_many(
            f"SELECT * FROM {self.table_name} "
            "WHERE child_id = %s AND role = %s AND created_at >= %s "
            "ORDER BY created_at ASC",
            (child_id, MessageRole.USER.value, since),
        )
        return [stored.to_message() for stored in rows]


class ChildProfileRepository(BaseRepository[ChildProfile]):
    """Child profiles, created and edited from the parent portal.

    `save` is an upsert keyed on the child id, so re-submitting the
    profile form edits the existing child.
    """

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "child_profiles")

    def _row_to_entity(self, row: tuple) -> ChildProfile:
        """Columns: id, child_name, child_age, character_name, character_type,
        parent_contact, created_at."""
        return ChildProfile(
            child_id=row[0],
            child_name=row[1],
            child_age=row[2],
            character_name=row[3] or "Shelly",
            character_type=row[4] or "Turtle",
            parent_contact=row[5],
        )

    def _entity_to_params(self, entity: ChildProfile) -> Dict[str, Any]:
        return {
            "id": entity.child_id,
            "child_name": entity.child_name,
            "child_age": entity.child_age,
            "character_name": entity.character_name,
            "character_type": entity.character_type,
            "parent_contact": entity.parent_contact,
        }

    def save(self, entity: ChildProfile) -> ChildProfile:
        stored = super().save(entity)
        logger.info(
            "CHILD_PROFILE_SAVED",
            extra={
                "child_id_hash": hash_pii(entity.child_id),
                "has_parent_contact": bool(entity.parent_contact),
            }
        )
        return stored


class ParentAlertRepository(BaseRepository[ParentAlert]):
    """Alerts written after a tier-3 SMS went out."""

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "parent_alerts")

    def _row_to_entity(self, row: tuple) -> ParentAlert:
        """Columns: id, child_id, tier, severity, action, message_sent,
        child_message, parent_contact_masked, reviewed, created_at."""
        return ParentAlert(
            alert_id=row[0],
            child_id=row[1],
            tier=row[2],
            severity=Severity(row[3]),
            action=SuggestedAction(row[4]),
            message=row[5],
            child_message=row[6],
            parent_contact_masked=row[7],
            reviewed=row[8],
            timestamp=row[9],
        )

    def _entity_to_params(self, entity: ParentAlert) -> Dict[str, Any]:
        return {
            "id": entity.alert_id,
            "child_id": entity.child_id,
            "tier": entity.tier,
            "severity": entity.severity.value,
            "action": entity.action.value,
            "message_sent": entity.message,
            "child_message": entity.child_message,
            "parent_contact_masked": entity.parent_contact_masked,
            "reviewed": entity.reviewed,
            "created_at": entity.timestamp,
        }

    def save(self, entity: ParentAlert) -> ParentAlert:
        stored = super().save(entity)
        logger.info(
            "PARENT_ALERT_STORED",
            extra={
                "alert_id": entity.alert_id,
                "child_id_hash": hash_pii(entity.child_id),
                "tier": entity.tier,
            }
        )
        return stored

    def find_unreviewed(self, child_id: str, limit: int = 50) -> List[ParentAlert]:
        """Alerts the parent has not yet looked at, newest first."""
        return self._fetch_many(
            f"SELECT * FROM {self.table_name} WHERE child_id = %s AND reviewed = false "
            "ORDER BY created_at DESC LIMIT %s",
            (child_id, limit),
        )

    def mark_reviewed(self, alert_id: str) -> ParentAlert:
        """Flag an alert as reviewed by the parent.

        Raises:
            NotFoundError: If no alert has this id
        """
        alert = self._write_returning(
            f"UPDATE {self.table_name} SET reviewed = true WHERE id = %s RETURNING *",
            (alert_id,),
        )
        if alert is None:
            raise NotFoundError(f"Parent alert {alert_id} not found")

        logger.info("PARENT_ALERT_REVIEWED", extra={"alert_id": alert_id})
        return alert


class ParentReportRepository(BaseRepository[ParentReport]):
    """Generated parent reports; the newest one per child is served."""

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "parent_reports")

    def _row_to_entity(self, row: tuple) -> ParentReport:
        """Columns: id, child_id, summary, safety_status, suggestions,
        book_recommendations, growth_moments, created_at."""
        return ParentReport(
            report_id=row[0],
            child_id=row[1],
            summary=row[2],
            safety_status=row[3],
            suggestions=json.loads(row[4] or "[]"),
            book_recommendations=[
                BookRecommendation(**book) for book in json.loads(row[5] or "[]")
            ],
            growth_moments=[
                GrowthMoment(**moment) for moment in json.loads(row[6] or "[]")
            ],
            created_at=row[7],
        )

    def _entity_to_params(self, entity: ParentReport) -> Dict[str, Any]:
        return {
            "id": entity.report_id,
            "child_id": entity.child_id,
            "summary": entity.summary,
            "safety_status": entity.safety_status,
            "suggestions": json.dumps(list(entity.suggestions)),
            "book_recommendations": json.dumps(
                [book.to_dict() for book in entity.book_recommendations]
            ),
            "growth_moments": json.dumps(
                [moment.to_dict() for moment in entity.growth_moments]
            ),
            "created_at": entity.created_at,
        }

    def latest_for_child(self, child_id: str) -> Optional[ParentReport]:
        return self._fetch_one(
            f"SELECT * FROM {self.table_name} WHERE child_id = %s "
            "ORDER BY created_at DESC LIMIT 1",
            (child_id,),
        )
