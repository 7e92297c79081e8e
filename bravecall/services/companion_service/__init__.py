"""Companion Service: runs a child's turn through the whole pipeline.

Components:
- orchestrator.py: CompanionOrchestrator (safety -> routing -> reply ->
  validation -> escalation -> background parent SMS)
- config.py: FeatureFlags, reply trailers, CompanionConfig
- repositories.py: Conversation, child profile, parent alert and parent
  report storage
- http_api.py: FastAPI app (create_app, run_server)

Usage:
    from bravecall.services.companion_service import CompanionOrchestrator
    result = await orchestrator.process_turn(child_id, message, context)
"""

from .config import CompanionConfig, FeatureFlags, RESPONSE_TRAILERS
from .orchestrator import CompanionOrchestrator, TurnResult, apply_trailer
from .repositories import (
    ChildProfileRepository,
    ConversationRepository,
    ParentAlertRepository,
    ParentReportRepository,
    StoredMessage,
)

__all__ = [
    "CompanionConfig",
    "FeatureFlags",
    "RESPONSE_TRAILERS",
    "CompanionOrchestrator",
    "TurnResult",
    "apply_trailer",
    "ChildProfileRepository",
    "ConversationRepository",
    "ParentAlertRepository",
    "ParentReportRepository",
    "StoredMessage",
]
