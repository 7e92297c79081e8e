"""Companion orchestrator - runs one conversational turn end to end.

Stages run strictly in order, each feeding the next:

    safety -> routing -> specialist reply -> validation -> escalation
           -> (tier 3 only) parent notification in the background

No stage aborts the turn: every failure has already been converted to a
default by the stage itself, so the child always gets a reply. An unsafe
verdict skips routing, generation and validation and answers with a
redirection line, but the turn is still escalated.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol, Set

from bravecall.shared.models import (
    AgentType,
    ConversationContext,
    EscalationResult,
    ParentAlert,
    RoutingDecision,
    SafetyVerdict,
    Severity,
    SuggestedAction,
    ValidationResult,
)
from bravecall.shared.utils import hash_pii, hash_text_for_audit, mask_contact
from bravecall.services.escalation_service import (
    NotificationDispatcher,
    NotifyResult,
    evaluate_escalation,
)
from bravecall.services.llm_service import SpecialistResponder
from bravecall.services.routing_service import Router
from bravecall.services.safety_service import SafetyChecker
from bravecall.services.validation_service import ResponseValidator
from .config import RESPONSE_TRAILERS, FeatureFlags

logger = logging.getLogger(__name__)

ROUTING_DISABLED_REASONING = "Routing disabled"


class AlertStore(Protocol):
    """Anything that can persist a parent alert."""

    def save(self, alert: ParentAlert) -> ParentAlert:
        ...


@dataclass
class TurnResult:
    """Outcome of one turn, returned to the HTTP layer."""
    response_text: str
    safe: bool
    agent: Optional[AgentType]
    blocked: bool
    edited: bool
    safety_verdict: Optional[SafetyVerdict]
    routing: Optional[RoutingDecision]
    validation: Optional[ValidationResult]
    escalation: EscalationResult
    execution_time_ms: float
    notification_task: Optional["asyncio.Task[NotifyResult]"] = None

    def to_dict(self) -> dict:
        return {
            "response": self.response_text,
            "safe": self.safe,
            "agent": self.agent.value if self.agent else None,
            "tier": self.escalation.tier,
            "blocked": self.blocked,
            "edited": self.edited,
        }


def apply_trailer(reply: str, escalation: EscalationResult) -> str:
    """Append the trailer for the escalation's response shape."""
    trailer = RESPONSE_TRAILERS.get(escalation.response_shape, "")
    if not trailer:
        return reply
    return f"{reply} {trailer}" if reply else trailer


class CompanionOrchestrator:
    """Sequences the turn pipeline and packages a single result."""

    def __init__(
        self,
        safety_checker: SafetyChecker,
        router: Router,
        responder: SpecialistResponder,
        validator: ResponseValidator,
        dispatcher: Optional[NotificationDispatcher] = None,
        alert_store: Optional[AlertStore] = None,
        flags: Optional[FeatureFlags] = None,
    ):
        """Initialize orchestrator.

        Args:
            safety_checker: First stage; keyword gate plus safety model
            router: Picks the specialist agent
            responder: Drafts the specialist reply
            validator: Reviews the drafted reply
            dispatcher: Sends tier-3 parent SMS (None disables sending)
            alert_store: Persists alerts after a successful send
            flags: Default feature flags for every turn
        """
        self.safety_checker = safety_checker
        self.router = router
        self.responder = responder
        self.validator = validator
        self.dispatcher = dispatcher
        self.alert_store = alert_store
        self.flags = flags or FeatureFlags()
        self._background_tasks: Set[asyncio.Task] = set()

        logger.info(
            "ORCHESTRATOR_INITIALIZED",
            extra={
                "sms_dispatcher": dispatcher is not None,
                "alert_store": alert_store is not None,
                "enable_sms_escalation": self.flags.enable_sms_escalation,
            }
        )

    async def _check_safety(
        self,
        message: str,
        flags: FeatureFlags,
    ) -> Optional[SafetyVerdict]:
        if not flags.enable_safety_check:
            return None
        # Full model check only behind the keyword gate
        if not self.safety_checker.quick_check(message):
            return None
        return await self.safety_checker.check_safety(message)

    async def _route(
        self,
        message: str,
        context: ConversationContext,
        flags: FeatureFlags,
    ) -> RoutingDecision:
        if not flags.enable_routing:
            return RoutingDecision(
                agent=AgentType.CONVERSATIONAL,
                confidence=1.0,
                reasoning=ROUTING_DISABLED_REASONING,
            )

        decision = self.router.quick_route(message)
        if self.router.needs_model_route(decision):
            decision = await self.router.route(message, context)
        return decision

    async def process_turn(
        self,
        child_id: str,
        user_message: str,
        context: ConversationContext,
        parent_contact: Optional[str] = None,
        pattern_over_days: bool = False,
        flags: Optional[FeatureFlags] = None,
    ) -> TurnResult:
        """Run one turn.

        Args:
            child_id: Child identifier (hashed before logging)
            user_message: The child's message
            context: Character, child and recent history
            parent_contact: Parent phone number for tier-3 SMS
            pattern_over_days: Multi-day distress signal from storage
            flags: Per-turn flags; defaults to the orchestrator's

        Returns:
            TurnResult; `notification_task` is set when a parent SMS was
            dispatched in the background
        """
        flags = flags or self.flags
        start_time = time.perf_counter()
        child_id_hash = hash_pii(child_id)

        verdict = await self._check_safety(user_message, flags)
        blocked = verdict is not None and not verdict.safe

        routing: Optional[RoutingDecision] = None
        validation: Optional[ValidationResult] = None
        edited = False

        if blocked:
            reply = self.safety_checker.get_redirection_message(verdict.concerns)
            logger.warning(
                "TURN_BLOCKED",
                extra={
                    "child_id_hash": child_id_hash,
                    "severity": verdict.severity.value,
                    "suggested_action": verdict.suggested_action.value,
                }
            )
        else:
            routing = await self._route(user_message, context, flags)
            draft = await self.responder.respond(routing.agent, user_message, context)
            reply = draft.content

            if flags.enable_response_validation:
                validation = await self.validator.validate(reply)
                if validation.has_edit:
                    reply = validation.suggested_edit
                    edited = True
                    logger.warning(
                        "RESPONSE_EDITED",
                        extra={
                            "child_id_hash": child_id_hash,
                            "issues": list(validation.issues),
                            "original_hash": hash_text_for_audit(draft.content),
                        }
                    )

        escalation = evaluate_escalation(
            user_message=user_message,
            recent_messages=context.recent_messages,
            safety_verdict=verdict,
            context=context,
            pattern_over_days=pattern_over_days,
        )
        reply = apply_trailer(reply, escalation)

        notification_task = None
        if escalation.tier == 3:
            logger.critical(
                "ESCALATION_TIER_ASSIGNED",
                extra={
                    "child_id_hash": child_id_hash,
                    "tier": escalation.tier,
                    "reason": escalation.reason,
                }
            )
            notification_task = self._dispatch_parent_notification(
                child_id, user_message, parent_contact, verdict, escalation, flags
            )
        elif escalation.tier > 0:
            logger.info(
                "ESCALATION_TIER_ASSIGNED",
                extra={"child_id_hash": child_id_hash, "tier": escalation.tier}
            )

        execution_time_ms = (time.perf_counter() - start_time) * 1000

        if flags.log_agent_decisions:
            logger.info(
                "AGENT_DECISIONS",
                extra={
                    "child_id_hash": child_id_hash,
                    "message_hash": hash_text_for_audit(user_message),
                    "safety": verdict.to_dict() if verdict else None,
                    "routing": routing.to_dict() if routing else None,
                    "validation": validation.to_dict() if validation else None,
                    "escalation": escalation.to_dict(),
                    "execution_time_ms": execution_time_ms,
                }
            )

        return TurnResult(
            response_text=reply,
            safe=verdict.safe if verdict else True,
            agent=routing.agent if routing else None,
            blocked=blocked,
            edited=edited,
            safety_verdict=verdict,
            routing=routing,
            validation=validation,
            escalation=escalation,
            execution_time_ms=execution_time_ms,
            notification_task=notification_task,
        )

    def _dispatch_parent_notification(
        self,
        child_id: str,
        user_message: str,
        parent_contact: Optional[str],
        verdict: Optional[SafetyVerdict],
        escalation: EscalationResult,
        flags: FeatureFlags,
    ) -> Optional["asyncio.Task[NotifyResult]"]:
        """Start the parent SMS without holding up the reply."""
        if not flags.enable_sms_escalation or self.dispatcher is None or not parent_contact:
            logger.warning(
                "PARENT_NOTIFY_NOT_ATTEMPTED",
                extra={
                    "child_id_hash": hash_pii(child_id),
                    "sms_enabled": flags.enable_sms_escalation,
                    "dispatcher": self.dispatcher is not None,
                    "has_contact": bool(parent_contact),
                }
            )
            return None

        task = asyncio.create_task(
            self._notify_and_record(child_id, user_message, parent_contact, verdict, escalation)
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _notify_and_record(
        self,
        child_id: str,
        user_message: str,
        parent_contact: str,
        verdict: Optional[SafetyVerdict],
        escalation: EscalationResult,
    ) -> NotifyResult:
        result = await self.dispatcher.notify_parent(
            parent_contact, escalation.message_to_parent or ""
        )

        if not result.sent:
            logger.critical(
                "PARENT_NOTIFY_FAILED",
                extra={
                    "child_id_hash": hash_pii(child_id),
                    "error": result.error,
                    "contact_masked": mask_contact(parent_contact),
                }
            )
            return result

        if self.alert_store is None:
            return result

        alert = ParentAlert(
            alert_id=str(uuid.uuid4()),
            child_id=child_id,
            tier=escalation.tier,
            severity=verdict.severity if verdict else Severity.NONE,
            action=verdict.suggested_action if verdict else SuggestedAction.ALLOW,
            message=escalation.message_to_parent or "",
            child_message=user_message,
            parent_contact_masked=mask_contact(parent_contact),
        )
        try:
            # Repositories block on the database driver
            await asyncio.to_thread(self.alert_store.save, alert)
        except Exception as e:
            logger.error(
                "PARENT_ALERT_STORE_FAILED",
                extra={
                    "child_id_hash": hash_pii(child_id),
                    "alert_id": alert.alert_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
        return result

    async def drain(self) -> None:
        """Wait for in-flight parent notifications (used at shutdown)."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
