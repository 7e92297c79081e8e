"""Tests for CompanionOrchestrator.

Stage services are mocked except in TestEndToEnd, which runs the real
checker, router, responder and validator against a scripted model.
"""
import random

import pytest
from unittest.mock import AsyncMock, MagicMock

from bravecall.shared.models import (
    AgentType,
    ConversationContext,
    ConversationMessage,
    ParentAlert,
    ResponseShape,
    RoutingDecision,
    SafetyVerdict,
    Severity,
    SuggestedAction,
    ValidationResult,
)
from bravecall.shared.utils import configure_pii_salt
from bravecall.services.escalation_service import NotificationDispatcher, NotifyResult, SmsSendResult
from bravecall.services.llm_service import (
    LLMResponse,
    ROUTING_PROFILE,
    SAFETY_PROFILE,
    SpecialistReply,
    SpecialistResponder,
    VALIDATOR_PROFILE,
)
from bravecall.services.routing_service import Router
from bravecall.services.safety_service import SafetyChecker
from bravecall.services.validation_service import ResponseValidator
from bravecall.services.companion_service import (
    RESPONSE_TRAILERS,
    CompanionOrchestrator,
    FeatureFlags,
    apply_trailer,
)

PARENT_PHONE = "+15551234567"
REDIRECTION = "Let's talk about something happy and positive instead!"

CRISIS_VERDICT = SafetyVerdict(
    safe=False,
    severity=Severity.CRITICAL,
    concerns=("self-harm language",),
    suggested_action=SuggestedAction.CRISIS_PROTOCOL,
)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    """Configure PII salt before each test."""
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture
def safety_checker():
    mock = MagicMock()
    mock.quick_check.return_value = False
    mock.check_safety = AsyncMock(return_value=SafetyVerdict(safe=True))
    mock.get_redirection_message.return_value = REDIRECTION
    return mock


@pytest.fixture
def router():
    mock = MagicMock()
    mock.quick_route.return_value = RoutingDecision(
        agent=AgentType.EDUCATIONAL, confidence=0.8, reasoning="Educational keywords detected"
    )
    mock.needs_model_route.side_effect = Router.needs_model_route
    mock.route = AsyncMock(return_value=RoutingDecision(
        agent=AgentType.CREATIVE, confidence=0.9, reasoning="model"
    ))
    return mock


@pytest.fixture
def responder():
    mock = MagicMock()
    mock.respond = AsyncMock(side_effect=lambda agent, message, context: SpecialistReply(
        content="That sounds great!", agent=agent
    ))
    return mock


@pytest.fixture
def validator():
    mock = MagicMock()
    mock.validate = AsyncMock(return_value=ValidationResult(approved=True))
    return mock


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.notify_parent = AsyncMock(return_value=NotifyResult(sent=True))
    return mock


@pytest.fixture
def alert_store():
    mock = MagicMock()
    mock.save.side_effect = lambda alert: alert
    return mock


@pytest.fixture
def orchestrator(safety_checker, router, responder, validator, dispatcher, alert_store):
    return CompanionOrchestrator(
        safety_checker=safety_checker,
        router=router,
        responder=responder,
        validator=validator,
        dispatcher=dispatcher,
        alert_store=alert_store,
        flags=FeatureFlags(enable_sms_escalation=True),
    )


@pytest.fixture
def context():
    return ConversationContext(child_name="Alex")


class TestApplyTrailer:
    """Tests for reply trailers."""

    def test_normal_adds_nothing(self):
        escalation = MagicMock(response_shape=ResponseShape.NORMAL)

        assert apply_trailer("Hi!", escalation) == "Hi!"

    def test_trailer_separated_by_space(self):
        escalation = MagicMock(response_shape=ResponseShape.LONGER_EMPATHY)

        assert apply_trailer("Hi!", escalation) == "Hi! I'm here for you whenever you want to talk."


class TestSafetyStage:
    """Safety gate behaviour."""

    @pytest.mark.asyncio
    async def test_model_check_skipped_without_keyword(self, orchestrator, safety_checker, context):
        result = await orchestrator.process_turn("child_1", "Help with homework", context)

        safety_checker.check_safety.assert_not_called()
        assert result.safety_verdict is None
        assert result.safe is True

    @pytest.mark.asyncio
    async def test_model_check_runs_on_keyword(self, orchestrator, safety_checker, context):
        safety_checker.quick_check.return_value = True

        result = await orchestrator.process_turn("child_1", "my brother is dumb", context)

        safety_checker.check_safety.assert_awaited_once_with("my brother is dumb")
        assert result.blocked is False
        assert result.response_text == "That sounds great!"

    @pytest.mark.asyncio
    async def test_unsafe_turn_is_redirected(
        self, orchestrator, safety_checker, router, responder, validator, context
    ):
        safety_checker.quick_check.return_value = True
        safety_checker.check_safety.return_value = SafetyVerdict(
            safe=False, severity=Severity.LOW, concerns=("rude language",),
            suggested_action=SuggestedAction.REDIRECT,
        )

        result = await orchestrator.process_turn("child_1", "you are stupid", context)

        assert result.blocked is True
        assert result.safe is False
        assert result.response_text == REDIRECTION
        assert result.agent is None
        router.quick_route.assert_not_called()
        responder.respond.assert_not_called()
        validator.validate.assert_not_called()

    @pytest.mark.asyncio
    async def test_safety_disabled(self, orchestrator, safety_checker, context):
        flags = FeatureFlags(enable_safety_check=False)

        result = await orchestrator.process_turn("child_1", "I hate you", context, flags=flags)

        safety_checker.quick_check.assert_not_called()
        assert result.safe is True


class TestRoutingStage:
    """Routing behaviour."""

    @pytest.mark.asyncio
    async def test_trusted_quick_route_skips_model(self, orchestrator, router, responder, context):
        result = await orchestrator.process_turn("child_1", "Help with homework", context)

        router.route.assert_not_called()
        assert result.agent == AgentType.EDUCATIONAL
        assert responder.respond.call_args[0][0] == AgentType.EDUCATIONAL

    @pytest.mark.asyncio
    async def test_no_quick_route_asks_model(self, orchestrator, router, context):
        router.quick_route.return_value = None

        result = await orchestrator.process_turn("child_1", "I had pancakes", context)

        router.route.assert_awaited_once_with("I had pancakes", context)
        assert result.agent == AgentType.CREATIVE

    @pytest.mark.asyncio
    async def test_untrusted_quick_route_asks_model(self, orchestrator, router, context):
        router.quick_route.return_value = RoutingDecision(
            agent=AgentType.EMOTIONAL, confidence=0.6, reasoning="weak"
        )

        result = await orchestrator.process_turn("child_1", "meh", context)

        router.route.assert_awaited_once()
        assert result.agent == AgentType.CREATIVE

    @pytest.mark.asyncio
    async def test_routing_disabled(self, orchestrator, router, context):
        flags = FeatureFlags(enable_routing=False)

        result = await orchestrator.process_turn("child_1", "Help with homework", context, flags=flags)

        router.quick_route.assert_not_called()
        assert result.routing == RoutingDecision(
            agent=AgentType.CONVERSATIONAL, confidence=1.0, reasoning="Routing disabled"
        )


class TestValidationStage:
    """Validation behaviour."""

    @pytest.mark.asyncio
    async def test_suggested_edit_replaces_reply(self, orchestrator, validator, context):
        validator.validate.return_value = ValidationResult(
            approved=False, issues=("too long",), suggested_edit="Short and sweet!"
        )

        result = await orchestrator.process_turn("child_1", "Help with homework", context)

        assert result.response_text == "Short and sweet!"
        assert result.edited is True

    @pytest.mark.asyncio
    async def test_rejection_without_edit_keeps_reply(self, orchestrator, validator, context):
        validator.validate.return_value = ValidationResult(approved=False, issues=("tone",))

        result = await orchestrator.process_turn("child_1", "Help with homework", context)

        assert result.response_text == "That sounds great!"
        assert result.edited is False

    @pytest.mark.asyncio
    async def test_validation_disabled(self, orchestrator, validator, context):
        flags = FeatureFlags(enable_response_validation=False)

        result = await orchestrator.process_turn("child_1", "Help with homework", context, flags=flags)

        validator.validate.assert_not_called()
        assert result.validation is None


class TestEscalationStage:
    """Escalation, trailers and parent notification."""

    @pytest.mark.asyncio
    async def test_tier_one_trailer(self, orchestrator, context):
        context = ConversationContext(
            child_name="Alex",
            recent_messages=(ConversationMessage(role="user", content="I was worried"),),
        )

        result = await orchestrator.process_turn("child_1", "I'm scared", context)

        assert result.escalation.tier == 1
        assert result.response_text == (
            "That sounds great! " + RESPONSE_TRAILERS[ResponseShape.LONGER_EMPATHY]
        )

    @pytest.mark.asyncio
    async def test_tier_two_from_pattern(self, orchestrator, context):
        result = await orchestrator.process_turn(
            "child_1", "Help with homework", context, pattern_over_days=True
        )

        assert result.escalation.tier == 2
        assert result.response_text.endswith(RESPONSE_TRAILERS[ResponseShape.ADD_GROWN_UP_SUGGESTION])

    @pytest.mark.asyncio
    async def test_tier_three_notifies_parent_and_stores_alert(
        self, orchestrator, safety_checker, dispatcher, alert_store, context
    ):
        safety_checker.quick_check.return_value = True
        safety_checker.check_safety.return_value = CRISIS_VERDICT

        result = await orchestrator.process_turn(
            "child_1", "I hate myself and want to die", context, parent_contact=PARENT_PHONE
        )
        notify_result = await result.notification_task

        assert result.blocked is True
        assert result.escalation.tier == 3
        assert result.response_text == (
            REDIRECTION + " " + RESPONSE_TRAILERS[ResponseShape.CALM_PLUS_ALERT]
        )
        assert notify_result.sent is True
        dispatcher.notify_parent.assert_awaited_once_with(
            PARENT_PHONE,
            "Brave Call: Alex may need your support. Please check in when you can. (self-harm language)",
        )

        alert = alert_store.save.call_args[0][0]
        assert isinstance(alert, ParentAlert)
        assert alert.child_id == "child_1"
        assert alert.tier == 3
        assert alert.severity == Severity.CRITICAL
        assert alert.action == SuggestedAction.CRISIS_PROTOCOL
        assert alert.parent_contact_masked == "***4567"
        assert PARENT_PHONE not in alert.to_dict().values()
        assert alert.reviewed is False

    @pytest.mark.asyncio
    async def test_tier_three_without_sms_flag(self, orchestrator, safety_checker, dispatcher, context):
        safety_checker.quick_check.return_value = True
        safety_checker.check_safety.return_value = CRISIS_VERDICT

        result = await orchestrator.process_turn(
            "child_1", "I want to die", context,
            parent_contact=PARENT_PHONE,
            flags=FeatureFlags(enable_sms_escalation=False),
        )

        assert result.escalation.tier == 3
        assert result.notification_task is None
        dispatcher.notify_parent.assert_not_called()

    @pytest.mark.asyncio
    async def test_tier_three_without_contact(self, orchestrator, safety_checker, dispatcher, context):
        safety_checker.quick_check.return_value = True
        safety_checker.check_safety.return_value = CRISIS_VERDICT

        result = await orchestrator.process_turn("child_1", "I want to die", context)

        assert result.notification_task is None
        dispatcher.notify_parent.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_notification_stores_nothing(
        self, orchestrator, safety_checker, dispatcher, alert_store, context
    ):
        safety_checker.quick_check.return_value = True
        safety_checker.check_safety.return_value = CRISIS_VERDICT
        dispatcher.notify_parent.return_value = NotifyResult(sent=False, error="parent_contact_not_phone")

        result = await orchestrator.process_turn(
            "child_1", "I want to die", context, parent_contact="555-1234"
        )
        notify_result = await result.notification_task

        assert notify_result.sent is False
        alert_store.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_alert_store_failure_is_contained(
        self, orchestrator, safety_checker, alert_store, context
    ):
        safety_checker.quick_check.return_value = True
        safety_checker.check_safety.return_value = CRISIS_VERDICT
        alert_store.save.side_effect = Exception("database unavailable")

        result = await orchestrator.process_turn(
            "child_1", "I want to die", context, parent_contact=PARENT_PHONE
        )
        notify_result = await result.notification_task

        assert notify_result.sent is True

    @pytest.mark.asyncio
    async def test_reply_does_not_wait_for_sms(self, orchestrator, safety_checker, dispatcher, context):
        safety_checker.quick_check.return_value = True
        safety_checker.check_safety.return_value = CRISIS_VERDICT

        result = await orchestrator.process_turn(
            "child_1", "I want to die", context, parent_contact=PARENT_PHONE
        )

        assert result.notification_task is not None
        assert not result.notification_task.done()
        await orchestrator.drain()
        assert result.notification_task.done()

    @pytest.mark.asyncio
    async def test_to_dict(self, orchestrator, context):
        result = await orchestrator.process_turn("child_1", "Help with homework", context)

        assert result.to_dict() == {
            "response": "That sounds great!",
            "safe": True,
            "agent": "educational",
            "tier": 0,
            "blocked": False,
            "edited": False,
        }


def scripted_llm(safety_reply: str, routing_reply: str, specialist_reply: str, validator_reply: str):
    """Model double that answers according to the calling agent's system prompt."""
    replies = {
        SAFETY_PROFILE.system_message: safety_reply,
        VALIDATOR_PROFILE.system_message: validator_reply,
    }

    async def generate(messages, system_prompt=None, json_mode=False, temperature=None, max_tokens=None):
        if system_prompt in replies:
            text = replies[system_prompt]
        elif system_prompt == ROUTING_PROFILE.system_message:
            text = routing_reply
        else:
            text = specialist_reply
        return LLMResponse(text=text, model="gpt-4o-mini", provider="openai")

    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=generate)
    return llm


class TestEndToEnd:
    """Full pipeline with real stage services."""

    def build(self, llm, transport, alert_store):
        return CompanionOrchestrator(
            safety_checker=SafetyChecker(llm, rng=random.Random(1)),
            router=Router(llm),
            responder=SpecialistResponder(llm),
            validator=ResponseValidator(llm),
            dispatcher=NotificationDispatcher(transport),
            alert_store=alert_store,
            flags=FeatureFlags(enable_sms_escalation=True),
        )

    @pytest.mark.asyncio
    async def test_self_harm_message(self, alert_store):
        llm = scripted_llm(
            safety_reply=(
                '{"safe": false, "severity": "critical", "concerns": ["self-harm language"], '
                '"suggestedAction": "crisis_protocol"}'
            ),
            routing_reply='{"agent": "emotional", "confidence": 0.9}',
            specialist_reply="I'm listening.",
            validator_reply='{"approved": true}',
        )
        transport = MagicMock()
        transport.send.return_value = SmsSendResult(message_ids=["m-1"])
        orchestrator = self.build(llm, transport, alert_store)

        result = await orchestrator.process_turn(
            "child_1",
            "I hate myself and want to die",
            ConversationContext(child_name="Alex"),
            parent_contact=PARENT_PHONE,
        )
        await result.notification_task

        assert result.blocked is True
        assert result.escalation.tier == 3
        assert result.escalation.response_shape == ResponseShape.CALM_PLUS_ALERT
        assert result.escalation.reason == "self-harm language"
        assert result.escalation.message_to_parent == (
            "Brave Call: Alex may need your support. Please check in when you can. (self-harm language)"
        )
        transport.send.assert_called_once_with(PARENT_PHONE, result.escalation.message_to_parent)
        alert_store.save.assert_called_once()

    @pytest.mark.asyncio
    async def test_homework_question(self, alert_store):
        llm = scripted_llm(
            safety_reply='{"safe": true}',
            routing_reply='{"agent": "creative", "confidence": 0.9}',
            specialist_reply="Let's count the apples together!",
            validator_reply='```json\n{"approved": true, "issues": []}\n```',
        )
        transport = MagicMock()
        orchestrator = self.build(llm, transport, alert_store)

        result = await orchestrator.process_turn(
            "child_1", "Can you help with my homework?", ConversationContext(child_name="Alex")
        )

        assert result.agent == AgentType.EDUCATIONAL
        assert result.routing.confidence == 0.8
        assert result.response_text == "Let's count the apples together!"
        assert result.escalation.tier == 0
        assert result.notification_task is None
        transport.send.assert_not_called()
        # Specialist and validator only; no safety or routing model call
        assert llm.generate.await_count == 2
