"""Tests for SafetyChecker.

The two failure policies are asserted separately: an unreadable verdict
allows the message, a failed call blocks it and flags the parent.
"""
import random

import pytest
from unittest.mock import AsyncMock, MagicMock

from bravecall.shared.models import Severity, SuggestedAction
from bravecall.shared.utils import configure_pii_salt
from bravecall.services.llm_service import LLMResponse, SAFETY_PROFILE
from bravecall.services.safety_service import (
    REDIRECTION_MESSAGES,
    SYSTEM_ERROR_CONCERN,
    SafetyChecker,
    VerdictShapeError,
    verdict_from_payload,
)


@pytest.fixture(autouse=True)
def setup_pii_salt():
    """Configure PII salt before each test."""
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


def model_reply(text: str) -> LLMResponse:
    return LLMResponse(text=text, model="gpt-4o-mini", provider="openai")


@pytest.fixture
def llm():
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=model_reply(
        '{"safe": true, "severity": "none", "concerns": [], "suggestedAction": "allow"}'
    ))
    return mock


@pytest.fixture
def checker(llm):
    return SafetyChecker(llm, rng=random.Random(7))


class TestQuickCheck:
    """Tests for the keyword pre-filter."""

    def test_normal_message_passes(self, checker):
        assert checker.quick_check("I built a sandcastle today") is False

    @pytest.mark.parametrize("message", [
        "I want to KILL the boss in my game",
        "sometimes I think about suicide",
        "I want to hurt myself",
        "I hate you",
        "that was a dumb movie",
    ])
    def test_keyword_triggers(self, checker, message):
        assert checker.quick_check(message) is True

    def test_empty_message(self, checker):
        assert checker.quick_check("") is False

    def test_does_not_call_model(self, checker, llm):
        checker.quick_check("I hate myself")

        llm.generate.assert_not_called()


class TestCheckSafety:
    """Tests for the model verdict."""

    @pytest.mark.asyncio
    async def test_safe_verdict(self, checker, llm):
        verdict = await checker.check_safety("I like turtles")

        assert verdict.safe is True
        assert verdict.severity == Severity.NONE
        kwargs = llm.generate.call_args.kwargs
        assert kwargs["json_mode"] is True
        assert kwargs["system_prompt"] == SAFETY_PROFILE.system_message
        assert kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_only_raw_message_is_sent(self, checker, llm):
        await checker.check_safety("I hate myself")

        messages = llm.generate.call_args.kwargs["messages"]
        assert len(messages) == 1
        assert messages[0].role == "user"
        assert messages[0].content == "I hate myself"

    @pytest.mark.asyncio
    async def test_fenced_verdict_is_parsed(self, checker, llm):
        llm.generate.return_value = model_reply(
            '```json\n{"safe": false, "severity": "critical", '
            '"concerns": ["self-harm language"], "suggestedAction": "crisis_protocol"}\n```'
        )

        verdict = await checker.check_safety("I hate myself and want to die")

        assert verdict.safe is False
        assert verdict.severity == Severity.CRITICAL
        assert verdict.suggested_action == SuggestedAction.CRISIS_PROTOCOL
        assert verdict.concerns == ("self-harm language",)
        assert verdict.flag_for_parent is True

    @pytest.mark.asyncio
    async def test_medium_severity_forces_parent_flag(self, checker, llm):
        llm.generate.return_value = model_reply(
            '{"safe": false, "severity": "medium", "concerns": ["bullying"], '
            '"suggestedAction": "redirect", "flagForParent": false}'
        )

        verdict = await checker.check_safety("they call me stupid")

        assert verdict.flag_for_parent is True

    @pytest.mark.asyncio
    async def test_unparseable_reply_fails_open(self, checker, llm):
        llm.generate.return_value = model_reply("I'm not sure about this one.")

        verdict = await checker.check_safety("you are dumb")

        assert verdict.safe is True
        assert verdict.severity == Severity.NONE
        assert verdict.concerns == ()
        assert verdict.suggested_action == SuggestedAction.ALLOW

    @pytest.mark.asyncio
    async def test_malformed_verdict_fails_open(self, checker, llm):
        llm.generate.return_value = model_reply('{"safe": "maybe", "severity": "extreme"}')

        verdict = await checker.check_safety("you are dumb")

        assert verdict.safe is True
        assert verdict.suggested_action == SuggestedAction.ALLOW

    @pytest.mark.asyncio
    async def test_model_error_fails_closed(self, checker, llm):
        llm.generate.side_effect = ConnectionError("model unavailable")

        verdict = await checker.check_safety("I want to die")

        assert verdict.safe is False
        assert verdict.severity == Severity.MEDIUM
        assert verdict.concerns == (SYSTEM_ERROR_CONCERN,)
        assert verdict.suggested_action == SuggestedAction.REDIRECT
        assert verdict.flag_for_parent is True


class TestVerdictFromPayload:
    """Tests for verdict_from_payload."""

    def test_snake_case_and_upper_case_values(self):
        verdict = verdict_from_payload({
            "safe": False,
            "severity": "HIGH",
            "concerns": "threats",
            "suggested_action": "Alert_Parent",
        })

        assert verdict.severity == Severity.HIGH
        assert verdict.suggested_action == SuggestedAction.ALERT_PARENT
        assert verdict.concerns == ("threats",)

    def test_missing_safe_rejected(self):
        with pytest.raises(VerdictShapeError):
            verdict_from_payload({"severity": "none"})

    def test_unknown_action_rejected(self):
        with pytest.raises(VerdictShapeError):
            verdict_from_payload({"safe": True, "suggestedAction": "ignore"})


class TestRedirection:
    """Tests for get_redirection_message."""

    def test_returns_known_line(self, checker):
        assert checker.get_redirection_message(["violence"]) in REDIRECTION_MESSAGES

    def test_preselected_index(self, checker):
        assert checker.get_redirection_message(index=2) == REDIRECTION_MESSAGES[2]

    def test_index_wraps(self, checker):
        assert checker.get_redirection_message(index=len(REDIRECTION_MESSAGES) + 1) == REDIRECTION_MESSAGES[1]

    def test_seeded_random_is_repeatable(self, llm):
        first = SafetyChecker(llm, rng=random.Random(3)).get_redirection_message()
        second = SafetyChecker(llm, rng=random.Random(3)).get_redirection_message()

        assert first == second

    def test_never_echoes_concerns(self, checker):
        line = checker.get_redirection_message(["kill"])

        assert "kill" not in line.lower()

    def test_requires_redirections(self, llm):
        with pytest.raises(ValueError):
            SafetyChecker(llm, redirections=())
