"""Safety checker - keyword pre-filter plus model safety verdict.

Runs before any reply is generated. Two failure policies, deliberately
different:
- Model reply we cannot read: allow (fail open), and log the anomaly.
- Model call that raises: block and flag the parent (fail closed).

The medium-and-above => flag_for_parent rule is enforced by SafetyVerdict
itself, so it holds for every verdict this module returns.
"""
import logging
import random
import time
from typing import Iterable, Optional, Sequence

from bravecall.shared.models import SafetyVerdict, Severity, SuggestedAction
from bravecall.shared.utils import hash_text_for_audit, parse_json_reply
from bravecall.services.llm_service import BaseLLM, ChatMessage, SAFETY_PROFILE
from .config import (
    HARMFUL_KEYWORDS,
    REDIRECTION_MESSAGES,
    SYSTEM_ERROR_CONCERN,
    SafetyConfig,
)

logger = logging.getLogger(__name__)


class VerdictShapeError(ValueError):
    """Model reply decoded as JSON but does not look like a verdict."""


def permissive_verdict() -> SafetyVerdict:
    """Verdict used when the model reply cannot be read."""
    return SafetyVerdict(
        safe=True,
        severity=Severity.NONE,
        concerns=(),
        suggested_action=SuggestedAction.ALLOW,
    )


def system_error_verdict() -> SafetyVerdict:
    """Verdict used when the model call itself failed."""
    return SafetyVerdict(
        safe=False,
        severity=Severity.MEDIUM,
        concerns=(SYSTEM_ERROR_CONCERN,),
        suggested_action=SuggestedAction.REDIRECT,
        flag_for_parent=True,
    )


def verdict_from_payload(payload: dict) -> SafetyVerdict:
    """Build a verdict from the decoded model JSON.

    Accepts camelCase (as prompted) or snake_case keys and any casing of
    the enum values.

    Raises:
        VerdictShapeError: If a required field is missing or invalid
    """
    safe = payload.get("safe")
    if not isinstance(safe, bool):
        raise VerdictShapeError(f"'safe' must be a boolean, got {type(safe).__name__}")

    try:
        severity = Severity(str(payload.get("severity", "none")).strip().lower())
        action_raw = payload.get("suggestedAction", payload.get("suggested_action", "allow"))
        action = SuggestedAction(str(action_raw).strip().lower())
    except ValueError as e:
        raise VerdictShapeError(str(e)) from e

    concerns = payload.get("concerns") or []
    if isinstance(concerns, str):
        concerns = [concerns]
    if not isinstance(concerns, list):
        raise VerdictShapeError("'concerns' must be a list of strings")

    flag = payload.get("flagForParent", payload.get("flag_for_parent", False))

    return SafetyVerdict(
        safe=safe,
        severity=severity,
        concerns=tuple(str(c) for c in concerns if str(c).strip()),
        suggested_action=action,
        flag_for_parent=flag is True,
    )


class SafetyChecker:
    """First stage of every turn.

    `quick_check` is a synchronous keyword pre-filter; `check_safety` asks
    the safety model for a full verdict on the raw message alone.
    """

    def __init__(
        self,
        llm: BaseLLM,
        config: Optional[SafetyConfig] = None,
        rng: Optional[random.Random] = None,
        keywords: Iterable[str] = HARMFUL_KEYWORDS,
        redirections: Sequence[str] = REDIRECTION_MESSAGES,
    ):
        """Initialize checker.

        Args:
            llm: Model used for the full safety verdict
            config: Checker behavior configuration
            rng: Random source for picking redirection lines (inject for tests)
            keywords: Pre-filter keywords, matched as lowercase substrings
            redirections: Redirection lines to choose from
        """
        self.llm = llm
        self.config = config or SafetyConfig()
        self._rng = rng or random.Random()
        self._keywords = tuple(sorted(k.lower() for k in keywords))
        self._redirections = tuple(redirections)

        if not self._redirections:
            raise ValueError("At least one redirection message is required")

        logger.info(
            "SAFETY_CHECKER_INITIALIZED",
            extra={
                "keyword_version": self.config.keyword_version,
                "keyword_count": len(self._keywords),
                "redirection_count": len(self._redirections),
            }
        )

    def quick_check(self, message: str) -> bool:
        """Return True if the message is potentially unsafe.

        Case-insensitive substring match against the keyword list.
        """
        lowered = (message or "").lower()
        return any(keyword in lowered for keyword in self._keywords)

    async def check_safety(self, message: str) -> SafetyVerdict:
        """Ask the safety model for a verdict on the raw message.

        No conversation history is sent.

        Args:
            message: Raw child message

        Returns:
            SafetyVerdict; permissive on unreadable replies, blocking on errors
        """
        start_time = time.perf_counter()
        text_hash = hash_text_for_audit(message or "")

        try:
            response = await self.llm.generate(
                messages=[ChatMessage(role="user", content=message)],
                system_prompt=SAFETY_PROFILE.system_message,
                json_mode=True,
                temperature=SAFETY_PROFILE.temperature,
                max_tokens=SAFETY_PROFILE.max_tokens,
            )
        except Exception as e:
            logger.error(
                "SAFETY_CHECK_FAILED",
                extra={
                    "text_hash": text_hash,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "BLOCKING_AND_FLAGGING_PARENT",
                }
            )
            return system_error_verdict()

        payload = parse_json_reply(response.text)
        verdict = None
        if payload is not None:
            try:
                verdict = verdict_from_payload(payload)
            except VerdictShapeError as e:
                logger.warning(
                    "SAFETY_VERDICT_MALFORMED",
                    extra={"text_hash": text_hash, "error": str(e)}
                )

        latency_ms = (time.perf_counter() - start_time) * 1000

        if verdict is None:
            logger.warning(
                "SAFETY_VERDICT_UNPARSEABLE",
                extra={
                    "text_hash": text_hash,
                    "latency_ms": latency_ms,
                    "action": "DEFAULTING_TO_ALLOW",
                }
            )
            return permissive_verdict()

        if not verdict.safe:
            logger.warning(
                "SAFETY_CHECK_UNSAFE",
                extra={
                    "text_hash": text_hash,
                    "severity": verdict.severity.value,
                    "concern_count": len(verdict.concerns),
                    "suggested_action": verdict.suggested_action.value,
                    "flag_for_parent": verdict.flag_for_parent,
                }
            )

        logger.info(
            "SAFETY_CHECK_COMPLETED",
            extra={
                "text_hash": text_hash,
                "safe": verdict.safe,
                "severity": verdict.severity.value,
                "latency_ms": latency_ms,
            }
        )
        return verdict

    def get_redirection_message(
        self,
        concerns: Sequence[str] = (),
        index: Optional[int] = None,
    ) -> str:
        """Pick a gentle topic-change line.

        Concerns are accepted but not used, so the line never echoes the
        unsafe content back.

        Args:
            concerns: Concerns from the verdict (unused)
            index: Pre-selected line; wraps around the list. Random if None.
        """
        if index is None:
            index = self._rng.randrange(len(self._redirections))
        return self._redirections[index % len(self._redirections)]
