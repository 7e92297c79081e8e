"""Companion service configuration: feature flags and reply trailers."""
import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from bravecall.shared.models import ResponseShape
from bravecall.services.escalation_service import SmsConfig
from bravecall.services.llm_service import LLMConfig


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class FeatureFlags:
    """Pipeline switches.

    Passed to the orchestrator at construction; a single turn may run with
    different flags via `with_overrides` without touching shared state.
    """
    enable_safety_check: bool = True
    enable_routing: bool = True
    enable_response_validation: bool = True
    enable_sms_escalation: bool = False
    log_agent_decisions: bool = True

    @classmethod
    def from_env(cls) -> "FeatureFlags":
        """Create flags from environment variables.

        Environment variables:
            ENABLE_SAFETY_CHECK (default true)
            ENABLE_ROUTING (default true)
            ENABLE_RESPONSE_VALIDATION (default true)
            ENABLE_SMS_ESCALATION (default false)
            LOG_AGENT_DECISIONS (default true)
        """
        return cls(
            enable_safety_check=_env_flag("ENABLE_SAFETY_CHECK", True),
            enable_routing=_env_flag("ENABLE_ROUTING", True),
            enable_response_validation=_env_flag("ENABLE_RESPONSE_VALIDATION", True),
            enable_sms_escalation=_env_flag("ENABLE_SMS_ESCALATION", False),
            log_agent_decisions=_env_flag("LOG_AGENT_DECISIONS", True),
        )

    def with_overrides(self, **overrides) -> "FeatureFlags":
        return replace(self, **overrides)


# Appended to the reply, separated by one space
RESPONSE_TRAILERS: Dict[ResponseShape, str] = {
    ResponseShape.NORMAL: "",
    ResponseShape.LONGER_EMPATHY: "I'm here for you whenever you want to talk.",
    ResponseShape.ADD_GROWN_UP_SUGGESTION: (
        "It sounds like this has been on your mind for a few days. "
        "It could really help to talk with a grown-up you trust, like a parent or teacher."
    ),
    ResponseShape.CALM_PLUS_ALERT: (
        "You're not alone. Let's take a slow, deep breath together. "
        "A grown-up who cares about you can help, so please tell someone you trust."
    ),
}

# History handed to the pipeline per turn
HISTORY_LIMIT = 10

# A stored parent report is served until it is this old
REPORT_MAX_AGE_DAYS = 7

# Recent messages the missions are drawn from
MISSIONS_HISTORY_LIMIT = 20


@dataclass(frozen=True)
class CompanionConfig:
    """Everything the companion process reads from its environment."""
    flags: FeatureFlags = field(default_factory=FeatureFlags)
    llm: Optional[LLMConfig] = None
    sms: SmsConfig = field(default_factory=SmsConfig)
    pii_salt: Optional[str] = None
    history_limit: int = HISTORY_LIMIT
    report_max_age_days: int = REPORT_MAX_AGE_DAYS

    @classmethod
    def from_env(cls) -> "CompanionConfig":
        return cls(
            flags=FeatureFlags.from_env(),
            llm=LLMConfig.from_env(),
            sms=SmsConfig.from_env(),
            pii_salt=os.getenv("PII_HASH_SALT"),
            history_limit=int(os.getenv("HISTORY_LIMIT", str(HISTORY_LIMIT))),
            report_max_age_days=int(os.getenv("REPORT_MAX_AGE_DAYS", str(REPORT_MAX_AGE_DAYS))),
        )
