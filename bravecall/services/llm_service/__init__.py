"""LLM Service for Brave Call.

The text-generation collaborator used by every model-backed stage of the
turn pipeline, the specialist personas that draft the child's reply, and
the post-conversation writers (brave missions, parent reports).
"""

from .base_llm import (
    LLMProvider,
    LLMConfig,
    LLMResponse,
    ChatMessage,
    BaseLLM,
    OpenAILLM,
    HuggingFaceLLM,
    create_llm,
)
from .agent_profiles import (
    AgentProfile,
    SAFETY_PROFILE,
    ROUTING_PROFILE,
    VALIDATOR_PROFILE,
    MISSIONS_PROFILE,
    PARENT_REPORT_PROFILE,
    SPECIALIST_PROFILES,
    build_message_chain,
    format_transcript,
)
from .specialists import SpecialistResponder, SpecialistReply, FALLBACK_REPLY
from .missions import MissionPlanner, FALLBACK_MISSIONS, POINTS_BY_DIFFICULTY
from .parent_report import ParentReportWriter, REPORT_MESSAGE_LIMIT

__all__ = [
    "LLMProvider",
    "LLMConfig",
    "LLMResponse",
    "ChatMessage",
    "BaseLLM",
    "OpenAILLM",
    "HuggingFaceLLM",
    "create_llm",
    "AgentProfile",
    "SAFETY_PROFILE",
    "ROUTING_PROFILE",
    "VALIDATOR_PROFILE",
    "MISSIONS_PROFILE",
    "PARENT_REPORT_PROFILE",
    "SPECIALIST_PROFILES",
    "build_message_chain",
    "format_transcript",
    "SpecialistResponder",
    "SpecialistReply",
    "FALLBACK_REPLY",
    "MissionPlanner",
    "FALLBACK_MISSIONS",
    "POINTS_BY_DIFFICULTY",
    "ParentReportWriter",
    "REPORT_MESSAGE_LIMIT",
]
