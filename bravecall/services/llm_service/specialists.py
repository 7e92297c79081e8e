"""Specialist reply generation.

One responder serves all five specialist personas; the persona is just a
profile (system prompt and sampling settings). If the model call fails the
child still gets a gentle fixed reply.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from bravecall.shared.models import AgentType, ConversationContext
from .agent_profiles import SPECIALIST_PROFILES, build_message_chain
from .base_llm import BaseLLM

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "Hmm, my thoughts got a little tangled just now. "
    "Can you tell me that one more time?"
)


@dataclass(frozen=True)
class SpecialistReply:
    """Reply drafted by a specialist agent."""
    content: str
    agent: AgentType
    model: Optional[str] = None
    tokens_used: Optional[int] = None
    fallback: bool = False


class SpecialistResponder:
    """Drafts replies in the voice of the chosen specialist agent."""

    def __init__(self, llm: BaseLLM):
        self.llm = llm

    async def respond(
        self,
        agent: AgentType,
        user_message: str,
        context: ConversationContext,
    ) -> SpecialistReply:
        """Generate the specialist's reply.

        Args:
            agent: Specialist chosen by the router
            user_message: The child's message
            context: Character, child and recent history

        Returns:
            SpecialistReply; `fallback=True` when the model call failed
        """
        profile = SPECIALIST_PROFILES[agent]

        try:
            response = await self.llm.generate(
                messages=build_message_chain(user_message, context),
                system_prompt=profile.render_system_prompt(context),
                temperature=profile.temperature,
                max_tokens=profile.max_tokens,
            )
        except Exception as e:
            logger.error(
                "SPECIALIST_GENERATION_FAILED",
                extra={
                    "agent": agent.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "USING_FALLBACK_REPLY",
                }
            )
            return SpecialistReply(content=FALLBACK_REPLY, agent=agent, fallback=True)

        content = (response.text or "").strip()
        if not content:
            logger.warning("SPECIALIST_EMPTY_REPLY", extra={"agent": agent.value})
            return SpecialistReply(content=FALLBACK_REPLY, agent=agent, fallback=True)

        return SpecialistReply(
            content=content,
            agent=agent,
            model=response.model,
            tokens_used=response.tokens_used,
        )
