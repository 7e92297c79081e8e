"""Router - picks the specialist agent that answers a message.

Keyword rules first; the routing model only when no rule matches or the
rule is not trusted. Never blocks a turn: unreadable, low-confidence or
failed model answers all fall back to the conversational agent.
"""
import logging
import math
from typing import Optional

from bravecall.shared.models import AgentType, ConversationContext, RoutingDecision
from bravecall.shared.utils import parse_json_reply
from bravecall.services.llm_service import BaseLLM, ROUTING_PROFILE, build_message_chain
from .config import (
    DEFAULT_CONFIDENCE,
    ERROR_REASONING,
    MODEL_ROUTE_MIN_CONFIDENCE,
    QUICK_ROUTE_CONFIDENCE,
    QUICK_ROUTE_TRUST_THRESHOLD,
    ROUTING_RULES,
    UNCERTAIN_REASONING,
)

logger = logging.getLogger(__name__)


def default_decision(reasoning: str = UNCERTAIN_REASONING) -> RoutingDecision:
    return RoutingDecision(
        agent=AgentType.CONVERSATIONAL,
        confidence=DEFAULT_CONFIDENCE,
        reasoning=reasoning,
    )


def _decision_from_payload(payload: dict) -> Optional[RoutingDecision]:
    """Build a decision from model JSON, or None if it does not fit."""
    try:
        agent = AgentType(str(payload.get("agent", "")).strip().lower())
        confidence = float(payload.get("confidence"))
    except (TypeError, ValueError):
        return None

    if math.isnan(confidence):
        return None

    return RoutingDecision(
        agent=agent,
        confidence=min(max(confidence, 0.0), 1.0),
        reasoning=str(payload.get("reasoning") or ""),
    )


class Router:
    """Chooses between the five specialist agents."""

    def __init__(self, llm: BaseLLM):
        self.llm = llm

    def quick_route(self, message: str) -> Optional[RoutingDecision]:
        """Rule-based routing for obvious cases.

        Returns:
            Decision with confidence 0.8 for the first matching rule, or None
        """
        lowered = (message or "").lower()
        for agent, keywords, reasoning in ROUTING_RULES:
            if any(keyword in lowered for keyword in keywords):
                return RoutingDecision(
                    agent=agent,
                    confidence=QUICK_ROUTE_CONFIDENCE,
                    reasoning=reasoning,
                )
        return None

    @staticmethod
    def needs_model_route(decision: Optional[RoutingDecision]) -> bool:
        """True when the quick-route result should not be used as is."""
        return decision is None or decision.confidence < QUICK_ROUTE_TRUST_THRESHOLD

    async def route(
        self,
        message: str,
        context: Optional[ConversationContext] = None,
    ) -> RoutingDecision:
        """Ask the routing model which specialist should answer.

        Args:
            message: The child's message
            context: Recent history for the classifier

        Returns:
            The model's decision, or the conversational default when the
            answer is unreadable, below 0.5 confidence, or the call fails
        """
        try:
            response = await self.llm.generate(
                messages=build_message_chain(message, context),
                system_prompt=ROUTING_PROFILE.render_system_prompt(context),
                json_mode=True,
                temperature=ROUTING_PROFILE.temperature,
                max_tokens=ROUTING_PROFILE.max_tokens,
            )
        except Exception as e:
            logger.error(
                "ROUTING_FAILED",
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "USING_CONVERSATIONAL_FALLBACK",
                }
            )
            return default_decision(ERROR_REASONING)

        payload = parse_json_reply(response.text)
        decision = _decision_from_payload(payload) if payload is not None else None

        if decision is None or decision.confidence < MODEL_ROUTE_MIN_CONFIDENCE:
            logger.warning(
                "ROUTING_FALLBACK_USED",
                extra={
                    "parsed": decision is not None,
                    "confidence": decision.confidence if decision else None,
                }
            )
            return default_decision()

        logger.info("ROUTING_DECIDED", extra=decision.to_dict())
        return decision
