"""Brave missions: three small acts of courage drawn from a conversation.

Always returns exactly three missions, one per difficulty. Anything the
model leaves out or gets wrong is filled from the fixed fallback set.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from bravecall.shared.models import (
    ConversationContext,
    ConversationMessage,
    Mission,
    MissionDifficulty,
)
from bravecall.shared.utils import parse_json_array_reply
from .agent_profiles import MISSIONS_PROFILE, format_transcript
from .base_llm import BaseLLM, ChatMessage

logger = logging.getLogger(__name__)

MISSION_COUNT = 3
MAX_MISSION_STEPS = 4
DEFAULT_STEP = "Give it a try!"

POINTS_BY_DIFFICULTY: Dict[MissionDifficulty, int] = {
    MissionDifficulty.EASY: 20,
    MissionDifficulty.MEDIUM: 35,
    MissionDifficulty.STRETCH: 50,
}

# Slot order when the model gives no usable difficulty
SLOT_DIFFICULTIES = (MissionDifficulty.EASY, MissionDifficulty.MEDIUM, MissionDifficulty.STRETCH)

FALLBACK_MISSIONS: List[Mission] = [
    Mission(
        title="Say Hello",
        description="Say hi to your friend!",
        difficulty=MissionDifficulty.EASY,
        points=20,
        steps=("Say hi to someone", "Smile when you say it"),
    ),
    Mission(
        title="Kind Words",
        description="Use a kind word like 'please' or 'thank you'.",
        difficulty=MissionDifficulty.MEDIUM,
        points=35,
        steps=("Pick one kind word", "Use it with someone today"),
    ),
    Mission(
        title="Curious Turtle",
        description="Ask a question about something you wonder about.",
        difficulty=MissionDifficulty.STRETCH,
        points=50,
        steps=("Think of one question", "Ask a grown-up or friend"),
    ),
]


def _difficulty(value: Any, slot: int) -> MissionDifficulty:
    try:
        return MissionDifficulty(value)
    except ValueError:
        return SLOT_DIFFICULTIES[slot]


def mission_from_payload(item: Any, slot: int) -> Mission:
    """Build one mission from model output, patching gaps from the fallback."""
    fallback = FALLBACK_MISSIONS[slot]
    if not isinstance(item, dict):
        return fallback

    difficulty = _difficulty(item.get("difficulty"), slot)

    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        title = fallback.title

    description = item.get("description")
    if not isinstance(description, str):
        description = fallback.description

    raw_steps = item.get("steps")
    steps = [s for s in raw_steps if isinstance(s, str)] if isinstance(raw_steps, list) else []
    steps = steps[:MAX_MISSION_STEPS] or [DEFAULT_STEP]

    points = item.get("points")
    if not isinstance(points, int) or isinstance(points, bool):
        points = POINTS_BY_DIFFICULTY[difficulty]

    return Mission(
        title=title.strip(),
        description=description.strip(),
        difficulty=difficulty,
        points=points,
        steps=tuple(steps),
    )


class MissionPlanner:
    """Turns a finished conversation into three brave missions."""

    def __init__(self, llm: BaseLLM):
        self.llm = llm

    async def generate_missions(
        self,
        messages: Sequence[ConversationMessage],
        context: Optional[ConversationContext] = None,
    ) -> List[Mission]:
        """Generate missions tailored to what the child talked about.

        Args:
            messages: The conversation, oldest first
            context: Character and child names for the prompt

        Returns:
            Exactly three missions; the fallback set when there is nothing
            to go on or the model output is unusable
        """
        if not messages:
            return list(FALLBACK_MISSIONS)

        try:
            response = await self.llm.generate(
                messages=[ChatMessage(role="user", content=format_transcript(messages))],
                system_prompt=MISSIONS_PROFILE.render_system_prompt(context),
                temperature=MISSIONS_PROFILE.temperature,
                max_tokens=MISSIONS_PROFILE.max_tokens,
            )
        except Exception as e:
            logger.error(
                "MISSIONS_GENERATION_FAILED",
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "USING_FALLBACK_MISSIONS",
                }
            )
            return list(FALLBACK_MISSIONS)

        items = parse_json_array_reply(response.text)
        if not items:
            logger.warning("MISSIONS_UNPARSEABLE", extra={"action": "USING_FALLBACK_MISSIONS"})
            return list(FALLBACK_MISSIONS)

        missions = [
            mission_from_payload(item, slot)
            for slot, item in enumerate(items[:MISSION_COUNT])
        ]
        missions.extend(FALLBACK_MISSIONS[len(missions):])

        logger.info("MISSIONS_GENERATED", extra={"from_model": min(len(items), MISSION_COUNT)})
        return missions
