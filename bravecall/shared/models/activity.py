"""Models for the parent report and the child's brave missions."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Tuple


class MissionDifficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    STRETCH = "stretch"


@dataclass(frozen=True)
class Mission:
    """A small act of courage suggested to the child."""
    title: str
    description: str
    difficulty: MissionDifficulty
    points: int
    steps: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "steps", tuple(self.steps))

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty.value,
            "points": self.points,
            "steps": list(self.steps),
        }


@dataclass(frozen=True)
class BookRecommendation:
    title: str
    author: str
    reason: str

    def to_dict(self) -> dict:
        return {"title": self.title, "author": self.author, "reason": self.reason}


@dataclass(frozen=True)
class GrowthMoment:
    moment: str
    description: str

    def to_dict(self) -> dict:
        return {"moment": self.moment, "description": self.description}


@dataclass(frozen=True)
class ParentReport:
    """Periodic summary of a child's conversations for the parent portal.

    Built from the model's reading of recent messages; stored so the portal
    can show the same report until a newer one is due.
    """
    report_id: str
    child_id: str
    summary: str
    safety_status: str
    suggestions: Tuple[str, ...] = ()
    book_recommendations: Tuple[BookRecommendation, ...] = ()
    growth_moments: Tuple[GrowthMoment, ...] = ()
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(self, "book_recommendations", tuple(self.book_recommendations))
        object.__setattr__(self, "growth_moments", tuple(self.growth_moments))

    def to_dict(self) -> dict:
        return {
            "report_id": self.report_id,
            "child_id": self.child_id,
            "summary": self.summary,
            "safety_status": self.safety_status,
            "suggestions": list(self.suggestions),
            "book_recommendations": [book.to_dict() for book in self.book_recommendations],
            "growth_moments": [moment.to_dict() for moment in self.growth_moments],
            "created_at": self.created_at.isoformat(),
        }
