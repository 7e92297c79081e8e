"""Tests for mission and parent report models."""
from datetime import datetime

from bravecall.shared.models import (
    BookRecommendation,
    GrowthMoment,
    Mission,
    MissionDifficulty,
    ParentReport,
)


class TestMission:
    """Tests for Mission."""

    def test_steps_become_tuple(self):
        mission = Mission(
            title="Say Hello",
            description="Say hi to your friend!",
            difficulty=MissionDifficulty.EASY,
            points=20,
            steps=["Say hi to someone", "Smile when you say it"],
        )

        assert mission.steps == ("Say hi to someone", "Smile when you say it")
        assert mission.to_dict()["difficulty"] == "easy"
        assert mission.to_dict()["steps"] == ["Say hi to someone", "Smile when you say it"]


class TestParentReport:
    """Tests for ParentReport."""

    def test_to_dict(self):
        report = ParentReport(
            report_id="r1",
            child_id="c1",
            summary="Alex loves sea turtles.",
            safety_status="No concerns",
            suggestions=["Visit the aquarium"],
            book_recommendations=[BookRecommendation("Turtle Time", "A. Author", "Loves turtles")],
            growth_moments=[GrowthMoment("Asked for help", "Asked how to make a friend")],
            created_at=datetime(2026, 10, 12, 8, 0),
        )

        data = report.to_dict()

        assert data["suggestions"] == ["Visit the aquarium"]
        assert data["book_recommendations"] == [
            {"title": "Turtle Time", "author": "A. Author", "reason": "Loves turtles"}
        ]
        assert data["growth_moments"] == [
            {"moment": "Asked for help", "description": "Asked how to make a friend"}
        ]
        assert data["created_at"] == "2026-10-12T08:00:00"
