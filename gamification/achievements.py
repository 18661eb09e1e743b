# gamification/achievements.py
"""
Milestone achievement catalog.

Each requirement is a mapping of stat name -> minimum value, checked against
GamificationProfile.stats(). Adding an achievement is a data entry here.
"""
from dataclasses import dataclass, field
from typing import Dict, Mapping


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    points: int
    icon: str
    requirement: Mapping[str, float] = field(default_factory=dict)

    def is_met(self, stats: Mapping[str, float]) -> bool:
        if not self.requirement:
            return False
        return all(stats.get(stat, 0) >= minimum for stat, minimum in self.requirement.items())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "points": self.points,
            "icon": self.icon,
        }


MILESTONES = (
    AchievementDefinition(
        "first_help", "First Help", "Complete your first request",
        10, "🎯", {"requests_completed": 1},
    ),
    AchievementDefinition(
        "five_helps", "Helping Hand", "Complete 5 requests",
        25, "✋", {"requests_completed": 5},
    ),
    AchievementDefinition(
        "ten_helps", "Community Star", "Complete 10 requests",
        50, "⭐", {"requests_completed": 10},
    ),
    AchievementDefinition(
        "twenty_five_helps", "Super Volunteer", "Complete 25 requests",
        100, "🦸", {"requests_completed": 25},
    ),
    AchievementDefinition(
        "fifty_helps", "Community Hero", "Complete 50 requests",
        200, "🏅", {"requests_completed": 50},
    ),
    AchievementDefinition(
        "hundred_helps", "Legend", "Complete 100 requests",
        500, "👑", {"requests_completed": 100},
    ),
    AchievementDefinition(
        "perfect_rating", "Five Star Service", "Maintain 5.0 average rating with 10+ reviews",
        75, "🌟", {"average_rating": 5.0, "ratings_count": 10},
    ),
    AchievementDefinition(
        "speed_demon", "Speed Demon", "Complete 5 requests within 24 hours of claiming",
        50, "⚡", {"fast_completions": 5},
    ),
    AchievementDefinition(
        "week_streak", "Week Warrior", "Help someone every day for 7 days",
        100, "🔥", {"consecutive_days": 7},
    ),
    AchievementDefinition(
        "month_streak", "Monthly Champion", "Help someone every day for 30 days",
        300, "💪", {"consecutive_days": 30},
    ),
    AchievementDefinition(
        "category_master", "Category Master", "Complete 10 requests in a single category",
        75, "🎓", {"category_completions": 10},
    ),
    AchievementDefinition(
        "early_bird", "Early Bird", "Claim 10 requests within 1 hour of posting",
        50, "🐦", {"early_claims_count": 10},
    ),
)

ACHIEVEMENTS_BY_ID: Dict[str, AchievementDefinition] = {a.id: a for a in MILESTONES}
