# gamification/levels.py
"""Volunteer levels. Level is a pure function of total points."""
from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True)
class Level:
    level: int
    name: str
    min_points: int
    badge: str


# Sorted by min_points
VOLUNTEER_LEVELS = (
    Level(1, "Newcomer", 0, "🌱"),
    Level(2, "Helper", 50, "🤝"),
    Level(3, "Contributor", 150, "⭐"),
    Level(4, "Champion", 300, "🏆"),
    Level(5, "Hero", 500, "💎"),
    Level(6, "Legend", 1000, "👑"),
)

_THRESHOLDS = [lvl.min_points for lvl in VOLUNTEER_LEVELS]


def calculate_level(points: int) -> Level:
    """Highest level whose threshold does not exceed ``points``."""
    index = bisect_right(_THRESHOLDS, points) - 1
    # Negative totals never drop below the first level
    return VOLUNTEER_LEVELS[max(index, 0)]


def next_level(points: int):
    """Level after the current one, or None at the top."""
    current = calculate_level(points)
    if current is VOLUNTEER_LEVELS[-1]:
        return None
    return VOLUNTEER_LEVELS[current.level]
