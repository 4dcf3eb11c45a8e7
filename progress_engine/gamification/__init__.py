"""
Progress and achievement engine

Given task-completion events, maintains per-user streaks and counters
and unlocks achievements from an immutable catalog:
- Achievement catalog
- Streak calculation
- Achievement evaluation
"""

from progress_engine.gamification.catalog import AchievementCatalog, DEFAULT_CATALOG, load_catalog
from progress_engine.gamification.streak_system import compute_next_streak
from progress_engine.gamification.achievement_system import (
    AchievementEvaluator,
    evaluate_achievements,
    format_achievement_unlock_message,
)

__all__ = [
    "AchievementCatalog",
    "DEFAULT_CATALOG",
    "load_catalog",
    "compute_next_streak",
    "AchievementEvaluator",
    "evaluate_achievements",
    "format_achievement_unlock_message",
]
