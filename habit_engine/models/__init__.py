from .base import Base
from .habit import Habit, HabitCompletion
from .gamification import Achievement, UserAchievement, UserStats

__all__ = [
    "Base",
    "Habit",
    "HabitCompletion",
    "UserStats",
    "Achievement",
    "UserAchievement",
]
