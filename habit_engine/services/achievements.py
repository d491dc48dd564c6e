from __future__ import annotations

import datetime as dt
import logging
from typing import Callable

from sqlalchemy.orm import Session

from habit_engine import crud
from habit_engine.services.gamification import StatsView

logger = logging.getLogger("habit_engine.achievements")


ACHIEVEMENT_CATALOG: list[dict] = [
    {"id": "first_habit", "title": "Primeiro Passo", "description": "Crie seu primeiro hábito", "emoji": "🎯", "requirement": 1, "type": "habit_count"},
    {"id": "habit_master", "title": "Organizadora", "description": "Crie 5 hábitos", "emoji": "📋", "requirement": 5, "type": "habit_count"},
    {"id": "streak_3", "title": "Consistente", "description": "Mantenha 3 dias de sequência", "emoji": "🔥", "requirement": 3, "type": "streak"},
    {"id": "streak_7", "title": "Uma Semana", "description": "Complete 7 dias seguidos", "emoji": "✨", "requirement": 7, "type": "streak"},
    {"id": "streak_30", "title": "Mãe Dedicada", "description": "Incrível! 30 dias de sequência", "emoji": "👑", "requirement": 30, "type": "streak"},
    {"id": "completions_10", "title": "Iniciante", "description": "Complete 10 hábitos", "emoji": "🌱", "requirement": 10, "type": "completions"},
    {"id": "completions_50", "title": "Comprometida", "description": "Complete 50 hábitos", "emoji": "🌟", "requirement": 50, "type": "completions"},
    {"id": "completions_100", "title": "Determinada", "description": "100 hábitos completados!", "emoji": "💪", "requirement": 100, "type": "completions"},
    {"id": "level_5", "title": "Nível 5", "description": "Alcance o nível 5", "emoji": "⭐", "requirement": 5, "type": "level"},
    {"id": "level_10", "title": "Nível 10", "description": "Alcance o nível 10", "emoji": "🎖️", "requirement": 10, "type": "level"},
]

_STAT_BY_TYPE: dict[str, Callable[[StatsView], int]] = {
    "streak": lambda stats: stats.current_streak,
    "completions": lambda stats: stats.total_completions,
    "level": lambda stats: stats.level,
}


def _threshold_rule(stat: Callable[[StatsView], int], requirement: int) -> Callable[[StatsView], bool]:
    return lambda stats: stat(stats) >= requirement


# Thresholds use >=; the store's idempotent unlock keeps each one firing once
# even when a counter skips past the exact value.
ACHIEVEMENT_RULES: tuple[tuple[Callable[[StatsView], bool], str], ...] = tuple(
    (_threshold_rule(_STAT_BY_TYPE[entry["type"]], entry["requirement"]), entry["id"])
    for entry in ACHIEVEMENT_CATALOG
    if entry["type"] in _STAT_BY_TYPE
)

HABIT_COUNT_RULES: tuple[tuple[int, str], ...] = tuple(
    (entry["requirement"], entry["id"]) for entry in ACHIEVEMENT_CATALOG if entry["type"] == "habit_count"
)


def seed_catalog(db: Session) -> int:
    return crud.seed_achievements(db, ACHIEVEMENT_CATALOG)


def _unlock_all(db: Session, user_id: str, achievement_ids: list[str]) -> list[str]:
    unlocked: list[str] = []
    for achievement_id in achievement_ids:
        if crud.unlock_achievement(db, user_id, achievement_id):
            unlocked.append(achievement_id)
    if unlocked:
        logger.info("Achievements unlocked for user=%s: %s", user_id, ", ".join(unlocked))
    return unlocked


def check_and_unlock(db: Session, user_id: str, stats: StatsView) -> list[str]:
    candidates = [achievement_id for predicate, achievement_id in ACHIEVEMENT_RULES if predicate(stats)]
    return _unlock_all(db, user_id, candidates)


def check_habit_count_achievements(db: Session, user_id: str, habit_count: int) -> list[str]:
    candidates = [achievement_id for requirement, achievement_id in HABIT_COUNT_RULES if habit_count >= requirement]
    return _unlock_all(db, user_id, candidates)


def list_achievements_with_status(db: Session, user_id: str) -> list[dict]:
    unlocked_at: dict[str, dt.datetime] = {
        ua.achievement_id: ua.unlocked_at for ua in crud.list_unlocked_achievements(db, user_id)
    }
    return [
        {
            "id": a.id,
            "title": a.title,
            "description": a.description,
            "emoji": a.emoji,
            "requirement": a.requirement,
            "type": a.type,
            "unlocked": a.id in unlocked_at,
            "unlocked_at": unlocked_at.get(a.id),
        }
        for a in crud.list_achievements(db)
    ]
