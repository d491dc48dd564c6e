from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from habit_engine import crud
from habit_engine.cache import SafeCache
from habit_engine.services.ai_chat import chat_reply
from habit_engine.services.habits import HabitsService, utc_today
from habit_engine.settings import settings

SYSTEM_PROMPT = (
    "You are a warm habits coach for mothers and pregnant women. "
    "Encourage small, realistic steps, celebrate progress, never shame missed days. "
    "Answer briefly, in the user's language."
)


@dataclass(frozen=True)
class HabitsContext:
    habits: list[dict] = field(default_factory=list)
    current_streak: int = 0
    xp: int = 0
    level: int = 1
    recent_achievements: list[str] = field(default_factory=list)
    completion_rate: float = 0.0


def build_habits_context(db: Session, cache: SafeCache, user_id: str, today: dt.date | None = None) -> HabitsContext:
    today = today or utc_today()
    service = HabitsService(db, cache)
    habits = service.get_habits_with_stats(user_id, today=today)
    stats = service.ledger.get_stats_view(user_id)
    week = service.get_week_stats(user_id, today=today)

    titles = {a.id: a.title for a in crud.list_achievements(db)}
    recent = [
        titles.get(ua.achievement_id, ua.achievement_id)
        for ua in crud.list_unlocked_achievements(db, user_id)[: settings.COACH_RECENT_ACHIEVEMENTS]
    ]

    return HabitsContext(
        habits=[
            {"name": h.title, "emoji": h.emoji, "completed_today": h.completed_today, "streak": h.streak}
            for h in habits
        ],
        current_streak=stats.current_streak,
        xp=stats.xp,
        level=stats.level,
        recent_achievements=recent,
        completion_rate=(week.completed / week.total) if week.total else 0.0,
    )


def format_habits_context(context: HabitsContext) -> str:
    lines = []
    if context.habits:
        lines.append("Active habits:")
        for h in context.habits:
            suffix = " (done today)" if h["completed_today"] else ""
            lines.append(f"- {h['emoji']} {h['name']}{suffix}, streak {h['streak']}")
    else:
        lines.append("No habits yet.")
    lines.append(f"Activity streak: {context.current_streak} days. XP: {context.xp}. Level: {context.level}.")
    lines.append(f"Last 7 days completion rate: {round(context.completion_rate * 100)}%.")
    if context.recent_achievements:
        lines.append("Recent achievements: " + ", ".join(context.recent_achievements))
    return "\n".join(lines)


def coach_reply(message: str, context: HabitsContext) -> Optional[str]:
    return chat_reply(
        message,
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_CHAT_MODEL,
        system_prompt=SYSTEM_PROMPT,
        context_prompt=format_habits_context(context),
    )
