from __future__ import annotations

import datetime as dt
from pydantic import BaseModel, Field


class StatsOut(BaseModel):
    xp: int
    level: int
    current_streak: int
    longest_streak: int
    total_completions: int
    last_activity_date: dt.date | None
    xp_to_next_level: int

    class Config:
        from_attributes = True


class CompletionResultOut(BaseModel):
    changed: bool
    already_completed: bool
    stats: StatsOut
    unlocked_achievements: list[str]

    class Config:
        from_attributes = True


class AchievementOut(BaseModel):
    id: str
    title: str
    description: str
    emoji: str
    requirement: int
    type: str
    unlocked: bool
    unlocked_at: dt.datetime | None


class CoachIn(BaseModel):
    message: str = Field(min_length=1, max_length=2000)


class CoachOut(BaseModel):
    reply: str | None
    context: str
