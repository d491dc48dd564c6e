from __future__ import annotations

import datetime as dt
from pydantic import BaseModel, Field, field_validator


class HabitCreate(BaseModel):
    title: str = Field(min_length=1, max_length=50)
    emoji: str = Field(default="✅", min_length=1, max_length=16)
    color: str = Field(default="pink", min_length=1, max_length=32)

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v


class HabitOrderIn(BaseModel):
    order: int = Field(ge=0, le=1000)


class HabitOut(BaseModel):
    id: str
    title: str
    emoji: str
    color: str
    order: int
    created_at: dt.datetime

    class Config:
        from_attributes = True


class HabitCreatedOut(BaseModel):
    habit: HabitOut
    unlocked_achievements: list[str]

    class Config:
        from_attributes = True


class HabitWithStatsOut(HabitOut):
    completed_today: bool
    streak: int
    completed_at: dt.datetime | None = None


class WeekStatsOut(BaseModel):
    completed: int
    total: int

    class Config:
        from_attributes = True


class CompletionOut(BaseModel):
    id: str
    habit_id: str
    date: dt.date
    completed_at: dt.datetime

    class Config:
        from_attributes = True

