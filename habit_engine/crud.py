from __future__ import annotations

import datetime as dt
from typing import Iterable

from sqlalchemy import select, and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from habit_engine.models.habit import Habit, HabitCompletion
from habit_engine.models.gamification import Achievement, UserAchievement, UserStats


# Habits

def list_habits(db: Session, user_id: str) -> list[Habit]:
    return list(
        db.execute(
            select(Habit)
            .where(Habit.user_id == user_id)
            .order_by(Habit.order.asc(), Habit.created_at.asc())
        ).scalars()
    )


def get_habit(db: Session, habit_id: str) -> Habit | None:
    return db.get(Habit, habit_id)


def get_user_habit(db: Session, user_id: str, habit_id: str) -> Habit | None:
    return db.execute(
        select(Habit).where(and_(Habit.id == habit_id, Habit.user_id == user_id))
    ).scalar_one_or_none()


def insert_habit(db: Session, user_id: str, *, title: str, emoji: str, color: str, order: int) -> Habit:
    habit = Habit(user_id=user_id, title=title, emoji=emoji, color=color, order=order)
    db.add(habit)
    db.commit()
    db.refresh(habit)
    return habit


def delete_habit(db: Session, habit_id: str) -> bool:
    habit = db.get(Habit, habit_id)
    if not habit:
        return False
    # ORM cascade removes the completions
    db.delete(habit)
    db.commit()
    return True


def update_habit_order(db: Session, habit_id: str, order: int) -> Habit | None:
    habit = db.get(Habit, habit_id)
    if not habit:
        return None
    habit.order = order
    db.add(habit)
    db.commit()
    db.refresh(habit)
    return habit


# Completions

def get_completion(db: Session, habit_id: str, day: dt.date) -> HabitCompletion | None:
    return db.execute(
        select(HabitCompletion).where(
            and_(HabitCompletion.habit_id == habit_id, HabitCompletion.date == day)
        )
    ).scalars().first()


def list_completions_in_range(db: Session, user_id: str, start: dt.date, end: dt.date) -> list[HabitCompletion]:
    return list(
        db.execute(
            select(HabitCompletion)
            .where(
                and_(
                    HabitCompletion.user_id == user_id,
                    HabitCompletion.date >= start,
                    HabitCompletion.date <= end,
                )
            )
            .order_by(HabitCompletion.date.asc(), HabitCompletion.completed_at.asc())
        ).scalars()
    )


def list_completions_for_habits_in_range(
    db: Session,
    habit_ids: Iterable[str],
    start: dt.date,
    end: dt.date,
) -> list[HabitCompletion]:
    ids = list(habit_ids)
    if not ids:
        return []
    return list(
        db.execute(
            select(HabitCompletion)
            .where(
                and_(
                    HabitCompletion.habit_id.in_(ids),
                    HabitCompletion.date >= start,
                    HabitCompletion.date <= end,
                )
            )
            .order_by(HabitCompletion.date.asc())
        ).scalars()
    )


def count_completions_on_day(db: Session, user_id: str, day: dt.date) -> int:
    return int(
        db.execute(
            select(func.count())
            .select_from(HabitCompletion)
            .where(and_(HabitCompletion.user_id == user_id, HabitCompletion.date == day))
        ).scalar_one()
    )


def insert_completion(db: Session, user_id: str, habit_id: str, day: dt.date) -> HabitCompletion:
    completion = HabitCompletion(habit_id=habit_id, user_id=user_id, date=day)
    db.add(completion)
    db.commit()
    db.refresh(completion)
    return completion


def delete_completion(db: Session, habit_id: str, day: dt.date) -> bool:
    completion = get_completion(db, habit_id, day)
    if not completion:
        return False
    db.delete(completion)
    db.commit()
    return True


# User stats

def get_user_stats(db: Session, user_id: str) -> UserStats | None:
    return db.execute(select(UserStats).where(UserStats.user_id == user_id)).scalar_one_or_none()


def upsert_user_stats(db: Session, user_id: str, **fields) -> UserStats:
    stats = get_user_stats(db, user_id)
    if not stats:
        stats = UserStats(
            user_id=user_id,
            xp=0,
            level=1,
            current_streak=0,
            longest_streak=0,
            total_completions=0,
        )
    for k, v in fields.items():
        setattr(stats, k, v)
    db.add(stats)
    db.commit()
    db.refresh(stats)
    return stats


# Achievements

def list_achievements(db: Session) -> list[Achievement]:
    return list(db.execute(select(Achievement).order_by(Achievement.type.asc(), Achievement.requirement.asc())).scalars())


def seed_achievements(db: Session, catalog: Iterable[dict]) -> int:
    existing = set(db.execute(select(Achievement.id)).scalars())
    created = 0
    for entry in catalog:
        if entry["id"] in existing:
            continue
        db.add(Achievement(**entry))
        created += 1
    if created:
        db.commit()
    return created


def list_unlocked_achievements(db: Session, user_id: str) -> list[UserAchievement]:
    return list(
        db.execute(
            select(UserAchievement)
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.unlocked_at.desc())
        ).scalars()
    )


def unlock_achievement(db: Session, user_id: str, achievement_id: str) -> UserAchievement | None:
    existing = db.execute(
        select(UserAchievement).where(
            and_(UserAchievement.user_id == user_id, UserAchievement.achievement_id == achievement_id)
        )
    ).scalar_one_or_none()
    if existing:
        return None
    unlocked = UserAchievement(user_id=user_id, achievement_id=achievement_id)
    db.add(unlocked)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request unlocked it first
        db.rollback()
        return None
    db.refresh(unlocked)
    return unlocked
