from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from habit_engine import crud
from habit_engine.cache import CacheKeys, CacheTTL, SafeCache
from habit_engine.models.habit import Habit, HabitCompletion
from habit_engine.services import achievements
from habit_engine.services.gamification import GamificationLedger, StatsView
from habit_engine.services.streaks import calculate_streak, count_active_days_backward
from habit_engine.settings import settings

logger = logging.getLogger("habit_engine.habits")


def utc_today() -> dt.date:
    # Same clock as the utcnow() timestamps on stored rows
    return dt.datetime.utcnow().date()


class HabitLimitError(ValueError):
    pass


class HabitNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class HabitWithStats:
    id: str
    user_id: str
    title: str
    emoji: str
    color: str
    order: int
    created_at: dt.datetime
    completed_today: bool
    streak: int
    completed_at: dt.datetime | None = None


@dataclass(frozen=True)
class WeekStats:
    completed: int
    total: int


@dataclass(frozen=True)
class CompletionResult:
    # False when nothing changed: duplicate complete, or uncomplete with no record
    changed: bool
    stats: StatsView
    already_completed: bool = False
    unlocked_achievements: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class HabitCreated:
    habit: Habit
    unlocked_achievements: list[str] = field(default_factory=list)


def _completion_to_cache(completion: HabitCompletion) -> dict:
    return {
        "id": completion.id,
        "habit_id": completion.habit_id,
        "date": completion.date.isoformat(),
        "completed_at": completion.completed_at.isoformat() if completion.completed_at else None,
    }


class HabitsService:
    def __init__(self, db: Session, cache: SafeCache, ledger: GamificationLedger | None = None) -> None:
        self.db = db
        self.cache = cache
        self.ledger = ledger or GamificationLedger(db, cache)

    @staticmethod
    def _lookback_start(today: dt.date) -> dt.date:
        return today - dt.timedelta(days=settings.HISTORY_LOOKBACK_DAYS)

    def _completions_key(self, user_id: str, today: dt.date) -> str:
        return CacheKeys.habit_completions(user_id, self._lookback_start(today).isoformat(), today.isoformat())

    def _require_habit(self, user_id: str, habit_id: str) -> Habit:
        habit = crud.get_user_habit(self.db, user_id, habit_id)
        if not habit:
            raise HabitNotFoundError(f"Habit {habit_id} not found")
        return habit

    def _load_completions(self, user_id: str, habit_ids: list[str], today: dt.date) -> list[dict]:
        key = self._completions_key(user_id, today)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        completions = crud.list_completions_for_habits_in_range(
            self.db, habit_ids, self._lookback_start(today), today
        )
        payload = [_completion_to_cache(c) for c in completions]
        self.cache.set(key, payload, CacheTTL.habit_completions())
        return payload

    def get_habits_with_stats(self, user_id: str, today: dt.date | None = None) -> list[HabitWithStats]:
        habits = crud.list_habits(self.db, user_id)
        if not habits:
            return []

        today = today or utc_today()
        completions = self._load_completions(user_id, [h.id for h in habits], today)

        dates_by_habit: dict[str, set[dt.date]] = defaultdict(set)
        completed_at_today: dict[str, dt.datetime | None] = {}
        for c in completions:
            day = dt.date.fromisoformat(c["date"])
            dates_by_habit[c["habit_id"]].add(day)
            if day == today:
                completed_at_today[c["habit_id"]] = (
                    dt.datetime.fromisoformat(c["completed_at"]) if c.get("completed_at") else None
                )

        result: list[HabitWithStats] = []
        for habit in habits:
            dates = dates_by_habit.get(habit.id, set())
            result.append(
                HabitWithStats(
                    id=habit.id,
                    user_id=habit.user_id,
                    title=habit.title,
                    emoji=habit.emoji,
                    color=habit.color,
                    order=habit.order,
                    created_at=habit.created_at,
                    completed_today=today in dates,
                    streak=calculate_streak(dates, today, settings.MAX_STREAK_DAYS),
                    completed_at=completed_at_today.get(habit.id),
                )
            )
        return result

    def get_week_stats(self, user_id: str, today: dt.date | None = None) -> WeekStats:
        habits = crud.list_habits(self.db, user_id)
        if not habits:
            return WeekStats(completed=0, total=0)

        today = today or utc_today()
        start = today - dt.timedelta(days=settings.WEEK_DAYS - 1)
        completions = crud.list_completions_for_habits_in_range(self.db, [h.id for h in habits], start, today)
        # Not adjusted for habits created mid-week
        return WeekStats(completed=len(completions), total=len(habits) * settings.WEEK_DAYS)

    def get_history(self, user_id: str, start: dt.date, end: dt.date) -> list[HabitCompletion]:
        if end < start:
            raise ValueError("start must be on or before end")
        return crud.list_completions_in_range(self.db, user_id, start, end)

    def create_habit(self, user_id: str, *, title: str, emoji: str, color: str) -> HabitCreated:
        existing = crud.list_habits(self.db, user_id)
        if len(existing) >= settings.MAX_HABITS:
            raise HabitLimitError(f"Habit limit of {settings.MAX_HABITS} reached")

        max_order = max((h.order for h in existing), default=0)
        habit = crud.insert_habit(
            self.db,
            user_id,
            title=title.strip(),
            emoji=emoji,
            color=color,
            order=max_order + 1,
        )
        logger.info("Habit created user=%s habit=%s", user_id, habit.id)
        unlocked = achievements.check_habit_count_achievements(self.db, user_id, len(existing) + 1)
        return HabitCreated(habit=habit, unlocked_achievements=unlocked)

    def delete_habit(self, user_id: str, habit_id: str, today: dt.date | None = None) -> None:
        habit = self._require_habit(user_id, habit_id)
        crud.delete_habit(self.db, habit.id)
        self.invalidate_habit_caches(user_id, today or utc_today())
        logger.info("Habit deleted user=%s habit=%s", user_id, habit_id)

    def reorder_habit(self, user_id: str, habit_id: str, order: int) -> Habit:
        habit = self._require_habit(user_id, habit_id)
        return crud.update_habit_order(self.db, habit.id, order)

    def complete_habit(self, user_id: str, habit_id: str, today: dt.date | None = None) -> CompletionResult:
        today = today or utc_today()
        habit = self._require_habit(user_id, habit_id)

        if crud.get_completion(self.db, habit.id, today):
            return CompletionResult(changed=False, already_completed=True, stats=self.ledger.get_stats_view(user_id))

        crud.insert_completion(self.db, user_id, habit.id, today)
        self.invalidate_habit_caches(user_id, today)

        self.ledger.record_completion(user_id, settings.XP_PER_COMPLETION, increment_completions=True)
        stats = StatsView.from_model(self.ledger.record_streak_for_date(user_id, today))
        unlocked = achievements.check_and_unlock(self.db, user_id, stats)
        logger.info("Habit completed user=%s habit=%s day=%s", user_id, habit.id, today)
        return CompletionResult(changed=True, stats=stats, unlocked_achievements=unlocked)

    def uncomplete_habit(self, user_id: str, habit_id: str, today: dt.date | None = None) -> CompletionResult:
        today = today or utc_today()
        habit = self._require_habit(user_id, habit_id)

        if not crud.delete_completion(self.db, habit.id, today):
            return CompletionResult(changed=False, stats=self.ledger.get_stats_view(user_id))

        self.ledger.record_completion(user_id, -settings.XP_PER_COMPLETION, increment_completions=False)
        streak, last_active = self._recompute_activity_streak(user_id, today)
        stats = StatsView.from_model(self.ledger.set_streak(user_id, streak, last_active))
        self.invalidate_habit_caches(user_id, today)
        logger.info("Habit completion reversed user=%s habit=%s day=%s streak=%s", user_id, habit.id, today, streak)
        return CompletionResult(changed=True, stats=stats)

    def _recompute_activity_streak(self, user_id: str, today: dt.date) -> tuple[int, dt.date | None]:
        def has_activity(day: dt.date) -> bool:
            return crud.count_completions_on_day(self.db, user_id, day) > 0

        # Today may still be pending; the chain then ends yesterday
        start = today if has_activity(today) else today - dt.timedelta(days=1)
        streak = count_active_days_backward(has_activity, start, settings.MAX_STREAK_DAYS)
        return streak, (start if streak else None)

    def invalidate_habit_caches(self, user_id: str, today: dt.date) -> None:
        self.cache.delete(self._completions_key(user_id, today))
        self.cache.delete(CacheKeys.user_stats(user_id))
