from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from habit_engine import crud
from habit_engine.cache import CacheKeys, CacheTTL, SafeCache
from habit_engine.models.gamification import UserStats
from habit_engine.settings import settings

logger = logging.getLogger("habit_engine.gamification")


def calculate_level(xp: int) -> int:
    return max(0, int(xp)) // settings.XP_PER_LEVEL + 1


def xp_for_next_level(xp: int) -> int:
    return calculate_level(xp) * settings.XP_PER_LEVEL - max(0, int(xp))


@dataclass(frozen=True)
class StatsView:
    xp: int = 0
    level: int = 1
    current_streak: int = 0
    longest_streak: int = 0
    total_completions: int = 0
    last_activity_date: dt.date | None = None

    @property
    def xp_to_next_level(self) -> int:
        return xp_for_next_level(self.xp)

    @classmethod
    def from_model(cls, stats: UserStats) -> "StatsView":
        return cls(
            xp=int(stats.xp or 0),
            level=int(stats.level or 1),
            current_streak=int(stats.current_streak or 0),
            longest_streak=int(stats.longest_streak or 0),
            total_completions=int(stats.total_completions or 0),
            last_activity_date=stats.last_activity_date,
        )

    def to_cache(self) -> dict:
        return {
            "xp": self.xp,
            "level": self.level,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "total_completions": self.total_completions,
            "last_activity_date": self.last_activity_date.isoformat() if self.last_activity_date else None,
        }

    @classmethod
    def from_cache(cls, data: dict) -> "StatsView":
        last = data.get("last_activity_date")
        return cls(
            xp=int(data.get("xp", 0)),
            level=int(data.get("level", 1)),
            current_streak=int(data.get("current_streak", 0)),
            longest_streak=int(data.get("longest_streak", 0)),
            total_completions=int(data.get("total_completions", 0)),
            last_activity_date=dt.date.fromisoformat(last) if last else None,
        )


class GamificationLedger:
    """Per-user XP, level and activity streak bookkeeping.

    Streaks grow incrementally via ``record_streak_for_date``. Reversals do
    not shrink them here; the caller recomputes the streak from the store
    and writes it back with ``set_streak``.

    Every mutation is a read-modify-write on the single ``user_stats`` row
    with no locking, so concurrent events for one user may lose an update.
    """

    def __init__(self, db: Session, cache: SafeCache) -> None:
        self.db = db
        self.cache = cache

    def _invalidate(self, user_id: str) -> None:
        self.cache.delete(CacheKeys.user_stats(user_id))

    def record_completion(self, user_id: str, xp_delta: int, increment_completions: bool = True) -> UserStats:
        existing = crud.get_user_stats(self.db, user_id)
        if existing:
            xp = max(0, existing.xp + xp_delta)
            total = existing.total_completions + 1 if increment_completions else max(0, existing.total_completions - 1)
        else:
            xp = max(0, xp_delta)
            total = 1 if increment_completions else 0

        stats = crud.upsert_user_stats(
            self.db,
            user_id,
            xp=xp,
            level=calculate_level(xp),
            total_completions=total,
        )
        self._invalidate(user_id)
        logger.debug("XP updated for user=%s delta=%s xp=%s level=%s", user_id, xp_delta, stats.xp, stats.level)
        return stats

    def record_streak_for_date(self, user_id: str, day: dt.date) -> UserStats:
        existing = crud.get_user_stats(self.db, user_id)
        last = existing.last_activity_date if existing else None
        current = existing.current_streak if existing else 0
        longest = existing.longest_streak if existing else 0

        if last is None:
            current = 1
        else:
            gap = (day - last).days
            if gap == 1:
                current += 1
            elif gap > 1:
                current = 1
            # gap <= 0: same day (or an older event), streak unchanged

        stats = crud.upsert_user_stats(
            self.db,
            user_id,
            current_streak=current,
            longest_streak=max(longest, current),
            last_activity_date=max(last, day) if last else day,
        )
        self._invalidate(user_id)
        return stats

    def set_streak(self, user_id: str, streak: int, last_activity_date: dt.date | None) -> UserStats:
        existing = crud.get_user_stats(self.db, user_id)
        longest = existing.longest_streak if existing else 0
        streak = max(0, int(streak))
        stats = crud.upsert_user_stats(
            self.db,
            user_id,
            current_streak=streak,
            longest_streak=max(longest, streak),
            last_activity_date=last_activity_date,
        )
        self._invalidate(user_id)
        return stats

    def get_stats_view(self, user_id: str) -> StatsView:
        key = CacheKeys.user_stats(user_id)
        cached = self.cache.get(key)
        if cached is not None:
            return StatsView.from_cache(cached)

        stats = crud.get_user_stats(self.db, user_id)
        if not stats:
            return StatsView()
        view = StatsView.from_model(stats)
        self.cache.set(key, view.to_cache(), CacheTTL.user_stats())
        return view
