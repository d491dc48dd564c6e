from __future__ import annotations

import datetime as dt
from typing import Callable, Container

DEFAULT_MAX_DAYS = 365


def calculate_streak(
    completion_dates: Container[dt.date],
    reference_date: dt.date,
    max_days: int = DEFAULT_MAX_DAYS,
) -> int:
    """Count consecutive completed days ending at ``reference_date``.

    Walks backward one day at a time and stops at the first missing day,
    or after ``max_days`` steps. Returns 0 when ``reference_date`` itself
    is not in ``completion_dates``.
    """
    return count_active_days_backward(lambda day: day in completion_dates, reference_date, max_days)


def count_active_days_backward(
    has_activity: Callable[[dt.date], bool],
    reference_date: dt.date,
    max_days: int = DEFAULT_MAX_DAYS,
) -> int:
    streak = 0
    day = reference_date
    while streak < max_days:
        if not has_activity(day):
            break
        streak += 1
        day -= dt.timedelta(days=1)
    return streak
