import datetime as dt

from habit_engine.services.streaks import calculate_streak, count_active_days_backward

TODAY = dt.date(2024, 3, 10)


def _days_back(k: int) -> set[dt.date]:
    return {TODAY - dt.timedelta(days=i) for i in range(k + 1)}


def test_full_run_counts_every_day():
    for k in (0, 1, 6, 29):
        assert calculate_streak(_days_back(k), TODAY) == k + 1


def test_gap_truncates_streak():
    dates = _days_back(9)
    dates.discard(TODAY - dt.timedelta(days=4))
    assert calculate_streak(dates, TODAY) == 4


def test_missing_today_is_zero():
    dates = _days_back(5)
    dates.discard(TODAY)
    assert calculate_streak(dates, TODAY) == 0
    assert calculate_streak(set(), TODAY) == 0


def test_streak_is_capped():
    dates = {TODAY - dt.timedelta(days=i) for i in range(500)}
    assert calculate_streak(dates, TODAY) == 365
    assert calculate_streak(dates, TODAY, max_days=10) == 10


def test_backward_count_uses_predicate():
    seen = []

    def has_activity(day):
        seen.append(day)
        return day >= TODAY - dt.timedelta(days=2)

    assert count_active_days_backward(has_activity, TODAY) == 3
    # stops right after the first empty day
    assert seen[-1] == TODAY - dt.timedelta(days=3)
