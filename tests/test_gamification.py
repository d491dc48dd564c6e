import datetime as dt

from habit_engine import crud
from habit_engine.cache import CacheKeys
from habit_engine.services.gamification import GamificationLedger, StatsView, calculate_level, xp_for_next_level


def test_level_derivation():
    assert calculate_level(0) == 1
    assert calculate_level(99) == 1
    assert calculate_level(100) == 2
    assert calculate_level(450) == 5
    assert xp_for_next_level(0) == 100
    assert xp_for_next_level(130) == 70


def test_xp_never_negative(db, cache):
    ledger = GamificationLedger(db, cache)
    ledger.record_completion("u1", 10)
    for _ in range(5):
        stats = ledger.record_completion("u1", -10, increment_completions=False)
        assert stats.xp >= 0
        assert stats.total_completions >= 0
    assert stats.xp == 0
    assert stats.level == 1
    assert stats.total_completions == 0


def test_decrement_on_missing_row_creates_zero_row(db, cache):
    stats = GamificationLedger(db, cache).record_completion("u1", -10, increment_completions=False)
    assert stats.xp == 0
    assert stats.total_completions == 0


def test_level_consistent_after_every_mutation(db, cache):
    ledger = GamificationLedger(db, cache)
    for delta in (10, 50, 45, -30, 200, -500, 130):
        stats = ledger.record_completion("u1", delta, increment_completions=delta > 0)
        assert stats.level == stats.xp // 100 + 1


def test_streak_rules(db, cache):
    ledger = GamificationLedger(db, cache)
    day = dt.date(2024, 1, 1)

    stats = ledger.record_streak_for_date("u1", day)
    assert (stats.current_streak, stats.longest_streak) == (1, 1)

    stats = ledger.record_streak_for_date("u1", day + dt.timedelta(days=1))
    assert stats.current_streak == 2

    # same day again
    stats = ledger.record_streak_for_date("u1", day + dt.timedelta(days=1))
    assert stats.current_streak == 2
    assert stats.last_activity_date == day + dt.timedelta(days=1)

    stats = ledger.record_streak_for_date("u1", day + dt.timedelta(days=5))
    assert stats.current_streak == 1
    assert stats.longest_streak == 2


def test_streak_reset_after_gap_keeps_longest(db, cache):
    crud.upsert_user_stats(
        db,
        "u1",
        current_streak=5,
        longest_streak=5,
        last_activity_date=dt.date(2024, 1, 1),
    )
    stats = GamificationLedger(db, cache).record_streak_for_date("u1", dt.date(2024, 1, 5))
    assert stats.current_streak == 1
    assert stats.longest_streak == 5


def test_set_streak_never_lowers_longest(db, cache):
    ledger = GamificationLedger(db, cache)
    ledger.set_streak("u1", 7, dt.date(2024, 1, 7))
    stats = ledger.set_streak("u1", 2, dt.date(2024, 1, 7))
    assert stats.current_streak == 2
    assert stats.longest_streak == 7


def test_stats_view_defaults_when_absent(db, cache):
    view = GamificationLedger(db, cache).get_stats_view("nobody")
    assert view == StatsView()
    assert view.level == 1
    assert cache.get(CacheKeys.user_stats("nobody")) is None


def test_stats_view_is_cached_and_invalidated(db, cache):
    ledger = GamificationLedger(db, cache)
    ledger.record_completion("u1", 10)

    first = ledger.get_stats_view("u1")
    assert first.xp == 10
    assert cache.get(CacheKeys.user_stats("u1")) == first.to_cache()

    ledger.record_completion("u1", 10)
    assert cache.get(CacheKeys.user_stats("u1")) is None
    assert ledger.get_stats_view("u1").xp == 20


def test_stats_view_cache_roundtrip():
    view = StatsView(xp=120, level=2, current_streak=3, longest_streak=4, total_completions=12,
                     last_activity_date=dt.date(2024, 2, 1))
    assert StatsView.from_cache(view.to_cache()) == view
    assert view.xp_to_next_level == 80
