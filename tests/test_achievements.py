from habit_engine import crud
from habit_engine.services.achievements import (
    ACHIEVEMENT_CATALOG,
    check_and_unlock,
    check_habit_count_achievements,
    list_achievements_with_status,
    seed_catalog,
)
from habit_engine.services.gamification import StatsView


def test_unlock_is_idempotent(db):
    first = crud.unlock_achievement(db, "u1", "streak_3")
    second = crud.unlock_achievement(db, "u1", "streak_3")

    assert first is not None
    assert second is None
    assert len(crud.list_unlocked_achievements(db, "u1")) == 1


def test_streak_threshold_unlocks_once(db):
    assert check_and_unlock(db, "u1", StatsView(current_streak=3)) == ["streak_3"]
    assert check_and_unlock(db, "u1", StatsView(current_streak=4)) == []


def test_skipped_threshold_still_unlocks(db):
    unlocked = check_and_unlock(db, "u1", StatsView(total_completions=55, level=6))
    assert set(unlocked) == {"completions_10", "completions_50", "level_5"}


def test_below_thresholds_unlock_nothing(db):
    assert check_and_unlock(db, "u1", StatsView(current_streak=2, total_completions=9, level=4)) == []


def test_habit_count_achievements(db):
    assert check_habit_count_achievements(db, "u1", 1) == ["first_habit"]
    assert check_habit_count_achievements(db, "u1", 2) == []
    assert check_habit_count_achievements(db, "u1", 5) == ["habit_master"]


def test_achievements_scoped_per_user(db):
    check_and_unlock(db, "u1", StatsView(current_streak=3))
    assert check_and_unlock(db, "u2", StatsView(current_streak=3)) == ["streak_3"]


def test_status_listing(db):
    crud.unlock_achievement(db, "u1", "level_5")
    listing = list_achievements_with_status(db, "u1")

    assert len(listing) == len(ACHIEVEMENT_CATALOG)
    by_id = {a["id"]: a for a in listing}
    assert by_id["level_5"]["unlocked"] is True
    assert by_id["level_5"]["unlocked_at"] is not None
    assert by_id["streak_3"]["unlocked"] is False
    assert by_id["streak_3"]["unlocked_at"] is None


def test_seed_is_idempotent(db):
    assert seed_catalog(db) == 0
    assert len(crud.list_achievements(db)) == len(ACHIEVEMENT_CATALOG)
