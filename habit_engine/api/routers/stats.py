from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from habit_engine.api.deps import get_cache, get_current_user_id, require_api_key
from habit_engine.cache import SafeCache
from habit_engine.db import get_db
from habit_engine.schemas.gamification import AchievementOut, StatsOut
from habit_engine.services.achievements import list_achievements_with_status
from habit_engine.services.gamification import GamificationLedger

router = APIRouter(tags=["gamification"], dependencies=[Depends(require_api_key)])


@router.get("/stats", response_model=StatsOut)
def get_stats(
    db: Session = Depends(get_db),
    cache: SafeCache = Depends(get_cache),
    user_id: str = Depends(get_current_user_id),
):
    return StatsOut.model_validate(GamificationLedger(db, cache).get_stats_view(user_id))


@router.get("/achievements", response_model=list[AchievementOut])
def get_achievements(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return list_achievements_with_status(db, user_id)
