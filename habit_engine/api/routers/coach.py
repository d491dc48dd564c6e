from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from habit_engine.api.deps import get_cache, get_current_user_id, require_api_key
from habit_engine.cache import SafeCache
from habit_engine.db import get_db
from habit_engine.schemas.gamification import CoachIn, CoachOut
from habit_engine.services.coach import build_habits_context, coach_reply, format_habits_context

router = APIRouter(prefix="/coach", tags=["coach"], dependencies=[Depends(require_api_key)])


@router.post("/habits", response_model=CoachOut)
def habits_coach(
    payload: CoachIn,
    db: Session = Depends(get_db),
    cache: SafeCache = Depends(get_cache),
    user_id: str = Depends(get_current_user_id),
):
    context = build_habits_context(db, cache, user_id)
    return CoachOut(reply=coach_reply(payload.message, context), context=format_habits_context(context))
