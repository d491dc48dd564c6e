from __future__ import annotations

import datetime as dt
from fastapi import APIRouter, Depends, HTTPException, Query

from habit_engine.api.deps import get_current_user_id, get_habits_service, require_api_key
from habit_engine.schemas.gamification import CompletionResultOut
from habit_engine.schemas.habits import (
    CompletionOut,
    HabitCreate,
    HabitCreatedOut,
    HabitOrderIn,
    HabitOut,
    HabitWithStatsOut,
    WeekStatsOut,
)
from habit_engine.services.habits import HabitLimitError, HabitNotFoundError, HabitsService

router = APIRouter(prefix="/habits", tags=["habits"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=list[HabitWithStatsOut])
def list_habits(service: HabitsService = Depends(get_habits_service), user_id: str = Depends(get_current_user_id)):
    return [HabitWithStatsOut.model_validate(h) for h in service.get_habits_with_stats(user_id)]


@router.get("/week-stats", response_model=WeekStatsOut)
def week_stats(service: HabitsService = Depends(get_habits_service), user_id: str = Depends(get_current_user_id)):
    return WeekStatsOut.model_validate(service.get_week_stats(user_id))


@router.get("/history", response_model=list[CompletionOut])
def history(
    start_date: dt.date = Query(...),
    end_date: dt.date = Query(...),
    service: HabitsService = Depends(get_habits_service),
    user_id: str = Depends(get_current_user_id),
):
    try:
        completions = service.get_history(user_id, start_date, end_date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return [CompletionOut.model_validate(c) for c in completions]


@router.post("", response_model=HabitCreatedOut)
def create_habit(
    payload: HabitCreate,
    service: HabitsService = Depends(get_habits_service),
    user_id: str = Depends(get_current_user_id),
):
    try:
        created = service.create_habit(user_id, title=payload.title, emoji=payload.emoji, color=payload.color)
    except HabitLimitError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return HabitCreatedOut.model_validate(created)


@router.delete("/{habit_id}")
def delete_habit(habit_id: str, service: HabitsService = Depends(get_habits_service), user_id: str = Depends(get_current_user_id)):
    try:
        service.delete_habit(user_id, habit_id)
    except HabitNotFoundError:
        raise HTTPException(status_code=404, detail="Habit not found")
    return {"ok": True}


@router.patch("/{habit_id}/order", response_model=HabitOut)
def reorder_habit(
    habit_id: str,
    payload: HabitOrderIn,
    service: HabitsService = Depends(get_habits_service),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return service.reorder_habit(user_id, habit_id, payload.order)
    except HabitNotFoundError:
        raise HTTPException(status_code=404, detail="Habit not found")


@router.post("/{habit_id}/complete", response_model=CompletionResultOut)
def complete_habit(habit_id: str, service: HabitsService = Depends(get_habits_service), user_id: str = Depends(get_current_user_id)):
    try:
        result = service.complete_habit(user_id, habit_id)
    except HabitNotFoundError:
        raise HTTPException(status_code=404, detail="Habit not found")
    return CompletionResultOut.model_validate(result)


@router.delete("/{habit_id}/complete", response_model=CompletionResultOut)
def uncomplete_habit(habit_id: str, service: HabitsService = Depends(get_habits_service), user_id: str = Depends(get_current_user_id)):
    try:
        result = service.uncomplete_habit(user_id, habit_id)
    except HabitNotFoundError:
        raise HTTPException(status_code=404, detail="Habit not found")
    return CompletionResultOut.model_validate(result)
