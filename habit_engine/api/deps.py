from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from habit_engine.cache import SafeCache
from habit_engine.db import get_db
from habit_engine.services.habits import HabitsService
from habit_engine.settings import settings


def require_api_key(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> None:
    if settings.API_KEY and x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


def get_current_user_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    # Identity is resolved upstream; this layer only trusts the forwarded id
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing user id")
    if len(user_id) > 64:
        raise HTTPException(status_code=400, detail="Invalid user id")
    return user_id


def get_cache(request: Request) -> SafeCache:
    return request.app.state.cache


def get_habits_service(db: Session = Depends(get_db), cache: SafeCache = Depends(get_cache)) -> HabitsService:
    return HabitsService(db, cache)
