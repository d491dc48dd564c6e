import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from habit_engine.api.routers.coach import router as coach_router
from habit_engine.api.routers.habits import router as habits_router
from habit_engine.api.routers.stats import router as stats_router
from habit_engine.cache import SafeCache, build_cache
from habit_engine.db import SessionLocal
from habit_engine.logging_utils import configure_logging
from habit_engine.services.achievements import seed_catalog
from habit_engine.settings import settings

logger = logging.getLogger("habit_engine")


def create_app(cache: SafeCache | None = None, session_factory=None) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.cache = cache or build_cache(settings.REDIS_URL)
        with (session_factory or SessionLocal)() as db:
            created = seed_catalog(db)
        if created:
            logger.info("Seeded %s achievements", created)
        try:
            yield
        finally:
            app.state.cache.clear()
            app.state.cache.close()

    app = FastAPI(title="Habit Gamification API", lifespan=lifespan)

    app.include_router(habits_router)
    app.include_router(stats_router)
    app.include_router(coach_router)

    @app.get("/health")
    def health():
        return {"ok": True, "cache": app.state.cache.backend}

    return app
