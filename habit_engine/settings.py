from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = [PROJECT_ROOT / ".env", ".env"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILES, extra="ignore")

    # DB
    DATABASE_URL: str = "sqlite:///./data/habits.db"

    # App
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # API
    API_KEY: str | None = None

    # Cache (in-process map when REDIS_URL is empty)
    REDIS_URL: str | None = None
    HABIT_COMPLETIONS_TTL_SEC: int = 60 * 60
    USER_STATS_TTL_SEC: int = 30 * 60

    # Gamification
    XP_PER_COMPLETION: int = 10
    XP_PER_LEVEL: int = 100
    MAX_HABITS: int = 5
    MAX_STREAK_DAYS: int = 365
    HISTORY_LOOKBACK_DAYS: int = 365
    WEEK_DAYS: int = 7

    # Coach (optional)
    OPENAI_API_KEY: str | None = None
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    COACH_RECENT_ACHIEVEMENTS: int = 5


settings = Settings()
