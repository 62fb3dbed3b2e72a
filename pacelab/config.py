from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # APP
    APP_NAME: str = "pacelab"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # DB
    DATABASE_URL: str

    # Strava OAuth (refresh only, authorization happens elsewhere)
    STRAVA_CLIENT_ID: int
    STRAVA_CLIENT_SECRET: str
    STRAVA_RATE_LIMIT_PRIORITY: Literal["low", "medium", "high"] = "low"

    # Sync
    SYNC_INITIAL_DAYS: int = 180  # first sync, no cursor yet
    SYNC_FULL_DAYS: int = 30  # default window for full mode
    SYNC_PAGE_SIZE: int = Field(200, ge=1, le=200)  # Strava max
    SYNC_BACKFILL_LIMIT: int = 100
    SYNC_CLASSIFY_BATCH: int = 50
    SYNC_DETAIL_DELAY_SECONDS: float = 0.1
    SYNC_COMPUTE_MISSING_EFFORTS: bool = True

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Security
    ADMIN_API_KEY: str

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings only loads once"""
    return Settings()
