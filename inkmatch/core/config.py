from functools import lru_cache
from typing import Literal
import os
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "InkMatch"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (empty URI -> in-process document store)
    MONGO_URI: str = ""
    MONGO_DB: str = "inkmatch"

    # Redis (optional)
    REDIS_URL: str = ""

    # Matching
    min_match_score: float = Field(0.2, ge=0.2, le=1)  # results at or below are dropped; may only be raised
    match_result_limit: int = 20
    match_cache_ttl: int = 5 * 60              # 5 minutes
    match_cache_prefix: str = "match"
    save_match_history: bool = True

    # Booking / scheduling
    schedule_timezone: str = "UTC"             # calendar days of an artist's schedule
    max_alternative_dates: int = 3
    duplicate_window_hours: int = 24           # one active request per (customer, artist) per window
    slot_lock_ttl: int = 10                    # seconds; artist-day lock
    slot_write_attempts: int = 3               # re-reads on a stale artist-day version

    # API (CSV of origins, e.g. "https://app.inkmatch.io,https://admin.inkmatch.io")
    ALLOWED_ORIGINS: str = ""

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
