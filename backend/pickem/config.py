"""
backend/pickem/config.py

Purpose:
    Central settings loading for the survivor pool backend.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from datetime import date
from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "pickem"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # Survivor pool
    SURVIVOR_POOL_ID: str = "nerduniverse-2025"
    SURVIVOR_SEASON_START: date = date(2025, 9, 4)
    SURVIVOR_SEASON_WEEKS: int = 18
    SURVIVOR_TIE_ELIMINATES: bool = True
    SURVIVOR_NO_PICK_RULE: str = "week_started"  # week_started | first_final

    # Scheduled reconciliation (off by default; enable per deployment)
    SURVIVOR_AUTORUN_ENABLED: bool = False
    SURVIVOR_RECONCILE_INTERVAL_MINUTES: int = 30

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
