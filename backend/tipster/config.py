"""
backend/tipster/config.py

Purpose:
    Central settings loading for the tip lifecycle engine (providers,
    persistence, settlement and scheduler knobs).

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "tipster"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"

    # Primary provider: api-football.com (api-sports.io)
    API_FOOTBALL_KEY: str = ""
    API_FOOTBALL_BASE_URL: str = "https://v3.football.api-sports.io"
    API_FOOTBALL_BOOKMAKER_ID: int = 8  # Bet365

    # Fallback provider: football-data.org (no odds on any plan we use)
    FOOTBALL_DATA_KEY: str = ""
    FOOTBALL_DATA_BASE_URL: str = "https://api.football-data.org/v4"

    # Transport (per provider call, before primary -> fallback failover)
    PROVIDER_TIMEOUT_SECONDS: float = 15.0
    PROVIDER_MAX_RETRIES: int = 1
    PROVIDER_BASE_DELAY_SECONDS: float = 2.0

    DEFAULT_LEAGUE: str = "serie-a"

    # Settlement
    SETTLEMENT_BATCH_RESULTS: int = 30
    SETTLEMENT_OPPORTUNISTIC_RESULTS: int = 10
    SETTLEMENT_INTERVAL_HOURS: int = 3

    # Generation
    GENERATION_MATCH_COUNT: int = 10
    GENERATION_RECENT_RESULTS: int = 30
    GENERATION_HEAD_TO_HEAD: int = 10
    GENERATION_CRON_HOUR: int = 8
    GENERATION_CRON_MINUTE: int = 0

    # Archive
    ARCHIVE_AFTER_DAYS: int = 90
    ARCHIVE_CRON_HOUR: int = 4

    SCHEDULER_ENABLED: bool = True

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
