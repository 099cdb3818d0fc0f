"""
Engine configuration — environment-driven settings and logging setup.
"""

import logging
from enum import Enum

from pydantic_settings import BaseSettings
from pydantic import Field


LOG_FORMAT: str = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for the MatchTrack engine and its host."""

    # ── App ──────────────────────────────────────────────
    APP_NAME: str = "MatchTrack"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = True

    # ── API ──────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    # ── Logging ──────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = LOG_FORMAT

    # ── Persistence ──────────────────────────────────────
    SNAPSHOT_DIR: str = "./saved_matches"
    SNAPSHOT_SCHEMA_VERSION: int = 1
    SNAPSHOT_INTERVAL: int = Field(
        default=25, ge=1, description="Cache a folded state every N events"
    )

    # ── Tennis Defaults ──────────────────────────────────
    DEFAULT_MATCH_FORMAT: str = "bestOfThree"
    DEFAULT_SCORING_VARIATION: str = "standard"
    DEFAULT_TRACKING_LEVEL: str = "level1"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "MATCHTRACK_"


settings = Settings()


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach a single formatted handler to the package logger."""
    logger = logging.getLogger("matchtrack")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    return logger
