"""Draftline runtime configuration and logging.

Every knob that changes how versions are written lives on :class:`Settings`:
where the SQLite file is, how long an editing session stays open for in-place
autosaves, how long the editor waits after the last keystroke, and how many
snapshots survive pruning. Values come from ``DRAFTLINE_*`` environment
variables first and ``.env`` files second, so the CLI and the API server
agree on the same defaults.

`get_logger` hands out the ``draftline.*`` loggers used across the package.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Versioning, storage and logging settings for one Draftline process.

    Attributes
    ----------
    environment : EnvName
        Deployment flag reported by `GET /health`; maps from `DRAFTLINE_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    db_path : str
        SQLite database file used by the CLI and the API server.
    session_timeout_minutes : float
        Idle time after which an autosave starts a new snapshot.
    autosave_delay_seconds : float
        Debounce delay between the last keystroke and a background save.
    retention_keep : int
        Number of snapshots kept per document by the pruning post-step.
    """

    environment: EnvName = Field(default="dev", alias="DRAFTLINE_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    db_path: str = Field(default="draftline.db", alias="DRAFTLINE_DB_PATH")
    session_timeout_minutes: float = Field(
        default=30.0, gt=0, alias="DRAFTLINE_SESSION_TIMEOUT_MINUTES"
    )
    autosave_delay_seconds: float = Field(
        default=30.0, gt=0, alias="DRAFTLINE_AUTOSAVE_DELAY_SECONDS"
    )
    retention_keep: int = Field(default=20, ge=1, alias="DRAFTLINE_RETENTION_KEEP")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    @property
    def session_timeout(self) -> timedelta:
        """Return the session timeout as a ``timedelta``."""
        return timedelta(minutes=self.session_timeout_minutes)

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Build the process-wide `Settings` once and reuse it.

    Call `load_settings.cache_clear()` after changing `DRAFTLINE_*` variables
    to pick up the new values.
    """
    os.environ.setdefault("DRAFTLINE_ENV", "dev")
    return Settings()


settings: Settings = load_settings()


def get_logger(name: str = "draftline") -> logging.Logger:
    """Return a ``draftline`` logger with one stream handler at `LOG_LEVEL`."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger


__all__ = ["Settings", "get_logger", "load_settings", "settings"]
