"""Configuration helpers for the Cross Trainer SRS runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_PORT = 11001
DEFAULT_DUE_LIMIT = 10
DEFAULT_STATS_WINDOW_DAYS = 7


def _read_positive_int(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc
    if value < 1:
        raise RuntimeError(f"{name} must be a positive integer.")
    return value


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    host: str
    port: int
    due_limit: int
    stats_window_days: int

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Cross Trainer SRS")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        host = os.getenv("HOST", "127.0.0.1")
        port = _read_positive_int("PORT", DEFAULT_PORT)
        due_limit = _read_positive_int("SRS_DUE_LIMIT", DEFAULT_DUE_LIMIT)
        if due_limit > 100:
            raise RuntimeError("SRS_DUE_LIMIT must be between 1 and 100.")
        stats_window_days = _read_positive_int("SRS_STATS_WINDOW_DAYS", DEFAULT_STATS_WINDOW_DAYS)

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            host=host,
            port=port,
            due_limit=due_limit,
            stats_window_days=stats_window_days,
        )
