"""Bootstrap logic for running the SRS HTTP service."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from cross_trainer.api import create_app
from cross_trainer.app.settings import AppSettings
from cross_trainer.db import get_session_factory, run_migrations_if_needed
from cross_trainer.db.solves import SqlSolveRepository
from cross_trainer.srs import SRSService


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def build_service(settings: AppSettings) -> SRSService:
    """Wire the engine to the configured database."""
    session_factory = get_session_factory()
    return SRSService(
        session_factory,
        SqlSolveRepository(session_factory),
        default_due_limit=settings.due_limit,
        stats_window_days=settings.stats_window_days,
    )


def build_application(settings: AppSettings) -> FastAPI:
    return create_app(build_service(settings), title=settings.app_name)


def run_server(settings: AppSettings) -> None:
    """Start the HTTP service using the provided settings."""
    _configure_logging(settings.log_level)
    print(f"{settings.app_name} is running in {settings.app_env} mode.")

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    application = build_application(settings)

    LOGGER.info(
        "Starting %s on http://%s:%s in %s mode.",
        settings.app_name,
        settings.host,
        settings.port,
        settings.app_env,
    )
    uvicorn.run(application, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
