"""Application bootstrap helpers for the Cross Trainer SRS service."""

from .runtime import build_application, run_server
from .settings import AppSettings

__all__ = ["build_application", "run_server", "AppSettings"]
