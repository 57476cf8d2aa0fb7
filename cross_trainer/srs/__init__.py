"""Spaced-repetition engine for cross and early-pair practice."""

from .depth import Depth
from .errors import DuplicateError, InvalidInputError, NotFoundError, SRSError, StorageError
from .scheduler import ReviewSchedule, SchedulingState, schedule
from .service import DepthStats, ItemPage, SRSService, SRSStats

__all__ = [
    "Depth",
    "DepthStats",
    "DuplicateError",
    "InvalidInputError",
    "ItemPage",
    "NotFoundError",
    "ReviewSchedule",
    "SRSError",
    "SRSService",
    "SRSStats",
    "SchedulingState",
    "StorageError",
    "schedule",
]
