"""Error taxonomy surfaced by the spaced-repetition engine."""

from __future__ import annotations


class SRSError(Exception):
    """Base class for engine failures carrying a stable error code."""

    code = "SRS_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(SRSError):
    """A referenced SRS item or solve does not exist."""

    code = "NOT_FOUND"


class DuplicateError(SRSError):
    """An SRS item already exists for the (solve, depth) pair."""

    code = "DUPLICATE"


class InvalidInputError(SRSError):
    """Input failed validation, e.g. quality outside 0..5 or an unknown depth."""

    code = "INVALID_INPUT"


class StorageError(SRSError):
    """Transient persistence failure. The only error a caller may retry."""

    code = "STORAGE_ERROR"


__all__ = [
    "DuplicateError",
    "InvalidInputError",
    "NotFoundError",
    "SRSError",
    "StorageError",
]
