"""HTTP surface for the spaced-repetition engine."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cross_trainer.srs import SRSService
from cross_trainer.srs.errors import (
    DuplicateError,
    InvalidInputError,
    NotFoundError,
    SRSError,
    StorageError,
)

from . import srs


LOGGER = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[SRSError], int] = {
    NotFoundError: 404,
    DuplicateError: 409,
    InvalidInputError: 400,
    StorageError: 503,
}


def _error_body(message: str, code: str) -> dict:
    return {"error": {"message": message, "code": code}}


async def _handle_srs_error(request: Request, exc: SRSError) -> JSONResponse:
    status_code = _STATUS_BY_ERROR.get(type(exc), 500)
    if isinstance(exc, StorageError):
        LOGGER.warning("Request %s %s failed with a storage error.", request.method, request.url.path)
    return JSONResponse(status_code=status_code, content=_error_body(exc.message, exc.code))


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in errors
    )
    return JSONResponse(
        status_code=400,
        content=_error_body(detail or "Invalid request.", InvalidInputError.code),
    )


def create_app(service: SRSService, title: str = "Cross Trainer SRS") -> FastAPI:
    """Build the FastAPI application around an engine instance."""
    app = FastAPI(title=title)
    app.state.srs_service = service
    app.add_exception_handler(SRSError, _handle_srs_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.include_router(srs.router, prefix="/api/srs")

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    return app


__all__ = ["create_app"]
