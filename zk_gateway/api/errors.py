"""Custom exceptions and FastAPI error handler registration."""
from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .executor.base import ExecutionTimeoutError, ExternalProcessError, UnknownOperationError
from .jobs.runner import JobQueueFullError
from .jobs.store import DuplicateJobError
from .schemas.envelope import ApiResponse

logger = logging.getLogger(__name__)


# ── Custom Exceptions ────────────────────────────────────────────────


class JobNotFoundError(Exception):
    """Requested job ID does not exist."""


class AsyncJobsDisabledError(Exception):
    """Asynchronous execution is turned off by configuration."""


# ── Error → HTTP mapping ────────────────────────────────────────────

_EXCEPTION_STATUS = {
    UnknownOperationError: 400,
    AsyncJobsDisabledError: 400,
    JobNotFoundError: 404,
    DuplicateJobError: 409,
    JobQueueFullError: 429,
    ExternalProcessError: 502,
    ExecutionTimeoutError: 504,
}


def _make_handler(status_code: int):
    """Create a handler that wraps an exception in ApiResponse."""

    async def _handler(request: Request, exc: Exception) -> JSONResponse:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, status_code, exc)
        resp = ApiResponse.fail(str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=status_code, content=resp.model_dump())

    return _handler


def register_error_handlers(app: FastAPI) -> None:
    """Register custom exception handlers on the FastAPI app."""
    for exc_cls, status in _EXCEPTION_STATUS.items():
        app.add_exception_handler(exc_cls, _make_handler(status))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
        resp = ApiResponse.fail("Internal server error")
        return JSONResponse(status_code=500, content=resp.model_dump())
