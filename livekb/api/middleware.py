"""API middleware -- CORS, request logging, and error handling.

Starlette runs middleware last-added-first, so ``main.py`` adds
ErrorHandlingMiddleware before RequestLoggingMiddleware; the logger then
sees the final status code, including errors converted to JSON.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from livekb.api.schemas import ErrorResponse
from livekb.utils.errors import (
    EmptyContentError,
    IndexUnavailableError,
    InvalidSessionIdError,
    LiveKBError,
    ProviderUnavailableError,
    UnsupportedFileTypeError,
    UploadNotFoundError,
    UploadRejectedError,
)
from livekb.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# First matching class wins; anything else in the hierarchy is a 500.
_STATUS_BY_ERROR: tuple[tuple[type[LiveKBError], int], ...] = (
    (UploadNotFoundError, 404),
    (UnsupportedFileTypeError, 422),
    (EmptyContentError, 422),
    (InvalidSessionIdError, 422),
    (UploadRejectedError, 422),
    (IndexUnavailableError, 503),
    (ProviderUnavailableError, 503),
)


def status_for_error(exc: LiveKBError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]``.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``LiveKBError`` subclasses into structured JSON errors.

    The client gets the exception class name and message; stack traces
    stay in the server log.  Exceptions outside the hierarchy fall through
    to FastAPI's default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except LiveKBError as exc:
            status_code = status_for_error(exc)
            log = _logger.error if status_code >= 500 else _logger.warning
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
