"""
Error handling middleware: turns engine errors into structured JSON responses.
"""

import logging
import traceback
from datetime import datetime, timezone
from uuid import uuid4

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.exceptions import (
    CampusEventsError,
    ConcurrencyError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    PersistenceError,
    TemporalError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def status_code_for(exc: CampusEventsError) -> int:
    """Map an engine error to its HTTP status code."""
    if exc.error_code == ErrorCode.FORBIDDEN:
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, TemporalError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, (ConflictError, ConcurrencyError)):
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_response(exc: CampusEventsError, error_id: str) -> JSONResponse:
    headers = {}
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=status_code_for(exc),
        content={
            "error": exc.to_dict(),
            "error_id": error_id,
            "timestamp": _timestamp()
        },
        headers=headers
    )


def log_error(request: Request, exc: Exception, error_id: str) -> None:
    """Log an error with request context, at a level matching its severity."""
    context = {
        "error_id": error_id,
        "method": request.method,
        "path": request.url.path,
    }

    if isinstance(exc, CampusEventsError):
        context.update(error_code=exc.error_code.value, details=exc.details)
        if isinstance(exc, (PersistenceError, ConcurrencyError)):
            logger.error(f"System error [{error_id}]: {exc.message}", extra=context)
        else:
            logger.warning(f"Client error [{error_id}]: {exc.message}", extra=context)
    else:
        logger.error(
            f"Unexpected error [{error_id}]: {exc}",
            extra={**context, "error_type": type(exc).__name__, "traceback": traceback.format_exc()}
        )


async def campus_events_error_handler(request: Request, exc: CampusEventsError) -> JSONResponse:
    """Exception handler registered on the app for engine errors."""
    error_id = str(uuid4())
    log_error(request, exc, error_id)
    return error_response(exc, error_id)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence for errors that escape the route handlers."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = str(uuid4())
            log_error(request, exc, error_id)
            if isinstance(exc, CampusEventsError):
                return error_response(exc, error_id)
            return self._unexpected_error_response(exc, error_id)

    def _unexpected_error_response(self, exc: Exception, error_id: str) -> JSONResponse:
        error = CampusEventsError(
            "An unexpected error occurred",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if self.debug else None
        )

        response_data = {
            "error": error.to_dict(),
            "error_id": error_id,
            "timestamp": _timestamp()
        }
        if self.debug:
            response_data["debug"] = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response_data
        )
