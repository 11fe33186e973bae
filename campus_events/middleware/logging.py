"""
Request logging middleware.

Each request gets an id (taken from ``X-Request-ID`` when the gateway sends
one). The id and the ``X-User-ID`` caller are kept in context variables so
every record logged while the request runs carries them.
"""

import contextvars
import logging
import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
caller_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("caller_id", default="-")

UNLOGGED_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """One log line per API call, with status, duration and slow-call warnings."""

    def __init__(self, app, slow_threshold: float = 1.0):
        super().__init__(app)
        self.slow_threshold = slow_threshold

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid4().hex
        request.state.request_id = request_id
        request_token = request_id_var.set(request_id)
        caller_token = caller_id_var.set(request.headers.get("x-user-id") or "-")
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{request.method} {request.url.path} raised after {self._elapsed(started):.3f}s")
            raise
        else:
            elapsed = self._elapsed(started)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{elapsed:.4f}"
            self._log_call(request, response.status_code, elapsed)
            return response
        finally:
            request_id_var.reset(request_token)
            caller_id_var.reset(caller_token)

    @staticmethod
    def _elapsed(started: float) -> float:
        return time.perf_counter() - started

    def _log_call(self, request: Request, status_code: int, elapsed: float) -> None:
        line = f"{request.method} {request.url.path} -> {status_code} in {elapsed:.3f}s"
        if request.url.path in UNLOGGED_PATHS:
            logger.debug(line)
        elif status_code >= 500:
            logger.error(line)
        elif status_code >= 400:
            logger.warning(line)
        else:
            logger.info(line)

        if elapsed > self.slow_threshold:
            logger.warning(f"Slow call: {line}", extra={"slow_request": True})
