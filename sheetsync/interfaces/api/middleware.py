"""
API Middleware - Request context, error mapping and rate limiting.

Stack built by `create_app` (outermost first; Starlette wraps the last added
middleware around the others):
    CORS -> RequestContextMiddleware -> ErrorHandlerMiddleware -> RateLimitMiddleware
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from sheetsync.config.errors import ErrorCode, SheetSyncError

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

REQUEST_ID_HEADER = "X-Request-ID"
WINDOW_SECONDS = 60
UNLIMITED_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.SYNC_NOT_CONFIGURED: 400,
    ErrorCode.AUTH_INVALID_CREDENTIALS: 400,
    ErrorCode.AUTH_USER_EXISTS: 400,
    ErrorCode.AUTH_OAUTH_FAILED: 400,
    ErrorCode.SECURITY_UNAUTHORIZED: 401,
    ErrorCode.SECURITY_FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.SYNC_NOT_FOUND: 404,
    ErrorCode.SYNC_RUN_NOT_READY: 409,
    ErrorCode.SECURITY_RATE_LIMITED: 429,
    ErrorCode.SHEETS_API_FAILED: 502,
    ErrorCode.STORAGE_CONNECTION_FAILED: 503,
    ErrorCode.STORAGE_WRITE_FAILED: 503,
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(
    request: Request,
    status_code: int,
    code: ErrorCode,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """JSON error body shared by every middleware: `{error, request_id}`."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code.value, "message": message, "details": details or {}},
            "request_id": _request_id(request),
        },
        headers=headers,
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log one access line with its latency."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
        logger.info(
            "%s %s -> %d in %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Render `SheetSyncError` with a status picked from its code; anything else is a 500."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        try:
            return await call_next(request)
        except SheetSyncError as e:
            status_code = STATUS_BY_CODE.get(e.code, 500)
            log = logger.error if status_code >= 500 else logger.warning
            log("%s on %s: %s [%s]", e.code.value, request.url.path, e.message, _request_id(request))
            return error_response(request, status_code, e.code, e.message, e.details)
        except Exception:
            logger.exception("Unhandled error on %s [%s]", request.url.path, _request_id(request))
            return error_response(
                request, 500, ErrorCode.INTERNAL_ERROR, "Internal server error"
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed one-minute window per client.

    Clients are keyed by API key when one is sent, otherwise by IP. Counters
    only exist for the current window; rolling over drops the previous one.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.clock = clock
        self._window = -1
        self._counts: dict[str, int] = {}

    def _client_key(self, request: Request) -> str:
        api_key = request.headers.get("x-api-key")
        if api_key:
            return f"key:{api_key}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def _seconds_left(self) -> int:
        return WINDOW_SECONDS - int(self.clock()) % WINDOW_SECONDS

    def hit(self, client: str) -> int:
        """Count one request; returns how many remain in this window (may go negative)."""
        window = int(self.clock() // WINDOW_SECONDS)
        if window != self._window:
            self._window = window
            self._counts.clear()
        self._counts[client] = self._counts.get(client, 0) + 1
        return self.requests_per_minute - self._counts[client]

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        client = self._client_key(request)
        remaining = self.hit(client)
        if remaining < 0:
            retry_after = self._seconds_left()
            logger.warning("Rate limit exceeded for %s", client.split(":", 1)[0])
            return error_response(
                request,
                429,
                ErrorCode.SECURITY_RATE_LIMITED,
                f"Too many requests. Retry in {retry_after} seconds.",
                {"retry_after": retry_after},
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response
