"""
Observability utilities for API request tracking.

Provides request ID generation and middleware that logs each request's
start and completion as structured JSON, correlated by ``X-Request-ID``.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from cropmarket.api.middleware import get_client_ip as get_client_ip_safe
from cropmarket.exceptions import CropMarketError, handle_exception
from cropmarket.logging_config import LogContext, get_logger

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

logger = get_logger(__name__)

_SENSITIVE_PARAMS = {"api_key", "token", "access_token", "password", "secret", "auth"}


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id_ctx.get()


def bind_user(user_id: str | None) -> None:
    """Attach the authenticated user to the request's log context."""
    LogContext.set(user_id=user_id)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request observability and tracing.

    - Uses the caller's X-Request-ID or generates one, and echoes it back
    - Logs ``request_started`` / ``request_completed`` with ``duration_ms``
    - Flags requests slower than ``slow_request_threshold_ms``
    - Logs failures with the structured error envelope before re-raising
    """

    def __init__(self, app: ASGIApp, *, slow_request_threshold_ms: float = 1000.0) -> None:
        super().__init__(app)
        self._logger = get_logger(__name__)
        self.slow_request_threshold_ms = slow_request_threshold_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or generate_request_id()
        client_ip = get_client_ip_safe(request)

        _request_id_ctx.set(request_id)
        LogContext.clear()
        LogContext.set(request_id=request_id, client_ip=client_ip, user_id=None, endpoint=request.url.path)

        request_meta: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent"),
        }
        if request.url.query:
            request_meta["query_params"] = self._sanitize_query_params(str(request.url.query))
        self._logger.info("request_started", extra=request_meta)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            error_meta: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "duration_ms": duration_ms,
            }
            if isinstance(exc, CropMarketError):
                exc.request_id = request_id
                exc.log()
            else:
                error_meta["error_detail"] = handle_exception(exc, request_id=request_id).get("detail")
                self._logger.error("request_failed", extra=error_meta, exc_info=True)
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id

        response_meta: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
        if hasattr(request.state, "result_count"):
            response_meta["result_count"] = request.state.result_count

        if duration_ms >= self.slow_request_threshold_ms:
            response_meta["slow_request"] = True
            self._logger.warning("request_completed_slow", extra=response_meta)
        else:
            self._logger.info("request_completed", extra=response_meta)
        return response

    @staticmethod
    def _sanitize_query_params(query: str) -> str:
        """Redact values of sensitive query parameters before logging."""
        sanitized = []
        for part in query.split("&"):
            key = part.split("=", 1)[0]
            if "=" in part and key.lower() in _SENSITIVE_PARAMS:
                sanitized.append(f"{key}=***REDACTED***")
            else:
                sanitized.append(part)
        return "&".join(sanitized)
