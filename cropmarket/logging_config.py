"""
CropMarket - Structured Logging Configuration
=============================================
JSON-formatted structured logging with request context.

Usage:
    from cropmarket.logging_config import get_logger, log_event

    logger = get_logger(__name__)
    logger.info("Cart updated", extra={"item_count": 3})

    log_event("order_placed", order_count=2, total=540.0)
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cropmarket.config import settings


class LogContext:
    """
    Request-scoped log context.

    The observability middleware fills this in per request; formatters read
    it back so every line logged while serving a request carries its id.
    Backed by a ContextVar, so values follow the request into worker
    threads and tasks.
    """

    _ctx: ContextVar[dict[str, Any]] = ContextVar("cropmarket_log_context", default={})
    _fields = ("request_id", "user_id", "client_ip", "endpoint")

    @classmethod
    def set(cls, **values: Any) -> None:
        for key in values:
            if key not in cls._fields:
                raise KeyError(f"Unknown log context field: {key}")
        cls._ctx.set({**cls._ctx.get(), **values})

    @classmethod
    def get(cls, key: str) -> Any:
        return cls._ctx.get().get(key)

    @classmethod
    def get_request_id(cls) -> str | None:
        return cls.get("request_id")

    @classmethod
    def clear(cls) -> None:
        cls._ctx.set({})

    @classmethod
    def get_all(cls) -> dict[str, Any]:
        return {key: cls.get(key) for key in cls._fields}


# Attributes every LogRecord has; anything else on a record came from `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _iso_utc(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _exception_block(exc_info: Any) -> dict[str, Any]:
    exc_type, exc_value, _ = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc_value) if exc_value else None,
        "traceback": "".join(traceback.format_exception(*exc_info)),
    }


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line: timestamp, level, logger, message, source
    location, the current request context and any ``extra`` fields.
    """

    def __init__(
        self,
        *,
        service_name: str = "cropmarket",
        environment: str = "production",
        include_extra_fields: bool = True,
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.include_extra_fields = include_extra_fields

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _iso_utc(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
        }
        if record.pathname:
            entry.update(file=Path(record.pathname).name, line=record.lineno, function=record.funcName)
        if record.exc_info:
            entry["exception"] = _exception_block(record.exc_info)

        entry.update({key: value for key, value in LogContext.get_all().items() if value is not None})
        if self.include_extra_fields:
            entry.update(self._extra_fields(record))
        return json.dumps(entry, default=str, ensure_ascii=False)

    @staticmethod
    def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }


class ConsoleFormatter(logging.Formatter):
    """Coloured single-line output for local development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        line = (
            f"{color}{record.levelname:<8}{self.RESET} {_iso_utc(record.created)} "
            f"[{LogContext.get_request_id() or '-'}] {record.name}: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    return getattr(logging, name, logging.INFO)


def _use_json(log_format: str | None) -> bool:
    """Explicit argument, then LOG_FORMAT, then JSON unless DEBUG is on."""
    chosen = (log_format or os.environ.get("LOG_FORMAT") or "").lower()
    if chosen in ("json", "console"):
        return chosen == "json"
    return not settings.debug_mode


_configured = False


def configure_logging(
    *,
    level: str | int | None = None,
    service_name: str = "cropmarket",
    environment: str = "production",
    log_format: str | None = None,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name or number; defaults to LOG_LEVEL, then INFO.
        service_name: Service name stamped on JSON lines.
        environment: Environment label (production, staging, development).
        log_format: "json" or "console"; defaults to LOG_FORMAT.
    """
    global _configured

    resolved = _resolve_level(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    if _use_json(log_format):
        handler.setFormatter(StructuredFormatter(service_name=service_name, environment=environment))
    else:
        handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()
    root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, configuring logging on first use."""
    if not _configured:
        configure_logging()
    return logging.getLogger(name)


def log_event(event_name: str, level: str = "info", **extra_fields: Any) -> None:
    """
    Log a named business event with structured fields.

    Example:
        log_event("order_placed", order_count=2, total=540.0)
    """
    logger = get_logger("event")
    getattr(logger, level.lower(), logger.info)(event_name, extra=extra_fields)


def log_error(event_name: str, exc: Exception | None = None, **extra_fields: Any) -> None:
    get_logger("error").error(event_name, exc_info=exc, extra=extra_fields)


class PerformanceTracker:
    """
    Time a block and log ``<operation>_completed`` (or ``_failed``) with
    ``duration_ms`` and the given fields.

    Example:
        with PerformanceTracker("place_order", user_id=user_id):
            store.create_orders_from_cart(...)
    """

    def __init__(self, operation: str, **extra_fields: Any) -> None:
        self.operation = operation
        self.extra = extra_fields
        self._started: float | None = None

    def __enter__(self) -> PerformanceTracker:
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._started is None:
            return
        self.extra["duration_ms"] = round((time.perf_counter() - self._started) * 1000, 2)
        logger = get_logger("performance")
        if exc_type is None:
            logger.info("%s_completed", self.operation, extra=self.extra)
        else:
            self.extra["error"] = str(exc)
            logger.warning("%s_failed", self.operation, extra=self.extra)
