"""
Error types raised by the store, services and API.

Every error carries a machine-readable ``error_code`` and an HTTP status so
the API can turn it into the JSON envelope
``{"error", "message", "detail"?, "request_id"}`` without a lookup table per
route.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

logger = logging.getLogger(__name__)


class CropMarketError(RuntimeError):
    """
    Base exception for all CropMarket errors.

    Subclasses set ``code`` and ``http_status``; a per-instance
    ``error_code`` can still be passed in.

    Attributes:
        message: Human-readable error message.
        detail: Additional error details (optional).
        error_code: Machine-readable error code.
        request_id: Identifier of the request that failed.
    """

    code: str | None = None
    http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.error_code = error_code or self.code or f"cropmarket_{type(self).__name__.lower()}"
        self.request_id = request_id or str(uuid.uuid4())

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        if self.request_id:
            body["request_id"] = self.request_id
        return body

    def __str__(self) -> str:
        return f"{self.message}: {self.detail}" if self.detail else self.message

    def log(self, level: int = logging.ERROR) -> None:
        """Log with the error code and request id as structured fields."""
        logger.log(
            level,
            self.message,
            extra={
                "error_code": self.error_code,
                "detail": self.detail,
                "request_id": self.request_id,
                "exception_type": type(self).__name__,
            },
        )


def _join(*parts: str | None) -> str | None:
    kept = [part for part in parts if part]
    return "; ".join(kept) if kept else None


# -- 400 ---------------------------------------------------------------------


class ValidationError(CropMarketError):
    """Bad input. The offending field, when known, prefixes the message."""

    code = "validation_error"
    http_status = 400

    def __init__(self, message: str, *, field: str | None = None, detail: str | None = None, **kwargs: Any) -> None:
        self.field = field
        super().__init__(f"{field}: {message}" if field else message, detail=detail, **kwargs)


class EmptyCartError(ValidationError):
    code = "empty_cart"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__("Your cart is empty", **kwargs)


class InsufficientStockError(ValidationError):
    """A cart line or order asks for more units than the listing has."""

    code = "insufficient_stock"

    def __init__(self, listing_id: str, *, requested: int, available: int, **kwargs: Any) -> None:
        self.listing_id = listing_id
        self.requested = requested
        self.available = available
        super().__init__(
            "Cannot exceed available quantity",
            field="quantity",
            detail=f"Listing {listing_id!r}: requested {requested}, available {available}",
            **kwargs,
        )


# -- 401 / 403 ---------------------------------------------------------------


class AuthenticationError(CropMarketError):
    code = "authentication_error"
    http_status = 401

    def __init__(self, message: str = "Authentication required", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class PermissionDeniedError(CropMarketError):
    code = "permission_denied"
    http_status = 403

    def __init__(self, message: str = "Permission denied", *, required_role: str | None = None, **kwargs: Any) -> None:
        self.required_role = required_role
        detail = f"Requires role: {required_role}" if required_role else None
        super().__init__(message, detail=detail, **kwargs)


# -- 404 ---------------------------------------------------------------------


class NotFoundError(CropMarketError):
    code = "not_found"
    http_status = 404
    resource_label = "Resource"

    def __init__(
        self,
        message: str | None = None,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.resource_type = resource_type or self.resource_label
        self.resource_id = resource_id
        detail = f"{self.resource_type} with ID {resource_id!r} not found" if resource_id else None
        super().__init__(message or f"{self.resource_type} not found", detail=detail, **kwargs)


class ListingNotFoundError(NotFoundError):
    """Missing or no longer active."""

    resource_label = "Listing"

    def __init__(self, listing_id: str, **kwargs: Any) -> None:
        self.listing_id = listing_id
        super().__init__(resource_id=listing_id, **kwargs)


class CartItemNotFoundError(NotFoundError):
    resource_label = "Cart item"

    def __init__(self, item_id: str, **kwargs: Any) -> None:
        self.item_id = item_id
        super().__init__(resource_id=item_id, **kwargs)


class OrderNotFoundError(NotFoundError):
    """Missing, or not visible to the requesting user."""

    resource_label = "Order"

    def __init__(self, order_id: str, **kwargs: Any) -> None:
        self.order_id = order_id
        super().__init__(resource_id=order_id, **kwargs)


class ProfileNotFoundError(NotFoundError):
    resource_label = "Profile"

    def __init__(self, profile_id: str, **kwargs: Any) -> None:
        super().__init__(resource_id=profile_id, **kwargs)


# -- 409 / 429 ---------------------------------------------------------------


class ConflictError(CropMarketError):
    code = "conflict"
    http_status = 409


class InvalidStatusTransitionError(ConflictError):
    """An order status change that skips or reverses the lifecycle."""

    code = "invalid_status_transition"

    def __init__(self, current: str, requested: str, **kwargs: Any) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            "Invalid order status transition",
            detail=f"Cannot move order from {current!r} to {requested!r}",
            **kwargs,
        )


class RateLimitError(CropMarketError):
    code = "rate_limited"
    http_status = 429

    def __init__(self, message: str = "Rate limit exceeded", *, retry_after: int | None = None, **kwargs: Any) -> None:
        self.retry_after = retry_after
        detail = f"Retry after {retry_after}s" if retry_after else None
        super().__init__(message, detail=detail, **kwargs)


# -- upstream services ------------------------------------------------------


class CircuitBreakerOpenError(CropMarketError):
    """Calls to ``service`` are short-circuited until the breaker's timeout passes."""

    code = "circuit_breaker_open"
    http_status = 503

    def __init__(
        self,
        service: str,
        *,
        retry_after_seconds: int | None = None,
        failure_count: int | None = None,
        **kwargs: Any,
    ) -> None:
        self.service = service
        self.retry_after_seconds = retry_after_seconds
        self.failure_count = failure_count
        detail = _join(
            f"Service: {service}",
            f"Retry after: {retry_after_seconds}s" if retry_after_seconds else None,
            f"Failures: {failure_count}" if failure_count else None,
        )
        super().__init__(f"Circuit breaker open for {service}", detail=detail, **kwargs)


# -- server side -------------------------------------------------------------


class MissingAPIKeyError(CropMarketError):
    code = "configuration_error"

    def __init__(self, service: str, *, env_var: str | None = None, **kwargs: Any) -> None:
        self.service = service
        self.env_var = env_var
        detail = f"API key for {service} is required"
        if env_var:
            detail += f" (set {env_var} environment variable)"
        super().__init__(f"Missing API key for {service}", detail=detail, **kwargs)


class DatabaseError(CropMarketError):
    code = "data_store_error"

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        operation: str | None = None,
        table: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.operation = operation
        self.table = table
        detail = _join(
            f"Operation: {operation}" if operation else None,
            f"Table: {table}" if table else None,
        )
        super().__init__(message, detail=detail, **kwargs)


class StorageError(CropMarketError):
    """An uploaded file could not be written."""

    code = "data_store_error"

    def __init__(self, message: str = "File storage failed", *, bucket: str | None = None, **kwargs: Any) -> None:
        self.bucket = bucket
        super().__init__(message, detail=f"Bucket: {bucket}" if bucket else None, **kwargs)


# -- HTTP helpers ------------------------------------------------------------


def exception_to_http_status(exc: Exception) -> int:
    """HTTP status for ``exc``; anything that is not a CropMarketError is a 500."""
    if isinstance(exc, CropMarketError):
        return exc.http_status
    return 500


# Built-in exceptions that map onto a CropMarketError instead of a bare 500.
_BUILTIN_ERRORS: tuple[tuple[type[Exception], Any], ...] = (
    (ValueError, lambda exc: ValidationError(str(exc))),
    (KeyError, lambda exc: ValidationError("Missing required field", field=str(exc))),
    (FileNotFoundError, lambda exc: NotFoundError()),
    (PermissionError, lambda exc: PermissionDeniedError()),
)


def handle_exception(exc: Exception, request_id: str | None = None) -> dict[str, Any]:
    """
    Convert any exception into the error envelope.

    Args:
        exc: The exception to handle.
        request_id: Request ID for tracing.

    Returns:
        Dictionary with ``error``, ``message``, optional ``detail`` and ``request_id``.
    """
    if isinstance(exc, CropMarketError):
        exc.request_id = request_id or exc.request_id
        return exc.to_dict()

    for exc_type, convert in _BUILTIN_ERRORS:
        if isinstance(exc, exc_type):
            converted = convert(exc)
            converted.request_id = request_id or converted.request_id
            return converted.to_dict()

    logger.error(
        "Unhandled exception",
        extra={
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "request_id": request_id,
        },
        exc_info=True,
    )
    return CropMarketError(
        "An unexpected error occurred",
        error_code="internal_error",
        request_id=request_id,
    ).to_dict()
