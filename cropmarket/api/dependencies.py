"""
Dependency helpers for API routes.

These are kept as simple functions (not FastAPI Depends) because the app
already uses request.app.state for every stateful component.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request

from cropmarket.api.observability import bind_user
from cropmarket.api.state import AppState
from cropmarket.domain.enums import UserRole
from cropmarket.exceptions import AuthenticationError, PermissionDeniedError
from cropmarket.rate_limit import SQLiteRateLimiter
from cropmarket.repository import FavoriteSellerRepo, MarketStore
from cropmarket.services import AuthService, CheckoutService, OrderService, QualityGradingService


def get_state(request: Request) -> AppState:
    return request.app.state.state


def get_store(request: Request) -> MarketStore:
    return get_state(request).store


def get_rate_limiter(request: Request) -> SQLiteRateLimiter:
    return get_state(request).rate_limiter


def get_favorite_repo(request: Request) -> FavoriteSellerRepo:
    state = get_state(request)
    if state.favorites is None:
        state.favorites = FavoriteSellerRepo(state.settings.favorites_db_url)
    return state.favorites


def get_auth_service(request: Request) -> AuthService:
    state = get_state(request)
    return AuthService(state.store, state.settings)


def get_checkout_service(request: Request) -> CheckoutService:
    state = get_state(request)
    return CheckoutService(state.store, state.settings)


def get_order_service(request: Request) -> OrderService:
    return OrderService(get_store(request))


def get_grading_service(request: Request) -> QualityGradingService:
    return QualityGradingService(get_store(request))


def bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    header = request.headers.get("authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user(request: Request) -> dict[str, Any]:
    """
    Resolve the signed-in user's profile.

    Raises:
        AuthenticationError: No valid bearer token.
    """
    profile = get_auth_service(request).resolve_session(bearer_token(request))
    bind_user(profile["id"])
    return profile


def require_role(request: Request, *roles: UserRole) -> dict[str, Any]:
    """
    Resolve the current user and check their role.

    Admins pass every role check.

    Raises:
        AuthenticationError: Not signed in.
        PermissionDeniedError: Signed in with another role.
    """
    profile = get_current_user(request)
    allowed = {role.value for role in roles} | {UserRole.ADMIN.value}
    if profile["role"] not in allowed:
        raise PermissionDeniedError(required_role=" or ".join(role.value for role in roles))
    return profile


def optional_user(request: Request) -> dict[str, Any] | None:
    """Current user's profile when a valid token is sent, else None."""
    if bearer_token(request) is None:
        return None
    try:
        return get_current_user(request)
    except AuthenticationError:
        return None
