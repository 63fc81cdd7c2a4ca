"""
Email/password sign-up and bearer-token sessions.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from cropmarket.config import Settings, get_settings
from cropmarket.domain.enums import UserRole
from cropmarket.exceptions import AuthenticationError, ValidationError
from cropmarket.logging_config import log_event
from cropmarket.repository.store import MarketStore
from cropmarket.security.passwords import MAX_PASSWORD_BYTES, hash_password, verify_password
from cropmarket.security.validators import validate_email

logger = logging.getLogger(__name__)

# Self sign-up may only pick a marketplace-facing role.
SIGNUP_ROLES = frozenset({UserRole.BUYER, UserRole.FARMER})


class AuthService:
    def __init__(self, store: MarketStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    def sign_up(
        self,
        email: str,
        password: str,
        role: UserRole | str = UserRole.BUYER,
        full_name: str | None = None,
    ) -> dict[str, Any]:
        """
        Register a new account and its profile.

        Raises:
            ValidationError: Bad email, short password or a role that cannot self-register.
            ConflictError: The email is already registered.
        """
        email = validate_email(email)
        if not password or len(password) < self.settings.min_password_length:
            raise ValidationError(
                f"must be at least {self.settings.min_password_length} characters",
                field="password",
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"must be at most {MAX_PASSWORD_BYTES} bytes", field="password")
        try:
            role = UserRole(role)
        except ValueError as e:
            raise ValidationError(f"unknown role {role!r}", field="role") from e
        if role not in SIGNUP_ROLES:
            raise ValidationError(f"cannot sign up as {role.value}", field="role")

        profile = self.store.create_user(
            email,
            hash_password(password),
            full_name=(full_name or "").strip() or None,
            role=role.value,
        )
        log_event("user_signed_up", user_id=profile["id"], role=role.value)
        return profile

    def sign_in(self, email: str, password: str) -> dict[str, Any]:
        """
        Verify credentials and open a session.

        Returns:
            Dict with ``access_token``, ``token_type``, ``expires_at`` and ``profile``.
        """
        try:
            email = validate_email(email)
        except ValidationError as e:
            raise AuthenticationError("Invalid login credentials") from e

        user = self.store.get_user_by_email(email)
        if user is None or not verify_password(password or "", user["password_hash"]):
            logger.info("Failed sign-in attempt", extra={"event": "sign_in_failed"})
            raise AuthenticationError("Invalid login credentials")

        token = secrets.token_urlsafe(32)
        expires_at = (datetime.now(timezone.utc) + timedelta(hours=self.settings.session_ttl_hours)).isoformat()
        self.store.create_session(user["id"], token, expires_at)
        log_event("user_signed_in", user_id=user["id"])
        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_at": expires_at,
            "profile": self.store.get_profile(user["id"]),
        }

    def sign_out(self, token: str) -> bool:
        return self.store.delete_session(token)

    def resolve_session(self, token: str | None) -> dict[str, Any]:
        """
        Return the profile behind a bearer token.

        Raises:
            AuthenticationError: Missing, unknown or expired token.
        """
        if not token:
            raise AuthenticationError()

        session = self.store.get_session(token)
        if session is None:
            raise AuthenticationError("Invalid or expired session")

        if datetime.fromisoformat(session["expires_at"]) <= datetime.now(timezone.utc):
            self.store.delete_session(token)
            raise AuthenticationError("Invalid or expired session")

        profile = self.store.get_profile(session["user_id"])
        if profile is None:
            raise AuthenticationError("Invalid or expired session")
        return profile
