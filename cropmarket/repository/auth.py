"""Credential and session rows."""

from __future__ import annotations

from typing import Any

from cropmarket.exceptions import ConflictError
from cropmarket.repository.base import new_id, utcnow_iso


class AuthMixin:
    def create_user(
        self,
        email: str,
        password_hash: str,
        *,
        full_name: str | None = None,
        role: str = "buyer",
    ) -> dict[str, Any]:
        """
        Create a credentials row and its profile in one transaction.

        Raises:
            ConflictError: If the email is already registered.
        """
        user_id = new_id()
        now = utcnow_iso()
        try:
            with self._transaction("create_user") as conn:
                conn.execute(
                    "INSERT INTO users (id, email, password_hash, created_at) VALUES (?, ?, ?, ?)",
                    (user_id, email, password_hash, now),
                )
                self._insert_profile(conn, user_id, email=email, full_name=full_name, role=role)
        except ConflictError as e:
            raise ConflictError("User already registered", detail=f"Email {email!r} is taken") from e
        return self.get_profile(user_id)

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        with self._transaction("get_user") as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return dict(row) if row else None

    def create_session(self, user_id: str, token: str, expires_at: str) -> dict[str, Any]:
        session = {"token": token, "user_id": user_id, "created_at": utcnow_iso(), "expires_at": expires_at}
        with self._transaction("create_session") as conn:
            conn.execute(
                "INSERT INTO sessions (token, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
                (token, user_id, session["created_at"], expires_at),
            )
        return session

    def get_session(self, token: str) -> dict[str, Any] | None:
        with self._transaction("get_session") as conn:
            row = conn.execute("SELECT * FROM sessions WHERE token = ?", (token,)).fetchone()
            return dict(row) if row else None

    def delete_session(self, token: str) -> bool:
        with self._transaction("delete_session") as conn:
            cur = conn.execute("DELETE FROM sessions WHERE token = ?", (token,))
            return cur.rowcount > 0

    def delete_expired_sessions(self, now: str | None = None) -> int:
        with self._transaction("delete_expired_sessions") as conn:
            cur = conn.execute("DELETE FROM sessions WHERE expires_at <= ?", (now or utcnow_iso(),))
            return cur.rowcount
