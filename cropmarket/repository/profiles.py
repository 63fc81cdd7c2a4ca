"""Profile rows: one per user, carrying role, contact details and counters."""

from __future__ import annotations

import sqlite3
from typing import Any

from cropmarket.exceptions import ProfileNotFoundError, ValidationError
from cropmarket.repository.base import utcnow_iso

UPDATABLE_PROFILE_FIELDS = frozenset(
    {"full_name", "phone", "address", "geo_lat", "geo_lng", "avatar_url", "profile_complete"}
)

_COUNTERS = frozenset({"created_products", "purchased_products"})


def _profile_from_row(row: sqlite3.Row) -> dict[str, Any]:
    profile = dict(row)
    profile["profile_complete"] = bool(profile.get("profile_complete"))
    return profile


class ProfileMixin:
    def _insert_profile(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        *,
        email: str | None,
        full_name: str | None,
        role: str,
    ) -> None:
        now = utcnow_iso()
        conn.execute(
            """
            INSERT INTO profiles (id, email, full_name, role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, email, full_name, role, now, now),
        )

    def create_profile(
        self,
        user_id: str,
        *,
        email: str | None = None,
        full_name: str | None = None,
        role: str = "buyer",
    ) -> dict[str, Any]:
        with self._transaction("create_profile") as conn:
            self._insert_profile(conn, user_id, email=email, full_name=full_name, role=role)
        return self.get_profile(user_id)

    def get_profile(self, user_id: str) -> dict[str, Any] | None:
        with self._transaction("get_profile") as conn:
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
            return _profile_from_row(row) if row else None

    def update_profile(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Apply a partial update to a profile.

        Only ``UPDATABLE_PROFILE_FIELDS`` may be changed; role, email and the
        counters are never writable through this path.
        """
        unknown = set(updates) - UPDATABLE_PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        if updates:
            columns = sorted(updates)
            assignments = ", ".join(f"{column} = ?" for column in columns)
            params = [updates[column] for column in columns]
            if "profile_complete" in updates:
                params[columns.index("profile_complete")] = int(bool(updates["profile_complete"]))
            with self._transaction("update_profile") as conn:
                cur = conn.execute(
                    f"UPDATE profiles SET {assignments}, updated_at = ? WHERE id = ?",
                    [*params, utcnow_iso(), user_id],
                )
                if cur.rowcount == 0:
                    raise ProfileNotFoundError(user_id)

        profile = self.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(user_id)
        return profile

    def increment_profile_counter(self, user_id: str, counter: str, amount: int = 1) -> None:
        if counter not in _COUNTERS:
            raise ValueError(f"Unknown profile counter: {counter}")
        with self._transaction("increment_profile_counter") as conn:
            self._bump_counter(conn, user_id, counter, amount)

    @staticmethod
    def _bump_counter(conn: sqlite3.Connection, user_id: str, counter: str, amount: int) -> None:
        conn.execute(
            f"UPDATE profiles SET {counter} = {counter} + ?, updated_at = ? WHERE id = ?",
            (amount, utcnow_iso(), user_id),
        )
