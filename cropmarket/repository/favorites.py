"""
Favourite sellers: buyers bookmarking the farmers they buy from.

Stored in the hosted Postgres alongside the rest of the shared user data.
Falls back to in-memory storage when the database is unreachable so that
local development and tests need no Postgres.
"""

from __future__ import annotations

import logging
from typing import Any

import psycopg
from psycopg import OperationalError
from psycopg.rows import dict_row

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS favorite_sellers (
    buyer_id TEXT NOT NULL,
    farmer_id TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (buyer_id, farmer_id)
)
"""


class FavoriteSellerRepo:
    """
    Repository for a buyer's favourite farmers.

    Uses a Postgres connection per call; any connection failure flips the
    repo to in-memory mode for the rest of the process.
    """

    def __init__(self, db_url: str | None = None, *, use_db: bool = True) -> None:
        if db_url is None:
            from cropmarket.config import settings

            db_url = settings.favorites_db_url
        self._db_url = db_url
        self._in_memory: dict[str, dict[str, None]] = {}
        self._use_db = use_db and self._test_connection()

    @property
    def uses_database(self) -> bool:
        return self._use_db

    def _test_connection(self) -> bool:
        """Test database connection and create the table; fall back to memory on failure."""
        try:
            with psycopg.connect(self._db_url) as conn:
                conn.execute(_SCHEMA)
            logger.info("FavoriteSellerRepo: Connected to PostgreSQL")
            return True
        except (OperationalError, OSError) as e:
            logger.warning("FavoriteSellerRepo: DB connection failed, using in-memory storage: %s", e)
            return False

    def _execute(self, sql: str, params: tuple = (), fetch: bool = False) -> list[dict[str, Any]] | None:
        """Run one statement; returns None (and disables the DB) if the connection is lost."""
        if not self._use_db:
            return None

        try:
            with psycopg.connect(self._db_url, row_factory=dict_row, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, params)
                    if fetch:
                        return cur.fetchall()
                    return []
        except (OperationalError, OSError) as e:
            logger.warning("FavoriteSellerRepo: DB connection lost, falling back to in-memory: %s", e)
            self._use_db = False
            return None

    def get_favorites(self, buyer_id: str) -> list[str]:
        """Farmer ids the buyer has favourited, most recent first."""
        if not buyer_id:
            return []

        rows = self._execute(
            "SELECT farmer_id FROM favorite_sellers WHERE buyer_id = %s ORDER BY created_at DESC",
            (buyer_id,),
            fetch=True,
        )
        if rows is None:
            return list(reversed(self._in_memory.get(buyer_id, {})))
        return [row["farmer_id"] for row in rows]

    def is_favorite(self, buyer_id: str, farmer_id: str) -> bool:
        if not buyer_id or not farmer_id:
            return False

        rows = self._execute(
            "SELECT 1 FROM favorite_sellers WHERE buyer_id = %s AND farmer_id = %s",
            (buyer_id, farmer_id),
            fetch=True,
        )
        if rows is None:
            return farmer_id in self._in_memory.get(buyer_id, {})
        return len(rows) > 0

    def add_favorite(self, buyer_id: str, farmer_id: str) -> bool:
        """Favourite a farmer. Returns True if it was newly added."""
        if not buyer_id or not farmer_id:
            return False

        rows = self._execute(
            "INSERT INTO favorite_sellers (buyer_id, farmer_id) VALUES (%s, %s) "
            "ON CONFLICT DO NOTHING RETURNING farmer_id",
            (buyer_id, farmer_id),
            fetch=True,
        )
        if rows is None:
            favorites = self._in_memory.setdefault(buyer_id, {})
            if farmer_id in favorites:
                return False
            favorites[farmer_id] = None
            return True
        return len(rows) > 0

    def remove_favorite(self, buyer_id: str, farmer_id: str) -> bool:
        """Unfavourite a farmer. Returns True if it was present."""
        if not buyer_id or not farmer_id:
            return False

        rows = self._execute(
            "DELETE FROM favorite_sellers WHERE buyer_id = %s AND farmer_id = %s RETURNING farmer_id",
            (buyer_id, farmer_id),
            fetch=True,
        )
        if rows is None:
            favorites = self._in_memory.get(buyer_id, {})
            if farmer_id in favorites:
                del favorites[farmer_id]
                return True
            return False
        return len(rows) > 0

    def toggle_favorite(self, buyer_id: str, farmer_id: str) -> bool:
        """Flip the favourite flag. Returns the new state."""
        if self.is_favorite(buyer_id, farmer_id):
            self.remove_favorite(buyer_id, farmer_id)
            return False
        self.add_favorite(buyer_id, farmer_id)
        return True
