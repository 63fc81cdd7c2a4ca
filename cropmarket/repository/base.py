"""
SQLite connection handling and schema for the marketplace store.
"""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from cropmarket.exceptions import ConflictError, DatabaseError

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS sessions (
    token TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    email TEXT,
    full_name TEXT,
    avatar_url TEXT,
    role TEXT NOT NULL DEFAULT 'buyer'
        CHECK (role IN ('buyer', 'farmer', 'admin', 'delivery')),
    phone TEXT,
    address TEXT,
    geo_lat REAL,
    geo_lng REAL,
    profile_complete INTEGER NOT NULL DEFAULT 0,
    created_products INTEGER NOT NULL DEFAULT 0,
    purchased_products INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS listings (
    id TEXT PRIMARY KEY,
    farmer_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    price REAL NOT NULL CHECK (price >= 0),
    quantity INTEGER NOT NULL CHECK (quantity >= 0),
    unit TEXT NOT NULL DEFAULT 'kg',
    image_url TEXT,
    images TEXT,
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'inactive', 'sold_out')),
    category TEXT
        CHECK (category IS NULL OR category IN ('vegetables', 'fruits', 'grains', 'pulses', 'spices', 'dairy')),
    quality_grade TEXT
        CHECK (quality_grade IS NULL OR quality_grade IN ('A', 'B', 'C')),
    location_lat REAL,
    location_lng REAL,
    location_address TEXT,
    ai_score INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (farmer_id) REFERENCES profiles(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS cart_items (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    listing_id TEXT NOT NULL,
    quantity INTEGER NOT NULL CHECK (quantity > 0),
    created_at TEXT NOT NULL,
    UNIQUE (user_id, listing_id),
    FOREIGN KEY (user_id) REFERENCES profiles(id) ON DELETE CASCADE,
    FOREIGN KEY (listing_id) REFERENCES listings(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    buyer_id TEXT NOT NULL,
    listing_id TEXT NOT NULL,
    quantity INTEGER NOT NULL CHECK (quantity > 0),
    total_price REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'placed',
    order_status TEXT NOT NULL DEFAULT 'placed'
        CHECK (order_status IN ('placed', 'confirmed', 'packed', 'shipped', 'delivered', 'cancelled')),
    payment_method TEXT NOT NULL
        CHECK (payment_method IN ('razorpay', 'stripe', 'upi', 'crypto', 'cash_on_delivery', 'card')),
    payment_status TEXT NOT NULL DEFAULT 'pending'
        CHECK (payment_status IN ('pending', 'completed', 'failed', 'refunded')),
    payment_id TEXT,
    delivery_address TEXT,
    delivery_notes TEXT,
    delivery_method TEXT,
    expected_delivery_date TEXT,
    actual_delivery_date TEXT,
    delivery_agent_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (buyer_id) REFERENCES profiles(id),
    FOREIGN KEY (listing_id) REFERENCES listings(id)
);

CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_listings_status_created ON listings(status, created_at);
CREATE INDEX IF NOT EXISTS idx_listings_farmer ON listings(farmer_id);
CREATE INDEX IF NOT EXISTS idx_listings_category ON listings(category);
CREATE INDEX IF NOT EXISTS idx_cart_items_user ON cart_items(user_id);
CREATE INDEX IF NOT EXISTS idx_orders_buyer_created ON orders(buyer_id, created_at);
CREATE INDEX IF NOT EXISTS idx_orders_listing ON orders(listing_id);
"""


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class StoreBase:
    """
    Single-file SQLite store.

    One connection per operation; each ``_transaction()`` block commits on
    success and rolls back on error, so multi-row writes are all or nothing.
    """

    def __init__(self, db_path: str | Path = "data/cropmarket.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("PRAGMA journal_mode = WAL;")
        conn.execute("PRAGMA synchronous = NORMAL;")
        return conn

    @contextmanager
    def _transaction(self, operation: str = "query", *, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection whose work commits on exit or rolls back on error.

        ``immediate`` takes the write lock before the first read, so checks
        made inside the block still hold when the block writes.

        Raises:
            ConflictError: A write broke a constraint (unique key, stock floor).
            DatabaseError: SQLite failed, e.g. the database stayed locked.
        """
        conn = self._conn()
        try:
            with conn:
                if immediate:
                    conn.execute("BEGIN IMMEDIATE")
                yield conn
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"{operation} violates a data constraint", detail=str(e)) from e
        except sqlite3.OperationalError as e:
            raise DatabaseError(str(e), operation=operation) from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._transaction("init_schema") as conn:
            conn.executescript(SCHEMA)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._transaction("ping") as conn:
                conn.execute("SELECT 1").fetchone()
            return True
        except DatabaseError:
            return False
