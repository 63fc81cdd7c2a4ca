"""Cart rows: one line per (user, listing), quantities always at least one."""

from __future__ import annotations

import sqlite3
from typing import Any

from cropmarket.domain.pricing import adjust_quantity
from cropmarket.exceptions import (
    CartItemNotFoundError,
    InsufficientStockError,
    ListingNotFoundError,
    ValidationError,
)
from cropmarket.repository.base import new_id, utcnow_iso
from cropmarket.repository.listings import _listing_from_row


def _load_listings(conn: sqlite3.Connection, listing_ids: list[str]) -> dict[str, dict[str, Any]]:
    if not listing_ids:
        return {}
    placeholders = ", ".join("?" for _ in listing_ids)
    rows = conn.execute(f"SELECT * FROM listings WHERE id IN ({placeholders})", listing_ids).fetchall()
    return {row["id"]: _listing_from_row(row) for row in rows}


def _cart_rows(conn: sqlite3.Connection, user_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM cart_items WHERE user_id = ? ORDER BY created_at ASC, rowid ASC",
        (user_id,),
    ).fetchall()
    items = [dict(row) for row in rows]
    listings = _load_listings(conn, [item["listing_id"] for item in items])
    for item in items:
        item["listing"] = listings.get(item["listing_id"])
    return items


def _check_stock(listing: dict[str, Any], quantity: int) -> None:
    if quantity > int(listing["quantity"]):
        raise InsufficientStockError(listing["id"], requested=quantity, available=int(listing["quantity"]))


class CartMixin:
    def get_cart(self, user_id: str) -> list[dict[str, Any]]:
        """Cart lines for ``user_id`` with the full listing embedded under ``listing``."""
        with self._transaction("get_cart") as conn:
            return _cart_rows(conn, user_id)

    def _get_cart_item(self, conn: sqlite3.Connection, user_id: str, item_id: str) -> dict[str, Any]:
        row = conn.execute(
            "SELECT * FROM cart_items WHERE id = ? AND user_id = ?",
            (item_id, user_id),
        ).fetchone()
        if row is None:
            raise CartItemNotFoundError(item_id)
        item = dict(row)
        item["listing"] = _load_listings(conn, [item["listing_id"]]).get(item["listing_id"])
        return item

    def add_to_cart(self, user_id: str, listing_id: str, quantity: int = 1) -> dict[str, Any]:
        """
        Add ``quantity`` units of a listing, merging into an existing line.

        Raises:
            ListingNotFoundError: If the listing is missing or not active.
            InsufficientStockError: If the resulting line exceeds stock.
        """
        if quantity < 1:
            raise ValidationError("must be at least 1", field="quantity")

        with self._transaction("add_to_cart") as conn:
            listing = _load_listings(conn, [listing_id]).get(listing_id)
            if listing is None or listing["status"] != "active":
                raise ListingNotFoundError(listing_id)

            existing = conn.execute(
                "SELECT id, quantity FROM cart_items WHERE user_id = ? AND listing_id = ?",
                (user_id, listing_id),
            ).fetchone()
            if existing:
                new_quantity = int(existing["quantity"]) + quantity
                _check_stock(listing, new_quantity)
                conn.execute("UPDATE cart_items SET quantity = ? WHERE id = ?", (new_quantity, existing["id"]))
                item_id = existing["id"]
            else:
                _check_stock(listing, quantity)
                item_id = new_id()
                conn.execute(
                    "INSERT INTO cart_items (id, user_id, listing_id, quantity, created_at) VALUES (?, ?, ?, ?, ?)",
                    (item_id, user_id, listing_id, quantity, utcnow_iso()),
                )
            return self._get_cart_item(conn, user_id, item_id)

    def set_cart_quantity(self, user_id: str, item_id: str, quantity: int) -> dict[str, Any] | None:
        """
        Set a line's quantity; zero or less removes the line and returns None.
        """
        with self._transaction("set_cart_quantity") as conn:
            item = self._get_cart_item(conn, user_id, item_id)
            if quantity <= 0:
                conn.execute("DELETE FROM cart_items WHERE id = ?", (item_id,))
                return None
            if item["listing"] is not None:
                _check_stock(item["listing"], quantity)
            conn.execute("UPDATE cart_items SET quantity = ? WHERE id = ?", (quantity, item_id))
            item["quantity"] = quantity
            return item

    def adjust_cart_item(self, user_id: str, item_id: str, delta: int) -> dict[str, Any]:
        """Step a line's quantity by ``delta``, clamped to [1, available stock]."""
        with self._transaction("adjust_cart_item") as conn:
            item = self._get_cart_item(conn, user_id, item_id)
            maximum = int(item["listing"]["quantity"]) if item["listing"] else None
            quantity = adjust_quantity(int(item["quantity"]), delta, maximum)
            conn.execute("UPDATE cart_items SET quantity = ? WHERE id = ?", (quantity, item_id))
            item["quantity"] = quantity
            return item

    def remove_cart_item(self, user_id: str, item_id: str) -> None:
        with self._transaction("remove_cart_item") as conn:
            cur = conn.execute("DELETE FROM cart_items WHERE id = ? AND user_id = ?", (item_id, user_id))
            if cur.rowcount == 0:
                raise CartItemNotFoundError(item_id)

    def clear_cart(self, user_id: str) -> int:
        with self._transaction("clear_cart") as conn:
            return conn.execute("DELETE FROM cart_items WHERE user_id = ?", (user_id,)).rowcount
