"""Order rows: placement from the cart, buyer history and farmer queues."""

from __future__ import annotations

import sqlite3
from typing import Any

from cropmarket.domain.enums import ListingStatus, OrderStatus
from cropmarket.domain.pricing import line_total
from cropmarket.exceptions import (
    EmptyCartError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    ListingNotFoundError,
    OrderNotFoundError,
)
from cropmarket.repository.base import new_id, utcnow_iso
from cropmarket.repository.cart import _cart_rows

_BUYER_ORDER_SELECT = """
    SELECT o.*,
           l.title AS listing_title,
           l.price AS listing_price,
           l.unit AS listing_unit,
           l.image_url AS listing_image_url,
           l.farmer_id AS listing_farmer_id,
           f.full_name AS farmer_name
    FROM orders o
    LEFT JOIN listings l ON l.id = o.listing_id
    LEFT JOIN profiles f ON f.id = l.farmer_id
"""

_FARMER_ORDER_SELECT = """
    SELECT o.*,
           l.title AS listing_title,
           l.price AS listing_price,
           l.unit AS listing_unit,
           l.image_url AS listing_image_url,
           l.farmer_id AS listing_farmer_id,
           b.full_name AS buyer_full_name,
           b.phone AS buyer_phone
    FROM orders o
    JOIN listings l ON l.id = o.listing_id
    LEFT JOIN profiles b ON b.id = o.buyer_id
"""

_LISTING_ALIASES = ("title", "price", "unit", "image_url", "farmer_id")


def _order_from_row(row: sqlite3.Row) -> dict[str, Any]:
    order = dict(row)
    listing: dict[str, Any] | None = None
    if order.get("listing_title") is not None or order.get("listing_farmer_id") is not None:
        listing = {"id": order["listing_id"]}
    for column in _LISTING_ALIASES:
        value = order.pop(f"listing_{column}", None)
        if listing is not None:
            listing[column] = value
    order["listing"] = listing
    return order


class OrderMixin:
    def create_orders_from_cart(
        self,
        buyer_id: str,
        *,
        payment_method: str,
        delivery_address: str,
        expected_delivery_date: str,
        delivery_method: str = "standard",
        delivery_notes: str | None = None,
        payment_status: str = "pending",
        payment_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Turn every cart line into an order, then empty the cart.

        Runs as one transaction: either every line becomes an order, stock is
        reserved, the cart is cleared and the buyer's purchase counter is
        bumped, or nothing changes.

        Raises:
            EmptyCartError: If the cart has no lines.
            ListingNotFoundError: If a line's listing is gone or no longer active.
            InsufficientStockError: If a line asks for more than is available.
        """
        now = utcnow_iso()
        order_ids: list[str] = []
        with self._transaction("create_orders", immediate=True) as conn:
            items = _cart_rows(conn, buyer_id)
            if not items:
                raise EmptyCartError()

            for item in items:
                listing = item["listing"]
                if listing is None or listing["status"] != ListingStatus.ACTIVE.value:
                    raise ListingNotFoundError(item["listing_id"])
                quantity = int(item["quantity"])
                available = int(listing["quantity"])
                if quantity > available:
                    raise InsufficientStockError(listing["id"], requested=quantity, available=available)

                order_id = new_id()
                conn.execute(
                    """
                    INSERT INTO orders (
                        id, buyer_id, listing_id, quantity, total_price, status, order_status,
                        payment_method, payment_status, payment_id, delivery_address, delivery_notes,
                        delivery_method, expected_delivery_date, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        order_id,
                        buyer_id,
                        listing["id"],
                        quantity,
                        line_total(listing["price"], quantity),
                        OrderStatus.PLACED.value,
                        OrderStatus.PLACED.value,
                        payment_method,
                        payment_status,
                        payment_id,
                        delivery_address,
                        delivery_notes,
                        delivery_method,
                        expected_delivery_date,
                        now,
                        now,
                    ),
                )
                self._change_stock(conn, listing["id"], -quantity)
                order_ids.append(order_id)

            conn.execute("DELETE FROM cart_items WHERE user_id = ?", (buyer_id,))
            self._bump_counter(conn, buyer_id, "purchased_products", len(order_ids))

        return [self.get_order(order_id) for order_id in order_ids]

    @staticmethod
    def _change_stock(conn: sqlite3.Connection, listing_id: str, delta: int) -> None:
        """
        Move stock by ``delta`` and flip between active and sold_out at zero.

        Raises:
            InsufficientStockError: If a decrement would take stock below zero.
        """
        cursor = conn.execute(
            """
            UPDATE listings
            SET quantity = quantity + ?,
                status = CASE
                    WHEN quantity + ? <= 0 AND status = 'active' THEN 'sold_out'
                    WHEN quantity + ? > 0 AND status = 'sold_out' THEN 'active'
                    ELSE status
                END,
                updated_at = ?
            WHERE id = ? AND quantity + ? >= 0
            """,
            (delta, delta, delta, utcnow_iso(), listing_id, delta),
        )
        if cursor.rowcount == 0 and delta < 0:
            row = conn.execute("SELECT quantity FROM listings WHERE id = ?", (listing_id,)).fetchone()
            raise InsufficientStockError(listing_id, requested=-delta, available=int(row["quantity"]) if row else 0)

    def get_order(self, order_id: str) -> dict[str, Any] | None:
        with self._transaction("get_order") as conn:
            row = conn.execute(_BUYER_ORDER_SELECT + " WHERE o.id = ?", (order_id,)).fetchone()
            return _order_from_row(row) if row else None

    def list_buyer_orders(self, buyer_id: str) -> list[dict[str, Any]]:
        """A buyer's orders, newest first, with listing and farmer name embedded."""
        with self._transaction("list_buyer_orders") as conn:
            rows = conn.execute(
                _BUYER_ORDER_SELECT + " WHERE o.buyer_id = ? ORDER BY o.created_at DESC, o.rowid DESC",
                (buyer_id,),
            ).fetchall()
            return [_order_from_row(row) for row in rows]

    def list_farmer_orders(self, farmer_id: str, status: str | None = None) -> list[dict[str, Any]]:
        """Orders placed on ``farmer_id``'s listings, newest first, optionally by status."""
        sql = _FARMER_ORDER_SELECT + " WHERE l.farmer_id = ?"
        params: list[Any] = [farmer_id]
        if status and status != "all":
            sql += " AND o.order_status = ?"
            params.append(status)
        sql += " ORDER BY o.created_at DESC, o.rowid DESC"
        with self._transaction("list_farmer_orders") as conn:
            rows = conn.execute(sql, params).fetchall()
            return [_order_from_row(row) for row in rows]

    def update_order_status(
        self,
        order_id: str,
        status: str,
        *,
        expected_status: str | None = None,
        actual_delivery_date: str | None = None,
        restock: bool = False,
    ) -> dict[str, Any]:
        """
        Write a new status to both ``order_status`` and ``status``.

        With ``expected_status`` the write only lands while the order is still
        in that status; ``restock`` returns the ordered quantity to the
        listing, used when an order is cancelled.

        Raises:
            OrderNotFoundError: Unknown order.
            InvalidStatusTransitionError: The order left ``expected_status``
                before this write.
        """
        with self._transaction("update_order_status") as conn:
            row = conn.execute(
                "SELECT listing_id, quantity, COALESCE(order_status, status) AS current FROM orders WHERE id = ?",
                (order_id,),
            ).fetchone()
            if row is None:
                raise OrderNotFoundError(order_id)
            assignments = "order_status = ?, status = ?, updated_at = ?"
            params: list[Any] = [status, status, utcnow_iso()]
            if actual_delivery_date is not None:
                assignments += ", actual_delivery_date = ?"
                params.append(actual_delivery_date)
            sql = f"UPDATE orders SET {assignments} WHERE id = ?"
            params.append(order_id)
            if expected_status is not None:
                sql += " AND COALESCE(order_status, status) = ?"
                params.append(expected_status)
            if conn.execute(sql, params).rowcount != 1:
                raise InvalidStatusTransitionError(row["current"], status)
            if restock:
                self._change_stock(conn, row["listing_id"], int(row["quantity"]))
        return self.get_order(order_id)
