"""
Order tracking for both sides of the marketplace: the farmer's dashboard
queue and the buyer's history.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from cropmarket.domain.enums import OrderStatus
from cropmarket.domain.orders import DASHBOARD_TABS, can_transition, group_buyer_orders, order_status, tab_label
from cropmarket.exceptions import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from cropmarket.logging_config import log_event
from cropmarket.repository.store import MarketStore


def _enrich_farmer_order(order: dict[str, Any]) -> dict[str, Any]:
    """Fill the dashboard card fields with display defaults."""
    listing = order.pop("listing", None) or {}
    buyer_name = order.pop("buyer_full_name", None)
    buyer_phone = order.pop("buyer_phone", None)
    return {
        **order,
        "order_status": order_status(order),
        "payment_status": order.get("payment_status") or "pending",
        "delivery_address": order.get("delivery_address") or "No address provided",
        "listing": {
            "id": order["listing_id"],
            "title": listing.get("title") or "Unknown Product",
            "price": listing.get("price") or 0,
            "unit": listing.get("unit") or "kg",
            "image_url": listing.get("image_url"),
        },
        "buyer": {
            "id": order["buyer_id"],
            "full_name": buyer_name or "Unknown Buyer",
            "phone": buyer_phone or "N/A",
        },
    }


class OrderService:
    def __init__(self, store: MarketStore) -> None:
        self.store = store

    # -- farmer dashboard -------------------------------------------------

    def farmer_orders(self, farmer_id: str, status: str = "all") -> list[dict[str, Any]]:
        if status not in DASHBOARD_TABS:
            raise ValidationError(f"must be one of {', '.join(DASHBOARD_TABS)}", field="status")
        return [_enrich_farmer_order(order) for order in self.store.list_farmer_orders(farmer_id, status)]

    def dashboard_tabs(self, farmer_id: str) -> list[dict[str, Any]]:
        """Tab strip for the dashboard: label and order count per status."""
        orders = self.store.list_farmer_orders(farmer_id)
        counts: dict[str, int] = {}
        for order in orders:
            status = order_status(order)
            counts[status] = counts.get(status, 0) + 1
        return [
            {
                "status": tab,
                "label": tab_label(tab),
                "count": len(orders) if tab == "all" else counts.get(tab, 0),
            }
            for tab in DASHBOARD_TABS
        ]

    def update_order_status(
        self,
        farmer_id: str,
        order_id: str,
        status: OrderStatus | str,
        *,
        today: date | None = None,
    ) -> dict[str, Any]:
        """
        Move an order on the farmer's listing to ``status``.

        Raises:
            OrderNotFoundError: Unknown order.
            PermissionDeniedError: The order is on another farmer's listing.
            InvalidStatusTransitionError: The lifecycle does not allow the move.
        """
        status = OrderStatus(status)
        order = self.store.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if not order["listing"] or order["listing"]["farmer_id"] != farmer_id:
            raise PermissionDeniedError("Only the selling farmer can update this order")

        current = order_status(order)
        if not can_transition(current, status):
            raise InvalidStatusTransitionError(current, status.value)

        actual_delivery_date = None
        if status == OrderStatus.DELIVERED:
            actual_delivery_date = (today or date.today()).isoformat()

        updated = self.store.update_order_status(
            order_id,
            status.value,
            expected_status=current,
            actual_delivery_date=actual_delivery_date,
            restock=status == OrderStatus.CANCELLED,
        )
        log_event("order_status_updated", order_id=order_id, previous=current, status=status.value, by="farmer")
        return updated

    # -- buyer history ----------------------------------------------------

    def buyer_history(self, buyer_id: str) -> dict[str, list[dict[str, Any]]]:
        return group_buyer_orders(self.store.list_buyer_orders(buyer_id))

    def cancel_order(self, buyer_id: str, order_id: str) -> dict[str, Any]:
        """Cancel one of the buyer's own orders while it has not shipped."""
        order = self.store.get_order(order_id)
        if order is None or order["buyer_id"] != buyer_id:
            raise OrderNotFoundError(order_id)

        current = order_status(order)
        if not can_transition(current, OrderStatus.CANCELLED):
            raise InvalidStatusTransitionError(current, OrderStatus.CANCELLED.value)

        updated = self.store.update_order_status(
            order_id, OrderStatus.CANCELLED.value, expected_status=current, restock=True
        )
        log_event("order_status_updated", order_id=order_id, previous=current, status="cancelled", by="buyer")
        return updated
