"""Order lifecycle rules and grouping helpers."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from cropmarket.domain.enums import OrderStatus

_LIFECYCLE = (
    OrderStatus.PLACED,
    OrderStatus.CONFIRMED,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)

CANCELLABLE = frozenset({OrderStatus.PLACED, OrderStatus.CONFIRMED, OrderStatus.PACKED})

DASHBOARD_TABS = ("all",) + tuple(status.value for status in OrderStatus)


def order_status(order: dict[str, Any]) -> str:
    """Effective status of an order row (``order_status`` wins over legacy ``status``)."""
    return order.get("order_status") or order.get("status") or OrderStatus.PLACED.value


def can_transition(current: OrderStatus | str, new: OrderStatus | str) -> bool:
    """
    Return True if an order may move from ``current`` to ``new``.

    Orders move one step forward along placed, confirmed, packed, shipped,
    delivered. Cancellation is allowed until the order ships. Delivered and
    cancelled orders are final.
    """
    current = OrderStatus(current)
    new = OrderStatus(new)
    if new == OrderStatus.CANCELLED:
        return current in CANCELLABLE
    if current not in _LIFECYCLE:
        return False
    index = _LIFECYCLE.index(current)
    return index + 1 < len(_LIFECYCLE) and _LIFECYCLE[index + 1] == new


def group_buyer_orders(orders: Iterable[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Split a buyer's orders into active, completed and cancelled, keeping order."""
    groups: dict[str, list[dict[str, Any]]] = {"active": [], "completed": [], "cancelled": []}
    for order in orders:
        status = order_status(order)
        if status == OrderStatus.DELIVERED.value:
            groups["completed"].append(order)
        elif status == OrderStatus.CANCELLED.value:
            groups["cancelled"].append(order)
        else:
            groups["active"].append(order)
    return groups


def tab_label(status: str) -> str:
    if status == "all":
        return "All Orders"
    if status == OrderStatus.PLACED.value:
        return "New Orders"
    return status.capitalize()
