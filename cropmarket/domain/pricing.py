"""
Cart and checkout arithmetic.

Amounts are plain floats in rupees. Tax is rounded to two decimals; every
other figure is the exact sum of its parts so that the stated identities
(cart total is the sum of line totals, total is subtotal plus delivery fee
plus tax) hold exactly.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any

from cropmarket.domain.enums import DeliveryMethod

DELIVERY_FEES = {
    DeliveryMethod.STANDARD: 40.0,
    DeliveryMethod.EXPRESS: 80.0,
}

DELIVERY_DAYS = {
    DeliveryMethod.STANDARD: 5,
    DeliveryMethod.EXPRESS: 2,
}


@dataclass(frozen=True)
class CheckoutSummary:
    subtotal: float
    delivery_fee: float
    tax: float
    total: float
    item_count: int
    unit_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def line_total(price: float, quantity: int) -> float:
    return float(price) * int(quantity)


def _item_price(item: Mapping[str, Any]) -> float:
    listing = item.get("listing") or {}
    return float(listing.get("price", item.get("price", 0)) or 0)


def cart_subtotal(items: Iterable[Mapping[str, Any]]) -> float:
    """
    Sum of ``price * quantity`` over cart lines.

    Each line carries its price either on an embedded ``listing`` or
    directly. An empty cart totals 0.
    """
    return sum((line_total(_item_price(item), item.get("quantity", 0)) for item in items), 0.0)


def delivery_fee(method: DeliveryMethod | str, fees: Mapping[DeliveryMethod, float] | None = None) -> float:
    method = DeliveryMethod(method)
    return float((fees or DELIVERY_FEES)[method])


def tax_amount(subtotal: float, rate: float) -> float:
    return round(subtotal * rate, 2)


def _summarize(
    subtotal: float,
    lines: list[Mapping[str, Any]],
    method: DeliveryMethod | str,
    tax_rate: float,
    fees: Mapping[DeliveryMethod, float] | None,
) -> CheckoutSummary:
    fee = delivery_fee(method, fees)
    tax = tax_amount(subtotal, tax_rate)
    return CheckoutSummary(
        subtotal=subtotal,
        delivery_fee=fee,
        tax=tax,
        total=subtotal + fee + tax,
        item_count=len(lines),
        unit_count=sum(int(line.get("quantity", 0)) for line in lines),
    )


def checkout_summary(
    items: Iterable[Mapping[str, Any]],
    method: DeliveryMethod | str = DeliveryMethod.STANDARD,
    tax_rate: float = 0.0,
    *,
    fees: Mapping[DeliveryMethod, float] | None = None,
) -> CheckoutSummary:
    """
    Compute the checkout totals for a cart; ``total = subtotal + delivery_fee + tax``.

    ``item_count`` is the number of cart lines and ``unit_count`` the sum of
    their quantities.
    """
    items = list(items)
    return _summarize(cart_subtotal(items), items, method, tax_rate, fees)


def placed_order_summary(
    orders: Iterable[Mapping[str, Any]],
    method: DeliveryMethod | str = DeliveryMethod.STANDARD,
    tax_rate: float = 0.0,
    *,
    fees: Mapping[DeliveryMethod, float] | None = None,
) -> CheckoutSummary:
    """Totals for orders already placed, from each order's stored ``total_price``."""
    orders = list(orders)
    subtotal = sum((float(order.get("total_price") or 0) for order in orders), 0.0)
    return _summarize(subtotal, orders, method, tax_rate, fees)


def expected_delivery_date(
    method: DeliveryMethod | str,
    today: date | None = None,
    days: Mapping[DeliveryMethod, int] | None = None,
) -> date:
    method = DeliveryMethod(method)
    return (today or date.today()) + timedelta(days=(days or DELIVERY_DAYS)[method])


def adjust_quantity(current: int, delta: int, maximum: int | None = None) -> int:
    """
    Apply ``delta`` to a cart quantity.

    The result never drops below one and never exceeds ``maximum`` when one
    is given (a ``maximum`` below one still yields one).
    """
    quantity = max(1, int(current) + int(delta))
    if maximum is not None:
        quantity = max(1, min(quantity, int(maximum)))
    return quantity
