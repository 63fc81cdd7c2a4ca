"""
Checkout: totals preview and order placement from the buyer's cart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from cropmarket.config import Settings, get_settings
from cropmarket.domain.enums import DeliveryMethod, PaymentMethod, PaymentStatus
from cropmarket.domain.payments import validate_card_details, validate_upi_id
from cropmarket.domain.pricing import CheckoutSummary, checkout_summary, expected_delivery_date, placed_order_summary
from cropmarket.exceptions import ValidationError
from cropmarket.logging_config import PerformanceTracker, log_event
from cropmarket.repository.store import MarketStore
from cropmarket.security.validators import validate_phone, validate_pincode

_REQUIRED_ADDRESS_FIELDS = ("full_name", "phone", "address", "city", "state", "pincode")


@dataclass
class CheckoutForm:
    full_name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    delivery_method: DeliveryMethod = DeliveryMethod.STANDARD
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    delivery_notes: str | None = None
    upi_id: str | None = None
    card_number: str | None = None
    card_expiry: str | None = None
    card_cvv: str | None = None
    card_name: str | None = None

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.state}, {self.pincode}"


class CheckoutService:
    def __init__(self, store: MarketStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    @property
    def _fees(self) -> dict[DeliveryMethod, float]:
        return {
            DeliveryMethod.STANDARD: self.settings.standard_delivery_fee,
            DeliveryMethod.EXPRESS: self.settings.express_delivery_fee,
        }

    @property
    def _days(self) -> dict[DeliveryMethod, int]:
        return {
            DeliveryMethod.STANDARD: self.settings.standard_delivery_days,
            DeliveryMethod.EXPRESS: self.settings.express_delivery_days,
        }

    def preview(self, user_id: str, delivery_method: DeliveryMethod | str = DeliveryMethod.STANDARD) -> CheckoutSummary:
        """Totals for the current cart; an empty cart previews as all zeros plus the fee."""
        items = self.store.get_cart(user_id)
        return checkout_summary(items, delivery_method, self.settings.tax_rate, fees=self._fees)

    def validate_form(self, form: CheckoutForm) -> dict[str, Any]:
        """
        Check the delivery and payment fields.

        Returns:
            Payment metadata to store with the orders (``payment_id`` for cards/UPI).
        """
        for name in _REQUIRED_ADDRESS_FIELDS:
            if not (getattr(form, name) or "").strip():
                raise ValidationError("is required", field=name)
        validate_phone(form.phone)
        validate_pincode(form.pincode)

        method = PaymentMethod(form.payment_method)
        if method == PaymentMethod.CARD:
            last4 = validate_card_details(
                form.card_number or "",
                form.card_expiry or "",
                form.card_cvv or "",
                form.card_name or "",
            )
            return {"payment_id": f"card_{last4}"}
        if method == PaymentMethod.UPI:
            if not validate_upi_id(form.upi_id or ""):
                raise ValidationError("Please enter a valid UPI ID (e.g., name@upi)", field="upi_id")
            return {"payment_id": f"upi_{form.upi_id}"}
        return {"payment_id": None}

    def place_order(self, user_id: str, form: CheckoutForm, *, today: date | None = None) -> dict[str, Any]:
        """
        Place one order per cart line and clear the cart.

        Raises:
            ValidationError: Missing delivery fields or bad payment details.
            EmptyCartError: Nothing in the cart.
            ListingNotFoundError / InsufficientStockError: A line can no longer be fulfilled.
        """
        payment = self.validate_form(form)
        method = DeliveryMethod(form.delivery_method)

        with PerformanceTracker("place_order", user_id=user_id):
            orders = self.store.create_orders_from_cart(
                user_id,
                payment_method=PaymentMethod(form.payment_method).value,
                payment_status=PaymentStatus.PENDING.value,
                payment_id=payment["payment_id"],
                delivery_address=form.full_address,
                delivery_notes=(form.delivery_notes or "").strip() or None,
                delivery_method=method.value,
                expected_delivery_date=expected_delivery_date(method, today, self._days).isoformat(),
            )
        summary = placed_order_summary(orders, method, self.settings.tax_rate, fees=self._fees)

        log_event(
            "order_placed",
            user_id=user_id,
            order_count=len(orders),
            total=summary.total,
            payment_method=PaymentMethod(form.payment_method).value,
        )
        return {"orders": orders, "summary": summary.to_dict()}
