"""Pure marketplace rules: enums, distance, pricing, grading, order lifecycle, payments."""

from cropmarket.domain.enums import (
    CropCategory,
    DeliveryMethod,
    ListingStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    QualityGrade,
    UserRole,
)
from cropmarket.domain.geo import filter_nearby, haversine_km
from cropmarket.domain.grading import grade_for_score, quality_grade_for_score, simulate_quality_score
from cropmarket.domain.orders import DASHBOARD_TABS, can_transition, group_buyer_orders, tab_label
from cropmarket.domain.pricing import (
    CheckoutSummary,
    adjust_quantity,
    cart_subtotal,
    checkout_summary,
    delivery_fee,
    expected_delivery_date,
    line_total,
    placed_order_summary,
    tax_amount,
)

__all__ = [
    "DASHBOARD_TABS",
    "CheckoutSummary",
    "CropCategory",
    "DeliveryMethod",
    "ListingStatus",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "QualityGrade",
    "UserRole",
    "adjust_quantity",
    "can_transition",
    "cart_subtotal",
    "checkout_summary",
    "delivery_fee",
    "expected_delivery_date",
    "filter_nearby",
    "grade_for_score",
    "group_buyer_orders",
    "haversine_km",
    "line_total",
    "placed_order_summary",
    "quality_grade_for_score",
    "simulate_quality_score",
    "tab_label",
    "tax_amount",
]
