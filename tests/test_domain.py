"""
Tests for cropmarket.domain: distance, pricing, grading, order lifecycle and payments.

Pure functions only, no store or HTTP.
"""

import random
from datetime import date

import pytest

from cropmarket.domain.enums import DeliveryMethod, OrderStatus, QualityGrade
from cropmarket.domain.geo import filter_nearby, haversine_km
from cropmarket.domain.grading import grade, grade_for_score, quality_grade_for_score, simulate_quality_score
from cropmarket.domain.orders import DASHBOARD_TABS, can_transition, group_buyer_orders, order_status, tab_label
from cropmarket.domain.payments import format_card_number, format_expiry, validate_card_details, validate_upi_id
from cropmarket.domain.pricing import (
    adjust_quantity,
    cart_subtotal,
    checkout_summary,
    delivery_fee,
    expected_delivery_date,
    line_total,
    placed_order_summary,
    tax_amount,
)
from cropmarket.exceptions import ValidationError


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(28.6139, 77.2090, 28.6139, 77.2090) == 0.0

    def test_delhi_to_mumbai(self):
        distance = haversine_km(28.6139, 77.2090, 19.0760, 72.8777)
        assert 1140 < distance < 1160

    def test_symmetric(self):
        a = haversine_km(12.9716, 77.5946, 13.0827, 80.2707)
        b = haversine_km(13.0827, 80.2707, 12.9716, 77.5946)
        assert a == pytest.approx(b)

    def test_one_degree_latitude(self):
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)


class TestFilterNearby:
    def test_keeps_listings_within_radius(self):
        listings = [
            {"id": "near", "location_lat": 28.62, "location_lng": 77.21},
            {"id": "far", "location_lat": 19.07, "location_lng": 72.87},
        ]
        result = filter_nearby(listings, 28.6139, 77.2090, 50)
        assert [item["id"] for item in result] == ["near"]
        assert result[0]["distance_km"] < 2

    def test_missing_coordinates_are_dropped(self):
        listings = [
            {"id": "no_lat", "location_lat": None, "location_lng": 77.2},
            {"id": "no_lng", "location_lat": 28.6},
            {"id": "ok", "location_lat": 28.6, "location_lng": 77.2},
        ]
        assert [item["id"] for item in filter_nearby(listings, 28.6, 77.2)] == ["ok"]

    def test_zero_coordinates_are_real(self):
        listings = [{"id": "gulf_of_guinea", "location_lat": 0.0, "location_lng": 0.0}]
        result = filter_nearby(listings, 0.1, 0.1, 50)
        assert [item["id"] for item in result] == ["gulf_of_guinea"]

    def test_does_not_mutate_input_and_rounds(self):
        listing = {"id": "a", "location_lat": 28.7, "location_lng": 77.1}
        result = filter_nearby([listing], 28.6139, 77.2090, 50)
        assert "distance_km" not in listing
        assert result[0]["distance_km"] == round(result[0]["distance_km"], 2)

    def test_boundary_is_inclusive(self):
        distance = haversine_km(0, 0, 1, 0)
        listings = [{"id": "edge", "location_lat": 1, "location_lng": 0}]
        assert filter_nearby(listings, 0, 0, distance)


class TestPricing:
    def test_line_total_and_subtotal(self):
        items = [
            {"quantity": 2, "listing": {"price": 40.0}},
            {"quantity": 3, "price": 10.0},
        ]
        assert line_total(40.0, 2) == 80.0
        assert cart_subtotal(items) == 110.0

    def test_empty_cart_subtotal_is_zero(self):
        assert cart_subtotal([]) == 0.0

    def test_delivery_fee(self):
        assert delivery_fee("standard") == 40.0
        assert delivery_fee(DeliveryMethod.EXPRESS) == 80.0
        assert delivery_fee("express", {DeliveryMethod.EXPRESS: 99.0}) == 99.0

    def test_unknown_delivery_method(self):
        with pytest.raises(ValueError):
            delivery_fee("drone")

    def test_tax_rounded_to_two_decimals(self):
        assert tax_amount(250.0, 0.05) == 12.5
        assert tax_amount(0.0, 0.05) == 0.0

    def test_checkout_summary_identity(self):
        items = [{"quantity": 2, "listing": {"price": 45.5}}, {"quantity": 1, "listing": {"price": 120.0}}]
        summary = checkout_summary(items, "express", 0.05)
        assert summary.subtotal == 211.0
        assert summary.delivery_fee == 80.0
        assert summary.tax == 10.55
        assert summary.total == summary.subtotal + summary.delivery_fee + summary.tax
        assert summary.item_count == 2
        assert summary.unit_count == 3

    def test_checkout_summary_without_tax(self):
        summary = checkout_summary([{"quantity": 1, "listing": {"price": 100.0}}])
        assert summary.to_dict() == {
            "subtotal": 100.0,
            "delivery_fee": 40.0,
            "tax": 0.0,
            "total": 140.0,
            "item_count": 1,
            "unit_count": 1,
        }

    def test_placed_order_summary_uses_stored_totals(self):
        orders = [{"quantity": 3, "total_price": 150.0}, {"quantity": 1, "total_price": 600.0}]
        summary = placed_order_summary(orders, DeliveryMethod.STANDARD, 0.05)
        assert summary.subtotal == 750.0
        assert summary.tax == 37.5
        assert summary.total == 827.5
        assert (summary.item_count, summary.unit_count) == (2, 4)

    def test_expected_delivery_date(self):
        today = date(2024, 3, 1)
        assert expected_delivery_date("standard", today) == date(2024, 3, 6)
        assert expected_delivery_date("express", today) == date(2024, 3, 3)

    @pytest.mark.parametrize(
        "current, delta, maximum, expected",
        [
            (1, 1, None, 2),
            (1, -1, None, 1),
            (3, -10, None, 1),
            (4, 5, 6, 6),
            (2, 1, 0, 1),
        ],
    )
    def test_adjust_quantity(self, current, delta, maximum, expected):
        assert adjust_quantity(current, delta, maximum) == expected


class TestGrading:
    def test_score_uses_confidence_and_bonus(self):
        class FixedRandom(random.Random):
            def random(self):
                return 0.5

        assert simulate_quality_score(0.9, FixedRandom()) == 78

    def test_score_bounds(self):
        rng = random.Random(7)
        for _ in range(100):
            score = simulate_quality_score(rng.random(), rng)
            assert 0 <= score <= 100

    def test_confidence_out_of_range(self):
        with pytest.raises(ValueError):
            simulate_quality_score(1.5)

    @pytest.mark.parametrize(
        "score, label",
        [(100, "Premium"), (90, "Premium"), (89, "Quality"), (75, "Quality"), (60, "Standard"), (59, "Basic")],
    )
    def test_grade_bands(self, score, label):
        assert grade_for_score(score) == label

    def test_quality_grade_mapping(self):
        assert quality_grade_for_score(80) == QualityGrade.A
        assert quality_grade_for_score(65) == QualityGrade.B
        assert quality_grade_for_score(10) == QualityGrade.C

    def test_grade_result_is_consistent(self):
        result = grade(0.8, random.Random(1))
        assert result.grade == grade_for_score(result.score)
        assert result.quality_grade == quality_grade_for_score(result.score)


class TestOrderLifecycle:
    def test_forward_steps_only(self):
        assert can_transition("placed", "confirmed")
        assert can_transition("confirmed", "packed")
        assert can_transition("shipped", "delivered")
        assert not can_transition("placed", "shipped")
        assert not can_transition("packed", "confirmed")

    def test_cancellation_until_shipped(self):
        for status in ("placed", "confirmed", "packed"):
            assert can_transition(status, OrderStatus.CANCELLED)
        assert not can_transition("shipped", "cancelled")

    def test_terminal_states(self):
        for new in OrderStatus:
            assert not can_transition("delivered", new)
            assert not can_transition("cancelled", new)

    def test_unknown_status_raises(self):
        with pytest.raises(ValueError):
            can_transition("placed", "lost")

    def test_order_status_prefers_order_status_column(self):
        assert order_status({"order_status": "packed", "status": "placed"}) == "packed"
        assert order_status({"status": "confirmed"}) == "confirmed"
        assert order_status({}) == "placed"

    def test_group_buyer_orders(self):
        orders = [
            {"id": "1", "order_status": "placed"},
            {"id": "2", "order_status": "delivered"},
            {"id": "3", "order_status": "cancelled"},
            {"id": "4", "order_status": "shipped"},
        ]
        groups = group_buyer_orders(orders)
        assert [o["id"] for o in groups["active"]] == ["1", "4"]
        assert [o["id"] for o in groups["completed"]] == ["2"]
        assert [o["id"] for o in groups["cancelled"]] == ["3"]

    def test_tabs(self):
        assert DASHBOARD_TABS[0] == "all"
        assert tab_label("all") == "All Orders"
        assert tab_label("placed") == "New Orders"
        assert tab_label("shipped") == "Shipped"


class TestPayments:
    def test_upi(self):
        assert validate_upi_id("asha@okaxis")
        assert validate_upi_id("asha.verma-1@upi")
        assert not validate_upi_id("asha")
        assert not validate_upi_id("asha@ok axis")
        assert not validate_upi_id("")

    def test_format_card_number(self):
        assert format_card_number("4111111111111111") == "4111 1111 1111 1111"
        assert format_card_number("4111-1111-1111-1111-9999") == "4111 1111 1111 1111"
        assert format_card_number("41a1") == "411"

    def test_format_expiry(self):
        assert format_expiry("1227") == "12/27"
        assert format_expiry("1") == "1"

    def test_card_details_valid(self):
        assert validate_card_details("4111 1111 1111 1234", "12/27", "123", "Asha Verma") == "1234"

    @pytest.mark.parametrize(
        "number, expiry, cvv, name, field",
        [
            ("4111 1111", "12/27", "123", "Asha", "card_number"),
            ("4111 1111 1111 1111", "1227", "123", "Asha", "card_expiry"),
            ("4111 1111 1111 1111", "12/27", "12", "Asha", "card_cvv"),
            ("4111 1111 1111 1111", "12/27", "123", "  ", "card_name"),
        ],
    )
    def test_card_details_invalid(self, number, expiry, cvv, name, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_card_details(number, expiry, cvv, name)
        assert exc_info.value.field == field
