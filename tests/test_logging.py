"""
Tests for cropmarket.logging_config.
"""

import json
import logging
import sys

import pytest

from cropmarket.logging_config import ConsoleFormatter, LogContext, PerformanceTracker, StructuredFormatter


@pytest.fixture(autouse=True)
def clean_context():
    LogContext.clear()
    yield
    LogContext.clear()


def _record(msg: str = "hello", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("cropmarket.test", level, __file__, 10, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(request_id="req-1", user_id="u-1")
        assert LogContext.get_request_id() == "req-1"
        assert LogContext.get("user_id") == "u-1"
        assert LogContext.get_all() == {
            "request_id": "req-1",
            "user_id": "u-1",
            "client_ip": None,
            "endpoint": None,
        }

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(order_id="o-1")

    def test_clear(self):
        LogContext.set(request_id="req-1")
        LogContext.clear()
        assert LogContext.get_request_id() is None


class TestStructuredFormatter:
    def test_emits_json_with_service_and_context(self):
        LogContext.set(request_id="req-42", endpoint="/v1/cart")
        formatter = StructuredFormatter(service_name="cropmarket", environment="test")

        entry = json.loads(formatter.format(_record("cart_updated", item_count=3)))

        assert entry["message"] == "cart_updated"
        assert entry["level"] == "INFO"
        assert entry["service"] == "cropmarket"
        assert entry["environment"] == "test"
        assert entry["request_id"] == "req-42"
        assert entry["endpoint"] == "/v1/cart"
        assert entry["item_count"] == 3
        assert entry["timestamp"].endswith("Z")

    def test_extra_fields_can_be_excluded(self):
        formatter = StructuredFormatter(include_extra_fields=False)
        entry = json.loads(formatter.format(_record(item_count=3)))
        assert "item_count" not in entry

    def test_exception_info_included(self):
        formatter = StructuredFormatter()
        try:
            raise ValueError("bad quantity")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        entry = json.loads(formatter.format(record))
        assert entry["exception"]["type"] == "ValueError"
        assert entry["exception"]["message"] == "bad quantity"


def test_console_formatter_includes_request_id():
    LogContext.set(request_id="req-7")
    line = ConsoleFormatter().format(_record("order_placed"))
    assert "[req-7]" in line
    assert "order_placed" in line


class TestPerformanceTracker:
    def test_records_duration(self):
        with PerformanceTracker("place_order", user_id="u-1") as tracker:
            pass
        assert tracker.extra["user_id"] == "u-1"
        assert tracker.extra["duration_ms"] >= 0
        assert "error" not in tracker.extra

    def test_records_error_and_reraises(self):
        tracker = PerformanceTracker("place_order")
        with pytest.raises(RuntimeError):
            with tracker:
                raise RuntimeError("db locked")
        assert tracker.extra["error"] == "db locked"
