"""Tests for circuit_breaker.py"""

import pytest

from cropmarket.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    get_assistant_breaker,
    reset_all_breakers,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def failing_func():
    raise ConnectionError("fail")


def _trip(breaker: CircuitBreaker, times: int) -> None:
    for _ in range(times):
        with pytest.raises(ConnectionError):
            breaker.call(failing_func)


class TestCircuitBreaker:
    def test_initial_state_is_closed(self):
        breaker = CircuitBreaker(failure_threshold=3, timeout=60)
        assert breaker.state == "closed"
        assert breaker.failure_count == 0
        assert not breaker.is_open

    def test_successful_call_passes_arguments(self):
        breaker = CircuitBreaker(failure_threshold=3, timeout=60)
        assert breaker.call(lambda a, *, b: a + b, 1, b=2) == 3
        assert breaker.state == "closed"

    def test_opens_after_threshold_failures(self):
        breaker = CircuitBreaker(failure_threshold=3, timeout=60)

        _trip(breaker, 2)
        assert breaker.state == "closed"
        assert breaker.failure_count == 2

        _trip(breaker, 1)
        assert breaker.state == "open"
        assert breaker.is_open

    def test_open_rejects_calls_fast(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=2, timeout=60, name="anthropic_api", clock=clock)
        _trip(breaker, 2)

        clock.advance(15)
        calls = []
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            breaker.call(lambda: calls.append(1))

        assert calls == []
        assert exc_info.value.service == "anthropic_api"
        assert exc_info.value.retry_after_seconds == 45
        assert exc_info.value.failure_count == 2

    def test_success_resets_failure_count(self):
        breaker = CircuitBreaker(failure_threshold=3, timeout=60)
        _trip(breaker, 2)
        breaker.call(lambda: "ok")
        assert breaker.failure_count == 0
        assert breaker.state == "closed"

    def test_only_counts_expected_exceptions(self):
        breaker = CircuitBreaker(failure_threshold=2, timeout=60, expected_exceptions=(ConnectionError,))

        def other_error():
            raise ValueError("not counted")

        with pytest.raises(ValueError):
            breaker.call(other_error)
        assert breaker.failure_count == 0
        assert breaker.state == "closed"

    def test_half_open_success_closes(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=2, timeout=30, clock=clock)
        _trip(breaker, 2)

        clock.advance(30)
        assert breaker.call(lambda: "ok") == "ok"
        assert breaker.state == "closed"

    def test_half_open_needs_configured_successes(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, timeout=10, half_open_max_calls=2, clock=clock)
        _trip(breaker, 1)

        clock.advance(10)
        breaker.call(lambda: "ok")
        assert breaker.state == "half_open"
        breaker.call(lambda: "ok")
        assert breaker.state == "closed"

    def test_half_open_failure_reopens(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=2, timeout=30, clock=clock)
        _trip(breaker, 2)

        clock.advance(31)
        _trip(breaker, 1)
        assert breaker.state == "open"

    def test_reset_closes_circuit(self):
        breaker = CircuitBreaker(failure_threshold=2, timeout=60)
        _trip(breaker, 2)

        breaker.reset()
        assert breaker.state == "closed"
        assert breaker.failure_count == 0
        assert breaker.call(lambda: "ok") == "ok"

    def test_repr(self):
        breaker = CircuitBreaker(name="test", failure_threshold=5, timeout=60)
        repr_str = repr(breaker)
        assert "test" in repr_str
        assert "closed" in repr_str
        assert "0/5" in repr_str


class TestGlobalBreaker:
    def test_singleton(self):
        assert get_assistant_breaker() is get_assistant_breaker()
        assert get_assistant_breaker().name == "anthropic_api"

    def test_reset_all_breakers(self):
        breaker = get_assistant_breaker()
        _trip(breaker, breaker.failure_threshold)
        assert breaker.state == "open"

        reset_all_breakers()
        assert breaker.state == "closed"
