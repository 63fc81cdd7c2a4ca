"""
Circuit breaker around the assistant's chat provider.

After ``failure_threshold`` consecutive failures the breaker opens and calls
fail fast with ``CircuitBreakerOpenError`` (which the assistant turns into
its fallback reply). Once ``timeout`` seconds pass it lets probe calls
through; ``half_open_max_calls`` successful probes close it again, a failed
probe reopens it.

Usage:
    breaker = get_assistant_breaker()
    response = breaker.call(client.messages.create, **request)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import Any, ParamSpec

from cropmarket.exceptions import CircuitBreakerOpenError

P = ParamSpec("P")

logger = logging.getLogger(__name__)

__all__ = ["BreakerState", "CircuitBreaker", "CircuitBreakerOpenError", "get_assistant_breaker", "reset_all_breakers"]


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: int = 60,
        *,
        name: str = "default",
        half_open_max_calls: int = 1,
        expected_exceptions: tuple[type[Exception], ...] = (Exception,),
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            failure_threshold: Consecutive failures before the circuit opens.
            timeout: Seconds the circuit stays open before probing.
            name: Service name used in logs and in the open-circuit error.
            half_open_max_calls: Successful probes needed to close again.
            expected_exceptions: Exception types that count as failures.
            clock: Time source, injectable for tests.
        """
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.half_open_max_calls = half_open_max_calls
        self.expected_exceptions = expected_exceptions
        self._clock = clock
        self._lock = threading.RLock()

        self._state = BreakerState.CLOSED
        self._failures = 0
        self._probe_successes = 0
        self._opened_at = 0.0

    @property
    def state(self) -> str:
        with self._lock:
            return self._state.value

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failures

    @property
    def is_open(self) -> bool:
        return self.state == BreakerState.OPEN.value

    def call(self, func: Callable[P, Any], *args: P.args, **kwargs: P.kwargs) -> Any:
        """
        Run ``func`` unless the circuit is open.

        Raises:
            CircuitBreakerOpenError: The circuit is open and the timeout has not passed.
            Exception: Whatever ``func`` raises.
        """
        self._before_call()
        try:
            result = func(*args, **kwargs)
        except self.expected_exceptions:
            self._record_failure()
            raise
        self._record_success()
        return result

    def reset(self) -> None:
        with self._lock:
            self._failures = 0
            self._move_to(BreakerState.CLOSED, reason="manual reset")

    def _before_call(self) -> None:
        with self._lock:
            if self._state != BreakerState.OPEN:
                return
            open_for = self._clock() - self._opened_at
            if open_for >= self.timeout:
                self._move_to(BreakerState.HALF_OPEN, reason=f"open for {open_for:.1f}s")
                return
            logger.warning("Circuit %s open, rejecting call (opened %.1fs ago)", self.name, open_for)
            raise CircuitBreakerOpenError(
                self.name,
                retry_after_seconds=max(1, round(self.timeout - open_for)),
                failure_count=self._failures,
            )

    def _record_success(self) -> None:
        with self._lock:
            self._failures = 0
            if self._state == BreakerState.HALF_OPEN:
                self._probe_successes += 1
                if self._probe_successes >= self.half_open_max_calls:
                    self._move_to(BreakerState.CLOSED, reason="provider recovered")

    def _record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._state == BreakerState.HALF_OPEN:
                self._move_to(BreakerState.OPEN, reason="probe failed")
            elif self._failures >= self.failure_threshold:
                self._move_to(BreakerState.OPEN, reason=f"{self._failures} consecutive failures")
            else:
                logger.warning("Circuit %s failure %d/%d", self.name, self._failures, self.failure_threshold)

    def _move_to(self, state: BreakerState, *, reason: str) -> None:
        previous = self._state
        self._state = state
        self._probe_successes = 0
        if state == BreakerState.OPEN:
            self._opened_at = self._clock()
            logger.error("Circuit %s %s -> open (%s)", self.name, previous.value, reason)
        else:
            if state == BreakerState.CLOSED:
                self._failures = 0
            logger.info("Circuit %s %s -> %s (%s)", self.name, previous.value, state.value, reason)

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self.name!r}, state={self.state}, "
            f"failures={self.failure_count}/{self.failure_threshold})"
        )


_assistant_breaker: CircuitBreaker | None = None


def get_assistant_breaker() -> CircuitBreaker:
    """Process-wide breaker for the Anthropic API, configured from settings."""
    global _assistant_breaker
    if _assistant_breaker is None:
        from cropmarket.config import settings

        _assistant_breaker = CircuitBreaker(
            name="anthropic_api",
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout_seconds,
        )
    return _assistant_breaker


def reset_all_breakers() -> None:
    if _assistant_breaker is not None:
        _assistant_breaker.reset()
