"""
Circuit Breaker
===============

Two-state breaker (closed/open) protecting the remote embedding provider.

    CLOSED --(threshold consecutive failures)--> OPEN
    OPEN   --(cooldown elapsed since last failure)--> CLOSED (counters reset)

A success while closed resets the failure counter. The clock is injectable
so the cooldown can be tested without sleeping.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import structlog

log = structlog.get_logger()


class BreakerState(str, Enum):
    """Circuit breaker state."""
    CLOSED = "closed"
    OPEN = "open"


@dataclass
class CircuitBreakerState:
    """
    Snapshot of the breaker.

    Attributes:
        consecutive_failures: Failures since the last success or reset
        last_failure_time: Clock value of the last failure (0.0 if none)
        is_open: True while calls are refused
    """
    consecutive_failures: int = 0
    last_failure_time: float = 0.0
    is_open: bool = False


class CircuitBreaker:
    """
    Failure counter with a cooldown.

    Example:
        breaker = CircuitBreaker(threshold=5, cooldown_seconds=60)
        if not breaker.allow_request():
            raise CircuitOpenError(...)
        try:
            result = await call()
        except Exception:
            breaker.record_failure()
            raise
        breaker.record_success()
    """

    def __init__(
        self,
        threshold: int = 5,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        name: str = "embedding"
    ):
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        if cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must be >= 0, got {cooldown_seconds}")

        self.threshold = threshold
        self.cooldown_seconds = cooldown_seconds
        self.name = name
        self._clock = clock
        self._state = CircuitBreakerState()

    @property
    def state(self) -> BreakerState:
        self._expire_cooldown()
        return BreakerState.OPEN if self._state.is_open else BreakerState.CLOSED

    def allow_request(self) -> bool:
        """True if the protected call may be attempted now."""
        return self.state is BreakerState.CLOSED

    def record_success(self) -> None:
        if self._state.consecutive_failures > 0 or self._state.is_open:
            self._state = CircuitBreakerState()

    def record_failure(self) -> None:
        self._state.consecutive_failures += 1
        self._state.last_failure_time = self._clock()

        if not self._state.is_open and self._state.consecutive_failures >= self.threshold:
            self._state.is_open = True
            log.warning(
                "Circuit breaker opened",
                breaker=self.name,
                failures=self._state.consecutive_failures,
                cooldown_seconds=self.cooldown_seconds
            )

    def reset(self) -> None:
        """Manual reset (testing or operator intervention)."""
        self._state = CircuitBreakerState()
        log.info("Circuit breaker manually reset", breaker=self.name)

    def snapshot(self) -> CircuitBreakerState:
        """Copy of the current state, for monitoring."""
        self._expire_cooldown()
        return CircuitBreakerState(
            consecutive_failures=self._state.consecutive_failures,
            last_failure_time=self._state.last_failure_time,
            is_open=self._state.is_open,
        )

    def _expire_cooldown(self) -> None:
        if not self._state.is_open:
            return
        if self._clock() - self._state.last_failure_time >= self.cooldown_seconds:
            log.info("Circuit breaker reset after cooldown", breaker=self.name)
            self._state = CircuitBreakerState()
