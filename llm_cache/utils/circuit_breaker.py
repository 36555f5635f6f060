"""Circuit breaker for the backing key-value store.

While the store is down every call would otherwise wait for its timeout
before failing open. The breaker remembers recent failures and lets calls
skip the store for a cooldown period.

States:
- CLOSED: Normal operation, calls go to the store
- OPEN: After failure_threshold consecutive failures, calls are skipped
- HALF_OPEN: After cooldown, calls are let through to test the store

State Transitions:
- CLOSED -> OPEN: After failure_threshold consecutive failures
- OPEN -> HALF_OPEN: After cooldown_seconds
- HALF_OPEN -> CLOSED: After success_threshold consecutive successes
- HALF_OPEN -> OPEN: On any failure
"""

import threading
import time
from enum import Enum
from typing import Callable, Dict, Optional

import structlog

from llm_cache.models.config import CircuitBreakerConfig
from llm_cache.observability.logging import safe_log
from llm_cache.observability.metrics import STORE_CIRCUIT_OPEN

logger = structlog.get_logger()


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Thread-safe circuit breaker.

    Args:
        name: Identifier used in logs and stats
        config: Thresholds and cooldown
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._consecutive_successes = 0
        self._opened_at: Optional[float] = None
        self._lock = threading.RLock()

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN to HALF_OPEN once the cooldown elapsed."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._cooldown_elapsed():
                self._transition(CircuitState.HALF_OPEN)
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def _cooldown_elapsed(self) -> bool:
        if self._opened_at is None:
            return True
        return self._clock() - self._opened_at >= self.config.cooldown_seconds

    def _transition(self, new_state: CircuitState) -> None:
        previous = self._state
        self._state = new_state
        if new_state == CircuitState.OPEN:
            self._opened_at = self._clock()
        if new_state == CircuitState.HALF_OPEN:
            self._consecutive_successes = 0
        STORE_CIRCUIT_OPEN.labels(name=self.name).set(
            1 if new_state == CircuitState.OPEN else 0
        )
        safe_log(
            logger.info,
            "circuit_state_changed",
            circuit=self.name,
            previous=previous.value,
            current=new_state.value,
        )

    def record_success(self) -> None:
        with self._lock:
            self._consecutive_successes += 1
            self._consecutive_failures = 0
            if (
                self._state == CircuitState.HALF_OPEN
                and self._consecutive_successes >= self.config.success_threshold
            ):
                self._transition(CircuitState.CLOSED)

    def record_failure(self) -> None:
        with self._lock:
            self._consecutive_failures += 1
            self._consecutive_successes = 0
            if self._state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.OPEN)
            elif (
                self._state == CircuitState.CLOSED
                and self._consecutive_failures >= self.config.failure_threshold
            ):
                self._transition(CircuitState.OPEN)

    def allow_request(self) -> bool:
        """Return False while the circuit is OPEN (disabled breakers always allow)."""
        if not self.config.enabled:
            return True
        return self.state != CircuitState.OPEN

    def reset(self) -> None:
        with self._lock:
            self._consecutive_failures = 0
            self._consecutive_successes = 0
            self._opened_at = None
            if self._state != CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)

    def get_stats(self) -> Dict:
        with self._lock:
            cooldown_remaining = 0.0
            if self._state == CircuitState.OPEN and self._opened_at is not None:
                elapsed = self._clock() - self._opened_at
                cooldown_remaining = max(0.0, self.config.cooldown_seconds - elapsed)
            return {
                "name": self.name,
                "state": self.state.value,
                "consecutive_failures": self._consecutive_failures,
                "cooldown_remaining": cooldown_remaining,
            }
