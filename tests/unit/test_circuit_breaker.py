"""Tests for the store circuit breaker."""

import pytest

from llm_cache.models.config import CircuitBreakerConfig
from llm_cache.utils.circuit_breaker import CircuitBreaker, CircuitState


class ManualClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def breaker(clock):
    config = CircuitBreakerConfig(
        failure_threshold=3, success_threshold=2, cooldown_seconds=10
    )
    return CircuitBreaker("test", config, clock=clock)


class TestStateTransitions:
    """Tests for circuit state transitions."""

    def test_starts_closed(self, breaker):
        assert breaker.state == CircuitState.CLOSED
        assert breaker.allow_request() is True

    def test_opens_after_threshold(self, breaker):
        """Should open after failure_threshold consecutive failures."""
        for _ in range(2):
            breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.allow_request() is False

    def test_success_resets_failure_count(self, breaker):
        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.consecutive_failures == 1

    def test_half_open_after_cooldown(self, breaker, clock):
        for _ in range(3):
            breaker.record_failure()

        clock.now += 10

        assert breaker.state == CircuitState.HALF_OPEN
        assert breaker.allow_request() is True

    def test_half_open_closes_after_successes(self, breaker, clock):
        for _ in range(3):
            breaker.record_failure()
        clock.now += 10
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.record_success()
        assert breaker.state == CircuitState.HALF_OPEN
        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED

    def test_half_open_failure_reopens(self, breaker, clock):
        for _ in range(3):
            breaker.record_failure()
        clock.now += 10
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN


class TestHelpers:
    """Tests for reset, disabled breakers and stats."""

    def test_disabled_breaker_always_allows(self, clock):
        breaker = CircuitBreaker(
            "off", CircuitBreakerConfig(enabled=False, failure_threshold=1), clock=clock
        )
        breaker.record_failure()

        assert breaker.allow_request() is True

    def test_reset(self, breaker):
        for _ in range(3):
            breaker.record_failure()

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.consecutive_failures == 0

    def test_stats_include_cooldown(self, breaker, clock):
        for _ in range(3):
            breaker.record_failure()
        clock.now += 4

        stats = breaker.get_stats()

        assert stats["name"] == "test"
        assert stats["state"] == "open"
        assert stats["consecutive_failures"] == 3
        assert stats["cooldown_remaining"] == pytest.approx(6)
