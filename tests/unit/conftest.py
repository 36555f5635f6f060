import io

import pytest
import structlog

from fakes import NOW, FakeClock, FakeRedis
from llm_cache.models.config import AnalyticsSettings, CircuitBreakerConfig
from llm_cache.services.store import RedisStoreAdapter
from llm_cache.services.usage_recorder import UsageRecorder
from llm_cache.services.window_aggregator import WindowAggregator
from llm_cache.utils.circuit_breaker import CircuitBreaker


@pytest.fixture(autouse=True)
def reset_structlog():
    """Run each test on structlog defaults, which never cache loggers.

    Also undoes configuration done by a test (e.g. the serve command).
    """
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


@pytest.fixture
def clock():
    return FakeClock(NOW.timestamp())


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def breaker():
    return CircuitBreaker("store", CircuitBreakerConfig(failure_threshold=3))


@pytest.fixture
def store(fake_redis, breaker):
    return RedisStoreAdapter(fake_redis, timeout_seconds=0.5, breaker=breaker)


@pytest.fixture
def analytics_settings():
    return AnalyticsSettings()


@pytest.fixture
def recorder(store, analytics_settings):
    return UsageRecorder(store, analytics_settings)


@pytest.fixture
def aggregator(store, analytics_settings):
    return WindowAggregator(store, analytics_settings)


@pytest.fixture
def closed_log_sink():
    """Route all logging to a stream that is already closed."""
    sink = io.StringIO()
    sink.close()
    structlog.configure(
        processors=[structlog.processors.JSONRenderer()],
        logger_factory=structlog.PrintLoggerFactory(file=sink),
        cache_logger_on_first_use=False,
    )
    return sink
