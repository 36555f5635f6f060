"""Prometheus metrics for the cache layer.

Defines counters, gauges, and histograms for monitoring:
- Cache lookups by endpoint and outcome
- Store errors and latency
- Tokens and cost saved by cache hits

These are per-process series for scraping. Dashboard figures come from the
shared store, not from here.

Usage:
    from llm_cache.observability.metrics import CACHE_LOOKUPS

    CACHE_LOOKUPS.labels(endpoint="translate", outcome="hit").inc()

Metrics are exposed via the /metrics endpoint of the HTTP server.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with the default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS
# =============================================================================

CACHE_LOOKUPS = Counter(
    name="llm_cache_lookups_total",
    documentation="Cacheable requests by outcome",
    labelnames=["endpoint", "outcome"],  # outcome: hit, miss
    registry=REGISTRY,
)

STORE_ERRORS = Counter(
    name="llm_cache_store_errors_total",
    documentation="Failed store operations by kind",
    labelnames=["operation", "kind"],  # store_unavailable/store_timeout/...
    registry=REGISTRY,
)

TOKENS_SAVED_TOTAL = Counter(
    name="llm_cache_tokens_saved_total",
    documentation="LLM tokens not spent thanks to cache hits",
    labelnames=["endpoint"],
    registry=REGISTRY,
)

COST_SAVED_USD_TOTAL = Counter(
    name="llm_cache_cost_saved_usd_total",
    documentation="Estimated USD not spent thanks to cache hits",
    labelnames=["endpoint"],
    registry=REGISTRY,
)

USAGE_RECORD_FAILURES = Counter(
    name="llm_cache_usage_record_failures_total",
    documentation="Usage events dropped because the store write failed",
    registry=REGISTRY,
)

# =============================================================================
# GAUGES
# =============================================================================

STORE_CIRCUIT_OPEN = Gauge(
    name="llm_cache_store_circuit_open",
    documentation="1 while the store circuit breaker is open",
    labelnames=["name"],
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS
# =============================================================================

STORE_OPERATION_DURATION = Histogram(
    name="llm_cache_store_operation_duration_seconds",
    documentation="Store round-trip duration in seconds",
    labelnames=["operation"],  # get, set, delete, increment, read
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text exposition format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
