"""Observability for the cache layer.

Provides:
- Request ID context management for log correlation
- Structured logging with context propagation
- Prometheus metrics for cache lookups, savings and store health

Usage:
    from llm_cache.observability import get_logger, CACHE_LOOKUPS

    logger = get_logger("store")
    logger.info("cache_get_failed", key="translation:ab12")

    CACHE_LOOKUPS.labels(endpoint="translate", outcome="hit").inc()
"""

from llm_cache.observability.context import (
    set_request_id,
    get_request_id,
    clear_request_id,
    request_id_context,
)
from llm_cache.observability.logging import (
    get_logger,
    configure_logging,
    add_request_id_processor,
    safe_log,
)
from llm_cache.observability.metrics import (
    # Counters
    CACHE_LOOKUPS,
    STORE_ERRORS,
    TOKENS_SAVED_TOTAL,
    COST_SAVED_USD_TOTAL,
    USAGE_RECORD_FAILURES,
    # Gauges
    STORE_CIRCUIT_OPEN,
    # Histograms
    STORE_OPERATION_DURATION,
    # Registry and utilities
    REGISTRY,
    get_metrics_text,
    get_metrics_content_type,
)

__all__ = [
    "set_request_id",
    "get_request_id",
    "clear_request_id",
    "request_id_context",
    "get_logger",
    "configure_logging",
    "add_request_id_processor",
    "safe_log",
    "CACHE_LOOKUPS",
    "STORE_ERRORS",
    "TOKENS_SAVED_TOTAL",
    "COST_SAVED_USD_TOTAL",
    "USAGE_RECORD_FAILURES",
    "STORE_CIRCUIT_OPEN",
    "STORE_OPERATION_DURATION",
    "REGISTRY",
    "get_metrics_text",
    "get_metrics_content_type",
]
