"""Structured logging with request ID propagation.

Usage:
    from llm_cache.observability.logging import get_logger, configure_logging

    # Configure at application startup
    configure_logging(level="INFO")

    # Get logger with component context
    logger = get_logger("store")
    logger.info("cache_get_failed", key="translation:ab12")

    # Output includes request_id automatically:
    # {"event": "cache_get_failed", "key": "translation:ab12",
    #  "request_id": "abc-123", "component": "store", ...}
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.typing import EventDict, WrappedLogger

from llm_cache.observability.context import get_request_id


def add_request_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds request_id ("none" outside a request)."""
    request_id = get_request_id()
    event_dict["request_id"] = request_id if request_id else "none"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON. If False, use console format.
        add_timestamp: If True, add ISO timestamp to each log entry.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_request_id_processor,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(
    component: Optional[str] = None,
    **initial_context: Any,
) -> Any:
    """Get a structured logger with optional component context.

    Example:
        logger = get_logger("recorder", endpoint="translate")
        logger.info("usage_recorded")  # Includes endpoint="translate"
    """
    logger = structlog.get_logger()

    if component:
        logger = logger.bind(component=component)

    if initial_context:
        logger = logger.bind(**initial_context)

    return logger



def safe_log(log_method: Any, event: str, **kwargs: Any) -> None:
    """Emit a log event, ignoring failures of the output stream.

    Fail-open paths call this so that a closed or broken log sink cannot
    turn a dropped cache write into a raised error.

    Example:
        safe_log(logger.warning, "store_operation_failed", operation="get")
    """
    try:
        log_method(event, **kwargs)
    except (ValueError, OSError):
        # Closed streams raise ValueError; broken pipes raise OSError
        return
