"""Request ID context for log correlation.

The HTTP middleware sets a request ID per request; the logging processor
reads it so every log line emitted while serving that request carries it,
across await points.

Usage:
    with request_id_context("req-123"):
        await service.build_report()
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional

_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the request ID for the current context, generating a UUID4 if omitted."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    _request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


@contextmanager
def request_id_context(
    request_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """Scope a request ID, restoring the previous one on exit."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    token = _request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        _request_id_var.reset(token)
