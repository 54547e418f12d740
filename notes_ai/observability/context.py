"""Correlation ID context management for request tracing.

Provides ContextVar-based storage for correlation IDs that propagate
automatically across async boundaries, including detached telemetry
tasks (which copy the context at creation).

Usage:
    from notes_ai.observability.context import correlation_id_context

    with correlation_id_context(request.headers.get("x-request-id")):
        await service.generate(request)
"""

import uuid
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Optional, Generator

_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None if not set."""
    return _correlation_id_var.get()


@contextmanager
def correlation_id_context(
    corr_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """Context manager for scoped correlation IDs.

    Sets correlation ID on entry and restores previous value on exit.

    Args:
        corr_id: Optional correlation ID. If None, generates UUID.

    Yields:
        The correlation ID being used in this context.
    """
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    token = _correlation_id_var.set(corr_id)

    try:
        yield corr_id
    finally:
        _correlation_id_var.reset(token)
