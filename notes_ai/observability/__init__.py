"""Observability module.

Provides:
- Correlation ID context management for request tracing
- Structured logging with context propagation
- Prometheus metrics for monitoring and alerting
"""

from notes_ai.observability.context import (
    get_correlation_id,
    correlation_id_context,
)
from notes_ai.observability.logging import (
    get_logger,
    configure_logging,
    add_correlation_id_processor,
)
from notes_ai.observability.metrics import (
    LLM_REQUESTS_TOTAL,
    LLM_TOKENS_TOTAL,
    LLM_RETRIES_TOTAL,
    LLM_REQUEST_DURATION,
    RATE_LIMIT_DECISIONS,
    RATE_LIMIT_ENTRIES,
    TELEMETRY_WRITE_FAILURES,
    get_metrics_text,
    get_metrics_content_type,
)

__all__ = [
    # Context
    "get_correlation_id",
    "correlation_id_context",
    # Logging
    "get_logger",
    "configure_logging",
    "add_correlation_id_processor",
    # Metrics
    "LLM_REQUESTS_TOTAL",
    "LLM_TOKENS_TOTAL",
    "LLM_RETRIES_TOTAL",
    "LLM_REQUEST_DURATION",
    "RATE_LIMIT_DECISIONS",
    "RATE_LIMIT_ENTRIES",
    "TELEMETRY_WRITE_FAILURES",
    "get_metrics_text",
    "get_metrics_content_type",
]
