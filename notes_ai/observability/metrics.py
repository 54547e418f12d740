"""Prometheus metrics definitions for the notes AI service.

Defines counters and histograms for monitoring:
- Generation outcomes, latency and token usage
- Retries of transient upstream failures
- Rate limiter decisions and store size
- Telemetry sink failures

Usage:
    from notes_ai.observability.metrics import (
        LLM_REQUESTS_TOTAL,
        LLM_REQUEST_DURATION,
    )

    LLM_REQUESTS_TOTAL.labels(status="success", error_kind="none").inc()

Metrics are exposed via the /metrics endpoint of the API server.
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS - Monotonically increasing values
# =============================================================================

LLM_REQUESTS_TOTAL = Counter(
    name="notes_ai_llm_requests_total",
    documentation="Total generation calls by final outcome",
    labelnames=["status", "error_kind"],  # success/failure, kind or none
    registry=REGISTRY,
)

LLM_TOKENS_TOTAL = Counter(
    name="notes_ai_llm_tokens_total",
    documentation="Total tokens reported by the upstream API",
    labelnames=["model"],
    registry=REGISTRY,
)

LLM_RETRIES_TOTAL = Counter(
    name="notes_ai_llm_retries_total",
    documentation="Retries scheduled after transient upstream failures",
    labelnames=["error_kind"],
    registry=REGISTRY,
)

RATE_LIMIT_DECISIONS = Counter(
    name="notes_ai_rate_limit_decisions_total",
    documentation="Rate limiter decisions",
    labelnames=["decision"],  # allowed, denied
    registry=REGISTRY,
)

TELEMETRY_WRITE_FAILURES = Counter(
    name="notes_ai_telemetry_write_failures_total",
    documentation="Telemetry rows that could not be persisted",
    registry=REGISTRY,
)

# =============================================================================
# GAUGES - Values that can go up and down
# =============================================================================

RATE_LIMIT_ENTRIES = Gauge(
    name="notes_ai_rate_limit_entries",
    documentation="Client keys currently tracked by the rate limiter",
    registry=REGISTRY,
)

SCHEDULER_JOBS = Gauge(
    name="notes_ai_scheduler_jobs",
    documentation="Number of scheduled maintenance jobs",
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS - Distribution of values
# =============================================================================

LLM_REQUEST_DURATION = Histogram(
    name="notes_ai_llm_request_duration_seconds",
    documentation="End-to-end generation duration including retries",
    labelnames=["status"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 180, float("inf")),
    registry=REGISTRY,
)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text format.

    Returns:
        UTF-8 encoded metrics in Prometheus exposition format.
    """
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics response."""
    return CONTENT_TYPE_LATEST
