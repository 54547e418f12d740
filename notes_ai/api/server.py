"""FastAPI server for AI summary generation.

Provides HTTP endpoints for:
- POST /api/ai/generate - Rate-limited meeting-notes summary generation
- /live - Liveness check
- /metrics - Prometheus metrics in text format

Usage:
    from notes_ai.api.server import run_server
    run_server(host="0.0.0.0", port=8000)

    # Or use with injected collaborators
    from notes_ai.api.server import create_app
    app = create_app(config=config, summary_service=service)
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from notes_ai.models.config import AppConfig
from notes_ai.observability.context import correlation_id_context
from notes_ai.observability.logging import get_logger
from notes_ai.observability.metrics import get_metrics_content_type, get_metrics_text
from notes_ai.scheduling.scheduler import MaintenanceScheduler
from notes_ai.services.llm.exceptions import ErrorKind, GenerationError
from notes_ai.services.llm.service import GenerationService
from notes_ai.services.summary_service import GenerateSummaryInput, SummaryService
from notes_ai.utils.rate_limiter import (
    RateLimiter,
    client_key_from_headers,
    rate_limit_headers,
)

logger = get_logger(component="api")

CORRELATION_HEADER = "X-Request-ID"

# ErrorKind -> (status, error, message, details); None details echo the error
ERROR_RESPONSES: Dict[ErrorKind, tuple] = {
    ErrorKind.AUTH: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Service unavailable",
        "AI service is not configured",
        "Please contact the administrator",
    ),
    ErrorKind.TIMEOUT: (
        status.HTTP_504_GATEWAY_TIMEOUT,
        "Gateway timeout",
        "AI generation exceeded time limit",
        "Try again with shorter content or contact support",
    ),
    ErrorKind.RATE_LIMIT: (
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests",
        "Upstream API rate limit exceeded",
        "Please wait a moment and try again",
    ),
    ErrorKind.SERVICE: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Service unavailable",
        "AI service temporarily unavailable",
        "Please try again in a few moments",
    ),
    ErrorKind.NETWORK: (
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Service unavailable",
        "AI service temporarily unavailable",
        "Please try again in a few moments",
    ),
    ErrorKind.VALIDATION: (
        status.HTTP_400_BAD_REQUEST,
        "Bad request",
        "Invalid request to AI service",
        None,
    ),
}

DEFAULT_ERROR_RESPONSE = (
    status.HTTP_503_SERVICE_UNAVAILABLE,
    "Service unavailable",
    "AI service encountered an error",
    "Please try again in a few moments",
)


def error_response(error: GenerationError) -> JSONResponse:
    """Map a GenerationError to its HTTP response."""
    status_code, title, message, details = ERROR_RESPONSES.get(
        error.kind, DEFAULT_ERROR_RESPONSE
    )
    return JSONResponse(
        content={
            "error": title,
            "message": message,
            "details": details if details is not None else error.message,
        },
        status_code=status_code,
    )


def validation_details(error: ValidationError) -> List[Dict[str, str]]:
    """Flatten Pydantic errors into field/message pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
        }
        for err in error.errors()
    ]


def _get_summary_service(app: FastAPI) -> SummaryService:
    """Get or lazily create the app's summary service.

    Raises:
        GenerationError: AUTH kind if no API key is configured
    """
    if app.state.summary_service is None:
        generation_service = GenerationService.from_config(app.state.config)
        app.state.summary_service = SummaryService(generation_service)
    return app.state.summary_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Starts the rate limiter sweep on startup; stops the scheduler and
    closes the generation service on shutdown.
    """
    scheduler: MaintenanceScheduler = app.state.scheduler
    scheduler.add_interval_job(
        app.state.rate_limiter.sweep,
        job_id="rate_limit_sweep",
        seconds=app.state.config.rate_limit.sweep_interval_seconds,
    )
    await scheduler.start()
    logger.info("api_server_starting")

    yield

    logger.info("api_server_stopping")
    await scheduler.shutdown()
    summary_service: Optional[SummaryService] = app.state.summary_service
    if summary_service is not None:
        await summary_service.generation_service.close()


def create_app(
    config: Optional[AppConfig] = None,
    summary_service: Optional[SummaryService] = None,
    rate_limiter: Optional[RateLimiter] = None,
    scheduler: Optional[MaintenanceScheduler] = None,
    title: str = "10xNotes AI API",
    version: str = "1.0.0",
) -> FastAPI:
    """Create FastAPI application with generation endpoints.

    Args:
        config: Application configuration (defaults if None)
        summary_service: Summary service (created on first request if None)
        rate_limiter: Rate limiter (built from config if None)
        scheduler: Maintenance scheduler (created if None)
        title: API title
        version: API version

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig()

    app = FastAPI(
        title=title,
        version=version,
        description="AI summary generation for meeting notes",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.summary_service = summary_service
    # An empty RateLimiter is falsy, so test against None
    if rate_limiter is None:
        rate_limiter = RateLimiter.from_settings(config.rate_limit)
    if scheduler is None:
        scheduler = MaintenanceScheduler()
    app.state.rate_limiter = rate_limiter
    app.state.scheduler = scheduler

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        with correlation_id_context(request.headers.get(CORRELATION_HEADER)) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = cid
            return response

    @app.post(
        "/api/ai/generate",
        response_model=None,
        summary="Generate AI summary",
        description="Generate an ultra-short summary from raw meeting notes",
        responses={
            200: {"description": "Summary with generation metrics"},
            400: {"description": "Invalid input data"},
            429: {"description": "Rate limit exceeded"},
            503: {"description": "AI service unavailable"},
            504: {"description": "AI generation timeout"},
        },
    )
    async def generate_summary(request: Request) -> Response:
        """Generate a summary for anonymous callers.

        Rate limited per client address before the body is read.
        """
        limiter: RateLimiter = app.state.rate_limiter
        decision = limiter.check(client_key_from_headers(request.headers))

        if not decision.allowed:
            retry_after = decision.retry_after_seconds or 0
            return JSONResponse(
                content={
                    "error": "Rate limit exceeded",
                    "message": f"Too many requests. Try again in {retry_after} seconds",
                    "retry_after_seconds": retry_after,
                },
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                headers=rate_limit_headers(decision),
            )

        try:
            body: Any = await request.json()
        except ValueError:
            return JSONResponse(
                content={
                    "error": "Invalid JSON",
                    "message": "Request body must be valid JSON",
                },
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        try:
            summary_input = GenerateSummaryInput.model_validate(body)
        except ValidationError as e:
            return JSONResponse(
                content={
                    "error": "Validation failed",
                    "message": "Invalid input data",
                    "details": validation_details(e),
                },
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        try:
            service = _get_summary_service(app)
            summary = await service.generate_summary(summary_input)
        except GenerationError as e:
            logger.error(
                "ai_generation_failed",
                error_kind=e.kind.value,
                error_message=e.message,
            )
            return error_response(e)
        except Exception as e:
            logger.exception("ai_generation_error")
            return JSONResponse(
                content={
                    "error": "Internal server error",
                    "message": "Failed to generate AI summary",
                    "details": str(e),
                },
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return JSONResponse(
            content=summary.model_dump(mode="json"),
            status_code=status.HTTP_200_OK,
            headers=rate_limit_headers(decision),
        )

    @app.get(
        "/live",
        response_model=None,
        summary="Liveness check",
        description="Check if service is alive",
    )
    async def liveness() -> Response:
        return JSONResponse(
            content={"alive": True, "message": "Service is alive"},
            status_code=status.HTTP_200_OK,
        )

    @app.get(
        "/metrics",
        response_class=PlainTextResponse,
        summary="Prometheus metrics",
        description="Export Prometheus metrics in text format",
    )
    async def prometheus_metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=get_metrics_text(),
            media_type=get_metrics_content_type(),
        )

    return app


def run_server(  # pragma: no cover
    config: Optional[AppConfig] = None,
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run API server (blocking).

    Args:
        config: Application configuration
        host: Host to bind to
        port: Port to bind to
        log_level: Logging level
    """
    import uvicorn

    app = create_app(config=config)
    logger.info("api_server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=log_level)
