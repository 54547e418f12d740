"""Generation Service - Main Orchestrator

This service orchestrates one generation call by delegating to:
- RequestValidator for the input contract
- PayloadBuilder for the upstream payload
- RetryHandler + OpenRouterTransport for bounded, retried network calls
- ResponseParser for truncation checks and structured output
- TelemetryLogger for fire-and-forget outcome recording

Every failure leaves the service as a GenerationError; telemetry is
recorded once per call with the final outcome.
"""

import time
from typing import Any, Callable, Dict, Optional

import structlog

from notes_ai.models.config import AppConfig, LLMSettings
from notes_ai.models.llm import (
    GenerationMetadata,
    GenerationRequest,
    GenerationResult,
    ModelParameters,
    ResponseSchema,
    TelemetryRecord,
    TelemetryStatus,
    UpstreamUsage,
)
from notes_ai.observability.metrics import (
    LLM_REQUESTS_TOTAL,
    LLM_REQUEST_DURATION,
    LLM_TOKENS_TOTAL,
)
from notes_ai.services.llm.exceptions import GenerationError
from notes_ai.services.llm.payload_builder import PayloadBuilder
from notes_ai.services.llm.request_validator import RequestValidator
from notes_ai.services.llm.response_parser import ResponseParser
from notes_ai.services.llm.telemetry import (
    SupabaseTelemetrySink,
    TelemetryLogger,
    TelemetrySink,
)
from notes_ai.services.llm.transport import OpenRouterTransport
from notes_ai.utils.retry import RetryHandler, SleepFunc

logger = structlog.get_logger()


class GenerationService:
    """Resilient client for the upstream LLM completion API.

    Concurrent ``generate`` calls share no mutable state; each call runs
    its attempts sequentially.
    """

    def __init__(
        self,
        settings: LLMSettings,
        telemetry: Optional[TelemetryLogger] = None,
        transport: Optional[OpenRouterTransport] = None,
        sleep: Optional[SleepFunc] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize generation service.

        Args:
            settings: Upstream API configuration
            telemetry: Telemetry logger (no-op logger if None)
            transport: Transport override (built from settings if None)
            sleep: Backoff sleep override, mainly for tests
            clock: Monotonic clock in seconds

        Raises:
            GenerationError: AUTH kind if no API key is configured
        """
        if not settings.api_key or not settings.api_key.strip():
            raise GenerationError.auth(
                "OPENROUTER_API_KEY environment variable is required"
            )

        self.settings = settings
        self.validator = RequestValidator()
        self.payload_builder = PayloadBuilder(default_model=settings.default_model)
        self.retry_handler = RetryHandler(settings.retry, sleep=sleep)
        self.parser = ResponseParser()
        self.telemetry = telemetry if telemetry is not None else TelemetryLogger()
        self.transport = transport or OpenRouterTransport(
            api_key=settings.api_key,
            api_url=settings.base_url,
            app_url=settings.app_url,
            app_name=settings.app_name,
        )
        self._clock = clock

    @classmethod
    def from_config(cls, config: AppConfig) -> "GenerationService":
        """Build a service wired with the configured telemetry sink."""
        telemetry = config.telemetry
        sink: Optional[TelemetrySink] = None
        if telemetry.supabase_url and telemetry.supabase_key:
            sink = SupabaseTelemetrySink(
                supabase_url=telemetry.supabase_url,
                supabase_key=telemetry.supabase_key,
                table=telemetry.table,
            )
        return cls(config.llm, telemetry=TelemetryLogger(sink))

    async def generate(self, request: GenerationRequest) -> GenerationResult[Any]:
        """Generate a completion.

        Args:
            request: Generation request

        Returns:
            GenerationResult with raw text (no schema) or validated object

        Raises:
            GenerationError: Classified failure after validation, retries
                or parsing
        """
        start = self._clock()
        model_name = self.payload_builder.resolve_model(request)

        try:
            self.validator.validate(request)
            payload = self.payload_builder.build(request)

            response = await self.retry_handler.execute(
                lambda: self.transport.invoke(payload, self.settings.timeout_seconds)
            )

            data = self.parser.parse(response, request.response_schema)
        except GenerationError as e:
            elapsed_ms = self._elapsed_ms(start)
            self._record_failure(request, model_name, elapsed_ms, e)
            raise

        elapsed_ms = self._elapsed_ms(start)
        usage = UpstreamUsage.from_response(response)
        tokens_used = usage.total_tokens if usage else None
        model_used = response.get("model") or model_name

        metadata = GenerationMetadata(
            model_used=model_used,
            tokens_used=tokens_used,
            generation_time_ms=elapsed_ms,
        )

        self.telemetry.log(
            TelemetryRecord(
                user_id=request.user_id,
                note_id=request.note_id,
                model_name=model_used,
                status=TelemetryStatus.SUCCESS,
                generation_time_ms=elapsed_ms,
                tokens_used=tokens_used,
            )
        )

        LLM_REQUESTS_TOTAL.labels(status="success", error_kind="none").inc()
        LLM_REQUEST_DURATION.labels(status="success").observe(elapsed_ms / 1000)
        if tokens_used:
            LLM_TOKENS_TOTAL.labels(model=model_used).inc(tokens_used)

        logger.info(
            "generation_succeeded",
            model=model_used,
            tokens_used=tokens_used,
            generation_time_ms=elapsed_ms,
            structured=request.response_schema is not None,
        )

        return GenerationResult(data=data, metadata=metadata)

    async def generate_with_schema(
        self,
        schema_name: str,
        schema: Dict[str, Any],
        system_message: str,
        user_message: str,
        model_name: Optional[str] = None,
        parameters: Optional[ModelParameters] = None,
        user_id: Optional[str] = None,
        note_id: Optional[str] = None,
    ) -> GenerationResult[Any]:
        """Convenience wrapper for structured output generation.

        Args:
            schema_name: Name for the response schema
            schema: JSON Schema definition (without name)
            system_message: System message defining model behavior
            user_message: User message with the prompt
            model_name: Optional model override
            parameters: Optional sampling parameters
            user_id: Optional telemetry correlation id
            note_id: Optional telemetry correlation id

        Returns:
            GenerationResult with the validated object
        """
        response_schema: ResponseSchema = {"name": schema_name, **schema}
        return await self.generate(
            GenerationRequest(
                system_message=system_message,
                user_message=user_message,
                model_name=model_name,
                response_schema=response_schema,
                parameters=parameters,
                user_id=user_id,
                note_id=note_id,
            )
        )

    async def close(self) -> None:
        """Release the transport session and flush pending telemetry."""
        await self.transport.close()
        await self.telemetry.drain()
        sink_close = getattr(self.telemetry.sink, "close", None)
        if sink_close is not None:
            await sink_close()

    async def __aenter__(self) -> "GenerationService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _elapsed_ms(self, start: float) -> int:
        return max(0, int((self._clock() - start) * 1000))

    def _record_failure(
        self,
        request: GenerationRequest,
        model_name: str,
        elapsed_ms: int,
        error: GenerationError,
    ) -> None:
        self.telemetry.log(
            TelemetryRecord(
                user_id=request.user_id,
                note_id=request.note_id,
                model_name=model_name,
                status=TelemetryStatus.FAILURE,
                generation_time_ms=elapsed_ms,
                error_message=str(error),
            )
        )

        LLM_REQUESTS_TOTAL.labels(status="failure", error_kind=error.kind.value).inc()
        LLM_REQUEST_DURATION.labels(status="failure").observe(elapsed_ms / 1000)

        logger.warning(
            "generation_failed",
            model=model_name,
            error_kind=error.kind.value,
            error_message=str(error),
            retryable=error.retryable,
            generation_time_ms=elapsed_ms,
        )
