"""Tests for GenerationService orchestration."""

import pytest

from conftest import FakeClock, FakeTransport, make_completion, make_json_completion
from notes_ai.models.config import AppConfig, LLMSettings, TelemetrySettings
from notes_ai.models.llm import (
    GenerationRequest,
    ModelParameters,
    TelemetryStatus,
)
from notes_ai.services.llm.exceptions import ErrorKind, GenerationError
from notes_ai.services.llm.service import GenerationService
from notes_ai.services.llm.telemetry import SupabaseTelemetrySink, TelemetryLogger

SCHEMA = {
    "type": "object",
    "properties": {"a": {"type": "string"}, "b": {"type": "number"}},
    "required": ["a", "b"],
}


class RecordingTelemetry(TelemetryLogger):
    def __init__(self):
        super().__init__()
        self.records = []

    def log(self, record):
        self.records.append(record)


class RaisingSink:
    async def insert(self, row):
        raise ConnectionError("telemetry store down")


def make_request(**overrides) -> GenerationRequest:
    values = {
        "system_message": "You are helpful.",
        "user_message": "Say hi",
        "user_id": "user-1",
        "note_id": "note-1",
    }
    values.update(overrides)
    return GenerationRequest(**values)


def make_service(settings, outcomes, sleep, telemetry=None, clock=None):
    transport = FakeTransport(outcomes)
    service = GenerationService(
        settings,
        telemetry=telemetry,
        transport=transport,
        sleep=sleep,
        clock=clock or FakeClock(),
    )
    return service, transport


class TestConstruction:
    @pytest.mark.parametrize("api_key", [None, "   "])
    def test_missing_api_key(self, api_key):
        settings = LLMSettings.model_construct(api_key=api_key)

        with pytest.raises(GenerationError) as exc_info:
            GenerationService(settings)

        assert exc_info.value.kind is ErrorKind.AUTH
        assert "OPENROUTER_API_KEY" in exc_info.value.message

    def test_from_config_without_telemetry(self):
        config = AppConfig(llm=LLMSettings(api_key="sk-test"))

        service = GenerationService.from_config(config)

        assert service.telemetry.sink is None

    def test_from_config_with_supabase(self):
        config = AppConfig(
            llm=LLMSettings(api_key="sk-test"),
            telemetry=TelemetrySettings(
                supabase_url="https://abc.supabase.co", supabase_key="key"
            ),
        )

        service = GenerationService.from_config(config)

        assert isinstance(service.telemetry.sink, SupabaseTelemetrySink)

    @pytest.mark.parametrize(
        "url, key",
        [("https://abc.supabase.co", None), (None, "key"), ("", "key")],
    )
    def test_from_config_with_partial_telemetry(self, url, key):
        config = AppConfig(
            llm=LLMSettings(api_key="sk-test"),
            telemetry=TelemetrySettings(supabase_url=url, supabase_key=key),
        )

        service = GenerationService.from_config(config)

        assert service.telemetry.sink is None


class TestGenerate:
    @pytest.mark.asyncio
    async def test_raw_text_success(self, llm_settings, recording_sleep):
        telemetry = RecordingTelemetry()
        clock = FakeClock()
        service, transport = make_service(
            llm_settings, [make_completion("Hi there")], recording_sleep, telemetry, clock
        )
        transport_invoke = transport.invoke

        async def slow_invoke(payload, timeout_seconds):
            clock.advance(0.25)
            return await transport_invoke(payload, timeout_seconds)

        transport.invoke = slow_invoke

        result = await service.generate(make_request())

        assert result.data == "Hi there"
        assert result.metadata.model_used == "openai/gpt-5-nano"
        assert result.metadata.tokens_used == 42
        assert result.metadata.generation_time_ms == 250
        assert transport.timeouts == [60]

        [record] = telemetry.records
        assert record.status is TelemetryStatus.SUCCESS
        assert record.user_id == "user-1"
        assert record.note_id == "note-1"
        assert record.tokens_used == 42

    @pytest.mark.asyncio
    async def test_structured_success(self, llm_settings, recording_sleep):
        service, transport = make_service(
            llm_settings,
            [make_json_completion({"a": "x", "b": 1}, model="x-ai/grok-4-fast")],
            recording_sleep,
        )

        result = await service.generate_with_schema(
            schema_name="pair",
            schema=SCHEMA,
            system_message="sys",
            user_message="usr",
            model_name="x-ai/grok-4-fast",
            parameters=ModelParameters(temperature=0.3),
        )

        assert result.data == {"a": "x", "b": 1}
        assert result.metadata.model_used == "x-ai/grok-4-fast"
        payload = transport.payloads[0]
        assert payload["response_format"]["json_schema"]["name"] == "pair"
        assert payload["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_missing_usage_leaves_tokens_unset(self, llm_settings, recording_sleep):
        service, _ = make_service(
            llm_settings, [make_completion(total_tokens=None)], recording_sleep
        )

        result = await service.generate(make_request())

        assert result.metadata.tokens_used is None

    @pytest.mark.asyncio
    async def test_validation_gate(self, llm_settings, recording_sleep):
        telemetry = RecordingTelemetry()
        service, transport = make_service(
            llm_settings, [make_completion()], recording_sleep, telemetry
        )

        with pytest.raises(GenerationError) as exc_info:
            await service.generate(make_request(system_message=""))

        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert transport.calls == 0
        [record] = telemetry.records
        assert record.status is TelemetryStatus.FAILURE

    @pytest.mark.asyncio
    async def test_retry_bound(self, llm_settings, recording_sleep):
        telemetry = RecordingTelemetry()
        service, transport = make_service(
            llm_settings,
            [GenerationError.service("Service unavailable: down")],
            recording_sleep,
            telemetry,
        )

        with pytest.raises(GenerationError) as exc_info:
            await service.generate(make_request())

        assert exc_info.value.kind is ErrorKind.SERVICE
        assert transport.calls == 3
        assert recording_sleep.delays[1] == pytest.approx(2 * recording_sleep.delays[0])
        assert len(telemetry.records) == 1
        assert telemetry.records[0].error_message == "Service unavailable: down"

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self, llm_settings, recording_sleep):
        service, transport = make_service(
            llm_settings, [GenerationError.auth("Authentication failed")], recording_sleep
        )

        with pytest.raises(GenerationError) as exc_info:
            await service.generate(make_request())

        assert exc_info.value.kind is ErrorKind.AUTH
        assert transport.calls == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_timeout(self, llm_settings, recording_sleep):
        service, transport = make_service(
            llm_settings,
            [GenerationError.timeout("Request timed out"), make_completion("ok")],
            recording_sleep,
        )

        result = await service.generate(make_request())

        assert result.data == "ok"
        assert transport.calls == 2

    @pytest.mark.asyncio
    async def test_truncated_completion(self, llm_settings, recording_sleep):
        service, transport = make_service(
            llm_settings,
            [make_completion('{"a": "x', finish_reason="length")],
            recording_sleep,
        )

        with pytest.raises(GenerationError) as exc_info:
            await service.generate(make_request(response_schema={"name": "p", **SCHEMA}))

        assert exc_info.value.kind is ErrorKind.PARSE
        assert transport.calls == 1

    @pytest.mark.asyncio
    async def test_telemetry_failure_is_isolated(self, llm_settings, recording_sleep):
        telemetry = TelemetryLogger(RaisingSink())
        service, _ = make_service(
            llm_settings, [make_completion("still fine")], recording_sleep, telemetry
        )

        result = await service.generate(make_request())
        await telemetry.drain()

        assert result.data == "still fine"

    @pytest.mark.asyncio
    async def test_telemetry_failure_keeps_original_error(
        self, llm_settings, recording_sleep
    ):
        telemetry = TelemetryLogger(RaisingSink())
        service, transport = make_service(
            llm_settings,
            [GenerationError.auth("Authentication failed")],
            recording_sleep,
            telemetry,
        )

        with pytest.raises(GenerationError) as exc_info:
            await service.generate(make_request())
        await telemetry.drain()

        assert exc_info.value.kind is ErrorKind.AUTH
        assert exc_info.value.message == "Authentication failed"
        assert transport.calls == 1

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self, llm_settings, recording_sleep):
        service, transport = make_service(llm_settings, [make_completion()], recording_sleep)

        async with service:
            pass

        assert transport.closed is True
