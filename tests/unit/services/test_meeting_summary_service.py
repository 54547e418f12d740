"""Tests for SummaryService and its input model."""

import pytest
from pydantic import ValidationError

from conftest import FakeClock, FakeTransport, RecordingSleep, make_json_completion
from notes_ai.services.llm.exceptions import ErrorKind, GenerationError
from notes_ai.services.llm.service import GenerationService
from notes_ai.services.summary_service import (
    AI_SUMMARY_SCHEMA,
    DEFAULT_SUMMARY_MODEL,
    GenerateSummaryInput,
    GoalStatus,
    SummaryService,
    build_prompt,
)


def make_summary_service(llm_settings, outcomes):
    transport = FakeTransport(outcomes)
    generation_service = GenerationService(
        llm_settings, transport=transport, sleep=RecordingSleep(), clock=FakeClock()
    )
    return SummaryService(generation_service), transport


class TestGenerateSummaryInput:
    def test_default_model(self):
        summary_input = GenerateSummaryInput(original_content="Notes")

        assert summary_input.model_name == DEFAULT_SUMMARY_MODEL

    @pytest.mark.parametrize("content", ["", "x" * 5001])
    def test_content_length(self, content):
        with pytest.raises(ValidationError):
            GenerateSummaryInput(original_content=content)

    def test_max_length_accepted(self):
        GenerateSummaryInput(original_content="x" * 5000)

    @pytest.mark.parametrize("model", ["grok", "x-ai/grok/4", "x ai/grok"])
    def test_model_format(self, model):
        with pytest.raises(ValidationError):
            GenerateSummaryInput(original_content="Notes", model_name=model)


class TestBuildPrompt:
    def test_user_message_embeds_content(self):
        system, user = build_prompt("Budget approved.")

        assert "ULTRA-SHORT" in system
        assert user.endswith("Budget approved.")


class TestSummaryService:
    @pytest.mark.asyncio
    async def test_generate_summary(self, llm_settings):
        service, transport = make_summary_service(
            llm_settings,
            [
                make_json_completion(
                    {
                        "summary_text": "Deadline extended by 2 weeks.",
                        "goal_status": "achieved",
                        "suggested_tag": "Planning",
                    },
                    model=DEFAULT_SUMMARY_MODEL,
                    total_tokens=321,
                )
            ],
        )

        summary = await service.generate_summary(
            GenerateSummaryInput(original_content="We agreed to extend the deadline.")
        )

        assert summary.summary_text == "Deadline extended by 2 weeks."
        assert summary.goal_status is GoalStatus.ACHIEVED
        assert summary.suggested_tag == "Planning"
        assert summary.tokens_used == 321

        payload = transport.payloads[0]
        assert payload["model"] == DEFAULT_SUMMARY_MODEL
        assert payload["temperature"] == 0.3
        json_schema = payload["response_format"]["json_schema"]
        assert json_schema["name"] == AI_SUMMARY_SCHEMA["name"]
        assert json_schema["schema"]["required"] == AI_SUMMARY_SCHEMA["required"]

    @pytest.mark.asyncio
    async def test_missing_usage_defaults_to_zero(self, llm_settings):
        service, _ = make_summary_service(
            llm_settings,
            [
                make_json_completion(
                    {"summary_text": "Ok.", "goal_status": "undefined", "suggested_tag": None},
                    total_tokens=None,
                )
            ],
        )

        summary = await service.generate_summary(
            GenerateSummaryInput(original_content="Notes")
        )

        assert summary.tokens_used == 0
        assert summary.suggested_tag is None

    @pytest.mark.asyncio
    async def test_unknown_goal_status(self, llm_settings):
        service, _ = make_summary_service(
            llm_settings,
            [
                make_json_completion(
                    {"summary_text": "Ok.", "goal_status": "maybe", "suggested_tag": None}
                )
            ],
        )

        with pytest.raises(GenerationError) as exc_info:
            await service.generate_summary(GenerateSummaryInput(original_content="Notes"))

        assert exc_info.value.kind is ErrorKind.PARSE
