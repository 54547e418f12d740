"""Shared fixtures for notes-ai tests."""

import json
from typing import Any, Dict, List, Optional, Union

import pytest

from notes_ai.models.config import LLMSettings
from notes_ai.models.llm import RetryConfig


def make_completion(
    content: Optional[str] = "Hello!",
    finish_reason: Optional[str] = "stop",
    model: str = "openai/gpt-5-nano",
    total_tokens: Optional[int] = 42,
) -> Dict[str, Any]:
    """Build a chat-completions response body."""
    response: Dict[str, Any] = {
        "id": "gen-123",
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": finish_reason,
            }
        ],
    }
    if total_tokens is not None:
        response["usage"] = {
            "prompt_tokens": total_tokens // 2,
            "completion_tokens": total_tokens - total_tokens // 2,
            "total_tokens": total_tokens,
        }
    return response


def make_json_completion(data: Any, **kwargs: Any) -> Dict[str, Any]:
    return make_completion(content=json.dumps(data), **kwargs)


class FakeTransport:
    """Transport double returning scripted outcomes in order.

    Each outcome is a response dict or an exception to raise. The last
    outcome repeats once the script runs out.
    """

    def __init__(self, outcomes: List[Union[Dict[str, Any], Exception]]):
        self.outcomes = list(outcomes)
        self.payloads: List[Dict[str, Any]] = []
        self.timeouts: List[float] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.payloads)

    async def invoke(self, payload: Dict[str, Any], timeout_seconds: float):
        self.payloads.append(payload)
        self.timeouts.append(timeout_seconds)
        index = min(len(self.payloads) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Async sleep double that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def llm_settings() -> LLMSettings:
    return LLMSettings(
        api_key="sk-or-test-key",
        default_model="openai/gpt-5-nano",
        timeout_seconds=60,
        retry=RetryConfig(retry_attempts=2, retry_delay_seconds=1.0),
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
