"""LLM generation data models

This module defines the data structures for:
- Generation requests and sampling parameters
- Generation results and metadata
- Telemetry records persisted per generation
- Retry configuration for transient upstream failures

Requests are plain dataclasses so that an invalid request can still be
constructed and rejected by RequestValidator with a typed error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field, ConfigDict

T = TypeVar("T")

# JSON Schema object carrying a "name" key, e.g.
# {"name": "x", "type": "object", "properties": {...}, "required": [...]}
ResponseSchema = Dict[str, Any]


@dataclass
class ModelParameters:
    """Sampling parameters forwarded to the upstream model.

    All fields are optional; unset fields are omitted from the payload.
    """

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None


@dataclass
class GenerationRequest:
    """Request for a single completion.

    Attributes:
        system_message: Instructions defining model behavior
        user_message: The actual prompt/task
        model_name: Model in ``provider/model`` format (default model if None)
        response_schema: JSON Schema for structured output
        parameters: Sampling parameters
        user_id: Correlation id for telemetry
        note_id: Correlation id for telemetry
    """

    system_message: str
    user_message: str
    model_name: Optional[str] = None
    response_schema: Optional[ResponseSchema] = None
    parameters: Optional[ModelParameters] = None
    user_id: Optional[str] = None
    note_id: Optional[str] = None


@dataclass(frozen=True)
class GenerationMetadata:
    """Metadata about a completed generation."""

    model_used: str
    generation_time_ms: int
    tokens_used: Optional[int] = None


@dataclass(frozen=True)
class GenerationResult(Generic[T]):
    """Immutable result of a generation.

    ``data`` is the raw completion text when no schema was requested,
    otherwise the decoded, schema-validated object.
    """

    data: T
    metadata: GenerationMetadata


class TelemetryStatus(str, Enum):
    """Final outcome of a generation call."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class TelemetryRecord:
    """One telemetry row describing the final outcome of a generation."""

    model_name: str
    status: TelemetryStatus
    generation_time_ms: int
    user_id: Optional[str] = None
    note_id: Optional[str] = None
    tokens_used: Optional[int] = None
    error_message: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        """Serialize to the ``llm_generations`` row shape."""
        return {
            "user_id": self.user_id,
            "note_id": self.note_id,
            "model_name": self.model_name,
            "status": self.status.value,
            "generation_time_ms": self.generation_time_ms,
            "tokens_used": self.tokens_used,
            "error_message": self.error_message,
        }


class RetryConfig(BaseModel):
    """Configuration for retry logic with exponential backoff

    Controls retry behavior for transient failures:
    - Number of retries after the initial attempt
    - Delay calculation parameters (delay = base * 2^attempt)
    - Optional jitter and delay cap
    """

    retry_attempts: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries after the initial attempt (total tries = N + 1)",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Base delay for exponential backoff",
    )
    max_delay_seconds: float = Field(
        default=60.0,
        gt=0.0,
        le=300.0,
        description="Maximum delay cap",
    )
    jitter_factor: float = Field(
        default=0.0,
        ge=0.0,
        le=0.5,
        description="Jitter factor for randomization (0 = deterministic)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "retry_attempts": 2,
                "retry_delay_seconds": 1.0,
                "max_delay_seconds": 60.0,
                "jitter_factor": 0.0,
            }
        }
    )


@dataclass
class UpstreamUsage:
    """Token usage reported by the upstream API."""

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @classmethod
    def from_response(cls, response: Dict[str, Any]) -> Optional["UpstreamUsage"]:
        usage = response.get("usage")
        if not isinstance(usage, dict):
            return None
        return cls(
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
            total_tokens=usage.get("total_tokens"),
        )

