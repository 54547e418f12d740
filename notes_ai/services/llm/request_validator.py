"""Request Validator Module

Checks a GenerationRequest against the input contract before any
network activity. The first violated rule raises a VALIDATION error.
"""

import math
import re
from typing import Optional, Tuple

from notes_ai.models.llm import GenerationRequest, ModelParameters, ResponseSchema
from notes_ai.services.llm.exceptions import GenerationError

MAX_MESSAGE_LENGTH = 50_000

MODEL_NAME_PATTERN = re.compile(r"^[a-z0-9-]+/[a-z0-9-._]+$", re.IGNORECASE)

# (field, lower bound, upper bound); None means unbounded
PARAMETER_BOUNDS: Tuple[Tuple[str, Optional[float], Optional[float]], ...] = (
    ("temperature", 0.0, 2.0),
    ("top_p", 0.0, 1.0),
    ("frequency_penalty", -2.0, 2.0),
    ("presence_penalty", -2.0, 2.0),
)


class RequestValidator:
    """Validates generation requests.

    Rules, in order:
    - system and user messages are non-empty and non-blank
    - both messages are at most MAX_MESSAGE_LENGTH characters
    - model name (if given) is ``provider/model``
    - response schema (if given) has a name, type "object" and properties
    - sampling parameters (if given) are finite numbers within range
    - max_tokens (if given) is a positive integer
    """

    def validate(self, request: GenerationRequest) -> None:
        """Validate a request.

        Args:
            request: Request to validate

        Raises:
            GenerationError: VALIDATION kind on the first violated rule
        """
        self._validate_messages(request)

        if request.model_name is not None:
            self._validate_model_name(request.model_name)

        if request.response_schema is not None:
            self._validate_schema(request.response_schema)

        if request.parameters is not None:
            self._validate_parameters(request.parameters)

    def _validate_messages(self, request: GenerationRequest) -> None:
        for name in ("system_message", "user_message"):
            value = getattr(request, name)
            if not isinstance(value, str) or not value.strip():
                raise GenerationError.validation(
                    f"{name} is required and cannot be empty"
                )

        for name in ("system_message", "user_message"):
            if len(getattr(request, name)) > MAX_MESSAGE_LENGTH:
                raise GenerationError.validation(
                    f"{name} exceeds maximum length of {MAX_MESSAGE_LENGTH} characters"
                )

    def _validate_model_name(self, model_name: str) -> None:
        if not isinstance(model_name, str) or not MODEL_NAME_PATTERN.match(model_name):
            raise GenerationError.validation(
                "model_name must be in format: provider/model-name "
                "(e.g., openai/gpt-5-nano)"
            )

    def _validate_schema(self, schema: ResponseSchema) -> None:
        if not isinstance(schema, dict):
            raise GenerationError.validation("response_schema must be an object")

        name = schema.get("name")
        if not isinstance(name, str) or not name.strip():
            raise GenerationError.validation("response_schema.name is required")

        if schema.get("type") != "object":
            raise GenerationError.validation('response_schema.type must be "object"')

        properties = schema.get("properties")
        if not isinstance(properties, dict) or not properties:
            raise GenerationError.validation(
                "response_schema.properties must be defined and non-empty"
            )

    def _validate_parameters(self, params: ModelParameters) -> None:
        for name, low, high in PARAMETER_BOUNDS:
            value = getattr(params, name)
            if value is None:
                continue
            # bool is an int subclass
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise GenerationError.validation(f"{name} must be a number")
            if not math.isfinite(value):
                raise GenerationError.validation(f"{name} must be a finite number")
            if (low is not None and value < low) or (high is not None and value > high):
                raise GenerationError.validation(
                    f"{name} must be between {low:g} and {high:g}"
                )

        max_tokens = params.max_tokens
        if max_tokens is not None:
            if isinstance(max_tokens, bool) or not isinstance(max_tokens, int):
                raise GenerationError.validation("max_tokens must be an integer")
            if max_tokens < 1:
                raise GenerationError.validation("max_tokens must be at least 1")
