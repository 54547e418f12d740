"""Payload Builder Module

Maps a validated GenerationRequest onto the upstream chat-completions
payload. Assumes RequestValidator has already run.
"""

from typing import Any, Dict

from notes_ai.models.llm import GenerationRequest

PARAMETER_FIELDS = (
    "temperature",
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
)


class PayloadBuilder:
    """Builds OpenRouter-compatible request payloads."""

    def __init__(self, default_model: str):
        """Initialize payload builder.

        Args:
            default_model: Model used when the request does not name one
        """
        self.default_model = default_model

    def resolve_model(self, request: GenerationRequest) -> str:
        """Model name the payload will target."""
        return request.model_name or self.default_model

    def build(self, request: GenerationRequest) -> Dict[str, Any]:
        """Build the wire payload.

        Args:
            request: Validated generation request

        Returns:
            Payload dictionary ready for JSON encoding
        """
        payload: Dict[str, Any] = {
            "model": self.resolve_model(request),
            "messages": [
                {"role": "system", "content": request.system_message},
                {"role": "user", "content": request.user_message},
            ],
        }

        if request.response_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": request.response_schema["name"],
                    "strict": True,
                    "schema": request.response_schema,
                },
            }

        if request.parameters is not None:
            for name in PARAMETER_FIELDS:
                value = getattr(request.parameters, name)
                if value is not None:
                    payload[name] = value

        return payload
