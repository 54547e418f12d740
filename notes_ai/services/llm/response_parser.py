"""Response Parser Module

This module handles:
- Extracting the completion text from the upstream response
- Rejecting truncated (length-limited) completions
- Decoding structured output (handling code blocks)
- Delegating structural checks to SchemaValidator
"""

import json
from typing import Any, Dict, Optional

import structlog

from notes_ai.models.llm import ResponseSchema
from notes_ai.services.llm.exceptions import GenerationError
from notes_ai.services.llm.schema_validator import SchemaValidator

logger = structlog.get_logger()

TRUNCATED_FINISH_REASONS = {"length", "max_tokens"}
TRUNCATION_PREVIEW_CHARS = 200
DECODE_PREVIEW_CHARS = 500


class ResponseParser:
    """Parses upstream completions into raw text or validated objects."""

    def __init__(self, schema_validator: Optional[SchemaValidator] = None):
        self.schema_validator = schema_validator or SchemaValidator()

    def parse(
        self,
        response: Dict[str, Any],
        schema: Optional[ResponseSchema] = None,
    ) -> Any:
        """Parse an upstream response.

        Args:
            response: Decoded chat-completions response
            schema: Requested response schema, if any

        Returns:
            Raw completion text when no schema was requested, otherwise
            the decoded and validated object

        Raises:
            GenerationError: PARSE kind on any contract violation
        """
        choice = self._first_choice(response)
        content = self._extract_content(choice)

        finish_reason = choice.get("finish_reason")
        if finish_reason in TRUNCATED_FINISH_REASONS:
            logger.warning(
                "completion_truncated",
                finish_reason=finish_reason,
                content_length=len(content),
            )
            raise GenerationError.parse(
                f"Completion was truncated (finish_reason={finish_reason}). "
                f"Content preview: {content[:TRUNCATION_PREVIEW_CHARS]}"
            )

        if schema is None:
            return content

        data = self._parse_json(self._clean_json_content(content))
        return self.schema_validator.validate(data, schema)

    def _first_choice(self, response: Dict[str, Any]) -> Dict[str, Any]:
        choices = response.get("choices")
        if not isinstance(choices, list) or not choices:
            raise GenerationError.parse("API response missing choices array")
        choice = choices[0]
        if not isinstance(choice, dict):
            raise GenerationError.parse("API response choice must be an object")
        return choice

    def _extract_content(self, choice: Dict[str, Any]) -> str:
        message = choice.get("message")
        if not isinstance(message, dict):
            raise GenerationError.parse("API response missing message content")
        content = message.get("content")
        if not isinstance(content, str) or not content:
            raise GenerationError.parse("API response missing message content")
        return content

    def _clean_json_content(self, content: str) -> str:
        """Remove code block markers around JSON content.

        Args:
            content: Raw content string

        Returns:
            Cleaned content string
        """
        content = content.strip()

        if content.startswith("```json"):
            content = content[7:]
        elif content.startswith("```"):
            content = content[3:]

        if content.endswith("```"):
            content = content[:-3]

        return content.strip()

    def _parse_json(self, content: str) -> Any:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise GenerationError.parse(
                f"Failed to parse JSON response: {e}. "
                f"Content: {content[:DECODE_PREVIEW_CHARS]}"
            )
