"""Schema Validator Module

Structural validation of decoded structured output against the
requested JSON Schema: required fields and declared property types.
Unknown extra fields are tolerated.
"""

from typing import Any, Dict, List, Union

from notes_ai.models.llm import ResponseSchema
from notes_ai.services.llm.exceptions import GenerationError


def json_type_name(value: Any) -> str:
    """JSON type name of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def matches_type(value: Any, expected: str) -> bool:
    """Check a value against a single JSON Schema type name.

    Unknown type names pass validation.
    """
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (
            isinstance(value, float) and value.is_integer()
        )
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "null":
        return value is None
    if expected == "array":
        return isinstance(value, list)
    if expected == "object":
        return isinstance(value, dict)
    return True


class SchemaValidator:
    """Validates decoded objects against a response schema."""

    def validate(self, data: Any, schema: ResponseSchema) -> Dict[str, Any]:
        """Validate data against the schema.

        Args:
            data: Decoded JSON value
            schema: Requested response schema

        Returns:
            The validated object (unchanged)

        Raises:
            GenerationError: PARSE kind naming the first offending field
        """
        if not isinstance(data, dict):
            raise GenerationError.parse(
                f"Response data must be an object, got {json_type_name(data)}",
                expected_type="object",
                actual_type=json_type_name(data),
            )

        required = schema.get("required") or []
        if isinstance(required, list):
            for field_name in required:
                if field_name not in data:
                    raise GenerationError.parse(
                        f"Missing required field: {field_name}",
                        field=field_name,
                    )

        properties = schema.get("properties") or {}
        for field_name, field_schema in properties.items():
            if field_name not in data or not isinstance(field_schema, dict):
                continue
            expected = field_schema.get("type")
            if expected is None:
                continue
            if not self._matches(data[field_name], expected):
                expected_name = self._type_label(expected)
                actual = json_type_name(data[field_name])
                raise GenerationError.parse(
                    f'Field "{field_name}" has incorrect type. '
                    f"Expected: {expected_name}, Got: {actual}",
                    field=field_name,
                    expected_type=expected_name,
                    actual_type=actual,
                )

        return data

    def _matches(self, value: Any, expected: Union[str, List[str]]) -> bool:
        if isinstance(expected, list):
            return any(matches_type(value, t) for t in expected)
        return matches_type(value, expected)

    def _type_label(self, expected: Union[str, List[str]]) -> str:
        if isinstance(expected, list):
            return "|".join(str(t) for t in expected)
        return str(expected)
