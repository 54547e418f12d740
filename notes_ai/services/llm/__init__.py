"""LLM Generation Package

This package provides:
- GenerationService: Main orchestrator for one generation call
- Request validation and payload building
- Single-attempt transport with typed failure classification
- Response parsing and schema validation
- Fire-and-forget telemetry

Usage:
    from notes_ai.services.llm import GenerationService
    # or
    from notes_ai.services.llm.service import GenerationService
"""

from notes_ai.services.llm.service import GenerationService
from notes_ai.services.llm.exceptions import ErrorKind, GenerationError, is_retryable
from notes_ai.services.llm.payload_builder import PayloadBuilder
from notes_ai.services.llm.request_validator import RequestValidator
from notes_ai.services.llm.response_parser import ResponseParser
from notes_ai.services.llm.schema_validator import SchemaValidator
from notes_ai.services.llm.telemetry import (
    SupabaseTelemetrySink,
    TelemetryLogger,
    TelemetrySink,
)
from notes_ai.services.llm.transport import OpenRouterTransport

__all__ = [
    # Main service
    "GenerationService",
    # Components
    "RequestValidator",
    "PayloadBuilder",
    "OpenRouterTransport",
    "ResponseParser",
    "SchemaValidator",
    # Telemetry
    "TelemetryLogger",
    "TelemetrySink",
    "SupabaseTelemetrySink",
    # Errors
    "ErrorKind",
    "GenerationError",
    "is_retryable",
]
