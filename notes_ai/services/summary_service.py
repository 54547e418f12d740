"""Meeting-notes summary generation.

Builds the ultra-short summary prompt and calls GenerationService with a
strict JSON schema. Input is validated with Pydantic before any upstream
work happens.
"""

from enum import Enum
from typing import Any, Dict, Optional, Tuple

import structlog
from pydantic import BaseModel, Field, ValidationError

from notes_ai.models.llm import ModelParameters
from notes_ai.services.llm.exceptions import GenerationError
from notes_ai.services.llm.service import GenerationService

logger = structlog.get_logger()

DEFAULT_SUMMARY_MODEL = "x-ai/grok-4-fast"
MAX_CONTENT_LENGTH = 5000
SUMMARY_TEMPERATURE = 0.3


class GoalStatus(str, Enum):
    ACHIEVED = "achieved"
    NOT_ACHIEVED = "not_achieved"
    UNDEFINED = "undefined"


AI_SUMMARY_SCHEMA: Dict[str, Any] = {
    "name": "ai_summary_response",
    "type": "object",
    "properties": {
        "summary_text": {
            "type": "string",
            "description": (
                "ULTRA-SHORT summary in same language as input "
                "(1-2 sentences MAXIMUM, 20-40 words)"
            ),
        },
        "goal_status": {
            "type": "string",
            "enum": [status.value for status in GoalStatus],
            "description": "Whether meeting goals were achieved",
        },
        "suggested_tag": {
            "type": ["string", "null"],
            "description": (
                "Suggested tag/category in the same language as input (1-3 words)"
            ),
        },
    },
    "required": ["summary_text", "goal_status", "suggested_tag"],
    "additionalProperties": False,
}

SYSTEM_PROMPT = """You are an AI assistant that creates ULTRA-SHORT summaries of meeting notes.

Your task is to:
1. Detect the language of the input notes
2. Create an EXTREMELY BRIEF summary (MAXIMUM 1-2 sentences, 20-40 words ONLY) in the SAME language as the input
   - Extract ONLY the single most important point or decision
   - ONE key takeaway - nothing more
   - Skip ALL details, context, background, explanations
   - Use absolute minimum words
3. Determine if meeting goals were achieved:
   - "achieved" - goals were clearly met
   - "not_achieved" - goals were not met or missed
   - "undefined" - no clear goal was mentioned
4. Suggest a relevant tag/category (1-3 words) in the SAME language as the input

CRITICAL RULES - FOLLOW STRICTLY:
- MAXIMUM 1-2 sentences for summary_text
- MAXIMUM 20-40 words total
- Extract ONLY the most critical information
- The summary_text and suggested_tag MUST be in the same language as the input notes

Example of correct length:
BAD (too long): "During the meeting we discussed project timeline and decided to extend the deadline by two weeks due to resource constraints. The team agreed to prioritize the core features first."
GOOD (correct): "Extended project deadline by 2 weeks. Prioritizing core features."

Your summary must be like a telegram - shortest possible message."""

USER_PROMPT_TEMPLATE = """Create an ULTRA-SHORT summary (1-2 sentences MAX, 20-40 words) in the same language as these notes:

{content}"""


class GenerateSummaryInput(BaseModel):
    """Input for summary generation"""

    original_content: str = Field(
        ...,
        min_length=1,
        max_length=MAX_CONTENT_LENGTH,
        description="Raw meeting notes",
    )
    model_name: str = Field(
        default=DEFAULT_SUMMARY_MODEL,
        pattern=r"^[\w-]+/[\w-]+$",
        description="Model in 'provider/model-name' format",
    )


class AiSummary(BaseModel):
    """Generated summary with generation metrics"""

    summary_text: str
    goal_status: GoalStatus
    suggested_tag: Optional[str] = None
    generation_time_ms: int = Field(..., ge=0)
    tokens_used: int = Field(default=0, ge=0)


def build_prompt(content: str) -> Tuple[str, str]:
    """Return the (system, user) messages for ``content``."""
    return SYSTEM_PROMPT, USER_PROMPT_TEMPLATE.format(content=content)


class SummaryService:
    """Generates meeting summaries through GenerationService"""

    def __init__(self, generation_service: GenerationService):
        self.generation_service = generation_service

    async def generate_summary(
        self,
        summary_input: GenerateSummaryInput,
        user_id: Optional[str] = None,
    ) -> AiSummary:
        """Generate a summary of meeting notes.

        Args:
            summary_input: Validated input
            user_id: Optional caller id (None for anonymous calls)

        Returns:
            AiSummary with generation time and token usage

        Raises:
            GenerationError: If generation fails
        """
        system_message, user_message = build_prompt(summary_input.original_content)
        schema = {k: v for k, v in AI_SUMMARY_SCHEMA.items() if k != "name"}

        result = await self.generation_service.generate_with_schema(
            schema_name=AI_SUMMARY_SCHEMA["name"],
            schema=schema,
            system_message=system_message,
            user_message=user_message,
            model_name=summary_input.model_name,
            parameters=ModelParameters(temperature=SUMMARY_TEMPERATURE),
            user_id=user_id,
        )

        data = result.data
        try:
            summary = AiSummary(
                summary_text=data["summary_text"],
                goal_status=data["goal_status"],
                suggested_tag=data.get("suggested_tag"),
                generation_time_ms=result.metadata.generation_time_ms,
                tokens_used=result.metadata.tokens_used or 0,
            )
        except ValidationError as e:
            raise GenerationError.parse(f"Invalid summary response: {e}")

        logger.info(
            "summary_generated",
            model=result.metadata.model_used,
            goal_status=summary.goal_status.value,
            content_length=len(summary_input.original_content),
        )
        return summary
