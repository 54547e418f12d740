"""Generate command for one-off completions."""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from notes_ai.cli.utils import display_info, handle_errors, load_config
from notes_ai.models.llm import GenerationRequest, ModelParameters
from notes_ai.services.llm.service import GenerationService


def read_schema(schema_path: Path) -> Dict[str, Any]:
    """Read a response schema file; a missing name defaults to the file stem."""
    try:
        schema = json.loads(schema_path.read_text())
    except (OSError, ValueError) as e:
        raise typer.BadParameter(f"Cannot read schema {schema_path}: {e}")
    if not isinstance(schema, dict):
        raise typer.BadParameter("Schema must be a JSON object")
    schema.setdefault("name", schema_path.stem)
    return schema


async def _generate(config_path: Optional[Path], request: GenerationRequest):
    config = load_config(config_path)
    async with GenerationService.from_config(config) as service:
        return await service.generate(request)


@handle_errors
def generate_command(
    prompt: str = typer.Argument(..., help="User message"),
    system: str = typer.Option(
        "You are a helpful assistant.", "--system", "-s", help="System message"
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help="Model in 'provider/model-name' format"
    ),
    schema_path: Optional[Path] = typer.Option(
        None, "--schema", help="JSON Schema file for structured output"
    ),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config YAML"
    ),
):
    """Run a single completion and print the result.

    Examples:
        notes-ai generate "Say hello"

        notes-ai generate "Classify: ..." --schema schemas/label.json
    """
    request = GenerationRequest(
        system_message=system,
        user_message=prompt,
        model_name=model,
        response_schema=read_schema(schema_path) if schema_path else None,
        parameters=ModelParameters(temperature=temperature, max_tokens=max_tokens),
    )

    result = asyncio.run(_generate(config_path, request))

    if isinstance(result.data, str):
        typer.echo(result.data)
    else:
        typer.echo(json.dumps(result.data, indent=2, ensure_ascii=False))

    display_info(
        f"model={result.metadata.model_used} "
        f"tokens={result.metadata.tokens_used} "
        f"time_ms={result.metadata.generation_time_ms}"
    )
