"""Summarize command for meeting notes."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from notes_ai.cli.utils import display_error, handle_errors, load_config
from notes_ai.services.llm.service import GenerationService
from notes_ai.services.summary_service import (
    DEFAULT_SUMMARY_MODEL,
    AiSummary,
    GenerateSummaryInput,
    SummaryService,
)


async def _summarize(
    config_path: Optional[Path], summary_input: GenerateSummaryInput
) -> AiSummary:
    config = load_config(config_path)
    async with GenerationService.from_config(config) as generation_service:
        return await SummaryService(generation_service).generate_summary(
            summary_input
        )


@handle_errors
def summarize_command(
    notes_file: Path = typer.Argument(
        ..., help="File with raw meeting notes ('-' for stdin)"
    ),
    model: str = typer.Option(
        DEFAULT_SUMMARY_MODEL, "--model", "-m", help="Summary model"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config YAML"
    ),
):
    """Summarize meeting notes and print the summary as JSON."""
    if str(notes_file) == "-":
        content = typer.get_text_stream("stdin").read()
    else:
        content = notes_file.read_text()

    try:
        summary_input = GenerateSummaryInput(original_content=content, model_name=model)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"])
            display_error(f"{field}: {err['msg']}")
        raise typer.Exit(code=1)

    summary = asyncio.run(_summarize(config_path, summary_input))
    typer.echo(json.dumps(summary.model_dump(mode="json"), indent=2, ensure_ascii=False))
