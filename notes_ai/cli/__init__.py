"""notes-ai CLI Package.

Usage:
    python -m notes_ai.cli generate "Say hello"
    python -m notes_ai.cli summarize notes.txt
    python -m notes_ai.cli serve --port 8000
"""

import typer

from notes_ai.cli.generate import generate_command
from notes_ai.cli.serve import serve_command
from notes_ai.cli.summarize import summarize_command

app = typer.Typer(help="notes-ai: AI generation for meeting notes")

app.command(name="generate")(generate_command)
app.command(name="summarize")(summarize_command)
app.command(name="serve")(serve_command)

__all__ = [
    "app",
    "generate_command",
    "summarize_command",
    "serve_command",
]
