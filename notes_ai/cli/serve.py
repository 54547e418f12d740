"""Serve command for the HTTP API."""

from pathlib import Path
from typing import Optional

import typer

from notes_ai.cli.utils import display_info, handle_errors, load_config


@handle_errors
def serve_command(
    host: str = typer.Option("localhost", "--host", "-h", help="Server host"),
    port: int = typer.Option(8000, "--port", "-p", help="Server port"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config YAML"
    ),
):
    """Start the generation API server."""
    from notes_ai.api.server import run_server

    config = load_config(config_path)
    display_info(f"Starting API server at http://{host}:{port}")
    run_server(config=config, host=host, port=port)
