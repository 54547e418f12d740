"""HTTP API for AI summary generation."""

from notes_ai.api.server import create_app, run_server

__all__ = ["create_app", "run_server"]
