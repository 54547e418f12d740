"""CLI entry point.

Allows running the CLI as a module: python -m notes_ai.cli
"""

from notes_ai.cli import app

if __name__ == "__main__":
    app()
