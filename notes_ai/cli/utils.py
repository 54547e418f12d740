"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Callable, Optional, TypeVar

import structlog
import typer

from notes_ai.models.config import AppConfig
from notes_ai.observability.logging import configure_logging
from notes_ai.services.config_manager import ConfigManager, ConfigValidationError
from notes_ai.services.llm.exceptions import GenerationError

logger = structlog.get_logger()

# Type variable for decorator
F = TypeVar("F", bound=Callable)


def load_config(config_path: Optional[Path]) -> AppConfig:
    """Load configuration and apply its logging settings.

    Args:
        config_path: Path to configuration file (environment only if None).

    Returns:
        Validated AppConfig.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    config_manager = ConfigManager(
        config_path=str(config_path) if config_path else None
    )
    try:
        config = config_manager.load_config()
    except ConfigValidationError as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    configure_logging(
        level=config.logging.level,
        json_output=config.logging.json_output,
    )
    return config


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Generation failures exit with code 2, anything else with code 1.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except GenerationError as e:
            logger.warning("command_generation_failed", error_kind=e.kind.value)
            display_error(f"Generation failed [{e.kind.value}]: {e.message}")
            raise typer.Exit(code=2)
        except Exception as e:
            logger.exception("command_failed")
            display_error(f"Error: {e}")
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)


def display_info(message: str) -> None:
    """Display an info message on stderr so stdout stays machine-readable."""
    typer.secho(message, fg=typer.colors.CYAN, err=True)
