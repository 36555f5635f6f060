"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from pathlib import Path
from typing import Callable, TypeVar

import structlog
import typer

from llm_cache.models.config import AppConfig
from llm_cache.observability.logging import configure_logging
from llm_cache.services.config_manager import ConfigManager
from llm_cache.utils.exceptions import ConfigValidationError

# Console output until a command applies the configured settings
configure_logging(json_output=False)
logger = structlog.get_logger()

F = TypeVar("F", bound=Callable)

DEFAULT_CONFIG_OPTION = Path("config/cache_config.yaml")


def load_config(config_path: Path) -> AppConfig:
    """Load and validate configuration.

    Raises:
        typer.Exit: If configuration is missing or invalid.
    """
    config_manager = ConfigManager(config_path=str(config_path))
    try:
        return config_manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)
