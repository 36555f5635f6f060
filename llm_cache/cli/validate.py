"""Validate command for configuration files."""

from pathlib import Path

import typer

from llm_cache.cli.utils import (
    display_error,
    display_success,
    display_warning,
    handle_errors,
)
from llm_cache.services.config_manager import ConfigManager


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        config = manager.load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    if config.store.url is None:
        display_warning("No store URL configured: caching will be disabled")
    if config.server.admin_token is None:
        display_warning("No admin token configured: admin endpoints will reject all calls")
    display_success("Configuration is valid! ✅")
