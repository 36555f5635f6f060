"""Serve command: run the admin and health HTTP server."""

from pathlib import Path
from typing import Optional

import typer

from llm_cache.cli.utils import (
    DEFAULT_CONFIG_OPTION,
    display_info,
    handle_errors,
    load_config,
)
from llm_cache.observability.logging import configure_logging


@handle_errors
def serve_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_OPTION, "--config", "-c", help="Path to config file"
    ),
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
):
    """Start the cache admin server."""
    from llm_cache.health.server import run_server

    config = load_config(config_path)
    configure_logging(
        level=config.logging.level, json_output=config.logging.json_output
    )

    bind_host = host or config.server.host
    bind_port = port or config.server.port
    display_info(f"Starting cache admin server at http://{bind_host}:{bind_port}")
    run_server(config, host=bind_host, port=bind_port)
