"""LLM cache CLI package.

Usage:
    python -m llm_cache.cli serve --config config/cache_config.yaml
    python -m llm_cache.cli stats
    python -m llm_cache.cli probe
    python -m llm_cache.cli cache-key translation "Hello world" -s en -t es
    python -m llm_cache.cli validate config/cache_config.yaml
"""

import typer

from llm_cache.cli.cache_key import cache_key_command
from llm_cache.cli.serve import serve_command
from llm_cache.cli.stats import probe_command, stats_command
from llm_cache.cli.validate import validate_command

app = typer.Typer(help="LLM response cache and usage analytics")

app.command(name="serve")(serve_command)
app.command(name="stats")(stats_command)
app.command(name="probe")(probe_command)
app.command(name="cache-key")(cache_key_command)
app.command(name="validate")(validate_command)

__all__ = [
    "app",
    "serve_command",
    "stats_command",
    "probe_command",
    "cache_key_command",
    "validate_command",
]
