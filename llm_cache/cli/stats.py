"""Stats and probe commands.

Query the shared store directly, without going through the HTTP server.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict

import typer

from llm_cache.cli.utils import (
    DEFAULT_CONFIG_OPTION,
    display_error,
    display_info,
    display_success,
    display_warning,
    handle_errors,
    load_config,
)
from llm_cache.models.cache import ProbeResult, WindowGranularity
from llm_cache.models.config import AppConfig
from llm_cache.services.factory import build_components


async def _collect_report(
    config: AppConfig,
    history_periods: int = 0,
    granularity: WindowGranularity = WindowGranularity.HOUR,
) -> Dict[str, Any]:
    components = build_components(config)
    try:
        report = await components.stats.build_report()
        if history_periods > 0:
            report["history"] = await components.stats.build_history(
                granularity, history_periods
            )
        return report
    finally:
        await components.close()


async def _probe(config: AppConfig) -> ProbeResult:
    components = build_components(config)
    try:
        return await components.store.probe()
    finally:
        await components.close()


@handle_errors
def stats_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_OPTION, "--config", "-c", help="Path to config file"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full report as JSON"),
    history: int = typer.Option(
        0, "--history", min=0, help="Also show the last N windows, oldest first"
    ),
    granularity: WindowGranularity = typer.Option(
        WindowGranularity.HOUR, "--granularity", "-g", help="Window size for --history"
    ),
):
    """Show cache hit rates, savings and projections."""
    config = load_config(config_path)
    report = asyncio.run(_collect_report(config, history, granularity))

    if as_json:
        typer.echo(json.dumps(report, indent=2))
        return

    if not report["redis"]["connected"]:
        display_warning(f"Store not connected: {report['redis']['error']}")

    display_info("Windows:")
    for name, window in report["performance"].items():
        typer.echo(
            f"  {name:<7} hit rate {window['hitRate']:>6}  "
            f"requests {window['totalRequests']:>7}  "
            f"tokens saved {window['tokensSaved']:>9}  "
            f"cost saved {window['costSaved']}"
        )

    display_info("Endpoints (today):")
    for endpoint in report["endpoints"]:
        typer.echo(
            f"  {endpoint['endpoint']:<12} {endpoint['hitRate']:>6}  "
            f"hits {endpoint['hits']:>6}  misses {endpoint['misses']:>6}"
        )

    if "history" in report:
        display_info(f"History ({report['history']['granularity']}):")
        for window in report["history"]["windows"]:
            typer.echo(
                f"  {window['window']:<14} hit rate {window['hitRate']:>6}  "
                f"requests {window['totalRequests']:>7}  "
                f"cost saved {window['costSaved']}"
            )

    summary = report["summary"]
    display_success(
        f"Saved today: {summary['costSavedToday']} "
        f"(estimated monthly {summary['estimatedMonthlySavings']})"
    )


@handle_errors
def probe_command(
    config_path: Path = typer.Option(
        DEFAULT_CONFIG_OPTION, "--config", "-c", help="Path to config file"
    ),
):
    """Check connectivity to the shared store."""
    config = load_config(config_path)
    result = asyncio.run(_probe(config))

    if result.connected:
        display_success(f"Store connected ({result.latency_ms} ms)")
    else:
        display_error(f"Store unreachable: {result.error}")
        raise typer.Exit(code=1)
