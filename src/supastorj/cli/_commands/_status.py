# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: D415, A002
"""Status and health commands."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Annotated

import anyio
from cyclopts import App, Parameter
from rich.live import Live
from rich.table import Table

from supastorj.adapters import ServiceState
from supastorj.cli._context import CLIContext
from supastorj.cli._shared import (
    ExitCode,
    format_json,
    format_uptime,
    open_registry,
    run_async,
)

if TYPE_CHECKING:
    from supastorj.adapters import HealthResult
    from supastorj.registry import ServiceSummary

status_app = App(
    name="status", help="Show the state of every service", help_on_error=True
)
health_app = App(
    name="health", help="Check the health of services", help_on_error=True
)

_STATE_STYLES = {
    ServiceState.RUNNING: "green",
    ServiceState.STOPPED: "red",
    ServiceState.RESTARTING: "yellow",
    ServiceState.STARTING: "yellow",
    ServiceState.STOPPING: "yellow",
    ServiceState.ERROR: "red",
    ServiceState.UNKNOWN: "dim",
}


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------


def summary_line(summaries: list[ServiceSummary]) -> str:
    """Return the ``X/N services running, Y/N healthy`` footer."""
    total = len(summaries)
    running = sum(1 for summary in summaries if summary.running)
    healthy = sum(1 for summary in summaries if summary.health.healthy)
    return f"{running}/{total} services running, {healthy}/{total} healthy"


def status_table(summaries: list[ServiceSummary], *, title: str = "") -> Table:
    """Build the status table shown by ``supastorj status``."""
    table = Table(title=title or None, caption=summary_line(summaries))
    table.add_column("Service", style="bold")
    table.add_column("Status")
    table.add_column("Health")
    table.add_column("Ports")
    table.add_column("Uptime", justify="right")

    for summary in summaries:
        style = _STATE_STYLES.get(summary.state, "dim")
        health = (
            "[green]healthy[/green]"
            if summary.health.healthy
            else f"[red]{summary.health.message}[/red]"
        )
        table.add_row(
            summary.name,
            f"[{style}]{summary.state.value}[/{style}]",
            health,
            ", ".join(str(port) for port in summary.ports) or "-",
            format_uptime(summary.uptime),
        )
    return table


def _summary_to_dict(summary: ServiceSummary) -> dict[str, object]:
    return {
        "name": summary.name,
        "state": summary.state.value,
        "healthy": summary.health.healthy,
        "health": summary.health.message,
        "ports": [str(port) for port in summary.ports],
        "uptime": summary.uptime,
    }


def _health_to_dict(name: str, result: HealthResult) -> dict[str, object]:
    data: dict[str, object] = {
        "name": name,
        "healthy": result.healthy,
        "message": result.message,
    }
    if result.details:
        data["details"] = result.details
    return data


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


async def _show_status(services: list[str] | None, as_json: bool) -> None:
    ctx = CLIContext.get_current()
    async with open_registry(ctx) as registry:
        summaries = await registry.summaries(services)

    if as_json:
        ctx.console.print_json(format_json([_summary_to_dict(s) for s in summaries]))
        return

    title = f"{ctx.config.project_name} ({ctx.config.environment})"
    ctx.console.print(status_table(summaries, title=title))


async def _watch_status(services: list[str] | None, interval: float) -> None:
    ctx = CLIContext.get_current()
    title = f"{ctx.config.project_name} ({ctx.config.environment})"
    async with open_registry(ctx) as registry:
        with Live(console=ctx.console, auto_refresh=False) as live:
            while True:
                summaries = await registry.summaries(services)
                live.update(status_table(summaries, title=title), refresh=True)
                await anyio.sleep(interval)


@status_app.default
def _status(
    *services: str,
    json: Annotated[bool, Parameter(name="--json", help="Output JSON")] = False,
    watch: Annotated[
        bool, Parameter(name=["--watch", "-w"], help="Refresh until interrupted")
    ] = False,
    interval: Annotated[
        float, Parameter(name="--interval", help="Seconds between refreshes")
    ] = 2.0,
) -> None:
    """Show the state of every service

    Args:
        services: Services to show; all of them by default.
        json: Output JSON instead of a table.
        watch: Refresh the table until interrupted.
        interval: Seconds between refreshes in watch mode.
    """
    selected = list(services) or None
    if watch and not json:
        with contextlib.suppress(KeyboardInterrupt):
            run_async(_watch_status, selected, interval)
        return
    run_async(_show_status, selected, json)


async def _check_health(
    services: list[str] | None, as_json: bool, wait: bool, timeout: float
) -> bool:
    ctx = CLIContext.get_current()
    async with open_registry(ctx) as registry:
        names = services or registry.names
        if wait:
            interval = 2.0
            attempts = max(1, int(timeout / interval))
            results = await registry.wait_until_healthy(
                names, interval=interval, attempts=attempts
            )
        else:
            health = await registry.all_health(names)
            results = dict(zip(names, health, strict=True))

    if as_json:
        ctx.console.print_json(
            format_json([_health_to_dict(name, r) for name, r in results.items()])
        )
    else:
        for name, result in results.items():
            mark = "[green]✓[/green]" if result.healthy else "[red]✗[/red]"
            ctx.console.print(f"{mark} [bold]{name}[/bold]: {result.message}")
    return all(result.healthy for result in results.values())


@health_app.default
def _health(
    *services: str,
    json: Annotated[bool, Parameter(name="--json", help="Output JSON")] = False,
    wait: Annotated[
        bool, Parameter(name="--wait", help="Poll until every service is healthy")
    ] = False,
    timeout: Annotated[
        float, Parameter(name="--timeout", help="Seconds to wait with --wait")
    ] = 60.0,
) -> None:
    """Check the health of services

    Exits with a non-zero status when any checked service is unhealthy.

    Args:
        services: Services to check; all of them by default.
        json: Output JSON.
        wait: Poll until every service is healthy or the timeout expires.
        timeout: Seconds to wait with --wait.
    """
    healthy = run_async(_check_health, list(services) or None, json, wait, timeout)
    if not healthy:
        raise SystemExit(ExitCode.UNHEALTHY)
