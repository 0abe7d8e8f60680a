# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: D415
"""Logs command: print or follow service logs."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Annotated

import anyio
from cyclopts import App, Parameter

from supastorj.adapters import LogOptions
from supastorj.cli._context import CLIContext
from supastorj.cli._output import LogPrinter
from supastorj.cli._shared import (
    ExitCode,
    exit_with_error,
    open_registry,
    parse_since,
    run_async,
)
from supastorj.exceptions import SupastorjError

if TYPE_CHECKING:
    from supastorj.adapters import ServiceAdapter

app = App(name="logs", help="Show service logs", help_on_error=True)


async def _print_logs(
    adapter: ServiceAdapter, options: LogOptions, printer: LogPrinter
) -> None:
    async with adapter.logs(options) as records:
        async for record in records:
            printer.write(adapter.name, record)


async def _follow_one(
    adapter: ServiceAdapter, options: LogOptions, printer: LogPrinter
) -> None:
    ctx = CLIContext.get_current()
    try:
        await _print_logs(adapter, options, printer)
    except SupastorjError as e:
        # One broken stream must not stop the others.
        ctx.error_console.print(f"[red]Error:[/red] {adapter.name}: {e}")
        if ctx.logger is not None:
            ctx.logger.warning("log_stream_failed", service=adapter.name, error=str(e))


async def _show_logs(services: list[str] | None, options: LogOptions) -> None:
    ctx = CLIContext.get_current()
    async with open_registry(ctx) as registry:
        adapters = registry.select(services)
        printer = LogPrinter(ctx.console, show_prefix=len(adapters) > 1)

        if not options.follow:
            for adapter in adapters:
                await _print_logs(adapter, options, printer)
            return

        async with anyio.create_task_group() as tg:
            for adapter in adapters:
                tg.start_soon(_follow_one, adapter, options, printer)


@app.default
def _logs(
    *services: str,
    follow: Annotated[
        bool, Parameter(name=["--follow", "-f"], help="Follow log output")
    ] = False,
    tail: Annotated[
        int, Parameter(name=["--tail", "-n"], help="Number of lines to show")
    ] = 100,
    since: Annotated[
        str | None,
        Parameter(name="--since", help="Show logs since a time (e.g. 10m, 2h)"),
    ] = None,
    until: Annotated[
        str | None,
        Parameter(name="--until", help="Show logs before a time (e.g. 5m)"),
    ] = None,
    timestamps: Annotated[
        bool, Parameter(name=["--timestamps", "-t"], help="Show timestamps")
    ] = False,
) -> None:
    """Show service logs

    Lines of several services are prefixed with the service name. In follow
    mode the command runs until interrupted.

    Args:
        services: Services to show; all of them by default.
        follow: Keep streaming new lines.
        tail: Number of most recent lines to show per service.
        since: Only show lines at or after this time.
        until: Only show lines before this time.
        timestamps: Prefix lines with their timestamps.
    """
    if tail < 0:
        exit_with_error("--tail must not be negative", ExitCode.VALIDATION_ERROR)
    try:
        options = LogOptions(
            follow=follow,
            tail=tail,
            since=parse_since(since) if since else None,
            until=parse_since(until) if until else None,
            timestamps=timestamps,
        )
    except ValueError as e:
        exit_with_error(str(e), ExitCode.VALIDATION_ERROR)

    with contextlib.suppress(KeyboardInterrupt):
        run_async(_show_logs, list(services) or None, options)
