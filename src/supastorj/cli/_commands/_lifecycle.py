# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: D415
"""Lifecycle commands: start, stop, restart and exec."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from cyclopts import App, Parameter

from supastorj.cli._context import CLIContext
from supastorj.cli._shared import ExitCode, exit_with_error, open_registry, run_async
from supastorj.exceptions import BackendError

if TYPE_CHECKING:
    from supastorj.adapters import ServiceAdapter

start_app = App(name="start", help="Start services", help_on_error=True)
stop_app = App(name="stop", help="Stop services", help_on_error=True)
restart_app = App(name="restart", help="Restart services", help_on_error=True)
exec_app = App(name="exec", help="Run a command inside a service", help_on_error=True)

_PAST_TENSE = {"start": "Started", "stop": "Stopped", "restart": "Restarted"}


async def _apply(
    action: str,
    services: list[str] | None,
    wait: bool,
    timeout: float,
) -> list[str]:
    """Run a lifecycle action on each selected service in turn.

    Services are started in registry order and stopped in reverse order.

    Returns:
        Names of the services whose action failed.
    """
    ctx = CLIContext.get_current()
    failed: list[str] = []
    async with open_registry(ctx) as registry:
        adapters: list[ServiceAdapter] = registry.select(services)
        if action == "stop":
            adapters.reverse()

        for adapter in adapters:
            try:
                await getattr(adapter, action)()
            except BackendError as e:
                failed.append(adapter.name)
                ctx.error_console.print(
                    f"[red]✗[/red] {action} {adapter.name} failed: {e}",
                    highlight=False,
                )
                continue
            if not ctx.quiet:
                ctx.console.print(
                    f"[green]✓[/green] {_PAST_TENSE[action]} {adapter.name}"
                )

        if wait and action != "stop":
            ready = [a.name for a in adapters if a.name not in failed]
            interval = 2.0
            results = await registry.wait_until_healthy(
                ready, interval=interval, attempts=max(1, int(timeout / interval))
            )
            for name, result in results.items():
                if not result.healthy:
                    failed.append(name)
                    ctx.error_console.print(
                        f"[yellow]![/yellow] {name} not healthy: {result.message}"
                    )
    return failed


def _run_action(
    action: str, services: tuple[str, ...], *, wait: bool = False, timeout: float = 0
) -> None:
    failed = run_async(_apply, action, list(services) or None, wait, timeout)
    if failed:
        exit_with_error(
            f"Failed to {action}: {', '.join(failed)}", ExitCode.BACKEND_ERROR
        )


@start_app.default
def _start(
    *services: str,
    wait: Annotated[
        bool, Parameter(name="--wait", help="Wait until services are healthy")
    ] = False,
    timeout: Annotated[
        float, Parameter(name="--timeout", help="Seconds to wait with --wait")
    ] = 60.0,
) -> None:
    """Start services

    Args:
        services: Services to start; all of them by default.
        wait: Wait until the started services report healthy.
        timeout: Seconds to wait with --wait.
    """
    _run_action("start", services, wait=wait, timeout=timeout)


@stop_app.default
def _stop(*services: str) -> None:
    """Stop services

    Args:
        services: Services to stop; all of them by default.
    """
    _run_action("stop", services)


@restart_app.default
def _restart(
    *services: str,
    wait: Annotated[
        bool, Parameter(name="--wait", help="Wait until services are healthy")
    ] = False,
    timeout: Annotated[
        float, Parameter(name="--timeout", help="Seconds to wait with --wait")
    ] = 60.0,
) -> None:
    """Restart services

    Args:
        services: Services to restart; all of them by default.
        wait: Wait until the restarted services report healthy.
        timeout: Seconds to wait with --wait.
    """
    _run_action("restart", services, wait=wait, timeout=timeout)


async def _exec(service: str, command: list[str]) -> str:
    ctx = CLIContext.get_current()
    async with open_registry(ctx) as registry:
        return await registry.by_name(service).exec(command)


@exec_app.default
def _exec_command(
    service: str,
    *command: Annotated[str, Parameter(allow_leading_hyphen=True)],
) -> None:
    """Run a command inside a service

    Args:
        service: Service to run the command in.
        command: Command and arguments.
    """
    if not command:
        exit_with_error("No command given", ExitCode.VALIDATION_ERROR)
    output = run_async(_exec, service, list(command))
    CLIContext.get_current().console.out(output, end="", highlight=False)
