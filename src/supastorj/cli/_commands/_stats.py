# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# ruff: noqa: D415, A002
"""Resource usage command."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from cyclopts import App, Parameter
from rich.table import Table

from supastorj.cli._context import CLIContext
from supastorj.cli._shared import format_bytes, format_json, open_registry, run_async

if TYPE_CHECKING:
    from supastorj.adapters import ResourceStats

app = App(name="stats", help="Show resource usage of services", help_on_error=True)


def stats_table(rows: list[tuple[str, ResourceStats]]) -> Table:
    """Build the table shown by ``supastorj stats``."""
    table = Table()
    table.add_column("Service", style="bold")
    table.add_column("CPU %", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Mem %", justify="right")
    table.add_column("Net I/O (rx / tx)", justify="right")
    table.add_column("Block I/O (r / w)", justify="right")

    for name, stats in rows:
        table.add_row(
            name,
            f"{stats.cpu_percent:.2f}",
            f"{format_bytes(stats.memory_used)} / {format_bytes(stats.memory_limit)}",
            f"{stats.memory_percent:.2f}",
            f"{format_bytes(stats.network.rx_bytes)} / "
            f"{format_bytes(stats.network.tx_bytes)}",
            f"{format_bytes(stats.disk.read_bytes)} / "
            f"{format_bytes(stats.disk.write_bytes)}",
        )
    return table


def _stats_to_dict(name: str, stats: ResourceStats) -> dict[str, object]:
    return {
        "name": name,
        "cpu_percent": round(stats.cpu_percent, 2),
        "memory_used": stats.memory_used,
        "memory_limit": stats.memory_limit,
        "memory_percent": round(stats.memory_percent, 2),
        "network": {
            "rx_bytes": stats.network.rx_bytes,
            "tx_bytes": stats.network.tx_bytes,
        },
        "disk": {
            "read_bytes": stats.disk.read_bytes,
            "write_bytes": stats.disk.write_bytes,
        },
    }


async def _show_stats(services: list[str] | None, as_json: bool) -> None:
    ctx = CLIContext.get_current()
    async with open_registry(ctx) as registry:
        names = services or registry.names
        rows = list(zip(names, await registry.all_stats(names), strict=True))

    if as_json:
        ctx.console.print_json(
            format_json([_stats_to_dict(name, stats) for name, stats in rows])
        )
        return
    ctx.console.print(stats_table(rows))


@app.default
def _stats(
    *services: str,
    json: Annotated[bool, Parameter(name="--json", help="Output JSON")] = False,
) -> None:
    """Show resource usage of services

    Args:
        services: Services to sample; all of them by default.
        json: Output JSON instead of a table.
    """
    run_async(_show_stats, list(services) or None, json)
