"""supastorj CLI commands."""
# pyright: reportUnusedCallResult=false

from __future__ import annotations

from typing import TYPE_CHECKING

from ._config import app as config_app
from ._lifecycle import exec_app, restart_app, start_app, stop_app
from ._logs import app as logs_app
from ._stats import app as stats_app
from ._status import health_app, status_app, status_table, summary_line

if TYPE_CHECKING:
    from cyclopts import App

__all__ = [
    "config_app",
    "exec_app",
    "health_app",
    "logs_app",
    "register_commands",
    "restart_app",
    "start_app",
    "stats_app",
    "status_app",
    "status_table",
    "stop_app",
    "summary_line",
]


def register_commands(app: App) -> None:
    app.command(status_app)
    app.command(health_app)
    app.command(stats_app)
    app.command(logs_app)
    app.command(start_app)
    app.command(stop_app)
    app.command(restart_app)
    app.command(exec_app)
    app.command(config_app)
