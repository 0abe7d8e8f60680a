# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

This module provides common utilities used across CLI command implementations:
- Standardized exit codes and exception mapping
- Generic output formatters (JSON, YAML)
- Human-readable sizes, durations and time filters
- Registry construction from the current CLI context
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Never

import anyio
import pendulum

from supastorj.exceptions import (
    BackendError,
    ConfigError,
    EnvironmentNotFoundError,
    ServiceNotFoundError,
    SupastorjError,
)
from supastorj.registry import build_registry

from ._context import CLIContext

if TYPE_CHECKING:
    from rich.console import Console

    from supastorj.registry import ServiceRegistry

# Type alias for formattable data - uses Any to match library signatures
FormattableData = dict[str, Any]

_DURATION = re.compile(r"^(\d+)\s*([smhd])$")
_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}
_BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for",
    "exit_with_error",
    "format_bytes",
    "format_json",
    "format_uptime",
    "format_yaml",
    "get_error_console",
    "open_registry",
    "parse_since",
    "run_async",
]


class ExitCode(IntEnum):
    """Standard exit codes for supastorj CLI commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    BACKEND_ERROR = 4
    INTERNAL_ERROR = 5
    UNHEALTHY = 6


def exit_code_for(error: Exception) -> ExitCode:
    """Map an exception raised by a command to its exit code."""
    if isinstance(error, (ServiceNotFoundError, EnvironmentNotFoundError)):
        return ExitCode.NOT_FOUND
    if isinstance(error, BackendError):
        return ExitCode.BACKEND_ERROR
    if isinstance(error, ConfigError):
        return ExitCode.LOAD_ERROR
    return ExitCode.INTERNAL_ERROR


def format_json(data: Any, *, indent: bool = True) -> str:
    """Format data as JSON.

    Args:
        data: Data to format as JSON.
        indent: Whether to pretty-print with indentation.

    Returns:
        JSON-formatted string representation.
    """
    import orjson

    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options).decode("utf-8")


def format_yaml(data: FormattableData) -> str:
    """Format data as YAML.

    Args:
        data: Dictionary to format as YAML.

    Returns:
        YAML-formatted string representation.
    """
    import yaml

    return yaml.safe_dump(
        data, default_flow_style=False, allow_unicode=True, sort_keys=False
    )


def format_bytes(size: float) -> str:
    """Format a byte count with a binary unit, e.g. ``1.5 MiB``."""
    value = float(size)
    for unit in _BYTE_UNITS:
        if abs(value) < 1024 or unit == _BYTE_UNITS[-1]:
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} {_BYTE_UNITS[-1]}"  # pragma: no cover


def format_uptime(seconds: int | None) -> str:
    """Format an uptime in seconds as its two largest units, e.g. ``3h 12m``."""
    if seconds is None:
        return "-"
    days, remainder = divmod(max(seconds, 0), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def parse_since(value: str, *, now: datetime | None = None) -> datetime:
    """Parse a ``--since`` value.

    Accepts a relative duration (``30s``, ``10m``, ``2h``, ``1d``) or any
    ISO 8601 timestamp.

    Raises:
        ValueError: If the value is neither.
    """
    match = _DURATION.match(value.strip())
    if match is not None:
        amount, unit = match.groups()
        reference = now if now is not None else pendulum.now("UTC")
        return reference - timedelta(**{_DURATION_UNITS[unit]: int(amount)})

    try:
        parsed = pendulum.parse(value)
    except ValueError as e:
        msg = f"Invalid time: {value!r} (use e.g. 10m, 2h or an ISO timestamp)"
        raise ValueError(msg) from e
    if not isinstance(parsed, datetime):
        msg = f"Invalid time: {value!r} (expected a date and time)"
        raise ValueError(msg)
    return parsed


def open_registry(ctx: CLIContext | None = None) -> ServiceRegistry:
    """Build the service registry for the current CLI context."""
    ctx = ctx or CLIContext.get_current()
    return build_registry(
        ctx.config,
        ctx.root,
        compose_file=ctx.compose_file,
        logger=ctx.logger,
        audit_logger=ctx.audit_logger,
    )


def get_error_console() -> Console:
    """Get the console for error output of the current CLI context."""
    return CLIContext.get_current().error_console


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use (defaults to INTERNAL_ERROR).
        console: Optional Rich console for output. Defaults to the error
            console of the current CLI context.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {message}", highlight=False)
    raise SystemExit(code)


def run_async[T](func: Callable[..., Awaitable[T]], *args: object) -> T:
    """Run a command coroutine, turning supastorj errors into exit codes.

    Raises:
        SystemExit: If the coroutine raised a SupastorjError.
    """
    ctx = CLIContext.get_current()
    try:
        return anyio.run(func, *args)
    except SupastorjError as e:
        if ctx.logger is not None:
            ctx.logger.error("command_failed", error=str(e), type=type(e).__name__)
        exit_with_error(str(e), exit_code_for(e))
