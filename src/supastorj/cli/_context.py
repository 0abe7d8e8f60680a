# pyright: reportUnusedCallResult=false
# ruff: noqa: TC003  # Path needed at runtime for dataclass field
"""CLI context for global state management.

The CLIContext is set once at CLI startup by the meta entry point and made
available to every command via contextvars.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from supastorj.config import ResolvedConfig
from supastorj.utils import get_project_root

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


class OutputFormat(StrEnum):
    """Supported output formats for commands."""

    JSON = "json"
    YAML = "yaml"
    TABLE = "table"


# Thread-safe context variable for CLIContext
_current_cli_context: contextvars.ContextVar[CLIContext | None] = (
    contextvars.ContextVar("cli_context", default=None)
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Global CLI context with configuration and options.

    Attributes:
        config: Resolved configuration.
        verbose: Enable verbose output with additional details.
        quiet: Suppress non-essential output.
        project_root: Project root given on the command line, if any.
        config_path: Explicit config file given on the command line, if any.
        compose_file: Explicit compose manifest given on the command line.
        logger: Structured logger for CLI commands (writes to file only).
        audit_logger: Logger recording lifecycle actions, if enabled.
        console: Console for regular output.
        error_console: Console for errors and warnings.
    """

    config: ResolvedConfig = field(repr=False)
    verbose: bool = False
    quiet: bool = False
    project_root: Path | None = None
    config_path: Path | None = None
    compose_file: Path | None = None
    logger: FilteringBoundLogger | None = field(default=None, repr=False)
    audit_logger: FilteringBoundLogger | None = field(default=None, repr=False)
    console: Console = field(default_factory=Console, repr=False)
    error_console: Console = field(
        default_factory=lambda: Console(stderr=True), repr=False
    )

    @property
    def root(self) -> Path:
        """Return the effective project root."""
        return get_project_root(self.project_root)

    @classmethod
    def get_current(cls) -> CLIContext:
        """Get current active CLIContext, or create a default if not set.

        Returns:
            The currently active CLIContext, or a default instance if none is set.
        """
        ctx = _current_cli_context.get()
        if ctx is not None:
            return ctx
        return cls(config=ResolvedConfig())

    @classmethod
    def set_current(cls, ctx: CLIContext) -> None:
        """Set the current active CLIContext.

        Args:
            ctx: The CLIContext to set as current.
        """
        _current_cli_context.set(ctx)

    @classmethod
    def reset(cls) -> None:
        """Reset to default context.

        This is primarily useful for testing to ensure a clean state between tests.
        """
        _current_cli_context.set(None)
