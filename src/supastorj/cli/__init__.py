"""The supastorj command-line interface."""

from ._app import app, create_app, main
from ._context import CLIContext, OutputFormat
from ._output import LogPrinter
from ._shared import ExitCode

__all__ = [
    "CLIContext",
    "ExitCode",
    "LogPrinter",
    "OutputFormat",
    "app",
    "create_app",
    "main",
]
