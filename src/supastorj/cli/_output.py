"""Console rendering of service log records."""

from __future__ import annotations

from typing import TYPE_CHECKING, final

from rich.console import Console
from rich.style import Style
from rich.text import Text

if TYPE_CHECKING:
    from supastorj.adapters import LogRecord

_PREFIX_COLORS = ("blue", "magenta", "cyan", "green", "yellow")


@final
class LogPrinter:
    """Writes log records to a console with a per-service prefix.

    Formats each record as ``[name] timestamp line``:
    - stdout and unknown streams: default styling
    - stderr: dim red styling
    - each service gets its own prefix color
    """

    __slots__ = ("_colors", "_console", "_show_prefix", "_stderr_style")

    def __init__(
        self, console: Console | None = None, *, show_prefix: bool = True
    ) -> None:
        """Initialize the printer.

        Args:
            console: Rich Console instance for output. If None, creates a new one.
            show_prefix: Whether to prefix lines with the service name.
        """
        self._console = console or Console()
        self._show_prefix = show_prefix
        self._stderr_style = Style(color="red", dim=True)
        self._colors: dict[str, str] = {}

    def _prefix_style(self, service_name: str) -> Style:
        color = self._colors.setdefault(
            service_name, _PREFIX_COLORS[len(self._colors) % len(_PREFIX_COLORS)]
        )
        return Style(color=color, bold=True)

    def write(self, service_name: str, record: LogRecord) -> None:
        """Write one log record.

        Args:
            service_name: Name of the service that produced the record.
            record: The decoded log record.
        """
        text = Text()
        if self._show_prefix:
            _ = text.append(f"[{service_name}]", style=self._prefix_style(service_name))
            _ = text.append(" ")
        if record.timestamp:
            _ = text.append(record.timestamp, style=Style(dim=True))
            _ = text.append(" ")
        style = self._stderr_style if record.stream == "stderr" else Style()
        _ = text.append(record.text, style=style)

        self._console.print(text, soft_wrap=True)
