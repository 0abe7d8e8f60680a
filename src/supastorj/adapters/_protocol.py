"""Protocol definitions for the service adapter layer.

This module defines the interfaces that decouple adapters from the
transports they drive and the registry from the adapters:
- ServiceAdapter: Uniform lifecycle and observation interface
- ContainerRuntime: Operations a container backend must offer
- ProcessRuntime: Operations a process backend must offer
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence
    from contextlib import AbstractAsyncContextManager
    from datetime import datetime
    from pathlib import Path

    from ._models import (
        HealthResult,
        LogOptions,
        LogRecord,
        ResourceStats,
        ServiceDescriptor,
        ServiceState,
    )
    from ._state import ProbeResult, RawState


@runtime_checkable
class ServiceAdapter(Protocol):
    """Uniform interface over one managed service.

    Mutating operations raise on failure. Observing operations never raise:
    status falls back to UNKNOWN, health to an unhealthy result and stats to
    zeros.
    """

    @property
    def name(self) -> str:
        """Return the unique name of this service."""
        ...

    @property
    def descriptor(self) -> ServiceDescriptor:
        """Return the immutable identity of this service."""
        ...

    async def start(self) -> None:
        """Start the service.

        Raises:
            BackendUnavailableError: If the backend cannot be reached.
            BackendCommandFailedError: If the backend rejected the command.
        """
        ...

    async def stop(self) -> None:
        """Stop the service."""
        ...

    async def restart(self) -> None:
        """Restart the service."""
        ...

    async def status(self) -> ServiceState:
        """Return the current lifecycle state."""
        ...

    async def health_check(self) -> HealthResult:
        """Return the current health."""
        ...

    def logs(
        self, options: LogOptions | None = None
    ) -> AbstractAsyncContextManager[AsyncIterator[LogRecord]]:
        """Open a log iterator.

        Args:
            options: Retrieval options; defaults to the last 100 lines.

        Returns:
            An async context manager yielding an async iterator of records.
        """
        ...

    async def recent_logs(self, tail: int = 50) -> str:
        """Return the most recent log lines as text, or "" on failure."""
        ...

    async def stats(self) -> ResourceStats:
        """Return a resource usage snapshot."""
        ...

    async def exec(self, command: Sequence[str]) -> str:
        """Run a command inside the service and return its combined output."""
        ...


@runtime_checkable
class ContainerRuntime(Protocol):
    """Operations a container backend offers to a ContainerAdapter."""

    async def inspect(self, handle: str) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return the inspection document of a container.

        Raises:
            ServiceNotFoundError: If the container does not exist.
        """
        ...

    async def fetch_logs(
        self,
        handle: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> bytes:
        """Return the raw log buffer of a container."""
        ...

    def stream_logs(
        self,
        handle: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        """Open a following log stream yielding raw chunks."""
        ...

    async def fetch_stats(self, handle: str) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return one stats document of a container."""
        ...

    async def exec(self, handle: str, command: Sequence[str]) -> bytes:
        """Run a command in a container and return its raw framed output."""
        ...

    async def compose(self, *args: str) -> str:
        """Run a compose subcommand and return its output."""
        ...


@runtime_checkable
class ProcessRuntime(Protocol):
    """Operations a process backend offers to a ProcessAdapter."""

    async def unit_properties(self, unit: str) -> dict[str, str]:
        """Return selected ``systemctl show`` properties of a unit.

        Raises:
            ServiceNotFoundError: If the unit is not installed.
        """
        ...

    async def systemctl(self, *args: str) -> str:
        """Run a systemctl command and return its output."""
        ...

    async def read_pid(self, pid_file: Path) -> int | None:
        """Return the PID stored in a PID file, or None if absent or invalid."""
        ...

    async def process_state(self, pid: int) -> RawState:
        """Return the state of a process by PID."""
        ...

    async def terminate(self, pid: int, timeout: float) -> None:
        """Terminate a process, escalating to a kill after the timeout."""
        ...

    async def remove_pid_file(self, pid_file: Path) -> None:
        """Delete a PID file if it exists."""
        ...

    async def journal(
        self,
        unit: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> bytes:
        """Return recent journal output of a unit."""
        ...

    def stream_journal(
        self,
        unit: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        """Open a following journal stream yielding raw chunks."""
        ...

    async def sample_usage(self, pid: int) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """Return a stats document in the container runtime's shape."""
        ...

    async def probe(self, url: str) -> ProbeResult:
        """Probe an HTTP health endpoint."""
        ...

    async def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> tuple[int, bytes]:
        """Run a command and return its exit code and combined output."""
        ...
