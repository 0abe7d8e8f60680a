"""Data models for the service adapter layer.

This module defines the value types that travel between adapters, the
registry and the CLI:
- BackendKind: Which runtime a service is managed by
- ServiceState: Lifecycle state derived from a backend query
- PortMapping / ServiceDescriptor: Immutable service identity
- HealthResult: Outcome of a health check
- LogRecord / LogOptions: Log retrieval inputs and outputs
- ResourceStats: Point-in-time resource usage
- ContainerInfo: Inspection summary of a container
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from datetime import datetime

    import anyio

LogStream = Literal["stdout", "stderr"]


class BackendKind(StrEnum):
    """Runtime that manages a service."""

    CONTAINER = "container"
    PROCESS = "process"


class ServiceState(StrEnum):
    """Service lifecycle states.

    States are derived fresh from the backend on every query and never
    cached:
    - RUNNING: Service is up, or a one-shot job finished successfully
    - STOPPED: Service is not running
    - STARTING: Service is being brought up
    - STOPPING: Service is being brought down
    - RESTARTING: Backend reports the service is restarting
    - ERROR: Backend reports a failed service
    - UNKNOWN: State could not be determined
    """

    RUNNING = "running"
    STOPPED = "stopped"
    STARTING = "starting"
    STOPPING = "stopping"
    RESTARTING = "restarting"
    ERROR = "error"
    UNKNOWN = "unknown"


_COMPOSE_VAR = re.compile(r"\$\{(\w+)(?::?-([^}]*))?\}")


def _expand_compose_vars(value: str, environ: dict[str, str]) -> str:
    def _replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        resolved = environ.get(name)
        if resolved:
            return resolved
        return default if default is not None else match.group(0)

    return _COMPOSE_VAR.sub(_replace, value)


@dataclass(frozen=True, slots=True)
class PortMapping:
    """A published port of a service.

    Attributes:
        private: Port inside the container or process.
        public: Port exposed on the host, if published.
        protocol: Transport protocol, ``tcp`` or ``udp``.
        host: Host interface the public port is bound to, if restricted.
    """

    private: int
    public: int | None = None
    protocol: str = "tcp"
    host: str | None = None

    @classmethod
    def parse(
        cls,
        spec: str | int,
        environ: dict[str, str] | None = None,
    ) -> PortMapping:
        """Parse a compose-style port specification.

        Accepts ``"5432"``, ``"5432:5432"``, ``"127.0.0.1:5432:5432"`` and
        any of these with a ``/udp`` suffix. Compose variable references
        such as ``${POSTGRES_PORT:-5432}`` are expanded against ``environ``.

        Args:
            spec: The port specification.
            environ: Variables used to expand compose references.

        Returns:
            The parsed mapping.

        Raises:
            ValueError: If the specification has no numeric container port.
        """
        if isinstance(spec, int):
            return cls(private=spec)

        text = _expand_compose_vars(spec.strip(), environ or {})
        protocol = "tcp"
        if "/" in text:
            text, protocol = text.rsplit("/", 1)

        parts = text.split(":")
        host: str | None = None
        public: int | None = None
        if len(parts) == 1:
            private = parts[0]
        elif len(parts) == 2:  # noqa: PLR2004
            public_text, private = parts
            public = int(public_text) if public_text else None
        else:
            host = ":".join(parts[:-2]) or None
            public_text, private = parts[-2], parts[-1]
            public = int(public_text) if public_text else None

        return cls(private=int(private), public=public, protocol=protocol, host=host)

    def __str__(self) -> str:
        if self.public is None:
            return f"{self.private}/{self.protocol}"
        return f"{self.public}->{self.private}/{self.protocol}"


@dataclass(frozen=True, slots=True)
class ServiceDescriptor:
    """Immutable identity of a managed service.

    Attributes:
        name: Unique service name within a registry.
        kind: Backend that manages the service.
        runtime_handle: Container name for container services, PID file
            path for process services.
        ports: Published ports, ordered as declared.
        depends_on: Names of services this one depends on. Informational only.
        project: Compose project namespace, for container services.
        image: Container image, if known.
    """

    name: str
    kind: BackendKind
    runtime_handle: str
    ports: tuple[PortMapping, ...] = ()
    depends_on: frozenset[str] = frozenset()
    project: str | None = None
    image: str | None = None

    @classmethod
    def for_container(
        cls,
        name: str,
        project: str,
        *,
        ports: tuple[PortMapping, ...] = (),
        depends_on: frozenset[str] = frozenset(),
        image: str | None = None,
    ) -> ServiceDescriptor:
        """Create a descriptor whose handle follows compose's container naming."""
        return cls(
            name=name,
            kind=BackendKind.CONTAINER,
            runtime_handle=f"{project}-{name}-1",
            ports=ports,
            depends_on=depends_on,
            project=project,
            image=image,
        )


@dataclass(frozen=True, slots=True)
class HealthResult:
    """Outcome of a health check.

    Attributes:
        healthy: Whether the service is considered healthy.
        message: Short human-readable explanation.
        details: Extra backend data, such as probe history or an error.
    """

    healthy: bool
    message: str
    details: dict[str, Any] | None = None  # pyright: ignore[reportExplicitAny]


@dataclass(frozen=True, slots=True)
class LogRecord:
    """A single decoded log line.

    Attributes:
        text: Line content without the trailing newline.
        stream: Originating stream, or None when the backend did not say.
        timestamp: Backend timestamp prefix, when requested and present.
    """

    text: str
    stream: LogStream | None = None
    timestamp: str | None = None


@dataclass(frozen=True, slots=True)
class LogOptions:
    """Options for log retrieval.

    Attributes:
        follow: Keep streaming new lines until cancelled.
        tail: Number of most recent lines to return.
        since: Only return lines at or after this time.
        until: Only return lines before this time.
        timestamps: Ask the backend to prefix lines with timestamps.
        cancel: Event that stops a follow stream when set.
    """

    follow: bool = False
    tail: int = 100
    since: datetime | None = None
    until: datetime | None = None
    timestamps: bool = True
    cancel: anyio.Event | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class NetworkCounters:
    """Cumulative network byte counters."""

    rx_bytes: int = 0
    tx_bytes: int = 0


@dataclass(frozen=True, slots=True)
class DiskCounters:
    """Cumulative block I/O byte counters."""

    read_bytes: int = 0
    write_bytes: int = 0


@dataclass(frozen=True, slots=True)
class ResourceStats:
    """Point-in-time resource usage of a service.

    Attributes:
        cpu_percent: CPU usage in percent of one core times the core count.
        memory_used: Resident memory in bytes.
        memory_limit: Memory limit in bytes (total memory when unlimited).
        memory_percent: ``memory_used / memory_limit * 100``.
        network: Network counters.
        disk: Block I/O counters.
    """

    cpu_percent: float = 0.0
    memory_used: int = 0
    memory_limit: int = 0
    memory_percent: float = 0.0
    network: NetworkCounters = field(default_factory=NetworkCounters)
    disk: DiskCounters = field(default_factory=DiskCounters)

    @classmethod
    def zero(cls) -> ResourceStats:
        """Return the all-zero sentinel reported when stats are unavailable."""
        return cls()


@dataclass(frozen=True, slots=True)
class ContainerInfo:
    """Summary of an inspected container.

    Attributes:
        id: Short container id.
        name: Container name without the leading slash.
        status: Lifecycle state derived from the inspection.
        uptime: Seconds since the container started, when running.
        ports: Published ports.
        networks: Names of attached networks.
        image: Image reference.
        created: Creation timestamp as reported by the runtime.
    """

    id: str
    name: str
    status: ServiceState
    uptime: int | None
    ports: tuple[PortMapping, ...]
    networks: tuple[str, ...]
    image: str
    created: str


@dataclass(frozen=True, slots=True)
class ProductionService:
    """Static definition of a service run from source on a production host.

    Attributes:
        name: Service name.
        display_name: Human-readable name.
        unit: systemd unit file name.
        source_dir: Source checkout, relative to the project root.
        build_artifact: File that exists once the service is built.
        start_command: Command that runs the service in the foreground.
        port: Default listening port.
        pid_file: PID file name inside the state directory.
        port_variable: Variable that overrides the listening port.
        health_path: HTTP path answering 2xx when the service is healthy.
        env_prefix: Prefix of variables that belong to this service.
    """

    name: str
    display_name: str
    unit: str
    source_dir: str
    build_artifact: str
    start_command: tuple[str, ...]
    port: int
    pid_file: str
    port_variable: str
    health_path: str | None = None
    env_prefix: str | None = None

    def effective_port(self, variables: dict[str, str] | None = None) -> int:
        """Return the listening port, honoring the port override variable."""
        value = (variables or {}).get(self.port_variable, "")
        try:
            return int(value) if value else self.port
        except ValueError:
            return self.port
