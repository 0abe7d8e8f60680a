# pyright: reportAny=false, reportExplicitAny=false
"""Adapter for services run as containers by docker compose."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, final

import pendulum

from supastorj.exceptions import BackendError, ServiceNotFoundError
from supastorj.utils import create_null_logger

from ._logstream import decode_buffer, decode_log_records
from ._models import (
    ContainerInfo,
    HealthResult,
    LogOptions,
    PortMapping,
    ResourceStats,
    ServiceState,
)
from ._resources import calculate_stats
from ._state import RawState, evaluate_health, map_state
from ._streaming import buffered_records, follow_records

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from contextlib import AbstractAsyncContextManager

    from structlog.typing import FilteringBoundLogger

    from ._models import LogRecord, ServiceDescriptor
    from ._protocol import ContainerRuntime


def _published_ports(inspect: dict[str, Any]) -> tuple[PortMapping, ...]:
    bindings = (inspect.get("NetworkSettings") or {}).get("Ports") or {}
    ports: list[PortMapping] = []
    for key, hosts in bindings.items():
        private, _, protocol = key.partition("/")
        if not hosts:
            ports.append(PortMapping(private=int(private), protocol=protocol or "tcp"))
            continue
        for host in hosts:
            host_port = host.get("HostPort")
            ports.append(
                PortMapping(
                    private=int(private),
                    public=int(host_port) if host_port else None,
                    protocol=protocol or "tcp",
                    host=host.get("HostIp") or None,
                )
            )
    return tuple(ports)


def _uptime(raw: RawState) -> int | None:
    if not raw.running or not raw.started_at:
        return None
    try:
        started = pendulum.parse(raw.started_at)
    except ValueError:
        return None
    if not isinstance(started, pendulum.DateTime):
        return None
    return max(0, int((pendulum.now("UTC") - started).total_seconds()))


@final
class ContainerAdapter:
    """Service adapter for a compose-managed container.

    Lifecycle commands go through ``docker compose`` so that compose keeps
    owning the container definition; observation goes straight to the
    runtime API using the container name ``<project>-<service>-1``.

    Attributes:
        descriptor: Immutable identity of the service.
    """

    __slots__ = ("_audit", "_logger", "_runtime", "descriptor")

    def __init__(
        self,
        descriptor: ServiceDescriptor,
        runtime: ContainerRuntime,
        *,
        logger: FilteringBoundLogger | None = None,
        audit_logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            descriptor: Identity of the service.
            runtime: Container runtime client.
            logger: Logger for adapter events.
            audit_logger: Logger recording lifecycle actions.
        """
        self.descriptor = descriptor
        self._runtime = runtime
        self._logger = (logger or create_null_logger()).bind(service=descriptor.name)
        self._audit = audit_logger or create_null_logger()

    @property
    def name(self) -> str:
        """Return the unique name of this service."""
        return self.descriptor.name

    @property
    def handle(self) -> str:
        """Return the container name."""
        return self.descriptor.runtime_handle

    def __repr__(self) -> str:
        return f"ContainerAdapter(name={self.name!r}, handle={self.handle!r})"

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def _compose(self, action: str, *args: str) -> None:
        self._logger.info("service_action", action=action)
        try:
            _ = await self._runtime.compose(*args)
        except BackendError as e:
            if e.service_name is None:
                e.service_name = self.name
            self._logger.error("service_action_failed", action=action, error=str(e))
            self._audit.info(
                "service_action",
                action=action,
                service=self.name,
                result="failure",
                error=str(e),
            )
            raise
        self._audit.info(
            "service_action", action=action, service=self.name, result="success"
        )

    async def start(self) -> None:
        """Create and start the container in the background."""
        await self._compose("start", "up", "-d", self.name)

    async def stop(self) -> None:
        """Stop the container without removing it."""
        await self._compose("stop", "stop", self.name)

    async def restart(self) -> None:
        """Restart the container."""
        await self._compose("restart", "restart", self.name)

    async def scale(self, replicas: int) -> None:
        """Run the given number of replicas of this service.

        Raises:
            ValueError: If replicas is negative.
        """
        if replicas < 0:
            msg = f"Replica count must not be negative: {replicas}"
            raise ValueError(msg)
        await self._compose(
            "scale", "up", "-d", "--scale", f"{self.name}={replicas}", self.name
        )

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    async def _raw_state(self) -> RawState | None:
        try:
            inspect = await self._runtime.inspect(self.handle)
        except ServiceNotFoundError:
            return None
        return RawState.from_container(inspect)

    async def status(self) -> ServiceState:
        """Return the current lifecycle state; UNKNOWN if it cannot be read."""
        try:
            raw = await self._raw_state()
        except Exception as e:  # noqa: BLE001
            self._logger.warning("status_check_failed", error=str(e))
            return ServiceState.UNKNOWN
        return map_state(raw)

    async def health_check(self) -> HealthResult:
        """Return the current health; failures yield an unhealthy result."""
        try:
            raw = await self._raw_state()
        except Exception as e:  # noqa: BLE001
            self._logger.warning("health_check_failed", error=str(e))
            return HealthResult(
                healthy=False, message="check failed", details={"error": str(e)}
            )
        return evaluate_health(raw)

    async def info(self) -> ContainerInfo | None:
        """Return an inspection summary, or None if the container is absent."""
        try:
            inspect = await self._runtime.inspect(self.handle)
        except ServiceNotFoundError:
            return None

        raw = RawState.from_container(inspect)
        networks = (inspect.get("NetworkSettings") or {}).get("Networks") or {}
        return ContainerInfo(
            id=str(inspect.get("Id", ""))[:12],
            name=str(inspect.get("Name", self.handle)).lstrip("/"),
            status=map_state(raw),
            uptime=_uptime(raw),
            ports=_published_ports(inspect),
            networks=tuple(networks),
            image=str((inspect.get("Config") or {}).get("Image", "")),
            created=str(inspect.get("Created", "")),
        )

    def logs(
        self, options: LogOptions | None = None
    ) -> AbstractAsyncContextManager[AsyncIterator[LogRecord]]:
        """Open the container's logs.

        Without ``follow`` the requested tail is fetched and decoded before
        the iterator is returned. With ``follow`` new lines are streamed
        until ``options.cancel`` is set or the block exits.
        """
        options = options or LogOptions()
        if not options.follow:
            return self._tail(options)
        return follow_records(
            lambda: self._runtime.stream_logs(
                self.handle,
                tail=options.tail,
                since=options.since,
                until=options.until,
                timestamps=options.timestamps,
            ),
            timestamps=options.timestamps,
            cancel=options.cancel,
            logger=self._logger,
        )

    @asynccontextmanager
    async def _tail(
        self, options: LogOptions
    ) -> AsyncIterator[AsyncIterator[LogRecord]]:
        buffer = await self._runtime.fetch_logs(
            self.handle,
            tail=options.tail,
            since=options.since,
            until=options.until,
            timestamps=options.timestamps,
        )
        records = decode_log_records(buffer, timestamps=options.timestamps)
        async with buffered_records(records) as iterator:
            yield iterator

    async def recent_logs(self, tail: int = 50) -> str:
        """Return the most recent log lines as text, or "" on failure."""
        try:
            async with self.logs(LogOptions(tail=tail, timestamps=False)) as records:
                return "\n".join([record.text async for record in records])
        except Exception as e:  # noqa: BLE001
            self._logger.warning("recent_logs_failed", error=str(e))
            return ""

    async def stats(self) -> ResourceStats:
        """Return a resource snapshot; zeros if stats are unavailable."""
        try:
            document = await self._runtime.fetch_stats(self.handle)
            return calculate_stats(document)
        except Exception as e:  # noqa: BLE001
            self._logger.warning("stats_failed", error=str(e))
            return ResourceStats.zero()

    async def exec(self, command: Sequence[str]) -> str:
        """Run a command inside the container and return its output.

        Raises:
            ServiceNotFoundError: If the container does not exist.
            BackendError: If the runtime fails to run the command.
        """
        self._logger.info("service_exec", command=list(command))
        output = await self._runtime.exec(self.handle, command)
        self._audit.info(
            "service_action", action="exec", service=self.name, result="success"
        )
        return decode_buffer(output)
