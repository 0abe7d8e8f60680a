# pyright: reportAny=false, reportExplicitAny=false
"""Adapter for services run from source under systemd."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio

from supastorj.exceptions import (
    BackendCommandFailedError,
    BackendError,
    BackendUnavailableError,
    ServiceNotFoundError,
)
from supastorj.utils import create_null_logger

from ._logstream import decode_log_records
from ._models import (
    BackendKind,
    HealthResult,
    LogOptions,
    PortMapping,
    ResourceStats,
    ServiceDescriptor,
    ServiceState,
)
from ._resources import calculate_stats
from ._state import RawState, evaluate_health, map_state
from ._streaming import buffered_records, follow_records

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence
    from contextlib import AbstractAsyncContextManager

    from structlog.typing import FilteringBoundLogger

    from ._models import LogRecord, ProductionService
    from ._protocol import ProcessRuntime


def process_descriptor(
    service: ProductionService,
    pid_path: Path,
    variables: Mapping[str, str] | None = None,
) -> ServiceDescriptor:
    """Build the descriptor of a production service."""
    port = service.effective_port(dict(variables or {}))
    return ServiceDescriptor(
        name=service.name,
        kind=BackendKind.PROCESS,
        runtime_handle=str(pid_path),
        ports=(PortMapping(private=port, public=port),),
    )


@final
class ProcessAdapter:
    """Service adapter for a process supervised by systemd.

    The systemd unit is authoritative while it is active. Otherwise the PID
    file written by a foreground run is consulted, so a service started
    outside systemd is still observed and can still be stopped.

    Attributes:
        descriptor: Immutable identity of the service.
        service: Static definition of the service.
    """

    __slots__ = (
        "_audit",
        "_logger",
        "_project_root",
        "_runtime",
        "_stop_timeout",
        "_variables",
        "descriptor",
        "service",
    )

    def __init__(  # noqa: PLR0913
        self,
        descriptor: ServiceDescriptor,
        service: ProductionService,
        runtime: ProcessRuntime,
        *,
        project_root: Path,
        variables: Mapping[str, str] | None = None,
        logger: FilteringBoundLogger | None = None,
        audit_logger: FilteringBoundLogger | None = None,
        stop_timeout: float = 10.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            descriptor: Identity of the service; its handle is the PID file.
            service: Static definition of the service.
            runtime: Process runtime client.
            project_root: Directory the service's paths are relative to.
            variables: Resolved variables passed to commands run for the service.
            logger: Logger for adapter events.
            audit_logger: Logger recording lifecycle actions.
            stop_timeout: Seconds to wait after SIGTERM before SIGKILL.
        """
        self.descriptor = descriptor
        self.service = service
        self._runtime = runtime
        self._project_root = project_root
        self._variables: dict[str, str] = dict(variables or {})
        self._logger = (logger or create_null_logger()).bind(service=descriptor.name)
        self._audit = audit_logger or create_null_logger()
        self._stop_timeout = stop_timeout

    @property
    def name(self) -> str:
        """Return the unique name of this service."""
        return self.descriptor.name

    @property
    def pid_file(self) -> Path:
        """Return the path of the service's PID file."""
        return Path(self.descriptor.runtime_handle)

    def __repr__(self) -> str:
        return f"ProcessAdapter(name={self.name!r}, unit={self.service.unit!r})"

    @property
    def health_url(self) -> str | None:
        """Return the URL probed for health, if the service declares one."""
        if self.service.health_path is None:
            return None
        port = self.service.effective_port(self._variables)
        return f"http://127.0.0.1:{port}{self.service.health_path}"

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    async def _systemd_state(self) -> RawState | None:
        try:
            properties = await self._runtime.unit_properties(self.service.unit)
        except (ServiceNotFoundError, BackendUnavailableError):
            return None
        return RawState.from_systemd(properties)

    async def _pid(self) -> int | None:
        return await self._runtime.read_pid(self.pid_file)

    async def _raw_state(self) -> RawState | None:
        systemd = await self._systemd_state()
        if systemd is not None and (systemd.running or systemd.restarting):
            return systemd

        pid = await self._pid()
        if pid is not None:
            process = await self._runtime.process_state(pid)
            if process.running or process.paused or systemd is None:
                return process
        return systemd

    async def _probed_state(self) -> RawState | None:
        raw = await self._raw_state()
        url = self.health_url
        if raw is None or not raw.running or url is None:
            return raw
        return raw.with_probe(await self._runtime.probe(url))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _record(self, action: str, result: str, error: str | None = None) -> None:
        if error is None:
            self._audit.info(
                "service_action", action=action, service=self.name, result=result
            )
        else:
            self._audit.info(
                "service_action",
                action=action,
                service=self.name,
                result=result,
                error=error,
            )

    async def _systemctl(self, action: str) -> None:
        self._logger.info("service_action", action=action, unit=self.service.unit)
        try:
            _ = await self._runtime.systemctl(action, self.service.unit)
        except BackendError as e:
            if e.service_name is None:
                e.service_name = self.name
            self._logger.error("service_action_failed", action=action, error=str(e))
            self._record(action, "failure", str(e))
            raise
        self._record(action, "success")

    async def start(self) -> None:
        """Start the service's systemd unit.

        Raises:
            BackendCommandFailedError: If the service has not been built or
                systemd rejected the command.
            BackendUnavailableError: If systemctl cannot be run.
        """
        artifact = self._project_root / self.service.build_artifact
        if not await anyio.Path(artifact).exists():
            msg = (
                f"{self.service.display_name} is not built: {artifact} is missing. "
                f"Build it in {self.service.source_dir} first."
            )
            self._record("start", "failure", msg)
            raise BackendCommandFailedError(
                msg, service_name=self.name, diagnostic=f"missing {artifact}"
            )
        await self._systemctl("start")

    async def stop(self) -> None:
        """Stop the service.

        An active unit is stopped through systemd. Otherwise the process in
        the PID file gets SIGTERM, then SIGKILL after the stop timeout, and
        the PID file is removed.
        """
        systemd = await self._systemd_state()
        if systemd is not None and (
            systemd.running or systemd.restarting or systemd.status == "activating"
        ):
            await self._systemctl("stop")
            return

        pid = await self._pid()
        if pid is None:
            self._logger.info("service_not_running")
            self._record("stop", "noop")
            return

        self._logger.info("service_action", action="stop", pid=pid)
        try:
            if (await self._runtime.process_state(pid)).status != "dead":
                await self._runtime.terminate(pid, self._stop_timeout)
        except BackendError as e:
            if e.service_name is None:
                e.service_name = self.name
            self._record("stop", "failure", str(e))
            raise
        await self._runtime.remove_pid_file(self.pid_file)
        self._record("stop", "success")

    async def restart(self) -> None:
        """Restart the service's systemd unit."""
        await self._systemctl("restart")

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------

    async def status(self) -> ServiceState:
        """Return the current lifecycle state; UNKNOWN if it cannot be read."""
        try:
            raw = await self._raw_state()
        except Exception as e:  # noqa: BLE001
            self._logger.warning("status_check_failed", error=str(e))
            return ServiceState.UNKNOWN
        return map_state(raw)

    async def health_check(self) -> HealthResult:
        """Return the current health, probing the HTTP endpoint when running."""
        try:
            raw = await self._probed_state()
        except Exception as e:  # noqa: BLE001
            self._logger.warning("health_check_failed", error=str(e))
            return HealthResult(
                healthy=False, message="check failed", details={"error": str(e)}
            )
        return evaluate_health(raw)

    def logs(
        self, options: LogOptions | None = None
    ) -> AbstractAsyncContextManager[AsyncIterator[LogRecord]]:
        """Open the unit's journal.

        Without ``follow`` the requested tail is read before the iterator is
        returned. With ``follow`` new lines are streamed until
        ``options.cancel`` is set or the block exits.
        """
        options = options or LogOptions()
        if not options.follow:
            return self._tail(options)
        return follow_records(
            lambda: self._runtime.stream_journal(
                self.service.unit,
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
        buffer = await self._runtime.journal(
            self.service.unit,
            tail=options.tail,
            since=options.since,
            until=options.until,
            timestamps=options.timestamps,
        )
        records = decode_log_records(buffer, timestamps=options.timestamps)
        async with buffered_records(records) as iterator:
            yield iterator

    async def recent_logs(self, tail: int = 50) -> str:
        """Return the most recent journal lines as text, or "" on failure."""
        try:
            async with self.logs(LogOptions(tail=tail, timestamps=False)) as records:
                return "\n".join([record.text async for record in records])
        except Exception as e:  # noqa: BLE001
            self._logger.warning("recent_logs_failed", error=str(e))
            return ""

    async def stats(self) -> ResourceStats:
        """Return a resource snapshot of the main process; zeros on failure."""
        try:
            raw = await self._raw_state()
            if raw is None or raw.pid is None or not raw.running:
                return ResourceStats.zero()
            document = await self._runtime.sample_usage(raw.pid)
            return calculate_stats(document)
        except Exception as e:  # noqa: BLE001
            self._logger.warning("stats_failed", error=str(e))
            return ResourceStats.zero()

    async def exec(self, command: Sequence[str]) -> str:
        """Run a command in the service's source directory.

        The command sees the process environment overlaid with the resolved
        variables. Its stdout and stderr are returned combined.

        Raises:
            BackendUnavailableError: If the command cannot be executed.
        """
        self._logger.info("service_exec", command=list(command))
        exit_code, output = await self._runtime.run(
            command,
            cwd=self._project_root / self.service.source_dir,
            env={**os.environ, **self._variables},
        )
        self._logger.debug("service_exec_finished", exit_code=exit_code)
        self._record("exec", "success" if exit_code == 0 else "failure")
        return output.decode("utf-8", errors="replace")
