# pyright: reportAny=false, reportExplicitAny=false
"""Process runtime client for bare-metal deployments.

Lifecycle commands go through systemd (``systemctl``), logs through the
journal (``journalctl``) and process inspection through psutil against the
PID recorded in each service's PID file.
"""

from __future__ import annotations

import subprocess
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Final, final

import anyio
import httpx
import pendulum
import psutil

from supastorj.exceptions import (
    BackendCommandFailedError,
    BackendUnavailableError,
    ServiceNotFoundError,
)
from supastorj.utils import create_null_logger

from ._state import ProbeResult, RawState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping, Sequence
    from datetime import datetime
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

UNIT_PROPERTIES: Final = (
    "LoadState",
    "ActiveState",
    "SubState",
    "Type",
    "Result",
    "ExecMainStatus",
    "MainPID",
    "ActiveEnterTimestamp",
)
_JOURNAL_TIME_FORMAT: Final = "YYYY-MM-DD HH:mm:ss"
_PROBE_TIMEOUT: Final = 5.0


def _journal_time(value: datetime) -> str:
    return pendulum.instance(value).in_timezone("local").format(_JOURNAL_TIME_FORMAT)


def _journal_command(
    unit: str,
    *,
    tail: int,
    timestamps: bool,
    follow: bool,
    since: datetime | None = None,
    until: datetime | None = None,
) -> list[str]:
    command = [
        "journalctl",
        "-u",
        unit,
        "--no-pager",
        "-o",
        "short-iso" if timestamps else "cat",
        "-n",
        str(tail),
    ]
    if since is not None:
        command.extend(["--since", _journal_time(since)])
    if until is not None:
        command.extend(["--until", _journal_time(until)])
    if follow:
        command.append("-f")
    return command


@final
class SystemdRuntime:
    """Process runtime backed by systemd, the journal and psutil."""

    __slots__ = ("_client", "_logger", "_sample_interval")

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        logger: FilteringBoundLogger | None = None,
        sample_interval: float = 0.5,
    ) -> None:
        """Initialize the runtime client.

        Args:
            client: HTTP client used for health probes.
            logger: Logger for runtime events.
            sample_interval: Seconds between the two CPU samples of a stats call.
        """
        self._client = client or httpx.AsyncClient(timeout=_PROBE_TIMEOUT)
        self._logger = logger or create_null_logger()
        self._sample_interval = sample_interval

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _run(self, command: Sequence[str]) -> str:
        try:
            result = await anyio.run_process(list(command), check=False)
        except OSError as e:
            msg = f"Failed to run {command[0]}: {e}"
            raise BackendUnavailableError(msg, cause=e) from e

        if result.returncode != 0:
            diagnostic = result.stderr.decode("utf-8", errors="replace").strip()
            msg = f"{' '.join(command)} failed: {diagnostic}"
            raise BackendCommandFailedError(
                msg, diagnostic=diagnostic, exit_code=result.returncode
            )
        return result.stdout.decode("utf-8", errors="replace")

    async def unit_properties(self, unit: str) -> dict[str, str]:
        """Return selected ``systemctl show`` properties of a unit.

        Raises:
            ServiceNotFoundError: If the unit is not installed.
        """
        output = await self._run(
            ["systemctl", "show", unit, f"--property={','.join(UNIT_PROPERTIES)}"]
        )
        properties = dict(
            line.split("=", 1) for line in output.splitlines() if "=" in line
        )
        if properties.get("LoadState") == "not-found":
            msg = f"Unit not found: {unit}"
            raise ServiceNotFoundError(msg, service_name=unit)
        return properties

    async def systemctl(self, *args: str) -> str:
        """Run a systemctl command and return its output."""
        self._logger.debug("systemctl", args=list(args))
        return await self._run(["systemctl", *args])

    async def read_pid(self, pid_file: Path) -> int | None:
        """Return the PID stored in a PID file, or None if absent or invalid."""
        path = anyio.Path(pid_file)
        if not await path.exists():
            return None
        try:
            return int((await path.read_text()).strip())
        except ValueError:
            return None

    async def process_state(self, pid: int) -> RawState:
        """Return the state of a process by PID."""

        def _inspect() -> RawState:
            try:
                process = psutil.Process(pid)
                with process.oneshot():
                    status = process.status()
                    created = process.create_time()
            except psutil.NoSuchProcess:
                return RawState.from_process(pid, alive=False)
            except psutil.AccessDenied:
                # Owned by another user, but it exists.
                return RawState.from_process(pid, alive=True)

            if status == psutil.STATUS_ZOMBIE:
                return RawState.from_process(pid, alive=False)
            return RawState.from_process(
                pid,
                alive=True,
                paused=status == psutil.STATUS_STOPPED,
                started_at=pendulum.from_timestamp(created).to_iso8601_string(),
            )

        return await anyio.to_thread.run_sync(_inspect)

    async def terminate(self, pid: int, timeout: float) -> None:
        """Send SIGTERM, wait, then SIGKILL if the process is still alive.

        Raises:
            BackendCommandFailedError: If the process cannot be signalled.
        """

        def _terminate() -> None:
            try:
                process = psutil.Process(pid)
                process.terminate()
                try:
                    process.wait(timeout=timeout)
                except psutil.TimeoutExpired:
                    process.kill()
                    process.wait(timeout=timeout)
            except psutil.NoSuchProcess:
                return
            except (psutil.AccessDenied, psutil.TimeoutExpired) as e:
                msg = f"Failed to terminate process {pid}: {e}"
                raise BackendCommandFailedError(msg, diagnostic=str(e), cause=e) from e

        await anyio.to_thread.run_sync(_terminate)

    async def remove_pid_file(self, pid_file: Path) -> None:
        """Delete a PID file if it exists."""
        await anyio.Path(pid_file).unlink(missing_ok=True)

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
        output = await self._run(
            _journal_command(
                unit,
                tail=tail,
                timestamps=timestamps,
                follow=False,
                since=since,
                until=until,
            )
        )
        return output.encode("utf-8")

    @asynccontextmanager
    async def stream_journal(
        self,
        unit: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Follow the journal of a unit.

        The journalctl process is terminated when the block exits.

        Yields:
            An async iterator of raw output chunks.
        """
        command = _journal_command(
            unit,
            tail=tail,
            timestamps=timestamps,
            follow=True,
            since=since,
            until=until,
        )
        try:
            process = await anyio.open_process(
                command, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL
            )
        except OSError as e:
            msg = f"Failed to run journalctl: {e}"
            raise BackendUnavailableError(msg, service_name=unit, cause=e) from e

        try:
            if process.stdout is None:
                msg = "journalctl produced no output stream"
                raise BackendUnavailableError(msg, service_name=unit)
            yield process.stdout
        finally:
            with anyio.CancelScope(shield=True):
                if process.returncode is None:
                    process.terminate()
                await process.aclose()

    async def sample_usage(self, pid: int) -> dict[str, Any]:
        """Sample a process twice and return a stats document.

        The document has the same shape as the container runtime's stats
        payload so both backends share one calculator.

        Raises:
            ServiceNotFoundError: If the process does not exist.
        """

        def _cpu_sample() -> tuple[int, int]:
            process = psutil.Process(pid)
            times = process.cpu_times()
            process_ns = int((times.user + times.system) * 1e9)
            system_ns = int(sum(psutil.cpu_times()) * 1e9)
            return process_ns, system_ns

        def _memory_and_io() -> dict[str, Any]:
            process = psutil.Process(pid)
            with process.oneshot():
                rss = process.memory_info().rss
                try:
                    io = process.io_counters()
                    read_bytes, write_bytes = io.read_bytes, io.write_bytes
                except (AttributeError, psutil.AccessDenied):
                    read_bytes = write_bytes = 0
            return {
                "memory_stats": {"usage": rss, "limit": psutil.virtual_memory().total},
                "blkio_stats": {
                    "io_service_bytes_recursive": [
                        {"op": "read", "value": read_bytes},
                        {"op": "write", "value": write_bytes},
                    ]
                },
                "networks": {},
            }

        try:
            before = await anyio.to_thread.run_sync(_cpu_sample)
            await anyio.sleep(self._sample_interval)
            after = await anyio.to_thread.run_sync(_cpu_sample)
            document = await anyio.to_thread.run_sync(_memory_and_io)
        except psutil.NoSuchProcess as e:
            msg = f"Process not found: {pid}"
            raise ServiceNotFoundError(msg, cause=e) from e

        document["cpu_stats"] = {
            "cpu_usage": {"total_usage": after[0]},
            "system_cpu_usage": after[1],
            "online_cpus": psutil.cpu_count() or 1,
        }
        document["precpu_stats"] = {
            "cpu_usage": {"total_usage": before[0]},
            "system_cpu_usage": before[1],
        }
        return document

    async def probe(self, url: str) -> ProbeResult:
        """Probe an HTTP health endpoint; any 2xx response is healthy."""
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            return ProbeResult(
                status="unhealthy",
                failing_streak=1,
                log=({"url": url, "error": str(e)},),
            )

        healthy = response.is_success
        return ProbeResult(
            status="healthy" if healthy else "unhealthy",
            failing_streak=0 if healthy else 1,
            log=({"url": url, "status_code": response.status_code},),
        )

    async def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> tuple[int, bytes]:
        """Run a command with stdout and stderr combined.

        Raises:
            BackendUnavailableError: If the command cannot be executed.
        """
        try:
            result = await anyio.run_process(
                list(command),
                cwd=cwd,
                env=dict(env) if env is not None else None,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            msg = f"Failed to run {command[0]}: {e}"
            raise BackendUnavailableError(msg, cause=e) from e
        return result.returncode, result.stdout
