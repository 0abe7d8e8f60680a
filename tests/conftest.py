"""Shared test fixtures for supastorj tests."""
# pyright: reportAny=false, reportExplicitAny=false

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import anyio
import pytest
from rich.console import Console

from supastorj.adapters import (
    HealthResult,
    LogOptions,
    LogRecord,
    ProbeResult,
    RawState,
    ResourceStats,
    ServiceDescriptor,
    ServiceState,
)
from supastorj.adapters._streaming import buffered_records
from supastorj.exceptions import ServiceNotFoundError

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    return Console(
        width=160,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


# ---------------------------------------------------------------------------
# Fake runtimes
# ---------------------------------------------------------------------------


@dataclass
class FakeContainerRuntime:
    """In-memory ContainerRuntime recording every call."""

    containers: dict[str, dict[str, Any]] = field(default_factory=dict)
    inspect_error: Exception | None = None
    log_buffer: bytes = b""
    stream_chunks: list[bytes] = field(default_factory=list)
    stream_forever: bool = False
    stream_error: Exception | None = None
    stream_opens: int = 0
    stream_closes: int = 0
    stats_document: dict[str, Any] = field(default_factory=dict)
    stats_error: Exception | None = None
    exec_output: bytes = b""
    compose_error: Exception | None = None
    compose_calls: list[tuple[str, ...]] = field(default_factory=list)
    log_calls: list[dict[str, Any]] = field(default_factory=list)
    stream_calls: list[dict[str, Any]] = field(default_factory=list)

    async def inspect(self, handle: str) -> dict[str, Any]:
        if self.inspect_error is not None:
            raise self.inspect_error
        if handle not in self.containers:
            msg = f"No such container: {handle}"
            raise ServiceNotFoundError(msg)
        return self.containers[handle]

    async def fetch_logs(
        self,
        handle: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> bytes:
        self.log_calls.append(
            {
                "handle": handle,
                "tail": tail,
                "since": since,
                "until": until,
                "timestamps": timestamps,
            }
        )
        return self.log_buffer

    @asynccontextmanager
    async def stream_logs(
        self,
        handle: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        self.stream_calls.append(
            {
                "handle": handle,
                "tail": tail,
                "since": since,
                "until": until,
                "timestamps": timestamps,
            }
        )
        self.stream_opens += 1
        try:
            yield self._chunks()
        finally:
            self.stream_closes += 1

    async def _chunks(self) -> AsyncIterator[bytes]:
        for chunk in self.stream_chunks:
            yield chunk
        if self.stream_error is not None:
            raise self.stream_error
        if self.stream_forever:
            await anyio.sleep_forever()

    async def fetch_stats(self, handle: str) -> dict[str, Any]:
        if self.stats_error is not None:
            raise self.stats_error
        return self.stats_document

    async def exec(self, handle: str, command: Sequence[str]) -> bytes:
        return self.exec_output

    async def compose(self, *args: str) -> str:
        self.compose_calls.append(args)
        if self.compose_error is not None:
            raise self.compose_error
        return ""


@dataclass
class FakeProcessRuntime:
    """In-memory ProcessRuntime recording every call."""

    units: dict[str, dict[str, str]] = field(default_factory=dict)
    pids: dict[str, int] = field(default_factory=dict)
    processes: dict[int, RawState] = field(default_factory=dict)
    probe_result: ProbeResult | None = None
    journal_buffer: bytes = b""
    usage_document: dict[str, Any] = field(default_factory=dict)
    run_result: tuple[int, bytes] = (0, b"")
    systemctl_error: Exception | None = None
    systemctl_calls: list[tuple[str, ...]] = field(default_factory=list)
    terminated: list[tuple[int, float]] = field(default_factory=list)
    removed_pid_files: list[Path] = field(default_factory=list)
    probed_urls: list[str] = field(default_factory=list)
    run_calls: list[dict[str, Any]] = field(default_factory=list)
    journal_calls: list[dict[str, Any]] = field(default_factory=list)

    async def unit_properties(self, unit: str) -> dict[str, str]:
        if unit not in self.units:
            msg = f"Unit {unit} not found"
            raise ServiceNotFoundError(msg)
        return self.units[unit]

    async def systemctl(self, *args: str) -> str:
        self.systemctl_calls.append(args)
        if self.systemctl_error is not None:
            raise self.systemctl_error
        return ""

    async def read_pid(self, pid_file: Path) -> int | None:
        return self.pids.get(str(pid_file))

    async def process_state(self, pid: int) -> RawState:
        return self.processes.get(pid, RawState.from_process(pid, alive=False))

    async def terminate(self, pid: int, timeout: float) -> None:
        self.terminated.append((pid, timeout))

    async def remove_pid_file(self, pid_file: Path) -> None:
        self.removed_pid_files.append(pid_file)

    async def journal(
        self,
        unit: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> bytes:
        self.journal_calls.append(
            {"unit": unit, "tail": tail, "since": since, "until": until, "follow": False}
        )
        return self.journal_buffer

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
        self.journal_calls.append(
            {"unit": unit, "tail": tail, "since": since, "until": until, "follow": True}
        )

        async def _chunks() -> AsyncIterator[bytes]:
            yield self.journal_buffer

        yield _chunks()

    async def sample_usage(self, pid: int) -> dict[str, Any]:
        return self.usage_document

    async def probe(self, url: str) -> ProbeResult:
        self.probed_urls.append(url)
        return self.probe_result or ProbeResult(status="healthy")

    async def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> tuple[int, bytes]:
        self.run_calls.append({"command": list(command), "cwd": cwd, "env": env})
        return self.run_result


# ---------------------------------------------------------------------------
# Fake adapter
# ---------------------------------------------------------------------------


@dataclass
class FakeAdapter:
    """ServiceAdapter with canned answers, for registry and CLI tests."""

    service_name: str
    state: ServiceState = ServiceState.RUNNING
    health: HealthResult = field(
        default_factory=lambda: HealthResult(healthy=True, message="healthy")
    )
    resource_stats: ResourceStats = field(default_factory=ResourceStats.zero)
    records: list[LogRecord] = field(default_factory=list)
    exec_output: str = ""
    error: Exception | None = None
    action_error: Exception | None = None
    actions: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.service_name

    @property
    def descriptor(self) -> ServiceDescriptor:
        return ServiceDescriptor.for_container(self.service_name, "test")

    async def _act(self, action: str) -> None:
        self.actions.append(action)
        if self.action_error is not None:
            raise self.action_error

    async def start(self) -> None:
        await self._act("start")

    async def stop(self) -> None:
        await self._act("stop")

    async def restart(self) -> None:
        await self._act("restart")

    async def status(self) -> ServiceState:
        if self.error is not None:
            raise self.error
        return self.state

    async def health_check(self) -> HealthResult:
        if self.error is not None:
            raise self.error
        return self.health

    def logs(self, options: LogOptions | None = None):
        return buffered_records(self.records)

    async def recent_logs(self, tail: int = 50) -> str:
        return "\n".join(record.text for record in self.records[-tail:])

    async def stats(self) -> ResourceStats:
        if self.error is not None:
            raise self.error
        return self.resource_stats

    async def exec(self, command: Sequence[str]) -> str:
        self.actions.append("exec " + " ".join(command))
        return self.exec_output


@pytest.fixture
def container_runtime() -> FakeContainerRuntime:
    return FakeContainerRuntime()


@pytest.fixture
def process_runtime() -> FakeProcessRuntime:
    return FakeProcessRuntime()


def container_inspect(
    *,
    running: bool = True,
    status: str = "running",
    exit_code: int = 0,
    health: str | None = None,
    paused: bool = False,
    restarting: bool = False,
    started_at: str = "2024-05-01T12:00:00.000000000Z",
) -> dict[str, Any]:
    """Build a minimal container inspection document."""
    state: dict[str, Any] = {
        "Status": status,
        "Running": running,
        "Paused": paused,
        "Restarting": restarting,
        "ExitCode": exit_code,
        "Pid": 4242 if running else 0,
        "StartedAt": started_at,
    }
    if health is not None:
        state["Health"] = {
            "Status": health,
            "FailingStreak": 0 if health == "healthy" else 3,
            "Log": [{"ExitCode": 0 if health == "healthy" else 1, "Output": "ok"}],
        }
    return {
        "Id": "0123456789abcdef",
        "Name": "/test-svc-1",
        "Created": "2024-05-01T11:59:00Z",
        "State": state,
        "Config": {"Image": "example/svc:1.0"},
        "NetworkSettings": {
            "Networks": {"test_default": {}},
            "Ports": {"8080/tcp": [{"HostIp": "0.0.0.0", "HostPort": "18080"}]},
        },
    }


@pytest.fixture
def make_inspect() -> Callable[..., dict[str, Any]]:
    """Return a factory for container inspection documents."""
    return container_inspect


@pytest.fixture
def make_adapter() -> type[FakeAdapter]:
    """Return the FakeAdapter class for building registries in tests."""
    return FakeAdapter
