"""Unit tests for ContainerAdapter."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import anyio
import pytest

from supastorj.adapters import (
    ContainerAdapter,
    LogOptions,
    LogRecord,
    PortMapping,
    ResourceStats,
    ServiceDescriptor,
    ServiceState,
    encode_frame,
)
from supastorj.exceptions import BackendCommandFailedError, BackendUnavailableError
from tests.conftest import FakeContainerRuntime

InspectFactory = Callable[..., dict[str, Any]]

pytestmark = pytest.mark.anyio

HANDLE = "test-svc-1"


@pytest.fixture
def adapter(container_runtime: FakeContainerRuntime) -> ContainerAdapter:
    descriptor = ServiceDescriptor.for_container(
        "svc", "test", ports=(PortMapping(8080, 18080),)
    )
    return ContainerAdapter(descriptor, container_runtime)


class TestLifecycle:
    async def test_start_runs_compose_up(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        await adapter.start()

        assert container_runtime.compose_calls == [("up", "-d", "svc")]

    async def test_stop_and_restart(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        await adapter.stop()
        await adapter.restart()

        assert container_runtime.compose_calls == [("stop", "svc"), ("restart", "svc")]

    async def test_scale(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        await adapter.scale(3)

        assert container_runtime.compose_calls == [
            ("up", "-d", "--scale", "svc=3", "svc")
        ]

    async def test_scale_rejects_negative(self, adapter: ContainerAdapter) -> None:
        with pytest.raises(ValueError, match="must not be negative"):
            await adapter.scale(-1)

    async def test_failure_carries_service_name(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.compose_error = BackendCommandFailedError(
            "compose failed", diagnostic="no such image", exit_code=1
        )

        with pytest.raises(BackendCommandFailedError) as exc_info:
            await adapter.start()

        assert exc_info.value.service_name == "svc"
        assert exc_info.value.diagnostic == "no such image"


class TestStatus:
    async def test_running_container(
        self,
        adapter: ContainerAdapter,
        container_runtime: FakeContainerRuntime,
        make_inspect: InspectFactory,
    ) -> None:
        container_runtime.containers[HANDLE] = make_inspect()

        assert await adapter.status() is ServiceState.RUNNING

    async def test_missing_container_is_stopped(
        self, adapter: ContainerAdapter
    ) -> None:
        assert await adapter.status() is ServiceState.STOPPED

    async def test_backend_failure_is_unknown(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.inspect_error = BackendUnavailableError("socket closed")

        assert await adapter.status() is ServiceState.UNKNOWN

    async def test_restarting_container(
        self,
        adapter: ContainerAdapter,
        container_runtime: FakeContainerRuntime,
        make_inspect: InspectFactory,
    ) -> None:
        container_runtime.containers[HANDLE] = make_inspect(
            running=False, status="restarting", restarting=True
        )

        assert await adapter.status() is ServiceState.RESTARTING


class TestHealthCheck:
    async def test_uses_probe_result(
        self,
        adapter: ContainerAdapter,
        container_runtime: FakeContainerRuntime,
        make_inspect: InspectFactory,
    ) -> None:
        container_runtime.containers[HANDLE] = make_inspect(health="unhealthy")

        result = await adapter.health_check()

        assert not result.healthy
        assert result.message == "unhealthy"
        assert result.details is not None
        assert result.details["failing_streak"] == 3

    async def test_missing_container(self, adapter: ContainerAdapter) -> None:
        result = await adapter.health_check()

        assert not result.healthy
        assert result.message == "not found"

    async def test_backend_failure_is_reported(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.inspect_error = BackendUnavailableError("socket closed")

        result = await adapter.health_check()

        assert not result.healthy
        assert result.message == "check failed"
        assert result.details == {"error": "socket closed"}


class TestInfo:
    async def test_summarizes_inspection(
        self,
        adapter: ContainerAdapter,
        container_runtime: FakeContainerRuntime,
        make_inspect: InspectFactory,
    ) -> None:
        container_runtime.containers[HANDLE] = make_inspect()

        info = await adapter.info()

        assert info is not None
        assert info.id == "0123456789ab"
        assert info.name == "test-svc-1"
        assert info.status is ServiceState.RUNNING
        assert info.ports == (PortMapping(8080, 18080, "tcp", "0.0.0.0"),)
        assert info.networks == ("test_default",)
        assert info.image == "example/svc:1.0"
        assert info.uptime is not None
        assert info.uptime > 0

    async def test_stopped_container_has_no_uptime(
        self,
        adapter: ContainerAdapter,
        container_runtime: FakeContainerRuntime,
        make_inspect: InspectFactory,
    ) -> None:
        container_runtime.containers[HANDLE] = make_inspect(
            running=False, status="exited"
        )

        info = await adapter.info()

        assert info is not None
        assert info.uptime is None

    async def test_missing_container(self, adapter: ContainerAdapter) -> None:
        assert await adapter.info() is None


class TestLogs:
    async def test_tail_decodes_multiplexed_buffer(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.log_buffer = encode_frame(b"ready\n") + encode_frame(
            b"warning\n", 2
        )

        async with adapter.logs(LogOptions(tail=10, timestamps=False)) as records:
            lines = [record async for record in records]

        assert lines == [LogRecord("ready", "stdout"), LogRecord("warning", "stderr")]
        assert container_runtime.log_calls[0]["tail"] == 10
        assert container_runtime.log_calls[0]["handle"] == HANDLE

    async def test_follow_streams_until_backend_closes(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.stream_chunks = [
            encode_frame(b"one\n"),
            encode_frame(b"two\n"),
        ]

        async with adapter.logs(LogOptions(follow=True, timestamps=False)) as records:
            lines = [record.text async for record in records]

        assert lines == ["one", "two"]
        assert container_runtime.stream_opens == 1
        assert container_runtime.stream_closes == 1

    async def test_follow_passes_time_bounds(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        since = datetime(2024, 5, 1, 11, 0, tzinfo=UTC)
        until = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        options = LogOptions(follow=True, since=since, until=until, timestamps=False)

        async with adapter.logs(options) as records:
            _ = [record async for record in records]

        assert container_runtime.stream_calls[0]["since"] == since
        assert container_runtime.stream_calls[0]["until"] == until

    async def test_follow_stops_on_cancel(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.stream_chunks = [encode_frame(b"first\n")]
        container_runtime.stream_forever = True
        cancel = anyio.Event()
        seen: list[str] = []

        with anyio.fail_after(5):
            options = LogOptions(follow=True, timestamps=False, cancel=cancel)
            async with adapter.logs(options) as records:
                async for record in records:
                    seen.append(record.text)
                    cancel.set()

        assert seen == ["first"]
        assert container_runtime.stream_closes == 1

    async def test_recent_logs_joins_lines(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.log_buffer = b"alpha\nbeta\n"

        assert await adapter.recent_logs(tail=2) == "alpha\nbeta"


class TestStatsAndExec:
    async def test_stats_failure_is_zero(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.stats_error = BackendUnavailableError("gone")

        assert await adapter.stats() == ResourceStats.zero()

    async def test_malformed_stats_document_is_zero(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.stats_document = {"networks": ["eth0"]}

        assert await adapter.stats() == ResourceStats.zero()

    async def test_stats_from_document(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.stats_document = {
            "memory_stats": {"usage": 50, "limit": 200},
        }

        stats = await adapter.stats()

        assert stats.memory_percent == pytest.approx(25.0)

    async def test_exec_decodes_output(
        self, adapter: ContainerAdapter, container_runtime: FakeContainerRuntime
    ) -> None:
        container_runtime.exec_output = encode_frame(b"PONG\n")

        assert await adapter.exec(["redis-cli", "ping"]) == "PONG\n"
