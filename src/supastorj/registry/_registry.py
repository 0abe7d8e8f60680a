# pyright: reportAny=false, reportExplicitAny=false
"""Registry coordinating the adapters of every managed service.

The registry owns one adapter per service and fans batch queries out to
all of them at once in an anyio task group. A batch never fails because
one adapter failed: that adapter's slot reports an unknown state instead.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, Self, final

import anyio
from tenacity import (
    RetryCallState,
    retry,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from supastorj.adapters import (
    ContainerAdapter,
    HealthResult,
    PortMapping,
    ProcessAdapter,
    ResourceStats,
    ServiceState,
    process_descriptor,
)
from supastorj.exceptions import ServiceNotFoundError
from supastorj.utils import create_null_logger, get_pid_file

from ._compose import descriptors_from_manifest, read_compose_file
from ._production import PRODUCTION_SERVICES

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

    from supastorj.adapters import (
        ContainerRuntime,
        ProcessRuntime,
        ProductionService,
        ServiceAdapter,
    )


class SupportsAclose(Protocol):
    """A runtime client that holds resources until closed."""

    async def aclose(self) -> None: ...


@dataclass(frozen=True, slots=True)
class ServiceSummary:
    """Combined view of one service for status displays.

    Attributes:
        name: Service name.
        state: Current lifecycle state.
        health: Current health.
        ports: Published ports.
        uptime: Seconds since the service started, when known.
    """

    name: str
    state: ServiceState
    health: HealthResult
    ports: tuple[PortMapping, ...] = ()
    uptime: int | None = None

    @property
    def running(self) -> bool:
        return self.state == ServiceState.RUNNING


def _all_healthy(results: dict[str, HealthResult]) -> bool:
    return all(result.healthy for result in results.values())


def _last_result(retry_state: RetryCallState) -> Any:
    outcome = retry_state.outcome
    assert outcome is not None  # noqa: S101
    return outcome.result()


@final
class ServiceRegistry:
    """Ordered collection of service adapters.

    Attributes:
        project_name: Name of the stack the services belong to.
    """

    __slots__ = ("_adapters", "_logger", "_resources", "project_name")

    def __init__(
        self,
        adapters: Iterable[ServiceAdapter],
        *,
        project_name: str = "",
        resources: Sequence[SupportsAclose] = (),
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            adapters: Adapters in display order; names must be unique.
            project_name: Name of the stack the services belong to.
            resources: Runtime clients closed together with the registry.
            logger: Logger for registry events.

        Raises:
            ValueError: If two adapters share a name.
        """
        self._adapters: dict[str, ServiceAdapter] = {}
        for adapter in adapters:
            if adapter.name in self._adapters:
                msg = f"Duplicate service name: {adapter.name}"
                raise ValueError(msg)
            self._adapters[adapter.name] = adapter
        self.project_name = project_name
        self._resources = tuple(resources)
        self._logger = logger or create_null_logger()

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_compose_mapping(  # noqa: PLR0913
        cls,
        manifest: Mapping[str, Any],
        *,
        project_name: str,
        runtime: ContainerRuntime,
        environ: Mapping[str, str] | None = None,
        logger: FilteringBoundLogger | None = None,
        audit_logger: FilteringBoundLogger | None = None,
        resources: Sequence[SupportsAclose] = (),
    ) -> Self:
        """Build a registry with one container adapter per compose service.

        Raises:
            ConfigLoadError: If the manifest declares no services.
        """
        descriptors = descriptors_from_manifest(
            manifest, project_name=project_name, environ=environ
        )
        adapters = [
            ContainerAdapter(
                descriptor, runtime, logger=logger, audit_logger=audit_logger
            )
            for descriptor in descriptors
        ]
        return cls(
            adapters, project_name=project_name, resources=resources, logger=logger
        )

    @classmethod
    def from_compose(  # noqa: PLR0913
        cls,
        compose_file: Path,
        *,
        project_name: str,
        runtime: ContainerRuntime,
        environ: Mapping[str, str] | None = None,
        logger: FilteringBoundLogger | None = None,
        audit_logger: FilteringBoundLogger | None = None,
        resources: Sequence[SupportsAclose] = (),
    ) -> Self:
        """Build a registry from a compose file on disk.

        Args:
            compose_file: Path of the compose manifest.
            project_name: Compose project name.
            runtime: Container runtime shared by every adapter.
            environ: Variables used to expand port specifications.
            logger: Logger for adapter and registry events.
            audit_logger: Logger recording lifecycle actions.
            resources: Runtime clients closed together with the registry.

        Returns:
            The registry.

        Raises:
            ConfigLoadError: If the file is unreadable or declares no services.
        """
        return cls.from_compose_mapping(
            read_compose_file(compose_file),
            project_name=project_name,
            runtime=runtime,
            environ=environ,
            logger=logger,
            audit_logger=audit_logger,
            resources=resources,
        )

    @classmethod
    def from_production(  # noqa: PLR0913
        cls,
        project_root: Path,
        *,
        runtime: ProcessRuntime,
        services: Sequence[ProductionService] = PRODUCTION_SERVICES,
        variables: Mapping[str, str] | None = None,
        disabled: Iterable[str] = (),
        project_name: str = "",
        logger: FilteringBoundLogger | None = None,
        audit_logger: FilteringBoundLogger | None = None,
        resources: Sequence[SupportsAclose] = (),
    ) -> Self:
        """Build a registry with one process adapter per production service.

        Args:
            project_root: Directory holding the service checkouts.
            runtime: Process runtime shared by every adapter.
            services: Static service definitions.
            variables: Resolved variables passed to service commands.
            disabled: Names of services to leave out.
            project_name: Name of the stack.
            logger: Logger for adapter and registry events.
            audit_logger: Logger recording lifecycle actions.
            resources: Runtime clients closed together with the registry.

        Returns:
            The registry.
        """
        skipped = set(disabled)
        adapters = [
            ProcessAdapter(
                process_descriptor(
                    service,
                    get_pid_file(service.pid_file, project_root),
                    variables,
                ),
                service,
                runtime,
                project_root=project_root,
                variables=variables,
                logger=logger,
                audit_logger=audit_logger,
            )
            for service in services
            if service.name not in skipped
        ]
        return cls(
            adapters, project_name=project_name, resources=resources, logger=logger
        )

    # -------------------------------------------------------------------------
    # Resource management
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the runtime clients owned by the registry."""
        with anyio.CancelScope(shield=True):
            for resource in self._resources:
                await resource.aclose()

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def names(self) -> list[str]:
        """Return service names in registry order."""
        return list(self._adapters)

    def all_adapters(self) -> list[ServiceAdapter]:
        """Return every adapter in registry order."""
        return list(self._adapters.values())

    def get(self, name: str) -> ServiceAdapter | None:
        """Return the adapter of a service, or None if it is not registered."""
        return self._adapters.get(name)

    def by_name(self, name: str) -> ServiceAdapter:
        """Return the adapter of a service.

        Raises:
            ServiceNotFoundError: If the service is not registered.
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            msg = f"Service '{name}' not found"
            raise ServiceNotFoundError(msg, service_name=name)
        return adapter

    def select(self, names: Iterable[str] | None = None) -> list[ServiceAdapter]:
        """Return the adapters for the given names, or all of them.

        Raises:
            ServiceNotFoundError: If a name is not registered.
        """
        if names is None:
            return self.all_adapters()
        return [self.by_name(name) for name in names]

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    # -------------------------------------------------------------------------
    # Batch queries
    # -------------------------------------------------------------------------

    async def _gather[T](
        self,
        adapters: Sequence[ServiceAdapter],
        operation: Callable[[ServiceAdapter], Awaitable[T]],
        fallback: Callable[[ServiceAdapter, Exception], T],
    ) -> list[T]:
        results: list[T | None] = [None] * len(adapters)

        async def run(index: int, adapter: ServiceAdapter) -> None:
            try:
                results[index] = await operation(adapter)
            except Exception as e:  # noqa: BLE001
                self._logger.warning(
                    "batch_query_failed", service=adapter.name, error=str(e)
                )
                results[index] = fallback(adapter, e)

        async with anyio.create_task_group() as tg:
            for index, adapter in enumerate(adapters):
                tg.start_soon(run, index, adapter)

        return [result for result in results if result is not None]

    async def all_statuses(
        self, names: Iterable[str] | None = None
    ) -> list[ServiceState]:
        """Query the state of every service concurrently.

        Results are in registry order. A failing adapter reports UNKNOWN.
        """
        return await self._gather(
            self.select(names),
            lambda adapter: adapter.status(),
            lambda _adapter, _error: ServiceState.UNKNOWN,
        )

    async def all_health(
        self, names: Iterable[str] | None = None
    ) -> list[HealthResult]:
        """Check the health of every service concurrently.

        Results are in registry order. A failing adapter reports unhealthy.
        """
        return await self._gather(
            self.select(names),
            lambda adapter: adapter.health_check(),
            lambda _adapter, error: HealthResult(
                healthy=False, message="check failed", details={"error": str(error)}
            ),
        )

    async def all_stats(
        self, names: Iterable[str] | None = None
    ) -> list[ResourceStats]:
        """Sample resource usage of every service concurrently.

        Results are in registry order. A failing adapter reports zeroes.
        """
        return await self._gather(
            self.select(names),
            lambda adapter: adapter.stats(),
            lambda _adapter, _error: ResourceStats.zero(),
        )

    async def _summarize(self, adapter: ServiceAdapter) -> ServiceSummary:
        state = await adapter.status()
        health = await adapter.health_check()
        ports = adapter.descriptor.ports
        uptime: int | None = None
        if isinstance(adapter, ContainerAdapter):
            info = await adapter.info()
            if info is not None:
                ports = info.ports or ports
                uptime = info.uptime
        return ServiceSummary(
            name=adapter.name, state=state, health=health, ports=ports, uptime=uptime
        )

    async def summaries(
        self, names: Iterable[str] | None = None
    ) -> list[ServiceSummary]:
        """Collect state, health, ports and uptime of every service."""
        return await self._gather(
            self.select(names),
            self._summarize,
            lambda adapter, error: ServiceSummary(
                name=adapter.name,
                state=ServiceState.UNKNOWN,
                health=HealthResult(
                    healthy=False, message="check failed", details={"error": str(error)}
                ),
                ports=adapter.descriptor.ports,
            ),
        )

    async def _health_by_name(
        self, names: Sequence[str] | None
    ) -> dict[str, HealthResult]:
        adapters = self.select(names)
        results = await self.all_health([adapter.name for adapter in adapters])
        return {
            adapter.name: result
            for adapter, result in zip(adapters, results, strict=True)
        }

    async def wait_until_healthy(
        self,
        names: Sequence[str] | None = None,
        *,
        interval: float = 2.0,
        attempts: int = 30,
    ) -> dict[str, HealthResult]:
        """Poll health until every selected service is healthy.

        Args:
            names: Services to wait for; all of them by default.
            interval: Seconds between polls.
            attempts: Maximum number of polls.

        Returns:
            Health of each service from the last poll, healthy or not.

        Raises:
            ServiceNotFoundError: If a name is not registered.
        """
        poll = retry(
            retry=retry_if_result(lambda results: not _all_healthy(results)),
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(interval),
            retry_error_callback=_last_result,
        )(self._health_by_name)
        results: dict[str, HealthResult] = await poll(names)
        self._logger.info(
            "wait_until_healthy_finished",
            healthy=_all_healthy(results),
            services=list(results),
        )
        return results
