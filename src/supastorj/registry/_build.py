# pyright: reportExplicitAny=false
"""Choosing and assembling the registry for a deployment target."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from supastorj.adapters import DockerRuntime, SystemdRuntime
from supastorj.config import DeploymentTarget
from supastorj.utils import get_compose_file

from ._compose import compose_services, read_compose_file
from ._registry import ServiceRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

    from supastorj.config import ResolvedConfig


def _services_manifest(config: ResolvedConfig) -> dict[str, Any]:
    return {
        "services": {
            name: service.model_dump(mode="json", exclude_none=True)
            for name, service in config.active.services.items()
        }
    }


def build_registry(  # noqa: PLR0913
    config: ResolvedConfig,
    project_root: Path,
    *,
    compose_file: Path | None = None,
    disabled: Iterable[str] = (),
    logger: FilteringBoundLogger | None = None,
    audit_logger: FilteringBoundLogger | None = None,
) -> ServiceRegistry:
    """Build the registry for the configured deployment target.

    Production hosts get one process adapter per production service. Every
    other environment is run by docker compose; services come from the
    compose file, or from the active environment when there is no file.

    Args:
        config: Resolved configuration.
        project_root: Directory holding the stack.
        compose_file: Compose manifest; defaults to ``docker-compose.yml``.
        disabled: Production services to leave out.
        logger: Logger for adapter and registry events.
        audit_logger: Logger recording lifecycle actions.

    Returns:
        A registry owning the runtime client it created.

    Raises:
        ConfigLoadError: If the compose manifest cannot be read or declares
            no services.
    """
    if config.environment == DeploymentTarget.PRODUCTION:
        systemd = SystemdRuntime(logger=logger)
        return ServiceRegistry.from_production(
            project_root,
            runtime=systemd,
            variables=config.variables,
            disabled=disabled,
            project_name=config.project_name,
            logger=logger,
            audit_logger=audit_logger,
            resources=(systemd,),
        )

    manifest = (
        compose_file if compose_file is not None else get_compose_file(project_root)
    )
    if manifest.is_file() or not config.active.services:
        document = read_compose_file(manifest)
    else:
        document = _services_manifest(config)
    _ = compose_services(document)

    docker = DockerRuntime(
        compose_file=manifest, project=config.project_name, logger=logger
    )
    return ServiceRegistry.from_compose_mapping(
        document,
        project_name=config.project_name,
        runtime=docker,
        environ=config.variables,
        logger=logger,
        audit_logger=audit_logger,
        resources=(docker,),
    )
