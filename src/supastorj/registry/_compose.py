# pyright: reportAny=false, reportExplicitAny=false
"""Reading service descriptors out of a compose manifest."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from supastorj.adapters import PortMapping, ServiceDescriptor
from supastorj.config import read_yaml_file
from supastorj.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pathlib import Path


def _port_mappings(
    entries: Any, environ: Mapping[str, str]
) -> tuple[PortMapping, ...]:
    if not isinstance(entries, list):
        return ()

    ports: list[PortMapping] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            # Long syntax: {target, published, protocol, host_ip}
            target = entry.get("target")
            if target is None:
                continue
            published = entry.get("published")
            spec = f"{published}:{target}" if published is not None else str(target)
            if entry.get("protocol"):
                spec = f"{spec}/{entry['protocol']}"
        else:
            spec = str(entry)
        try:
            ports.append(PortMapping.parse(spec, dict(environ)))
        except ValueError:
            continue
    return tuple(ports)


def _dependencies(value: Any) -> frozenset[str]:
    if isinstance(value, Mapping):
        return frozenset(str(name) for name in value)
    if isinstance(value, list):
        return frozenset(str(name) for name in value)
    return frozenset()


def compose_services(manifest: Mapping[str, Any]) -> dict[str, Mapping[str, Any]]:
    """Return the ``services`` section of a compose manifest.

    Raises:
        ConfigLoadError: If the manifest declares no services.
    """
    services = manifest.get("services")
    if not isinstance(services, Mapping) or not services:
        msg = "No services found in docker-compose file"
        raise ConfigLoadError(msg)
    return {
        str(name): definition if isinstance(definition, Mapping) else {}
        for name, definition in services.items()
    }


def descriptors_from_manifest(
    manifest: Mapping[str, Any],
    *,
    project_name: str,
    environ: Mapping[str, str] | None = None,
) -> list[ServiceDescriptor]:
    """Build one container descriptor per compose service, in manifest order.

    Args:
        manifest: Parsed compose document.
        project_name: Compose project the containers belong to.
        environ: Variables used to expand ``${VAR:-default}`` in port specs.

    Returns:
        The descriptors.

    Raises:
        ConfigLoadError: If the manifest declares no services.
    """
    variables = environ or {}
    return [
        ServiceDescriptor.for_container(
            name,
            project_name,
            ports=_port_mappings(definition.get("ports"), variables),
            depends_on=_dependencies(definition.get("depends_on")),
            image=str(definition["image"]) if definition.get("image") else None,
        )
        for name, definition in compose_services(manifest).items()
    ]


def read_compose_file(path: Path) -> dict[str, Any]:
    """Read a compose manifest from disk.

    Raises:
        ConfigLoadError: If the file is missing or is not valid YAML.
    """
    if not path.is_file():
        msg = f"Compose file not found: {path}"
        raise ConfigLoadError(msg, path=path)
    return read_yaml_file(path)
