"""Registry of the services that make up the stack.

Key Components:
    - ServiceRegistry: Ordered adapters with concurrent batch queries
    - ServiceSummary: Combined state, health, ports and uptime of a service
    - PRODUCTION_SERVICES: Services run from source on production hosts
    - build_registry: Registry for the configured deployment target

Example:
    >>> async with build_registry(config, Path.cwd()) as registry:
    ...     states = await registry.all_statuses()
"""

from ._build import build_registry
from ._compose import compose_services, descriptors_from_manifest, read_compose_file
from ._production import POSTGRES_META, PRODUCTION_SERVICES, STORAGE
from ._registry import ServiceRegistry, ServiceSummary, SupportsAclose

__all__ = [
    "POSTGRES_META",
    "PRODUCTION_SERVICES",
    "STORAGE",
    "ServiceRegistry",
    "ServiceSummary",
    "SupportsAclose",
    "build_registry",
    "compose_services",
    "descriptors_from_manifest",
    "read_compose_file",
]
