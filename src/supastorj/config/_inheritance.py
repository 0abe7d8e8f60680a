"""Environment inheritance resolution.

An environment may name one parent with ``extends``. Resolution is
depth-first: a parent is fully resolved before being merged beneath its
child. The chain of environments being resolved is passed down the
recursion so that a cycle is reported with its full path.
"""

from collections.abc import Mapping

from supastorj.exceptions import (
    ConfigCycleError,
    ConfigMissingParentError,
    EnvironmentNotFoundError,
)

from ._models import EnvironmentConfig, ServiceConfig


def merge_services(parent: ServiceConfig, child: ServiceConfig) -> ServiceConfig:
    """Merge a child service definition over its parent's.

    The ``environment`` mappings are merged key by key with the child
    winning. Every other field the child sets replaces the parent's value
    wholesale; fields the child leaves unset keep the parent's value.

    Args:
        parent: Definition from the parent environment.
        child: Definition from the child environment.

    Returns:
        The merged definition.
    """
    merged = {
        **parent.model_dump(exclude_unset=True),
        **child.model_dump(exclude_unset=True),
    }
    merged["environment"] = {**parent.environment, **child.environment}
    return ServiceConfig.model_validate(merged)


def merge_environments(
    parent: EnvironmentConfig, child: EnvironmentConfig
) -> EnvironmentConfig:
    """Merge a child environment over its resolved parent.

    Services present in both are merged with merge_services(); services
    present in only one side are kept as they are. Variables are merged key
    by key with the child winning.
    """
    services = dict(parent.services)
    for name, service in child.services.items():
        services[name] = (
            merge_services(services[name], service) if name in services else service
        )
    return EnvironmentConfig(
        name=child.name,
        extends=child.extends,
        services=services,
        variables={**parent.variables, **child.variables},
    )


def resolve_environment(
    name: str,
    environments: Mapping[str, EnvironmentConfig],
    resolving: tuple[str, ...] = (),
) -> EnvironmentConfig:
    """Resolve one environment's inheritance chain.

    Args:
        name: Environment to resolve.
        environments: All unresolved environments.
        resolving: Environments currently being resolved, outermost first.

    Returns:
        The environment with every ancestor merged beneath it.

    Raises:
        ConfigCycleError: If the chain revisits an environment.
        ConfigMissingParentError: If a parent does not exist.
        EnvironmentNotFoundError: If ``name`` itself does not exist.
    """
    if name in resolving:
        cycle = (*resolving[resolving.index(name) :], name)
        raise ConfigCycleError(name, cycle)

    node = environments.get(name)
    if node is None:
        msg = f"Environment '{name}' not found in configuration"
        raise EnvironmentNotFoundError(msg, environment=name)

    if node.extends is None:
        return node
    if node.extends not in environments:
        raise ConfigMissingParentError(name, node.extends)

    parent = resolve_environment(node.extends, environments, (*resolving, name))
    return merge_environments(parent, node)


def resolve_environments(
    environments: Mapping[str, EnvironmentConfig],
) -> dict[str, EnvironmentConfig]:
    """Resolve every environment; see resolve_environment()."""
    return {name: resolve_environment(name, environments) for name in environments}
