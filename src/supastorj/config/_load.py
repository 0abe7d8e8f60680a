"""Configuration loading entry points."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from typing import TYPE_CHECKING

from supastorj.exceptions import ConfigError
from supastorj.utils import get_config_file, get_env_file, get_project_root

from ._inheritance import resolve_environments
from ._interpolate import build_variables, interpolate
from ._loader import (
    deep_merge,
    parse_env_vars,
    read_env_file,
    read_yaml_file,
    write_yaml_file,
)
from ._models import ResolvedConfig
from ._validation import parse_document

if TYPE_CHECKING:
    from pathlib import Path

    from ._models import CliConfig


def resolve_document(
    document: dict[str, object],
    variables: Mapping[str, str],
    *,
    source: str | None = None,
) -> ResolvedConfig:
    """Turn a raw document into a ResolvedConfig.

    Interpolates every string, validates the schema and applies environment
    inheritance.

    Raises:
        ConfigValidationError: If the document does not match the schema.
        ConfigCycleError: If environment inheritance forms a cycle.
        ConfigMissingParentError: If an environment extends a missing one.
    """
    config: CliConfig = parse_document(interpolate(document, variables), source=source)
    return ResolvedConfig(
        version=config.version,
        project_name=config.project_name,
        environment=config.environment,
        environments=resolve_environments(config.environments),
        plugins=config.plugins,
        settings=config.settings,
        variables=dict(variables),
    )


def load_config(
    config_path: Path | None = None,
    *,
    env_path: Path | None = None,
    environment: str | None = None,
    environ: Mapping[str, str] | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Load and resolve the configuration.

    Sources, lowest precedence first: the YAML document, ``SUPASTORJ_*``
    environment overrides, then the ``environment`` argument. Variables for
    interpolation come from the .env file overlaid by the process
    environment.

    Args:
        config_path: Explicit configuration file; must exist when given.
        env_path: Explicit .env file; defaults to ``<root>/.env``.
        environment: Active environment override.
        environ: Process environment; defaults to ``os.environ``.
        project_root: Directory default paths are relative to.

    Returns:
        The resolved configuration.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
        ConfigLoadError: If a file cannot be parsed.
        ConfigValidationError: If the document does not match the schema.
        ConfigCycleError: If environment inheritance forms a cycle.
        ConfigMissingParentError: If an environment extends a missing one.
    """
    root = get_project_root(project_root)
    process_env = dict(os.environ if environ is None else environ)

    path = config_path if config_path is not None else get_config_file(root)
    if path.is_file():
        document = read_yaml_file(path)
    elif config_path is not None:
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)
    else:
        document = {}

    document = deep_merge(document, parse_env_vars(environ=process_env))
    if environment:
        document["environment"] = environment

    env_file = env_path if env_path is not None else get_env_file(root)
    variables = build_variables(read_env_file(env_file), process_env)
    return resolve_document(document, variables, source=str(path))


def safe_load_config(
    config_path: Path | None = None,
    *,
    env_path: Path | None = None,
    environment: str | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Load configuration, exiting on any configuration error.

    Every failure is fatal: an unreadable or unparsable file, a document
    that does not match the schema, an inheritance cycle or missing parent,
    and an explicit config_path that does not exist. The error is printed to
    stderr and the process exits with status 1, so no command ever runs
    against a configuration other than the one on disk.

    Returns:
        The resolved configuration.
    """
    try:
        return load_config(
            config_path,
            env_path=env_path,
            environment=environment,
            project_root=project_root,
        )
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)


def save_config(document: Mapping[str, object], path: Path) -> None:
    """Write a configuration document to disk as YAML."""
    write_yaml_file(path, document)
