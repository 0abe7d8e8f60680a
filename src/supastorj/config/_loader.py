# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Configuration file loading and merging."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import dotenv_values

from supastorj.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from pathlib import Path

ENV_PREFIX = "SUPASTORJ_"

# Variables with the prefix that control the CLI itself rather than the document.
RESERVED_ENV_VARS = frozenset({"SUPASTORJ_DEBUG", "SUPASTORJ_LOG_LEVEL"})


def read_yaml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a YAML document.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed content as a dictionary; an empty file yields ``{}``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file cannot be parsed or is not a mapping.
    """
    try:
        with path.open("rb") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        msg = f"Failed to parse YAML file: {e}"
        raise ConfigLoadError(
            msg,
            path=path,
            line=mark.line + 1 if mark is not None else None,
            column=mark.column + 1 if mark is not None else None,
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected a mapping at the top of {path}, got {type(data).__name__}"
        raise ConfigLoadError(msg, path=path)
    return data


def write_yaml_file(path: Path, data: Mapping[str, Any]) -> None:  # pyright: ignore[reportExplicitAny]
    """Write a mapping as a YAML document, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(dict(data), f, default_flow_style=False, sort_keys=False)


def read_env_file(path: Path) -> dict[str, str | None]:
    """Read a .env file.

    Args:
        path: Path to the .env file.

    Returns:
        Parsed variables; a missing file yields ``{}``.
    """
    if not path.is_file():
        return {}
    return dict(dotenv_values(path))


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Deep merge two configuration dictionaries.

    Merges ``override`` into ``base``, returning a new dictionary. Neither
    input is modified. Dictionaries are merged recursively; lists and
    scalars in ``override`` replace the base value.

    Args:
        base: Base configuration (lower precedence).
        override: Override configuration (higher precedence).

    Returns:
        Merged configuration dictionary.
    """
    result: dict[str, Any] = {key: copy_value(value) for key, value in base.items()}  # pyright: ignore[reportExplicitAny]
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy_value(value)
    return result


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Create a deep copy of a configuration value made of dicts and lists."""
    if isinstance(value, dict):
        return {k: copy_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [copy_value(item) for item in value]
    return value


def parse_env_vars(
    prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse prefixed environment variables into a config dictionary.

    Args:
        prefix: Environment variable prefix (default: "SUPASTORJ_").
        environ: Environment to read; defaults to the process environment.

    Returns:
        Dictionary of parsed config values with nested structure.

    Environment variable naming:
        - Add prefix (SUPASTORJ_)
        - Convert to uppercase
        - Replace dots with double underscores
        - Example: settings.log_level -> SUPASTORJ_SETTINGS__LOG_LEVEL
    """
    source = os.environ if environ is None else environ
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    for key, value in source.items():
        if not key.startswith(prefix) or key in RESERVED_ENV_VARS:
            continue

        config_key = key[len(prefix) :]
        if not config_key:
            continue

        # SUPASTORJ_SETTINGS__LOG_LEVEL -> settings.log_level
        config_path = config_key.replace("__", ".").lower()
        set_nested_key(result, config_path, _parse_env_value(value))

    return result


def _parse_env_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Parse an environment variable value with type inference.

    Order of type inference:
        1. Boolean: true/false (case-insensitive)
        2. Integer: parseable as int
        3. Float: parseable as float (with decimal point)
        4. JSON array or object
        5. String: anything else
    """
    lower_value = value.lower()
    if lower_value in ("true", "false"):
        return lower_value == "true"

    try:
        return int(value)
    except ValueError:
        pass

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass

    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set a value at a dotted key path in a nested dictionary.

    Creates intermediate dictionaries as needed.

    Example:
        >>> d = {}
        >>> set_nested_key(d, "settings.log_level", "debug")
        >>> d
        {'settings': {'log_level': 'debug'}}
    """
    parts = key_path.split(".")
    current = d
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value
