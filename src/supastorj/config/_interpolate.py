# pyright: reportReturnType=false, reportUnknownVariableType=false
"""Variable interpolation for configuration values."""

import re
from collections.abc import Mapping
from typing import Final, TypeVar

T = TypeVar("T")

TOKEN_PATTERN: Final = re.compile(r"\$\{([^}]+)\}")


def build_variables(
    env_file_values: Mapping[str, str | None],
    environ: Mapping[str, str],
) -> dict[str, str]:
    """Build the variable map used for interpolation.

    Values from the process environment take precedence over values read
    from the .env file. Keys declared in .env without a value are skipped.

    Args:
        env_file_values: Values parsed from the .env file.
        environ: The process environment.

    Returns:
        The merged variable map.
    """
    merged = {key: value for key, value in env_file_values.items() if value is not None}
    merged.update(environ)
    return merged


def interpolate_string(value: str, variables: Mapping[str, str]) -> str:
    """Replace every ``${NAME}`` token in a string.

    A token whose name is unknown, or bound to an empty string, is left in
    place unchanged.

    Example:
        >>> interpolate_string("${HOST}:${PORT}", {"HOST": "db"})
        'db:${PORT}'
    """

    def _replace(match: re.Match[str]) -> str:
        resolved = variables.get(match.group(1))
        return resolved if resolved else match.group(0)

    return TOKEN_PATTERN.sub(_replace, value)


def interpolate(value: T, variables: Mapping[str, str]) -> T:
    """Interpolate variables into every string within a value.

    Descends through dicts, lists and tuples at any depth; mapping keys are
    left untouched, as are non-string scalars.

    Args:
        value: A scalar or nested structure.
        variables: Variable map from build_variables().

    Returns:
        A new structure of the same shape with strings interpolated.
    """
    if isinstance(value, str):
        return interpolate_string(value, variables)
    if isinstance(value, dict):
        return {key: interpolate(item, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate(item, variables) for item in value]
    if isinstance(value, tuple):
        return tuple(interpolate(item, variables) for item in value)
    return value
