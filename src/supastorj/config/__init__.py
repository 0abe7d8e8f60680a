"""Configuration loading, interpolation and environment inheritance."""

from ._defaults import DEFAULT_CONFIG, generate_default_config
from ._inheritance import (
    merge_environments,
    merge_services,
    resolve_environment,
    resolve_environments,
)
from ._interpolate import (
    TOKEN_PATTERN,
    build_variables,
    interpolate,
    interpolate_string,
)
from ._load import load_config, resolve_document, safe_load_config, save_config
from ._loader import (
    ENV_PREFIX,
    copy_value,
    deep_merge,
    parse_env_vars,
    read_env_file,
    read_yaml_file,
    set_nested_key,
    write_yaml_file,
)
from ._models import (
    DEFAULT_PROJECT_NAME,
    DEFAULT_VERSION,
    CliConfig,
    DeploymentTarget,
    EnvironmentConfig,
    HealthCheckConfig,
    LogFormat,
    LogLevel,
    ResolvedConfig,
    ServiceConfig,
    ServiceType,
    Settings,
)
from ._validation import (
    ValidationIssue,
    parse_document,
    raise_if_validation_errors,
    validate_document,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_PROJECT_NAME",
    "DEFAULT_VERSION",
    "ENV_PREFIX",
    "TOKEN_PATTERN",
    "CliConfig",
    "DeploymentTarget",
    "EnvironmentConfig",
    "HealthCheckConfig",
    "LogFormat",
    "LogLevel",
    "ResolvedConfig",
    "ServiceConfig",
    "ServiceType",
    "Settings",
    "ValidationIssue",
    "build_variables",
    "copy_value",
    "deep_merge",
    "generate_default_config",
    "interpolate",
    "interpolate_string",
    "load_config",
    "merge_environments",
    "merge_services",
    "parse_document",
    "parse_env_vars",
    "raise_if_validation_errors",
    "read_env_file",
    "read_yaml_file",
    "resolve_document",
    "resolve_environment",
    "resolve_environments",
    "safe_load_config",
    "save_config",
    "set_nested_key",
    "validate_document",
]
