"""Configuration models."""

from ._common import DeploymentTarget, LogFormat, LogLevel, ServiceType
from ._config import DEFAULT_PROJECT_NAME, DEFAULT_VERSION, CliConfig, ResolvedConfig
from ._environment import EnvironmentConfig
from ._service import HealthCheckConfig, ServiceConfig
from ._settings import Settings

__all__ = [
    "DEFAULT_PROJECT_NAME",
    "DEFAULT_VERSION",
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
]
