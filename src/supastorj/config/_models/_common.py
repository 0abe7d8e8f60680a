"""Common configuration types."""

from enum import StrEnum


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class ServiceType(StrEnum):
    """Kinds of services in the storage stack."""

    POSTGRES = "postgres"
    STORAGE = "storage"
    POSTGRES_META = "postgres-meta"
    NGINX = "nginx"


class DeploymentTarget(StrEnum):
    """Well-known environment names and the backend each one uses."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
