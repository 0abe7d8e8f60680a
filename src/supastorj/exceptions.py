"""Supastorj exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


class SupastorjError(Exception):
    """Base exception for supastorj errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(SupastorjError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source


class ConfigCycleError(ConfigError):
    """Raised when environment inheritance forms a cycle.

    Attributes:
        environment: The environment at which the cycle was detected.
        cycle: The full inheritance path, ending with the repeated name.
    """

    def __init__(self, environment: str, cycle: tuple[str, ...]) -> None:
        """Initialize with the environment name and the offending path."""
        path = " -> ".join(cycle)
        super().__init__(
            f"Circular dependency detected in environment inheritance: {path}"
        )
        self.environment: str = environment
        self.cycle: tuple[str, ...] = cycle


class ConfigMissingParentError(ConfigError):
    """Raised when an environment extends one that does not exist."""

    def __init__(self, environment: str, parent: str) -> None:
        """Initialize with the child environment and the missing parent."""
        super().__init__(
            f"Parent environment not found: {parent} (extended by {environment})"
        )
        self.environment: str = environment
        self.parent: str = parent


class EnvironmentNotFoundError(ConfigError, KeyError):
    """Raised when a named environment is not present in the configuration."""

    def __init__(self, message: str, *, environment: str) -> None:
        """Initialize with error message and environment name."""
        super().__init__(message)
        self.environment: str = environment

    def __str__(self) -> str:
        return str(self.args[0])


# =============================================================================
# Backend Exceptions
# =============================================================================


class BackendError(SupastorjError):
    """Base exception for service backend errors."""

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and service context."""
        super().__init__(message)
        self.service_name: str | None = service_name
        self.cause: Exception | None = cause


class BackendUnavailableError(BackendError):
    """Raised when the container runtime or service manager cannot be reached."""


class BackendCommandFailedError(BackendError):
    """Raised when the backend rejected a lifecycle or exec command.

    Attributes:
        diagnostic: Text reported by the backend, if any.
        exit_code: Exit status of the backend command, if one was run.
    """

    def __init__(
        self,
        message: str,
        *,
        service_name: str | None = None,
        diagnostic: str = "",
        exit_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and backend diagnostics."""
        super().__init__(message, service_name=service_name, cause=cause)
        self.diagnostic: str = diagnostic
        self.exit_code: int | None = exit_code


class ServiceNotFoundError(BackendError, KeyError):
    """Raised when a service or its runtime record cannot be found."""

    def __str__(self) -> str:
        return str(self.args[0])
