# pyright: reportAny=false, reportExplicitAny=false, reportUnknownArgumentType=false, reportUnknownVariableType=false
"""Configuration validation.

Validation reports every problem in a document instead of stopping at the
first: schema errors from pydantic, then inheritance errors (missing
parents and cycles) for documents whose schema is valid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import ValidationError

from supastorj.exceptions import (
    ConfigCycleError,
    ConfigMissingParentError,
    ConfigValidationError,
)

from ._inheritance import resolve_environment
from ._models import CliConfig

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Represents a configuration validation issue.

    Attributes:
        key: Dotted path to the configuration key (e.g., "settings.log_level").
        message: Human-readable description of the issue.
        expected: Description of expected value or type, if available.
        actual: The actual value that caused the issue.
        source: Where the issue was found (usually a file path), or None.
        severity: Whether this is an error or warning.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    source: str | None
    severity: Literal["error", "warning"] = "error"


def _pydantic_error_to_issue(
    error: ErrorDetails, source: str | None
) -> ValidationIssue:
    """Convert a pydantic error dict to a ValidationIssue."""
    key = ".".join(str(part) for part in error.get("loc", ()))
    ctx = error.get("ctx")
    expected: str | None = None
    if ctx is not None and "expected" in ctx:
        expected = str(ctx["expected"])
    return ValidationIssue(
        key=key,
        message=str(error.get("msg", "Validation error")),
        expected=expected or error.get("type"),
        actual=error.get("input"),
        source=source,
    )


def parse_document(
    document: dict[str, Any], *, source: str | None = None
) -> CliConfig:
    """Validate a configuration document against the schema.

    Raises:
        ConfigValidationError: For the first schema error found.
    """
    try:
        return CliConfig.model_validate(document)
    except ValidationError as e:
        issues = [_pydantic_error_to_issue(err, source) for err in e.errors()]
        raise_if_validation_errors(issues, source=source)
        raise  # pragma: no cover


def validate_document(
    document: dict[str, Any], *, source: str | None = None
) -> list[ValidationIssue]:
    """Validate a configuration document.

    Args:
        document: The parsed (and interpolated) document.
        source: Where the document came from, attached to each issue.

    Returns:
        List of issues; an empty list means the document is valid.
    """
    try:
        config = CliConfig.model_validate(document)
    except ValidationError as e:
        return [_pydantic_error_to_issue(err, source) for err in e.errors()]

    issues: list[ValidationIssue] = []
    for name in config.environments:
        try:
            _ = resolve_environment(name, config.environments)
        except ConfigMissingParentError as e:
            issues.append(
                ValidationIssue(
                    key=f"environments.{name}.extends",
                    message=str(e),
                    expected="name of a defined environment",
                    actual=e.parent,
                    source=source,
                )
            )
        except ConfigCycleError as e:
            issues.append(
                ValidationIssue(
                    key=f"environments.{name}.extends",
                    message=str(e),
                    expected="acyclic inheritance",
                    actual=list(e.cycle),
                    source=source,
                )
            )

    if config.environments and config.environment not in config.environments:
        issues.append(
            ValidationIssue(
                key="environment",
                message=f"Active environment '{config.environment}' is not defined",
                expected=", ".join(sorted(config.environments)),
                actual=config.environment,
                source=source,
                severity="warning",
            )
        )
    return issues


def raise_if_validation_errors(
    issues: list[ValidationIssue],
    source: str | None = None,
) -> None:
    """Raise ConfigValidationError for the first error-severity issue.

    Raises:
        ConfigValidationError: If any issues have severity="error".
    """
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        issue = errors[0]
        msg = f"Invalid configuration value for '{issue.key}': {issue.message}"
        raise ConfigValidationError(
            msg,
            key=issue.key,
            value=issue.actual,
            expected=issue.expected or issue.message,
            source=source or issue.source,
        )
