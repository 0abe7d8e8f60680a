# pyright: reportUnusedCallResult=false, reportUnusedFunction=false
# pyright: reportExplicitAny=false, reportAny=false
# ruff: noqa: D415, A002, TC003
"""Config commands: show, validate and init."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from cyclopts import App, Parameter

from supastorj.cli._context import CLIContext, OutputFormat
from supastorj.cli._shared import ExitCode, exit_with_error, format_json, format_yaml
from supastorj.config import (
    ValidationIssue,
    generate_default_config,
    interpolate,
    read_yaml_file,
    save_config,
    validate_document,
)
from supastorj.exceptions import ConfigLoadError
from supastorj.utils import get_config_file

app = App(name="config", help="Inspect and manage configuration", help_on_error=True)


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def _issue_to_dict(issue: ValidationIssue) -> dict[str, Any]:
    return {
        "severity": issue.severity,
        "key": issue.key,
        "message": issue.message,
        "expected": issue.expected,
        "actual": issue.actual,
        "source": issue.source,
    }


def _format_issues(issues: list[ValidationIssue], path: Path) -> str:
    """Format validation results as human-readable text."""
    if not issues:
        return f"✓ {path} is valid"

    errors = sum(1 for issue in issues if issue.severity == "error")
    warnings = len(issues) - errors
    lines = [f"{path}: {errors} error(s), {warnings} warning(s)"]
    for issue in issues:
        marker = "error" if issue.severity == "error" else "warning"
        location = issue.key or "<root>"
        lines.append(f"  [{marker}] {location}: {issue.message}")
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@app.command(name="show")
def _show(
    *,
    format: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format (yaml, json)"),
    ] = OutputFormat.YAML,
    section: Annotated[
        str | None,
        Parameter(name="--section", help="Show one key only (e.g. settings)"),
    ] = None,
    show_variables: Annotated[
        bool,
        Parameter(name="--show-variables", help="Include resolved variables"),
    ] = False,
) -> None:
    """Display the resolved configuration

    Shows the configuration after interpolation and environment
    inheritance. Variables are hidden unless asked for since they usually
    hold credentials.

    Args:
        format: Output format (yaml, json).
        section: Dotted key to show, e.g. ``environments.production``.
        show_variables: Include the resolved variables.
    """
    ctx = CLIContext.get_current()
    data: Any = ctx.config.to_dict(include_variables=show_variables)
    if section:
        data = ctx.config.get(section)
        if data is None:
            exit_with_error(f"Key not found: {section}", ExitCode.NOT_FOUND)

    if format == OutputFormat.JSON:
        ctx.console.print_json(format_json(data))
    elif isinstance(data, dict):
        ctx.console.out(format_yaml(data), end="", highlight=False)
    else:
        ctx.console.out(str(data), highlight=False)


@app.command(name="validate")
def _validate(
    *,
    file: Annotated[
        Path | None,
        Parameter(name=["--file"], help="Configuration file to validate"),
    ] = None,
    format: Annotated[
        OutputFormat,
        Parameter(name=["--format", "-f"], help="Output format (table, json)"),
    ] = OutputFormat.TABLE,
    strict: Annotated[
        bool,
        Parameter(name="--strict", help="Treat warnings as errors"),
    ] = False,
) -> None:
    """Validate a configuration file

    Exit codes:
        0 - Configuration is valid
        1 - The file could not be read or parsed
        2 - Validation errors found (or warnings with --strict)

    Args:
        file: File to validate; defaults to the project's .supastorj.yaml.
        format: Output format (table, json).
        strict: Treat warnings as errors.
    """
    ctx = CLIContext.get_current()
    path = file or ctx.config_path or get_config_file(ctx.root)
    if not path.is_file():
        exit_with_error(f"Config file not found: {path}", ExitCode.LOAD_ERROR)

    try:
        document = read_yaml_file(path)
    except ConfigLoadError as e:
        exit_with_error(str(e), ExitCode.LOAD_ERROR)

    issues = validate_document(
        interpolate(document, ctx.config.variables), source=str(path)
    )

    if format == OutputFormat.JSON:
        ctx.console.print_json(
            format_json(
                {
                    "file": str(path),
                    "valid": not issues,
                    "issues": [_issue_to_dict(issue) for issue in issues],
                }
            )
        )
    else:
        ctx.console.print(_format_issues(issues, path), highlight=False)

    has_errors = any(issue.severity == "error" for issue in issues)
    if has_errors or (strict and issues):
        raise SystemExit(ExitCode.VALIDATION_ERROR)


@app.command(name="init")
def _init(
    *,
    path: Annotated[
        Path | None,
        Parameter(name="--path", help="Where to write the configuration"),
    ] = None,
    force: Annotated[
        bool,
        Parameter(name=["--force"], help="Overwrite an existing file"),
    ] = False,
    project_name: Annotated[
        str | None,
        Parameter(name="--project-name", help="Compose project name"),
    ] = None,
) -> None:
    """Write the default configuration

    Args:
        path: Destination; defaults to the project's .supastorj.yaml.
        force: Overwrite an existing file.
        project_name: Compose project name to record in the file.
    """
    ctx = CLIContext.get_current()
    target = path or get_config_file(ctx.root)
    if target.exists() and not force:
        exit_with_error(
            f"{target} already exists (use --force to overwrite)",
            ExitCode.VALIDATION_ERROR,
        )

    document = generate_default_config()
    if project_name:
        document["project_name"] = project_name
    save_config(document, target)
    if ctx.logger is not None:
        ctx.logger.info("config_initialized", path=str(target))
    if not ctx.quiet:
        ctx.console.print(f"[green]✓[/green] Wrote {target}", highlight=False)
