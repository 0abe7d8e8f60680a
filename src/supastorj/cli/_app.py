"""The command-line interface for supastorj."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from supastorj.config import LogLevel, safe_load_config
from supastorj.utils import create_audit_logger, create_cli_logger

from ._commands import register_commands
from ._context import CLIContext

_HELP = "Operate a self-hosted storage stack in development or production."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="supastorj",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]  # noqa: PLR0913
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Enable verbose output")] = False,
        quiet: Annotated[bool, Parameter(help="Suppress non-essential output")] = False,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        env_file: Annotated[
            Path | None, Parameter(name="--env-file", help="Path to the .env file")
        ] = None,
        environment: Annotated[
            str | None,
            Parameter(name=["--environment", "-e"], help="Environment to operate on"),
        ] = None,
        compose_file: Annotated[
            Path | None,
            Parameter(name="--compose-file", help="Path to the compose manifest"),
        ] = None,
        project_root: Annotated[
            Path | None, Parameter(name="--project-root", help="Path to project root")
        ] = None,
    ) -> None:
        """Launch the supastorj CLI with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Enable verbose output and debug logging.
            quiet: Suppress non-essential output.
            config: Explicit path to config file.
            env_file: Explicit path to the .env file.
            environment: Environment to operate on, overriding the config.
            compose_file: Explicit path to the compose manifest.
            project_root: Path to project root directory.
        """
        # Load configuration
        loaded_config = safe_load_config(
            config,
            env_path=env_file,
            environment=environment,
            project_root=project_root,
        )
        settings = loaded_config.settings

        # Create loggers from config settings
        level = LogLevel.DEBUG if verbose else settings.log_level
        command = next((token for token in tokens if not token.startswith("-")), "")
        cli_logger = create_cli_logger(
            level=level.value,
            log_format=settings.log_format.value,  # type: ignore[arg-type]
            log_file=settings.log_file,
            command=command,
            project_root=project_root,
        )
        audit_logger = (
            create_audit_logger(project_root=project_root)
            if settings.audit_log
            else None
        )

        # Create and set CLI context
        ctx = CLIContext(
            config=loaded_config,
            verbose=verbose,
            quiet=quiet,
            project_root=project_root,
            config_path=config,
            compose_file=compose_file,
            logger=cli_logger,
            audit_logger=audit_logger,
            console=console,
            error_console=error_console,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


app = create_app()


def main() -> None:
    """Default entrypoint for the `supastorj` CLI."""
    app.meta()


if __name__ == "__main__":
    main()
