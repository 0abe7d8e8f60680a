"""Filesystem locations used by the supastorj CLI.

All paths are resolved relative to a project root, which defaults to the
current working directory. State written by the CLI lives in ``.supastorj/``.
"""

from pathlib import Path

STATE_DIR_NAME = ".supastorj"
DEFAULT_CONFIG_FILE = ".supastorj.yaml"
DEFAULT_ENV_FILE = ".env"
DEFAULT_COMPOSE_FILE = "docker-compose.yml"


def get_project_root(project_root: Path | None = None) -> Path:
    """Return the project root, falling back to the working directory."""
    return project_root if project_root is not None else Path.cwd()


def get_state_dir(project_root: Path | None = None) -> Path:
    """Get the path to the .supastorj/ state directory."""
    return get_project_root(project_root) / STATE_DIR_NAME


def get_log_dir(project_root: Path | None = None) -> Path:
    """Get the path to the logs/ directory inside .supastorj/."""
    return get_state_dir(project_root) / "logs"


def get_cli_log_file(project_root: Path | None = None) -> Path:
    """Get the path to the CLI log file inside .supastorj/logs/."""
    return get_log_dir(project_root) / "cli.log"


def get_audit_log_file(project_root: Path | None = None) -> Path:
    """Get the path to the audit log.

    The audit log sits beside the project's service logs rather than in the
    state directory, so operators find it with the rest of the stack output.
    """
    return get_project_root(project_root) / "logs" / "audit.log"


def get_pid_file(pid_file_name: str, project_root: Path | None = None) -> Path:
    """Get the path to a service PID file inside .supastorj/.

    Args:
        pid_file_name: File name of the PID file, e.g. ``storage-api.pid``.
        project_root: Project root override.

    Returns:
        Path to the PID file.
    """
    return get_state_dir(project_root) / pid_file_name


def get_config_file(project_root: Path | None = None) -> Path:
    """Get the default configuration file path."""
    return get_project_root(project_root) / DEFAULT_CONFIG_FILE


def get_env_file(project_root: Path | None = None) -> Path:
    """Get the default .env file path."""
    return get_project_root(project_root) / DEFAULT_ENV_FILE


def get_compose_file(project_root: Path | None = None) -> Path:
    """Get the default compose manifest path."""
    return get_project_root(project_root) / DEFAULT_COMPOSE_FILE
