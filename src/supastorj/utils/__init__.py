"""Shared utilities for supastorj: logging and filesystem locations."""

from ._logging import (
    LogFormatType,
    create_audit_logger,
    create_cli_logger,
    create_null_logger,
)
from ._paths import (
    DEFAULT_COMPOSE_FILE,
    DEFAULT_CONFIG_FILE,
    DEFAULT_ENV_FILE,
    STATE_DIR_NAME,
    get_audit_log_file,
    get_cli_log_file,
    get_compose_file,
    get_config_file,
    get_env_file,
    get_log_dir,
    get_pid_file,
    get_project_root,
    get_state_dir,
)

__all__ = [
    "DEFAULT_COMPOSE_FILE",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_ENV_FILE",
    "STATE_DIR_NAME",
    "LogFormatType",
    "create_audit_logger",
    "create_cli_logger",
    "create_null_logger",
    "get_audit_log_file",
    "get_cli_log_file",
    "get_compose_file",
    "get_config_file",
    "get_env_file",
    "get_log_dir",
    "get_pid_file",
    "get_project_root",
    "get_state_dir",
]
