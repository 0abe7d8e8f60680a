"""CLI settings model."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ._common import LogFormat, LogLevel


class Settings(BaseModel):
    """CLI-wide settings.

    Keys are accepted in snake_case or camelCase (``audit_log`` or
    ``auditLog``).

    Attributes:
        log_level: Log level threshold of the CLI log.
        log_format: Output format of the CLI log.
        log_file: CLI log path; empty uses .supastorj/logs/cli.log.
        audit_log: Whether lifecycle actions are recorded in logs/audit.log.
        telemetry: Whether anonymous usage reporting is enabled.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    log_level: LogLevel = LogLevel.INFO
    log_format: LogFormat = LogFormat.JSON
    log_file: str = ""
    audit_log: bool = True
    telemetry: bool = False
