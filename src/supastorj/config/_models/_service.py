# pyright: reportExplicitAny=false, reportAny=false
"""Service definition models.

Service definitions mirror the compose service schema closely enough that
a compose file's services can be pasted into an environment. Unknown keys
are kept so they survive inheritance.
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._common import ServiceType  # noqa: TC001


class HealthCheckConfig(BaseModel):
    """Container health probe definition.

    Attributes:
        test: Probe command, in compose's list or shell-string form.
        interval: Time between probes, e.g. ``30s``.
        timeout: Time before a probe is considered failed.
        retries: Consecutive failures before the service is unhealthy.
        start_period: Grace period after start.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="allow")

    test: list[str] | str
    interval: str | None = None
    timeout: str | None = None
    retries: int | None = None
    start_period: str | None = None


class ServiceConfig(BaseModel):
    """A service within an environment.

    Attributes:
        name: Service name; defaults to its key in the environment.
        type: Kind of service.
        image: Container image.
        command: Command override.
        ports: Published ports in compose syntax.
        environment: Variables passed to the service.
        volumes: Volume mounts in compose syntax.
        depends_on: Names of services started before this one.
        healthcheck: Health probe definition.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="allow")

    name: str = ""
    type: ServiceType | None = None
    image: str | None = None
    command: list[str] | str | None = None
    ports: list[str | int] = Field(default_factory=list)
    environment: dict[str, str] = Field(default_factory=dict)
    volumes: list[str | dict[str, Any]] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)
    healthcheck: HealthCheckConfig | None = None

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: Any) -> Any:
        """Accept the compose list form (``KEY=value``) and scalar values."""
        if value is None:
            return {}
        if isinstance(value, list):
            pairs = (str(item).split("=", 1) for item in value)
            return {pair[0]: pair[1] if len(pair) > 1 else "" for pair in pairs}
        if isinstance(value, dict):
            return {
                str(key): _scalar_to_str(item) for key, item in value.items()
            }
        return value

    @field_validator("depends_on", mode="before")
    @classmethod
    def _normalize_depends_on(cls, value: Any) -> Any:
        """Accept compose's mapping form (``name: {condition: ...}``)."""
        if value is None:
            return []
        if isinstance(value, dict):
            return list(value)
        return value


def _scalar_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
