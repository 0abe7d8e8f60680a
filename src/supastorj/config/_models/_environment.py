# pyright: reportExplicitAny=false, reportAny=false
"""Environment model."""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._service import ServiceConfig, _scalar_to_str


class EnvironmentConfig(BaseModel):
    """A named environment.

    An environment may extend one parent. Resolution merges the parent's
    services and variables beneath its own.

    Attributes:
        name: Environment name.
        extends: Name of the parent environment, if any.
        services: Services keyed by name.
        variables: Environment-level variables.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    extends: str | None = None
    services: dict[str, ServiceConfig] = Field(default_factory=dict)
    variables: dict[str, str] = Field(default_factory=dict)

    @field_validator("services", mode="before")
    @classmethod
    def _name_services(cls, value: Any) -> Any:
        """Default each service's name to its key."""
        if not isinstance(value, dict):
            return value if value is not None else {}
        named: dict[str, Any] = {}
        for key, service in value.items():
            if isinstance(service, dict) and not service.get("name"):
                named[key] = {**service, "name": key}
            elif service is None:
                named[key] = {"name": key}
            else:
                named[key] = service
        return named

    @field_validator("variables", mode="before")
    @classmethod
    def _stringify_variables(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): _scalar_to_str(item) for key, item in value.items()}
        return value if value is not None else {}
