# pyright: reportExplicitAny=false, reportAny=false
"""Configuration document and resolved configuration models."""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from supastorj.exceptions import EnvironmentNotFoundError, ServiceNotFoundError

from ._common import DeploymentTarget
from ._environment import EnvironmentConfig
from ._service import ServiceConfig  # noqa: TC001
from ._settings import Settings

DEFAULT_VERSION = "1.0"
DEFAULT_PROJECT_NAME = "supastorj"


class CliConfig(BaseModel):
    """The configuration document as written on disk.

    Two schemas are accepted. The multi-environment schema has an
    ``environments`` mapping. The single-environment schema has a top-level
    ``services`` mapping (and optional ``variables``) and is loaded as one
    environment named by the ``environment`` key.

    Attributes:
        version: Document format version.
        project_name: Compose project name of the stack.
        environment: Active environment name.
        environments: Environments keyed by name, unresolved.
        plugins: Enabled plugin names.
        settings: CLI-wide settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    version: str = DEFAULT_VERSION
    project_name: str = DEFAULT_PROJECT_NAME
    environment: str = DeploymentTarget.DEVELOPMENT.value
    environments: dict[str, EnvironmentConfig] = Field(default_factory=dict)
    plugins: list[str] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)

    @model_validator(mode="before")
    @classmethod
    def _normalize_schema(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        document: dict[str, Any] = dict(data)
        if "environments" not in document and "services" in document:
            name = str(document.get("environment") or DeploymentTarget.DEVELOPMENT)
            document["environments"] = {
                name: {
                    "name": name,
                    "services": document.pop("services"),
                    "variables": document.pop("variables", {}),
                }
            }

        environments = document.get("environments")
        if isinstance(environments, dict):
            document["environments"] = {
                key: {**env, "name": env.get("name") or key}
                if isinstance(env, dict)
                else env
                for key, env in environments.items()
            }
        if isinstance(document.get("version"), (int, float)):
            document["version"] = str(document["version"])
        return document


class ResolvedConfig(BaseModel):
    """Fully resolved, read-only configuration.

    Every environment has its inheritance chain applied and every string
    value has been interpolated. Built once per invocation and shared by
    reference.

    Attributes:
        version: Document format version.
        project_name: Compose project name of the stack.
        environment: Active environment name.
        environments: Resolved environments keyed by name.
        plugins: Enabled plugin names.
        settings: CLI-wide settings.
        variables: The .env file overlaid by the process environment.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    version: str = DEFAULT_VERSION
    project_name: str = DEFAULT_PROJECT_NAME
    environment: str = DeploymentTarget.DEVELOPMENT.value
    environments: dict[str, EnvironmentConfig] = Field(default_factory=dict)
    plugins: list[str] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)
    variables: dict[str, str] = Field(default_factory=dict, repr=False)

    @property
    def active(self) -> EnvironmentConfig:
        """Return the active environment, or an empty one if it is undefined."""
        return self.environments.get(
            self.environment, EnvironmentConfig(name=self.environment)
        )

    def get_environment(self, name: str) -> EnvironmentConfig:
        """Return a resolved environment by name.

        Raises:
            EnvironmentNotFoundError: If no such environment exists.
        """
        try:
            return self.environments[name]
        except KeyError:
            msg = f"Environment '{name}' not found in configuration"
            raise EnvironmentNotFoundError(msg, environment=name) from None

    def get_service(self, name: str, environment: str | None = None) -> ServiceConfig:
        """Return a service of an environment (the active one by default).

        Raises:
            EnvironmentNotFoundError: If the environment does not exist.
            ServiceNotFoundError: If the environment has no such service.
        """
        env_name = environment or self.environment
        env = self.get_environment(env_name)
        try:
            return env.services[name]
        except KeyError:
            msg = f"Service '{name}' not found in environment '{env_name}'"
            raise ServiceNotFoundError(msg, service_name=name) from None

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation path, e.g. ``settings.log_level``.

        Args:
            key: Dot-separated path into the configuration.
            default: Value returned when the path does not exist.

        Returns:
            The value at the path, or default.
        """
        current: Any = self.to_dict(include_variables=True)
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_dict(self, *, include_variables: bool = False) -> dict[str, Any]:
        """Return the configuration as plain JSON-compatible data.

        Variables are left out unless asked for, since they usually carry
        credentials.
        """
        exclude = None if include_variables else {"variables"}
        return self.model_dump(mode="json", exclude=exclude, exclude_none=True)
