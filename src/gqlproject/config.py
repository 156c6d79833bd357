from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gqlproject import log

DEFAULT_VARIANT = "current"
DEFAULT_CLIENT_ONLY_DIRECTIVES = ["connection", "type"]
DEFAULT_CLIENT_SCHEMA_DIRECTIVES = ["client", "rest"]


def _wrap_single_path(value: Any) -> Any:
    if isinstance(value, str | Path):
        return [value]
    return value


class RemoteServiceConfig(BaseModel):
    """A service reached over the network."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: str | None = None
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    skip_ssl_validation: bool = Field(False, alias="skipSSLValidation")


class LocalServiceConfig(BaseModel):
    """A service described by schema files on disk."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: str | None = None
    local_schema_file: list[Path] = Field(alias="localSchemaFile")

    @field_validator("local_schema_file", mode="before")
    @classmethod
    def wrap_single_file(cls, value: Any) -> Any:
        return _wrap_single_path(value)


class EndpointConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    url: str | None = None


class ServiceSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str | None = None
    endpoint: EndpointConfig | None = None
    local_schema_file: list[Path] | None = Field(None, alias="localSchemaFile")

    @field_validator("local_schema_file", mode="before")
    @classmethod
    def wrap_single_file(cls, value: Any) -> Any:
        return _wrap_single_path(value)


class EngineConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    endpoint: str | None = None
    frontend: str | None = None
    api_key: str | None = Field(None, alias="apiKey")


ValidationRulesOverride = Sequence[type] | Callable[[type], bool] | None


class ClientConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid", arbitrary_types_allowed=True)

    service: str | RemoteServiceConfig | LocalServiceConfig | None = None
    includes: list[Path] = Field(default_factory=list)
    excludes: list[Path] = Field(default_factory=list)
    validation_rules: Any = Field(None, alias="validationRules")
    client_only_directives: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CLIENT_ONLY_DIRECTIVES), alias="clientOnlyDirectives"
    )
    client_schema_directives: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CLIENT_SCHEMA_DIRECTIVES), alias="clientSchemaDirectives"
    )
    add_typename: bool = Field(True, alias="addTypename")

    @field_validator("validation_rules")
    @classmethod
    def check_validation_rules(cls, value: Any) -> Any:
        if value is None or callable(value):
            return value
        if isinstance(value, list | tuple):
            return list(value)
        raise ValueError("validationRules must be a list of validation rules or a predicate over the default rules")

    @property
    def validation_rules_override(self) -> ValidationRulesOverride:
        return cast(ValidationRulesOverride, self.validation_rules)


class ProjectConfig(BaseModel):
    """Configuration of a client project, as written in the project's config file."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    graph: str | None = None
    variant: str = DEFAULT_VARIANT
    client: ClientConfig = Field(default_factory=ClientConfig)
    service: ServiceSection | None = None
    engine: EngineConfig = Field(default_factory=EngineConfig)
    config_path: Path | None = Field(None, exclude=True)

    @property
    def remote_endpoint(self) -> str | None:
        """Best effort endpoint URL of the service, used when linking to a sandbox explorer."""
        if isinstance(self.client.service, RemoteServiceConfig):
            return self.client.service.url
        if self.service and self.service.endpoint:
            return self.service.endpoint.url
        return None

    @property
    def local_schema_files(self) -> list[Path]:
        if isinstance(self.client.service, LocalServiceConfig):
            return self.client.service.local_schema_file
        if self.service and self.service.local_schema_file:
            return self.service.local_schema_file
        return []


def load_project_config(config_path: Path | None) -> ProjectConfig:
    """
    Load and validate a project configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file, or None for defaults.

    Returns:
        A validated ProjectConfig. Relative paths in it are resolved against the
        directory holding the config file.

    Raises:
        OSError: If the file cannot be read.
        yaml.YAMLError: If the file is not valid YAML.
        TypeError: If the YAML root is not a mapping.
        ValidationError: If validation against ProjectConfig fails.
    """
    if config_path is None:
        log.debug("No project config provided, using defaults")
        return ProjectConfig()

    raw: Any
    with config_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    log.debug("Loaded project config from %s", config_path)

    if raw is None or raw == {}:
        config = ProjectConfig()
    elif not isinstance(raw, dict):
        raise TypeError(f"Project config root must be a mapping (YAML object), got {type(raw).__name__}")
    else:
        config = ProjectConfig.model_validate(cast(dict[str, Any], raw))

    config.config_path = config_path
    return _resolve_relative_paths(config, config_path.parent)


def _resolve_relative_paths(config: ProjectConfig, base: Path) -> ProjectConfig:
    def resolve(paths: list[Path]) -> list[Path]:
        return [path if path.is_absolute() else base / path for path in paths]

    config.client.includes = resolve(config.client.includes)
    config.client.excludes = resolve(config.client.excludes)
    if isinstance(config.client.service, LocalServiceConfig):
        config.client.service.local_schema_file = resolve(config.client.service.local_schema_file)
    if config.service and config.service.local_schema_file:
        config.service.local_schema_file = resolve(config.service.local_schema_file)
    return config
