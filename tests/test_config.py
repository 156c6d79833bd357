from pathlib import Path

import pytest
from pydantic import ValidationError

from gqlproject.config import (
    LocalServiceConfig,
    ProjectConfig,
    RemoteServiceConfig,
    load_project_config,
)
from tests.conftest import DataFiles


def test_defaults() -> None:
    config = load_project_config(None)

    assert config.graph is None
    assert config.variant == "current"
    assert config.client.client_only_directives == ["connection", "type"]
    assert config.client.client_schema_directives == ["client", "rest"]
    assert config.client.add_typename is True
    assert config.client.validation_rules_override is None
    assert config.local_schema_files == []
    assert config.remote_endpoint is None


def test_load_from_file() -> None:
    config = load_project_config(DataFiles.CONFIG)

    assert config.graph == "my-graph"
    assert config.config_path == DataFiles.CONFIG
    assert config.client.includes == [DataFiles.QUERIES, DataFiles.CLIENT]
    assert config.local_schema_files == [DataFiles.SCHEMA]


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "project.yaml"
    config_file.write_text("")

    config = load_project_config(config_file)

    assert config.graph is None
    assert config.config_path == config_file


def test_non_mapping_root_is_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "project.yaml"
    config_file.write_text("- graph\n- variant\n")

    with pytest.raises(TypeError, match="must be a mapping"):
        load_project_config(config_file)


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValidationError):
        ProjectConfig.model_validate({"graf": "typo"})


def test_remote_client_service() -> None:
    config = ProjectConfig.model_validate(
        {"client": {"service": {"name": "api", "url": "http://localhost:4000", "skipSSLValidation": True}}}
    )

    assert isinstance(config.client.service, RemoteServiceConfig)
    assert config.client.service.skip_ssl_validation is True
    assert config.remote_endpoint == "http://localhost:4000"


def test_local_client_service_paths_are_resolved(tmp_path: Path) -> None:
    config_file = tmp_path / "project.yaml"
    config_file.write_text("client:\n  service:\n    localSchemaFile: schema.graphql\n  excludes: [generated]\n")

    config = load_project_config(config_file)

    assert isinstance(config.client.service, LocalServiceConfig)
    assert config.local_schema_files == [tmp_path / "schema.graphql"]
    assert config.client.excludes == [tmp_path / "generated"]


def test_service_section_endpoint() -> None:
    config = ProjectConfig.model_validate({"service": {"endpoint": {"url": "http://api"}}})

    assert config.remote_endpoint == "http://api"


def test_absolute_paths_are_kept(tmp_path: Path) -> None:
    schema = tmp_path / "elsewhere" / "schema.graphql"
    config_file = tmp_path / "project.yaml"
    config_file.write_text(f"service:\n  localSchemaFile: [{schema}]\n")

    assert load_project_config(config_file).local_schema_files == [schema]


def test_directive_lists_and_typename_can_be_configured() -> None:
    config = ProjectConfig.model_validate(
        {"client": {"clientOnlyDirectives": [], "clientSchemaDirectives": ["local"], "addTypename": False}}
    )

    assert config.client.client_only_directives == []
    assert config.client.client_schema_directives == ["local"]
    assert config.client.add_typename is False


def test_validation_rules_override() -> None:
    predicate = lambda rule: True  # noqa: E731

    with_predicate = ProjectConfig.model_validate({"client": {"validationRules": predicate}})
    with_list = ProjectConfig.model_validate({"client": {"validationRules": []}})

    assert with_predicate.client.validation_rules_override is predicate
    assert with_list.client.validation_rules_override == []

    with pytest.raises(ValidationError):
        ProjectConfig.model_validate({"client": {"validationRules": "all"}})
