"""Collaborators that feed a project with its service schema and usage data."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml
from graphql import GraphQLSchema

from gqlproject import log
from gqlproject.decorations import FieldLatenciesMS
from gqlproject.schema.loader import load_schema

ServiceID = str
SchemaTag = str


@dataclass
class SchemaTagsAndFieldLatencies:
    schema_tags: list[SchemaTag] = field(default_factory=list)
    field_latencies_ms: dict[str, dict[str, float]] = field(default_factory=dict)


class SchemaProvider(Protocol):
    async def resolve_schema(self, tag: SchemaTag | None = None, force: bool = False) -> GraphQLSchema: ...


class EngineClient(Protocol):
    async def load_schema_tags_and_field_latencies(self, service_id: ServiceID) -> SchemaTagsAndFieldLatencies: ...

    async def load_frontend_url_root(self) -> str | None: ...


class FileSchemaProvider:
    """Serves the schema found in SDL files / folders or in an introspection JSON file.

    The schema is cached; `force` re-reads the files. The tag is ignored since files hold
    a single version of the schema.
    """

    def __init__(self, schema_paths: list[Path]) -> None:
        self.schema_paths = schema_paths
        self._schema: GraphQLSchema | None = None

    async def resolve_schema(self, tag: SchemaTag | None = None, force: bool = False) -> GraphQLSchema:
        if self._schema is None or force:
            log.debug(f"Reading service schema (tag {tag or 'default'}) from {len(self.schema_paths)} path(s)")
            self._schema = load_schema(self.schema_paths)
        return self._schema


class StaticEngineClient:
    """Usage data read from a stats file instead of a remote service.

    The file is YAML or JSON:

    ```yaml
    frontendUrlRoot: https://studio.example.com
    schemaTags: [current, staging]
    fieldLatenciesMS:
      Query:
        user: 250
    ```
    """

    def __init__(
        self,
        schema_tags: list[SchemaTag] | None = None,
        field_latencies_ms: FieldLatenciesMS | None = None,
        frontend_url_root: str | None = None,
    ) -> None:
        self.schema_tags = list(schema_tags or [])
        self.field_latencies_ms = {
            type_name: dict(fields) for type_name, fields in (field_latencies_ms or {}).items()
        }
        self.frontend_url_root = frontend_url_root

    @classmethod
    def from_file(cls, stats_path: Path) -> "StaticEngineClient":
        text = stats_path.read_text(encoding="utf-8")
        raw: Any = json.loads(text) if stats_path.suffix == ".json" else yaml.safe_load(text)
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise TypeError(f"Stats file root must be a mapping, got {type(raw).__name__}")

        log.debug(f"Loaded usage stats from {stats_path}")
        return cls(
            schema_tags=raw.get("schemaTags"),
            field_latencies_ms=raw.get("fieldLatenciesMS"),
            frontend_url_root=raw.get("frontendUrlRoot"),
        )

    async def load_schema_tags_and_field_latencies(self, service_id: ServiceID) -> SchemaTagsAndFieldLatencies:
        return SchemaTagsAndFieldLatencies(
            schema_tags=list(self.schema_tags),
            field_latencies_ms={type_name: dict(fields) for type_name, fields in self.field_latencies_ms.items()},
        )

    async def load_frontend_url_root(self) -> str | None:
        return self.frontend_url_root
