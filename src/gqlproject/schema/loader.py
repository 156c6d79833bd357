import json
from pathlib import Path
from typing import Any

from ariadne import load_schema_from_path
from graphql import GraphQLSchema, Source, build_client_schema, build_schema, print_schema

from gqlproject import log
from gqlproject.documents import resolve_graphql_files

SDL_SUFFIXES = (".graphql", ".graphqls", ".gql")


def build_schema_from_sdl_files(schema_paths: list[Path]) -> GraphQLSchema:
    """Build a schema from SDL files, keeping the file URI as source name.

    Each file is parsed on its own first so that syntax errors point at the right file;
    the schema is then built from one source holding every file.
    """
    contents: list[str] = []
    for schema_file in schema_paths:
        content = load_schema_from_path(schema_file)
        contents.append(content)

    if len(schema_paths) == 1:
        source_name = schema_paths[0].resolve().as_uri()
    else:
        source_name = "graphql-schema:/service.graphql"

    schema = build_schema(Source("\n".join(contents), source_name))
    log.info(f"Built the service schema from {len(schema_paths)} file(s)")
    log.debug(f"Read schema: \n{print_schema(schema)}")
    return schema


def build_schema_from_introspection(introspection_path: Path) -> GraphQLSchema:
    """Build a schema from a JSON introspection result (with or without the `data` envelope)."""
    raw: Any = json.loads(introspection_path.read_text(encoding="utf-8"))
    if isinstance(raw, dict) and "data" in raw:
        raw = raw["data"]
    if not isinstance(raw, dict) or "__schema" not in raw:
        raise ValueError(f"{introspection_path} does not contain an introspection result")

    schema = build_client_schema(raw)
    log.info(f"Built the service schema from introspection result {introspection_path}")
    return schema


def load_schema(schema_paths: Path | list[Path]) -> GraphQLSchema:
    """Load a service schema from SDL files / folders or from a single introspection JSON file."""
    if isinstance(schema_paths, Path):
        schema_paths = [schema_paths]

    if len(schema_paths) == 1 and schema_paths[0].suffix == ".json":
        return build_schema_from_introspection(schema_paths[0])

    files = resolve_graphql_files(schema_paths, suffixes=SDL_SUFFIXES)
    if not files:
        raise FileNotFoundError(f"No schema files found in {', '.join(str(path) for path in schema_paths)}")
    return build_schema_from_sdl_files(files)
