from collections.abc import Callable
from pathlib import Path

import pytest
from graphql import DocumentNode, GraphQLSchema, Source, build_schema, parse

from gqlproject.documents import Document, DocumentStore

SERVICE_SDL = """
type Query {
  user: User
  me: User
}

type User {
  id: ID!
  name: String
  email: String @deprecated(reason: "Use contact")
  friends: [User!]!
}
"""

CLIENT_URI = "file:///project/client.graphql"
QUERIES_URI = "file:///project/queries.graphql"


class DataFiles:
    TESTS_DATA_DIR: Path = Path(__file__).parent / "data"
    SCHEMA: Path = TESTS_DATA_DIR / "schema.graphql"
    CLIENT: Path = TESTS_DATA_DIR / "client.graphql"
    QUERIES: Path = TESTS_DATA_DIR / "queries.graphql"
    INVALID: Path = TESTS_DATA_DIR / "invalid.graphql"
    STATS: Path = TESTS_DATA_DIR / "stats.yaml"
    CONFIG: Path = TESTS_DATA_DIR / "config.yaml"


def parse_named(text: str, uri: str) -> DocumentNode:
    """Parse text as if it was read from the file at `uri`."""
    return parse(Source(text, uri))


def definition_names(definitions: list) -> list[str]:
    return [definition.name.value for definition in definitions]


@pytest.fixture
def service_schema() -> GraphQLSchema:
    return build_schema(SERVICE_SDL)


@pytest.fixture
def make_store() -> Callable[[dict[str, str]], DocumentStore]:
    def make(files: dict[str, str]) -> DocumentStore:
        store = DocumentStore()
        for uri, text in files.items():
            store.add_document(Document.from_text(uri, text))
        return store

    return make
