from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from graphql import (
    DefinitionNode,
    DocumentNode,
    GraphQLError,
    Source,
    TypeSystemDefinitionNode,
    TypeSystemExtensionNode,
    parse,
)

from gqlproject import log

GRAPHQL_FILE_SUFFIXES = (".graphql", ".gql")

ChangeListener = Callable[["DocumentStore"], None]


@dataclass
class Document:
    """One parsed GraphQL document belonging to a source file.

    `ast` is None when the text could not be parsed; the syntax errors are kept so
    they can be surfaced separately.
    """

    uri: str
    source: Source
    ast: DocumentNode | None = None
    syntax_errors: list[GraphQLError] = field(default_factory=list)

    @classmethod
    def from_text(cls, uri: str, text: str) -> "Document":
        source = Source(text, uri)
        try:
            ast = parse(source)
        except GraphQLError as error:
            log.debug(f"Failed to parse {uri}: {error.message}")
            return cls(uri=uri, source=source, ast=None, syntax_errors=[error])
        return cls(uri=uri, source=source, ast=ast)


def resolve_graphql_files(
    paths: Iterable[Path],
    excludes: Iterable[Path] = (),
    suffixes: Sequence[str] = GRAPHQL_FILE_SUFFIXES,
) -> list[Path]:
    """Resolve files and directories into a sorted list of unique GraphQL files.

    Args:
        paths: Files or directories to include
        excludes: Files or directories to leave out
        suffixes: File suffixes picked up when walking directories

    Returns:
        Sorted list of unique file paths
    """
    excluded = [path.resolve() for path in excludes]
    resolved_files: set[Path] = set()

    for path in paths:
        if path.is_file():
            resolved_files.add(path)
        elif path.is_dir():
            for suffix in suffixes:
                resolved_files.update(path.rglob(f"*{suffix}"))

    def is_excluded(file: Path) -> bool:
        absolute = file.resolve()
        return any(absolute == ex or ex in absolute.parents for ex in excluded)

    return sorted(file for file in resolved_files if not is_excluded(file))


class DocumentStore:
    """In-memory store of the GraphQL documents tracked by a project, keyed by URI.

    Listeners registered with `on_change` are called after every modification.
    """

    def __init__(self) -> None:
        self._documents: dict[str, list[Document]] = {}
        self._listeners: list[ChangeListener] = []

    def on_change(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    def add_document(self, document: Document) -> None:
        self._documents.setdefault(document.uri, []).append(document)
        self._notify()

    def update_document(self, uri: str, text: str) -> Document:
        """Replace every document of `uri` with the parse result of `text`."""
        document = Document.from_text(uri, text)
        self._documents[uri] = [document]
        self._notify()
        return document

    def remove_document(self, uri: str) -> None:
        if self._documents.pop(uri, None) is not None:
            self._notify()

    def load_files(self, paths: Iterable[Path], excludes: Iterable[Path] = ()) -> list[Path]:
        """Read every GraphQL file under `paths`, notifying listeners once at the end."""
        files = resolve_graphql_files(paths, excludes)
        for file in files:
            uri = file.resolve().as_uri()
            self._documents[uri] = [Document.from_text(uri, file.read_text(encoding="utf-8"))]
        log.info(f"Loaded {len(files)} GraphQL document file(s)")
        self._notify()
        return files

    @property
    def documents_by_file(self) -> dict[str, list[Document]]:
        return {uri: list(documents) for uri, documents in self._documents.items()}

    @property
    def documents(self) -> list[Document]:
        return [document for documents in self._documents.values() for document in documents]

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __len__(self) -> int:
        return sum(len(documents) for documents in self._documents.values())

    @property
    def type_system_definitions_and_extensions(self) -> list[DefinitionNode]:
        """All schema definitions and extensions declared by the tracked documents."""
        definitions: list[DefinitionNode] = []
        for document in self.documents:
            if not document.ast:
                continue
            definitions.extend(
                definition
                for definition in document.ast.definitions
                if isinstance(definition, TypeSystemDefinitionNode | TypeSystemExtensionNode)
            )
        return definitions
