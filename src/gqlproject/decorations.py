import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import quote, urlencode

from graphql import (
    FieldNode,
    FragmentDefinitionNode,
    GraphQLSchema,
    OperationDefinitionNode,
    TypeInfo,
    TypeInfoVisitor,
    Visitor,
    print_ast,
    visit,
)
from lzstring import LZString

from gqlproject.config import ProjectConfig
from gqlproject.documents import Document
from gqlproject.format import format_ms
from gqlproject.registry import operation_with_fragments
from gqlproject.source import Range, range_for_ast_node

DEFAULT_FRONTEND_URL_ROOT = "https://studio.apollographql.com"
EXPLORER_REFERRER = "vscode"
LATENCY_THRESHOLD_MS = 1

FieldLatenciesMS = Mapping[str, Mapping[str, float]]


@dataclass(frozen=True)
class TextDecoration:
    """An inline hint shown next to a field."""

    document: str
    message: str
    range: Range
    type: Literal["text"] = "text"

    def as_dict(self) -> dict[str, Any]:
        return {"type": self.type, "document": self.document, "message": self.message, "range": self.range.as_dict()}


@dataclass(frozen=True)
class RunGlyphDecoration:
    """A hover link on an operation that opens it in the explorer."""

    document: str
    range: Range
    hover_message: str
    type: Literal["runGlyph"] = "runGlyph"

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "document": self.document,
            "range": self.range.as_dict(),
            "hoverMessage": self.hover_message,
        }


Decoration = TextDecoration | RunGlyphDecoration


@dataclass(frozen=True)
class ExplorerLinkContext:
    """Everything needed to build "run in explorer" links."""

    frontend_url_root: str | None = None
    graph: str | None = None
    variant: str | None = None
    endpoint: str | None = None

    @classmethod
    def from_config(cls, config: ProjectConfig, frontend_url_root: str | None = None) -> "ExplorerLinkContext":
        return cls(
            frontend_url_root=frontend_url_root or config.engine.frontend,
            graph=config.graph,
            variant=config.variant,
            endpoint=config.remote_endpoint,
        )


def stringify_url(path: str, query: Mapping[str, str | None]) -> str:
    """Append a query string to `path`, with sorted keys and without None values."""
    params = sorted((key, value) for key, value in query.items() if value is not None)
    if not params:
        return path
    return f"{path}?{urlencode(params, quote_via=quote, safe='')}"


def explorer_url_state(definitions: Sequence[Any]) -> str:
    """Compress the printed operation and its fragments into a URL-safe explorer state token."""
    document = "\n\n".join(print_ast(definition) for definition in definitions)
    state = json.dumps({"document": document}, separators=(",", ":"), ensure_ascii=False)
    return LZString().compressToEncodedURIComponent(state)


def run_in_explorer_link(url_state: str, context: ExplorerLinkContext) -> str:
    if context.graph:
        path = stringify_url(
            f"/graph/{context.graph}/explorer",
            {"variant": context.variant, "explorerURLState": url_state, "referrer": EXPLORER_REFERRER},
        )
    else:
        path = stringify_url(
            "/sandbox/explorer",
            {"endpoint": context.endpoint, "explorerURLState": url_state, "referrer": EXPLORER_REFERRER},
        )

    frontend_url_root = context.frontend_url_root or DEFAULT_FRONTEND_URL_ROOT
    return f"{frontend_url_root.rstrip('/')}{path}"


class _DecorationVisitor(Visitor):
    def __init__(
        self,
        uri: str,
        type_info: TypeInfo,
        fragments: Mapping[str, FragmentDefinitionNode],
        field_latencies_ms: FieldLatenciesMS | None,
        link_context: ExplorerLinkContext,
    ) -> None:
        super().__init__()
        self.uri = uri
        self.type_info = type_info
        self.fragments = fragments
        self.field_latencies_ms = field_latencies_ms
        self.link_context = link_context
        self.decorations: list[Decoration] = []

    def enter_field(self, node: FieldNode, *_args: Any) -> None:
        parent_type = self.type_info.get_parent_type()
        if parent_type is None or not self.field_latencies_ms:
            return

        parent_latencies = self.field_latencies_ms.get(parent_type.name)
        latency_ms = parent_latencies.get(node.name.value) if parent_latencies else None
        if latency_ms and latency_ms > LATENCY_THRESHOLD_MS:
            self.decorations.append(
                TextDecoration(
                    document=self.uri,
                    message=f"~{format_ms(latency_ms, 0)}",
                    range=range_for_ast_node(node),
                )
            )

    def enter_operation_definition(self, node: OperationDefinitionNode, *_args: Any) -> None:
        url_state = explorer_url_state(operation_with_fragments(node, self.fragments))
        link = run_in_explorer_link(url_state, self.link_context)
        self.decorations.append(
            RunGlyphDecoration(
                document=self.uri,
                range=range_for_ast_node(node),
                hover_message=f"[Run in Studio]({link})",
            )
        )


def generate_decorations(
    schema: GraphQLSchema,
    documents_by_file: Mapping[str, Sequence[Document]],
    fragments: Mapping[str, FragmentDefinitionNode],
    field_latencies_ms: FieldLatenciesMS | None,
    link_context: ExplorerLinkContext,
) -> list[Decoration]:
    """Walk every parsed document once with type information, collecting field latency hints
    and run-in-explorer links.

    Args:
        schema: Schema used to resolve the parent type of each field
        documents_by_file: Documents grouped by URI
        fragments: Known fragments, used to make each linked operation self-contained
        field_latencies_ms: Latency per parent type name and field name, in milliseconds
        link_context: Where explorer links point to

    Returns:
        The complete list of decorations, in document order
    """
    decorations: list[Decoration] = []
    for uri, documents_for_file in documents_by_file.items():
        for document in documents_for_file:
            if document.ast is None:
                continue
            type_info = TypeInfo(schema)
            visitor = _DecorationVisitor(uri, type_info, fragments, field_latencies_ms, link_context)
            visit(document.ast, TypeInfoVisitor(type_info, visitor))
            decorations.extend(visitor.decorations)
    return decorations
