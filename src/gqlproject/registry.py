"""Name indexes over the executable definitions of the tracked documents.

Every function here is a pure function of the document snapshot it is given: the
indexes are rebuilt on each call, so there is no stale entry to invalidate.
"""

from collections import deque
from collections.abc import Iterable

from graphql import (
    DocumentNode,
    ExecutableDefinitionNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLSchema,
    OperationDefinitionNode,
    TypeInfo,
    TypeInfoVisitor,
    Visitor,
    separate_operations,
    visit,
)

from gqlproject.documents import Document
from gqlproject.errors import AnonymousOperationError


def fragments(documents: Iterable[Document]) -> dict[str, FragmentDefinitionNode]:
    """Index fragment definitions by name. A later definition of a name replaces an earlier one."""
    result: dict[str, FragmentDefinitionNode] = {}
    for document in documents:
        if not document.ast:
            continue
        for definition in document.ast.definitions:
            if isinstance(definition, FragmentDefinitionNode):
                result[definition.name.value] = definition
    return result


def operations(documents: Iterable[Document]) -> dict[str, OperationDefinitionNode]:
    """Index operation definitions by name.

    Raises:
        AnonymousOperationError: On the first operation without a name. No partial
            index is returned.
    """
    result: dict[str, OperationDefinitionNode] = {}
    for document in documents:
        if not document.ast:
            continue
        for definition in document.ast.definitions:
            if not isinstance(definition, OperationDefinitionNode):
                continue
            if not definition.name:
                raise AnonymousOperationError(definition)
            result[definition.name.value] = definition
    return result


def merged_operations_and_fragments(documents: Iterable[Document]) -> dict[str, DocumentNode]:
    """One self-contained document per operation, holding the operation and the fragments it uses."""
    documents = list(documents)
    merged = DocumentNode(
        definitions=(
            *fragments(documents).values(),
            *operations(documents).values(),
        )
    )
    return dict(separate_operations(merged))


class _FragmentSpreadCollector(Visitor):
    def __init__(self) -> None:
        super().__init__()
        self.names: list[str] = []

    def enter_fragment_spread(self, node: FragmentSpreadNode, *_args: object) -> None:
        self.names.append(node.name.value)


def fragment_spread_names(definition: ExecutableDefinitionNode) -> list[str]:
    collector = _FragmentSpreadCollector()
    visit(definition, collector)
    return collector.names


def operation_with_fragments(
    operation: OperationDefinitionNode, known_fragments: dict[str, FragmentDefinitionNode]
) -> list[ExecutableDefinitionNode]:
    """Return the operation followed by every fragment it transitively spreads.

    Fragments are listed in breadth-first discovery order, each once, which keeps the
    printed concatenation stable. Spreads of unknown fragments are skipped, as documents
    may be incomplete while being edited.
    """
    seen_fragment_names: set[str] = set()
    all_definitions: list[ExecutableDefinitionNode] = [operation]

    definitions_to_search: deque[ExecutableDefinitionNode] = deque([operation])
    while definitions_to_search:
        current = definitions_to_search.popleft()
        for fragment_name in fragment_spread_names(current):
            fragment = known_fragments.get(fragment_name)
            if fragment_name in seen_fragment_names or fragment is None:
                continue
            seen_fragment_names.add(fragment_name)
            definitions_to_search.append(fragment)
            all_definitions.append(fragment)

    return all_definitions


def fragment_spreads_for_fragment(documents: Iterable[Document], fragment_name: str) -> list[FragmentSpreadNode]:
    """Every spread of `fragment_name` across the documents."""
    spreads: list[FragmentSpreadNode] = []

    class SpreadFinder(Visitor):
        def enter_fragment_spread(self, node: FragmentSpreadNode, *_args: object) -> None:
            if node.name.value == fragment_name:
                spreads.append(node)

    for document in documents:
        if document.ast:
            visit(document.ast, SpreadFinder())
    return spreads


def operation_fields_for_field_definition(
    schema: GraphQLSchema | None, documents: Iterable[Document], field_name: str, parent_type_name: str | None
) -> list[FieldNode]:
    """Every selection of the field `parent_type_name.field_name` across the documents."""
    if schema is None or parent_type_name is None:
        return []

    fields: list[FieldNode] = []
    type_info = TypeInfo(schema)

    class FieldFinder(Visitor):
        def enter_field(self, node: FieldNode, *_args: object) -> None:
            if node.name.value != field_name:
                return
            parent_type = type_info.get_parent_type()
            if parent_type is not None and parent_type.name == parent_type_name:
                fields.append(node)

    for document in documents:
        if document.ast:
            visit(document.ast, TypeInfoVisitor(type_info, FieldFinder()))
    return fields
