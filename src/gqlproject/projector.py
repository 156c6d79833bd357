from collections.abc import Collection, Mapping
from copy import copy
from typing import Any

from graphql import (
    REMOVE,
    DirectiveNode,
    DocumentNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    NameNode,
    OperationDefinitionNode,
    SelectionSetNode,
    Visitor,
    visit,
)

from gqlproject import log
from gqlproject.registry import operation_with_fragments

TYPENAME_FIELD_NAME = "__typename"


def _has_directive(node: Any, directive_names: Collection[str]) -> bool:
    directives: tuple[DirectiveNode, ...] = getattr(node, "directives", None) or ()
    return any(directive.name.value in directive_names for directive in directives)


def _is_empty(selection_set: SelectionSetNode | None) -> bool:
    return selection_set is not None and not selection_set.selections


class _DirectiveRemover(Visitor):
    def __init__(self, directive_names: Collection[str]) -> None:
        super().__init__()
        self.directive_names = directive_names

    def enter_directive(self, node: DirectiveNode, *_args: object) -> Any:
        if node.name.value in self.directive_names:
            return REMOVE
        return None


def remove_directives(document: DocumentNode, directive_names: Collection[str]) -> DocumentNode:
    """Remove the named directive annotations, keeping the nodes they annotate."""
    if not directive_names:
        return document
    return visit(document, _DirectiveRemover(directive_names))


class _AnnotatedSelectionRemover(Visitor):
    """Remove selections carrying one of the directives, and whatever becomes empty because of it."""

    def __init__(self, directive_names: Collection[str], removed_fragments: Collection[str]) -> None:
        super().__init__()
        self.directive_names = directive_names
        self.removed_fragments = removed_fragments

    def _remove_if_annotated(self, node: Any, *_args: object) -> Any:
        if _has_directive(node, self.directive_names):
            return REMOVE
        return None

    enter_field = _remove_if_annotated
    enter_inline_fragment = _remove_if_annotated
    enter_fragment_definition = _remove_if_annotated

    def enter_fragment_spread(self, node: FragmentSpreadNode, *_args: object) -> Any:
        if node.name.value in self.removed_fragments:
            return REMOVE
        return self._remove_if_annotated(node)

    def _remove_if_emptied(self, node: Any, *_args: object) -> Any:
        if _is_empty(node.selection_set):
            return REMOVE
        return None

    leave_field = _remove_if_emptied
    leave_inline_fragment = _remove_if_emptied
    leave_fragment_definition = _remove_if_emptied
    leave_operation_definition = _remove_if_emptied


def _fragment_names(document: DocumentNode) -> set[str]:
    return {
        definition.name.value
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }


def remove_directive_annotated_fields(document: DocumentNode, directive_names: Collection[str]) -> DocumentNode:
    """Remove every field, inline fragment, fragment spread or fragment definition annotated
    with one of `directive_names`.

    Selection sets left empty are removed together with the field or definition owning
    them, and spreads of removed fragments are removed as well, until nothing changes.
    """
    if not directive_names:
        return document

    original_fragments = _fragment_names(document)
    current = document
    while True:
        removed_fragments = original_fragments - _fragment_names(current)
        updated = visit(current, _AnnotatedSelectionRemover(directive_names, removed_fragments))
        if updated is current:
            return current
        current = updated


TYPENAME_FIELD = FieldNode(name=NameNode(value=TYPENAME_FIELD_NAME), arguments=(), directives=())


def _has_typename(selection_set: SelectionSetNode) -> bool:
    return any(
        isinstance(selection, FieldNode) and selection.name.value == TYPENAME_FIELD_NAME and selection.alias is None
        for selection in selection_set.selections
    )


class _TypenameAdder(Visitor):
    def _add_typename(self, node: Any, *_args: object) -> Any:
        selection_set: SelectionSetNode | None = node.selection_set
        if selection_set is None or _has_typename(selection_set):
            return None

        updated_selection_set = copy(selection_set)
        updated_selection_set.selections = (TYPENAME_FIELD, *selection_set.selections)
        updated = copy(node)
        updated.selection_set = updated_selection_set
        return updated

    leave_field = _add_typename
    leave_inline_fragment = _add_typename
    leave_fragment_definition = _add_typename


def with_typename_field_added_where_needed(document: DocumentNode) -> DocumentNode:
    """Select `__typename` in every composite selection set below the operation root.

    Only fields with a sub-selection, inline fragments and fragment definitions get one,
    so leaf (scalar / enum) fields are never touched.
    """
    return visit(document, _TypenameAdder())


def _prune_unreachable_fragments(document: DocumentNode) -> DocumentNode:
    known_fragments = {
        definition.name.value: definition
        for definition in document.definitions
        if isinstance(definition, FragmentDefinitionNode)
    }
    reachable: set[str] = set()
    for definition in document.definitions:
        if isinstance(definition, OperationDefinitionNode):
            for needed in operation_with_fragments(definition, known_fragments)[1:]:
                reachable.add(needed.name.value)  # type: ignore[union-attr]

    definitions = tuple(
        definition
        for definition in document.definitions
        if not isinstance(definition, FragmentDefinitionNode) or definition.name.value in reachable
    )
    if len(definitions) == len(document.definitions):
        return document
    return DocumentNode(definitions=definitions, loc=document.loc)


def project_for_service(
    documents: Mapping[str, DocumentNode],
    client_only_directives: Collection[str] | None,
    client_schema_directives: Collection[str] | None,
    add_typename: bool,
) -> Mapping[str, DocumentNode]:
    """Derive the documents that can be sent to the service.

    Args:
        documents: Self-contained document per operation name.
        client_only_directives: Directives to strip while keeping the annotated nodes.
        client_schema_directives: Directives marking selections resolved on the client;
            the annotated selections are removed.
        add_typename: Whether to select `__typename` in composite selection sets.

    Returns:
        The service documents by operation name. Operations left without any selection
        are omitted. With no directive configured the input mapping is returned as is.
    """
    if not client_only_directives and not client_schema_directives:
        return documents

    filtered: dict[str, DocumentNode] = {}
    for operation_name, document in documents.items():
        service_only = remove_directives(
            remove_directive_annotated_fields(document, client_schema_directives or ()),
            client_only_directives or (),
        )
        if add_typename:
            service_only = with_typename_field_added_where_needed(service_only)

        if not any(isinstance(definition, OperationDefinitionNode) for definition in service_only.definitions):
            log.debug(f"Operation {operation_name!r} only selects client fields, not sending it to the service")
            continue

        filtered[operation_name] = _prune_unreachable_fragments(service_only)

    return filtered
