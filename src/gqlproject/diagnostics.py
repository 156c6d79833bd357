from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from graphql import (
    DocumentNode,
    ExecutableDefinitionNode,
    FragmentDefinitionNode,
    GraphQLError,
    GraphQLSchema,
    ValidationRule,
    validate,
)
from graphql.validation import NoDeprecatedCustomRule

from gqlproject import log
from gqlproject.documents import Document
from gqlproject.errors import SchemaCompositionError
from gqlproject.schema.composer import ComposedSchema, compose
from gqlproject.source import Range, is_node_within, range_for_ast_node, range_for_error
from gqlproject.validation import bind_validation_rules, default_validation_rules


class DiagnosticSeverity(IntEnum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclass(frozen=True)
class Diagnostic:
    range: Range
    message: str
    severity: DiagnosticSeverity
    source: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "range": self.range.as_dict(),
            "message": self.message,
            "severity": int(self.severity),
            "source": self.source,
        }


@dataclass(frozen=True)
class DiagnosticsEvent:
    """Diagnostics of one file for one validation pass."""

    uri: str
    diagnostics: list[Diagnostic]


@dataclass
class DiagnosticSet:
    """Diagnostics grouped by document URI, in the order they were added."""

    diagnostics_by_file: dict[str, list[Diagnostic]] = field(default_factory=dict)

    def add_diagnostics(self, uri: str, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics_by_file.setdefault(uri, []).extend(diagnostics)

    def entries(self) -> Iterator[tuple[str, list[Diagnostic]]]:
        return iter(self.diagnostics_by_file.items())

    def get(self, uri: str) -> list[Diagnostic]:
        return self.diagnostics_by_file.get(uri, [])

    def has_errors(self) -> bool:
        return any(
            diagnostic.severity == DiagnosticSeverity.ERROR
            for diagnostics in self.diagnostics_by_file.values()
            for diagnostic in diagnostics
        )

    def __len__(self) -> int:
        return sum(len(diagnostics) for diagnostics in self.diagnostics_by_file.values())


def diagnostics_from_error(error: GraphQLError, severity: DiagnosticSeverity, kind: str) -> list[Diagnostic]:
    """Turn a GraphQL error into diagnostics, one per node of the error.

    All of them are ranged at the first node, so an error spanning several nodes is
    reported where it starts. Errors without nodes use their first location.
    """
    source = f"GraphQL: {kind}"
    if error.nodes:
        error_range = range_for_ast_node(error.nodes[0])
        return [
            Diagnostic(range=error_range, message=error.message, severity=severity, source=source)
            for _ in error.nodes
        ]

    error_range = range_for_error(error)
    if error_range is None:
        return []
    return [Diagnostic(range=error_range, message=error.message, severity=severity, source=source)]


def _error_in_borrowed(error: GraphQLError, borrowed: Sequence[FragmentDefinitionNode]) -> bool:
    if not error.nodes:
        return False
    return any(is_node_within(error.nodes[0], fragment) for fragment in borrowed)


def validate_query_document(
    schema: GraphQLSchema,
    document: DocumentNode,
    fragments: Mapping[str, FragmentDefinitionNode],
    rules: Sequence[type[ValidationRule]],
) -> list[GraphQLError]:
    """Validate a document, resolving spreads of fragments defined in other documents.

    Errors located in those borrowed fragments are dropped; they are reported when the
    document defining the fragment is validated. Borrowed fragments are matched by
    position in their own parsed source, so a sibling document of the same file does
    not get its errors reported twice.
    """
    own_fragments = {
        definition.name.value for definition in document.definitions if isinstance(definition, FragmentDefinitionNode)
    }
    borrowed = [fragment for name, fragment in fragments.items() if name not in own_fragments]
    document_with_fragments = DocumentNode(definitions=(*document.definitions, *borrowed), loc=document.loc)

    errors = validate(schema, document_with_fragments, list(rules))
    return [error for error in errors if not _error_in_borrowed(error, borrowed)]


def collect_executable_definition_diagnostics(
    schema: GraphQLSchema,
    document: Document,
    fragments: Mapping[str, FragmentDefinitionNode] | None = None,
    rules: Sequence[type[ValidationRule]] | None = None,
) -> list[Diagnostic]:
    """Validation errors and deprecation warnings for the executable definitions of a document.

    A document that failed to parse yields no diagnostics here.
    """
    if document.ast is None:
        return []

    executable_document = DocumentNode(
        definitions=tuple(
            definition for definition in document.ast.definitions if isinstance(definition, ExecutableDefinitionNode)
        ),
        loc=document.ast.loc,
    )
    if not executable_document.definitions:
        return []

    fragments = fragments or {}
    rules = default_validation_rules if rules is None else rules

    diagnostics: list[Diagnostic] = []
    for error in validate_query_document(schema, executable_document, fragments, rules):
        diagnostics.extend(diagnostics_from_error(error, DiagnosticSeverity.ERROR, "Validation"))

    deprecation_rules = [NoDeprecatedCustomRule]
    for error in validate_query_document(schema, executable_document, fragments, deprecation_rules):
        diagnostics.extend(diagnostics_from_error(error, DiagnosticSeverity.WARNING, "Deprecation"))

    return diagnostics


def compose_with_diagnostics(
    service_schema: GraphQLSchema, client_document: DocumentNode, diagnostic_set: DiagnosticSet
) -> ComposedSchema:
    """Compose the schema; on failure report the errors and fall back to the service schema.

    Every composition error is logged, located ones are also added to `diagnostic_set`
    under the URI of the client document they come from.
    """
    try:
        return compose(service_schema, client_document)
    except SchemaCompositionError as composition_error:
        for error in composition_error.errors:
            uri = error.source.name if error.source else None
            log.error(f"Failed to compose the client schema ({uri or 'unknown source'}): {error.message}")
            if uri:
                diagnostic_set.add_diagnostics(
                    uri, diagnostics_from_error(error, DiagnosticSeverity.ERROR, "Validation")
                )
        log.warning("Falling back to the service schema without client extensions")
        return ComposedSchema(schema=service_schema, service_schema=service_schema)


def validate_documents(
    service_schema: GraphQLSchema,
    client_document: DocumentNode,
    documents_by_file: Mapping[str, Sequence[Document]],
    fragments: Mapping[str, FragmentDefinitionNode],
    rules: Sequence[type[ValidationRule]],
) -> tuple[DiagnosticSet, ComposedSchema]:
    """Run one validation pass over every tracked document.

    Args:
        service_schema: The schema provided by the service
        client_document: The client schema extensions
        documents_by_file: Documents grouped by URI
        fragments: Every known fragment, so cross-file spreads resolve
        rules: Validation rules to run

    Returns:
        The diagnostics grouped by URI, and the schema the documents were validated against
    """
    diagnostic_set = DiagnosticSet()
    composed_schema = compose_with_diagnostics(service_schema, client_document, diagnostic_set)
    bound_rules = bind_validation_rules(rules, composed_schema)

    for uri, documents_for_file in documents_by_file.items():
        for document in documents_for_file:
            diagnostic_set.add_diagnostics(
                uri,
                collect_executable_definition_diagnostics(composed_schema.schema, document, fragments, bound_rules),
            )

    log.debug(f"Validation produced {len(diagnostic_set)} diagnostic(s) over {len(documents_by_file)} file(s)")
    return diagnostic_set, composed_schema
