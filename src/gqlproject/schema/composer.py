from collections.abc import Sequence
from dataclasses import dataclass, field
from urllib.parse import quote

from graphql import (
    DefinitionNode,
    DirectiveDefinitionNode,
    DocumentNode,
    GraphQLError,
    GraphQLSchema,
    ObjectTypeExtensionNode,
    Source,
    build_schema,
    extend_schema,
    is_object_type,
    print_schema,
)
from graphql.validation.validate import validate_sdl

from gqlproject import log
from gqlproject.errors import SchemaCompositionError
from gqlproject.schema.client_directives import CLIENT_DIRECTIVES_SOURCE_NAME, client_directives_document

GENERATED_SCHEMA_URI_PREFIX = "graphql-schema:/schema.graphql?"


@dataclass
class ClientSchemaInfo:
    """Fields of one object type that only exist because of a client extension."""

    local_fields: list[str] = field(default_factory=list)


@dataclass
class ComposedSchema:
    """A service schema extended with the client schema, plus per-type client metadata.

    The metadata lives here rather than on the GraphQL type objects, so the types of the
    composed schema are never mutated after they are built.
    """

    schema: GraphQLSchema
    service_schema: GraphQLSchema
    client_info: dict[str, ClientSchemaInfo] = field(default_factory=dict)
    injected_directives: list[str] = field(default_factory=list)

    def local_fields(self, type_name: str) -> list[str]:
        info = self.client_info.get(type_name)
        return list(info.local_fields) if info else []

    def is_local_field(self, type_name: str, field_name: str) -> bool:
        info = self.client_info.get(type_name)
        return bool(info and field_name in info.local_fields)


def schema_has_ast_nodes(schema: GraphQLSchema | None) -> bool:
    query_type = schema.query_type if schema else None
    return bool(query_type and query_type.ast_node)


def augment_schema_with_generated_sdl_if_needed(schema: GraphQLSchema) -> GraphQLSchema:
    """Rebuild a schema that has no AST (e.g. built from introspection) from printed SDL.

    The rebuilt schema is attached to an in-memory `graphql-schema:/` source whose name
    embeds the SDL, so that its types can still be mapped back to text and offsets.
    """
    if schema_has_ast_nodes(schema):
        return schema

    sdl = print_schema(schema)
    log.debug("Service schema has no AST nodes, rebuilding it from generated SDL")
    return build_schema(Source(sdl, f"{GENERATED_SCHEMA_URI_PREFIX}{quote(sdl, safe='')}"))


def directive_names_of(definitions: Sequence[DefinitionNode]) -> list[str]:
    return [definition.name.value for definition in definitions if isinstance(definition, DirectiveDefinitionNode)]


def missing_client_directives(
    service_schema: GraphQLSchema | None, client_definitions: Sequence[DefinitionNode]
) -> list[DefinitionNode]:
    """Return the default client directive definitions to add to the client schema.

    The library is injected all-or-nothing: if any of its directive names is already
    defined by the service schema or by the client definitions, nothing is injected.
    """
    service_directives = [directive.name for directive in service_schema.directives] if service_schema else []
    existing_directives = set(service_directives) | set(directive_names_of(client_definitions))

    library = client_directives_document()
    library_directives = directive_names_of(library.definitions)

    overlap = existing_directives.intersection(library_directives)
    if overlap:
        log.debug(f"Not adding default client directives, already defined: {', '.join(sorted(overlap))}")
        return []

    return list(library.definitions)


def client_schema_document(
    client_definitions: Sequence[DefinitionNode], missing: Sequence[DefinitionNode]
) -> DocumentNode:
    return DocumentNode(definitions=tuple([*client_definitions, *missing]))


def collect_client_schema_info(schema: GraphQLSchema, client_document: DocumentNode) -> dict[str, ClientSchemaInfo]:
    """Record, per object type, the field names added by object type extensions."""
    client_info: dict[str, ClientSchemaInfo] = {}

    for definition in client_document.definitions:
        if not isinstance(definition, ObjectTypeExtensionNode) or not definition.fields:
            continue

        type_name = definition.name.value
        if not is_object_type(schema.get_type(type_name)):
            continue

        info = client_info.setdefault(type_name, ClientSchemaInfo())
        info.local_fields.extend(field_node.name.value for field_node in definition.fields)

    return client_info


def compose(service_schema: GraphQLSchema, client_document: DocumentNode) -> ComposedSchema:
    """Extend the service schema with the client schema document.

    Args:
        service_schema: The schema provided by the service. It is not modified.
        client_document: Client type definitions, extensions and directive definitions.

    Returns:
        ComposedSchema: The extended schema with its client metadata.

    Raises:
        SchemaCompositionError: If the client document is not a valid extension of the
            service schema, e.g. it extends a type that does not exist.
    """
    errors = validate_sdl(client_document, service_schema)
    if errors:
        raise SchemaCompositionError(errors)

    try:
        schema = extend_schema(service_schema, client_document, assume_valid_sdl=True)
    except (TypeError, GraphQLError) as error:
        graphql_error = error if isinstance(error, GraphQLError) else GraphQLError(str(error))
        raise SchemaCompositionError([graphql_error]) from error

    injected = [
        definition.name.value
        for definition in client_document.definitions
        if isinstance(definition, DirectiveDefinitionNode)
        and definition.loc is not None
        and definition.loc.source.name == CLIENT_DIRECTIVES_SOURCE_NAME
    ]

    composed = ComposedSchema(
        schema=schema,
        service_schema=service_schema,
        client_info=collect_client_schema_info(schema, client_document),
        injected_directives=injected,
    )
    log.debug(
        f"Composed schema with {len(composed.client_info)} client extended type(s) "
        f"and {len(schema.type_map) - len(service_schema.type_map)} client type(s)"
    )
    return composed
