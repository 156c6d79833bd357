import re
import time
from collections.abc import Callable, Mapping
from typing import Any

from graphql import (
    DefinitionNode,
    DocumentNode,
    ExecutableDefinitionNode,
    FieldNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLSchema,
    OperationDefinitionNode,
    ValidationRule,
)

from gqlproject import log, registry
from gqlproject.config import ProjectConfig
from gqlproject.decorations import Decoration, ExplorerLinkContext, generate_decorations
from gqlproject.diagnostics import DiagnosticSet, DiagnosticsEvent, compose_with_diagnostics, validate_documents
from gqlproject.documents import Document, DocumentStore
from gqlproject.loading import LoadingHandler
from gqlproject.projector import project_for_service
from gqlproject.providers import EngineClient, SchemaProvider, SchemaTag, ServiceID
from gqlproject.schema.composer import (
    ComposedSchema,
    augment_schema_with_generated_sdl_if_needed,
    client_schema_document,
    missing_client_directives,
)
from gqlproject.validation import default_validation_rules, resolve_validation_rules

DiagnosticsHandler = Callable[[DiagnosticsEvent], None]
DecorationsHandler = Callable[[list[Decoration]], None]
SchemaTagsHandler = Callable[[tuple[ServiceID, list[SchemaTag]]], None]

# Not counted in project stats
_BUILTIN_TYPE_PATTERN = re.compile(r"^(__.*|Boolean|ID|Int|String|Float)$")


class ClientProject:
    """A client GraphQL project: documents validated against a service schema extended with
    the client schema found in those same documents.

    Documents live in a `DocumentStore`; any change to the store re-runs validation.
    Results are pushed to the handlers registered with `on_diagnostics`,
    `on_decorations` and `on_schema_tags`, one handler per kind (registering again
    replaces the previous one).
    """

    def __init__(
        self,
        config: ProjectConfig,
        store: DocumentStore,
        schema_provider: SchemaProvider,
        engine_client: EngineClient | None = None,
        loading_handler: LoadingHandler | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.schema_provider = schema_provider
        self.engine_client = engine_client
        self.loading_handler = loading_handler or LoadingHandler()

        self.service_id: ServiceID | None = config.graph
        self.schema_tag: SchemaTag = config.variant
        self.service_schema: GraphQLSchema | None = None
        self.composed_schema: ComposedSchema | None = None
        self.diagnostic_set: DiagnosticSet | None = None
        self.field_latencies_ms: dict[str, dict[str, float]] | None = None
        self.frontend_url_root: str | None = None
        self.last_load_date: float | None = None

        self._on_diagnostics: DiagnosticsHandler | None = None
        self._on_decorations: DecorationsHandler | None = None
        self._on_schema_tags: SchemaTagsHandler | None = None

        self.validation_rules: list[type[ValidationRule]] = resolve_validation_rules(
            default_validation_rules, config.client.validation_rules_override
        )

        if len(store) == 0:
            log.warning(
                "There are no GraphQL documents associated with this project. This may be because "
                "there are no documents yet, or because the includes / excludes of the project "
                "configuration do not match any file."
            )

        store.on_change(lambda _store: self.invalidate())

    @property
    def display_name(self) -> str:
        return self.config.graph or "Unnamed Project"

    @property
    def schema(self) -> GraphQLSchema | None:
        return self.composed_schema.schema if self.composed_schema else None

    def on_diagnostics(self, handler: DiagnosticsHandler) -> None:
        self._on_diagnostics = handler

    def on_decorations(self, handler: DecorationsHandler) -> None:
        self._on_decorations = handler

    def on_schema_tags(self, handler: SchemaTagsHandler) -> None:
        self._on_schema_tags = handler

    async def initialize(self) -> None:
        await self.load_service_schema()
        await self.load_engine_data()
        self.invalidate()

    def invalidate(self) -> None:
        self.validate()

    # Loading
    # ----------
    async def load_service_schema(self, tag: SchemaTag | None = None) -> None:
        """Load the service schema for `tag` (the configured variant by default).

        Only loads of the same tag are shared. When loads of different tags overlap, the
        schema of the most recently requested tag is kept whatever order they finish in.
        """
        requested_tag = tag or self.config.variant
        self.schema_tag = requested_tag

        async def load() -> None:
            schema = await self.schema_provider.resolve_schema(tag=requested_tag, force=True)
            if self.schema_tag != requested_tag:
                log.debug(f"Dropping schema for tag {requested_tag}, tag {self.schema_tag} was requested since")
                return
            self.service_schema = augment_schema_with_generated_sdl_if_needed(schema)
            self.composed_schema = compose_with_diagnostics(self.service_schema, self.client_schema, DiagnosticSet())

        await self.loading_handler.handle(f"Loading schema {requested_tag} for {self.display_name}", load())

    async def update_schema_tag(self, tag: SchemaTag) -> None:
        await self.load_service_schema(tag)
        self.invalidate()

    async def load_engine_data(self) -> None:
        engine_client = self.engine_client
        if engine_client is None:
            return

        service_id = self.service_id

        async def load() -> None:
            if service_id:
                result = await engine_client.load_schema_tags_and_field_latencies(service_id)
                if self._on_schema_tags:
                    self._on_schema_tags((service_id, result.schema_tags))
                self.field_latencies_ms = result.field_latencies_ms
            self.frontend_url_root = await engine_client.load_frontend_url_root()
            self.last_load_date = time.time()

            self.generate_decorations()

        await self.loading_handler.handle(f"Loading usage data for {self.display_name}", load())

    # Client schema
    # ----------
    @property
    def type_system_definitions_and_extensions(self) -> list[DefinitionNode]:
        return self.store.type_system_definitions_and_extensions

    @property
    def missing_client_directives(self) -> list[DefinitionNode]:
        return missing_client_directives(self.service_schema, self.type_system_definitions_and_extensions)

    @property
    def client_schema(self) -> DocumentNode:
        return client_schema_document(self.type_system_definitions_and_extensions, self.missing_client_directives)

    # Validation and decorations
    # ----------
    def validate(self) -> None:
        if not self._on_diagnostics:
            return
        if not self.service_schema:
            return

        diagnostic_set, self.composed_schema = validate_documents(
            self.service_schema,
            self.client_schema,
            self.store.documents_by_file,
            self.fragments,
            self.validation_rules,
        )

        for uri, diagnostics in diagnostic_set.entries():
            self._on_diagnostics(DiagnosticsEvent(uri=uri, diagnostics=diagnostics))

        self.diagnostic_set = diagnostic_set
        self.generate_decorations()

    def generate_decorations(self) -> None:
        if not self._on_decorations:
            return
        if not self.schema:
            return

        decorations = generate_decorations(
            self.schema,
            self.store.documents_by_file,
            self.fragments,
            self.field_latencies_ms,
            ExplorerLinkContext.from_config(self.config, self.frontend_url_root),
        )
        self._on_decorations(decorations)

    # Definitions
    # ----------
    @property
    def documents(self) -> list[Document]:
        return self.store.documents

    @property
    def fragments(self) -> dict[str, FragmentDefinitionNode]:
        return registry.fragments(self.store.documents)

    @property
    def operations(self) -> dict[str, OperationDefinitionNode]:
        return registry.operations(self.store.documents)

    @property
    def merged_operations_and_fragments(self) -> dict[str, DocumentNode]:
        return registry.merged_operations_and_fragments(self.store.documents)

    @property
    def merged_operations_and_fragments_for_service(self) -> Mapping[str, DocumentNode]:
        client = self.config.client
        return project_for_service(
            self.merged_operations_and_fragments,
            client.client_only_directives,
            client.client_schema_directives,
            client.add_typename,
        )

    def operation_with_fragments(self, operation: OperationDefinitionNode) -> list[ExecutableDefinitionNode]:
        return registry.operation_with_fragments(operation, self.fragments)

    def fragment_spreads_for_fragment(self, fragment_name: str) -> list[FragmentSpreadNode]:
        return registry.fragment_spreads_for_fragment(self.store.documents, fragment_name)

    def operation_fields_for_field_definition(self, field_name: str, parent_type_name: str | None) -> list[FieldNode]:
        return registry.operation_fields_for_field_definition(
            self.schema, self.store.documents, field_name, parent_type_name
        )

    def project_stats(self) -> dict[str, Any]:
        def count_types(schema: GraphQLSchema | None) -> int:
            if schema is None:
                return 0
            return len([name for name in schema.type_map if not _BUILTIN_TYPE_PATTERN.match(name)])

        service_types = count_types(self.service_schema)
        total_types = count_types(self.schema)

        return {
            "type": "client",
            "serviceId": self.service_id,
            "types": {
                "service": service_types,
                "client": total_types - service_types,
                "total": total_types,
            },
            "tag": self.config.variant,
            "loaded": bool(self.schema or self.service_schema),
            "lastFetch": self.last_load_date,
        }
