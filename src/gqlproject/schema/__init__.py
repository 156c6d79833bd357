from gqlproject.schema.composer import (
    ClientSchemaInfo,
    ComposedSchema,
    augment_schema_with_generated_sdl_if_needed,
    client_schema_document,
    compose,
    missing_client_directives,
)

__all__ = [
    "ClientSchemaInfo",
    "ComposedSchema",
    "augment_schema_with_generated_sdl_if_needed",
    "client_schema_document",
    "compose",
    "missing_client_directives",
]
