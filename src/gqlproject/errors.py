from collections.abc import Sequence

from graphql import GraphQLError, OperationDefinitionNode


class GQLProjectError(Exception):
    """Base class for errors raised by the project model."""


class SchemaCompositionError(GQLProjectError):
    """Raised when client schema extensions cannot be applied to the service schema.

    The wrapped GraphQL errors keep their AST nodes, so the location inside the client
    extension document (and the URI of the file it came from) can still be recovered.
    """

    def __init__(self, errors: Sequence[GraphQLError]) -> None:
        self.errors = list(errors)
        super().__init__("\n\n".join(error.message for error in self.errors))


class AnonymousOperationError(GraphQLError):
    """Raised while indexing operations when an operation definition has no name."""

    def __init__(self, node: OperationDefinitionNode) -> None:
        super().__init__("Anonymous operations are not supported, please give every operation a name", node)
        self.node = node
