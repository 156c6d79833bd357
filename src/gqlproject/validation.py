from collections.abc import Callable, Sequence
from typing import Any

from graphql import (
    SKIP,
    FieldNode,
    GraphQLError,
    KnownDirectivesRule,
    Node,
    NoUnusedFragmentsRule,
    OperationDefinitionNode,
    ValidationRule,
    specified_rules,
)

from gqlproject.schema.composer import ComposedSchema

CLIENT_DIRECTIVE_NAME = "client"


class NoAnonymousQueriesRule(ValidationRule):
    """Operations need a name to be registered and sent to the service."""

    def enter_operation_definition(self, node: OperationDefinitionNode, *_args: Any) -> Any:
        if not node.name:
            self.report_error(
                GraphQLError("Anonymous operations are not supported, please give every operation a name", node)
            )
        return SKIP


class NoTypenameAliasRule(ValidationRule):
    """`__typename` may be added to any selection set, so nothing else may be aliased to it."""

    def enter_field(self, node: FieldNode, *_args: Any) -> None:
        if node.alias and node.alias.value == "__typename":
            self.report_error(
                GraphQLError(
                    "__typename may not be used as an alias: it is reserved so it can be added to any "
                    "selection set sent to the service",
                    node,
                )
            )


class ClientSchemaAwareRule(ValidationRule):
    """A rule that needs the client metadata of the composed schema.

    The rule class in a rule list is unbound; `for_schema` returns a subclass bound to
    one composed schema, which is what gets handed to graphql-core's `validate`.
    """

    composed_schema: ComposedSchema | None = None

    @classmethod
    def for_schema(cls, composed_schema: ComposedSchema) -> type["ClientSchemaAwareRule"]:
        return type(cls.__name__, (cls,), {"composed_schema": composed_schema})


def _has_client_directive(node: Any) -> bool:
    return any(directive.name.value == CLIENT_DIRECTIVE_NAME for directive in getattr(node, "directives", None) or ())


class NoMissingClientDirectivesRule(ClientSchemaAwareRule):
    """Fields that only exist in the client schema must be selected under `@client`."""

    def enter_field(self, node: FieldNode, _key: Any, _parent: Any, _path: Any, ancestors: list[Any]) -> None:
        composed_schema = self.composed_schema
        parent_type = self.context.get_parent_type()
        if composed_schema is None or parent_type is None:
            return

        field_name = node.name.value
        if not composed_schema.is_local_field(parent_type.name, field_name):
            return

        if _has_client_directive(node):
            return
        if any(isinstance(ancestor, Node) and _has_client_directive(ancestor) for ancestor in ancestors):
            return

        self.report_error(GraphQLError(f'@client directive is missing on local field "{field_name}"', node))


REMOVED_SPECIFIED_RULES: tuple[type[ValidationRule], ...] = (NoUnusedFragmentsRule, KnownDirectivesRule)

default_validation_rules: list[type[ValidationRule]] = [
    NoAnonymousQueriesRule,
    NoTypenameAliasRule,
    NoMissingClientDirectivesRule,
    *(rule for rule in specified_rules if rule not in REMOVED_SPECIFIED_RULES),
]

ValidationRuleFilter = Callable[[type[ValidationRule]], bool]


def resolve_validation_rules(
    defaults: Sequence[type[ValidationRule]],
    override: Sequence[type[ValidationRule]] | ValidationRuleFilter | None,
) -> list[type[ValidationRule]]:
    """Work out the rule list of a project.

    Args:
        defaults: The default rules
        override: A predicate selecting among the defaults, an explicit rule list used
            verbatim, or None for the defaults

    Returns:
        The rules to validate documents with
    """
    if override is None:
        return list(defaults)
    if isinstance(override, type):
        raise TypeError("validation rules must be given as a list of rules or a predicate, not a single rule")
    if callable(override):
        return [rule for rule in defaults if override(rule)]
    return list(override)


def bind_validation_rules(
    rules: Sequence[type[ValidationRule]], composed_schema: ComposedSchema
) -> list[type[ValidationRule]]:
    return [
        rule.for_schema(composed_schema) if issubclass(rule, ClientSchemaAwareRule) else rule
        for rule in rules
    ]
