import pytest
from graphql import (
    GraphQLSchema,
    KnownDirectivesRule,
    NoUnusedFragmentsRule,
    ScalarLeafsRule,
    ValidationRule,
    specified_rules,
    validate,
)

from gqlproject.schema.composer import ComposedSchema, compose
from gqlproject.validation import (
    NoAnonymousQueriesRule,
    NoMissingClientDirectivesRule,
    NoTypenameAliasRule,
    bind_validation_rules,
    default_validation_rules,
    resolve_validation_rules,
)
from tests.conftest import CLIENT_URI, parse_named


@pytest.fixture
def composed(service_schema: GraphQLSchema) -> ComposedSchema:
    return compose(service_schema, parse_named("extend type User { isLoggedIn: Boolean }", CLIENT_URI))


def messages(schema: GraphQLSchema, text: str, rules: list[type[ValidationRule]]) -> list[str]:
    return [error.message for error in validate(schema, parse_named(text, "file:///q.graphql"), rules)]


def test_anonymous_operations_are_rejected(service_schema: GraphQLSchema) -> None:
    assert messages(service_schema, "{ me { id } }", [NoAnonymousQueriesRule]) == [
        "Anonymous operations are not supported, please give every operation a name"
    ]
    assert messages(service_schema, "query Named { me { id } }", [NoAnonymousQueriesRule]) == []


def test_typename_alias_is_rejected(service_schema: GraphQLSchema) -> None:
    errors = messages(service_schema, "query Q { me { __typename: id } }", [NoTypenameAliasRule])

    assert len(errors) == 1
    assert errors[0].startswith("__typename may not be used as an alias")
    assert messages(service_schema, "query Q { me { kind: __typename } }", [NoTypenameAliasRule]) == []


@pytest.mark.parametrize(
    "query",
    [
        "query Q { me { isLoggedIn @client } }",
        "query Q { me @client { isLoggedIn } }",
        "query Q { me { ... on User @client { isLoggedIn } } }",
        "query Q { me { id } }",
    ],
)
def test_local_fields_under_client_directive_pass(composed: ComposedSchema, query: str) -> None:
    rules = bind_validation_rules([NoMissingClientDirectivesRule], composed)

    assert messages(composed.schema, query, rules) == []


def test_local_field_without_client_directive_fails(composed: ComposedSchema) -> None:
    rules = bind_validation_rules([NoMissingClientDirectivesRule], composed)

    assert messages(composed.schema, "query Q { me { id isLoggedIn } }", rules) == [
        '@client directive is missing on local field "isLoggedIn"'
    ]


def test_unbound_client_rule_is_inert(composed: ComposedSchema) -> None:
    assert messages(composed.schema, "query Q { me { isLoggedIn } }", [NoMissingClientDirectivesRule]) == []


def test_binding_only_touches_client_aware_rules(composed: ComposedSchema) -> None:
    bound = bind_validation_rules(default_validation_rules, composed)

    assert len(bound) == len(default_validation_rules)
    client_rules = [rule for rule in bound if issubclass(rule, NoMissingClientDirectivesRule)]
    assert len(client_rules) == 1
    assert client_rules[0] is not NoMissingClientDirectivesRule
    assert client_rules[0].composed_schema is composed
    assert NoMissingClientDirectivesRule.composed_schema is None
    assert ScalarLeafsRule in bound


def test_default_rules() -> None:
    assert default_validation_rules[:3] == [NoAnonymousQueriesRule, NoTypenameAliasRule, NoMissingClientDirectivesRule]
    assert NoUnusedFragmentsRule not in default_validation_rules
    assert KnownDirectivesRule not in default_validation_rules
    assert len(default_validation_rules) == 3 + len(specified_rules) - 2


def test_resolve_defaults() -> None:
    rules = resolve_validation_rules(default_validation_rules, None)

    assert rules == default_validation_rules
    assert rules is not default_validation_rules


def test_resolve_with_predicate() -> None:
    rules = resolve_validation_rules(default_validation_rules, lambda rule: rule is not NoAnonymousQueriesRule)

    assert NoAnonymousQueriesRule not in rules
    assert len(rules) == len(default_validation_rules) - 1


def test_resolve_with_explicit_list() -> None:
    assert resolve_validation_rules(default_validation_rules, [ScalarLeafsRule]) == [ScalarLeafsRule]
    assert resolve_validation_rules(default_validation_rules, []) == []


def test_resolve_rejects_single_rule() -> None:
    with pytest.raises(TypeError):
        resolve_validation_rules(default_validation_rules, ScalarLeafsRule)  # type: ignore[arg-type]
