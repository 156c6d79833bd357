import pytest
from graphql import FragmentDefinitionNode, GraphQLSchema, OperationDefinitionNode

from gqlproject import registry
from gqlproject.documents import Document
from gqlproject.errors import AnonymousOperationError
from tests.conftest import definition_names


def documents(*texts: str) -> list[Document]:
    return [Document.from_text(f"file:///project/doc{index}.graphql", text) for index, text in enumerate(texts)]


def test_fragments_and_operations_are_indexed_by_name() -> None:
    docs = documents(
        "query A { me { id } } fragment F on User { id }",
        "mutation B { __typename } fragment G on User { name }",
    )

    assert list(registry.fragments(docs)) == ["F", "G"]
    assert list(registry.operations(docs)) == ["A", "B"]


def test_later_definition_replaces_earlier_one() -> None:
    docs = documents(
        "fragment F on User { id }",
        "fragment F on User { name }",
    )

    fragment = registry.fragments(docs)["F"]

    assert fragment.loc is not None
    assert fragment.loc.source.name == "file:///project/doc1.graphql"


def test_anonymous_operation_fails_the_whole_index() -> None:
    docs = documents("query Named { me { id } }", "{ me { id } }")

    with pytest.raises(AnonymousOperationError, match="Anonymous operations are not supported"):
        registry.operations(docs)


def test_unparsable_documents_are_skipped() -> None:
    docs = documents("query Broken { me { ", "query Fine { me { id } }")

    assert docs[0].ast is None
    assert docs[0].syntax_errors
    assert list(registry.operations(docs)) == ["Fine"]


def test_operation_without_spreads_is_its_own_closure() -> None:
    docs = documents("query O { me { id } } fragment Unused on User { id }")
    operation = registry.operations(docs)["O"]

    closure = registry.operation_with_fragments(operation, registry.fragments(docs))

    assert closure == [operation]


def test_closure_terminates_on_cycles() -> None:
    docs = documents(
        """
        query O { me { ...F1 } }
        fragment F1 on User { friends { ...F2 } }
        fragment F2 on User { friends { ...F1 } }
        """
    )
    operation = registry.operations(docs)["O"]

    closure = registry.operation_with_fragments(operation, registry.fragments(docs))

    assert definition_names(closure) == ["O", "F1", "F2"]


def test_closure_is_breadth_first_and_deduplicated() -> None:
    docs = documents(
        """
        query O { me { ...A ...B ...A } }
        fragment A on User { friends { ...C } }
        fragment B on User { friends { ...C } }
        fragment C on User { id }
        """
    )
    operation = registry.operations(docs)["O"]

    closure = registry.operation_with_fragments(operation, registry.fragments(docs))

    assert definition_names(closure) == ["O", "A", "B", "C"]


def test_closure_skips_unknown_fragments() -> None:
    docs = documents("query O { me { ...Missing ...Known } } fragment Known on User { id }")
    operation = registry.operations(docs)["O"]

    closure = registry.operation_with_fragments(operation, registry.fragments(docs))

    assert definition_names(closure) == ["O", "Known"]


def test_closure_spans_documents() -> None:
    docs = documents("query O { me { ...Parts } }", "fragment Parts on User { id name }")
    operation = registry.operations(docs)["O"]

    closure = registry.operation_with_fragments(operation, registry.fragments(docs))

    assert definition_names(closure) == ["O", "Parts"]
    assert isinstance(closure[1], FragmentDefinitionNode)


def test_merged_operations_are_self_contained() -> None:
    docs = documents(
        "query One { me { ...Parts } }",
        "query Two { user { id } }",
        "fragment Parts on User { id }",
    )

    merged = registry.merged_operations_and_fragments(docs)

    assert set(merged) == {"One", "Two"}
    one_names = {definition.name.value for definition in merged["One"].definitions}
    two_names = {definition.name.value for definition in merged["Two"].definitions}
    assert one_names == {"One", "Parts"}
    assert two_names == {"Two"}
    assert all(
        isinstance(definition, OperationDefinitionNode | FragmentDefinitionNode)
        for definition in merged["One"].definitions
    )


def test_fragment_spreads_for_fragment() -> None:
    docs = documents(
        "query One { me { ...Parts } }",
        "query Two { user { ...Parts ...Other } }",
        "fragment Parts on User { id } fragment Other on User { name }",
    )

    spreads = registry.fragment_spreads_for_fragment(docs, "Parts")

    assert len(spreads) == 2
    assert {spread.loc.source.name for spread in spreads if spread.loc} == {
        "file:///project/doc0.graphql",
        "file:///project/doc1.graphql",
    }


def test_operation_fields_for_field_definition(service_schema: GraphQLSchema) -> None:
    docs = documents(
        "query One { me { name friends { name } } }",
        "fragment Parts on User { name }",
        "query Two { user { id } }",
    )

    fields = registry.operation_fields_for_field_definition(service_schema, docs, "name", "User")

    assert len(fields) == 3
    assert registry.operation_fields_for_field_definition(service_schema, docs, "name", "Query") == []
    assert registry.operation_fields_for_field_definition(None, docs, "name", "User") == []
