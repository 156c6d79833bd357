from graphql import DirectiveDefinitionNode, DocumentNode, Source, parse

CLIENT_DIRECTIVES_SDL = '''
"""
Direct the client to resolve this field locally, either from the cache or local resolvers.
"""
directive @client(
  """
  When true, the client will never use the cache for this value. See
  https://www.apollographql.com/docs/react/essentials/local-state/#forcing-resolvers-with-clientalways-true
  """
  always: Boolean
) on FIELD | FRAGMENT_DEFINITION | INLINE_FRAGMENT

"""
Export this locally resolved field as a variable to be used in the remainder of this query. See
https://www.apollographql.com/docs/react/essentials/local-state/#using-client-fields-as-variables
"""
directive @export(
  """
  The variable name to export this field as.
  """
  as: String!
) on FIELD

"""
Specify a custom store key for this result. See
https://www.apollographql.com/docs/react/advanced/caching/#the-connection-directive
"""
directive @connection(
  """
  Specify the store key.
  """
  key: String!
  """
  An array of query argument names to include in the generated custom store key.
  """
  filter: [String!]
) on FIELD

"""
Do not re-render the component when this field changes in the cache.
"""
directive @nonreactive on FIELD
'''

CLIENT_DIRECTIVES_SOURCE_NAME = "client-directives.graphql"


def client_directives_document() -> DocumentNode:
    """Parse the library of default client directives."""
    return parse(Source(CLIENT_DIRECTIVES_SDL, CLIENT_DIRECTIVES_SOURCE_NAME))


def client_directive_names() -> list[str]:
    return [
        definition.name.value
        for definition in client_directives_document().definitions
        if isinstance(definition, DirectiveDefinitionNode)
    ]
