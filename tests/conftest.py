from __future__ import annotations

from types import SimpleNamespace

import pytest
from graphql import FragmentDefinitionNode, OperationDefinitionNode, build_schema, parse

SCHEMA_SDL = """
type Query {
  hello: String
  user(id: ID!): User
}

type User {
  id: ID!
  name: String
  friends: [User!]
}
"""


def _make_info(source, schema=None, variable_values=None):
    schema = schema or build_schema(SCHEMA_SDL)
    document = parse(source)
    operation = next(
        d for d in document.definitions if isinstance(d, OperationDefinitionNode)
    )
    fragments = {
        d.name.value: d
        for d in document.definitions
        if isinstance(d, FragmentDefinitionNode)
    }
    return SimpleNamespace(
        schema=schema,
        operation=operation,
        fragments=fragments,
        variable_values=variable_values or {},
    )


@pytest.fixture
def schema():
    return build_schema(SCHEMA_SDL)


@pytest.fixture
def make_info():
    """Build a resolve-info stand-in carrying what the agent reads."""
    return _make_info
