"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Schema snapshot helpers: direct type listing and reduced introspection.
"""

from __future__ import annotations

import json
from typing import Any

from graphql import GraphQLObjectType, GraphQLSchema, graphql_sync

from ..errors import SchemaIntrospectionError
from .models import SchemaField, SchemaType

# Modified introspection query that does not return something quite so
# giant: descriptions, deprecation reasons and default values are left out.
SHORTER_INTROSPECTION_QUERY = """
  query ShorterIntrospectionQuery {
    __schema {
      queryType { name }
      mutationType { name }
      subscriptionType { name }
      types {
        ...FullType
      }
      directives {
        name
        # description
        locations
        args {
          ...InputValue
        }
      }
    }
  }

  fragment FullType on __Type {
    kind
    name
    # description
    fields(includeDeprecated: true) {
      name
      # description
      args {
        ...InputValue
      }
      type {
        ...TypeRef
      }
      isDeprecated
      # deprecationReason
    }
    inputFields {
      ...InputValue
    }
    interfaces {
      ...TypeRef
    }
    enumValues(includeDeprecated: true) {
      name
      # description
      isDeprecated
      # deprecationReason
    }
    possibleTypes {
      ...TypeRef
    }
  }

  fragment InputValue on __InputValue {
    name
    # description
    type { ...TypeRef }
    # defaultValue
  }

  fragment TypeRef on __Type {
    kind
    name
    ofType {
      kind
      name
      ofType {
        kind
        name
        ofType {
          kind
          name
          ofType {
            kind
            name
            ofType {
              kind
              name
              ofType {
                kind
                name
                ofType {
                  kind
                  name
                }
              }
            }
          }
        }
      }
    }
  }

"""

_RESERVED_PREFIX = "__"


def types_from_schema(schema: GraphQLSchema | None) -> list[SchemaType]:
    """
    List the schema's object types and their fields.

    Types and fields whose names start with ``__`` are left out.
    """
    if schema is None:
        return []
    listing: list[SchemaType] = []
    for type_name, graphql_type in schema.type_map.items():
        if type_name.startswith(_RESERVED_PREFIX):
            continue
        if not isinstance(graphql_type, GraphQLObjectType):
            continue
        listing.append(
            SchemaType(
                name=type_name,
                fields=[
                    SchemaField(name=field_name, return_type=str(field.type))
                    for field_name, field in graphql_type.fields.items()
                    if not field_name.startswith(_RESERVED_PREFIX)
                ],
            )
        )
    return listing


def introspect_schema(schema: GraphQLSchema) -> dict[str, Any]:
    """
    Run the reduced introspection query and return the ``__schema`` payload.

    The meta ``__Schema`` object type is removed from the type list.
    """
    result = graphql_sync(schema, SHORTER_INTROSPECTION_QUERY)
    if result.errors:
        messages = "; ".join(error.message for error in result.errors)
        raise SchemaIntrospectionError(f"Schema introspection failed: {messages}")
    data = result.data or {}
    payload = data.get("__schema")
    if not isinstance(payload, dict):
        raise SchemaIntrospectionError("Schema introspection returned no __schema")
    payload = dict(payload)
    payload["types"] = [
        item
        for item in payload.get("types") or []
        if item and (item.get("kind") != "OBJECT" or item.get("name") != "__Schema")
    ]
    return payload


def introspection_json(schema: GraphQLSchema) -> str:
    """Serialized reduced introspection result."""
    return json.dumps(introspect_schema(schema), separators=(",", ":"))
