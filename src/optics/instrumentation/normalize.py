"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Default query-signature and client-identity functions.

Both are replaceable: pass ``normalize_query`` / ``normalize_client`` to
``Agent`` to aggregate by a different notion of query shape or client.
"""

from __future__ import annotations

from collections.abc import Mapping
from copy import copy
from typing import Any

from graphql import (
    FloatValueNode,
    FragmentDefinitionNode,
    IntValueNode,
    ListValueNode,
    ObjectValueNode,
    OperationDefinitionNode,
    StringValueNode,
    Visitor,
    print_ast,
    visit,
)

from ..core.context import ClientIdentity, HTTPRequestInfo
from ..core.store import referenced_fragments

CLIENT_NAME_HEADER = "apollographql-client-name"
CLIENT_VERSION_HEADER = "apollographql-client-version"
UNKNOWN_CLIENT = "none"


class _LiteralHider(Visitor):
    """Replace literal values with fixed placeholders and drop aliases."""

    def enter_int_value(self, node, *_args):
        return IntValueNode(value="0")

    def enter_float_value(self, node, *_args):
        return FloatValueNode(value="0")

    def enter_string_value(self, node, *_args):
        return StringValueNode(value="", block=False)

    def enter_list_value(self, node, *_args):
        return ListValueNode(values=())

    def enter_object_value(self, node, *_args):
        return ObjectValueNode(fields=())

    def enter_field(self, node, *_args):
        if node.alias is None:
            return None
        stripped = copy(node)
        stripped.alias = None
        return stripped


def query_signature(
    operation: OperationDefinitionNode,
    fragments: Mapping[str, FragmentDefinitionNode] | None = None,
) -> str:
    """
    Canonical signature of one operation.

    Same query shape (ignoring literal values, aliases and whitespace)
    yields the same string.
    """
    parts = [print_ast(visit(operation, _LiteralHider()))]
    parts.extend(
        print_ast(visit(fragment, _LiteralHider()))
        for fragment in referenced_fragments(operation, fragments)
    )
    body = " ".join(" ".join(parts).split())
    name = operation.name.value if operation.name else "-"
    return f"# {name}\n{body}"


def normalize_query(info: Any) -> str:
    """Signature of the operation behind one ``GraphQLResolveInfo``."""
    return query_signature(info.operation, info.fragments)


def normalize_client(request: HTTPRequestInfo | None) -> ClientIdentity:
    """Identify the calling client from well-known request headers."""
    if request is None:
        return ClientIdentity(name=UNKNOWN_CLIENT, version=UNKNOWN_CLIENT)
    name = (request.header(CLIENT_NAME_HEADER) or "").strip()
    version = (request.header(CLIENT_VERSION_HEADER) or "").strip()
    return ClientIdentity(
        name=name or UNKNOWN_CLIENT,
        version=version or UNKNOWN_CLIENT,
    )
