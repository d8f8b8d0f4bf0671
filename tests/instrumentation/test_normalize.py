from __future__ import annotations

from graphql import parse

from optics.core import HTTPRequestInfo
from optics.instrumentation import normalize_client, query_signature


def _signature(source: str) -> str:
    document = parse(source)
    operation = document.definitions[0]
    fragments = {d.name.value: d for d in document.definitions[1:]}
    return query_signature(operation, fragments)


def test_anonymous_query_signature():
    assert _signature("{ hello }") == "# -\n{ hello }"


def test_signature_ignores_whitespace_literals_and_aliases():
    first = _signature('query Profile { user(id: "42") { n: name } }')
    second = _signature(
        """
        query Profile {
          user(id: "7") {
            name
          }
        }
        """
    )

    assert first == second
    assert first.startswith("# Profile\n")
    assert "42" not in first


def test_signature_distinguishes_query_shapes():
    assert _signature("{ hello }") != _signature('{ user(id: "1") { id } }')


def test_signature_appends_referenced_fragments_only():
    signature = _signature(
        """
        query Q { user(id: 1) { ...B } }
        fragment Unused on User { id }
        fragment B on User { name ...A }
        fragment A on User { id }
        """
    )

    body = signature.split("\n", 1)[1]
    assert body.index("fragment A on User") < body.index("fragment B on User")
    assert "Unused" not in signature


def test_client_identity_from_headers():
    request = HTTPRequestInfo(
        headers={"Apollographql-Client-Name": "ios", "apollographql-client-version": " 3.1 "}
    )

    client = normalize_client(request)

    assert (client.name, client.version) == ("ios", "3.1")


def test_client_identity_defaults():
    assert normalize_client(None).name == "none"
    assert normalize_client(HTTPRequestInfo()).version == "none"
