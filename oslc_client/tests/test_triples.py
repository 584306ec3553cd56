"""Tests for the RDF/XML scanner and predicate lookup."""
import io

import pytest
from rdflib import Literal, URIRef

from oslc_client.triples import ObjectShape, ParseError, ScanControl, find_first, scan

OSLC_AUTH = "http://open-services.net/ns/core#authorizationURI"
USER_ID = "http://www.sparxsystems.com.au/oslc_am#useridentifier"


def _doc(*properties: str, about: str = "urn:sp") -> bytes:
    body = "\n".join(f"    {p}" for p in properties)
    return f"""<?xml version="1.0" encoding="utf-8"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns:oslc="http://open-services.net/ns/core#"
         xmlns:dcterms="http://purl.org/dc/terms/"
         xmlns:ss="http://www.sparxsystems.com.au/oslc_am#">
  <rdf:Description rdf:about="{about}">
{body}
  </rdf:Description>
</rdf:RDF>""".encode("utf-8")


def _filler(n: int) -> list[str]:
    return [f"<dcterms:title>title {i}</dcterms:title>" for i in range(n)]


def test_scan_visits_statements_in_document_order():
    doc = _doc(
        "<dcterms:title>first</dcterms:title>",
        '<oslc:authorizationURI rdf:resource="http://idp.example/auth"/>',
        "<dcterms:description>last</dcterms:description>",
    )
    seen = []
    scan(io.BytesIO(doc), lambda t: seen.append(t))
    assert [t.predicate for t in seen] == [
        URIRef("http://purl.org/dc/terms/title"),
        URIRef(OSLC_AUTH),
        URIRef("http://purl.org/dc/terms/description"),
    ]
    assert seen[0].subject == URIRef("urn:sp")
    assert seen[0].object == Literal("first")
    assert seen[1].object == URIRef("http://idp.example/auth")


def test_scan_stops_when_visitor_says_stop():
    doc = _doc(*_filler(5))
    calls = []

    def visitor(triple):
        calls.append(triple)
        return ScanControl.STOP

    scan(io.BytesIO(doc), visitor)
    assert len(calls) == 1


def test_scan_propagates_visitor_error():
    class Boom(Exception):
        pass

    def visitor(triple):
        raise Boom("stop here")

    with pytest.raises(Boom):
        scan(io.BytesIO(_doc(*_filler(3))), visitor)


@pytest.mark.parametrize(
    "content",
    [
        b"",
        b"not xml at all",
        b'<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"><rdf:Description>',
    ],
)
def test_scan_malformed_raises_parse_error(content):
    with pytest.raises(ParseError):
        scan(io.BytesIO(content), lambda t: None)


def test_scan_resolves_relative_iris_against_base():
    doc = _doc('<oslc:authorizationURI rdf:resource="/oauth/authorize"/>')
    value = find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE, base="http://sp.example/sp/")
    assert value == "http://sp.example/oauth/authorize"


@pytest.mark.parametrize("before,after", [(0, 0), (0, 10), (10, 0), (7, 7)])
def test_find_first_independent_of_position(before, after):
    doc = _doc(
        *_filler(before),
        '<oslc:authorizationURI rdf:resource="http://idp.example/auth"/>',
        *_filler(after),
    )
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) == "http://idp.example/auth"


def test_find_first_absent_predicate_returns_none():
    doc = _doc(*_filler(4))
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) is None


def test_find_first_empty_graph_returns_none():
    doc = b'<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"/>'
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) is None


def test_find_first_skips_wrong_shape_and_takes_later_match():
    doc = _doc(
        "<oslc:authorizationURI>http://not-a-resource.example/</oslc:authorizationURI>",
        *_filler(2),
        '<oslc:authorizationURI rdf:resource="http://idp.example/auth"/>',
    )
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) == "http://idp.example/auth"


def test_find_first_literal_shape_skips_resource():
    doc = _doc(
        '<ss:useridentifier rdf:resource="http://example/user"/>',
        "<ss:useridentifier>user-42</ss:useridentifier>",
    )
    assert find_first(io.BytesIO(doc), USER_ID, ObjectShape.LITERAL) == "user-42"


def test_find_first_blank_node_is_not_a_resource():
    doc = _doc(
        '<oslc:authorizationURI rdf:nodeID="b1"/>',
        '<oslc:authorizationURI rdf:resource="http://idp.example/auth"/>',
    )
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) == "http://idp.example/auth"


def test_find_first_returns_first_of_duplicates():
    doc = _doc(
        '<oslc:authorizationURI rdf:resource="http://idp.example/one"/>',
        '<oslc:authorizationURI rdf:resource="http://idp.example/two"/>',
    )
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) == "http://idp.example/one"


def test_find_first_stops_at_first_hit():
    # Malformed tail after the match is never reached
    doc = _doc('<oslc:authorizationURI rdf:resource="http://idp.example/auth"/>') + b"<trailing"
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) == "http://idp.example/auth"


def test_find_first_is_idempotent():
    doc = _doc(*_filler(3), "<ss:useridentifier>user-42</ss:useridentifier>")
    first = find_first(io.BytesIO(doc), USER_ID, ObjectShape.LITERAL)
    second = find_first(io.BytesIO(doc), USER_ID, ObjectShape.LITERAL)
    assert first == second == "user-42"


def test_find_first_predicate_match_is_exact():
    doc = _doc('<oslc:authorizationURIs rdf:resource="http://idp.example/auth"/>')
    assert find_first(io.BytesIO(doc), OSLC_AUTH, ObjectShape.RESOURCE) is None


def test_find_first_malformed_is_error_not_none():
    with pytest.raises(ParseError):
        find_first(io.BytesIO(b"<rdf:RDF"), OSLC_AUTH, ObjectShape.RESOURCE)
