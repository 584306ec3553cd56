"""
Streaming RDF/XML triple scanner and first-match predicate lookup.
Statements come out of rdflib's SAX-based RDF/XML handler one at a time and are handed to a
visitor; the graph is never materialized.
"""
import logging
from enum import Enum
from typing import IO, Callable, NamedTuple, Optional
from xml.sax import SAXException

from rdflib import Graph, Literal, URIRef
from rdflib.exceptions import ParserError
from rdflib.parser import create_input_source
from rdflib.plugins.parsers.rdfxml import RDFXMLParser
from rdflib.term import Node

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Document is not well-formed XML or not valid RDF/XML."""


class ScanControl(Enum):
    CONTINUE = "continue"
    STOP = "stop"


class ObjectShape(Enum):
    RESOURCE = "resource"
    LITERAL = "literal"

    def matches(self, term: Node) -> bool:
        # Blank nodes are neither: a resource here must be a named IRI
        if self is ObjectShape.RESOURCE:
            return isinstance(term, URIRef)
        return isinstance(term, Literal)


class Triple(NamedTuple):
    subject: Node
    predicate: URIRef
    object: Node


Visitor = Callable[[Triple], Optional[ScanControl]]


class _StopScan(Exception):
    pass


class _VisitingGraph(Graph):
    """Sink for the RDF/XML handler: forwards every statement to the visitor, keeps none."""

    def __init__(self, visitor: Visitor):
        super().__init__()
        self._visitor = visitor

    def add(self, triple):
        s, p, o = triple
        if self._visitor(Triple(s, p, o)) is ScanControl.STOP:
            raise _StopScan()
        return self


def scan(stream: IO[bytes], visitor: Visitor, *, base: str | None = None) -> None:
    """
    Parse an RDF/XML byte stream and call visitor once per statement, in document order.
    The visitor returns ScanControl.STOP to end the scan early; anything it raises propagates.
    Raises ParseError on malformed input. base resolves relative IRIs (usually the document URL).
    """
    source = create_input_source(source=stream, publicID=base)
    try:
        RDFXMLParser().parse(source, _VisitingGraph(visitor))
    except _StopScan:
        return
    except SAXException as e:
        raise ParseError(f"Malformed RDF/XML: {e}") from e
    except ParserError as e:
        raise ParseError(f"Invalid RDF/XML: {e}") from e


def find_first(
    stream: IO[bytes],
    predicate: str,
    shape: ObjectShape,
    *,
    base: str | None = None,
) -> str | None:
    """
    Value of the first statement whose predicate is exactly `predicate` and whose object has
    the requested shape (IRI string or literal lexical form). None when there is no such statement.
    Wrong-shape matches are skipped; scanning stops at the first hit.
    """
    target = URIRef(predicate)
    found: list[str] = []

    def _visit(triple: Triple) -> ScanControl | None:
        if triple.predicate != target:
            return None
        if not shape.matches(triple.object):
            logger.debug("Skipping %s with %s object", predicate, type(triple.object).__name__)
            return None
        found.append(str(triple.object))
        return ScanControl.STOP

    scan(stream, _visit, base=base)
    return found[0] if found else None
