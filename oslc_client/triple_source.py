"""
Fetch RDF documents over HTTP and hand them to the scanner as byte streams.
Transport errors (httpx.HTTPError) propagate; callers map them to their own errors.
"""
import io
import logging
from dataclasses import dataclass

import httpx

from oslc_client.config import HTTP_TIMEOUT

logger = logging.getLogger(__name__)

RDF_XML = "application/rdf+xml"


@dataclass(frozen=True)
class FetchedDocument:
    url: str
    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def stream(self) -> io.BytesIO:
        """Fresh byte stream over the body; each call starts at the beginning."""
        return io.BytesIO(self.content)


def get_document(url: str) -> FetchedDocument:
    r = httpx.get(url, headers={"Accept": RDF_XML}, timeout=HTTP_TIMEOUT)
    logger.debug("GET %s -> %s (%d bytes)", url, r.status_code, len(r.content))
    return FetchedDocument(url=url, status_code=r.status_code, content=r.content)


def post_document(url: str, body: str) -> FetchedDocument:
    """POST a plain-text body and return the (RDF) response."""
    r = httpx.post(
        url,
        content=body.encode("utf-8"),
        headers={"Accept": RDF_XML, "Content-Type": "text/plain; charset=utf-8"},
        timeout=HTTP_TIMEOUT,
    )
    logger.debug("POST %s -> %s (%d bytes)", url, r.status_code, len(r.content))
    return FetchedDocument(url=url, status_code=r.status_code, content=r.content)
