"""
Service provider discovery. Runs once at startup: GET {root}/sp/ and pick the
authorization endpoint out of the RDF document. Any failure here is fatal to startup.
"""
import logging

import httpx

from oslc_client.triple_source import get_document
from oslc_client.triples import ObjectShape, find_first

logger = logging.getLogger(__name__)

AUTHORIZATION_URI = "http://open-services.net/ns/core#authorizationURI"


class DiscoveryError(Exception):
    """Authorization endpoint could not be resolved."""


class ServiceUnavailable(DiscoveryError):
    def __init__(self, status: int | None, detail: str = ""):
        self.status = status
        msg = f"Service provider document unavailable (status={status})"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class EndpointMissing(DiscoveryError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No {AUTHORIZATION_URI} statement in {url}")


class InvalidEndpoint(DiscoveryError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Authorization endpoint is not an absolute http(s) URL: {value!r}")


def service_provider_url(root_url: str) -> str:
    return f"{root_url.rstrip('/')}/sp/"


def _validate_endpoint(value: str) -> str:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise InvalidEndpoint(value) from e
    if not url.is_absolute_url or url.scheme not in ("http", "https") or not url.host:
        raise InvalidEndpoint(value)
    return str(url)


def resolve_authorization_endpoint(root_url: str) -> str:
    """
    Fetch the service provider document and return the authorization endpoint URL.
    Raises ServiceUnavailable, EndpointMissing, InvalidEndpoint, or ParseError for a malformed document.
    """
    url = service_provider_url(root_url)
    logger.info("Discovering authorization endpoint from %s", url)
    try:
        doc = get_document(url)
    except httpx.HTTPError as e:
        raise ServiceUnavailable(None, str(e)) from e
    if not doc.ok:
        raise ServiceUnavailable(doc.status_code)

    value = find_first(doc.stream(), AUTHORIZATION_URI, ObjectShape.RESOURCE, base=url)
    if value is None:
        raise EndpointMissing(url)
    endpoint = _validate_endpoint(value)
    logger.info("Authorization endpoint: %s", endpoint)
    return endpoint
