"""
Authorization code -> user identifier exchange against {root}/login/.
One attempt per call; retry policy belongs to the caller.
"""
import logging

import httpx

from oslc_client.triple_source import post_document
from oslc_client.triples import ObjectShape, ParseError, find_first

logger = logging.getLogger(__name__)

USER_IDENTIFIER = "http://www.sparxsystems.com.au/oslc_am#useridentifier"


class ExchangeError(Exception):
    """Code could not be exchanged for an identity token."""


class NetworkError(ExchangeError):
    pass


class TokenMissing(ExchangeError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No {USER_IDENTIFIER} literal in response from {url}")


class InvalidResponse(ExchangeError):
    pass


def login_url(root_url: str) -> str:
    return f"{root_url.rstrip('/')}/login/"


def login_body(code: str, redirect_uri: str) -> str:
    return f"sso=openid;code={code};redirecturi={redirect_uri}"


def exchange_code(root_url: str, code: str, redirect_uri: str) -> str:
    """POST the code to the login endpoint; return the user identifier literal from the response."""
    url = login_url(root_url)
    try:
        doc = post_document(url, login_body(code, redirect_uri))
    except httpx.HTTPError as e:
        logger.warning("Login request to %s failed: %s", url, e)
        raise NetworkError(f"Login request failed: {e}") from e
    if not doc.ok:
        # Body is still scanned; some providers answer with an RDF error document
        logger.warning("Login endpoint %s answered %s", url, doc.status_code)

    try:
        token = find_first(doc.stream(), USER_IDENTIFIER, ObjectShape.LITERAL, base=url)
    except ParseError as e:
        raise InvalidResponse(f"Login response (status {doc.status_code}) is not RDF/XML: {e}") from e
    if token is None:
        raise TokenMissing(url)
    return token
