"""
Fetch a protected resource using the established authorization code.
"""
import logging

import httpx

from oslc_client.config import HTTP_TIMEOUT

logger = logging.getLogger(__name__)


class ContentError(Exception):
    """Protected resource could not be fetched."""


def content_url(root_url: str, resource: str) -> str:
    return f"{root_url.rstrip('/')}/resource/{resource}"


def fetch_content(root_url: str, code: str, resource: str) -> str:
    url = content_url(root_url, resource)
    try:
        r = httpx.get(url, params={"useridentifier": code}, timeout=HTTP_TIMEOUT)
    except httpx.HTTPError as e:
        logger.warning("Content request to %s failed: %s", url, e)
        raise ContentError(f"Request failed: {e}") from e
    logger.debug("GET %s -> %s", url, r.status_code)
    return r.text
