"""
Authorization request helpers: redirect URL to the discovered endpoint and browser session ids.
"""
import secrets
from urllib.parse import urlencode


def generate_session_id() -> str:
    """Opaque key for a browser's flow state; stored in a cookie."""
    return secrets.token_urlsafe(32)


def build_authorize_url(
    *,
    endpoint: str,
    client_id: str,
    redirect_uri: str,
    scope: str,
) -> str:
    """Build the authorization redirect URL (response_type=code) for the discovered endpoint."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "scope": scope,
        "redirect_uri": redirect_uri,
    }
    sep = "&" if "?" in endpoint else "?"
    return f"{endpoint}{sep}{urlencode(params)}"
