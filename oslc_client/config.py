"""
OSLC client configuration.
Process-wide constants come from env; service settings are loaded once into ServiceConfig
(optional TOML file, then OSLC_* environment overlay) and passed explicitly to the core.
"""
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

# Optional config file; missing file is not an error
CONFIG_FILE = os.environ.get("OSLC_CONFIG_FILE", "config.toml")

# Where the IdP sends the browser back; must match exactly what is registered for the client
DEFAULT_REDIRECT_URI = "http://localhost:8888/openid/callback"

DEFAULT_SCOPE = "email profile"

# Resource fetched with the established code once logged in
DEFAULT_CONTENT_RESOURCE = "pk_{4B9CF56D-77D3-462f-9179-D13876E5AC63}"

# Browser session cookie holding the flow key
SESSION_COOKIE = os.environ.get("OSLC_SESSION_COOKIE", "oslc_session")

# Idle sessions are dropped after this many seconds
SESSION_TTL = int(os.environ.get("OSLC_SESSION_TTL", "3600"))

# Upstream HTTP timeout in seconds; unset means wait as long as the request lives
HTTP_TIMEOUT = float(os.environ["OSLC_HTTP_TIMEOUT"]) if os.environ.get("OSLC_HTTP_TIMEOUT") else None

LOG_LEVEL = os.environ.get("OSLC_LOG_LEVEL", "INFO").upper()

HOST = os.environ.get("OSLC_HOST", "127.0.0.1")
PORT = int(os.environ.get("OSLC_PORT", "8888"))

_KEYS = ("root_url", "client_id", "redirect_uri", "scope", "content_resource", "token_exchange")
_ENV_PREFIX = "OSLC_"


class ConfigError(ValueError):
    """Required setting missing or unreadable."""


@dataclass(frozen=True)
class ServiceConfig:
    root_url: str
    client_id: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scope: str = DEFAULT_SCOPE
    content_resource: str = DEFAULT_CONTENT_RESOURCE
    # False selects the redirect-only flow (no login round trip)
    token_exchange: bool = True


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _read_file(path: str | None) -> dict:
    if not path:
        return {}
    p = Path(path)
    if not p.is_file():
        return {}
    try:
        with p.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    return {k: v for k, v in data.items() if k in _KEYS}


def load_config(path: str | None = None, environ: dict[str, str] | None = None) -> ServiceConfig:
    """
    Build ServiceConfig from the config file (if present) overlaid by OSLC_* env vars.
    Raises ConfigError when root_url or client_id is missing.
    """
    env = os.environ if environ is None else environ
    values = _read_file(CONFIG_FILE if path is None else path)
    for key in _KEYS:
        env_value = env.get(_ENV_PREFIX + key.upper())
        if env_value is not None and env_value != "":
            values[key] = env_value

    missing = [k for k in ("root_url", "client_id") if not values.get(k)]
    if missing:
        names = ", ".join(_ENV_PREFIX + k.upper() for k in missing)
        raise ConfigError(f"Missing required setting(s): {names}")

    return ServiceConfig(
        root_url=str(values["root_url"]).rstrip("/"),
        client_id=str(values["client_id"]),
        redirect_uri=str(values.get("redirect_uri", DEFAULT_REDIRECT_URI)),
        scope=str(values.get("scope", DEFAULT_SCOPE)),
        content_resource=str(values.get("content_resource", DEFAULT_CONTENT_RESOURCE)),
        token_exchange=_as_bool(values.get("token_exchange", True)),
    )
