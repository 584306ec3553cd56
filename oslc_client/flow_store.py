"""
Per-session authorization flow state: UNAUTHENTICATED -> CODE_RECEIVED -> AUTHENTICATED.
One lock guards the table; it is never held across an HTTP call. An exchange whose code was
replaced while in flight is discarded instead of stored.
"""
import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from oslc_client.authorize_url import build_authorize_url
from oslc_client.config import SESSION_TTL, ServiceConfig
from oslc_client.content import fetch_content
from oslc_client.token_exchange import exchange_code

logger = logging.getLogger(__name__)

Exchanger = Callable[[str, str, str], str]
ContentFetcher = Callable[[str, str, str], str]


class FlowError(RuntimeError):
    """Operation called in a state that does not allow it (caller bug)."""


class FlowStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    CODE_RECEIVED = "code_received"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class FlowState:
    authorization_code: str | None = None
    identity_token: str | None = None
    updated_at: float = 0.0

    @property
    def status(self) -> FlowStatus:
        if self.authorization_code is None:
            return FlowStatus.UNAUTHENTICATED
        if self.identity_token is None:
            return FlowStatus.CODE_RECEIVED
        return FlowStatus.AUTHENTICATED

    def expired(self, now: float, ttl: float = SESSION_TTL) -> bool:
        return (now - self.updated_at) > ttl


_UNAUTHENTICATED = FlowState()


class FlowController:
    def __init__(
        self,
        config: ServiceConfig,
        authorization_endpoint: str,
        *,
        exchanger: Exchanger | None = exchange_code,
        content_fetcher: ContentFetcher = fetch_content,
        session_ttl: float = SESSION_TTL,
    ):
        self.config = config
        self.authorization_endpoint = authorization_endpoint
        self._exchanger = exchanger
        self._content_fetcher = content_fetcher
        self._session_ttl = session_ttl
        self._flows: dict[str, FlowState] = {}
        self._lock = threading.Lock()

    @property
    def exchange_enabled(self) -> bool:
        return self._exchanger is not None

    def current_authorization_url(self) -> str:
        return build_authorize_url(
            endpoint=self.authorization_endpoint,
            client_id=self.config.client_id,
            redirect_uri=self.config.redirect_uri,
            scope=self.config.scope,
        )

    def state(self, session_id: str) -> FlowState:
        with self._lock:
            flow = self._flows.get(session_id)
            if flow is None or flow.expired(time.monotonic(), self._session_ttl):
                return _UNAUTHENTICATED
            return flow

    def submit_code(self, session_id: str, code: str) -> FlowState:
        """Store a fresh code; always restarts the flow (any prior token is dropped)."""
        now = time.monotonic()
        flow = FlowState(authorization_code=code, updated_at=now)
        with self._lock:
            self._clean_expired(now)
            self._flows[session_id] = flow
        logger.debug("Code received for session %s...", session_id[:8])
        return flow

    def exchange(self, session_id: str) -> FlowState:
        """
        Exchange the session's current code for an identity token and store it.
        ExchangeError propagates and leaves the code in place. If another callback replaced the
        code meanwhile, the token is discarded and the newer state is returned.
        """
        if self._exchanger is None:
            raise FlowError("Token exchange is disabled for this deployment")
        code = self.state(session_id).authorization_code
        if code is None:
            raise FlowError("No authorization code to exchange")

        token = self._exchanger(self.config.root_url, code, self.config.redirect_uri)

        with self._lock:
            current = self._flows.get(session_id)
            if current is None or current.authorization_code != code:
                logger.warning("Discarding token for session %s...: code changed during exchange", session_id[:8])
                return current or _UNAUTHENTICATED
            flow = replace(current, identity_token=token, updated_at=time.monotonic())
            self._flows[session_id] = flow
        logger.info("Identity token obtained for session %s...", session_id[:8])
        return flow

    def content(self, session_id: str) -> str:
        """Fetch the protected resource with the session's code. Requires a code."""
        code = self.state(session_id).authorization_code
        if code is None:
            raise FlowError("No authorization code; log in first")
        return self._content_fetcher(self.config.root_url, code, self.config.content_resource)

    def forget(self, session_id: str) -> None:
        with self._lock:
            self._flows.pop(session_id, None)

    def _clean_expired(self, now: float) -> None:
        expired = [s for s, f in self._flows.items() if f.expired(now, self._session_ttl)]
        for s in expired:
            del self._flows[s]
