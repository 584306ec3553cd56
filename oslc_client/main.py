"""
OSLC OAuth client web app.
Discovers the authorization endpoint at startup, sends the browser to it, and on callback
exchanges the code for the user identifier. GET /, /openid/callback, /openid/retry, /content, /logout.
Port 8888 by default.
"""
import html
import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from oslc_client.authorize_url import generate_session_id
from oslc_client.config import HOST, LOG_LEVEL, PORT, SESSION_COOKIE, SESSION_TTL, ServiceConfig, load_config
from oslc_client.content import ContentError
from oslc_client.discovery import resolve_authorization_endpoint
from oslc_client.flow_store import FlowController, FlowState, FlowStatus
from oslc_client.token_exchange import ExchangeError, NetworkError, TokenMissing, exchange_code

logger = logging.getLogger(__name__)

router = APIRouter()


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
  <h1>{html.escape(title)}</h1>
{body}
  <p><a href="/">Home</a></p>
</body>
</html>""",
        status_code=status_code,
    )


def _flow(request: Request) -> FlowController:
    return request.app.state.flow


def _session(request: Request) -> tuple[str, bool]:
    """(session_id, is_new). New ids must be set on the response with _remember."""
    sid = request.cookies.get(SESSION_COOKIE)
    if sid:
        return sid, False
    return generate_session_id(), True


def _remember(response, sid: str, is_new: bool):
    if is_new:
        response.set_cookie(SESSION_COOKIE, sid, max_age=SESSION_TTL, httponly=True, samesite="lax")
    return response


def _token_page(flow: FlowState) -> HTMLResponse:
    if flow.status is FlowStatus.AUTHENTICATED:
        return _page(
            "Login success",
            f"""  <p>Token = <code>{html.escape(flow.identity_token)}</code></p>
  <p><a href="/content">Fetch content</a></p>""",
        )
    # Exchange result was discarded because a newer code arrived
    return _page(
        "Login superseded",
        """  <p>A newer authorization code replaced this one before the exchange finished.</p>
  <p><a href="/openid/retry">Exchange the current code</a></p>""",
        status_code=409,
    )


def _exchange_failed(e: ExchangeError) -> HTMLResponse:
    if isinstance(e, TokenMissing):
        reason = "The login response did not contain a user identifier."
    elif isinstance(e, NetworkError):
        reason = "Could not reach the login endpoint."
    else:
        reason = "The login endpoint returned an unreadable response."
    return _page(
        "Token exchange failed",
        f"""  <p>{html.escape(reason)}</p>
  <p><code>{html.escape(str(e))}</code></p>
  <p><a href="/openid/retry">Try again</a></p>""",
        status_code=502,
    )


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "oslc_client"}


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    """Login link until a code arrives; afterwards the flow status and links onward."""
    flow = _flow(request)
    sid, is_new = _session(request)
    state = flow.state(sid)

    if state.status is FlowStatus.UNAUTHENTICATED:
        url = html.escape(flow.current_authorization_url())
        body = f'  <p><a href="{url}">Login</a></p>'
    elif state.status is FlowStatus.CODE_RECEIVED:
        retry = '  <p><a href="/openid/retry">Exchange code for token</a></p>\n' if flow.exchange_enabled else ""
        body = f"""  <p>Authorization code received; no token yet.</p>
{retry}  <p><a href="/content">Fetch content</a> | <a href="/logout">Log out</a></p>"""
    else:
        body = f"""  <p>Token = <code>{html.escape(state.identity_token)}</code></p>
  <p><a href="/content">Fetch content</a> | <a href="/logout">Log out</a></p>"""
    return _remember(_page("OSLC Test", body), sid, is_new)


@router.get("/openid/callback", response_class=HTMLResponse)
def callback(request: Request):
    """Redirect target of the IdP: store the code, then exchange it for the user identifier."""
    flow = _flow(request)
    sid, is_new = _session(request)
    params = request.query_params

    error = params.get("error")
    if error:
        msg = html.escape(params.get("error_description") or error)
        return _remember(_page("Login error", f"  <p>{msg}</p>", status_code=400), sid, is_new)

    code = params.get("code")
    if not code:
        return _remember(_page("Error", "  <p>Missing code parameter.</p>", status_code=400), sid, is_new)

    flow.submit_code(sid, code)
    if not flow.exchange_enabled:
        return _remember(_page("Login Handler", "  <p>Authorization code received.</p>"), sid, is_new)

    try:
        state = flow.exchange(sid)
    except ExchangeError as e:
        logger.warning("Token exchange failed: %s", e)
        return _remember(_exchange_failed(e), sid, is_new)
    return _remember(_token_page(state), sid, is_new)


@router.get("/openid/retry", response_class=HTMLResponse)
def retry(request: Request):
    """Exchange the stored code again after a failed attempt."""
    flow = _flow(request)
    sid, is_new = _session(request)
    if not flow.exchange_enabled:
        return _page("Error", "  <p>Token exchange is not enabled.</p>", status_code=404)
    if flow.state(sid).authorization_code is None:
        return _remember(_page("Error", "  <p>No authorization code. Log in first.</p>", status_code=400), sid, is_new)
    try:
        state = flow.exchange(sid)
    except ExchangeError as e:
        logger.warning("Token exchange retry failed: %s", e)
        return _exchange_failed(e)
    return _token_page(state)


@router.get("/content", response_class=HTMLResponse)
def content(request: Request):
    """Fetch the protected resource with the stored code."""
    flow = _flow(request)
    sid, is_new = _session(request)
    if flow.state(sid).authorization_code is None:
        return _remember(_page("Content", "  <p>No authorization code. Log in first.</p>"), sid, is_new)
    try:
        body = flow.content(sid)
    except ContentError as e:
        return _page("Content", f"  <p>Request failed: {html.escape(str(e))}</p>", status_code=502)
    return _page("Content", f"  <pre>{html.escape(body)}</pre>")


@router.get("/logout")
def logout(request: Request):
    sid = request.cookies.get(SESSION_COOKIE)
    if sid:
        _flow(request).forget(sid)
    return RedirectResponse(url="/", status_code=302)


def create_app(config: ServiceConfig | None = None) -> FastAPI:
    """App factory. Discovery runs in the lifespan; a failure there aborts startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or load_config()
        try:
            endpoint = resolve_authorization_endpoint(cfg.root_url)
        except Exception as e:
            logger.error("Discovery against %s failed; not serving: %s", cfg.root_url, e)
            raise
        app.state.flow = FlowController(
            cfg,
            endpoint,
            exchanger=exchange_code if cfg.token_exchange else None,
        )
        yield

    app = FastAPI(title="OSLC Client", version="0.1.0", lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "oslc_client.main:app",
        host=HOST,
        port=PORT,
        log_level=LOG_LEVEL.lower(),
    )
