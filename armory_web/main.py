"""
Armory Web: Battle.net login and enriched WoW profile.
GET /, /health, /auth/login, /callback, /api/profile, /auth/logout. Port 3000 by default.
"""
import html
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from armory_web import auth_flow
from armory_web.auth_flow import AuthFlowError
from armory_web.battlenet import BattleNetClient, UpstreamError
from armory_web.config import (
    COOKIE_SECURE,
    HOST,
    HTTP_TIMEOUT,
    LOGIN_LANDING,
    LOGOUT_LANDING,
    PORT,
    SESSION_COOKIE,
    SESSION_TTL,
)
from armory_web.enrichment import ProfileEnricher
from armory_web.logging_config import setup_logging
from armory_web.session_store import InMemorySessionStore, SessionStore

logger = logging.getLogger(__name__)
_session_store = InMemorySessionStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure JSON logging on startup."""
    setup_logging()
    yield


app = FastAPI(title="Armory Web", version="0.1.0", lifespan=lifespan)


def get_session_store() -> SessionStore:
    return _session_store


async def get_battlenet() -> AsyncIterator[BattleNetClient]:
    """One AsyncClient per request; the timeout bounds every downstream call."""
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http:
        yield BattleNetClient(http)


def _session_id(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE) or None


def _set_session_cookie(response: RedirectResponse, session_id: str) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=SESSION_TTL,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
    )


def _error_page(title: str, message: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(
        f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
  <h1>{html.escape(title)}</h1>
  <p>{html.escape(message)}</p>
  <p><a href="/auth/login">Log in again</a> | <a href="/">Home</a></p>
</body>
</html>""",
        status_code=status_code,
    )


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "armory_web"}


@app.get("/", response_class=HTMLResponse)
def home():
    """Landing page: login/logout links and a profile loader."""
    return HTMLResponse(
        """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Armory</title></head>
<body>
  <h1>WoW Armory</h1>
  <p><a href="/auth/login">Log in with Battle.net</a> | <a href="/auth/logout">Log out</a></p>
  <div id="characters"></div>
  <script>
    if (location.hash === "#login") {
      fetch("/api/profile").then(r => r.ok ? r.json() : Promise.reject(r.status)).then(p => {
        const root = document.getElementById("characters");
        for (const account of p.wow_accounts || []) {
          for (const c of account.characters || []) {
            const row = document.createElement("p");
            row.style.color = c.classColor;
            row.textContent = `${c.name} (${c.realm.name || c.realm.slug}) ${c.class} ilvl ${c.itemLevel} M+ ${c.mythic_plus_score}`;
            root.appendChild(row);
          }
        }
      }).catch(s => { document.getElementById("characters").textContent = "Could not load profile (" + s + ")"; });
    }
  </script>
</body>
</html>"""
    )


@app.get("/auth/login")
def login(request: Request, store: SessionStore = Depends(get_session_store)):
    """Issue a new state for this session and redirect to Battle.net /authorize."""
    session_id, url = auth_flow.start_login(store, _session_id(request))
    response = RedirectResponse(url=url, status_code=302)
    _set_session_cookie(response, session_id)
    return response


@app.get("/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    store: SessionStore = Depends(get_session_store),
    provider: BattleNetClient = Depends(get_battlenet),
):
    """Validate state, exchange the code and bind the token to a freshly issued session id."""
    session_id = _session_id(request)
    if error:
        auth_flow.reject_callback(store, session_id)
        return _error_page("Login error", error_description or error, status.HTTP_400_BAD_REQUEST)
    try:
        new_id = await auth_flow.complete_login(store, session_id, provider, code=code, state=state)
    except AuthFlowError as e:
        return _error_page("Login failed", str(e), e.status_code)
    response = RedirectResponse(url=LOGIN_LANDING, status_code=302)
    _set_session_cookie(response, new_id)
    return response


@app.get("/api/profile")
async def profile(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    provider: BattleNetClient = Depends(get_battlenet),
):
    """Enriched WoW profile for the logged-in user."""
    session_id = _session_id(request)
    session = store.get(session_id) if session_id else None
    if session is None or not session.access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "error_description": "Log in first"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    enricher = ProfileEnricher(provider, session.access_token)
    try:
        return await enricher.fetch_and_enrich()
    except UpstreamError as e:
        logger.error("Failed to fetch profile: %s", e, extra={"status_code": e.status_code})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "upstream_failure", "error_description": "Failed to fetch profile"},
        ) from e


@app.get("/auth/logout")
def logout(request: Request, store: SessionStore = Depends(get_session_store)):
    """Destroy the session server-side and clear the cookie."""
    auth_flow.logout(store, _session_id(request))
    response = RedirectResponse(url=LOGOUT_LANDING, status_code=302)
    response.delete_cookie(SESSION_COOKIE)
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "armory_web.main:app",
        host=HOST,
        port=PORT,
        reload=True,
    )
