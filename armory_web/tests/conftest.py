"""
Pytest fixtures for armory_web. Battle.net is simulated with httpx.MockTransport
injected through FastAPI dependency overrides; no network access.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from armory_web.battlenet import BattleNetClient
from armory_web.config import SESSION_COOKIE
from armory_web.main import app, get_battlenet, get_session_store
from armory_web.session_store import InMemorySessionStore, new_session, new_session_id

OAUTH_URL = "https://oauth.test"
API_URL = "https://api.test"


class FakeBattleNet:
    """Canned responses keyed by (method, path); records every request it receives."""

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, status_code: int = 200, json=None, error: Exception | None = None):
        self.routes[(method, path)] = (status_code, json, error)

    def add_character(self, realm: str, name: str, *, media=None, mythic=None, summary=None):
        base = f"/profile/wow/character/{realm}/{name.lower()}"
        for path, payload in ((f"{base}/character-media", media), (f"{base}/mythic-keystone-profile", mythic), (base, summary)):
            if isinstance(payload, Exception):
                self.add("GET", path, error=payload)
            elif isinstance(payload, int):
                self.add("GET", path, status_code=payload, json={"code": payload})
            else:
                self.add("GET", path, json=payload or {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"code": 404, "detail": "Not Found"})
        status_code, payload, error = route
        if error is not None:
            raise error
        return httpx.Response(status_code, json=payload)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def client(self, http: httpx.AsyncClient) -> BattleNetClient:
        return BattleNetClient(
            http,
            client_id="test-client",
            client_secret="test-secret",
            redirect_uri="http://testserver/callback",
            oauth_url=OAUTH_URL,
            api_url=API_URL,
        )


@pytest.fixture
def battlenet():
    fake = FakeBattleNet()

    async def _override():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake.handler)) as http:
            yield fake.client(http)

    app.dependency_overrides[get_battlenet] = _override
    yield fake
    app.dependency_overrides.pop(get_battlenet, None)


@pytest.fixture
def store():
    s = InMemorySessionStore()
    app.dependency_overrides[get_session_store] = lambda: s
    yield s
    app.dependency_overrides.pop(get_session_store, None)


@pytest.fixture
def client(store, battlenet):
    return TestClient(app)


@pytest.fixture
def logged_in(client, store):
    """Session with a bound access token; returns the session id."""
    session_id = new_session_id()
    session = new_session()
    session.access_token = "user-token"
    store.set(session_id, session)
    client.cookies.set(SESSION_COOKIE, session_id)
    return session_id
