"""Tests for the login flow functions outside the HTTP layer."""
import asyncio

import pytest

from armory_web import auth_flow
from armory_web.auth_flow import ExchangeFailed, InvalidState
from armory_web.battlenet import TokenResponse, UpstreamError
from armory_web.session_store import InMemorySessionStore


class StubExchange:
    """exchange_code stand-in; on_exchange runs while the exchange is 'in flight'."""

    def __init__(self, result=None, on_exchange=None):
        self.result = result or TokenResponse(access_token="at")
        self.on_exchange = on_exchange
        self.codes = []

    async def exchange_code(self, code):
        self.codes.append(code)
        if self.on_exchange:
            self.on_exchange()
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _pending(store):
    session_id, url = auth_flow.start_login(store, None)
    return session_id, store.get(session_id).oauth_state


def test_start_login_mints_id_for_unknown_session():
    store = InMemorySessionStore()
    session_id, url = auth_flow.start_login(store, "never-issued")
    assert session_id != "never-issued"
    assert store.get("never-issued") is None
    assert store.get(session_id).oauth_state in url


def test_start_login_keeps_known_session():
    store = InMemorySessionStore()
    session_id, _ = auth_flow.start_login(store, None)
    again, _ = auth_flow.start_login(store, session_id)
    assert again == session_id


def test_complete_login_moves_token_to_new_id():
    store = InMemorySessionStore()
    session_id, state = _pending(store)
    new_id = asyncio.run(auth_flow.complete_login(store, session_id, StubExchange(), code="c", state=state))
    assert new_id != session_id
    assert store.get(session_id) is None
    assert store.get(new_id).access_token == "at"
    assert store.get(new_id).oauth_state is None


def test_logout_during_exchange_discards_token():
    store = InMemorySessionStore()
    session_id, state = _pending(store)
    provider = StubExchange(on_exchange=lambda: auth_flow.logout(store, session_id))
    with pytest.raises(InvalidState):
        asyncio.run(auth_flow.complete_login(store, session_id, provider, code="c", state=state))
    assert provider.codes == ["c"]
    assert store.get(session_id) is None
    assert len(store) == 0


def test_exchange_error_is_exchange_failed():
    store = InMemorySessionStore()
    session_id, state = _pending(store)
    provider = StubExchange(result=UpstreamError("token endpoint returned 401", 401))
    with pytest.raises(ExchangeFailed):
        asyncio.run(auth_flow.complete_login(store, session_id, provider, code="c", state=state))
    assert store.get(session_id).access_token is None
    assert store.get(session_id).oauth_state is None


def test_mismatched_state_never_exchanges():
    store = InMemorySessionStore()
    session_id, state = _pending(store)
    provider = StubExchange()
    with pytest.raises(InvalidState):
        asyncio.run(auth_flow.complete_login(store, session_id, provider, code="c", state=state + "x"))
    assert provider.codes == []
