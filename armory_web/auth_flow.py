"""
Authorization-code flow against Battle.net: start login, handle callback, logout.
The pending state lives in the server-side session and is consumed by the first
callback that presents it, whether or not that callback succeeds.
"""
import logging
import secrets

from armory_web.battlenet import BattleNetClient, UpstreamError
from armory_web.config import CLIENT_ID, OAUTH_URL, REDIRECT_URI, SCOPE
from armory_web.oauth import build_authorize_url, generate_state
from armory_web.session_store import SessionStore, new_session, new_session_id

logger = logging.getLogger(__name__)


class AuthFlowError(Exception):
    status_code = 400


class InvalidState(AuthFlowError):
    """Callback without code/state, or with a state this session did not issue."""

    status_code = 400


class ExchangeFailed(AuthFlowError):
    """Token endpoint call errored or refused the code. Login must be restarted."""

    status_code = 500


def start_login(store: SessionStore, session_id: str | None) -> tuple[str, str]:
    """
    Store a fresh state in the session (replacing any pending one) and return
    (session_id, provider /authorize URL). An id the store does not know is never
    adopted; a new one is minted instead.
    """
    session = store.get(session_id) if session_id else None
    if session is None:
        session_id = new_session_id()
        session = new_session()
    session.oauth_state = generate_state()
    store.set(session_id, session)
    url = build_authorize_url(
        oauth_url=OAUTH_URL,
        client_id=CLIENT_ID,
        redirect_uri=REDIRECT_URI,
        scope=SCOPE,
        state=session.oauth_state,
    )
    return session_id, url


def _consume_state(store: SessionStore, session_id: str | None) -> str | None:
    """Return the pending state and clear it from the session."""
    if not session_id:
        return None
    session = store.get(session_id)
    if session is None:
        return None
    expected = session.oauth_state
    if expected is not None:
        session.oauth_state = None
        store.set(session_id, session)
    return expected


def reject_callback(store: SessionStore, session_id: str | None) -> None:
    """Provider redirected back with ?error=...; burn the pending state."""
    _consume_state(store, session_id)


async def complete_login(
    store: SessionStore,
    session_id: str | None,
    provider: BattleNetClient,
    *,
    code: str | None,
    state: str | None,
) -> str:
    """
    Validate state, exchange the code and bind the access token to the session.
    The authenticated session is moved to a fresh id, which is returned.
    Raises InvalidState or ExchangeFailed; on either no session holds a new token.
    """
    expected = _consume_state(store, session_id)
    if not code or not state or not expected:
        raise InvalidState("Invalid state parameter")
    if not secrets.compare_digest(state.encode(), expected.encode()):
        logger.warning("OAuth callback state mismatch")
        raise InvalidState("Invalid state parameter")

    try:
        grant = await provider.exchange_code(code)
    except UpstreamError as e:
        logger.error("Token exchange failed: %s", e, extra={"status_code": e.status_code})
        raise ExchangeFailed("Authentication failed") from e

    session = store.get(session_id)
    if session is None:
        # logged out (or expired) while the exchange was in flight; discard the token
        logger.warning("Session ended during token exchange")
        raise InvalidState("Session ended during login")
    session.access_token = grant.access_token
    new_id = new_session_id()
    store.set(new_id, session)
    store.destroy(session_id)
    logger.info("Login completed", extra={"token_type": grant.token_type, "expires_in": grant.expires_in})
    return new_id


def logout(store: SessionStore, session_id: str | None) -> None:
    """Drop the whole session, pending state and token alike."""
    if session_id:
        store.destroy(session_id)
