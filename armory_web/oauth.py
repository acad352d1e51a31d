"""
Authorization request helpers for login initiation: state generation and the
provider /authorize URL.
"""
import secrets
from urllib.parse import urlencode


def generate_state() -> str:
    """Opaque value for CSRF protection; returned in callback. 32 bytes of entropy."""
    return secrets.token_urlsafe(32)


def build_authorize_url(
    *,
    oauth_url: str,
    client_id: str,
    redirect_uri: str,
    scope: str,
    state: str,
) -> str:
    """Build provider /authorize URL for the authorization-code flow."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "state": state,
    }
    return f"{oauth_url}/authorize?{urlencode(params)}"
