"""
Async client for the Battle.net OAuth host and the WoW profile API.
Every failure (transport, timeout, non-2xx, bad JSON) is raised as UpstreamError;
callers decide whether that is fatal or falls back to a default.
"""
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from armory_web.config import API_URL, CLIENT_ID, CLIENT_SECRET, LOCALE, NAMESPACE, OAUTH_URL, REDIRECT_URI

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """A call to Battle.net failed or returned a non-success response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class TokenResponse:
    access_token: str
    token_type: str = "bearer"
    expires_in: int | None = None


def character_path(realm_slug: str, name: str) -> str:
    """Path segment for a character: realm slug plus lower-cased, percent-encoded name."""
    return f"{quote(realm_slug.lower(), safe='')}/{quote(name.lower(), safe='')}"


class BattleNetClient:
    """
    Thin wrapper over an httpx.AsyncClient. The caller owns the AsyncClient
    (timeouts and transport are configured there).
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        client_id: str = CLIENT_ID,
        client_secret: str = CLIENT_SECRET,
        redirect_uri: str = REDIRECT_URI,
        oauth_url: str = OAUTH_URL,
        api_url: str = API_URL,
        namespace: str = NAMESPACE,
        locale: str = LOCALE,
    ):
        self.http = http
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.oauth_url = oauth_url
        self.api_url = api_url
        self.namespace = namespace
        self.locale = locale

    async def exchange_code(self, code: str) -> TokenResponse:
        """POST the authorization code to /token (form-encoded) and return the grant."""
        try:
            r = await self.http.post(
                f"{self.oauth_url}/token",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.redirect_uri,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"token request failed: {e!r}") from e
        if not r.is_success:
            raise UpstreamError(f"token endpoint returned {r.status_code}: {r.text[:200]}", r.status_code)
        data = _json(r)
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise UpstreamError("token response has no access_token", r.status_code)
        return TokenResponse(
            access_token=access_token,
            token_type=data.get("token_type", "bearer"),
            expires_in=data.get("expires_in"),
        )

    async def get_profile(self, access_token: str) -> dict[str, Any]:
        """Account profile: wow_accounts[] each with characters[]."""
        return await self._get("/profile/user/wow", access_token)

    async def get_character_media(self, access_token: str, realm_slug: str, name: str) -> dict[str, Any]:
        return await self._get(f"/profile/wow/character/{character_path(realm_slug, name)}/character-media", access_token)

    async def get_mythic_keystone_profile(self, access_token: str, realm_slug: str, name: str) -> dict[str, Any]:
        return await self._get(
            f"/profile/wow/character/{character_path(realm_slug, name)}/mythic-keystone-profile", access_token
        )

    async def get_character_summary(self, access_token: str, realm_slug: str, name: str) -> dict[str, Any]:
        return await self._get(f"/profile/wow/character/{character_path(realm_slug, name)}", access_token)

    async def _get(self, path: str, access_token: str) -> dict[str, Any]:
        try:
            r = await self.http.get(
                f"{self.api_url}{path}",
                headers={"Authorization": f"Bearer {access_token}"},
                params={"namespace": self.namespace, "locale": self.locale},
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"GET {path} failed: {e!r}") from e
        if not r.is_success:
            raise UpstreamError(f"GET {path} returned {r.status_code}", r.status_code)
        data = _json(r)
        if not isinstance(data, dict):
            raise UpstreamError(f"GET {path} returned a non-object body", r.status_code)
        return data


def _json(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError as e:
        raise UpstreamError(f"invalid JSON from {r.request.url.path}", r.status_code) from e
