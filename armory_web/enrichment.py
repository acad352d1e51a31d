"""
Profile enrichment for /api/profile.

The base profile is fetched once (failure there fails the request). Each
max-level character then gets three independent lookups (media, Mythic+ rating,
class/item level) run concurrently; a failed lookup is logged and replaced by
its default, never failing the character, the account or the request.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from types import MappingProxyType
from typing import Any

from armory_web.battlenet import BattleNetClient, UpstreamError
from armory_web.config import MAX_CONCURRENT_REQUESTS, MAX_LEVEL

logger = logging.getLogger(__name__)

UNKNOWN_CLASS = "Unknown"
NOT_AVAILABLE = "N/A"
DEFAULT_CLASS_COLOR = "#FFFFFF"

CLASS_COLORS = MappingProxyType(
    {
        "Warrior": "#C79C6E",
        "Paladin": "#F58CBA",
        "Hunter": "#ABD473",
        "Rogue": "#FFF569",
        "Priest": "#FFFFFF",
        "Death Knight": "#C41F3B",
        "Shaman": "#0070DE",
        "Mage": "#69CCF0",
        "Warlock": "#9482C9",
        "Monk": "#00FF96",
        "Druid": "#FF7D0A",
        "Demon Hunter": "#A330C9",
    }
)

# Media asset keys in order of preference for the avatar
AVATAR_KEYS = ("avatar", "render", "main")


def select_avatar_url(assets: list[dict[str, Any]] | None) -> str:
    """Pick avatar, else render, else main, else the first asset; '' if none."""
    if not assets:
        return ""
    chosen = next(
        (asset for key in AVATAR_KEYS for asset in assets if asset.get("key") == key),
        assets[0],
    )
    url = chosen.get("value") or ""
    if not isinstance(url, str):
        raise TypeError(f"asset value is {type(url).__name__}, not str")
    return url


def mythic_rating(payload: dict[str, Any]) -> Any:
    current = payload.get("current_mythic_rating") or {}
    rating = current.get("rating")
    return NOT_AVAILABLE if rating is None else rating


def class_and_item_level(payload: dict[str, Any]) -> tuple[str, Any]:
    class_name = (payload.get("character_class") or {}).get("name") or UNKNOWN_CLASS
    if not isinstance(class_name, str):
        raise TypeError(f"character_class.name is {type(class_name).__name__}, not str")
    item_level = payload.get("equipped_item_level") or NOT_AVAILABLE
    return class_name, item_level


def class_color(class_name: str | None) -> str:
    if not class_name:
        return DEFAULT_CLASS_COLOR
    return CLASS_COLORS.get(class_name, DEFAULT_CLASS_COLOR)


def is_max_level(character: dict[str, Any], max_level: int = MAX_LEVEL) -> bool:
    return character.get("level") == max_level


class ProfileEnricher:
    """
    One instance per /api/profile request. The semaphore caps simultaneous
    downstream calls for that request.
    """

    def __init__(
        self,
        provider: BattleNetClient,
        access_token: str,
        *,
        max_level: int = MAX_LEVEL,
        max_concurrency: int = MAX_CONCURRENT_REQUESTS,
    ):
        self.provider = provider
        self.access_token = access_token
        self.max_level = max_level
        self._limiter = asyncio.Semaphore(max(1, max_concurrency))

    async def fetch_and_enrich(self) -> dict[str, Any]:
        """Fetch the base profile and enrich it. UpstreamError from the base fetch propagates."""
        profile = await self.provider.get_profile(self.access_token)
        return await self.enrich(profile)

    async def enrich(self, profile: dict[str, Any]) -> dict[str, Any]:
        accounts = profile.get("wow_accounts") or []
        if not accounts:
            return profile
        # Reject a malformed character before any lookup is started
        for account in accounts:
            for character in account.get("characters") or []:
                if is_max_level(character, self.max_level):
                    _character_key(character)
        enriched = dict(profile)
        enriched["wow_accounts"] = list(await asyncio.gather(*(self.enrich_account(a) for a in accounts)))
        return enriched

    async def enrich_account(self, account: dict[str, Any]) -> dict[str, Any]:
        eligible = [c for c in account.get("characters") or [] if is_max_level(c, self.max_level)]
        enriched = dict(account)
        enriched["characters"] = list(await asyncio.gather(*(self.enrich_character(c) for c in eligible)))
        return enriched

    async def enrich_character(self, character: dict[str, Any]) -> dict[str, Any]:
        realm_slug, name = _character_key(character)
        avatar_url, rating, (class_name, item_level) = await asyncio.gather(
            self._media(realm_slug, name),
            self._rating(realm_slug, name),
            self._summary(realm_slug, name),
        )
        enriched = dict(character)
        enriched["media"] = {"avatar_url": avatar_url}
        enriched["mythic_plus_score"] = rating
        enriched["class"] = class_name
        enriched["itemLevel"] = item_level
        enriched["classColor"] = class_color(class_name)
        return enriched

    async def _media(self, realm_slug: str, name: str) -> str:
        return await self._branch("media", self.provider.get_character_media, _parse_media, "", realm_slug, name)

    async def _rating(self, realm_slug: str, name: str) -> Any:
        return await self._branch(
            "mythic_plus", self.provider.get_mythic_keystone_profile, _parse_rating, NOT_AVAILABLE, realm_slug, name
        )

    async def _summary(self, realm_slug: str, name: str) -> tuple[str, Any]:
        return await self._branch(
            "summary",
            self.provider.get_character_summary,
            _parse_summary,
            (UNKNOWN_CLASS, NOT_AVAILABLE),
            realm_slug,
            name,
        )

    async def _branch(
        self,
        branch: str,
        fetch: Callable[[str, str, str], Awaitable[dict[str, Any]]],
        parse: Callable[[dict[str, Any], str, str], Any],
        default: Any,
        realm_slug: str,
        name: str,
    ) -> Any:
        """Fetch and parse one lookup; any failure, including an unexpected body, yields the default."""
        try:
            async with self._limiter:
                payload = await fetch(self.access_token, realm_slug, name)
            return parse(payload, realm_slug, name)
        except UpstreamError as e:
            error = e
        except (AttributeError, TypeError, KeyError) as e:
            error = UpstreamError(f"unexpected {branch} payload: {e}")
        _log_branch_failure(branch, realm_slug, name, error)
        return default


def _parse_media(payload: dict[str, Any], realm_slug: str, name: str) -> str:
    assets = payload.get("assets") or []
    if not assets:
        logger.debug("No media assets for %s-%s", name, realm_slug)
    return select_avatar_url(assets)


def _parse_rating(payload: dict[str, Any], realm_slug: str, name: str) -> Any:
    rating = mythic_rating(payload)
    if rating == NOT_AVAILABLE:
        logger.debug("No current Mythic+ rating for %s-%s", name, realm_slug)
    return rating


def _parse_summary(payload: dict[str, Any], realm_slug: str, name: str) -> tuple[str, Any]:
    return class_and_item_level(payload)


def _character_key(character: dict[str, Any]) -> tuple[str, str]:
    realm_slug = (character.get("realm") or {}).get("slug")
    name = character.get("name")
    if not realm_slug or not name:
        raise UpstreamError(f"profile character without name or realm slug: id={character.get('id')}")
    return realm_slug, name


def _log_branch_failure(branch: str, realm_slug: str, name: str, error: UpstreamError) -> None:
    logger.warning(
        "Failed to fetch %s for %s-%s: %s",
        branch,
        name,
        realm_slug,
        error,
        extra={"branch": branch, "character": name, "realm": realm_slug, "status_code": error.status_code},
    )
