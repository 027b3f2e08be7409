"""
Steam Web API ban lookup for demoshelf.

Uses ISteamUser/GetPlayerBans, which accepts up to 100 comma separated
Steam64 IDs per request and reports community and VAC bans.

Requires a Steam Web API key (STEAM_API_KEY or the steam.api_key setting).
"""

from __future__ import annotations

import logging
import os
from typing import Protocol

import httpx

from demoshelf.core.models import Suspect

logger = logging.getLogger(__name__)

STEAM_API_BASE = "https://api.steampowered.com"
PLAYER_BANS_ENDPOINT = "/ISteamUser/GetPlayerBans/v1/"


class BanLookupError(Exception):
    """The ban lookup service could not be queried."""


class BanLookupService(Protocol):
    """Reports which of a batch of players are banned."""

    async def get_ban_status(self, steam_ids: list[str]) -> list[Suspect]: ...


def parse_player_bans(data: dict) -> list[Suspect]:
    """
    Convert a GetPlayerBans response body into suspects.

    Players with neither a community nor a VAC ban are left out.
    """
    suspects = []
    for player in data.get("players", []):
        community_banned = bool(player.get("CommunityBanned", False))
        vac_banned = bool(player.get("VACBanned", False))
        if community_banned or vac_banned:
            suspects.append(
                Suspect(
                    steam_id=str(player.get("SteamId", "")),
                    community_banned=community_banned,
                    vac_banned=vac_banned,
                )
            )
    return suspects


class SteamBanService:
    """
    Ban lookup backed by the Steam Web API.

    Example:
        >>> service = SteamBanService(api_key="your-api-key")
        >>> suspects = await service.get_ban_status(["76561197960287930"])
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        batch_size: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the service.

        Args:
            api_key: Steam Web API key. Falls back to STEAM_API_KEY.
            timeout_seconds: Per request timeout
            batch_size: Steam IDs per request (the API caps this at 100)
            transport: Optional httpx transport, used by tests
        """
        self.api_key = api_key or os.environ.get("STEAM_API_KEY", "")
        self.timeout_seconds = timeout_seconds
        self.batch_size = max(1, min(batch_size, 100))
        self._transport = transport

    async def get_ban_status(self, steam_ids: list[str]) -> list[Suspect]:
        """
        Look up the ban status of a batch of players.

        Args:
            steam_ids: Steam64 IDs as decimal strings

        Returns:
            Suspects for the flagged players only

        Raises:
            BanLookupError: If no API key is set or a request fails
        """
        if not steam_ids:
            return []
        if not self.api_key:
            raise BanLookupError("Steam API key not set (STEAM_API_KEY)")

        suspects: list[Suspect] = []
        async with httpx.AsyncClient(
            base_url=STEAM_API_BASE, timeout=self.timeout_seconds, transport=self._transport
        ) as client:
            for start in range(0, len(steam_ids), self.batch_size):
                chunk = steam_ids[start : start + self.batch_size]
                params = {"key": self.api_key, "steamids": ",".join(chunk)}
                try:
                    resp = await client.get(PLAYER_BANS_ENDPOINT, params=params)
                    resp.raise_for_status()
                    data = resp.json()
                except httpx.HTTPError as e:
                    raise BanLookupError(f"GetPlayerBans request failed: {e}") from e
                except ValueError as e:
                    raise BanLookupError(f"GetPlayerBans returned invalid JSON: {e}") from e

                suspects.extend(parse_player_bans(data))

        logger.info(f"Ban lookup: {len(suspects)} of {len(steam_ids)} players flagged")
        return suspects
