"""Folds ban lookup results into demo rosters."""

from __future__ import annotations

import logging

from demoshelf.core.models import Demo, Player
from demoshelf.integrations.steam import BanLookupService

logger = logging.getLogger(__name__)


class BanReconciler:
    """Flags banned players of a demo and marks the demo as having a cheater."""

    def __init__(self, ban_service: BanLookupService):
        self.ban_service = ban_service

    async def reconcile(self, demo: Demo) -> Demo:
        """
        Query the ban status of the whole roster in one batch and update flags.

        Community bans set the Overwatch flag, VAC bans the VAC flag; either
        one marks the demo. Persisting the result is up to the caller.
        """
        if not demo.players:
            return demo

        steam_ids = [str(player.steam_id) for player in demo.players]
        suspects = await self.ban_service.get_ban_status(steam_ids)

        players_by_id: dict[str, Player] = {}
        for player in demo.players:
            players_by_id.setdefault(str(player.steam_id), player)

        for suspect in suspects:
            cheater = players_by_id.get(suspect.steam_id)
            if cheater is None:
                continue
            if suspect.community_banned:
                demo.has_cheater = True
                cheater.is_overwatch_banned = True
            if suspect.vac_banned:
                demo.has_cheater = True
                cheater.is_vac_banned = True

        if demo.has_cheater:
            logger.info(f"{demo.name}: banned players found")
        return demo
