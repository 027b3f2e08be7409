"""
Historical Statistics for the Selected Account

Read-only folds over every cached demo record:
- last_rank: rank after the most recent match
- rank_history: rank after each match, oldest first
- overall_stats: summed counters, verdict tallies, K/D and headshot ratios
- map_stats: win/loss/draw and win percentage per competitive map

Every fold only looks at demos whose roster contains the selected account
and returns zero/default values when there are none.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from demoshelf.core.config import AccountContext
from demoshelf.core.constants import CompetitiveMap, MatchVerdict
from demoshelf.core.models import ACCOUNT_COUNTER_FIELDS, Demo
from demoshelf.core.ranks import Rank, get_rank
from demoshelf.core.utils import round2
from demoshelf.infra.cache import FingerprintCache

logger = logging.getLogger(__name__)


@dataclass
class OverallStats:
    """Totals over every match of the selected account."""

    match_count: int = 0
    match_win_count: int = 0
    match_loss_count: int = 0
    match_draw_count: int = 0
    kill_count: int = 0
    assist_count: int = 0
    death_count: int = 0
    knife_kill_count: int = 0
    entry_kill_count: int = 0
    two_kill_count: int = 0
    three_kill_count: int = 0
    four_kill_count: int = 0
    five_kill_count: int = 0
    headshot_count: int = 0
    bomb_planted_count: int = 0
    bomb_defused_count: int = 0
    bomb_exploded_count: int = 0
    mvp_count: int = 0
    damage_count: int = 0
    # Left at 0 unless both operands are non-zero
    kill_death_ratio: float = 0.0
    headshot_ratio: float = 0.0


@dataclass
class MapRecord:
    """Results on one map."""

    map: CompetitiveMap
    win_count: int = 0
    loss_count: int = 0
    draw_count: int = 0
    win_percentage: float = 0.0

    @property
    def match_count(self) -> int:
        return self.win_count + self.loss_count + self.draw_count


@dataclass
class MapStats:
    """Results per competitive map."""

    maps: dict[CompetitiveMap, MapRecord] = field(
        default_factory=lambda: {m: MapRecord(map=m) for m in CompetitiveMap}
    )

    def __getitem__(self, map_name: CompetitiveMap | str) -> MapRecord:
        return self.maps[CompetitiveMap(map_name)]


@dataclass
class RankDatePoint:
    """Rank of the account after a match."""

    date: datetime
    rank: int


def ratio2(numerator: int, denominator: int, scale: int = 1) -> float:
    """numerator * scale / denominator, rounded to two places."""
    return round2(Decimal(numerator * scale) / Decimal(denominator))


def _date_order(demo: Demo) -> tuple[datetime, str]:
    # Path breaks ties between demos of the same date
    return (demo.date, demo.path)


class StatsAggregator:
    """Computes statistics for one account from the cached demo records."""

    def __init__(self, cache: FingerprintCache, context: AccountContext):
        self.cache = cache
        self.context = context

    def account_demos(self) -> list[Demo]:
        """Cached demos the selected account played in."""
        steam_id = self.context.steam_id
        return [demo for demo in self.cache.list_demos() if demo.has_player(steam_id)]

    def _account_rank_number(self, demo: Demo) -> int:
        player = demo.get_player(self.context.steam_id)
        return player.rank_number_new if player else 0

    def last_rank(self) -> Rank:
        """Rank after the latest match, or the baseline rank without matches."""
        demos = self.account_demos()
        if not demos:
            return self.context.ranks[0]

        last_demo = max(demos, key=_date_order)
        return get_rank(self._account_rank_number(last_demo), self.context.ranks)

    def rank_history(self) -> list[RankDatePoint]:
        """
        Rank after each match, oldest first.

        Matches where no player has a pre-match rank are skipped: the rank
        update was not recorded for them.
        """
        points = []
        for demo in sorted(self.account_demos(), key=_date_order):
            if all(player.rank_number_old == 0 for player in demo.players):
                continue
            rank = get_rank(self._account_rank_number(demo), self.context.ranks)
            points.append(RankDatePoint(date=demo.date, rank=rank.number))
        return points

    def overall_stats(self) -> OverallStats:
        """Summed counters and ratios over every match of the account."""
        stats = OverallStats()
        demos = self.account_demos()
        stats.match_count = len(demos)

        for demo in demos:
            for name in ACCOUNT_COUNTER_FIELDS:
                setattr(stats, name, getattr(stats, name) + getattr(demo, name))

            if demo.match_verdict == MatchVerdict.LOSS:
                stats.match_loss_count += 1
            elif demo.match_verdict == MatchVerdict.DRAW:
                stats.match_draw_count += 1
            elif demo.match_verdict == MatchVerdict.WIN:
                stats.match_win_count += 1

        if stats.kill_count != 0 and stats.death_count != 0:
            stats.kill_death_ratio = ratio2(stats.kill_count, stats.death_count)
        if stats.kill_count != 0 and stats.headshot_count != 0:
            stats.headshot_ratio = ratio2(stats.headshot_count, stats.kill_count, scale=100)

        return stats

    def map_stats(self) -> MapStats:
        """Win/loss/draw counts and win percentage per competitive map."""
        stats = MapStats()

        for demo in self.account_demos():
            try:
                record = stats[demo.map_name]
            except ValueError:
                continue

            if demo.match_verdict == MatchVerdict.WIN:
                record.win_count += 1
            elif demo.match_verdict == MatchVerdict.LOSS:
                record.loss_count += 1
            elif demo.match_verdict == MatchVerdict.DRAW:
                record.draw_count += 1

        for record in stats.maps.values():
            if record.match_count > 0:
                record.win_percentage = ratio2(record.win_count, record.match_count, scale=100)

        return stats
