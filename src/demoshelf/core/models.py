"""
demoshelf Data Model

Demo records are owned by the cache; every structure here converts to and
from plain JSON types. Conversion from dicts is lenient: unknown keys are
ignored and missing or malformed values fall back to field defaults, so
cache files and backups written by other versions still load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from demoshelf.core.constants import DEFAULT_SOURCE, DemoSource, DemoType, MatchVerdict
from demoshelf.core.utils import safe_bool, safe_datetime, safe_float, safe_int, safe_str

# Selected-account counters summed by the statistics aggregator
ACCOUNT_COUNTER_FIELDS = (
    "kill_count",
    "assist_count",
    "death_count",
    "knife_kill_count",
    "entry_kill_count",
    "two_kill_count",
    "three_kill_count",
    "four_kill_count",
    "five_kill_count",
    "headshot_count",
    "bomb_planted_count",
    "bomb_defused_count",
    "bomb_exploded_count",
    "mvp_count",
    "damage_count",
)


@dataclass
class Player:
    """A player of a demo roster."""

    steam_id: int
    name: str = ""
    team: str = ""
    is_vac_banned: bool = False
    is_overwatch_banned: bool = False
    rank_number_old: int = 0
    rank_number_new: int = 0

    def to_dict(self) -> dict:
        return {
            "steam_id": self.steam_id,
            "name": self.name,
            "team": self.team,
            "is_vac_banned": self.is_vac_banned,
            "is_overwatch_banned": self.is_overwatch_banned,
            "rank_number_old": self.rank_number_old,
            "rank_number_new": self.rank_number_new,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Player:
        return cls(
            steam_id=safe_int(data.get("steam_id")),
            name=safe_str(data.get("name")),
            team=safe_str(data.get("team")),
            is_vac_banned=safe_bool(data.get("is_vac_banned")),
            is_overwatch_banned=safe_bool(data.get("is_overwatch_banned")),
            rank_number_old=safe_int(data.get("rank_number_old")),
            rank_number_new=safe_int(data.get("rank_number_new")),
        )


@dataclass
class Suspect:
    """Ban status returned by a ban lookup. Never persisted."""

    steam_id: str
    community_banned: bool = False
    vac_banned: bool = False


@dataclass(eq=False)
class Demo:
    """
    A replay file plus everything derived from it.

    Two demos are equal when their fingerprints match, wherever the files
    live on disk.
    """

    id: str
    name: str = ""
    path: str = ""
    date: datetime = field(default_factory=lambda: datetime.fromtimestamp(0))
    map_name: str = ""
    source: DemoSource = DEFAULT_SOURCE
    type: DemoType = DemoType.GOTV
    server_name: str = ""
    client_name: str = ""
    tickrate: float = 0.0
    duration: float = 0.0
    comment: str = ""
    status: str = "None"
    players: list[Player] = field(default_factory=list)
    has_cheater: bool = False

    # Counters for the selected account, filled by a full analysis
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
    match_verdict: int = 0

    player_positions: list[dict] = field(default_factory=list)
    heatmap_points: list[dict] = field(default_factory=list)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Demo):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_pov(self) -> bool:
        return self.type == DemoType.POV

    def get_player(self, steam_id: int) -> Player | None:
        """Return the roster entry for a steam ID, if the player took part."""
        for player in self.players:
            if player.steam_id == steam_id:
                return player
        return None

    def has_player(self, steam_id: int) -> bool:
        return self.get_player(steam_id) is not None

    def relocate(self, path: str | Path) -> None:
        """Point the record at the file's current location."""
        self.path = str(path)
        self.name = Path(path).name

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "date": self.date.isoformat(),
            "map_name": self.map_name,
            "source": self.source.value,
            "type": self.type.value,
            "server_name": self.server_name,
            "client_name": self.client_name,
            "tickrate": self.tickrate,
            "duration": self.duration,
            "comment": self.comment,
            "status": self.status,
            "players": [p.to_dict() for p in self.players],
            "has_cheater": self.has_cheater,
            "match_verdict": self.match_verdict,
            "player_positions": self.player_positions,
            "heatmap_points": self.heatmap_points,
        }
        for name in ACCOUNT_COUNTER_FIELDS:
            data[name] = getattr(self, name)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Demo:
        """Build a demo from a dict, tolerating missing and unknown keys."""
        demo = cls(id=safe_str(data.get("id")))
        demo.name = safe_str(data.get("name"))
        demo.path = safe_str(data.get("path"))
        demo.date = safe_datetime(data.get("date"))
        demo.map_name = safe_str(data.get("map_name"))
        demo.source = DemoSource.from_name(data.get("source"))
        demo.type = DemoType.POV if safe_str(data.get("type")).lower() == "pov" else DemoType.GOTV
        demo.server_name = safe_str(data.get("server_name"))
        demo.client_name = safe_str(data.get("client_name"))
        demo.tickrate = safe_float(data.get("tickrate"))
        demo.duration = safe_float(data.get("duration"))
        demo.comment = safe_str(data.get("comment"))
        demo.status = safe_str(data.get("status"), default="None")
        demo.players = [
            Player.from_dict(p) for p in _as_list(data.get("players")) if isinstance(p, dict)
        ]
        demo.has_cheater = safe_bool(data.get("has_cheater"))
        for name in ACCOUNT_COUNTER_FIELDS:
            setattr(demo, name, safe_int(data.get(name)))
        verdict = safe_int(data.get("match_verdict"))
        demo.match_verdict = verdict if verdict in (-1, 0, 1) else MatchVerdict.DRAW.value
        demo.player_positions = [p for p in _as_list(data.get("player_positions")) if isinstance(p, dict)]
        demo.heatmap_points = [p for p in _as_list(data.get("heatmap_points")) if isinstance(p, dict)]
        return demo


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []
