"""
Replay Analyzer for CS Demo Files

Two passes over a demo file, both backed by demoparser2:
- Header parse: identity and metadata only (map, server, client), fast
- Analysis: one of full (roster, ranks, selected-account counters),
  player positions, or heatmap points

The counter computations are plain functions over pandas DataFrames so
they can be exercised without a demo file.
"""

from __future__ import annotations

import copy
import hashlib
import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import pandas as pd

from demoshelf.core.constants import AnalysisMode, MatchVerdict, Team, detect_demo_type, detect_source
from demoshelf.core.models import Demo, Player
from demoshelf.core.utils import safe_bool, safe_float, safe_int, safe_str, timed

if TYPE_CHECKING:
    from demoparser2 import DemoParser as Demoparser2

try:
    from demoparser2 import DemoParser as Demoparser2

    DEMOPARSER2_AVAILABLE = True
except ImportError:
    DEMOPARSER2_AVAILABLE = False

logger = logging.getLogger(__name__)

# Bytes hashed from the start of a file to build its fingerprint
FINGERPRINT_CHUNK_BYTES = 64 * 1024

DEFAULT_TICKRATE = 64.0

KNIFE_WEAPON_MARKERS = ("knife", "bayonet")


class ReplayParseError(Exception):
    """A demo file is missing or could not be decoded."""


class ReplayAnalyzer(Protocol):
    """Parses demo files into Demo records."""

    def parse_header(self, path: Path) -> Demo | None: ...

    def analyze(self, demo: Demo, mode: AnalysisMode, account_steam_id: int) -> Demo: ...


def compute_fingerprint(path: Path) -> str:
    """
    Compute the identity of a demo file.

    Hashes the first 64KB together with the file size, so the identity
    survives renames and moves but not content changes.
    """
    path = Path(path)
    hasher = hashlib.sha256()
    hasher.update(str(path.stat().st_size).encode())
    with open(path, "rb") as f:
        hasher.update(f.read(FINGERPRINT_CHUNK_BYTES))
    return hasher.hexdigest()[:16]


# =============================================================================
# DataFrame helpers
# =============================================================================


def find_column(df: pd.DataFrame, options: list[str]) -> str | None:
    """Find first matching column from options."""
    for col in options:
        if col in df.columns:
            return col
    return None


def _ids(column: pd.Series) -> pd.Series:
    """Steam IDs as exact ints; 64-bit IDs do not survive a float cast."""
    return column.map(safe_int)


def _rows_for(df: pd.DataFrame, columns: list[str], steam_id: int) -> pd.DataFrame:
    """Rows whose steam id column (first match of columns) equals steam_id."""
    if df is None or df.empty:
        return pd.DataFrame()
    col = find_column(df, columns)
    if col is None:
        return pd.DataFrame()
    return df[_ids(df[col]) == steam_id]


ATTACKER_COLUMNS = ["attacker_steamid", "attacker_steam_id"]
VICTIM_COLUMNS = ["user_steamid", "victim_steamid", "player_steamid"]
ASSISTER_COLUMNS = ["assister_steamid", "assister_steam_id"]
ROUND_COLUMNS = ["total_rounds_played", "round", "round_num"]


def compute_multikills(kills_df: pd.DataFrame, steam_id: int) -> dict[str, int]:
    """Count rounds with 2, 3, 4 and 5+ kills by the player."""
    counts = {"two_kill_count": 0, "three_kill_count": 0, "four_kill_count": 0, "five_kill_count": 0}
    own_kills = _own_kills(kills_df, steam_id)
    round_col = find_column(own_kills, ROUND_COLUMNS) if not own_kills.empty else None
    if round_col is None:
        return counts

    for kill_count in own_kills.groupby(round_col).size():
        if kill_count == 2:
            counts["two_kill_count"] += 1
        elif kill_count == 3:
            counts["three_kill_count"] += 1
        elif kill_count == 4:
            counts["four_kill_count"] += 1
        elif kill_count >= 5:
            counts["five_kill_count"] += 1
    return counts


def compute_entry_kills(kills_df: pd.DataFrame, steam_id: int) -> int:
    """Count rounds whose first kill (suicides aside) was made by the player."""
    if kills_df is None or kills_df.empty:
        return 0
    round_col = find_column(kills_df, ROUND_COLUMNS)
    attacker_col = find_column(kills_df, ATTACKER_COLUMNS)
    if round_col is None or attacker_col is None or "tick" not in kills_df.columns:
        return 0

    kills = kills_df
    victim_col = find_column(kills, VICTIM_COLUMNS)
    if victim_col is not None:
        kills = kills[_ids(kills[victim_col]) != _ids(kills[attacker_col])]
    first_kills = kills.sort_values("tick").groupby(round_col).head(1)
    return int((_ids(first_kills[attacker_col]) == steam_id).sum())


def _own_kills(kills_df: pd.DataFrame, steam_id: int) -> pd.DataFrame:
    """Kills by the player, excluding suicides."""
    own = _rows_for(kills_df, ATTACKER_COLUMNS, steam_id)
    if own.empty:
        return own
    victim_col = find_column(own, VICTIM_COLUMNS)
    if victim_col is not None:
        own = own[_ids(own[victim_col]) != steam_id]
    return own


def compute_account_counters(
    steam_id: int,
    kills_df: pd.DataFrame,
    damages_df: pd.DataFrame | None = None,
    mvps_df: pd.DataFrame | None = None,
    planted_df: pd.DataFrame | None = None,
    defused_df: pd.DataFrame | None = None,
    exploded_df: pd.DataFrame | None = None,
) -> dict[str, int]:
    """
    Compute the per-demo counters of one account from event DataFrames.

    Returns:
        Dict keyed by Demo counter field names
    """
    own_kills = _own_kills(kills_df, steam_id)
    counters = {
        "kill_count": len(own_kills),
        "death_count": len(_rows_for(kills_df, VICTIM_COLUMNS, steam_id)),
        "assist_count": len(_rows_for(kills_df, ASSISTER_COLUMNS, steam_id)),
        "headshot_count": 0,
        "knife_kill_count": 0,
        "entry_kill_count": compute_entry_kills(kills_df, steam_id),
        "mvp_count": len(_rows_for(mvps_df, VICTIM_COLUMNS, steam_id)),
        "bomb_planted_count": 0,
        "bomb_defused_count": len(_rows_for(defused_df, VICTIM_COLUMNS, steam_id)),
        "bomb_exploded_count": 0,
        "damage_count": 0,
    }

    if not own_kills.empty:
        if "headshot" in own_kills.columns:
            counters["headshot_count"] = int(own_kills["headshot"].map(safe_bool).sum())
        if "weapon" in own_kills.columns:
            weapons = own_kills["weapon"].astype(str).str.lower()
            counters["knife_kill_count"] = int(
                weapons.map(lambda w: any(m in w for m in KNIFE_WEAPON_MARKERS)).sum()
            )

    own_damage = _rows_for(damages_df, ATTACKER_COLUMNS, steam_id)
    if not own_damage.empty:
        victim_col = find_column(own_damage, VICTIM_COLUMNS)
        if victim_col is not None:
            own_damage = own_damage[_ids(own_damage[victim_col]) != steam_id]
        damage_col = find_column(own_damage, ["dmg_health", "damage"])
        if damage_col is not None:
            counters["damage_count"] = int(pd.to_numeric(own_damage[damage_col], errors="coerce").fillna(0).sum())

    own_plants = _rows_for(planted_df, VICTIM_COLUMNS, steam_id)
    counters["bomb_planted_count"] = len(own_plants)

    # A bomb explosion counts for the player who planted it that round
    if not own_plants.empty and exploded_df is not None and not exploded_df.empty:
        plant_round_col = find_column(own_plants, ROUND_COLUMNS)
        explode_round_col = find_column(exploded_df, ROUND_COLUMNS)
        if plant_round_col and explode_round_col:
            exploded_rounds = set(exploded_df[explode_round_col].map(safe_int))
            counters["bomb_exploded_count"] = int(
                own_plants[plant_round_col].map(safe_int).isin(exploded_rounds).sum()
            )

    counters.update(compute_multikills(kills_df, steam_id))
    return counters


def _normalize_team(value) -> int:
    text = safe_str(value).strip().upper()
    if text in ("CT", "3"):
        return Team.CT.value
    if text in ("T", "TERRORIST", "2"):
        return Team.TERRORIST.value
    return safe_int(value)


def compute_match_verdict(rounds_df: pd.DataFrame, teams_df: pd.DataFrame, steam_id: int) -> int:
    """
    Compare rounds won and lost by the account's side.

    Args:
        rounds_df: round_end events with tick and winner columns
        teams_df: tick samples with tick, steamid and team_num columns,
            taken at the round end ticks
        steam_id: Account to judge the match for

    Returns:
        MatchVerdict value (-1, 0, 1)
    """
    if rounds_df is None or rounds_df.empty or teams_df is None or teams_df.empty:
        return MatchVerdict.DRAW.value
    winner_col = find_column(rounds_df, ["winner", "winner_team"])
    team_col = find_column(teams_df, ["team_num", "team_number"])
    id_col = find_column(teams_df, ["steamid", "steam_id"])
    if winner_col is None or team_col is None or id_col is None or "tick" not in rounds_df.columns:
        return MatchVerdict.DRAW.value

    own = teams_df[_ids(teams_df[id_col]) == steam_id][["tick", team_col]]
    merged = rounds_df[["tick", winner_col]].merge(own, on="tick", how="inner")
    if merged.empty:
        return MatchVerdict.DRAW.value

    winners = merged[winner_col].map(_normalize_team)
    sides = merged[team_col].map(_normalize_team)
    decided = winners.isin([Team.TERRORIST.value, Team.CT.value])
    won = int((decided & (winners == sides)).sum())
    lost = int((decided & (winners != sides)).sum())

    if won > lost:
        return MatchVerdict.WIN.value
    if won < lost:
        return MatchVerdict.LOSS.value
    return MatchVerdict.DRAW.value


def build_roster(players_df: pd.DataFrame, ranks_df: pd.DataFrame | None = None) -> list[Player]:
    """
    Build the roster from player info, with ranks from the first and last
    sampled ticks when available.
    """
    if players_df is None or players_df.empty:
        return []
    id_col = find_column(players_df, ["steamid", "steam_id"])
    if id_col is None:
        return []
    name_col = find_column(players_df, ["name", "player_name"])
    team_col = find_column(players_df, ["team_number", "team_num"])

    ranks: dict[int, tuple[int, int]] = {}
    if ranks_df is not None and not ranks_df.empty and "rank" in ranks_df.columns:
        rank_id_col = find_column(ranks_df, ["steamid", "steam_id"])
        if rank_id_col is not None:
            ordered = ranks_df.sort_values("tick") if "tick" in ranks_df.columns else ranks_df
            for sid, group in ordered.groupby(rank_id_col):
                ranks[safe_int(sid)] = (safe_int(group["rank"].iloc[0]), safe_int(group["rank"].iloc[-1]))

    roster = []
    seen: set[int] = set()
    for row in players_df.to_dict("records"):
        steam_id = safe_int(row.get(id_col))
        if not steam_id or steam_id in seen:
            continue
        seen.add(steam_id)
        team = _normalize_team(row.get(team_col)) if team_col else 0
        old_rank, new_rank = ranks.get(steam_id, (0, 0))
        roster.append(
            Player(
                steam_id=steam_id,
                name=safe_str(row.get(name_col)) if name_col else "",
                team={Team.CT.value: "CT", Team.TERRORIST.value: "T"}.get(team, ""),
                rank_number_old=old_rank,
                rank_number_new=new_rank,
            )
        )
    return roster


def build_heatmap_points(kills_df: pd.DataFrame) -> list[dict]:
    """Attacker and victim positions of every kill."""
    if kills_df is None or kills_df.empty:
        return []
    round_col = find_column(kills_df, ROUND_COLUMNS)
    attacker_col = find_column(kills_df, ATTACKER_COLUMNS)
    victim_col = find_column(kills_df, VICTIM_COLUMNS)

    points = []
    for row in kills_df.to_dict("records"):
        points.append(
            {
                "tick": safe_int(row.get("tick")),
                "round": safe_int(row.get(round_col)) if round_col else 0,
                "attacker_steam_id": safe_int(row.get(attacker_col)) if attacker_col else 0,
                "victim_steam_id": safe_int(row.get(victim_col)) if victim_col else 0,
                "attacker_x": safe_float(row.get("attacker_X")),
                "attacker_y": safe_float(row.get("attacker_Y")),
                "victim_x": safe_float(row.get("user_X")),
                "victim_y": safe_float(row.get("user_Y")),
            }
        )
    return points


def build_position_samples(ticks_df: pd.DataFrame) -> list[dict]:
    """Per-player positions from sampled ticks."""
    if ticks_df is None or ticks_df.empty:
        return []
    id_col = find_column(ticks_df, ["steamid", "steam_id"])
    samples = []
    for row in ticks_df.to_dict("records"):
        samples.append(
            {
                "tick": safe_int(row.get("tick")),
                "steam_id": safe_int(row.get(id_col)) if id_col else 0,
                "x": safe_float(row.get("X")),
                "y": safe_float(row.get("Y")),
                "z": safe_float(row.get("Z")),
            }
        )
    return samples


# =============================================================================
# demoparser2 backed analyzer
# =============================================================================


class DemoFileAnalyzer:
    """
    ReplayAnalyzer reading demo files with demoparser2.

    Example:
        >>> analyzer = DemoFileAnalyzer()
        >>> demo = analyzer.parse_header(Path("match.dem"))
        >>> demo = analyzer.analyze(demo, AnalysisMode.FULL, 76561198000000000)
    """

    def __init__(self, position_sample_interval_ticks: int = 64):
        self.position_sample_interval_ticks = max(1, position_sample_interval_ticks)

    def _open(self, path: Path) -> Demoparser2:
        if not DEMOPARSER2_AVAILABLE:
            raise ImportError("demoparser2 is required. Install with: pip install demoparser2")
        if not path.exists():
            raise ReplayParseError(f"Demo file not found: {path}")
        return Demoparser2(str(path))

    def parse_header(self, path: Path) -> Demo | None:
        """
        Parse only the header of a demo file.

        Returns:
            A header-only Demo, or None if the file cannot be parsed
        """
        path = Path(path)
        try:
            parser = self._open(path)
            header = parser.parse_header()
            if not isinstance(header, dict):
                raise ReplayParseError("header is not a mapping")

            stat = path.stat()
            server_name = safe_str(header.get("server_name"))
            client_name = safe_str(header.get("client_name"))
            return Demo(
                id=compute_fingerprint(path),
                name=path.name,
                path=str(path),
                date=datetime.fromtimestamp(stat.st_mtime),
                map_name=safe_str(header.get("map_name"), default="unknown"),
                source=detect_source(server_name, path.name),
                type=detect_demo_type(client_name),
                server_name=server_name,
                client_name=client_name,
                tickrate=safe_float(header.get("tickrate"), default=DEFAULT_TICKRATE),
                duration=safe_float(header.get("playback_time")),
            )
        except ImportError:
            raise
        except Exception as e:
            logger.warning(f"Failed to parse header of {path.name}: {e}")
            return None

    def _parse_event_safe(
        self,
        parser: Demoparser2,
        event_name: str,
        player_props: list[str] | None = None,
        other_props: list[str] | None = None,
    ) -> pd.DataFrame:
        """Safely parse an event, returning empty DataFrame on failure."""
        try:
            kwargs = {}
            if player_props:
                kwargs["player"] = player_props
            if other_props:
                kwargs["other"] = other_props

            df = parser.parse_event(event_name, **kwargs)
            if df is not None and not df.empty:
                logger.debug(f"Parsed {len(df)} {event_name} events")
                return df
        except Exception as e:
            logger.debug(f"Could not parse {event_name}: {e}")
        return pd.DataFrame()

    def _parse_ticks_safe(self, parser: Demoparser2, props: list[str], ticks: list[int]) -> pd.DataFrame:
        if not ticks:
            return pd.DataFrame()
        try:
            df = parser.parse_ticks(props, ticks=ticks)
            return df if df is not None else pd.DataFrame()
        except Exception as e:
            logger.debug(f"Could not parse ticks {props}: {e}")
            return pd.DataFrame()

    @timed
    def analyze(self, demo: Demo, mode: AnalysisMode, account_steam_id: int) -> Demo:
        """
        Run one analysis pass over a demo.

        Returns:
            An enriched copy of the demo

        Raises:
            ReplayParseError: If the file is missing or cannot be decoded
        """
        path = Path(demo.path)
        try:
            parser = self._open(path)
        except ReplayParseError:
            raise
        except ImportError:
            raise
        except Exception as e:
            raise ReplayParseError(f"Cannot open {path.name}: {e}") from e

        result = copy.deepcopy(demo)
        logger.info(f"Running {mode.value} analysis of {demo.name}")

        try:
            if mode == AnalysisMode.FULL:
                self._analyze_full(parser, result, account_steam_id)
            elif mode == AnalysisMode.PLAYER_POSITION:
                self._analyze_positions(parser, result)
            elif mode == AnalysisMode.HEATMAP:
                self._analyze_heatmap(parser, result)
        except ReplayParseError:
            raise
        except Exception as e:
            raise ReplayParseError(f"Failed to analyze {path.name}: {e}") from e

        return result

    def _last_tick(self, parser: Demoparser2) -> int:
        rounds_df = self._parse_event_safe(parser, "round_end")
        if rounds_df.empty or "tick" not in rounds_df.columns:
            return 0
        return safe_int(rounds_df["tick"].max())

    def _analyze_full(self, parser: Demoparser2, demo: Demo, steam_id: int) -> None:
        kills_df = self._parse_event_safe(
            parser, "player_death", other_props=["total_rounds_played"]
        )
        damages_df = self._parse_event_safe(parser, "player_hurt")
        mvps_df = self._parse_event_safe(parser, "round_mvp")
        planted_df = self._parse_event_safe(parser, "bomb_planted", other_props=["total_rounds_played"])
        defused_df = self._parse_event_safe(parser, "bomb_defused")
        exploded_df = self._parse_event_safe(parser, "bomb_exploded", other_props=["total_rounds_played"])
        rounds_df = self._parse_event_safe(parser, "round_end")

        round_ticks = (
            sorted(rounds_df["tick"].map(safe_int).unique().tolist())
            if not rounds_df.empty and "tick" in rounds_df.columns
            else []
        )

        try:
            players_df = parser.parse_player_info()
        except Exception as e:
            logger.debug(f"Could not parse player info: {e}")
            players_df = pd.DataFrame()

        rank_ticks = [round_ticks[0], round_ticks[-1]] if round_ticks else []
        ranks_df = self._parse_ticks_safe(parser, ["rank"], rank_ticks)
        demo.players = build_roster(players_df, ranks_df)

        if steam_id and demo.has_player(steam_id):
            counters = compute_account_counters(
                steam_id, kills_df, damages_df, mvps_df, planted_df, defused_df, exploded_df
            )
            for name, value in counters.items():
                setattr(demo, name, value)
            teams_df = self._parse_ticks_safe(parser, ["team_num"], round_ticks)
            demo.match_verdict = compute_match_verdict(rounds_df, teams_df, steam_id)

        logger.info(f"Full analysis of {demo.name}: {len(demo.players)} players, {len(round_ticks)} rounds")

    def _analyze_positions(self, parser: Demoparser2, demo: Demo) -> None:
        last_tick = self._last_tick(parser)
        ticks = list(range(0, last_tick + 1, self.position_sample_interval_ticks))
        ticks_df = self._parse_ticks_safe(parser, ["X", "Y", "Z"], ticks)
        demo.player_positions = build_position_samples(ticks_df)
        logger.info(f"Collected {len(demo.player_positions)} position samples for {demo.name}")

    def _analyze_heatmap(self, parser: Demoparser2, demo: Demo) -> None:
        kills_df = self._parse_event_safe(
            parser, "player_death", player_props=["X", "Y"], other_props=["total_rounds_played"]
        )
        demo.heatmap_points = build_heatmap_points(kills_df)
        logger.info(f"Collected {len(demo.heatmap_points)} heatmap points for {demo.name}")
