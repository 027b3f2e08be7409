"""Shared fixtures: a fake replay analyzer and demo builders."""

from __future__ import annotations

import copy
from datetime import datetime
from pathlib import Path

import pytest

from demoshelf.core.config import AccountContext
from demoshelf.core.constants import AnalysisMode, DemoType
from demoshelf.core.models import Demo, Player
from demoshelf.core.parser import ReplayParseError
from demoshelf.infra.cache import DemoCache

ACCOUNT = 76561198000000001
OTHER = 76561198000000002


def make_demo(
    demo_id: str,
    path: str = "",
    date: datetime | None = None,
    players: list[Player] | None = None,
    **fields,
) -> Demo:
    """Build a demo record without touching the filesystem."""
    path = path or f"/demos/{demo_id}.dem"
    return Demo(
        id=demo_id,
        name=Path(path).name,
        path=path,
        date=date or datetime(2017, 1, 1, 12, 0, 0),
        players=players if players is not None else [],
        **fields,
    )


class FakeAnalyzer:
    """
    ReplayAnalyzer keyed on file content.

    Every file whose first line is ``id:<value>`` parses to a demo with that
    id; anything else fails to parse.
    """

    def __init__(self, demo_type: DemoType = DemoType.GOTV):
        self.demo_type = demo_type
        self.analyze_calls: list[tuple[str, AnalysisMode, int]] = []
        self.fail_ids: set[str] = set()

    def parse_header(self, path: Path) -> Demo | None:
        path = Path(path)
        try:
            first_line = path.read_text().splitlines()[0]
        except (OSError, IndexError, UnicodeDecodeError):
            return None
        if not first_line.startswith("id:"):
            return None
        return Demo(
            id=first_line[3:],
            name=path.name,
            path=str(path),
            map_name="de_dust2",
            type=self.demo_type,
        )

    def analyze(self, demo: Demo, mode: AnalysisMode, account_steam_id: int) -> Demo:
        self.analyze_calls.append((demo.id, mode, account_steam_id))
        if not Path(demo.path).exists():
            raise ReplayParseError(f"Demo file not found: {demo.path}")
        if demo.id in self.fail_ids:
            raise ReplayParseError(f"Corrupted demo {demo.id}")

        result = copy.deepcopy(demo)
        if mode == AnalysisMode.FULL:
            result.players = [Player(steam_id=account_steam_id, name="me", rank_number_new=7)]
            result.kill_count = 20
        elif mode == AnalysisMode.PLAYER_POSITION:
            result.player_positions = [{"tick": 0, "steam_id": account_steam_id, "x": 1.0, "y": 2.0, "z": 0.0}]
        elif mode == AnalysisMode.HEATMAP:
            result.heatmap_points = [{"tick": 10, "attacker_x": 1.0, "attacker_y": 1.0}]
        return result


def write_demo_file(path: Path, demo_id: str) -> Path:
    """Create a file the fake analyzer parses to the given id."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"id:{demo_id}\n")
    return path


@pytest.fixture
def cache(tmp_path):
    return DemoCache(tmp_path / "cache")


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def context():
    return AccountContext(steam_id=ACCOUNT)
