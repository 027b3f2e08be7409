"""Tests for the demo data model: identity, roster helpers, lenient dict conversion."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import ACCOUNT, OTHER, make_demo

from demoshelf.core.constants import DemoSource, DemoType
from demoshelf.core.models import ACCOUNT_COUNTER_FIELDS, Demo, Player


class TestDemoIdentity:
    """Demos compare and hash by fingerprint only."""

    def test_equal_when_ids_match(self):
        a = make_demo("abc", path="/one/match.dem", comment="first")
        b = make_demo("abc", path="/two/renamed.dem", comment="second")
        assert a == b
        assert hash(a) == hash(b)

    def test_not_equal_when_ids_differ(self):
        assert make_demo("abc") != make_demo("def")

    def test_set_deduplicates_by_id(self):
        demos = {make_demo("abc", path="/a.dem"), make_demo("abc", path="/b.dem"), make_demo("x")}
        assert len(demos) == 2

    def test_comparison_with_other_types(self):
        assert make_demo("abc") != "abc"


class TestDemoHelpers:
    """Roster lookup and relocation."""

    def test_get_player(self):
        me = Player(steam_id=ACCOUNT, name="me")
        demo = make_demo("abc", players=[me, Player(steam_id=OTHER)])
        assert demo.get_player(ACCOUNT) is me
        assert demo.has_player(OTHER)
        assert demo.get_player(1) is None
        assert not demo.has_player(1)

    def test_relocate_updates_name_and_path(self):
        demo = make_demo("abc", path="/old/match.dem")
        demo.relocate("/new/place/renamed.dem")
        assert demo.path == "/new/place/renamed.dem"
        assert demo.name == "renamed.dem"

    def test_is_pov(self):
        assert make_demo("a", type=DemoType.POV).is_pov
        assert not make_demo("b").is_pov


class TestDemoSerialization:
    """to_dict/from_dict conversion."""

    def test_round_trip(self):
        demo = make_demo(
            "abc",
            date=datetime(2017, 3, 4, 5, 6, 7),
            players=[Player(steam_id=ACCOUNT, name="me", team="CT", is_vac_banned=True, rank_number_old=3)],
            map_name="de_mirage",
            source=DemoSource.ESEA,
            comment="nice clutch",
            status="watched",
            kill_count=21,
            match_verdict=-1,
            heatmap_points=[{"tick": 1}],
        )
        restored = Demo.from_dict(demo.to_dict())

        assert restored.id == "abc"
        assert restored.date == demo.date
        assert restored.source == DemoSource.ESEA
        assert restored.comment == "nice clutch"
        assert restored.status == "watched"
        assert restored.kill_count == 21
        assert restored.match_verdict == -1
        assert restored.players == demo.players
        assert restored.heatmap_points == [{"tick": 1}]

    def test_to_dict_contains_every_counter(self):
        data = make_demo("abc").to_dict()
        for name in ACCOUNT_COUNTER_FIELDS:
            assert data[name] == 0

    def test_from_dict_missing_keys_use_defaults(self):
        demo = Demo.from_dict({"id": "abc"})
        assert demo.id == "abc"
        assert demo.status == "None"
        assert demo.comment == ""
        assert demo.players == []
        assert demo.source == DemoSource.VALVE
        assert demo.type == DemoType.GOTV
        assert demo.date == datetime.fromtimestamp(0)

    def test_from_dict_ignores_unknown_keys(self):
        demo = Demo.from_dict({"id": "abc", "some_future_field": 42})
        assert demo.id == "abc"

    def test_from_dict_malformed_values_fall_back(self):
        demo = Demo.from_dict(
            {
                "id": "abc",
                "date": "not a date",
                "kill_count": "lots",
                "players": "nobody",
                "match_verdict": 7,
                "source": "unknown-league",
                "heatmap_points": [{"tick": 1}, "junk"],
            }
        )
        assert demo.date == datetime.fromtimestamp(0)
        assert demo.kill_count == 0
        assert demo.players == []
        assert demo.match_verdict == 0
        assert demo.source == DemoSource.VALVE
        assert demo.heatmap_points == [{"tick": 1}]

    def test_from_dict_skips_non_dict_players(self):
        demo = Demo.from_dict({"id": "abc", "players": [{"steam_id": "76561198000000001"}, 5]})
        assert [p.steam_id for p in demo.players] == [ACCOUNT]

    def test_player_from_dict_parses_string_flags(self):
        player = Player.from_dict({"steam_id": 1, "is_vac_banned": "true", "is_overwatch_banned": "no"})
        assert player.is_vac_banned is True
        assert player.is_overwatch_banned is False

    @pytest.mark.parametrize("verdict, expected", [(-1, -1), (0, 0), (1, 1), (2, 0), (-5, 0), ("1", 1), ("win", 0)])
    def test_from_dict_verdict_outside_range_is_draw(self, verdict, expected):
        assert Demo.from_dict({"id": "abc", "match_verdict": verdict}).match_verdict == expected

    @pytest.mark.parametrize("source", [3, {"name": "esea"}, ["faceit"], True])
    def test_from_dict_non_string_source_uses_default(self, source):
        assert Demo.from_dict({"id": "abc", "source": source}).source == DemoSource.VALVE

    def test_from_dict_aware_date_becomes_naive(self):
        demo = Demo.from_dict({"id": "abc", "date": "2017-06-01T00:00:00Z"})
        assert demo.date.tzinfo is None
        assert demo.date == datetime(2017, 6, 1, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
