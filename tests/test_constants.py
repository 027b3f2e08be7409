"""Tests for catalogs and header-time detection helpers."""

from __future__ import annotations

import pytest

from demoshelf.core.constants import (
    DEFAULT_SOURCE,
    CompetitiveMap,
    DemoSource,
    DemoType,
    detect_demo_type,
    detect_source,
)


class TestDemoSource:
    """Source name resolution."""

    @pytest.mark.parametrize("name", ["valve", "esea", "ebot", "faceit", "cevo"])
    def test_known_names(self, name):
        assert DemoSource.from_name(name).value == name

    def test_case_and_whitespace_insensitive(self):
        assert DemoSource.from_name(" FACEIT ") == DemoSource.FACEIT

    @pytest.mark.parametrize("name", ["", None, "popflash", "123"])
    def test_unknown_names_use_default(self, name):
        assert DemoSource.from_name(name) == DEFAULT_SOURCE
        assert DEFAULT_SOURCE == DemoSource.VALVE


class TestDetectSource:
    """Source detection from server and file names."""

    def test_server_identifier(self):
        assert detect_source("FACEIT.com register to play here") == DemoSource.FACEIT
        assert detect_source("ESEA Server #12") == DemoSource.ESEA
        assert detect_source("eBot match server") == DemoSource.EBOT

    def test_filename_pattern(self):
        assert detect_source("", "esea_match_123.dem") == DemoSource.ESEA
        assert detect_source("", "match730_003.dem") == DemoSource.VALVE

    def test_server_wins_over_filename(self):
        assert detect_source("CEVO league", "faceit_123.dem") == DemoSource.CEVO

    def test_default(self):
        assert detect_source("Valve CS:GO EU West Server", "random.dem") == DemoSource.VALVE


class TestDetectDemoType:
    """GOTV vs POV detection from the recording client."""

    def test_gotv_clients(self):
        assert detect_demo_type("GOTV Demo") == DemoType.GOTV
        assert detect_demo_type("SourceTV") == DemoType.GOTV

    def test_player_client_is_pov(self):
        assert detect_demo_type("xXsniperXx") == DemoType.POV


class TestCompetitiveMap:
    """Closed map catalog."""

    def test_eight_maps(self):
        assert len(CompetitiveMap) == 8
        assert CompetitiveMap("de_cbble") == CompetitiveMap.COBBLESTONE

    def test_display_names(self):
        assert CompetitiveMap.DUST2.display_name == "Dust2"
        assert all(m.display_name for m in CompetitiveMap)

    def test_unknown_map_raises(self):
        with pytest.raises(ValueError):
            CompetitiveMap("de_vertigo")
