"""Tests for the command line interface."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from conftest import ACCOUNT, make_demo

from demoshelf import __version__
from demoshelf.cli import app
from demoshelf.core.models import Player
from demoshelf.infra.cache import DemoCache

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for var in ("DEMOSHELF_CACHE_DIR", "DEMOSHELF_ACCOUNT", "DEMOSHELF_FOLDERS", "DEMOSHELF_BACKUP_FILE"):
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / "demoshelf.json"
    path.write_text(
        json.dumps(
            {
                "cache": {"directory": str(tmp_path / "cache")},
                "library": {"folders": [str(tmp_path / "demos")]},
                "stats": {"selected_account_steam_id": ACCOUNT},
            }
        )
    )
    return path


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("demoshelf.cli.configure_logging"):
        yield


def invoke(config_file, *args):
    return runner.invoke(app, ["--config", str(config_file), *args])


class TestBasics:
    """Version and informational commands."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_info(self, config_file):
        result = invoke(config_file, "info")
        assert result.exit_code == 0
        assert "Library Folder" in result.output

    def test_init_config(self, tmp_path):
        target = tmp_path / "new.yaml"
        result = runner.invoke(app, ["init-config", str(target)])
        assert result.exit_code == 0
        assert target.exists()

        again = runner.invoke(app, ["init-config", str(target)])
        assert again.exit_code == 1


class TestCacheCommands:
    """Commands that read or write the cache."""

    def test_cache_info(self, config_file, tmp_path):
        DemoCache(tmp_path / "cache").put(make_demo("abc"))
        result = invoke(config_file, "cache-info")
        assert result.exit_code == 0
        assert "total_entries" in result.output

    def test_cache_info_entries(self, config_file, tmp_path):
        DemoCache(tmp_path / "cache").put(make_demo("abc123", path="/demos/m.dem"))
        result = invoke(config_file, "cache-info", "--entries")
        assert result.exit_code == 0
        assert "abc123" in result.output
        assert "/demos/m.dem" in result.output

    def test_export_then_import_backup(self, config_file, tmp_path):
        DemoCache(tmp_path / "cache").put(make_demo("abc", comment="hello"))
        backup = tmp_path / "backup.json"

        result = invoke(config_file, "export-backup", str(backup))
        assert result.exit_code == 0
        assert json.loads(backup.read_text())[0]["comment"] == "hello"

        DemoCache(tmp_path / "cache").clear()
        result = invoke(config_file, "import-backup", str(backup))
        assert result.exit_code == 0
        assert DemoCache(tmp_path / "cache").list_demos()[0].comment == "hello"

    def test_import_invalid_backup(self, config_file, tmp_path):
        backup = tmp_path / "backup.json"
        backup.write_text('{"not": "a list"}')
        result = invoke(config_file, "import-backup", str(backup))
        assert result.exit_code == 1

    def test_stats(self, config_file, tmp_path):
        players = [Player(steam_id=ACCOUNT, rank_number_old=5, rank_number_new=7)]
        DemoCache(tmp_path / "cache").put(
            make_demo("abc", players=players, map_name="de_dust2", match_verdict=1, kill_count=10, death_count=5)
        )
        result = invoke(config_file, "stats")
        assert result.exit_code == 0
        assert "Gold Nova I" in result.output
        assert "Dust2" in result.output

    def test_scan_missing_folder(self, config_file):
        result = invoke(config_file, "scan")
        assert result.exit_code == 0
        assert "Demos (0)" in result.output
