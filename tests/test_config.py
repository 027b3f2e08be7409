"""Tests for configuration loading, merging and logging setup."""

from __future__ import annotations

import json
import logging
import logging.handlers
import os
from unittest.mock import patch

import pytest

from demoshelf.core.config import (
    AccountContext,
    DemoShelfConfig,
    LoggingConfig,
    configure_logging,
    dict_to_config,
    generate_default_config,
    load_config,
    load_config_file,
    load_env_config,
    merge_configs,
    save_config,
)
from demoshelf.core.ranks import RANK_CATALOG


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "DEMOSHELF_LOG_LEVEL",
        "DEMOSHELF_LOG_FILE",
        "DEMOSHELF_CACHE_DIR",
        "DEMOSHELF_BACKUP_FILE",
        "DEMOSHELF_ACCOUNT",
        "DEMOSHELF_FOLDERS",
        "STEAM_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)


class TestConfigFiles:
    """Loading from YAML, TOML and JSON files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "demoshelf.yaml"
        path.write_text("stats:\n  selected_account_steam_id: 76561198000000001\nsteam:\n  batch_size: 50\n")

        config = load_config(path, include_env=False)
        assert config.stats.selected_account_steam_id == 76561198000000001
        assert config.steam.batch_size == 50

    def test_toml(self, tmp_path):
        path = tmp_path / "demoshelf.toml"
        path.write_text('[library]\nfolders = ["/a", "/b"]\n')

        config = load_config(path, include_env=False)
        assert config.library.folders == ["/a", "/b"]

    def test_json(self, tmp_path):
        path = tmp_path / "demoshelf.json"
        path.write_text(json.dumps({"cache": {"directory": "/tmp/cache"}}))

        assert load_config(path, include_env=False).cache.directory == "/tmp/cache"

    def test_missing_file_is_empty(self, tmp_path):
        assert load_config_file(tmp_path / "nope.yaml") == {}

    def test_unknown_extension_is_empty(self, tmp_path):
        path = tmp_path / "demoshelf.ini"
        path.write_text("[x]")
        assert load_config_file(path) == {}

    def test_unknown_keys_ignored(self):
        config = dict_to_config({"steam": {"api_key": "k", "bogus": 1}, "nonsense": {"a": 1}})
        assert config.steam.api_key == "k"
        assert not hasattr(config.steam, "bogus")


class TestEnvConfig:
    """Environment variable overrides."""

    def test_env_mappings(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DEMOSHELF_ACCOUNT", "76561198000000001")
        monkeypatch.setenv("STEAM_API_KEY", "secret")
        monkeypatch.setenv("DEMOSHELF_FOLDERS", f"/a{os.pathsep}/b")

        env = load_env_config()
        assert env["stats"]["selected_account_steam_id"] == 76561198000000001
        assert env["steam"]["api_key"] == "secret"
        assert env["library"]["folders"] == ["/a", "/b"]

    def test_env_overrides_file(self, monkeypatch, tmp_path):
        path = tmp_path / "demoshelf.yaml"
        path.write_text("logging:\n  level: INFO\n")
        monkeypatch.setenv("DEMOSHELF_LOG_LEVEL", "DEBUG")

        assert load_config(path).logging.level == "DEBUG"

    def test_merge_is_recursive(self):
        merged = merge_configs({"steam": {"api_key": "a", "batch_size": 10}}, {"steam": {"api_key": "b"}})
        assert merged == {"steam": {"api_key": "b", "batch_size": 10}}


class TestSaveConfig:
    """Writing configuration files."""

    def test_save_and_reload_json(self, tmp_path):
        config = DemoShelfConfig()
        config.stats.selected_account_steam_id = 42
        path = tmp_path / "out.json"
        save_config(config, path)

        assert load_config(path, include_env=False).stats.selected_account_steam_id == 42

    def test_save_unknown_format(self, tmp_path):
        with pytest.raises(ValueError):
            save_config(DemoShelfConfig(), tmp_path / "out.ini")

    def test_generate_default_yaml(self, tmp_path):
        path = tmp_path / "demoshelf.yaml"
        generate_default_config(path)

        config = load_config(path, include_env=False)
        assert config.steam.batch_size == 100
        assert config.parser.position_sample_interval_ticks == 64


class TestAccountContext:
    """Explicit account context."""

    def test_from_config(self):
        config = DemoShelfConfig()
        config.stats.selected_account_steam_id = "76561198000000001"

        context = AccountContext.from_config(config)
        assert context.steam_id == 76561198000000001
        assert context.ranks == RANK_CATALOG


class TestConfigureLogging:
    """Root logger setup."""

    def test_level_and_file_handler(self, tmp_path):
        log_file = tmp_path / "demoshelf.log"
        with patch("logging.basicConfig") as basic_config:
            configure_logging(LoggingConfig(level="WARNING", file=str(log_file)))

        kwargs = basic_config.call_args.kwargs
        assert kwargs["level"] == logging.WARNING
        assert kwargs["force"] is True
        handlers = kwargs["handlers"]
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
        for handler in handlers:
            handler.close()

    def test_verbose_forces_debug(self):
        with patch("logging.basicConfig") as basic_config:
            configure_logging(LoggingConfig(level="ERROR"), verbose=True)
        assert basic_config.call_args.kwargs["level"] == logging.DEBUG

    def test_unknown_level_defaults_to_info(self):
        with patch("logging.basicConfig") as basic_config:
            configure_logging(LoggingConfig(level="CHATTY"))
        assert basic_config.call_args.kwargs["level"] == logging.INFO
