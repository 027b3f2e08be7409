"""Tests for JSON backups of the demo library."""

from __future__ import annotations

import json

import pytest

from conftest import ACCOUNT, make_demo

from demoshelf.core.constants import DemoSource
from demoshelf.core.models import Player
from demoshelf.pipeline.backup import BackupCodec, decode_backup


class TestDecodeBackup:
    """Lenient decoding."""

    def test_skips_non_objects(self):
        demos = decode_backup(json.dumps([{"id": "a"}, 3, "text", None, {"id": "b"}]))
        assert [d.id for d in demos] == ["a", "b"]

    def test_rejects_non_array(self):
        with pytest.raises(ValueError):
            decode_backup(json.dumps({"id": "a"}))

    def test_rejects_invalid_json(self):
        with pytest.raises(ValueError):
            decode_backup("[{")


class TestBackupCodec:
    """Import and export."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        assert await BackupCodec().import_backup(tmp_path / "nope.json") == []

    @pytest.mark.asyncio
    async def test_export_then_import(self, tmp_path):
        demos = [
            make_demo(
                "a",
                players=[Player(steam_id=ACCOUNT, rank_number_new=9)],
                comment="first",
                source=DemoSource.ESEA,
            ),
            make_demo("b", status="watched", match_verdict=1),
        ]
        path = tmp_path / "backup.json"

        count = await BackupCodec().export_backup(demos, path)
        restored = await BackupCodec().import_backup(path)

        assert count == 2
        assert restored == demos
        assert restored[0].comment == "first"
        assert restored[0].source == DemoSource.ESEA
        assert restored[0].players[0].rank_number_new == 9
        assert restored[1].status == "watched"
        assert restored[1].match_verdict == 1

    @pytest.mark.asyncio
    async def test_export_writes_json_array(self, tmp_path):
        path = tmp_path / "backup.json"
        await BackupCodec().export_backup([make_demo("a")], path)

        data = json.loads(path.read_text())
        assert isinstance(data, list)
        assert data[0]["id"] == "a"

    @pytest.mark.asyncio
    async def test_import_old_format_with_missing_fields(self, tmp_path):
        path = tmp_path / "backup.json"
        path.write_text(json.dumps([{"id": "a", "comment": "old", "unknown_field": True}]))

        restored = await BackupCodec().import_backup(path)
        assert restored[0].comment == "old"
        assert restored[0].status == "None"
