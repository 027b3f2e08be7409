"""
Portable JSON backups of the demo library.

A backup is a JSON array of demo objects. Decoding is lenient so backups
written by older or newer versions still restore.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable
from pathlib import Path

from demoshelf.core.models import Demo

logger = logging.getLogger(__name__)


def decode_backup(text: str) -> list[Demo]:
    """Decode a backup payload, skipping entries that are not objects."""
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Backup must contain a JSON array of demos")
    return [Demo.from_dict(item) for item in data if isinstance(item, dict)]


class BackupCodec:
    """Restores and writes demo library backups."""

    async def import_backup(self, json_path: str | Path) -> list[Demo]:
        """
        Restore demos from a backup file.

        Returns:
            The restored demos, or an empty list if the file does not exist

        Raises:
            ValueError: If the file is not a JSON array
        """
        json_path = Path(json_path)
        if not json_path.exists():
            logger.info(f"No backup at {json_path}")
            return []

        text = await asyncio.to_thread(json_path.read_text, encoding="utf-8")
        demos = await asyncio.to_thread(decode_backup, text)
        logger.info(f"Restored {len(demos)} demos from {json_path.name}")
        return demos

    async def export_backup(self, demos: Iterable[Demo], json_path: str | Path) -> int:
        """
        Write demos to a backup file.

        Returns:
            Number of demos written
        """
        json_path = Path(json_path)
        payload = [demo.to_dict() for demo in demos]
        text = json.dumps(payload, indent=2)
        await asyncio.to_thread(json_path.write_text, text, encoding="utf-8")
        logger.info(f"Wrote {len(payload)} demos to {json_path.name}")
        return len(payload)
