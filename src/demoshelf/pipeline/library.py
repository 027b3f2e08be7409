"""Scans demo folders into a deduplicated list of demo records."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from demoshelf.core.constants import DEMO_EXTENSION
from demoshelf.core.models import Demo
from demoshelf.pipeline.orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)


class LibraryScanner:
    """Loads the headers of every demo in a set of folders (non-recursive)."""

    def __init__(self, orchestrator: AnalysisOrchestrator, extension: str = DEMO_EXTENSION):
        self.orchestrator = orchestrator
        self.extension = extension.lower()

    def list_demo_files(self, folder: Path) -> list[Path]:
        """Demo files directly inside a folder, in name order."""
        return sorted(
            p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == self.extension
        )

    async def scan_headers(
        self, folders: Iterable[str | Path], cancel: asyncio.Event | None = None
    ) -> list[Demo]:
        """
        Load demo headers from folders.

        Missing folders and unparsable files are skipped. When the same demo
        shows up more than once, the first one found is kept.
        """
        demos: list[Demo] = []
        seen: set[str] = set()

        for folder in folders:
            folder = Path(folder)
            if not folder.is_dir():
                logger.debug(f"Skipping missing folder {folder}")
                continue

            for file_path in self.list_demo_files(folder):
                if cancel is not None and cancel.is_set():
                    logger.info(f"Scan cancelled with {len(demos)} demos loaded")
                    return demos

                demo = await self.orchestrator.get_header(file_path)
                if demo is None or demo.id in seen:
                    continue
                seen.add(demo.id)
                demos.append(demo)

        logger.info(f"Scanned {len(demos)} demos")
        return demos
