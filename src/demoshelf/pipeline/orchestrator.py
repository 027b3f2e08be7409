"""
Demo Analysis Orchestrator - decides between cached records and fresh analysis.

Handles:
- Header loading with cache short-circuit (moved/renamed files keep their data)
- Analysis dispatch in exactly one mode per call
- Cache eviction for demos whose file vanished
- Persisting comment, status and source edits
- Sequential batch analysis with cancellation between items
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

from demoshelf.core.config import AccountContext
from demoshelf.core.constants import AnalysisMode, DemoSource
from demoshelf.core.models import Demo
from demoshelf.core.parser import ReplayAnalyzer
from demoshelf.infra.cache import FingerprintCache

logger = logging.getLogger(__name__)


@dataclass
class DemoAnalysisResult:
    """Result of a single demo analysis within a batch."""

    demo_id: str
    demo_path: str
    success: bool
    duration_seconds: float
    error_message: str | None = None


@dataclass
class BatchAnalysisResult:
    """Result of a batch analysis."""

    total_demos: int
    successful: int = 0
    failed: int = 0
    cancelled: bool = False
    demos: list[Demo] = field(default_factory=list)
    results: list[DemoAnalysisResult] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_demos == 0:
            return 0.0
        return round((self.successful / self.total_demos) * 100, 1)


class AnalysisOrchestrator:
    """
    Coordinates the replay analyzer and the demo cache.

    At most one analysis runs per demo identity at a time; analyses of
    different demos may run concurrently.
    """

    def __init__(self, analyzer: ReplayAnalyzer, cache: FingerprintCache, context: AccountContext):
        self.analyzer = analyzer
        self.cache = cache
        self.context = context
        # Per demo id: the lock and the number of tasks holding or awaiting it
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def _demo_lock(self, demo: Demo) -> AsyncIterator[None]:
        lock, users = self._locks.get(demo.id, (asyncio.Lock(), 0))
        self._locks[demo.id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[demo.id]
            if users == 1:
                del self._locks[demo.id]
            else:
                self._locks[demo.id] = (lock, users - 1)

    async def get_header(self, path: str | Path) -> Demo | None:
        """
        Load a demo by header, preferring its cached record.

        Returns:
            The cached record relocated to path, the header-only record if
            the demo is not cached, or None if the header cannot be parsed
        """
        path = Path(path)
        demo = await asyncio.to_thread(self.analyzer.parse_header, path)
        if demo is None:
            return None

        if await asyncio.to_thread(self.cache.has, demo):
            cached = await asyncio.to_thread(self.cache.get, demo)
            if cached is not None:
                # The file may have been renamed or moved since it was cached
                cached.relocate(path)
                return cached
        return demo

    async def analyze(self, demo: Demo, mode: AnalysisMode, write_back: bool = True) -> Demo:
        """
        Run one analysis pass over a demo.

        If the file is gone from demo.path, the cached record is evicted
        before the analyzer runs, so a stale record is never served.

        Args:
            demo: Demo to analyze
            mode: The single analysis mode of this call
            write_back: Persist the enriched record to the cache

        Returns:
            The enriched demo

        Raises:
            ReplayParseError: If the analyzer cannot read the file
        """
        mode = AnalysisMode(mode)
        async with self._demo_lock(demo):
            if not Path(demo.path).exists():
                logger.warning(f"{demo.name} not found at {demo.path}, evicting cached record")
                await asyncio.to_thread(self.cache.remove, demo)

            start = time.perf_counter()
            result = await asyncio.to_thread(
                self.analyzer.analyze, demo, mode, self.context.steam_id
            )
            logger.info(
                f"Analyzed {demo.name} ({mode.value}) in {time.perf_counter() - start:.2f}s"
            )

            if write_back:
                await asyncio.to_thread(self.cache.put, result)
            return result

    async def analyze_many(
        self,
        demos: Iterable[Demo],
        mode: AnalysisMode,
        write_back: bool = True,
        cancel: asyncio.Event | None = None,
    ) -> BatchAnalysisResult:
        """
        Analyze demos one after another.

        A failing demo is recorded and skipped. When cancel is set, the demo
        in progress finishes and the remaining ones are abandoned.
        """
        demos = list(demos)
        batch = BatchAnalysisResult(total_demos=len(demos))

        for demo in demos:
            if cancel is not None and cancel.is_set():
                logger.info(f"Batch analysis cancelled after {len(batch.results)} demos")
                batch.cancelled = True
                break

            start = time.perf_counter()
            try:
                analyzed = await self.analyze(demo, mode, write_back=write_back)
            except Exception as e:
                logger.warning(f"Analysis of {demo.name} failed: {e}")
                batch.failed += 1
                batch.results.append(
                    DemoAnalysisResult(
                        demo_id=demo.id,
                        demo_path=demo.path,
                        success=False,
                        duration_seconds=time.perf_counter() - start,
                        error_message=str(e),
                    )
                )
                continue

            batch.successful += 1
            batch.demos.append(analyzed)
            batch.results.append(
                DemoAnalysisResult(
                    demo_id=demo.id,
                    demo_path=demo.path,
                    success=True,
                    duration_seconds=time.perf_counter() - start,
                )
            )

        return batch

    async def save_comment(self, demo: Demo, comment: str) -> Demo:
        """Set the comment of a demo and persist it."""
        demo.comment = comment
        await asyncio.to_thread(self.cache.put, demo)
        return demo

    async def save_status(self, demo: Demo, status: str) -> Demo:
        """Set the status of a demo and persist it."""
        demo.status = status
        await asyncio.to_thread(self.cache.put, demo)
        return demo

    async def set_source(self, demos: Iterable[Demo], source: str | DemoSource) -> list[Demo]:
        """
        Reassign the source of every non-POV demo and persist each one.

        Unknown source names resolve to the default source.

        Returns:
            The demos that were updated
        """
        new_source = DemoSource.from_name(str(source))
        updated = []
        for demo in demos:
            if demo.is_pov:
                continue
            demo.source = new_source
            await asyncio.to_thread(self.cache.put, demo)
            updated.append(demo)

        logger.info(f"Set source {new_source.value} on {len(updated)} demos")
        return updated
