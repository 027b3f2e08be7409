"""
Demo Record Cache

Provides:
- File-based storage of demo records keyed by demo fingerprint
- Compressed storage (gzip JSON, one file per demo)
- An index with access times and hit/miss counters (read bookkeeping is
  flushed with the next write or an explicit flush)
- Atomic writes so a record is never partially cached

Entries are only removed explicitly (remove/clear); there is no age or
size based eviction because the cache is the authoritative store of
comments, statuses and analysis results.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from demoshelf.core.models import Demo

logger = logging.getLogger(__name__)


def get_default_cache_dir() -> Path:
    """Get the default cache directory."""
    if env_cache := os.environ.get("DEMOSHELF_CACHE_DIR"):
        return Path(env_cache)
    return Path.home() / ".demoshelf" / "cache"


class FingerprintCache(Protocol):
    """Store of demo records keyed by demo fingerprint."""

    def has(self, demo: Demo) -> bool: ...

    def get(self, demo: Demo) -> Demo | None: ...

    def put(self, demo: Demo) -> None: ...

    def remove(self, demo: Demo) -> None: ...

    def list_demos(self) -> list[Demo]: ...


@dataclass
class CacheEntry:
    """Index entry of a cached demo record."""

    key: str
    file_path: str
    created_at: datetime
    accessed_at: datetime

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "file_path": self.file_path,
            "created_at": self.created_at.isoformat(),
            "accessed_at": self.accessed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> CacheEntry:
        return cls(
            key=data["key"],
            file_path=data.get("file_path", ""),
            created_at=datetime.fromisoformat(data["created_at"]),
            accessed_at=datetime.fromisoformat(data["accessed_at"]),
        )


@dataclass
class CacheStats:
    """Cache statistics."""

    total_entries: int
    total_size_bytes: int
    oldest_entry: datetime | None
    newest_entry: datetime | None
    hit_count: int = 0
    miss_count: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hit_count + self.miss_count
        return (self.hit_count / total * 100) if total > 0 else 0.0

    @property
    def size_mb(self) -> float:
        return self.total_size_bytes / (1024 * 1024)

    def to_dict(self) -> dict:
        return {
            "total_entries": self.total_entries,
            "total_size_mb": round(self.size_mb, 2),
            "oldest_entry": self.oldest_entry.isoformat() if self.oldest_entry else None,
            "newest_entry": self.newest_entry.isoformat() if self.newest_entry else None,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "hit_rate_pct": round(self.hit_rate, 1),
        }


class DemoCache:
    """
    File-based cache of demo records.

    Features:
    - Fingerprint-addressed storage (cache key = demo id)
    - Compressed storage (gzip)
    - Thread-safe operations (one re-entrant lock per cache instance)
    """

    def __init__(self, cache_dir: Path | None = None):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory for cache storage
        """
        self.cache_dir = Path(cache_dir) if cache_dir else get_default_cache_dir()
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.data_dir = self.cache_dir / "data"
        self.data_dir.mkdir(exist_ok=True)

        self.index_path = self.cache_dir / "index.json"
        self._index: dict[str, CacheEntry] = {}

        self._hit_count = 0
        self._miss_count = 0
        self._dirty = False
        self._lock = threading.RLock()

        self._load_index()

    def _load_index(self):
        """Load cache index from disk."""
        if self.index_path.exists():
            try:
                with open(self.index_path) as f:
                    data = json.load(f)
                self._index = {
                    k: CacheEntry.from_dict(v) for k, v in data.get("entries", {}).items()
                }
                self._hit_count = data.get("hit_count", 0)
                self._miss_count = data.get("miss_count", 0)
                logger.debug(f"Loaded cache index with {len(self._index)} entries")
            except Exception as e:
                logger.warning(f"Failed to load cache index: {e}")
                self._index = {}

    def _save_index(self):
        """Save cache index to disk."""
        data = {
            "entries": {k: v.to_dict() for k, v in self._index.items()},
            "hit_count": self._hit_count,
            "miss_count": self._miss_count,
        }
        try:
            self._atomic_write(self.index_path, json.dumps(data, indent=2).encode())
            self._dirty = False
        except OSError as e:
            logger.warning(f"Failed to save cache index: {e}")

    def _atomic_write(self, target: Path, payload: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _get_data_path(self, key: str) -> Path:
        """Get path for cached data file."""
        return self.data_dir / f"{key}.json.gz"

    def _read(self, key: str) -> Demo | None:
        with gzip.open(self._get_data_path(key), "rt") as f:
            return Demo.from_dict(json.load(f))

    def has(self, demo: Demo) -> bool:
        """Check if a record is cached for a demo."""
        with self._lock:
            return demo.id in self._index and self._get_data_path(demo.id).exists()

    def get(self, demo: Demo) -> Demo | None:
        """
        Get the cached record of a demo.

        The returned record carries the name and path of the demo passed in,
        so a moved or renamed file keeps its cached data.

        Returns:
            Cached Demo or None if not cached
        """
        with self._lock:
            if demo.id not in self._index:
                self._miss_count += 1
                self._dirty = True
                return None

            entry = self._index[demo.id]
            if not self._get_data_path(demo.id).exists():
                # Stale index entry
                del self._index[demo.id]
                self._miss_count += 1
                self._save_index()
                return None

            try:
                cached = self._read(demo.id)
            except Exception as e:
                logger.warning(f"Failed to read cached data for {demo.name}: {e}")
                self._miss_count += 1
                self._dirty = True
                return None

            entry.accessed_at = datetime.now()
            entry.file_path = demo.path
            self._hit_count += 1
            self._dirty = True

        cached.relocate(demo.path)
        logger.debug(f"Cache hit for {demo.name}")
        return cached

    def flush(self) -> None:
        """Write pending access times and hit/miss counters to the index."""
        with self._lock:
            if self._dirty:
                self._save_index()

    def put(self, demo: Demo) -> None:
        """
        Cache (insert or replace) the record of a demo.

        Raises:
            OSError: If the record cannot be written
        """
        payload = gzip.compress(json.dumps(demo.to_dict()).encode())

        with self._lock:
            self._atomic_write(self._get_data_path(demo.id), payload)

            now = datetime.now()
            existing = self._index.get(demo.id)
            self._index[demo.id] = CacheEntry(
                key=demo.id,
                file_path=demo.path,
                created_at=existing.created_at if existing else now,
                accessed_at=now,
            )
            self._save_index()

        logger.debug(f"Cached record for {demo.name}")

    def remove(self, demo: Demo) -> None:
        """Evict the record of a demo."""
        with self._lock:
            self._index.pop(demo.id, None)
            self._get_data_path(demo.id).unlink(missing_ok=True)
            self._save_index()
        logger.debug(f"Removed cached record for {demo.name}")

    def list_demos(self) -> list[Demo]:
        """Return every cached record, ordered by fingerprint."""
        demos = []
        with self._lock:
            keys = sorted(self._index)
            for key in keys:
                try:
                    demos.append(self._read(key))
                except Exception as e:
                    logger.warning(f"Skipping unreadable cache entry {key}: {e}")
        return demos

    def clear(self):
        """Clear all cached data."""
        with self._lock:
            self._index.clear()
            self._hit_count = 0
            self._miss_count = 0

            for path in self.data_dir.glob("*.json.gz"):
                path.unlink(missing_ok=True)

            self._save_index()
        logger.info("Cache cleared")

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        total_size = 0
        oldest = None
        newest = None

        with self._lock:
            for entry in self._index.values():
                data_path = self._get_data_path(entry.key)
                if data_path.exists():
                    total_size += data_path.stat().st_size

                if oldest is None or entry.created_at < oldest:
                    oldest = entry.created_at
                if newest is None or entry.created_at > newest:
                    newest = entry.created_at

            return CacheStats(
                total_entries=len(self._index),
                total_size_bytes=total_size,
                oldest_entry=oldest,
                newest_entry=newest,
                hit_count=self._hit_count,
                miss_count=self._miss_count,
            )

    def list_entries(self) -> list[dict]:
        """List all cache entries."""
        with self._lock:
            return [e.to_dict() for e in self._index.values()]
