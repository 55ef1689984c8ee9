"""Cover cache — in-memory TTL cache with optional per-key JSON files."""

from __future__ import annotations

import hashlib
import json
import time
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from cover_resolver.models.cache_entry import CacheEntry
from cover_resolver.models.cover import ProviderResult


class CoverCache:
    """
    Resolution cache keyed by ``CoverQuery.cache_key``.

    Entries are immutable; a write replaces the whole entry (last write wins).
    Expired entries are dropped when read, and writes sweep out whatever
    else has expired (at most once per ``sweep_interval`` seconds).  There
    is no background thread.

    With ``cache_dir`` set, each key also maps to one JSON file:
      cover_cache/{sha1(key)[:2]}/{sha1(key)}.json
    Disk hits are promoted into memory.
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = 60.0,
    ) -> None:
        self._cache_dir = cache_dir
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def _cache_path(self, key: str) -> Path | None:
        if self._cache_dir is None:
            return None
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self._cache_dir / digest[:2] / f"{digest}.json"

    def _load_cache_file(self, key: str) -> CacheEntry | None:
        path = self._cache_path(key)
        if path is None or not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)
            entry = CacheEntry.from_dict(data)
        except (json.JSONDecodeError, OSError, KeyError, ValueError) as e:
            logger.warning(f"Failed to load cover cache for {key}: {e}")
            return None
        if entry.key != key:
            return None
        return entry

    def _save_cache_file(self, entry: CacheEntry) -> None:
        path = self._cache_path(entry.key)
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(f".{time.monotonic_ns()}.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(entry.to_dict(), f, ensure_ascii=False, indent=2)
            tmp.replace(path)
        except OSError as e:
            logger.error(f"Failed to save cover cache for {entry.key}: {e}")
            tmp.unlink(missing_ok=True)

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``, or ``None`` if absent or expired."""
        now = self._clock()
        entry = self._memory.get(key)
        if entry is None:
            entry = self._load_cache_file(key)
            if entry is not None:
                self._memory[key] = entry
        if entry is None:
            return None
        if not entry.is_live(now):
            self._evict(key, entry)
            return None
        return entry

    def _evict(self, key: str, stale: CacheEntry) -> None:
        # Leave a fresher entry written by a concurrent resolution alone
        if self._memory.get(key) is stale:
            self._memory.pop(key, None)
        path = self._cache_path(key)
        if path is not None and self._load_cache_file(key) == stale:
            path.unlink(missing_ok=True)

    def put(self, key: str, result: ProviderResult | None, ttl: float) -> CacheEntry | None:
        """Store a resolution for ``ttl`` seconds.  ``result=None`` stores a miss.

        A non-positive ``ttl`` stores nothing.
        """
        if ttl <= 0:
            return None
        now = self._clock()
        if now - self._last_sweep >= self._sweep_interval:
            self.sweep()
        entry = CacheEntry(key=key, result=result, created_at=now, expires_at=now + ttl)
        self._memory[key] = entry
        self._save_cache_file(entry)
        return entry

    def sweep(self) -> int:
        """Drop every expired entry from memory and disk.  Returns how many went."""
        now = self._clock()
        self._last_sweep = now
        removed = 0
        for key, entry in list(self._memory.items()):
            if not entry.is_live(now) and self._memory.get(key) is entry:
                self._memory.pop(key, None)
                removed += 1
        for path, entry in self._disk_entries():
            if not entry.is_live(now):
                path.unlink(missing_ok=True)
                removed += 1
        if removed:
            logger.debug(f"Swept {removed} expired cover cache entries")
        return removed

    def invalidate(self, key: str) -> None:
        self._memory.pop(key, None)
        path = self._cache_path(key)
        if path is not None:
            path.unlink(missing_ok=True)

    def clear(self) -> None:
        self._memory.clear()
        if self._cache_dir is not None and self._cache_dir.exists():
            for path in self._cache_dir.glob("*/*.json"):
                path.unlink(missing_ok=True)

    def entries(self) -> list[CacheEntry]:
        """Live positive entries, newest first."""
        now = self._clock()
        found: dict[str, CacheEntry] = {entry.key: entry for _, entry in self._disk_entries()}
        # list() snapshot: other requests may write while we iterate
        for key, entry in list(self._memory.items()):
            found[key] = entry
        live = [e for e in found.values() if e.is_live(now) and not e.is_negative]
        return sorted(live, key=lambda e: e.created_at, reverse=True)

    def _disk_entries(self) -> list[tuple[Path, CacheEntry]]:
        if self._cache_dir is None or not self._cache_dir.exists():
            return []
        loaded: list[tuple[Path, CacheEntry]] = []
        for path in self._cache_dir.glob("*/*.json"):
            try:
                with open(path, encoding="utf-8") as f:
                    loaded.append((path, CacheEntry.from_dict(json.load(f))))
            except (json.JSONDecodeError, OSError, KeyError, ValueError) as e:
                logger.warning(f"Skipping unreadable cache file {path.name}: {e}")
        return loaded
