"""Tests for the cover cache."""

from __future__ import annotations

from pathlib import Path

import pytest

from cover_resolver.data.cover_cache import CoverCache
from cover_resolver.models.cover import ProviderId, ProviderResult
from tests.conftest import FakeClock

KEY = "*:nes:super mario bros"


@pytest.fixture
def result() -> ProviderResult:
    return ProviderResult(
        provider_id=ProviderId.SCREENSCRAPER,
        image_url="https://img.example/smb.png",
        title="Super Mario Bros.",
        raw_metadata={"game_id": "1"},
    )


class TestCoverCache:
    def test_put_and_get(self, cache: CoverCache, result: ProviderResult) -> None:
        cache.put(KEY, result, ttl=60)
        entry = cache.get(KEY)
        assert entry is not None
        assert entry.result == result
        assert entry.expires_at - entry.created_at == 60

    def test_missing_key(self, cache: CoverCache) -> None:
        assert cache.get(KEY) is None

    def test_expired_entry_is_absent(
        self, cache: CoverCache, clock: FakeClock, result: ProviderResult
    ) -> None:
        cache.put(KEY, result, ttl=60)
        clock.advance(59)
        assert cache.get(KEY) is not None
        clock.advance(1)
        assert cache.get(KEY) is None

    def test_last_write_wins(self, cache: CoverCache, result: ProviderResult) -> None:
        cache.put(KEY, result, ttl=60)
        newer = ProviderResult(ProviderId.THEGAMESDB, "https://img.example/other.png")
        cache.put(KEY, newer, ttl=60)
        entry = cache.get(KEY)
        assert entry is not None and entry.result == newer

    def test_negative_entry(self, cache: CoverCache) -> None:
        cache.put(KEY, None, ttl=30)
        entry = cache.get(KEY)
        assert entry is not None and entry.is_negative
        assert cache.entries() == []

    def test_zero_ttl_stores_nothing(self, cache: CoverCache, result: ProviderResult) -> None:
        assert cache.put(KEY, result, ttl=0) is None
        assert cache.get(KEY) is None

    def test_invalidate_and_clear(self, cache: CoverCache, result: ProviderResult) -> None:
        cache.put(KEY, result, ttl=60)
        cache.put("other", result, ttl=60)
        cache.invalidate(KEY)
        assert cache.get(KEY) is None
        cache.clear()
        assert cache.get("other") is None

    def test_entries_newest_first(
        self, cache: CoverCache, clock: FakeClock, result: ProviderResult
    ) -> None:
        cache.put("a", result, ttl=600)
        clock.advance(10)
        cache.put("b", result, ttl=600)
        assert [e.key for e in cache.entries()] == ["b", "a"]


class TestCoverCacheOnDisk:
    def test_persists_across_instances(
        self, tmp_path: Path, clock: FakeClock, result: ProviderResult
    ) -> None:
        CoverCache(tmp_path, clock=clock).put(KEY, result, ttl=60)
        reloaded = CoverCache(tmp_path, clock=clock)
        entry = reloaded.get(KEY)
        assert entry is not None
        assert entry.result == result
        assert [e.key for e in reloaded.entries()] == [KEY]

    def test_expired_file_removed_on_read(
        self, tmp_path: Path, clock: FakeClock, result: ProviderResult
    ) -> None:
        cache = CoverCache(tmp_path, clock=clock)
        cache.put(KEY, result, ttl=60)
        clock.advance(120)
        assert CoverCache(tmp_path, clock=clock).get(KEY) is None
        assert list(tmp_path.glob("*/*.json")) == []

    def test_corrupt_file_ignored(
        self, tmp_path: Path, clock: FakeClock, result: ProviderResult
    ) -> None:
        cache = CoverCache(tmp_path, clock=clock)
        cache.put(KEY, result, ttl=60)
        for path in tmp_path.glob("*/*.json"):
            path.write_text("{broken", encoding="utf-8")
        assert CoverCache(tmp_path, clock=clock).get(KEY) is None


class TestCoverCacheSweep:
    def test_write_sweeps_expired_misses(self, cache: CoverCache, clock: FakeClock) -> None:
        for i in range(1000):
            cache.put(f"*:nes:missing {i}", None, ttl=300)
        clock.advance(3600)

        cache.put(KEY, None, ttl=300)

        assert len(cache._memory) == 1
        assert cache.get(KEY) is not None

    def test_live_entries_survive(
        self, cache: CoverCache, clock: FakeClock, result: ProviderResult
    ) -> None:
        cache.put("short", None, ttl=30)
        cache.put("long", result, ttl=3600)
        clock.advance(120)

        assert cache.sweep() == 1
        assert cache.get("long") is not None

    def test_sweep_throttled(self, clock: FakeClock) -> None:
        cache = CoverCache(clock=clock, sweep_interval=60)
        cache.put("a", None, ttl=1)
        clock.advance(10)
        cache.put("b", None, ttl=1)
        assert len(cache._memory) == 2

        clock.advance(60)
        cache.put("c", None, ttl=1)
        assert list(cache._memory) == ["c"]

    def test_expired_files_swept(
        self, tmp_path: Path, clock: FakeClock, result: ProviderResult
    ) -> None:
        CoverCache(tmp_path, clock=clock).put("old", None, ttl=300)
        clock.advance(3600)
        cache = CoverCache(tmp_path, clock=clock)

        cache.put(KEY, result, ttl=60)
        cache.sweep()

        files = list(tmp_path.glob("*/*.json"))
        assert len(files) == 1
        assert cache.get(KEY) is not None
