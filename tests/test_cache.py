"""Tests for the download link cache."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from zipstreamer.cache import LinkCache
from zipstreamer.models.entry import ArchiveRequest, EntryDescriptor


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def archive_request() -> ArchiveRequest:
    return ArchiveRequest(
        entries=[EntryDescriptor(url="https://example.com/a.txt", zip_path="a.txt")],
        suggested_filename="a.zip",
    )


class TestLinkCache:
    """Tests for TTL-bound link storage."""

    def test_set_and_get(self, archive_request):
        cache = LinkCache()
        link_id = cache.set(archive_request)

        assert cache.get(link_id) is archive_request

    def test_get_missing_key(self):
        cache = LinkCache()
        assert cache.get("nonexistent") is None

    def test_default_ttl(self):
        assert LinkCache().ttl == 60.0

    def test_get_before_ttl(self, archive_request, clock):
        cache = LinkCache(ttl=60, clock=clock)
        link_id = cache.set(archive_request)

        clock.advance(59.9)
        assert cache.get(link_id) is archive_request

    def test_ttl_expiration(self, archive_request, clock):
        cache = LinkCache(ttl=60, clock=clock)
        link_id = cache.set(archive_request)

        clock.advance(60)
        assert cache.get(link_id) is None
        assert len(cache) == 0

    def test_ttl_expiration_real_clock(self, archive_request):
        cache = LinkCache(ttl=0)
        link_id = cache.set(archive_request)

        time.sleep(0.01)
        assert cache.get(link_id) is None

    def test_expired_and_unknown_look_alike(self, archive_request, clock):
        cache = LinkCache(ttl=1, clock=clock)
        link_id = cache.set(archive_request)
        clock.advance(5)

        assert cache.get(link_id) == cache.get("never-issued")

    def test_ids_unique(self, archive_request):
        cache = LinkCache(max_size=5000)
        ids = {cache.set(archive_request) for _ in range(2000)}
        assert len(ids) == 2000

    def test_set_purges_expired(self, archive_request, clock):
        cache = LinkCache(ttl=10, clock=clock)
        for _ in range(100):
            cache.set(archive_request)
        assert len(cache) == 100

        clock.advance(11)
        cache.set(archive_request)
        assert len(cache) == 1

    def test_max_size_eviction(self, archive_request):
        cache = LinkCache(max_size=3)
        first = cache.set(archive_request)
        others = [cache.set(archive_request) for _ in range(3)]

        assert cache.get(first) is None
        assert all(cache.get(link_id) is not None for link_id in others)
        assert cache.stats["evictions"] == 1

    def test_cleanup_expired(self, archive_request, clock):
        cache = LinkCache(ttl=10, clock=clock)
        cache.set(archive_request)
        clock.advance(5)
        live = cache.set(archive_request)
        clock.advance(6)

        assert cache.cleanup_expired() == 1
        assert cache.get(live) is archive_request

    def test_stats(self, archive_request):
        cache = LinkCache(max_size=100)
        link_id = cache.set(archive_request)
        cache.get(link_id)  # Hit
        cache.get("other")  # Miss

        stats = cache.stats
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1
        assert stats["max_size"] == 100

    def test_concurrent_access(self, archive_request):
        cache = LinkCache(max_size=10000)

        def worker(_: int) -> list[str]:
            ids = [cache.set(archive_request) for _ in range(200)]
            assert all(cache.get(link_id) is archive_request for link_id in ids)
            return ids

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(worker, range(8)))

        all_ids = [link_id for ids in results for link_id in ids]
        assert len(set(all_ids)) == 1600
        assert len(cache) == 1600
