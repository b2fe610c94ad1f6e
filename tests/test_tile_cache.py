"""Tests for the bounded in-memory tile cache."""

import logging
import threading

import numpy as np
import pytest

from shared.tile import new_tile
from tileserver.base import WritableTileSource
from tileserver.cache import BoundedCacheSource


def _tile(value: int) -> np.ndarray:
    return new_tile((value, value, value, 255))


class TestBoundedCacheSource:
    def test_is_writable_source(self):
        assert isinstance(BoundedCacheSource(), WritableTileSource)

    def test_miss_returns_none(self):
        cache = BoundedCacheSource(10)
        assert cache.get(3, 1, 2) is None

    def test_hit_returns_same_object(self):
        cache = BoundedCacheSource(10)
        tile = _tile(1)
        cache.add(3, 1, 2, tile)
        assert cache.get(3, 1, 2) is tile
        assert cache._hits == 1

    def test_admission_bound_keeps_first(self):
        cache = BoundedCacheSource(max_tiles=3)
        for i in range(5):
            cache.add(5, i, 0, _tile(i))
        assert cache.size == 3
        for i in range(3):
            assert cache.get(5, i, 0)[0, 0, 0] == i
        for i in range(3, 5):
            assert cache.get(5, i, 0) is None

    def test_no_eviction_on_access(self):
        cache = BoundedCacheSource(max_tiles=2)
        cache.add(5, 0, 0, _tile(0))
        cache.add(5, 1, 0, _tile(1))
        cache.get(5, 0, 0)
        cache.add(5, 2, 0, _tile(2))
        assert (5, 0, 0) in cache
        assert (5, 1, 0) in cache
        assert (5, 2, 0) not in cache

    def test_full_cache_does_not_overwrite(self):
        cache = BoundedCacheSource(max_tiles=1)
        cache.add(5, 0, 0, _tile(0))
        cache.add(5, 0, 0, _tile(9))
        assert cache.get(5, 0, 0)[0, 0, 0] == 0

    def test_unlimited(self):
        cache = BoundedCacheSource(max_tiles=0)
        for i in range(200):
            cache.add(10, i, i, _tile(0))
        assert cache.size == 200

    def test_coordinates_are_normalized(self):
        cache = BoundedCacheSource()
        tile = _tile(1)
        cache.add(2, -1, 0, tile)
        assert cache.get(2, 3, 0) is tile
        assert cache.get(2, 7, 4) is tile

    def test_concurrent_adds_respect_bound(self):
        cache = BoundedCacheSource(max_tiles=50)
        tile = _tile(0)

        def worker(offset):
            for i in range(100):
                cache.add(12, offset * 100 + i, 0, tile)
                cache.get(12, offset * 100 + i, 0)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert cache.size == 50

    def test_full_logged_once_under_contention(self, caplog):
        cache = BoundedCacheSource(max_tiles=1)
        cache.add(12, 0, 0, _tile(0))
        start = threading.Barrier(8)

        def worker(offset):
            start.wait()
            for i in range(50):
                cache.add(12, offset * 100 + i + 1, 0, _tile(0))

        with caplog.at_level(logging.INFO, logger="tileserver.cache"):
            threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        full = [r for r in caplog.records if "cache full" in r.getMessage()]
        assert len(full) == 1
        assert cache.stats()["rejected"] == 400

    def test_hit_rate(self):
        cache = BoundedCacheSource()
        cache.get(1, 0, 0)  # miss
        cache.add(1, 0, 0, _tile(0))
        cache.get(1, 0, 0)  # hit
        cache.get(1, 0, 0)  # hit
        assert cache.hit_rate == pytest.approx(2 / 3)

    def test_memory_estimate(self):
        cache = BoundedCacheSource()
        cache.add(1, 0, 0, _tile(0))
        assert cache.memory_mb == pytest.approx(0.25)

    def test_clear(self):
        cache = BoundedCacheSource()
        cache.add(1, 0, 0, _tile(0))
        cache.clear()
        assert cache.size == 0
        assert cache.hit_rate == 0.0

    def test_stats(self):
        cache = BoundedCacheSource(max_tiles=1)
        cache.add(1, 0, 0, _tile(0))
        cache.add(1, 1, 0, _tile(0))
        cache.get(1, 1, 0)
        s = cache.stats()
        assert s["size"] == 1
        assert s["max"] == 1
        assert s["misses"] == 1
        assert s["rejected"] == 1
