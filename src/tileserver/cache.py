"""In-memory tile cache source.

Keeps tiles fetched from slower layers in memory so repeated requests
skip disk and network. Admission-bounded: once ``max_tiles`` entries are
stored, further tiles are simply not cached. Nothing is ever evicted.

Each tile at 256x256 BGRA is 256KB, so 10000 tiles ≈ 2.5GB.
"""

from __future__ import annotations

import logging
import threading

from shared.tile import Tile
from shared.tile_math import normalize_tile_index

logger = logging.getLogger(__name__)


class BoundedCacheSource:
    """Thread-safe in-memory tile store keyed by (z, x, y).

    The lock guards only the dict lookup/insert, never an upstream fetch.
    max_tiles=0 means no limit.
    """

    def __init__(self, max_tiles: int = 0):
        self._max = max_tiles
        self._cache: dict[tuple[int, int, int], Tile] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._rejected = 0

    def get(self, z: int, x: int, y: int) -> Tile | None:
        """Return the cached tile or None if it is not cached."""
        x, y = normalize_tile_index(z, x, y)
        with self._lock:
            tile = self._cache.get((z, x, y))
            if tile is None:
                self._misses += 1
            else:
                self._hits += 1
            return tile

    def add(self, z: int, x: int, y: int, tile: Tile) -> None:
        """Admit a tile unless the cache is full."""
        x, y = normalize_tile_index(z, x, y)
        with self._lock:
            if self._max == 0 or len(self._cache) < self._max:
                self._cache[(z, x, y)] = tile
                return
            self._rejected += 1
            first = self._rejected == 1
        if first:
            logger.info("Tile cache full (%d tiles), no longer admitting tiles", self._max)

    def __contains__(self, key: tuple[int, int, int]) -> bool:
        z, x, y = key
        x, y = normalize_tile_index(z, x, y)
        with self._lock:
            return (z, x, y) in self._cache

    @property
    def size(self) -> int:
        return len(self._cache)

    @property
    def max_tiles(self) -> int:
        return self._max

    @property
    def hit_rate(self) -> float:
        total = self._hits + self._misses
        if total == 0:
            return 0.0
        return self._hits / total

    @property
    def memory_mb(self) -> float:
        """Approximate memory usage in MB."""
        with self._lock:
            total_bytes = sum(tile.nbytes for tile in self._cache.values())
        return total_bytes / (1024 * 1024)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
            self._rejected = 0

    def stats(self) -> dict:
        return {
            "size": self.size,
            "max": self._max,
            "hits": self._hits,
            "misses": self._misses,
            "rejected": self._rejected,
            "hit_rate": f"{self.hit_rate:.1%}",
            "memory_mb": f"{self.memory_mb:.1f}",
        }
