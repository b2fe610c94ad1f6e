"""Layered tile source: cache, local disk, then remote."""

from __future__ import annotations

import logging

from shared.errors import MapTilesError, TileIndexOutOfRange
from shared.tile import BLACK, Tile, new_tile
from shared.tile_math import normalize_tile_index
from tileserver.base import TileSource, WritableTileSource
from tileserver.synthetic import PointOverlaySource

logger = logging.getLogger(__name__)


class CombinedSource:
    """Chains a cache, a local store and a remote source with read-through backfill.

    Layers are tried in the order cache → local → remote and any layer may
    be None. A local hit is added to the cache; a remote hit is added to
    the local store and the cache. If no layer has the tile, the fallback
    tile (solid black unless given) is returned, so ``get`` never fails on
    a miss or on a broken layer.

    Usage:
        source = CombinedSource(
            cache=BoundedCacheSource(10000),
            local=LocalDiskSource(Path("~/tiles")),
            remote=RemoteSource("https://tile.openstreetmap.org"),
        )
        tile = source.get(13, 4317, 2692)
    """

    def __init__(
        self,
        cache: WritableTileSource | None = None,
        local: WritableTileSource | None = None,
        remote: TileSource | None = None,
        points: PointOverlaySource | None = None,
        fallback: Tile | None = None,
        wrap_y: bool = True,
    ):
        self.cache = cache
        self.local = local
        self.remote = remote
        self.points = points
        self.fallback = fallback if fallback is not None else new_tile(BLACK)
        self.wrap_y = wrap_y

    def get(self, z: int, x: int, y: int) -> Tile:
        try:
            x, y = normalize_tile_index(z, x, y, wrap_y=self.wrap_y)
        except TileIndexOutOfRange as e:
            logger.debug("%s, returning fallback tile", e)
            tile = self.fallback
        else:
            tile = self._resolve(z, x, y)

        if self.points is None:
            return tile
        if tile is self.fallback:
            tile = tile.copy()
        return self.points.overlay(tile, z, x, y)

    def _resolve(self, z: int, x: int, y: int) -> Tile:
        if self.cache is not None:
            tile = self._try(self.cache, z, x, y)
            if tile is not None:
                return tile

        if self.local is not None:
            tile = self._try(self.local, z, x, y)
            if tile is not None:
                self._backfill(self.cache, z, x, y, tile)
                return tile

        if self.remote is not None:
            tile = self._try(self.remote, z, x, y)
            if tile is not None:
                self._backfill(self.local, z, x, y, tile)
                self._backfill(self.cache, z, x, y, tile)
                return tile

        return self.fallback

    @staticmethod
    def _try(layer: TileSource, z: int, x: int, y: int) -> Tile | None:
        try:
            return layer.get(z, x, y)
        except (MapTilesError, OSError) as e:
            logger.warning("%r failed for tile %d/%d/%d: %s", layer, z, x, y, e)
            return None

    @staticmethod
    def _backfill(layer: WritableTileSource | None, z: int, x: int, y: int, tile: Tile) -> None:
        if layer is None:
            return
        try:
            layer.add(z, x, y, tile)
        except (MapTilesError, OSError, ValueError) as e:
            logger.warning("Could not store tile %d/%d/%d in %r: %s", z, x, y, layer, e)
