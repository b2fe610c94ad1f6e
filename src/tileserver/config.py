"""Tile source chain configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel

from shared.tile import GREEN
from tileserver.base import TileSource
from tileserver.cache import BoundedCacheSource
from tileserver.combined import CombinedSource
from tileserver.local import LocalDiskSource
from tileserver.remote import RemoteSource
from tileserver.synthetic import FractalSource, PointOverlaySource, read_points

logger = logging.getLogger(__name__)


class SourceConfig(BaseModel):
    """Which layers the combined source is assembled from."""
    cache_tiles: int = 10000          # max cached tiles, 0 = unlimited, -1 = no cache
    local_dir: Path | None = None     # z/x/y.png tile store, disabled if unset
    url: str = ""                     # tile server base URL, disabled if empty
    timeout: float = 15.0             # seconds per remote request
    points_file: Path | None = None   # "lat lon" lines drawn over every tile
    point_color: tuple[int, int, int, int] = GREEN  # BGRA
    wrap_y: bool = True               # wrap tile rows like columns instead of returning the fallback


def build_source(config: SourceConfig) -> TileSource:
    """Assemble the tile source chain.

    Without a local store, a URL or points there is nothing to combine, so the
    fractal demo source is returned.
    """
    if config.local_dir is None and not config.url and config.points_file is None:
        logger.info("No local tile store or URL configured, using the fractal source")
        return FractalSource()

    cache = BoundedCacheSource(config.cache_tiles) if config.cache_tiles >= 0 else None
    local = LocalDiskSource(config.local_dir) if config.local_dir is not None else None
    remote = RemoteSource(config.url, timeout=config.timeout) if config.url else None
    points = None
    if config.points_file is not None:
        points = PointOverlaySource(read_points(config.points_file), config.point_color)

    logger.info("Tile sources: cache=%s local=%s remote=%s points=%s",
                config.cache_tiles if cache is not None else "off", local, remote,
                len(points.points) if points is not None else 0)
    return CombinedSource(cache=cache, local=local, remote=remote, points=points,
                          wrap_y=config.wrap_y)
