"""Tile sources that render tiles instead of loading them.

- UniformSource: one solid color for every tile
- PointOverlaySource: GPS points drawn as single pixels on a transparent tile
- SparsePointSource: the same, but pre-grouped by tile and iterable over
  the populated tiles only
- FractalSource: the Mandelbrot set, a demo source that needs no data
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np

from shared.errors import LatitudeOutOfRange, LongitudeOutOfRange
from shared.tile import BLACK, TRANSPARENT, Color, Tile, default_palette, new_tile
from shared.tile_math import GeoPoint, TILE_SIZE, check_zoom, normalize_tile_index, to_tile_address

logger = logging.getLogger(__name__)


def read_points(path: Path) -> list[GeoPoint]:
    """Read a points file with one "lat lon" pair per line.

    Reading stops at the first line that is not a coordinate pair.
    """
    points: list[GeoPoint] = []
    with open(path) as f:
        for line in f:
            fields = line.split()
            if len(fields) != 2:
                break
            try:
                lat, lon = float(fields[0]), float(fields[1])
            except ValueError:
                break
            points.append(GeoPoint(lat=lat, lon=lon))
    logger.info("Read %d points from %s", len(points), path)
    return points


class UniformSource:
    """Returns the same solid tile for every coordinate."""

    def __init__(self, color: Color = BLACK):
        self.color = color
        self._tile: Tile | None = None

    def get(self, z: int, x: int, y: int) -> Tile:
        normalize_tile_index(z, x, y)
        if self._tile is None:
            self._tile = new_tile(self.color)
        return self._tile


class PointOverlaySource:
    """Renders points on a transparent background.

    Every call scans the full point list; use SparsePointSource for
    large point sets.
    """

    def __init__(self, points: Sequence[GeoPoint], color: Color = BLACK):
        self.points = list(points)
        self.color = color

    def overlay(self, tile: Tile, z: int, x: int, y: int) -> Tile:
        """Draw the points that fall inside tile (z, x, y) onto ``tile`` in place."""
        x, y = normalize_tile_index(z, x, y)
        for point in self.points:
            try:
                addr = to_tile_address(point, z)
            except (LatitudeOutOfRange, LongitudeOutOfRange):
                continue
            if addr.x == x and addr.y == y:
                tile[addr.py, addr.px] = self.color
        return tile

    def get(self, z: int, x: int, y: int) -> Tile:
        return self.overlay(new_tile(TRANSPARENT), z, x, y)


class SparsePointSource:
    """Points grouped by the tile they fall in, for one or more zoom levels.

    Iteration yields (z, x, y, tile) only for tiles containing at least one
    point: zoom levels in the given order, tiles in first-seen order.
    """

    def __init__(
        self,
        points: Sequence[GeoPoint],
        zoom_levels: Sequence[int],
        color: Color = BLACK,
    ):
        self.color = color
        # zoom -> {(tile x, tile y): [(pixel x, pixel y), ...]}
        self._tiles: dict[int, dict[tuple[int, int], list[tuple[int, int]]]] = {}
        for z in zoom_levels:
            check_zoom(z)
            by_tile = self._tiles.setdefault(z, {})
            for point in points:
                addr = to_tile_address(point, z)
                by_tile.setdefault((addr.x, addr.y), []).append((addr.px, addr.py))
            logger.debug("Zoom %d: %d points in %d tiles", z, len(points), len(by_tile))

    @property
    def zoom_levels(self) -> list[int]:
        return list(self._tiles)

    @property
    def tile_count(self) -> int:
        return sum(len(by_tile) for by_tile in self._tiles.values())

    def _render(self, pixels: list[tuple[int, int]]) -> Tile:
        tile = new_tile(TRANSPARENT)
        for px, py in pixels:
            tile[py, px] = self.color
        return tile

    def get(self, z: int, x: int, y: int) -> Tile | None:
        """Render tile (z, x, y); None for a zoom level this source was not built for."""
        x, y = normalize_tile_index(z, x, y)
        by_tile = self._tiles.get(z)
        if by_tile is None:
            return None
        return self._render(by_tile.get((x, y), []))

    def __iter__(self) -> Iterator[tuple[int, int, int, Tile]]:
        for z, by_tile in self._tiles.items():
            for (x, y), pixels in by_tile.items():
                yield z, x, y, self._render(pixels)


class FractalSource:
    """Renders the Mandelbrot set.

    At zoom 0 the single tile spans -1..1 on both the real and imaginary
    axis. A pixel's color is the palette entry indexed by the iteration
    at which it escaped (index 0 if it never does within len(palette)).
    """

    def __init__(self, palette: Sequence[Color] | None = None):
        self.palette = np.array(palette or default_palette(), dtype=np.uint8)

    def get(self, z: int, x: int, y: int) -> Tile:
        x, y = normalize_tile_index(z, x, y)
        scale = 1.0 / (128.0 * (1 << z))
        i = np.arange(TILE_SIZE)
        re = -1.0 + scale * (i + x * TILE_SIZE)
        im = -1.0 + scale * (i + y * TILE_SIZE)
        c = re[np.newaxis, :] + 1j * im[:, np.newaxis]

        zz = np.zeros_like(c)
        idx = np.zeros(c.shape, dtype=np.intp)
        active = np.ones(c.shape, dtype=bool)
        for n in range(len(self.palette)):
            zz[active] = zz[active] ** 2 + c[active]
            escaped = active & (np.abs(zz) > 2)
            idx[escaped] = n
            active &= ~escaped
            if not active.any():
                break
        return self.palette[idx]
