"""Map region definition and export size guard.

A region is the rectangle between two GPS corners, exported at one or
more zoom levels. At each zoom it covers every tile that contains part
of the rectangle, so the exported map extends to tile boundaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from shared.errors import MalformedRegion, RegionTooLarge
from shared.tile_math import GeoPoint, TILE_SIZE, TileAddress, to_geo_point, to_tile_address

# Tiles per export unless the caller raises the ceiling.
DEFAULT_MAX_TILES = 64


@dataclass(frozen=True, slots=True)
class TileRange:
    """Inclusive tile index rectangle at one zoom level."""
    z: int
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0 + 1

    @property
    def height(self) -> int:
        return self.y1 - self.y0 + 1

    @property
    def count(self) -> int:
        return self.width * self.height

    def __contains__(self, xy: tuple[int, int]) -> bool:
        x, y = xy
        return self.x0 <= x <= self.x1 and self.y0 <= y <= self.y1


@dataclass(frozen=True, slots=True)
class LayerBounds:
    """Tile-aligned geographic bounds of a region at one zoom level."""
    z: int
    top_left: GeoPoint
    bottom_right: GeoPoint
    width: int   # tiles
    height: int  # tiles


@dataclass
class MapRegion:
    """Rectangle of the map and the zoom levels to export."""
    top_left: GeoPoint
    bottom_right: GeoPoint
    zoom_levels: list[int] = field(default_factory=list)

    def tile_range(self, zoom: int) -> TileRange:
        """Tile indices covered at ``zoom``.

        Raises ZoomOutOfRange/LatitudeOutOfRange/LongitudeOutOfRange for unrepresentable corners
        and MalformedRegion if the bottom right tile lies above or left of
        the top left tile.
        """
        tl = to_tile_address(self.top_left, zoom)
        br = to_tile_address(self.bottom_right, zoom)
        if br.x < tl.x:
            raise MalformedRegion("x", zoom, tl.x, br.x)
        if br.y < tl.y:
            raise MalformedRegion("y", zoom, tl.y, br.y)
        return TileRange(z=zoom, x0=tl.x, y0=tl.y, x1=br.x, y1=br.y)

    def tile_count(self) -> int:
        """Total number of tiles over all zoom levels."""
        return sum(self.tile_range(z).count for z in self.zoom_levels)

    def check(self, max_tiles: int = DEFAULT_MAX_TILES) -> int:
        """Validate the region and return its tile count.

        Raises RegionTooLarge if the count exceeds ``max_tiles``.
        """
        count = self.tile_count()
        if count > max_tiles:
            raise RegionTooLarge(count, max_tiles)
        return count

    def layer_bounds(self, zoom: int) -> LayerBounds:
        """Expand the corners outward to the full pixel extent of their tiles."""
        r = self.tile_range(zoom)
        tl = to_geo_point(TileAddress(z=zoom, x=r.x0, y=r.y0, px=0, py=0))
        br = to_geo_point(TileAddress(z=zoom, x=r.x1, y=r.y1,
                                      px=TILE_SIZE - 1, py=TILE_SIZE - 1))
        return LayerBounds(z=zoom, top_left=tl, bottom_right=br,
                           width=r.width, height=r.height)
