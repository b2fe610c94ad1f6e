"""GPS ↔ Web Mercator tile ↔ pixel coordinate conversions.

Web Mercator (EPSG:3857) tile system:
  - Zoom z → 2^z × 2^z tiles, each 256×256 pixels, z in [0, 24]
  - Tile (0,0) is top-left (NW corner)
  - x increases eastward, y increases southward
  - Latitudes north of MAX_LATITUDE or south of min_latitude(z) cannot
    be represented
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from shared.errors import (
    LatitudeOutOfRange,
    LongitudeOutOfRange,
    TileIndexOutOfRange,
    ZoomOutOfRange,
)

TILE_SIZE = 256
MIN_ZOOM = 0
MAX_ZOOM = 24

# Mean earth radius (IUGG), not the equatorial radius.
EARTH_RADIUS = 6371008.8

MAX_LATITUDE = 85.05112877980659


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 coordinate."""
    lat: float  # degrees
    lon: float  # degrees, [-180, 180)

    def __str__(self) -> str:
        return f"{self.lat}°,{self.lon}°"


@dataclass(frozen=True, slots=True)
class TileAddress:
    """Tile index plus the pixel offset inside the tile."""
    z: int
    x: int
    y: int
    px: int = 0  # pixel x within tile [0, TILE_SIZE)
    py: int = 0  # pixel y within tile [0, TILE_SIZE)

    @property
    def path(self) -> str:
        """Relative path of the tile in a z/x/y tile store."""
        return f"{self.z}/{self.x}/{self.y}.png"

    def __str__(self) -> str:
        return f"{self.path}:{self.px},{self.py}"


def check_zoom(zoom: int) -> None:
    if zoom < MIN_ZOOM or zoom > MAX_ZOOM:
        raise ZoomOutOfRange(zoom)


def tile_grid_size(zoom: int) -> int:
    """Number of tiles per axis, or 0 for a zoom outside [0, 24]."""
    if zoom < MIN_ZOOM or zoom > MAX_ZOOM:
        return 0
    return 1 << zoom


def to_geo_point(address: TileAddress) -> GeoPoint:
    """Convert tile + pixel offset to GPS coordinate."""
    check_zoom(address.z)
    n = float(1 << address.z)
    x = address.x + address.px / TILE_SIZE
    y = address.y + address.py / TILE_SIZE
    lon = x / n * 360.0 - 180.0
    lat = math.degrees(math.atan(math.sinh(math.pi - 2.0 * math.pi * y / n)))
    return GeoPoint(lat=lat, lon=lon)


def min_latitude(zoom: int) -> float:
    """Southernmost latitude representable at the given zoom.

    This is the bottom-right pixel of the last tile, so it is slightly
    north of -MAX_LATITUDE and looser at low zoom (-84.928° for z=0).
    """
    check_zoom(zoom)
    last = (1 << zoom) - 1
    corner = TileAddress(z=zoom, x=last, y=last, px=TILE_SIZE - 1, py=TILE_SIZE - 1)
    return to_geo_point(corner).lat


def to_tile_address(point: GeoPoint, zoom: int) -> TileAddress:
    """Convert GPS coordinate to tile index and pixel position at given zoom.

    Raises ZoomOutOfRange, LatitudeOutOfRange, or LongitudeOutOfRange for
    a longitude outside [-180, 180).
    """
    check_zoom(zoom)
    if not -180.0 <= point.lon < 180.0:
        raise LongitudeOutOfRange(point.lon)
    if point.lat < min_latitude(zoom) or point.lat > MAX_LATITUDE:
        raise LatitudeOutOfRange(point.lat, zoom)

    n = float(1 << zoom)
    lat_rad = math.radians(point.lat)
    x_float = (point.lon + 180.0) / 360.0 * n
    y_float = (1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n

    tile_x = int(x_float)
    tile_y = int(y_float)
    px = int(TILE_SIZE * (x_float - tile_x))
    if tile_x >= 1 << zoom:
        # lon a hair below 180 can round up to the antimeridian
        tile_x, px = (1 << zoom) - 1, TILE_SIZE - 1
    return TileAddress(
        z=zoom,
        x=tile_x,
        y=tile_y,
        px=px,
        py=int(TILE_SIZE * (y_float - tile_y)),
    )


def tile_center(zoom: int, x: int, y: int) -> GeoPoint:
    """GPS coordinate of the center of a tile."""
    return to_geo_point(TileAddress(z=zoom, x=x, y=y, px=TILE_SIZE // 2, py=TILE_SIZE // 2))


def pixel_ground_size(address: TileAddress) -> float:
    """Edge length of one pixel at the address, in meters.

    2πR / (256 · 2^z) = πR / 2^(7+z), reduced by cos(lat).
    """
    lat = to_geo_point(address).lat
    return EARTH_RADIUS * math.pi * math.cos(math.radians(lat)) / float(1 << (7 + address.z))


def great_circle_distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two GPS points in meters (Vincenty formula)."""
    # Fixed argument order, so the result is bit-identical when swapped.
    if (a.lat, a.lon) > (b.lat, b.lon):
        a, b = b, a
    lat1, lon1 = math.radians(a.lat), math.radians(a.lon)
    lat2, lon2 = math.radians(b.lat), math.radians(b.lon)
    dlon = abs(lon2 - lon1)

    p = math.cos(lat2) * math.sin(dlon)
    q = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    r = math.sin(lat1) * math.sin(lat2) + math.cos(lat1) * math.cos(lat2) * math.cos(dlon)
    return EARTH_RADIUS * math.atan2(math.sqrt(p * p + q * q), r)


def normalize_tile_index(zoom: int, x: int, y: int, wrap_y: bool = True) -> tuple[int, int]:
    """Wrap tile indices into [0, 2^zoom).

    x always wraps around the antimeridian. With wrap_y=False an
    out-of-range row raises TileIndexOutOfRange instead of wrapping.
    """
    check_zoom(zoom)
    n = 1 << zoom
    if not wrap_y and not 0 <= y < n:
        raise TileIndexOutOfRange(zoom, y)
    # Python's modulo is already non-negative for a positive modulus.
    return x % n, y % n
