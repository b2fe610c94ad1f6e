"""Exception hierarchy shared by the tile sources and the exporter."""

from __future__ import annotations


class MapTilesError(Exception):
    """Base class for all maptiles errors."""


class ZoomOutOfRange(MapTilesError, ValueError):
    def __init__(self, zoom: int):
        super().__init__(f"zoom value {zoom} is out of range [0, 24]")
        self.zoom = zoom


class LatitudeOutOfRange(MapTilesError, ValueError):
    def __init__(self, lat: float, zoom: int):
        super().__init__(
            f"latitude {lat}° cannot be represented by tile coordinates at zoom {zoom}"
        )
        self.lat = lat
        self.zoom = zoom


class LongitudeOutOfRange(MapTilesError, ValueError):
    def __init__(self, lon: float):
        super().__init__(f"longitude {lon}° is outside [-180, 180)")
        self.lon = lon


class TileIndexOutOfRange(MapTilesError, ValueError):
    """A tile row outside [0, 2^z) when vertical wrapping is disabled."""

    def __init__(self, zoom: int, y: int):
        super().__init__(f"tile row {y} is out of range at zoom {zoom}")
        self.zoom = zoom
        self.y = y


class TileSourceError(MapTilesError):
    """A single source failed to produce a tile (distinct from a miss)."""


class DecodeError(TileSourceError):
    """Payload is not a valid 256x256 raster."""

    def __init__(self, address: str, reason: str):
        super().__init__(f"tile {address}: {reason}")
        self.address = address


class TileFetchError(TileSourceError, OSError):
    """Network failure while requesting a remote tile."""


class RegionError(MapTilesError, ValueError):
    """The export region was rejected before any I/O happened."""


class RegionTooLarge(RegionError):
    def __init__(self, tile_count: int, max_tiles: int):
        super().__init__(
            f"region covers {tile_count} tiles, more than the allowed {max_tiles}"
        )
        self.tile_count = tile_count
        self.max_tiles = max_tiles


class MalformedRegion(RegionError):
    def __init__(self, axis: str, zoom: int, top_left: int, bottom_right: int):
        super().__init__(
            f"bottom right tile {axis}={bottom_right} is smaller than "
            f"top left tile {axis}={top_left} at zoom {zoom}"
        )
        self.axis = axis
        self.zoom = zoom


class ExportError(MapTilesError, OSError):
    """The tile store writer failed. ``output`` holds its captured diagnostics."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(f"{message}: {output}" if output else message)
        self.output = output
