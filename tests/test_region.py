"""Tests for map regions and the export size guard."""

import pytest

from shared.errors import (
    LatitudeOutOfRange,
    LongitudeOutOfRange,
    MalformedRegion,
    RegionTooLarge,
    ZoomOutOfRange,
)
from shared.tile_math import MAX_LATITUDE, GeoPoint, TileAddress, min_latitude, to_geo_point
from exporter.region import DEFAULT_MAX_TILES, MapRegion, TileRange

# Corners stay clear of tile edges at zoom 9 to 11.
TOP_LEFT = to_geo_point(TileAddress(z=10, x=100, y=200, px=100, py=100))
BOTTOM_RIGHT = to_geo_point(TileAddress(z=10, x=101, y=201, px=100, py=100))


def _region(*zooms):
    return MapRegion(TOP_LEFT, BOTTOM_RIGHT, list(zooms))


class TestTileRange:
    def test_two_by_two(self):
        r = _region(10).tile_range(10)
        assert r == TileRange(z=10, x0=100, y0=200, x1=101, y1=201)
        assert (r.width, r.height, r.count) == (2, 2, 4)

    def test_scales_with_zoom(self):
        region = _region(9, 10, 11)
        assert region.tile_range(9).count == 1
        assert region.tile_range(11) == TileRange(z=11, x0=200, y0=400, x1=202, y1=402)
        assert region.tile_count() == 1 + 4 + 9

    def test_contains(self):
        r = TileRange(z=3, x0=1, y0=2, x1=3, y1=4)
        assert (1, 2) in r
        assert (3, 4) in r
        assert (0, 2) not in r
        assert (2, 5) not in r

    def test_single_point_region(self):
        region = MapRegion(TOP_LEFT, TOP_LEFT, [10])
        assert region.tile_range(10).count == 1

    def test_swapped_corners(self):
        with pytest.raises(MalformedRegion) as exc:
            MapRegion(BOTTOM_RIGHT, TOP_LEFT, [10]).tile_range(10)
        assert exc.value.axis == "x"

    def test_inverted_latitude(self):
        top_left = GeoPoint(lat=BOTTOM_RIGHT.lat, lon=TOP_LEFT.lon)
        bottom_right = GeoPoint(lat=TOP_LEFT.lat, lon=BOTTOM_RIGHT.lon)
        with pytest.raises(MalformedRegion) as exc:
            MapRegion(top_left, bottom_right, [10]).tile_range(10)
        assert exc.value.axis == "y"
        assert "zoom 10" in str(exc.value)

    def test_invalid_corner(self):
        region = MapRegion(GeoPoint(lat=89.0, lon=0.0), BOTTOM_RIGHT, [10])
        with pytest.raises(LatitudeOutOfRange):
            region.tile_range(10)

    def test_antimeridian_corner(self):
        region = MapRegion(
            GeoPoint(lat=MAX_LATITUDE, lon=-180.0),
            GeoPoint(lat=min_latitude(2), lon=180.0),
            [2],
        )
        with pytest.raises(LongitudeOutOfRange):
            region.check()
        with pytest.raises(LongitudeOutOfRange):
            region.layer_bounds(2)

    def test_last_column_corner(self):
        region = MapRegion(
            GeoPoint(lat=MAX_LATITUDE, lon=-180.0),
            GeoPoint(lat=min_latitude(2), lon=179.999999),
            [2],
        )
        assert region.tile_range(2) == TileRange(z=2, x0=0, y0=0, x1=3, y1=3)
        assert region.layer_bounds(2).bottom_right.lon < 180.0

    def test_invalid_zoom(self):
        with pytest.raises(ZoomOutOfRange):
            _region(25).tile_range(25)


class TestSizeGuard:
    def test_default_ceiling(self):
        assert DEFAULT_MAX_TILES == 64

    def test_within_limit(self):
        assert _region(9, 10, 11).check(14) == 14

    def test_too_large(self):
        with pytest.raises(RegionTooLarge) as exc:
            _region(9, 10, 11).check(13)
        assert exc.value.tile_count == 14
        assert exc.value.max_tiles == 13
        assert str(exc.value) == "region covers 14 tiles, more than the allowed 13"

    def test_whole_world(self):
        world = MapRegion(
            GeoPoint(lat=MAX_LATITUDE, lon=-180.0),
            GeoPoint(lat=min_latitude(10), lon=179.999999),
            [10],
        )
        with pytest.raises(RegionTooLarge) as exc:
            world.check()
        assert exc.value.tile_count == 1024 * 1024

    def test_no_zoom_levels(self):
        assert _region().check() == 0


class TestLayerBounds:
    def test_expanded_to_tile_edges(self):
        lb = _region(10).layer_bounds(10)
        assert (lb.z, lb.width, lb.height) == (10, 2, 2)
        assert lb.top_left == to_geo_point(TileAddress(z=10, x=100, y=200))
        assert lb.bottom_right == to_geo_point(TileAddress(z=10, x=101, y=201, px=255, py=255))

    def test_contains_corners(self):
        lb = _region(10).layer_bounds(10)
        assert lb.top_left.lat > TOP_LEFT.lat
        assert lb.top_left.lon < TOP_LEFT.lon
        assert lb.bottom_right.lat < BOTTOM_RIGHT.lat
        assert lb.bottom_right.lon > BOTTOM_RIGHT.lon
