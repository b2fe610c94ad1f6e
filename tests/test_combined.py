"""Tests for the layered combined tile source."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from shared.errors import DecodeError, TileFetchError, ZoomOutOfRange
from shared.tile import BLACK, GREEN, WHITE, new_tile
from shared.tile_math import GeoPoint, to_tile_address
from tileserver.cache import BoundedCacheSource
from tileserver.combined import CombinedSource
from tileserver.local import LocalDiskSource
from tileserver.synthetic import PointOverlaySource


def _spy(source):
    """Wrap a source so calls can be counted while behaviour is kept."""
    spy = MagicMock(wraps=source)
    return spy


def _remote(tile=None):
    remote = MagicMock()
    remote.get.return_value = tile
    return remote


class TestFallbackOrder:
    def test_local_hit_backfills_cache(self, tmp_path):
        disk_tile = new_tile(WHITE)
        LocalDiskSource(tmp_path).add(5, 10, 11, disk_tile)
        cache = BoundedCacheSource(100)
        local = _spy(LocalDiskSource(tmp_path))
        remote = _remote(new_tile(GREEN))
        source = CombinedSource(cache=cache, local=local, remote=remote)

        first = source.get(5, 10, 11)
        assert np.array_equal(first, disk_tile)
        assert local.get.call_count == 1
        remote.get.assert_not_called()
        assert (5, 10, 11) in cache

        second = source.get(5, 10, 11)
        assert second is first
        assert local.get.call_count == 1  # served from cache
        remote.get.assert_not_called()

    def test_remote_hit_backfills_local_and_cache(self, tmp_path):
        net_tile = new_tile(GREEN)
        cache = BoundedCacheSource(100)
        local = LocalDiskSource(tmp_path)
        remote = _remote(net_tile)
        source = CombinedSource(cache=cache, local=local, remote=remote)

        assert source.get(3, 2, 1) is net_tile
        assert cache.get(3, 2, 1) is net_tile
        assert np.array_equal(local.get(3, 2, 1), net_tile)

        source.get(3, 2, 1)
        assert remote.get.call_count == 1

    def test_cache_hit_skips_everything(self):
        cache = BoundedCacheSource()
        tile = new_tile(WHITE)
        cache.add(4, 1, 1, tile)
        local = MagicMock()
        remote = _remote()
        source = CombinedSource(cache=cache, local=local, remote=remote)
        assert source.get(4, 1, 1) is tile
        local.get.assert_not_called()
        remote.get.assert_not_called()

    def test_full_cache_still_serves(self, tmp_path):
        cache = BoundedCacheSource(max_tiles=1)
        cache.add(4, 0, 0, new_tile(WHITE))
        source = CombinedSource(cache=cache, remote=_remote(new_tile(GREEN)))
        assert tuple(source.get(4, 1, 1)[0, 0]) == GREEN
        assert cache.size == 1


class TestFallbackTile:
    def test_all_miss_returns_black(self, tmp_path):
        source = CombinedSource(
            cache=BoundedCacheSource(),
            local=LocalDiskSource(tmp_path),
            remote=_remote(None),
        )
        tile = source.get(6, 3, 3)
        assert tile is source.fallback
        assert tuple(tile[0, 0]) == BLACK

    def test_no_layers(self):
        source = CombinedSource()
        assert source.get(0, 0, 0) is source.fallback

    def test_fallback_owned_per_instance(self):
        assert CombinedSource().fallback is not CombinedSource().fallback

    def test_custom_fallback(self):
        white = new_tile(WHITE)
        assert CombinedSource(fallback=white).get(1, 0, 0) is white

    def test_misses_are_not_cached(self):
        cache = BoundedCacheSource()
        CombinedSource(cache=cache, remote=_remote(None)).get(6, 3, 3)
        assert cache.size == 0


class TestLayerFailures:
    def test_broken_local_falls_through_to_remote(self, caplog):
        local = MagicMock()
        local.get.side_effect = DecodeError("5/1/1.png", "corrupt")
        net_tile = new_tile(GREEN)
        source = CombinedSource(local=local, remote=_remote(net_tile))
        assert source.get(5, 1, 1) is net_tile
        assert "corrupt" in caplog.text

    def test_remote_network_error_gives_fallback(self):
        remote = MagicMock()
        remote.get.side_effect = TileFetchError("connection refused")
        source = CombinedSource(remote=remote)
        assert source.get(5, 1, 1) is source.fallback

    def test_backfill_failure_is_not_fatal(self):
        local = MagicMock()
        local.get.return_value = None
        local.add.side_effect = PermissionError("read-only")
        net_tile = new_tile(GREEN)
        source = CombinedSource(local=local, remote=_remote(net_tile))
        assert source.get(5, 1, 1) is net_tile

    def test_invalid_zoom_is_contract_violation(self):
        with pytest.raises(ZoomOutOfRange):
            CombinedSource().get(25, 0, 0)


class TestWrapping:
    def test_coordinates_wrap(self):
        remote = _remote(new_tile(GREEN))
        source = CombinedSource(remote=remote)
        source.get(2, -1, 5)
        remote.get.assert_called_once_with(2, 3, 1)

    def test_no_vertical_wrap_gives_fallback(self):
        remote = _remote(new_tile(GREEN))
        source = CombinedSource(remote=remote, wrap_y=False)
        assert source.get(2, 0, 4) is source.fallback
        remote.get.assert_not_called()
        assert source.get(2, -1, 3) is not source.fallback
        remote.get.assert_called_once_with(2, 3, 3)


class TestPointOverlay:
    POINT = GeoPoint(lat=52.52, lon=13.405)

    def test_points_drawn_on_resolved_tile(self):
        addr = to_tile_address(self.POINT, 9)
        net_tile = new_tile(WHITE)
        source = CombinedSource(remote=_remote(net_tile),
                                points=PointOverlaySource([self.POINT], GREEN))
        tile = source.get(9, addr.x, addr.y)
        assert tile is net_tile  # drawn in place
        assert tuple(tile[addr.py, addr.px]) == GREEN
        assert tuple(tile[(addr.py + 1) % 256, addr.px]) == WHITE

    def test_fallback_is_not_mutated(self):
        addr = to_tile_address(self.POINT, 9)
        source = CombinedSource(points=PointOverlaySource([self.POINT], GREEN))
        tile = source.get(9, addr.x, addr.y)
        assert tile is not source.fallback
        assert tuple(tile[addr.py, addr.px]) == GREEN
        assert (source.fallback == np.array(BLACK, dtype=np.uint8)).all()
