"""Tile source capabilities.

Every source answers ``get(z, x, y)`` with a tile or None when it does
not hold the tile. Sources that can store tiles also implement ``add``;
sparse sources can additionally be iterated over the tiles they hold.

Example chain:
    source = CombinedSource(
        cache=BoundedCacheSource(10000),
        local=LocalDiskSource(Path("path/to/static/tiles")),
        remote=RemoteSource("https://a.tileserver.mymap.com"),
    )
"""

from __future__ import annotations

from typing import Iterator, Protocol, runtime_checkable

from shared.tile import Tile


@runtime_checkable
class TileSource(Protocol):
    def get(self, z: int, x: int, y: int) -> Tile | None: ...


@runtime_checkable
class WritableTileSource(TileSource, Protocol):
    def add(self, z: int, x: int, y: int, tile: Tile) -> None: ...


@runtime_checkable
class SparseTileSource(TileSource, Protocol):
    """A source that may hold only a few tiles of the grid.

    Iterating yields ``(z, x, y, tile)`` for every tile it holds, in a
    stable order, so exporters can skip the empty part of the grid.
    """

    def __iter__(self) -> Iterator[tuple[int, int, int, Tile]]: ...
