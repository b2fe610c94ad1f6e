"""Static z/x/y.png tile store on the local filesystem."""

from __future__ import annotations

import logging
from pathlib import Path

from shared.tile import Tile, decode_png, encode_png
from shared.tile_math import TileAddress, normalize_tile_index

logger = logging.getLogger(__name__)


class LocalDiskSource:
    """Reads and writes tiles below ``root`` as ``{z}/{x}/{y}.png``."""

    def __init__(self, root: Path | str | None):
        self.root = Path(root) if root else None

    def tile_path(self, z: int, x: int, y: int) -> Path:
        if self.root is None:
            raise ValueError("the local tile store path is unset")
        x, y = normalize_tile_index(z, x, y)
        return self.root / TileAddress(z=z, x=x, y=y).path

    def get(self, z: int, x: int, y: int) -> Tile | None:
        """Return the tile from disk, or None if the file does not exist.

        Raises DecodeError for a file that is not a 256x256 png.
        """
        path = self.tile_path(z, x, y)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        return decode_png(data, str(path))

    def add(self, z: int, x: int, y: int, tile: Tile) -> None:
        """Write the tile to disk, overwriting any existing file."""
        path = self.tile_path(z, x, y)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(encode_png(tile))
        logger.debug("Stored tile %s", path)

    def __repr__(self) -> str:
        return f"LocalDiskSource({str(self.root)!r})"
