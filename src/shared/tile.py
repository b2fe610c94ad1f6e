"""Tile raster type and PNG codec.

A tile is a 256×256 BGRA uint8 numpy array, the layout OpenCV reads and
writes with IMREAD_UNCHANGED. Each tile at 256x256x4 is 256KB.
"""

from __future__ import annotations

import cv2
import numpy as np

from shared.errors import DecodeError
from shared.tile_math import TILE_SIZE

Tile = np.ndarray
Color = tuple[int, int, int, int]  # B, G, R, A

BLACK: Color = (0, 0, 0, 255)
WHITE: Color = (255, 255, 255, 255)
GREEN: Color = (0, 255, 0, 255)
TRANSPARENT: Color = (0, 0, 0, 0)


def new_tile(color: Color = TRANSPARENT) -> Tile:
    """Allocate a tile filled with a single color."""
    tile = np.empty((TILE_SIZE, TILE_SIZE, 4), dtype=np.uint8)
    tile[:, :] = color
    return tile


def to_bgra(img: np.ndarray) -> np.ndarray:
    """Convert a decoded grayscale/BGR/BGRA image to BGRA."""
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    return img


def decode_png(data: bytes, address: str) -> Tile:
    """Decode PNG bytes into a tile.

    Raises DecodeError naming ``address`` if the payload is not an image
    or is not exactly 256×256.
    """
    buf = np.frombuffer(data, dtype=np.uint8)
    img = None
    if buf.size:
        try:
            img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
        except cv2.error as e:
            raise DecodeError(address, str(e)) from e
    if img is None:
        raise DecodeError(address, "payload is not a valid image")
    if img.shape[0] != TILE_SIZE or img.shape[1] != TILE_SIZE:
        raise DecodeError(
            address, f"png tile size is {img.shape[1]}x{img.shape[0]}, not 256x256"
        )
    if img.dtype != np.uint8:
        # 16 bit PNGs
        img = (img >> 8).astype(np.uint8)
    return to_bgra(img)


def encode_png(tile: Tile) -> bytes:
    """Compress a tile to PNG bytes."""
    ok, buf = cv2.imencode(".png", tile)
    if not ok:
        raise ValueError("failed to encode tile as png")
    return buf.tobytes()


def default_palette(size: int = 256) -> list[Color]:
    """A colour table for the fractal source, built from OpenCV's JET colormap."""
    ramp = np.linspace(0, 255, size).astype(np.uint8).reshape(-1, 1)
    bgr = cv2.applyColorMap(ramp, cv2.COLORMAP_JET).reshape(-1, 3)
    return [(int(b), int(g), int(r), 255) for b, g, r in bgr]
