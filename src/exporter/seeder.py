"""Async tile seeder.

Downloads every tile of a map region from a tile server into a local
z/x/y.png tile store, so later exports can run from disk.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiohttp

from shared.errors import DecodeError
from shared.tile import decode_png
from shared.tile_math import TileAddress
from exporter.region import DEFAULT_MAX_TILES, MapRegion
from tileserver.remote import USER_AGENT

logger = logging.getLogger(__name__)

OSM_URL = "https://tile.openstreetmap.org"


async def download_tile(
    session: aiohttp.ClientSession,
    base_url: str,
    tile: TileAddress,
    output_dir: Path,
    overwrite: bool = False,
) -> Path | None:
    """Download a single tile to ``output_dir/z/x/y.png``.

    Returns the saved file path, or None on failure.
    """
    out_path = output_dir / tile.path
    if out_path.exists() and not overwrite:
        return out_path

    url = f"{base_url.rstrip('/')}/{tile.path}"
    try:
        async with session.get(url) as resp:
            if resp.status != 200:
                logger.warning("Failed to download tile %s: HTTP %d", tile.path, resp.status)
                return None
            data = await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error("Error downloading tile %s: %s", tile.path, e)
        return None

    try:
        decode_png(data, url)
    except DecodeError as e:
        logger.warning("Discarding %s", e)
        return None

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    return out_path


async def seed_region(
    region: MapRegion,
    base_url: str,
    output_dir: Path,
    concurrency: int = 4,
    max_tiles: int = DEFAULT_MAX_TILES,
    timeout: float = 15.0,
) -> list[tuple[TileAddress, Path]]:
    """Download all tiles of ``region`` into a local tile store.

    The region goes through the same size guard as an export.

    Args:
        region: area and zoom levels to download
        base_url: tile server base URL, tiles at {base_url}/{z}/{x}/{y}.png
        output_dir: root of the local tile store
        concurrency: max concurrent downloads
        max_tiles: size guard ceiling
        timeout: total seconds per request

    Returns:
        List of (tile, path) pairs for tiles present after seeding
    """
    total = region.check(max_tiles)

    all_tiles: list[TileAddress] = []
    for z in region.zoom_levels:
        r = region.tile_range(z)
        all_tiles.extend(
            TileAddress(z=z, x=x, y=y)
            for x in range(r.x0, r.x1 + 1)
            for y in range(r.y0, r.y1 + 1)
        )
        logger.info("Zoom %d: %d tiles", z, r.count)

    logger.info("Total tiles to seed: %d", total)

    results: list[tuple[TileAddress, Path]] = []
    semaphore = asyncio.Semaphore(concurrency)

    async def _download(tile: TileAddress):
        async with semaphore:
            path = await download_tile(session, base_url, tile, output_dir)
            if path is not None:
                results.append((tile, path))

    headers = {"User-Agent": USER_AGENT}
    connector = aiohttp.TCPConnector(limit=concurrency)
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with aiohttp.ClientSession(connector=connector, headers=headers,
                                     timeout=client_timeout) as session:
        await asyncio.gather(*(_download(t) for t in all_tiles))

    logger.info("Seeded %d/%d tiles", len(results), len(all_tiles))
    return results
