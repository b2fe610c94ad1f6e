"""Export a map region into an OruxMaps offline map.

An exported map is a directory ``{name}/`` containing:
  - OruxMapsImages.db   sqlite tile database, tiles(x, y, z, image)
  - {name}.otrk2.xml    calibration index, one layer per zoom level

Tile x/y in the database are relative to the region's top left tile at
each zoom level, not absolute grid indices.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from shared.errors import MapTilesError
from shared.tile import Tile, encode_png
from tileserver.base import SparseTileSource, TileSource
from exporter.calibration import write_calibration
from exporter.region import DEFAULT_MAX_TILES, MapRegion, TileRange
from exporter.writer import TileStoreWriter, default_writer

logger = logging.getLogger(__name__)

DB_NAME = "OruxMapsImages.db"

SQL_START = """
PRAGMA foreign_keys=OFF;
BEGIN TRANSACTION;
CREATE TABLE tiles (x int, y int, z int, image blob, PRIMARY KEY (x,y,z));
"""

SQL_END = """CREATE INDEX IND on tiles (x,y,z);
COMMIT;
"""


def insert_statement(x: int, y: int, z: int, png: bytes) -> str:
    return f"INSERT INTO \"tiles\" VALUES({x},{y},{z},X'{png.hex()}');\n"


@dataclass(slots=True)
class ExportStats:
    """Counters of one export run."""
    expected: int = 0
    written: int = 0
    missing: int = 0
    skipped: int = 0   # sparse tiles outside the region
    per_zoom: dict[int, int] = field(default_factory=dict)


def stream_tiles(region: MapRegion, source: TileSource, out: TextIO,
                 stats: ExportStats | None = None) -> ExportStats:
    """Write the SQL statements creating the tile database to ``out``.

    Sparse sources are drained and only their tiles inside the region are
    written; other sources are scanned over the full tile rectangle of each
    zoom level, x-major. Tiles the source cannot produce are logged and
    skipped.
    """
    if stats is None:
        stats = ExportStats()
    ranges = {z: region.tile_range(z) for z in region.zoom_levels}

    def insert(r: TileRange, x: int, y: int, tile: Tile) -> None:
        out.write(insert_statement(x - r.x0, y - r.y0, r.z, encode_png(tile)))
        stats.written += 1
        stats.per_zoom[r.z] = stats.per_zoom.get(r.z, 0) + 1

    out.write(SQL_START)
    if isinstance(source, SparseTileSource):
        for z, x, y, tile in source:
            r = ranges.get(z)
            if r is None or (x, y) not in r:
                logger.debug("Skipping sparse tile %d/%d/%d outside the region", z, x, y)
                stats.skipped += 1
                continue
            insert(r, x, y, tile)
    else:
        for z in region.zoom_levels:
            r = ranges[z]
            for x in range(r.x0, r.x1 + 1):
                for y in range(r.y0, r.y1 + 1):
                    try:
                        tile = source.get(z, x, y)
                    except (MapTilesError, OSError) as e:
                        logger.warning("Tile %d/%d/%d failed: %s", z, x, y, e)
                        tile = None
                    if tile is None:
                        logger.info("Tile %d/%d/%d not available, skipped", z, x, y)
                        stats.missing += 1
                        continue
                    insert(r, x, y, tile)
            logger.info("Zoom %d: %d tiles written", z, stats.per_zoom.get(z, 0))
    out.write(SQL_END)
    return stats


def export_map(
    region: MapRegion,
    name: str,
    source: TileSource,
    output_dir: Path = Path("."),
    writer: TileStoreWriter | None = None,
    max_tiles: int = DEFAULT_MAX_TILES,
) -> Path:
    """Export ``region`` from ``source`` into ``output_dir/name``.

    The size guard runs before anything touches the filesystem. The export
    directory must not exist yet. Returns the export directory.

    Raises:
        RegionTooLarge, MalformedRegion, ZoomOutOfRange, LatitudeOutOfRange,
        LongitudeOutOfRange:
            the region was rejected, nothing was written
        FileExistsError / OSError: the directory could not be created
        ExportError: the tile store writer failed
    """
    expected = region.check(max_tiles)
    logger.info("Exporting %s: %d tiles at zoom %s", name, expected, region.zoom_levels)

    map_dir = output_dir / name
    os.mkdir(map_dir, 0o755)

    if writer is None:
        writer = default_writer()
    stats = ExportStats(expected=expected)
    writer.write(map_dir / DB_NAME, lambda out: stream_tiles(region, source, out, stats))
    logger.info("Tile store written: %d tiles, %d missing, %d skipped",
                stats.written, stats.missing, stats.skipped)

    write_calibration(map_dir, name, region)
    return map_dir
