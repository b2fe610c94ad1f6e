"""CLI for exporting offline maps.

Usage:
    maptiles latlon2tile --lat 53.58 --lon 9.99 --zoom 13
    maptiles export Alster --top-left 53.58914,9.99786 --bottom-right 53.57668,10.01678 --zoom 13,15 --local ./tiles
    maptiles world MyWorld --points points.txt --zoom 2
    maptiles seed --top-left 53.58914,9.99786 --bottom-right 53.57668,10.01678 --zoom 13,15 -o ./tiles
    maptiles package ./Alster
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click

from shared.errors import MapTilesError
from shared.tile_math import MAX_LATITUDE, GeoPoint, min_latitude, pixel_ground_size, to_tile_address
from tileserver.config import build_source
from tileserver.synthetic import SparsePointSource, read_points
from exporter.config import ExportConfig, load_config
from exporter.orux import export_map
from exporter.packager import package
from exporter.region import MapRegion
from exporter.seeder import OSM_URL, seed_region


def _parse_point(value: str) -> GeoPoint:
    try:
        lat, lon = map(float, value.split(","))
    except ValueError:
        raise click.BadParameter(f"expected LAT,LON, got {value!r}")
    return GeoPoint(lat=lat, lon=lon)


def _parse_zoom(value: str) -> list[int]:
    try:
        return [int(z.strip()) for z in value.split(",")]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated zoom levels, got {value!r}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", type=click.Path(exists=True, path_type=Path),
              help="JSON config file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None):
    """maptiles: slippy map tiles to offline OruxMaps maps."""
    config = load_config(config_path)
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    ctx.obj = config


@cli.command()
@click.option("--lat", default=50.0, type=float, help="Latitude (degree)")
@click.option("--lon", default=0.0, type=float, help="Longitude (degree)")
@click.option("--zoom", default=11, type=int, help="Zoom level")
def latlon2tile(lat: float, lon: float, zoom: int):
    """Print the tile and pixel containing a coordinate."""
    try:
        addr = to_tile_address(GeoPoint(lat=lat, lon=lon), zoom)
    except MapTilesError as e:
        raise click.ClickException(str(e))
    click.echo(str(addr))
    click.echo(f"pixel size: {pixel_ground_size(addr):.3f}m")


@cli.command()
@click.argument("name")
@click.option("--top-left", required=True, help="Top left corner as LAT,LON")
@click.option("--bottom-right", required=True, help="Bottom right corner as LAT,LON")
@click.option("--zoom", default="13", help="Comma-separated zoom levels")
@click.option("--local", "local_dir", type=click.Path(path_type=Path), help="Local z/x/y.png tile store")
@click.option("--url", help="Tile server base URL")
@click.option("--points", "points_file", type=click.Path(exists=True, path_type=Path),
              help="Points file drawn over the tiles")
@click.option("--max-tiles", type=int, help="Size guard ceiling")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output directory")
@click.pass_obj
def export(config: ExportConfig, name: str, top_left: str, bottom_right: str, zoom: str,
           local_dir: Path | None, url: str | None, points_file: Path | None,
           max_tiles: int | None, output: Path | None):
    """Export a region into an OruxMaps map directory NAME."""
    source_updates = {k: v for k, v in
                      {"local_dir": local_dir, "url": url, "points_file": points_file}.items()
                      if v is not None}
    source_config = config.source.model_copy(update=source_updates)
    region = MapRegion(_parse_point(top_left), _parse_point(bottom_right), _parse_zoom(zoom))

    try:
        map_dir = export_map(
            region, name, build_source(source_config),
            output_dir=output or config.output_dir,
            writer=config.make_writer(),
            max_tiles=max_tiles if max_tiles is not None else config.max_tiles,
        )
    except (MapTilesError, OSError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Map exported to {map_dir}")


@cli.command()
@click.argument("name")
@click.option("--points", "points_file", required=True,
              type=click.Path(exists=True, path_type=Path), help="Points file, one 'lat lon' per line")
@click.option("--zoom", default="2", help="Comma-separated zoom levels")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output directory")
@click.pass_obj
def world(config: ExportConfig, name: str, points_file: Path, zoom: str, output: Path | None):
    """Export a world map showing only the tiles that contain points."""
    zoom_levels = _parse_zoom(zoom)
    try:
        source = SparsePointSource(read_points(points_file), zoom_levels)
        # min_latitude is loosest at the lowest zoom, so that corner is valid at every level.
        region = MapRegion(
            GeoPoint(lat=MAX_LATITUDE, lon=-180.0),
            GeoPoint(lat=min_latitude(min(zoom_levels)), lon=179.999999),
            zoom_levels,
        )
        map_dir = export_map(region, name, source,
                             output_dir=output or config.output_dir,
                             writer=config.make_writer(),
                             max_tiles=config.max_tiles)
    except (MapTilesError, OSError) as e:
        raise click.ClickException(str(e))
    click.echo(f"World map with {source.tile_count} tiles exported to {map_dir}")


@cli.command()
@click.option("--top-left", required=True, help="Top left corner as LAT,LON")
@click.option("--bottom-right", required=True, help="Bottom right corner as LAT,LON")
@click.option("--zoom", default="13", help="Comma-separated zoom levels")
@click.option("--url", default=OSM_URL, help="Tile server base URL")
@click.option("--output", "-o", type=click.Path(path_type=Path), required=True,
              help="Local tile store directory")
@click.option("--concurrency", type=int, help="Max concurrent downloads")
@click.pass_obj
def seed(config: ExportConfig, top_left: str, bottom_right: str, zoom: str, url: str,
         output: Path, concurrency: int | None):
    """Download a region's tiles into a local tile store."""
    region = MapRegion(_parse_point(top_left), _parse_point(bottom_right), _parse_zoom(zoom))
    try:
        results = asyncio.run(seed_region(
            region, url, output,
            concurrency=concurrency or config.seed_concurrency,
            max_tiles=config.max_tiles,
            timeout=config.source.timeout,
        ))
    except (MapTilesError, OSError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Seeded {len(results)} tiles into {output}")


@cli.command("package")
@click.argument("map_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output archive path")
def package_cmd(map_dir: Path, output: Path | None):
    """Package an exported map into tar.gz for transfer."""
    try:
        result = package(map_dir, output)
    except OSError as e:
        raise click.ClickException(str(e))
    click.echo(f"Package created: {result}")


if __name__ == "__main__":
    cli()
