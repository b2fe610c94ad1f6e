"""OruxMaps calibration index (``{name}.otrk2.xml``).

The document has one outer MapCalibration naming the map and one nested
OruxTracker/MapCalibration per zoom level describing the tile grid and its
geographic corners.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from exporter.region import LayerBounds, MapRegion

logger = logging.getLogger(__name__)

NAMESPACE = "http://oruxtracker.com/app/res/calibration"


def layer_name(name: str, zoom: int) -> str:
    return f"{name} {zoom:02d}"


def _layer_element(name: str, layer: LayerBounds) -> ET.Element:
    lname = layer_name(name, layer.z)
    min_lat = f"{layer.bottom_right.lat:f}"
    max_lat = f"{layer.top_left.lat:f}"
    min_lon = f"{layer.top_left.lon:f}"
    max_lon = f"{layer.bottom_right.lon:f}"

    tracker = ET.Element("OruxTracker", {"xmlns": NAMESPACE, "versionCode": "2.1"})
    cal = ET.SubElement(tracker, "MapCalibration",
                        {"layers": "false", "layerLevel": str(layer.z)})
    ET.SubElement(cal, "MapName").text = lname
    ET.SubElement(cal, "MapChunks", {
        "xMax": str(layer.width),
        "yMax": str(layer.height),
        "datum": "WGS84",
        "projection": "Mercator",
        "img_height": "256",
        "img_width": "256",
        "file_name": lname,
    })
    ET.SubElement(cal, "MapDimensions", {"height": "256", "width": "256"})
    ET.SubElement(cal, "MapBounds", {
        "minLat": min_lat, "maxLat": max_lat, "minLon": min_lon, "maxLon": max_lon,
    })
    points = ET.SubElement(cal, "CalibrationPoints")
    for corner, lon, lat in (
        ("TL", min_lon, max_lat),
        ("BR", max_lon, min_lat),
        ("TR", max_lon, max_lat),
        ("BL", min_lon, min_lat),
    ):
        ET.SubElement(points, "CalibrationPoint", {"corner": corner, "lon": lon, "lat": lat})
    return tracker


def build_calibration(name: str, region: MapRegion) -> ET.ElementTree:
    """Build the calibration document for all zoom levels of ``region``."""
    root = ET.Element("OruxTracker", {"xmlns": NAMESPACE, "versionCode": "3.0"})
    cal = ET.SubElement(root, "MapCalibration", {"layers": "true", "layerLevel": "0"})
    ET.SubElement(cal, "MapName").text = name
    for z in region.zoom_levels:
        cal.append(_layer_element(name, region.layer_bounds(z)))
    ET.indent(root)
    return ET.ElementTree(root)


def calibration_path(out_dir: Path, name: str) -> Path:
    return out_dir / f"{name}.otrk2.xml"


def write_calibration(out_dir: Path, name: str, region: MapRegion) -> Path:
    """Write ``{out_dir}/{name}.otrk2.xml``."""
    path = calibration_path(out_dir, name)
    tree = build_calibration(name, region)
    tree.write(path, encoding="UTF-8", xml_declaration=True)
    logger.info("Wrote calibration index %s (%d layers)", path, len(region.zoom_levels))
    return path
