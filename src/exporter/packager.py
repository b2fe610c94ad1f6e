"""Package an exported map into a transferable archive.

Bundles the tile database and the calibration index into a tar.gz for
copying onto a phone or SD card.
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

from exporter.calibration import calibration_path
from exporter.orux import DB_NAME

logger = logging.getLogger(__name__)


def package(map_dir: Path, output_path: Path | None = None) -> Path:
    """Create a tar.gz archive of an exported map.

    Args:
        map_dir: export directory, named after the map
        output_path: output archive path (default: map_dir.tar.gz)

    Returns:
        Path to the created archive
    """
    name = map_dir.name
    if output_path is None:
        output_path = map_dir.with_name(f"{name}.tar.gz")

    for required in (map_dir / DB_NAME, calibration_path(map_dir, name)):
        if not required.is_file():
            raise FileNotFoundError(f"not an exported map, missing {required}")

    with tarfile.open(output_path, "w:gz") as tar:
        for item in sorted(map_dir.rglob("*")):
            if item.is_file():
                arcname = f"{name}/{item.relative_to(map_dir)}"
                tar.add(str(item), arcname=arcname)

    size_mb = output_path.stat().st_size / (1024 * 1024)
    logger.info("Package created: %s (%.1f MB)", output_path, size_mb)
    return output_path
