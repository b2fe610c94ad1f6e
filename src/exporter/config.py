"""Export configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from exporter.region import DEFAULT_MAX_TILES
from exporter.writer import SqliteCliWriter, SqliteLibraryWriter, TileStoreWriter, default_writer
from tileserver.config import SourceConfig


class ExportConfig(BaseModel):
    """Top-level configuration for exports and seeding."""
    output_dir: Path = Path(".")
    max_tiles: int = DEFAULT_MAX_TILES   # size guard ceiling, summed over zoom levels
    writer: Literal["auto", "cli", "library"] = "auto"
    sqlite3: str = "sqlite3"             # executable used by the cli writer
    seed_concurrency: int = 4
    source: SourceConfig = SourceConfig()
    log_level: str = "INFO"

    def make_writer(self) -> TileStoreWriter:
        if self.writer == "cli":
            return SqliteCliWriter(self.sqlite3)
        if self.writer == "library":
            return SqliteLibraryWriter()
        return default_writer(self.sqlite3)


def load_config(path: Path | None) -> ExportConfig:
    """Load a JSON config file, or the defaults when no path is given."""
    if path is None:
        return ExportConfig()
    return ExportConfig.model_validate_json(path.read_text())
