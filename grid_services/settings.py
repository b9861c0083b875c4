"""Engine settings loaded from JSON.

File layout (camelCase keys, as written by the web client)::

    {
      "map": {"gridSizeX": 64, "gridSizeY": 64, "cellSize": 1000, ...},
      "gazetteer": [
        {"name": "Harbor", "x": 12, "y": 40},
        {"name": "Lighthouse", "lat": 37.81, "lon": -122.47}
      ]
    }
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tactical_grid.grid.value_objects import MapConfig

logger = logging.getLogger(__name__)


class GazetteerEntry(BaseModel):
    """Named location given either as grid cell (x, y) or as (lat, lon)."""

    name: str = Field(min_length=1)
    x: int | None = None
    y: int | None = None
    lat: float | None = None
    lon: float | None = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_form(self) -> "GazetteerEntry":
        has_grid = self.x is not None and self.y is not None
        has_geo = self.lat is not None and self.lon is not None
        if has_grid == has_geo:
            raise ValueError(
                f"Gazetteer entry {self.name!r} needs exactly one of (x, y) or (lat, lon)"
            )
        return self


class EngineSettings(BaseModel):
    """Map configuration plus the gazetteer to seed location search with."""

    map_config: MapConfig = Field(alias="map")
    gazetteer: tuple[GazetteerEntry, ...] = ()

    model_config = ConfigDict(frozen=True, populate_by_name=True)


def load_settings(file_path: Path | str) -> EngineSettings:
    """Read and validate engine settings from a JSON file.

    Raises:
        FileNotFoundError: file does not exist
        pydantic.ValidationError: malformed JSON or invalid settings
    """
    path = Path(file_path)
    settings = EngineSettings.model_validate_json(path.read_text(encoding="utf-8"))
    logger.info(
        "Loaded settings %s: %dx%d grid, %d gazetteer entries",
        path.name,
        settings.map_config.grid_size_x,
        settings.map_config.grid_size_y,
        len(settings.gazetteer),
    )
    return settings
