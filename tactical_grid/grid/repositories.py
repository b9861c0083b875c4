"""Domain Port(s) for elevation raster I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .value_objects import BoundingBox, ElevationRaster


class ElevationSource(Protocol):
    """Port for obtaining grid-sized elevation rasters from external sources.

    Implementations live in infrastructure (e.g., GeoTIFF adapter).
    """

    def read_raster(
        self,
        file_path: Path | str,
        footprint: BoundingBox,
        width: int,
        height: int,
    ) -> ElevationRaster:
        """Resample the part of a raster covering ``footprint`` to width x height.

        Sample order must match the grid: row 0 is the southern edge.
        """
        ...
