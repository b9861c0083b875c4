"""Infrastructure adapters for elevation rasters.

This module provides the infrastructure layer implementations of the
ElevationSource port, including sampling DEMs from GeoTIFF files.
"""

from .geotiff_adapter import GeoTiffRasterAdapter

__all__ = ["GeoTiffRasterAdapter"]
