"""GeoTIFF adapter for ElevationSource.

Reads the part of a single-band DEM or bathymetry GeoTIFF that covers the
grid footprint, resampled to exactly one sample per grid cell, and returns a
domain ElevationRaster.

Lifecycle (to avoid resource leaks):
1) Validate the path (exists, .tif/.tiff, not a symlink, not empty)
2) Open dataset with context manager inside rasterio.Env
3) Read metadata and validate preconditions (one band, CRS, geotransform)
4) Window the footprint (transformed into the source CRS if needed)
5) Read with bilinear resampling to (grid_size_y, grid_size_x)
6) Convert nodata -> np.nan; flip rows so row 0 is the southern edge
7) Exit contexts to release GDAL handles
8) Return ElevationRaster

Sources in a projected CRS are windowed by their transformed bounds and
resampled axis-aligned; this matches the engine's simplified
equirectangular grid rather than performing a full reprojection.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import numpy as np
import rasterio
from affine import Affine
from rasterio.crs import CRS
from rasterio.enums import Resampling
from rasterio.errors import RasterioError, RasterioIOError
from rasterio.warp import transform_bounds
from rasterio.windows import from_bounds

from tactical_grid.grid.errors import InvalidRasterError, MissingCRSError
from tactical_grid.grid.value_objects import BoundingBox, ElevationRaster

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

# Grid footprints are expressed in WGS84 (constructed once for efficient comparison)
_TARGET_CRS = CRS.from_epsg(4326)

# Share of NoData samples above which a load is logged as suspicious
NODATA_WARNING_PCT = 80.0


def _is_wgs84(crs: Any) -> bool:
    """Check if CRS is WGS84 (EPSG:4326 or equivalent).

    Uses rasterio CRS equality first (handles projjson, wkt, etc.), then
    falls back to string comparison for lightweight CRS objects.
    """
    if crs is None:
        return False
    try:
        if crs == _TARGET_CRS:
            return True
    except (TypeError, AttributeError):
        pass
    return str(crs).upper() in ("EPSG:4326", "OGC:CRS84")


def _validate_transform(transform: Any) -> None:
    if not isinstance(transform, Affine):
        raise InvalidRasterError("Missing affine transform")
    coefficients = (
        transform.a,
        transform.b,
        transform.c,
        transform.d,
        transform.e,
        transform.f,
    )
    if any(math.isnan(v) or math.isinf(v) for v in coefficients):
        raise InvalidRasterError("Invalid (NaN/Inf) transform values")
    if transform.a == 0 or transform.e == 0:
        raise InvalidRasterError("Invalid transform scale (zero)")


class GeoTiffRasterAdapter:
    """Infrastructure adapter that samples GeoTIFF rasters onto the grid.

    Parameters
    ----------
    resampling: Resampling
        Resampling used when the source resolution differs from the grid's.
    """

    def __init__(self, resampling: Resampling = Resampling.bilinear) -> None:
        self.resampling = resampling

    def _check_path(self, path: Path) -> None:
        if not path.exists():
            raise FileNotFoundError(str(path))
        if path.suffix.lower() not in (".tif", ".tiff"):
            raise InvalidRasterError(f"Unsupported file extension: {path.suffix}")
        try:
            if path.is_symlink():
                raise InvalidRasterError("Symlinks are not permitted")
            if path.stat().st_size == 0:
                raise InvalidRasterError("Empty file")
        except OSError as e:
            # Log only filename, errno and strerror to avoid leaking absolute paths
            logger.error(
                "Failed to stat %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise

    def read_raster(
        self,
        file_path: Path | str,
        footprint: BoundingBox,
        width: int,
        height: int,
    ) -> ElevationRaster:
        """Sample the raster over ``footprint`` at width x height cells.

        Raises:
            FileNotFoundError: file does not exist
            PermissionError: file cannot be opened (message carries filename only)
            InvalidRasterError: wrong extension, empty, corrupted, not single-band,
                bad geotransform, or no data over the footprint
            MissingCRSError: raster has no CRS
        """
        path = Path(file_path)
        self._check_path(path)

        try:
            with rasterio.Env():
                with rasterio.open(path) as src:
                    if src.count != 1:
                        raise InvalidRasterError(f"Expected 1 band, got {src.count}")
                    if src.crs is None:
                        raise MissingCRSError("Raster has no CRS defined")
                    _validate_transform(src.transform)

                    bounds = (
                        footprint.min_x,
                        footprint.min_y,
                        footprint.max_x,
                        footprint.max_y,
                    )
                    if not _is_wgs84(src.crs):
                        bounds = transform_bounds(_TARGET_CRS, src.crs, *bounds)
                        logger.info(
                            "DEM %s: windowing footprint in %s",
                            path.name,
                            src.crs.to_string(),
                        )
                    window = from_bounds(*bounds, transform=src.transform)

                    data = src.read(
                        1,
                        window=window,
                        out_shape=(height, width),
                        resampling=self.resampling,
                        boundless=True,
                        masked=True,
                        out_dtype="float32",
                    )

                    # Convert nodata -> NaN: handle both masked arrays and explicit nodata
                    if hasattr(data, "mask") and np.any(data.mask):
                        data = np.where(data.mask, np.nan, data.data)
                    elif src.nodata is not None:
                        # Exact equality: nodata is stored as an exact value in metadata
                        data = np.where(data == src.nodata, np.nan, data)
                    data = np.asarray(data, dtype=np.float64)
        except PermissionError as e:
            # Re-raise with filename only to avoid leaking full path in logs
            raise PermissionError(path.name) from e
        except (RasterioIOError, RasterioError) as e:
            raise InvalidRasterError(f"Corrupted or invalid raster: {e}") from e

        if data.shape != (height, width):
            raise InvalidRasterError(
                f"Resampled raster has shape {data.shape}, expected ({height}, {width})"
            )
        nodata_pct = float(np.isnan(data).mean() * 100.0)
        if nodata_pct == 100.0:
            raise InvalidRasterError("Raster has no data over the grid footprint")
        if nodata_pct > NODATA_WARNING_PCT:
            logger.warning(
                "DEM %s: %.1f%% NoData samples over the grid", path.name, nodata_pct
            )
        logger.info("DEM %s: sampled %dx%d grid", path.name, width, height)

        # Raster row 0 is the northern edge; grid row 0 is the southern edge
        return ElevationRaster(
            width=width, height=height, samples=np.flipud(data).reshape(-1)
        )
