"""Coordinate transform between WGS84 lat/lon and grid cells.

A simplified equirectangular mapping: the configured initial center is placed
at the grid center, latitude advances a fixed number of degrees per cell and
longitude is widened by 1/cos(reference latitude) to account for meridian
convergence. Grid y grows northward, grid x eastward.

    lat = lat0 + (y - size_y / 2) * cell_size / METERS_PER_DEGREE
    lon = lon0 + (x - size_x / 2) * cell_size / (METERS_PER_DEGREE * cos(lat0))

The inverse is exact, so converting a cell to lat/lon and back returns the
same cell. Nothing is clamped: out-of-range input raises.
"""

from __future__ import annotations

import math
import numbers

from tactical_grid.grid.errors import GeoOutOfBoundsError, GridOutOfBoundsError
from tactical_grid.grid.value_objects import (
    BoundingBox,
    GeoPoint,
    GridPoint,
    MapConfig,
    is_cell_index,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
METERS_PER_DEGREE = 111_000.0  # meters per degree of latitude (spherical approx.)

# Round-trip tolerance in degrees for fractional positions
ROUND_TRIP_EPSILON_DEG = 1e-6


class CoordinateTransformer:
    """Bidirectional lat/lon <-> grid mapping for one MapConfig."""

    def __init__(self, config: MapConfig) -> None:
        self.size_x = config.grid_size_x
        self.size_y = config.grid_size_y
        self.origin = GeoPoint(
            latitude=config.initial_center_lat, longitude=config.initial_center_lon
        )
        # Degrees spanned by one cell along each axis
        self.lat_step = config.cell_size / METERS_PER_DEGREE
        self.lon_step = config.cell_size / (
            METERS_PER_DEGREE * math.cos(math.radians(config.initial_center_lat))
        )

    # -----------------------------------------------------------------------
    # Grid -> geographic
    # -----------------------------------------------------------------------
    def in_bounds(self, x: float, y: float) -> bool:
        return 0 <= x < self.size_x and 0 <= y < self.size_y

    def check_bounds(self, x: float, y: float) -> None:
        """Raise GridOutOfBoundsError unless (x, y) lies inside the grid."""
        if not (isinstance(x, numbers.Real) and isinstance(y, numbers.Real)):
            raise GridOutOfBoundsError(x, y, self.size_x, self.size_y)
        if not (math.isfinite(x) and math.isfinite(y)) or not self.in_bounds(x, y):
            raise GridOutOfBoundsError(x, y, self.size_x, self.size_y)

    def check_cell(self, x: int, y: int) -> None:
        """Like check_bounds, but (x, y) must also be integer cell coordinates."""
        if not (is_cell_index(x) and is_cell_index(y)):
            raise GridOutOfBoundsError(x, y, self.size_x, self.size_y)
        self.check_bounds(x, y)

    def grid_to_latlon(self, x: float, y: float) -> GeoPoint:
        """Convert a grid position (integer cell or fractional) to lat/lon.

        Raises:
            GridOutOfBoundsError: (x, y) outside [0, size_x) x [0, size_y)
            GeoOutOfBoundsError: result outside the valid WGS84 range
        """
        self.check_bounds(x, y)
        lat = self.origin.latitude + (y - self.size_y / 2) * self.lat_step
        lon = self.origin.longitude + (x - self.size_x / 2) * self.lon_step
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise GeoOutOfBoundsError(lat, lon, "grid extends past the WGS84 range")
        return GeoPoint(latitude=lat, longitude=lon)

    # -----------------------------------------------------------------------
    # Geographic -> grid
    # -----------------------------------------------------------------------
    def latlon_to_fractional(self, lat: float, lon: float) -> tuple[float, float]:
        """Exact inverse of grid_to_latlon, without rounding or grid bounds.

        Raises:
            GeoOutOfBoundsError: input is not a finite number or lies outside
                [-90, 90] x [-180, 180]
        """
        if not (isinstance(lat, numbers.Real) and isinstance(lon, numbers.Real)):
            raise GeoOutOfBoundsError(lat, lon, "coordinate is not a number")
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise GeoOutOfBoundsError(lat, lon, "coordinate is not finite")
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            raise GeoOutOfBoundsError(lat, lon, "outside WGS84 range")
        fx = (lon - self.origin.longitude) / self.lon_step + self.size_x / 2
        fy = (lat - self.origin.latitude) / self.lat_step + self.size_y / 2
        return fx, fy

    def latlon_to_grid(self, lat: float, lon: float) -> GridPoint:
        """Convert lat/lon to the nearest grid cell (round half up).

        Raises:
            GeoOutOfBoundsError: invalid coordinate or outside the grid footprint
        """
        fx, fy = self.latlon_to_fractional(lat, lon)
        x = math.floor(fx + 0.5)
        y = math.floor(fy + 0.5)
        if not self.in_bounds(x, y):
            raise GeoOutOfBoundsError(lat, lon, "outside grid footprint")
        return GridPoint(x=x, y=y)

    # -----------------------------------------------------------------------
    # Footprint
    # -----------------------------------------------------------------------
    def footprint(self) -> BoundingBox:
        """Geographic extent covered by the grid, cell edges included.

        Cell (x, y) is centered on its grid position, so the footprint spans
        half a cell beyond the first and last cell centers.
        """
        half = 0.5
        south = self.origin.latitude + (-half - self.size_y / 2) * self.lat_step
        north = self.origin.latitude + (self.size_y / 2 - half) * self.lat_step
        west = self.origin.longitude + (-half - self.size_x / 2) * self.lon_step
        east = self.origin.longitude + (self.size_x / 2 - half) * self.lon_step
        try:
            return BoundingBox(min_x=west, min_y=south, max_x=east, max_y=north)
        except ValueError as e:
            raise GeoOutOfBoundsError(
                self.origin.latitude, self.origin.longitude, str(e)
            ) from e
