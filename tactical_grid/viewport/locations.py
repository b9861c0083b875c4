"""Free-text location search: literal coordinates or gazetteer names."""

from __future__ import annotations

import logging
import math

from tactical_grid.grid.errors import GridError, LocationNotFoundError
from tactical_grid.grid.transform import CoordinateTransformer
from tactical_grid.grid.value_objects import GeoPoint, GridPoint

logger = logging.getLogger(__name__)


def _normalize(name: str) -> str:
    return name.strip().casefold()


def parse_coordinates(query: str) -> GeoPoint | None:
    """Parse "lat,lon" into a GeoPoint, or None if it is not a valid pair."""
    parts = query.split(",")
    if len(parts) != 2:
        return None
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None
    return GeoPoint(latitude=lat, longitude=lon)


class LocationIndex:
    """Resolves search queries against coordinates and a name gazetteer.

    Resolution order:
        1) two comma-separated numbers in WGS84 range -> GeoPoint as given
        2) exact, case-insensitive gazetteer name -> its GridPoint
        3) otherwise LocationNotFoundError
    """

    def __init__(self, transformer: CoordinateTransformer) -> None:
        self.transformer = transformer
        self._gazetteer: dict[str, GridPoint] = {}

    def __len__(self) -> int:
        return len(self._gazetteer)

    def register(self, name: str, x: int, y: int) -> GridPoint:
        """Add or replace a named grid location.

        Raises:
            GridError: blank name
            GridOutOfBoundsError: (x, y) outside the grid
        """
        key = _normalize(name) if isinstance(name, str) else ""
        if not key:
            raise GridError("Location name cannot be blank")
        self.transformer.check_cell(x, y)
        point = GridPoint(x=int(x), y=int(y))
        self._gazetteer[key] = point
        return point

    def register_geo(self, name: str, latitude: float, longitude: float) -> GridPoint:
        """Add a named location given in lat/lon; stored as its grid cell.

        Raises:
            GeoOutOfBoundsError: location is off the grid
        """
        point = self.transformer.latlon_to_grid(latitude, longitude)
        return self.register(name, point.x, point.y)

    def search(self, query: str) -> GridPoint | GeoPoint:
        """Resolve ``query``.

        Raises:
            LocationNotFoundError: neither a coordinate pair nor a known name
        """
        if not isinstance(query, str):
            raise LocationNotFoundError(query)
        coordinates = parse_coordinates(query)
        if coordinates is not None:
            return coordinates
        point = self._gazetteer.get(_normalize(query))
        if point is None:
            logger.debug("No gazetteer entry for %r", query)
            raise LocationNotFoundError(query)
        return point
