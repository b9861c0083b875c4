"""Grid Bounded Context - Error Hierarchy.

Custom exceptions for grid, ingestion, navigation and viewport operations.

Every error carries the typed fields that describe the failure (offending
coordinate, expected/actual size, ...). The ``kind`` and ``code`` class
attributes are what the application layer turns into an ErrorResponse; the
formatted message is only a convenience for logs.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Coarse error taxonomy surfaced across the engine boundary."""

    OUT_OF_BOUNDS = "out_of_bounds"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DATA_FORMAT = "data_format"
    PATH_NOT_FOUND = "path_not_found"
    NOT_INITIALIZED = "not_initialized"
    CANCELLED = "cancelled"


class GridError(Exception):
    """Base error for grid engine operations."""

    kind: ErrorKind = ErrorKind.VALIDATION
    code: int = 103

    def details(self) -> dict[str, Any]:
        """Typed fields describing the failure (empty for plain errors)."""
        return {}


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------
class GridOutOfBoundsError(GridError):
    """Grid coordinate is not an integer cell in [0, size_x) x [0, size_y).

    Attributes:
        x, y: The offending grid coordinate
        size_x, size_y: The grid dimensions
    """

    kind = ErrorKind.OUT_OF_BOUNDS
    code = 100

    def __init__(self, x: float, y: float, size_x: int, size_y: int) -> None:
        self.x = x
        self.y = y
        self.size_x = size_x
        self.size_y = size_y
        super().__init__(
            f"Grid coordinate ({x}, {y}) outside grid "
            f"[0, {size_x}) x [0, {size_y})"
        )

    def details(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "size_x": self.size_x, "size_y": self.size_y}


class GeoOutOfBoundsError(GridError):
    """Geographic coordinate is invalid or falls outside the grid footprint."""

    kind = ErrorKind.OUT_OF_BOUNDS
    code = 101

    def __init__(self, latitude: float, longitude: float, reason: str) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.reason = reason
        super().__init__(f"Point ({latitude}, {longitude}) rejected: {reason}")

    def details(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "reason": self.reason,
        }


# ---------------------------------------------------------------------------
# Cell data and catalog
# ---------------------------------------------------------------------------
class InvalidCellDataError(GridError):
    """Cell payload failed validation (unknown terrain, non-finite height, ...)."""

    kind = ErrorKind.VALIDATION
    code = 103

    def __init__(self, x: int, y: int, field: str, value: Any) -> None:
        self.x = x
        self.y = y
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}={value!r} for cell ({x}, {y})")

    def details(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "field": self.field, "value": self.value}


class TerrainNotFoundError(GridError):
    """Terrain id is not part of the catalog."""

    kind = ErrorKind.NOT_FOUND
    code = 108

    def __init__(self, terrain_id: int) -> None:
        self.terrain_id = terrain_id
        super().__init__(f"Unknown terrain type id {terrain_id}")

    def details(self) -> dict[str, Any]:
        return {"terrain_id": self.terrain_id}


# ---------------------------------------------------------------------------
# Rasters and ingestion
# ---------------------------------------------------------------------------
class RasterFormatError(GridError):
    """Raster buffer cannot be applied to the grid (size or encoding mismatch)."""

    kind = ErrorKind.DATA_FORMAT
    code = 104

    def __init__(
        self,
        message: str,
        *,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"expected": self.expected, "actual": self.actual}


class InvalidRasterError(RasterFormatError):
    """File is not a valid raster, wrong format, or corrupted."""


class MissingCRSError(RasterFormatError):
    """Raster has no CRS defined."""


class IngestionCancelledError(GridError):
    """Ingestion task was cancelled before its snapshot was published."""

    kind = ErrorKind.CANCELLED
    code = 107


class IngestionStateError(GridError):
    """Ingestion task run again after it already ran."""

    kind = ErrorKind.VALIDATION
    code = 103

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(f"Ingestion task already {state}")

    def details(self) -> dict[str, Any]:
        return {"state": self.state}


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------
class PathNotFoundError(GridError):
    """No traversable route connects start and end."""

    kind = ErrorKind.PATH_NOT_FOUND
    code = 102

    def __init__(
        self, start: tuple[int, int], end: tuple[int, int], expansions: int
    ) -> None:
        self.start = start
        self.end = end
        self.expansions = expansions
        super().__init__(
            f"No path from {start} to {end} (expanded {expansions} cells)"
        )

    def details(self) -> dict[str, Any]:
        return {
            "start": list(self.start),
            "end": list(self.end),
            "expansions": self.expansions,
        }


# ---------------------------------------------------------------------------
# Viewport and location search
# ---------------------------------------------------------------------------
class InvalidViewportError(GridError):
    """Pan delta or zoom level is not a finite number."""

    kind = ErrorKind.VALIDATION
    code = 103


class LocationNotFoundError(GridError):
    """Search query is neither a coordinate pair nor a known place name."""

    kind = ErrorKind.NOT_FOUND
    code = 109

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"Search location not found: {query!r}")

    def details(self) -> dict[str, Any]:
        return {"query": self.query}


# ---------------------------------------------------------------------------
# Engine lifecycle
# ---------------------------------------------------------------------------
class EngineNotInitializedError(GridError):
    """Operation issued before the engine was initialized."""

    kind = ErrorKind.NOT_INITIALIZED
    code = 106

    def __init__(self) -> None:
        super().__init__("Map not initialized")


class EngineAlreadyInitializedError(GridError):
    """initialize() called after the engine has served an operation.

    This is a programming error and is raised, never converted to a result.
    """

    kind = ErrorKind.VALIDATION
    code = 106
