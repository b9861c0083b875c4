"""Grid Bounded Context - Value Objects.

Immutable data structures for the tactical grid: map configuration, terrain
definitions, cells, rasters and published grid snapshots.
All validation occurs at construction time via Pydantic.

JSON-facing models use camelCase aliases (``gridSizeX``, ``movementCost``,
``extraData``) so configuration files written for the web client load as-is.
"""

from __future__ import annotations

import math
import numbers
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
IMPASSABLE = math.inf  # movement_cost sentinel: cell can never be entered
MAX_GRID_CELLS = 4096 * 4096  # dense planes are sized for one DEM tile

# Opaque per-cell payload; stored and returned, never interpreted
ExtraData = bytes | str


class BoundingBox(BaseModel):
    """Geographic extent in WGS84 degrees (Value Object).

    Invariants are enforced at construction time - invalid BoundingBox
    cannot be instantiated.
    """

    min_x: float  # Western boundary (longitude)
    min_y: float  # Southern boundary (latitude)
    max_x: float  # Eastern boundary (longitude)
    max_y: float  # Northern boundary (latitude)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BoundingBox":
        if not (-180 <= self.min_x <= 180):
            raise ValueError(f"min_x longitude out of range: {self.min_x}")
        if not (-180 <= self.max_x <= 180):
            raise ValueError(f"max_x longitude out of range: {self.max_x}")
        if not (-90 <= self.min_y <= 90):
            raise ValueError(f"min_y latitude out of range: {self.min_y}")
        if not (-90 <= self.max_y <= 90):
            raise ValueError(f"max_y latitude out of range: {self.max_y}")
        if not (self.min_x < self.max_x):
            raise ValueError(
                f"Invalid x ordering: min_x={self.min_x} >= max_x={self.max_x}"
            )
        if not (self.min_y < self.max_y):
            raise ValueError(
                f"Invalid y ordering: min_y={self.min_y} >= max_y={self.max_y}"
            )
        return self


class GeoPoint(BaseModel):
    """Geographic coordinate in WGS84 (Value Object).

    Serialized on the wire as ``{"lat", "lon"}``; both the short and the
    long names are accepted on input.

    Invariants:
        latitude in [-90, 90]
        longitude in [-180, 180]
    """

    latitude: float = Field(
        ge=-90,
        le=90,
        validation_alias=AliasChoices("latitude", "lat"),
        serialization_alias="lat",
    )
    longitude: float = Field(
        ge=-180,
        le=180,
        validation_alias=AliasChoices("longitude", "lon"),
        serialization_alias="lon",
    )

    model_config = ConfigDict(frozen=True)


def is_cell_index(value: Any) -> bool:
    """True for integer cell coordinates (Python or numpy ints, not bools)."""
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


class GridPoint(BaseModel):
    """Integer grid coordinate (Value Object). Bounds are checked by the grid."""

    x: int
    y: int

    model_config = ConfigDict(frozen=True)

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.y)


# ---------------------------------------------------------------------------
# Terrain
# ---------------------------------------------------------------------------
class TerrainType(BaseModel):
    """A terrain kind and its movement cost (Value Object).

    movement_cost is >= 0 (0 means free). ``IMPASSABLE`` (infinity), also
    accepted as the string "impassable", marks terrain that cannot be entered.
    visual_representation is an opaque tag for renderers.
    """

    id: int
    name: str = Field(min_length=1)
    movement_cost: float = Field(ge=0)
    visual_representation: str = ""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    @field_validator("movement_cost", mode="before")
    @classmethod
    def parse_impassable(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() == "impassable":
            return IMPASSABLE
        return value

    @property
    def impassable(self) -> bool:
        return math.isinf(self.movement_cost)


# ---------------------------------------------------------------------------
# MapConfig
# ---------------------------------------------------------------------------
class MapConfig(BaseModel):
    """Immutable map configuration supplied at initialization.

    Invariants:
        MC-1: grid sizes positive, grid_size_x * grid_size_y <= MAX_GRID_CELLS
        MC-2: cell_size positive and finite (meters per cell)
        MC-3: |initial_center_lat| < 90 (longitude scale needs cos(lat) > 0)
        MC-4: min_zoom <= initial_zoom <= max_zoom
        MC-5: terrain ids unique, catalog non-empty
        MC-6: default_terrain_id (if given) references the catalog
    """

    grid_size_x: int = Field(gt=0)
    grid_size_y: int = Field(gt=0)
    cell_size: float = Field(gt=0, allow_inf_nan=False)
    initial_zoom: float = Field(default=1.0, allow_inf_nan=False)
    initial_center_lat: float = Field(gt=-90, lt=90, allow_inf_nan=False)
    initial_center_lon: float = Field(ge=-180, le=180, allow_inf_nan=False)
    terrain_types: tuple[TerrainType, ...] = Field(min_length=1)
    min_zoom: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    max_zoom: float = Field(default=19.0, gt=0, allow_inf_nan=False)
    default_terrain_id: int | None = None

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    @model_validator(mode="after")
    def validate_config(self) -> "MapConfig":
        cells = self.grid_size_x * self.grid_size_y
        if cells > MAX_GRID_CELLS:
            raise ValueError(f"Grid of {cells} cells exceeds limit {MAX_GRID_CELLS}")
        if not (self.min_zoom <= self.initial_zoom <= self.max_zoom):
            raise ValueError(
                f"initial_zoom {self.initial_zoom} outside "
                f"[{self.min_zoom}, {self.max_zoom}]"
            )
        ids = [t.id for t in self.terrain_types]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Terrain type ids must be unique: {ids}")
        if self.default_terrain_id is not None and self.default_terrain_id not in ids:
            raise ValueError(
                f"default_terrain_id {self.default_terrain_id} not in catalog {ids}"
            )
        return self

    @property
    def cell_count(self) -> int:
        return self.grid_size_x * self.grid_size_y

    @property
    def resolved_default_terrain_id(self) -> int:
        """Terrain id given to freshly created cells."""
        if self.default_terrain_id is not None:
            return self.default_terrain_id
        return self.terrain_types[0].id


# ---------------------------------------------------------------------------
# GridCell
# ---------------------------------------------------------------------------
class GridCell(BaseModel):
    """Data held by one grid cell (Value Object).

    Structural validation only. Catalog membership and finite height are
    checked by GridStore, which owns the catalog.
    """

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    terrain_type: int
    obstacle: bool = False
    height: float = 0.0
    extra_data: ExtraData | None = None

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


# ---------------------------------------------------------------------------
# ElevationRaster
# ---------------------------------------------------------------------------
class ElevationRaster(BaseModel):
    """Row-major elevation samples, one per grid cell (Value Object).

    Sample ``i`` belongs to cell ``(i % width, i // width)``. NaN marks NoData.
    The sample array is an owned, read-only float64 copy.
    """

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    samples: NDArray[np.float64]

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_raster(self) -> "ElevationRaster":
        if self.samples.ndim != 1:
            raise ValueError(f"Samples must be 1D, got {self.samples.ndim}D")
        if self.samples.size != self.width * self.height:
            raise ValueError(
                f"Expected {self.width * self.height} samples, got {self.samples.size}"
            )
        owned = np.array(self.samples, dtype=np.float64, copy=True, order="C")
        owned.flags.writeable = False
        object.__setattr__(self, "samples", owned)
        return self

    def rows(self, chunk_rows: int) -> Iterator[tuple[int, NDArray[np.float64]]]:
        """Yield (start_index, samples) for successive blocks of whole rows."""
        step = max(1, chunk_rows) * self.width
        for start in range(0, self.samples.size, step):
            yield start, self.samples[start : start + step]


# ---------------------------------------------------------------------------
# GridSnapshot
# ---------------------------------------------------------------------------
class GridSnapshot(BaseModel):
    """Immutable, versioned view of every cell (Value Object).

    Planes are flat, row-major and indexed by ``y * size_x + x``. The arrays
    are owned read-only copies, so a published snapshot can be shared with
    any number of readers while the store publishes replacements.
    """

    generation: int = Field(ge=0)
    size_x: int = Field(gt=0)
    size_y: int = Field(gt=0)
    terrain_ids: NDArray[np.int64]
    obstacles: NDArray[np.bool_]
    heights: NDArray[np.float64]
    extra: Mapping[int, ExtraData] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_snapshot(self) -> "GridSnapshot":
        n = self.size_x * self.size_y
        planes = (
            ("terrain_ids", np.int64),
            ("obstacles", np.bool_),
            ("heights", np.float64),
        )
        for name, dtype in planes:
            plane = getattr(self, name)
            if plane.shape != (n,):
                raise ValueError(f"{name} must have shape ({n},), got {plane.shape}")
            frozen = np.array(plane, dtype=dtype, copy=True, order="C")
            frozen.flags.writeable = False
            object.__setattr__(self, name, frozen)
        if not np.isfinite(self.heights).all():
            raise ValueError("Snapshot heights must be finite")
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))
        return self

    def contains(self, x: int, y: int) -> bool:
        """True if (x, y) are integer coordinates of a cell in this snapshot."""
        if not (is_cell_index(x) and is_cell_index(y)):
            return False
        return 0 <= x < self.size_x and 0 <= y < self.size_y

    def index(self, x: int, y: int) -> int:
        return y * self.size_x + x

    def cell(self, x: int, y: int) -> GridCell:
        """Materialize the cell at (x, y). Caller checks bounds."""
        i = self.index(x, y)
        return GridCell(
            x=x,
            y=y,
            terrain_type=int(self.terrain_ids[i]),
            obstacle=bool(self.obstacles[i]),
            height=float(self.heights[i]),
            extra_data=self.extra.get(i),
        )

    def cells_in(self, x0: int, y0: int, x1: int, y1: int) -> list[GridCell]:
        """Cells of the inclusive rectangle [x0, x1] x [y0, y1], row-major."""
        return [self.cell(x, y) for y in range(y0, y1 + 1) for x in range(x0, x1 + 1)]
