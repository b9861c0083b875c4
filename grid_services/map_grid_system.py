"""MapGridSystem: the public operation surface of the tactical grid engine.

Wires the domain components together for one map and converts every domain
error into an ErrorResponse, so no GridError crosses this boundary. The only
exception raised on purpose is EngineAlreadyInitializedError: calling
initialize() after the engine has served an operation is a programming error.

Example:
    >>> system = MapGridSystem()
    >>> system.initialize(config)
    >>> result = system.find_path(0, 0, 9, 9)
    >>> if result.is_ok:
    ...     print(result.value.total_cost)
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, TypeVar

from tactical_grid.grid.catalog import TerrainCatalog
from tactical_grid.grid.errors import (
    EngineAlreadyInitializedError,
    EngineNotInitializedError,
    GridError,
)
from tactical_grid.grid.ingest import (
    DEFAULT_BUFFER_DTYPE,
    ElevationIngester,
    IngestionTask,
    RasterInput,
)
from tactical_grid.grid.repositories import ElevationSource
from tactical_grid.grid.store import CellPayload, GridStore
from tactical_grid.grid.transform import CoordinateTransformer
from tactical_grid.grid.value_objects import (
    ElevationRaster,
    GeoPoint,
    GridCell,
    GridPoint,
    MapConfig,
    TerrainType,
)
from tactical_grid.navigation.services import PathFinder, measure_range
from tactical_grid.navigation.value_objects import PathResult
from tactical_grid.viewport.controller import ViewportController, VisibleRegion
from tactical_grid.viewport.locations import LocationIndex
from grid_services.infrastructure.raster import GeoTiffRasterAdapter
from grid_services.results import ErrorResponse, Ok, Result
from grid_services.settings import EngineSettings

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _operation(method: F) -> F:
    """Run a facade method inside the error boundary.

    Requires initialization, marks the engine as used, wraps the return
    value in Ok and any GridError in ErrorResponse. Return annotations on
    decorated methods name the type carried by Ok.value.
    """

    @functools.wraps(method)
    def wrapper(self: "MapGridSystem", *args: Any, **kwargs: Any) -> Result:
        try:
            if self._config is None:
                raise EngineNotInitializedError()
            self._used = True
            return Ok(value=method(self, *args, **kwargs))
        except GridError as e:
            logger.warning("%s rejected: %s", method.__name__, e)
            return ErrorResponse.from_error(e)

    return wrapper  # type: ignore[return-value]


class MapGridSystem:
    """One tactical map: grid data, pathfinding, viewport and search."""

    def __init__(self, raster_source: ElevationSource | None = None) -> None:
        self.raster_source: ElevationSource = raster_source or GeoTiffRasterAdapter()
        self._config: MapConfig | None = None
        self._used = False

    @classmethod
    def from_settings(
        cls, settings: EngineSettings, raster_source: ElevationSource | None = None
    ) -> "MapGridSystem":
        """Build an initialized engine with its gazetteer seeded.

        Raises:
            GridError: a gazetteer entry lies off the grid
        """
        system = cls(raster_source)
        system.initialize(settings.map_config)
        for entry in settings.gazetteer:
            if entry.x is not None and entry.y is not None:
                system.locations.register(entry.name, entry.x, entry.y)
            else:
                system.locations.register_geo(entry.name, entry.lat, entry.lon)
        return system

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------
    def initialize(self, config: MapConfig | Mapping[str, Any]) -> None:
        """Build all components for ``config``.

        May be repeated until the first operation; afterwards it raises
        EngineAlreadyInitializedError.

        Raises:
            pydantic.ValidationError: invalid configuration mapping
        """
        if self._used:
            raise EngineAlreadyInitializedError(
                "initialize() called after the engine was used"
            )
        if not isinstance(config, MapConfig):
            config = MapConfig.model_validate(config)
        self.transformer = CoordinateTransformer(config)
        self.catalog = TerrainCatalog(config.terrain_types)
        self.store = GridStore(
            config.grid_size_x,
            config.grid_size_y,
            self.catalog,
            config.resolved_default_terrain_id,
        )
        self.ingester = ElevationIngester(self.store)
        self.pathfinder = PathFinder(self.catalog)
        self.viewport = ViewportController(config, self.transformer, self.store)
        self.locations = LocationIndex(self.transformer)
        self._config = config
        logger.info(
            "Map initialized: %dx%d cells of %.1f m, %d terrain types",
            config.grid_size_x,
            config.grid_size_y,
            config.cell_size,
            len(self.catalog),
        )

    @property
    def initialized(self) -> bool:
        return self._config is not None

    @_operation
    def get_map_config(self) -> MapConfig:
        return self._config

    # -----------------------------------------------------------------------
    # Elevation ingestion
    # -----------------------------------------------------------------------
    @_operation
    def load_dem(self, raster: RasterInput, dtype: str = DEFAULT_BUFFER_DTYPE) -> None:
        """Replace cell heights from a DEM raster (one sample per cell)."""
        self.ingester.load_dem(raster, dtype=dtype)

    @_operation
    def set_bathymetry_data(
        self, raster: RasterInput, dtype: str = DEFAULT_BUFFER_DTYPE
    ) -> None:
        """Overlay below-sea-level samples onto cells at or below sea level."""
        self.ingester.set_bathymetry_data(raster, dtype=dtype)

    @_operation
    def begin_dem_load(
        self, raster: RasterInput, dtype: str = DEFAULT_BUFFER_DTYPE
    ) -> IngestionTask:
        """Size-check a DEM and hand back a cancellable task to run later."""
        return self.ingester.begin_dem_load(raster, dtype=dtype)

    @_operation
    def begin_bathymetry_load(
        self, raster: RasterInput, dtype: str = DEFAULT_BUFFER_DTYPE
    ) -> IngestionTask:
        return self.ingester.begin_bathymetry_load(raster, dtype=dtype)

    @_operation
    def run_ingestion(self, task: IngestionTask) -> int:
        """Run a task from begin_*_load; returns the published generation."""
        return task.run().generation

    def _read_file(self, file_path: Path | str) -> ElevationRaster:
        return self.raster_source.read_raster(
            file_path,
            self.transformer.footprint(),
            self._config.grid_size_x,
            self._config.grid_size_y,
        )

    @_operation
    def load_dem_file(self, file_path: Path | str) -> None:
        """Sample a DEM GeoTIFF over the grid footprint and load it."""
        self.ingester.load_dem(self._read_file(file_path))

    @_operation
    def load_bathymetry_file(self, file_path: Path | str) -> None:
        self.ingester.set_bathymetry_data(self._read_file(file_path))

    # -----------------------------------------------------------------------
    # Coordinates
    # -----------------------------------------------------------------------
    @_operation
    def grid_to_latlon(self, x: float, y: float) -> GeoPoint:
        return self.transformer.grid_to_latlon(x, y)

    @_operation
    def latlon_to_grid(self, lat: float, lon: float) -> GridPoint:
        return self.transformer.latlon_to_grid(lat, lon)

    # -----------------------------------------------------------------------
    # Cells
    # -----------------------------------------------------------------------
    @_operation
    def get_grid_cell_data(self, x: int, y: int) -> GridCell:
        return self.store.get(x, y)

    @_operation
    def set_grid_cell_data(self, x: int, y: int, data: CellPayload) -> None:
        self.store.set(x, y, data)

    @_operation
    def set_grid_cells_data(
        self, updates: Iterable[tuple[int, int, CellPayload]]
    ) -> None:
        """Apply many cell updates at once; all are validated before any lands."""
        self.store.set_many(updates)

    @_operation
    def get_terrain_type(self, x: int, y: int) -> TerrainType:
        return self.store.get_terrain_type(x, y)

    # -----------------------------------------------------------------------
    # Navigation
    # -----------------------------------------------------------------------
    @_operation
    def find_path(
        self, start_x: int, start_y: int, end_x: int, end_y: int
    ) -> PathResult:
        return self.pathfinder.find_path(
            self.store.current, (start_x, start_y), (end_x, end_y)
        )

    @_operation
    def measure_range(
        self, start_x: int, start_y: int, end_x: int, end_y: int
    ) -> float:
        """Geodesic distance in meters between two cell centers."""
        return measure_range(self.transformer, (start_x, start_y), (end_x, end_y))

    # -----------------------------------------------------------------------
    # Viewport
    # -----------------------------------------------------------------------
    @_operation
    def pan_map(self, delta_x: float, delta_y: float) -> None:
        self.viewport.pan(delta_x, delta_y)

    @_operation
    def zoom_map(self, zoom_level: float) -> None:
        self.viewport.zoom_to(zoom_level)

    @_operation
    def center_on(self, x: int, y: int) -> None:
        self.viewport.center_on(x, y)

    @_operation
    def select_grid_cell(self, x: int, y: int) -> None:
        self.viewport.select(x, y)

    @_operation
    def get_visible_grid_cells(self) -> list[GridCell]:
        return self.viewport.visible_cells()

    @_operation
    def get_visible_region(self) -> VisibleRegion:
        return self.viewport.visible_region()

    # -----------------------------------------------------------------------
    # Search
    # -----------------------------------------------------------------------
    @_operation
    def search_location(self, query: str) -> GridPoint | GeoPoint:
        return self.locations.search(query)

    @_operation
    def register_location(self, name: str, x: int, y: int) -> GridPoint:
        return self.locations.register(name, x, y)
