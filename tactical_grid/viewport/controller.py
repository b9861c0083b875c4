"""Viewport: the visible pan/zoom window over the grid.

Viewport coordinates are continuous, in cells, with cell (x, y) covering
[x, x + 1) x [y, y + 1). At zoom z the window spans size / z cells on each
axis (never less than one cell, never more than the grid), and the center is
clamped so the window always stays inside [0, size_x] x [0, size_y].
"""

from __future__ import annotations

import logging
import math
import numbers

from pydantic import BaseModel, ConfigDict, Field

from tactical_grid.grid.errors import InvalidViewportError
from tactical_grid.grid.store import GridStore
from tactical_grid.grid.transform import CoordinateTransformer
from tactical_grid.grid.value_objects import GeoPoint, GridCell, GridPoint, MapConfig

logger = logging.getLogger(__name__)


def _finite(*values: object) -> bool:
    return all(isinstance(v, numbers.Real) and math.isfinite(v) for v in values)


class Viewport(BaseModel):
    """Pan/zoom state and the window it shows (Value Object)."""

    center_x: float
    center_y: float
    zoom: float = Field(gt=0)
    left: float
    bottom: float
    right: float
    top: float

    model_config = ConfigDict(frozen=True)


class VisibleRegion(BaseModel):
    """Cells inside the viewport, captured from one grid generation."""

    x0: int  # inclusive cell range
    y0: int
    x1: int
    y1: int
    generation: int = Field(ge=0)
    cells: tuple[GridCell, ...]

    model_config = ConfigDict(frozen=True)


class ViewportController:
    """Owns the viewport and the single-cell selection."""

    def __init__(
        self, config: MapConfig, transformer: CoordinateTransformer, store: GridStore
    ) -> None:
        self.size_x = config.grid_size_x
        self.size_y = config.grid_size_y
        self.min_zoom = config.min_zoom
        self.max_zoom = config.max_zoom
        self.transformer = transformer
        self.store = store
        self.zoom = config.initial_zoom
        # The configured geographic center sits on cell (size/2, size/2)
        self.center_x = self.size_x / 2 + 0.5
        self.center_y = self.size_y / 2 + 0.5
        self.selected: GridPoint | None = None
        self._clamp_center()

    # -----------------------------------------------------------------------
    # Geometry
    # -----------------------------------------------------------------------
    def _span(self) -> tuple[float, float]:
        span_x = min(float(self.size_x), max(1.0, self.size_x / self.zoom))
        span_y = min(float(self.size_y), max(1.0, self.size_y / self.zoom))
        return span_x, span_y

    def _clamp_center(self) -> None:
        span_x, span_y = self._span()
        self.center_x = min(max(self.center_x, span_x / 2), self.size_x - span_x / 2)
        self.center_y = min(max(self.center_y, span_y / 2), self.size_y - span_y / 2)

    @property
    def viewport(self) -> Viewport:
        span_x, span_y = self._span()
        return Viewport(
            center_x=self.center_x,
            center_y=self.center_y,
            zoom=self.zoom,
            left=self.center_x - span_x / 2,
            bottom=self.center_y - span_y / 2,
            right=self.center_x + span_x / 2,
            top=self.center_y + span_y / 2,
        )

    @property
    def center_geo(self) -> GeoPoint:
        """Geographic position of the viewport center."""
        x = min(max(self.center_x - 0.5, 0.0), self.size_x - 1)
        y = min(max(self.center_y - 0.5, 0.0), self.size_y - 1)
        return self.transformer.grid_to_latlon(x, y)

    def visible_bounds(self) -> tuple[int, int, int, int]:
        """Inclusive cell range (x0, y0, x1, y1) intersecting the window."""
        vp = self.viewport
        x0 = max(0, math.floor(vp.left))
        y0 = max(0, math.floor(vp.bottom))
        x1 = min(self.size_x - 1, math.ceil(vp.right) - 1)
        y1 = min(self.size_y - 1, math.ceil(vp.top) - 1)
        return x0, y0, x1, y1

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------
    def pan(self, delta_x: float, delta_y: float) -> Viewport:
        """Move the center by (delta_x, delta_y) cells, clamped to the grid.

        Raises:
            InvalidViewportError: non-numeric or non-finite delta
        """
        if not _finite(delta_x, delta_y):
            raise InvalidViewportError(
                f"Pan delta must be finite: ({delta_x}, {delta_y})"
            )
        self.center_x += delta_x
        self.center_y += delta_y
        self._clamp_center()
        logger.debug("Viewport panned to (%.2f, %.2f)", self.center_x, self.center_y)
        return self.viewport

    def zoom_to(self, zoom_level: float) -> Viewport:
        """Set the zoom level, clamped to [min_zoom, max_zoom].

        Raises:
            InvalidViewportError: non-numeric or non-finite zoom level
        """
        if not _finite(zoom_level):
            raise InvalidViewportError(f"Zoom level must be finite: {zoom_level}")
        self.zoom = min(max(zoom_level, self.min_zoom), self.max_zoom)
        self._clamp_center()
        logger.debug("Viewport zoom set to %.2f", self.zoom)
        return self.viewport

    def center_on(self, x: int, y: int) -> Viewport:
        """Center the window on cell (x, y) as far as clamping allows."""
        self.transformer.check_cell(x, y)
        self.center_x = x + 0.5
        self.center_y = y + 0.5
        self._clamp_center()
        return self.viewport

    def select(self, x: int, y: int) -> GridPoint:
        """Record (x, y) as the selected cell. Idempotent.

        Raises:
            GridOutOfBoundsError: (x, y) outside the grid
        """
        self.transformer.check_cell(x, y)
        self.selected = GridPoint(x=int(x), y=int(y))
        return self.selected

    def clear_selection(self) -> None:
        self.selected = None

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------
    def visible_region(self) -> VisibleRegion:
        """Cells intersecting the window, row-major, from the current snapshot."""
        snapshot = self.store.current
        x0, y0, x1, y1 = self.visible_bounds()
        return VisibleRegion(
            x0=x0,
            y0=y0,
            x1=x1,
            y1=y1,
            generation=snapshot.generation,
            cells=tuple(snapshot.cells_in(x0, y0, x1, y1)),
        )

    def visible_cells(self) -> list[GridCell]:
        return list(self.visible_region().cells)
