"""GridStore: the per-cell data plane with copy-on-write snapshots.

Readers take ``store.current`` once and work against that immutable
GridSnapshot for as long as they like. Writers (``set``, ``set_many`` and the
ingestion path ``replace_heights``) are serialized by a lock, build complete
replacement planes and publish them by swapping a single reference, so a
reader never observes a half-applied update.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import ValidationError

from tactical_grid.grid.catalog import TerrainCatalog
from tactical_grid.grid.errors import GridOutOfBoundsError, InvalidCellDataError
from tactical_grid.grid.value_objects import GridCell, GridSnapshot, TerrainType

logger = logging.getLogger(__name__)

# Anything set()/set_many() accepts as a cell payload
CellPayload = GridCell | Mapping[str, Any]

# Builds new heights from the current ones; returns (heights, cells_changed)
HeightsBuilder = Callable[[NDArray[np.float64]], tuple[NDArray[np.float64], int]]


class GridStore:
    """Owns every cell of one grid plus the terrain catalog reference."""

    def __init__(
        self,
        size_x: int,
        size_y: int,
        catalog: TerrainCatalog,
        default_terrain_id: int,
    ) -> None:
        if default_terrain_id not in catalog:
            raise ValueError(f"default terrain id {default_terrain_id} not in catalog")
        self.size_x = size_x
        self.size_y = size_y
        self.catalog = catalog
        self._write_lock = threading.Lock()
        n = size_x * size_y
        self._current = GridSnapshot(
            generation=0,
            size_x=size_x,
            size_y=size_y,
            terrain_ids=np.full(n, default_terrain_id, dtype=np.int64),
            obstacles=np.zeros(n, dtype=np.bool_),
            heights=np.zeros(n, dtype=np.float64),
        )

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------
    @property
    def current(self) -> GridSnapshot:
        """The latest published snapshot."""
        return self._current

    @property
    def generation(self) -> int:
        return self._current.generation

    def _check_bounds(self, x: int, y: int) -> tuple[int, int]:
        if not self._current.contains(x, y):
            raise GridOutOfBoundsError(x, y, self.size_x, self.size_y)
        return int(x), int(y)

    def get(self, x: int, y: int) -> GridCell:
        """Return the cell at (x, y) from the current snapshot.

        Raises:
            GridOutOfBoundsError: (x, y) outside the grid
        """
        x, y = self._check_bounds(x, y)
        return self._current.cell(x, y)

    def get_terrain_type(self, x: int, y: int) -> TerrainType:
        """Return the TerrainType of the cell at (x, y).

        Raises:
            GridOutOfBoundsError: (x, y) outside the grid
            TerrainNotFoundError: the cell references an unknown terrain id
        """
        return self.catalog.get(self.get(x, y).terrain_type)

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------
    def _validate(self, x: int, y: int, data: CellPayload) -> GridCell:
        """Check one update against bounds and the catalog; never mutates."""
        x, y = self._check_bounds(x, y)
        if isinstance(data, GridCell):
            cell = data
        elif not isinstance(data, Mapping):
            raise InvalidCellDataError(x, y, "cell", data)
        else:
            payload = {"x": x, "y": y, **dict(data)}
            try:
                cell = GridCell.model_validate(payload)
            except ValidationError as e:
                first = e.errors()[0]
                field = ".".join(str(part) for part in first["loc"]) or "cell"
                raise InvalidCellDataError(x, y, field, first.get("input")) from e
        if (cell.x, cell.y) != (x, y):
            raise InvalidCellDataError(x, y, "coordinate", (cell.x, cell.y))
        if cell.terrain_type not in self.catalog:
            raise InvalidCellDataError(x, y, "terrain_type", cell.terrain_type)
        if not math.isfinite(cell.height):
            raise InvalidCellDataError(x, y, "height", cell.height)
        return cell

    def set(self, x: int, y: int, data: CellPayload) -> GridSnapshot:
        """Replace the cell at (x, y) and publish a new snapshot.

        ``data`` is a GridCell or a mapping of GridCell fields (snake_case or
        camelCase); a mapping may omit x/y. Validation happens before any
        state change.

        Raises:
            GridOutOfBoundsError: (x, y) outside the grid
            InvalidCellDataError: unknown terrain id, non-finite height,
                malformed payload, or x/y not matching the target cell
        """
        return self.set_many([(x, y, data)])

    def set_many(self, updates: Iterable[tuple[int, int, CellPayload]]) -> GridSnapshot:
        """Apply several cell updates as one all-or-nothing publication."""
        validated = [self._validate(x, y, data) for x, y, data in updates]
        with self._write_lock:
            base = self._current
            terrain_ids = base.terrain_ids.copy()
            obstacles = base.obstacles.copy()
            heights = base.heights.copy()
            extra = dict(base.extra)
            for cell in validated:
                i = base.index(cell.x, cell.y)
                terrain_ids[i] = cell.terrain_type
                obstacles[i] = cell.obstacle
                heights[i] = cell.height
                if cell.extra_data is None:
                    extra.pop(i, None)
                else:
                    extra[i] = cell.extra_data
            # Generation tracks changes that matter to pathfinding and rendering
            changed = not (
                np.array_equal(terrain_ids, base.terrain_ids)
                and np.array_equal(obstacles, base.obstacles)
                and np.array_equal(heights, base.heights)
            )
            snapshot = GridSnapshot(
                generation=base.generation + 1 if changed else base.generation,
                size_x=self.size_x,
                size_y=self.size_y,
                terrain_ids=terrain_ids,
                obstacles=obstacles,
                heights=heights,
                extra=extra,
            )
            self._current = snapshot
        logger.debug(
            "Published %d cell update(s) at generation %d",
            len(validated),
            snapshot.generation,
        )
        return snapshot

    def replace_heights(self, build: HeightsBuilder) -> tuple[GridSnapshot, int]:
        """Publish new heights computed from the current ones (bulk path).

        ``build`` runs under the write lock against the current heights, so
        no concurrent ``set`` can be lost between read and publish. The new
        snapshot always gets generation + 1.

        Returns:
            (published snapshot, number of cells whose height changed)
        """
        with self._write_lock:
            base = self._current
            heights, changed = build(base.heights)
            snapshot = GridSnapshot(
                generation=base.generation + 1,
                size_x=self.size_x,
                size_y=self.size_y,
                terrain_ids=base.terrain_ids,
                obstacles=base.obstacles,
                heights=heights,
                extra=base.extra,
            )
            self._current = snapshot
        logger.debug(
            "Published bulk height update at generation %d (%d cells changed)",
            snapshot.generation,
            changed,
        )
        return snapshot, changed
