"""Terrain catalog: the fixed set of terrain definitions for one map."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import numpy as np
from numpy.typing import NDArray

from tactical_grid.grid.errors import TerrainNotFoundError
from tactical_grid.grid.value_objects import TerrainType


class TerrainCatalog:
    """Immutable id -> TerrainType lookup, preserving configuration order."""

    def __init__(self, terrain_types: Iterable[TerrainType]) -> None:
        self._by_id: dict[int, TerrainType] = {}
        for terrain in terrain_types:
            if terrain.id in self._by_id:
                raise ValueError(f"Duplicate terrain type id {terrain.id}")
            self._by_id[terrain.id] = terrain
        if not self._by_id:
            raise ValueError("Terrain catalog cannot be empty")

    def __contains__(self, terrain_id: object) -> bool:
        return terrain_id in self._by_id

    def __iter__(self) -> Iterator[TerrainType]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, terrain_id: int) -> TerrainType:
        """Return the terrain type for ``terrain_id``.

        Raises:
            TerrainNotFoundError: id not in the catalog
        """
        try:
            return self._by_id[terrain_id]
        except KeyError:
            raise TerrainNotFoundError(terrain_id) from None

    @property
    def min_passable_cost(self) -> float:
        """Cheapest cost of entering any passable terrain (0.0 if none is).

        Scales the A* heuristic; using the minimum keeps it admissible.
        """
        costs = [t.movement_cost for t in self._by_id.values() if not t.impassable]
        return min(costs) if costs else 0.0

    def cost_plane(self, terrain_ids: NDArray[np.int64]) -> NDArray[np.float64]:
        """Map a plane of terrain ids to their movement costs (vectorized)."""
        unique_ids, inverse = np.unique(terrain_ids, return_inverse=True)
        costs = np.array(
            [self.get(int(t)).movement_cost for t in unique_ids], dtype=np.float64
        )
        return costs[inverse].reshape(terrain_ids.shape)
