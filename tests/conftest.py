"""Root pytest configuration: shared map configurations and components.

Builders return real domain objects (no I/O). Tests that need a different
grid shape call the ``make_config`` factory fixture with overrides.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

import pytest

from tactical_grid.grid.catalog import TerrainCatalog
from tactical_grid.grid.store import GridStore
from tactical_grid.grid.transform import CoordinateTransformer
from tactical_grid.grid.value_objects import MapConfig, TerrainType

# Terrain ids used throughout the suite
PLAINS, FOREST, WATER, MOUNTAIN = 0, 1, 2, 3


@pytest.fixture
def terrain_types() -> tuple[TerrainType, ...]:
    return (
        TerrainType(id=PLAINS, name="plains", movement_cost=1.0),
        TerrainType(id=FOREST, name="forest", movement_cost=2.0),
        TerrainType(id=WATER, name="water", movement_cost=5.0),
        TerrainType(id=MOUNTAIN, name="mountain", movement_cost=math.inf),
    )


@pytest.fixture
def make_config(
    terrain_types: tuple[TerrainType, ...],
) -> Callable[..., MapConfig]:
    """Factory for a 10x10 grid of 1 km cells centered at (45, 10)."""

    def _make(**overrides: Any) -> MapConfig:
        fields: dict[str, Any] = {
            "grid_size_x": 10,
            "grid_size_y": 10,
            "cell_size": 1000.0,
            "initial_zoom": 1.0,
            "initial_center_lat": 45.0,
            "initial_center_lon": 10.0,
            "terrain_types": terrain_types,
        }
        fields.update(overrides)
        return MapConfig(**fields)

    return _make


@pytest.fixture
def config(make_config: Callable[..., MapConfig]) -> MapConfig:
    return make_config()


@pytest.fixture
def catalog(config: MapConfig) -> TerrainCatalog:
    return TerrainCatalog(config.terrain_types)


@pytest.fixture
def store(config: MapConfig, catalog: TerrainCatalog) -> GridStore:
    return GridStore(
        config.grid_size_x,
        config.grid_size_y,
        catalog,
        config.resolved_default_terrain_id,
    )


@pytest.fixture
def transformer(config: MapConfig) -> CoordinateTransformer:
    return CoordinateTransformer(config)
