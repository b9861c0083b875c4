"""Tests for grid value objects: MapConfig, TerrainType, GridSnapshot, catalog."""

from __future__ import annotations

import math

import numpy as np
import pytest
from pydantic import ValidationError

from tactical_grid.grid.catalog import TerrainCatalog
from tactical_grid.grid.errors import TerrainNotFoundError
from tactical_grid.grid.value_objects import (
    MAX_GRID_CELLS,
    ElevationRaster,
    GeoPoint,
    GridSnapshot,
    MapConfig,
    TerrainType,
)


# ---------------------------------------------------------------------------
# TerrainType
# ---------------------------------------------------------------------------
def test_terrain_type_accepts_impassable_keyword():
    terrain = TerrainType.model_validate(
        {"id": 7, "name": "cliff", "movementCost": "impassable"}
    )
    assert terrain.impassable
    assert math.isinf(terrain.movement_cost)


def test_terrain_type_rejects_negative_cost():
    with pytest.raises(ValidationError):
        TerrainType(id=1, name="bog", movement_cost=-1.0)


def test_zero_cost_terrain_is_passable():
    assert not TerrainType(id=1, name="road", movement_cost=0.0).impassable


# ---------------------------------------------------------------------------
# MapConfig
# ---------------------------------------------------------------------------
def test_map_config_loads_camel_case(terrain_types):
    config = MapConfig.model_validate(
        {
            "gridSizeX": 4,
            "gridSizeY": 3,
            "cellSize": 250,
            "initialZoom": 2,
            "initialCenterLat": -33.9,
            "initialCenterLon": 18.4,
            "terrainTypes": [t.model_dump(by_alias=True) for t in terrain_types],
        }
    )
    assert (config.grid_size_x, config.grid_size_y) == (4, 3)
    assert config.cell_count == 12
    assert config.resolved_default_terrain_id == 0
    assert config.terrain_types[3].impassable


@pytest.mark.parametrize(
    "overrides",
    [
        {"grid_size_x": 0},
        {"grid_size_y": -3},
        {"cell_size": 0.0},
        {"cell_size": math.inf},
        {"initial_center_lat": 90.0},
        {"initial_center_lon": 181.0},
        {"initial_zoom": 25.0},
        {"min_zoom": 3.0, "initial_zoom": 2.0},
        {"terrain_types": ()},
        {"default_terrain_id": 42},
        {"grid_size_x": 4097, "grid_size_y": 4096},
    ],
)
def test_map_config_rejects(make_config, overrides):
    with pytest.raises(ValidationError):
        make_config(**overrides)


def test_map_config_rejects_duplicate_terrain_ids(make_config, terrain_types):
    duplicate = TerrainType(id=terrain_types[0].id, name="again", movement_cost=3.0)
    with pytest.raises(ValidationError):
        make_config(terrain_types=terrain_types + (duplicate,))


def test_map_config_cell_limit_is_inclusive(make_config):
    config = make_config(grid_size_x=4096, grid_size_y=4096)
    assert config.cell_count == MAX_GRID_CELLS


def test_default_terrain_id_overrides_first_terrain(make_config):
    assert make_config(default_terrain_id=2).resolved_default_terrain_id == 2


# ---------------------------------------------------------------------------
# TerrainCatalog
# ---------------------------------------------------------------------------
def test_catalog_lookup_and_miss(catalog):
    assert catalog.get(1).name == "forest"
    with pytest.raises(TerrainNotFoundError) as exc:
        catalog.get(99)
    assert exc.value.code == 108
    assert exc.value.details() == {"terrain_id": 99}


def test_catalog_min_passable_cost_ignores_impassable(catalog):
    assert catalog.min_passable_cost == 1.0


def test_catalog_min_passable_cost_all_impassable():
    catalog = TerrainCatalog([TerrainType(id=0, name="void", movement_cost=math.inf)])
    assert catalog.min_passable_cost == 0.0


def test_catalog_cost_plane(catalog):
    ids = np.array([0, 1, 2, 3, 1], dtype=np.int64)
    np.testing.assert_array_equal(
        catalog.cost_plane(ids), [1.0, 2.0, 5.0, math.inf, 2.0]
    )


# ---------------------------------------------------------------------------
# ElevationRaster / GridSnapshot
# ---------------------------------------------------------------------------
def test_elevation_raster_owns_a_read_only_copy():
    source = np.arange(6, dtype=np.float32)
    raster = ElevationRaster(width=3, height=2, samples=source)
    source[0] = 99
    assert raster.samples[0] == 0.0
    assert raster.samples.dtype == np.float64
    with pytest.raises(ValueError):
        raster.samples[0] = 1.0


def test_elevation_raster_rows_yield_whole_rows():
    raster = ElevationRaster(width=3, height=5, samples=np.arange(15.0))
    blocks = list(raster.rows(2))
    assert [start for start, _ in blocks] == [0, 6, 12]
    assert [block.size for _, block in blocks] == [6, 6, 3]


def test_snapshot_rejects_wrong_plane_shape():
    with pytest.raises(ValidationError):
        GridSnapshot(
            generation=0,
            size_x=2,
            size_y=2,
            terrain_ids=np.zeros(3, dtype=np.int64),
            obstacles=np.zeros(4, dtype=np.bool_),
            heights=np.zeros(4),
        )


def test_snapshot_cells_in_is_row_major():
    snapshot = GridSnapshot(
        generation=3,
        size_x=3,
        size_y=3,
        terrain_ids=np.arange(9, dtype=np.int64),
        obstacles=np.zeros(9, dtype=np.bool_),
        heights=np.zeros(9),
        extra={4: "center"},
    )
    cells = snapshot.cells_in(1, 1, 2, 2)
    assert [(c.x, c.y) for c in cells] == [(1, 1), (2, 1), (1, 2), (2, 2)]
    assert [c.terrain_type for c in cells] == [4, 5, 7, 8]
    assert cells[0].extra_data == "center"


# ---------------------------------------------------------------------------
# GeoPoint
# ---------------------------------------------------------------------------
def test_geo_point_wire_names_are_lat_lon():
    point = GeoPoint(latitude=12.5, longitude=-3.25)
    assert point.model_dump(by_alias=True) == {"lat": 12.5, "lon": -3.25}
    assert point.model_dump_json(by_alias=True) == '{"lat":12.5,"lon":-3.25}'
    assert GeoPoint.model_validate({"lat": 12.5, "lon": -3.25}) == point
    assert GeoPoint.model_validate({"latitude": 12.5, "longitude": -3.25}) == point


def test_geo_point_range_checked():
    with pytest.raises(ValidationError):
        GeoPoint(latitude=91.0, longitude=0.0)
    with pytest.raises(ValidationError):
        GeoPoint.model_validate({"lat": 0.0, "lon": 180.5})
