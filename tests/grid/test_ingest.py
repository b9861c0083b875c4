"""Tests for DEM and bathymetry ingestion.

Rasters are row-major with row 0 at the southern edge: sample i belongs to
cell (i % 10, i // 10) on the 10x10 reference grid.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from tactical_grid.grid.errors import (
    IngestionCancelledError,
    IngestionStateError,
    RasterFormatError,
)
from tactical_grid.grid.ingest import (
    ElevationIngester,
    RasterKind,
    TaskState,
    raster_from_input,
)
from tactical_grid.grid.value_objects import ElevationRaster

N = 100  # cells on the reference grid


@pytest.fixture
def ingester(store):
    return ElevationIngester(store)


def heights(store) -> np.ndarray:
    return np.asarray(store.current.heights).reshape(10, 10)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------
def test_raster_from_sequence():
    raster = raster_from_input([float(i) for i in range(6)], 3, 2)
    assert raster.samples.tolist() == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]


def test_raster_from_2d_array_keeps_row_order():
    grid = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    raster = raster_from_input(grid, 3, 2)
    assert raster.samples.tolist() == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]


def test_raster_from_float32_buffer():
    buffer = np.arange(6, dtype="<f4").tobytes()
    raster = raster_from_input(buffer, 3, 2)
    assert raster.samples.tolist() == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]


def test_raster_from_buffer_with_explicit_dtype():
    buffer = np.array([-1, 2, 3, 4], dtype="<i2").tobytes()
    raster = raster_from_input(buffer, 2, 2, dtype="<i2")
    assert raster.samples.tolist() == [-1.0, 2.0, 3.0, 4.0]


def test_buffer_with_partial_sample_rejected():
    with pytest.raises(RasterFormatError) as exc:
        raster_from_input(b"\x00" * 7, 1, 2)
    assert exc.value.expected == 8
    assert exc.value.actual == 7


@pytest.mark.parametrize(
    "data",
    [
        [0.0] * 5,
        np.zeros((3, 2)),
        np.zeros((1, 2, 3)),
        np.zeros(7, dtype="<f4").tobytes(),
        ElevationRaster(width=2, height=3, samples=np.zeros(6)),
    ],
)
def test_size_mismatch_rejected(data):
    with pytest.raises(RasterFormatError) as exc:
        raster_from_input(data, 3, 2)
    assert exc.value.code == 104


def test_non_numeric_samples_rejected():
    with pytest.raises(RasterFormatError):
        raster_from_input(["a"] * 6, 3, 2)


# ---------------------------------------------------------------------------
# DEM
# ---------------------------------------------------------------------------
def test_load_dem_replaces_every_height(store, ingester):
    snapshot = ingester.load_dem(np.arange(N, dtype=np.float64))
    assert snapshot.generation == 1
    assert store.get(0, 0).height == 0.0
    assert store.get(3, 2).height == 23.0
    assert store.get(9, 9).height == 99.0


def test_load_dem_wrong_size_leaves_grid_untouched(store, ingester):
    ingester.load_dem(np.full(N, 7.0))
    with pytest.raises(RasterFormatError) as exc:
        ingester.load_dem(np.ones(N - 1))
    assert exc.value.details() == {"expected": N, "actual": N - 1}
    assert store.generation == 1
    assert np.all(heights(store) == 7.0)


def test_nan_samples_keep_current_height(store, ingester):
    ingester.load_dem(np.full(N, 5.0))
    samples = np.full(N, 8.0)
    samples[[0, 42]] = np.nan
    ingester.load_dem(samples)
    assert store.get(0, 0).height == 5.0
    assert store.get(2, 4).height == 5.0
    assert store.get(1, 0).height == 8.0


def test_infinite_sample_fails_the_task(store, ingester):
    samples = np.zeros(N)
    samples[57] = math.inf
    task = ingester.begin_dem_load(samples)
    with pytest.raises(RasterFormatError, match=r"\(7, 5\)"):
        task.run()
    assert task.state is TaskState.FAILED
    assert isinstance(task.error, RasterFormatError)
    assert store.generation == 0


def test_dem_leaves_terrain_and_obstacles_alone(store, ingester):
    store.set(4, 4, {"terrain_type": 1, "obstacle": True, "extra_data": "bunker"})
    ingester.load_dem(np.full(N, 30.0))
    cell = store.get(4, 4)
    assert (cell.terrain_type, cell.obstacle, cell.extra_data) == (1, True, "bunker")
    assert cell.height == 30.0


def test_republishing_same_heights_still_bumps_generation(store, ingester):
    ingester.load_dem(np.zeros(N))
    assert store.generation == 1


# ---------------------------------------------------------------------------
# Bathymetry
# ---------------------------------------------------------------------------
def test_bathymetry_only_deepens_cells_at_or_below_sea_level(store, ingester):
    initial = np.zeros(N)
    initial[0] = 10.0  # land
    initial[2] = -3.0  # shallow water
    ingester.load_dem(initial)

    bathymetry = np.full(N, -20.0)
    bathymetry[3] = 4.0  # positive samples never apply
    bathymetry[4] = np.nan
    task = ingester.begin_bathymetry_load(bathymetry)
    task.run()

    row = heights(store)[0]
    assert row[0] == 10.0
    assert row[1] == -20.0
    assert row[2] == -20.0
    assert row[3] == 0.0
    assert row[4] == 0.0
    assert task.kind is RasterKind.BATHYMETRY
    assert task.cells_changed == N - 3


def test_set_bathymetry_data_from_buffer(store, ingester):
    ingester.set_bathymetry_data(np.full(N, -1.5, dtype="<f4").tobytes())
    assert np.all(heights(store) == -1.5)


# ---------------------------------------------------------------------------
# Tasks and cancellation
# ---------------------------------------------------------------------------
def test_cancel_before_run_publishes_nothing(store, ingester):
    task = ingester.begin_dem_load(np.ones(N))
    assert task.cancel()
    with pytest.raises(IngestionCancelledError) as exc:
        task.run()
    assert exc.value.code == 107
    assert task.state is TaskState.CANCELLED
    assert store.generation == 0
    assert np.all(heights(store) == 0.0)


def test_cancel_between_chunks(store):
    task = ElevationIngester(store, chunk_rows=1).begin_dem_load(np.ones(N))
    checks: list[int] = []
    check = task._check_cancelled

    def cancel_on_third_chunk() -> None:
        checks.append(1)
        if len(checks) == 3:
            task.cancel()
        check()

    task._check_cancelled = cancel_on_third_chunk
    with pytest.raises(IngestionCancelledError):
        task.run()
    assert len(checks) == 3
    assert store.generation == 0


def test_cancel_after_publish_is_a_no_op(store, ingester):
    task = ingester.begin_dem_load(np.ones(N))
    snapshot = task.run()
    assert not task.cancel()
    assert task.state is TaskState.PUBLISHED
    assert task.snapshot is snapshot
    assert store.current is snapshot


def test_begin_load_checks_size_up_front(ingester):
    with pytest.raises(RasterFormatError):
        ingester.begin_bathymetry_load(np.ones(N + 1))


def test_cancel_after_decoding_still_stops_publication(store, monkeypatch):
    task = ElevationIngester(store).begin_dem_load(np.ones(N))
    decode = task._decode
    accepted: list[bool] = []

    def decode_then_cancel():
        mask = decode()
        accepted.append(task.cancel())
        return mask

    monkeypatch.setattr(task, "_decode", decode_then_cancel)
    with pytest.raises(IngestionCancelledError):
        task.run()
    assert accepted == [True]
    assert task.state is TaskState.CANCELLED
    assert store.generation == 0
    assert np.all(heights(store) == 0.0)


def test_cancel_once_committed_is_refused(store, monkeypatch):
    task = ElevationIngester(store).begin_dem_load(np.ones(N))
    publish = store.replace_heights
    accepted: list[bool] = []

    def publish_then_cancel(build):
        result = publish(build)
        accepted.append(task.cancel())
        return result

    monkeypatch.setattr(store, "replace_heights", publish_then_cancel)
    snapshot = task.run()
    assert accepted == [False]
    assert task.state is TaskState.PUBLISHED
    assert store.current is snapshot
    assert np.all(heights(store) == 1.0)


def test_rerunning_a_task_is_a_grid_error(ingester):
    task = ingester.begin_dem_load(np.ones(N))
    task.run()
    with pytest.raises(IngestionStateError) as exc:
        task.run()
    assert exc.value.details() == {"state": "published"}
