"""Bulk elevation ingestion (DEM and bathymetry) into a GridStore.

Ingestion is a two-phase unit of work:

1) Decode: the raster is checked against the grid dimensions, then scanned in
   blocks of rows. Each block is validated (NaN = NoData is allowed, +/-inf is
   not) and turned into an "apply" mask. Cancellation is checked between
   blocks; nothing is visible to readers during this phase.
2) Publish: one call to ``GridStore.replace_heights`` merges the masked
   samples into the current heights and publishes a new snapshot with
   generation + 1.

A failed or cancelled task never reaches phase 2, so the published grid is
either fully updated or untouched.

Merge rules:
    DEM:        every finite sample replaces the cell height.
    Bathymetry: a finite negative sample replaces the height only where the
                current height is <= 0; land cells are never lowered.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from tactical_grid.grid.errors import (
    IngestionCancelledError,
    IngestionStateError,
    RasterFormatError,
)
from tactical_grid.grid.store import GridStore, HeightsBuilder
from tactical_grid.grid.value_objects import ElevationRaster, GridSnapshot

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_ROWS = 256  # rows decoded between cancellation checks
DEFAULT_BUFFER_DTYPE = "<f4"  # IEEE float32, little-endian

RasterInput = (
    ElevationRaster
    | NDArray[np.floating]
    | Sequence[float]
    | bytes
    | bytearray
    | memoryview
)


class RasterKind(str, Enum):
    DEM = "dem"
    BATHYMETRY = "bathymetry"


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Raster decoding
# ---------------------------------------------------------------------------
def raster_from_input(
    data: RasterInput,
    width: int,
    height: int,
    *,
    dtype: str = DEFAULT_BUFFER_DTYPE,
) -> ElevationRaster:
    """Build an ElevationRaster sized width x height from caller input.

    Accepts an ElevationRaster, a numpy array (1D, or 2D shaped
    (height, width)), a sequence of floats, or a raw binary buffer of
    ``dtype`` samples.

    Raises:
        RasterFormatError: wrong length/shape, undecodable buffer, or
            non-numeric samples
    """
    expected = width * height
    if isinstance(data, ElevationRaster):
        if (data.width, data.height) != (width, height):
            raise RasterFormatError(
                f"Raster is {data.width}x{data.height}, grid is {width}x{height}",
                expected=expected,
                actual=data.width * data.height,
            )
        return data

    if isinstance(data, (bytes, bytearray, memoryview)):
        try:
            sample_dtype = np.dtype(dtype)
        except TypeError as e:
            raise RasterFormatError(f"Unsupported sample dtype {dtype!r}") from e
        nbytes = memoryview(data).nbytes
        if nbytes % sample_dtype.itemsize:
            raise RasterFormatError(
                f"Buffer of {nbytes} bytes is not a whole number of "
                f"{sample_dtype.itemsize}-byte samples",
                expected=expected * sample_dtype.itemsize,
                actual=nbytes,
            )
        samples = np.frombuffer(data, dtype=sample_dtype)
    else:
        try:
            samples = np.asarray(data, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise RasterFormatError(f"Raster samples are not numeric: {e}") from e
        if samples.ndim == 2:
            if samples.shape != (height, width):
                raise RasterFormatError(
                    f"Raster shape {samples.shape} does not match grid "
                    f"({height}, {width})",
                    expected=expected,
                    actual=int(samples.size),
                )
            samples = samples.reshape(-1)
        elif samples.ndim != 1:
            raise RasterFormatError(
                f"Raster must be 1D or 2D, got {samples.ndim}D",
                expected=expected,
                actual=int(samples.size),
            )

    if samples.size != expected:
        raise RasterFormatError(
            f"Raster has {samples.size} samples, grid needs {expected}",
            expected=expected,
            actual=int(samples.size),
        )
    return ElevationRaster(
        width=width, height=height, samples=samples.astype(np.float64)
    )


# ---------------------------------------------------------------------------
# IngestionTask
# ---------------------------------------------------------------------------
class IngestionTask:
    """Cancellable ingestion of one raster into a GridStore.

    ``cancel()`` may be called from any thread; it takes effect at the next
    block boundary or, at the latest, when the store lock is taken to
    publish. Once the merge is committed it is a no-op and returns False.
    ``run()`` executes the task on the calling thread and returns the
    published snapshot.
    """

    def __init__(
        self,
        store: GridStore,
        raster: ElevationRaster,
        kind: RasterKind,
        *,
        chunk_rows: int = DEFAULT_CHUNK_ROWS,
    ) -> None:
        self.store = store
        self.raster = raster
        self.kind = kind
        self.chunk_rows = chunk_rows
        self.state = TaskState.PENDING
        self.cells_changed = 0
        self.snapshot: GridSnapshot | None = None
        self.error: Exception | None = None
        self._cancel = threading.Event()
        # Guards the cancel flag against the commit made under the store lock
        self._commit_lock = threading.Lock()
        self._committed = False

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> bool:
        """Request cancellation. Returns False if already published or failed."""
        with self._commit_lock:
            if self._committed or self.state is TaskState.FAILED:
                return False
            self._cancel.set()
            return True

    def _check_cancelled(self) -> None:
        if self._cancel.is_set():
            raise IngestionCancelledError(
                f"{self.kind.value} ingestion cancelled before publication"
            )

    def _decode(self) -> NDArray[np.bool_]:
        """Validate samples block by block and return the apply mask."""
        mask = np.zeros(self.raster.samples.size, dtype=np.bool_)
        for start, block in self.raster.rows(self.chunk_rows):
            self._check_cancelled()
            if np.isinf(block).any():
                bad = start + int(np.flatnonzero(np.isinf(block))[0])
                raise RasterFormatError(
                    f"Infinite sample at cell ({bad % self.raster.width}, "
                    f"{bad // self.raster.width})"
                )
            valid = ~np.isnan(block)
            if self.kind is RasterKind.BATHYMETRY:
                valid &= block < 0
            mask[start : start + block.size] = valid
        self._check_cancelled()
        return mask

    def _merge(self, mask: NDArray[np.bool_]) -> HeightsBuilder:
        samples = self.raster.samples

        def build(current: NDArray[np.float64]) -> tuple[NDArray[np.float64], int]:
            # Runs under the store lock; a cancel that got in first wins
            with self._commit_lock:
                self._check_cancelled()
                self._committed = True
            apply = mask
            if self.kind is RasterKind.BATHYMETRY:
                apply = mask & (current <= 0)
            heights = np.where(apply, samples, current)
            return heights, int(np.count_nonzero(heights != current))

        return build

    def run(self) -> GridSnapshot:
        """Decode and publish.

        Raises:
            IngestionCancelledError: cancelled before publication
            IngestionStateError: the task has already been run
            RasterFormatError: invalid sample encountered while decoding
        """
        if self.state is not TaskState.PENDING:
            raise IngestionStateError(self.state.value)
        self.state = TaskState.RUNNING
        try:
            mask = self._decode()
            self.snapshot, self.cells_changed = self.store.replace_heights(
                self._merge(mask)
            )
        except IngestionCancelledError:
            self.state = TaskState.CANCELLED
            logger.warning(
                "%s ingestion cancelled; published grid left at generation %d",
                self.kind.value,
                self.store.generation,
            )
            raise
        except RasterFormatError as e:
            self.state = TaskState.FAILED
            self.error = e
            raise

        self.state = TaskState.PUBLISHED
        logger.info(
            "%s ingestion published generation %d (%d cells changed)",
            self.kind.value,
            self.snapshot.generation,
            self.cells_changed,
        )
        return self.snapshot


# ---------------------------------------------------------------------------
# ElevationIngester
# ---------------------------------------------------------------------------
class ElevationIngester:
    """Entry point for DEM and bathymetry loads into one GridStore."""

    def __init__(self, store: GridStore, *, chunk_rows: int = DEFAULT_CHUNK_ROWS) -> None:
        self.store = store
        self.chunk_rows = chunk_rows

    def _begin(self, data: RasterInput, kind: RasterKind, dtype: str) -> IngestionTask:
        raster = raster_from_input(
            data, self.store.size_x, self.store.size_y, dtype=dtype
        )
        return IngestionTask(self.store, raster, kind, chunk_rows=self.chunk_rows)

    def begin_dem_load(
        self, data: RasterInput, *, dtype: str = DEFAULT_BUFFER_DTYPE
    ) -> IngestionTask:
        """Validate the raster size and return a pending DEM task.

        Raises:
            RasterFormatError: raster does not match the grid dimensions
        """
        return self._begin(data, RasterKind.DEM, dtype)

    def begin_bathymetry_load(
        self, data: RasterInput, *, dtype: str = DEFAULT_BUFFER_DTYPE
    ) -> IngestionTask:
        """Validate the raster size and return a pending bathymetry task."""
        return self._begin(data, RasterKind.BATHYMETRY, dtype)

    def load_dem(
        self, data: RasterInput, *, dtype: str = DEFAULT_BUFFER_DTYPE
    ) -> GridSnapshot:
        """Load a DEM synchronously and return the published snapshot."""
        return self.begin_dem_load(data, dtype=dtype).run()

    def set_bathymetry_data(
        self, data: RasterInput, *, dtype: str = DEFAULT_BUFFER_DTYPE
    ) -> GridSnapshot:
        """Overlay bathymetry synchronously and return the published snapshot."""
        return self.begin_bathymetry_load(data, dtype=dtype).run()
