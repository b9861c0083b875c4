"""Navigation Bounded Context - Domain Services.

Pure domain logic for movement over a GridSnapshot. The search never touches
GridStore directly: callers hand in the snapshot they captured, and the
result records that snapshot's generation so long-running callers can detect
that terrain has since changed.
"""

from __future__ import annotations

import heapq
import logging
import math

import numpy as np
from numpy.typing import NDArray
from pyproj import Geod

from tactical_grid.grid.catalog import TerrainCatalog
from tactical_grid.grid.errors import GridOutOfBoundsError, PathNotFoundError
from tactical_grid.grid.transform import CoordinateTransformer
from tactical_grid.grid.value_objects import GridPoint, GridSnapshot
from tactical_grid.navigation.value_objects import PathResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SQRT2 = math.sqrt(2.0)

# 4 orthogonal then 4 diagonal neighbors; order fixes tie-breaking
NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (1, 0),
    (-1, 0),
    (0, 1),
    (0, -1),
    (1, 1),
    (1, -1),
    (-1, 1),
    (-1, -1),
)

# WGS84 ellipsoid for geodesic range measurement
_geod = Geod(ellps="WGS84")


# ---------------------------------------------------------------------------
# Cost plane
# ---------------------------------------------------------------------------
def entry_costs(snapshot: GridSnapshot, catalog: TerrainCatalog) -> NDArray[np.float64]:
    """Cost of entering each cell; obstacle cells are infinite.

    Flat and row-major like the snapshot planes.
    """
    costs = catalog.cost_plane(snapshot.terrain_ids)
    return np.where(snapshot.obstacles, math.inf, costs)


# ---------------------------------------------------------------------------
# PathFinder
# ---------------------------------------------------------------------------
class PathFinder:
    """A* over 8-connected grid adjacency.

    Edge cost is the destination cell's movement cost, times sqrt(2) for a
    diagonal move. Impassable cells (obstacle flag or impassable terrain) are
    never entered; diagonal moves are allowed whatever the orthogonal cells
    beside them hold.

    The heuristic is Euclidean distance scaled by the cheapest passable
    terrain cost, which never overestimates the remaining cost. Open-set ties
    on f are broken by insertion order, so identical inputs give identical
    paths.
    """

    def __init__(self, catalog: TerrainCatalog) -> None:
        self.catalog = catalog

    def find_path(
        self,
        snapshot: GridSnapshot,
        start: tuple[int, int],
        end: tuple[int, int],
    ) -> PathResult:
        """Find a cost-optimal path from start to end on ``snapshot``.

        Args:
            snapshot: The grid generation to search (captured by the caller)
            start: (x, y) of the first cell; never charged
            end: (x, y) of the destination

        Returns:
            PathResult from start to end inclusive

        Raises:
            GridOutOfBoundsError: start or end outside the grid
            PathNotFoundError: end impassable or unreachable
        """
        width, height = snapshot.size_x, snapshot.size_y
        for x, y in (start, end):
            if not snapshot.contains(x, y):
                raise GridOutOfBoundsError(x, y, width, height)
        start = (int(start[0]), int(start[1]))
        end = (int(end[0]), int(end[1]))

        if start == end:
            return PathResult(
                cells=(GridPoint(x=start[0], y=start[1]),),
                cumulative_costs=(0.0,),
                generation=snapshot.generation,
            )

        costs: list[float] = entry_costs(snapshot, self.catalog).tolist()
        end_x, end_y = end
        goal = snapshot.index(end_x, end_y)
        if math.isinf(costs[goal]):
            raise PathNotFoundError(start, end, 0)

        scale = self.catalog.min_passable_cost

        def heuristic(x: int, y: int) -> float:
            return scale * math.hypot(end_x - x, end_y - y)

        origin = snapshot.index(*start)
        g: dict[int, float] = {origin: 0.0}
        parent: dict[int, int | None] = {origin: None}
        closed: set[int] = set()
        counter = 0
        open_heap: list[tuple[float, int, int]] = [(heuristic(*start), counter, origin)]
        expansions = 0

        while open_heap:
            _, _, u = heapq.heappop(open_heap)
            if u in closed:
                continue
            if u == goal:
                return self._build_result(snapshot, parent, g, goal, expansions)
            closed.add(u)
            expansions += 1

            ux, uy = u % width, u // width
            gu = g[u]
            for dx, dy in NEIGHBOR_OFFSETS:
                vx, vy = ux + dx, uy + dy
                if not (0 <= vx < width and 0 <= vy < height):
                    continue
                v = vy * width + vx
                if v in closed:
                    continue
                step = costs[v]
                if math.isinf(step):
                    continue
                if dx and dy:
                    step *= SQRT2
                alt = gu + step
                old = g.get(v)
                if old is None or alt < old:
                    g[v] = alt
                    parent[v] = u
                    counter += 1
                    heapq.heappush(open_heap, (alt + heuristic(vx, vy), counter, v))

        logger.debug(
            "No path %s -> %s at generation %d after %d expansions",
            start,
            end,
            snapshot.generation,
            expansions,
        )
        raise PathNotFoundError(start, end, expansions)

    @staticmethod
    def _build_result(
        snapshot: GridSnapshot,
        parent: dict[int, int | None],
        g: dict[int, float],
        goal: int,
        expansions: int,
    ) -> PathResult:
        chain: list[int] = []
        node: int | None = goal
        while node is not None:
            chain.append(node)
            node = parent[node]
        chain.reverse()
        width = snapshot.size_x
        logger.debug(
            "Path of %d steps, cost %.3f, %d expansions (generation %d)",
            len(chain) - 1,
            g[goal],
            expansions,
            snapshot.generation,
        )
        return PathResult(
            cells=tuple(GridPoint(x=i % width, y=i // width) for i in chain),
            cumulative_costs=tuple(g[i] for i in chain),
            generation=snapshot.generation,
            expansions=expansions,
        )


# ---------------------------------------------------------------------------
# Range measurement
# ---------------------------------------------------------------------------
def measure_range(
    transformer: CoordinateTransformer,
    start: tuple[int, int],
    end: tuple[int, int],
) -> float:
    """Geodesic distance in meters between two cell centers.

    Cell centers come from the grid's lat/lon transform; the distance itself
    is measured on the WGS84 ellipsoid.

    Raises:
        GridOutOfBoundsError: either cell outside the grid
    """
    a = transformer.grid_to_latlon(*start)
    b = transformer.grid_to_latlon(*end)
    _, _, distance = _geod.inv(a.longitude, a.latitude, b.longitude, b.latitude)
    return float(abs(distance))
