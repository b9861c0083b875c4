"""Navigation Bounded Context - Value Objects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tactical_grid.grid.value_objects import GridPoint

# Tolerance for cumulative cost ordering checks
COST_TOLERANCE = 1e-9


class PathResult(BaseModel):
    """Cost-optimal route between two cells (Value Object).

    Invariants:
        PR-1: len(cells) >= 1 and len(cumulative_costs) == len(cells)
        PR-2: cumulative_costs[0] == 0
        PR-3: cumulative_costs non-decreasing
        PR-4: consecutive cells are 8-neighbors (Chebyshev distance 1)
    """

    cells: tuple[GridPoint, ...]  # start..end inclusive
    cumulative_costs: tuple[float, ...]  # cost to reach each cell from start
    generation: int = Field(ge=0)  # grid generation the search ran against
    expansions: int = Field(default=0, ge=0)  # cells expanded by the search

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_path(self) -> "PathResult":
        if not self.cells:
            raise ValueError("Path must contain at least one cell")
        if len(self.cumulative_costs) != len(self.cells):
            raise ValueError(
                f"{len(self.cells)} cells but {len(self.cumulative_costs)} costs"
            )
        if self.cumulative_costs[0] != 0:
            raise ValueError("First cumulative cost must be 0")
        for i in range(1, len(self.cells)):
            if self.cumulative_costs[i] < self.cumulative_costs[i - 1] - COST_TOLERANCE:
                raise ValueError("Cumulative costs must be non-decreasing")
            a, b = self.cells[i - 1], self.cells[i]
            if max(abs(a.x - b.x), abs(a.y - b.y)) != 1:
                raise ValueError(f"Cells {a.as_tuple()} and {b.as_tuple()} not adjacent")
        return self

    @property
    def total_cost(self) -> float:
        return self.cumulative_costs[-1]

    @property
    def steps(self) -> int:
        """Number of moves (cells - 1)."""
        return len(self.cells) - 1

    def as_dicts(self) -> list[dict[str, int]]:
        """Path as [{"x": .., "y": ..}, ...] for JSON callers."""
        return [{"x": c.x, "y": c.y} for c in self.cells]
