"""Tactical Grid Domain Layer.

This package contains the core grid engine logic organized by bounded contexts:
- grid: Coordinate transform, terrain catalog, cell store, elevation ingestion
- navigation: Cost-aware pathfinding and range measurement
- viewport: Pan/zoom window over the grid, location search
"""

# Imports alphabetized per project style (isort)
from tactical_grid import grid, navigation, viewport

__all__ = ["grid", "navigation", "viewport"]
