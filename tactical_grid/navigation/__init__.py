"""Navigation Bounded Context.

Movement over the grid:
- Value Objects: PathResult
- Services: PathFinder (A* over terrain costs), measure_range (geodesic)
"""
