"""Grid Bounded Context.

Responsible for the discrete simulation grid and its geographic anchoring:
- Value Objects: MapConfig, TerrainType, GridCell, GridSnapshot, ElevationRaster
- Services: CoordinateTransformer, TerrainCatalog, GridStore, ElevationIngester
"""
