"""Infrastructure adapters (file and raster I/O) for the grid engine."""
