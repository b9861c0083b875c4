"""Application Layer.

The MapGridSystem facade, its structured results, settings loading and the
infrastructure adapters that feed rasters into the domain.
"""

from grid_services.map_grid_system import MapGridSystem
from grid_services.results import ErrorResponse, Ok, Result
from grid_services.settings import EngineSettings, GazetteerEntry, load_settings

__all__ = [
    "EngineSettings",
    "ErrorResponse",
    "GazetteerEntry",
    "MapGridSystem",
    "Ok",
    "Result",
    "load_settings",
]
