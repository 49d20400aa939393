"""
Coastal flood mapping package.

Core functionality:
- Connected flood engine (morphological reconstruction by erosion)
- NoData sanitization and water level / datum conversion
- DEM window loading, GeoTIFF export and flood statistics
- Scenario simulation pipeline
"""

from .connected_flood import (
    ConnectedFloodEngine,
    FloodResult,
    build_seed,
    compute_connected_flood,
    reconstruct_by_erosion,
    threshold_surface,
)
from .errors import (
    EmptyGridError,
    FloodCancelledError,
    FloodError,
    InvalidGridError,
    NonFiniteValueError,
)
from .sanitize import SanitizedDEM, sanitize_dem
from .statistics import FloodStatistics, flood_statistics
from .water_level import WaterLevelScenario

__all__ = [
    "ConnectedFloodEngine",
    "FloodResult",
    "build_seed",
    "compute_connected_flood",
    "reconstruct_by_erosion",
    "threshold_surface",
    "EmptyGridError",
    "FloodCancelledError",
    "FloodError",
    "InvalidGridError",
    "NonFiniteValueError",
    "SanitizedDEM",
    "sanitize_dem",
    "FloodStatistics",
    "flood_statistics",
    "WaterLevelScenario",
]
