"""
Coastal flood simulation on a DEM mosaic.

Ties the pieces together: load a bounding box from the DEM, replace NoData
with a wall, convert the water level scenario to a threshold in the DEM datum,
compute the border-connected flood and report its extent.

Pipeline:
1. Load & clip raster (data_loading)
2. Handle NoData (sanitize)
3. Connected flooding (connected_flood)
4. Statistics (statistics)
5. Optional GeoTIFF export of the mask and the reconstructed surface (export)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
from rasterio import Affine

from src.config import DEFAULT_CONNECTIVITY, NODATA_FLOOR, NODATA_WALL
from src.flood.connected_flood import ConnectedFloodEngine, FloodResult
from src.flood.data_loading import DEMWindow, load_dem_window
from src.flood.export import write_flood_mask, write_surface
from src.flood.sanitize import SanitizedDEM, sanitize_dem
from src.flood.statistics import FloodStatistics, flood_statistics
from src.flood.water_level import WaterLevelScenario

logger = logging.getLogger(__name__)


@dataclass
class FloodSimulationResult:
    """Flood mask for one scenario together with its georeferencing."""

    scenario: WaterLevelScenario
    flood: FloodResult
    statistics: FloodStatistics
    transform: Affine
    crs: object
    output_path: Optional[Path] = None
    surface_path: Optional[Path] = None

    @property
    def mask(self) -> np.ndarray:
        return self.flood.mask

    @property
    def threshold(self) -> float:
        return self.flood.threshold


def prepare_dem(
    dem_path,
    bounds: Tuple[float, float, float, float],
    nodata_floor: Optional[float] = NODATA_FLOOR,
    wall_value: float = NODATA_WALL,
) -> Tuple[DEMWindow, SanitizedDEM]:
    """Load the DEM window and wall off its NoData cells."""
    dem = load_dem_window(dem_path, bounds)
    sanitized = sanitize_dem(
        dem.data, nodata=dem.nodata, min_valid=nodata_floor, wall_value=wall_value
    )
    logger.info(
        f"DEM window has {sanitized.valid_count:,} valid cells of {dem.data.size:,}"
    )
    return dem, sanitized


def _finish(
    dem: DEMWindow,
    sanitized: SanitizedDEM,
    scenario: WaterLevelScenario,
    flood: FloodResult,
    output_path=None,
    surface_path=None,
) -> FloodSimulationResult:
    stats = flood_statistics(
        flood.mask,
        cell_size=dem.cell_size,
        elevation=sanitized.data,
        threshold=flood.threshold,
        connectivity=flood.connectivity,
        area_units=dem.area_units,
    )

    written = None
    if output_path is not None:
        written = write_flood_mask(output_path, flood.mask, dem.transform, dem.crs)

    surface_written = None
    if surface_path is not None:
        surface_written = write_surface(
            surface_path, flood.surface, dem.transform, dem.crs, nodata=sanitized.wall_value
        )

    return FloodSimulationResult(
        scenario=scenario,
        flood=flood,
        statistics=stats,
        transform=dem.transform,
        crs=dem.crs,
        output_path=written,
        surface_path=surface_written,
    )


def run_flood_simulation(
    dem_path,
    scenario: WaterLevelScenario,
    bounds: Tuple[float, float, float, float],
    connectivity: int = DEFAULT_CONNECTIVITY,
    output_path=None,
    keep_surface: bool = False,
    nodata_floor: Optional[float] = NODATA_FLOOR,
    wall_value: float = NODATA_WALL,
    cancel_event=None,
    surface_path=None,
) -> FloodSimulationResult:
    """
    Run a connected flood simulation for one water level scenario.

    Args:
        dem_path: DEM raster or VRT mosaic
        scenario: Tide/surge/sea level rise combination
        bounds: (min_lon, min_lat, max_lon, max_lat) in EPSG:4326
        connectivity: 4 or 8 neighbour reconstruction (default: 4)
        output_path: Optional GeoTIFF path for the mask (1 = flooded, 0 = dry)
        keep_surface: Keep the reconstructed surface on the result
        nodata_floor: Elevations below this count as NoData (default: -100)
        wall_value: NoData replacement value (default: 9999)
        cancel_event: Optional threading.Event for cooperative cancellation
        surface_path: Optional GeoTIFF path for the reconstructed surface
            (float32, NoData cells at wall_value); implies keep_surface

    Returns:
        FloodSimulationResult

    Raises:
        FileNotFoundError: DEM path does not exist
        ValueError: Bounding box outside the DEM
        EmptyGridError: No valid elevation data in the bounding box
    """
    logger.info(scenario.describe())

    dem, sanitized = prepare_dem(dem_path, bounds, nodata_floor, wall_value)

    engine = ConnectedFloodEngine(
        connectivity=connectivity,
        wall_value=wall_value,
        keep_surface=keep_surface or surface_path is not None,
    )
    flood = engine.run(
        sanitized.data,
        scenario.flood_threshold,
        valid_mask=sanitized.valid_mask,
        cancel_event=cancel_event,
    )

    return _finish(dem, sanitized, scenario, flood, output_path, surface_path)


def run_scenarios(
    dem_path,
    scenarios: Sequence[WaterLevelScenario],
    bounds: Tuple[float, float, float, float],
    connectivity: int = DEFAULT_CONNECTIVITY,
    output_dir=None,
    max_workers: Optional[int] = None,
    nodata_floor: Optional[float] = NODATA_FLOOR,
    wall_value: float = NODATA_WALL,
) -> List[FloodSimulationResult]:
    """
    Run several water level scenarios against one DEM window.

    The DEM is loaded and sanitized once; scenarios are flooded concurrently
    against the same read-only grid.

    Args:
        dem_path: DEM raster or VRT mosaic
        scenarios: Water level scenarios to evaluate
        bounds: (min_lon, min_lat, max_lon, max_lat) in EPSG:4326
        connectivity: 4 or 8 neighbour reconstruction (default: 4)
        output_dir: Optional directory for one GeoTIFF per scenario
        max_workers: Thread pool size

    Returns:
        List of FloodSimulationResult, in scenario order
    """
    scenarios = list(scenarios)
    for scenario in scenarios:
        logger.info(scenario.describe())

    dem, sanitized = prepare_dem(dem_path, bounds, nodata_floor, wall_value)

    engine = ConnectedFloodEngine(connectivity=connectivity, wall_value=wall_value)
    floods = engine.run_many(
        sanitized.data,
        [s.flood_threshold for s in scenarios],
        valid_mask=sanitized.valid_mask,
        max_workers=max_workers,
    )

    results = []
    for i, (scenario, flood) in enumerate(zip(scenarios, floods)):
        output_path = None
        if output_dir is not None:
            stem = scenario.name or f"scenario_{i:02d}"
            output_path = Path(output_dir) / f"{stem}_flood.tif"
        results.append(_finish(dem, sanitized, scenario, flood, output_path))

    return results
