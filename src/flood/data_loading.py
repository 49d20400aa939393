"""
Data loading operations for flood processing.

This module reads a bounding-box window of elevation data from any raster
source rasterio can open (GeoTIFF, VRT mosaics, HGT tiles) and optionally
reprojects it.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import rasterio
from rasterio import Affine
from rasterio.crs import CRS
from rasterio.transform import array_bounds
from rasterio.warp import Resampling, calculate_default_transform, reproject, transform_bounds
from rasterio.windows import Window, from_bounds

from src.flood.statistics import area_units_for_crs

logger = logging.getLogger(__name__)

# Window edges closer than this to a whole pixel are snapped to it
_PIXEL_TOLERANCE = 6


@dataclass
class DEMWindow:
    """Elevation grid in memory plus the spatial metadata needed to write it back."""

    data: np.ndarray
    """float64 elevations, NaN where the source had NoData."""

    transform: Affine
    crs: Optional[CRS]
    nodata: Optional[float] = None

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape

    @property
    def cell_size(self) -> Tuple[float, float]:
        """(xres, yres) in CRS units, both positive."""
        return (abs(self.transform.a), abs(self.transform.e))

    @property
    def area_units(self) -> str:
        """Squared units of the cell size, e.g. "deg²" for EPSG:4326."""
        return area_units_for_crs(self.crs)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(west, south, east, north) in CRS units."""
        height, width = self.shape
        return array_bounds(height, width, self.transform)


def _pixel_window(window: Window, width: int, height: int) -> Optional[Window]:
    """Snap a fractional window outward to whole pixels and clip it to the raster.

    Returns None when nothing is left after clipping.
    """
    col_start = round(window.col_off, _PIXEL_TOLERANCE)
    row_start = round(window.row_off, _PIXEL_TOLERANCE)
    col_stop = round(window.col_off + window.width, _PIXEL_TOLERANCE)
    row_stop = round(window.row_off + window.height, _PIXEL_TOLERANCE)

    col_off = max(int(math.floor(col_start)), 0)
    row_off = max(int(math.floor(row_start)), 0)
    col_end = min(int(math.ceil(col_stop)), width)
    row_end = min(int(math.ceil(row_stop)), height)

    if col_end <= col_off or row_end <= row_off:
        return None
    return Window(col_off, row_off, col_end - col_off, row_end - row_off)


def load_dem_window(
    path,
    bounds: Tuple[float, float, float, float],
    band: int = 1,
    bounds_crs: str = "EPSG:4326",
) -> DEMWindow:
    """
    Load the part of a DEM that falls inside a bounding box.

    Args:
        path: Raster file (GeoTIFF, VRT, ...)
        bounds: (min_lon, min_lat, max_lon, max_lat), in ``bounds_crs``
        band: Band number to read (default: 1)
        bounds_crs: CRS of ``bounds`` (default: "EPSG:4326")

    Returns:
        DEMWindow with float64 data (NaN for NoData) and the window transform

    Raises:
        FileNotFoundError: If the raster does not exist
        ValueError: If bounds are inverted, the band is missing, or the bounding
            box does not overlap the raster
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"DEM file not found: {path}")

    min_x, min_y, max_x, max_y = (float(v) for v in bounds)
    if min_x >= max_x or min_y >= max_y:
        raise ValueError(
            f"Invalid bounds {bounds}: expected (min_lon, min_lat, max_lon, max_lat)"
        )

    logger.info(f"Loading and clipping raster {path.name} to {bounds}")

    with rasterio.open(path) as src:
        if band < 1 or band > src.count:
            raise ValueError(f"Band {band} not available, {path.name} has {src.count} band(s)")

        if src.crs is not None and src.crs != CRS.from_user_input(bounds_crs):
            min_x, min_y, max_x, max_y = transform_bounds(
                bounds_crs, src.crs, min_x, min_y, max_x, max_y
            )
            logger.debug(f"Bounds in {src.crs}: {(min_x, min_y, max_x, max_y)}")

        window = from_bounds(min_x, min_y, max_x, max_y, transform=src.transform)
        window = _pixel_window(window, src.width, src.height)
        if window is None:
            raise ValueError(
                f"No elevation data in bounding box {bounds}: "
                f"it does not overlap {path.name}"
            )

        masked = src.read(band, window=window, masked=True)
        data = masked.astype(np.float64).filled(np.nan)
        transform = src.window_transform(window)
        crs = src.crs
        nodata = src.nodata

    valid = np.isfinite(data)
    logger.info(f"  Output shape: {data.shape}")
    if valid.any():
        logger.info(
            f"  Value range: {np.nanmin(data):.2f} to {np.nanmax(data):.2f}"
        )
    logger.debug(f"  Transform: {transform}")

    return DEMWindow(data=data, transform=transform, crs=crs, nodata=nodata)


def reproject_dem(
    dem: DEMWindow,
    dst_crs,
    resampling: Resampling = Resampling.bilinear,
    num_threads: int = 4,
) -> DEMWindow:
    """
    Reproject a loaded DEM window to another CRS.

    Args:
        dem: Source DEMWindow (must carry a CRS)
        dst_crs: Destination coordinate reference system
        resampling: Resampling method (default: bilinear)
        num_threads: Number of threads for parallel processing

    Returns:
        New DEMWindow; cells outside the source footprint are NaN
    """
    if dem.crs is None:
        raise ValueError("Cannot reproject a DEM without a CRS")

    logger.info(f"Reprojecting raster from {dem.crs} to {dst_crs}")
    height, width = dem.shape

    with rasterio.Env(GDAL_NUM_THREADS=str(num_threads)):
        dst_transform, dst_width, dst_height = calculate_default_transform(
            dem.crs,
            dst_crs,
            width,
            height,
            *array_bounds(height, width, dem.transform),
        )

        dst_data = np.full((dst_height, dst_width), np.nan, dtype=np.float64)

        reproject(
            source=dem.data,
            destination=dst_data,
            src_transform=dem.transform,
            src_crs=dem.crs,
            src_nodata=np.nan,
            dst_transform=dst_transform,
            dst_crs=dst_crs,
            resampling=resampling,
            dst_nodata=np.nan,
            num_threads=num_threads,
        )

    logger.info(f"Reprojection complete. New shape: {dst_data.shape}")

    return DEMWindow(
        data=dst_data,
        transform=dst_transform,
        crs=CRS.from_user_input(dst_crs),
        nodata=dem.nodata,
    )
