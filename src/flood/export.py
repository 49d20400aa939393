"""
GeoTIFF export of flood results.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import rasterio
from rasterio import Affine

logger = logging.getLogger(__name__)


def _write_geotiff(
    path, data: np.ndarray, transform: Affine, crs, nodata: Optional[float] = None
) -> Path:
    """
    Write numpy array to GeoTIFF file.

    Parameters
    ----------
    path : str or Path
        Output file path, parent directories are created
    data : np.ndarray
        2D data array to write
    transform : Affine
        Affine transform
    crs : rasterio.crs.CRS
        Coordinate reference system
    nodata : float, optional
        Nodata value stored in the file metadata
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    height, width = data.shape

    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=1,
        dtype=data.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
        compress="lzw",
    ) as dst:
        dst.write(data, 1)

    return path


def write_flood_mask(path, mask: np.ndarray, transform: Affine, crs) -> Path:
    """
    Save a flood mask as a byte GeoTIFF (1 = flooded, 0 = dry).

    Args:
        path: Output .tif path
        mask: 2D boolean flood mask
        transform: Affine transform of the DEM window the mask was computed on
        crs: CRS of that DEM window

    Returns:
        Path of the written file
    """
    mask = np.asarray(mask)
    if mask.ndim != 2:
        raise ValueError(f"Flood mask must be 2D, got shape {mask.shape}")

    out = _write_geotiff(path, mask.astype(np.uint8), transform, crs)
    logger.info(f"Flood mask saved to: {out}")
    return out


def write_surface(path, surface: np.ndarray, transform: Affine, crs, nodata: Optional[float] = None) -> Path:
    """Save a reconstructed water surface as float32 GeoTIFF for inspection."""
    surface = np.asarray(surface)
    if surface.ndim != 2:
        raise ValueError(f"Surface must be 2D, got shape {surface.shape}")

    out = _write_geotiff(path, surface.astype(np.float32), transform, crs, nodata=nodata)
    logger.info(f"Reconstructed surface saved to: {out}")
    return out
