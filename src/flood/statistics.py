"""
Flood extent statistics.

Counts flooded cells and converts them to an area using the raster cell size.
Area is reported in squared CRS units (degrees squared for a geographic DEM,
square metres for a metric projected one).
A missing cell size only drops the area figures, never the counts.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy import ndimage

from src.config import DEFAULT_CONNECTIVITY

logger = logging.getLogger(__name__)


@dataclass
class FloodStatistics:
    """Summary numbers for one flood mask."""

    flooded_pixels: int
    total_pixels: int
    pixel_area: Optional[float] = None
    flooded_area: Optional[float] = None
    isolated_pixels: Optional[int] = None
    """Cells below the threshold that stay dry because they are cut off."""
    isolated_depressions: Optional[int] = None
    """Number of separate cut-off depressions."""
    area_units: str = "deg²"

    @property
    def flooded_fraction(self) -> float:
        if self.total_pixels == 0:
            return 0.0
        return self.flooded_pixels / self.total_pixels

    def summary(self) -> str:
        lines = [f"Flooded pixels: {self.flooded_pixels}"]
        if self.flooded_area is not None:
            lines.append(f"Approximate flooded area: {self.flooded_area:.6f} {self.area_units}")
        else:
            lines.append("Approximate flooded area: unavailable (no cell size)")
        if self.isolated_pixels is not None:
            lines.append(
                f"Isolated low-lying pixels left dry: {self.isolated_pixels} "
                f"in {self.isolated_depressions} depressions"
            )
        return "\n".join(lines)


def area_units_for_crs(crs) -> str:
    """Label for squared CRS units: deg², m² or the CRS linear unit squared."""
    if crs is None:
        return "units²"
    if crs.is_geographic:
        return "deg²"
    units = (crs.linear_units or "").lower()
    if units in ("metre", "meter", "m"):
        return "m²"
    if not units or units == "unknown":
        return "units²"
    return f"{units}²"


def cell_size_from_transform(transform) -> Optional[Tuple[float, float]]:
    """(xres, yres) from an affine transform, or None if the transform is missing."""
    if transform is None:
        return None
    return (float(transform.a), float(transform.e))


def _pixel_area(cell_size) -> Optional[float]:
    if cell_size is None:
        return None
    try:
        xres, yres = (float(v) for v in cell_size)
    except (TypeError, ValueError):
        return None
    area = abs(xres * yres)
    if not math.isfinite(area) or area == 0.0:
        return None
    return area


def flood_statistics(
    mask: np.ndarray,
    cell_size: Optional[Tuple[float, float]] = None,
    transform=None,
    elevation: Optional[np.ndarray] = None,
    threshold: Optional[float] = None,
    connectivity: int = DEFAULT_CONNECTIVITY,
    area_units: str = "deg²",
) -> FloodStatistics:
    """
    Count flooded cells and estimate the flooded area.

    Args:
        mask: Boolean flood mask
        cell_size: (xres, yres) in CRS units; sign is ignored
        transform: Affine transform, used when cell_size is not given
        elevation: Optional DEM to report depressions excluded from the flood
        threshold: Water level matching the mask (needed with elevation)
        connectivity: Neighbourhood used to count separate depressions
        area_units: Label for the squared CRS units in the summary

    Returns:
        FloodStatistics
    """
    mask = np.asarray(mask, dtype=bool)
    flooded_pixels = int(np.count_nonzero(mask))

    if cell_size is None:
        cell_size = cell_size_from_transform(transform)
    pixel_area = _pixel_area(cell_size)
    if pixel_area is None:
        logger.warning("No valid cell size available; flooded area not computed")
        flooded_area = None
    else:
        flooded_area = flooded_pixels * pixel_area

    isolated_pixels = None
    isolated_depressions = None
    if elevation is not None and threshold is not None:
        elevation = np.asarray(elevation)
        if elevation.shape != mask.shape:
            raise ValueError(
                f"Elevation shape {elevation.shape} does not match mask shape {mask.shape}"
            )
        isolated = (elevation < threshold) & ~mask
        isolated_pixels = int(np.count_nonzero(isolated))
        structure = ndimage.generate_binary_structure(2, 1 if connectivity == 4 else 2)
        _, isolated_depressions = ndimage.label(isolated, structure=structure)
        isolated_depressions = int(isolated_depressions)

    stats = FloodStatistics(
        flooded_pixels=flooded_pixels,
        total_pixels=int(mask.size),
        pixel_area=pixel_area,
        flooded_area=flooded_area,
        isolated_pixels=isolated_pixels,
        isolated_depressions=isolated_depressions,
        area_units=area_units,
    )

    for line in stats.summary().splitlines():
        logger.info(line)

    return stats
