"""
NoData sanitization for DEM grids.

Turns a raw raster band (with NaN, masked cells, nodata sentinels or absurd
negative values) into a dense grid the flood engine can order: every invalid
cell becomes a high "wall" that water cannot cross. The validity mask is
returned alongside so downstream code never has to infer NoData from values.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from src.config import NODATA_FLOOR, NODATA_WALL

logger = logging.getLogger(__name__)


@dataclass
class SanitizedDEM:
    """Dense elevation grid plus the mask of cells that held real data."""

    data: np.ndarray
    valid_mask: np.ndarray
    wall_value: float

    @property
    def valid_count(self) -> int:
        return int(np.count_nonzero(self.valid_mask))

    @property
    def has_valid_data(self) -> bool:
        return self.valid_count > 0


def sanitize_dem(
    raw,
    nodata: Optional[float] = None,
    min_valid: Optional[float] = NODATA_FLOOR,
    wall_value: float = NODATA_WALL,
) -> SanitizedDEM:
    """
    Replace missing elevations with a wall value.

    A cell is invalid when it is masked (numpy masked array), NaN or infinite,
    equal to ``nodata``, or below ``min_valid``.

    Args:
        raw: 2D elevation band, plain or masked array
        nodata: Raster nodata sentinel (default: None, no sentinel)
        min_valid: Lowest plausible elevation; lower values count as NoData
            (default: -100.0). None disables the check.
        wall_value: Replacement for invalid cells (default: 9999.0)

    Returns:
        SanitizedDEM with float64 data and boolean valid_mask

    Raises:
        ValueError: If the band is not 2D, or a valid elevation reaches the wall
            value (the wall must be higher than all real terrain)
    """
    masked = np.ma.getmaskarray(raw) if np.ma.isMaskedArray(raw) else None
    data = np.array(np.ma.getdata(raw), dtype=np.float64)

    if data.ndim != 2:
        raise ValueError(f"DEM data must be 2D, got shape {data.shape}")

    invalid = ~np.isfinite(data)
    if masked is not None:
        invalid |= masked
    if nodata is not None and np.isfinite(nodata):
        invalid |= data == nodata
    if min_valid is not None:
        with np.errstate(invalid="ignore"):
            invalid |= data < min_valid

    valid_mask = ~invalid
    if valid_mask.any():
        highest = float(data[valid_mask].max())
        if highest >= wall_value:
            raise ValueError(
                f"Wall value {wall_value} must exceed every valid elevation "
                f"(highest is {highest})"
            )

    data[invalid] = wall_value

    nodata_count = int(np.count_nonzero(invalid))
    if nodata_count > 0:
        logger.debug(f"Replaced {nodata_count:,} NoData cells with wall value {wall_value}")
    if not valid_mask.any():
        logger.warning(f"DEM of shape {data.shape} has no valid elevation cells")

    return SanitizedDEM(data=data, valid_mask=valid_mask, wall_value=wall_value)
