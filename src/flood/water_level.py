"""
Water level scenarios and vertical datum conversion.

Tide, surge and sea level rise are given relative to hydrographic zero (ZH).
The DEM is referenced to mean sea level (NMM, Cascais 1938), which sits
``datum_offset`` metres above ZH, so the flood threshold in DEM units is the
total water level minus that offset.
"""

import math
from dataclasses import dataclass
from typing import Optional

from src.config import DATUM_OFFSET


@dataclass(frozen=True)
class WaterLevelScenario:
    """Combination of tide, storm surge and sea level rise, in metres."""

    tide: float
    surge: float = 0.0
    slr: float = 0.0
    datum_offset: float = DATUM_OFFSET
    name: Optional[str] = None

    def __post_init__(self):
        for field_name in ("tide", "surge", "slr", "datum_offset"):
            value = getattr(self, field_name)
            try:
                finite = math.isfinite(value)
            except TypeError:
                finite = False
            if not finite:
                raise ValueError(f"{field_name} must be a finite number, got {value!r}")

    @property
    def total_water_level(self) -> float:
        """Total water level referenced to hydrographic zero."""
        return self.tide + self.surge + self.slr

    @property
    def flood_threshold(self) -> float:
        """Water level in the DEM's vertical datum."""
        return self.total_water_level - self.datum_offset

    def describe(self) -> str:
        label = f"{self.name}: " if self.name else ""
        return (
            f"{label}Simulating TWL: {self.total_water_level:.2f}m (ZH) "
            f"-> Threshold: {self.flood_threshold:.2f}m (NMM)"
        )
