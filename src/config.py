"""Configuration module for flood-maker project.

Centralizes data paths and default flood simulation settings.
"""
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
DEM_DIR = DATA_DIR / "dem"
OUTPUT_DIR = PROJECT_ROOT / "examples" / "output"

# Coastal DEM mosaic (WGS84 VRT over the Portuguese coast)
DEFAULT_DEM_PATH = DEM_DIR / "portugal_coast_wgs84.vrt"

# NoData handling
NODATA_WALL = 9999.0  # Replacement for missing cells, must exceed any real elevation
NODATA_FLOOR = -100.0  # Anything below this is treated as NoData

# Vertical datum: hydrographic zero (ZH) sits 2.00 m below the DEM datum
# (Cascais 1938) along the Viana/Aveiro coastal zone
DATUM_OFFSET = 2.0

# Reconstruction neighbourhood (4 = edges only, 8 = edges and corners)
DEFAULT_CONNECTIVITY = 4

# Espinho study area (min_lon, min_lat, max_lon, max_lat)
ESPINHO_BOUNDS = (-8.70, 40.95, -8.60, 41.03)

# Default water level scenario, metres
DEFAULT_TIDE_ZH = 3.8
DEFAULT_SURGE = 0.6
DEFAULT_SLR = 1.13

DEFAULT_LOG_LEVEL = "INFO"
