"""Pytest configuration and fixtures for flood-maker tests."""
import sys
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest
import numpy as np
import rasterio
from rasterio import Affine

# Espinho-like grid: 0.01 degree cells from (-8.70, 41.03)
COAST_TRANSFORM = Affine(0.01, 0, -8.70, 0, -0.01, 41.03)
COAST_BOUNDS = (-8.70, 40.95, -8.60, 41.03)
COAST_NODATA = -9999.0


def write_test_geotiff(path, data, transform=COAST_TRANSFORM, crs="EPSG:4326", nodata=None):
    """Write a single-band GeoTIFF for loader tests."""
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
    ) as dst:
        dst.write(data, 1)
    return path


def make_coastal_dem():
    """8x10 DEM rising eastward from the sea, with one cut-off inland depression.

    Elevation equals the column index (0 m at the western border up to 9 m).
    Cells (3..4, 6..7) form a 0.5 m depression enclosed by higher ground.
    The north-east corner holds a NoData sentinel.
    """
    dem = np.tile(np.arange(10, dtype=np.float32), (8, 1))
    dem[3:5, 6:8] = 0.5
    dem[0, 9] = COAST_NODATA
    return dem


@pytest.fixture
def sample_dem():
    """Create a small synthetic DEM for testing."""
    # Bowl that drains to nothing: high rim, low centre
    x = np.linspace(-10, 10, 40)
    y = np.linspace(-10, 10, 40)
    X, Y = np.meshgrid(x, y)
    Z = 20 - 15 * np.exp(-(X**2 + Y**2) / 30)
    return Z.astype(np.float64)


@pytest.fixture
def isolated_basin_dem():
    """5x5 grid: border 10 m, interior 8 m, one 2 m pit at (2, 2)."""
    dem = np.full((5, 5), 8.0)
    dem[0, :] = dem[-1, :] = 10.0
    dem[:, 0] = dem[:, -1] = 10.0
    dem[2, 2] = 2.0
    return dem


@pytest.fixture
def channel_dem(isolated_basin_dem):
    """Same as isolated_basin_dem but a 3 m channel links the pit to the west border."""
    dem = isolated_basin_dem.copy()
    dem[2, 0:3] = 3.0
    return dem


@pytest.fixture
def coastal_dem():
    return make_coastal_dem()


@pytest.fixture
def coastal_dem_file(tmp_path):
    """GeoTIFF of make_coastal_dem() with a -9999 nodata sentinel."""
    return write_test_geotiff(
        tmp_path / "coast.tif", make_coastal_dem(), nodata=COAST_NODATA
    )


@pytest.fixture
def project_root():
    """Get the project root directory."""
    return Path(__file__).parent.parent
