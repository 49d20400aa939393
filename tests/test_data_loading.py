"""
Tests for data loading operations.

Tests bounding-box DEM window loading and reprojection.
"""

import numpy as np
import pytest
import rasterio
from rasterio.crs import CRS

from conftest import COAST_BOUNDS, COAST_TRANSFORM, write_test_geotiff


class TestLoadDemWindow:
    """Tests for load_dem_window function."""

    def test_load_dem_window_imports(self):
        """Test that load_dem_window can be imported."""
        from src.flood.data_loading import load_dem_window

        assert callable(load_dem_window)

    def test_full_bounds_returns_whole_raster(self, coastal_dem_file, coastal_dem):
        from src.flood.data_loading import DEMWindow, load_dem_window

        dem = load_dem_window(coastal_dem_file, COAST_BOUNDS)

        assert isinstance(dem, DEMWindow)
        assert dem.shape == (8, 10)
        assert dem.data.dtype == np.float64
        assert dem.crs == CRS.from_epsg(4326)
        np.testing.assert_allclose(dem.data[:, :9], coastal_dem[:, :9])

    def test_nodata_becomes_nan(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window

        dem = load_dem_window(coastal_dem_file, COAST_BOUNDS)

        assert np.isnan(dem.data[0, 9])
        assert dem.nodata == -9999.0
        assert np.isfinite(dem.data[1, 9])

    def test_subset_window(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window

        dem = load_dem_window(coastal_dem_file, (-8.65, 40.99, -8.62, 41.01))

        assert dem.shape == (2, 3)
        # Columns 5..7 of the eastward ramp
        assert dem.data[0].tolist() == [5.0, 6.0, 7.0]
        assert dem.transform.c == pytest.approx(-8.65)
        assert dem.transform.f == pytest.approx(41.01)

    def test_partial_overlap_is_clipped(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window

        dem = load_dem_window(coastal_dem_file, (-8.80, 40.90, -8.65, 41.10))

        assert dem.shape == (8, 5)

    def test_cell_size_and_bounds(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window

        dem = load_dem_window(coastal_dem_file, COAST_BOUNDS)

        assert dem.cell_size == pytest.approx((0.01, 0.01))
        assert dem.area_units == "deg²"
        np.testing.assert_allclose(dem.bounds, COAST_BOUNDS)

    def test_missing_file_raises(self, tmp_path):
        from src.flood.data_loading import load_dem_window

        with pytest.raises(FileNotFoundError, match="not found"):
            load_dem_window(tmp_path / "missing.vrt", COAST_BOUNDS)

    def test_inverted_bounds_raise(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window

        with pytest.raises(ValueError, match="Invalid bounds"):
            load_dem_window(coastal_dem_file, (-8.60, 40.95, -8.70, 41.03))

    def test_bounds_outside_raster_raise(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window

        with pytest.raises(ValueError, match="No elevation data in bounding box"):
            load_dem_window(coastal_dem_file, (10.0, 50.0, 11.0, 51.0))

    def test_missing_band_raises(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window

        with pytest.raises(ValueError, match="Band 2 not available"):
            load_dem_window(coastal_dem_file, COAST_BOUNDS, band=2)

    def test_projected_raster_with_geographic_bounds(self, tmp_path):
        """Bounds in EPSG:4326 are converted to the raster CRS before clipping."""
        from src.flood.data_loading import load_dem_window
        from rasterio.transform import from_origin
        from rasterio.warp import transform_bounds

        data = np.arange(100, dtype=np.float32).reshape(10, 10)
        transform = from_origin(500000.0, 4540000.0, 1000.0, 1000.0)
        path = write_test_geotiff(tmp_path / "utm.tif", data, transform=transform, crs="EPSG:32629")

        with rasterio.open(path) as src:
            west, south, east, north = transform_bounds(src.crs, "EPSG:4326", *src.bounds)

        dem = load_dem_window(path, (west, south, east, north))

        assert dem.crs == CRS.from_epsg(32629)
        assert dem.shape == (10, 10)


class TestReprojectDem:
    """Tests for reproject_dem function."""

    def test_reproject_changes_crs(self, coastal_dem_file):
        from src.flood.data_loading import load_dem_window, reproject_dem

        dem = load_dem_window(coastal_dem_file, COAST_BOUNDS)
        projected = reproject_dem(dem, "EPSG:3857")

        assert projected.crs == CRS.from_epsg(3857)
        assert projected.data.ndim == 2
        assert np.isfinite(projected.data).any()
        assert projected.cell_size[0] > 1.0  # metres, not degrees

    def test_reproject_requires_crs(self):
        from src.flood.data_loading import DEMWindow, reproject_dem

        dem = DEMWindow(data=np.zeros((2, 2)), transform=COAST_TRANSFORM, crs=None)
        with pytest.raises(ValueError, match="without a CRS"):
            reproject_dem(dem, "EPSG:3857")
