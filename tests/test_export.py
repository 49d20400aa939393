"""Tests for GeoTIFF export of flood results."""

import numpy as np
import pytest
import rasterio
from rasterio.crs import CRS

from conftest import COAST_TRANSFORM
from src.flood.export import write_flood_mask, write_surface


class TestWriteFloodMask:
    """Tests for write_flood_mask."""

    def test_writes_byte_mask(self, tmp_path):
        mask = np.zeros((8, 10), dtype=bool)
        mask[:, :3] = True

        out = write_flood_mask(tmp_path / "flood.tif", mask, COAST_TRANSFORM, "EPSG:4326")

        with rasterio.open(out) as src:
            data = src.read(1)
            assert src.dtypes[0] == "uint8"
            assert src.count == 1
            assert src.crs == CRS.from_epsg(4326)
            assert src.transform.almost_equals(COAST_TRANSFORM)

        assert data.sum() == 24
        assert set(np.unique(data).tolist()) == {0, 1}

    def test_creates_parent_directories(self, tmp_path):
        out = write_flood_mask(
            tmp_path / "nested" / "dir" / "flood.tif",
            np.ones((2, 2), dtype=bool),
            COAST_TRANSFORM,
            "EPSG:4326",
        )
        assert out.exists()

    def test_rejects_non_2d(self, tmp_path):
        with pytest.raises(ValueError, match="must be 2D"):
            write_flood_mask(tmp_path / "bad.tif", np.ones(4, dtype=bool), COAST_TRANSFORM, "EPSG:4326")


class TestWriteSurface:
    """Tests for write_surface."""

    def test_writes_float32_surface(self, tmp_path):
        surface = np.array([[1.5, 2.5], [3.5, 9999.0]])

        out = write_surface(tmp_path / "surface.tif", surface, COAST_TRANSFORM, "EPSG:4326", nodata=9999.0)

        with rasterio.open(out) as src:
            assert src.dtypes[0] == "float32"
            assert src.nodata == 9999.0
            np.testing.assert_allclose(src.read(1), surface)

    def test_rejects_non_2d(self, tmp_path):
        with pytest.raises(ValueError, match="must be 2D"):
            write_surface(tmp_path / "bad.tif", np.ones((2, 2, 2)), COAST_TRANSFORM, "EPSG:4326")
