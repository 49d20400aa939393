"""Tests for NoData sanitization."""

import numpy as np
import pytest

from src.flood.sanitize import SanitizedDEM, sanitize_dem


class TestSanitizeDem:
    """Tests for sanitize_dem."""

    def test_nan_becomes_wall(self):
        raw = np.array([[1.0, np.nan], [np.inf, 2.0]])

        result = sanitize_dem(raw)

        assert isinstance(result, SanitizedDEM)
        assert result.data.tolist() == [[1.0, 9999.0], [9999.0, 2.0]]
        assert result.valid_mask.tolist() == [[True, False], [False, True]]
        assert result.valid_count == 2

    def test_nodata_sentinel_replaced(self):
        raw = np.array([[5.0, -32768.0], [3.0, 4.0]], dtype=np.float32)

        result = sanitize_dem(raw, nodata=-32768.0, min_valid=None)

        assert result.data[0, 1] == 9999.0
        assert not result.valid_mask[0, 1]

    def test_values_below_floor_are_nodata(self):
        raw = np.array([[-150.0, -50.0, 10.0]])

        result = sanitize_dem(raw)

        assert result.valid_mask.tolist() == [[False, True, True]]
        assert result.data[0, 0] == 9999.0
        assert result.data[0, 1] == -50.0

    def test_masked_array_mask_respected(self):
        raw = np.ma.masked_array([[1.0, 2.0], [3.0, 4.0]], mask=[[False, True], [False, False]])

        result = sanitize_dem(raw)

        assert result.data[0, 1] == 9999.0
        assert result.valid_count == 3

    def test_custom_wall_value(self):
        result = sanitize_dem(np.array([[np.nan, 1.0]]), wall_value=500.0)
        assert result.data[0, 0] == 500.0
        assert result.wall_value == 500.0

    def test_does_not_mutate_input(self):
        raw = np.array([[np.nan, 1.0]])
        sanitize_dem(raw)
        assert np.isnan(raw[0, 0])

    def test_returns_float64(self):
        result = sanitize_dem(np.array([[1, 2], [3, 4]], dtype=np.int16))
        assert result.data.dtype == np.float64

    def test_wall_must_exceed_terrain(self):
        with pytest.raises(ValueError, match="must exceed every valid elevation"):
            sanitize_dem(np.array([[1.0, 600.0]]), wall_value=500.0)

    def test_rejects_non_2d(self):
        with pytest.raises(ValueError, match="must be 2D"):
            sanitize_dem(np.ones(5))

    def test_all_nodata_flags_no_valid_data(self):
        result = sanitize_dem(np.full((2, 2), np.nan))

        assert not result.has_valid_data
        assert np.all(result.data == 9999.0)
