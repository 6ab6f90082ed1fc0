"""Tests for grid smoothing."""

import pytest
import numpy as np
from scipy.ndimage import gaussian_filter

from terrain_fusion.core.smoothing import gaussian_smooth


class TestGaussianSmooth:
    """Test separable Gaussian smoothing."""

    @pytest.fixture
    def spike(self):
        grid = np.zeros((31, 31))
        grid[15, 15] = 1.0
        return grid

    def test_zero_sigma_identity(self):
        grid = np.random.default_rng(0).random((40, 40))
        result = gaussian_smooth(grid, 0.0)

        np.testing.assert_array_equal(result, grid)
        assert result is not grid

    def test_input_untouched(self, spike):
        original = spike.copy()
        gaussian_smooth(spike, 2.0)
        np.testing.assert_array_equal(spike, original)

    def test_mass_preserved_away_from_edges(self, spike):
        result = gaussian_smooth(spike, 2.0)
        assert result.sum() == pytest.approx(1.0, rel=1e-6)

    def test_symmetric_spread(self, spike):
        result = gaussian_smooth(spike, 2.0)

        assert result[15, 15] < 1.0
        assert result[15, 14] == pytest.approx(result[15, 16])
        assert result[14, 15] == pytest.approx(result[16, 15])
        assert result[15, 14] == pytest.approx(result[14, 15])

    def test_constant_grid_unchanged(self):
        """Test that edge replication keeps a flat grid flat up to the border."""
        grid = np.full((20, 33), 0.7)
        np.testing.assert_allclose(gaussian_smooth(grid, 3.0), grid)

    def test_banded_matches_whole_grid(self):
        """Test that small parallel bands give the same answer as one band."""
        grid = np.random.default_rng(4).random((70, 90))
        expected = gaussian_filter(grid, sigma=1.5, mode="nearest", truncate=3.0)

        np.testing.assert_allclose(gaussian_smooth(grid, 1.5), expected, atol=1e-12)
