"""Tests for the elevation rasterizer."""

import pytest
import numpy as np

from terrain_fusion.config.generation_settings import BlendConfig, GeoBounds, WorldScale
from terrain_fusion.core.coordinates import CoordinateTransform
from terrain_fusion.core.rasterizer import (
    ElevationRasterizer, ElevationSample, proximity_density, samples_to_grid
)


@pytest.fixture
def transform():
    bounds = GeoBounds(min_lon=0.0, max_lon=1.0, min_lat=0.0, max_lat=1.0)
    scale = WorldScale(target_world_width=100, target_world_length=100, terrain_max_height=100)
    return CoordinateTransform.uniform(bounds, scale)


def cell_center(i, j, resolution):
    """Geo coordinate of cell (i, j) on the unit-degree test bounds."""
    return j / (resolution - 1), i / (resolution - 1)


class TestSamplesToGrid:
    """Test projection of samples into grid space."""

    def test_corners(self, transform):
        samples = [ElevationSample(0.0, 0.0, 1.0), ElevationSample(1.0, 1.0, 1.0)]
        positions = samples_to_grid(samples, transform, 11)

        np.testing.assert_allclose(positions, [[0.0, 0.0], [10.0, 10.0]])

    def test_row_is_latitude(self, transform):
        positions = samples_to_grid([ElevationSample(0.2, 0.8, 1.0)], transform, 11)
        np.testing.assert_allclose(positions, [[8.0, 2.0]])

    def test_empty(self, transform):
        assert samples_to_grid([], transform, 11).shape == (0, 2)


class TestProximityDensity:
    """Test the per-cell density function."""

    def test_exact_hit_saturates(self):
        density = proximity_density(np.array([0.0]), np.array([0]), 1)
        assert density[0] == pytest.approx(1.0)

    def test_empty_cell_zero(self):
        density = proximity_density(np.array([1.0]), np.array([0]), 2)
        assert density[1] == 0.0

    def test_more_samples_denser(self):
        one = proximity_density(np.array([2.0]), np.array([0]), 1)[0]
        three = proximity_density(np.array([2.0, 2.0, 2.0]), np.array([0, 0, 0]), 1)[0]
        assert three > one

    def test_closer_samples_denser(self):
        near = proximity_density(np.array([1.0]), np.array([0]), 1)[0]
        far = proximity_density(np.array([4.0]), np.array([0]), 1)[0]
        assert near > far


class TestElevationRasterizer:
    """Test IDW rasterization."""

    def test_single_sample_on_cell_center(self, transform):
        """Test that a sample on a cell center reproduces its normalized value."""
        config = BlendConfig(grid_resolution=21, search_radius=3, elevation_data_max_height=400)
        lon, lat = cell_center(10, 10, 21)
        far_lon, far_lat = cell_center(0, 0, 21)
        samples = [ElevationSample(lon, lat, 200.0), ElevationSample(far_lon, far_lat, 400.0)]

        raster = ElevationRasterizer(config, transform).rasterize(samples)

        assert raster.elevation[10, 10] == pytest.approx(0.5, abs=1e-6)
        assert raster.density[10, 10] == pytest.approx(1.0)

    def test_empty_cells_are_zero(self, transform):
        config = BlendConfig(grid_resolution=21, search_radius=2)
        lon, lat = cell_center(5, 5, 21)

        raster = ElevationRasterizer(config, transform).rasterize([ElevationSample(lon, lat, 100.0)])

        assert raster.elevation[15, 15] == 0.0
        assert raster.density[15, 15] == 0.0
        assert 0 < raster.cells_with_data < 21 * 21

    def test_idw_between_two_samples(self, transform):
        """Test that the midpoint between two samples gets their average."""
        config = BlendConfig(grid_resolution=21, search_radius=5, elevation_data_max_height=100)
        a = cell_center(10, 8, 21)
        b = cell_center(10, 12, 21)
        samples = [ElevationSample(*a, 20.0), ElevationSample(*b, 60.0)]

        raster = ElevationRasterizer(config, transform).rasterize(samples)

        assert raster.elevation[10, 10] == pytest.approx(0.4)
        assert raster.elevation[10, 9] < raster.elevation[10, 10] < raster.elevation[10, 11]

    def test_clamped_above_max_height(self, transform):
        config = BlendConfig(grid_resolution=11, elevation_data_max_height=100)
        raster = ElevationRasterizer(config, transform).rasterize([ElevationSample(0.5, 0.5, 250.0)])

        assert raster.elevation.max() == pytest.approx(1.0)

    def test_no_samples(self, transform):
        config = BlendConfig(grid_resolution=16)
        raster = ElevationRasterizer(config, transform).rasterize([])

        assert raster.elevation.shape == (16, 16)
        assert np.all(raster.elevation == 0)
        assert np.all(raster.density == 0)

    def test_values_in_range(self, transform):
        rng = np.random.default_rng(9)
        samples = [
            ElevationSample(lon, lat, h)
            for lon, lat, h in zip(rng.random(2000), rng.random(2000), rng.uniform(0, 500, 2000))
        ]
        config = BlendConfig(grid_resolution=64, search_radius=4, elevation_data_max_height=420)

        raster = ElevationRasterizer(config, transform).rasterize(samples)

        assert raster.elevation.min() >= 0.0
        assert raster.elevation.max() <= 1.0
        assert raster.density.min() >= 0.0
        assert raster.density.max() <= 1.0

    def test_resolution_override(self, transform):
        config = BlendConfig(grid_resolution=64)
        raster = ElevationRasterizer(config, transform).rasterize(
            [ElevationSample(0.5, 0.5, 10.0)], resolution=9
        )
        assert raster.resolution == 9
