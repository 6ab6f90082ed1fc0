"""Tests for elevation blending and the sea-level override."""

import pytest
import numpy as np

from terrain_fusion.config.generation_settings import BlendConfig, BlendMode
from terrain_fusion.core.blender import (
    ElevationBlender, apply_sea_override, dilate_density, smoothstep
)


@pytest.fixture
def grids():
    rng = np.random.default_rng(0)
    h_map = rng.uniform(0.2, 0.9, (24, 24))
    h_data = rng.uniform(0.0, 1.0, (24, 24))
    density = np.zeros((24, 24))
    density[8:12, 8:12] = 1.0
    return h_map, h_data, density


class TestSmoothstep:
    """Test the smoothstep weight curve."""

    def test_endpoints(self):
        np.testing.assert_allclose(smoothstep(np.array([0.0, 0.5, 1.0])), [0.0, 0.5, 1.0])

    def test_clamped(self):
        np.testing.assert_allclose(smoothstep(np.array([-1.0, 2.0])), [0.0, 1.0])


class TestDilateDensity:
    """Test confidence dilation."""

    def test_zero_radius_identity(self, grids):
        density = grids[2]
        np.testing.assert_array_equal(dilate_density(density, 0), density)

    def test_never_lowers(self, grids):
        density = grids[2]
        assert np.all(dilate_density(density, 4) >= density)

    def test_linear_falloff(self):
        density = np.zeros((21, 21))
        density[10, 10] = 1.0
        dilated = dilate_density(density, 4)

        assert dilated[10, 10] == pytest.approx(1.0)
        assert dilated[10, 12] == pytest.approx(0.5)
        assert dilated[10, 13] == pytest.approx(0.25)
        assert dilated[10, 14] == 0.0
        assert dilated[10, 3] == 0.0

    def test_edges(self):
        """Test that a cluster on the border dilates inward without wrapping."""
        density = np.zeros((10, 10))
        density[0, 0] = 1.0
        dilated = dilate_density(density, 3)

        assert dilated[0, 1] > 0
        assert dilated[9, 9] == 0.0
        assert dilated[0, 9] == 0.0


class TestSeaOverride:
    """Test the coastline override."""

    def test_scenario(self):
        """Test below, inside and above the transition band."""
        h_map = np.array([0.005, 0.02, 0.05])
        blended = np.array([0.4, 0.4, 0.4])

        result = apply_sea_override(blended, h_map, threshold=0.01, transition_width=0.02)

        assert result[0] == 0.0
        assert 0.0 < result[1] < 0.4
        assert result[1] == pytest.approx(0.2)
        assert result[2] == pytest.approx(0.4)

    def test_threshold_inclusive(self):
        result = apply_sea_override(np.array([0.5]), np.array([0.01]), 0.01, 0.02)
        assert result[0] == 0.0

    def test_zero_width_is_hard_edge(self):
        result = apply_sea_override(np.array([0.5, 0.5]), np.array([0.01, 0.0101]), 0.01, 0.0)
        np.testing.assert_allclose(result, [0.0, 0.5])


class TestElevationBlender:
    """Test the blend modes."""

    def test_uniform_weight_zero_is_heightmap(self, grids):
        h_map, h_data, density = grids
        config = BlendConfig(mode=BlendMode.UNIFORM, blend_weight=0.0, sea_level_override=False)

        np.testing.assert_allclose(ElevationBlender(config).blend(h_map, h_data, density), h_map)

    def test_uniform_weight_one_is_data(self, grids):
        h_map, h_data, _ = grids
        covered = np.ones_like(h_map)
        config = BlendConfig(mode=BlendMode.UNIFORM, blend_weight=1.0, sea_level_override=False)

        np.testing.assert_allclose(ElevationBlender(config).blend(h_map, h_data, covered), h_data)

    def test_uniform_midpoint(self, grids):
        h_map, h_data, _ = grids
        covered = np.full_like(h_map, 0.2)
        config = BlendConfig(mode=BlendMode.UNIFORM, blend_weight=0.5, sea_level_override=False)

        result = ElevationBlender(config).blend(h_map, h_data, covered)
        np.testing.assert_allclose(result, (h_map + h_data) / 2)

    def test_uniform_keeps_heightmap_without_data(self, grids):
        """Test that cells the data never reached keep the heightmap height."""
        h_map, h_data, density = grids
        config = BlendConfig(mode=BlendMode.UNIFORM, blend_weight=0.5, sea_level_override=False)

        result = ElevationBlender(config).blend(h_map, h_data, density)

        uncovered = density == 0
        np.testing.assert_allclose(result[uncovered], h_map[uncovered])
        np.testing.assert_allclose(result[8:12, 8:12], (h_map[8:12, 8:12] + h_data[8:12, 8:12]) / 2)

    def test_density_mode(self, grids):
        """Test data inside the dense cluster and heightmap far from it."""
        h_map, h_data, density = grids
        config = BlendConfig(density_falloff_radius=3, sea_level_override=False)

        result = ElevationBlender(config).blend(h_map, h_data, density)

        np.testing.assert_allclose(result[8:12, 8:12], h_data[8:12, 8:12])
        np.testing.assert_allclose(result[20:, 20:], h_map[20:, 20:])
        # buffer zone mixes both
        w = ElevationBlender(config).effective_weight(density)[10, 13]
        assert 0.0 < w < 1.0

    def test_debug_uses_data_only(self, grids):
        h_map, h_data, density = grids
        config = BlendConfig(elevation_only_debug=True, sea_level_override=False)

        np.testing.assert_allclose(ElevationBlender(config).blend(h_map, h_data, density), h_data)

    def test_no_data_falls_back_to_heightmap(self, grids):
        h_map, h_data, density = grids
        config = BlendConfig(mode=BlendMode.UNIFORM, blend_weight=0.5, sea_level_override=False)

        result = ElevationBlender(config).blend(h_map, np.zeros_like(h_map), np.zeros_like(h_map), has_data=False)
        np.testing.assert_allclose(result, h_map)

    @pytest.mark.parametrize("config", [
        BlendConfig(mode=BlendMode.UNIFORM, blend_weight=1.0),
        BlendConfig(mode=BlendMode.DENSITY_BASED),
        BlendConfig(elevation_only_debug=True),
    ])
    def test_sea_precedence(self, grids, config):
        """Test that sea cells stay at zero in every mode and on repeated passes."""
        h_map, h_data, density = grids
        h_map = h_map.copy()
        h_map[0:3, 0:3] = 0.0005
        blender = ElevationBlender(config)

        first = blender.blend(h_map, h_data, density)
        second = blender.blend(h_map, h_data, density)

        assert np.all(first[0:3, 0:3] == 0.0)
        np.testing.assert_array_equal(first, second)

    def test_output_clamped(self):
        h_map = np.full((4, 4), 0.5)
        h_data = np.full((4, 4), 1.5)
        config = BlendConfig(mode=BlendMode.UNIFORM, blend_weight=1.0)

        result = ElevationBlender(config).blend(h_map, h_data, np.ones((4, 4)))
        assert result.max() == 1.0
