"""Tests for map-feature extraction."""

import pytest
import numpy as np

from terrain_fusion.core.map_features import MapFeatures
from terrain_fusion.errors import ConfigurationError


def polygon(ring, **properties):
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": "Polygon", "coordinates": [ring]},
    }


def line(points, **properties):
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": "LineString", "coordinates": points},
    }


@pytest.fixture
def collection():
    square = [[24.91, 37.41], [24.92, 37.41], [24.92, 37.42], [24.91, 37.42], [24.91, 37.41]]
    return {
        "type": "FeatureCollection",
        "features": [
            polygon(square, building="church", name="Agios Nikolaos", elevation=42),
            polygon([[24.93, 37.43], [24.94, 37.43], [24.94, 37.44]], building="yes"),
            line([[24.90, 37.40], [24.95, 37.45]], highway="residential", elevation=10.5),
            line([[24.905, 37.40], [24.906, 37.41]], highway="footway", elevation=-1),
            line([[24.91, 37.41]], highway="path", elevation=5),
            polygon(square, natural="water"),
            {"type": "Feature", "properties": None, "geometry": None},
        ],
    }


class TestMapFeatures:
    """Test feature extraction from a FeatureCollection."""

    def test_counts(self, collection):
        features = MapFeatures.from_geojson(collection)

        assert len(features.buildings) == 2
        assert len(features.streets) == 2

    def test_closing_vertex_dropped(self, collection):
        church = MapFeatures.from_geojson(collection).buildings[0]

        assert len(church.footprint) == 4
        assert church.centroid == pytest.approx((24.915, 37.415))

    def test_elevation_parsing(self, collection):
        features = MapFeatures.from_geojson(collection)

        assert features.buildings[0].elevation == 42.0
        assert features.buildings[1].elevation is None
        assert features.streets[0].elevation == 10.5
        assert features.streets[1].elevation is None

    def test_elevation_samples(self, collection):
        """Test centroid plus vertices for buildings, vertices for streets."""
        samples = MapFeatures.from_geojson(collection).elevation_samples()

        # church: centroid + 4 vertices; residential street: 2 vertices
        assert len(samples) == 7
        assert samples[0].lon == pytest.approx(24.915)
        assert samples[0].elevation_m == 42.0
        assert {s.elevation_m for s in samples} == {42.0, 10.5}

    def test_building_centroids(self, collection):
        lons, lats = MapFeatures.from_geojson(collection).building_centroids()

        assert len(lons) == 2
        np.testing.assert_allclose(lons[0], 24.915)
        np.testing.assert_allclose(lats[1], (37.43 + 37.43 + 37.44) / 3)

    def test_bounds(self, collection):
        bounds = MapFeatures.from_geojson(collection).bounds()

        assert bounds.min_lon == pytest.approx(24.90)
        assert bounds.max_lon == pytest.approx(24.95)
        assert bounds.min_lat == pytest.approx(37.40)
        assert bounds.max_lat == pytest.approx(37.45)

    def test_points_of_interest(self, collection):
        pois = MapFeatures.from_geojson(collection).points_of_interest()

        assert len(pois) == 1
        assert pois[0].name == "Agios Nikolaos"
        assert pois[0].expected_elevation == 42.0

    def test_empty_collection(self):
        features = MapFeatures.from_geojson({"type": "FeatureCollection", "features": []})

        assert features.elevation_samples() == []
        assert features.building_centroids()[0].size == 0
        with pytest.raises(ConfigurationError):
            features.bounds()
