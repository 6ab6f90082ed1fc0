"""
Map-feature extraction.

Turns an already-parsed GeoJSON-like FeatureCollection into the inputs the
engine needs: elevation samples, building centroids for the adaptive warp,
data bounds and named points of interest.

Recognised features:

- buildings: Polygon geometry with a ``building`` property
- streets: LineString geometry with a ``highway`` property

Coordinates are ``[lon, lat]`` pairs. The optional ``elevation`` property
holds metres above sea level; missing or negative values mean unknown.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import structlog

from ..config.generation_settings import GeoBounds
from .rasterizer import ElevationSample

logger = structlog.get_logger()


@dataclass
class Building:
    """Building footprint (outer ring, closing vertex removed)."""

    footprint: List[Tuple[float, float]]
    building_type: str
    name: Optional[str] = None
    elevation: Optional[float] = None

    @property
    def centroid(self) -> Tuple[float, float]:
        ring = np.asarray(self.footprint, dtype=np.float64)
        lon, lat = ring.mean(axis=0)
        return float(lon), float(lat)


@dataclass
class Street:
    """Street centreline."""

    points: List[Tuple[float, float]]
    highway_type: str
    name: Optional[str] = None
    elevation: Optional[float] = None


@dataclass
class PointOfInterest:
    """Named feature with its known elevation, if any."""

    name: str
    lon: float
    lat: float
    expected_elevation: Optional[float]


@dataclass
class MapFeatures:
    """Buildings and streets extracted from one feature collection."""

    buildings: List[Building] = field(default_factory=list)
    streets: List[Street] = field(default_factory=list)

    @classmethod
    def from_geojson(cls, collection: Dict[str, Any]) -> "MapFeatures":
        """
        Extract buildings and streets from a FeatureCollection dict.

        Features of other kinds and malformed geometries are skipped.
        """
        features = cls()
        skipped = 0

        for feature in collection.get("features", []):
            properties = feature.get("properties") or {}
            geometry = feature.get("geometry") or {}
            geom_type = geometry.get("type")
            coords = geometry.get("coordinates")

            building = properties.get("building") or None
            highway = properties.get("highway") or None
            name = properties.get("name") or None
            elevation = _parse_elevation(properties.get("elevation"))

            if building is not None and geom_type == "Polygon":
                ring = _outer_ring(coords)
                if len(ring) >= 3:
                    features.buildings.append(Building(ring, str(building), name, elevation))
                    continue
            elif highway is not None and geom_type == "LineString":
                points = _points(coords)
                if len(points) >= 2:
                    features.streets.append(Street(points, str(highway), name, elevation))
                    continue
            skipped += 1

        logger.info(
            "Map features extracted",
            buildings=len(features.buildings),
            streets=len(features.streets),
            skipped=skipped,
        )
        return features

    def elevation_samples(self) -> List[ElevationSample]:
        """
        Elevation samples from every feature with a known elevation.

        A building contributes its centroid plus every footprint vertex; a
        street contributes every vertex.
        """
        samples: List[ElevationSample] = []
        for building in self.buildings:
            if building.elevation is None:
                continue
            lon, lat = building.centroid
            samples.append(ElevationSample(lon, lat, building.elevation))
            samples.extend(ElevationSample(x, y, building.elevation) for x, y in building.footprint)

        for street in self.streets:
            if street.elevation is None:
                continue
            samples.extend(ElevationSample(x, y, street.elevation) for x, y in street.points)

        return samples

    def building_centroids(self) -> Tuple[np.ndarray, np.ndarray]:
        """Centroid longitudes and latitudes, used to build the adaptive warp."""
        if not self.buildings:
            return np.empty(0), np.empty(0)
        centroids = np.array([b.centroid for b in self.buildings])
        return centroids[:, 0], centroids[:, 1]

    def bounds(self) -> GeoBounds:
        """Data bounds over every building and street vertex."""
        points = [p for b in self.buildings for p in b.footprint]
        points.extend(p for s in self.streets for p in s.points)
        coords = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        return GeoBounds.from_points(coords[:, 0], coords[:, 1])

    def points_of_interest(self) -> List[PointOfInterest]:
        """Named buildings, located at their centroids."""
        pois = []
        for building in self.buildings:
            if building.name:
                lon, lat = building.centroid
                pois.append(PointOfInterest(building.name, lon, lat, building.elevation))
        return pois


def _parse_elevation(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        elevation = float(value)
    except (TypeError, ValueError):
        return None
    if not np.isfinite(elevation) or elevation < 0:
        return None
    return elevation


def _points(coords: Any) -> List[Tuple[float, float]]:
    points = []
    for point in coords or []:
        if len(point) >= 2:
            points.append((float(point[0]), float(point[1])))
    return points


def _outer_ring(coords: Any) -> List[Tuple[float, float]]:
    if not coords:
        return []
    ring = _points(coords[0])
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring = ring[:-1]
    return ring
