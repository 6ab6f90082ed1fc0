"""
Alignment and elevation diagnostics.

These reports let external tooling detect bounds mismatches between the
heightmap and the map data, and check how far placed objects ended up from
their known real-world elevation.
"""

from dataclasses import dataclass
from typing import Optional

from .coordinates import CoordinateTransform
from .height_grid import HeightGrid
from .heightmap_sampler import HeightmapSampler

# Tolerance (degrees) for two GeoBounds to count as matching
BOUNDS_TOLERANCE = 1e-4


@dataclass
class AlignmentReport:
    """Where a geographic coordinate lands in world space and in the heightmap."""

    lon: float
    lat: float
    world_x: float
    world_z: float
    heightmap_u: float
    heightmap_v: float
    heightmap_value: float
    bounds_match: bool


def alignment_report(
    lon: float,
    lat: float,
    transform: CoordinateTransform,
    heightmap: HeightmapSampler,
) -> AlignmentReport:
    """
    Report world position and raw heightmap sample for a geo coordinate.

    Args:
        lon, lat: Geographic coordinate
        transform: Transform framing the data bounds
        heightmap: Heightmap sampler, optionally with its own bounds

    Returns:
        AlignmentReport. ``bounds_match`` is False when the heightmap
        declares bounds that differ from the data bounds.
    """
    x, z = transform.geo_to_world(lon, lat)
    hu, hv = heightmap.geo_uv(lon, lat, transform.bounds)
    bounds_match = heightmap.bounds is None or heightmap.bounds.matches(
        transform.bounds, BOUNDS_TOLERANCE
    )

    return AlignmentReport(
        lon=lon,
        lat=lat,
        world_x=float(x),
        world_z=float(z),
        heightmap_u=hu,
        heightmap_v=hv,
        heightmap_value=float(heightmap.sample(hu, hv)),
        bounds_match=bounds_match,
    )


@dataclass
class ElevationDelta:
    """Placed height versus known elevation for one point of interest."""

    name: str
    expected_elevation: float
    actual_y: float

    @property
    def delta(self) -> float:
        """Signed difference in world units; positive means placed too high."""
        return self.actual_y - self.expected_elevation


def elevation_delta(
    name: str,
    lon: float,
    lat: float,
    expected_elevation: Optional[float],
    grid: HeightGrid,
) -> Optional[ElevationDelta]:
    """
    Compare a POI's expected elevation with the generated surface.

    Returns None when the expected elevation is unknown (None or negative).
    Raises OutOfBoundsQuery when the POI falls outside the terrain.
    """
    if expected_elevation is None or expected_elevation < 0:
        return None
    actual_y = grid.geo_height(lon, lat)
    return ElevationDelta(name=name, expected_elevation=expected_elevation, actual_y=actual_y)
