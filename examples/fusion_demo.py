#!/usr/bin/env python3
"""
Demo script fusing a synthetic heightmap with synthetic map elevation data.

Builds a small island heightmap and a town of buildings and streets with
known elevations, runs one generation pass in each blend mode and saves a
comparison figure.
"""

import numpy as np
import matplotlib.pyplot as plt

from terrain_fusion.config import (
    BlendConfig, BlendMode, GeoBounds, PlacementPolicy, PlacementSettings, WorldScale
)
from terrain_fusion.core import (
    CoordinateTransform, HeightmapSampler, MapFeatures, SurfacePlacementResolver,
    alignment_report, elevation_delta, generate
)
from terrain_fusion.utils.logging_config import configure_logging

BOUNDS = GeoBounds(min_lon=24.90, max_lon=24.96, min_lat=37.40, max_lat=37.48)


def make_heightmap(size: int = 200) -> np.ndarray:
    """Radial island with a ridge, sea around the edge."""
    y, x = np.mgrid[0:size, 0:size] / (size - 1)
    r = np.hypot(x - 0.5, y - 0.5)
    island = np.clip(1.0 - r / 0.45, 0.0, 1.0) ** 1.5
    ridge = 0.25 * np.exp(-((x - 0.6) ** 2) / 0.01)
    return np.clip(island * (0.6 + ridge), 0.0, 1.0)


def make_town(seed: int = 7) -> dict:
    """FeatureCollection with a hillside town of square buildings and a street."""
    rng = np.random.default_rng(seed)
    features = []
    for k in range(150):
        lon = rng.normal(24.935, 0.004)
        lat = rng.normal(37.445, 0.004)
        elevation = 40 + 1500 * (lat - 37.435)
        d = 0.0001
        ring = [[lon - d, lat - d], [lon + d, lat - d], [lon + d, lat + d], [lon - d, lat + d], [lon - d, lat - d]]
        properties = {"building": "yes", "elevation": round(max(elevation, 0.0), 1)}
        if k % 50 == 0:
            properties["name"] = f"Landmark {k // 50 + 1}"
        features.append({
            "type": "Feature",
            "properties": properties,
            "geometry": {"type": "Polygon", "coordinates": [ring]},
        })

    street = [[24.925 + 0.001 * i, 37.440 + 0.0008 * i] for i in range(20)]
    features.append({
        "type": "Feature",
        "properties": {"highway": "residential", "elevation": 35},
        "geometry": {"type": "LineString", "coordinates": street},
    })
    return {"type": "FeatureCollection", "features": features}


def main():
    """Demonstrate terrain fusion."""
    configure_logging()

    print("Terrain Fusion Demo")
    print("=" * 40)

    features = MapFeatures.from_geojson(make_town())
    samples = features.elevation_samples()
    print(f"\nBuildings: {len(features.buildings)}, streets: {len(features.streets)}")
    print(f"Elevation samples: {len(samples)}")

    scale = WorldScale(target_world_width=2000, target_world_length=3300, terrain_max_height=450)
    lons, lats = features.building_centroids()
    transform = CoordinateTransform.adaptive(BOUNDS, scale, lons, lats)
    heightmap = HeightmapSampler(make_heightmap(), BOUNDS)

    configs = {
        "Heightmap only": BlendConfig(mode=BlendMode.UNIFORM, blend_weight=0.0, grid_resolution=128),
        "Uniform 50%": BlendConfig(mode=BlendMode.UNIFORM, blend_weight=0.5, grid_resolution=128),
        "Density based": BlendConfig(grid_resolution=128, density_falloff_radius=8),
        "Elevation only": BlendConfig(elevation_only_debug=True, grid_resolution=128),
    }

    results = {}
    for name, config in configs.items():
        print(f"\n{name}:")
        print("-" * 30)
        result = generate(config, samples, heightmap, transform)
        results[name] = result
        heights = result.grid.world_heights()
        print(f"  Coverage: {result.coverage.coverage_ratio:.1%}")
        print(f"  Height range: {heights.min():.1f}-{heights.max():.1f}")

    # Placement and diagnostics on the density-based result
    grid = results["Density based"].grid
    resolver = SurfacePlacementResolver(grid, PlacementSettings(policy=PlacementPolicy.FOUNDATION))

    print("\nLandmarks:")
    print("-" * 30)
    for poi in features.points_of_interest():
        delta = elevation_delta(poi.name, poi.lon, poi.lat, poi.expected_elevation, grid)
        building = next(b for b in features.buildings if b.name == poi.name)
        placement = resolver.resolve_footprint(building.footprint, object_height=6.0)
        print(f"  {poi.name}: y={placement.surface_y:.1f}, delta={delta.delta:+.1f} m, "
              f"yaw={placement.yaw:.0f}")

    report = alignment_report(24.935, 37.445, transform, heightmap)
    print(f"\nAlignment at town centre: world=({report.world_x:.0f}, {report.world_z:.0f}), "
          f"heightmap={report.heightmap_value:.3f}, bounds match={report.bounds_match}")

    plt.figure(figsize=(16, 5))
    for i, (name, result) in enumerate(results.items(), 1):
        plt.subplot(1, 4, i)
        plt.imshow(result.grid.world_heights(), cmap='terrain', origin='lower', vmin=0, vmax=scale.terrain_max_height)
        plt.colorbar(label='Height')
        plt.title(name)
        plt.xlabel('X')
        plt.ylabel('Z')

    plt.tight_layout()
    plt.savefig('fusion_examples.png', dpi=150)
    print("\nSaved visualization to fusion_examples.png")


if __name__ == "__main__":
    main()
