"""
Core terrain fusion functionality.
"""

from .coordinates import AxisWarp, CoordinateTransform, geo_to_normalized, normalized_to_geo
from .heightmap_sampler import HeightmapSampler
from .rasterizer import ElevationRaster, ElevationRasterizer, ElevationSample
from .smoothing import gaussian_smooth
from .blender import ElevationBlender, apply_sea_override, dilate_density, smoothstep
from .height_grid import HeightGrid
from .placement import Placement, SurfacePlacementResolver
from .generator import CoverageStats, GenerationResult, generate
from .diagnostics import AlignmentReport, ElevationDelta, alignment_report, elevation_delta
from .map_features import MapFeatures, PointOfInterest

__all__ = ['AxisWarp', 'CoordinateTransform', 'geo_to_normalized', 'normalized_to_geo',
           'HeightmapSampler', 'ElevationRaster', 'ElevationRasterizer', 'ElevationSample',
           'gaussian_smooth', 'ElevationBlender', 'apply_sea_override', 'dilate_density',
           'smoothstep', 'HeightGrid', 'Placement', 'SurfacePlacementResolver',
           'CoverageStats', 'GenerationResult', 'generate', 'AlignmentReport',
           'ElevationDelta', 'alignment_report', 'elevation_delta', 'MapFeatures',
           'PointOfInterest']
