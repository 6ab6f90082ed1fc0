"""
Terrain fusion pipeline.

``generate`` runs one complete pass: rasterize the elevation samples,
smooth the elevation grid, sample the heightmap at every cell, blend, and
wrap the result in a HeightGrid. Each call starts from scratch; nothing is
carried over between passes.
"""

import time
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import structlog

from ..config.generation_settings import BlendConfig
from ..errors import ConfigurationError
from .blender import ElevationBlender
from .coordinates import CoordinateTransform
from .height_grid import HeightGrid
from .heightmap_sampler import HeightmapSampler
from .rasterizer import ElevationRaster, ElevationRasterizer, ElevationSample
from .smoothing import gaussian_smooth

logger = structlog.get_logger()


@dataclass
class CoverageStats:
    """How much of the grid the elevation data actually reached."""

    sample_count: int
    cells_with_data: int
    total_cells: int

    @property
    def coverage_ratio(self) -> float:
        return self.cells_with_data / self.total_cells if self.total_cells else 0.0

    @property
    def is_degenerate(self) -> bool:
        """True when no cell received any elevation data."""
        return self.sample_count == 0 or self.cells_with_data == 0


@dataclass
class GenerationResult:
    """Everything produced by one generation pass."""

    grid: HeightGrid
    raster: ElevationRaster
    smoothed_elevation: np.ndarray
    heightmap_heights: np.ndarray
    coverage: CoverageStats


def cell_normalized_coords(resolution: int, transform: CoordinateTransform):
    """
    Data-normalized (u, v) of every grid cell center.

    Grid cells are evenly spaced in world space; adaptive transforms are
    undone here so the heightmap is sampled at the matching geo position.

    Returns:
        Tuple (u, v) of R x R arrays
    """
    axis = np.linspace(0.0, 1.0, resolution)
    s, t = np.meshgrid(axis, axis, indexing="xy")
    u, v = transform.unwarp(s.ravel(), t.ravel())
    return np.asarray(u).reshape(s.shape), np.asarray(v).reshape(t.shape)


def _validate(config: BlendConfig, transform: CoordinateTransform, resolution: int) -> None:
    if resolution < 2:
        raise ConfigurationError(f"Grid resolution must be >= 2, got {resolution}")

    scale = transform.scale
    if config.elevation_data_max_height > scale.terrain_max_height:
        logger.warning(
            "Elevation data max height exceeds terrain max height, peaks will be clipped",
            elevation_data_max_height=config.elevation_data_max_height,
            terrain_max_height=scale.terrain_max_height,
        )


def generate(
    config: BlendConfig,
    samples: Sequence[ElevationSample],
    heightmap: Union[HeightmapSampler, np.ndarray],
    transform: CoordinateTransform,
    resolution: Optional[int] = None,
) -> GenerationResult:
    """
    Fuse elevation samples with a heightmap into a finished HeightGrid.

    Args:
        config: Blend settings snapshot
        samples: Elevation samples in geographic coordinates
        heightmap: HeightmapSampler, or a raw 2-D array assumed to share the
            data bounds
        transform: Coordinate transform framing the data bounds and world scale
        resolution: Grid resolution, defaults to ``config.grid_resolution``

    Returns:
        GenerationResult

    Raises:
        ConfigurationError: Invalid configuration or heightmap; raised before
            any grid work starts
    """
    start = time.perf_counter()
    if not isinstance(config, BlendConfig):
        raise ConfigurationError(f"Expected BlendConfig, got {type(config).__name__}")

    size = resolution or config.grid_resolution
    _validate(config, transform, size)

    if not isinstance(heightmap, HeightmapSampler):
        heightmap = HeightmapSampler(heightmap)

    data_bounds = transform.bounds
    if heightmap.bounds is not None and not heightmap.bounds.matches(data_bounds):
        logger.warning(
            "Heightmap bounds differ from data bounds",
            heightmap_bounds=heightmap.bounds.model_dump(),
            data_bounds=data_bounds.model_dump(),
        )

    logger.info(
        "Starting terrain generation",
        samples=len(samples),
        resolution=size,
        mode=config.mode.value,
        coordinate_mode=transform.mode.value,
    )

    # Rasterize and smooth elevation data
    raster = ElevationRasterizer(config, transform).rasterize(samples, size)
    smoothed = gaussian_smooth(raster.elevation, config.smoothing_sigma)

    # Heightmap at every cell
    u, v = cell_normalized_coords(size, transform)
    h_map = np.asarray(heightmap.sample_geo(u, v, data_bounds)).reshape(size, size)

    coverage = CoverageStats(
        sample_count=len(samples),
        cells_with_data=raster.cells_with_data,
        total_cells=size * size,
    )
    if coverage.is_degenerate:
        logger.warning(
            "No elevation data reached the grid, using heightmap only",
            sample_count=coverage.sample_count,
        )

    blended = ElevationBlender(config).blend(
        h_map, smoothed, raster.density, has_data=not coverage.is_degenerate
    )

    grid = HeightGrid(blended, transform)
    logger.info(
        "Terrain generation complete",
        resolution=size,
        coverage_ratio=round(coverage.coverage_ratio, 4),
        elapsed_ms=round((time.perf_counter() - start) * 1000, 1),
    )

    return GenerationResult(
        grid=grid,
        raster=raster,
        smoothed_elevation=smoothed,
        heightmap_heights=h_map,
        coverage=coverage,
    )
