"""
Bilinear sampling of a raster heightmap.

The heightmap is a 2-D array of normalized luminance values with row 0 at
the southern edge (v = 0) and column 0 at the western edge (u = 0). Its
resolution is independent of the height grid resolution.
"""

from typing import Optional, Tuple

import numpy as np
import structlog

from ..config.generation_settings import GeoBounds
from ..errors import ConfigurationError
from .coordinates import ArrayLike, geo_to_normalized, normalized_to_geo

logger = structlog.get_logger()


class HeightmapSampler:
    """
    Samples a heightmap array at normalized (u, v) coordinates.

    Requests outside [0, 1] clamp to the raster edge. This clamp is
    internal to raster sampling; world-space bounds checks happen in
    :class:`~terrain_fusion.core.height_grid.HeightGrid`.
    """

    def __init__(self, heights: np.ndarray, bounds: Optional[GeoBounds] = None):
        """
        Args:
            heights: 2-D array of heights, nominally in [0, 1]
            bounds: The heightmap's own GeoBounds, if it differs from the data
                bounds. Used by :meth:`sample_geo`.
        """
        heights = np.asarray(heights, dtype=np.float64)
        if heights.ndim != 2:
            raise ConfigurationError(f"Heightmap must be 2-D, got shape {heights.shape}")
        if heights.size == 0:
            raise ConfigurationError("Heightmap is empty")
        if not np.all(np.isfinite(heights)):
            raise ConfigurationError("Heightmap contains non-finite values")

        self.heights = heights
        self.bounds = bounds

    @property
    def shape(self) -> Tuple[int, int]:
        return self.heights.shape

    def sample(self, u: ArrayLike, v: ArrayLike) -> ArrayLike:
        """
        Bilinear sample at normalized coordinates.

        Args:
            u: Horizontal coordinate(s) in [0, 1]
            v: Vertical coordinate(s) in [0, 1]

        Returns:
            Interpolated height(s), a float for scalar input
        """
        h, w = self.heights.shape
        u = np.clip(np.asarray(u, dtype=np.float64), 0.0, 1.0)
        v = np.clip(np.asarray(v, dtype=np.float64), 0.0, 1.0)

        px = u * (w - 1)
        py = v * (h - 1)

        x0 = np.floor(px).astype(np.intp)
        y0 = np.floor(py).astype(np.intp)
        x1 = np.minimum(x0 + 1, w - 1)
        y1 = np.minimum(y0 + 1, h - 1)
        fx = px - x0
        fy = py - y0

        top = self.heights[y0, x0] * (1 - fx) + self.heights[y0, x1] * fx
        bottom = self.heights[y1, x0] * (1 - fx) + self.heights[y1, x1] * fx
        result = top * (1 - fy) + bottom * fy

        if result.ndim == 0:
            return float(result)
        return result

    def sample_grid(self, u: np.ndarray, v: np.ndarray) -> np.ndarray:
        """Sample at every point of matching u/v arrays (any shape)."""
        return np.asarray(self.sample(u, v), dtype=np.float64).reshape(np.shape(u))

    def sample_geo(self, u: ArrayLike, v: ArrayLike, data_bounds: GeoBounds) -> ArrayLike:
        """
        Sample at a data-normalized coordinate, correcting for divergent bounds.

        The coordinate is converted back to lon/lat through ``data_bounds``
        and then into this heightmap's own UV space. Without heightmap
        bounds the data bounds are assumed to match.
        """
        if self.bounds is None or self.bounds == data_bounds:
            return self.sample(u, v)

        lon, lat = normalized_to_geo(u, v, data_bounds)
        hu, hv = geo_to_normalized(lon, lat, self.bounds)
        return self.sample(hu, hv)

    def geo_uv(self, lon: float, lat: float, data_bounds: GeoBounds) -> Tuple[float, float]:
        """Heightmap UV of a geographic coordinate, clamped to [0, 1]."""
        bounds = self.bounds or data_bounds
        u, v = geo_to_normalized(lon, lat, bounds)
        return float(np.clip(u, 0.0, 1.0)), float(np.clip(v, 0.0, 1.0))
