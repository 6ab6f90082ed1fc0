"""
The finished height grid surface.
"""

from typing import Tuple

import numpy as np

from ..errors import OutOfBoundsQuery
from .coordinates import CoordinateTransform
from .heightmap_sampler import HeightmapSampler


class HeightGrid:
    """
    Immutable R x R grid of normalized heights spanning the world extent.

    Cell (i, j) sits at world (j / (R - 1) * width, i / (R - 1) * length).
    Queries by normalized coordinate clamp to the grid edge; queries by world
    coordinate raise :class:`OutOfBoundsQuery` outside [0, width] x [0, length].
    """

    def __init__(self, heights: np.ndarray, transform: CoordinateTransform):
        heights = np.array(heights, dtype=np.float64)
        heights.setflags(write=False)
        self.heights = heights
        self.transform = transform
        self._sampler = HeightmapSampler(heights)

    @property
    def resolution(self) -> int:
        return self.heights.shape[0]

    @property
    def world_extent(self) -> Tuple[float, float]:
        return self.transform.world_extent

    @property
    def max_height(self) -> float:
        return self.transform.scale.terrain_max_height

    @property
    def cell_size(self) -> Tuple[float, float]:
        """World size of one cell along x and z."""
        width, length = self.world_extent
        return width / (self.resolution - 1), length / (self.resolution - 1)

    def contains(self, x: float, z: float) -> bool:
        width, length = self.world_extent
        return 0.0 <= x <= width and 0.0 <= z <= length

    def check_bounds(self, x: float, z: float) -> None:
        if not self.contains(x, z):
            raise OutOfBoundsQuery(x, z, self.world_extent)

    def sample(self, u, v):
        """Bilinear normalized height at normalized world coordinates (clamped)."""
        return self._sampler.sample(u, v)

    def height_at(self, x: float, z: float) -> float:
        """Normalized height at a world position."""
        self.check_bounds(x, z)
        width, length = self.world_extent
        return self._sampler.sample(x / width, z / length)

    def world_height(self, x: float, z: float) -> float:
        """World Y at a world position."""
        return self.height_at(x, z) * self.max_height

    def normal_at(self, x: float, z: float) -> np.ndarray:
        """
        Unit surface normal at a world position.

        Central differences one cell apart, one-sided at the grid edge.

        Returns:
            Array (nx, ny, nz) with ny > 0
        """
        self.check_bounds(x, z)
        width, length = self.world_extent
        dx, dz = self.cell_size

        x0, x1 = max(x - dx, 0.0), min(x + dx, width)
        z0, z1 = max(z - dz, 0.0), min(z + dz, length)

        def y_at(px: float, pz: float) -> float:
            return self._sampler.sample(px / width, pz / length) * self.max_height

        slope_x = (y_at(x1, z) - y_at(x0, z)) / (x1 - x0)
        slope_z = (y_at(x, z1) - y_at(x, z0)) / (z1 - z0)

        normal = np.array([-slope_x, 1.0, -slope_z])
        return normal / np.linalg.norm(normal)

    def geo_height(self, lon: float, lat: float) -> float:
        """World Y at a geographic coordinate."""
        x, z = self.transform.geo_to_world(lon, lat)
        return self.world_height(x, z)

    def world_heights(self) -> np.ndarray:
        """The whole grid in world units."""
        return self.heights * self.max_height
