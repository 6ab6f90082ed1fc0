"""
Elevation rasterizer.

Converts sparse (lon, lat, elevation) samples into a dense elevation grid
using bounded-radius inverse distance weighting, together with a density
grid describing how well each cell is covered by data.

Grid layout: cell (i, j) sits at normalized world position
(j / (R - 1), i / (R - 1)), so row 0 is the southern edge and column 0 the
western edge. Samples are projected through the coordinate transform into
the same grid space, which means distances and ``search_radius`` are
measured in cells of the (possibly warped) world grid.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

import numpy as np
import structlog
from sklearn.neighbors import KDTree

from ..config.generation_settings import BlendConfig
from ..utils.parallel import run_bands
from .coordinates import CoordinateTransform

logger = structlog.get_logger()

# Keeps the IDW weight finite when a sample sits exactly on a cell center
IDW_EPSILON = 1e-9


class ElevationSample(NamedTuple):
    """A single geo-referenced elevation reading."""

    lon: float
    lat: float
    elevation_m: float


@dataclass
class ElevationRaster:
    """Dense rasterization result (both arrays are R x R, row = v)."""

    elevation: np.ndarray
    density: np.ndarray

    @property
    def resolution(self) -> int:
        return self.elevation.shape[0]

    @property
    def cells_with_data(self) -> int:
        return int(np.count_nonzero(self.density > 0))


def samples_to_grid(
    samples: Sequence[ElevationSample], transform: CoordinateTransform, resolution: int
) -> np.ndarray:
    """
    Project samples into grid space.

    Returns:
        Array of shape (N, 2) holding (row, col) positions as floats
    """
    if len(samples) == 0:
        return np.empty((0, 2), dtype=np.float64)

    data = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
    u, v = transform.geo_to_normalized(data[:, 0], data[:, 1])
    s, t = transform.warp(u, v)
    cols = np.asarray(s) * (resolution - 1)
    rows = np.asarray(t) * (resolution - 1)
    return np.column_stack([rows, cols])


def proximity_density(distances: np.ndarray, cell_index: np.ndarray, n_cells: int) -> np.ndarray:
    """
    Density per cell from the distances of the samples in its radius.

    Each sample contributes a closeness score ``1 / (1 + d^2)`` and the cell
    density is ``1 - prod(1 - score)``. A sample exactly on the cell center
    saturates the cell at 1; more or closer samples push the value up, and a
    cell with no samples stays at 0.
    """
    # log(1 - 1/(1+d^2)) = log(d^2 / (1 + d^2)); -inf at d = 0
    d2 = distances * distances
    with np.errstate(divide="ignore"):
        log_miss = np.log(d2) - np.log1p(d2)
    total = np.bincount(cell_index, weights=log_miss, minlength=n_cells)
    counts = np.bincount(cell_index, minlength=n_cells)

    density = 1.0 - np.exp(total)
    density[counts == 0] = 0.0
    return density


class ElevationRasterizer:
    """Bounded-radius IDW rasterizer backed by a KD-tree over the samples."""

    def __init__(self, config: BlendConfig, transform: CoordinateTransform):
        self.config = config
        self.transform = transform

    def rasterize(
        self,
        samples: Sequence[ElevationSample],
        resolution: Optional[int] = None,
    ) -> ElevationRaster:
        """
        Rasterize samples into elevation and density grids.

        Args:
            samples: Elevation samples; order is irrelevant
            resolution: Grid resolution, defaults to ``config.grid_resolution``

        Returns:
            ElevationRaster with normalized elevation (clamped to [0, 1]) and
            density in [0, 1]. Cells with no sample inside ``search_radius``
            are 0 in both grids.
        """
        size = resolution or self.config.grid_resolution
        elevation = np.zeros((size, size), dtype=np.float64)
        density = np.zeros((size, size), dtype=np.float64)

        if len(samples) == 0:
            logger.warning("No elevation samples to rasterize", resolution=size)
            return ElevationRaster(elevation, density)

        positions = samples_to_grid(samples, self.transform, size)
        heights = np.asarray(samples, dtype=np.float64).reshape(-1, 3)[:, 2]
        heights = heights / self.config.elevation_data_max_height

        tree = KDTree(positions)
        radius = float(self.config.search_radius)
        power = self.config.idw_power
        cols = np.arange(size, dtype=np.float64)

        def rasterize_rows(rows: slice) -> None:
            row_ids = np.arange(rows.start, rows.stop, dtype=np.float64)
            grid_r, grid_c = np.meshgrid(row_ids, cols, indexing="ij")
            centers = np.column_stack([grid_r.ravel(), grid_c.ravel()])
            n_cells = len(centers)

            ind, dist = tree.query_radius(centers, r=radius, return_distance=True)
            counts = np.fromiter((len(i) for i in ind), dtype=np.intp, count=n_cells)
            if counts.sum() == 0:
                return

            cell_index = np.repeat(np.arange(n_cells), counts)
            flat_ind = np.concatenate(ind).astype(np.intp)
            flat_dist = np.concatenate(dist)

            weights = 1.0 / (np.power(flat_dist, power) + IDW_EPSILON)
            weight_sum = np.bincount(cell_index, weights=weights, minlength=n_cells)
            value_sum = np.bincount(cell_index, weights=weights * heights[flat_ind], minlength=n_cells)

            band_elevation = np.zeros(n_cells)
            covered = counts > 0
            band_elevation[covered] = value_sum[covered] / weight_sum[covered]

            band_shape = (rows.stop - rows.start, size)
            elevation[rows] = np.clip(band_elevation, 0.0, 1.0).reshape(band_shape)
            density[rows] = proximity_density(flat_dist, cell_index, n_cells).reshape(band_shape)

        run_bands(rasterize_rows, size)

        raster = ElevationRaster(elevation, density)
        logger.info(
            "Elevation samples rasterized",
            samples=len(samples),
            resolution=size,
            search_radius=self.config.search_radius,
            cells_with_data=raster.cells_with_data,
        )
        return raster
