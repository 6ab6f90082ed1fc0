"""
Coordinate transforms between geographic, normalized and world space.

Three spaces are involved:

- geo: (lon, lat) in degrees, framed by the data GeoBounds
- normalized: (u, v) in [0, 1] inside those bounds, linear in lon/lat
- world: (x, z) in world units, spanning [0, width] x [0, length]

Uniform mode maps normalized to world linearly. Adaptive mode passes each
axis through a monotonic warp built from the cumulative density of the
source features, so dense urban areas take up more world space and empty
countryside less. The warp is piecewise linear with strictly increasing
knots, which makes its inverse exact.
"""

from typing import Optional, Sequence, Tuple, Union

import numpy as np
import structlog
from scipy.ndimage import gaussian_filter1d

from ..config.generation_settings import CoordinateMode, GeoBounds, WarpSettings, WorldScale

logger = structlog.get_logger()

ArrayLike = Union[float, np.ndarray]

# Added to every histogram bin before the contrast exponent is applied
BIN_EPSILON = 0.001


def geo_to_normalized(lon: ArrayLike, lat: ArrayLike, bounds: GeoBounds) -> Tuple[ArrayLike, ArrayLike]:
    """Map geographic coordinates linearly into the unit square of ``bounds``."""
    u = (np.asarray(lon, dtype=np.float64) - bounds.min_lon) / bounds.lon_span
    v = (np.asarray(lat, dtype=np.float64) - bounds.min_lat) / bounds.lat_span
    return _unwrap(u), _unwrap(v)


def normalized_to_geo(u: ArrayLike, v: ArrayLike, bounds: GeoBounds) -> Tuple[ArrayLike, ArrayLike]:
    """Inverse of :func:`geo_to_normalized`."""
    lon = bounds.min_lon + np.asarray(u, dtype=np.float64) * bounds.lon_span
    lat = bounds.min_lat + np.asarray(v, dtype=np.float64) * bounds.lat_span
    return _unwrap(lon), _unwrap(lat)


def _unwrap(value: np.ndarray) -> ArrayLike:
    """Return plain floats for 0-d arrays so scalar callers get scalars back."""
    if value.ndim == 0:
        return float(value)
    return value


class AxisWarp:
    """
    Monotonic, piecewise-linear remap of one normalized axis.

    The warp is described by a CDF sampled at ``len(cdf)`` evenly spaced
    knots over [0, 1]. ``cdf[0] == 0``, ``cdf[-1] == 1`` and the values are
    strictly increasing, so :meth:`forward` is a bijection of [0, 1] and
    :meth:`inverse` undoes it exactly.
    """

    def __init__(self, cdf: np.ndarray):
        cdf = np.asarray(cdf, dtype=np.float64)
        if cdf.ndim != 1 or len(cdf) < 2:
            raise ValueError("Warp CDF needs at least two knots")
        if not np.all(np.diff(cdf) > 0):
            raise ValueError("Warp CDF must be strictly increasing")
        self.cdf = (cdf - cdf[0]) / (cdf[-1] - cdf[0])
        self.knots = np.linspace(0.0, 1.0, len(cdf))

    @property
    def is_identity(self) -> bool:
        return bool(np.allclose(self.cdf, self.knots, atol=1e-12))

    @classmethod
    def identity(cls, bins: int = 1) -> "AxisWarp":
        """Warp that leaves every coordinate where it is."""
        return cls(np.linspace(0.0, 1.0, bins + 1))

    @classmethod
    def from_density(
        cls,
        positions: np.ndarray,
        bins: int,
        smoothing_sigma: float,
        min_density_floor: float,
        density_exponent: float,
    ) -> "AxisWarp":
        """
        Build a warp from normalized feature positions along one axis.

        Args:
            positions: Normalized positions in [0, 1] (values outside are clamped)
            bins: Histogram bin count
            smoothing_sigma: Gaussian sigma in bins, 0 disables smoothing
            min_density_floor: Floor relative to the densest bin, keeps empty
                areas from collapsing to zero width
            density_exponent: Contrast exponent; >1 expands dense areas more

        Returns:
            AxisWarp whose forward map is the normalized density CDF
        """
        positions = np.clip(np.asarray(positions, dtype=np.float64), 0.0, 1.0)
        index = np.minimum((positions * bins).astype(np.intp), bins - 1)
        hist = np.bincount(index, minlength=bins).astype(np.float64)

        hist = np.power(hist + BIN_EPSILON, density_exponent)

        if smoothing_sigma > 0.01:
            hist = gaussian_filter1d(hist, sigma=smoothing_sigma, mode="nearest", truncate=3.0)

        floor = hist.max() * min_density_floor
        hist = np.maximum(hist, floor)

        cdf = np.concatenate([[0.0], np.cumsum(hist)])
        return cls(cdf / cdf[-1])

    @property
    def _end_slopes(self) -> Tuple[float, float]:
        """dW/dT of the first and last segments."""
        step = self.knots[1]
        return (self.cdf[1] - self.cdf[0]) / step, (self.cdf[-1] - self.cdf[-2]) / step

    def forward(self, t: ArrayLike) -> ArrayLike:
        """
        Warp normalized geo position(s) to normalized world position(s).

        Positions outside [0, 1] continue along the end segments, so points
        beyond the data bounds land beyond the world extent.
        """
        t = np.asarray(t, dtype=np.float64)
        low, high = self._end_slopes
        w = np.interp(t, self.knots, self.cdf)
        w = np.where(t < 0.0, t * low, w)
        w = np.where(t > 1.0, 1.0 + (t - 1.0) * high, w)
        return _unwrap(np.asarray(w))

    def inverse(self, w: ArrayLike) -> ArrayLike:
        """Map normalized world position(s) back to normalized geo position(s)."""
        w = np.asarray(w, dtype=np.float64)
        low, high = self._end_slopes
        t = np.interp(w, self.cdf, self.knots)
        t = np.where(w < 0.0, w / low, t)
        t = np.where(w > 1.0, 1.0 + (w - 1.0) / high, t)
        return _unwrap(np.asarray(t))


class CoordinateTransform:
    """
    Geo <-> normalized <-> world conversion for one generation pass.

    The transform is immutable once built. Uniform mode keeps true
    proportions; adaptive mode applies per-axis :class:`AxisWarp` maps.
    """

    def __init__(
        self,
        bounds: GeoBounds,
        scale: WorldScale,
        warp_x: Optional[AxisWarp] = None,
        warp_y: Optional[AxisWarp] = None,
    ):
        self.bounds = bounds
        self.scale = scale
        self.warp_x = warp_x
        self.warp_y = warp_y

    @property
    def mode(self) -> CoordinateMode:
        if self.warp_x is None and self.warp_y is None:
            return CoordinateMode.UNIFORM
        return CoordinateMode.ADAPTIVE

    @property
    def world_extent(self) -> Tuple[float, float]:
        return self.scale.target_world_width, self.scale.target_world_length

    @classmethod
    def uniform(cls, bounds: GeoBounds, scale: WorldScale) -> "CoordinateTransform":
        """Linear mapping preserving true proportions."""
        return cls(bounds, scale)

    @classmethod
    def adaptive(
        cls,
        bounds: GeoBounds,
        scale: WorldScale,
        lons: Sequence[float],
        lats: Sequence[float],
        settings: Optional[WarpSettings] = None,
    ) -> "CoordinateTransform":
        """
        Density-adaptive mapping built from feature positions.

        Args:
            bounds: Data GeoBounds
            scale: World scale
            lons, lats: Positions of the features driving the density profile
                (typically building centroids)
            settings: Warp tuning

        Returns:
            CoordinateTransform; uniform if no positions were given
        """
        settings = settings or WarpSettings()
        lons = np.asarray(lons, dtype=np.float64)
        lats = np.asarray(lats, dtype=np.float64)

        if lons.size == 0:
            logger.warning("No density points for adaptive warp, using uniform mapping")
            return cls.uniform(bounds, scale)

        u, v = geo_to_normalized(lons, lats, bounds)
        warp_x = AxisWarp.from_density(
            np.atleast_1d(u),
            settings.bins_x,
            settings.smoothing_sigma,
            settings.min_density_floor,
            settings.density_exponent,
        )
        warp_y = AxisWarp.from_density(
            np.atleast_1d(v),
            settings.bins_y,
            settings.smoothing_sigma,
            settings.min_density_floor,
            settings.density_exponent,
        )

        logger.info(
            "Adaptive warp tables built",
            points=int(lons.size),
            bins_x=settings.bins_x,
            bins_y=settings.bins_y,
        )
        return cls(bounds, scale, warp_x, warp_y)

    # Geo <-> normalized

    def geo_to_normalized(self, lon: ArrayLike, lat: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        return geo_to_normalized(lon, lat, self.bounds)

    def normalized_to_geo(self, u: ArrayLike, v: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        return normalized_to_geo(u, v, self.bounds)

    # Normalized geo <-> normalized world (the warp)

    def warp(self, u: ArrayLike, v: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        """Normalized geo position to normalized world position."""
        if self.warp_x is not None:
            u = self.warp_x.forward(u)
        if self.warp_y is not None:
            v = self.warp_y.forward(v)
        return u, v

    def unwarp(self, s: ArrayLike, t: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        """Normalized world position to normalized geo position."""
        if self.warp_x is not None:
            s = self.warp_x.inverse(s)
        if self.warp_y is not None:
            t = self.warp_y.inverse(t)
        return s, t

    # Normalized <-> world

    def normalized_to_world(self, u: ArrayLike, v: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        """Normalized geo position to world (x, z)."""
        s, t = self.warp(u, v)
        x = np.asarray(s, dtype=np.float64) * self.scale.target_world_width
        z = np.asarray(t, dtype=np.float64) * self.scale.target_world_length
        return _unwrap(x), _unwrap(z)

    def world_to_normalized(self, x: ArrayLike, z: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        """World (x, z) to normalized geo position."""
        s = np.asarray(x, dtype=np.float64) / self.scale.target_world_width
        t = np.asarray(z, dtype=np.float64) / self.scale.target_world_length
        return self.unwarp(_unwrap(s), _unwrap(t))

    # Geo <-> world

    def geo_to_world(self, lon: ArrayLike, lat: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        u, v = self.geo_to_normalized(lon, lat)
        return self.normalized_to_world(u, v)

    def world_to_geo(self, x: ArrayLike, z: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        u, v = self.world_to_normalized(x, z)
        return self.normalized_to_geo(u, v)
