"""
Elevation blender.

Merges the heightmap height ``h_map`` with the rasterized height ``h_data``
per cell, then applies the sea-level override. All grids are R x R arrays
in [0, 1].
"""

import numpy as np
import structlog

from ..config.generation_settings import BlendConfig, BlendMode
from ..utils.parallel import run_bands

logger = structlog.get_logger()


def smoothstep(x: np.ndarray) -> np.ndarray:
    """Hermite smoothstep ``x^2 (3 - 2x)`` on values clamped to [0, 1]."""
    x = np.clip(x, 0.0, 1.0)
    return x * x * (3.0 - 2.0 * x)


def dilate_density(density: np.ndarray, radius: int) -> np.ndarray:
    """
    Grow the data-confident region outward with a linear falloff.

    ``dilated[p] = max(density[q] * (1 - |p - q| / radius))`` over all cells
    ``q`` closer than ``radius`` to ``p``. Cells outside the grid count as
    zero density. The original value is always kept (q = p), so dilation
    never lowers a cell.

    Args:
        density: R x R density grid in [0, 1]
        radius: Dilation radius in cells; 0 returns a copy

    Returns:
        Dilated density grid
    """
    density = np.asarray(density, dtype=np.float64)
    if radius <= 0:
        return density.copy()

    rows, cols = density.shape
    padded = np.pad(density, radius, mode="constant", constant_values=0.0)

    span = np.arange(-radius, radius + 1)
    dy, dx = np.meshgrid(span, span, indexing="ij")
    dist = np.hypot(dy, dx)
    inside = dist < radius
    offsets = list(zip(dy[inside], dx[inside], 1.0 - dist[inside] / radius))

    result = np.zeros_like(density)

    def dilate_rows(band: slice) -> None:
        best = result[band]
        for oy, ox, falloff in offsets:
            src = padded[
                band.start + radius + oy : band.stop + radius + oy,
                radius + ox : radius + ox + cols,
            ]
            np.maximum(best, src * falloff, out=best)

    run_bands(dilate_rows, rows)
    return result


def apply_sea_override(
    result: np.ndarray, h_map: np.ndarray, threshold: float, transition_width: float
) -> np.ndarray:
    """
    Force heightmap sea to zero and fade the coastline band.

    Cells with ``h_map <= threshold`` become 0. In the band
    ``(threshold, threshold + transition_width]`` the result is scaled by
    ``(h_map - threshold) / transition_width``, fading linearly to 0 at the
    threshold. Cells above the band are untouched.
    """
    result = np.array(result, dtype=np.float64)
    sea = h_map <= threshold
    result[sea] = 0.0

    if transition_width > 0:
        band = (h_map > threshold) & (h_map <= threshold + transition_width)
        fade = (h_map[band] - threshold) / transition_width
        result[band] *= fade

    return result


class ElevationBlender:
    """
    Combines heightmap and elevation data according to a BlendConfig.

    Modes:
        - uniform: ``lerp(h_map, h_data, blend_weight)`` in cells the data
          reached; cells with zero density keep ``h_map``
        - density-based: ``lerp(h_map, h_data, w)`` where ``w`` is the
          smoothstep of the dilated density grid
        - elevation-only debug: ``h_data`` unconditionally

    The sea-level override runs last and takes precedence over all modes.
    """

    def __init__(self, config: BlendConfig):
        self.config = config

    def effective_weight(self, density: np.ndarray) -> np.ndarray:
        """Per-cell weight of the elevation data for density-based blending."""
        dilated = dilate_density(density, self.config.density_falloff_radius)
        return smoothstep(dilated)

    def blend(
        self,
        h_map: np.ndarray,
        h_data: np.ndarray,
        density: np.ndarray,
        has_data: bool = True,
    ) -> np.ndarray:
        """
        Blend the two height sources.

        Args:
            h_map: Heightmap heights sampled at every cell
            h_data: Smoothed rasterized elevation
            density: Rasterized density grid
            has_data: False when no elevation samples exist at all; the
                heightmap is then used unchanged (debug mode excepted)

        Returns:
            Blended grid clamped to [0, 1]
        """
        config = self.config

        if config.elevation_only_debug:
            result = np.array(h_data, dtype=np.float64)
        elif not has_data:
            result = np.array(h_map, dtype=np.float64)
        elif config.mode == BlendMode.UNIFORM:
            w = np.where(density > 0, config.blend_weight, 0.0)
            result = h_map * (1.0 - w) + h_data * w
        else:
            w = self.effective_weight(density)
            result = h_map * (1.0 - w) + h_data * w

        if config.sea_level_override:
            result = apply_sea_override(
                result, h_map, config.sea_black_threshold, config.sea_transition_width
            )

        result = np.clip(result, 0.0, 1.0)

        logger.info(
            "Heights blended",
            mode=config.mode.value,
            debug=config.elevation_only_debug,
            sea_override=config.sea_level_override,
            sea_cells=int(np.count_nonzero(h_map <= config.sea_black_threshold))
            if config.sea_level_override
            else 0,
        )
        return result
