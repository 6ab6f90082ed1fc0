"""
Error types raised by the terrain fusion engine.

Configuration problems abort a generation pass before any grid work starts.
Out-of-bounds queries are per-call and never abort a batch.
"""

from typing import Tuple


class TerrainFusionError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(TerrainFusionError):
    """Invalid bounds, scale, resolution or blend parameters."""


class OutOfBoundsQuery(TerrainFusionError):
    """A world-space query fell outside the generated terrain extent."""

    def __init__(self, x: float, z: float, extent: Tuple[float, float]):
        self.x = x
        self.z = z
        self.extent = extent
        super().__init__(
            f"Query ({x:.3f}, {z:.3f}) is outside terrain extent "
            f"[0, {extent[0]:.3f}] x [0, {extent[1]:.3f}]"
        )
