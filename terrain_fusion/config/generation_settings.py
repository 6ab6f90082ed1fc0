"""
Configuration snapshots for a terrain generation pass.

This module defines the immutable settings consumed by the engine:
geographic bounds, world scale, adaptive warp tuning, elevation blending
and object placement. Every model is frozen; callers build a new snapshot
to change a value between passes.
"""

from enum import Enum
from typing import Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import ConfigurationError


class CoordinateMode(str, Enum):
    """How normalized geo space is laid out in world space."""

    UNIFORM = "uniform"
    ADAPTIVE = "adaptive"


class BlendMode(str, Enum):
    """How rasterized elevation data is mixed with the heightmap."""

    UNIFORM = "uniform"
    DENSITY_BASED = "density_based"


class PlacementPolicy(str, Enum):
    """How an object is seated on the terrain surface."""

    LEVEL = "level"
    SLOPE_ALIGNED = "slope_aligned"
    FOUNDATION = "foundation"


class GeoBounds(BaseModel):
    """Rectangular bounding box in geographic coordinates (degrees)."""

    model_config = ConfigDict(frozen=True)

    min_lon: float = Field(description="Western-most longitude")
    max_lon: float = Field(description="Eastern-most longitude")
    min_lat: float = Field(description="Southern-most latitude")
    max_lat: float = Field(description="Northern-most latitude")

    @model_validator(mode="after")
    def _check_extent(self) -> "GeoBounds":
        values = (self.min_lon, self.max_lon, self.min_lat, self.max_lat)
        if not all(np.isfinite(v) for v in values):
            raise ConfigurationError(f"GeoBounds must be finite, got {values}")
        if not self.min_lon < self.max_lon:
            raise ConfigurationError(
                f"GeoBounds longitude extent must be positive "
                f"(min_lon={self.min_lon}, max_lon={self.max_lon})"
            )
        if not self.min_lat < self.max_lat:
            raise ConfigurationError(
                f"GeoBounds latitude extent must be positive "
                f"(min_lat={self.min_lat}, max_lat={self.max_lat})"
            )
        return self

    @property
    def lon_span(self) -> float:
        return self.max_lon - self.min_lon

    @property
    def lat_span(self) -> float:
        return self.max_lat - self.min_lat

    def contains(self, lon: float, lat: float) -> bool:
        """Check whether a coordinate lies inside the box (edges included)."""
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat

    def matches(self, other: "GeoBounds", tolerance: float = 1e-4) -> bool:
        """Check whether two boxes agree on every edge within tolerance."""
        return (
            abs(self.min_lon - other.min_lon) < tolerance
            and abs(self.max_lon - other.max_lon) < tolerance
            and abs(self.min_lat - other.min_lat) < tolerance
            and abs(self.max_lat - other.max_lat) < tolerance
        )

    @classmethod
    def from_points(cls, lons: Sequence[float], lats: Sequence[float]) -> "GeoBounds":
        """Smallest box enclosing the given coordinates."""
        if len(lons) == 0 or len(lats) == 0:
            raise ConfigurationError("Cannot derive GeoBounds from an empty point set")
        return cls(
            min_lon=float(np.min(lons)),
            max_lon=float(np.max(lons)),
            min_lat=float(np.min(lats)),
            max_lat=float(np.max(lats)),
        )


class WorldScale(BaseModel):
    """Scale factors from normalized [0,1] space to world units.

    ``terrain_max_height`` is the only vertical multiplier: a normalized
    height of 1.0 is exactly this many world units.
    """

    model_config = ConfigDict(frozen=True)

    target_world_width: float = Field(default=2000.0, description="World extent east-west")
    target_world_length: float = Field(default=3300.0, description="World extent north-south")
    terrain_max_height: float = Field(default=450.0, description="World Y at normalized height 1")

    @model_validator(mode="after")
    def _check_positive(self) -> "WorldScale":
        for name in ("target_world_width", "target_world_length", "terrain_max_height"):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
        return self


class WarpSettings(BaseModel):
    """Tuning for the density-adaptive coordinate warp."""

    model_config = ConfigDict(frozen=True)

    bins_x: int = Field(default=128, description="Histogram bins along longitude")
    bins_y: int = Field(default=128, description="Histogram bins along latitude")
    min_density_floor: float = Field(
        default=0.05, description="Minimum bin density relative to the densest bin"
    )
    smoothing_sigma: float = Field(default=5.0, description="Histogram smoothing sigma in bins")
    density_exponent: float = Field(
        default=1.2, description="Contrast exponent applied to bin counts"
    )

    @model_validator(mode="after")
    def _check_ranges(self) -> "WarpSettings":
        if self.bins_x < 2 or self.bins_y < 2:
            raise ConfigurationError(
                f"Warp bins must be >= 2 (bins_x={self.bins_x}, bins_y={self.bins_y})"
            )
        if not 0 < self.min_density_floor <= 1:
            raise ConfigurationError(
                f"min_density_floor must be in (0, 1], got {self.min_density_floor}"
            )
        if self.smoothing_sigma < 0:
            raise ConfigurationError(
                f"Warp smoothing_sigma must be >= 0, got {self.smoothing_sigma}"
            )
        if self.density_exponent <= 0:
            raise ConfigurationError(
                f"density_exponent must be positive, got {self.density_exponent}"
            )
        return self


class BlendConfig(BaseModel):
    """Settings for rasterizing and blending elevation data with the heightmap."""

    model_config = ConfigDict(frozen=True)

    mode: BlendMode = Field(default=BlendMode.DENSITY_BASED, description="Blend mode")
    blend_weight: float = Field(
        default=0.5, description="Uniform mode weight: 0 = heightmap only, 1 = data only"
    )
    density_falloff_radius: int = Field(
        default=16, description="Cells the data-confident region is dilated by"
    )
    smoothing_sigma: float = Field(
        default=3.0, description="Gaussian sigma (cells) applied after rasterization"
    )
    search_radius: int = Field(default=8, description="IDW neighbourhood radius in cells")
    elevation_data_max_height: float = Field(
        default=420.0, description="Elevation (metres) mapped to normalized height 1"
    )
    sea_level_override: bool = Field(
        default=True, description="Force heightmap sea pixels to height 0"
    )
    sea_black_threshold: float = Field(
        default=0.001, description="Heightmap values at or below this are sea"
    )
    sea_transition_width: float = Field(
        default=0.01, description="Band above the threshold where height fades to 0"
    )
    grid_resolution: int = Field(default=256, description="Cells per side of the grid")
    elevation_only_debug: bool = Field(
        default=False, description="Ignore the heightmap and use elevation data only"
    )
    idw_power: float = Field(default=2.0, description="IDW distance exponent")

    @model_validator(mode="after")
    def _check_ranges(self) -> "BlendConfig":
        if not 0.0 <= self.blend_weight <= 1.0:
            raise ConfigurationError(f"blend_weight must be in [0, 1], got {self.blend_weight}")
        if self.search_radius < 1:
            raise ConfigurationError(f"search_radius must be >= 1, got {self.search_radius}")
        if self.density_falloff_radius < 0:
            raise ConfigurationError(
                f"density_falloff_radius must be >= 0, got {self.density_falloff_radius}"
            )
        if self.smoothing_sigma < 0:
            raise ConfigurationError(f"smoothing_sigma must be >= 0, got {self.smoothing_sigma}")
        if self.elevation_data_max_height <= 0:
            raise ConfigurationError(
                f"elevation_data_max_height must be positive, "
                f"got {self.elevation_data_max_height}"
            )
        if not 0.0 <= self.sea_black_threshold <= 1.0:
            raise ConfigurationError(
                f"sea_black_threshold must be in [0, 1], got {self.sea_black_threshold}"
            )
        if self.sea_transition_width < 0:
            raise ConfigurationError(
                f"sea_transition_width must be >= 0, got {self.sea_transition_width}"
            )
        if self.grid_resolution < 2:
            raise ConfigurationError(
                f"grid_resolution must be >= 2, got {self.grid_resolution}"
            )
        if self.idw_power <= 0:
            raise ConfigurationError(f"idw_power must be positive, got {self.idw_power}")
        return self


class PlacementSettings(BaseModel):
    """Settings for seating objects on the finished surface."""

    model_config = ConfigDict(frozen=True)

    policy: PlacementPolicy = Field(default=PlacementPolicy.LEVEL, description="Placement policy")
    foundation_top_offset: float = Field(
        default=0.1, description="Foundation mode: top face height above the surface"
    )
    y_offset: float = Field(
        default=0.0, description="Extra height added above the surface (Level/SlopeAligned)"
    )

    @model_validator(mode="after")
    def _check_offsets(self) -> "PlacementSettings":
        if self.foundation_top_offset < 0:
            raise ConfigurationError(
                f"foundation_top_offset must be >= 0, got {self.foundation_top_offset}"
            )
        return self
