"""
Configuration for terrain generation.
"""

from .config import Settings, get_settings
from .generation_settings import (
    BlendConfig,
    BlendMode,
    CoordinateMode,
    GeoBounds,
    PlacementPolicy,
    PlacementSettings,
    WarpSettings,
    WorldScale,
)

__all__ = ['Settings', 'get_settings', 'BlendConfig', 'BlendMode', 'CoordinateMode',
           'GeoBounds', 'PlacementPolicy', 'PlacementSettings', 'WarpSettings', 'WorldScale']
