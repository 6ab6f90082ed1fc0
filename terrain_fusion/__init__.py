"""
Terrain fusion: blends raster heightmaps with geo-referenced elevation data.
"""

__version__ = "0.1.0"
