"""
Basemap Vector Tiles

Slices a GeoJSON document into a (z, x, y) tile pyramid on demand, with
per-zoom simplification and buffered clipping, and hands tiles back as
features in each tile's local integer coordinate space.

Author: Adebisi Ayokunle
Project: Basemap Data Processing Pipeline
"""

__version__ = "1.1.0"
__author__ = "Adebisi Ayokunle"
__email__ = "adeways2000@gmail.com"

from .tile_generation.features import GeometryType, TileFeature
from .tile_generation.geojson_adapter import feature_to_geojson, tile_to_geojson
from .tile_generation.tile_index import TileIndex, build
from .utils.config import TileIndexOptions
from .utils.exceptions import (
    InvalidCoordinateError,
    InvalidGeometryError,
    InvalidInputError,
    TileEngineError,
)

__all__ = [
    "build",
    "TileIndex",
    "TileIndexOptions",
    "TileFeature",
    "GeometryType",
    "feature_to_geojson",
    "tile_to_geojson",
    "TileEngineError",
    "InvalidInputError",
    "InvalidGeometryError",
    "InvalidCoordinateError",
]
