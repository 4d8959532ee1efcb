"""
Tile Generation Module

The tile index and everything it is made of: the projected feature model,
buffered clipping, tile creation with per-zoom simplification, the GeoJSON
reconstruction adapter and tile encoders.
"""

from .features import GeometryType, ProjectedFeature, TileFeature
from .tile import TileNode
from .tile_index import TileIndex, build
from .geojson_adapter import feature_to_geojson, feature_to_shape, tile_to_geojson
from .vector_tile_generator import TileSpec, VectorTileGenerator

__all__ = [
    "GeometryType",
    "ProjectedFeature",
    "TileFeature",
    "TileNode",
    "TileIndex",
    "build",
    "feature_to_geojson",
    "feature_to_shape",
    "tile_to_geojson",
    "TileSpec",
    "VectorTileGenerator"
]
