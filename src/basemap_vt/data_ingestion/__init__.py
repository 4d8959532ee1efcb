"""
Data Ingestion Module

Loads source documents and projects their features into the tile engine's
normalized coordinate space.
"""

from .base_ingester import BaseDataIngester
from .geojson_ingestion import GeoJSONIngester

__all__ = [
    "BaseDataIngester",
    "GeoJSONIngester"
]
