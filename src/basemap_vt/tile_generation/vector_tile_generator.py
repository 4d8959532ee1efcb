"""
Vector Tile Generator

Encodes tiles served by a TileIndex as Mapbox Vector Tiles (MVT) or GeoJSON
and generates whole tile pyramids by querying the index concurrently.
"""

import concurrent.futures
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import mapbox_vector_tile
import structlog

from .features import TileFeature
from .geojson_adapter import feature_to_geojson, feature_to_shape, tile_to_geojson
from .tile_index import TileIndex
from ..utils.spatial_utils import SpatialUtils

SUPPORTED_FORMATS = ('mvt', 'pbf', 'geojson')


@dataclass
class TileSpec:
    """Specification for a single tile."""
    x: int
    y: int
    z: int
    bbox: Tuple[float, float, float, float]  # (west, south, east, north)

    @property
    def tile_id(self) -> str:
        """Get unique tile identifier."""
        return f"{self.z}/{self.x}/{self.y}"


class VectorTileGenerator:
    """
    Encodes tiles from a tile index.

    The index does the slicing; this class only queries it and serializes
    the resulting features.
    """

    def __init__(
        self,
        index: TileIndex,
        output_format: str = "mvt",
        layer_name: str = "features"
    ):
        """
        Initialize the vector tile generator.

        Args:
            index: Tile index to query
            output_format: Output tile format (mvt, pbf, geojson)
            layer_name: Name of the single MVT layer
        """
        output_format = output_format.lower()
        if output_format not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported output format: {output_format}")

        self.index = index
        self.output_format = output_format
        self.layer_name = layer_name
        self.extent = index.options.extent
        self.spatial_utils = SpatialUtils()

        self.logger = structlog.get_logger(
            generator_type="VectorTileGenerator",
            output_format=output_format
        )

        self.stats = self._empty_stats()
        self._stats_lock = threading.Lock()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'tiles_generated': 0,
            'total_features_processed': 0,
            'total_processing_time': 0.0,
            'errors': []
        }

    def generate_single_tile(self, z: int, x: int, y: int) -> Optional[bytes]:
        """
        Encode a single tile.

        Returns:
            Tile data as bytes, or None if the tile is absent
        """
        features = self.index.get_tile(z, x, y)
        if not features:
            return None

        with self._stats_lock:
            self.stats['total_features_processed'] += len(features)

        self.logger.debug("Encoding tile", tile_id=f"{z}/{x}/{y}", features=len(features))

        if self.output_format == 'geojson':
            return json.dumps(tile_to_geojson(features)).encode('utf-8')
        return self.encode_mvt(features)

    def encode_mvt(self, features: List[TileFeature]) -> bytes:
        """Encode tile features as one MVT layer in the index's extent."""
        layer = {
            'name': self.layer_name,
            'features': [self._mvt_feature(feature) for feature in features]
        }
        return mapbox_vector_tile.encode(
            [layer],
            default_options={
                'extents': self.extent,
                'y_coord_down': True
            }
        )

    @staticmethod
    def _mvt_feature(feature: TileFeature) -> Dict[str, Any]:
        mvt_feature = {
            'geometry': feature_to_shape(feature),
            'properties': feature_to_geojson(feature)['properties'] or {}
        }
        if isinstance(feature.id, int) and not isinstance(feature.id, bool) and feature.id >= 0:
            mvt_feature['id'] = feature.id
        return mvt_feature

    def generate_tileset(
        self,
        zoom_levels: List[int],
        bbox: Optional[Tuple[float, float, float, float]] = None,
        max_workers: int = 4
    ) -> Dict[str, Any]:
        """
        Generate tiles for several zoom levels.

        Args:
            zoom_levels: List of zoom levels to generate
            bbox: Optional (west, south, east, north) limiting the tiles
            max_workers: Maximum number of worker threads

        Returns:
            Dictionary with per-zoom results and the encoded tiles by id
        """
        self._validate_zoom_levels(zoom_levels)
        start_time = time.time()

        self.logger.info("Starting tileset generation", zoom_levels=zoom_levels, bbox=bbox)

        tiles: Dict[str, bytes] = {}
        generation_results = {}

        for zoom in sorted(zoom_levels):
            tile_bounds = self._get_tile_bounds(zoom, bbox)
            zoom_results = self._generate_zoom_level(zoom, tile_bounds, tiles, max_workers)
            generation_results[zoom] = zoom_results

            self.logger.info(
                f"Completed zoom level {zoom}",
                tiles_generated=zoom_results['tiles_generated'],
                processing_time=zoom_results['processing_time']
            )

        total_time = time.time() - start_time
        failed_tiles = sum(r['tiles_failed'] for r in generation_results.values())
        self.stats['tiles_generated'] += len(tiles)
        self.stats['total_processing_time'] += total_time

        self.logger.info(
            "Tileset generation completed",
            total_tiles=len(tiles),
            processing_time=total_time
        )

        return {
            'success': failed_tiles == 0,
            'failed_tiles': failed_tiles,
            'total_tiles': len(tiles),
            'zoom_levels': sorted(zoom_levels),
            'processing_time': total_time,
            'zoom_results': generation_results,
            'tiles': tiles
        }

    def _validate_zoom_levels(self, zoom_levels: List[int]) -> None:
        if not zoom_levels:
            raise ValueError("No zoom levels specified")

        max_zoom = self.index.options.max_zoom
        if min(zoom_levels) < 0 or max(zoom_levels) > max_zoom:
            raise ValueError(f"Zoom levels must be between 0 and {max_zoom}")

    def _get_tile_bounds(
        self,
        zoom: int,
        bbox: Optional[Tuple[float, float, float, float]] = None
    ) -> List[Tuple[int, int]]:
        """Get list of tile coordinates for a zoom level."""
        if bbox:
            min_x, min_y, max_x, max_y = bbox

            min_tile_x, max_tile_y = self.spatial_utils.deg_to_tile(min_x, min_y, zoom)
            max_tile_x, min_tile_y = self.spatial_utils.deg_to_tile(max_x, max_y, zoom)

            return [
                (x, y)
                for x in range(min_tile_x, max_tile_x + 1)
                for y in range(min_tile_y, max_tile_y + 1)
            ]

        num_tiles = 2 ** zoom
        return [(x, y) for x in range(num_tiles) for y in range(num_tiles)]

    def _generate_zoom_level(
        self,
        zoom: int,
        tile_bounds: List[Tuple[int, int]],
        tiles: Dict[str, bytes],
        max_workers: int
    ) -> Dict[str, Any]:
        """Generate all tiles for a specific zoom level."""
        start_time = time.time()
        tiles_generated = 0
        tiles_failed = 0

        tile_specs = [
            TileSpec(x=x, y=y, z=zoom, bbox=self.spatial_utils.tile_to_bbox(x, y, zoom))
            for x, y in tile_bounds
        ]

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_tile = {
                executor.submit(self.generate_single_tile, spec.z, spec.x, spec.y): spec
                for spec in tile_specs
            }

            for future in concurrent.futures.as_completed(future_to_tile):
                tile_spec = future_to_tile[future]

                try:
                    tile_data = future.result()
                except Exception as e:
                    self.logger.error(
                        "Error processing tile",
                        tile_id=tile_spec.tile_id,
                        error=str(e)
                    )
                    self.stats['errors'].append(f"Tile {tile_spec.tile_id}: {str(e)}")
                    tiles_failed += 1
                    continue

                if tile_data:
                    tiles[tile_spec.tile_id] = tile_data
                    tiles_generated += 1

        return {
            'tiles_generated': tiles_generated,
            'tiles_failed': tiles_failed,
            'processing_time': time.time() - start_time,
            'total_tile_specs': len(tile_specs)
        }

    def get_generation_stats(self) -> Dict[str, Any]:
        """Get tile generation statistics."""
        return self.stats.copy()

    def reset_stats(self) -> None:
        """Reset generation statistics."""
        self.stats = self._empty_stats()
