"""
Tile Index

Hierarchical (z, x, y) index over a GeoJSON document.

The index is built once: the root tile receives every projected feature and
tiles are split into quadrants eagerly while they hold too many points, down
to ``index_max_zoom``. Deeper tiles are cut on demand: a query for a missing
tile finds its nearest materialized ancestor that still holds source
features and splits along the path to the requested tile only. Every tile,
once created, is kept for the lifetime of the index.

Concurrency: queries for materialized tiles take no locks. A lazy split holds
the lock of the ancestor it starts from and publishes the new nodes only
after the split is complete, so other threads either see a finished subtree
or wait on that ancestor.
"""

import dataclasses
import threading
import time
from collections import Counter
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .clipper import clip
from .features import ProjectedFeature, TileFeature
from .tile import TileKey, TileNode, create_tile
from ..data_ingestion.geojson_ingestion import GeoJSONIngester
from ..monitoring.metrics import MetricsCollector
from ..utils.config import TileIndexOptions
from ..utils.exceptions import InvalidCoordinateError, InvalidGeometryError
from ..utils.spatial_utils import SpatialUtils


class TileIndex:
    """
    Tile tree over a set of projected features.

    Use :func:`build` to create one from a GeoJSON document.
    """

    def __init__(
        self,
        features: List[ProjectedFeature],
        options: Optional[TileIndexOptions] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        errors: Optional[List[InvalidGeometryError]] = None
    ):
        """
        Build the eager part of the tile tree.

        Args:
            features: Projected features for the root tile
            options: Index options
            metrics_collector: Optional metrics collector
            errors: Geometry errors collected while ingesting the features
        """
        self.options = options or TileIndexOptions()
        self.metrics = metrics_collector or MetricsCollector()
        self.errors: List[InvalidGeometryError] = list(errors or [])
        self.feature_count = len(features)

        self.logger = structlog.get_logger(
            index_type="TileIndex",
            extent=self.options.extent,
            max_zoom=self.options.max_zoom
        )

        self.tiles: Dict[TileKey, TileNode] = {}
        self.tile_coords: List[TileKey] = []
        self._publish_lock = threading.Lock()

        start_time = time.time()

        if features:
            self._split_tile(features, 0, 0, 0)

        duration = time.time() - start_time
        self.metrics.increment_counter('tile_index_builds_total')
        self.metrics.record_histogram('tile_index_build_seconds', duration)

        self.logger.info(
            "Tile index built",
            features=self.feature_count,
            skipped_features=len(self.errors),
            tiles=len(self.tiles),
            duration_seconds=duration
        )

    def get_tile(self, z: int, x: int, y: int) -> Optional[List[TileFeature]]:
        """
        Features of tile (z, x, y) in tile-local coordinates.

        Returns None when the coordinate is invalid, deeper than ``max_zoom``,
        or the tile holds no geometry. The features are copies; changing them
        leaves the cached tile untouched.
        """
        node = self._lookup(z, x, y)
        if node is None:
            return None
        return [feature.copy() for feature in node.features]

    def get_tile_node(self, z: int, x: int, y: int) -> Optional[TileNode]:
        """
        The materialized node for (z, x, y), or None if the tile is absent.

        The node is the cached one and must be treated as read-only.
        """
        return self._lookup(z, x, y)

    def _lookup(self, z: int, x: int, y: int) -> Optional[TileNode]:
        try:
            SpatialUtils.validate_tile_coordinate(z, x, y, self.options.max_zoom)
        except InvalidCoordinateError as e:
            self.logger.debug("Rejected tile coordinate", error=str(e))
            self.metrics.increment_counter('tile_queries_total', labels={'result': 'invalid'})
            return None

        node = self._materialize(z, x, y)

        if node is None or node.is_empty:
            self.metrics.increment_counter('tile_queries_total', labels={'result': 'empty'})
            return None

        self.metrics.increment_counter('tile_queries_total', labels={'result': 'hit'})
        return node

    def _materialize(self, z: int, x: int, y: int) -> Optional[TileNode]:
        key = (z, x, y)

        while True:
            tile = self.tiles.get(key)
            if tile is not None:
                return tile

            parent = self._find_ancestor(z, x, y)
            if parent is None:
                return None

            with parent.lock:
                if parent.source is None:
                    if parent.children:
                        # split by another query meanwhile; look again
                        continue
                    return None

                self.logger.debug(
                    "Splitting tile on demand",
                    parent=parent.tile_id,
                    target=SpatialUtils.tile_id(z, x, y)
                )
                start_time = time.time()
                self._split_tile(parent.source, parent.z, parent.x, parent.y, target=key)
                self.metrics.record_histogram('tile_split_seconds', time.time() - start_time)

            return self.tiles.get(key)

    def _find_ancestor(self, z: int, x: int, y: int) -> Optional[TileNode]:
        while z > 0:
            z -= 1
            x >>= 1
            y >>= 1
            parent = self.tiles.get((z, x, y))
            if parent is not None:
                return parent
        return None

    def _split_tile(
        self,
        features: List[ProjectedFeature],
        z: int,
        x: int,
        y: int,
        target: Optional[TileKey] = None
    ) -> None:
        """
        Split a tile into quadrants, recursively.

        Without ``target`` splitting stops at ``index_max_zoom`` or once a tile
        holds no more than ``max_points_per_tile`` points. With ``target`` only
        tiles on the path to it are split, down to its zoom.
        """
        options = self.options
        mode = 'eager' if target is None else 'lazy'
        created: Dict[TileKey, TileNode] = {}
        stack: List[Tuple[List[ProjectedFeature], int, int, int]] = [(features, z, x, y)]

        while stack:
            features, z, x, y = stack.pop()
            key = (z, x, y)

            tile = self.tiles.get(key) or created.get(key)
            if tile is None:
                tile = create_tile(features, z, x, y, options)
                tile.source = features
                created[key] = tile

            if target is None:
                if z == options.index_max_zoom or tile.num_points <= options.max_points_per_tile:
                    continue
            else:
                tz, tx, ty = target
                if z == options.max_zoom or z == tz:
                    continue
                zoom_steps = tz - z
                if x != tx >> zoom_steps or y != ty >> zoom_steps:
                    continue

            tile.source = None

            if not features:
                tile.children = []
                continue

            stack.extend(self._quadrants(tile, features))
            tile.children = [child[1:] for child in stack[-4:]]

        self._publish(created, mode)

    def _quadrants(self, tile: TileNode, features: List[ProjectedFeature]) -> List[Tuple]:
        """Clip a tile's features into its four buffered child quadrants."""
        options = self.options
        z, x, y = tile.z, tile.x, tile.y
        z2 = 1 << z

        k1 = 0.5 * options.buffer / options.extent
        k2 = 0.5 - k1
        k3 = 0.5 + k1
        k4 = 1 + k1

        tl = bl = tr = br = None

        left = clip(features, z2, x - k1, x + k3, 0, tile.min_x, tile.max_x)
        right = clip(features, z2, x + k2, x + k4, 0, tile.min_x, tile.max_x)

        if left:
            tl = clip(left, z2, y - k1, y + k3, 1, tile.min_y, tile.max_y)
            bl = clip(left, z2, y + k2, y + k4, 1, tile.min_y, tile.max_y)

        if right:
            tr = clip(right, z2, y - k1, y + k3, 1, tile.min_y, tile.max_y)
            br = clip(right, z2, y + k2, y + k4, 1, tile.min_y, tile.max_y)

        return [
            (tl or [], z + 1, x * 2, y * 2),
            (bl or [], z + 1, x * 2, y * 2 + 1),
            (tr or [], z + 1, x * 2 + 1, y * 2),
            (br or [], z + 1, x * 2 + 1, y * 2 + 1),
        ]

    def _publish(self, created: Dict[TileKey, TileNode], mode: str) -> None:
        if not created:
            return

        with self._publish_lock:
            self.tiles.update(created)
            self.tile_coords.extend(created)

        self.metrics.increment_counter(
            'tiles_materialized_total',
            value=len(created),
            labels={'mode': mode}
        )

    @property
    def stats(self) -> Dict[str, Any]:
        """Tile counts per zoom level and ingestion totals."""
        with self._publish_lock:
            keys = list(self.tiles)

        per_zoom = Counter(z for z, _, _ in keys)
        return {
            'total_tiles': len(keys),
            'tiles_per_zoom': dict(sorted(per_zoom.items())),
            'features_ingested': self.feature_count,
            'features_skipped': len(self.errors),
        }


def build(
    document: Any,
    options: Optional[Any] = None,
    metrics_collector: Optional[MetricsCollector] = None,
    **kwargs
) -> TileIndex:
    """
    Build a tile index from a GeoJSON document.

    Args:
        document: Parsed GeoJSON object, JSON string, or path to a GeoJSON file
        options: TileIndexOptions or a mapping of option names
        metrics_collector: Optional metrics collector shared with the index
        **kwargs: Individual options, applied on top of ``options``

    Returns:
        The built TileIndex

    Raises:
        InvalidInputError: If the document is empty or malformed, or every
            feature in it has invalid geometry
    """
    if options is None:
        options = TileIndexOptions.from_dict(kwargs)
    elif isinstance(options, Mapping):
        options = TileIndexOptions.from_dict({**options, **kwargs})
    elif kwargs:
        options = TileIndexOptions.from_dict({**dataclasses.asdict(options), **kwargs})

    ingester = GeoJSONIngester(options, metrics_collector)
    features = ingester.ingest(document)

    return TileIndex(
        features,
        options,
        metrics_collector=ingester.metrics,
        errors=ingester.geometry_errors
    )
