"""
Tile Nodes

A tile node owns the features of one (z, x, y) tile, already simplified for
its zoom level and converted to the tile's local integer coordinate space.
Until it is split, a node also keeps the unsimplified source features it was
cut from so its children can be built later.
"""

import math
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .features import GeometryType, ProjectedFeature, ProjectedPath, TileFeature
from ..utils.config import TileIndexOptions
from ..utils.geometry_utils import rewind, signed_area
from ..utils.spatial_utils import SpatialUtils

TileKey = Tuple[int, int, int]


@dataclass
class TileNode:
    """One materialized tile of the index."""
    z: int
    x: int
    y: int
    extent: int
    features: List[TileFeature] = field(default_factory=list)
    num_points: int = 0
    num_simplified: int = 0
    num_features: int = 0
    # bounds of the source features in normalized coordinates
    min_x: float = 2.0
    min_y: float = 1.0
    max_x: float = -1.0
    max_y: float = 0.0
    # unsplit marker: source features kept for lazy splitting
    source: Optional[List[ProjectedFeature]] = field(default=None, repr=False)
    children: Optional[List[TileKey]] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def key(self) -> TileKey:
        return (self.z, self.x, self.y)

    @property
    def tile_id(self) -> str:
        return SpatialUtils.tile_id(self.z, self.x, self.y)

    @property
    def bbox(self) -> Tuple[float, float, float, float]:
        """(west, south, east, north) of the tile footprint in degrees."""
        return SpatialUtils.tile_to_bbox(self.x, self.y, self.z)

    @property
    def is_split(self) -> bool:
        return self.children is not None

    @property
    def is_empty(self) -> bool:
        return not self.features


def create_tile(
    features: List[ProjectedFeature],
    z: int,
    tx: int,
    ty: int,
    options: TileIndexOptions
) -> TileNode:
    """Build the node for tile (z, tx, ty) from features already clipped to it."""
    tolerance = options.tile_tolerance(z)
    tile = TileNode(z=z, x=tx, y=ty, extent=options.extent, num_features=len(features))
    transform = _LocalTransform(z, tx, ty, options.extent)

    for feature in features:
        tile.min_x = min(tile.min_x, feature.min_x)
        tile.min_y = min(tile.min_y, feature.min_y)
        tile.max_x = max(tile.max_x, feature.max_x)
        tile.max_y = max(tile.max_y, feature.max_y)

        if feature.type == GeometryType.POINT:
            parts = [transform(p) for p in feature.geometry]
            tile.num_points += len(parts)
            tile.num_simplified += len(parts)
        elif feature.type == GeometryType.LINESTRING:
            parts = []
            for path in feature.geometry:
                line = _select(tile, path, tolerance, is_polygon=False)
                if line is None:
                    continue
                line = [transform(p) for p in line]
                if not _is_degenerate_line(line):
                    parts.append(line)
        else:
            parts = []
            for polygon in feature.geometry:
                parts.extend(_polygon_rings(tile, polygon, tolerance, transform))

        if parts:
            tile.features.append(TileFeature(
                type=feature.type,
                geometry=parts,
                properties=feature.properties,
                id=feature.id
            ))

    return tile


def _polygon_rings(tile, polygon, tolerance, transform) -> List[List[List[int]]]:
    rings = []
    for i, ring in enumerate(polygon):
        selected = _select(tile, ring, tolerance, is_polygon=True)
        if selected is not None:
            selected = [transform(p) for p in selected]
            if len(selected) >= 4 and signed_area(selected) != 0:
                rewind(selected, clockwise=(i == 0))
                rings.append(selected)
                continue

        if i == 0:
            # no outer ring left, so holes have nothing to cut into
            return []
    return rings


def _select(
    tile: TileNode,
    path: ProjectedPath,
    tolerance: float,
    is_polygon: bool
) -> Optional[List[List[float]]]:
    """Vertices of ``path`` that survive simplification at the tile's zoom."""
    sq_tolerance = tolerance * tolerance
    tile.num_points += len(path)

    if tolerance > 0 and path.size < (sq_tolerance if is_polygon else tolerance):
        return None

    selected = [p for p in path.points if tolerance == 0 or p[2] > sq_tolerance]
    tile.num_simplified += len(selected)
    return selected


def _is_degenerate_line(line: List[List[int]]) -> bool:
    if len(line) < 2:
        return True
    first = line[0]
    return all(p == first for p in line)


class _LocalTransform:
    """Normalized coordinates to tile-local integer coordinates."""

    def __init__(self, z: int, tx: int, ty: int, extent: int):
        self.z2 = 1 << z
        self.tx = tx
        self.ty = ty
        self.extent = extent

    def __call__(self, point: List[float]) -> List[int]:
        return [
            _round(self.extent * (point[0] * self.z2 - self.tx)),
            _round(self.extent * (point[1] * self.z2 - self.ty)),
        ]


def _round(value: float) -> int:
    # half-up, unlike round()'s banker's rounding
    return int(math.floor(value + 0.5))
