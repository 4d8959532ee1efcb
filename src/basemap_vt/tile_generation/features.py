"""
Feature Model

Internal representation of features as they move through the tile index.

A feature is tagged with its base geometry type only. Point features hold a
list of points, line features a list of paths, polygon features a list of
polygons (each a list of rings). Whether a feature is a "Multi" variant is
derived from its part count when it is handed back to callers.
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union


class GeometryType(IntEnum):
    """Geometry type codes used in tile payloads."""
    UNKNOWN = 0
    POINT = 1
    LINESTRING = 2
    POLYGON = 3

    @property
    def geojson_name(self) -> str:
        return _GEOJSON_NAMES[self]


_GEOJSON_NAMES = {
    GeometryType.UNKNOWN: "Unknown",
    GeometryType.POINT: "Point",
    GeometryType.LINESTRING: "LineString",
    GeometryType.POLYGON: "Polygon",
}


@dataclass
class ProjectedPath:
    """
    A line or ring in normalized coordinates.

    ``points`` holds mutable ``[x, y, importance]`` triples; ``size`` is the
    length of a line or the absolute area of a ring, used to drop paths that
    are too small to matter at a given zoom.
    """
    points: List[List[float]]
    size: float = 0.0

    def __len__(self) -> int:
        return len(self.points)


Points = List[List[float]]
Lines = List[ProjectedPath]
Polygons = List[List[ProjectedPath]]


@dataclass
class ProjectedFeature:
    """A source feature projected into the normalized square."""
    type: GeometryType
    geometry: Union[Points, Lines, Polygons]
    properties: Dict[str, Any]
    id: Optional[Any] = None
    min_x: float = field(default=math.inf)
    min_y: float = field(default=math.inf)
    max_x: float = field(default=-math.inf)
    max_y: float = field(default=-math.inf)

    def __post_init__(self):
        self._update_bbox()

    def _update_bbox(self) -> None:
        if self.type == GeometryType.POINT:
            self._extend(self.geometry)
        elif self.type == GeometryType.LINESTRING:
            for path in self.geometry:
                self._extend(path.points)
        elif self.type == GeometryType.POLYGON:
            # outer rings bound their holes
            for polygon in self.geometry:
                self._extend(polygon[0].points)

    def _extend(self, points: Points) -> None:
        for point in points:
            x, y = point[0], point[1]
            if x < self.min_x:
                self.min_x = x
            if x > self.max_x:
                self.max_x = x
            if y < self.min_y:
                self.min_y = y
            if y > self.max_y:
                self.max_y = y

    def derive(self, geometry: Union[Points, Lines, Polygons]) -> 'ProjectedFeature':
        """A copy of this feature with new geometry and the same attributes."""
        return ProjectedFeature(
            type=self.type,
            geometry=geometry,
            properties=self.properties,
            id=self.id
        )

    @property
    def num_points(self) -> int:
        if self.type == GeometryType.POINT:
            return len(self.geometry)
        if self.type == GeometryType.LINESTRING:
            return sum(len(path) for path in self.geometry)
        return sum(len(ring) for polygon in self.geometry for ring in polygon)


@dataclass
class TileFeature:
    """
    A feature inside a tile, in the tile's local integer coordinates.

    ``geometry`` is a list of parts: ``[x, y]`` pairs for points, lists of
    pairs for lines and rings.
    """
    type: GeometryType
    geometry: List[Any]
    properties: Dict[str, Any]
    id: Optional[Any] = None

    @property
    def part_count(self) -> int:
        return len(self.geometry)

    def copy(self) -> 'TileFeature':
        """A deep copy whose geometry and properties share nothing with this one."""
        return TileFeature(
            type=self.type,
            geometry=[copy_part(part) for part in self.geometry],
            properties=dict(self.properties) if self.properties is not None else None,
            id=self.id
        )


def copy_part(part: List[Any]) -> List[Any]:
    # points are [x, y]; lines and rings are lists of them
    if part and isinstance(part[0], list):
        return [list(p) for p in part]
    return list(part)
