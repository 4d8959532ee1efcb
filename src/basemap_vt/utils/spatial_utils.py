"""
Spatial Utilities

Coordinate math shared by the ingester, the tile index and the tile server:
projection of WGS84 positions into the normalized Web Mercator square used
internally, tile bounds, coordinate validation and the per-tile placement
transform a renderer needs to position tile-local geometry.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from pyproj import Transformer

from .exceptions import InvalidCoordinateError

WGS84_EPSG = 4326
WEB_MERCATOR_EPSG = 3857

# Half the Web Mercator world width in meters
MERCATOR_HALF_WORLD = 20037508.342789244

# Latitude at which the Mercator square ends
MERCATOR_MAX_LATITUDE = 85.0511287798066

# World size used by deck.gl style cartesian renderers
DEFAULT_WORLD_SIZE = 512


@dataclass(frozen=True)
class PlacementTransform:
    """Maps tile-local coordinates into renderer world space."""
    scale: Tuple[float, float]
    origin: Tuple[float, float]

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        return (
            self.origin[0] + x * self.scale[0],
            self.origin[1] + y * self.scale[1],
        )


class SpatialUtils:
    """Projection and tile math."""

    def __init__(self):
        self.wgs84_to_mercator = Transformer.from_crs(
            WGS84_EPSG,
            WEB_MERCATOR_EPSG,
            always_xy=True
        )

    def project(self, positions: Sequence[Sequence[float]]) -> List[Tuple[float, float]]:
        """
        Project lon/lat positions into the unit square.

        x grows eastward from the antimeridian, y grows southward from the
        northern Mercator limit. Latitudes beyond the limit are clamped.

        Args:
            positions: Sequence of (lon, lat[, ...]) positions

        Returns:
            List of (x, y) tuples in [0, 1] x [0, 1]
        """
        if not positions:
            return []

        lons = [float(p[0]) for p in positions]
        lats = [
            max(-MERCATOR_MAX_LATITUDE, min(MERCATOR_MAX_LATITUDE, float(p[1])))
            for p in positions
        ]
        xs, ys = self.wgs84_to_mercator.transform(lons, lats)

        world = 2 * MERCATOR_HALF_WORLD
        projected = []
        for mx, my in zip(xs, ys):
            x = (mx + MERCATOR_HALF_WORLD) / world
            y = (MERCATOR_HALF_WORLD - my) / world
            projected.append((_clamp_unit(x), _clamp_unit(y)))
        return projected

    @staticmethod
    def validate_tile_coordinate(z, x, y, max_zoom: int) -> None:
        """Raise InvalidCoordinateError unless (z, x, y) addresses a tile."""
        for value in (z, x, y):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidCoordinateError(z, x, y, "coordinates must be integers")

        if z < 0 or z > max_zoom:
            raise InvalidCoordinateError(z, x, y, f"zoom outside 0-{max_zoom}")

        n = 1 << z
        if not (0 <= x < n and 0 <= y < n):
            raise InvalidCoordinateError(z, x, y, f"x and y must be in [0, {n})")

    @staticmethod
    def tile_to_bbox(x: int, y: int, zoom: int) -> Tuple[float, float, float, float]:
        """Convert tile coordinates to (west, south, east, north) in degrees."""
        n = 2.0 ** zoom

        lon_min = x / n * 360.0 - 180.0
        lon_max = (x + 1) / n * 360.0 - 180.0

        lat_rad_min = math.atan(math.sinh(math.pi * (1 - 2 * (y + 1) / n)))
        lat_rad_max = math.atan(math.sinh(math.pi * (1 - 2 * y / n)))

        return (lon_min, math.degrees(lat_rad_min), lon_max, math.degrees(lat_rad_max))

    @staticmethod
    def deg_to_tile(lon: float, lat: float, zoom: int) -> Tuple[int, int]:
        """Convert longitude/latitude to the tile containing it."""
        n = 2 ** zoom
        lat = max(-MERCATOR_MAX_LATITUDE, min(MERCATOR_MAX_LATITUDE, lat))

        x = int((lon + 180.0) / 360.0 * n)

        lat_rad = math.radians(lat)
        y = int((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)

        return (min(max(x, 0), n - 1), min(max(y, 0), n - 1))

    @staticmethod
    def tile_transform(
        z: int,
        x: int,
        y: int,
        extent: int,
        world_size: float = DEFAULT_WORLD_SIZE
    ) -> PlacementTransform:
        """
        Placement transform for a tile.

        Local y grows downward while world y grows northward, hence the
        negated vertical scale.
        """
        world_scale = 2 ** z
        x_scale = world_size / world_scale / extent
        x_offset = world_size * x / world_scale
        y_offset = world_size * (1 - y / world_scale)
        return PlacementTransform(scale=(x_scale, -x_scale), origin=(x_offset, y_offset))

    @staticmethod
    def tile_id(z: int, x: int, y: int) -> str:
        return f"{z}/{x}/{y}"


def _clamp_unit(value: float) -> float:
    if value < 0:
        return 0.0
    if value > 1:
        return 1.0
    return value
