"""
GeoJSON Reconstruction

Turns tile features back into GeoJSON-shaped features in tile-local
coordinates. A feature with a single part keeps its base geometry type; a
feature with several parts becomes the "Multi" variant of that type.

Polygon parts are rings. Rings are grouped into polygons by winding: an
outer ring (positive signed area in y-down tile space) starts a polygon and
each following hole (negative area) belongs to it.
"""

from typing import Any, Dict, List, Sequence

from shapely.geometry import shape

from .features import GeometryType, TileFeature, copy_part
from ..utils.geometry_utils import signed_area


def feature_to_geojson(feature: TileFeature) -> Dict[str, Any]:
    """Convert one tile feature into a GeoJSON Feature mapping."""
    geom_type = GeometryType(feature.type)
    type_name = geom_type.geojson_name
    parts = [copy_part(part) for part in feature.geometry]

    if geom_type == GeometryType.POLYGON:
        polygons = classify_rings(parts)
        if len(polygons) == 1:
            coordinates = polygons[0]
        else:
            type_name = f"Multi{type_name}"
            coordinates = polygons
    elif len(parts) == 1:
        coordinates = parts[0]
    else:
        type_name = f"Multi{type_name}"
        coordinates = parts

    geojson = {
        "type": "Feature",
        "geometry": {
            "type": type_name,
            "coordinates": coordinates
        },
        "properties": dict(feature.properties) if feature.properties is not None else None
    }
    if feature.id is not None:
        geojson["id"] = feature.id
    return geojson


def tile_to_geojson(features: Sequence[TileFeature]) -> Dict[str, Any]:
    """Convert a tile's features into a GeoJSON FeatureCollection."""
    return {
        "type": "FeatureCollection",
        "features": [feature_to_geojson(feature) for feature in features or []]
    }


def feature_to_shape(feature: TileFeature):
    """The feature's geometry as a shapely geometry in tile-local coordinates."""
    return shape(feature_to_geojson(feature)["geometry"])


def classify_rings(rings: List[List[List[int]]]) -> List[List[List[List[int]]]]:
    """Group rings into polygons of [outer, *holes]."""
    polygons: List[List[List[List[int]]]] = []

    for ring in rings:
        area = signed_area(ring)
        if area == 0:
            continue
        if area > 0 or not polygons:
            polygons.append([ring])
        else:
            polygons[-1].append(ring)

    return polygons
