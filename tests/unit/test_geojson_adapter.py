"""
Unit Tests for GeoJSON Reconstruction
"""

import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).parent.parent.parent / "src"))

from basemap_vt.tile_generation.features import GeometryType, TileFeature
from basemap_vt.tile_generation.geojson_adapter import (
    classify_rings,
    feature_to_geojson,
    feature_to_shape,
    tile_to_geojson,
)

OUTER = [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]
HOLE = [[2, 2], [2, 4], [4, 4], [4, 2], [2, 2]]
OTHER_OUTER = [[20, 20], [30, 20], [30, 30], [20, 30], [20, 20]]


class TestFeatureToGeoJSON(unittest.TestCase):
    """Test conversion of tile features to GeoJSON."""

    def test_single_point(self):
        """Test one point part stays a Point."""
        result = feature_to_geojson(TileFeature(GeometryType.POINT, [[5, 6]], {'a': 1}))
        self.assertEqual(result['geometry'], {'type': 'Point', 'coordinates': [5, 6]})
        self.assertEqual(result['properties'], {'a': 1})
        self.assertNotIn('id', result)

    def test_multi_point(self):
        """Test several point parts become a MultiPoint."""
        result = feature_to_geojson(TileFeature(GeometryType.POINT, [[5, 6], [7, 8]], {}))
        self.assertEqual(result['geometry']['type'], 'MultiPoint')
        self.assertEqual(result['geometry']['coordinates'], [[5, 6], [7, 8]])

    def test_multi_line_string(self):
        """Test three line parts become a MultiLineString of three lines."""
        parts = [[[0, 0], [1, 1]], [[2, 2], [3, 3]], [[4, 4], [5, 5]]]
        result = feature_to_geojson(TileFeature(GeometryType.LINESTRING, parts, {'name': 'trip'}, id=4))

        self.assertEqual(result['geometry']['type'], 'MultiLineString')
        self.assertEqual(result['geometry']['coordinates'], parts)
        self.assertEqual(result['properties'], {'name': 'trip'})
        self.assertEqual(result['id'], 4)

    def test_single_line_string(self):
        """Test one line part stays a LineString."""
        result = feature_to_geojson(TileFeature(GeometryType.LINESTRING, [[[0, 0], [1, 1]]], {}))
        self.assertEqual(result['geometry']['type'], 'LineString')
        self.assertEqual(result['geometry']['coordinates'], [[0, 0], [1, 1]])

    def test_polygon_with_hole(self):
        """Test an outer ring and its hole form one Polygon."""
        result = feature_to_geojson(TileFeature(GeometryType.POLYGON, [OUTER, HOLE], {}))
        self.assertEqual(result['geometry']['type'], 'Polygon')
        self.assertEqual(result['geometry']['coordinates'], [OUTER, HOLE])

    def test_multi_polygon(self):
        """Test two outer rings form a MultiPolygon."""
        result = feature_to_geojson(TileFeature(GeometryType.POLYGON, [OUTER, HOLE, OTHER_OUTER], {}))
        self.assertEqual(result['geometry']['type'], 'MultiPolygon')
        self.assertEqual(result['geometry']['coordinates'], [[OUTER, HOLE], [OTHER_OUTER]])

    def test_output_does_not_alias_feature(self):
        """Test changing the output leaves the tile feature alone."""
        properties = {'name': 'trip'}
        tile_feature = TileFeature(GeometryType.LINESTRING, [[[0, 0], [1, 1]]], properties)

        result = feature_to_geojson(tile_feature)
        result['properties']['name'] = 'changed'
        result['geometry']['coordinates'][0][0] = 99

        self.assertEqual(properties, {'name': 'trip'})
        self.assertEqual(tile_feature.geometry, [[[0, 0], [1, 1]]])

    def test_tile_to_geojson(self):
        """Test a tile becomes a FeatureCollection."""
        result = tile_to_geojson([TileFeature(GeometryType.POINT, [[1, 2]], {})])
        self.assertEqual(result['type'], 'FeatureCollection')
        self.assertEqual(len(result['features']), 1)
        self.assertEqual(tile_to_geojson(None)['features'], [])

    def test_feature_to_shape(self):
        """Test shapely geometry of a polygon with a hole."""
        geometry = feature_to_shape(TileFeature(GeometryType.POLYGON, [OUTER, HOLE], {}))
        self.assertEqual(geometry.geom_type, 'Polygon')
        self.assertEqual(geometry.area, 96)


class TestClassifyRings(unittest.TestCase):
    """Test grouping rings into polygons."""

    def test_leading_hole_starts_polygon(self):
        """Test a counter-clockwise first ring still starts a polygon."""
        self.assertEqual(classify_rings([HOLE]), [[HOLE]])

    def test_degenerate_rings_skipped(self):
        """Test rings without area are dropped."""
        flat = [[0, 0], [5, 0], [0, 0], [0, 0]]
        self.assertEqual(classify_rings([OUTER, flat]), [[OUTER]])


if __name__ == '__main__':
    unittest.main(verbosity=2)
