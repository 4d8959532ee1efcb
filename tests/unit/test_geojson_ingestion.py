"""
Unit Tests for GeoJSON Data Ingestion
"""

import json
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

sys.path.append(str(Path(__file__).parent.parent.parent / "src"))

from basemap_vt.data_ingestion.geojson_ingestion import GeoJSONIngester
from basemap_vt.tile_generation.features import GeometryType
from basemap_vt.utils.config import TileIndexOptions
from basemap_vt.utils.exceptions import InvalidGeometryError, InvalidInputError


def feature(geometry, properties=None, **extra):
    data = {'type': 'Feature', 'geometry': geometry, 'properties': properties}
    data.update(extra)
    return data


def collection(*features):
    return {'type': 'FeatureCollection', 'features': list(features)}


LINE = {'type': 'LineString', 'coordinates': [[-10, 10], [10, 10]]}
SQUARE = {
    'type': 'Polygon',
    'coordinates': [[[-20, -20], [20, -20], [20, 20], [-20, 20], [-20, -20]]]
}


class TestGeoJSONIngester(unittest.TestCase):
    """Test suite for GeoJSON ingestion."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.mock_metrics = Mock()
        self.ingester = GeoJSONIngester(metrics_collector=self.mock_metrics)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_initialization(self):
        """Test ingester initialization."""
        self.assertIsInstance(self.ingester.options, TileIndexOptions)
        self.assertEqual(self.ingester.geometry_errors, [])
        self.assertEqual(self.ingester.stats['records_processed'], 0)

    def test_ingest_feature_collection(self):
        """Test a collection with every geometry type."""
        document = collection(
            feature({'type': 'Point', 'coordinates': [0, 0]}, {'name': 'origin'}),
            feature({'type': 'MultiPoint', 'coordinates': [[1, 1], [2, 2]]}),
            feature(LINE),
            feature({'type': 'MultiLineString', 'coordinates': [[[0, 0], [1, 1]], [[2, 2], [3, 3]]]}),
            feature(SQUARE),
            feature({'type': 'MultiPolygon', 'coordinates': [SQUARE['coordinates']]})
        )

        features = self.ingester.ingest(document)

        self.assertEqual(
            [f.type for f in features],
            [GeometryType.POINT, GeometryType.POINT, GeometryType.LINESTRING,
             GeometryType.LINESTRING, GeometryType.POLYGON, GeometryType.POLYGON]
        )
        self.assertEqual(len(features[1].geometry), 2)
        self.assertEqual(len(features[3].geometry), 2)
        self.assertEqual(features[0].properties, {'name': 'origin'})
        self.assertEqual(self.ingester.stats['records_processed'], 6)

    def test_bare_geometry_and_single_feature(self):
        """Test documents that are a lone geometry or a lone feature."""
        self.assertEqual(len(self.ingester.ingest(LINE)), 1)
        self.assertEqual(len(self.ingester.ingest(feature(SQUARE))), 1)

    def test_null_properties_become_empty(self):
        """Test features without properties get an empty mapping."""
        [result] = self.ingester.ingest(feature(LINE))
        self.assertEqual(result.properties, {})

    def test_properties_not_mutated(self):
        """Test source properties are copied, not shared."""
        properties = {'name': 'route', 'lanes': 2}
        document = collection(feature(LINE, properties))

        [result] = self.ingester.ingest(document)
        result.properties['name'] = 'changed'

        self.assertEqual(properties, {'name': 'route', 'lanes': 2})

    def test_projection_and_bbox(self):
        """Test positions land in the normalized square."""
        [result] = self.ingester.ingest(feature({'type': 'Point', 'coordinates': [0, 0]}))
        x, y, _ = result.geometry[0]
        self.assertAlmostEqual(x, 0.5)
        self.assertAlmostEqual(y, 0.5)
        self.assertAlmostEqual(result.min_x, 0.5)
        self.assertAlmostEqual(result.max_y, 0.5)

    def test_line_size_and_ranking(self):
        """Test lines carry their length and ranked endpoints."""
        [result] = self.ingester.ingest(feature(LINE))
        [path] = result.geometry
        self.assertAlmostEqual(path.size, 20 / 360)
        self.assertEqual(path.points[0][2], 1)
        self.assertEqual(path.points[-1][2], 1)

    def test_geometry_collection(self):
        """Test collection members become separate features sharing attributes."""
        geometry = {
            'type': 'GeometryCollection',
            'geometries': [{'type': 'Point', 'coordinates': [0, 0]}, LINE]
        }
        features = self.ingester.ingest(feature(geometry, {'name': 'mixed'}, id=7))

        self.assertEqual([f.type for f in features], [GeometryType.POINT, GeometryType.LINESTRING])
        self.assertTrue(all(f.properties == {'name': 'mixed'} for f in features))
        self.assertTrue(all(f.id == 7 for f in features))

    def test_promote_id(self):
        """Test feature ids taken from a property."""
        ingester = GeoJSONIngester(TileIndexOptions(promote_id='code'), self.mock_metrics)
        [result] = ingester.ingest(feature(LINE, {'code': 'A1'}, id=3))
        self.assertEqual(result.id, 'A1')

    def test_generate_id(self):
        """Test feature ids generated from input order."""
        ingester = GeoJSONIngester(TileIndexOptions(generate_id=True), self.mock_metrics)
        features = ingester.ingest(collection(feature(LINE), feature(SQUARE)))
        self.assertEqual([f.id for f in features], [0, 1])

    def test_invalid_features_skipped(self):
        """Test features with bad geometry are recorded and skipped."""
        document = collection(
            feature(LINE),
            feature({'type': 'Polygon', 'coordinates': [[[0, 0], [1, 0], [1, 1], [0, 1]]]}),
            feature({'type': 'Point', 'coordinates': [0, 95]}),
            feature(None),
            feature({'type': 'Circle', 'coordinates': [0, 0]}),
            feature({'type': 'LineString', 'coordinates': [[1, 1], [1, 1]]}),
            feature({'type': 'Polygon', 'coordinates': [[[0, 0], [1, 1], [0, 0], [0, 0]]]}),
            feature({'type': 'Point', 'coordinates': ['a', 0]})
        )

        features = self.ingester.ingest(document)

        self.assertEqual(len(features), 1)
        errors = self.ingester.geometry_errors
        self.assertEqual([e.feature_index for e in errors], [1, 2, 3, 4, 5, 6, 7])
        self.assertTrue(all(isinstance(e, InvalidGeometryError) for e in errors))
        self.assertIn("not closed", errors[0].reason)
        self.assertIn("Feature 2", str(errors[1]))
        self.assertEqual(self.ingester.stats['records_failed'], 7)
        self.mock_metrics.increment_counter.assert_called_with('invalid_geometries_total')

    def test_all_features_invalid(self):
        """Test a document with no usable feature is rejected."""
        document = collection(feature(None), feature({'type': 'Point', 'coordinates': [200, 0]}))

        with self.assertRaises(InvalidInputError) as context:
            self.ingester.ingest(document)
        self.assertIn("All 2 features", str(context.exception))

    def test_invalid_documents(self):
        """Test structurally invalid documents."""
        invalid = [
            [],
            {'type': 'FeatureCollection', 'features': []},
            {'type': 'FeatureCollection'},
            {'type': 'Topology'},
            {'type': 'Feature'},
            '{"type": "Feature", ',
            42,
        ]
        for document in invalid:
            with self.subTest(document=document):
                with self.assertRaises(InvalidInputError):
                    self.ingester.ingest(document)

    def test_json_string(self):
        """Test ingesting a serialized document."""
        features = self.ingester.ingest(json.dumps(collection(feature(LINE))))
        self.assertEqual(len(features), 1)

    def test_extract_from_file(self):
        """Test reading a GeoJSON file."""
        path = Path(self.temp_dir) / "routes.geojson"
        path.write_text(json.dumps(collection(feature(LINE), feature(SQUARE))))

        features = self.ingester.ingest(path)
        self.assertEqual(len(features), 2)

        features = self.ingester.ingest(str(path))
        self.assertEqual(len(features), 2)

    def test_file_not_found(self):
        """Test missing files raise FileNotFoundError."""
        with self.assertRaises(FileNotFoundError):
            self.ingester.ingest(Path(self.temp_dir) / "missing.geojson")
        self.assertTrue(self.ingester.stats['errors'])

    def test_unsupported_file_format(self):
        """Test unsupported file suffixes."""
        path = Path(self.temp_dir) / "routes.txt"
        path.write_text(json.dumps(LINE))

        with self.assertRaises(InvalidInputError):
            self.ingester.ingest(path)


if __name__ == '__main__':
    unittest.main(verbosity=2, buffer=True)
