"""
GeoJSON Data Ingester

Loads a GeoJSON document and converts its features into projected features
ready to be sliced into tiles.

Document-level problems (not GeoJSON, empty collection) abort ingestion with
InvalidInputError. Problems confined to one feature (missing geometry,
unknown type, open or collapsed rings, positions out of range) are raised as
InvalidGeometryError, recorded, and the feature is skipped.
"""

import json
import math
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .base_ingester import BaseDataIngester
from ..monitoring.metrics import MetricsCollector
from ..tile_generation.features import GeometryType, ProjectedFeature, ProjectedPath
from ..utils.config import TileIndexOptions
from ..utils.exceptions import InvalidGeometryError, InvalidInputError
from ..utils.geometry_utils import GeometrySimplifier
from ..utils.spatial_utils import SpatialUtils

GEOMETRY_TYPES = (
    'Point', 'MultiPoint',
    'LineString', 'MultiLineString',
    'Polygon', 'MultiPolygon',
    'GeometryCollection'
)

SUPPORTED_SUFFIXES = ('.json', '.geojson')


class GeoJSONIngester(BaseDataIngester):
    """Ingester for GeoJSON feature collections, features and geometries."""

    def __init__(
        self,
        options: Optional[TileIndexOptions] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        spatial_utils: Optional[SpatialUtils] = None
    ):
        super().__init__(metrics_collector)
        self.options = options or TileIndexOptions()
        self.spatial_utils = spatial_utils or SpatialUtils()
        self.simplifier = GeometrySimplifier()
        self.geometry_errors: List[InvalidGeometryError] = []

    def extract(self, source: Any) -> Any:
        """
        Accept a parsed document, a JSON string, or a path to a GeoJSON file.
        """
        if isinstance(source, Mapping):
            return source

        if isinstance(source, str) and source.lstrip().startswith(('{', '[')):
            return self._parse_json(source)

        if isinstance(source, (str, Path)):
            return self._extract_from_file(Path(source))

        raise InvalidInputError(f"Unsupported GeoJSON source: {type(source).__name__}")

    def _extract_from_file(self, file_path: Path) -> Any:
        if not file_path.exists():
            raise FileNotFoundError(f"GeoJSON file not found: {file_path}")

        if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise InvalidInputError(f"Unsupported GeoJSON file format: {file_path.suffix}")

        self.logger.info("Reading GeoJSON file", file_path=str(file_path))
        return self._parse_json(file_path.read_text(encoding='utf-8'))

    @staticmethod
    def _parse_json(text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Malformed JSON: {e}") from e

    def validate(self, data: Any) -> bool:
        """
        Check the document's top-level structure.

        Raises:
            InvalidInputError: Describing the first structural problem found
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError("GeoJSON document must be an object")

        doc_type = data.get('type')

        if doc_type == 'FeatureCollection':
            features = data.get('features')
            if not isinstance(features, list):
                raise InvalidInputError("FeatureCollection has no features list")
            if not features:
                raise InvalidInputError("FeatureCollection is empty")
        elif doc_type == 'Feature':
            if 'geometry' not in data:
                raise InvalidInputError("Feature has no geometry member")
        elif doc_type not in GEOMETRY_TYPES:
            raise InvalidInputError(f"Input data is not a valid GeoJSON object: type={doc_type!r}")

        return True

    def transform(self, data: Mapping) -> List[ProjectedFeature]:
        """
        Project every usable feature, skipping and recording the rest.

        Raises:
            InvalidInputError: If no feature could be converted
        """
        self.geometry_errors = []
        doc_type = data.get('type')

        if doc_type == 'FeatureCollection':
            source_features = data['features']
        elif doc_type == 'Feature':
            source_features = [data]
        else:
            source_features = [{'type': 'Feature', 'geometry': data, 'properties': None}]

        features: List[ProjectedFeature] = []

        for index, feature in enumerate(source_features):
            try:
                features.extend(self._convert_feature(feature, index))
            except InvalidGeometryError as e:
                self.geometry_errors.append(e)
                self.stats['records_failed'] += 1
                self.metrics.increment_counter('invalid_geometries_total')
                self.logger.warning(
                    "Skipping invalid feature",
                    feature_index=index,
                    error=e.reason
                )

        self.stats['records_processed'] = len(features)

        if not features:
            if self.geometry_errors:
                raise InvalidInputError(
                    f"All {len(self.geometry_errors)} features have invalid geometry"
                )
            raise InvalidInputError("Document contains no usable features")

        return features

    def _convert_feature(self, feature: Any, index: int) -> List[ProjectedFeature]:
        if not isinstance(feature, Mapping):
            raise InvalidGeometryError("feature is not an object", index)

        geometry = feature.get('geometry')
        if geometry is None:
            raise InvalidGeometryError("missing geometry", index)

        properties = feature.get('properties')
        if properties is None:
            properties = {}
        elif not isinstance(properties, Mapping):
            raise InvalidGeometryError("properties must be an object", index)
        else:
            properties = dict(properties)

        feature_id = feature.get('id')
        if self.options.promote_id:
            feature_id = properties.get(self.options.promote_id)
        elif self.options.generate_id:
            feature_id = index

        converted: List[ProjectedFeature] = []
        self._convert_geometry(geometry, properties, feature_id, index, converted)
        return converted

    def _convert_geometry(
        self,
        geometry: Any,
        properties: Dict[str, Any],
        feature_id: Any,
        index: int,
        out: List[ProjectedFeature]
    ) -> None:
        if not isinstance(geometry, Mapping):
            raise InvalidGeometryError("geometry is not an object", index)

        geom_type = geometry.get('type')

        if geom_type == 'GeometryCollection':
            members = geometry.get('geometries')
            if not isinstance(members, list) or not members:
                raise InvalidGeometryError("empty GeometryCollection", index)
            for member in members:
                self._convert_geometry(member, properties, feature_id, index, out)
            return

        if geom_type not in GEOMETRY_TYPES:
            raise InvalidGeometryError(f"unrecognized geometry type {geom_type!r}", index)

        coords = geometry.get('coordinates')
        if not isinstance(coords, (list, tuple)) or not coords:
            raise InvalidGeometryError(f"{geom_type} has no coordinates", index)

        try:
            if geom_type == 'Point':
                feature_type = GeometryType.POINT
                converted = self._convert_points([coords])
            elif geom_type == 'MultiPoint':
                feature_type = GeometryType.POINT
                converted = self._convert_points(coords)
            elif geom_type == 'LineString':
                feature_type = GeometryType.LINESTRING
                converted = [self._convert_line(coords)]
            elif geom_type == 'MultiLineString':
                feature_type = GeometryType.LINESTRING
                converted = [self._convert_line(line) for line in coords]
            elif geom_type == 'Polygon':
                feature_type = GeometryType.POLYGON
                converted = [self._convert_polygon(coords)]
            else:
                feature_type = GeometryType.POLYGON
                converted = [self._convert_polygon(polygon) for polygon in coords]
        except InvalidGeometryError as e:
            raise InvalidGeometryError(e.reason, index) from e

        out.append(ProjectedFeature(
            type=feature_type,
            geometry=converted,
            properties=properties,
            id=feature_id
        ))

    def _convert_points(self, positions: Sequence) -> List[List[float]]:
        self._check_positions(positions, min_count=1)
        return [[x, y, 0.0] for x, y in self.spatial_utils.project(positions)]

    def _convert_line(self, positions: Sequence) -> ProjectedPath:
        self._check_positions(positions, min_count=2)

        points = [[x, y, 0.0] for x, y in self.spatial_utils.project(positions)]
        size = 0.0
        for (x0, y0, _), (x1, y1, _) in zip(points, points[1:]):
            size += math.hypot(x1 - x0, y1 - y0)

        if size == 0:
            raise InvalidGeometryError("zero-length line")

        self.simplifier.rank(points, self.options.simplify_tolerance)
        return ProjectedPath(points=points, size=size)

    def _convert_polygon(self, rings: Sequence) -> List[ProjectedPath]:
        if not isinstance(rings, (list, tuple)) or not rings:
            raise InvalidGeometryError("polygon has no rings")
        return [self._convert_ring(ring) for ring in rings]

    def _convert_ring(self, positions: Sequence) -> ProjectedPath:
        self._check_positions(positions, min_count=4)

        first, last = positions[0], positions[-1]
        if first[0] != last[0] or first[1] != last[1]:
            raise InvalidGeometryError("polygon ring is not closed")

        distinct = {(float(p[0]), float(p[1])) for p in positions}
        if len(distinct) < 3:
            raise InvalidGeometryError("polygon ring has fewer than 3 distinct positions")

        points = [[x, y, 0.0] for x, y in self.spatial_utils.project(positions)]
        area = 0.0
        for (x0, y0, _), (x1, y1, _) in zip(points, points[1:]):
            area += (x0 * y1 - x1 * y0) / 2

        if area == 0:
            raise InvalidGeometryError("polygon ring has no area")

        self.simplifier.rank(points, self.options.simplify_tolerance)
        return ProjectedPath(points=points, size=abs(area))

    @staticmethod
    def _check_positions(positions: Any, min_count: int) -> None:
        if not isinstance(positions, (list, tuple)) or len(positions) < min_count:
            raise InvalidGeometryError(f"expected at least {min_count} positions")

        for position in positions:
            if not isinstance(position, (list, tuple)) or len(position) < 2:
                raise InvalidGeometryError(f"malformed position {position!r}")

            lon, lat = position[0], position[1]
            for value in (lon, lat):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise InvalidGeometryError(f"non-numeric coordinate in {position!r}")
                if not math.isfinite(value):
                    raise InvalidGeometryError(f"non-finite coordinate in {position!r}")

            if not -180 <= lon <= 180 or not -90 <= lat <= 90:
                raise InvalidGeometryError(f"position out of range {position!r}")
