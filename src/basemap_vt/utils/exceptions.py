"""
Exception Taxonomy

Errors raised while building and querying a tile index. Structural problems
with the source document abort the build; problems with a single feature are
recorded and the feature is skipped; bad tile coordinates never escape a query.
"""

from typing import Optional


class TileEngineError(Exception):
    """Base class for all tile engine errors."""


class InvalidInputError(TileEngineError, ValueError):
    """The source document is empty or malformed. Fatal for a build."""


class InvalidGeometryError(TileEngineError, ValueError):
    """A single feature's geometry is unusable and the feature is skipped."""

    def __init__(self, reason: str, feature_index: Optional[int] = None):
        self.reason = reason
        self.feature_index = feature_index
        if feature_index is None:
            message = reason
        else:
            message = f"Feature {feature_index}: {reason}"
        super().__init__(message)


class InvalidCoordinateError(TileEngineError, ValueError):
    """A tile coordinate is outside the valid range for its zoom level."""

    def __init__(self, z, x, y, reason: str = "out of range"):
        self.z = z
        self.x = x
        self.y = y
        super().__init__(f"Invalid tile coordinate {z}/{x}/{y}: {reason}")
