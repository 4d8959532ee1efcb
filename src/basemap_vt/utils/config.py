"""
Configuration

Options for building a tile index and settings for the tile server.
Index options are plain dataclasses validated on construction; server
settings are read from the environment.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

# Deepest zoom a tile key can address
MAX_ZOOM_CEILING = 24

# camelCase option names accepted alongside the snake_case field names
_OPTION_ALIASES = {
    'maxZoom': 'max_zoom',
    'indexMaxZoom': 'index_max_zoom',
    'maxPointsPerTile': 'max_points_per_tile',
    'indexMaxPoints': 'max_points_per_tile',
    'promoteId': 'promote_id',
    'generateId': 'generate_id',
}


@dataclass
class TileIndexOptions:
    """Options controlling how a tile index is built and sliced."""
    extent: int = 4096
    max_zoom: int = 14
    index_max_zoom: int = 5
    max_points_per_tile: int = 100000
    tolerance: float = 3.0
    buffer: float = 64.0
    promote_id: Optional[str] = None
    generate_id: bool = False

    def __post_init__(self):
        if isinstance(self.extent, bool) or not isinstance(self.extent, int) or self.extent <= 0:
            raise ValueError(f"extent must be a positive integer, got {self.extent!r}")

        if not isinstance(self.max_zoom, int) or not 0 <= self.max_zoom <= MAX_ZOOM_CEILING:
            raise ValueError(
                f"max_zoom should be in the 0-{MAX_ZOOM_CEILING} range, got {self.max_zoom!r}"
            )

        if not isinstance(self.index_max_zoom, int) or self.index_max_zoom < 0:
            raise ValueError(f"index_max_zoom must be >= 0, got {self.index_max_zoom!r}")
        self.index_max_zoom = min(self.index_max_zoom, self.max_zoom)

        if not isinstance(self.max_points_per_tile, int) or self.max_points_per_tile < 0:
            raise ValueError(
                f"max_points_per_tile must be >= 0, got {self.max_points_per_tile!r}"
            )

        if self.tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance!r}")

        if self.buffer < 0:
            raise ValueError(f"buffer must be >= 0, got {self.buffer!r}")

        if self.promote_id and self.generate_id:
            raise ValueError("promote_id and generate_id cannot be used together")

    @classmethod
    def from_dict(cls, options: Optional[Mapping[str, Any]] = None) -> 'TileIndexOptions':
        """Build options from a mapping using snake_case or camelCase keys."""
        if not options:
            return cls()

        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown tile index option: {key}")
            kwargs[name] = value

        return cls(**kwargs)

    @property
    def simplify_tolerance(self) -> float:
        """Squared tolerance used when importance is computed at ingest time."""
        return (self.tolerance / ((1 << self.max_zoom) * self.extent)) ** 2

    def tile_tolerance(self, z: int) -> float:
        """Simplification tolerance of a tile at zoom ``z`` in normalized units."""
        if z == self.max_zoom:
            return 0.0
        return self.tolerance / ((1 << z) * self.extent)


@dataclass
class ServerConfig:
    """Settings for the HTTP tile server."""
    geojson_path: str = "data/source.geojson"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    extent: int = 4096
    max_zoom: int = 14

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        return cls(
            geojson_path=os.getenv("GEOJSON_PATH", cls.geojson_path),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            extent=int(os.getenv("TILE_EXTENT", str(cls.extent))),
            max_zoom=int(os.getenv("TILE_MAX_ZOOM", str(cls.max_zoom))),
        )

    def index_options(self) -> TileIndexOptions:
        return TileIndexOptions(extent=self.extent, max_zoom=self.max_zoom)
