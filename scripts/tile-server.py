#!/usr/bin/env python3
"""
Basemap Tile Server

A FastAPI-based tile server that slices a GeoJSON document on demand.
The document is loaded once at startup; tiles are cut from the in-memory
index the first time they are requested and cached by the index afterwards.
"""

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from basemap_vt import InvalidCoordinateError, InvalidInputError, TileIndex, build  # noqa: E402
from basemap_vt.tile_generation.vector_tile_generator import VectorTileGenerator  # noqa: E402
from basemap_vt.utils.config import MAX_ZOOM_CEILING, ServerConfig  # noqa: E402
from basemap_vt.utils.logging_config import configure_logging  # noqa: E402
from basemap_vt.utils.spatial_utils import SpatialUtils  # noqa: E402

config = ServerConfig.from_env()
configure_logging(config.log_level)

logger = structlog.get_logger()

MEDIA_TYPES = {
    "mvt": "application/x-protobuf",
    "pbf": "application/x-protobuf",
    "geojson": "application/json",
}

# Create FastAPI app
app = FastAPI(
    title="Basemap Tile Server",
    description="On-demand vector tiles sliced from a GeoJSON document",
    version="1.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Index built from the source document
state: Dict[str, Any] = {"index": None, "generators": {}}


def set_index(index: Optional[TileIndex]) -> None:
    """Replace the served index, discarding the previous one."""
    state["index"] = index
    state["generators"] = {}
    if index is not None:
        state["generators"] = {
            "mvt": VectorTileGenerator(index, output_format="mvt"),
            "pbf": VectorTileGenerator(index, output_format="pbf"),
            "geojson": VectorTileGenerator(index, output_format="geojson"),
        }


async def load_index(path: Path) -> TileIndex:
    """Read the source document and build the tile index from it."""
    async with aiofiles.open(path, 'r', encoding='utf-8') as f:
        content = await f.read()

    try:
        document = json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Malformed JSON in {path}: {e}") from e

    return build(document, config.index_options())


def require_index() -> TileIndex:
    index = state["index"]
    if index is None:
        raise HTTPException(status_code=503, detail="Tile index not loaded")
    return index


@app.on_event("startup")
async def startup_event():
    """Build the tile index from the configured document."""
    source = Path(config.geojson_path)
    logger.info("Starting Basemap Tile Server", source=str(source), port=config.port)

    if state["index"] is not None:
        return

    if not source.exists():
        logger.warning("Source document not found, serving no tiles", source=str(source))
        return

    set_index(await load_index(source))
    logger.info("Tile server initialized successfully", **state["index"].stats)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down Basemap Tile Server")
    set_index(None)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    index = state["index"]
    return {
        "status": "healthy" if index is not None else "degraded",
        "service": "basemap-tile-server",
        "version": "1.1.0",
        "index_loaded": index is not None,
        "tiles_materialized": len(index.tiles) if index is not None else 0
    }


@app.get("/")
async def root():
    """Root endpoint with server information."""
    return {
        "service": "Basemap Tile Server",
        "version": "1.1.0",
        "endpoints": {
            "health": "/health",
            "tiles": "/tiles/{z}/{x}/{y}.{format}",
            "tile_info": "/tiles/{z}/{x}/{y}/info",
            "bounds": "/bounds/{z}/{x}/{y}",
            "stats": "/stats",
            "metrics": "/metrics",
            "docs": "/docs"
        },
        "supported_formats": sorted(MEDIA_TYPES)
    }


# plain def: lazy splits and encoding run in the threadpool, off the event loop
@app.get("/tiles/{z}/{x}/{y}.{format}")
def get_tile(z: int, x: int, y: int, format: str):
    """
    Serve a map tile.

    Args:
        z: Zoom level
        x: Tile X coordinate
        y: Tile Y coordinate
        format: Tile format (mvt, pbf, geojson)
    """
    if format not in MEDIA_TYPES:
        raise HTTPException(status_code=400, detail="Unsupported format")

    require_index()
    tile_data = state["generators"][format].generate_single_tile(z, x, y)

    if tile_data is None:
        raise HTTPException(status_code=404, detail="Tile not found")

    logger.info("Serving tile", z=z, x=x, y=y, format=format, size_bytes=len(tile_data))

    return Response(
        content=tile_data,
        media_type=MEDIA_TYPES[format],
        headers={"Cache-Control": "public, max-age=3600"}
    )


@app.get("/tiles/{z}/{x}/{y}/info")
def get_tile_info(z: int, x: int, y: int):
    """Metadata and placement transform for a materialized tile."""
    index = require_index()
    node = index.get_tile_node(z, x, y)

    if node is None:
        raise HTTPException(status_code=404, detail="Tile not found")

    placement = SpatialUtils.tile_transform(z, x, y, node.extent)
    west, south, east, north = node.bbox

    return {
        "z": z,
        "x": x,
        "y": y,
        "extent": node.extent,
        "features": len(node.features),
        "num_points": node.num_points,
        "num_simplified": node.num_simplified,
        "bbox": {"west": west, "south": south, "east": east, "north": north},
        "transform": {
            "scale": list(placement.scale),
            "origin": list(placement.origin)
        }
    }


@app.get("/stats")
async def get_stats():
    """Get index statistics."""
    index = require_index()
    return {
        **index.stats,
        "metrics": index.metrics.get_metrics_summary()
    }


@app.get("/metrics")
async def get_metrics():
    """Prometheus metrics of the served index."""
    index = require_index()
    return Response(content=index.metrics.export_prometheus(), media_type="text/plain")


@app.get("/bounds/{z}/{x}/{y}")
async def get_tile_bounds(z: int, x: int, y: int):
    """Get geographic bounds for a tile."""
    try:
        SpatialUtils.validate_tile_coordinate(z, x, y, MAX_ZOOM_CEILING)
    except InvalidCoordinateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    west, south, east, north = SpatialUtils.tile_to_bbox(x, y, z)

    return {
        "z": z,
        "x": x,
        "y": y,
        "bounds": {"west": west, "south": south, "east": east, "north": north},
        "bbox": [west, south, east, north]
    }


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        reload=False,
        log_level=config.log_level,
        access_log=True
    )
