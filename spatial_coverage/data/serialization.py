"""
Explicit serialization for coverage value objects.

Every loader re-validates through the normal constructors, so a payload
that would not construct in code does not load either; malformed input
raises ValidationError. Floats pass through json unchanged (repr
round-trips exactly).
"""

import json
import math
from typing import Any, Dict, List

from spatial_coverage.core.boundary import Boundary
from spatial_coverage.core.elevation_grid import ElevationGrid
from spatial_coverage.core.geo_polygon import GeoPolygon
from spatial_coverage.data.models import (
    CoverageStats,
    ElevationSample,
    GeoVertex,
    Point,
)
from spatial_coverage.errors import ValidationError


def _number(data: Dict[str, Any], key: str, context: str) -> float:
    """Fetch a finite number from a mapping."""
    if not isinstance(data, dict):
        raise ValidationError(f"{context}: expected an object, got {type(data).__name__}")
    if key not in data:
        raise ValidationError(f"{context}: missing '{key}'")
    value = data[key]
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{context}: '{key}' must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{context}: '{key}' must be finite, got {value!r}")
    return value


def _list(data: Dict[str, Any], key: str, context: str) -> List[Any]:
    if not isinstance(data, dict):
        raise ValidationError(f"{context}: expected an object, got {type(data).__name__}")
    value = data.get(key)
    if not isinstance(value, list):
        raise ValidationError(f"{context}: '{key}' must be a list")
    return value


# =============================================================================
# Geometry
# =============================================================================

def geo_polygon_to_dict(polygon: GeoPolygon) -> Dict[str, Any]:
    return {"vertices": [{"lat": v.lat, "lon": v.lon} for v in polygon.vertices]}


def geo_polygon_from_dict(data: Dict[str, Any]) -> GeoPolygon:
    """
    Load a GeoPolygon.

    Vertices may be {"lat": .., "lon": ..} objects or [lat, lon] pairs.
    """
    vertices = []
    for i, raw in enumerate(_list(data, "vertices", "GeoPolygon")):
        context = f"GeoPolygon vertex {i}"
        if isinstance(raw, (list, tuple)):
            if len(raw) != 2:
                raise ValidationError(f"{context}: expected [lat, lon], got {raw!r}")
            raw = {"lat": raw[0], "lon": raw[1]}
        vertices.append(GeoVertex(
            lat=_number(raw, "lat", context),
            lon=_number(raw, "lon", context),
        ))
    return GeoPolygon.create(vertices)


def boundary_to_dict(boundary: Boundary) -> Dict[str, Any]:
    return {"points": [{"x": p.x, "y": p.y} for p in boundary.points]}


def boundary_from_dict(data: Dict[str, Any]) -> Boundary:
    points = []
    for i, raw in enumerate(_list(data, "points", "Boundary")):
        context = f"Boundary point {i}"
        points.append(Point(x=_number(raw, "x", context), y=_number(raw, "y", context)))
    return Boundary.from_points(points)


# =============================================================================
# Elevation
# =============================================================================

def elevation_sample_to_dict(sample: ElevationSample) -> Dict[str, Any]:
    return {
        "x": sample.x,
        "y": sample.y,
        "elevation": sample.elevation,
        "accuracy": sample.accuracy,
        "source": sample.source,
        "timestamp": sample.timestamp,
    }


def elevation_sample_from_dict(data: Dict[str, Any]) -> ElevationSample:
    context = "ElevationSample"
    source = data.get("source") if isinstance(data, dict) else None
    if not isinstance(source, str):
        raise ValidationError(f"{context}: 'source' must be a string, got {source!r}")
    return ElevationSample(
        x=_number(data, "x", context),
        y=_number(data, "y", context),
        elevation=_number(data, "elevation", context),
        accuracy=_number(data, "accuracy", context),
        source=source,
        timestamp=_number(data, "timestamp", context),
    )


def elevation_grid_to_dict(grid: ElevationGrid) -> Dict[str, Any]:
    return {
        "cell_size": grid.cell_size,
        "samples": [elevation_sample_to_dict(s) for s in grid.samples],
    }


def elevation_grid_from_dict(data: Dict[str, Any], index=None) -> ElevationGrid:
    """Rebuild a grid, optionally into a specific sample index."""
    grid = ElevationGrid(cell_size=_number(data, "cell_size", "ElevationGrid"), index=index)
    for raw in _list(data, "samples", "ElevationGrid"):
        grid.add_sample(elevation_sample_from_dict(raw))
    return grid


# =============================================================================
# Stats
# =============================================================================

def stats_to_dict(stats: CoverageStats) -> Dict[str, Any]:
    return {
        "covered_area_m2": stats.covered_area_m2,
        "voxel_count": stats.voxel_count,
        "coverage_percent": stats.coverage_percent,
        "expected_area_m2": stats.expected_area_m2,
        "is_complete": stats.is_complete,
    }


# =============================================================================
# JSON helpers
# =============================================================================

def to_json(data: Any, indent: int = 2) -> str:
    return json.dumps(data, indent=indent)


def from_json(text: str) -> Any:
    """Parse JSON text, raising ValidationError on malformed input."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e


def load_geo_polygon(path: str) -> GeoPolygon:
    """Read a GeoPolygon JSON file."""
    with open(path, 'r') as f:
        return geo_polygon_from_dict(from_json(f.read()))
