"""
Scan exports: elevation raster as CSV and boundary mesh as Wavefront OBJ.

Both produce plain text; callers decide where it goes.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from spatial_coverage.core.boundary import PointLike, as_point
from spatial_coverage.core.elevation_grid import ElevationGrid
from spatial_coverage.data.models import GeoVertex

logger = logging.getLogger('catchwalk.coverage.export')


def dem_to_csv(grid: ElevationGrid, origin: GeoVertex) -> str:
    """
    Elevation raster as CSV.

    Three comment lines (origin, cell size, sample bounds) and a blank line,
    then one row per raster row at 3 decimal places. A grid without samples
    gives the header only, with zero bounds.
    """
    bounds = grid.get_bounds()
    if bounds is None:
        min_x = max_x = min_y = max_y = 0
    else:
        min_x, max_x = bounds.min_x, bounds.max_x
        min_y, max_y = bounds.min_y, bounds.max_y

    lines = [
        f"# DEM Export - Origin: {origin.lat}, {origin.lon}",
        f"# Cell Size: {grid.cell_size} m",
        f"# Bounds: X[{min_x}, {max_x}] Y[{min_y}, {max_y}]",
        "",
    ]
    for row in grid.to_raster():
        lines.append(",".join(f"{v:.3f}" for v in row))

    logger.debug("DEM export: %d rows", len(lines) - 4)
    return "\n".join(lines)


def boundary_to_obj(
    boundary: Sequence[PointLike],
    grid: Optional[ElevationGrid] = None,
    generated: Optional[datetime] = None,
) -> str:
    """
    Boundary polygon as a single-face OBJ mesh.

    Args:
        boundary: Polygon points in local metres
        grid: Elevation grid; vertices take its interpolated elevation,
            z = 0 without one (or without samples)
        generated: Timestamp for the header (default: now, UTC)
    """
    if generated is None:
        generated = datetime.now(timezone.utc)

    lines = [
        "# Catchment Scan Mesh",
        f"# Generated: {generated.isoformat()}",
        "",
    ]

    points = [as_point(p) for p in boundary]
    for p in points:
        z = grid.interpolate(p.x, p.y) if grid is not None else None
        if z is None:
            z = 0.0
        lines.append(f"v {p.x:.4f} {p.y:.4f} {z:.4f}")

    lines.append("")

    # One polygon face over every vertex (OBJ indices are 1-based)
    if len(points) >= 3:
        lines.append("f " + " ".join(str(i + 1) for i in range(len(points))))

    return "\n".join(lines)
