"""
Spatial coverage engine for catchwalk.

Grid-based coverage tracking with optional boundaries, geodetic polygons,
GPS + IMU position fusion and an accuracy-weighted elevation surface.

Example:
    from spatial_coverage import create_coverage_service

    service = create_coverage_service(0.05)   # 5cm grid
    result = service.paint(1.5, 2.3)
    if result and result.is_new:
        print("New area covered")
    print(service.get_stats().covered_area_m2)
"""

from spatial_coverage.adapters.coverage_port import CoverageSessionPort
from spatial_coverage.adapters.in_memory_adapter import (
    InMemoryCoverageAdapter,
    create_coverage_service,
)
from spatial_coverage.config import (
    AUTO_COMPLETE_THRESHOLD,
    DEFAULT_VOXEL_SIZE,
    MIN_BOUNDARY_POINTS,
    WALKING_VOXEL_SIZE,
)
from spatial_coverage.core.boundary import Boundary
from spatial_coverage.core.coverage_analyzer import CoverageAnalyzer
from spatial_coverage.core.coverage_session import CoverageSession
from spatial_coverage.core.elevation_grid import ElevationGrid
from spatial_coverage.core.geo_polygon import GeoPolygon
from spatial_coverage.core.position_fusion import (
    PositionFusionLoop,
    TrackingSnapshot,
    TrackingState,
)
from spatial_coverage.core.voxel import Voxel
from spatial_coverage.data.models import (
    CoverageStats,
    ElevationSample,
    FusedPosition,
    GapInfo,
    GeoVertex,
    GPSFix,
    GridBounds,
    InertialReading,
    PaintResult,
    Point,
    PressureReading,
    SlopeVector,
    create_elevation_sample,
)
from spatial_coverage.errors import (
    CoverageError,
    GeometryDegenerateError,
    InvalidStateError,
    UnavailableSensorError,
    ValidationError,
)
from spatial_coverage.utils.geometry import CoordinateTransform

__all__ = [
    'AUTO_COMPLETE_THRESHOLD',
    'DEFAULT_VOXEL_SIZE',
    'MIN_BOUNDARY_POINTS',
    'WALKING_VOXEL_SIZE',
    'Boundary',
    'CoordinateTransform',
    'CoverageAnalyzer',
    'CoverageError',
    'CoverageSession',
    'CoverageSessionPort',
    'CoverageStats',
    'ElevationGrid',
    'ElevationSample',
    'FusedPosition',
    'GapInfo',
    'GeoPolygon',
    'GeoVertex',
    'GeometryDegenerateError',
    'GPSFix',
    'GridBounds',
    'InMemoryCoverageAdapter',
    'InertialReading',
    'InvalidStateError',
    'PaintResult',
    'Point',
    'PositionFusionLoop',
    'PressureReading',
    'SlopeVector',
    'TrackingSnapshot',
    'TrackingState',
    'UnavailableSensorError',
    'ValidationError',
    'Voxel',
    'create_coverage_service',
    'create_elevation_sample',
]
