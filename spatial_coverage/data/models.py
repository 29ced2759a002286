"""
Core data structures for the spatial coverage engine.

Unit Conventions
----------------
All measurements in this module use SI units unless otherwise noted:

- Time: seconds (float, Unix timestamps)
- Distance: metres
- Acceleration: metres per second squared (m/s²)
- Pressure: hectopascals (hPa)
- Coordinates: decimal degrees (WGS84) for geodetic values, local metres
  (East-positive x, North-positive y) for planar values

Value objects are frozen dataclasses so they can be shared freely between
the sensor threads and the tracking worker.
"""

import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from spatial_coverage.config import AUTO_COMPLETE_THRESHOLD
from spatial_coverage.errors import ValidationError

if TYPE_CHECKING:
    from spatial_coverage.core.voxel import Voxel


ELEVATION_SOURCES = ("barometer", "gps", "lidar")


@dataclass(frozen=True)
class GeoVertex:
    """
    WGS84 vertex.

    Attributes:
        lat: Latitude in decimal degrees (-90 to +90).
        lon: Longitude in decimal degrees (-180 to +180).
    """
    lat: float
    lon: float

    def validate(self) -> "GeoVertex":
        """Raise ValidationError if either coordinate is out of range."""
        if not isinstance(self.lat, (int, float)) or math.isnan(self.lat):
            raise ValidationError(f"Invalid latitude: {self.lat!r}")
        if not isinstance(self.lon, (int, float)) or math.isnan(self.lon):
            raise ValidationError(f"Invalid longitude: {self.lon!r}")
        if self.lat < -90 or self.lat > 90:
            raise ValidationError(
                f"Invalid latitude {self.lat}: must be between -90 and 90"
            )
        if self.lon < -180 or self.lon > 180:
            raise ValidationError(
                f"Invalid longitude {self.lon}: must be between -180 and 180"
            )
        return self


@dataclass(frozen=True)
class Point:
    """Planar point in local metres (origin defined by context)."""
    x: float
    y: float


@dataclass(frozen=True)
class GeoBounds:
    """Lat/lon bounding box of a GeoPolygon."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


@dataclass(frozen=True)
class GridBounds:
    """Bounding box of stored elevation samples, including elevation range."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    min_z: float
    max_z: float


@dataclass(frozen=True)
class SlopeVector:
    """
    Surface gradient at a point.

    Attributes:
        dx: Rise over run along x (East).
        dy: Rise over run along y (North).
    """
    dx: float
    dy: float

    @property
    def magnitude(self) -> float:
        """Steepest gradient (rise/run)."""
        return math.hypot(self.dx, self.dy)


@dataclass(frozen=True)
class GapInfo:
    """
    Uncovered cell inside a boundary.

    Attributes:
        center_x: Cell centre x in local metres.
        center_y: Cell centre y in local metres.
        area_m2: Cell area in square metres.
    """
    center_x: float
    center_y: float
    area_m2: float


@dataclass(frozen=True)
class CoverageStats:
    """
    Derived coverage figures for a session.

    Attributes:
        covered_area_m2: voxel_count * voxel_size².
        voxel_count: Number of painted voxels counted toward coverage.
        coverage_percent: 0-100 relative to the boundary, None without one.
        expected_area_m2: Boundary area, None without a boundary.
        is_complete: True once coverage_percent reaches the threshold.
    """
    covered_area_m2: float
    voxel_count: int
    coverage_percent: Optional[float]
    expected_area_m2: Optional[float]
    is_complete: bool

    @classmethod
    def from_counts(
        cls,
        voxel_count: int,
        voxel_size: float,
        boundary_area: Optional[float],
    ) -> "CoverageStats":
        """Build stats from a voxel count and an optional boundary area."""
        covered = voxel_count * (voxel_size * voxel_size)
        percent = None
        if boundary_area is not None and boundary_area > 0:
            percent = min(100.0, covered / boundary_area * 100.0)

        return cls(
            covered_area_m2=covered,
            voxel_count=voxel_count,
            coverage_percent=percent,
            expected_area_m2=boundary_area,
            is_complete=percent is not None and percent >= AUTO_COMPLETE_THRESHOLD,
        )


@dataclass(frozen=True)
class PaintResult:
    """Outcome of painting one world point into a coverage session."""
    voxel: "Voxel"
    is_new: bool
    is_inside_boundary: bool


@dataclass(frozen=True)
class ElevationSample:
    """
    Single elevation measurement.

    Attributes:
        x, y: Local metres from the session origin.
        elevation: Metres relative to the first sample of the session.
        accuracy: ± metres, must be positive. Smaller is better.
        source: 'barometer', 'gps' or 'lidar'.
        timestamp: Unix timestamp in seconds.
    """
    x: float
    y: float
    elevation: float
    accuracy: float
    source: str
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.accuracy > 0:
            raise ValidationError(
                f"Accuracy must be positive, got {self.accuracy!r}"
            )
        if self.source not in ELEVATION_SOURCES:
            raise ValidationError(
                f"Unknown elevation source {self.source!r}, "
                f"expected one of {', '.join(ELEVATION_SOURCES)}"
            )


def create_elevation_sample(
    x: float,
    y: float,
    elevation: float,
    accuracy: float,
    source: str,
    timestamp: Optional[float] = None,
) -> ElevationSample:
    """Create a validated ElevationSample, stamping it with now if needed."""
    if timestamp is None:
        timestamp = time.time()
    return ElevationSample(
        x=x,
        y=y,
        elevation=elevation,
        accuracy=accuracy,
        source=source,
        timestamp=timestamp,
    )


@dataclass(frozen=True)
class GPSFix:
    """
    One position fix from the GPS watch.

    Attributes:
        lat, lon: Decimal degrees (WGS84).
        accuracy: Horizontal accuracy estimate in metres.
        altitude: Metres above sea level, None if the receiver has no 3D fix.
        timestamp: Unix timestamp in seconds.
    """
    lat: float
    lon: float
    accuracy: float
    altitude: Optional[float] = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class InertialReading:
    """Accelerometer reading including gravity, in m/s²."""
    accel_x: float
    accel_y: float
    accel_z: float
    timestamp: float = field(default_factory=time.time)

    @property
    def total(self) -> float:
        """Magnitude of the acceleration vector."""
        return math.sqrt(self.accel_x ** 2 + self.accel_y ** 2 + self.accel_z ** 2)


@dataclass(frozen=True)
class PressureReading:
    """Barometric pressure reading in hPa."""
    pressure_hpa: float
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class FusedPosition:
    """
    Smoothed position recomputed on every GPS tick.

    Attributes:
        x, y: Local metres from the session origin.
        elevation: Metres (barometric or GPS altitude, 0 without either).
        confidence: 0-1, decays linearly with GPS accuracy.
    """
    x: float
    y: float
    elevation: float
    confidence: float


@dataclass
class VoxelRecord:
    """
    Painted cell with the bookkeeping visualisation needs.

    Mutable on purpose: the owning session bumps visit_count in place.
    """
    grid_x: int
    grid_y: int
    voxel_size: float
    elevation: Optional[float] = None
    visit_count: int = 0

    @property
    def key(self) -> str:
        return f"{self.grid_x},{self.grid_y}"

    @property
    def world_x(self) -> float:
        return (self.grid_x + 0.5) * self.voxel_size

    @property
    def world_y(self) -> float:
        return (self.grid_y + 0.5) * self.voxel_size

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form consumed by visualisation collaborators."""
        return {
            "key": self.key,
            "gridX": self.grid_x,
            "gridY": self.grid_y,
            "worldX": self.world_x,
            "worldY": self.world_y,
            "elevation": self.elevation if self.elevation is not None else 0.0,
            "visitCount": self.visit_count,
        }
