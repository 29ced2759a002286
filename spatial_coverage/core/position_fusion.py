"""
Position fusion loop - GPS + IMU complementary filter for walking coverage.

GPS gives absolute position (corrects drift), the accelerometer gives
relative motion between fixes (smooths), the barometer gives elevation.

State machine:
    IDLE -> TRACKING   start(boundary)
    TRACKING -> STOPPED stop()
    STOPPED -> TRACKING start(boundary) again (fresh session)

The loop is plain single-threaded state. The tracking handler owns one
instance and feeds it events from its worker thread; replay feeds it
directly. Events that arrive outside TRACKING are ignored.

Note: containment is tested on the raw GPS fix while painting uses the
fused position, so a fix just inside the boundary can paint a cell whose
centre lies just outside it.
"""

import itertools
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from spatial_coverage.config import (
    CONFIDENCE_ZERO_ACCURACY,
    ELEVATION_CELL_SIZE,
    GPS_WEIGHT,
    GRAVITY,
    IMU_DAMPING,
    IMU_WEIGHT,
    KDTREE_NEIGHBOURS,
    SAMPLE_INDEX,
    STEP_THRESHOLD_G,
    WALKING_VOXEL_SIZE,
)
from spatial_coverage.core.coverage_session import CoverageSession
from spatial_coverage.core.elevation_capture import ElevationCapture
from spatial_coverage.core.elevation_grid import ElevationGrid
from spatial_coverage.core.geo_polygon import GeoPolygon
from spatial_coverage.data.models import (
    ElevationSample,
    FusedPosition,
    GeoVertex,
    GPSFix,
    InertialReading,
    PaintResult,
    PressureReading,
)
from spatial_coverage.errors import InvalidStateError, ValidationError
from spatial_coverage.utils.geometry import haversine_distance, lat_lon_to_local_meters
from spatial_coverage.utils.spatial_index import create_sample_index
from utils.conversions import isa_altitude_from_pressure

logger = logging.getLogger('catchwalk.coverage.fusion')

_walk_ids = itertools.count(1)


class TrackingState(Enum):
    """Fusion loop states."""
    IDLE = "idle"            # Never started
    TRACKING = "tracking"    # Consuming sensor events
    STOPPED = "stopped"      # Stopped, results still readable


@dataclass(frozen=True)
class TrackingSnapshot:
    """Immutable view of the loop state for rendering and logging."""
    state: TrackingState
    current_fix: Optional[GPSFix]
    fused_position: Optional[FusedPosition]
    is_inside_boundary: bool
    coverage_percent: float
    total_voxels: int
    painted_voxels: int
    gps_accuracy: float
    step_count: int
    inertial_available: bool
    barometer_available: bool
    sensor_source: str          # "barometer", "gps" or "unavailable"
    elevation_samples: int


def confidence_from_accuracy(accuracy: float) -> float:
    """0-1 confidence, linear in GPS accuracy (20m or worse = 0)."""
    return max(0.0, 1.0 - accuracy / CONFIDENCE_ZERO_ACCURACY)


def expected_walking_voxels(boundary: GeoPolygon, voxel_size: float) -> int:
    """
    Cells covering the boundary's bounding box.

    Width and height are haversine distances along the south and west
    edges of the lat/lon bounding box.
    """
    bounds = boundary.get_bounds()
    south_west = GeoVertex(lat=bounds.min_lat, lon=bounds.min_lon)
    width_m = haversine_distance(south_west, GeoVertex(lat=bounds.min_lat, lon=bounds.max_lon))
    height_m = haversine_distance(south_west, GeoVertex(lat=bounds.max_lat, lon=bounds.min_lon))
    return math.ceil(width_m / voxel_size) * math.ceil(height_m / voxel_size)


class PositionFusionLoop:
    """
    Walking coverage tracker.

    Paints WALKING_VOXEL_SIZE cells at the fused position for every GPS fix
    that falls inside the boundary, counts steps from the accelerometer and
    captures elevation samples on each tick.
    """

    def __init__(
        self,
        voxel_size: float = WALKING_VOXEL_SIZE,
        elevation_cell_size: float = ELEVATION_CELL_SIZE,
        sample_index: str = SAMPLE_INDEX,
        step_threshold: float = STEP_THRESHOLD_G,
        damping: float = IMU_DAMPING,
        on_step: Optional[Callable[[int], None]] = None,
    ):
        """
        Initialise an idle loop.

        Args:
            voxel_size: Painted cell size in metres
            elevation_cell_size: Elevation grid raster spacing in metres
            sample_index: Elevation sample index kind ("linear" or "kdtree")
            step_threshold: Step threshold in g
            damping: Factor applied to integrated acceleration
            on_step: Called with the new step count on each step (haptic pulse)
        """
        if not voxel_size > 0:
            raise ValidationError(f"Voxel size must be positive, got {voxel_size!r}")
        self.voxel_size = voxel_size
        self.elevation_cell_size = elevation_cell_size
        self.sample_index = sample_index
        self.step_threshold = step_threshold
        self.damping = damping
        self.on_step = on_step

        self._state = TrackingState.IDLE
        self._boundary: Optional[GeoPolygon] = None
        self._origin: Optional[GeoVertex] = None
        self._session: Optional[CoverageSession] = None
        self._capture = ElevationCapture(grid=self._new_grid())
        self._total_voxels = 0
        self._clear_motion_state()

    def _new_grid(self) -> ElevationGrid:
        return ElevationGrid(
            cell_size=self.elevation_cell_size,
            index=create_sample_index(self.sample_index, KDTREE_NEIGHBOURS),
        )

    def _clear_motion_state(self):
        self._current_fix: Optional[GPSFix] = None
        self._fused: Optional[FusedPosition] = None
        self._is_inside = False
        self._coverage_percent = 0.0
        self._step_count = 0
        self._last_total_accel = 0.0
        self._accumulator: Optional[Tuple[float, float]] = None
        self._last_inertial_time: Optional[float] = None
        self._inertial_available = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def is_tracking(self) -> bool:
        return self._state is TrackingState.TRACKING

    def start(self, boundary: GeoPolygon, timestamp: Optional[float] = None):
        """
        Begin tracking against a boundary.

        Args:
            boundary: Target polygon; its centroid becomes the local origin
            timestamp: Start time, for logging only

        Raises:
            InvalidStateError: already tracking
        """
        if self._state is TrackingState.TRACKING:
            raise InvalidStateError("Fusion loop is already tracking; stop() first")

        self._boundary = boundary
        self._origin = boundary.centroid
        self._total_voxels = expected_walking_voxels(boundary, self.voxel_size)
        self._session = CoverageSession(f"walk-{next(_walk_ids)}", voxel_size=self.voxel_size)
        self._capture.reset(grid=self._new_grid())
        self._clear_motion_state()
        self._state = TrackingState.TRACKING

        logger.info("Tracking started: origin %.6f,%.6f, %d cells of %.2fm (t=%s)",
                    self._origin.lat, self._origin.lon, self._total_voxels,
                    self.voxel_size, timestamp)

    def stop(self):
        """Stop consuming events. Painted cells and samples stay readable."""
        if self._state is not TrackingState.TRACKING:
            return
        self._state = TrackingState.STOPPED
        logger.info("Tracking stopped: %.1f%% coverage, %d steps, %d elevation samples",
                    self._coverage_percent, self._step_count, self._capture.grid.sample_count)

    def reset(self):
        """Clear painted cells, step count and coverage; keep the boundary."""
        if self._session is not None:
            self._session.reset()
        self._coverage_percent = 0.0
        self._step_count = 0

    # ------------------------------------------------------------------
    # Sensor events
    # ------------------------------------------------------------------

    def handle_inertial(self, reading: InertialReading):
        """
        Accelerometer event (including gravity).

        Counts a step when total acceleration rises through the threshold,
        then integrates damped x/y acceleration into the dead-reckoning
        accumulator. The first reading only starts the clock.
        """
        if not self.is_tracking:
            return

        self._inertial_available = True

        threshold = self.step_threshold * GRAVITY
        total = reading.total
        if total > threshold and self._last_total_accel < threshold:
            self._step_count += 1
            logger.debug("Step %d (%.2f m/s²)", self._step_count, total)
            if self.on_step is not None:
                self.on_step(self._step_count)
        self._last_total_accel = total

        if self._accumulator is None:
            self._accumulator = (0.0, 0.0)
        else:
            dt = max(0.0, reading.timestamp - self._last_inertial_time)
            ax, ay = self._accumulator
            self._accumulator = (
                ax + reading.accel_x * dt * self.damping,
                ay + reading.accel_y * dt * self.damping,
            )
        self._last_inertial_time = reading.timestamp

    def handle_gps_fix(self, fix: GPSFix) -> Optional[PaintResult]:
        """
        GPS fix event.

        Returns:
            PaintResult when the fix is inside the boundary, otherwise None
        """
        if not self.is_tracking:
            return None

        local = lat_lon_to_local_meters(self._origin, GeoVertex(lat=fix.lat, lon=fix.lon))
        x, y = local.x, local.y

        if self._accumulator is not None and self._fused is not None:
            ax, ay = self._accumulator
            x = GPS_WEIGHT * local.x + IMU_WEIGHT * (self._fused.x + ax)
            y = GPS_WEIGHT * local.y + IMU_WEIGHT * (self._fused.y + ay)
            self._accumulator = (0.0, 0.0)

        self._capture.update_gps_altitude(fix.altitude)
        self._fused = FusedPosition(
            x=x,
            y=y,
            elevation=self._capture.current_elevation(),
            confidence=confidence_from_accuracy(fix.accuracy),
        )
        self._current_fix = fix

        self._is_inside = self._boundary.contains(fix.lat, fix.lon)
        result = None
        if self._is_inside:
            result = self._session.paint(x, y, elevation=self._fused.elevation)

        painted = self._session.get_voxel_count()
        if self._total_voxels > 0:
            self._coverage_percent = min(100.0, painted / self._total_voxels * 100.0)
        else:
            self._coverage_percent = 0.0

        logger.debug("Fix %.6f,%.6f ±%.1fm -> (%.2f, %.2f) inside=%s coverage=%.1f%%",
                     fix.lat, fix.lon, fix.accuracy, x, y, self._is_inside,
                     self._coverage_percent)
        return result

    def handle_pressure(self, reading: PressureReading):
        """Barometer event; converts to ISA altitude for elevation capture."""
        if not self.is_tracking:
            return
        self._capture.update_barometer(isa_altitude_from_pressure(reading.pressure_hpa))

    def handle_event(self, event):
        """Dispatch a GPSFix, InertialReading or PressureReading."""
        if isinstance(event, GPSFix):
            return self.handle_gps_fix(event)
        if isinstance(event, InertialReading):
            return self.handle_inertial(event)
        if isinstance(event, PressureReading):
            return self.handle_pressure(event)
        raise TypeError(f"Unsupported sensor event: {type(event).__name__}")

    def sample_elevation(self, timestamp: float) -> Optional[ElevationSample]:
        """
        Capture one elevation sample at the fused position.

        Returns:
            The sample, or None when not tracking or before the first fix
        """
        if not self.is_tracking or self._fused is None:
            return None
        return self._capture.capture(self._fused.x, self._fused.y, timestamp)

    def tick(self, timestamp: float) -> Optional[ElevationSample]:
        """Sample elevation if the capture interval has elapsed."""
        if not self._capture.is_due(timestamp):
            return None
        return self.sample_elevation(timestamp)

    # ------------------------------------------------------------------
    # Readback
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[CoverageSession]:
        return self._session

    @property
    def elevation_grid(self) -> ElevationGrid:
        return self._capture.grid

    @property
    def origin(self) -> Optional[GeoVertex]:
        return self._origin

    @property
    def boundary(self) -> Optional[GeoPolygon]:
        return self._boundary

    @property
    def fused_position(self) -> Optional[FusedPosition]:
        return self._fused

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def coverage_percent(self) -> float:
        return self._coverage_percent

    @property
    def total_expected_voxels(self) -> int:
        return self._total_voxels

    @property
    def inertial_available(self) -> bool:
        return self._inertial_available

    @property
    def barometer_available(self) -> bool:
        return self._capture.barometer_available

    @property
    def sensor_source(self) -> str:
        return self._capture.sensor_source

    def get_voxel_list(self) -> List[dict]:
        """Painted cells in serializable form (empty before start)."""
        if self._session is None:
            return []
        return self._session.to_voxel_list()

    def snapshot(self) -> TrackingSnapshot:
        return TrackingSnapshot(
            state=self._state,
            current_fix=self._current_fix,
            fused_position=self._fused,
            is_inside_boundary=self._is_inside,
            coverage_percent=self._coverage_percent,
            total_voxels=self._total_voxels,
            painted_voxels=self._session.get_voxel_count() if self._session else 0,
            gps_accuracy=self._current_fix.accuracy if self._current_fix else 0.0,
            step_count=self._step_count,
            inertial_available=self._inertial_available,
            barometer_available=self.barometer_available,
            sensor_source=self.sensor_source,
            elevation_samples=self._capture.grid.sample_count,
        )
