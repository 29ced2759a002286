"""
Elevation capture - fixed-rate elevation sampling during tracking.

Samples at 5Hz (200ms). Uses the barometer when it has produced a reading,
otherwise the last GPS altitude, otherwise 0. Every elevation is relative
to the first captured altitude, which becomes the baseline (= 0). When the
source changes (GPS to barometer once the first pressure reading lands) the
baseline is re-anchored so the new source continues from the last relative
elevation; the surface does not depend on which sensor reported first.
"""

import logging
from typing import Optional

from spatial_coverage.config import (
    BAROMETER_ACCURACY_M,
    ELEVATION_SAMPLE_INTERVAL_S,
    GPS_ALTITUDE_ACCURACY_M,
)
from spatial_coverage.core.elevation_grid import ElevationGrid
from spatial_coverage.data.models import ElevationSample, create_elevation_sample

logger = logging.getLogger('catchwalk.coverage.elevation_capture')

SENSOR_BAROMETER = "barometer"
SENSOR_GPS = "gps"
SENSOR_UNAVAILABLE = "unavailable"


class ElevationCapture:
    """
    Builds ElevationSamples from the latest altitude readings.

    Not thread-safe: owned by whichever worker drives the fusion loop.
    """

    def __init__(
        self,
        grid: Optional[ElevationGrid] = None,
        interval: float = ELEVATION_SAMPLE_INTERVAL_S,
    ):
        self.grid = grid if grid is not None else ElevationGrid()
        self.interval = interval

        self._baseline: Optional[float] = None
        self._baseline_source: Optional[str] = None
        self._last_elevation = 0.0
        self._barometer_altitude: Optional[float] = None
        self._gps_altitude: Optional[float] = None
        self._last_sample_time: Optional[float] = None

    @property
    def barometer_available(self) -> bool:
        return self._barometer_altitude is not None

    @property
    def sensor_source(self) -> str:
        """'barometer', 'gps' or 'unavailable'."""
        if self._barometer_altitude is not None:
            return SENSOR_BAROMETER
        if self._gps_altitude is not None:
            return SENSOR_GPS
        return SENSOR_UNAVAILABLE

    @property
    def accuracy(self) -> float:
        """Accuracy (± metres) that the next sample will carry."""
        if self.barometer_available:
            return BAROMETER_ACCURACY_M
        return GPS_ALTITUDE_ACCURACY_M

    @property
    def baseline(self) -> Optional[float]:
        return self._baseline

    def update_barometer(self, altitude: float):
        """Latest barometric altitude in metres (ISA)."""
        if self._barometer_altitude is None:
            logger.info("Elevation capture: barometer available (%.1fm)", altitude)
        self._barometer_altitude = altitude

    def update_gps_altitude(self, altitude: Optional[float]):
        """Latest GPS altitude; None (no 3D fix) keeps the previous value."""
        if altitude is not None:
            self._gps_altitude = altitude

    def current_elevation(self) -> float:
        """Elevation relative to the baseline, fixing the baseline if unset."""
        if self._barometer_altitude is not None:
            raw = self._barometer_altitude
        elif self._gps_altitude is not None:
            raw = self._gps_altitude
        else:
            raw = 0.0

        source = self.sensor_source
        if self._baseline is None:
            self._baseline = raw
            logger.debug("Elevation capture: baseline %.2fm from %s", raw, source)
        elif source != self._baseline_source:
            self._baseline = raw - self._last_elevation
            logger.info("Elevation capture: source %s -> %s, baseline re-anchored at %.2fm",
                        self._baseline_source, source, self._baseline)
        self._baseline_source = source
        self._last_elevation = raw - self._baseline
        return self._last_elevation

    def is_due(self, timestamp: float) -> bool:
        """True when at least one interval has passed since the last sample."""
        if self._last_sample_time is None:
            return True
        # Tolerate float drift on the 200ms schedule
        return timestamp - self._last_sample_time >= self.interval - 1e-6

    def capture(self, x: float, y: float, timestamp: float) -> ElevationSample:
        """Add one sample at (x, y) to the grid and return it."""
        barometer = self.barometer_available
        sample = create_elevation_sample(
            x=x,
            y=y,
            elevation=self.current_elevation(),
            accuracy=BAROMETER_ACCURACY_M if barometer else GPS_ALTITUDE_ACCURACY_M,
            source=SENSOR_BAROMETER if barometer else SENSOR_GPS,
            timestamp=timestamp,
        )
        self.grid.add_sample(sample)
        self._last_sample_time = timestamp
        return sample

    def reset(self, grid: Optional[ElevationGrid] = None):
        """Start a new capture: fresh grid, baseline and readings."""
        self.grid = grid if grid is not None else ElevationGrid(cell_size=self.grid.cell_size)
        self._baseline = None
        self._baseline_source = None
        self._last_elevation = 0.0
        self._barometer_altitude = None
        self._gps_altitude = None
        self._last_sample_time = None
