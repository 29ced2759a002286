"""
Walk log parser for recorded sensor sessions.

Reads CSV walk logs and converts them to sensor events for replay through
a PositionFusionLoop. Replay is deterministic: elevation ticks are placed
on the log's own clock rather than the wall clock.

Format (one event per row, '#' lines are metadata or comments):

    # site Riverside catchment
    gps,1700000000.00,-33.865100,151.209300,4.0,12.5
    imu,1700000000.02,0.10,-0.05,9.81
    baro,1700000000.05,1012.80

    gps:  type,timestamp,lat,lon,accuracy[,altitude]
    imu:  type,timestamp,accel_x,accel_y,accel_z
    baro: type,timestamp,pressure_hpa
"""

import csv
import logging
from typing import Dict, Iterator, List, Optional, Union

from spatial_coverage.config import ELEVATION_SAMPLE_INTERVAL_S
from spatial_coverage.core.geo_polygon import GeoPolygon
from spatial_coverage.core.position_fusion import PositionFusionLoop, TrackingSnapshot
from spatial_coverage.data.models import GPSFix, InertialReading, PressureReading

logger = logging.getLogger('catchwalk.walk_log')

SensorEvent = Union[GPSFix, InertialReading, PressureReading]


class WalkLogParser:
    """Parser for CSV walk logs."""

    def __init__(self, log_path: str):
        self.log_path = log_path
        self.metadata: Dict[str, str] = {}
        self.skipped_rows = 0
        self._parse_header()

    def _parse_header(self):
        """Collect '# key value' metadata lines."""
        with open(self.log_path, 'r', encoding='utf-8', errors='ignore') as f:
            for line in f:
                line = line.strip()
                if not line.startswith('#'):
                    continue
                parts = line[1:].strip().split(maxsplit=1)
                if len(parts) == 2:
                    self.metadata[parts[0]] = parts[1]

    def get_metadata(self) -> Dict[str, str]:
        """Return site/session metadata."""
        return self.metadata

    def parse_events(self) -> List[SensorEvent]:
        """
        Parse every event, sorted by timestamp.

        Rows with an unknown type or bad numbers are skipped and counted in
        skipped_rows.
        """
        events = list(self.stream_events())
        events.sort(key=lambda e: e.timestamp)
        return events

    def stream_events(self) -> Iterator[SensorEvent]:
        """
        Stream events in file order (memory efficient for long walks).

        Yields:
            GPSFix, InertialReading or PressureReading
        """
        self.skipped_rows = 0
        with open(self.log_path, 'r', encoding='utf-8', errors='ignore', newline='') as f:
            reader = csv.reader(f)
            for line_no, row in enumerate(reader, start=1):
                if not row or row[0].lstrip().startswith('#'):
                    continue
                try:
                    event = self._parse_row(row)
                except (ValueError, IndexError) as e:
                    event = None
                    logger.debug("Walk log line %d: %s", line_no, e)

                if event is None:
                    self.skipped_rows += 1
                    continue
                yield event

        if self.skipped_rows:
            logger.warning("Walk log %s: skipped %d malformed rows",
                           self.log_path, self.skipped_rows)

    def _parse_row(self, row: List[str]) -> Optional[SensorEvent]:
        """Parse one CSV row; None for unknown row types."""
        kind = row[0].strip().lower()
        timestamp = float(row[1])

        if kind == 'gps':
            altitude = None
            if len(row) > 5 and row[5].strip():
                altitude = float(row[5])
            return GPSFix(
                lat=float(row[2]),
                lon=float(row[3]),
                accuracy=float(row[4]),
                altitude=altitude,
                timestamp=timestamp,
            )
        if kind == 'imu':
            return InertialReading(
                accel_x=float(row[2]),
                accel_y=float(row[3]),
                accel_z=float(row[4]),
                timestamp=timestamp,
            )
        if kind == 'baro':
            return PressureReading(pressure_hpa=float(row[2]), timestamp=timestamp)
        return None


def replay_walk(
    loop: PositionFusionLoop,
    boundary: GeoPolygon,
    events: List[SensorEvent],
    sample_interval: float = ELEVATION_SAMPLE_INTERVAL_S,
) -> TrackingSnapshot:
    """
    Replay events through a fusion loop.

    Starts the loop at the first event's timestamp, samples elevation on a
    fixed schedule from there (each tick runs before any event at or after
    its time) and stops the loop after the last event.

    Returns:
        Snapshot taken after stopping
    """
    if not events:
        loop.start(boundary)
        loop.stop()
        return loop.snapshot()

    start_time = events[0].timestamp
    loop.start(boundary, timestamp=start_time)

    tick = 0
    for event in events:
        while start_time + tick * sample_interval <= event.timestamp:
            loop.sample_elevation(start_time + tick * sample_interval)
            tick += 1
        loop.handle_event(event)

    loop.stop()
    snapshot = loop.snapshot()
    logger.info("Replayed %d events: %.1f%% coverage, %d steps, %d elevation samples",
                len(events), snapshot.coverage_percent, snapshot.step_count,
                snapshot.elevation_samples)
    return snapshot
