"""
Unit tests for walk log parsing and deterministic replay.
"""

import pytest
from spatial_coverage.core.position_fusion import PositionFusionLoop, TrackingState
from spatial_coverage.data.models import GPSFix, InertialReading, PressureReading
from spatial_coverage.utils.walk_log_parser import WalkLogParser, replay_walk


class TestWalkLogParser:
    """Tests for reading CSV walk logs."""

    @pytest.mark.unit
    def test_metadata(self, walk_log_file):
        """Test that '# key value' lines become metadata."""
        parser = WalkLogParser(walk_log_file)
        assert parser.get_metadata() == {"site": "Riverside catchment", "operator": "test"}

    @pytest.mark.unit
    def test_events_and_skipped_rows(self, walk_log_file):
        """Test that malformed and unknown rows are skipped and counted."""
        parser = WalkLogParser(walk_log_file)
        events = parser.parse_events()

        assert len(events) == 5
        assert parser.skipped_rows == 2
        assert [type(e) for e in events] == [
            GPSFix, InertialReading, PressureReading, InertialReading, GPSFix,
        ]

    @pytest.mark.unit
    def test_field_values(self, walk_log_file):
        """Test parsed values of each event type."""
        events = WalkLogParser(walk_log_file).parse_events()
        fix, imu, baro = events[0], events[1], events[2]

        assert fix.timestamp == 1000.0
        assert fix.accuracy == 4.0
        assert fix.altitude == 12.5
        assert (imu.accel_x, imu.accel_y, imu.accel_z) == (0.10, -0.05, 9.81)
        assert baro.pressure_hpa == 1013.25

    @pytest.mark.unit
    def test_events_sorted(self, tmp_path):
        """Test that parse_events orders by timestamp, stream_events by file."""
        path = tmp_path / "unordered.csv"
        path.write_text("baro,5.0,1010.0\nimu,1.0,0,0,9.8\n")
        parser = WalkLogParser(str(path))

        assert [e.timestamp for e in parser.stream_events()] == [5.0, 1.0]
        assert [e.timestamp for e in parser.parse_events()] == [1.0, 5.0]

    @pytest.mark.unit
    def test_gps_without_altitude(self, tmp_path):
        """Test that the altitude column is optional."""
        path = tmp_path / "no_alt.csv"
        path.write_text("gps,1.0,-33.86,151.20,3.5\ngps,2.0,-33.86,151.20,3.5,\n")
        events = WalkLogParser(str(path)).parse_events()
        assert [e.altitude for e in events] == [None, None]

    @pytest.mark.unit
    def test_short_row_skipped(self, tmp_path):
        """Test that a row with missing columns is skipped."""
        path = tmp_path / "short.csv"
        path.write_text("imu,1.0,0.1\nbaro,2.0,1000.0\n")
        parser = WalkLogParser(str(path))
        assert len(parser.parse_events()) == 1
        assert parser.skipped_rows == 1


class TestReplayWalk:
    """Tests for replaying events through the fusion loop."""

    @pytest.mark.unit
    def test_replay_log(self, walk_log_file, square_catchment):
        """Test replaying the sample walk end to end."""
        events = WalkLogParser(walk_log_file).parse_events()
        loop = PositionFusionLoop()
        snapshot = replay_walk(loop, square_catchment, events)

        assert snapshot.state is TrackingState.STOPPED
        assert snapshot.step_count == 1
        assert snapshot.painted_voxels == 1
        assert snapshot.coverage_percent > 0
        assert snapshot.is_inside_boundary is True
        assert snapshot.barometer_available is True
        assert snapshot.sensor_source == "barometer"
        # Ticks at 1000.2 .. 1001.0; the 1000.0 tick precedes the first fix
        assert snapshot.elevation_samples == 5

    @pytest.mark.unit
    def test_ticks_run_before_events(self, square_catchment):
        """Test that ticks are placed on the log clock."""
        c = square_catchment.centroid
        events = [
            GPSFix(lat=c.lat, lon=c.lon, accuracy=3.0, timestamp=0.0),
            GPSFix(lat=c.lat, lon=c.lon, accuracy=3.0, timestamp=0.5),
        ]
        loop = PositionFusionLoop()
        snapshot = replay_walk(loop, square_catchment, events, sample_interval=0.2)

        assert snapshot.elevation_samples == 2
        assert [s.timestamp for s in loop.elevation_grid.samples] == \
            pytest.approx([0.2, 0.4])

    @pytest.mark.unit
    def test_no_events(self, square_catchment):
        """Test that an empty log starts and stops the loop."""
        loop = PositionFusionLoop()
        snapshot = replay_walk(loop, square_catchment, [])

        assert snapshot.state is TrackingState.STOPPED
        assert snapshot.painted_voxels == 0
        assert loop.origin == square_catchment.centroid

    @pytest.mark.unit
    def test_replay_is_deterministic(self, walk_log_file, square_catchment):
        """Test that two replays of the same log give the same cells."""
        events = WalkLogParser(walk_log_file).parse_events()
        first, second = PositionFusionLoop(), PositionFusionLoop()
        replay_walk(first, square_catchment, events)
        replay_walk(second, square_catchment, events)

        assert first.get_voxel_list() == second.get_voxel_list()
        assert first.elevation_grid.samples == second.elevation_grid.samples
