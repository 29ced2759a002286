#!/usr/bin/env python3
"""
catchwalk - walking coverage and elevation capture for stormwater catchments

Commands:
    replay  Run a recorded walk log through the fusion loop and report
            coverage, optionally exporting the DEM, mesh and voxel list.
    live    Track coverage from the fitted GPS / IMU / barometer until
            interrupted.
"""

import argparse
import logging
import os
import sys
import time

from config import APP_VERSION, get_data_dir
from spatial_coverage.config import ELEVATION_CELL_SIZE, SAMPLE_INDEX, WALKING_VOXEL_SIZE
from spatial_coverage.core.position_fusion import PositionFusionLoop, TrackingSnapshot
from spatial_coverage.data.serialization import load_geo_polygon, to_json
from spatial_coverage.errors import CoverageError
from spatial_coverage.export import boundary_to_obj, dem_to_csv
from spatial_coverage.utils.walk_log_parser import WalkLogParser, replay_walk
from spatial_coverage.validation import validate_coverage
from utils.settings import get_settings

logger = logging.getLogger('catchwalk.main')


def _setup_logging(level: str = "INFO"):
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.INFO),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _write_text(path: str, text: str):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)
    logger.info("Wrote %s", path)


def _print_summary(snapshot: TrackingSnapshot, calibrated: bool):
    result = validate_coverage(snapshot.coverage_percent, calibrated)
    print(f"Coverage:    {snapshot.coverage_percent:.1f}% "
          f"({snapshot.painted_voxels}/{snapshot.total_voxels} cells)")
    print(f"Steps:       {snapshot.step_count}")
    print(f"Elevation:   {snapshot.elevation_samples} samples ({snapshot.sensor_source})")
    print(f"Validation:  {result.overall_status.upper()}")


def _build_loop(args) -> PositionFusionLoop:
    settings = get_settings()
    return PositionFusionLoop(
        voxel_size=args.voxel_size or settings.get("tracking.voxel_size", WALKING_VOXEL_SIZE),
        elevation_cell_size=settings.get("elevation.cell_size", ELEVATION_CELL_SIZE),
        sample_index=args.index or settings.get("elevation.index", SAMPLE_INDEX),
    )


def run_replay(args) -> int:
    """Replay a walk log against a boundary file."""
    boundary = load_geo_polygon(args.boundary)
    parser = WalkLogParser(args.log)
    events = parser.parse_events()
    logger.info("Loaded %d events from %s", len(events), args.log)

    loop = _build_loop(args)
    snapshot = replay_walk(loop, boundary, events)
    _print_summary(snapshot, args.calibrated)

    if args.dem:
        _write_text(args.dem, dem_to_csv(loop.elevation_grid, loop.origin))
    if args.obj:
        outline = boundary.to_local_meters(loop.origin)
        _write_text(args.obj, boundary_to_obj(outline, loop.elevation_grid))
    if args.voxels:
        _write_text(args.voxels, to_json(loop.get_voxel_list()))
    return 0


def run_live(args) -> int:
    """Track coverage on live sensors until Ctrl+C or --duration."""
    from hardware.barometer_handler import BarometerHandler
    from hardware.coverage_tracking_handler import CoverageTrackingHandler
    from hardware.gps_handler import GPSHandler
    from hardware.imu_handler import IMUHandler

    boundary = load_geo_polygon(args.boundary)
    handlers = [GPSHandler(port=args.port), IMUHandler(), BarometerHandler()]
    gps, imu, barometer = handlers
    tracker = CoverageTrackingHandler(gps, imu, barometer, fusion_loop=_build_loop(args))

    started = time.time()
    try:
        with tracker.tracking(boundary):
            while args.duration is None or time.time() - started < args.duration:
                time.sleep(1.0)
                snapshot = tracker.get_tracking_snapshot()
                if snapshot is not None:
                    print(f"\r{snapshot.coverage_percent:5.1f}%  steps {snapshot.step_count:4d}  "
                          f"±{snapshot.gps_accuracy:.1f}m  inside={snapshot.is_inside_boundary}",
                          end="", flush=True)
    except KeyboardInterrupt:
        print()
    finally:
        for handler in handlers:
            handler.stop()

    _print_summary(tracker.loop.snapshot(), args.calibrated)

    if args.voxels:
        _write_text(args.voxels, to_json(tracker.loop.get_voxel_list()))
    if args.dem:
        _write_text(args.dem, dem_to_csv(tracker.loop.elevation_grid, tracker.loop.origin))
    return 0


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description=f"catchwalk {APP_VERSION} - walking coverage and elevation capture"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    def common(p):
        p.add_argument("boundary", help="Boundary JSON file ({\"vertices\": [[lat, lon], ...]})")
        p.add_argument("--voxel-size", type=float, help="Walking cell size in metres")
        p.add_argument("--index", choices=["linear", "kdtree"], help="Elevation sample index")
        p.add_argument("--calibrated", action="store_true",
                       help="Scale calibration was performed (affects validation)")
        p.add_argument("--dem", help="Write DEM CSV to this path")
        p.add_argument("--voxels", help="Write painted voxel list JSON to this path")

    replay = sub.add_parser("replay", help="Replay a recorded walk log")
    replay.add_argument("log", help="Walk log CSV")
    common(replay)
    replay.add_argument("--obj", help="Write boundary mesh OBJ to this path")
    replay.set_defaults(func=run_replay)

    live = sub.add_parser("live", help="Track coverage on live sensors")
    common(live)
    live.add_argument("--port", help="GPS serial port (default from settings/config)")
    live.add_argument("--duration", type=float, help="Stop after this many seconds")
    live.set_defaults(func=run_live)

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    _setup_logging(args.log_level)
    logger.debug("Data directory: %s", get_data_dir())

    try:
        return args.func(args)
    except (CoverageError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
