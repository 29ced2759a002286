"""
Coverage Tracking Handler for catchwalk.

Runs walking coverage on live sensors. The GPS, IMU and barometer handlers
each read on their own thread and only post events into this handler's
inbox; one worker thread drains the inbox and is the only code that
touches the PositionFusionLoop, its CoverageSession and ElevationGrid.
The 5Hz elevation tick runs on the same worker between events.
"""

import logging
import queue
import time
from contextlib import contextmanager
from typing import Callable, Optional

from config import (
    THREAD_JOIN_TIMEOUT_S,
    TRACKING_HAPTIC_ENABLED,
    TRACKING_INBOX_SIZE,
    TRACKING_TICK_S,
)
from spatial_coverage.config import (
    ELEVATION_CELL_SIZE,
    HAPTIC_STEP_PULSE_MS,
    SAMPLE_INDEX,
    WALKING_VOXEL_SIZE,
)
from spatial_coverage.core.geo_polygon import GeoPolygon
from spatial_coverage.core.position_fusion import PositionFusionLoop, TrackingSnapshot
from spatial_coverage.errors import InvalidStateError, UnavailableSensorError
from utils.hardware_base import BoundedQueueSensorHandler
from utils.settings import get_settings

logger = logging.getLogger('catchwalk.tracking')

# Posted by stop_tracking(); everything queued before it is still processed
_STOP = object()


class CoverageTrackingHandler(BoundedQueueSensorHandler):
    """
    Single-writer actor around a PositionFusionLoop.

    Readers poll get_tracking_snapshot() (lock-free, bounded queue). Loop
    state such as the voxel list is safe to read directly once
    stop_tracking() has returned.
    """

    sensor_name = "tracking"

    def __init__(
        self,
        gps_handler,
        imu_handler=None,
        barometer_handler=None,
        fusion_loop: Optional[PositionFusionLoop] = None,
        haptic: Optional[Callable[[int], None]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialise the tracking handler (does not start tracking).

        Args:
            gps_handler: GPSHandler (or anything with watch/clear_watch)
            imu_handler: IMUHandler, None when no IMU is fitted
            barometer_handler: BarometerHandler, None when no barometer is fitted
            fusion_loop: Loop to drive (default: built from settings)
            haptic: Called with a pulse length in ms on every step
            clock: Time source for elevation ticks
        """
        super().__init__(queue_depth=2)
        self.gps_handler = gps_handler
        self.imu_handler = imu_handler
        self.barometer_handler = barometer_handler
        self.haptic = haptic
        self.clock = clock

        if fusion_loop is None:
            settings = get_settings()
            fusion_loop = PositionFusionLoop(
                voxel_size=settings.get("tracking.voxel_size", WALKING_VOXEL_SIZE),
                elevation_cell_size=settings.get("elevation.cell_size", ELEVATION_CELL_SIZE),
                sample_index=settings.get("elevation.index", SAMPLE_INDEX),
            )
        self.loop = fusion_loop
        self.loop.on_step = self._on_step

        self.inbox: "queue.Queue" = queue.Queue(maxsize=TRACKING_INBOX_SIZE)
        self.events_dropped = 0

        # Error tracking
        self.consecutive_errors = 0

        # Listeners that were attached successfully, detached on stop
        self._attached = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_tracking(self, boundary: GeoPolygon):
        """
        Start the fusion loop, attach sensors and start the worker.

        Raises:
            InvalidStateError: already tracking
        """
        if self.running:
            raise InvalidStateError("Tracking already running; call stop_tracking() first")

        self.inbox = queue.Queue(maxsize=TRACKING_INBOX_SIZE)
        self.events_dropped = 0
        self.consecutive_errors = 0

        # Worker is not running yet, so this thread is still the only writer
        self.loop.start(boundary, timestamp=self.clock())
        self._attach_sensors()
        self.start()
        logger.info("Tracking: started (%d sensors attached)", len(self._attached))

    def stop_tracking(self):
        """Detach sensors, drain the inbox and stop the worker."""
        self._detach_sensors()

        if self.thread is not None and self.thread.is_alive():
            try:
                self.inbox.put(_STOP, timeout=THREAD_JOIN_TIMEOUT_S)
            except queue.Full:
                logger.warning("Tracking: inbox full at stop, discarding %d queued events",
                               self.inbox.qsize())
            else:
                self.thread.join(timeout=THREAD_JOIN_TIMEOUT_S)
        super().stop()

        self.loop.stop()
        self._publish_snapshot({'tracking': self.loop.snapshot()})
        if self.events_dropped:
            logger.warning("Tracking: %d sensor events dropped (inbox full)", self.events_dropped)

    @contextmanager
    def tracking(self, boundary: GeoPolygon):
        """
        Track for the duration of a with-block.

        Example:
            with handler.tracking(boundary):
                wait_for_user()
            voxels = handler.loop.get_voxel_list()
        """
        self.start_tracking(boundary)
        try:
            yield self
        finally:
            self.stop_tracking()

    def _attach_sensors(self):
        self._attached = []

        try:
            self.gps_handler.watch(self.post_event)
            self._attached.append(self.gps_handler.clear_watch)
        except UnavailableSensorError as e:
            logger.warning("Tracking: %s - no position fixes will arrive", e)

        if self.imu_handler is not None:
            try:
                self.imu_handler.add_listener(self.post_event)
                self._attached.append(self.imu_handler.remove_listener)
            except UnavailableSensorError as e:
                logger.warning("Tracking: %s - using GPS-only fusion", e)
        else:
            logger.info("Tracking: no IMU fitted - using GPS-only fusion")

        if self.barometer_handler is not None:
            try:
                self.barometer_handler.add_listener(self.post_event)
                self._attached.append(self.barometer_handler.remove_listener)
            except UnavailableSensorError as e:
                logger.warning("Tracking: %s - elevation from GPS altitude", e)
        else:
            logger.info("Tracking: no barometer fitted - elevation from GPS altitude")

    def _detach_sensors(self):
        for detach in self._attached:
            detach(self.post_event)
        self._attached = []

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    def post_event(self, event):
        """
        Queue a sensor event for the worker. Called on sensor threads.

        Never blocks: a full inbox drops the event and counts it.
        """
        try:
            self.inbox.put_nowait(event)
        except queue.Full:
            self.events_dropped += 1

    def _worker_loop(self):
        """Drain the inbox, run elevation ticks, publish snapshots."""
        while self.running:
            try:
                event = self.inbox.get(timeout=TRACKING_TICK_S)
            except queue.Empty:
                event = None

            if event is _STOP:
                break

            try:
                if event is not None:
                    self.loop.handle_event(event)
                sample = self.loop.tick(self.clock())
                if event is not None or sample is not None:
                    self._publish_snapshot({'tracking': self.loop.snapshot()})
                self.consecutive_errors = 0

            except Exception as e:
                self.consecutive_errors += 1
                if self.consecutive_errors == 3:
                    logger.warning("Tracking: Error processing %r: %s", event, e)
                else:
                    logger.debug("Tracking: Error processing %r: %s", event, e)

    def _on_step(self, step_count: int):
        if self.haptic is None or not TRACKING_HAPTIC_ENABLED:
            return
        try:
            self.haptic(HAPTIC_STEP_PULSE_MS)
        except Exception as e:
            logger.warning("Tracking: Haptic pulse failed on step %d: %s", step_count, e)

    def get_tracking_snapshot(self) -> Optional[TrackingSnapshot]:
        """Latest published TrackingSnapshot, or None before the first event."""
        snapshot = self.get_snapshot()
        if snapshot is None:
            return None
        return snapshot.data.get('tracking')
