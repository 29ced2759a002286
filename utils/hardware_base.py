"""
Base class for sensor handlers with a bounded snapshot queue and listeners.

Each handler runs one worker thread that owns all device I/O. Results leave
the worker two ways:
- snapshots, published into a bounded queue (drop-oldest) for pollers
- events, pushed to attached listeners (the tracking handler's inbox)

Listeners are called on the worker thread and must not block.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from spatial_coverage.errors import UnavailableSensorError

logger = logging.getLogger('catchwalk.hardware')


@dataclass(frozen=True)
class HandlerSnapshot:
    """Immutable view of a handler's latest data."""
    timestamp: float
    data: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


class BoundedQueueSensorHandler:
    """
    Base class for sensor handlers.

    Subclasses implement _worker_loop() and call _publish_snapshot() and
    _notify() from it. Consumers never take a lock: get_snapshot() drains
    the queue and keeps the latest snapshot.
    """

    # Name used in log messages and UnavailableSensorError
    sensor_name = "sensor"

    def __init__(self, queue_depth: int = 2):
        """
        Initialise the handler.

        Args:
            queue_depth: Maximum snapshot queue depth (default 2 for double-buffering)
        """
        self.queue_depth = queue_depth
        self.data_queue: "queue.Queue[HandlerSnapshot]" = queue.Queue(maxsize=queue_depth)
        self.current_snapshot: Optional[HandlerSnapshot] = None
        self.running = False
        self.thread: Optional[threading.Thread] = None

        self._listeners: List[Callable[[Any], None]] = []
        self._listeners_lock = threading.Lock()

        # Rate monitoring
        self.frame_count = 0
        self.last_perf_time = time.time()
        self.update_hz = 0.0
        self._frames_dropped_total = 0

    def start(self):
        """Start the worker thread."""
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(
            target=self._worker_loop,
            name=f"{self.__class__.__name__}-worker",
            daemon=True,
        )
        self.thread.start()
        logger.info("%s worker thread started", self.__class__.__name__)

    def stop(self):
        """Stop the worker thread."""
        self.running = False
        if self.thread:
            self.thread.join(timeout=5.0)  # Allow time for serial/I2C reads to finish
            self.thread = None
        logger.info("%s worker thread stopped", self.__class__.__name__)

    def _worker_loop(self):
        """
        Worker thread loop - handles all I/O and processing.
        Override this method in subclasses.
        """
        raise NotImplementedError("Subclasses must implement _worker_loop")

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    @property
    def is_available(self) -> bool:
        """Whether this handler can deliver events. Subclasses override."""
        return True

    def add_listener(self, callback: Callable[[Any], None]):
        """
        Attach an event listener.

        Raises:
            UnavailableSensorError: the device is not available
        """
        if not self.is_available:
            raise UnavailableSensorError(self.sensor_name, "device not initialised")
        with self._listeners_lock:
            if callback not in self._listeners:
                self._listeners.append(callback)
        logger.debug("%s: listener attached", self.sensor_name)

    def remove_listener(self, callback: Callable[[Any], None]):
        """Detach a listener; unknown callbacks are ignored."""
        with self._listeners_lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def listener_count(self) -> int:
        with self._listeners_lock:
            return len(self._listeners)

    def _notify(self, event: Any):
        """Deliver an event to every attached listener."""
        with self._listeners_lock:
            listeners = list(self._listeners)
        for callback in listeners:
            callback(event)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def _publish_snapshot(self, data: Dict[str, Any], metadata: Dict[str, Any] = None):
        """
        Publish a new data snapshot to the queue.

        Args:
            data: Sensor data dictionary
            metadata: Optional metadata (status, errors, etc.)
        """
        snapshot = HandlerSnapshot(
            timestamp=time.time(),
            data=data.copy() if data else {},
            metadata=metadata.copy() if metadata else {},
        )

        # Non-blocking put - drop oldest snapshot if queue full
        try:
            self.data_queue.put_nowait(snapshot)
        except queue.Full:
            try:
                self.data_queue.get_nowait()
                self.data_queue.put_nowait(snapshot)
            except (queue.Empty, queue.Full):
                pass
            self._frames_dropped_total += 1

        self.frame_count += 1
        current_time = time.time()
        elapsed = current_time - self.last_perf_time
        if elapsed >= 1.0:
            self.update_hz = self.frame_count / elapsed
            self.frame_count = 0
            self.last_perf_time = current_time

    def get_snapshot(self) -> Optional[HandlerSnapshot]:
        """
        Get the latest snapshot without blocking.

        Returns:
            HandlerSnapshot or None if nothing was published yet
        """
        try:
            while True:
                self.current_snapshot = self.data_queue.get_nowait()
        except queue.Empty:
            pass

        return self.current_snapshot

    def get_data(self) -> Dict[str, Any]:
        """Latest snapshot data, or an empty dict."""
        snapshot = self.get_snapshot()
        return snapshot.data if snapshot else {}

    def get_update_rate(self) -> float:
        """Snapshot publish rate in Hz."""
        return self.update_hz

    def get_dropped_count(self) -> int:
        """Snapshots dropped because the queue was full."""
        return self._frames_dropped_total
