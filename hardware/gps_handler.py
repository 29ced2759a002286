"""
GPS Handler for catchwalk.
Reads NMEA sentences from a serial receiver and emits GPSFix events.
"""

import logging
import time
from typing import Callable, Optional

import serial

from config import (
    GPS_BAUD_RATE,
    GPS_DEFAULT_ACCURACY_M,
    GPS_ENABLED,
    GPS_SERIAL_PORT,
    GPS_SERIAL_TIMEOUT_S,
    GPS_UERE_M,
    HANDLER_MAX_CONSECUTIVE_ERRORS,
    SNAPSHOT_QUEUE_DEPTH,
)
from spatial_coverage.config import GPS_MAXIMUM_AGE_S
from spatial_coverage.data.models import GPSFix
from utils.conversions import hdop_to_accuracy
from utils.hardware_base import BoundedQueueSensorHandler
from utils.settings import get_settings

logger = logging.getLogger('catchwalk.gps')


def nmea_payload(sentence: str) -> Optional[str]:
    """
    Verify an NMEA checksum.

    Checksum is XOR of all characters between $ and * (exclusive).

    Returns:
        The sentence without '$' and checksum, or None if invalid
    """
    if not sentence.startswith('$') or '*' not in sentence:
        return None
    data_part, checksum = sentence.split('*', 1)
    calc_checksum = 0
    for char in data_part[1:]:
        calc_checksum ^= ord(char)
    if f"{calc_checksum:02X}" != checksum.strip().upper():
        return None
    return data_part[1:]


def parse_coordinate(value: str, hemisphere: str, degree_digits: int) -> float:
    """Convert NMEA DDMM.MMMM / DDDMM.MMMM to signed decimal degrees."""
    degrees = float(value[:degree_digits])
    minutes = float(value[degree_digits:])
    result = degrees + minutes / 60.0
    if hemisphere in ('S', 'W'):
        result = -result
    return result


class GPSHandler(BoundedQueueSensorHandler):
    """
    GPS handler reading NMEA directly from serial.

    NMEA Sentences Parsed
    ---------------------
    GPRMC/GNRMC (Recommended Minimum):
        - Position (latitude, longitude)
        - Fix status (A=valid, V=invalid)

    GPGGA/GNGGA (Fix Data):
        - Satellites in use
        - HDOP, converted to a horizontal accuracy estimate
        - Altitude above mean sea level

    Every valid RMC produces one GPSFix, delivered to watchers (listeners)
    and published as a snapshot. GGA usually arrives in the same epoch, so
    the fix carries the most recent HDOP and altitude.

    Error Recovery
    --------------
    After max_consecutive_errors serial errors the handler reopens the
    port, which covers USB receivers being unplugged and replugged.
    """

    sensor_name = "gps"

    def __init__(self, port: Optional[str] = None, baud_rate: Optional[int] = None):
        super().__init__(queue_depth=SNAPSHOT_QUEUE_DEPTH)
        settings = get_settings()
        self.enabled = settings.get("gps.enabled", GPS_ENABLED)
        self.port = port or settings.get("gps.port", GPS_SERIAL_PORT)
        self.baud_rate = baud_rate or settings.get("gps.baud_rate", GPS_BAUD_RATE)
        self.serial_port = None
        self.hardware_available = False

        # Current values
        self.latitude = 0.0
        self.longitude = 0.0
        self.altitude: Optional[float] = None
        self.accuracy = GPS_DEFAULT_ACCURACY_M
        self.has_fix = False
        self.satellites = 0
        self.last_fix: Optional[GPSFix] = None

        # Error tracking
        self.consecutive_errors = 0
        self.max_consecutive_errors = HANDLER_MAX_CONSECUTIVE_ERRORS

        if self.enabled:
            self._initialise()
            self.start()
        else:
            logger.info("GPS disabled in config")

    @property
    def is_available(self) -> bool:
        return self.hardware_available

    def _initialise(self):
        """Open the serial connection to the receiver."""
        try:
            self.serial_port = serial.Serial(
                port=self.port,
                baudrate=self.baud_rate,
                timeout=GPS_SERIAL_TIMEOUT_S,
            )
            self.hardware_available = True
            self.consecutive_errors = 0
            logger.info("GPS: Connected to %s at %s baud", self.port, self.baud_rate)
        except (serial.SerialException, OSError) as e:
            logger.warning("GPS: Failed to open %s: %s", self.port, e)
            self.serial_port = None
            self.hardware_available = False

    # ------------------------------------------------------------------
    # Watch API
    # ------------------------------------------------------------------

    def watch(self, callback: Callable[[GPSFix], None]):
        """
        Receive every new fix.

        A cached fix younger than GPS_MAXIMUM_AGE_S is delivered
        immediately, so a watcher attached mid-walk does not wait for the
        next epoch.

        Raises:
            UnavailableSensorError: no receiver connected
        """
        self.add_listener(callback)
        fix = self.last_fix
        if fix is not None and time.time() - fix.timestamp <= GPS_MAXIMUM_AGE_S:
            callback(fix)

    def clear_watch(self, callback: Callable[[GPSFix], None]):
        self.remove_listener(callback)

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _worker_loop(self):
        """
        Read NMEA sentences, parse them, emit fixes.

        Processing Flow:
            1. Read available bytes from serial port into buffer
            2. Extract complete sentences (terminated by CRLF)
            3. GGA updates HDOP/altitude/satellites
            4. Each valid RMC emits a GPSFix
        """
        buffer = ""

        while self.running:
            try:
                if self.serial_port and self.hardware_available:
                    if self.serial_port.in_waiting > 0:
                        data = self.serial_port.read(self.serial_port.in_waiting)
                        buffer += data.decode('ascii', errors='ignore')

                        while '\r\n' in buffer:
                            line, buffer = buffer.split('\r\n', 1)
                            self.process_sentence(line)

                        self.consecutive_errors = 0

                    # Small sleep to prevent busy-waiting
                    time.sleep(0.01)
                else:
                    time.sleep(0.5)

            except serial.SerialException as e:
                self.consecutive_errors += 1
                if self.consecutive_errors == 3:
                    logger.warning("GPS: Serial error: %s", e)
                elif self.consecutive_errors >= self.max_consecutive_errors:
                    logger.warning("GPS: Too many errors, attempting reconnect...")
                    self._close_port()
                    self._initialise()
                    self.consecutive_errors = 0
                time.sleep(0.1)

            except Exception as e:
                self.consecutive_errors += 1
                logger.debug("GPS: Error: %s", e)
                if self.consecutive_errors == 3:
                    logger.warning("GPS: Error: %s", e)
                time.sleep(0.1)

    def process_sentence(self, line: str) -> Optional[GPSFix]:
        """
        Handle one NMEA sentence.

        Returns:
            The emitted GPSFix for a valid RMC with fix, otherwise None
        """
        if line.startswith('$GPRMC') or line.startswith('$GNRMC'):
            if self._parse_rmc(line):
                return self._emit_fix()
        elif line.startswith('$GPGGA') or line.startswith('$GNGGA'):
            self._parse_gga(line)
        return None

    def _parse_rmc(self, sentence: str) -> bool:
        """
        Parse GPRMC/GNRMC sentence.

        Format: $GPRMC,time,status,lat,N/S,lon,E/W,speed,course,date,mag,mode*checksum
        Example: $GPRMC,123519,A,4807.038,N,01131.000,E,022.4,084.4,230394,003.1,W*6A

        Returns:
            True when the sentence carried a valid position fix
        """
        payload = nmea_payload(sentence)
        if payload is None:
            return False

        parts = payload.split(',')
        if len(parts) < 10:
            return False

        # Status: A=valid, V=invalid
        self.has_fix = (parts[2] == 'A')
        if not self.has_fix or not parts[3] or not parts[5]:
            return False

        try:
            latitude = parse_coordinate(parts[3], parts[4], 2)
            longitude = parse_coordinate(parts[5], parts[6], 3)
        except ValueError:
            return False

        self.latitude = latitude
        self.longitude = longitude
        return True

    def _parse_gga(self, sentence: str):
        """
        Parse GPGGA/GNGGA sentence for satellites, HDOP and altitude.

        Format: $GPGGA,time,lat,N/S,lon,E/W,quality,num_sats,hdop,alt,M,geoid,M,...*checksum
        Example: $GPGGA,123519,4807.038,N,01131.000,E,1,08,0.9,545.4,M,47.0,M,,*47
        """
        payload = nmea_payload(sentence)
        if payload is None:
            return

        parts = payload.split(',')
        if len(parts) < 10:
            return

        try:
            if parts[7]:
                self.satellites = int(parts[7])
            if parts[8]:
                self.accuracy = hdop_to_accuracy(float(parts[8]), GPS_UERE_M)
            # Quality 0 = no fix; altitude is meaningless then
            if parts[6] and parts[6] != '0' and parts[9]:
                self.altitude = float(parts[9])
            else:
                self.altitude = None
        except ValueError:
            return

    def _emit_fix(self) -> GPSFix:
        """Build a GPSFix from current values, notify watchers and publish."""
        fix = GPSFix(
            lat=self.latitude,
            lon=self.longitude,
            accuracy=self.accuracy,
            altitude=self.altitude,
            timestamp=time.time(),
        )
        self.last_fix = fix
        self._notify(fix)
        self._publish_snapshot({
            'latitude': fix.lat,
            'longitude': fix.lon,
            'accuracy': fix.accuracy,
            'altitude': fix.altitude,
            'has_fix': self.has_fix,
            'satellites': self.satellites,
        })
        return fix

    def has_gps_fix(self) -> bool:
        return self.has_fix

    def _close_port(self):
        if self.serial_port:
            try:
                self.serial_port.close()
            except serial.SerialException as e:
                logger.debug("GPS: Error closing port: %s", e)
            self.serial_port = None

    def stop(self):
        """Stop the GPS handler and close serial connection."""
        super().stop()
        self._close_port()
