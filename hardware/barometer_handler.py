"""
Barometer Handler for catchwalk.
Reads a BMP280 pressure sensor for relative elevation during a walk.
"""

import logging
import time

from config import (
    BAROMETER_ENABLED,
    BAROMETER_I2C_ADDRESS,
    BAROMETER_SAMPLE_RATE,
    BAROMETER_SEA_LEVEL_HPA,
    HANDLER_MAX_CONSECUTIVE_ERRORS,
    SNAPSHOT_QUEUE_DEPTH,
)
from spatial_coverage.data.models import PressureReading
from utils.conversions import isa_altitude_from_pressure
from utils.hardware_base import BoundedQueueSensorHandler

logger = logging.getLogger('catchwalk.barometer')

try:
    import board
    import busio
    import adafruit_bmp280
    BMP280_AVAILABLE = True
except ImportError:
    BMP280_AVAILABLE = False
    logger.warning("adafruit_bmp280 not available (running in mock mode)")


class BarometerHandler(BoundedQueueSensorHandler):
    """
    Pressure sensor handler.

    Emits PressureReading events in hPa. Altitude conversion happens in the
    fusion loop; the snapshot carries an ISA altitude for display only.
    """

    sensor_name = "barometer"

    def __init__(self):
        super().__init__(queue_depth=SNAPSHOT_QUEUE_DEPTH)
        self.sensor = None
        self.enabled = BAROMETER_ENABLED
        self.hardware_available = False

        self.consecutive_errors = 0
        self.max_consecutive_errors = HANDLER_MAX_CONSECUTIVE_ERRORS

        if self.enabled:
            self._initialise()
            self.start()
        else:
            logger.info("Barometer disabled in config")

    @property
    def is_available(self) -> bool:
        return self.hardware_available

    def _initialise(self):
        if not BMP280_AVAILABLE:
            self.hardware_available = False
            return

        try:
            i2c = busio.I2C(board.SCL, board.SDA)
            self.sensor = adafruit_bmp280.Adafruit_BMP280_I2C(i2c, address=BAROMETER_I2C_ADDRESS)
            self.sensor.sea_level_pressure = BAROMETER_SEA_LEVEL_HPA
            self.hardware_available = True
            self.consecutive_errors = 0
            logger.info("Barometer: Initialised BMP280 at 0x%02x", BAROMETER_I2C_ADDRESS)
        except (OSError, ValueError, RuntimeError) as e:
            logger.warning("Barometer: Failed to initialise BMP280: %s", e)
            self.sensor = None
            self.hardware_available = False

    def read(self) -> PressureReading:
        return PressureReading(pressure_hpa=self.sensor.pressure, timestamp=time.time())

    def _worker_loop(self):
        """Poll the sensor at BAROMETER_SAMPLE_RATE."""
        poll_interval = 1.0 / BAROMETER_SAMPLE_RATE

        while self.running:
            start_time = time.time()
            try:
                if self.sensor and self.hardware_available:
                    reading = self.read()
                    self.consecutive_errors = 0
                    self._notify(reading)
                    self._publish_snapshot({
                        'pressure_hpa': reading.pressure_hpa,
                        'altitude_m': isa_altitude_from_pressure(
                            reading.pressure_hpa, BAROMETER_SEA_LEVEL_HPA
                        ),
                    })

            except Exception as e:
                self.consecutive_errors += 1
                if self.consecutive_errors == 3:
                    logger.warning("Barometer: Error reading sensor: %s", e)
                elif self.consecutive_errors >= self.max_consecutive_errors:
                    logger.warning("Barometer: Too many errors, reinitialising...")
                    self._initialise()
                    self.consecutive_errors = 0

            elapsed = time.time() - start_time
            sleep_time = max(0, poll_interval - elapsed)
            if sleep_time > 0:
                time.sleep(sleep_time)
