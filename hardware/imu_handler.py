"""
IMU Handler for catchwalk.
Reads the accelerometer for step detection and dead reckoning between
GPS fixes. Supports multiple IMU types with configurable sensor selection.
"""

import logging
import time

from config import (
    HANDLER_MAX_CONSECUTIVE_ERRORS,
    IMU_ENABLED,
    IMU_I2C_ADDRESS,
    IMU_RECONNECT_INTERVAL_S,
    IMU_SAMPLE_RATE,
    IMU_TYPE,
    SNAPSHOT_QUEUE_DEPTH,
)
from spatial_coverage.data.models import InertialReading
from utils.hardware_base import BoundedQueueSensorHandler

logger = logging.getLogger('catchwalk.imu')

# Try to import IMU libraries
try:
    import board
    import busio
    BOARD_AVAILABLE = True
except ImportError:
    BOARD_AVAILABLE = False
    logger.warning("board/busio not available (running in mock mode)")

# IMU library imports based on sensor type
ICM20649_AVAILABLE = False
MPU6050_AVAILABLE = False
LSM6DS3_AVAILABLE = False
ADXL345_AVAILABLE = False

if BOARD_AVAILABLE:
    try:
        import adafruit_icm20x
        ICM20649_AVAILABLE = True
    except ImportError:
        pass

    try:
        from adafruit_mpu6050 import MPU6050
        MPU6050_AVAILABLE = True
    except ImportError:
        pass

    try:
        import adafruit_lsm6ds.lsm6ds3
        LSM6DS3_AVAILABLE = True
    except ImportError:
        pass

    try:
        import adafruit_adxl34x
        ADXL345_AVAILABLE = True
    except ImportError:
        pass


class IMUHandler(BoundedQueueSensorHandler):
    """
    Accelerometer handler.

    Emits InertialReading events in m/s² including gravity, the form the
    step detector expects (a stationary device reads ~9.81 total).

    Supports:
    - ICM-20649
    - MPU-6050
    - LSM6DS3
    - ADXL345
    """

    sensor_name = "imu"

    def __init__(self):
        super().__init__(queue_depth=SNAPSHOT_QUEUE_DEPTH)
        self.imu = None
        self.imu_type = IMU_TYPE
        self.enabled = IMU_ENABLED

        # Error tracking for reconnection logic
        self.consecutive_errors = 0
        self.max_consecutive_errors = HANDLER_MAX_CONSECUTIVE_ERRORS
        self.last_reconnect_attempt = 0.0
        self.hardware_available = False

        if self.enabled:
            self._initialise()
            self.start()
        else:
            logger.info("IMU disabled in config")

    @property
    def is_available(self) -> bool:
        return self.hardware_available

    def _initialise(self):
        """Initialise the IMU sensor based on configured type."""
        if not BOARD_AVAILABLE:
            logger.info("IMU: Running in mock mode (no hardware)")
            self.imu = None
            self.hardware_available = False
            return

        try:
            i2c = busio.I2C(board.SCL, board.SDA)

            if self.imu_type == "ICM20649" and ICM20649_AVAILABLE:
                self.imu = adafruit_icm20x.ICM20649(i2c, address=IMU_I2C_ADDRESS)
            elif self.imu_type == "MPU6050" and MPU6050_AVAILABLE:
                self.imu = MPU6050(i2c, address=IMU_I2C_ADDRESS)
            elif self.imu_type == "LSM6DS3" and LSM6DS3_AVAILABLE:
                self.imu = adafruit_lsm6ds.lsm6ds3.LSM6DS3(i2c, address=IMU_I2C_ADDRESS)
            elif self.imu_type == "ADXL345" and ADXL345_AVAILABLE:
                self.imu = adafruit_adxl34x.ADXL345(i2c, address=IMU_I2C_ADDRESS)
            else:
                logger.warning(
                    "IMU: Unsupported or unavailable IMU type '%s' "
                    "(ICM20649=%s, MPU6050=%s, LSM6DS3=%s, ADXL345=%s)",
                    self.imu_type, ICM20649_AVAILABLE, MPU6050_AVAILABLE,
                    LSM6DS3_AVAILABLE, ADXL345_AVAILABLE,
                )
                self.imu = None
                self.hardware_available = False
                return

            self.hardware_available = True
            self.consecutive_errors = 0
            logger.info("IMU: Initialised %s at 0x%02x", self.imu_type, IMU_I2C_ADDRESS)

        except (OSError, ValueError, RuntimeError) as e:
            logger.warning("IMU: Failed to initialise %s: %s", self.imu_type, e)
            self.imu = None
            self.hardware_available = False

    def read(self) -> InertialReading:
        """Read one acceleration sample from the sensor."""
        accel = self.imu.acceleration
        return InertialReading(
            accel_x=accel[0],
            accel_y=accel[1],
            accel_z=accel[2],
            timestamp=time.time(),
        )

    def _worker_loop(self):
        """Poll the accelerometer at IMU_SAMPLE_RATE."""
        poll_interval = 1.0 / IMU_SAMPLE_RATE

        while self.running:
            start_time = time.time()

            # Attempt reconnection if we've had too many consecutive errors
            if self.consecutive_errors >= self.max_consecutive_errors:
                if start_time - self.last_reconnect_attempt >= IMU_RECONNECT_INTERVAL_S:
                    logger.info("IMU: Attempting to reconnect...")
                    self._initialise()
                    self.last_reconnect_attempt = start_time
                    if not self.hardware_available:
                        time.sleep(poll_interval)
                        continue

            try:
                if self.imu and self.hardware_available:
                    reading = self.read()
                    self.consecutive_errors = 0
                    self._notify(reading)
                    self._publish_snapshot({
                        'accel_x': reading.accel_x,
                        'accel_y': reading.accel_y,
                        'accel_z': reading.accel_z,
                        'total': reading.total,
                    })

            except Exception as e:
                self.consecutive_errors += 1

                # Only log occasionally to avoid log spam
                if self.consecutive_errors == 1:
                    logger.debug("IMU: Error reading sensor: %s", e)
                elif self.consecutive_errors == 3:
                    logger.warning("IMU: Error reading sensor: %s", e)
                elif self.consecutive_errors == self.max_consecutive_errors:
                    logger.warning("IMU: %d consecutive errors - hardware may be disconnected",
                                   self.max_consecutive_errors)

            # Sleep to maintain sample rate
            elapsed = time.time() - start_time
            sleep_time = max(0, poll_interval - elapsed)
            if sleep_time > 0:
                time.sleep(sleep_time)
