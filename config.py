"""
Configuration settings for the catchwalk system.
Contains constants for hardware, tracking, and threading configuration.

Engine defaults (voxel sizes, fusion weights, interpolation) live in
spatial_coverage/config.py. Values here describe the device: which
sensors are fitted, where they are wired, and how the worker threads run.

Organised into logical sections:
1. Data storage
2. Hardware - GPS (serial, timeouts, accuracy)
3. Hardware - I2C Bus
4. Hardware - IMU (accelerometer)
5. Hardware - Barometer
6. Tracking (walking coverage, elevation capture)
7. Threading & Performance (queues, timeouts)
"""

import logging
import os

logger = logging.getLogger("catchwalk.config")

# ==============================================================================
# APPLICATION VERSION
# ==============================================================================
APP_VERSION = "0.4.0"

# ==============================================================================
#                          1. DATA STORAGE
# ==============================================================================

# Walk logs and exports are written under this directory
LOCAL_DATA_DIR = os.path.expanduser("~/.catchwalk")


def get_data_dir() -> str:
    """
    Get the base data directory for walk logs and exports.

    CATCHWALK_DATA_DIR overrides the default location.
    """
    return os.environ.get("CATCHWALK_DATA_DIR", LOCAL_DATA_DIR)


# ==============================================================================
#                          2. HARDWARE - GPS
# ==============================================================================

# Enable/disable GPS module
GPS_ENABLED = True

# Serial port for GPS (Raspberry Pi UART)
# Use "/dev/ttyUSB0" or "/dev/ttyACM0" for USB receivers
GPS_SERIAL_PORT = "/dev/ttyS0"
GPS_BAUD_RATE = 9600  # MTK3339 factory default; 1-5Hz is plenty at walking pace

# GPS serial timeout settings
GPS_SERIAL_TIMEOUT_S = 0.15  # Read timeout for serial port (seconds)

# Horizontal accuracy estimate = HDOP * UERE
GPS_UERE_M = 5.0  # User equivalent range error (metres), consumer receivers
GPS_DEFAULT_ACCURACY_M = 10.0  # Used until the first GGA reports HDOP

# ==============================================================================
#                          3. HARDWARE - I2C BUS
# ==============================================================================

I2C_BUS = 1  # Default I2C bus on Raspberry Pi

# ==============================================================================
#                          4. HARDWARE - IMU
# ==============================================================================

# IMU sensor type - supported types:
# - "ICM20649" - ICM-20649 6-axis IMU (±30g accelerometer)
# - "MPU6050" - MPU-6050 6-axis IMU (±16g accelerometer)
# - "LSM6DS3" - LSM6DS3 6-axis IMU (±16g accelerometer)
# - "ADXL345" - ADXL345 3-axis accelerometer (±16g)
IMU_TYPE = "MPU6050"
IMU_ENABLED = True
IMU_I2C_ADDRESS = 0x68  # MPU6050: 0x68 or 0x69
IMU_SAMPLE_RATE = 50  # Hz - step detection needs well above walking cadence (~2Hz)
IMU_RECONNECT_INTERVAL_S = 5.0  # Seconds between reconnection attempts

# ==============================================================================
#                          5. HARDWARE - BAROMETER
# ==============================================================================

BAROMETER_ENABLED = True
BAROMETER_I2C_ADDRESS = 0x77  # BMP280: 0x77 (Adafruit) or 0x76
BAROMETER_SAMPLE_RATE = 5  # Hz - matches the elevation capture rate
BAROMETER_SEA_LEVEL_HPA = 1013.25  # Only shifts absolute altitude, not relative elevation

# ==============================================================================
#                          6. TRACKING
# ==============================================================================

# Haptic pulse on each detected step (set False on devices without a motor)
TRACKING_HAPTIC_ENABLED = True

# Tracking handler inbox (sensor events waiting for the worker)
TRACKING_INBOX_SIZE = 1000  # Events; a full inbox drops new events

# Worker wakes at least this often to run the elevation tick
TRACKING_TICK_S = 0.05

# ==============================================================================
#                          7. THREADING & PERFORMANCE
# ==============================================================================

THREAD_JOIN_TIMEOUT_S = 2.0  # Default timeout for thread.join() calls
SNAPSHOT_QUEUE_DEPTH = 2  # Bounded snapshot queue (1 current + 1 buffer)
HANDLER_MAX_CONSECUTIVE_ERRORS = 10  # Errors before a handler reinitialises
