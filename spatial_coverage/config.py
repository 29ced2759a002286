"""
Configuration file for the spatial coverage engine.

Contains defaults for voxel painting, sensor fusion, elevation capture and
interpolation. Runtime overrides go through utils.settings.
"""

# =============================================================================
# Coverage Session Settings
# =============================================================================

DEFAULT_VOXEL_SIZE = 0.05       # Static coverage session cell size (meters)
                                 # 5cm for survey-grade AR painting

AUTO_COMPLETE_THRESHOLD = 98.0  # Coverage percentage counted as complete

MIN_BOUNDARY_POINTS = 3         # Fewest vertices a polygon can have


# =============================================================================
# Walking Coverage (GPS + IMU fusion) Settings
# =============================================================================

WALKING_VOXEL_SIZE = 0.5        # Cell size painted by the walking loop (meters)
                                 # Independent of DEFAULT_VOXEL_SIZE

GPS_WEIGHT = 0.7                # Complementary filter weight for GPS fix
IMU_WEIGHT = 0.3                # Complementary filter weight for IMU dead reckoning

CONFIDENCE_ZERO_ACCURACY = 20.0  # GPS accuracy (m) at which confidence hits 0

STEP_THRESHOLD_G = 1.2          # Total acceleration (in g) that counts as a step
GRAVITY = 9.8                   # m/s² used by the step detector

IMU_DAMPING = 0.1               # Damping applied to integrated acceleration
                                 # Lower = trust IMU less between fixes

HAPTIC_STEP_PULSE_MS = 10       # Vibration length on each detected step

GPS_MAXIMUM_AGE_S = 0.5         # Oldest cached fix accepted by the GPS watch


# =============================================================================
# Elevation Capture Settings
# =============================================================================

ELEVATION_CELL_SIZE = 0.1       # Raster spacing of the elevation grid (meters)

ELEVATION_SAMPLE_INTERVAL_S = 0.2  # 5Hz sampling while tracking

BAROMETER_ACCURACY_M = 0.5      # ± meters for barometric samples
GPS_ALTITUDE_ACCURACY_M = 5.0   # ± meters for GPS altitude samples
LIDAR_ACCURACY_M = 0.01         # ± meters for LiDAR samples


# =============================================================================
# Interpolation Settings
# =============================================================================

IDW_EXACT_MATCH_EPSILON = 0.001  # Distance (m, per axis) treated as coincident

SLOPE_OFFSET_FRACTION = 0.5     # Central difference offset as fraction of cell size

SAMPLE_INDEX = "linear"         # "linear" (all samples) or "kdtree"
KDTREE_NEIGHBOURS = 16          # Nearest samples used when SAMPLE_INDEX = "kdtree"


# =============================================================================
# Validation Settings
# =============================================================================

COVERAGE_PASS_THRESHOLD = 95.0  # Percent coverage required for a passing scan
