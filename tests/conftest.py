"""
Shared pytest fixtures for catchwalk tests.
"""

import math
import os
import sys
import pytest
import tempfile
import json

# Add project root to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from spatial_coverage.core.boundary import Boundary  # noqa: E402
from spatial_coverage.core.geo_polygon import GeoPolygon  # noqa: E402
from spatial_coverage.utils.geometry import METERS_PER_DEG_LAT  # noqa: E402


@pytest.fixture
def temp_settings_file():
    """Create a temporary settings file for testing SettingsManager."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        f.write('{}')
        temp_path = f.name
    yield temp_path
    # Cleanup
    if os.path.exists(temp_path):
        os.remove(temp_path)


@pytest.fixture
def temp_settings_with_data():
    """Create a temporary settings file with pre-populated data."""
    test_data = {
        "tracking": {
            "voxel_size": 0.25
        },
        "elevation": {
            "cell_size": 0.2,
            "index": "kdtree"
        },
        "gps": {
            "port": "/dev/ttyUSB0",
            "baud_rate": 38400
        }
    }
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        json.dump(test_data, f)
        temp_path = f.name
    yield temp_path
    # Cleanup
    if os.path.exists(temp_path):
        os.remove(temp_path)


@pytest.fixture
def site_origin():
    """South-west corner of the test catchment (Sydney park)."""
    return (-33.8651, 151.2093)


@pytest.fixture
def square_catchment(site_origin):
    """
    GeoPolygon roughly 20m x 20m with its south-west corner at site_origin.

    Side lengths match 20m to well under a millimetre.
    """
    lat0, lon0 = site_origin
    d_lat = 20.0 / METERS_PER_DEG_LAT
    d_lon = 20.0 / (METERS_PER_DEG_LAT * math.cos(math.radians(lat0)))
    return GeoPolygon.create([
        (lat0, lon0),
        (lat0, lon0 + d_lon),
        (lat0 + d_lat, lon0 + d_lon),
        (lat0 + d_lat, lon0),
    ])


@pytest.fixture
def ten_metre_square():
    """10m x 10m planar boundary from (0, 0) to (10, 10)."""
    return Boundary.from_rectangle((0, 0), (10, 10))


@pytest.fixture
def walk_log_file(tmp_path, site_origin):
    """
    Short walk log: two fixes about 5m north-east of the catchment's
    south-west corner, IMU and barometer rows, one malformed row and one
    unknown row type.
    """
    lat0, lon0 = site_origin
    lat = lat0 + 5.2 / METERS_PER_DEG_LAT
    lon = lon0 + 5.2 / (METERS_PER_DEG_LAT * math.cos(math.radians(lat0)))
    lines = [
        "# site Riverside catchment",
        "# operator test",
        f"gps,1000.00,{lat:.8f},{lon:.8f},4.0,12.5",
        "imu,1000.05,0.10,-0.05,9.81",
        "baro,1000.10,1013.25",
        "imu,1000.15,0.20,0.00,14.00",
        "gps,1000.50,not-a-number,151.2,4.0",
        "radar,1000.55,1,2,3",
        f"gps,1001.00,{lat:.8f},{lon:.8f},4.0,12.0",
    ]
    path = tmp_path / "walk.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)
