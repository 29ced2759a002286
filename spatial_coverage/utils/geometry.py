"""
Shared geometry functions for geodetic and planar calculations.

Conversions between WGS84 and local metres use an equirectangular
approximation which is accurate to centimetres over catchment-scale spans
(well under a kilometre). They are not meant for regional distances.
"""

import math
from typing import Iterable, List, Sequence, Tuple

from spatial_coverage.data.models import GeoVertex, Point

EARTH_RADIUS_M = 6371000  # Mean Earth radius in meters

# Meters per degree of latitude (constant on a sphere)
METERS_PER_DEG_LAT = (math.pi / 180) * EARTH_RADIUS_M

EDGE_EPSILON = 1e-10


def lat_lon_to_local_meters(origin: GeoVertex, point: GeoVertex) -> Point:
    """
    Convert a lat/lon point to local metres relative to an origin.

    Longitude is scaled by the cosine of the mean of both latitudes, which
    keeps east/west distortion lower than using the origin latitude alone.

    Args:
        origin: Projection origin
        point: Point to convert

    Returns:
        Point with x = East, y = North in metres
    """
    d_lat = point.lat - origin.lat
    d_lon = point.lon - origin.lon

    avg_lat = (origin.lat + point.lat) / 2
    meters_per_deg_lon = METERS_PER_DEG_LAT * math.cos(math.radians(avg_lat))

    return Point(x=d_lon * meters_per_deg_lon, y=d_lat * METERS_PER_DEG_LAT)


def local_meters_to_lat_lon(origin: GeoVertex, point: Point) -> GeoVertex:
    """
    Convert local metres back to lat/lon relative to an origin.

    Uses cos(origin.lat) only, so this is not an exact inverse of
    lat_lon_to_local_meters. The asymmetry stays below 1e-5 degrees for
    spans under a kilometre.
    """
    meters_per_deg_lon = METERS_PER_DEG_LAT * math.cos(math.radians(origin.lat))

    return GeoVertex(
        lat=origin.lat + point.y / METERS_PER_DEG_LAT,
        lon=origin.lon + point.x / meters_per_deg_lon,
    )


def haversine_distance(a: GeoVertex, b: GeoVertex) -> float:
    """
    Calculate great circle distance between two points in metres.

    Identical points short-circuit to exactly 0 before any trigonometry.
    """
    if a.lat == b.lat and a.lon == b.lon:
        return 0.0

    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    delta_phi = math.radians(b.lat - a.lat)
    delta_lambda = math.radians(b.lon - a.lon)

    h = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)

    # Rounding can push h slightly outside [0, 1]
    clamped = math.sqrt(max(0.0, min(1.0, h)))

    return 2 * EARTH_RADIUS_M * math.asin(clamped)


def shoelace_area(points: Sequence[Point]) -> float:
    """
    Signed polygon area via the shoelace formula.

    Positive for counter-clockwise vertex order, negative for clockwise.
    """
    total = 0.0
    n = len(points)
    for i in range(n):
        j = (i + 1) % n
        total += points[i].x * points[j].y
        total -= points[j].x * points[i].y
    return total / 2


def bounding_box(points: Iterable[Point]) -> Tuple[float, float, float, float]:
    """Return (min_x, max_x, min_y, max_y) of a point collection."""
    xs: List[float] = []
    ys: List[float] = []
    for p in points:
        xs.append(p.x)
        ys.append(p.y)
    return min(xs), max(xs), min(ys), max(ys)


def crosses_ray(x: float, y: float, p1: Point, p2: Point) -> bool:
    """
    True if a ray cast from (x, y) toward +x crosses segment p1-p2.

    Half-open on y so a vertex shared by two edges is counted once.
    """
    if (p1.y > y) == (p2.y > y):
        return False
    return x < (p2.x - p1.x) * (y - p1.y) / (p2.y - p1.y) + p1.x


def is_on_segment(x: float, y: float, a: Point, b: Point,
                  epsilon: float = EDGE_EPSILON) -> bool:
    """
    True if (x, y) is collinear with a-b and lies between the endpoints.

    Collinearity uses a cross product near-zero test, then the dot product
    bounds the point to the segment's extent.
    """
    cross = (x - a.x) * (b.y - a.y) - (y - a.y) * (b.x - a.x)
    if abs(cross) > epsilon:
        return False

    dot = (x - a.x) * (b.x - a.x) + (y - a.y) * (b.y - a.y)
    if dot < 0:
        return False

    squared_length = (b.x - a.x) ** 2 + (b.y - a.y) ** 2
    return dot <= squared_length


class CoordinateTransform:
    """Grouped access to the geodetic conversions."""

    lat_lon_to_local_meters = staticmethod(lat_lon_to_local_meters)
    local_meters_to_lat_lon = staticmethod(local_meters_to_lat_lon)
    haversine_distance = staticmethod(haversine_distance)
