"""
GeoPolygon - immutable polygon over WGS84 vertices.

Created once per confirmed boundary drawing. A changed boundary is a new
instance; nothing here mutates after construction.

Accuracy notes
--------------
- centroid is the arithmetic mean of the vertex latitudes and longitudes,
  not a geodesic centroid. Good enough for catchment-sized polygons and
  used as the projection origin for walking coverage.
- area_square_meters projects the vertices to local metres around the
  first vertex and applies the shoelace formula. Error grows for polygons
  spanning more than a few kilometres.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from spatial_coverage.config import MIN_BOUNDARY_POINTS
from spatial_coverage.core.boundary import Boundary
from spatial_coverage.data.models import GeoBounds, GeoVertex, Point
from spatial_coverage.errors import ValidationError
from spatial_coverage.utils.geometry import (
    crosses_ray,
    is_on_segment,
    lat_lon_to_local_meters,
    shoelace_area,
)

VertexLike = Union[GeoVertex, Tuple[float, float]]


def _as_vertex(value: VertexLike) -> GeoVertex:
    if isinstance(value, GeoVertex):
        return value
    try:
        lat, lon = value
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid vertex {value!r}: expected (lat, lon)") from e
    return GeoVertex(lat=lat, lon=lon)


@dataclass(frozen=True)
class GeoPolygon:
    """
    Validated geodetic polygon.

    Use GeoPolygon.create() - it validates vertex count and ranges.
    """
    vertices: Tuple[GeoVertex, ...]

    def __post_init__(self):
        verts = tuple(_as_vertex(v) for v in self.vertices)
        if len(verts) < MIN_BOUNDARY_POINTS:
            raise ValidationError(
                f"GeoPolygon requires at least {MIN_BOUNDARY_POINTS} vertices, got {len(verts)}"
            )
        for v in verts:
            v.validate()
        object.__setattr__(self, "vertices", verts)

    @classmethod
    def create(cls, vertices: Iterable[VertexLike]) -> "GeoPolygon":
        """
        Factory for a validated GeoPolygon.

        Args:
            vertices: GeoVertex instances or (lat, lon) pairs, in drawing order

        Raises:
            ValidationError: fewer than 3 vertices or a coordinate out of range
        """
        return cls(vertices=tuple(vertices))

    def to_local_meters(self, origin: GeoVertex) -> List[Point]:
        """Project every vertex to local metres around origin."""
        return [lat_lon_to_local_meters(origin, v) for v in self.vertices]

    def to_boundary(self, origin: Optional[GeoVertex] = None) -> Boundary:
        """
        Planar Boundary for this polygon.

        Args:
            origin: Projection origin (default: centroid)
        """
        if origin is None:
            origin = self.centroid
        return Boundary(points=tuple(self.to_local_meters(origin)))

    def contains(self, lat: float, lon: float) -> bool:
        """
        Check if a lat/lon point is inside the polygon.

        Ray casting over successive edges. A point lying on an edge counts as
        inside and returns immediately.
        """
        # lat plays x and lon plays y so the ray runs along latitude
        ring = self._ring
        n = len(ring)
        inside = False
        j = n - 1
        for i in range(n):
            vi = ring[i]
            vj = ring[j]
            if is_on_segment(lat, lon, vi, vj):
                return True
            if crosses_ray(lat, lon, vi, vj):
                inside = not inside
            j = i
        return inside

    def contains_point(self, lat: float, lon: float) -> bool:
        """Alias for contains()."""
        return self.contains(lat, lon)

    @property
    def _ring(self) -> Sequence[Point]:
        return [Point(x=v.lat, y=v.lon) for v in self.vertices]

    @property
    def centroid(self) -> GeoVertex:
        """Arithmetic mean of vertex coordinates (not geodesic)."""
        n = len(self.vertices)
        return GeoVertex(
            lat=sum(v.lat for v in self.vertices) / n,
            lon=sum(v.lon for v in self.vertices) / n,
        )

    def get_centroid(self) -> GeoVertex:
        """Alias for the centroid property."""
        return self.centroid

    @property
    def area_square_meters(self) -> float:
        """Approximate area in square metres."""
        origin = self.vertices[0]
        return abs(shoelace_area(self.to_local_meters(origin)))

    def get_bounds(self) -> GeoBounds:
        """Bounding box over the vertices."""
        lats = [v.lat for v in self.vertices]
        lons = [v.lon for v in self.vertices]
        return GeoBounds(
            min_lat=min(lats),
            max_lat=max(lats),
            min_lon=min(lons),
            max_lon=max(lons),
        )
