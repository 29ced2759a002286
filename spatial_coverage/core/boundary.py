"""
Boundary - closed polygon in local planar metres.

Used once geometry has been projected (synthetic boundaries, AR plot
outlines, the voxel session fast path). Points exactly on an edge may be
reported either inside or outside.
"""

from dataclasses import dataclass, field
from typing import Sequence, Tuple, Union

from spatial_coverage.config import MIN_BOUNDARY_POINTS
from spatial_coverage.data.models import Point
from spatial_coverage.errors import ValidationError
from spatial_coverage.utils.geometry import bounding_box, crosses_ray, shoelace_area

PointLike = Union[Point, Tuple[float, float]]


def as_point(value: PointLike) -> Point:
    """Accept a Point or an (x, y) pair."""
    if isinstance(value, Point):
        return value
    try:
        x, y = value
        return Point(x=float(x), y=float(y))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid boundary point {value!r}: {e}") from e


@dataclass(frozen=True)
class Boundary:
    """Immutable planar polygon with a precomputed bounding box."""
    points: Tuple[Point, ...]
    min_x: float = field(init=False, repr=False, compare=False)
    max_x: float = field(init=False, repr=False, compare=False)
    min_y: float = field(init=False, repr=False, compare=False)
    max_y: float = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        pts = tuple(as_point(p) for p in self.points)
        if len(pts) < MIN_BOUNDARY_POINTS:
            raise ValidationError(
                f"Boundary requires at least {MIN_BOUNDARY_POINTS} points, got {len(pts)}"
            )

        # Frozen dataclass: derived fields are set once here
        object.__setattr__(self, "points", pts)
        min_x, max_x, min_y, max_y = bounding_box(pts)
        object.__setattr__(self, "min_x", min_x)
        object.__setattr__(self, "max_x", max_x)
        object.__setattr__(self, "min_y", min_y)
        object.__setattr__(self, "max_y", max_y)

    @property
    def area(self) -> float:
        """Area in square metres (shoelace, orientation independent)."""
        return abs(shoelace_area(self.points))

    def contains(self, x: float, y: float) -> bool:
        """Check if a point is inside the boundary using ray casting."""
        if not self._in_bounding_box(x, y):
            return False

        inside = False
        n = len(self.points)
        j = n - 1
        for i in range(n):
            if crosses_ray(x, y, self.points[i], self.points[j]):
                inside = not inside
            j = i
        return inside

    def _in_bounding_box(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    @classmethod
    def from_points(cls, points: Sequence[PointLike]) -> "Boundary":
        return cls(points=tuple(points))

    @classmethod
    def from_rectangle(cls, top_left: PointLike, bottom_right: PointLike) -> "Boundary":
        """Create a rectangular boundary from two opposite corners."""
        tl = as_point(top_left)
        br = as_point(bottom_right)
        return cls(points=(
            tl,
            Point(x=br.x, y=tl.y),
            br,
            Point(x=tl.x, y=br.y),
        ))
