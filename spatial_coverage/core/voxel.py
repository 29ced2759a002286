"""
Voxel - square ground cell identified by integer grid coordinates.
"""

import math
from dataclasses import dataclass

from spatial_coverage.errors import ValidationError


@dataclass(frozen=True)
class Voxel:
    """
    Immutable grid cell.

    Two voxels are equal when grid_x, grid_y and voxel_size all match, so
    cells painted at different resolutions never collide.
    """
    grid_x: int
    grid_y: int
    voxel_size: float

    @property
    def key(self) -> str:
        """Cell key, unique for a given voxel size."""
        return f"{self.grid_x},{self.grid_y}"

    @property
    def world_x(self) -> float:
        """Cell centre x in metres."""
        return (self.grid_x + 0.5) * self.voxel_size

    @property
    def world_y(self) -> float:
        """Cell centre y in metres."""
        return (self.grid_y + 0.5) * self.voxel_size

    @property
    def area(self) -> float:
        return self.voxel_size * self.voxel_size

    @classmethod
    def from_world(cls, x: float, y: float, voxel_size: float) -> "Voxel":
        """
        Voxel containing a world point.

        Floor division keeps negative coordinates on the correct side of the
        origin: fromWorld(-0.12, -0.24, 0.05) is cell (-3, -5).
        """
        if not voxel_size > 0:
            raise ValidationError(f"Voxel size must be positive, got {voxel_size!r}")
        return cls(
            grid_x=math.floor(x / voxel_size),
            grid_y=math.floor(y / voxel_size),
            voxel_size=voxel_size,
        )
