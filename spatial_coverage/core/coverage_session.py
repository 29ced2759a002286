"""
CoverageSession - aggregate root for spatial coverage measurement.

Owns the painted voxel store, an optional target boundary and derives the
coverage statistics. One session per scan; the session is the only writer
of its voxel store, so callers on other threads must go through the
tracking handler rather than painting directly.
"""

import logging
from typing import Dict, List, Optional, Tuple

from spatial_coverage.config import DEFAULT_VOXEL_SIZE
from spatial_coverage.core.boundary import Boundary
from spatial_coverage.core.voxel import Voxel
from spatial_coverage.data.models import CoverageStats, PaintResult, VoxelRecord
from spatial_coverage.errors import ValidationError

logger = logging.getLogger('catchwalk.coverage.session')


class VoxelStore:
    """
    Arena of painted cells indexed by integer grid key.

    Records live in a list; a dict maps (grid_x, grid_y) to the record's
    position. Records are never removed individually, only cleared.
    """

    def __init__(self, voxel_size: float):
        self.voxel_size = voxel_size
        self._records: List[VoxelRecord] = []
        self._index: Dict[Tuple[int, int], int] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, grid_key: Tuple[int, int]) -> bool:
        return grid_key in self._index

    def __iter__(self):
        return iter(self._records)

    def get(self, grid_key: Tuple[int, int]) -> Optional[VoxelRecord]:
        idx = self._index.get(grid_key)
        return self._records[idx] if idx is not None else None

    def visit(self, voxel: Voxel, elevation: Optional[float] = None) -> bool:
        """
        Record a visit to a cell.

        Returns:
            True if the cell was not painted before
        """
        grid_key = (voxel.grid_x, voxel.grid_y)
        idx = self._index.get(grid_key)
        is_new = idx is None

        if is_new:
            idx = len(self._records)
            self._records.append(VoxelRecord(
                grid_x=voxel.grid_x,
                grid_y=voxel.grid_y,
                voxel_size=self.voxel_size,
            ))
            self._index[grid_key] = idx

        record = self._records[idx]
        record.visit_count += 1
        if elevation is not None:
            record.elevation = elevation
        return is_new

    def clear(self):
        self._records.clear()
        self._index.clear()


class CoverageSession:
    """
    Coverage measurement session.

    Painting never refuses a point outside the boundary: the voxel is still
    recorded and PaintResult.is_inside_boundary tells the caller whether to
    reward or warn the user.
    """

    def __init__(self, session_id: str, voxel_size: float = DEFAULT_VOXEL_SIZE):
        if not voxel_size > 0:
            raise ValidationError(f"Voxel size must be positive, got {voxel_size!r}")
        self._id = session_id
        self._voxel_size = voxel_size
        self._store = VoxelStore(voxel_size)
        self._boundary: Optional[Boundary] = None

    def __repr__(self) -> str:
        return (f"CoverageSession(id={self._id!r}, voxel_size={self._voxel_size}, "
                f"voxels={len(self._store)})")

    @property
    def id(self) -> str:
        return self._id

    @property
    def voxel_size(self) -> float:
        return self._voxel_size

    @property
    def boundary(self) -> Optional[Boundary]:
        return self._boundary

    def paint(self, x: float, y: float, elevation: Optional[float] = None) -> PaintResult:
        """
        Mark the cell containing a world point as covered.

        Args:
            x, y: World coordinates in metres
            elevation: Optional elevation to store on the cell

        Returns:
            PaintResult; is_new is False when the cell was already painted
        """
        voxel = Voxel.from_world(x, y, self._voxel_size)
        is_new = self._store.visit(voxel, elevation)
        return PaintResult(
            voxel=voxel,
            is_new=is_new,
            is_inside_boundary=self.is_inside_boundary(x, y),
        )

    def set_boundary(self, boundary: Boundary):
        """Set (or replace) the target boundary."""
        self._boundary = boundary
        logger.debug("Session %s: boundary set (%.2fm²)", self._id, boundary.area)

    def clear_boundary(self):
        self._boundary = None

    def is_inside_boundary(self, x: float, y: float) -> bool:
        """True when no boundary is set."""
        if self._boundary is None:
            return True
        return self._boundary.contains(x, y)

    def get_stats(self) -> CoverageStats:
        """
        Current coverage statistics.

        With a boundary, only painted cells whose centre lies inside it count
        toward the coverage figures.
        """
        if self._boundary is None:
            count = len(self._store)
            area = None
        else:
            count = sum(
                1 for r in self._store
                if self._boundary.contains(r.world_x, r.world_y)
            )
            area = self._boundary.area

        return CoverageStats.from_counts(
            voxel_count=count,
            voxel_size=self._voxel_size,
            boundary_area=area,
        )

    def get_voxels(self) -> List[Voxel]:
        """All painted voxels."""
        return [Voxel(r.grid_x, r.grid_y, self._voxel_size) for r in self._store]

    def get_voxel_count(self) -> int:
        return len(self._store)

    def get_area(self) -> float:
        """Painted area in square metres, regardless of boundary."""
        return len(self._store) * (self._voxel_size * self._voxel_size)

    def visit_count(self, voxel: Voxel) -> int:
        """How many times a cell was painted (0 if never)."""
        record = self._store.get((voxel.grid_x, voxel.grid_y))
        return record.visit_count if record else 0

    def to_voxel_list(self) -> List[dict]:
        """Serializable voxel list for visualisation collaborators."""
        return [r.to_dict() for r in self._store]

    def reset(self):
        """Clear painted voxels, keep the boundary."""
        self._store.clear()

    def full_reset(self):
        """Clear painted voxels and the boundary."""
        self._store.clear()
        self._boundary = None
