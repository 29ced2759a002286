"""
Coverage session port.

Primary interface to coverage session management. Implementations may
keep sessions in memory, on disk, or in a remote store; this package ships
the in-memory one.
"""

from typing import List, Optional, Sequence

from spatial_coverage.core.boundary import Boundary, PointLike
from spatial_coverage.core.coverage_session import CoverageSession
from spatial_coverage.core.voxel import Voxel
from spatial_coverage.data.models import CoverageStats, PaintResult


class CoverageSessionPort:
    """
    Base class for coverage session stores.

    Every operation other than create_session acts on the current session.
    """

    def create_session(self, voxel_size: Optional[float] = None) -> CoverageSession:
        """Create a session and make it current."""
        raise NotImplementedError

    def paint(self, x: float, y: float) -> Optional[PaintResult]:
        raise NotImplementedError

    def set_boundary(self, points: Sequence[PointLike]):
        raise NotImplementedError

    def clear_boundary(self):
        raise NotImplementedError

    def get_stats(self) -> Optional[CoverageStats]:
        raise NotImplementedError

    def get_voxels(self) -> List[Voxel]:
        raise NotImplementedError

    def get_boundary(self) -> Optional[Boundary]:
        raise NotImplementedError

    def reset(self):
        """Clear painted cells of the current session."""
        raise NotImplementedError

    def is_inside_boundary(self, x: float, y: float) -> bool:
        raise NotImplementedError

    def get_current_session(self) -> Optional[CoverageSession]:
        raise NotImplementedError
