"""
In-memory implementation of CoverageSessionPort.

Holds one current session in memory. Suitable for a single scan on one
device where nothing needs to persist; sessions are numbered session-1,
session-2, ... per adapter.
"""

import logging
from typing import List, Optional, Sequence

from spatial_coverage.adapters.coverage_port import CoverageSessionPort
from spatial_coverage.config import DEFAULT_VOXEL_SIZE
from spatial_coverage.core.boundary import Boundary, PointLike
from spatial_coverage.core.coverage_session import CoverageSession
from spatial_coverage.core.voxel import Voxel
from spatial_coverage.data.models import CoverageStats, PaintResult

logger = logging.getLogger('catchwalk.coverage.adapter')


class InMemoryCoverageAdapter(CoverageSessionPort):
    """
    Single-session store.

    Operations on a missing session are no-ops that return None, an empty
    list, or True for is_inside_boundary.
    """

    def __init__(self):
        self._session: Optional[CoverageSession] = None
        self._session_counter = 0

    def create_session(self, voxel_size: Optional[float] = None) -> CoverageSession:
        if voxel_size is None:
            voxel_size = DEFAULT_VOXEL_SIZE
        self._session_counter += 1
        self._session = CoverageSession(f"session-{self._session_counter}", voxel_size)
        logger.debug("Created %r", self._session)
        return self._session

    def paint(self, x: float, y: float) -> Optional[PaintResult]:
        if self._session is None:
            return None
        return self._session.paint(x, y)

    def set_boundary(self, points: Sequence[PointLike]):
        if self._session is None:
            return
        self._session.set_boundary(Boundary.from_points(points))

    def clear_boundary(self):
        if self._session is None:
            return
        self._session.clear_boundary()

    def get_stats(self) -> Optional[CoverageStats]:
        if self._session is None:
            return None
        return self._session.get_stats()

    def get_voxels(self) -> List[Voxel]:
        if self._session is None:
            return []
        return self._session.get_voxels()

    def get_boundary(self) -> Optional[Boundary]:
        if self._session is None:
            return None
        return self._session.boundary

    def reset(self):
        if self._session is None:
            return
        self._session.reset()

    def is_inside_boundary(self, x: float, y: float) -> bool:
        if self._session is None:
            return True
        return self._session.is_inside_boundary(x, y)

    def get_current_session(self) -> Optional[CoverageSession]:
        return self._session


def create_coverage_service(voxel_size: Optional[float] = None) -> CoverageSessionPort:
    """
    Coverage service backed by the in-memory adapter, with a session ready.

    Args:
        voxel_size: Cell size in metres (default 5cm)
    """
    adapter = InMemoryCoverageAdapter()
    adapter.create_session(voxel_size)
    return adapter
