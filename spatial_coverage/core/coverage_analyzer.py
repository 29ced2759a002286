"""
Coverage analyzer - gap detection and guidance for guided coverage mode.

Stateless. Scans are O(bounding box cells), which a catchment-sized
boundary keeps small, so there is no time limit on them.
"""

import math
from typing import Iterable, List, Optional

from spatial_coverage.core.boundary import Boundary
from spatial_coverage.core.voxel import Voxel
from spatial_coverage.data.models import GapInfo


class CoverageAnalyzer:
    """Finds uncovered cells inside a boundary."""

    @staticmethod
    def find_gaps(
        covered_voxels: Iterable[Voxel],
        boundary: Boundary,
        voxel_size: float,
    ) -> List[GapInfo]:
        """
        Find uncovered cells whose centre lies inside the boundary.

        Args:
            covered_voxels: Painted voxels (any iterable)
            boundary: Target boundary
            voxel_size: Cell size in metres

        Returns:
            GapInfo per uncovered cell, scanned column by column
        """
        covered_keys = {v.key for v in covered_voxels}
        cell_area = voxel_size * voxel_size
        gaps = []

        start_x = math.floor(boundary.min_x / voxel_size)
        end_x = math.ceil(boundary.max_x / voxel_size)
        start_y = math.floor(boundary.min_y / voxel_size)
        end_y = math.ceil(boundary.max_y / voxel_size)

        for gx in range(start_x, end_x + 1):
            for gy in range(start_y, end_y + 1):
                if f"{gx},{gy}" in covered_keys:
                    continue

                world_x = (gx + 0.5) * voxel_size
                world_y = (gy + 0.5) * voxel_size
                if not boundary.contains(world_x, world_y):
                    continue

                gaps.append(GapInfo(
                    center_x=world_x,
                    center_y=world_y,
                    area_m2=cell_area,
                ))

        return gaps

    @classmethod
    def find_nearest_gap(
        cls,
        covered_voxels: Iterable[Voxel],
        boundary: Boundary,
        voxel_size: float,
        from_x: float,
        from_y: float,
    ) -> Optional[GapInfo]:
        """Nearest uncovered cell to a position, or None when fully covered."""
        gaps = cls.find_gaps(covered_voxels, boundary, voxel_size)
        if not gaps:
            return None

        return min(
            gaps,
            key=lambda g: math.hypot(g.center_x - from_x, g.center_y - from_y),
        )

    @staticmethod
    def expected_voxel_count(boundary: Boundary, voxel_size: float) -> int:
        """Cells needed to cover the boundary area."""
        return math.ceil(boundary.area / (voxel_size * voxel_size))
