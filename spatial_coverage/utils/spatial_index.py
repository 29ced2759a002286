"""
Sample indexes for elevation interpolation.

The ElevationGrid asks its index for the samples that may contribute to an
estimate at a query point. LinearSampleIndex returns every sample, which is
what catchment-scale grids (hundreds of samples) need. KDTreeSampleIndex
uses a KD-tree for O(log n) lookups and restricts interpolation to the k
nearest samples, for long sessions where the sample count grows.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from scipy.spatial import cKDTree

from spatial_coverage.config import KDTREE_NEIGHBOURS
from spatial_coverage.data.models import ElevationSample
from spatial_coverage.errors import ValidationError

logger = logging.getLogger('catchwalk.coverage.index')


@dataclass
class Candidates:
    """Column arrays of samples near a query point."""
    x: np.ndarray
    y: np.ndarray
    elevation: np.ndarray
    accuracy: np.ndarray

    def __len__(self) -> int:
        return len(self.x)


class SampleIndex:
    """Base class for sample indexes."""

    def __init__(self):
        self._samples: List[ElevationSample] = []
        self._arrays: Optional[Candidates] = None

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> List[ElevationSample]:
        return self._samples

    def add(self, sample: ElevationSample):
        self._samples.append(sample)
        self._invalidate()

    def _invalidate(self):
        self._arrays = None

    def _all(self) -> Candidates:
        """Column arrays of every sample, rebuilt lazily after additions."""
        if self._arrays is None:
            self._arrays = Candidates(
                x=np.fromiter((s.x for s in self._samples), dtype=np.float64),
                y=np.fromiter((s.y for s in self._samples), dtype=np.float64),
                elevation=np.fromiter((s.elevation for s in self._samples), dtype=np.float64),
                accuracy=np.fromiter((s.accuracy for s in self._samples), dtype=np.float64),
            )
        return self._arrays

    def candidates(self, x: float, y: float) -> Candidates:
        """Samples that contribute to an estimate at (x, y)."""
        raise NotImplementedError("Subclasses must implement candidates")


class LinearSampleIndex(SampleIndex):
    """Unindexed scan over all samples."""

    def candidates(self, x: float, y: float) -> Candidates:
        return self._all()


class KDTreeSampleIndex(SampleIndex):
    """KD-tree over sample positions, limited to the k nearest samples."""

    def __init__(self, neighbours: int = KDTREE_NEIGHBOURS):
        super().__init__()
        if neighbours < 1:
            raise ValidationError(f"neighbours must be at least 1, got {neighbours}")
        self.neighbours = neighbours
        self._tree: Optional[cKDTree] = None

    def _invalidate(self):
        super()._invalidate()
        self._tree = None

    def _build_tree(self):
        """Build KD-tree spatial index of sample positions."""
        arrays = self._all()
        self._tree = cKDTree(np.column_stack((arrays.x, arrays.y)))
        logger.debug("Rebuilt KD-tree over %d samples", len(arrays))

    def candidates(self, x: float, y: float) -> Candidates:
        arrays = self._all()
        if len(arrays) <= self.neighbours:
            return arrays

        if self._tree is None:
            self._build_tree()

        _, idx = self._tree.query([x, y], k=self.neighbours)
        idx = np.atleast_1d(idx)
        return Candidates(
            x=arrays.x[idx],
            y=arrays.y[idx],
            elevation=arrays.elevation[idx],
            accuracy=arrays.accuracy[idx],
        )


def create_sample_index(kind: str = "linear", neighbours: int = KDTREE_NEIGHBOURS) -> SampleIndex:
    """
    Build a sample index by name.

    Args:
        kind: "linear" or "kdtree"
        neighbours: k for the KD-tree index
    """
    kind = kind.lower()
    if kind == "linear":
        return LinearSampleIndex()
    if kind == "kdtree":
        return KDTreeSampleIndex(neighbours=neighbours)
    raise ValidationError(f"Unknown sample index {kind!r}, expected 'linear' or 'kdtree'")
