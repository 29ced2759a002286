"""
ElevationGrid - sparse elevation surface with accuracy-weighted IDW.

Samples from barometer, GPS and LiDAR arrive with very different
accuracies. Interpolation weights each sample by 1 / (distance² * accuracy)
so a LiDAR return at 1cm accuracy outweighs a 5m GPS altitude at a similar
distance. cell_size only sets raster and slope granularity; every indexed
sample contributes regardless of distance.
"""

import logging
import math
from typing import Optional

import numpy as np

from spatial_coverage.config import (
    ELEVATION_CELL_SIZE,
    IDW_EXACT_MATCH_EPSILON,
    SLOPE_OFFSET_FRACTION,
)
from spatial_coverage.data.models import ElevationSample, GridBounds, SlopeVector
from spatial_coverage.errors import ValidationError
from spatial_coverage.utils.spatial_index import LinearSampleIndex, SampleIndex

logger = logging.getLogger('catchwalk.coverage.elevation')


class ElevationGrid:
    """
    Append-only store of elevation samples.

    Samples are validated when they are built (ElevationSample raises on
    non-positive accuracy), so add_sample does no checking of its own.
    """

    def __init__(
        self,
        cell_size: float = ELEVATION_CELL_SIZE,
        index: Optional[SampleIndex] = None,
    ):
        """
        Initialise an empty grid.

        Args:
            cell_size: Raster spacing in metres (default 10cm)
            index: Sample index used to pick interpolation candidates
                (default: all samples)
        """
        if not cell_size > 0:
            raise ValidationError(f"Cell size must be positive, got {cell_size!r}")
        self.cell_size = cell_size
        self._index = index if index is not None else LinearSampleIndex()

    @property
    def sample_count(self) -> int:
        return len(self._index)

    @property
    def samples(self):
        """Stored samples in insertion order (read-only view)."""
        return tuple(self._index.samples)

    def add_sample(self, sample: ElevationSample):
        self._index.add(sample)

    def interpolate(self, x: float, y: float) -> Optional[float]:
        """
        Elevation estimate at (x, y).

        Returns:
            Elevation in metres, or None if the grid has no samples
        """
        if self.sample_count == 0:
            return None

        c = self._index.candidates(x, y)
        dx = c.x - x
        dy = c.y - y

        # A query on top of a sample returns it directly (no 1/0 weight).
        # If several samples coincide the most accurate one wins.
        near = (np.abs(dx) < IDW_EXACT_MATCH_EPSILON) & (np.abs(dy) < IDW_EXACT_MATCH_EPSILON)
        if near.any():
            best = np.flatnonzero(near)[np.argmin(c.accuracy[near])]
            return float(c.elevation[best])

        weights = 1.0 / ((dx * dx + dy * dy) * c.accuracy)
        return float(np.sum(weights * c.elevation) / np.sum(weights))

    def get_slope(self, x: float, y: float) -> Optional[SlopeVector]:
        """
        Surface gradient at (x, y) by central difference.

        Returns:
            SlopeVector, or None with fewer than 2 samples
        """
        if self.sample_count < 2:
            return None

        h = self.cell_size * SLOPE_OFFSET_FRACTION
        z_east = self.interpolate(x + h, y)
        z_west = self.interpolate(x - h, y)
        z_north = self.interpolate(x, y + h)
        z_south = self.interpolate(x, y - h)

        if None in (z_east, z_west, z_north, z_south):
            return None

        return SlopeVector(
            dx=(z_east - z_west) / (2 * h),
            dy=(z_north - z_south) / (2 * h),
        )

    def get_bounds(self) -> Optional[GridBounds]:
        """Bounding box of stored samples (not of interpolated values)."""
        if self.sample_count == 0:
            return None

        samples = self._index.samples
        xs = [s.x for s in samples]
        ys = [s.y for s in samples]
        zs = [s.elevation for s in samples]
        return GridBounds(
            min_x=min(xs), max_x=max(xs),
            min_y=min(ys), max_y=max(ys),
            min_z=min(zs), max_z=max(zs),
        )

    def raster_shape(self):
        """(rows, cols) of to_raster() for the current samples."""
        bounds = self.get_bounds()
        if bounds is None:
            return (0, 0)
        cols = self._cells(bounds.max_x - bounds.min_x) + 1
        rows = self._cells(bounds.max_y - bounds.min_y) + 1
        return (rows, cols)

    def to_raster(self) -> np.ndarray:
        """
        Interpolated elevations over the sample bounds.

        Row r, column c holds the estimate at
        (min_x + c * cell_size, min_y + r * cell_size).

        Returns:
            2D float array, shape (0, 0) when the grid is empty
        """
        bounds = self.get_bounds()
        if bounds is None:
            return np.empty((0, 0), dtype=np.float64)

        rows, cols = self.raster_shape()
        raster = np.zeros((rows, cols), dtype=np.float64)
        for row in range(rows):
            y = bounds.min_y + row * self.cell_size
            for col in range(cols):
                x = bounds.min_x + col * self.cell_size
                raster[row, col] = self.interpolate(x, y)

        logger.debug("Rasterised %d samples into %dx%d grid",
                     self.sample_count, rows, cols)
        return raster

    def _cells(self, span: float) -> int:
        # Rounding guards against 1.0 / 0.1 = 10.000000000000002
        return math.ceil(round(span / self.cell_size, 9))
