"""
Unit tests for ElevationGrid interpolation, slope and rasterisation,
and for the sample indexes behind it.
"""

import numpy as np
import pytest
from spatial_coverage.core.elevation_grid import ElevationGrid
from spatial_coverage.data.models import ElevationSample, create_elevation_sample
from spatial_coverage.errors import ValidationError
from spatial_coverage.utils.spatial_index import (
    KDTreeSampleIndex,
    LinearSampleIndex,
    create_sample_index,
)


def _sample(x, y, elevation, accuracy=0.5, source="barometer"):
    return ElevationSample(x=x, y=y, elevation=elevation, accuracy=accuracy,
                           source=source, timestamp=0.0)


def _grid(*samples, **kwargs):
    grid = ElevationGrid(**kwargs)
    for s in samples:
        grid.add_sample(s)
    return grid


class TestElevationSample:
    """Tests for sample validation."""

    @pytest.mark.unit
    @pytest.mark.parametrize("accuracy", [0, -0.5, float('nan')])
    def test_non_positive_accuracy_rejected(self, accuracy):
        """Test that accuracy must be positive."""
        with pytest.raises(ValidationError):
            _sample(0, 0, 1.0, accuracy=accuracy)

    @pytest.mark.unit
    def test_unknown_source_rejected(self):
        """Test that the source must be barometer, gps or lidar."""
        with pytest.raises(ValidationError):
            _sample(0, 0, 1.0, source="sonar")

    @pytest.mark.unit
    def test_factory_stamps_time(self):
        """Test that create_elevation_sample fills in the timestamp."""
        sample = create_elevation_sample(1.0, 2.0, 3.0, 0.01, "lidar")
        assert sample.timestamp > 0
        assert sample.source == "lidar"


class TestInterpolate:
    """Tests for accuracy-weighted IDW interpolation."""

    @pytest.mark.unit
    def test_empty_grid_returns_none(self):
        """Test that an empty grid has no estimate."""
        assert ElevationGrid().interpolate(0, 0) is None

    @pytest.mark.unit
    def test_exact_sample_location(self):
        """Test that a query on a sample returns its elevation."""
        grid = _grid(_sample(1, 1, 2.5), _sample(3, 3, 7.0))
        assert pytest.approx(grid.interpolate(1, 1), abs=1e-3) == 2.5

    @pytest.mark.unit
    def test_within_match_epsilon(self):
        """Test that a query within 1mm of a sample returns it directly."""
        grid = _grid(_sample(1, 1, 2.5), _sample(3, 3, 7.0))
        assert grid.interpolate(1.0005, 0.9995) == 2.5

    @pytest.mark.unit
    def test_coincident_samples_most_accurate_wins(self):
        """Test that the most accurate of several coincident samples is used."""
        grid = _grid(
            _sample(0, 0, 1.0, accuracy=5.0, source="gps"),
            _sample(0, 0, 2.0, accuracy=0.01, source="lidar"),
            _sample(0, 0, 3.0, accuracy=0.5),
        )
        assert grid.interpolate(0, 0) == 2.0

    @pytest.mark.unit
    def test_midpoint_between_two_samples(self):
        """Test that the midpoint of 0m and 1m samples is 0.5m."""
        grid = _grid(_sample(0, 0, 0.0), _sample(1, 0, 1.0))
        assert pytest.approx(grid.interpolate(0.5, 0), abs=1e-9) == 0.5

    @pytest.mark.unit
    def test_lidar_dominates_distant_gps(self):
        """Test that a close LiDAR return outweighs a distant GPS altitude."""
        grid = _grid(
            _sample(0.03, 0, 1.0, accuracy=0.01, source="lidar"),
            _sample(5.0, 0, 10.0, accuracy=5.0, source="gps"),
        )
        assert pytest.approx(grid.interpolate(0, 0), abs=1e-3) == 1.0

    @pytest.mark.unit
    def test_accuracy_weighting(self):
        """Test that equidistant samples are weighted by accuracy."""
        grid = _grid(
            _sample(-1, 0, 0.0, accuracy=1.0),
            _sample(1, 0, 3.0, accuracy=2.0),
        )
        # Weights 1 and 0.5 -> (0 * 1 + 3 * 0.5) / 1.5
        assert pytest.approx(grid.interpolate(0, 0)) == 1.0

    @pytest.mark.unit
    def test_estimate_within_sample_range(self):
        """Test that IDW never extrapolates beyond the sample range."""
        grid = _grid(_sample(0, 0, 1.0), _sample(2, 0, 4.0), _sample(0, 2, 2.0))
        for x, y in [(-5, -5), (1, 1), (10, 0), (0.5, 1.5)]:
            assert 1.0 <= grid.interpolate(x, y) <= 4.0

    @pytest.mark.unit
    def test_single_sample_everywhere(self):
        """Test that one sample gives a flat surface."""
        grid = _grid(_sample(2, 2, 4.2))
        assert pytest.approx(grid.interpolate(-10, 7)) == 4.2


class TestSlope:
    """Tests for central-difference slope."""

    @pytest.mark.unit
    def test_no_samples(self):
        """Test that an empty grid has no slope."""
        assert ElevationGrid().get_slope(0, 0) is None

    @pytest.mark.unit
    def test_one_sample(self):
        """Test that a single sample has no slope."""
        assert _grid(_sample(0, 0, 1.0)).get_slope(0, 0) is None

    @pytest.mark.unit
    def test_rising_to_the_east(self):
        """Test that dx is positive when elevation increases eastward."""
        slope = _grid(_sample(0, 0, 0.0), _sample(1, 0, 1.0)).get_slope(0.5, 0)
        assert slope.dx > 0
        assert pytest.approx(slope.dy, abs=1e-12) == 0.0

    @pytest.mark.unit
    def test_falling_to_the_east(self):
        """Test that dx is negative when elevation decreases eastward."""
        slope = _grid(_sample(0, 0, 2.0), _sample(1, 0, 0.0)).get_slope(0.5, 0)
        assert slope.dx < 0

    @pytest.mark.unit
    def test_rising_to_the_north(self):
        """Test that dy is positive when elevation increases northward."""
        slope = _grid(_sample(0, 0, 0.0), _sample(0, 1, 1.0)).get_slope(0, 0.5)
        assert slope.dy > 0
        assert slope.magnitude == pytest.approx(abs(slope.dy), abs=1e-9)

    @pytest.mark.unit
    def test_offset_scales_with_cell_size(self):
        """Test that slope is finite for coarse and fine cells."""
        samples = (_sample(0, 0, 0.0), _sample(4, 0, 2.0))
        fine = _grid(*samples, cell_size=0.1).get_slope(2, 0)
        coarse = _grid(*samples, cell_size=1.0).get_slope(2, 0)
        assert fine.dx > 0 and coarse.dx > 0


class TestBoundsAndRaster:
    """Tests for bounds, raster shape and raster values."""

    @pytest.mark.unit
    @pytest.mark.parametrize("size", [0, -0.1])
    def test_invalid_cell_size(self, size):
        """Test that a non-positive cell size is rejected."""
        with pytest.raises(ValidationError):
            ElevationGrid(cell_size=size)

    @pytest.mark.unit
    def test_empty_bounds_and_raster(self):
        """Test that an empty grid has no bounds and an empty raster."""
        grid = ElevationGrid()
        assert grid.get_bounds() is None
        assert grid.raster_shape() == (0, 0)
        assert grid.to_raster().shape == (0, 0)

    @pytest.mark.unit
    def test_bounds_include_elevation_range(self):
        """Test bounds over x, y and elevation."""
        grid = _grid(_sample(-1, 2, 5.0), _sample(3, -4, -1.0), _sample(0, 0, 2.0))
        bounds = grid.get_bounds()
        assert (bounds.min_x, bounds.max_x) == (-1, 3)
        assert (bounds.min_y, bounds.max_y) == (-4, 2)
        assert (bounds.min_z, bounds.max_z) == (-1.0, 5.0)

    @pytest.mark.unit
    def test_raster_shape_and_corners(self):
        """Test raster layout: row = y, column = x, corners on the samples."""
        grid = _grid(_sample(0, 0, 1.0), _sample(1.0, 0.5, 3.0), cell_size=0.1)
        raster = grid.to_raster()

        assert grid.raster_shape() == (6, 11)
        assert raster.shape == (6, 11)
        assert raster[0, 0] == 1.0
        assert raster[5, 10] == 3.0
        assert np.all((raster >= 1.0) & (raster <= 3.0))

    @pytest.mark.unit
    def test_single_sample_raster(self):
        """Test that a single sample gives a 1x1 raster."""
        raster = _grid(_sample(4, 4, 9.0)).to_raster()
        assert raster.shape == (1, 1)
        assert raster[0, 0] == 9.0

    @pytest.mark.unit
    def test_samples_view(self):
        """Test that samples are exposed in insertion order as a tuple."""
        a, b = _sample(0, 0, 1.0), _sample(1, 1, 2.0)
        grid = _grid(a, b)
        assert grid.samples == (a, b)
        assert grid.sample_count == 2


class TestSampleIndex:
    """Tests for linear and KD-tree sample indexes."""

    @pytest.mark.unit
    def test_factory(self):
        """Test index construction by name."""
        assert isinstance(create_sample_index("linear"), LinearSampleIndex)
        assert isinstance(create_sample_index("KDTree"), KDTreeSampleIndex)

    @pytest.mark.unit
    def test_factory_unknown(self):
        """Test that an unknown index name is rejected."""
        with pytest.raises(ValidationError):
            create_sample_index("rtree")

    @pytest.mark.unit
    def test_kdtree_neighbours_validated(self):
        """Test that the KD-tree needs at least one neighbour."""
        with pytest.raises(ValidationError):
            KDTreeSampleIndex(neighbours=0)

    @pytest.mark.unit
    def test_linear_returns_all(self):
        """Test that the linear index returns every sample."""
        index = LinearSampleIndex()
        for i in range(5):
            index.add(_sample(i, 0, float(i)))
        assert len(index.candidates(100, 100)) == 5

    @pytest.mark.unit
    def test_kdtree_limits_to_nearest(self):
        """Test that the KD-tree index ignores samples beyond k nearest."""
        samples = (_sample(0, 0, 0.0), _sample(1, 0, 0.0), _sample(100, 0, 1000.0))
        linear = _grid(*samples)
        kdtree = _grid(*samples, index=KDTreeSampleIndex(neighbours=2))

        assert kdtree.interpolate(0.5, 0) == 0.0
        assert linear.interpolate(0.5, 0) > 0.0

    @pytest.mark.unit
    def test_kdtree_small_sets_use_all_samples(self):
        """Test that fewer samples than k behave like the linear index."""
        samples = (_sample(0, 0, 0.0), _sample(1, 0, 1.0))
        linear = _grid(*samples)
        kdtree = _grid(*samples, index=KDTreeSampleIndex(neighbours=4))
        assert kdtree.interpolate(0.3, 0.2) == pytest.approx(linear.interpolate(0.3, 0.2))

    @pytest.mark.unit
    def test_kdtree_rebuilt_after_add(self):
        """Test that samples added after a query are seen by the next query."""
        grid = _grid(_sample(0, 0, 0.0), _sample(10, 0, 0.0),
                     index=KDTreeSampleIndex(neighbours=1))
        assert grid.interpolate(5.1, 0) == 0.0

        grid.add_sample(_sample(5, 0, 8.0))
        assert grid.interpolate(5.1, 0) == 8.0

    @pytest.mark.unit
    def test_kdtree_exact_match(self):
        """Test exact-location queries through the KD-tree."""
        grid = _grid(*(_sample(i, i, float(i)) for i in range(40)),
                     index=KDTreeSampleIndex(neighbours=8))
        assert grid.interpolate(17, 17) == 17.0
