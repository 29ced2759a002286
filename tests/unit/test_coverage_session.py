"""
Unit tests for CoverageSession painting and statistics.
"""

import pytest
from spatial_coverage.config import AUTO_COMPLETE_THRESHOLD, DEFAULT_VOXEL_SIZE
from spatial_coverage.core.boundary import Boundary
from spatial_coverage.core.coverage_session import CoverageSession, VoxelStore
from spatial_coverage.core.voxel import Voxel
from spatial_coverage.data.models import CoverageStats
from spatial_coverage.errors import ValidationError


def _paint_cells(session, count, width=10):
    """Paint the centres of the first `count` 1m cells, row by row."""
    for i in range(count):
        session.paint(i % width + 0.5, i // width + 0.5)


class TestCoverageSessionPaint:
    """Tests for painting voxels."""

    @pytest.fixture
    def session(self):
        return CoverageSession("test", voxel_size=0.5)

    @pytest.mark.unit
    def test_default_voxel_size(self):
        """Test that sessions default to the static 5cm grid."""
        assert CoverageSession("s").voxel_size == DEFAULT_VOXEL_SIZE

    @pytest.mark.unit
    @pytest.mark.parametrize("size", [0, -1.0])
    def test_invalid_voxel_size(self, size):
        """Test that a non-positive voxel size is rejected."""
        with pytest.raises(ValidationError):
            CoverageSession("s", voxel_size=size)

    @pytest.mark.unit
    def test_paint_twice_same_cell(self, session):
        """Test that repainting a cell reports is_new False."""
        first = session.paint(1.1, 1.1)
        second = session.paint(1.4, 1.2)

        assert first.is_new is True
        assert second.is_new is False
        assert first.voxel == second.voxel
        assert session.visit_count(first.voxel) == 2

    @pytest.mark.unit
    def test_voxel_count_matches_distinct_keys(self, session):
        """Test that the voxel count equals the number of distinct cells."""
        points = [(0.1, 0.1), (0.2, 0.3), (0.6, 0.1), (-0.1, -0.1), (0.6, 0.2), (5.0, 5.0)]
        for x, y in points:
            session.paint(x, y)

        keys = {Voxel.from_world(x, y, 0.5).key for x, y in points}
        assert session.get_voxel_count() == len(keys) == 4
        assert session.get_stats().voxel_count == 4

    @pytest.mark.unit
    def test_paint_without_boundary_is_inside(self, session):
        """Test that every point counts as inside without a boundary."""
        result = session.paint(100.0, -100.0)
        assert result.is_inside_boundary is True

    @pytest.mark.unit
    def test_paint_outside_boundary_still_recorded(self, session, ten_metre_square):
        """Test that painting outside the boundary stores the voxel but flags it."""
        session.set_boundary(ten_metre_square)
        result = session.paint(15.0, 15.0)

        assert result.is_inside_boundary is False
        assert result.is_new is True
        assert session.get_voxel_count() == 1
        assert session.get_stats().voxel_count == 0

    @pytest.mark.unit
    def test_elevation_stored_on_cell(self, session):
        """Test that the latest elevation is kept on the cell."""
        session.paint(0.1, 0.1, elevation=1.5)
        session.paint(0.2, 0.2)
        session.paint(0.3, 0.3, elevation=2.0)

        record = session.to_voxel_list()[0]
        assert record["elevation"] == 2.0
        assert record["visitCount"] == 3

    @pytest.mark.unit
    def test_voxel_list_fields(self, session):
        """Test the serializable voxel list layout."""
        session.paint(-0.3, 1.2)
        record = session.to_voxel_list()[0]

        assert record == {
            "key": "-1,2",
            "gridX": -1,
            "gridY": 2,
            "worldX": -0.25,
            "worldY": 1.25,
            "elevation": 0.0,
            "visitCount": 1,
        }

    @pytest.mark.unit
    def test_get_voxels_returns_voxels(self, session):
        """Test that get_voxels returns Voxel instances at the session size."""
        session.paint(0.1, 0.1)
        session.paint(2.1, 0.1)
        voxels = session.get_voxels()
        assert voxels == [Voxel(0, 0, 0.5), Voxel(4, 0, 0.5)]

    @pytest.mark.unit
    def test_get_area(self, session):
        """Test painted area regardless of boundary."""
        session.paint(0.1, 0.1)
        session.paint(1.1, 0.1)
        assert session.get_area() == 0.5

    @pytest.mark.unit
    def test_reset_keeps_boundary(self, session, ten_metre_square):
        """Test that reset clears voxels but keeps the boundary."""
        session.set_boundary(ten_metre_square)
        session.paint(1.0, 1.0)
        session.reset()

        assert session.get_voxel_count() == 0
        assert session.boundary is ten_metre_square

    @pytest.mark.unit
    def test_full_reset_clears_boundary(self, session, ten_metre_square):
        """Test that full_reset clears voxels and boundary."""
        session.set_boundary(ten_metre_square)
        session.paint(1.0, 1.0)
        session.full_reset()

        assert session.get_voxel_count() == 0
        assert session.boundary is None

    @pytest.mark.unit
    def test_repr(self, session):
        """Test repr includes id and voxel count."""
        session.paint(0.0, 0.0)
        assert repr(session) == "CoverageSession(id='test', voxel_size=0.5, voxels=1)"


class TestCoverageSessionStats:
    """Tests for derived coverage statistics."""

    @pytest.mark.unit
    def test_stats_without_boundary(self):
        """Test that stats without a boundary have no percentage."""
        session = CoverageSession("s", voxel_size=1.0)
        _paint_cells(session, 5)
        stats = session.get_stats()

        assert stats.voxel_count == 5
        assert stats.covered_area_m2 == 5.0
        assert stats.coverage_percent is None
        assert stats.expected_area_m2 is None
        assert stats.is_complete is False

    @pytest.mark.unit
    def test_ninety_eight_percent_complete(self, ten_metre_square):
        """Test that 98 of 100 cells gives 98% and counts as complete."""
        session = CoverageSession("s", voxel_size=1.0)
        session.set_boundary(ten_metre_square)
        _paint_cells(session, 98)
        stats = session.get_stats()

        assert pytest.approx(stats.coverage_percent) == 98.0
        assert stats.is_complete is True
        assert stats.expected_area_m2 == 100.0

    @pytest.mark.unit
    def test_fifty_percent_incomplete(self, ten_metre_square):
        """Test that 50 of 100 cells gives 50% and is not complete."""
        session = CoverageSession("s", voxel_size=1.0)
        session.set_boundary(ten_metre_square)
        _paint_cells(session, 50)
        stats = session.get_stats()

        assert pytest.approx(stats.coverage_percent) == 50.0
        assert stats.is_complete is False

    @pytest.mark.unit
    def test_percent_capped_at_100(self):
        """Test that coverage never exceeds 100% on a non-aligned boundary."""
        session = CoverageSession("s", voxel_size=1.0)
        session.set_boundary(Boundary.from_rectangle((0, 0), (2.8, 2.8)))
        for x in range(3):
            for y in range(3):
                session.paint(x + 0.5, y + 0.5)

        # 9 cells of 1m² inside a 7.84m² boundary
        assert session.get_stats().coverage_percent == 100.0

    @pytest.mark.unit
    def test_clear_boundary(self, ten_metre_square):
        """Test that clearing the boundary restores boundary-less stats."""
        session = CoverageSession("s", voxel_size=1.0)
        session.set_boundary(ten_metre_square)
        session.clear_boundary()
        assert session.get_stats().coverage_percent is None
        assert session.is_inside_boundary(50, 50) is True


class TestCoverageStats:
    """Tests for CoverageStats.from_counts."""

    @pytest.mark.unit
    def test_threshold_boundary(self):
        """Test that exactly the completion threshold counts as complete."""
        stats = CoverageStats.from_counts(int(AUTO_COMPLETE_THRESHOLD), 1.0, 100.0)
        assert stats.is_complete is True

    @pytest.mark.unit
    def test_zero_area_boundary(self):
        """Test that a zero-area boundary gives no percentage."""
        stats = CoverageStats.from_counts(3, 1.0, 0.0)
        assert stats.coverage_percent is None
        assert stats.is_complete is False


class TestVoxelStore:
    """Tests for the voxel arena."""

    @pytest.mark.unit
    def test_visit_and_lookup(self):
        """Test that visits are indexed by grid key."""
        store = VoxelStore(0.5)
        assert store.visit(Voxel(1, 2, 0.5)) is True
        assert store.visit(Voxel(1, 2, 0.5)) is False
        assert (1, 2) in store
        assert store.get((1, 2)).visit_count == 2
        assert store.get((9, 9)) is None

    @pytest.mark.unit
    def test_insertion_order_kept(self):
        """Test that iteration follows first-visit order."""
        store = VoxelStore(1.0)
        for gx in (3, 1, 2, 1):
            store.visit(Voxel(gx, 0, 1.0))
        assert [r.grid_x for r in store] == [3, 1, 2]
        assert len(store) == 3

    @pytest.mark.unit
    def test_clear(self):
        """Test that clear empties records and index."""
        store = VoxelStore(1.0)
        store.visit(Voxel(0, 0, 1.0))
        store.clear()
        assert len(store) == 0
        assert (0, 0) not in store
