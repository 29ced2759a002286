"""
Unit tests for the in-memory coverage session adapter.
"""

import pytest
from spatial_coverage.adapters.in_memory_adapter import (
    InMemoryCoverageAdapter,
    create_coverage_service,
)
from spatial_coverage.config import DEFAULT_VOXEL_SIZE
from spatial_coverage.core.voxel import Voxel
from spatial_coverage.errors import ValidationError


class TestWithoutSession:
    """Tests for operations before any session exists."""

    @pytest.fixture
    def adapter(self):
        return InMemoryCoverageAdapter()

    @pytest.mark.unit
    def test_no_op_results(self, adapter):
        """Test that every call is a harmless no-op."""
        assert adapter.paint(1.0, 1.0) is None
        assert adapter.get_stats() is None
        assert adapter.get_voxels() == []
        assert adapter.get_boundary() is None
        assert adapter.get_current_session() is None
        assert adapter.is_inside_boundary(1.0, 1.0) is True

    @pytest.mark.unit
    def test_mutators_do_nothing(self, adapter):
        """Test that boundary and reset calls do not create a session."""
        adapter.set_boundary([(0, 0), (1, 0), (1, 1)])
        adapter.clear_boundary()
        adapter.reset()
        assert adapter.get_current_session() is None


class TestWithSession:
    """Tests for the current session lifecycle."""

    @pytest.mark.unit
    def test_session_ids_increment(self):
        """Test that sessions are numbered per adapter."""
        adapter = InMemoryCoverageAdapter()
        assert adapter.create_session().id == "session-1"
        assert adapter.create_session().id == "session-2"

    @pytest.mark.unit
    def test_default_voxel_size(self):
        """Test that sessions default to 5cm cells."""
        adapter = InMemoryCoverageAdapter()
        assert adapter.create_session().voxel_size == DEFAULT_VOXEL_SIZE

    @pytest.mark.unit
    def test_new_session_replaces_current(self):
        """Test that creating a session discards the previous one."""
        adapter = create_coverage_service(voxel_size=1.0)
        adapter.paint(0.5, 0.5)
        adapter.create_session(voxel_size=1.0)
        assert adapter.get_voxels() == []

    @pytest.mark.unit
    def test_service_has_session(self):
        """Test that the factory returns an adapter with a session ready."""
        service = create_coverage_service(voxel_size=0.5)
        session = service.get_current_session()
        assert session is not None
        assert session.voxel_size == 0.5

    @pytest.mark.unit
    def test_paint_and_stats(self):
        """Test painting through the adapter with a boundary."""
        service = create_coverage_service(voxel_size=1.0)
        service.set_boundary([(0, 0), (2, 0), (2, 2), (0, 2)])
        service.paint(0.5, 0.5)
        service.paint(1.5, 0.5)

        stats = service.get_stats()
        assert stats.voxel_count == 2
        assert stats.coverage_percent == pytest.approx(50.0)
        assert service.get_voxels() == [Voxel(0, 0, 1.0), Voxel(1, 0, 1.0)]

    @pytest.mark.unit
    def test_boundary_round_trip(self):
        """Test set, get and clear of the boundary."""
        service = create_coverage_service(voxel_size=1.0)
        service.set_boundary([(0, 0), (2, 0), (2, 2)])
        assert service.get_boundary().area == 2.0
        assert service.is_inside_boundary(5, 5) is False

        service.clear_boundary()
        assert service.get_boundary() is None
        assert service.is_inside_boundary(5, 5) is True

    @pytest.mark.unit
    def test_invalid_boundary(self):
        """Test that a degenerate boundary is rejected."""
        service = create_coverage_service()
        with pytest.raises(ValidationError):
            service.set_boundary([(0, 0), (1, 1)])

    @pytest.mark.unit
    def test_reset(self):
        """Test that reset clears painted cells but keeps the boundary."""
        service = create_coverage_service(voxel_size=1.0)
        service.set_boundary([(0, 0), (2, 0), (2, 2), (0, 2)])
        service.paint(0.5, 0.5)
        service.reset()

        assert service.get_voxels() == []
        assert service.get_boundary() is not None
