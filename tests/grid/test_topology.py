"""
Tests for neighbor geometry: distances, coverage fractions and interface
diffusivities.
"""

import numpy as np
import pytest
from loguru import logger

from aqsim.grid import (
    Cell, Direction, Domain, NeighborRef, compute_neighbor_info, harmonic_mean,
    neighbor_geometry, synthesize_boundaries,
)


class TestHarmonicMean:
    """Tests for harmonic_mean."""

    def test_both_zero(self):
        assert harmonic_mean(0.0, 0.0) == 0.0

    def test_one_zero(self):
        """A zero diffusivity on either side blocks the face."""
        assert harmonic_mean(0.0, 10.0) == 0.0

    def test_equal_values(self):
        assert harmonic_mean(7.0, 7.0) == pytest.approx(7.0)

    @pytest.mark.parametrize("a,b", [(1.0, 3.0), (0.5, 100.0), (42.0, 1e-3)])
    def test_symmetric_and_bounded(self, a, b):
        h = harmonic_mean(a, b)
        assert h == pytest.approx(harmonic_mean(b, a))
        assert min(a, b) <= h <= max(a, b)

    def test_known_value(self):
        assert harmonic_mean(1.0, 3.0) == pytest.approx(1.5)


class TestNeighborGeometry:
    """Tests for a single cell/neighbor pair."""

    def test_equal_cells(self):
        a = Cell(dx=1000.0, dy=1000.0, dz=50.0, kxxyy=10.0)
        b = Cell(dx=1000.0, dy=1000.0, dz=50.0, kxxyy=10.0)

        dist, frac, k = neighbor_geometry(a, b, Direction.EAST)

        assert dist == pytest.approx(1000.0)
        assert frac == pytest.approx(1.0)
        assert k == pytest.approx(10.0)

    def test_smaller_neighbor_covers_part_of_face(self):
        big = Cell(dx=2000.0, dy=2000.0, dz=50.0)
        small = Cell(dx=1000.0, dy=1000.0, dz=50.0)

        dist, frac, _ = neighbor_geometry(big, small, Direction.WEST)
        assert dist == pytest.approx(1500.0)
        assert frac == pytest.approx(0.5)

        # The small cell's face is fully covered by the big one
        _, frac_back, _ = neighbor_geometry(small, big, Direction.EAST)
        assert frac_back == pytest.approx(1.0)

    def test_vertical_uses_area_and_kzz(self):
        lower = Cell(dx=2000.0, dy=2000.0, dz=50.0, kzz=2.0, kxxyy=99.0)
        upper = Cell(dx=1000.0, dy=1000.0, dz=150.0, kzz=6.0, kxxyy=99.0)

        dist, frac, k = neighbor_geometry(lower, upper, Direction.ABOVE)

        assert dist == pytest.approx(100.0)
        assert frac == pytest.approx(0.25)
        assert k == pytest.approx(harmonic_mean(2.0, 6.0))

    def test_south_north_uses_dx(self):
        a = Cell(dx=1000.0, dy=3000.0, dz=50.0)
        b = Cell(dx=500.0, dy=1000.0, dz=50.0)

        dist, frac, _ = neighbor_geometry(a, b, Direction.NORTH)
        assert dist == pytest.approx(2000.0)
        assert frac == pytest.approx(0.5)


class TestComputeNeighborInfo:
    """Tests over whole domains."""

    def test_arrays_parallel_to_neighbors(self, box_domain):
        synthesize_boundaries(box_domain)
        compute_neighbor_info(box_domain)

        for cell in box_domain.cells:
            for direction in Direction:
                n = len(cell.neighbors[direction])
                assert len(cell.frac[direction]) == n
                assert len(cell.half_distance[direction]) == n
                assert len(cell.k_interface[direction]) == n

    def test_fractions_in_unit_interval(self, box_domain):
        synthesize_boundaries(box_domain)
        compute_neighbor_info(box_domain)

        for cell in box_domain.cells:
            for direction in Direction:
                frac = cell.frac[direction]
                assert np.all(frac > 0.0)
                assert np.all(frac <= 1.0)

    def test_ground_level_of_ground_cell_is_itself(self, box_domain):
        compute_neighbor_info(box_domain)
        cell = box_domain.cells[0]

        assert cell.layer == 0
        np.testing.assert_allclose(cell.half_distance[Direction.GROUND_LEVEL], [cell.dz])
        np.testing.assert_allclose(cell.frac[Direction.GROUND_LEVEL], [1.0])

    def test_boundary_neighbors_get_geometry(self, two_cell_domain):
        synthesize_boundaries(two_cell_domain)
        compute_neighbor_info(two_cell_domain)
        a = two_cell_domain.cells[0]

        # Ghost is a copy of A, so the geometry is symmetric
        np.testing.assert_allclose(a.half_distance[Direction.WEST], [a.dx])
        np.testing.assert_allclose(a.frac[Direction.WEST], [1.0])


def _refined_face_domain(own_dy, neighbor_dys):
    """One coarse cell (index 0) whose east face borders several finer cells."""
    coarse = Cell(dx=2000.0, dy=own_dy, dz=50.0, kxxyy=10.0)
    fine = [Cell(dx=1000.0, dy=dy, dz=50.0, kxxyy=10.0) for dy in neighbor_dys]
    for i, cell in enumerate(fine, start=1):
        coarse.add_neighbor(Direction.EAST, NeighborRef(False, i))
        cell.add_neighbor(Direction.WEST, NeighborRef(False, 0))
    return Domain([coarse] + fine, n_layers=1)


class TestSubResolutionNeighbors:
    """Faces shared with several smaller cells."""

    def test_two_neighbors_on_one_face(self):
        domain = _refined_face_domain(2000.0, [1000.0, 1000.0])
        compute_neighbor_info(domain)
        coarse = domain.cells[0]

        np.testing.assert_allclose(coarse.frac[Direction.EAST], [0.5, 0.5])
        np.testing.assert_allclose(coarse.half_distance[Direction.EAST], [1500.0, 1500.0])
        np.testing.assert_allclose(coarse.k_interface[Direction.EAST], [10.0, 10.0])

    def test_three_neighbors_not_renormalized(self):
        domain = _refined_face_domain(4000.0, [1000.0, 1000.0, 1000.0])
        compute_neighbor_info(domain)
        coarse = domain.cells[0]

        frac = coarse.frac[Direction.EAST]
        assert len(frac) == 3
        assert np.all(frac > 0.0)
        assert np.all(frac <= 1.0)
        np.testing.assert_allclose(frac, [0.25, 0.25, 0.25])
        assert frac.sum() == pytest.approx(0.75)

    def test_fine_cells_fully_covered(self):
        domain = _refined_face_domain(4000.0, [1000.0, 1000.0, 1000.0])
        compute_neighbor_info(domain)

        for cell in domain.cells[1:]:
            np.testing.assert_allclose(cell.frac[Direction.WEST], [1.0])


class TestZeroSizeCell:

    def test_warns_and_zero_fraction(self):
        a = Cell(dx=1000.0, dy=0.0, dz=50.0)
        b = Cell(dx=1000.0, dy=1000.0, dz=50.0)
        a.add_neighbor(Direction.EAST, NeighborRef(False, 1))
        domain = Domain([a, b], n_layers=1)

        messages = []
        handler_id = logger.add(messages.append, level="WARNING")
        try:
            compute_neighbor_info(domain)
        finally:
            logger.remove(handler_id)

        np.testing.assert_array_equal(a.frac[Direction.EAST], [0.0])
        assert any("Zero-size cell" in str(m) for m in messages)
