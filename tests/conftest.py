"""
Shared pytest fixtures for the test suite.

Domains are mutable (concentrations, boundaries, dt), so every fixture
builds a fresh one per test.
"""

import sys
from pathlib import Path

import pytest

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from aqsim.grid import (
    BoxMeteorology, Cell, Direction, Domain, NeighborRef, build_box_domain,
)


# =============================================================================
# Hand-built domains
# =============================================================================

def make_two_cell_domain(dx=1000.0, dy=1000.0, dz=50.0, **met) -> Domain:
    """
    Two ground-level cells side by side: A (index 0) west of B (index 1).

    Extra keyword arguments are copied onto both cells (winds, diffusivities).
    """
    a = Cell(dx=dx, dy=dy, dz=dz, layer_height=dz, **met)
    b = Cell(dx=dx, dy=dy, dz=dz, layer_height=dz, **met)
    a.add_neighbor(Direction.EAST, NeighborRef(False, 1))
    b.add_neighbor(Direction.WEST, NeighborRef(False, 0))
    a.add_neighbor(Direction.GROUND_LEVEL, NeighborRef(False, 0))
    b.add_neighbor(Direction.GROUND_LEVEL, NeighborRef(False, 1))
    return Domain([a, b], n_layers=1)


@pytest.fixture
def two_cell_domain():
    """Two adjacent cells with no wind and no diffusion."""
    return make_two_cell_domain()


@pytest.fixture
def single_cell_domain():
    """One isolated cell."""
    cell = Cell(dx=1000.0, dy=1000.0, dz=50.0, layer_height=50.0)
    cell.add_neighbor(Direction.GROUND_LEVEL, NeighborRef(False, 0))
    return Domain([cell], n_layers=1)


# =============================================================================
# Box domains
# =============================================================================

@pytest.fixture
def box_met():
    """Moderate wind and mixing."""
    return BoxMeteorology(u_avg=2.0, v_avg=1.0, kxxyy=50.0, kzz=5.0)


@pytest.fixture
def box_domain(box_met):
    """3 x 3 x 2 box with population on the ground layer."""
    return build_box_domain(3, 3, 2, 1000.0, 1000.0, [50.0, 100.0],
                            met=box_met,
                            pop_data={"TotalPop": 1000.0},
                            mortality_rate=800.0)
