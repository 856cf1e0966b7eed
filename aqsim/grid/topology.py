"""
Staggered-grid neighbor geometry.

For every neighbor of every active cell this module computes:

    half_distance : center-to-center distance along the face axis
                    (mean of the two extents)
    frac          : fraction of this cell's face covered by the neighbor,
                    min(neighbor cross extent / own cross extent, 1)
    k_interface   : harmonic mean of the two center diffusivities

Cross extents are dy for west/east faces, dx for south/north faces and the
horizontal area for vertical faces. Fractions are computed per neighbor and
are not renormalized, so a face with several sub-resolution neighbors does
not necessarily sum to 1. A cell with zero horizontal size gets fractions of 0
and a warning.

Each cell only writes its own arrays, so the computation needs no locking.
"""

from typing import Tuple

import numpy as np
from loguru import logger

from .cell import Cell, Direction
from .domain import Domain


def harmonic_mean(a: float, b: float) -> float:
    """
    Harmonic mean 2ab/(a+b) of two diffusivities.

    Models two diffusive resistances in series across a face. Returns 0
    when both inputs are 0.
    """
    total = a + b
    if total == 0.0:
        return 0.0
    return 2.0 * a * b / total


def _cross_extent(cell: Cell, direction: Direction) -> float:
    axis = direction.axis
    if axis == "x":
        return cell.dy
    if axis == "y":
        return cell.dx
    return cell.dx * cell.dy


def _center_diffusivity(cell: Cell, direction: Direction) -> float:
    return cell.kzz if direction.is_vertical else cell.kxxyy


def neighbor_geometry(cell: Cell, neighbor: Cell,
                      direction: Direction) -> Tuple[float, float, float]:
    """
    Geometry of one cell/neighbor pair.

    Returns
    -------
    half_distance, frac, k_interface : float
    """
    axis = direction.axis
    half_distance = 0.5 * (cell.extent(axis) + neighbor.extent(axis))

    own = _cross_extent(cell, direction)
    frac = min(_cross_extent(neighbor, direction) / own, 1.0) if own > 0 else 0.0

    k_interface = harmonic_mean(_center_diffusivity(cell, direction),
                                _center_diffusivity(neighbor, direction))
    return half_distance, frac, k_interface


def compute_cell_neighbor_info(domain: Domain, cell: Cell) -> None:
    """Fill the per-direction arrays of a single cell."""
    if cell.dx <= 0 or cell.dy <= 0:
        logger.warning(f"Zero-size cell in layer {cell.layer} (dx={cell.dx:g}, dy={cell.dy:g}); "
                       f"its face coverage fractions are 0")
    for direction in Direction:
        neighbors = domain.neighbor_cells(cell, direction)
        n = len(neighbors)
        half_distance = np.zeros(n)
        frac = np.zeros(n)
        k_interface = np.zeros(n)
        for i, neighbor in enumerate(neighbors):
            half_distance[i], frac[i], k_interface[i] = neighbor_geometry(
                cell, neighbor, direction)
        cell.half_distance[direction] = half_distance
        cell.frac[direction] = frac
        cell.k_interface[direction] = k_interface


def compute_neighbor_info(domain: Domain) -> None:
    """
    Compute distances, coverage fractions and interface diffusivities for
    every active cell.
    """
    n_links = 0
    for cell in domain.cells:
        compute_cell_neighbor_info(domain, cell)
        n_links += sum(len(refs) for refs in cell.neighbors.values())
    logger.debug(f"Neighbor info computed for {len(domain.cells)} cells ({n_links} links)")
