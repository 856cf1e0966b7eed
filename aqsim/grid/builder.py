"""
Uniform box-grid builder.

Constructs a regular Cartesian domain of nx × ny × nz cells with uniform
meteorology. Real grids come from meteorological preprocessing; this builder
exists for demonstrations and tests.

Cell ordering is layer-major: index = k*nx*ny + j*nx + i, so the active
sequence is already sorted by layer.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Union

import numpy as np

from .cell import Cell, Direction, NeighborRef
from .domain import Domain
from ..species import SpeciesTables


@dataclass
class BoxMeteorology:
    """Uniform meteorology applied to every cell of a box grid."""
    u_avg: float = 0.0
    v_avg: float = 0.0
    w_avg: float = 0.0
    u_deviation: float = 0.0
    v_deviation: float = 0.0
    w_deviation: float = 0.0
    kxxyy: float = 0.0
    kzz: float = 0.0
    m2u: float = 0.0
    m2d: float = 0.0
    params: Dict[str, float] = field(default_factory=dict)


def build_box_cells(nx: int, ny: int, nz: int,
                    dx: float, dy: float,
                    dz: Union[float, Sequence[float]],
                    met: Optional[BoxMeteorology] = None,
                    pop_data: Optional[Dict[str, float]] = None,
                    mortality_rate: float = 0.0) -> list:
    """
    Create the cells of a box grid with active-neighbor references.

    Parameters
    ----------
    nx, ny, nz : int
        Number of cells in x, y and z.
    dx, dy : float
        Horizontal cell size [m].
    dz : float or sequence of float
        Layer thickness [m], either uniform or one value per layer.
    met : BoxMeteorology, optional
        Meteorology copied into every cell.
    pop_data : dict, optional
        Population per ground-level cell, per demographic.
    mortality_rate : float
        Baseline mortality rate [deaths / 100,000 / year].

    Returns
    -------
    cells : list of Cell
    """
    if nx < 1 or ny < 1 or nz < 1:
        raise ValueError(f"Grid must have at least one cell per axis, got {nx}x{ny}x{nz}")

    met = met or BoxMeteorology()
    dz_layers = np.broadcast_to(np.asarray(dz, dtype=float), (nz,))
    heights = np.cumsum(dz_layers)

    def idx(i, j, k):
        return k * nx * ny + j * nx + i

    cells = []
    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                cell = Cell(
                    dx=dx, dy=dy, dz=float(dz_layers[k]),
                    layer=k, layer_height=float(heights[k]),
                    u_avg=met.u_avg, v_avg=met.v_avg, w_avg=met.w_avg,
                    u_deviation=met.u_deviation, v_deviation=met.v_deviation,
                    w_deviation=met.w_deviation,
                    kxxyy=met.kxxyy, kzz=met.kzz, m2u=met.m2u, m2d=met.m2d,
                    params=dict(met.params),
                    pop_data=dict(pop_data) if (pop_data and k == 0) else {},
                    mortality_rate=mortality_rate,
                    geometry=(i * dx, j * dy, (i + 1) * dx, (j + 1) * dy),
                )
                cells.append(cell)

    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                cell = cells[idx(i, j, k)]
                links = (
                    (Direction.WEST, i > 0, (i - 1, j, k)),
                    (Direction.EAST, i < nx - 1, (i + 1, j, k)),
                    (Direction.SOUTH, j > 0, (i, j - 1, k)),
                    (Direction.NORTH, j < ny - 1, (i, j + 1, k)),
                    (Direction.BELOW, k > 0, (i, j, k - 1)),
                    (Direction.ABOVE, k < nz - 1, (i, j, k + 1)),
                    (Direction.GROUND_LEVEL, True, (i, j, 0)),
                )
                for direction, exists, target in links:
                    if exists:
                        cell.add_neighbor(direction, NeighborRef(False, idx(*target)))
    return cells


def build_box_domain(nx: int, ny: int, nz: int,
                     dx: float, dy: float,
                     dz: Union[float, Sequence[float]],
                     met: Optional[BoxMeteorology] = None,
                     species: Optional[SpeciesTables] = None,
                     pop_data: Optional[Dict[str, float]] = None,
                     mortality_rate: float = 0.0) -> Domain:
    """Build a box-grid Domain (boundaries and topology not yet computed)."""
    cells = build_box_cells(nx, ny, nz, dx, dy, dz, met=met,
                            pop_data=pop_data, mortality_rate=mortality_rate)
    return Domain(cells, species=species, n_layers=nz)
