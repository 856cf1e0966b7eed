"""
Control-volume data model.

A Cell is one finite volume of the 3-D grid. It holds the meteorology
needed by the science operators, its neighbor topology and two
concentration vectors:

    ci : concentrations at the beginning of the time step [μg/m³]
    cf : concentrations at the end of the time step [μg/m³]

Neighbors are stored as integer references tagged by whether they point into
the Domain's active cell array or into one of its boundary arrays, so cells
never hold references to each other:

    NeighborRef(boundary=False, index=i)  ->  domain.cells[i]
    NeighborRef(boundary=True,  index=k)  ->  domain.boundary[direction][k]

Each face can border several sub-resolution neighbors, so every direction
holds a list of references together with parallel arrays of overlap
fraction, center-to-center distance and interface diffusivity.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple

import numpy as np

from ..species import N_SPECIES


class Direction(Enum):
    """Neighbor directions of a cell."""
    WEST = "west"
    EAST = "east"
    SOUTH = "south"
    NORTH = "north"
    BELOW = "below"
    ABOVE = "above"
    GROUND_LEVEL = "ground_level"

    @property
    def axis(self) -> str:
        """Coordinate axis the direction points along."""
        return _AXIS[self]

    @property
    def is_vertical(self) -> bool:
        return _AXIS[self] == "z"


_AXIS = {
    Direction.WEST: "x",
    Direction.EAST: "x",
    Direction.SOUTH: "y",
    Direction.NORTH: "y",
    Direction.BELOW: "z",
    Direction.ABOVE: "z",
    Direction.GROUND_LEVEL: "z",
}

# Faces that receive ghost cells; the bottom boundary is the lowest layer itself
BOUNDARY_DIRECTIONS = (
    Direction.WEST,
    Direction.EAST,
    Direction.SOUTH,
    Direction.NORTH,
    Direction.ABOVE,
)


class NeighborRef(NamedTuple):
    """Index of a neighbor in the active array or a boundary array."""
    boundary: bool
    index: int


def _empty_lists() -> Dict[Direction, list]:
    return {d: [] for d in Direction}


def _empty_arrays() -> Dict[Direction, np.ndarray]:
    return {d: np.zeros(0) for d in Direction}


def _zero_conc() -> np.ndarray:
    return np.zeros(N_SPECIES)


@dataclass(eq=False)
class Cell:
    """
    One control volume of the grid.

    Physical scalars use SI units: winds [m/s], diffusivities [m²/s],
    mixing coefficients [1/s], extents [m].
    """

    dx: float
    dy: float
    dz: float
    layer: int = 0
    layer_height: float = 0.0

    # Mean winds and turbulent deviations
    u_avg: float = 0.0
    v_avg: float = 0.0
    w_avg: float = 0.0
    u_deviation: float = 0.0
    v_deviation: float = 0.0
    w_deviation: float = 0.0

    # Center diffusivities and ACM2 mixing
    kxxyy: float = 0.0
    kzz: float = 0.0
    m2u: float = 0.0
    m2d: float = 0.0

    # Extra named coefficients consumed by science operators
    params: Dict[str, float] = field(default_factory=dict)

    # Attached demographic data, read-only to the solver
    pop_data: Dict[str, float] = field(default_factory=dict)
    mortality_rate: float = 0.0

    # Opaque geometry, output only
    geometry: Any = None

    boundary: bool = False

    neighbors: Dict[Direction, List[NeighborRef]] = field(default_factory=_empty_lists)
    frac: Dict[Direction, np.ndarray] = field(default_factory=_empty_arrays)
    half_distance: Dict[Direction, np.ndarray] = field(default_factory=_empty_arrays)
    k_interface: Dict[Direction, np.ndarray] = field(default_factory=_empty_arrays)

    ci: np.ndarray = field(default_factory=_zero_conc)
    cf: np.ndarray = field(default_factory=_zero_conc)
    emis_flux: np.ndarray = field(default_factory=_zero_conc)

    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def volume(self) -> float:
        return self.dx * self.dy * self.dz

    @property
    def area(self) -> float:
        """Horizontal footprint [m²]."""
        return self.dx * self.dy

    def extent(self, axis: str) -> float:
        return {"x": self.dx, "y": self.dy, "z": self.dz}[axis]

    def reset_concentrations(self) -> None:
        """Zero ci, cf and the emissions flux."""
        self.ci = _zero_conc()
        self.cf = _zero_conc()
        self.emis_flux = _zero_conc()

    def boundary_copy(self) -> 'Cell':
        """
        Build a ghost cell carrying the minimal physical subset of this cell.

        The ghost has zero concentrations, no neighbors and is flagged as a
        boundary so it is never scheduled.
        """
        return Cell(
            dx=self.dx, dy=self.dy, dz=self.dz,
            layer=self.layer, layer_height=self.layer_height,
            u_avg=self.u_avg, v_avg=self.v_avg, w_avg=self.w_avg,
            u_deviation=self.u_deviation, v_deviation=self.v_deviation,
            w_deviation=self.w_deviation,
            kxxyy=self.kxxyy, kzz=self.kzz,
            m2u=self.m2u, m2d=self.m2d,
            boundary=True,
        )

    def add_neighbor(self, direction: Direction, ref: NeighborRef) -> None:
        self.neighbors[direction].append(ref)
