"""
Simulation domain: active cells, boundary ghost cells and the global time step.

Active cells are kept sorted by ascending layer index so extraction for one
layer can stop as soon as it passes that layer. Ghost cells live in five
per-direction boundary collections and are never mixed into the active
sequence.
"""

from typing import Dict, Iterator, List, Mapping, Optional, Sequence

import numpy as np
from loguru import logger

from .cell import BOUNDARY_DIRECTIONS, Cell, Direction, NeighborRef
from ..errors import UnknownPollutantError
from ..species import N_SPECIES, SpeciesTables


class Domain:
    """
    Container for the grid state over one run.

    Parameters
    ----------
    cells : sequence of Cell
        Active cells. Neighbor references index into this sequence as given;
        they are remapped when the cells are sorted by layer.
    species : SpeciesTables, optional
        Species and population lookup tables.
    n_layers : int, optional
        Number of model layers. Defaults to ``max(layer) + 1``.
    """

    def __init__(self,
                 cells: Sequence[Cell],
                 species: Optional[SpeciesTables] = None,
                 n_layers: Optional[int] = None):
        self.species = species if species is not None else SpeciesTables()
        self.cells: List[Cell] = list(cells)
        self.boundary: Dict[Direction, List[Cell]] = {d: [] for d in BOUNDARY_DIRECTIONS}
        self.dt: float = 0.0

        self._sort_by_layer()

        if n_layers is None:
            n_layers = (max(c.layer for c in self.cells) + 1) if self.cells else 0
        self.n_layers = n_layers

    def __len__(self) -> int:
        return len(self.cells)

    def _sort_by_layer(self) -> None:
        """Stable-sort active cells by layer and remap active neighbor indices."""
        order = sorted(range(len(self.cells)), key=lambda i: self.cells[i].layer)
        if order == list(range(len(self.cells))):
            return

        new_index = {old: new for new, old in enumerate(order)}
        self.cells = [self.cells[i] for i in order]
        for cell in self.cells:
            for direction, refs in cell.neighbors.items():
                cell.neighbors[direction] = [
                    ref if ref.boundary else NeighborRef(False, new_index[ref.index])
                    for ref in refs
                ]
        logger.debug(f"Sorted {len(self.cells)} cells by layer")

    # ------------------------------------------------------------------
    # Neighbor resolution
    # ------------------------------------------------------------------

    def resolve(self, ref: NeighborRef, direction: Direction) -> Cell:
        """Return the cell a neighbor reference points to."""
        if ref.boundary:
            return self.boundary[direction][ref.index]
        return self.cells[ref.index]

    def neighbor_cells(self, cell: Cell, direction: Direction) -> List[Cell]:
        """All neighbors of ``cell`` in ``direction``, in reference order."""
        return [self.resolve(ref, direction) for ref in cell.neighbors[direction]]

    def context(self) -> 'DomainContext':
        return DomainContext(self)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def reset_concentrations(self) -> None:
        for cell in self.cells:
            cell.reset_concentrations()

    def add_emissions(self, emissions: Mapping[str, Sequence[float]]) -> None:
        """
        Set the emissions flux of every active cell.

        Parameters
        ----------
        emissions : mapping
            Pollutant name -> emission rates [μg/s], one per active cell in
            the domain's cell order.

        Raises
        ------
        UnknownPollutantError
            If a pollutant name is not an accepted emissions input.
        ValueError
            If an emissions array does not match the number of cells.
        """
        inputs = self.species.emission_inputs
        # Validate everything before touching any cell
        for name, values in emissions.items():
            if name not in inputs:
                raise UnknownPollutantError(name)
            if len(values) != len(self.cells):
                raise ValueError(
                    f"Emissions for {name} have {len(values)} values, "
                    f"expected {len(self.cells)}"
                )

        for name, values in emissions.items():
            species, scale = inputs[name]
            for cell, value in zip(self.cells, values):
                # μg/s / m³ = μg/m³/s
                cell.emis_flux[species] = float(value) * scale / cell.volume

    def species_totals(self) -> np.ndarray:
        """Sum of end-of-step concentrations over active cells, per species."""
        total = np.zeros(N_SPECIES)
        for cell in self.cells:
            total += cell.cf
        return total

    # ------------------------------------------------------------------
    # Layer access
    # ------------------------------------------------------------------

    def iter_layer(self, layer: int) -> Iterator[Cell]:
        """Yield active cells in ``layer``, relying on the layer ordering."""
        for cell in self.cells:
            if cell.layer > layer:
                return
            if cell.layer == layer:
                yield cell

    def get_geometry(self, layer: int) -> list:
        """Opaque cell geometries for one layer."""
        out = []
        for cell in self.iter_layer(layer):
            with cell.lock:
                out.append(cell.geometry)
        return out

    def boundary_count(self) -> int:
        return sum(len(v) for v in self.boundary.values())


class DomainContext:
    """Read-only view of the domain handed to science operators."""

    __slots__ = ('_domain',)

    def __init__(self, domain: Domain):
        self._domain = domain

    @property
    def dt(self) -> float:
        return self._domain.dt

    @property
    def species(self) -> SpeciesTables:
        return self._domain.species

    def neighbors(self, cell: Cell, direction: Direction) -> List[Cell]:
        return self._domain.neighbor_cells(cell, direction)
