"""
Boundary ghost-cell synthesis.

Every active cell that has no neighbor on a domain face receives a ghost
cell on that face. Ghost cells act as fixed zero-concentration boundary
values for the transport operators:

    Faces handled: WEST, EAST, SOUTH, NORTH, ABOVE
    Bottom:        none (the lowest layer exchanges with the ground through
                   deposition, not through a ghost cell)

Ghost Cell Convention:
    - Ghost cells are copies of the owning cell's minimal physical subset
      (extents, winds, deviations, diffusivities, mixing, layer).
    - Concentrations are zero and are never updated.
    - References are one-way: the active cell points at the ghost, the
      ghost has no neighbors and is never scheduled.
"""

from typing import Dict, Iterable, Optional

from loguru import logger

from .cell import BOUNDARY_DIRECTIONS, Direction, NeighborRef
from .domain import Domain


class BoundarySynthesizer:
    """
    Creates ghost cells for the open faces of a domain.

    Parameters
    ----------
    faces : iterable of Direction, optional
        Faces that receive ghost cells. Defaults to all five boundary faces.
        A face left out keeps empty neighbor lists, meaning a true domain
        edge with no boundary flux.
    """

    def __init__(self, faces: Optional[Iterable[Direction]] = None):
        faces = tuple(faces) if faces is not None else BOUNDARY_DIRECTIONS
        for face in faces:
            if face not in BOUNDARY_DIRECTIONS:
                raise ValueError(f"Direction {face} cannot carry boundary cells")
        self.faces = faces

    def apply(self, domain: Domain) -> Dict[Direction, int]:
        """
        Add ghost cells to every cell missing a neighbor on a handled face.

        Parameters
        ----------
        domain : Domain
            Domain whose active cells are updated in place.

        Returns
        -------
        created : dict
            Number of ghost cells created per face.
        """
        created = {}
        for face in self.faces:
            created[face] = self.apply_face(domain, face)

        logger.debug(
            "Boundary cells created: "
            + ", ".join(f"{face.value}={n}" for face, n in created.items())
        )
        return created

    @staticmethod
    def apply_face(domain: Domain, face: Direction) -> int:
        """Add ghost cells on one face. Returns the number created."""
        ghosts = domain.boundary[face]
        n_created = 0
        for cell in domain.cells:
            if cell.neighbors[face]:
                continue
            ghosts.append(cell.boundary_copy())
            cell.neighbors[face] = [NeighborRef(boundary=True, index=len(ghosts) - 1)]
            n_created += 1
        return n_created


def synthesize_boundaries(domain: Domain,
                          faces: Optional[Iterable[Direction]] = None) -> Dict[Direction, int]:
    """
    Convenience function to add ghost cells to all open faces.

    Must run before the topology is computed and before any science
    operator executes.
    """
    return BoundarySynthesizer(faces).apply(domain)
