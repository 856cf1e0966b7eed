"""
Grid data model and preprocessing.

This module provides:
- Cell and Domain containers with index-based neighbor references
- Boundary ghost-cell synthesis for open domain faces
- Staggered-grid neighbor geometry (distances, fractions, diffusivities)
- A uniform box-grid builder for demonstrations and tests
"""

from .cell import (
    Cell,
    Direction,
    NeighborRef,
    BOUNDARY_DIRECTIONS,
)

from .domain import (
    Domain,
    DomainContext,
)

from .boundary import (
    BoundarySynthesizer,
    synthesize_boundaries,
)

from .topology import (
    harmonic_mean,
    neighbor_geometry,
    compute_cell_neighbor_info,
    compute_neighbor_info,
)

from .builder import (
    BoxMeteorology,
    build_box_cells,
    build_box_domain,
)

__all__ = [
    # Cell
    'Cell',
    'Direction',
    'NeighborRef',
    'BOUNDARY_DIRECTIONS',
    # Domain
    'Domain',
    'DomainContext',
    # Boundary
    'BoundarySynthesizer',
    'synthesize_boundaries',
    # Topology
    'harmonic_mean',
    'neighbor_geometry',
    'compute_cell_neighbor_info',
    'compute_neighbor_info',
    # Builder
    'BoxMeteorology',
    'build_box_cells',
    'build_box_domain',
]
