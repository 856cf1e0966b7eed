"""
Reference science operators.

Every operator has the signature ``operator(cell, context) -> None``. It may
read its own cell and the ``ci`` of its neighbors (as of the last phase
barrier) and writes only its own cell's ``cf``. Operators are applied to
every active cell by the ScienceScheduler, one phase per operator.

The chemistry and the detailed deposition parameterizations of a production
model are supplied by the caller; the operators here cover emissions
injection, transport and first-order removal.
"""

from typing import Mapping, Union

import numpy as np

from ..grid.cell import Cell, Direction
from ..grid.domain import DomainContext
from ..species import N_SPECIES

# Outward-facing sign of each transport direction
_OUTWARD = (
    (Direction.EAST, 1.0),
    (Direction.WEST, -1.0),
    (Direction.NORTH, 1.0),
    (Direction.SOUTH, -1.0),
    (Direction.ABOVE, 1.0),
    (Direction.BELOW, -1.0),
)

_WIND = {"x": "u_avg", "y": "v_avg", "z": "w_avg"}

Rate = Union[float, str]

# Largest fraction of a cell's start-of-step mass one transport phase may
# move out. The two default transport phases together never empty a cell.
TRANSPORT_LIMIT = 0.5


def add_emissions_flux(cell: Cell, context: DomainContext) -> None:
    """
    Add one time step of emissions and start the new step.

    Must run once per iteration, first: it also copies ``cf`` into ``ci`` so
    later phases read a consistent start-of-step state.
    """
    cell.cf += cell.emis_flux * context.dt
    cell.ci[:] = cell.cf


def _limiter(loss: float) -> float:
    """Scale factor keeping one phase's outgoing fraction within TRANSPORT_LIMIT."""
    return 1.0 if loss <= TRANSPORT_LIMIT else TRANSPORT_LIMIT / loss


def _advective_faces(cell: Cell, context: DomainContext):
    """Yield ``(neighbor, outward Courant number)`` for every face neighbor."""
    dt = context.dt
    for direction, sign in _OUTWARD:
        axis = direction.axis
        extent = cell.extent(axis)
        if extent <= 0:
            continue
        wind = getattr(cell, _WIND[axis])
        neighbors = context.neighbors(cell, direction)
        for neighbor, frac in zip(neighbors, cell.frac[direction]):
            outward = sign * 0.5 * (wind + getattr(neighbor, _WIND[axis]))
            yield neighbor, outward / extent * frac * dt


def _advective_loss(cell: Cell, context: DomainContext) -> float:
    if cell.boundary:
        return 0.0
    return sum(c for _, c in _advective_faces(cell, context) if c > 0)


def upwind_advection(cell: Cell, context: DomainContext) -> None:
    """
    First-order upwind advection with face velocities averaged from cell centers.

    Outflow from a cell is scaled down when it would exceed TRANSPORT_LIMIT
    of the cell's mass; the receiving cell applies the same scale to its
    inflow.
    """
    scale = _limiter(_advective_loss(cell, context))
    for neighbor, courant in _advective_faces(cell, context):
        if courant > 0:
            cell.cf -= scale * courant * cell.ci
        else:
            upstream = _limiter(_advective_loss(neighbor, context))
            cell.cf -= upstream * courant * neighbor.ci


def _diffusive_faces(cell: Cell, context: DomainContext):
    """Yield ``(neighbor, K·dt/(distance·extent)·frac)`` for every face neighbor."""
    dt = context.dt
    for direction, _ in _OUTWARD:
        extent = cell.extent(direction.axis)
        if extent <= 0:
            continue
        neighbors = context.neighbors(cell, direction)
        for i, neighbor in enumerate(neighbors):
            dist = cell.half_distance[direction][i]
            if dist <= 0:
                continue
            k = cell.k_interface[direction][i]
            frac = cell.frac[direction][i]
            yield neighbor, k / dist / extent * frac * dt


def _diffusive_loss(cell: Cell, context: DomainContext) -> float:
    if cell.boundary:
        return 0.0
    return sum(n for _, n in _diffusive_faces(cell, context))


def explicit_diffusion(cell: Cell, context: DomainContext) -> None:
    """
    Explicit eddy diffusion using staggered-grid interface diffusivities.

    Limited like ``upwind_advection``: each side of a face exchanges mass
    with the scale of the cell it leaves.
    """
    scale = _limiter(_diffusive_loss(cell, context))
    for neighbor, number in _diffusive_faces(cell, context):
        source = _limiter(_diffusive_loss(neighbor, context))
        cell.cf += number * (source * neighbor.ci - scale * cell.ci)


def _rate_vector(cell: Cell, rates: Mapping[int, Rate]) -> np.ndarray:
    out = np.zeros(N_SPECIES)
    for species, rate in rates.items():
        out[int(species)] = cell.params.get(rate, 0.0) if isinstance(rate, str) else rate
    return out


class FirstOrderLoss:
    """
    First-order removal ``cf *= exp(-k·dt)`` for selected species.

    Parameters
    ----------
    rates : mapping
        Species index -> rate [1/s], either a number or the name of a
        ``cell.params`` entry holding the rate.

    Used for wet deposition and other scavenging processes.
    """

    def __init__(self, rates: Mapping[int, Rate]):
        self.rates = dict(rates)
        self.__name__ = type(self).__name__

    def __call__(self, cell: Cell, context: DomainContext) -> None:
        k = _rate_vector(cell, self.rates)
        cell.cf *= np.exp(-k * context.dt)


class DryDeposition(FirstOrderLoss):
    """
    Dry deposition at the ground: ``cf *= exp(-v_d·dt/Δz)`` in layer 0.

    Parameters
    ----------
    velocities : mapping
        Species index -> deposition velocity [m/s], a number or the name of
        a ``cell.params`` entry.
    """

    def __init__(self, velocities: Mapping[int, Rate]):
        super().__init__(velocities)

    def __call__(self, cell: Cell, context: DomainContext) -> None:
        if cell.layer != 0 or cell.dz <= 0:
            return
        vd = _rate_vector(cell, self.rates)
        cell.cf *= np.exp(-vd / cell.dz * context.dt)


def uniform_rates(value: Rate, species=None) -> dict:
    """Same rate for every species (or the given ones)."""
    indices = range(N_SPECIES) if species is None else species
    return {int(s): value for s in indices}
