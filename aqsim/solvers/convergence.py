"""
Steady-state detection from total species mass.

Every ``check_period`` seconds of model time the total end-of-step
concentration of each species is compared against the total recorded at
the previous check:

    bias = (new - old) / old

The run has converged when every species satisfies |bias| <= tolerance and
bias is finite. A zero previous total gives a non-finite bias and is never
converged, so the first check fails for every emitted species. Identical
totals count as zero change, including a species that stays at zero.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence

import numpy as np
import numpy.typing as npt
from loguru import logger

from ..constants import DEFAULT_CHECK_PERIOD, DEFAULT_TOLERANCE
from ..species import N_SPECIES, Species

NDArrayFloat = npt.NDArray[np.floating]


class RunStatus(Enum):
    RUNNING = "running"
    DONE = "done"


def relative_change(new_sum: float, old_sum: float) -> float:
    """(new - old) / old; 0 for identical totals, ``inf`` when only old is zero."""
    if new_sum == old_sum:
        return 0.0
    with np.errstate(divide='ignore', invalid='ignore'):
        return float(np.float64(new_sum - old_sum) / np.float64(old_sum))


def check_convergence(new_sum: float, old_sum: float,
                      tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """True if the relative change is finite and within tolerance."""
    bias = relative_change(new_sum, old_sum)
    return bool(np.isfinite(bias) and abs(bias) <= tolerance)


@dataclass
class ConvergenceCheck:
    """Outcome of one periodic convergence check."""
    converged: bool
    bias: NDArrayFloat
    per_species: List[bool]


@dataclass
class ConvergenceMonitor:
    """
    Tracks model time and per-species totals between convergence checks.

    Parameters
    ----------
    tolerance : float
        Maximum allowed relative change per species.
    check_period : float
        Model seconds between checks.
    """

    tolerance: float = DEFAULT_TOLERANCE
    check_period: float = DEFAULT_CHECK_PERIOD
    old_sums: NDArrayFloat = field(default_factory=lambda: np.zeros(N_SPECIES))
    time_since_check: float = 0.0
    n_checks: int = 0
    history: List[NDArrayFloat] = field(default_factory=list)

    def advance(self, dt: float) -> bool:
        """Add one completed time step. Returns True if a check is due."""
        self.time_since_check += dt
        return self.time_since_check >= self.check_period

    def check(self, sums: Sequence[float]) -> ConvergenceCheck:
        """
        Compare new totals with the previous ones and record them.

        Parameters
        ----------
        sums : sequence of float, length N_SPECIES
            Total end-of-step concentration per species.
        """
        sums = np.asarray(sums, dtype=float)
        per_species = []
        bias = np.empty(len(sums))
        for i, (new, old) in enumerate(zip(sums, self.old_sums)):
            bias[i] = relative_change(new, old)
            per_species.append(check_convergence(new, old, self.tolerance))
            logger.info(f"  {_species_label(i)}: total mass difference = "
                        f"{bias[i] * 100:.2g}% from last check")

        self.old_sums = sums.copy()
        self.history.append(sums.copy())
        self.time_since_check = 0.0
        self.n_checks += 1

        return ConvergenceCheck(converged=all(per_species), bias=bias,
                                per_species=per_species)


def _species_label(i: int) -> str:
    try:
        return Species(i).name
    except ValueError:
        return f"species[{i}]"
