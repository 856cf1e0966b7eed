"""
Tracked species and the lookup tables built around them.

The solver advances 9 tracer concentrations per cell. Emissions arrive as
compound masses (e.g. NOx) and are converted to the tracked element (N);
output labels convert back (e.g. particulate N to nitrate). All of these
tables live in one immutable ``SpeciesTables`` object that is created once
and passed explicitly to the Domain and the output layer.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Sequence, Tuple

from .constants import (
    NOX_TO_N, N_TO_NO3, SOX_TO_S, S_TO_SO4, NH3_TO_N, N_TO_NH4,
)


class Species(IntEnum):
    """Indices of the tracked pollutants in concentration vectors."""
    gOrg = 0   # Gaseous organic matter
    pOrg = 1   # Particulate organic matter
    PM2_5 = 2  # Primary PM2.5
    gNH = 3    # Gaseous N in ammonia
    pNH = 4    # Particulate N in ammonium
    gS = 5     # Gaseous S in sulfur dioxide
    pS = 6     # Particulate S in sulfate
    gNO = 7    # Gaseous N in NOx
    pNO = 8    # Particulate N in nitrate


N_SPECIES = len(Species)

# Gas-phase species and the particle-phase species they partition into
GAS_PARTICLE_MAP = MappingProxyType({
    Species.gOrg: Species.pOrg,
    Species.gNO: Species.pNO,
    Species.gNH: Species.pNH,
    Species.gS: Species.pS,
    Species.PM2_5: Species.PM2_5,
})


class EmissionInput(NamedTuple):
    """Where an emitted pollutant lands and how its mass is converted."""
    species: Species
    scale: float


class ConcentrationLabel(NamedTuple):
    """Weighted sum of species making up one output concentration."""
    indices: Tuple[int, ...]
    conversion: Tuple[float, ...]


def _freeze(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


def _default_emission_inputs() -> Mapping[str, EmissionInput]:
    # All emissions except primary PM2.5 go to the gas phase
    return _freeze({
        "VOC": EmissionInput(Species.gOrg, 1.0),
        "NOx": EmissionInput(Species.gNO, NOX_TO_N),
        "NH3": EmissionInput(Species.gNH, NH3_TO_N),
        "SOx": EmissionInput(Species.gS, SOX_TO_S),
        "PM2_5": EmissionInput(Species.PM2_5, 1.0),
    })


def _default_emission_labels() -> Mapping[str, int]:
    return _freeze({
        "VOC Emissions": int(Species.gOrg),
        "NOx emissions": int(Species.gNO),
        "NH3 emissions": int(Species.gNH),
        "SOx emissions": int(Species.gS),
        "PM2.5 emissions": int(Species.PM2_5),
    })


def _default_concentration_labels() -> Mapping[str, ConcentrationLabel]:
    S = Species
    return _freeze({
        "TotalPM2_5": ConcentrationLabel(
            (S.PM2_5, S.pOrg, S.pNH, S.pS, S.pNO),
            (1.0, 1.0, N_TO_NH4, S_TO_SO4, N_TO_NO3),
        ),
        "VOC": ConcentrationLabel((S.gOrg,), (1.0,)),
        "SOA": ConcentrationLabel((S.pOrg,), (1.0,)),
        "PrimaryPM2_5": ConcentrationLabel((S.PM2_5,), (1.0,)),
        "NH3": ConcentrationLabel((S.gNH,), (1.0 / NH3_TO_N,)),
        "pNH4": ConcentrationLabel((S.pNH,), (N_TO_NH4,)),
        "SOx": ConcentrationLabel((S.gS,), (1.0 / SOX_TO_S,)),
        "pSO4": ConcentrationLabel((S.pS,), (S_TO_SO4,)),
        "NOx": ConcentrationLabel((S.gNO,), (1.0 / NOX_TO_N,)),
        "pNO3": ConcentrationLabel((S.pNO,), (N_TO_NO3,)),
    })


@dataclass(frozen=True)
class SpeciesTables:
    """
    Immutable lookup tables for emissions, concentrations and population.

    Parameters
    ----------
    population_names : tuple of str
        Demographic groups attached to each cell's population data.
    """

    population_names: Tuple[str, ...] = ("TotalPop",)
    emission_inputs: Mapping[str, EmissionInput] = field(
        default_factory=_default_emission_inputs)
    emission_labels: Mapping[str, int] = field(
        default_factory=_default_emission_labels)
    concentration_labels: Mapping[str, ConcentrationLabel] = field(
        default_factory=_default_concentration_labels)

    def __post_init__(self):
        object.__setattr__(self, 'population_names', tuple(self.population_names))

    @property
    def emission_names(self) -> Tuple[str, ...]:
        """Pollutant names accepted as emissions input [μg/s]."""
        return tuple(self.emission_inputs)

    @classmethod
    def with_population(cls, names: Sequence[str]) -> 'SpeciesTables':
        """Default tables with a custom set of demographic groups."""
        return cls(population_names=tuple(names))
