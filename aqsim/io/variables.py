"""
Registry of extractable output variables.

Each variable name maps to a namespace, an extraction function over a single
cell, its units and a description. The registry is built once from the
species tables and is read-only afterwards. When two namespaces define the
same name, the earlier namespace wins:

    1. emissions fluxes          [μg/m³/s]
    2. concentrations            [μg/m³]      weighted sums of species
    3. population densities      [people/m²]
    4. "<population> deaths"     [deaths/grid cell]
    5. physical cell fields      (per-field units)
"""

from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional

from ..errors import UnknownVariableError
from ..grid.cell import Cell
from ..physics import health
from ..species import ConcentrationLabel, SpeciesTables

DEATHS_SUFFIX = " deaths"
TOTAL_PM25 = "TotalPM2_5"


class Namespace(Enum):
    EMISSIONS = "emissions"
    CONCENTRATION = "concentration"
    POPULATION = "population"
    MORTALITY = "mortality"
    PHYSICAL = "physical"


class VariableSpec(NamedTuple):
    """How to read one variable from a cell."""
    name: str
    namespace: Namespace
    extract: Callable[[Cell], float]
    units: str
    description: str = ""


class ConcentrationResponse(NamedTuple):
    """Injected health functions used by the mortality variables."""
    relative_risk: Callable[[float], float] = health.rr_pm25_linear
    deaths: Callable[[float, float, float], float] = health.deaths


# (output name, Cell attribute, units, description)
PHYSICAL_FIELDS = (
    ("UAvg", "u_avg", "m/s", "Average East-West wind speed"),
    ("VAvg", "v_avg", "m/s", "Average North-South wind speed"),
    ("WAvg", "w_avg", "m/s", "Average up-down wind speed"),
    ("UDeviation", "u_deviation", "m/s", "Average deviation from East-West velocity"),
    ("VDeviation", "v_deviation", "m/s", "Average deviation from North-South velocity"),
    ("WDeviation", "w_deviation", "m/s", "Average deviation from up-down velocity"),
    ("Kzz", "kzz", "m²/s", "Grid center vertical diffusivity"),
    ("Kxxyy", "kxxyy", "m²/s", "Grid center horizontal diffusivity"),
    ("M2u", "m2u", "1/s", "ACM2 upward mixing"),
    ("M2d", "m2d", "1/s", "ACM2 downward mixing"),
    ("Dx", "dx", "m", "Cell East-West size"),
    ("Dy", "dy", "m", "Cell North-South size"),
    ("Dz", "dz", "m", "Cell thickness"),
    ("Volume", "volume", "m³", "Cell volume"),
    ("Layer", "layer", "", "Layer index"),
    ("LayerHeight", "layer_height", "m", "Height at the top of the layer"),
    ("MortalityRate", "mortality_rate", "Deaths per 100,000 people per year",
     "Baseline mortality rate"),
)


def _emission_extractor(index: int) -> Callable[[Cell], float]:
    def extract(cell: Cell) -> float:
        return float(cell.emis_flux[index])
    return extract


def _concentration_extractor(label: ConcentrationLabel) -> Callable[[Cell], float]:
    def extract(cell: Cell) -> float:
        total = 0.0
        for index, factor in zip(label.indices, label.conversion):
            total += cell.cf[index] * factor
        return float(total)
    return extract


def _population_extractor(name: str) -> Callable[[Cell], float]:
    def extract(cell: Cell) -> float:
        return cell.pop_data.get(name, 0.0) / cell.area
    return extract


def _mortality_extractor(name: str, total_pm25: Callable[[Cell], float],
                         response: ConcentrationResponse) -> Callable[[Cell], float]:
    def extract(cell: Cell) -> float:
        rr = response.relative_risk(total_pm25(cell))
        return float(response.deaths(rr, cell.pop_data.get(name, 0.0), cell.mortality_rate))
    return extract


def _attribute_extractor(attr: str) -> Callable[[Cell], float]:
    def extract(cell: Cell) -> float:
        return float(getattr(cell, attr))
    return extract


def _param_extractor(key: str) -> Callable[[Cell], float]:
    def extract(cell: Cell) -> float:
        return float(cell.params.get(key, 0.0))
    return extract


class VariableRegistry:
    """
    Immutable mapping from variable name to VariableSpec.

    Example
    -------
    >>> registry = VariableRegistry.build(domain.species, domain_param_names(domain.cells))
    >>> registry.value(cell, "TotalPM2_5")
    >>> registry.units("pSO4")
    'μg/m³'
    """

    def __init__(self, specs: Dict[str, VariableSpec]):
        self._specs = MappingProxyType(dict(specs))

    @classmethod
    def build(cls,
              species: SpeciesTables,
              param_names: Iterable[str] = (),
              response: Optional[ConcentrationResponse] = None) -> 'VariableRegistry':
        """
        Build the registry for a set of species tables.

        Parameters
        ----------
        species : SpeciesTables
            Emissions, concentration and population tables.
        param_names : iterable of str
            Names of extra ``cell.params`` coefficients exposed as physical
            fields.
        response : ConcentrationResponse, optional
            Health functions for the mortality variables.
        """
        response = response or ConcentrationResponse()
        specs: Dict[str, VariableSpec] = {}

        def add(spec: VariableSpec) -> None:
            # First namespace to claim a name keeps it
            specs.setdefault(spec.name, spec)

        for name, index in species.emission_labels.items():
            add(VariableSpec(name, Namespace.EMISSIONS, _emission_extractor(index),
                             "μg/m³/s", f"{name} flux"))

        for name, label in species.concentration_labels.items():
            add(VariableSpec(name, Namespace.CONCENTRATION, _concentration_extractor(label),
                             "μg/m³", f"{name} concentration"))

        for name in species.population_names:
            add(VariableSpec(name, Namespace.POPULATION, _population_extractor(name),
                             "people/m²", f"{name} population density"))

        if TOTAL_PM25 in species.concentration_labels:
            total_pm25 = _concentration_extractor(species.concentration_labels[TOTAL_PM25])
            for name in species.population_names:
                add(VariableSpec(name + DEATHS_SUFFIX, Namespace.MORTALITY,
                                 _mortality_extractor(name, total_pm25, response),
                                 "deaths/grid cell", f"{name} deaths from PM2.5"))

        for name, attr, units, description in PHYSICAL_FIELDS:
            add(VariableSpec(name, Namespace.PHYSICAL, _attribute_extractor(attr),
                             units, description))

        for key in param_names:
            add(VariableSpec(key, Namespace.PHYSICAL, _param_extractor(key), "", key))

        return cls(specs)

    def __contains__(self, name: str) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def get(self, name: str) -> VariableSpec:
        """Spec for a variable; raises UnknownVariableError if absent."""
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownVariableError(name) from None

    def names(self, namespace: Optional[Namespace] = None) -> List[str]:
        """Variable names, optionally restricted to one namespace."""
        return [n for n, s in self._specs.items()
                if namespace is None or s.namespace is namespace]

    def units(self, name: str) -> str:
        return self.get(name).units

    def description(self, name: str) -> str:
        return self.get(name).description

    def value(self, cell: Cell, name: str) -> float:
        """Value of a variable in one cell."""
        return self.get(name).extract(cell)


def domain_param_names(cells: Iterable[Cell]) -> List[str]:
    """Sorted union of ``params`` keys over a set of cells."""
    names = set()
    for cell in cells:
        names.update(cell.params)
    return sorted(names)
