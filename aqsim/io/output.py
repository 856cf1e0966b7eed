"""
Output extraction for converged solutions.

Values are extracted per layer: one float per active cell in the layer, in
the domain's cell order. Extraction relies on the active cells being sorted
by ascending layer and stops once it passes the requested layer.

Output Format:
    {variable name: [[value per cell in layer 0], [layer 1], ...]}

Only one layer (ground level) is written unless all layers are requested.
Extraction is meant to run while the scheduler is idle; each cell is still
read under its lock.
"""

from typing import Dict, List, Optional, Sequence

from loguru import logger

from .variables import DEATHS_SUFFIX, Namespace, VariableRegistry, domain_param_names
from ..grid.domain import Domain

MORTALITY_RATE = "MortalityRate"

LayerValues = List[List[float]]


def make_registry(domain: Domain, **kwargs) -> VariableRegistry:
    """Registry for a domain's species tables and cell parameters."""
    return VariableRegistry.build(domain.species, domain_param_names(domain.cells), **kwargs)


def extract_layer(domain: Domain, registry: VariableRegistry,
                  name: str, layer: int) -> List[float]:
    """
    Values of one variable for every active cell in one layer.

    Raises
    ------
    UnknownVariableError
        If the variable is not in the registry.
    """
    spec = registry.get(name)
    out = []
    for cell in domain.iter_layer(layer):
        with cell.lock:
            out.append(spec.extract(cell))
    return out


def output_variables(registry: VariableRegistry) -> List[str]:
    """
    Variables written by a run: every concentration, population and
    mortality variable, plus the baseline mortality rate.
    """
    names = registry.names(Namespace.CONCENTRATION)
    for pop in registry.names(Namespace.POPULATION):
        names.append(pop)
        if pop + DEATHS_SUFFIX in registry:
            names.append(pop + DEATHS_SUFFIX)
    names.append(MORTALITY_RATE)
    return names


def build_output(domain: Domain,
                 registry: Optional[VariableRegistry] = None,
                 all_layers: bool = False,
                 variables: Optional[Sequence[str]] = None) -> Dict[str, LayerValues]:
    """
    Extract output variables for the ground layer or all layers.

    Parameters
    ----------
    domain : Domain
        Domain after the run.
    registry : VariableRegistry, optional
        Built from the domain when not given.
    all_layers : bool
        If True, extract every layer; otherwise only layer 0.
    variables : sequence of str, optional
        Variables to extract. Defaults to ``output_variables(registry)``.

    Returns
    -------
    output : dict
        Variable name -> [layer][cell] values.
    """
    if registry is None:
        registry = make_registry(domain)
    if variables is None:
        variables = output_variables(registry)

    # Resolve every name up front so a bad name produces no partial output
    for name in variables:
        registry.get(name)

    n_out = domain.n_layers if all_layers else min(1, domain.n_layers)
    output = {}
    for name in variables:
        output[name] = [extract_layer(domain, registry, name, k) for k in range(n_out)]

    logger.info(f"Extracted {len(output)} variables over {n_out} layer(s)")
    return output
