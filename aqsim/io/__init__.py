"""
Output module for the solver.

Provides the variable registry and per-layer extraction of results.
"""

from .variables import (
    Namespace,
    VariableSpec,
    VariableRegistry,
    ConcentrationResponse,
    PHYSICAL_FIELDS,
    domain_param_names,
)
from .output import (
    make_registry,
    extract_layer,
    output_variables,
    build_output,
)

__all__ = [
    'Namespace',
    'VariableSpec',
    'VariableRegistry',
    'ConcentrationResponse',
    'PHYSICAL_FIELDS',
    'domain_param_names',
    'make_registry',
    'extract_layer',
    'output_variables',
    'build_output',
]
