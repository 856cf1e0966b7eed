"""
Per-cell science operators and concentration-response functions.
"""

from .operators import (
    add_emissions_flux,
    upwind_advection,
    explicit_diffusion,
    FirstOrderLoss,
    DryDeposition,
    uniform_rates,
)

from .health import (
    rr_pm25_linear,
    deaths,
)

__all__ = [
    'add_emissions_flux',
    'upwind_advection',
    'explicit_diffusion',
    'FirstOrderLoss',
    'DryDeposition',
    'uniform_rates',
    'rr_pm25_linear',
    'deaths',
]
