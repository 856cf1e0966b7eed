"""
Solver components for the steady-state air quality model.

This package provides:
    - Global time step selection from CFL-type stability bounds
    - A worker pool that applies science operators phase by phase
    - Convergence monitoring on domain-total species mass
    - The steady-state run driver
"""

from .time_stepping import (
    TimeStepConfig,
    StabilityBounds,
    compute_stability_bounds,
    compute_domain_stability_bounds,
    compute_global_timestep,
    set_timestep,
)

from .scheduler import (
    ScienceOperator,
    ScienceScheduler,
    operator_name,
)

from .convergence import (
    RunStatus,
    ConvergenceCheck,
    ConvergenceMonitor,
    relative_change,
    check_convergence,
)

from .runner import (
    RunConfig,
    RunResult,
    SteadyStateSolver,
    default_operators,
    run,
)

__all__ = [
    # Time stepping
    'TimeStepConfig',
    'StabilityBounds',
    'compute_stability_bounds',
    'compute_domain_stability_bounds',
    'compute_global_timestep',
    'set_timestep',
    # Scheduling
    'ScienceOperator',
    'ScienceScheduler',
    'operator_name',
    # Convergence
    'RunStatus',
    'ConvergenceCheck',
    'ConvergenceMonitor',
    'relative_change',
    'check_convergence',
    # Driver
    'RunConfig',
    'RunResult',
    'SteadyStateSolver',
    'default_operators',
    'run',
]
