"""
Configuration schema for the air quality solver.

Dataclass-based configuration that can be loaded from YAML or constructed programmatically.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Union, Dict

from ..constants import (
    DEFAULT_CHECK_PERIOD, DEFAULT_COURANT, DEFAULT_FALLBACK_DT, DEFAULT_TOLERANCE, DEFAULT_TOP_LAYER,
)


@dataclass
class TimeStepSettings:
    """Global time step bounds."""

    courant: float = DEFAULT_COURANT   # Safety factor on the CFL-type bounds
    min_dt: float = 0.0                # Lower clip [s]
    max_dt: float = float("inf")       # Upper clip [s]; none by default
    fallback_dt: float = DEFAULT_FALLBACK_DT  # Used when no bound applies [s]


@dataclass
class SolverSettings:
    """Solver iteration settings."""

    num_iterations: int = 0            # > 0: fixed iteration count; otherwise run to convergence
    tol: float = DEFAULT_TOLERANCE     # Relative change in total mass per species
    check_period: float = DEFAULT_CHECK_PERIOD  # Model seconds between convergence checks
    max_iter: Optional[int] = None     # Safety cap in convergence mode
    top_layer: int = DEFAULT_TOP_LAYER  # Cells above this layer are not simulated
    n_workers: Optional[int] = None    # None = one per CPU
    print_freq: int = 1
    timestep: TimeStepSettings = field(default_factory=TimeStepSettings)


@dataclass
class GridConfig:
    """Uniform box grid and its meteorology."""

    nx: int = 10
    ny: int = 10
    nz: int = 5
    dx: float = 1000.0                 # [m]
    dy: float = 1000.0                 # [m]
    dz: Union[float, List[float]] = 100.0  # Uniform or per-layer thickness [m]

    # Winds [m/s]
    u_avg: float = 0.0
    v_avg: float = 0.0
    w_avg: float = 0.0
    u_deviation: float = 0.0
    v_deviation: float = 0.0
    w_deviation: float = 0.0

    # Mixing
    kxxyy: float = 0.0                 # Horizontal eddy diffusivity [m²/s]
    kzz: float = 0.0                   # Vertical eddy diffusivity [m²/s]
    m2u: float = 0.0                   # ACM2 upward mixing [1/s]
    m2d: float = 0.0                   # ACM2 downward mixing [1/s]

    params: Dict[str, float] = field(default_factory=dict)


@dataclass
class EmissionsConfig:
    """Point source placed in one cell of the box grid."""

    rates: Dict[str, float] = field(default_factory=lambda: {"PM2_5": 1.0e6})  # [μg/s]
    i: int = 0
    j: int = 0
    k: int = 0


@dataclass
class ProcessConfig:
    """Reference removal processes appended after transport."""

    dry_deposition: float = 0.0        # Deposition velocity for every species [m/s]
    first_order_loss: float = 0.0      # Uniform loss rate [1/s]


@dataclass
class PopulationConfig:
    """Population attached to ground-level cells."""

    names: List[str] = field(default_factory=lambda: ["TotalPop"])
    per_cell: Dict[str, float] = field(default_factory=dict)  # People per ground cell
    mortality_rate: float = 0.0        # Deaths per 100,000 per year


@dataclass
class OutputConfig:
    """Output configuration."""

    all_layers: bool = False
    directory: str = "output/aqsim"
    case_name: str = "solution"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    show_time: bool = True


@dataclass
class SimulationConfig:
    """Complete simulation configuration."""

    grid: GridConfig = field(default_factory=GridConfig)
    solver: SolverSettings = field(default_factory=SolverSettings)
    emissions: EmissionsConfig = field(default_factory=EmissionsConfig)
    processes: ProcessConfig = field(default_factory=ProcessConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_timestep_config(self):
        """Convert to the runtime TimeStepConfig."""
        from ..solvers.time_stepping import TimeStepConfig

        ts = self.solver.timestep
        return TimeStepConfig(courant=ts.courant, min_dt=ts.min_dt, max_dt=ts.max_dt,
                              fallback_dt=ts.fallback_dt)

    def to_run_config(self):
        """Convert to the runtime RunConfig."""
        from ..solvers.runner import RunConfig

        return RunConfig(
            num_iterations=self.solver.num_iterations,
            tol=self.solver.tol,
            check_period=self.solver.check_period,
            max_iter=self.solver.max_iter,
            top_layer=self.solver.top_layer,
            n_workers=self.solver.n_workers,
            print_freq=self.solver.print_freq,
            all_layers=self.output.all_layers,
            timestep=self.to_timestep_config(),
        )

    def to_species_tables(self):
        """Species tables with the configured population names."""
        from ..species import SpeciesTables

        return SpeciesTables.with_population(self.population.names)

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)


# Preset configurations
def single_cell_preset() -> GridConfig:
    """One cell, no transport."""
    return GridConfig(nx=1, ny=1, nz=1)


def small_box_preset() -> GridConfig:
    """Small mixed box for quick runs."""
    return GridConfig(
        nx=5, ny=5, nz=3,
        u_avg=2.0, v_avg=1.0,
        kxxyy=100.0, kzz=10.0,
    )
