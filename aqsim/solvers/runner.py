"""
Steady-state driver for the air quality solver.

Run sequence:
    1. Ghost cells are added on open domain faces
    2. Neighbor geometry is computed once
    3. The global time step is computed once
    4. Emissions are converted to per-cell fluxes
    5. The science operators are applied iteration after iteration until
       the iteration cap is reached or total species mass stops changing
    6. Output variables are extracted per layer
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from loguru import logger

from .convergence import ConvergenceMonitor, RunStatus
from .scheduler import ScienceOperator, ScienceScheduler, operator_name
from .time_stepping import TimeStepConfig, set_timestep
from ..constants import (
    DEFAULT_CHECK_PERIOD, DEFAULT_TOLERANCE, DEFAULT_TOP_LAYER, SECONDS_PER_DAY,
)
from ..errors import AQSimError
from ..grid.boundary import synthesize_boundaries
from ..grid.domain import Domain
from ..grid.topology import compute_neighbor_info
from ..io.output import build_output, make_registry
from ..io.variables import VariableRegistry
from ..physics.operators import add_emissions_flux, explicit_diffusion, upwind_advection


@dataclass
class RunConfig:
    """Configuration for one steady-state run."""

    num_iterations: int = 0     # Fixed iteration count; <= 0 means run to convergence
    tol: float = DEFAULT_TOLERANCE
    check_period: float = DEFAULT_CHECK_PERIOD
    max_iter: Optional[int] = None  # Safety cap for convergence mode
    top_layer: Optional[int] = DEFAULT_TOP_LAYER
    n_workers: Optional[int] = None
    print_freq: int = 1
    all_layers: bool = False
    timestep: TimeStepConfig = field(default_factory=TimeStepConfig)


@dataclass
class RunResult:
    """Outcome of a run."""
    output: Dict[str, List[List[float]]]
    status: RunStatus
    converged: bool
    iterations: int
    model_time: float
    dt: float
    mass_history: List[np.ndarray] = field(default_factory=list)


def default_operators() -> List[ScienceOperator]:
    """Emissions injection followed by transport."""
    return [add_emissions_flux, upwind_advection, explicit_diffusion]


class SteadyStateSolver:
    """
    Drives a Domain to steady state with a sequence of science operators.

    Parameters
    ----------
    domain : Domain
        Grid to simulate. Boundaries and topology are prepared on first run.
    operators : sequence of callables, optional
        ``operator(cell, context)`` applied in order each iteration. The
        first operator should be ``add_emissions_flux``.
    config : RunConfig, optional
        Run settings.
    registry : VariableRegistry, optional
        Output variable registry; built from the domain when omitted.
    """

    def __init__(self,
                 domain: Domain,
                 operators: Optional[Sequence[ScienceOperator]] = None,
                 config: Optional[RunConfig] = None,
                 registry: Optional[VariableRegistry] = None):
        self.domain = domain
        self.operators = list(operators) if operators is not None else default_operators()
        self.config = config if config is not None else RunConfig()
        self.registry = registry
        self._prepared = False
        self._reset()

    def _reset(self) -> None:
        """Clear the iteration state so the solver can be run again."""
        self.status = RunStatus.RUNNING
        self.iteration = 0
        self.model_time = 0.0
        self.converged = False
        self.monitor = ConvergenceMonitor(tolerance=self.config.tol,
                                          check_period=self.config.check_period)

    def prepare(self) -> None:
        """Add boundary cells, compute neighbor geometry and the time step."""
        if self._prepared:
            return
        logger.info("Preparing domain...")
        created = synthesize_boundaries(self.domain)
        logger.info(f"  Boundary cells: {sum(created.values())}")
        compute_neighbor_info(self.domain)
        set_timestep(self.domain, self.config.timestep)
        if self.registry is None:
            self.registry = make_registry(self.domain)
        self._prepared = True

    def _log_header(self, n_workers: int) -> None:
        cfg = self.config
        logger.info(f"\n{'='*60}")
        logger.info("Starting Steady-State Iteration")
        logger.info(f"{'='*60}")
        logger.info(f"Cells: {len(self.domain)} active, {self.domain.boundary_count()} boundary")
        logger.info(f"Layers: {self.domain.n_layers} (simulated up to {cfg.top_layer})")
        logger.info(f"Operators: {', '.join(operator_name(op) for op in self.operators)}")
        logger.info(f"Workers: {n_workers}")
        logger.info(f"Time step: {self.domain.dt:.4g} s")
        if cfg.num_iterations > 0:
            logger.info(f"Iterations: {cfg.num_iterations}")
        else:
            logger.info(f"Convergence tolerance: {cfg.tol:.2%} every {cfg.check_period:g} s")
        logger.info(f"{'='*60}\n")

    def _finish(self, converged: bool, message: str, level: str = "INFO") -> None:
        self.status = RunStatus.DONE
        self.converged = converged
        logger.log(level, f"\n{'='*60}")
        logger.log(level, message)
        logger.log(level, f"{'='*60}")

    def run(self, emissions: Mapping[str, Sequence[float]],
            all_layers: Optional[bool] = None) -> RunResult:
        """
        Run the model to steady state (or for a fixed number of iterations).

        Parameters
        ----------
        emissions : mapping
            Pollutant name -> emission rate per active cell [μg/s].
        all_layers : bool, optional
            Output every layer instead of ground level only. Defaults to
            ``config.all_layers``.

        Returns
        -------
        result : RunResult

        Raises
        ------
        UnknownPollutantError
            For an unrecognized emissions name, before any iteration.
        OperatorError
            If a science operator fails; the run stops at that phase.
        """
        cfg = self.config
        if all_layers is None:
            all_layers = cfg.all_layers

        self.prepare()
        self._reset()
        self.domain.reset_concentrations()
        self.domain.add_emissions(emissions)

        dt = self.domain.dt
        start_time = time.perf_counter()
        step_time = start_time

        scheduler = ScienceScheduler(self.domain, self.operators,
                                     n_workers=cfg.n_workers, top_layer=cfg.top_layer)
        self._log_header(scheduler.n_workers)

        try:
            with scheduler:
                while self.status is RunStatus.RUNNING:
                    scheduler.run_iteration()
                    self.iteration += 1
                    self.model_time += dt

                    if cfg.print_freq > 0 and self.iteration % cfg.print_freq == 0:
                        now = time.perf_counter()
                        logger.info(f"Iteration {self.iteration:<4d}  "
                                    f"walltime={(now - start_time) / 3600:6.3g}h  "
                                    f"Δwalltime={now - step_time:4.2g}s  "
                                    f"timestep={dt:2.0f}s  "
                                    f"day={self.model_time / SECONDS_PER_DAY:.3g}")
                        step_time = now

                    if cfg.num_iterations > 0:
                        if self.iteration >= cfg.num_iterations:
                            self._finish(False, f"Completed {self.iteration} iterations")
                    elif self.monitor.advance(dt):
                        check = self.monitor.check(self.domain.species_totals())
                        if check.converged:
                            self._finish(True, f"CONVERGED at iteration {self.iteration}")

                    if (self.status is RunStatus.RUNNING and cfg.max_iter is not None
                            and self.iteration >= cfg.max_iter):
                        self._finish(False, f"Maximum iterations ({cfg.max_iter}) reached "
                                            f"without convergence", level="WARNING")
        except AQSimError as e:
            logger.error(f"Simulation aborted: {e}")
            raise

        output = build_output(self.domain, self.registry, all_layers=all_layers)
        return RunResult(
            output=output,
            status=self.status,
            converged=self.converged,
            iterations=self.iteration,
            model_time=self.model_time,
            dt=dt,
            mass_history=list(self.monitor.history),
        )


def run(domain: Domain,
        emissions: Mapping[str, Sequence[float]],
        operators: Optional[Sequence[ScienceOperator]] = None,
        config: Optional[RunConfig] = None) -> RunResult:
    """Convenience function: prepare, run and extract output in one call."""
    return SteadyStateSolver(domain, operators, config).run(emissions)
