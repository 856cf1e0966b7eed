#!/usr/bin/env python3
"""
Box-grid air quality run.

Builds a uniform box domain, places a point source in one cell, runs the
reference transport (and optional removal) operators to steady state and
logs ground-level statistics for every output variable.

Usage:
    python scripts/run_box.py
    python scripts/run_box.py --config config/examples/box.yaml
    python scripts/run_box.py --nx 20 --ny 20 --nz 4 --u-avg 3 --kxxyy 50
    python scripts/run_box.py --emission PM2_5=1e6 --emission SOx=5e5 --dry-deposition 0.002
"""

import argparse
import sys
from pathlib import Path

import numpy as np
from loguru import logger

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from aqsim.config import SimulationConfig, from_dict, load_yaml, apply_cli_overrides, save_yaml
from aqsim.errors import AQSimError
from aqsim.grid import BoxMeteorology, build_box_domain
from aqsim.physics import DryDeposition, FirstOrderLoss, uniform_rates
from aqsim.solvers import SteadyStateSolver, default_operators
from aqsim.utils.logging import setup_from_config


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Run the air quality model on a uniform box grid",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--config', '-c', help="YAML config file")
    parser.add_argument('--preset', choices=['single-cell', 'small-box'],
                        help="Grid preset (replaces the grid section of --config)")

    # Grid
    parser.add_argument('--nx', type=int, help="Cells in x")
    parser.add_argument('--ny', type=int, help="Cells in y")
    parser.add_argument('--nz', type=int, help="Layers")
    parser.add_argument('--dx', type=float, help="Cell size in x [m]")
    parser.add_argument('--dy', type=float, help="Cell size in y [m]")
    parser.add_argument('--dz', type=float, help="Layer thickness [m]")
    parser.add_argument('--u-avg', dest='u_avg', type=float, help="East-west wind [m/s]")
    parser.add_argument('--v-avg', dest='v_avg', type=float, help="North-south wind [m/s]")
    parser.add_argument('--kxxyy', type=float, help="Horizontal diffusivity [m²/s]")
    parser.add_argument('--kzz', type=float, help="Vertical diffusivity [m²/s]")

    # Emissions and removal
    parser.add_argument('--emission', '-e', action='append', metavar='POLLUTANT=RATE',
                        help="Point source rate in μg/s (repeatable)")
    parser.add_argument('--dry-deposition', type=float, help="Deposition velocity [m/s]")
    parser.add_argument('--first-order-loss', type=float, help="Uniform loss rate [1/s]")

    # Solver
    parser.add_argument('--num-iterations', '-n', type=int,
                        help="Fixed iteration count (default: run to convergence)")
    parser.add_argument('--tol', type=float, help="Convergence tolerance")
    parser.add_argument('--check-period', type=float, help="Model seconds between checks")
    parser.add_argument('--max-iter', type=int, help="Safety cap in convergence mode")
    parser.add_argument('--top-layer', type=int, help="Highest simulated layer")
    parser.add_argument('--n-workers', '-j', type=int, help="Worker threads")
    parser.add_argument('--print-freq', type=int, help="Log every N iterations")
    parser.add_argument('--courant', type=float, help="Courant number")
    parser.add_argument('--max-dt', type=float, help="Ceiling on the stable time step [s]")
    parser.add_argument('--fallback-dt', type=float,
                        help="Time step when no stability limit applies [s]")

    # Output
    parser.add_argument('--all-layers', action='store_true', default=None,
                        help="Extract every layer instead of ground level only")
    parser.add_argument('--output-dir', '-o', help="Output directory")
    parser.add_argument('--case-name', help="Case name")
    parser.add_argument('--save-config', action='store_true',
                        help="Write the resolved configuration to the output directory")
    parser.add_argument('--log-level', help="Logging level")

    return parser.parse_args(argv)


def build_domain(config: SimulationConfig):
    """Box domain from the grid and population sections."""
    g = config.grid
    met = BoxMeteorology(
        u_avg=g.u_avg, v_avg=g.v_avg, w_avg=g.w_avg,
        u_deviation=g.u_deviation, v_deviation=g.v_deviation, w_deviation=g.w_deviation,
        kxxyy=g.kxxyy, kzz=g.kzz, m2u=g.m2u, m2d=g.m2d,
        params=dict(g.params),
    )
    return build_box_domain(
        g.nx, g.ny, g.nz, g.dx, g.dy, g.dz,
        met=met,
        species=config.to_species_tables(),
        pop_data=config.population.per_cell,
        mortality_rate=config.population.mortality_rate,
    )


def point_emissions(config: SimulationConfig, n_cells: int) -> dict:
    """Emission arrays with the configured rates in one cell."""
    g, e = config.grid, config.emissions
    if not (0 <= e.i < g.nx and 0 <= e.j < g.ny and 0 <= e.k < g.nz):
        raise ValueError(f"Source cell ({e.i}, {e.j}, {e.k}) outside "
                         f"{g.nx}x{g.ny}x{g.nz} grid")
    index = e.k * g.nx * g.ny + e.j * g.nx + e.i
    emissions = {}
    for name, rate in e.rates.items():
        values = np.zeros(n_cells)
        values[index] = rate
        emissions[name] = values
    return emissions


def build_operators(config: SimulationConfig) -> list:
    """Reference transport plus any configured removal processes."""
    operators = default_operators()
    if config.processes.first_order_loss > 0:
        operators.append(FirstOrderLoss(uniform_rates(config.processes.first_order_loss)))
    if config.processes.dry_deposition > 0:
        operators.append(DryDeposition(uniform_rates(config.processes.dry_deposition)))
    return operators


def summarize(output: dict) -> None:
    """Log ground-level min / mean / max per variable."""
    logger.info(f"{'Variable':<24} {'min':>12} {'mean':>12} {'max':>12}")
    logger.info("-" * 63)
    for name, layers in output.items():
        ground = np.asarray(layers[0]) if layers else np.zeros(0)
        if ground.size == 0:
            continue
        logger.info(f"{name:<24} {ground.min():12.4g} {ground.mean():12.4g} {ground.max():12.4g}")


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.config:
        config = load_yaml(args.config)
    else:
        config = SimulationConfig()
    if args.preset:
        data = config.to_dict()
        data['preset'] = args.preset
        data.pop('grid')
        config = from_dict(data)
    config = apply_cli_overrides(config, args)

    setup_from_config(config.logging)

    logger.info(f"\n{'='*60}")
    logger.info("   Air Quality Model - Box Grid")
    logger.info(f"{'='*60}")
    g = config.grid
    logger.info(f"Grid: {g.nx} x {g.ny} x {g.nz} cells, dx={g.dx:g} m, dy={g.dy:g} m")
    logger.info(f"Wind: u={g.u_avg:g} m/s, v={g.v_avg:g} m/s; "
                f"Kxxyy={g.kxxyy:g} m²/s, Kzz={g.kzz:g} m²/s")

    if args.save_config:
        path = Path(config.output.directory) / f"{config.output.case_name}.yaml"
        save_yaml(config, path)
        logger.info(f"Configuration written to {path}")

    try:
        domain = build_domain(config)
        emissions = point_emissions(config, len(domain))
        solver = SteadyStateSolver(domain, build_operators(config), config.to_run_config())
        result = solver.run(emissions)
    except (AQSimError, ValueError) as e:
        logger.error(f"Run failed: {e}")
        return 1

    logger.info(f"Model time: {result.model_time / 86400:.3g} days "
                f"({result.iterations} iterations, dt = {result.dt:.4g} s)")
    summarize(result.output)

    return 0 if (result.converged or config.solver.num_iterations > 0) else 1


if __name__ == "__main__":
    sys.exit(main())
