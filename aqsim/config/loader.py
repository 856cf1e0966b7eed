"""
YAML configuration loader with validation.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Union
from dataclasses import fields, is_dataclass

from .schema import (
    SimulationConfig, GridConfig, SolverSettings, TimeStepSettings,
    EmissionsConfig, ProcessConfig, PopulationConfig, OutputConfig, LoggingConfig,
    single_cell_preset, small_box_preset,
)


_SECTIONS = {
    'grid': GridConfig,
    'emissions': EmissionsConfig,
    'processes': ProcessConfig,
    'population': PopulationConfig,
    'output': OutputConfig,
    'logging': LoggingConfig,
}


def _merge_dict(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def _coerce_type(value, field_type):
    """Coerce value to the expected field type."""
    # Handle string representations of numbers (e.g., "1.0e6")
    if field_type == float and isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    if field_type == int and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value
    if field_type == float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


def _dict_to_dataclass(cls, data: dict):
    """Convert a nested dictionary to a dataclass instance."""
    if not is_dataclass(cls):
        return data

    field_types = {f.name: f.type for f in fields(cls)}
    kwargs = {}

    for key, value in data.items():
        if key not in field_types:
            continue  # Skip unknown fields

        field_type = field_types[key]

        # Handle nested dataclasses
        if is_dataclass(field_type) and isinstance(value, dict):
            kwargs[key] = _dict_to_dataclass(field_type, value)
        else:
            # Coerce types for primitive values
            kwargs[key] = _coerce_type(value, field_type)

    return cls(**kwargs)


def load_yaml(path: Union[str, Path]) -> SimulationConfig:
    """
    Load simulation configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        SimulationConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}

    return from_dict(data)


def from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """
    Create SimulationConfig from a dictionary.

    Handles nested structures and applies defaults for missing values.
    """
    data = dict(data)

    # Check for preset
    preset = data.pop('preset', None)
    if preset:
        grid_preset = {
            'single-cell': single_cell_preset,
            'small-box': small_box_preset,
        }.get(preset)
        if grid_preset is None:
            raise ValueError(f"Unknown grid preset: {preset}")
        # Merge preset with any explicit grid overrides
        preset_dict = {f.name: getattr(grid_preset(), f.name) for f in fields(GridConfig)}
        data['grid'] = _merge_dict(preset_dict, data.get('grid') or {})

    config_dict = {}

    # Solver settings (with nested time step bounds)
    if data.get('solver'):
        solver_data = data['solver'].copy()
        if isinstance(solver_data.get('timestep'), dict):
            solver_data['timestep'] = _dict_to_dataclass(TimeStepSettings, solver_data['timestep'])
        config_dict['solver'] = _dict_to_dataclass(SolverSettings, solver_data)

    for name, cls in _SECTIONS.items():
        if data.get(name):
            config_dict[name] = _dict_to_dataclass(cls, data[name])

    return SimulationConfig(**config_dict)


def apply_cli_overrides(config: SimulationConfig, args) -> SimulationConfig:
    """
    Apply command-line argument overrides to a configuration.

    Only overrides values that were explicitly set (not None).

    Args:
        config: Base configuration
        args: argparse.Namespace with CLI arguments

    Returns:
        Updated SimulationConfig
    """
    # Convert to dict for easier manipulation
    config_dict = config.to_dict()

    # Map CLI args to config paths
    cli_mapping = {
        # Grid
        'nx': ('grid', 'nx'),
        'ny': ('grid', 'ny'),
        'nz': ('grid', 'nz'),
        'dx': ('grid', 'dx'),
        'dy': ('grid', 'dy'),
        'dz': ('grid', 'dz'),
        'u_avg': ('grid', 'u_avg'),
        'v_avg': ('grid', 'v_avg'),
        'kxxyy': ('grid', 'kxxyy'),
        'kzz': ('grid', 'kzz'),

        # Solver
        'num_iterations': ('solver', 'num_iterations'),
        'tol': ('solver', 'tol'),
        'check_period': ('solver', 'check_period'),
        'max_iter': ('solver', 'max_iter'),
        'top_layer': ('solver', 'top_layer'),
        'n_workers': ('solver', 'n_workers'),
        'print_freq': ('solver', 'print_freq'),
        'courant': ('solver', 'timestep', 'courant'),
        'max_dt': ('solver', 'timestep', 'max_dt'),
        'fallback_dt': ('solver', 'timestep', 'fallback_dt'),

        # Processes
        'dry_deposition': ('processes', 'dry_deposition'),
        'first_order_loss': ('processes', 'first_order_loss'),

        # Output
        'all_layers': ('output', 'all_layers'),
        'output_dir': ('output', 'directory'),
        'case_name': ('output', 'case_name'),

        # Logging
        'log_level': ('logging', 'level'),
    }

    for cli_name, config_path in cli_mapping.items():
        if hasattr(args, cli_name):
            value = getattr(args, cli_name)
            if value is not None:
                # Navigate to the right nested dict
                target = config_dict
                for key in config_path[:-1]:
                    target = target[key]
                target[config_path[-1]] = value

    # Point source given as POLLUTANT=RATE
    if getattr(args, 'emission', None):
        rates = {}
        for item in args.emission:
            name, _, rate = item.partition('=')
            if not rate:
                raise ValueError(f"Emission must be POLLUTANT=RATE, got {item!r}")
            rates[name] = float(rate)
        config_dict['emissions']['rates'] = rates

    return from_dict(config_dict)


def save_yaml(config: SimulationConfig, path: Union[str, Path]) -> None:
    """Save configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
