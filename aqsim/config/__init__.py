"""
Configuration module for the air quality solver.

Provides YAML-based configuration with dataclass schema.
"""

from .schema import (
    SimulationConfig,
    GridConfig,
    SolverSettings,
    TimeStepSettings,
    EmissionsConfig,
    ProcessConfig,
    PopulationConfig,
    OutputConfig,
    LoggingConfig,
    single_cell_preset,
    small_box_preset,
)

from .loader import (
    load_yaml,
    from_dict,
    apply_cli_overrides,
    save_yaml,
)

__all__ = [
    # Schema classes
    'SimulationConfig',
    'GridConfig',
    'SolverSettings',
    'TimeStepSettings',
    'EmissionsConfig',
    'ProcessConfig',
    'PopulationConfig',
    'OutputConfig',
    'LoggingConfig',
    # Presets
    'single_cell_preset',
    'small_box_preset',
    # Loader functions
    'load_yaml',
    'from_dict',
    'apply_cli_overrides',
    'save_yaml',
]
