"""
Global constants for the steady-state air quality solver.

This module defines the physical constants and run defaults used throughout
the codebase so that species conversions and convergence settings stay
consistent between the solver and the output layer.
"""

import math

# Molecular weights [g/mol]
MW_NOX = 46.0055
MW_N = 14.0067
MW_NO3 = 62.00501
MW_NH3 = 17.03056
MW_NH4 = 18.03851
MW_S = 32.0655
MW_SO2 = 64.0644
MW_SO4 = 96.0632

# Mass ratios used to move between emitted compounds and tracked elements
NOX_TO_N = MW_N / MW_NOX
N_TO_NO3 = MW_NO3 / MW_N
SOX_TO_S = MW_S / MW_SO2
S_TO_SO4 = MW_SO4 / MW_S
NH3_TO_N = MW_N / MW_NH3
N_TO_NH4 = MW_NH4 / MW_N

# Convergence defaults
DEFAULT_TOLERANCE = 0.005      # Relative change in total mass per species
DEFAULT_CHECK_PERIOD = 3600.0  # Model seconds between convergence checks
DEFAULT_TOP_LAYER = 28         # Highest layer index included in the science

# Time step defaults
DEFAULT_COURANT = 1.0
DEFAULT_FALLBACK_DT = 3600.0   # Time step when no stability limit applies [s]
SQRT3 = math.sqrt(3.0)

SECONDS_PER_DAY = 3600.0 * 24.0
