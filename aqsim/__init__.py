"""
Steady-state finite-volume air quality model.
"""

__version__ = "0.1.0"
