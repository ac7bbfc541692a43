"""
EICSpin - spin polarization tracking for electron storage rings

A modular framework for multi-particle spin tracking and the estimation of
depolarizing resonance strengths.
"""

import logging

# Import package-level standards for optics
from .optics import OrbitPoint, PeriodicTable, OrbitFunction

# simulators before dynamics, the dynamics modules use the simulation error types
from .simulators import (
    Configuration,
    GammaMode,
    TrajectoryMode,
    SpinTracking,
    ResonanceStrengths,
    SimulationError,
)
from .dynamics import SpinMotion

__version__ = "0.1.0"

__all__ = [
    'OrbitPoint',
    'PeriodicTable',
    'OrbitFunction',
    'Configuration',
    'GammaMode',
    'TrajectoryMode',
    'SpinTracking',
    'ResonanceStrengths',
    'SimulationError',
    'SpinMotion',
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
