"""
EICSpin Simulation Package.

This package runs spin simulations of many particles in parallel: spin
tracking with the resulting beam polarization, and the estimation of
depolarizing resonance strengths.

Key Components:
- Configuration: Validated simulation parameters with YAML input/output
- TaskScheduler: Generic thread pool running one task per particle
- SpinTracking / TrackingTask: Spin tracking and polarization
- ResonanceStrengths / ParticleResStrengths: Courant-Ruth resonance strengths
- SimToolAdapter: One-time prepared tables of an external simulation tool
- Monitoring and callback systems for progress updates

Example Usage:
    from eicspin.simulators import Configuration, SpinTracking

    config = Configuration.load("config.yaml")
    tracking = SpinTracking(config)
    tracking.set_model(lattice)
    results = tracking.start()
    print(results.error_report())
"""

# types must be imported first, the dynamics modules depend on them
from .types import (
    # Enums
    GammaMode,
    TrajectoryMode,
    TaskStatus,

    # Data models
    SimulationResults,

    # Exceptions
    SimulationError,
    ConfigurationError,
    TrackingError,
    LongitudinalInstabilityError,
    AggregationError,
    ResonanceCacheError,
)

from .configuration import Configuration

from .simtool import (
    SimToolAdapter,
    InMemorySimTool,
    PreparedSimTool,
)

from .tasks import (
    SimulationTask,
    TrackingTask,
)

from .base import (
    TaskScheduler,
    Simulation,
    SimulationMonitor,
    ProgressMonitor,
)

from .tracking import (
    SpinTracking,
    average_spin_motion,
)

from .resonance import (
    ResonanceStrengthCache,
    ParticleResStrengths,
    ResonanceStrengths,
)

# Public API
__all__ = [
    # Core classes
    "Configuration",
    "TaskScheduler",
    "Simulation",
    "SimulationTask",
    "TrackingTask",
    "SpinTracking",
    "average_spin_motion",
    "ResonanceStrengthCache",
    "ParticleResStrengths",
    "ResonanceStrengths",

    # External tool
    "SimToolAdapter",
    "InMemorySimTool",
    "PreparedSimTool",

    # Monitoring
    "SimulationMonitor",
    "ProgressMonitor",

    # Types and enums
    "GammaMode",
    "TrajectoryMode",
    "TaskStatus",
    "SimulationResults",

    # Exceptions
    "SimulationError",
    "ConfigurationError",
    "TrackingError",
    "LongitudinalInstabilityError",
    "AggregationError",
    "ResonanceCacheError",
]

# Initialize logging for the package
import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
