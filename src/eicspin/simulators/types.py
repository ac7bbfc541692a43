"""
Type definitions and enums for EICSpin simulations.

This module provides common type definitions, enums, result models and the
exception hierarchy used across the spin tracking and resonance strength
simulations.
"""

from enum import Enum
from typing import Dict, Optional
from pydantic import Field

from ..models.base import PhysicsBaseModel


class GammaMode(str, Enum):
    """Longitudinal dynamics models providing the particle energy."""
    LINEAR = "linear"                                      # linear ramp from configuration
    SIMTOOL = "simtool"                                    # external energy table, Akima interpolated
    SIMTOOL_PLUS_LINEAR = "simtool_plus_linear"            # external table plus linear ramp
    SIMTOOL_NO_INTERPOLATION = "simtool_no_interpolation"  # external table, last sample before pos
    OFFSET = "offset"                                      # linear ramp plus random energy offset
    OSCILLATION = "oscillation"                            # linear ramp plus synchrotron oscillation
    RADIATION = "radiation"                                # full stochastic longitudinal phase space


class TrajectoryMode(str, Enum):
    """Providers of the transverse particle trajectory."""
    CLOSED_ORBIT = "closed_orbit"
    SIMTOOL = "simtool"
    OSCILLATION = "oscillation"


class TaskStatus(str, Enum):
    """Status of a single particle task."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


# gamma modes reading per-particle tables from the external simulation tool
SIMTOOL_GAMMA_MODES = (
    GammaMode.SIMTOOL,
    GammaMode.SIMTOOL_PLUS_LINEAR,
    GammaMode.SIMTOOL_NO_INTERPOLATION,
)

# gamma modes requiring the longitudinal machine parameters (q, h, R, alphac, Jz)
RF_GAMMA_MODES = (
    GammaMode.OFFSET,
    GammaMode.OSCILLATION,
    GammaMode.RADIATION,
)


class SimulationResults(PhysicsBaseModel):
    """
    Summary of a completed multi-particle simulation.

    Contains the particle bookkeeping and performance figures reported to
    the user after a tracking or resonance strength run.
    """
    num_particles: int = Field(ge=0, description="Number of particles simulated")
    num_successful: int = Field(ge=0, description="Particles finished without error")
    errors: Dict[int, str] = Field(default_factory=dict, description="Error message per failed particle id")
    execution_time: float = Field(default=0.0, ge=0, description="Wall-clock time in seconds")
    num_threads: Optional[int] = Field(default=None, description="Worker threads used")

    @property
    def success(self) -> bool:
        return self.num_successful > 0

    def error_report(self) -> str:
        """Human readable list of failed particles."""
        if not self.errors:
            return "All particles finished successfully."
        lines = [f"{len(self.errors)} of {self.num_particles} particles failed:"]
        for particle_id in sorted(self.errors):
            lines.append(f"  particle {particle_id:4d}: {self.errors[particle_id]}")
        return "\n".join(lines)


class SimulationError(Exception):
    """Base exception class for simulation errors."""
    pass


class ConfigurationError(SimulationError):
    """Raised when simulation configuration is invalid."""
    pass


class TrackingError(SimulationError):
    """Raised when the tracking of a single particle fails."""
    pass


class LongitudinalInstabilityError(TrackingError):
    """Raised when a particle's energy deviation leaves the RF bucket."""
    pass


class AggregationError(SimulationError):
    """Raised when per-particle results cannot be averaged."""
    pass


class ResonanceCacheError(SimulationError, KeyError):
    """Raised when a resonance strength is requested that was never calculated."""
    pass
