"""
Transverse trajectory providers.

The magnetic fields seen by a particle depend on its transverse position.
A trajectory provider returns this position (x, z) for any longitudinal
position, either on the closed orbit, from a per-particle table of the
external simulation tool, or as closed orbit plus synthesized betatron
oscillation.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging
import math

import numpy as np
import pandas as pd

from ..optics import OrbitFunction, OrbitPoint
from ..simulators.types import ConfigurationError, TrackingError, TrajectoryMode

logger = logging.getLogger(__name__)


class TrajectoryProvider(ABC):
    """Base class of the trajectory providers."""

    mode: TrajectoryMode

    def __init__(self, particle_id: int, config):
        self.particle_id = particle_id
        self.config = config

    def init(self):
        pass

    @abstractmethod
    def get(self, pos: float) -> OrbitPoint:
        """Transverse position at ``pos`` in m."""
        pass

    def clear(self):
        """Release per-particle data."""
        pass

    def simtool_data(self) -> Optional[pd.DataFrame]:
        return None


class ClosedOrbitTrajectory(TrajectoryProvider):
    """Particle on the closed orbit of the lattice."""

    mode = TrajectoryMode.CLOSED_ORBIT

    def __init__(self, particle_id: int, config, lattice):
        super().__init__(particle_id, config)
        self.lattice = lattice

    def get(self, pos: float) -> OrbitPoint:
        return self.lattice.orbit(pos)


class SimtoolTrajectory(TrajectoryProvider):
    """Trajectory table of the external simulation tool (periodic Akima interpolation)."""

    mode = TrajectoryMode.SIMTOOL

    def __init__(self, particle_id: int, config, simtool):
        super().__init__(particle_id, config)
        if simtool is None:
            raise ConfigurationError("trajectory_mode 'simtool' requires a prepared simulation tool")
        self.simtool = simtool
        self.trajectory: Optional[OrbitFunction] = None

    def init(self):
        self.trajectory = OrbitFunction.from_table(self.simtool.trajectory_table(self.particle_id))

    def get(self, pos: float) -> OrbitPoint:
        if self.trajectory is None:
            raise TrackingError(f"Trajectory of particle {self.particle_id} not initialized")
        return self.trajectory.get(pos - self.config.pos_start)

    def clear(self):
        self.trajectory = None

    def simtool_data(self) -> Optional[pd.DataFrame]:
        """Imported trajectory table of particles flagged for diagnostic output."""
        if self.trajectory is None or not self.config.save_gamma_for(self.particle_id):
            return None
        return pd.DataFrame({
            's': self.trajectory.positions,
            'x': self.trajectory.values[:, 0],
            'z': self.trajectory.values[:, 1],
        })


class OscillationTrajectory(TrajectoryProvider):
    """
    Closed orbit plus betatron oscillation in both planes.

    Each plane oscillates as sqrt(2 J beta) cos(2 pi Q s / C + phi) with the
    average beta function of the configuration. The action J is drawn from
    an exponential distribution with the emittance as mean, the phase phi
    uniformly, with a generator seeded by particle id.
    """

    mode = TrajectoryMode.OSCILLATION

    def __init__(self, particle_id: int, config, lattice):
        super().__init__(particle_id, config)
        self.lattice = lattice
        self.amplitude_x = 0.0
        self.amplitude_z = 0.0
        self.phase_x = 0.0
        self.phase_z = 0.0

    def init(self):
        if self.config.emittance_x <= 0 or self.config.emittance_z <= 0:
            raise ConfigurationError("trajectory_mode 'oscillation' requires non-zero emittance_x and emittance_z")
        # separate stream from the radiation model of the same particle
        rng = np.random.default_rng([self.config.seed + self.particle_id, 1])
        self.amplitude_x = math.sqrt(2 * rng.exponential(self.config.emittance_x) * self.config.beta_x)
        self.amplitude_z = math.sqrt(2 * rng.exponential(self.config.emittance_z) * self.config.beta_z)
        self.phase_x = rng.uniform(0.0, 2 * math.pi)
        self.phase_z = rng.uniform(0.0, 2 * math.pi)

    def get(self, pos: float) -> OrbitPoint:
        orbit = self.lattice.orbit(pos)
        mu = 2 * math.pi * pos / self.lattice.circumference
        x = orbit.x + self.amplitude_x * math.cos(self.config.tune_x * mu + self.phase_x)
        z = orbit.z + self.amplitude_z * math.cos(self.config.tune_z * mu + self.phase_z)
        return OrbitPoint(x, z)


def create_trajectory(mode: TrajectoryMode, particle_id: int, config, lattice, simtool=None) -> TrajectoryProvider:
    """Create the trajectory provider of one particle."""
    try:
        mode = TrajectoryMode(mode)
    except ValueError as e:
        raise ConfigurationError(f"Unknown trajectory mode: {mode}") from e

    if mode == TrajectoryMode.CLOSED_ORBIT:
        return ClosedOrbitTrajectory(particle_id, config, lattice)
    elif mode == TrajectoryMode.SIMTOOL:
        return SimtoolTrajectory(particle_id, config, simtool)
    return OscillationTrajectory(particle_id, config, lattice)
