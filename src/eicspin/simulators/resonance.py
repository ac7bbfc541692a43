"""
Strengths of depolarizing resonances.

The complex resonance strength epsilon(agamma) is estimated with the
Courant-Ruth formalism (E. D. Courant and R. D. Ruth, BNL-51270, 1980),
using the magnetic fields on each particle's trajectory directly instead of
a linear approximation of the particle motion:

    epsilon = 1/(2 pi) * sum_elements omega * exp(i agamma theta) * l

with omega = (1 + agamma) Bx - i (1 + a) Bs from the Thomas-BMT equation and
theta the bending angle accumulated along the ring. In dipoles the phase
advances within the magnet and the integral is done analytically. Fields
are assumed constant inside a magnet; edge focusing is not included.
"""

from typing import Callable, Dict, Iterator, Optional
import cmath
import logging
import math

import numpy as np
import pandas as pd

from ..dynamics.trajectory import create_trajectory
from ..machine_portal.element import ElementKind
from .base import Simulation
from .tasks import SimulationTask
from .types import AggregationError, ResonanceCacheError, SimulationResults

logger = logging.getLogger(__name__)


class ResonanceStrengthCache:
    """
    Resonance strengths keyed by spin tune.

    ``get`` returns the cached value or calculates and caches it,
    ``cache[agamma]`` requires the value to be calculated already.
    """

    def __init__(self, calculate: Callable[[float], complex]):
        self._calculate = calculate
        self._values: Dict[float, complex] = {}

    def get(self, agamma: float) -> complex:
        agamma = float(agamma)
        if agamma not in self._values:
            self._values[agamma] = complex(self._calculate(agamma))
        return self._values[agamma]

    def __getitem__(self, agamma: float) -> complex:
        try:
            return self._values[float(agamma)]
        except KeyError:
            raise ResonanceCacheError(f"Resonance strength not known for spin tune {agamma}") from None

    def __contains__(self, agamma: float) -> bool:
        return float(agamma) in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(sorted(self._values))

    def items(self):
        return [(agamma, self._values[agamma]) for agamma in self]

    def to_frame(self) -> pd.DataFrame:
        """Table with columns agamma, real, imag, abs sorted by spin tune."""
        items = self.items()
        return pd.DataFrame({
            'agamma': [agamma for agamma, _ in items],
            'real': [epsilon.real for _, epsilon in items],
            'imag': [epsilon.imag for _, epsilon in items],
            'abs': [abs(epsilon) for _, epsilon in items],
        })


class ParticleResStrengths(SimulationTask):
    """Resonance strengths of a single particle along its trajectory."""

    def __init__(self, particle_id: int, config):
        super().__init__(particle_id, config)
        self.trajectory = None
        self.num_turns = 0
        self.scan = np.array([])
        self.cache = ResonanceStrengthCache(self.calculate)
        self._trajectory_ready = False
        self._done = 0

    def set_model(self, lattice, simtool=None):
        super().set_model(lattice, simtool)
        self.trajectory = create_trajectory(self.config.trajectory_mode, self.particle_id, self.config,
                                            lattice, simtool)
        self.num_turns = self.config.resolve_num_turns(lattice.circumference)
        self.scan = self.config.agamma_scan(lattice.circumference)

    def progress(self) -> float:
        if len(self.scan) == 0:
            return 1.0
        return self._done / len(self.scan)

    def run(self):
        self._check_model()
        self._done = 0
        self.trajectory.init()
        self._trajectory_ready = True
        try:
            for agamma in self.scan:
                self.cache.get(agamma)
                self._done += 1
        finally:
            self.trajectory.clear()
            self._trajectory_ready = False

    def calculate(self, agamma: float) -> complex:
        """Resonance strength at spin tune ``agamma``, averaged over ``num_turns`` turns."""
        self._check_model()
        if self._trajectory_ready:
            return self._integrate(agamma)
        self.trajectory.init()
        try:
            return self._integrate(agamma)
        finally:
            self.trajectory.clear()

    def _integrate(self, agamma: float) -> complex:
        logger.debug(f"Particle {self.particle_id}: calculate agamma={agamma}")
        lattice = self.lattice
        a_gyro = self.config.a_gyro
        circumference = lattice.circumference
        epsilon = 0j

        for turn in range(self.num_turns):
            offset = turn * circumference
            theta_offset = turn * 2 * math.pi
            for placed in lattice:
                element = placed.element
                orbit = self.trajectory.get(placed.center + offset)
                if element.kind == ElementKind.DIPOLE:
                    b = element.magnetic_field(orbit)
                    omega = (1 + agamma) * b[0] - 1j * (1 + a_gyro) * b[1]
                    theta1 = lattice.theta(placed.begin) + theta_offset
                    theta2 = theta1 + abs(element.angle)
                    if agamma == 0.0:
                        epsilon += omega * element.radius * (theta2 - theta1)
                    else:
                        epsilon += omega * element.radius / (1j * agamma) * (
                            cmath.exp(1j * agamma * theta2) - cmath.exp(1j * agamma * theta1))
                else:
                    b = element.integrated_field(orbit)
                    omega = (1 + agamma) * b[0] - 1j * (1 + a_gyro) * b[1]
                    theta = lattice.theta(placed.center) + theta_offset
                    epsilon += cmath.exp(1j * agamma * theta) * omega

        return epsilon / (2 * math.pi) / self.num_turns


class ResonanceStrengths(Simulation[ParticleResStrengths]):
    """
    Ensemble resonance strengths, averaged over all successful particles.

    Example:
        >>> res = ResonanceStrengths(config)
        >>> res.set_model(lattice)
        >>> res.start()
        >>> res.to_frame()
    """

    def __init__(self, config, num_threads: Optional[int] = None, monitors=None):
        super().__init__(config, num_threads, monitors)
        self.cache = ResonanceStrengthCache(self._average)
        self.started = False

    def create_task(self, particle_id: int) -> ParticleResStrengths:
        return ParticleResStrengths(particle_id, self.config)

    def check_preconditions(self):
        super().check_preconditions()
        num_turns = self.config.resolve_num_turns(self.lattice.circumference)
        logger.info(f"Estimate resonance strengths using {num_turns} turns for "
                    f"{self.config.num_particles} particles")

    def _average(self, agamma: float) -> complex:
        logger.debug(f"Average over particles for agamma={agamma}")
        successful = self.successful_tasks()
        if not successful:
            raise AggregationError("No particle finished successfully, resonance strengths cannot be averaged")
        total = sum((task.cache.get(agamma) for task in successful), 0j)
        return total / len(successful)

    def start(self) -> SimulationResults:
        """Calculate the resonance strengths of the configured spin tune scan."""
        self.cache = ResonanceStrengthCache(self._average)
        results = self.run_tasks()
        self.started = True
        if results.success:
            for agamma in self.config.agamma_scan(self.lattice.circumference):
                self.cache.get(agamma)
            logger.info(f"Resonance strengths estimated via {results.num_successful} particles "
                        f"in {results.execution_time:.1f} s")
        else:
            logger.error("Aborted: no particle finished successfully")
        return results

    def get(self, agamma: float) -> complex:
        """Resonance strength at ``agamma``, calculated if not cached."""
        return self.cache.get(agamma)

    def __getitem__(self, agamma: float) -> complex:
        """Cached resonance strength at ``agamma``."""
        return self.cache[agamma]

    def get_single(self, agamma: float) -> complex:
        """Resonance strength at a single spin tune, running the particles if needed."""
        if not self.started:
            self.config.agamma_min = agamma
            self.config.agamma_max = agamma
            self.start()
        return self.get(agamma)

    def to_frame(self) -> pd.DataFrame:
        return self.cache.to_frame()
