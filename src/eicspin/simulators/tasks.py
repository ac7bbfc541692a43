"""
Single-particle simulation tasks.

A task simulates one particle, identified by its particle id. It holds
shared, read-only references to the configuration, the lattice and the
prepared external simulation tool, and owns all of its mutable state
(spin, energy model, trajectory). Tasks are executed by the
``TaskScheduler``; an exception raised by ``run`` only fails this particle.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
import logging
import math

import numpy as np
import pandas as pd

from ..constants import SPEED_OF_LIGHT
from ..dynamics.longitudinal import create_gamma_model
from ..dynamics.spin import SpinMotion, transport
from ..dynamics.trajectory import create_trajectory
from ..machine_portal.element import ElementKind
from .types import ConfigurationError, TaskStatus

logger = logging.getLogger(__name__)

# relative tolerance when comparing element begins with the window limits
POSITION_TOLERANCE = 1e-12


class SimulationTask(ABC):
    """
    Abstract base class of particle tasks.

    Subclasses create their models in ``set_model`` and implement ``run``
    and ``progress``.
    """

    def __init__(self, particle_id: int, config):
        self.particle_id = particle_id
        self.config = config
        self.lattice = None
        self.simtool = None
        self.status = TaskStatus.IDLE

    def set_model(self, lattice, simtool=None):
        """
        Attach the shared machine model.

        Args:
            lattice: Lattice provider (read-only during the run)
            simtool: Prepared external simulation tool, if required
        """
        self.lattice = lattice
        self.simtool = simtool

    @property
    def model_ready(self) -> bool:
        return self.lattice is not None

    def _check_model(self):
        if not self.model_ready:
            raise ConfigurationError(f"Particle {self.particle_id}: model not set, call set_model first")

    @abstractmethod
    def run(self):
        """Simulate the particle."""
        pass

    @abstractmethod
    def progress(self) -> float:
        """Fraction of the task completed (0 to 1)."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(particle_id={self.particle_id}, status={self.status.value})"


class TrackingTask(SimulationTask):
    """
    Spin tracking of one particle.

    The spin is transported element by element over the window
    ``[pos_start, pos_stop)``: an element is tracked if and only if it
    begins inside the window, and then always in full. Consecutive windows
    therefore track every element exactly once: an element straddling
    ``pos_start`` is skipped, a zero-length element at ``pos_start`` is
    tracked and one at ``pos_stop`` belongs to the next window.

    At the end of each element the gamma model is advanced,
    the energy and the transverse position at the element center are
    evaluated and the spin is rotated by the element's field integral.
    A sample is stored at the start and after the first element reaching
    each output position (multiples of the output step); sample times are
    the element end positions divided by c and are therefore identical for
    all particles.
    """

    def __init__(self, particle_id: int, config):
        super().__init__(particle_id, config)
        self.gamma_model = None
        self.trajectory = None
        self.spin_motion = SpinMotion()
        self.expected_samples = config.num_outputs()
        self.simtool_data: Optional[pd.DataFrame] = None
        self._gamma_samples: List[Tuple[float, float]] = []
        self._samples = 0

    def set_model(self, lattice, simtool=None):
        super().set_model(lattice, simtool)
        self.gamma_model = create_gamma_model(self.config.gamma_mode, self.particle_id, self.config, simtool)
        self.trajectory = create_trajectory(self.config.trajectory_mode, self.particle_id, self.config,
                                            lattice, simtool)

    def progress(self) -> float:
        return min(1.0, self._samples / self.expected_samples)

    def _store(self, pos: float, spin: np.ndarray, gamma: float):
        t = pos / SPEED_OF_LIGHT
        self.spin_motion.add(t, spin)
        self._gamma_samples.append((t, gamma))
        self._samples += 1

    def run(self):
        self._check_model()
        self.spin_motion = SpinMotion()
        self._gamma_samples = []
        self._samples = 0

        self.gamma_model.init(self.lattice)
        self.trajectory.init()
        try:
            self._track()
            self.simtool_data = self.trajectory.simtool_data()
        finally:
            self.trajectory.clear()
        logger.debug(f"Particle {self.particle_id}: {self._samples} samples, final spin {self.spin_motion.last()}")

    def _track(self):
        config = self.config
        a_gyro = config.a_gyro
        pos_start = config.pos_start
        pos_stop = config.pos_stop
        step = config.output_step * SPEED_OF_LIGHT

        spin = np.array(config.s_start, dtype=float)
        self._store(pos_start, spin, self.gamma_model.get(pos_start))
        num_out = 1

        first = pos_start - POSITION_TOLERANCE * max(1.0, abs(pos_start))
        last = pos_stop - POSITION_TOLERANCE * max(1.0, abs(pos_stop))

        # start just before pos_start so that zero-length elements at pos_start are included
        for placed in self.lattice.elements_from(first):
            if placed.begin >= last:
                break
            if placed.begin < first:
                # element entered before the start, belongs to the previous window
                continue
            element = placed.element
            end = placed.end

            self.gamma_model.update(placed, end)
            gamma = self.gamma_model.get(end)
            orbit = self.trajectory.get(placed.center)

            field = element.integrated_field(orbit)
            if config.edge_focusing and element.kind == ElementKind.DIPOLE:
                field = field + element.edge_field(orbit)
            spin = transport(spin, field, a_gyro * gamma, a_gyro)

            if end >= pos_start + num_out * step:
                self._store(end, spin, gamma)
                num_out = int(math.floor((end - pos_start) / step)) + 1

    def gamma_frame(self) -> pd.DataFrame:
        """Particle energy at the spin sample times."""
        return pd.DataFrame(self._gamma_samples, columns=['t', 'gamma'])

    def phase_space(self) -> Optional[pd.DataFrame]:
        """Longitudinal phase space of particles flagged for diagnostic output."""
        if self.gamma_model is None:
            return None
        return self.gamma_model.phase_space()
