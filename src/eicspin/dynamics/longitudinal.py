"""
Longitudinal dynamics models.

A gamma model provides the Lorentz factor of one particle as a function of
the longitudinal position. The model is selected once per particle by
``create_gamma_model`` and used through three calls:

* ``init(lattice)`` before tracking (reads external tables, draws initial values)
* ``update(placed, pos)`` at the end of every element crossed
* ``get(pos)`` whenever the energy is needed
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
import logging
import math

import numpy as np
import pandas as pd

from ..constants import SPEED_OF_LIGHT
from ..machine_portal.element import ElementKind
from ..simulators.types import ConfigurationError, GammaMode, LongitudinalInstabilityError
from .radiation import SynchrotronRadiationModel

logger = logging.getLogger(__name__)


class GammaModel(ABC):
    """Base class of all longitudinal dynamics models."""

    mode: GammaMode

    def __init__(self, particle_id: int, config):
        self.particle_id = particle_id
        self.config = config
        self.lattice = None

    def init(self, lattice):
        self.lattice = lattice

    def update(self, placed, pos: float):
        """Advance the model over the element ``placed`` ending at ``pos``."""
        pass

    @abstractmethod
    def get(self, pos: float) -> float:
        """Lorentz factor at position ``pos`` in m."""
        pass

    def phase_space(self) -> Optional[pd.DataFrame]:
        """Recorded longitudinal phase space, if the model records one."""
        return None

    def clear(self):
        pass


class LinearGamma(GammaModel):
    """Linear energy ramp of the configuration."""

    mode = GammaMode.LINEAR

    def get(self, pos: float) -> float:
        return self.config.gamma(pos / SPEED_OF_LIGHT)


class SimtoolGamma(GammaModel):
    """Energy table of the external simulation tool, periodic Akima interpolation."""

    mode = GammaMode.SIMTOOL

    def __init__(self, particle_id: int, config, simtool):
        super().__init__(particle_id, config)
        if simtool is None:
            raise ConfigurationError(f"gamma_mode '{self.mode.value}' requires a prepared simulation tool")
        self.simtool = simtool
        self.table = None

    def init(self, lattice):
        super().init(lattice)
        self.table = self.simtool.gamma_table(self.particle_id)

    def _table_value(self, pos: float) -> float:
        return float(self.table.interp(pos - self.config.pos_start))

    def get(self, pos: float) -> float:
        return self._table_value(pos)

    def clear(self):
        self.table = None


class SimtoolPlusLinearGamma(SimtoolGamma):
    """External energy oscillation superposed with the linear ramp."""

    mode = GammaMode.SIMTOOL_PLUS_LINEAR

    def get(self, pos: float) -> float:
        ramp = self.config.gamma(pos / SPEED_OF_LIGHT) - self.config.E0 / self.config.E_rest
        return self._table_value(pos) + ramp


class SimtoolNoInterpolationGamma(SimtoolGamma):
    """External energy table, value of the last sample at or before the position."""

    mode = GammaMode.SIMTOOL_NO_INTERPOLATION

    def _table_value(self, pos: float) -> float:
        return float(self.table.at_or_before(pos - self.config.pos_start))


class RadiationGamma(GammaModel):
    """
    Longitudinal phase space with RF cavities and stochastic radiation.

    The particle starts with synchrotron phase and energy drawn from normal
    distributions around the synchronous phase and the reference energy,
    with equilibrium bunch length and energy spread as widths. At every
    cavity the phase drifts with the accumulated energy deviation (first
    and second order momentum compaction, weighted by the fraction of bent
    length passed since the previous cavity) and the cavity kick is
    applied. In dipoles the radiated energy is subtracted.

    Raises LongitudinalInstabilityError as soon as the particle leaves the
    RF bucket.
    """

    mode = GammaMode.RADIATION

    def __init__(self, particle_id: int, config, radiation: Optional[SynchrotronRadiationModel] = None):
        super().__init__(particle_id, config)
        self.radiation = radiation if radiation is not None else SynchrotronRadiationModel(config.seed + particle_id)
        self.gamma = 0.0
        self.gamma0 = 0.0
        self.gammaU0 = 0.0
        self.phase = 0.0
        self.num_cavities = 0
        self.total_bent_length = 0.0
        self.bent_since_cavity = 0.0
        self.record = config.save_gamma_for(particle_id)
        self._phase_space: List[Tuple[float, float, float, float]] = []

    @property
    def rng(self) -> np.random.Generator:
        return self.radiation.rng

    @property
    def delta(self) -> float:
        """Relative energy deviation from the reference energy."""
        return (self.gamma - self.gamma0) / self.gamma0

    def set_gamma0(self, gamma0: float):
        """Set the reference energy and the cavity amplitude q * U0 in units of gamma."""
        self.gamma0 = gamma0
        self.gammaU0 = self.config.q * self.lattice.energy_loss_per_turn(gamma0) / self.config.E_rest

    def init(self, lattice):
        super().init(lattice)
        self.num_cavities = lattice.count(ElementKind.CAVITY)
        if self.num_cavities == 0:
            raise ConfigurationError(f"gamma_mode '{self.mode.value}' requires at least one RF cavity")
        self.total_bent_length = lattice.total_bent_length
        if self.total_bent_length <= 0:
            raise ConfigurationError(f"gamma_mode '{self.mode.value}' requires at least one dipole")

        self.set_gamma0(self.config.gamma(self.config.t_start))
        energy_loss = lattice.energy_loss_per_turn(self.gamma0)
        sigma_phase = self.config.sigma_phase(self.gamma0, lattice.circumference, energy_loss)
        sigma_gamma = self.config.sigma_gamma(self.gamma0)
        self.phase = self.rng.normal(self.config.reference_phase(), sigma_phase)
        self.gamma = self.rng.normal(self.gamma0, sigma_gamma)
        self.bent_since_cavity = 0.0
        self._phase_space = []
        logger.debug(
            f"Particle {self.particle_id}: initial phase {self.phase:.4f} rad, "
            f"delta {self.delta:.3e} (sigma_phase {sigma_phase:.3e}, sigma_gamma {sigma_gamma:.3e})"
        )

    def update(self, placed, pos: float):
        element = placed.element
        if element.kind == ElementKind.DIPOLE:
            self.gamma -= self.radiation.radiated_energy(element, self.gamma0, self.gamma)
            self.bent_since_cavity += element.length
        elif element.kind == ElementKind.CAVITY:
            self._cavity(pos)

    def _cavity(self, pos: float):
        delta = self.delta
        fraction = self.bent_since_cavity / self.total_bent_length
        self.phase += 2 * math.pi * self.config.h * (self.config.alphac * delta + self.config.alphac2 * delta**2) * fraction
        self.bent_since_cavity = 0.0

        self.set_gamma0(self.config.gamma(pos / SPEED_OF_LIGHT))
        self.gamma += self.gammaU0 / self.num_cavities * math.sin(self.phase)

        if self.record:
            self._phase_space.append((pos / SPEED_OF_LIGHT, self.phase, self.delta, self.gamma))
        self.check_stability(pos)

    def separatrix(self, phase: float) -> float:
        """
        Squared relative energy deviation of the separatrix at ``phase``.

        Negative outside the phase range of the RF bucket.
        """
        phase_s = self.config.reference_phase()
        phase_u = math.pi - phase_s
        if phase < phase_u:
            return -1.0
        bracket = (math.cos(phase_u) + phase_u * math.sin(phase_s)
                   - math.cos(phase) - phase * math.sin(phase_s))
        return self.gammaU0 / self.gamma0 / (math.pi * self.config.h * self.config.alphac) * bracket

    def check_stability(self, pos: float):
        delta_sep2 = self.separatrix(self.phase)
        if delta_sep2 < 0 or self.delta**2 > delta_sep2:
            raise LongitudinalInstabilityError(
                f"Longitudinal motion unstable at t={pos / SPEED_OF_LIGHT:.6g} s: "
                f"phase {self.phase:.4f} rad, delta {self.delta:.3e} outside RF bucket"
            )

    def get(self, pos: float) -> float:
        return self.gamma

    def phase_space(self) -> Optional[pd.DataFrame]:
        if not self.record:
            return None
        return pd.DataFrame(self._phase_space, columns=['t', 'phase', 'delta', 'gamma'])

    def clear(self):
        self._phase_space = []


class OffsetGamma(GammaModel):
    """Linear ramp plus a constant random energy offset."""

    mode = GammaMode.OFFSET

    def __init__(self, particle_id: int, config):
        super().__init__(particle_id, config)
        self.offset = 0.0
        self.sync_freq = 0.0

    def init(self, lattice):
        super().init(lattice)
        initial = RadiationGamma(self.particle_id, self.config)
        initial.init(lattice)
        self.offset = initial.gamma - initial.gamma0
        gamma0 = self.config.gamma(self.config.t_start)
        self.sync_freq = self.config.sync_freq(
            gamma0, lattice.circumference, lattice.energy_loss_per_turn(gamma0)
        )

    def modulation(self, t: float) -> float:
        return 1.0

    def get(self, pos: float) -> float:
        t = pos / SPEED_OF_LIGHT
        return self.config.gamma(t) + self.offset * self.modulation(t)


class OscillationGamma(OffsetGamma):
    """Linear ramp plus a synchrotron oscillation with particle dependent phase."""

    mode = GammaMode.OSCILLATION

    def modulation(self, t: float) -> float:
        phase = 2 * math.pi * self.particle_id / self.config.num_particles
        return math.cos(2 * math.pi * self.sync_freq * t + phase)


def create_gamma_model(mode: GammaMode, particle_id: int, config, simtool=None) -> GammaModel:
    """
    Create the longitudinal dynamics model of one particle.

    Args:
        mode: Selected gamma mode
        particle_id: Particle id, also offsets the random seed
        config: Simulation configuration
        simtool: Prepared external simulation tool (simtool modes only)
    """
    try:
        mode = GammaMode(mode)
    except ValueError as e:
        raise ConfigurationError(f"Unknown gamma mode: {mode}") from e

    if mode == GammaMode.LINEAR:
        return LinearGamma(particle_id, config)
    elif mode == GammaMode.SIMTOOL:
        return SimtoolGamma(particle_id, config, simtool)
    elif mode == GammaMode.SIMTOOL_PLUS_LINEAR:
        return SimtoolPlusLinearGamma(particle_id, config, simtool)
    elif mode == GammaMode.SIMTOOL_NO_INTERPOLATION:
        return SimtoolNoInterpolationGamma(particle_id, config, simtool)
    elif mode == GammaMode.OFFSET:
        return OffsetGamma(particle_id, config)
    elif mode == GammaMode.OSCILLATION:
        return OscillationGamma(particle_id, config)
    return RadiationGamma(particle_id, config)
