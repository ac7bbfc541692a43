"""
Configuration of spin tracking and resonance strength simulations.

The configuration is a validated Pydantic model. It can be stored as a flat
YAML mapping (``Configuration.save`` / ``Configuration.load``) and carries
the derived quantities used by all particle tasks: the linear energy ramp,
the position range of the tracking and the spin tune scan.
"""

from pathlib import Path
from typing import ClassVar, List, Optional, Union
import logging
import math

from pydantic import Field, ValidationError, field_validator, model_validator
import numpy as np
import yaml

from ..constants import A_GYRO, C_Q, E_REST, SPEED_OF_LIGHT
from ..models.base import PhysicsBaseModel
from ..models.validators import (
    validate_energy_range, validate_overvoltage, validate_particle_ids, validate_spin_direction
)
from .types import (
    ConfigurationError, GammaMode, TrajectoryMode, RF_GAMMA_MODES
)

logger = logging.getLogger(__name__)


class Configuration(PhysicsBaseModel):
    """
    Parameters of a multi-particle spin simulation.

    Machine parameters of the longitudinal models (q, h, R, alphac, alphac2,
    Jz) use zero as "not set"; ``autocomplete`` fills them from the lattice
    without overwriting explicit values.
    """

    E_rest: ClassVar[float] = E_REST
    a_gyro: ClassVar[float] = A_GYRO
    default_steps: ClassVar[int] = 200

    # ========== Tracking ==========
    num_particles: int = Field(default=1, ge=1, description="Number of particles")
    t_start: float = Field(default=0.0, ge=0.0, description="Start time in s")
    t_stop: float = Field(default=0.0, ge=0.0, description="Stop time in s")
    dt_out: Optional[float] = Field(default=None, gt=0.0, description="Output spacing in s (default duration/200)")
    E0: float = Field(default=1.0, gt=0.0, description="Energy at t=0 in GeV")
    dE: float = Field(default=0.0, description="Energy ramp rate in GeV/s")
    E_max: Optional[float] = Field(default=None, gt=0.0, description="Maximum energy of the ramp in GeV")
    s_start: List[float] = Field(default_factory=lambda: [0.0, 0.0, 1.0], description="Initial spin (x, s, z)")
    seed: int = Field(default=1, ge=0, description="Global random seed, particle seed = seed + id")
    edge_focusing: bool = Field(default=False, description="Include dipole edge fields")
    save_gamma: List[int] = Field(default_factory=list, description="Particle ids with diagnostic output")

    # ========== Model selection ==========
    gamma_mode: GammaMode = Field(default=GammaMode.LINEAR, description="Longitudinal dynamics model")
    trajectory_mode: TrajectoryMode = Field(default=TrajectoryMode.CLOSED_ORBIT, description="Trajectory provider")

    # ========== Longitudinal machine parameters (0 = autocomplete) ==========
    q: float = Field(default=0.0, ge=0.0, description="RF overvoltage factor")
    h: float = Field(default=0.0, ge=0.0, description="Harmonic number")
    R: float = Field(default=0.0, ge=0.0, description="Bending radius in m")
    alphac: float = Field(default=0.0, description="Momentum compaction factor")
    alphac2: float = Field(default=0.0, description="Second order momentum compaction factor")
    Jz: float = Field(default=0.0, ge=0.0, description="Longitudinal damping partition number")

    # ========== Synthesized betatron oscillation ==========
    emittance_x: float = Field(default=0.0, ge=0.0, description="Horizontal emittance in m rad")
    emittance_z: float = Field(default=0.0, ge=0.0, description="Vertical emittance in m rad")
    beta_x: float = Field(default=0.0, ge=0.0, description="Average horizontal beta function in m")
    beta_z: float = Field(default=0.0, ge=0.0, description="Average vertical beta function in m")
    tune_x: float = Field(default=0.0, ge=0.0, description="Horizontal betatron tune")
    tune_z: float = Field(default=0.0, ge=0.0, description="Vertical betatron tune")

    # ========== Resonance strengths ==========
    num_turns: int = Field(default=0, ge=0, description="Turns for resonance strengths (0 = derive)")
    agamma_min: float = Field(default=0.0, ge=0.0, description="First spin tune of the scan")
    agamma_max: float = Field(default=0.0, ge=0.0, description="Last spin tune of the scan")
    dagamma: float = Field(default=0.0, ge=0.0, description="Spin tune step (0 = 1/num_turns)")

    @field_validator('s_start')
    @classmethod
    def validate_s_start(cls, v):
        return validate_spin_direction(v)

    @field_validator('E0')
    @classmethod
    def validate_E0(cls, v):
        return validate_energy_range(v)

    @field_validator('q')
    @classmethod
    def validate_q(cls, v):
        return validate_overvoltage(v)

    @model_validator(mode='after')
    def validate_particle_flags(self):
        validate_particle_ids(self.save_gamma, self.num_particles)
        return self

    # ========== Derived quantities ==========

    @property
    def duration(self) -> float:
        return self.t_stop - self.t_start

    @property
    def output_step(self) -> float:
        """Output spacing in s."""
        if self.dt_out is not None:
            return self.dt_out
        return self.duration / self.default_steps

    @property
    def pos_start(self) -> float:
        return self.t_start * SPEED_OF_LIGHT

    @property
    def pos_stop(self) -> float:
        return self.t_stop * SPEED_OF_LIGHT

    def num_outputs(self) -> int:
        """Number of spin samples written by one particle."""
        return int(math.floor(self.duration / self.output_step * (1 + 1e-12))) + 1

    def gamma(self, t: float) -> float:
        """Lorentz factor of the linear energy ramp at time ``t``."""
        energy = self.E0 + self.dE * t
        if self.E_max is not None:
            energy = min(energy, self.E_max)
        return energy / self.E_rest

    def agamma(self, t: float) -> float:
        return self.a_gyro * self.gamma(t)

    def reference_phase(self) -> float:
        """Synchronous phase pi - asin(1/q) of the RF system (above transition)."""
        if self.q <= 1.0:
            raise ConfigurationError(f"Overvoltage factor q={self.q} must be larger than 1")
        return math.pi - math.asin(1.0 / self.q)

    def sigma_gamma(self, gamma0: float) -> float:
        """Equilibrium energy spread in units of gamma."""
        return gamma0**2 * math.sqrt(C_Q / (self.Jz * self.R))

    def sync_freq(self, gamma: float, circumference: float, energy_loss: float) -> float:
        """
        Synchrotron frequency in Hz.

        Args:
            gamma: Beam energy
            circumference: Ring circumference in m
            energy_loss: Energy loss per turn U0 in GeV, cavity voltage = q * U0
        """
        voltage = self.q * energy_loss
        arg = -voltage * self.h / (2 * math.pi * gamma * self.E_rest) * math.cos(self.reference_phase()) * self.alphac
        if arg <= 0:
            raise ConfigurationError(f"No stable synchrotron motion for alphac={self.alphac}, q={self.q}")
        return SPEED_OF_LIGHT / circumference * math.sqrt(arg)

    def sigma_phase(self, gamma0: float, circumference: float, energy_loss: float) -> float:
        """Equilibrium bunch length as synchrotron phase spread in rad."""
        fs = self.sync_freq(gamma0, circumference, energy_loss)
        return self.alphac / fs * self.sigma_gamma(gamma0) / gamma0 * self.h * SPEED_OF_LIGHT / circumference

    def save_gamma_for(self, particle_id: int) -> bool:
        """Whether the particle writes auxiliary diagnostic output."""
        return particle_id in self.save_gamma

    def resolve_num_turns(self, circumference: Optional[float] = None) -> int:
        """
        Number of turns for the resonance strength integral.

        Uses the explicit ``num_turns`` if set, else the spin tune step
        (turns = round(1/dagamma)), else tracked duration and ring
        circumference.

        Raises:
            ConfigurationError: If none of these is available
        """
        if self.num_turns > 0:
            return self.num_turns
        if self.dagamma > 0:
            return max(1, int(round(1.0 / abs(self.dagamma))))
        if circumference and self.duration > 0:
            return max(1, int(round(self.duration * SPEED_OF_LIGHT / circumference)))
        raise ConfigurationError(
            "Number of turns for resonance strengths unknown: set num_turns, dagamma "
            "or a tracking duration with a lattice of known circumference"
        )

    def spintune_step(self, circumference: Optional[float] = None) -> float:
        if self.dagamma > 0:
            return self.dagamma
        return 1.0 / self.resolve_num_turns(circumference)

    def agamma_scan(self, circumference: Optional[float] = None) -> np.ndarray:
        """Spin tune values of the resonance strength scan (inclusive end)."""
        if self.agamma_max < self.agamma_min:
            raise ConfigurationError(
                f"agamma_max ({self.agamma_max}) must not be smaller than agamma_min ({self.agamma_min})"
            )
        step = self.spintune_step(circumference)
        n = int(math.floor((self.agamma_max - self.agamma_min) / step + 1e-9)) + 1
        return self.agamma_min + step * np.arange(n)

    # ========== Checks ==========

    def check_tracking(self):
        """Raise ConfigurationError if the tracking time range is invalid."""
        if self.t_stop <= self.t_start:
            raise ConfigurationError(
                f"Tracking end time t_stop={self.t_stop} s must be after t_start={self.t_start} s"
            )

    def check_rf_parameters(self):
        """Raise ConfigurationError if a longitudinal parameter required by the gamma mode is unset."""
        if self.gamma_mode not in RF_GAMMA_MODES:
            return
        missing = [name for name in ('q', 'h', 'R', 'alphac', 'Jz') if getattr(self, name) == 0.0]
        if missing:
            raise ConfigurationError(
                f"gamma_mode '{self.gamma_mode.value}' requires non-zero {', '.join(missing)} "
                "(set explicitly or provide them via the lattice)"
            )
        if self.alphac < 0:
            raise ConfigurationError(f"Momentum compaction alphac={self.alphac} below transition is not supported")
        if self.q <= 1.0:
            raise ConfigurationError(f"Overvoltage factor q={self.q} must be larger than 1")

    def check_trajectory_parameters(self):
        """Raise ConfigurationError if the oscillation trajectory lacks its parameters."""
        if self.trajectory_mode != TrajectoryMode.OSCILLATION:
            return
        missing = [name for name in ('emittance_x', 'emittance_z', 'beta_x', 'beta_z', 'tune_x', 'tune_z')
                   if getattr(self, name) == 0.0]
        if missing:
            raise ConfigurationError(
                f"trajectory_mode 'oscillation' requires non-zero {', '.join(missing)}"
            )

    def autocomplete(self, lattice) -> List[str]:
        """
        Fill unset (zero) longitudinal parameters from the lattice.

        Args:
            lattice: Lattice provider exposing ``machine_parameters(gamma)``

        Returns:
            Names of the parameters that were filled
        """
        params = lattice.machine_parameters(self.gamma(self.t_start))
        filled = []
        for name in ('q', 'h', 'R', 'alphac', 'alphac2', 'Jz'):
            value = params.get(name, 0.0)
            if getattr(self, name) == 0.0 and value != 0.0:
                try:
                    setattr(self, name, value)
                except ValidationError as e:
                    raise ConfigurationError(f"Lattice provides invalid {name}={value}: {e}") from e
                filled.append(name)
        if filled:
            logger.info("Autocompleted from lattice: " + ", ".join(f"{n}={getattr(self, n):.6g}" for n in filled))
        return filled

    # ========== Input / Output ==========

    @classmethod
    def load(cls, filename: Union[str, Path]) -> "Configuration":
        """
        Load a configuration from a YAML file.

        Raises:
            ConfigurationError: If the file is malformed or a value is invalid
        """
        path = Path(filename)
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Error loading configuration file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} is malformed: root should be a mapping")
        try:
            config = cls.from_dict(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {path}: {e}") from e
        logger.info(f"Configuration loaded from {path}")
        return config

    def save(self, filename: Union[str, Path]):
        """Write the configuration as YAML."""
        path = Path(filename)
        with open(path, 'w') as f:
            yaml.safe_dump(self.to_yaml_dict(), f, sort_keys=False)
        logger.info(f"Current configuration saved in {path}")

    @classmethod
    def template(cls, filename: Union[str, Path] = "template.yaml") -> "Configuration":
        """Write a configuration template with default values."""
        config = cls()
        config.save(filename)
        return config

    def summary(self) -> str:
        """Short description of the tracking run."""
        sep = "-" * 65
        return "\n".join([
            sep,
            f"Tracking {self.num_particles} Spins",
            f"time      {self.t_start} s   -------------------->   {self.t_stop} s",
            f"energy    {self.gamma(self.t_start) * self.E_rest:.6g} GeV   ----- {self.dE} GeV/s ----->   "
            f"{self.gamma(self.t_stop) * self.E_rest:.6g} GeV",
            f"spin tune {self.agamma(self.t_start):.6g}   -------------------->   {self.agamma(self.t_stop):.6g}",
            f"start polarization: Px = {self.s_start[0]}, Ps = {self.s_start[1]}, Pz = {self.s_start[2]}",
            f"models: gamma '{self.gamma_mode.value}', trajectory '{self.trajectory_mode.value}'",
            sep,
        ])
