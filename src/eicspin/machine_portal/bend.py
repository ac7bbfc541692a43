# Implementation of the bend element for the EICSpin machine portal.
from typing import ClassVar
from pydantic import Field, field_validator
import math
import numpy as np

from eicspin.constants import E_REST, FINE_STRUCTURE, HBAR_C
from eicspin.machine_portal.element import Element, ElementKind
from eicspin.optics import OrbitPoint


class Bend(Element):
    """Sector dipole, optionally with a gradient (combined function) and edge angles.

    The guide field is vertical with normalized strength 1/R, where the
    bending radius R = length / angle.
    """
    type: str = Field(default='Bend', description="Element type")
    length: float = Field(gt=0.0, description="Arc length in m")
    angle: float = Field(description="Bending angle in rad")
    k1: float = Field(default=0.0, description="Normalized gradient in 1/m^2")
    e1: float = Field(default=0.0, description="Entry edge angle in rad")
    e2: float = Field(default=0.0, description="Exit edge angle in rad")

    kind: ClassVar[ElementKind] = ElementKind.DIPOLE

    @field_validator('angle')
    @classmethod
    def validate_bending_angle(cls, v):
        """A bend without bending angle is not a dipole."""
        if v == 0.0:
            raise ValueError("Bending angle of a Bend element must be non-zero.")
        if abs(v) > 2 * math.pi:
            raise ValueError(f"Bending angle {v} rad seems unreasonably large (>2π)")
        return v

    @field_validator('e1', 'e2')
    @classmethod
    def validate_edge_angles(cls, v):
        if abs(v) >= math.pi / 2:
            raise ValueError(f"Edge angle {v} rad must be smaller than π/2")
        return v

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        """Validate element type is correct."""
        if v != 'Bend':
            raise ValueError("Type of a bend element must be 'Bend'.")
        return v

    @property
    def radius(self) -> float:
        """Signed bending radius in m."""
        return self.length / self.angle

    def magnetic_field(self, orbit: OrbitPoint) -> np.ndarray:
        return np.array([self.k1 * orbit.z, 0.0, 1.0 / self.radius + self.k1 * orbit.x])

    def edge_field(self, orbit: OrbitPoint) -> np.ndarray:
        """Integrated radial fringe field of both pole faces, proportional to the vertical offset."""
        bx = orbit.z * (math.tan(self.e1) + math.tan(self.e2)) / self.radius
        return np.array([bx, 0.0, 0.0])

    def mean_photons(self, gamma: float) -> float:
        """Mean number of photons emitted by one electron crossing the magnet."""
        return 5.0 / (2.0 * math.sqrt(3.0)) * FINE_STRUCTURE * gamma * abs(self.angle)

    def critical_gamma(self, gamma: float) -> float:
        """Critical photon energy in units of the electron rest energy."""
        return 1.5 * HBAR_C * gamma**3 / abs(self.radius) / E_REST
