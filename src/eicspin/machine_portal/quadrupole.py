# Implementation of the quadrupole element for the EICSpin machine portal.
from pydantic import Field, field_validator
import numpy as np

from eicspin.machine_portal.element import Element
from eicspin.optics import OrbitPoint


class Quadrupole(Element):
    """Quadrupole element with Pydantic validation.

    A quadrupole magnet provides focusing/defocusing forces in one transverse
    direction and opposite forces in the perpendicular direction. On the
    design orbit it is field free; off axis it contributes the radial field
    that drives depolarizing resonances.
    """
    type: str = Field(default='Quadrupole', description="Element type")
    k1: float = Field(default=0.0, description="Normalized gradient in 1/m^2")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        """Validate element type is correct."""
        if v != 'Quadrupole':
            raise ValueError("Type of a quadrupole element must be 'Quadrupole'.")
        return v

    @field_validator('k1')
    @classmethod
    def validate_quadrupole_strength(cls, v):
        """Validate quadrupole strength is within reasonable limits."""
        if abs(v) > 1000.0:
            raise ValueError(f"Quadrupole strength {v} exceeds reasonable limit (±1000 1/m^2)")
        return v

    def magnetic_field(self, orbit: OrbitPoint) -> np.ndarray:
        return np.array([self.k1 * orbit.z, 0.0, self.k1 * orbit.x])
