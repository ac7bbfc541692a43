# Implementation of the sextupole element for the EICSpin machine portal.
from pydantic import Field, field_validator
import numpy as np

from eicspin.machine_portal.element import Element
from eicspin.optics import OrbitPoint


class Sextupole(Element):
    """Sextupole element with a normalized strength k2 in 1/m^3."""
    type: str = Field(default='Sextupole', description="Element type")
    k2: float = Field(default=0.0, description="Normalized sextupole strength in 1/m^3")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v != 'Sextupole':
            raise ValueError("Type of a sextupole element must be 'Sextupole'.")
        return v

    def magnetic_field(self, orbit: OrbitPoint) -> np.ndarray:
        return np.array([
            self.k2 * orbit.x * orbit.z,
            0.0,
            0.5 * self.k2 * (orbit.x**2 - orbit.z**2),
        ])
