# Implementation of the kicker (orbit corrector) element for the EICSpin machine portal.
from pydantic import Field, field_validator
import numpy as np

from eicspin.machine_portal.element import Element
from eicspin.optics import OrbitPoint


class Kicker(Element):
    """Orbit corrector with integrated kick angles.

    Kicks are given in rad and are independent of the length, so thin
    (zero-length) correctors are supported.
    """
    type: str = Field(default='Kicker', description="Element type")
    hkick: float = Field(default=0.0, description="Horizontal kick angle in rad")
    vkick: float = Field(default=0.0, description="Vertical kick angle in rad")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        """Validate element type is correct."""
        if v != 'Kicker':
            raise ValueError("Type of a Kicker element must be 'Kicker'.")
        return v

    @field_validator('hkick', 'vkick')
    @classmethod
    def validate_kick_angle(cls, v):
        if abs(v) > 0.1:
            raise ValueError(f"Kick angle {v} rad seems unreasonably large (>0.1 rad)")
        return v

    def integrated_field(self, orbit: OrbitPoint) -> np.ndarray:
        # vertical kick from radial field, horizontal kick from vertical field
        return np.array([self.vkick, 0.0, self.hkick])

    def magnetic_field(self, orbit: OrbitPoint) -> np.ndarray:
        if self.length == 0.0:
            return np.zeros(3)
        return self.integrated_field(orbit) / self.length
