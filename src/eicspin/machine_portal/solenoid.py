# Implementation of the solenoid element for the EICSpin machine portal.
from pydantic import Field, field_validator
import numpy as np

from eicspin.machine_portal.element import Element
from eicspin.optics import OrbitPoint


class Solenoid(Element):
    """Solenoid with a longitudinal normalized field ks in 1/m."""
    type: str = Field(default='Solenoid', description="Element type")
    ks: float = Field(default=0.0, description="Normalized longitudinal field in 1/m")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v != 'Solenoid':
            raise ValueError("Type of a solenoid element must be 'Solenoid'.")
        return v

    def magnetic_field(self, orbit: OrbitPoint) -> np.ndarray:
        return np.array([0.0, self.ks, 0.0])
