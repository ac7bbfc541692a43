# Define elements of the storage ring as seen by the spin tracking.
# Every element provides its magnetic field at a transverse orbit position,
# normalized to the beam rigidity (B / (B rho)_0, unit 1/m), in the beam
# frame components (x, s, z).
# Current element types:
## Bend : Dipole bending magnet, kind 'dipole'
## RFCavity : RF cavity element, kind 'cavity'
## Drift, Quadrupole, Sextupole, Kicker, Solenoid : kind 'other'

from enum import Enum
from typing import ClassVar
from pydantic import Field, field_validator
import numpy as np

from eicspin.models.base import PhysicsBaseModel
from eicspin.models.validators import validate_element_name
from eicspin.optics import OrbitPoint


class ElementKind(str, Enum):
    """Element classes distinguished by the tracking."""
    DIPOLE = "dipole"
    CAVITY = "cavity"
    OTHER = "other"


class Element(PhysicsBaseModel):
    """Base class for ring elements."""

    name: str = Field(..., min_length=1, description="Element name")
    type: str = Field(default='Element', description="Element type")
    length: float = Field(default=0.0, ge=0.0, description="Element length in m")

    kind: ClassVar[ElementKind] = ElementKind.OTHER

    @field_validator('name')
    @classmethod
    def validate_name_format(cls, v):
        """Validate element name follows naming conventions."""
        return validate_element_name(v)

    def magnetic_field(self, orbit: OrbitPoint) -> np.ndarray:
        """Normalized field (x, s, z) in 1/m at the given orbit position."""
        return np.zeros(3)

    def integrated_field(self, orbit: OrbitPoint) -> np.ndarray:
        """Normalized field integrated over the element length (x, s, z), dimensionless."""
        return self.magnetic_field(orbit) * self.length

    def __str__(self):
        return f"{self.type}(name={self.name}, length={self.length})"
