from typing import ClassVar
from pydantic import Field, field_validator

from .element import Element, ElementKind


class RFCavity(Element):
    """RF Cavity element with Pydantic validation.

    An RF cavity restores the energy lost by synchrotron radiation and
    provides longitudinal focusing. Its magnetic field seen by the spin is
    neglected.
    """
    type: str = Field(default='RFCavity', description="Element type")
    voltage: float = Field(default=0.0, ge=0.0, description="Peak voltage in GV (energy gain in GeV per unit charge)")
    harmonic: int = Field(default=0, ge=0, description="Harmonic number of the RF frequency")

    kind: ClassVar[ElementKind] = ElementKind.CAVITY

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        """Validate element type is correct."""
        if v != 'RFCavity':
            raise ValueError("Type of an RFCavity element must be 'RFCavity'.")
        return v
