# Implementation of the drift element for the EICSpin machine portal.
from pydantic import Field, field_validator

from eicspin.machine_portal.element import Element


class Drift(Element):
    """Field-free drift space."""

    type: str = Field(default='Drift', description="Element type (always 'Drift')")
    length: float = Field(gt=0.0, description="Drift length must be positive")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v != 'Drift':
            raise ValueError("Type of a drift element must be 'Drift'.")
        return v
