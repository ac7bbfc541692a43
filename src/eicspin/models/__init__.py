"""
EICSpin Pydantic Models Package

This package contains the Pydantic base model and physics validators used
for configurations and results of the EICSpin tracking framework.
"""

from .base import PhysicsBaseModel
from .validators import (
    validate_energy_range, validate_spin_direction, validate_overvoltage,
    validate_particle_ids, validate_element_name
)

__all__ = [
    'PhysicsBaseModel',
    'validate_energy_range',
    'validate_spin_direction',
    'validate_overvoltage',
    'validate_particle_ids',
    'validate_element_name',
]
