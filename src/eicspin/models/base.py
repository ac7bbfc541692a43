"""
Base Pydantic models for the EICSpin polarization tracking framework.

This module provides the foundational Pydantic model class with
physics-specific configuration and utilities for type validation and
serialization of configurations and simulation results.
"""

from pydantic import BaseModel, ConfigDict
from typing import Dict, Any
import numpy as np


class PhysicsBaseModel(BaseModel):
    """
    Base Pydantic model for all physics-related data structures in EICSpin.

    This model provides:
    - Strict validation with assignment checking
    - Numpy array support for spin vectors and tables
    - Dictionary / YAML conversion helpers

    Example:
        >>> class BeamParameters(PhysicsBaseModel):
        ...     E0: float = Field(gt=0, description="Beam energy in GeV")
        ...     num_particles: int = Field(gt=0, description="Number of particles")

        >>> params = BeamParameters(E0=1.32, num_particles=100)
        >>> params.E0
        1.32
    """

    model_config = ConfigDict(
        # Validation settings
        validate_assignment=True,        # Validate on attribute assignment
        extra="forbid",                  # Reject unknown fields for safety
        use_enum_values=False,           # Keep enum members, modes are dispatched on them

        # Type handling
        arbitrary_types_allowed=True,    # Allow numpy arrays and custom types
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """
        Create instance from dictionary.

        Args:
            data: Dictionary with model field values

        Returns:
            Instance of the model
        """
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary.

        Returns:
            Dictionary representation of the model
        """
        return self.model_dump()

    def to_yaml_dict(self) -> Dict[str, Any]:
        """
        Convert to YAML-compatible dictionary.

        Enum members are written as their values and numpy types as plain
        Python numbers and lists, so the result can be passed to
        ``yaml.safe_dump``.

        Returns:
            Dictionary suitable for YAML serialization
        """
        data = self.model_dump(mode="json")

        def convert_numpy_types(obj):
            if isinstance(obj, np.ndarray):
                return obj.tolist()
            elif isinstance(obj, (np.float64, np.float32)):
                return float(obj)
            elif isinstance(obj, (np.int64, np.int32)):
                return int(obj)
            elif isinstance(obj, dict):
                return {k: convert_numpy_types(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert_numpy_types(item) for item in obj]
            return obj

        return convert_numpy_types(data)
