"""
Custom validators for physics-specific constraints in EICSpin.

This module provides specialized validation functions for spin tracking
parameters, ensuring physical correctness and reasonable value ranges.
"""

from typing import Optional, List, Sequence
import math


def validate_energy_range(energy: float, min_energy: float = 1e-6, max_energy: float = 1e6) -> float:
    """
    Validate beam energy is in reasonable range.

    Args:
        energy: Beam energy in GeV
        min_energy: Minimum allowed energy (default: 1 keV)
        max_energy: Maximum allowed energy (default: 1 PeV)

    Returns:
        Validated energy

    Raises:
        ValueError: If energy is outside reasonable range
    """
    if not (min_energy <= energy <= max_energy):
        raise ValueError(f"Energy {energy} GeV outside reasonable range ({min_energy} - {max_energy} GeV)")
    return energy


def validate_spin_direction(spin: Sequence[float], tolerance: float = 1e-6) -> List[float]:
    """
    Validate an initial spin direction.

    Args:
        spin: Spin vector components (x, s, z)
        tolerance: Allowed deviation of the magnitude from one

    Returns:
        Validated spin as list of floats

    Raises:
        ValueError: If the vector has not three components or is not a unit vector
    """
    if len(spin) != 3:
        raise ValueError(f"Spin direction must have 3 components (x, s, z), got {len(spin)}")
    norm = math.sqrt(sum(c * c for c in spin))
    if abs(norm - 1.0) > tolerance:
        raise ValueError(f"Spin direction must be a unit vector, |s| = {norm:.6f}")
    return [float(c) for c in spin]


def validate_overvoltage(q: float) -> float:
    """
    Validate the RF overvoltage factor.

    Zero means "not set" and is accepted; any other value must exceed one,
    otherwise no stable synchronous phase exists.
    """
    if q != 0.0 and q <= 1.0:
        raise ValueError(f"Overvoltage factor must be > 1 (or 0 for autocomplete), got {q}")
    return q


def validate_particle_ids(ids: List[int], num_particles: Optional[int] = None) -> List[int]:
    """
    Validate a list of particle ids.

    Args:
        ids: Particle ids
        num_particles: If given, ids must be smaller than this

    Returns:
        Sorted list of unique ids

    Raises:
        ValueError: If an id is negative or out of range
    """
    for i in ids:
        if i < 0:
            raise ValueError(f"Particle id {i} must be non-negative")
        if num_particles is not None and i >= num_particles:
            raise ValueError(f"Particle id {i} out of range (num_particles={num_particles})")
    return sorted(set(ids))


def validate_element_name(name: str) -> str:
    """
    Validate element name follows accelerator naming conventions.

    Args:
        name: Element name

    Returns:
        Validated name

    Raises:
        ValueError: If name doesn't follow conventions
    """
    if not name:
        raise ValueError("Element name cannot be empty")

    if len(name) > 50:
        raise ValueError(f"Element name '{name}' is too long (max 50 characters)")

    valid_chars = set('abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-.')
    if not all(c in valid_chars for c in name):
        raise ValueError(f"Element name '{name}' contains invalid characters")

    return name
