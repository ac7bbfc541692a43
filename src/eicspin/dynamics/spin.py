"""
Spin transport through field segments.

The spin precession across one element follows the Thomas-BMT equation in
the beam frame (x radial, s longitudinal, z vertical) relative to the
rotating reference frame of the design orbit. The field integral of an
element defines the precession vector; the finite rotation is computed
exactly with Rodrigues' formula.
"""

from typing import Dict, Iterator, Tuple
import math

import numpy as np
import pandas as pd

from ..constants import A_GYRO

# precession angles below this threshold are treated as no rotation
MIN_AMPLITUDE = 1e-15


def precession_vector(field, agamma: float, a_gyro: float = A_GYRO) -> np.ndarray:
    """
    Precession vector of the Thomas-BMT equation for a field integral.

    Transverse fields precess the spin with the spin tune agamma (plus the
    orbit deflection for radial fields), longitudinal fields only with the
    anomaly a, i.e. suppressed by a factor gamma.

    Args:
        field: Integrated normalized field (Bx, Bs, Bz), dimensionless
        agamma: Spin tune a * gamma of the particle
        a_gyro: Gyromagnetic anomaly

    Returns:
        Rotation vector, direction = axis, magnitude = angle in rad
    """
    bx, bs, bz = field
    return np.array([(1.0 + agamma) * bx, (1.0 + a_gyro) * bs, agamma * bz])


def rotation_matrix(omega) -> np.ndarray:
    """
    Rotation matrix for the rotation vector ``omega`` (Rodrigues' formula).

    Returns the identity if the rotation angle is below ``MIN_AMPLITUDE``.
    """
    omega = np.asarray(omega, dtype=float)
    angle = float(np.linalg.norm(omega))
    if angle < MIN_AMPLITUDE:
        return np.identity(3)

    n = omega / angle
    c = math.cos(angle)
    s = math.sin(angle)
    cross = np.array([
        [0.0, -n[2], n[1]],
        [n[2], 0.0, -n[0]],
        [-n[1], n[0], 0.0],
    ])
    return np.outer(n, n) * (1.0 - c) + c * np.identity(3) + s * cross


def transport(spin, field, agamma: float, a_gyro: float = A_GYRO) -> np.ndarray:
    """Advance ``spin`` across one field segment."""
    return rotation_matrix(precession_vector(field, agamma, a_gyro)) @ spin


class SpinMotion:
    """
    Spin vectors of one particle (or an ensemble average) versus time.

    Samples are stored in insertion order, which is chronological during
    tracking. Two motions can be added if they share identical sample
    times; division by a number scales all spins, so the polarization of an
    ensemble is ``sum(motions) / n``.

    The spin norm is not renormalized, ``norm_drift`` reports the
    accumulated numerical deviation from unit length.
    """

    def __init__(self):
        self._spins: Dict[float, np.ndarray] = {}

    def add(self, t: float, spin) -> None:
        """Append the spin at time ``t`` in s (later than all stored samples)."""
        if self._spins and t <= next(reversed(self._spins)):
            raise ValueError(f"Sample time {t} s is not after the last stored sample")
        self._spins[float(t)] = np.array(spin, dtype=float)

    def __len__(self) -> int:
        return len(self._spins)

    def __iter__(self) -> Iterator[Tuple[float, np.ndarray]]:
        return iter(self._spins.items())

    def __getitem__(self, t: float) -> np.ndarray:
        return self._spins[t]

    @property
    def times(self) -> Tuple[float, ...]:
        return tuple(self._spins)

    def last(self) -> np.ndarray:
        return next(reversed(self._spins.values()))

    def same_times(self, other: "SpinMotion") -> bool:
        return self.times == other.times

    def __add__(self, other: "SpinMotion") -> "SpinMotion":
        if not self.same_times(other):
            raise ValueError("Cannot add spin motions with different sample times")
        result = SpinMotion()
        for (t, s1), s2 in zip(self._spins.items(), other._spins.values()):
            result._spins[t] = s1 + s2
        return result

    def __truediv__(self, value: float) -> "SpinMotion":
        result = SpinMotion()
        for t, s in self._spins.items():
            result._spins[t] = s / value
        return result

    def times_array(self) -> np.ndarray:
        return np.fromiter(self._spins.keys(), dtype=float, count=len(self._spins))

    def as_array(self) -> np.ndarray:
        """Spins as array of shape (n, 3)."""
        if not self._spins:
            return np.empty((0, 3))
        return np.vstack(list(self._spins.values()))

    def to_frame(self) -> pd.DataFrame:
        """Table with columns t, Sx, Ss, Sz and the spin norm |S|."""
        spins = self.as_array()
        return pd.DataFrame({
            't': self.times_array(),
            'Sx': spins[:, 0],
            'Ss': spins[:, 1],
            'Sz': spins[:, 2],
            '|S|': np.linalg.norm(spins, axis=1),
        })

    def norm_drift(self) -> float:
        """Maximum deviation of the spin norm from 1."""
        if not self._spins:
            return 0.0
        return float(np.max(np.abs(np.linalg.norm(self.as_array(), axis=1) - 1.0)))
