"""
Position-indexed periodic functions for beam optics.

Package-level standard data structures that describe a quantity sampled
along the longitudinal position ``s``: the closed orbit of the ring, or the
per-particle energy and trajectory tables delivered by an external
simulation tool. Any provider can populate these structures.
"""

from typing import NamedTuple, Optional, Union
import numpy as np
from scipy.interpolate import Akima1DInterpolator


class OrbitPoint(NamedTuple):
    """Transverse position (x horizontal, z vertical) in m."""
    x: float
    z: float


class PeriodicTable:
    """
    Tabulated function of longitudinal position with periodic continuation.

    Positions must be strictly increasing. The period defaults to the table
    span plus one mean sampling step, i.e. the table is assumed to hold one
    full period without repeating its first sample at the end.

    Values may be scalar per position (shape ``(n,)``) or vectors
    (shape ``(n, k)``).
    """

    def __init__(self, positions, values, period: Optional[float] = None):
        self.positions = np.asarray(positions, dtype=float)
        self.values = np.asarray(values, dtype=float)

        if self.positions.ndim != 1 or self.positions.size == 0:
            raise ValueError("Positions must be a non-empty 1-D array")
        if self.values.shape[0] != self.positions.size:
            raise ValueError(
                f"Values must have the same length as positions (got {self.values.shape[0]}, "
                f"expected {self.positions.size})"
            )
        if np.any(np.diff(self.positions) <= 0):
            raise ValueError("Positions must be strictly increasing")

        n = self.positions.size
        span = self.positions[-1] - self.positions[0]
        if period is None:
            period = span * n / (n - 1) if n > 1 else 1.0
        if period <= 0 or period < span:
            raise ValueError(f"Period {period} must be positive and cover the table span {span}")
        self.period = float(period)
        self._interpolator = None

    def __len__(self) -> int:
        return self.positions.size

    @property
    def start(self) -> float:
        return float(self.positions[0])

    def wrap(self, pos: float) -> float:
        """Map a position into the first period of the table."""
        return self.start + (pos - self.start) % self.period

    def _build_interpolator(self) -> Akima1DInterpolator:
        pos = self.positions
        val = self.values
        # a sample exactly one period after the first one duplicates it
        if pos.size > 1 and pos[-1] - pos[0] >= self.period - 1e-12 * self.period:
            pos = pos[:-1]
            val = val[:-1]
        k = min(3, pos.size)
        xs = np.concatenate([pos[-k:] - self.period, pos, pos[:k] + self.period])
        ys = np.concatenate([val[-k:], val, val[:k]], axis=0)
        return Akima1DInterpolator(xs, ys, axis=0)

    def interp(self, pos: float) -> Union[float, np.ndarray]:
        """Periodic Akima interpolation at ``pos``."""
        if self.positions.size == 1:
            return self.values[0]
        if self._interpolator is None:
            self._interpolator = self._build_interpolator()
        return self._interpolator(self.wrap(pos))

    def at_or_before(self, pos: float) -> Union[float, np.ndarray]:
        """Value of the last sample at or before ``pos`` (periodic, no interpolation)."""
        idx = np.searchsorted(self.positions, self.wrap(pos), side='right') - 1
        return self.values[max(int(idx), 0)]


class OrbitFunction(PeriodicTable):
    """Periodic transverse orbit (x, z) as function of position."""

    def __init__(self, positions, x, z, period: Optional[float] = None):
        super().__init__(positions, np.column_stack([x, z]), period)

    @classmethod
    def from_table(cls, table: PeriodicTable) -> "OrbitFunction":
        values = np.atleast_2d(table.values)
        if values.shape[1] != 2:
            raise ValueError("Trajectory table must hold two columns (x, z)")
        return cls(table.positions, values[:, 0], values[:, 1], period=table.period)

    def get(self, pos: float) -> OrbitPoint:
        value = self.interp(pos)
        return OrbitPoint(float(value[0]), float(value[1]))
