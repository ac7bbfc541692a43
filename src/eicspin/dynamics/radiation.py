"""
Stochastic synchrotron radiation.

Photon energies are drawn from the normalized synchrotron photon-number
spectrum, the number of photons emitted in a dipole from a Poisson
distribution. All draws of one particle come from a single generator seeded
with ``seed + particle_id``, so results are reproducible independent of the
thread executing the particle.
"""

from functools import lru_cache
import logging

import numpy as np

logger = logging.getLogger(__name__)


def photon_spectrum(u) -> np.ndarray:
    """
    Unnormalized photon-number spectrum dN/du at u = E/E_crit.

    Evaluates the integral of K_5/3 from u to infinity via its hyperbolic
    representation, integral_0^inf exp(-u cosh t) cosh(5t/3) / cosh(t) dt,
    summed with a fixed step of 0.4.
    """
    u = np.atleast_1d(np.asarray(u, dtype=float))
    h = 0.4
    t = h * np.arange(1, 201)
    with np.errstate(over='ignore', under='ignore'):
        terms = np.exp(-np.outer(u, np.cosh(t))) * (np.cosh(5.0 / 3.0 * t) / np.cosh(t))
    return np.exp(-u) / 2.0 + terms.sum(axis=1)


class PhotonSpectrumSampler:
    """
    Inverse-CDF sampler of normalized photon energies u = E/E_crit.

    The spectrum is tabulated on a geometric grid from ``u_min`` to
    ``u_max`` and sampled as a piecewise linear density between the grid
    points. The sampler holds no random state and can be shared between
    particles.
    """

    def __init__(self, u_min: float = 1e-10, u_max: float = 10.0, points_per_octave: int = 16):
        if not 0 < u_min < u_max:
            raise ValueError(f"Invalid spectrum range [{u_min}, {u_max}]")
        num = int(np.floor(np.log2(u_max / u_min) * points_per_octave + 1e-9)) + 1
        self.u = u_min * 2.0 ** (np.arange(num) / points_per_octave)
        self.weights = photon_spectrum(self.u)

        self._widths = np.diff(self.u)
        areas = 0.5 * (self.weights[:-1] + self.weights[1:]) * self._widths
        self._cdf = np.concatenate([[0.0], np.cumsum(areas)])

    def __len__(self) -> int:
        return self.u.size

    def mean(self) -> float:
        """Exact mean of the tabulated piecewise linear distribution."""
        a = self.weights[:-1]
        b = self.weights[1:]
        d = self._widths
        u0 = self.u[:-1]
        first_moment = d * (a * (u0 + d / 2.0) + (b - a) * (u0 / 2.0 + d / 3.0))
        return float(first_moment.sum() / self._cdf[-1])

    def sample(self, rng: np.random.Generator, size=None):
        """Draw normalized photon energies."""
        r = rng.random(size) * self._cdf[-1]
        idx = np.clip(np.searchsorted(self._cdf, r, side='right') - 1, 0, self._widths.size - 1)
        r = r - self._cdf[idx]
        a = self.weights[idx]
        b = self.weights[idx + 1]
        d = self._widths[idx]
        # inverse of the integrated linear density a*t + (b-a)*t^2/(2d) on the segment
        root = np.sqrt(np.maximum(a * a + 2.0 * (b - a) * r / d, 0.0))
        return self.u[idx] + 2.0 * r / (a + root)


@lru_cache(maxsize=None)
def default_sampler() -> PhotonSpectrumSampler:
    """Photon energy sampler shared by all radiation models."""
    sampler = PhotonSpectrumSampler()
    logger.debug(f"Photon spectrum tabulated at {len(sampler)} points")
    return sampler


class SynchrotronRadiationModel:
    """
    Energy loss of one particle by stochastic photon emission.

    Args:
        seed: Seed of the particle's random generator (global seed + particle id)
        sampler: Photon energy sampler, the shared default if omitted
    """

    def __init__(self, seed: int = 1, sampler: PhotonSpectrumSampler = None):
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.sampler = sampler if sampler is not None else default_sampler()

    def photon_energies(self, size=None):
        return self.sampler.sample(self.rng, size)

    def radiated_energy(self, element, gamma0: float, gamma: float) -> float:
        """
        Energy radiated crossing ``element``, in units of gamma.

        Args:
            element: Dipole providing ``mean_photons(gamma)`` and ``critical_gamma(gamma)``
            gamma0: Reference energy, defines the critical photon energy
            gamma: Current particle energy

        Returns:
            Total radiated energy (positive, to be subtracted from gamma)
        """
        num = self.rng.poisson(element.mean_photons(gamma))
        if num == 0:
            return 0.0
        critical = element.critical_gamma(gamma0)
        g = gamma
        for u in self.photon_energies(num):
            g -= u * critical * (g / gamma0) ** 2
        return gamma - g
