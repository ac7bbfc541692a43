"""
Physical constants used by EICSpin.

All values are derived from CODATA via ``scipy.constants``. Energies are
expressed in GeV, lengths in m, times in s.
"""

import math
from scipy import constants as sc
from scipy.constants import physical_constants

# electron rest energy in GeV
E_REST = physical_constants['electron mass energy equivalent in MeV'][0] * 1e-3

# electron gyromagnetic anomaly (g-2)/2
A_GYRO = abs(physical_constants['electron mag. mom. anomaly'][0])

# speed of light in m/s
SPEED_OF_LIGHT = sc.speed_of_light

FINE_STRUCTURE = sc.fine_structure

# classical electron radius in m
R_ELECTRON = physical_constants['classical electron radius'][0]

# hbar * c in GeV m
HBAR_C = sc.hbar * sc.speed_of_light / sc.elementary_charge * 1e-9

# quantum constant C_q = 55/(32 sqrt 3) * hbar/(m c) for the equilibrium energy spread, in m
C_Q = 55.0 / (32.0 * math.sqrt(3.0)) * sc.hbar / (sc.m_e * sc.speed_of_light)

# radiation constant C_gamma = 4 pi r_e / (3 (m c^2)^3) in m/GeV^3
C_GAMMA = 4.0 * math.pi / 3.0 * R_ELECTRON / E_REST**3

# mean normalized photon energy <u/u_c> of the synchrotron spectrum
MEAN_PHOTON_ENERGY = 8.0 / (15.0 * math.sqrt(3.0))
