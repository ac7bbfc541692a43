"""
EICSpin dynamics - spin transport, radiation, longitudinal and transverse particle motion
"""

from .spin import MIN_AMPLITUDE, SpinMotion, precession_vector, rotation_matrix, transport
from .radiation import PhotonSpectrumSampler, SynchrotronRadiationModel, default_sampler, photon_spectrum
from .longitudinal import (
    GammaModel, LinearGamma, SimtoolGamma, SimtoolPlusLinearGamma, SimtoolNoInterpolationGamma,
    OffsetGamma, OscillationGamma, RadiationGamma, create_gamma_model
)
from .trajectory import (
    TrajectoryProvider, ClosedOrbitTrajectory, SimtoolTrajectory, OscillationTrajectory, create_trajectory
)

__all__ = [
    'MIN_AMPLITUDE',
    'SpinMotion',
    'precession_vector',
    'rotation_matrix',
    'transport',
    'PhotonSpectrumSampler',
    'SynchrotronRadiationModel',
    'default_sampler',
    'photon_spectrum',
    'GammaModel',
    'LinearGamma',
    'SimtoolGamma',
    'SimtoolPlusLinearGamma',
    'SimtoolNoInterpolationGamma',
    'OffsetGamma',
    'OscillationGamma',
    'RadiationGamma',
    'create_gamma_model',
    'TrajectoryProvider',
    'ClosedOrbitTrajectory',
    'SimtoolTrajectory',
    'OscillationTrajectory',
    'create_trajectory',
]
