"""
EICSpin Machine Portal - ring lattice and element definitions
"""

from eicspin.machine_portal.element import Element, ElementKind
from eicspin.machine_portal.drift import Drift
from eicspin.machine_portal.bend import Bend
from eicspin.machine_portal.quadrupole import Quadrupole
from eicspin.machine_portal.sextupole import Sextupole
from eicspin.machine_portal.kicker import Kicker
from eicspin.machine_portal.solenoid import Solenoid
from eicspin.machine_portal.rfcavity import RFCavity
from eicspin.machine_portal.lattice import Lattice, PlacedElement, create_element_by_type

__all__ = [
    'Element',
    'ElementKind',
    'Drift',
    'Bend',
    'Quadrupole',
    'Sextupole',
    'Kicker',
    'Solenoid',
    'RFCavity',
    'Lattice',
    'PlacedElement',
    'create_element_by_type',
]
