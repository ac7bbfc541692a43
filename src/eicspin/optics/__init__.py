"""
Optics data structures for EICSpin.

Package-level standard data structures for position-dependent beam
quantities such as the closed orbit. Any lattice or simulation-tool
provider can populate these structures.
"""

from .table import OrbitPoint, PeriodicTable, OrbitFunction

__all__ = [
    'OrbitPoint',
    'PeriodicTable',
    'OrbitFunction',
]
