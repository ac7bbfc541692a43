"""
Shared lattice and configuration builders for the EICSpin test suite.
"""

import math

import numpy as np
import pytest

from eicspin.machine_portal import Bend, Drift, Lattice, RFCavity, Solenoid
from eicspin.simulators import Configuration


def make_bend_ring(num_cells: int = 16, bend_length: float = 3.0, drift_length: float = 5.0,
                   name: str = "ring") -> Lattice:
    """Ring of drift-bend cells."""
    elements = []
    angle = 2 * math.pi / num_cells
    for i in range(num_cells):
        elements.append(Drift(name=f"D{i}", length=drift_length))
        elements.append(Bend(name=f"B{i}", length=bend_length, angle=angle))
    return Lattice(name=name, elements=elements, momentum_compaction=0.06, damping_partition_z=2.0)


def make_solenoid_ring(ks: float = 0.05, length: float = 2.0, drift_length: float = 10.0) -> Lattice:
    """Straight 'ring' with one solenoid and no bending."""
    elements = [
        Drift(name="D1", length=drift_length),
        Solenoid(name="SOL", length=length, ks=ks),
    ]
    return Lattice(name="solenoid_ring", elements=elements)


@pytest.fixture
def bend_ring():
    return make_bend_ring()


@pytest.fixture
def rf_ring():
    """Bend ring with a cavity of five times the energy loss per turn at 1.5 GeV."""
    ring = make_bend_ring()
    gamma = 1.5 / Configuration.E_rest
    voltage = 5.0 * ring.energy_loss_per_turn(gamma)
    ring.add_element(RFCavity(name="CAV", voltage=voltage, harmonic=214))
    return ring


@pytest.fixture
def rf_config():
    """Configuration for the RF-based gamma modes, machine parameters from the lattice."""
    return Configuration(E0=1.5, t_start=0.0, t_stop=1e-5, num_particles=4, seed=7)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)
