"""
Test suite for ring elements and the lattice provider.
"""

import math
from itertools import islice

import numpy as np
import pytest
from pydantic import ValidationError

from eicspin.constants import C_GAMMA, E_REST
from eicspin.machine_portal import (
    Bend, Drift, Element, ElementKind, Kicker, Lattice, Quadrupole, RFCavity, Sextupole, Solenoid,
    create_element_by_type
)
from eicspin.optics import OrbitFunction, OrbitPoint

from conftest import make_bend_ring


class TestElements:

    def test_element_kinds(self):
        assert Bend(name="B", length=1.0, angle=0.1).kind == ElementKind.DIPOLE
        assert RFCavity(name="C").kind == ElementKind.CAVITY
        assert Drift(name="D", length=1.0).kind == ElementKind.OTHER

    def test_invalid_elements(self):
        with pytest.raises(ValidationError):
            Drift(name="D", length=0.0)
        with pytest.raises(ValidationError):
            Bend(name="B", length=1.0, angle=0.0)
        with pytest.raises(ValidationError):
            Quadrupole(name="Q", length=1.0, k1=5000.0)
        with pytest.raises(ValidationError):
            Drift(name="D 1", length=1.0)
        with pytest.raises(ValidationError):
            Drift(name="D", length=1.0, type="Bend")

    def test_bend_field(self):
        bend = Bend(name="B", length=2.0, angle=0.1, k1=0.5)
        assert bend.radius == pytest.approx(20.0)
        field = bend.integrated_field(OrbitPoint(1e-3, 2e-3))
        assert np.allclose(field, [0.5 * 2e-3 * 2.0, 0.0, 0.1 + 0.5 * 1e-3 * 2.0])

    def test_bend_edge_field(self):
        bend = Bend(name="B", length=2.0, angle=0.1, e1=0.05, e2=0.05)
        assert np.allclose(bend.edge_field(OrbitPoint(0.0, 0.0)), 0.0)
        field = bend.edge_field(OrbitPoint(0.0, 1e-3))
        assert field[0] == pytest.approx(1e-3 * 2 * math.tan(0.05) / 20.0)

    def test_quadrupole_field(self):
        quad = Quadrupole(name="Q", length=0.5, k1=1.2)
        assert np.allclose(quad.integrated_field(OrbitPoint(0.0, 0.0)), 0.0)
        assert np.allclose(quad.magnetic_field(OrbitPoint(1e-3, -2e-3)), [-2.4e-3, 0.0, 1.2e-3])

    def test_sextupole_field(self):
        sext = Sextupole(name="S", length=0.2, k2=10.0)
        assert np.allclose(sext.magnetic_field(OrbitPoint(1e-3, 2e-3)), [2e-5, 0.0, -1.5e-5])

    def test_thin_kicker(self):
        kicker = Kicker(name="K", hkick=1e-4, vkick=-2e-4)
        assert np.allclose(kicker.integrated_field(OrbitPoint(0.0, 0.0)), [-2e-4, 0.0, 1e-4])
        assert np.allclose(kicker.magnetic_field(OrbitPoint(0.0, 0.0)), 0.0)

    def test_solenoid_field(self):
        solenoid = Solenoid(name="SOL", length=2.0, ks=0.1)
        assert np.allclose(solenoid.integrated_field(OrbitPoint(0.0, 0.0)), [0.0, 0.2, 0.0])

    def test_photon_emission(self):
        bend = Bend(name="B", length=3.0, angle=0.2)
        gamma = 1.5 / E_REST
        assert bend.mean_photons(gamma) == pytest.approx(
            5 / (2 * math.sqrt(3)) * gamma * 0.2 / 137.036, rel=1e-4)
        assert bend.critical_gamma(gamma) > 0

    def test_factory(self):
        quad = create_element_by_type("Quadrupole", "Q1", 0.5, k1=0.3)
        assert isinstance(quad, Quadrupole)
        assert quad.k1 == 0.3
        marker = create_element_by_type("Marker", "M1")
        assert type(marker) is Element
        assert marker.type == "Marker"


class TestLattice:

    def test_geometry(self):
        ring = make_bend_ring(num_cells=4, bend_length=2.0, drift_length=3.0)
        assert len(ring) == 8
        assert ring.circumference == pytest.approx(20.0)
        assert ring.total_bent_length == pytest.approx(8.0)
        assert ring.count(ElementKind.DIPOLE) == 4
        assert ring.bending_radius() == pytest.approx(8.0 / (2 * math.pi))

    def test_theta(self):
        ring = make_bend_ring(num_cells=4, bend_length=2.0, drift_length=3.0)
        assert ring.theta(0.0) == 0.0
        assert ring.theta(3.0) == 0.0
        assert ring.theta(4.0) == pytest.approx(math.pi / 4)
        assert ring.theta(5.0) == pytest.approx(math.pi / 2)
        assert ring.theta(6.0) == pytest.approx(math.pi / 2)
        # periodic in the turn
        assert ring.theta(24.0) == pytest.approx(math.pi / 4)

    def test_turns(self):
        ring = make_bend_ring(num_cells=4, bend_length=2.0, drift_length=3.0)
        assert ring.turn(0.0) == 1
        assert ring.turn(45.0) == 3
        assert ring.pos_in_turn(45.0) == pytest.approx(5.0)
        assert ring.pos_of_turn(3) == pytest.approx(40.0)

    def test_elements_from(self):
        ring = make_bend_ring(num_cells=4, bend_length=2.0, drift_length=3.0)
        placed = list(islice(ring.elements_from(4.0), 9))
        assert placed[0].element.name == "B0"
        assert placed[0].begin == pytest.approx(3.0)
        assert placed[0].center == pytest.approx(4.0)
        # wraps into the second turn
        assert placed[7].element.name == "D0"
        assert placed[7].begin == pytest.approx(20.0)
        assert placed[7].turn == 2

    def test_elements_from_boundary(self):
        ring = make_bend_ring(num_cells=4, bend_length=2.0, drift_length=3.0)
        first = next(ring.elements_from(5.0))
        assert first.element.name == "D1"
        first = next(ring.elements_from(20.0))
        assert first.element.name == "D0"
        assert first.turn == 2

    def test_empty_lattice(self):
        ring = Lattice(name="empty")
        with pytest.raises(ValueError):
            next(ring.elements_from(0.0))

    def test_invalid_lattice(self):
        with pytest.raises(ValueError):
            Lattice(name="")
        with pytest.raises(TypeError):
            Lattice(name="bad", elements=["D1"])

    def test_orbit(self):
        ring = make_bend_ring(num_cells=4, bend_length=2.0, drift_length=3.0)
        assert ring.orbit(7.0) == OrbitPoint(0.0, 0.0)
        positions = np.array([0.0, 5.0, 10.0, 15.0])
        ring.closed_orbit = OrbitFunction(positions, np.full(4, 1e-3), np.zeros(4), period=20.0)
        assert ring.orbit(27.0).x == pytest.approx(1e-3)

    def test_energy_loss(self, bend_ring):
        gamma = 1.5 / E_REST
        radius = bend_ring.bending_radius()
        expected = C_GAMMA * 1.5**4 / radius
        assert bend_ring.energy_loss_per_turn(gamma) == pytest.approx(expected)

    def test_machine_parameters(self, bend_ring):
        params = bend_ring.machine_parameters(1.5 / E_REST)
        assert params['q'] == 0.0
        assert params['h'] == 0.0
        assert params['alphac'] == 0.06
        assert params['Jz'] == 2.0
        bend_ring.add_element(RFCavity(name="CAV", voltage=1e-3, harmonic=100))
        params = bend_ring.machine_parameters(1.5 / E_REST)
        assert params['q'] == pytest.approx(1e-3 / bend_ring.energy_loss_per_turn(1.5 / E_REST))
        assert params['h'] == 100.0
