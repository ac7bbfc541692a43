"""
Test suite for the resonance strength estimation.
"""

import cmath
import math

import numpy as np
import pytest

from eicspin.constants import A_GYRO
from eicspin.machine_portal import Bend, Drift, Kicker, Lattice
from eicspin.optics import OrbitFunction, PeriodicTable
from eicspin.simulators import (
    AggregationError, Configuration, ConfigurationError, InMemorySimTool, ParticleResStrengths,
    ResonanceCacheError, ResonanceStrengthCache, ResonanceStrengths
)

from conftest import make_bend_ring, make_solenoid_ring


def turn_coherence(agamma, num_turns):
    """Magnitude of the per-turn phase sum, normalized to the number of turns."""
    return abs(sum(cmath.exp(2j * math.pi * agamma * k) for k in range(num_turns))) / num_turns


def particle(lattice, **kwargs):
    task = ParticleResStrengths(0, Configuration(**kwargs))
    task.set_model(lattice)
    return task


class TestResonanceStrengthCache:

    def test_calculated_once(self):
        calls = []

        def calculate(agamma):
            calls.append(agamma)
            return complex(agamma, -agamma)

        cache = ResonanceStrengthCache(calculate)
        assert cache.get(2.5) == complex(2.5, -2.5)
        assert cache.get(2.5) == complex(2.5, -2.5)
        assert calls == [2.5]
        assert 2.5 in cache
        assert cache[2.5] == complex(2.5, -2.5)

    def test_missing_value(self):
        cache = ResonanceStrengthCache(lambda agamma: 0j)
        with pytest.raises(ResonanceCacheError):
            cache[1.0]
        with pytest.raises(KeyError):
            cache[1.0]
        assert len(cache) == 0

    def test_sorted_frame(self):
        cache = ResonanceStrengthCache(lambda agamma: complex(3.0, 4.0) * agamma)
        for agamma in (3.0, 1.0, 2.0):
            cache.get(agamma)
        assert list(cache) == [1.0, 2.0, 3.0]
        frame = cache.to_frame()
        assert list(frame.columns) == ['agamma', 'real', 'imag', 'abs']
        assert list(frame['agamma']) == [1.0, 2.0, 3.0]
        assert frame['abs'].iloc[0] == pytest.approx(5.0)


class TestParticleResStrengths:

    def test_field_free_ring(self):
        ring = Lattice(name="drifts", elements=[Drift(name=f"D{i}", length=5.0) for i in range(4)])
        task = particle(ring, num_turns=3)
        assert task.calculate(0.5) == 0j

    def test_solenoid(self):
        """A longitudinal field gives (1 + a) ks L / (2 pi) per turn, summed with the turn phase."""
        ks, length = 0.05, 2.0
        task = particle(make_solenoid_ring(ks=ks, length=length), num_turns=4)
        expected = (1 + A_GYRO) * ks * length / (2 * math.pi)
        for agamma in (0.3, 1.0, 2.71):
            assert abs(task.calculate(agamma)) == pytest.approx(expected * turn_coherence(agamma, 4))
        # coherent at integer spin tunes
        assert abs(task.calculate(2.0)) == pytest.approx(expected)

    def test_vertical_kick_coherent_at_integer(self):
        ring = make_bend_ring(num_cells=8)
        ring.add_element(Kicker(name="KV", vkick=1e-4))
        task = particle(ring, num_turns=5)
        assert abs(task.calculate(3.0)) == pytest.approx((1 + 3.0) * 1e-4 / (2 * math.pi))

    def test_vertical_kick_cancels_at_half_integer(self):
        ring = make_bend_ring(num_cells=8)
        ring.add_element(Kicker(name="KV", vkick=1e-4))
        task = particle(ring, num_turns=2)
        assert abs(task.calculate(3.5)) == pytest.approx(0.0, abs=1e-15)

    def test_dipole_integral_limit(self):
        """At agamma = 0 the dipole integral reduces to the field integral."""
        z0, k1 = 1e-3, 0.02
        elements = []
        for i in range(4):
            elements.append(Drift(name=f"D{i}", length=5.0))
            elements.append(Bend(name=f"B{i}", length=3.0, angle=math.pi / 2, k1=k1))
        ring = Lattice(name="combined", elements=elements)
        positions = np.linspace(0.0, ring.circumference, 9)
        ring.closed_orbit = OrbitFunction(positions, np.zeros_like(positions), np.full_like(positions, z0),
                                          period=ring.circumference)
        task = particle(ring, num_turns=1)
        expected = 4 * k1 * z0 * 3.0 / (2 * math.pi)
        assert task.calculate(0.0) == pytest.approx(complex(expected, 0.0))
        assert task.calculate(1e-9) == pytest.approx(task.calculate(0.0), rel=1e-5)

    def test_run_fills_scan(self):
        task = particle(make_solenoid_ring(), agamma_min=1.0, agamma_max=1.2, dagamma=0.1)
        assert task.num_turns == 10
        assert len(task.scan) == 3
        assert task.progress() == 0.0
        task.run()
        assert len(task.cache) == 3
        assert task.progress() == 1.0


class TestResonanceStrengths:

    def test_ensemble_average(self):
        ring = make_solenoid_ring()
        config = Configuration(num_particles=3, agamma_min=1.0, agamma_max=1.2, dagamma=0.1)
        res = ResonanceStrengths(config, num_threads=2)
        res.set_model(ring)
        results = res.start()
        assert results.num_successful == 3
        frame = res.to_frame()
        assert len(frame) == 3
        single = res.tasks[0].cache
        for agamma in config.agamma_scan(ring.circumference):
            assert res[agamma] == pytest.approx(single[agamma])

    def test_lookup_and_lazy_calculation(self):
        res = ResonanceStrengths(Configuration(num_turns=2, agamma_min=1.0, agamma_max=1.0))
        res.set_model(make_solenoid_ring())
        res.start()
        with pytest.raises(ResonanceCacheError):
            res[5.0]
        value = res.get(5.0)
        assert res[5.0] == value

    def test_get_single(self):
        ring = make_solenoid_ring(ks=0.05, length=2.0)
        res = ResonanceStrengths(Configuration(num_turns=4))
        res.set_model(ring)
        value = res.get_single(1.7)
        assert res.started
        expected = (1 + A_GYRO) * 0.05 * 2.0 / (2 * math.pi) * turn_coherence(1.7, 4)
        assert abs(value) == pytest.approx(expected)

    def test_failed_particle_excluded(self):
        ring = make_solenoid_ring()
        positions = np.linspace(0.0, ring.circumference, 5)[:-1]
        table = PeriodicTable(positions, np.zeros((positions.size, 2)), period=ring.circumference)
        simtool = InMemorySimTool(trajectory_tables={0: table})
        config = Configuration(num_particles=2, trajectory_mode="simtool", num_turns=2,
                               agamma_min=1.0, agamma_max=2.0, dagamma=0.5)
        res = ResonanceStrengths(config, num_threads=2)
        res.set_model(ring, simtool)
        results = res.start()
        assert results.num_successful == 1
        assert list(results.errors) == [1]
        assert len(res.to_frame()) == 3

    def test_all_failed(self):
        config = Configuration(num_particles=2, trajectory_mode="simtool", num_turns=2,
                               agamma_min=1.0, agamma_max=1.0)
        res = ResonanceStrengths(config)
        res.set_model(make_solenoid_ring(), InMemorySimTool())
        results = res.start()
        assert not results.success
        with pytest.raises(AggregationError):
            res.get(1.0)

    def test_unknown_number_of_turns(self):
        res = ResonanceStrengths(Configuration(agamma_min=1.0, agamma_max=1.0))
        res.set_model(make_solenoid_ring())
        with pytest.raises(ConfigurationError):
            res.start()
