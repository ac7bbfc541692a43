"""
Test suite for the longitudinal dynamics (gamma) models.
"""

import math
from itertools import islice

import numpy as np
import pytest

from eicspin.constants import E_REST, SPEED_OF_LIGHT
from eicspin.dynamics.longitudinal import (
    LinearGamma, OffsetGamma, OscillationGamma, RadiationGamma, SimtoolGamma,
    SimtoolNoInterpolationGamma, SimtoolPlusLinearGamma, create_gamma_model
)
from eicspin.optics import PeriodicTable
from eicspin.simulators import (
    Configuration, ConfigurationError, GammaMode, InMemorySimTool, LongitudinalInstabilityError, TrackingError
)


def advance(model, lattice, num_elements, start=0.0):
    """Feed the model with the elements following ``start``."""
    for placed in islice(lattice.elements_from(start), num_elements):
        model.update(placed, placed.end)
    return model


class TestLinearGamma:

    def test_linear_ramp(self):
        config = Configuration(E0=1.0, dE=2.0)
        model = LinearGamma(0, config)
        t = 0.25
        assert model.get(t * SPEED_OF_LIGHT) == pytest.approx(1.5 / E_REST)

    def test_clipped_at_maximum_energy(self):
        config = Configuration(E0=1.0, dE=2.0, E_max=1.2)
        model = LinearGamma(0, config)
        assert model.get(1.0 * SPEED_OF_LIGHT) == pytest.approx(1.2 / E_REST)


class TestSimtoolGamma:

    @pytest.fixture
    def simtool(self):
        positions = np.linspace(0.0, 90.0, 10)
        gamma = 3000.0 + np.sin(2 * math.pi * positions / 100.0)
        return InMemorySimTool(gamma_tables={0: PeriodicTable(positions, gamma, period=100.0)}).prepare()

    def test_interpolated_table(self, simtool):
        config = Configuration(t_start=0.0)
        model = SimtoolGamma(0, config, simtool)
        model.init(None)
        assert model.get(30.0) == pytest.approx(3000.0 + math.sin(2 * math.pi * 0.3))
        # periodic continuation
        assert model.get(230.0) == pytest.approx(model.get(30.0))
        assert 2999.0 < model.get(35.0) < 3001.0

    def test_table_relative_to_start_position(self, simtool):
        config = Configuration(t_start=1e-6, t_stop=2e-6)
        model = SimtoolGamma(0, config, simtool)
        model.init(None)
        assert model.get(config.pos_start + 30.0) == pytest.approx(3000.0 + math.sin(2 * math.pi * 0.3))

    def test_no_interpolation(self, simtool):
        config = Configuration()
        model = SimtoolNoInterpolationGamma(0, config, simtool)
        model.init(None)
        assert model.get(39.9) == pytest.approx(3000.0 + math.sin(2 * math.pi * 0.3))
        assert model.get(40.0) == pytest.approx(3000.0 + math.sin(2 * math.pi * 0.4))

    def test_plus_linear(self, simtool):
        config = Configuration(E0=1.0, dE=1.0)
        model = SimtoolPlusLinearGamma(0, config, simtool)
        model.init(None)
        t = 0.5
        pos = t * SPEED_OF_LIGHT
        expected = float(simtool.gamma_table(0).interp(pos)) + 0.5 / E_REST
        assert model.get(pos) == pytest.approx(expected)

    def test_missing_table_fails_particle(self, simtool):
        model = SimtoolGamma(5, Configuration(num_particles=6), simtool)
        with pytest.raises(TrackingError):
            model.init(None)

    def test_requires_simtool(self):
        with pytest.raises(ConfigurationError):
            SimtoolGamma(0, Configuration(), None)


class TestRadiationGamma:

    @pytest.fixture
    def config(self, rf_config, rf_ring):
        rf_config.autocomplete(rf_ring)
        return rf_config

    def test_autocompleted_parameters(self, config, rf_ring):
        assert config.q == pytest.approx(5.0)
        assert config.h == 214
        assert config.alphac == 0.06
        assert config.Jz == 2.0

    def test_initial_draw_reproducible(self, config, rf_ring):
        m1 = RadiationGamma(1, config)
        m2 = RadiationGamma(1, config)
        m1.init(rf_ring)
        m2.init(rf_ring)
        assert m1.phase == m2.phase
        assert m1.gamma == m2.gamma

    def test_initial_draw_depends_on_particle(self, config, rf_ring):
        m1 = RadiationGamma(1, config)
        m2 = RadiationGamma(2, config)
        m1.init(rf_ring)
        m2.init(rf_ring)
        assert m1.gamma != m2.gamma

    def test_initial_distribution(self, config, rf_ring):
        gamma0 = config.gamma(0.0)
        draws = []
        for particle_id in range(200):
            model = RadiationGamma(particle_id, config)
            model.init(rf_ring)
            draws.append(model.gamma)
        sigma = config.sigma_gamma(gamma0)
        assert np.mean(draws) == pytest.approx(gamma0, abs=4 * sigma / math.sqrt(200))
        assert np.std(draws) == pytest.approx(sigma, rel=0.25)

    def test_stable_over_turns(self, config, rf_ring):
        model = RadiationGamma(0, config)
        model.init(rf_ring)
        advance(model, rf_ring, 50 * len(rf_ring))
        assert abs(model.delta) < 0.01
        assert model.separatrix(model.phase) > 0

    def test_energy_loss_without_cavity_kick(self, config, rf_ring):
        model = RadiationGamma(0, config)
        model.init(rf_ring)
        start = model.gamma
        # one turn without the cavity (last element)
        advance(model, rf_ring, len(rf_ring) - 1)
        assert model.gamma < start

    def test_instability_detected(self, config, rf_ring):
        model = RadiationGamma(0, config)
        model.init(rf_ring)
        model.gamma = model.gamma0 * 1.05
        with pytest.raises(LongitudinalInstabilityError):
            model.check_stability(0.0)

    def test_phase_outside_bucket(self, config, rf_ring):
        model = RadiationGamma(0, config)
        model.init(rf_ring)
        assert model.separatrix(0.0) < 0

    def test_phase_space_recorded_for_flagged_particle(self, config, rf_ring):
        config.save_gamma = [1]
        flagged = RadiationGamma(1, config)
        other = RadiationGamma(0, config)
        for model in (flagged, other):
            model.init(rf_ring)
            advance(model, rf_ring, 3 * len(rf_ring))
        frame = flagged.phase_space()
        assert list(frame.columns) == ['t', 'phase', 'delta', 'gamma']
        assert len(frame) == 3
        assert other.phase_space() is None

    def test_requires_cavity(self, config, bend_ring):
        with pytest.raises(ConfigurationError):
            RadiationGamma(0, config).init(bend_ring)


class TestOffsetAndOscillation:

    @pytest.fixture
    def config(self, rf_config, rf_ring):
        rf_config.autocomplete(rf_ring)
        return rf_config

    def test_offset_constant(self, config, rf_ring):
        model = OffsetGamma(1, config)
        model.init(rf_ring)
        linear = LinearGamma(1, config)
        assert model.offset != 0.0
        for pos in (0.0, 100.0, 1000.0):
            assert model.get(pos) - linear.get(pos) == pytest.approx(model.offset)

    def test_offset_from_radiation_draw(self, config, rf_ring):
        model = OffsetGamma(1, config)
        model.init(rf_ring)
        reference = RadiationGamma(1, config)
        reference.init(rf_ring)
        assert model.offset == pytest.approx(reference.gamma - reference.gamma0)

    def test_oscillation(self, config, rf_ring):
        model = OscillationGamma(0, config)
        model.init(rf_ring)
        linear = LinearGamma(0, config)
        assert model.sync_freq > 0
        # particle 0 starts at maximum deviation
        assert model.get(0.0) - linear.get(0.0) == pytest.approx(model.offset)
        half_period = 0.5 / model.sync_freq * SPEED_OF_LIGHT
        assert model.get(half_period) - linear.get(half_period) == pytest.approx(-model.offset, rel=1e-6)


class TestFactory:

    def test_all_modes(self, rf_config):
        simtool = InMemorySimTool().prepare()
        expected = {
            GammaMode.LINEAR: LinearGamma,
            GammaMode.SIMTOOL: SimtoolGamma,
            GammaMode.SIMTOOL_PLUS_LINEAR: SimtoolPlusLinearGamma,
            GammaMode.SIMTOOL_NO_INTERPOLATION: SimtoolNoInterpolationGamma,
            GammaMode.OFFSET: OffsetGamma,
            GammaMode.OSCILLATION: OscillationGamma,
            GammaMode.RADIATION: RadiationGamma,
        }
        for mode, cls in expected.items():
            assert type(create_gamma_model(mode, 0, rf_config, simtool)) is cls

    def test_mode_by_name(self, rf_config):
        assert isinstance(create_gamma_model("radiation", 0, rf_config), RadiationGamma)

    def test_unknown_mode(self, rf_config):
        with pytest.raises(ConfigurationError):
            create_gamma_model("quantum", 0, rf_config)
