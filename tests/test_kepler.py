"""
Test suite for the universal-variable Kepler propagator.

Tests cover:
- Stumpff functions
- Circular, elliptical and hyperbolic propagation
- Agreement with fixed-step RK4 integration of the same two-body problem
- Prediction through nested primaries
"""

import numpy as np
import pytest

from spacesim.astrodynamics.gravity import circular_orbit_speed, escape_speed
from spacesim.astrodynamics.kepler import (
    KeplerSolver, after_time, primary_state_after, stumpff_c, stumpff_s
)
from spacesim.astrodynamics.propagator import CowellPropagator, TwoBodyPropagator
from spacesim.core.config import KeplerSolverConfig
from spacesim.core.types import ObjectState


def specific_energy(mu, state):
    return 0.5 * np.dot(state.velocity, state.velocity) - mu / np.linalg.norm(state.position)


class TestStumpff:
    """Stumpff functions C(z) and S(z)."""

    def test_values_at_zero(self):
        assert stumpff_c(0.0) == pytest.approx(0.5)
        assert stumpff_s(0.0) == pytest.approx(1.0 / 6.0)

    def test_closed_form_elliptic(self):
        """C(π²) = 2/π² and S(π²) = 1/π²."""
        z = np.pi ** 2
        assert stumpff_c(z) == pytest.approx(2.0 / z)
        assert stumpff_s(z) == pytest.approx(1.0 / z)

    def test_continuous_across_series_limit(self):
        """Series and closed forms agree on either side of the switch-over."""
        for z in (1e-3, -1e-3):
            assert stumpff_c(z * 0.999) == pytest.approx(stumpff_c(z * 1.001), rel=1e-6)
            assert stumpff_s(z * 0.999) == pytest.approx(stumpff_s(z * 1.001), rel=1e-6)


class TestKeplerSolver:
    """Two-body propagation of primary-relative states."""

    MU = 3.986004418e14

    def circular_state(self, r):
        v = circular_orbit_speed(self.MU, r)
        return ObjectState(position=[r, 0.0, 0.0], velocity=[0.0, v, 0.0], relative=True)

    def test_zero_time_returns_copy(self):
        state = self.circular_state(7000e3)
        result = KeplerSolver().solve(self.MU, state, 0.0)
        np.testing.assert_array_equal(result.position, state.position)
        assert result is not state

    def test_quarter_period_circular(self):
        """A quarter period rotates a circular orbit by 90°."""
        r = 7000e3
        period = 2.0 * np.pi * np.sqrt(r ** 3 / self.MU)
        result = KeplerSolver().solve(self.MU, self.circular_state(r), period / 4.0)
        np.testing.assert_allclose(result.position, [0.0, r, 0.0], atol=0.1)
        assert result.time == pytest.approx(period / 4.0)

    def test_full_period_returns_to_start(self):
        """Bound orbits are periodic, including many revolutions ahead."""
        r = 7000e3
        state = self.circular_state(r)
        state.velocity = state.velocity * 1.1
        alpha = 2.0 / r - np.dot(state.velocity, state.velocity) / self.MU
        period = 2.0 * np.pi * np.sqrt(1.0 / alpha ** 3 / self.MU)

        result = KeplerSolver().solve(self.MU, state, 25.0 * period)

        np.testing.assert_allclose(result.position, state.position, atol=1.0)
        np.testing.assert_allclose(result.velocity, state.velocity, atol=1e-3)

    def test_backward_then_forward(self):
        """Propagating back and then forward by the same time is the identity."""
        solver = KeplerSolver()
        state = self.circular_state(7000e3)
        state.velocity = state.velocity * 1.05
        back = solver.solve(self.MU, state, -1234.0)
        forward = solver.solve(self.MU, back, 1234.0)
        np.testing.assert_allclose(forward.position, state.position, atol=1e-2)

    def test_hyperbolic_energy_conserved(self):
        r = 7000e3
        v = 1.2 * escape_speed(self.MU, r)
        state = ObjectState(position=[r, 0.0, 0.0], velocity=[0.0, v, 0.0], relative=True)

        result = KeplerSolver().solve(self.MU, state, 3600.0)

        assert np.linalg.norm(result.position) > r
        assert specific_energy(self.MU, result) == pytest.approx(specific_energy(self.MU, state), rel=1e-8)

    def test_orientation_carried_unchanged(self):
        state = self.circular_state(7000e3)
        state.orientation = np.array([0.0, 0.0, np.sin(0.3), np.cos(0.3)])
        result = KeplerSolver().solve(self.MU, state, 100.0)
        np.testing.assert_array_equal(result.orientation, state.orientation)

    def test_non_convergence_logs_warning(self, caplog):
        """An iteration cap of one is not enough; the solver still returns a state."""
        solver = KeplerSolver(KeplerSolverConfig(tolerance=1e-12, max_iterations=1))
        state = self.circular_state(7000e3)
        state.velocity = state.velocity * 1.3

        with caplog.at_level("WARNING", logger="spacesim.astrodynamics.kepler"):
            result = solver.solve(self.MU, state, 2000.0)

        assert result.is_finite()
        assert "did not converge" in caplog.text


class TestAnalyticMatchesNumeric:
    """Cross-validation of the analytic and numeric propagators."""

    def test_leo_agreement_over_ten_minutes(self, earth, satellite, config):
        """RK4 with a 1 s step and the Kepler solution agree within 1 m after 600 s."""
        initial = satellite.relative_state()
        cowell = CowellPropagator(config)

        t = 0.0
        for _ in range(600):
            cowell.update(t, 1.0, satellite)
            satellite.update(t, 1.0)
            t += 1.0

        expected = KeplerSolver().solve(earth.mu, initial, 600.0)
        numeric = satellite.relative_state()

        np.testing.assert_allclose(numeric.position, expected.position, atol=1.0)
        np.testing.assert_allclose(numeric.velocity, expected.velocity, atol=1e-3)

    def test_two_body_propagator_uses_reference_state(self, earth, satellite, config):
        """The analytic propagator measures elapsed time from the reference epoch."""
        initial = satellite.relative_state()
        analytic = TwoBodyPropagator(config)

        analytic.update(300.0, 300.0, satellite)

        expected = KeplerSolver().solve(earth.mu, initial, 600.0)
        predicted = satellite.next_state.make_relative(earth.state)
        np.testing.assert_allclose(predicted.position, expected.position, atol=1e-6)
        assert satellite.next_state.time == pytest.approx(600.0)


class TestNestedPrimaries:
    """Prediction of states about a moving primary."""

    def test_reference_body_stays_put(self, earth):
        state = primary_state_after(KeplerSolver(), earth, 1000.0)
        np.testing.assert_array_equal(state.position, earth.state.position)
        assert state.time == pytest.approx(1000.0)

    def test_absolute_prediction_adds_primary_motion(self, engine, earth, moon):
        """A state about the Moon is carried along the Moon's own orbit."""
        solver = KeplerSolver()
        relative = ObjectState(position=[5000e3, 0.0, 0.0],
                               velocity=[0.0, circular_orbit_speed(moon.mu, 5000e3), 0.0],
                               relative=True)

        absolute = after_time(solver, moon, relative, 3600.0)
        relative_after = after_time(solver, moon, relative, 3600.0, relative=True)
        moon_after = primary_state_after(solver, moon, 3600.0)

        assert relative_after.relative
        assert not absolute.relative
        np.testing.assert_allclose(absolute.position, moon_after.position + relative_after.position)
