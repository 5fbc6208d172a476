"""
Tests for orbital elements, orbit positions and crossing calculators.

Tests cover:
- Orbit construction and derived quantities
- Element extraction from states (general, circular, equatorial)
- Timing queries (periapsis, apoapsis, radius crossings)
- Impact and sphere-of-influence predictions
"""

import numpy as np
import pytest

from spacesim.astrodynamics.gravity import (
    circular_orbit_speed, escape_speed, orbital_period, sphere_of_influence,
    standard_gravitational_parameter, true_anomaly_at
)
from spacesim.astrodynamics.orbit import (
    Orbit, OrbitPosition, calculate_orbit, soi_change_likely, time_to_impact,
    time_to_leave_sphere_of_influence, time_to_radius
)
from spacesim.core.constants import (
    EARTH_MASS, EARTH_RADIUS, MOON_MASS, MOON_SEMI_MAJOR_AXIS
)
from spacesim.core.types import ObjectState, OrbitType

MU = standard_gravitational_parameter(EARTH_MASS)


class TestOrbitConstruction:
    """Orbit factories and derived quantities."""

    def test_new_from_semi_major_axis(self):
        """Semi-major axis and eccentricity give p = a(1 - e^2)."""
        orbit = Orbit.new(0, MU, semi_major_axis=10000e3, eccentricity=0.2)
        assert orbit.parameter == pytest.approx(10000e3 * 0.96)
        assert orbit.semi_major_axis == pytest.approx(10000e3)

    def test_new_requires_exactly_one_size(self):
        """Giving both or neither of parameter and semi-major axis is rejected."""
        with pytest.raises(ValueError):
            Orbit.new(0, MU)
        with pytest.raises(ValueError):
            Orbit.new(0, MU, parameter=1e7, semi_major_axis=1e7)

    def test_apsides(self):
        """Periapsis and apoapsis follow from p and e."""
        orbit = Orbit.new(0, MU, semi_major_axis=10000e3, eccentricity=0.2)
        assert orbit.periapsis == pytest.approx(8000e3)
        assert orbit.apoapsis == pytest.approx(12000e3)

    def test_period_matches_kepler_third_law(self):
        """Bound orbit period is 2π sqrt(a^3/μ)."""
        orbit = Orbit.new(0, MU, semi_major_axis=7000e3)
        assert orbit.period == pytest.approx(2.0 * np.pi * np.sqrt(7000e3 ** 3 / MU))
        assert orbit.period == pytest.approx(orbital_period(MU, 7000e3))

    @pytest.mark.parametrize("eccentricity, expected", [
        (0.0, OrbitType.CIRCULAR),
        (0.5, OrbitType.ELLIPTICAL),
        (1.0, OrbitType.PARABOLIC),
        (1.5, OrbitType.HYPERBOLIC),
    ])
    def test_orbit_type(self, eccentricity, expected):
        """Eccentricity classifies the conic."""
        orbit = Orbit.new(0, MU, parameter=7000e3, eccentricity=eccentricity)
        assert orbit.orbit_type == expected

    def test_unbound_orbit_has_no_apoapsis_or_period(self):
        """Unbound orbits report infinite apoapsis and period."""
        orbit = Orbit.new(0, MU, parameter=7000e3, eccentricity=1.5)
        assert orbit.is_unbound
        assert np.isinf(orbit.apoapsis)
        assert np.isinf(orbit.period)


class TestElementExtraction:
    """Orbit positions computed from primary-relative states."""

    def test_general_orbit_elements_recovered(self):
        """Elements of a state built from an inclined ellipse match the ellipse."""
        orbit = Orbit.new(0, MU, semi_major_axis=12000e3, eccentricity=0.3,
                          inclination=0.5, longitude_of_ascending_node=1.0,
                          argument_of_periapsis=0.7)
        state = OrbitPosition(orbit, 1.2).calculate_state()

        position = OrbitPosition.calculate_orbit_position(0, MU, state)

        assert position.orbit.parameter == pytest.approx(orbit.parameter, rel=1e-9)
        assert position.orbit.eccentricity == pytest.approx(0.3, rel=1e-9)
        assert position.orbit.inclination == pytest.approx(0.5, rel=1e-9)
        assert position.orbit.longitude_of_ascending_node == pytest.approx(1.0, rel=1e-9)
        assert position.orbit.argument_of_periapsis == pytest.approx(0.7, rel=1e-9)
        assert position.true_anomaly == pytest.approx(1.2, rel=1e-9)

    def test_circular_equatorial_state(self):
        """Circular equatorial orbits measure the anomaly from the x axis."""
        r = 7000e3
        v = circular_orbit_speed(MU, r)
        state = ObjectState(position=[0.0, r, 0.0], velocity=[-v, 0.0, 0.0], relative=True)

        position = OrbitPosition.calculate_orbit_position(0, MU, state)

        assert position.orbit.orbit_type == OrbitType.CIRCULAR
        assert position.orbit.inclination == pytest.approx(0.0, abs=1e-12)
        assert position.true_anomaly == pytest.approx(np.pi / 2.0)

    def test_state_reconstructed_from_circular_inclined_orbit(self):
        """A circular inclined state survives conversion to elements and back."""
        r = 7000e3
        v = circular_orbit_speed(MU, r)
        state = ObjectState(position=[r, 0.0, 0.0],
                            velocity=[0.0, v * np.cos(0.4), v * np.sin(0.4)],
                            relative=True)

        rebuilt = OrbitPosition.calculate_orbit_position(0, MU, state).calculate_state()

        np.testing.assert_allclose(rebuilt.position, state.position, atol=1.0)
        np.testing.assert_allclose(rebuilt.velocity, state.velocity, atol=1e-3)

    def test_absolute_state_from_primary(self):
        """Passing the primary's state yields an absolute state offset by it."""
        orbit = Orbit.new(0, MU, semi_major_axis=7000e3)
        primary = ObjectState(position=[1e9, 0.0, 0.0], velocity=[0.0, 1e3, 0.0])

        state = OrbitPosition(orbit, 0.0).calculate_state(primary, time=5.0)

        assert not state.relative
        assert state.time == 5.0
        np.testing.assert_allclose(state.position, [1e9 + 7000e3, 0.0, 0.0])

    def test_calculate_orbit_matches_orbit_position(self):
        state = ObjectState(position=[7000e3, 0, 0], velocity=[0, 8000.0, 0], relative=True)
        assert calculate_orbit(0, MU, state) == OrbitPosition.calculate_orbit_position(0, MU, state).orbit


class TestTiming:
    """Time-to-anomaly and crossing calculators."""

    def test_time_to_apoapsis_is_half_period_from_periapsis(self):
        orbit = Orbit.new(0, MU, semi_major_axis=10000e3, eccentricity=0.2)
        position = OrbitPosition(orbit, 0.0)
        assert position.time_to_apoapsis() == pytest.approx(orbit.period / 2.0)

    def test_time_to_periapsis_wraps_around(self):
        """Just past periapsis, the next periapsis is almost a full period away."""
        orbit = Orbit.new(0, MU, semi_major_axis=10000e3, eccentricity=0.2)
        position = OrbitPosition(orbit, 0.01)
        assert 0.9 * orbit.period < position.time_to_periapsis() < orbit.period

    def test_unbound_orbit_cannot_return(self):
        """Outbound on a hyperbola, periapsis already lies in the past."""
        orbit = Orbit.new(0, MU, parameter=8000e3, eccentricity=1.5)
        position = OrbitPosition(orbit, 0.5)
        assert position.time_to_periapsis() is None
        assert position.time_to_apoapsis() is None

    def test_true_anomaly_at_unreachable_radius(self):
        """An ellipse never reaches beyond its apoapsis."""
        assert true_anomaly_at(20000e3, 8000e3, 0.2) is None

    def test_time_to_radius_on_ellipse(self):
        """Crossing the semi-latus rectum radius happens at ν = ±90°."""
        orbit = Orbit.new(0, MU, parameter=8000e3, eccentricity=0.2)
        position = OrbitPosition(orbit, 0.0)
        expected = orbit.time_since_periapsis(np.pi / 2.0)
        assert time_to_radius(position, 8000e3) == pytest.approx(expected)

    def test_time_to_radius_circular_is_none(self):
        orbit = Orbit.new(0, MU, semi_major_axis=7000e3)
        assert time_to_radius(OrbitPosition(orbit, 0.0), 7000e3) is None


class TestImpactAndSphereOfInfluence:
    """Crash and SOI-change predictions."""

    def test_no_impact_when_periapsis_above_surface(self):
        orbit = Orbit.new(0, MU, semi_major_axis=EARTH_RADIUS + 400e3)
        assert time_to_impact(OrbitPosition(orbit, 0.0), EARTH_RADIUS) is None

    def test_suborbital_trajectory_impacts(self):
        """A trajectory at apoapsis with periapsis inside the body hits it."""
        orbit = Orbit.new(0, MU, parameter=EARTH_RADIUS, eccentricity=0.3)
        position = OrbitPosition(orbit, np.pi)
        t = time_to_impact(position, EARTH_RADIUS)
        assert t is not None
        assert 0.0 < t < orbit.period / 2.0

    def test_escape_trajectory_leaves_sphere_of_influence(self):
        """A hyperbolic orbit crosses a finite SOI radius once, outbound."""
        r = EARTH_RADIUS + 400e3
        v = 1.1 * escape_speed(MU, r)
        state = ObjectState(position=[r, 0, 0], velocity=[0, v, 0], relative=True)
        position = OrbitPosition.calculate_orbit_position(0, MU, state)

        t = time_to_leave_sphere_of_influence(position, 1e9)

        assert t is not None and t > 0.0

    def test_bound_orbit_inside_sphere_never_leaves(self):
        orbit = Orbit.new(0, MU, semi_major_axis=EARTH_RADIUS + 400e3, eccentricity=0.1)
        assert time_to_leave_sphere_of_influence(OrbitPosition(orbit, 0.0), 1e9) is None

    def test_moon_sphere_of_influence(self):
        """Laplace SOI radius of the Moon is about 66 000 km."""
        soi = sphere_of_influence(MOON_SEMI_MAJOR_AXIS, MOON_MASS, EARTH_MASS)
        assert soi == pytest.approx(66.1e6, rel=0.01)

    def test_soi_change_likely(self):
        """A change is likely once the apoapsis reaches the other body's periapsis."""
        moon_orbit = Orbit.new(0, MU, semi_major_axis=MOON_SEMI_MAJOR_AXIS)
        leo = Orbit.new(0, MU, semi_major_axis=EARTH_RADIUS + 400e3)
        transfer = Orbit.new(0, MU, parameter=2 * EARTH_RADIUS, eccentricity=0.98)
        assert not soi_change_likely(leo, moon_orbit)
        assert soi_change_likely(transfer, moon_orbit)
