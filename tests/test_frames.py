"""
Tests for states, frame conversions and attitude helpers.

Tests cover:
- Absolute/relative state conversion and misuse
- Prograde/normal/radial decomposition of velocity changes
- Surface rotation of natural bodies
- Quaternion direction helpers used by control programs
"""

import numpy as np
import pytest

from spacesim.attitude.kinematics import (
    absolute_to_relative_direction, face_direction, q_derivative,
    relative_to_absolute_direction, rotate_about_axis
)
from spacesim.attitude.quaternion import Q_IDENTITY, q_from_axis_angle, q_multiply, q_rotate_vector
from spacesim.core.constants import BODY_FORWARD, SIDEREAL_DAY, X_AXIS, Y_AXIS, Z_AXIS
from spacesim.core.frames import (
    cartesian_to_spherical, delta_velocity_from_components, rotation_angle,
    spherical_to_cartesian, surface_velocity, velocity_components
)
from spacesim.core.types import ObjectState


class TestObjectState:
    """Absolute and primary-relative representations."""

    def test_make_relative_and_back(self):
        primary = ObjectState(position=[10.0, 0.0, 0.0], velocity=[0.0, 1.0, 0.0])
        state = ObjectState(position=[15.0, 2.0, 0.0], velocity=[3.0, 1.0, 0.0])

        relative = state.make_relative(primary)

        assert relative.relative
        np.testing.assert_allclose(relative.position, [5.0, 2.0, 0.0])
        np.testing.assert_allclose(relative.velocity, [3.0, 0.0, 0.0])
        np.testing.assert_allclose(relative.make_absolute(primary).position, state.position)

    def test_double_conversion_rejected(self):
        """Converting a state into the representation it already has is an error."""
        primary = ObjectState()
        relative = ObjectState(relative=True)
        with pytest.raises(ValueError):
            relative.make_relative(primary)
        with pytest.raises(ValueError):
            primary.make_absolute(primary)

    def test_relative_primary_rejected(self):
        """Anchoring on a primary that is itself relative would drop a frame."""
        primary = ObjectState(position=[10.0, 0.0, 0.0], relative=True)
        with pytest.raises(ValueError):
            ObjectState(position=[15.0, 0.0, 0.0]).make_relative(primary)
        with pytest.raises(ValueError):
            ObjectState(position=[5.0, 0.0, 0.0], relative=True).make_absolute(primary)

    def test_copy_is_deep(self):
        state = ObjectState(position=[1.0, 2.0, 3.0])
        copied = state.copy(time=4.0)
        copied.position[0] = 100.0
        assert state.position[0] == 1.0
        assert copied.time == 4.0

    def test_swap_reference_frame(self):
        """Moving to a new primary position keeps the relative offset."""
        old = ObjectState(position=[0.0, 0.0, 0.0])
        new = ObjectState(position=[100.0, 0.0, 0.0])
        state = ObjectState(position=[1.0, 0.0, 0.0])
        np.testing.assert_allclose(state.swap_reference_frame(old, new).position, [101.0, 0.0, 0.0])

    def test_non_finite_detected(self):
        state = ObjectState(position=[np.nan, 0.0, 0.0])
        assert not state.is_finite()
        assert ObjectState().is_finite()


class TestVelocityComponents:
    """Prograde/normal/radial triad."""

    STATE = ObjectState(position=[7000e3, 0.0, 0.0], velocity=[0.0, 7500.0, 0.0], relative=True)

    def test_prograde_burn(self):
        prograde, normal, radial = velocity_components(self.STATE, np.array([0.0, 10.0, 0.0]))
        assert prograde == pytest.approx(10.0)
        assert normal == pytest.approx(0.0)
        assert radial == pytest.approx(0.0)

    def test_normal_and_radial(self):
        """Normal is along r × v, radial points outward for a circular orbit."""
        _, normal, radial = velocity_components(self.STATE, np.array([2.0, 0.0, 3.0]))
        assert normal == pytest.approx(3.0)
        assert radial == pytest.approx(2.0)

    def test_inverse(self):
        dv = delta_velocity_from_components(self.STATE, 1.0, 2.0, 3.0)
        assert velocity_components(self.STATE, dv) == pytest.approx((1.0, 2.0, 3.0))

    def test_zero_velocity_has_no_triad(self):
        """Decomposition against a state at rest is skipped, not raised."""
        state = ObjectState(position=[7000e3, 0.0, 0.0], relative=True)
        assert velocity_components(state, np.ones(3)) is None
        with pytest.raises(ValueError):
            delta_velocity_from_components(state, 1.0, 0.0, 0.0)


class TestRotatingBodies:
    """Spin angle, surface velocity and geographic coordinates."""

    def test_rotation_angle_wraps(self):
        assert rotation_angle(SIDEREAL_DAY / 4.0, SIDEREAL_DAY) == pytest.approx(np.pi / 2.0)
        assert rotation_angle(1.25 * SIDEREAL_DAY, SIDEREAL_DAY) == pytest.approx(np.pi / 2.0)

    def test_surface_velocity_at_equator(self):
        """The equator moves east at ωR."""
        r = 6371e3
        v = surface_velocity(np.array([r, 0.0, 0.0]), SIDEREAL_DAY, Z_AXIS)
        np.testing.assert_allclose(v, [0.0, 2.0 * np.pi * r / SIDEREAL_DAY, 0.0])

    def test_surface_velocity_at_pole_is_zero(self):
        v = surface_velocity(np.array([0.0, 0.0, 6371e3]), SIDEREAL_DAY, Z_AXIS)
        np.testing.assert_allclose(v, np.zeros(3), atol=1e-12)

    def test_spherical_coordinates(self):
        position = spherical_to_cartesian(2.0, np.radians(30.0), np.radians(-80.0))
        r, latitude, longitude = cartesian_to_spherical(position)
        assert r == pytest.approx(2.0)
        assert latitude == pytest.approx(np.radians(30.0))
        assert longitude == pytest.approx(np.radians(-80.0))


class TestAttitudeHelpers:
    """Direction helpers and the quaternion rate."""

    def test_rotate_about_axis_right_handed(self):
        np.testing.assert_allclose(rotate_about_axis(X_AXIS, Z_AXIS, np.pi / 2.0), Y_AXIS, atol=1e-12)

    @pytest.mark.parametrize("direction", [X_AXIS, -Y_AXIS, Z_AXIS, -Z_AXIS,
                                           np.array([1.0, 2.0, -3.0])])
    def test_face_direction_points_forward_axis(self, direction):
        """The body forward axis ends up along the requested direction."""
        q = face_direction(direction)
        expected = direction / np.linalg.norm(direction)
        np.testing.assert_allclose(q_rotate_vector(q, BODY_FORWARD), expected, atol=1e-12)

    def test_relative_direction_round_trip(self):
        q = q_from_axis_angle(np.array([1.0, 1.0, 0.0]) / np.sqrt(2.0), 0.8)
        direction = np.array([0.0, 0.6, 0.8])
        relative = absolute_to_relative_direction(q, direction)
        np.testing.assert_allclose(relative_to_absolute_direction(q, relative), direction, atol=1e-12)

    def test_facing_makes_thrust_forward(self):
        """After facing a direction, that direction is body-forward."""
        direction = np.array([0.3, -0.4, 0.5])
        q = face_direction(direction)
        np.testing.assert_allclose(absolute_to_relative_direction(q, direction), BODY_FORWARD, atol=1e-12)

    def test_quaternion_rate_matches_small_rotation(self):
        """Integrating q̇ over a short time equals composing the small rotation."""
        omega = np.array([0.0, 0.0, 0.1])
        dt = 1e-4
        q = Q_IDENTITY.copy()
        stepped = q + q_derivative(q, omega) * dt
        exact = q_multiply(q_from_axis_angle(Z_AXIS, -0.1 * dt), q)
        np.testing.assert_allclose(stepped, exact, atol=1e-9)
