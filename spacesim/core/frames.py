"""
Reference frame transformations.

Provides the rotations and basis changes used across the simulator:
    - Perifocal (PQW) to primary-centred inertial
    - Prograde / normal / radial triad of a relative state
    - Body-fixed surface coordinates of a rotating primary

The world frame is Z-up; natural bodies spin about their own axis of
rotation (Z by default).
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .constants import TWO_PI
from .types import ObjectState


def _skew(v: np.ndarray) -> np.ndarray:
    """Skew-symmetric cross-product matrix [v×].

    Args:
        v: 3-vector.

    Returns:
        3x3 skew-symmetric matrix such that [v×]·w = v × w.
    """
    return np.array([
        [0., -v[2], v[1]],
        [v[2], 0., -v[0]],
        [-v[1], v[0], 0.]
    ])


def _rot1(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [1., 0., 0.],
        [0., c, s],
        [0., -s, c]
    ])


def _rot3(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, s, 0.],
        [-s, c, 0.],
        [0., 0., 1.]
    ])


# ===================================================================
# Orbital frames
# ===================================================================

def perifocal_to_inertial(longitude_of_ascending_node: float,
                          inclination: float,
                          argument_of_periapsis: float) -> np.ndarray:
    """Perifocal (PQW) to primary-centred inertial rotation matrix.

    Q = R3(-Ω) · R1(-i) · R3(-ω), Curtis Eq. 4.49 transposed.

    Args:
        longitude_of_ascending_node: Ω [rad].
        inclination: i [rad].
        argument_of_periapsis: ω [rad].

    Returns:
        3x3 matrix such that r_inertial = Q @ r_perifocal.
    """
    return (_rot3(-longitude_of_ascending_node)
            @ _rot1(-inclination)
            @ _rot3(-argument_of_periapsis))


def velocity_components(relative_state: ObjectState,
                        delta_velocity: np.ndarray
                        ) -> Optional[tuple[float, float, float]]:
    """Decompose a velocity change against a state's prograde/normal/radial triad.

    Args:
        relative_state: Primary-relative state defining the triad.
        delta_velocity: Absolute-frame ΔV [m/s], shape (3,).

    Returns:
        (prograde, normal, radial) components [m/s], or None if the triad
        is undefined (zero velocity, or velocity parallel to position).
    """
    v_mag = np.linalg.norm(relative_state.velocity)
    h = np.cross(relative_state.position, relative_state.velocity)
    h_mag = np.linalg.norm(h)
    if v_mag < 1e-12 or h_mag < 1e-12:
        return None

    prograde = relative_state.velocity / v_mag
    normal = h / h_mag
    radial = np.cross(prograde, normal)

    return (float(np.dot(delta_velocity, prograde)),
            float(np.dot(delta_velocity, normal)),
            float(np.dot(delta_velocity, radial)))


def delta_velocity_from_components(relative_state: ObjectState,
                                   prograde: float,
                                   normal: float,
                                   radial: float) -> np.ndarray:
    """Inverse of `velocity_components`.

    Raises:
        ValueError: If the triad of the state is undefined.
    """
    v_mag = np.linalg.norm(relative_state.velocity)
    h = np.cross(relative_state.position, relative_state.velocity)
    h_mag = np.linalg.norm(h)
    if v_mag < 1e-12 or h_mag < 1e-12:
        raise ValueError("Prograde/normal/radial triad undefined for this state")

    p_hat = relative_state.velocity / v_mag
    n_hat = h / h_mag
    r_hat = np.cross(p_hat, n_hat)
    return prograde * p_hat + normal * n_hat + radial * r_hat


# ===================================================================
# Rotating bodies
# ===================================================================

def rotation_angle(total_time: float, rotational_period: float) -> float:
    """Spin angle of a body after `total_time` seconds [rad], wrapped to [0, 2π)."""
    if rotational_period == 0.0:
        return 0.0
    return (TWO_PI * total_time / rotational_period) % TWO_PI


def angular_velocity_vector(rotational_period: float, axis: np.ndarray) -> np.ndarray:
    """Spin rate vector ω [rad/s] of a body about `axis`."""
    if rotational_period == 0.0:
        return np.zeros(3)
    return (TWO_PI / rotational_period) * axis / np.linalg.norm(axis)


def surface_velocity(relative_position: np.ndarray, rotational_period: float,
                     axis: np.ndarray) -> np.ndarray:
    """Velocity [m/s] of a point fixed to a rotating body, v = ω × r."""
    return _skew(angular_velocity_vector(rotational_period, axis)) @ relative_position


def spherical_to_cartesian(radius: float, latitude: float, longitude: float) -> np.ndarray:
    """Body-fixed position from radius [m], latitude and longitude [rad] (Z-up)."""
    return radius * np.array([
        np.cos(latitude) * np.cos(longitude),
        np.cos(latitude) * np.sin(longitude),
        np.sin(latitude)
    ])


def cartesian_to_spherical(position: np.ndarray) -> tuple[float, float, float]:
    """(radius, latitude, longitude) of a body-fixed position."""
    r = float(np.linalg.norm(position))
    if r == 0.0:
        return 0.0, 0.0, 0.0
    latitude = float(np.arcsin(np.clip(position[2] / r, -1.0, 1.0)))
    longitude = float(np.arctan2(position[1], position[0]))
    return r, latitude, longitude
