"""
Attitude kinematics.

Quaternion time derivative for a body spinning with a world-frame angular
velocity, plus the direction helpers used by control programs:
    - rotate a vector about an axis (active rotation)
    - orientation that points the body thrust axis along a direction
    - body-relative <-> world-frame direction conversion
"""

from __future__ import annotations

import numpy as np

from ..core.constants import BODY_FORWARD, X_AXIS
from .quaternion import (
    Q_IDENTITY, q_multiply, q_conjugate, q_normalize, q_rotate_vector, q_from_axis_angle
)


def q_derivative(q: np.ndarray, omega: np.ndarray) -> np.ndarray:
    """Time derivative of a body-to-world orientation quaternion.

    With R(q) the body-to-world DCM, dR/dt = [ω×]·R. A small rotation
    ω·dt composes on the left as the frame rotation (-ω·dt/2, 1), giving
    dq/dt = -½ [ω, 0] ⊗ q.

    Args:
        q: Orientation quaternion (body to world), shape (4,).
        omega: Angular velocity in the world frame [rad/s], shape (3,).

    Returns:
        dq/dt, shape (4,).
    """
    omega_q = np.array([omega[0], omega[1], omega[2], 0.0])
    return -0.5 * q_multiply(omega_q, q)


def rotate_about_axis(v: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotate a vector by `angle` about `axis` (right-hand rule).

    Args:
        v: Vector to rotate, shape (3,).
        axis: Rotation axis, shape (3,). Need not be normalized.
        angle: Rotation angle [rad].

    Returns:
        Rotated vector, shape (3,).
    """
    n = np.linalg.norm(axis)
    if n < 1e-15 or angle == 0.0:
        return np.array(v, dtype=float)
    return q_rotate_vector(q_from_axis_angle(axis / n, -angle), v)


def face_direction(direction: np.ndarray, forward: np.ndarray = BODY_FORWARD) -> np.ndarray:
    """Orientation that points the body `forward` axis along `direction`.

    Args:
        direction: World-frame target direction, shape (3,).
        forward: Body-frame axis to align, shape (3,).

    Returns:
        Body-to-world unit quaternion, shape (4,).
    """
    n = np.linalg.norm(direction)
    if n < 1e-15:
        return Q_IDENTITY.copy()
    d = direction / n

    axis = np.cross(forward, d)
    s = np.linalg.norm(axis)
    c = float(np.dot(forward, d))
    if s < 1e-12:
        if c > 0.0:
            return Q_IDENTITY.copy()
        # Anti-parallel: half turn about any axis perpendicular to forward
        perpendicular = np.cross(forward, X_AXIS)
        if np.linalg.norm(perpendicular) < 1e-12:
            perpendicular = np.cross(forward, np.array([0., 1., 0.]))
        return q_from_axis_angle(perpendicular / np.linalg.norm(perpendicular), -np.pi)

    angle = np.arctan2(s, c)
    return q_normalize(q_from_axis_angle(axis / s, -angle))


def relative_to_absolute_direction(orientation: np.ndarray, direction: np.ndarray) -> np.ndarray:
    """Body-relative direction to a unit world-frame direction."""
    v = q_rotate_vector(orientation, direction)
    n = np.linalg.norm(v)
    return v / n if n > 0.0 else v


def absolute_to_relative_direction(orientation: np.ndarray, direction: np.ndarray) -> np.ndarray:
    """World-frame direction to a unit body-relative direction."""
    v = q_rotate_vector(q_conjugate(q_normalize(orientation)), direction)
    n = np.linalg.norm(v)
    return v / n if n > 0.0 else v
