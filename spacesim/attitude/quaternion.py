"""
Quaternion operations.

Convention: q = [q1, q2, q3, q4] where q4 is the scalar component.
A quaternion describes a frame rotation from frame A to frame B and maps
components through its DCM: v_B = R(q) @ v_A. Object orientations are
stored body-to-world, so a body-frame thrust direction is brought into the
world frame with `q_rotate_vector(orientation, direction)`.
"""

from __future__ import annotations

import numpy as np

Q_IDENTITY = np.array([0., 0., 0., 1.])


def q_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Quaternion product such that R(q1*q2) = R(q1) * R(q2).

    Args:
        q1: First quaternion [q1,q2,q3, q4_scalar], shape (4,).
        q2: Second quaternion, shape (4,).

    Returns:
        Product quaternion, shape (4,).
    """
    a1, b1, c1, d1 = q1
    a2, b2, c2, d2 = q2

    return np.array([
        d1*a2 + a1*d2 - b1*c2 + c1*b2,
        d1*b2 + a1*c2 + b1*d2 - c1*a2,
        d1*c2 - a1*b2 + b1*a2 + c1*d2,
        d1*d2 - a1*a2 - b1*b2 - c1*c2
    ])


def q_conjugate(q: np.ndarray) -> np.ndarray:
    """Quaternion conjugate, the inverse rotation for unit quaternions."""
    return np.array([-q[0], -q[1], -q[2], q[3]])


def q_normalize(q: np.ndarray) -> np.ndarray:
    """Normalize quaternion to unit magnitude.

    A zero quaternion (e.g. from a degenerate integration stage) becomes
    the identity.
    """
    n = np.linalg.norm(q)
    if n < 1e-15:
        return Q_IDENTITY.copy()
    return q / n


def q_to_dcm(q: np.ndarray) -> np.ndarray:
    """Convert a unit quaternion to its Direction Cosine Matrix.

    Args:
        q: Unit quaternion [q1,q2,q3, q4_scalar], shape (4,).

    Returns:
        R: 3x3 rotation matrix such that v_B = R @ v_A.
    """
    q1, q2, q3, q4 = q

    # Passive rotation DCM, Markley & Crassidis Eq. 2.88
    return np.array([
        [1 - 2*(q2**2 + q3**2),  2*(q1*q2 + q3*q4),    2*(q1*q3 - q2*q4)],
        [2*(q1*q2 - q3*q4),      1 - 2*(q1**2 + q3**2), 2*(q2*q3 + q1*q4)],
        [2*(q1*q3 + q2*q4),      2*(q2*q3 - q1*q4),    1 - 2*(q1**2 + q2**2)]
    ])


def q_rotate_vector(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Transform a vector from frame A to frame B using the quaternion's DCM.

    Args:
        q: Unit quaternion (frame A to frame B), shape (4,).
        v: 3-vector in frame A, shape (3,).

    Returns:
        The same vector expressed in frame B, shape (3,).
    """
    return q_to_dcm(q) @ v


def q_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """Create a frame-rotation quaternion from axis-angle representation.

    Args:
        axis: Rotation axis (unit vector), shape (3,).
        angle: Frame rotation angle [rad].

    Returns:
        Unit quaternion, shape (4,).
    """
    half = angle / 2.0
    s = np.sin(half)
    return np.array([axis[0]*s, axis[1]*s, axis[2]*s, np.cos(half)])


def q_to_axis_angle(q: np.ndarray) -> tuple[np.ndarray, float]:
    """Extract axis-angle from a unit quaternion.

    Returns:
        axis: Rotation axis (unit vector), shape (3,).
        angle: Rotation angle [rad] in [0, 2pi).
    """
    q = q_normalize(q)
    angle = 2.0 * np.arccos(np.clip(q[3], -1.0, 1.0))
    s = np.sin(angle / 2.0)

    if abs(s) < 1e-10:
        return np.array([0., 0., 1.]), 0.0

    return q[0:3] / s, angle


def q_angle_between(q1: np.ndarray, q2: np.ndarray) -> float:
    """Angular distance between two orientations [rad], in [0, pi]."""
    _, angle = q_to_axis_angle(q_multiply(q_conjugate(q1), q2))
    return min(angle, 2.0 * np.pi - angle)
