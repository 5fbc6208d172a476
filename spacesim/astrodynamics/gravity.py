"""
Gravitational formulas.

Point-mass gravity of a primary body, the two-body constants derived from
it, and the anomaly conversions used to time orbit crossings.

References:
    Curtis, "Orbital Mechanics for Engineering Students", Ch. 2-3
    Vallado, "Fundamentals of Astrodynamics and Applications", Ch. 2
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..core.constants import G, TWO_PI


# ===================================================================
# Two-body
# ===================================================================

def gravity_acceleration(mu: float, r: np.ndarray) -> np.ndarray:
    """Acceleration towards the primary, a = -mu·r/|r|^3 [m/s^2]."""
    r_mag = np.linalg.norm(r)
    return -mu * r / r_mag ** 3


def standard_gravitational_parameter(mass: float) -> float:
    """mu = G·M [m^3/s^2]."""
    return G * mass


def orbital_period(mu: float, semi_major_axis: float) -> float:
    """Period of a bound orbit [s], T = 2π·sqrt(a^3/mu)."""
    return TWO_PI * np.sqrt(semi_major_axis ** 3 / mu)


def circular_orbit_speed(mu: float, radius: float) -> float:
    """Speed of a circular orbit of the given radius [m/s]."""
    return float(np.sqrt(mu / radius))


def escape_speed(mu: float, radius: float) -> float:
    return float(np.sqrt(2.0 * mu / radius))


def sphere_of_influence(semi_major_axis: float, mass: float, primary_mass: float) -> float:
    """Laplace sphere-of-influence radius, r = a·(m/M)^(2/5) [m].

    Args:
        semi_major_axis: Semi-major axis of the body's orbit about its primary [m].
        mass: Mass of the body [kg].
        primary_mass: Mass of the body's own primary [kg].
    """
    return semi_major_axis * (mass / primary_mass) ** 0.4


# ===================================================================
# Anomalies
# ===================================================================

def true_anomaly_at(radius: float, parameter: float, eccentricity: float) -> Optional[float]:
    """True anomaly in [0, π] at which the orbit reaches `radius`.

    Inverts r = p / (1 + e·cos ν). The mirrored crossing is at -ν.

    Returns:
        ν [rad], or None for circular orbits or radii the orbit never reaches.
    """
    if eccentricity == 0.0:
        return None
    cos_nu = (parameter / radius - 1.0) / eccentricity
    if cos_nu < -1.0 or cos_nu > 1.0:
        return None
    return float(np.arccos(cos_nu))


def eccentric_anomaly(true_anomaly: float, eccentricity: float) -> float:
    """Eccentric anomaly E of an elliptical orbit, Curtis Eq. 3.10b."""
    return 2.0 * np.arctan(np.sqrt((1.0 - eccentricity) / (1.0 + eccentricity))
                           * np.tan(true_anomaly / 2.0))


def hyperbolic_anomaly(true_anomaly: float, eccentricity: float) -> float:
    """Hyperbolic eccentric anomaly F, Curtis Eq. 3.44a."""
    return 2.0 * np.arctanh(np.sqrt((eccentricity - 1.0) / (eccentricity + 1.0))
                            * np.tan(true_anomaly / 2.0))


def parabolic_anomaly(true_anomaly: float) -> float:
    """Parabolic anomaly D = tan(ν/2)."""
    return float(np.tan(true_anomaly / 2.0))


def mean_anomaly_elliptical(eccentric_anomaly_: float, eccentricity: float) -> float:
    """Kepler's equation, M = E - e·sin E."""
    return eccentric_anomaly_ - eccentricity * np.sin(eccentric_anomaly_)


def mean_anomaly_hyperbolic(hyperbolic_anomaly_: float, eccentricity: float) -> float:
    """Hyperbolic Kepler equation, M = e·sinh F - F."""
    return eccentricity * np.sinh(hyperbolic_anomaly_) - hyperbolic_anomaly_
