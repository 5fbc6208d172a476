"""
Keplerian orbits.

An `Orbit` holds the classical elements of a conic about one primary body
(by handle into the object table) and is only meaningful relative to that
primary. `OrbitPosition` pairs an orbit with a true anomaly and answers
timing questions: when is periapsis, when is a given radius crossed, when
does the object hit the surface or leave a sphere of influence.

Element extraction follows Curtis Algorithm 4.2 with explicit handling of
the circular and equatorial cases, where the node line or the eccentricity
vector is undefined.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.constants import ECCENTRICITY_EPSILON, TWO_PI, Z_AXIS
from ..core.frames import perifocal_to_inertial
from ..core.types import ObjectState, OrbitType
from .gravity import (
    eccentric_anomaly, hyperbolic_anomaly, parabolic_anomaly,
    mean_anomaly_elliptical, mean_anomaly_hyperbolic, orbital_period, true_anomaly_at
)


@dataclass
class Orbit:
    """Classical orbital elements about a primary body.

    Attributes:
        primary: Handle of the primary body in the object table, or None.
        mu: Gravitational parameter of the primary [m^3/s^2].
        parameter: Semi-latus rectum p [m].
        eccentricity: e (0 circular, <1 elliptical, 1 parabolic, >1 hyperbolic).
        inclination: i [rad].
        longitude_of_ascending_node: Ω [rad].
        argument_of_periapsis: ω [rad].
    """
    primary: Optional[int]
    mu: float
    parameter: float
    eccentricity: float
    inclination: float = 0.0
    longitude_of_ascending_node: float = 0.0
    argument_of_periapsis: float = 0.0

    @classmethod
    def new(cls, primary: Optional[int], mu: float,
            parameter: Optional[float] = None,
            semi_major_axis: Optional[float] = None,
            eccentricity: float = 0.0,
            inclination: float = 0.0,
            longitude_of_ascending_node: float = 0.0,
            argument_of_periapsis: float = 0.0) -> Orbit:
        """Create an orbit from either the parameter or the semi-major axis.

        Raises:
            ValueError: If neither or both of `parameter` and
                `semi_major_axis` are given.
        """
        if (parameter is None) == (semi_major_axis is None):
            raise ValueError("Exactly one of parameter or semi_major_axis must be given")
        if parameter is None:
            parameter = semi_major_axis * (1.0 - eccentricity ** 2)
        return cls(primary, mu, parameter, eccentricity, inclination,
                   longitude_of_ascending_node, argument_of_periapsis)

    @property
    def orbit_type(self) -> OrbitType:
        e = self.eccentricity
        if e < ECCENTRICITY_EPSILON:
            return OrbitType.CIRCULAR
        if abs(e - 1.0) < ECCENTRICITY_EPSILON:
            return OrbitType.PARABOLIC
        if e < 1.0:
            return OrbitType.ELLIPTICAL
        return OrbitType.HYPERBOLIC

    @property
    def is_bound(self) -> bool:
        return self.orbit_type in (OrbitType.CIRCULAR, OrbitType.ELLIPTICAL)

    @property
    def is_unbound(self) -> bool:
        return not self.is_bound

    @property
    def periapsis(self) -> float:
        return self.parameter / (1.0 + self.eccentricity)

    @property
    def apoapsis(self) -> float:
        """Farthest distance [m]; infinite for unbound orbits."""
        if self.is_unbound:
            return float("inf")
        return self.parameter / (1.0 - self.eccentricity)

    @property
    def semi_major_axis(self) -> float:
        """a [m]; negative for hyperbolic, infinite for parabolic orbits."""
        if self.orbit_type == OrbitType.PARABOLIC:
            return float("inf")
        return self.parameter / (1.0 - self.eccentricity ** 2)

    @property
    def period(self) -> float:
        """Orbital period [s]; infinite for unbound orbits."""
        if self.is_unbound:
            return float("inf")
        return orbital_period(self.mu, self.semi_major_axis)

    @property
    def mean_motion(self) -> float:
        a = abs(self.semi_major_axis)
        return float(np.sqrt(self.mu / a ** 3))

    def change_of_basis_matrix(self) -> np.ndarray:
        """Perifocal to inertial rotation matrix."""
        return perifocal_to_inertial(self.longitude_of_ascending_node,
                                     self.inclination,
                                     self.argument_of_periapsis)

    def radius_at(self, true_anomaly: float) -> float:
        return self.parameter / (1.0 + self.eccentricity * np.cos(true_anomaly))

    def time_since_periapsis(self, true_anomaly: float) -> float:
        """Signed time from periapsis to `true_anomaly` [s].

        Elliptical results lie in (-T/2, T/2].
        """
        nu = np.arctan2(np.sin(true_anomaly), np.cos(true_anomaly))
        e = self.eccentricity
        orbit_type = self.orbit_type

        if orbit_type == OrbitType.PARABOLIC:
            # Barker's equation
            d = parabolic_anomaly(nu)
            return 0.5 * np.sqrt(self.parameter ** 3 / self.mu) * (d + d ** 3 / 3.0)

        if orbit_type == OrbitType.HYPERBOLIC:
            mean_anomaly = mean_anomaly_hyperbolic(hyperbolic_anomaly(nu, e), e)
            return mean_anomaly / self.mean_motion

        mean_anomaly = mean_anomaly_elliptical(eccentric_anomaly(nu, e), e)
        return mean_anomaly / self.mean_motion

    def __str__(self) -> str:
        return (f"p={self.parameter:.1f} m, e={self.eccentricity:.5f}, "
                f"i={np.degrees(self.inclination):.3f}°, "
                f"Ω={np.degrees(self.longitude_of_ascending_node):.3f}°, "
                f"ω={np.degrees(self.argument_of_periapsis):.3f}°")


@dataclass
class OrbitPosition:
    """A point on an orbit.

    Attributes:
        orbit: The orbit.
        true_anomaly: ν [rad].
    """
    orbit: Orbit
    true_anomaly: float

    @property
    def radius(self) -> float:
        return self.orbit.radius_at(self.true_anomaly)

    def calculate_state(self, primary_state: Optional[ObjectState] = None,
                        time: float = 0.0) -> ObjectState:
        """Position and velocity at this point.

        Args:
            primary_state: Absolute state of the primary body. If given, the
                returned state is absolute, otherwise primary-relative.
            time: Time stamp of the returned state [s].

        Returns:
            The object state at this orbit position.
        """
        orbit = self.orbit
        nu = self.true_anomaly
        e = orbit.eccentricity
        p = orbit.parameter

        r = p / (1.0 + e * np.cos(nu))
        r_pf = r * np.array([np.cos(nu), np.sin(nu), 0.0])
        v_pf = np.sqrt(orbit.mu / p) * np.array([-np.sin(nu), e + np.cos(nu), 0.0])

        q = orbit.change_of_basis_matrix()
        state = ObjectState(time=time, position=q @ r_pf, velocity=q @ v_pf, relative=True)
        if primary_state is not None:
            state = state.make_absolute(primary_state)
        return state

    def time_to_true_anomaly(self, target: float) -> Optional[float]:
        """Time [s] from this position until the orbit reaches `target`.

        Returns:
            Non-negative time, or None if an unbound orbit has already
            passed the target.
        """
        dt = self.orbit.time_since_periapsis(target) - self.orbit.time_since_periapsis(self.true_anomaly)
        if self.orbit.is_bound:
            if dt < 0.0:
                dt += self.orbit.period
            return dt
        if dt < 0.0:
            return None
        return dt

    def time_to_periapsis(self) -> Optional[float]:
        return self.time_to_true_anomaly(0.0)

    def time_to_apoapsis(self) -> Optional[float]:
        if self.orbit.is_unbound:
            return None
        return self.time_to_true_anomaly(np.pi)

    @classmethod
    def calculate_orbit_position(cls, primary: Optional[int], mu: float,
                                 relative_state: ObjectState) -> OrbitPosition:
        """Orbital elements and true anomaly of a primary-relative state.

        Args:
            primary: Handle of the primary body.
            mu: Gravitational parameter of the primary [m^3/s^2].
            relative_state: Position/velocity relative to the primary.

        Returns:
            The orbit position.
        """
        r = np.asarray(relative_state.position, dtype=float)
        v = np.asarray(relative_state.velocity, dtype=float)
        r_mag = np.linalg.norm(r)
        v_mag = np.linalg.norm(v)

        h = np.cross(r, v)
        h_mag = np.linalg.norm(h)
        n = np.cross(Z_AXIS, h)
        n_mag = np.linalg.norm(n)

        e_vec = ((v_mag ** 2 - mu / r_mag) * r - np.dot(r, v) * v) / mu
        e = np.linalg.norm(e_vec)
        parameter = h_mag ** 2 / mu

        inclination = float(np.arccos(np.clip(h[2] / h_mag, -1.0, 1.0))) if h_mag > 0.0 else 0.0
        circular = e < ECCENTRICITY_EPSILON
        equatorial = n_mag < ECCENTRICITY_EPSILON * max(h_mag, 1.0)

        if equatorial:
            raan = 0.0
        else:
            raan = float(np.arccos(np.clip(n[0] / n_mag, -1.0, 1.0)))
            if n[1] < 0.0:
                raan = TWO_PI - raan

        if circular:
            argp = 0.0
        elif equatorial:
            # Longitude of periapsis stands in for ω
            argp = float(np.arccos(np.clip(e_vec[0] / e, -1.0, 1.0)))
            if e_vec[1] < 0.0:
                argp = TWO_PI - argp
        else:
            argp = float(np.arccos(np.clip(np.dot(n, e_vec) / (n_mag * e), -1.0, 1.0)))
            if e_vec[2] < 0.0:
                argp = TWO_PI - argp

        if circular and equatorial:
            nu = float(np.arccos(np.clip(r[0] / r_mag, -1.0, 1.0)))
            if v[0] > 0.0:
                nu = TWO_PI - nu
        elif circular:
            # Argument of latitude measured from the ascending node
            nu = float(np.arccos(np.clip(np.dot(n, r) / (n_mag * r_mag), -1.0, 1.0)))
            if r[2] < 0.0:
                nu = TWO_PI - nu
        else:
            nu = float(np.arccos(np.clip(np.dot(e_vec, r) / (e * r_mag), -1.0, 1.0)))
            if np.dot(r, v) < 0.0:
                nu = TWO_PI - nu
        if np.isnan(nu):
            nu = 0.0

        orbit = Orbit(primary, mu, parameter, float(e), inclination, raan, argp)
        return cls(orbit, nu)


def calculate_orbit(primary: Optional[int], mu: float, relative_state: ObjectState) -> Orbit:
    """Orbit of a primary-relative state."""
    return OrbitPosition.calculate_orbit_position(primary, mu, relative_state).orbit


# ===================================================================
# Crossing calculators
# ===================================================================

def time_to_radius(position: OrbitPosition, radius: float) -> Optional[float]:
    """Smallest positive time [s] until the orbit crosses `radius`.

    Returns:
        Time, or None for (near-)circular orbits and radii the orbit never
        reaches.
    """
    orbit = position.orbit
    if orbit.eccentricity < ECCENTRICITY_EPSILON:
        return None
    nu = true_anomaly_at(radius, orbit.parameter, orbit.eccentricity)
    if nu is None:
        return None

    best = None
    for target in (nu, -nu):
        t = position.time_to_true_anomaly(target)
        if t is not None and t > 0.0 and (best is None or t < best):
            best = t
    return best


def time_to_impact(position: OrbitPosition, radius: float) -> Optional[float]:
    """Time [s] until the orbit intersects a body of the given radius.

    Returns:
        Time, or None if periapsis lies above the surface.
    """
    if position.orbit.periapsis > radius:
        return None
    return time_to_radius(position, radius)


def time_to_leave_sphere_of_influence(position: OrbitPosition, soi_radius: float) -> Optional[float]:
    """Time [s] until the orbit leaves a sphere of influence of radius `soi_radius`."""
    if position.orbit.apoapsis < soi_radius:
        return None
    return time_to_radius(position, soi_radius)


def soi_change_likely(orbit: Orbit, other_orbit: Orbit) -> bool:
    """True if `orbit` reaches out to the periapsis of another body's orbit."""
    return orbit.apoapsis >= other_orbit.periapsis
