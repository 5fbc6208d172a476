"""
Universal-variable Kepler propagator.

Closed-form two-body propagation valid for elliptical, parabolic and
hyperbolic orbits (Curtis Algorithm 3.4). The universal anomaly χ is found
with scipy's Newton solver using the analytic derivative of the universal
Kepler equation; the Lagrange coefficients f, g, ḟ, ġ then map the initial
state to the final one.

Cost is independent of the elapsed time: bound orbits are first reduced
modulo their period.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from scipy.optimize import newton

from ..core.config import KeplerSolverConfig
from ..core.types import ObjectState

logger = logging.getLogger(__name__)

_SERIES_LIMIT = 1e-3


# ===================================================================
# Stumpff functions
# ===================================================================

def stumpff_c(z: float) -> float:
    """Stumpff function C(z)."""
    if abs(z) < _SERIES_LIMIT:
        return 1.0 / 2.0 - z / 24.0 + z ** 2 / 720.0
    if z > 0.0:
        return (1.0 - np.cos(np.sqrt(z))) / z
    return (np.cosh(np.sqrt(-z)) - 1.0) / (-z)


def stumpff_s(z: float) -> float:
    """Stumpff function S(z)."""
    if abs(z) < _SERIES_LIMIT:
        return 1.0 / 6.0 - z / 120.0 + z ** 2 / 5040.0
    if z > 0.0:
        sz = np.sqrt(z)
        return (sz - np.sin(sz)) / sz ** 3
    sz = np.sqrt(-z)
    return (np.sinh(sz) - sz) / sz ** 3


# ===================================================================
# Solver
# ===================================================================

class KeplerSolver:
    """Two-body state propagation with the universal variable.

    Attributes:
        config: Newton tolerance and iteration cap.
    """

    def __init__(self, config: Optional[KeplerSolverConfig] = None):
        self.config = config if config is not None else KeplerSolverConfig()

    def universal_anomaly(self, mu: float, r0: float, vr0: float,
                          alpha: float, dt: float) -> float:
        """Solve the universal Kepler equation for χ [sqrt(m)].

        Args:
            mu: Gravitational parameter [m^3/s^2].
            r0: Initial radius [m].
            vr0: Initial radial speed [m/s].
            alpha: Reciprocal semi-major axis [1/m].
            dt: Elapsed time [s].

        Returns:
            χ after Newton iteration. On non-convergence the last iterate
            is returned and a warning logged.
        """
        sqrt_mu = np.sqrt(mu)

        def kepler_equation(x):
            z = alpha * x ** 2
            return (r0 * vr0 / sqrt_mu * x ** 2 * stumpff_c(z)
                    + (1.0 - alpha * r0) * x ** 3 * stumpff_s(z)
                    + r0 * x - sqrt_mu * dt)

        def kepler_derivative(x):
            z = alpha * x ** 2
            return (r0 * vr0 / sqrt_mu * x * (1.0 - alpha * x ** 2 * stumpff_s(z))
                    + (1.0 - alpha * r0) * x ** 2 * stumpff_c(z)
                    + r0)

        x0 = sqrt_mu * abs(alpha) * dt
        root, result = newton(
            kepler_equation, x0,
            fprime=kepler_derivative,
            tol=self.config.tolerance,
            maxiter=self.config.max_iterations,
            full_output=True,
            disp=False,
        )
        if not result.converged:
            logger.warning("Universal Kepler equation did not converge after %d iterations "
                           "(dt=%.3f s, alpha=%.3e)", result.iterations, dt, alpha)
        return float(root)

    def solve(self, mu: float, relative_state: ObjectState, dt: float) -> ObjectState:
        """Propagate a primary-relative state by `dt` seconds.

        Args:
            mu: Gravitational parameter of the primary [m^3/s^2].
            relative_state: Primary-relative state at the start.
            dt: Elapsed time [s], may be negative.

        Returns:
            New primary-relative state at `relative_state.time + dt`.
            Orientation and angular momentum are carried unchanged.
        """
        if dt == 0.0:
            return relative_state.copy()

        r_vec = relative_state.position
        v_vec = relative_state.velocity
        r0 = np.linalg.norm(r_vec)
        v0 = np.linalg.norm(v_vec)
        vr0 = np.dot(r_vec, v_vec) / r0
        alpha = 2.0 / r0 - v0 ** 2 / mu

        t = dt
        if alpha > 0.0:
            period = 2.0 * np.pi * np.sqrt(1.0 / alpha ** 3 / mu)
            t = np.fmod(dt, period)

        x = self.universal_anomaly(mu, r0, vr0, alpha, t)
        z = alpha * x ** 2
        c = stumpff_c(z)
        s = stumpff_s(z)

        f = 1.0 - x ** 2 / r0 * c
        g = t - x ** 3 / np.sqrt(mu) * s
        position = f * r_vec + g * v_vec
        r = np.linalg.norm(position)

        f_dot = np.sqrt(mu) / (r * r0) * (alpha * x ** 3 * s - x)
        g_dot = 1.0 - x ** 2 / r * c
        velocity = f_dot * r_vec + g_dot * v_vec

        return relative_state.copy(
            time=relative_state.time + dt,
            position=position,
            velocity=velocity,
        )


# ===================================================================
# Nested primaries
# ===================================================================

def primary_state_after(solver: KeplerSolver, body, dt: float) -> ObjectState:
    """Absolute state of a body `dt` seconds after its current state.

    Walks up the primary chain: a body with no primary (the object of
    reference) stays where it is.
    """
    primary = body.primary_body
    if primary is None:
        return body.state.copy(time=body.state.time + dt)
    relative = body.state.make_relative(primary.state)
    return after_time(solver, primary, relative, dt)


def after_time(solver: KeplerSolver, primary, relative_state: ObjectState,
               dt: float, relative: bool = False) -> ObjectState:
    """Two-body prediction of a state about `primary` after `dt` seconds.

    Args:
        solver: Kepler solver.
        primary: Primary body object (exposes `mu`, `state`, `primary_body`).
        relative_state: State relative to `primary` at the current time.
        dt: Elapsed time [s].
        relative: Return the primary-relative state instead of the absolute one.

    Returns:
        Predicted state.
    """
    predicted = solver.solve(primary.mu, relative_state, dt)
    if relative:
        return predicted
    return predicted.make_absolute(primary_state_after(solver, primary, dt))
