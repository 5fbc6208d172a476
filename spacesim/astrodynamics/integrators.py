"""
Fixed-step numeric integration.

Classic 4th-order Runge-Kutta over position, velocity, orientation and
angular momentum. The orientation is renormalized once after the step.
Mass is not integrated: rockets account for propellant use after the step.
"""

from __future__ import annotations

from typing import Callable

from ..attitude.quaternion import q_normalize
from ..core.types import AccelerationState, ObjectState
from .eom import StateDerivative, state_derivative

AccelerationFunc = Callable[[ObjectState], AccelerationState]


class RungeKutta4Integrator:
    """Explicit RK4 integrator for object states."""

    def _evaluate(self, initial: ObjectState, dt: float, derivative: StateDerivative,
                  calculate_acceleration: AccelerationFunc,
                  moment_of_inertia: float) -> StateDerivative:
        state = initial.copy(
            time=initial.time + dt,
            position=initial.position + derivative.velocity * dt,
            velocity=initial.velocity + derivative.acceleration * dt,
            orientation=initial.orientation + derivative.spin * dt,
            angular_momentum=initial.angular_momentum + derivative.torque * dt,
        )
        return state_derivative(state, calculate_acceleration(state), moment_of_inertia)

    def solve(self, state: ObjectState, dt: float,
              calculate_acceleration: AccelerationFunc,
              moment_of_inertia: float = 1.0) -> ObjectState:
        """Advance `state` by one step.

        Args:
            state: Initial state (not mutated).
            dt: Step size [s].
            calculate_acceleration: Force evaluation at an intermediate state.
            moment_of_inertia: Scalar moment of inertia [kg·m^2].

        Returns:
            State at `state.time + dt`.
        """
        k0 = self._evaluate(state, 0.0, StateDerivative.zero(), calculate_acceleration, moment_of_inertia)
        k1 = self._evaluate(state, 0.5 * dt, k0, calculate_acceleration, moment_of_inertia)
        k2 = self._evaluate(state, 0.5 * dt, k1, calculate_acceleration, moment_of_inertia)
        k3 = self._evaluate(state, dt, k2, calculate_acceleration, moment_of_inertia)

        velocity = (k0.velocity + 2.0 * (k1.velocity + k2.velocity) + k3.velocity) / 6.0
        acceleration = (k0.acceleration + 2.0 * (k1.acceleration + k2.acceleration) + k3.acceleration) / 6.0
        spin = (k0.spin + 2.0 * (k1.spin + k2.spin) + k3.spin) / 6.0
        torque = (k0.torque + 2.0 * (k1.torque + k2.torque) + k3.torque) / 6.0

        return state.copy(
            time=state.time + dt,
            position=state.position + velocity * dt,
            velocity=state.velocity + acceleration * dt,
            orientation=q_normalize(state.orientation + spin * dt),
            angular_momentum=state.angular_momentum + torque * dt,
        )
