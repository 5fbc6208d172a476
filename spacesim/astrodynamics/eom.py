"""
Equations of motion assembler.

The force model evaluates the total acceleration, torque and mass flow of
one object at one instant from:
    - point-mass gravity of its primary body
    - engine thrust (rockets with a running engine)
    - atmospheric drag (artificial objects inside the primary's atmosphere)

States passed in are primary-relative, so the primary sits at the origin
and is at rest. Evaluation has no side effects and may be repeated for
every integrator stage.

The state derivative used by the integrator is:
    ṙ = v,  v̇ = a,  q̇ = -½ [ω, 0] ⊗ q,  L̇ = τ
with ω = L / I the world-frame angular velocity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..attitude.kinematics import q_derivative
from ..core.config import ForceModelConfig
from ..core.types import AccelerationState, ObjectState
from .gravity import gravity_acceleration

_PRIMARY_AT_ORIGIN = ObjectState(relative=True)


@dataclass
class StateDerivative:
    """Time derivative of an object state.

    Attributes:
        velocity: ṙ [m/s], shape (3,).
        acceleration: v̇ [m/s^2], shape (3,).
        spin: q̇ [1/s], shape (4,).
        torque: L̇ [N·m], shape (3,).
    """
    velocity: np.ndarray
    acceleration: np.ndarray
    spin: np.ndarray
    torque: np.ndarray

    @classmethod
    def zero(cls) -> StateDerivative:
        return cls(np.zeros(3), np.zeros(3), np.zeros(4), np.zeros(3))


class ForceModel:
    """Gravity plus optional thrust and drag.

    Attributes:
        config: Force model toggles.
    """

    def __init__(self, config: Optional[ForceModelConfig] = None):
        self.config = config if config is not None else ForceModelConfig()

    def evaluate(self, obj, state: ObjectState) -> AccelerationState:
        """Acceleration, torque and mass flow of `obj` in `state`.

        Args:
            obj: Physics object being integrated.
            state: Primary-relative state to evaluate at (not mutated).

        Returns:
            AccelerationState for the instant.
        """
        primary = obj.primary_body
        if primary is None:
            return AccelerationState(np.zeros(3))

        acceleration = gravity_acceleration(primary.mu, state.position)
        torque = np.zeros(3)
        mass_flow = 0.0

        if obj.is_artificial:
            if obj.has_engine and obj.engine_running and self.config.enable_thrust:
                thrust = obj.engine_thrust(state.orientation)
                acceleration = acceleration + thrust / obj.mass
                mass_flow -= obj.mass_flow_rate
                if self.config.enable_torque:
                    torque = torque + obj.control_torque(state.orientation, thrust)

            if (self.config.enable_drag
                    and primary.atmosphere.inside(primary, _PRIMARY_AT_ORIGIN, state)):
                drag, drag_torque = primary.atmosphere.calculate_drag(
                    primary, _PRIMARY_AT_ORIGIN, obj.atmospheric_properties, state)
                acceleration = acceleration + drag / obj.mass
                if self.config.enable_torque:
                    torque = torque + drag_torque

        return AccelerationState(acceleration, torque, mass_flow)


def state_derivative(state: ObjectState, acceleration: AccelerationState,
                     moment_of_inertia: float) -> StateDerivative:
    """Assemble the state derivative from a force evaluation.

    Args:
        state: State the forces were evaluated at.
        acceleration: Force model output for `state`.
        moment_of_inertia: Scalar moment of inertia [kg·m^2].

    Returns:
        StateDerivative at `state`.
    """
    omega = state.angular_velocity(moment_of_inertia)
    return StateDerivative(
        velocity=state.velocity.copy(),
        acceleration=acceleration.acceleration,
        spin=q_derivative(state.orientation, omega),
        torque=acceleration.torque,
    )
