"""
Orbit propagators.

Each propagator advances one object by one step and stores the result as
the object's *next* state, expressed in absolute coordinates about the
primary body's current position:
    - CowellPropagator: RK4 integration of the full force model
    - TwoBodyPropagator: universal-variable Kepler solution measured from
      the object's reference state
    - HybridPropagator: picks one of the two for the whole object set each
      tick

Objects resting on a surface are carried rigidly with the rotation of
their primary body by both propagators.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from ..attitude.kinematics import rotate_about_axis
from ..attitude.quaternion import q_from_axis_angle, q_multiply, q_normalize
from ..core.config import SimConfig
from ..core.frames import rotation_angle, surface_velocity
from ..core.types import ObjectState, SimulationMode
from .eom import ForceModel
from .integrators import RungeKutta4Integrator
from .kepler import KeplerSolver

logger = logging.getLogger(__name__)

ObjectSink = Callable[[object], None]


def move_impacted_object(primary, relative_state: ObjectState, dt: float) -> ObjectState:
    """Carry a surface-bound state along with the rotation of its primary.

    Args:
        primary: Primary body (exposes `rotational_period`, `axis_of_rotation`).
        relative_state: Primary-relative state of the resting object.
        dt: Elapsed time [s].

    Returns:
        Primary-relative state after `dt`, moving with the surface.
    """
    axis = primary.axis_of_rotation / np.linalg.norm(primary.axis_of_rotation)
    angle = rotation_angle(dt, primary.rotational_period)

    position = rotate_about_axis(relative_state.position, axis, angle)
    velocity = surface_velocity(position, primary.rotational_period, axis)
    orientation = q_normalize(q_multiply(q_from_axis_angle(axis, -angle), relative_state.orientation))

    return relative_state.copy(
        time=relative_state.time + dt,
        position=position,
        velocity=velocity,
        orientation=orientation,
    )


class CowellPropagator:
    """Numeric propagation of the perturbed equations of motion.

    Attributes:
        config: Simulation configuration.
        force_model: Force evaluation shared by all objects.
        integrator: Fixed-step integrator.
    """

    mode = SimulationMode.PERTURBATION_COWELL

    def __init__(self, config: Optional[SimConfig] = None,
                 integrator: Optional[RungeKutta4Integrator] = None):
        self.config = config if config is not None else SimConfig()
        self.force_model = ForceModel(self.config.force_model)
        self.integrator = integrator if integrator is not None else RungeKutta4Integrator()

    def update(self, total_time: float, dt: float, obj, sink: Optional[ObjectSink] = None):
        """Integrate `obj` over one step and store its next state.

        Rockets with a running engine burn propellant for the step right
        after integration; any spent stages are handed to `sink`.

        Args:
            total_time: Simulation time at the start of the step [s].
            dt: Step size [s].
            obj: Object to advance.
            sink: Receives objects spawned during the step.
        """
        primary = obj.primary_body
        current = obj.state.make_relative(primary.state)

        if current.impacted:
            next_state = move_impacted_object(primary, current, dt)
        else:
            next_state = self.integrator.solve(
                current, dt,
                lambda state: self.force_model.evaluate(obj, state),
                obj.moment_of_inertia,
            )

        obj.set_next_state(next_state.make_absolute(primary.state))

        if obj.has_engine:
            if obj.engine_running:
                obj.after_impulse(dt)
            if sink is not None:
                obj.drain_staged(sink)


class TwoBodyPropagator:
    """Analytic propagation from each object's reference state.

    Attributes:
        solver: Universal-variable Kepler solver.
    """

    mode = SimulationMode.KEPLER_UNIVERSAL_VARIABLE

    def __init__(self, config: Optional[SimConfig] = None,
                 solver: Optional[KeplerSolver] = None):
        self.config = config if config is not None else SimConfig()
        self.solver = solver if solver is not None else KeplerSolver(self.config.kepler)

    def update(self, total_time: float, dt: float, obj, sink: Optional[ObjectSink] = None):
        """Solve for the state of `obj` at `total_time + dt` and store it."""
        primary = obj.primary_body

        if obj.state.impacted:
            current = obj.state.make_relative(primary.state)
            next_state = move_impacted_object(primary, current, dt)
        else:
            reference = obj.reference_state.make_relative(obj.reference_primary_state)
            elapsed = (total_time + dt) - obj.reference_state.time
            next_state = self.solver.solve(primary.mu, reference, elapsed)
            next_state = next_state.copy(
                time=total_time + dt,
                orientation=obj.state.orientation.copy(),
                angular_momentum=obj.state.angular_momentum.copy(),
            )

        obj.set_next_state(next_state.make_absolute(primary.state))

        if obj.has_engine and sink is not None:
            obj.drain_staged(sink)


class HybridPropagator:
    """Selects numeric or analytic propagation for the whole object set.

    Starts in numeric mode. `update_mode` must be called once per tick
    before propagating.

    Attributes:
        numeric: Propagator used when any object is perturbed.
        analytic: Propagator used when every object is ballistic.
        mode_changed: True if the last `update_mode` switched strategies.
    """

    def __init__(self, numeric: CowellPropagator, analytic: TwoBodyPropagator):
        self.numeric = numeric
        self.analytic = analytic
        self._current = numeric
        self.mode_changed = False

    @property
    def mode(self) -> SimulationMode:
        return self._current.mode

    @property
    def current(self):
        return self._current

    def update(self, total_time: float, dt: float, obj, sink: Optional[ObjectSink] = None):
        self._current.update(total_time, dt, obj, sink)

    @staticmethod
    def is_perturbed(obj) -> bool:
        """True if any force besides the primary's gravity acts on `obj`."""
        if not obj.is_artificial or obj.primary_body is None:
            return False
        if obj.has_engine and (obj.engine_running or not obj.is_idle):
            return True
        primary = obj.primary_body
        return primary.inside_atmosphere(obj.state) and not obj.impacted

    def classify(self, objects) -> SimulationMode:
        """Mode the object set requires, without switching."""
        if any(self.is_perturbed(obj) for obj in objects):
            return SimulationMode.PERTURBATION_COWELL
        return SimulationMode.KEPLER_UNIVERSAL_VARIABLE

    def update_mode(self, objects) -> SimulationMode:
        """Classify the object set and switch propagators accordingly.

        Returns:
            The mode for the coming tick.
        """
        mode = self.classify(objects)
        previous = self.mode
        self._current = self.numeric if mode == SimulationMode.PERTURBATION_COWELL else self.analytic
        self.mode_changed = mode != previous
        if self.mode_changed:
            logger.debug("Propagation mode %s -> %s", previous.name, mode.name)
        return mode

    def __str__(self) -> str:
        return f"Hybrid [{self.mode.name}]"
