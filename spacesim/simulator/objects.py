"""
Simulated objects.

Every object lives in an `ObjectTable` and refers to its primary body by
handle (its index in the table), so reassigning primaries never creates
ownership cycles.

Object kinds:
    - NaturalBody: planets and moons; the root of the hierarchy (the object
      of reference) is a natural body without a primary that only rotates
    - ArtificialObject: satellites and spent stages
    - RocketObject: artificial object with stages, an engine and a control
      program

Each object is double-buffered: propagators write `next_state` and the
engine commits it to `state` with `update` once every object has been
advanced, so nothing observes a half-advanced object during a tick.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import numpy as np

from ..astrodynamics.atmosphere import AtmosphereModel, NoAtmosphereModel
from ..astrodynamics.gravity import sphere_of_influence, standard_gravitational_parameter
from ..astrodynamics.orbit import Orbit, OrbitPosition
from ..attitude.kinematics import relative_to_absolute_direction
from ..attitude.quaternion import (
    q_conjugate, q_from_axis_angle, q_multiply, q_normalize, q_rotate_vector
)
from ..core.config import StagingConfig
from ..core.constants import Z_AXIS
from ..core.frames import cartesian_to_spherical, rotation_angle, surface_velocity
from ..core.types import AtmosphericProperties, ControlCommand, ObjectKind, ObjectState
from ..rocket.programs import ControlProgram, ExecuteManeuverProgram
from ..rocket.stages import RocketStage, RocketStages, delta_v
from .output import NullTextOutputWriter, TextOutputWriter

logger = logging.getLogger(__name__)


class ObjectTable:
    """Append-only arena of simulated objects; a handle is an index."""

    def __init__(self):
        self._objects: list[PhysicsObject] = []

    def register(self, obj: PhysicsObject) -> int:
        """Add `obj` to the table and return its handle."""
        if obj.handle is not None:
            raise ValueError(f"{obj.name} is already registered")
        obj.handle = len(self._objects)
        obj.table = self
        self._objects.append(obj)
        return obj.handle

    def __getitem__(self, handle: int) -> PhysicsObject:
        return self._objects[handle]

    def __iter__(self):
        return iter(list(self._objects))

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, obj) -> bool:
        return obj.handle is not None and obj.handle < len(self._objects) and self._objects[obj.handle] is obj


# ===================================================================
# Base object
# ===================================================================

class PhysicsObject:
    """An object in the gravitational hierarchy.

    Attributes:
        name: Display name.
        kind: Role in the hierarchy.
        mass: Mass [kg].
        radius: Radius [m] (0 for artificial objects).
        rotational_period: Sidereal rotation period [s] (0 if not spinning).
        axis_of_rotation: Spin axis, shape (3,).
        moment_of_inertia: Scalar moment of inertia [kg·m^2].
        primary_handle: Handle of the primary body, None for the root.
        state: Committed absolute state.
        next_state: Absolute state written during the current tick.
        reference_state: Anchor state for analytic propagation.
        reference_primary_state: Primary state at the reference epoch.
        reference_orbit: Orbit derived from the reference state.
        orbit_version: Bumped whenever the reference orbit changes.
        used_delta_v: Accumulated ΔV [m/s].
        target_handle: Optional maneuver/intercept target.
    """

    def __init__(self, name: str, kind: ObjectKind, mass: float,
                 primary: Optional[PhysicsObject], initial_state: ObjectState,
                 initial_orbit: Optional[Orbit] = None,
                 radius: float = 0.0,
                 rotational_period: float = 0.0,
                 axis_of_rotation: np.ndarray = Z_AXIS,
                 moment_of_inertia: Optional[float] = None):
        self.name = name
        self.kind = kind
        self.mass = mass
        self.radius = radius
        self.rotational_period = rotational_period
        self.axis_of_rotation = np.asarray(axis_of_rotation, dtype=float)
        self.moment_of_inertia = (moment_of_inertia if moment_of_inertia is not None
                                  else max(0.4 * mass * radius ** 2, 1.0))

        self.handle: Optional[int] = None
        self.table: Optional[ObjectTable] = None
        self.primary_handle: Optional[int] = None
        if primary is not None:
            if primary.handle is None:
                raise ValueError(f"Primary body {primary.name} is not registered")
            self.table = primary.table
            self.primary_handle = primary.handle

        self.state = initial_state.copy()
        self.next_state = initial_state.copy()
        self.reference_state = initial_state.copy()
        self.reference_primary_state = primary.state.copy() if primary is not None else None
        if initial_orbit is None and primary is not None:
            initial_orbit = self.calculate_orbit()
        self.reference_orbit = initial_orbit

        self.orbit_version = 0
        self.used_delta_v = 0.0
        self.target_handle: Optional[int] = None
        self._orbit_changed = False

    # -- Capabilities ---------------------------------------------------

    has_engine = False
    has_atmosphere = False

    @property
    def is_reference(self) -> bool:
        return self.kind == ObjectKind.REFERENCE

    @property
    def is_natural(self) -> bool:
        return self.kind in (ObjectKind.REFERENCE, ObjectKind.NATURAL)

    @property
    def is_artificial(self) -> bool:
        return self.kind == ObjectKind.ARTIFICIAL

    # -- Hierarchy ------------------------------------------------------

    @property
    def primary_body(self) -> Optional[NaturalBody]:
        if self.primary_handle is None or self.table is None:
            return None
        return self.table[self.primary_handle]

    @property
    def target(self) -> Optional[PhysicsObject]:
        if self.target_handle is None or self.table is None:
            return None
        return self.table[self.target_handle]

    @target.setter
    def target(self, obj: Optional[PhysicsObject]):
        self.target_handle = obj.handle if obj is not None else None

    # -- Derived quantities ---------------------------------------------

    @property
    def mu(self) -> float:
        return standard_gravitational_parameter(self.mass)

    @property
    def impacted(self) -> bool:
        return self.state.impacted

    @property
    def position(self) -> np.ndarray:
        return self.state.position

    @property
    def velocity(self) -> np.ndarray:
        return self.state.velocity

    @property
    def sphere_of_influence(self) -> Optional[float]:
        """SOI radius [m] about this body, None for the root."""
        primary = self.primary_body
        if primary is None or self.reference_orbit is None:
            return None
        return sphere_of_influence(self.reference_orbit.semi_major_axis, self.mass, primary.mass)

    def altitude(self, position: Optional[np.ndarray] = None) -> float:
        """Altitude [m] of `position` above this body.

        Without a position, the altitude of this object above its primary.
        """
        if position is None:
            return self.primary_body.altitude(self.state.position)
        return float(np.linalg.norm(np.asarray(position) - self.state.position)) - self.radius

    def relative_state(self) -> ObjectState:
        """Current state relative to the primary body."""
        return self.state.make_relative(self.primary_body.state)

    def orbit_position(self) -> OrbitPosition:
        """Current orbit position about the primary body."""
        primary = self.primary_body
        return OrbitPosition.calculate_orbit_position(primary.handle, primary.mu, self.relative_state())

    def calculate_orbit(self) -> Orbit:
        return self.orbit_position().orbit

    def coordinates(self) -> tuple[float, float]:
        """(latitude, longitude) [rad] over the rotating primary body."""
        primary = self.primary_body
        relative = self.state.position - primary.state.position
        body_fixed = q_rotate_vector(q_conjugate(primary.state.orientation), relative)
        _, latitude, longitude = cartesian_to_spherical(body_fixed)
        return latitude, longitude

    def is_finite(self) -> bool:
        return self.state.is_finite() and bool(np.isfinite(self.mass))

    # -- State changes --------------------------------------------------

    def set_next_state(self, state: ObjectState):
        self.next_state = state

    def set_orientation(self, orientation: np.ndarray):
        self.state.orientation = q_normalize(np.asarray(orientation, dtype=float))

    def kill_rotation(self):
        self.state.angular_momentum = np.zeros(3)

    def update_reference_orbit(self):
        """Re-anchor analytic propagation at the current state."""
        primary = self.primary_body
        self.reference_state = self.state.copy()
        self.reference_primary_state = primary.state.copy()
        self.reference_orbit = self.calculate_orbit()
        self.orbit_version += 1
        self._orbit_changed = True

    def has_changed_orbit(self) -> bool:
        """True once after every reference orbit change."""
        changed = self._orbit_changed
        self._orbit_changed = False
        return changed

    def apply_delta_velocity(self, total_time: float, delta_velocity: np.ndarray):
        """Instantaneous velocity change; lifts the object off the surface."""
        self.state.velocity = self.state.velocity + delta_velocity
        self.state.impacted = False
        self.update_reference_orbit()
        self.used_delta_v += float(np.linalg.norm(delta_velocity))

    def apply_burn(self, total_time: float, delta_velocity: np.ndarray):
        """Execute a scheduled maneuver."""
        self.apply_delta_velocity(total_time, delta_velocity)

    def change_primary_body(self, primary: NaturalBody):
        old = self.primary_body
        self.primary_handle = primary.handle
        self.update_reference_orbit()
        logger.info("%s: primary body %s -> %s", self.name,
                    old.name if old is not None else None, primary.name)

    def check_impacted(self, total_time: float, margin: float = 0.0):
        """Snap to the surface if the object intersects its primary.

        Tested against the primary's next state, which is the state the
        primary is committed to this tick. Objects within `margin` metres
        above the surface count as intersecting.
        """
        primary = self.primary_body
        if primary is None:
            return
        primary_state = primary.next_state
        offset = self.state.position - primary_state.position
        distance = np.linalg.norm(offset)
        if distance >= primary.radius + self.radius + margin:
            return

        direction = offset / distance if distance > 0.0 else Z_AXIS
        self.state.position = primary_state.position + direction * (primary.radius + self.radius + 1.0)
        self.state.velocity = primary_state.velocity.copy()
        self.state.impacted = True
        self.reference_state = self.state.copy(time=total_time)
        self.reference_primary_state = primary_state.copy()
        self.orbit_version += 1
        self._orbit_changed = True
        logger.info("%s: impacted %s at t=%.3f s", self.name, primary.name, total_time)

    def update(self, total_time: float, dt: float):
        """Commit the next state, then check for an impact."""
        self.state = self.next_state
        if not self.impacted:
            self.check_impacted(total_time)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, handle={self.handle})"


# ===================================================================
# Natural bodies
# ===================================================================

class NaturalBody(PhysicsObject):
    """Planet or moon; may act as a primary body.

    Attributes:
        atmosphere: Atmosphere model.
    """

    def __init__(self, name: str, mass: float, radius: float,
                 rotational_period: float, axis_of_rotation: np.ndarray,
                 primary: Optional[NaturalBody], initial_state: ObjectState,
                 initial_orbit: Optional[Orbit] = None,
                 atmosphere: Optional[AtmosphereModel] = None):
        kind = ObjectKind.NATURAL if primary is not None else ObjectKind.REFERENCE
        super().__init__(name, kind, mass, primary, initial_state, initial_orbit,
                         radius=radius,
                         rotational_period=rotational_period,
                         axis_of_rotation=axis_of_rotation)
        self.atmosphere = atmosphere if atmosphere is not None else NoAtmosphereModel()

    @property
    def has_atmosphere(self) -> bool:
        return not isinstance(self.atmosphere, NoAtmosphereModel)

    def inside_atmosphere(self, state: ObjectState) -> bool:
        return self.atmosphere.inside(self, self.state, state)

    def surface_velocity(self, relative_position: np.ndarray) -> np.ndarray:
        """Velocity [m/s] of a surface point relative to the body's centre."""
        return surface_velocity(relative_position, self.rotational_period, self.axis_of_rotation)

    def spin(self, state: ObjectState, dt: float) -> ObjectState:
        """Copy of `state` with the orientation advanced by `dt` of rotation."""
        axis = self.axis_of_rotation / np.linalg.norm(self.axis_of_rotation)
        angle = rotation_angle(dt, self.rotational_period)
        return state.copy(orientation=q_normalize(q_multiply(q_from_axis_angle(axis, -angle), state.orientation)))


# ===================================================================
# Artificial objects
# ===================================================================

class ArtificialObject(PhysicsObject):
    """Satellite or spent stage.

    Attributes:
        thrust_offset: Body-frame lever arm of the thrust application point [m].
    """

    def __init__(self, name: str, mass: float, primary: NaturalBody,
                 initial_state: ObjectState,
                 initial_orbit: Optional[Orbit] = None,
                 atmospheric_properties: Optional[AtmosphericProperties] = None,
                 moment_of_inertia: float = 1.0,
                 thrust_offset: Optional[np.ndarray] = None):
        super().__init__(name, ObjectKind.ARTIFICIAL, mass, primary, initial_state, initial_orbit,
                         moment_of_inertia=moment_of_inertia)
        self._atmospheric_properties = atmospheric_properties or AtmosphericProperties()
        self.thrust_offset = (np.zeros(3) if thrust_offset is None
                              else np.asarray(thrust_offset, dtype=float))

    @property
    def atmospheric_properties(self) -> AtmosphericProperties:
        return self._atmospheric_properties

    engine_running = False
    is_idle = True


class RocketObject(ArtificialObject):
    """Multi-stage rocket driven by a control program.

    Attributes:
        stages: Stage queue.
        writer: Receives staging messages.
        staging: Which state spent stages are spawned from.
        control_program: Active program, or None.
        command: Last command issued by the control program.
        launch_coordinates: (latitude, longitude) at lift-off, if launched.
    """

    has_engine = True

    def __init__(self, name: str, primary: NaturalBody, initial_state: ObjectState,
                 stages: RocketStages,
                 initial_orbit: Optional[Orbit] = None,
                 writer: Optional[TextOutputWriter] = None,
                 staging: Optional[StagingConfig] = None,
                 mass: Optional[float] = None,
                 moment_of_inertia: float = 1.0,
                 thrust_offset: Optional[np.ndarray] = None):
        super().__init__(name, stages.total_mass if mass is None else mass, primary,
                         initial_state, initial_orbit,
                         moment_of_inertia=moment_of_inertia,
                         thrust_offset=thrust_offset)
        self.stages = stages
        self.writer = writer if writer is not None else NullTextOutputWriter()
        self.staging = staging if staging is not None else StagingConfig()
        self.control_program: Optional[ControlProgram] = None
        self.command = ControlCommand()
        self.launch_coordinates: Optional[tuple[float, float]] = None
        self._engine_running = False
        self._update_orbit = False
        self._staged: list[RocketObject] = []

    # -- Engine ---------------------------------------------------------

    @property
    def engine_running(self) -> bool:
        return self._engine_running

    @property
    def is_idle(self) -> bool:
        return self.control_program is None or self.control_program.is_completed

    @property
    def current_stage(self) -> RocketStage:
        return self.stages.current_stage

    @property
    def atmospheric_properties(self) -> AtmosphericProperties:
        return self.stages.atmospheric_properties

    @property
    def engine_throttle(self) -> float:
        return self.current_stage.throttle

    @engine_throttle.setter
    def engine_throttle(self, value: float):
        self.current_stage.throttle = value

    @property
    def mass_flow_rate(self) -> float:
        return self.current_stage.total_mass_flow_rate

    def start_engine(self):
        self._engine_running = True

    def stop_engine(self):
        self._engine_running = False

    def engine_thrust(self, orientation: Optional[np.ndarray] = None) -> np.ndarray:
        """World-frame thrust [N] for the given (or current) orientation."""
        if not self._engine_running:
            return np.zeros(3)
        if orientation is None:
            orientation = self.state.orientation
        direction = relative_to_absolute_direction(orientation, self.command.thrust_direction)
        return self.current_stage.total_thrust * direction

    def engine_acceleration(self) -> np.ndarray:
        return self.engine_thrust() / self.mass

    def control_torque(self, orientation: np.ndarray, thrust: np.ndarray) -> np.ndarray:
        """Torque [N·m] of the thrust about the centre of mass plus the commanded torque."""
        lever_arm = q_rotate_vector(orientation, self.thrust_offset)
        return np.cross(lever_arm, thrust) + self.command.torque

    # -- Programs -------------------------------------------------------

    def set_control_program(self, program: Optional[ControlProgram]):
        self.control_program = program

    def start_program(self, program: Optional[ControlProgram] = None):
        """Start the engine and the control program.

        A rocket resting on the surface lifts off: it leaves the impacted
        state with the velocity of the surface below it.
        """
        if program is not None:
            self.set_control_program(program)
        if self.control_program is None:
            return

        self.start_engine()
        if self.state.impacted:
            primary = self.primary_body
            relative_position = self.state.position - primary.state.position
            self.state.impacted = False
            self.launch_coordinates = self.coordinates()
            self.state.velocity = primary.state.velocity + primary.surface_velocity(relative_position)
            self._update_orbit = True
            logger.info("%s: lift off from %s", self.name, primary.name)

        self.control_program.start(self.state.time)
        self.command = self.control_program.command()

    def apply_burn(self, total_time: float, delta_velocity: np.ndarray):
        """Execute a maneuver as a finite burn."""
        self.start_program(ExecuteManeuverProgram(self, delta_velocity))

    # -- Staging --------------------------------------------------------

    def after_impulse(self, dt: float):
        """Burn propellant for a step of `dt` seconds.

        If the current stage cannot cover the step, the rocket stages
        instead; with no stage left the engine stops.
        """
        self._update_orbit = True
        delta_mass = self.stages.use_fuel(dt)
        if delta_mass is not None:
            self.used_delta_v += delta_v(self.current_stage.effective_exhaust_velocity,
                                         self.mass, self.mass - delta_mass)
            self.mass -= delta_mass
        elif not self.stage():
            self.stop_engine()

    def stage(self, apply_to_staged: Optional[Callable[[RocketObject], None]] = None) -> bool:
        """Discard the current stage as a new object.

        The spent stage is queued until the engine drains it, and is
        anchored to this rocket's reference state (or next state, per the
        staging configuration).

        Returns:
            True if a stage was discarded.
        """
        old_stage = self.stages.stage()
        if old_stage is None:
            return False

        if self.staging.stage_anchor == "next":
            anchor = self.next_state.copy()
        else:
            anchor = self.reference_state.copy()

        spent = RocketObject(
            f"{self.name} - {old_stage.name}",
            self.primary_body,
            anchor,
            RocketStages([old_stage]),
            initial_orbit=self.reference_orbit,
            writer=self.writer,
            staging=self.staging,
            mass=old_stage.mass,
        )
        spent.launch_coordinates = self.launch_coordinates
        if self.staging.stage_anchor != "next":
            spent.reference_primary_state = self.reference_primary_state.copy()
        if apply_to_staged is not None:
            apply_to_staged(spent)
        spent.set_next_state(anchor.copy())
        self._staged.append(spent)

        self.mass = self.stages.total_mass
        self.writer.write_line(f"{self.name}: staged '{old_stage.name}'.")
        return True

    @property
    def staged_objects(self) -> list[RocketObject]:
        return list(self._staged)

    def drain_staged(self, sink: Callable[[PhysicsObject], None]):
        """Hand every pending spent stage to `sink`."""
        for staged in self._staged:
            sink(staged)
        self._staged.clear()

    # -- Tick -----------------------------------------------------------

    def update(self, total_time: float, dt: float):
        super().update(total_time, dt)

        if self._update_orbit:
            self.update_reference_orbit()
            self._update_orbit = False

        if self.control_program is not None:
            self.command = self.control_program.update(total_time, dt)
            if self.control_program.is_completed:
                self.control_program = None
                self.command = ControlCommand()
                self.stop_engine()
