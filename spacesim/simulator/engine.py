"""
Simulator engine.

Owns the object table, the simulation clock, the scheduled maneuvers and
the predicted events, and advances everything in ticks:

    1. execute due maneuvers, re-derive the components of the rest
    2. retire due events
    3. abort the tick if step 1 scheduled an event inside it
    4. propagate every object (the object of reference only rotates)
    5. re-anchor every object on its primary's new state, primaries first
    6. merge objects spawned during the tick (spent stages)
    7. commit next states, checking for impacts
    8. advance the clock
    9. re-evaluate spheres of influence

While any object is perturbed (engine burning, inside an atmosphere) the
whole set is integrated numerically with a fixed step clipped at the next
maneuver/event. Otherwise the engine jumps analytically from one scheduled
maneuver/event to the next.

The engine is single-threaded. Background work hands results over through
`submit`; they are applied at the start of the next `advance`/`update`.
"""

from __future__ import annotations

import logging
import queue
from typing import Callable, Iterable, Optional, Union

import numpy as np

from ..astrodynamics.atmosphere import AtmosphereModel
from ..astrodynamics.kepler import KeplerSolver, after_time
from ..astrodynamics.orbit import (
    OrbitPosition, soi_change_likely, time_to_impact,
    time_to_leave_sphere_of_influence, time_to_radius
)
from ..astrodynamics.propagator import CowellPropagator, HybridPropagator, TwoBodyPropagator
from ..core.config import SimConfig
from ..core.constants import Z_AXIS
from ..core.types import (
    AtmosphericProperties, ObjectState, OrbitalManeuver, SimulationEventType, SimulationMode
)
from ..rocket.stages import RocketStages
from .events import SimulationEvent, SimulationManeuver
from .objects import ArtificialObject, NaturalBody, ObjectTable, PhysicsObject, RocketObject
from .output import LoggingTextOutputWriter, TextOutputWriter

logger = logging.getLogger(__name__)

_TIME_TOLERANCE = 1e-9


class SimulatorEngine:
    """Orchestrates propagation, maneuvers, events and SOI changes.

    Attributes:
        config: Simulation configuration.
        writer: Receives human-facing messages.
        kepler_solver: Solver shared by analytic propagation and prediction.
        propagator: Numeric/analytic propagation selector.
        history: Executed maneuvers and retired events, in execution order.
        on_object_added: Callbacks invoked with (engine, object) whenever a
            spawned object is merged into the table.
    """

    def __init__(self, config: Optional[SimConfig] = None,
                 writer: Optional[TextOutputWriter] = None):
        self.config = config if config is not None else SimConfig()
        self.writer = writer if writer is not None else LoggingTextOutputWriter()

        self.kepler_solver = KeplerSolver(self.config.kepler)
        self.propagator = HybridPropagator(
            CowellPropagator(self.config),
            TwoBodyPropagator(self.config, self.kepler_solver),
        )

        self._table = ObjectTable()
        self._pending: list[PhysicsObject] = []
        self._spheres_of_influence: dict[int, float] = {}
        self._total_time = 0.0

        self._maneuvers: list[SimulationManeuver] = []
        self._events: list[SimulationEvent] = []
        self._soi_changes: dict[int, SimulationEvent] = {}
        self._crashes: dict[int, SimulationEvent] = {}
        self._added_event = False

        self.history: list[Union[SimulationManeuver, SimulationEvent]] = []
        self.on_object_added: list[Callable[[SimulatorEngine, PhysicsObject], None]] = []
        self._results: queue.SimpleQueue = queue.SimpleQueue()

    # ---------------------------------------------------------------
    # Accessors
    # ---------------------------------------------------------------

    @property
    def objects(self) -> list[PhysicsObject]:
        return list(self._table)

    @property
    def table(self) -> ObjectTable:
        return self._table

    @property
    def object_of_reference(self) -> Optional[NaturalBody]:
        for obj in self._table:
            if obj.is_reference:
                return obj
        return None

    @property
    def total_time(self) -> float:
        return self._total_time

    @property
    def time_step(self) -> float:
        return self.config.integrator.time_step

    @property
    def maneuvers(self) -> list[SimulationManeuver]:
        return list(self._maneuvers)

    @property
    def events(self) -> list[SimulationEvent]:
        return list(self._events)

    @property
    def mode(self) -> SimulationMode:
        return self.propagator.mode

    def sphere_of_influence(self, body: PhysicsObject) -> Optional[float]:
        """Cached SOI radius [m] of a natural body, None for the root."""
        return self._spheres_of_influence.get(body.handle)

    def non_finite_objects(self) -> list[PhysicsObject]:
        """Objects whose state contains NaN or infinite values."""
        return [obj for obj in self._table if not obj.is_finite()]

    # ---------------------------------------------------------------
    # Objects
    # ---------------------------------------------------------------

    def add_object(self, obj: PhysicsObject) -> PhysicsObject:
        """Register an object; natural satellites get their SOI cached."""
        self._table.register(obj)
        if obj.is_natural and not obj.is_reference:
            self._spheres_of_influence[obj.handle] = obj.sphere_of_influence
        logger.info("Added %s (%s) at t=%.3f s", obj.name, obj.kind.name, self._total_time)
        return obj

    def _add_new_object(self, obj: PhysicsObject):
        self._pending.append(obj)

    def _merge_pending(self):
        pending, self._pending = self._pending, []
        for obj in pending:
            self.add_object(obj)
            for callback in self.on_object_added:
                callback(self, obj)

    def add_reference_body(self, name: str, mass: float, radius: float,
                           rotational_period: float,
                           axis_of_rotation: np.ndarray = Z_AXIS,
                           atmosphere: Optional[AtmosphereModel] = None) -> NaturalBody:
        """Add the root of the hierarchy at the origin, at rest.

        Raises:
            ValueError: If an object of reference already exists.
        """
        if self.object_of_reference is not None:
            raise ValueError("The simulation already has an object of reference")
        body = NaturalBody(name, mass, radius, rotational_period, axis_of_rotation,
                           None, ObjectState(time=self._total_time), atmosphere=atmosphere)
        return self.add_object(body)

    def _primary_of(self, orbit_position: OrbitPosition) -> NaturalBody:
        handle = orbit_position.orbit.primary
        if handle is None or handle >= len(self._table):
            raise ValueError("Orbit does not reference a registered primary body")
        return self._table[handle]

    def add_planet_in_orbit(self, name: str, mass: float, radius: float,
                            rotational_period: float, axis_of_rotation: np.ndarray,
                            atmosphere: Optional[AtmosphereModel],
                            orbit_position: OrbitPosition) -> NaturalBody:
        """Add a natural satellite at a point of an orbit."""
        primary = self._primary_of(orbit_position)
        state = orbit_position.calculate_state(primary.state, time=self._total_time)
        body = NaturalBody(name, mass, radius, rotational_period, axis_of_rotation,
                           primary, state, orbit_position.orbit, atmosphere)
        return self.add_object(body)

    def add_satellite(self, primary: NaturalBody, name: str, mass: float,
                      atmospheric_properties: Optional[AtmosphericProperties],
                      position: np.ndarray, velocity: np.ndarray) -> ArtificialObject:
        """Add a satellite at an absolute position and velocity."""
        state = ObjectState(time=self._total_time, position=position, velocity=velocity)
        satellite = ArtificialObject(name, mass, primary, state,
                                     atmospheric_properties=atmospheric_properties)
        return self.add_object(satellite)

    def add_satellite_in_orbit(self, name: str, mass: float,
                               atmospheric_properties: Optional[AtmosphericProperties],
                               orbit_position: OrbitPosition) -> ArtificialObject:
        """Add a satellite at a point of an orbit."""
        primary = self._primary_of(orbit_position)
        state = orbit_position.calculate_state(primary.state, time=self._total_time)
        satellite = ArtificialObject(name, mass, primary, state, orbit_position.orbit,
                                     atmospheric_properties=atmospheric_properties)
        return self.add_object(satellite)

    def add_rocket(self, primary: NaturalBody, name: str, stages: RocketStages,
                   position: np.ndarray, velocity: np.ndarray,
                   impacted: bool = False) -> RocketObject:
        """Add a rocket at an absolute position and velocity.

        Args:
            primary: Primary body.
            name: Rocket name.
            stages: Stage stack; the rocket starts at its full mass.
            position: Absolute position [m].
            velocity: Absolute velocity [m/s].
            impacted: True for a rocket resting on the surface (launch pad).
        """
        state = ObjectState(time=self._total_time, position=position, velocity=velocity,
                            impacted=impacted)
        rocket = RocketObject(name, primary, state, stages,
                              writer=self.writer, staging=self.config.staging)
        return self.add_object(rocket)

    def add_rocket_in_orbit(self, name: str, stages: RocketStages,
                            orbit_position: OrbitPosition) -> RocketObject:
        """Add a rocket at a point of an orbit."""
        primary = self._primary_of(orbit_position)
        state = orbit_position.calculate_state(primary.state, time=self._total_time)
        rocket = RocketObject(name, primary, state, stages, orbit_position.orbit,
                              writer=self.writer, staging=self.config.staging)
        return self.add_object(rocket)

    # ---------------------------------------------------------------
    # Prediction
    # ---------------------------------------------------------------

    def after_time(self, obj: PhysicsObject, state: ObjectState, orbit=None,
                   dt: float = 0.0, relative: bool = False) -> ObjectState:
        """Two-body prediction of an object's state `dt` seconds ahead.

        Args:
            obj: Object the state belongs to.
            state: Absolute state of the object now.
            orbit: Orbit whose primary to use; defaults to the object's primary.
            dt: Look-ahead time [s].
            relative: Return the state relative to the primary.

        Returns:
            Predicted state.
        """
        primary = self._table[orbit.primary] if orbit is not None else obj.primary_body
        relative_state = state.make_relative(primary.state)
        return after_time(self.kepler_solver, primary, relative_state, dt, relative)

    # ---------------------------------------------------------------
    # Maneuvers
    # ---------------------------------------------------------------

    def _compute_maneuver_components(self, maneuver: SimulationManeuver):
        obj = maneuver.obj
        if obj.primary_body is None:
            return
        dt = maneuver.time - self._total_time
        state_at_burn = self.after_time(obj, obj.state, None, dt, relative=True)
        if not maneuver.compute_components(state_at_burn):
            logger.debug("No velocity triad for %s; components not updated", maneuver)

    def schedule_maneuver(self, obj: PhysicsObject,
                          maneuver: Union[OrbitalManeuver, Iterable[OrbitalManeuver]]
                          ) -> Union[SimulationManeuver, list[SimulationManeuver]]:
        """Schedule one maneuver or a collection of maneuvers for `obj`.

        Raises:
            ValueError: If `obj` is not registered with this engine.
            TypeError: If `obj` is the object of reference.
        """
        if obj not in self._table:
            raise ValueError(f"{obj.name} is not registered with this engine")
        if obj.is_reference:
            raise TypeError("The object of reference cannot maneuver")

        if not isinstance(maneuver, OrbitalManeuver):
            return [self.schedule_maneuver(obj, m) for m in maneuver]

        scheduled = SimulationManeuver(obj, maneuver)
        self._compute_maneuver_components(scheduled)
        self._maneuvers.append(scheduled)
        self._maneuvers.sort(key=lambda m: m.time)
        logger.info("Scheduled %s", scheduled)
        return scheduled

    def abort_maneuver(self, maneuver: SimulationManeuver):
        """Remove a scheduled maneuver.

        Raises:
            ValueError: If the maneuver is not scheduled.
        """
        if maneuver not in self._maneuvers:
            raise ValueError(f"Maneuver is not scheduled: {maneuver}")
        self._maneuvers.remove(maneuver)
        logger.info("Aborted %s", maneuver)

    def _apply_maneuvers(self):
        eps = self.config.events.maneuver_time_epsilon
        due = [m for m in self._maneuvers if self._total_time >= m.time - eps]
        if not due:
            return

        for maneuver in due:
            obj = maneuver.obj
            obj.apply_burn(self._total_time, maneuver.delta_velocity)
            logger.info("Executed %s at t=%.3f s", maneuver, self._total_time)

            # A rocket burns for a while; its coast is predicted once the engine stops
            if not np.any(maneuver.delta_velocity) or obj.has_engine:
                continue

            if self._predict_events(obj) and self.mode == SimulationMode.KEPLER_UNIVERSAL_VARIABLE:
                self._added_event = True

        for maneuver in due:
            self._maneuvers.remove(maneuver)
        self.history.extend(due)

        for maneuver in self._maneuvers:
            self._compute_maneuver_components(maneuver)

    # ---------------------------------------------------------------
    # Events
    # ---------------------------------------------------------------

    def _add_event(self, event: SimulationEvent):
        self._events.append(event)
        self._events.sort(key=lambda e: e.time)
        logger.info("Scheduled event %s", event)

    def _add_soi_change(self, obj: PhysicsObject, soi_change_time: float) -> bool:
        """Schedule (or reschedule) the SOI change of an object.

        Returns:
            False if the change is too close to bother scheduling.
        """
        if soi_change_time <= self.config.events.min_soi_change_time:
            return False

        event = SimulationEvent(SimulationEventType.SPHERE_OF_INFLUENCE_CHANGE, obj,
                                self._total_time + soi_change_time)
        previous = self._soi_changes.get(obj.handle)
        if previous is not None and previous in self._events:
            self._events.remove(previous)
        self._soi_changes[obj.handle] = event
        self._add_event(event)
        return True

    def _add_crash(self, obj: PhysicsObject, impact_time: float):
        """Schedule the crash of an object, replacing its previous prediction."""
        event = SimulationEvent(SimulationEventType.CRASH, obj, self._total_time + impact_time)
        previous = self._crashes.get(obj.handle)
        if previous is not None and previous in self._events:
            self._events.remove(previous)
        self._crashes[obj.handle] = event
        self._add_event(event)

    def _predict_events(self, obj: PhysicsObject) -> bool:
        """Schedule the SOI exit and the crash the current orbit leads to.

        Returns:
            True if an event was scheduled.
        """
        primary = obj.primary_body
        position = obj.orbit_position()
        added = False
        if obj.reference_orbit.is_unbound:
            soi = self.sphere_of_influence(primary)
            if soi is not None:
                soi_change_time = time_to_leave_sphere_of_influence(position, soi)
                if soi_change_time is not None:
                    added = self._add_soi_change(obj, soi_change_time)

        impact_time = time_to_impact(position, primary.radius)
        if impact_time is not None:
            self._add_crash(obj, impact_time)
            added = True
        else:
            previous = self._crashes.pop(obj.handle, None)
            if previous is not None and previous in self._events:
                self._events.remove(previous)
                logger.info("Dropped event %s", previous)
        return added

    def _handle_events(self):
        eps = self.config.events.maneuver_time_epsilon
        due = [e for e in self._events if self._total_time >= e.time - eps]
        for event in due:
            self._events.remove(event)
            if self._soi_changes.get(event.obj.handle) is event:
                del self._soi_changes[event.obj.handle]
            elif event.type == SimulationEventType.CRASH:
                if self._crashes.get(event.obj.handle) is event:
                    del self._crashes[event.obj.handle]
                if not event.obj.impacted:
                    event.obj.check_impacted(self._total_time, self.config.events.crash_margin)
            logger.info("Event %s", event)
        self.history.extend(due)

    def _change_soi(self):
        naturals = [obj for obj in self._table if obj.is_natural and not obj.is_reference]
        reference = self.object_of_reference

        for obj in self._table:
            if not obj.is_artificial:
                continue

            # The innermost sphere containing the object wins
            new_primary = None
            min_change_time = None
            for body in naturals:
                if body is obj:
                    continue
                soi = self._spheres_of_influence[body.handle]
                if obj.state.distance(body.state) < soi and (
                        new_primary is None or soi < self._spheres_of_influence[new_primary.handle]):
                    new_primary = body

                if (not obj.impacted
                        and obj.primary_handle == body.primary_handle
                        and soi_change_likely(obj.reference_orbit, body.reference_orbit)):
                    enter = OrbitPosition.calculate_orbit_position(
                        body.handle, body.mu, obj.state.make_relative(body.state))
                    change_time = time_to_radius(enter, soi)
                    if change_time is not None and change_time > 0.0 and (
                            min_change_time is None or change_time < min_change_time):
                        min_change_time = change_time

            if new_primary is None:
                new_primary = reference

            if obj.primary_handle != new_primary.handle:
                obj.change_primary_body(new_primary)
                impact_time = time_to_impact(obj.orbit_position(), new_primary.radius)
                if impact_time is not None:
                    self._add_crash(obj, impact_time)
            elif min_change_time is not None:
                self._add_soi_change(obj, min_change_time)

    # ---------------------------------------------------------------
    # Stepping
    # ---------------------------------------------------------------

    def _calculate_next_states(self, dt: float):
        for obj in self._table:
            if obj.is_reference:
                obj.set_next_state(obj.spin(obj.state.copy(time=obj.state.time + dt), dt))
                continue

            self.propagator.update(self._total_time, dt, obj, self._add_new_object)
            next_state = obj.next_state.make_relative(obj.primary_body.state)
            if obj.is_natural:
                next_state = obj.spin(next_state, dt)
            obj.set_next_state(next_state)

        # SOI changes can give an object a primary registered after it
        for obj in self._hierarchy_order():
            if not obj.is_reference:
                obj.set_next_state(obj.next_state.make_absolute(obj.primary_body.next_state))

        self._merge_pending()

    def _hierarchy_order(self) -> list[PhysicsObject]:
        """Table objects sorted so that every primary precedes its children."""
        depths: dict[int, int] = {}

        def depth(obj: PhysicsObject) -> int:
            if obj.handle not in depths:
                depths[obj.handle] = 0 if obj.is_reference else depth(obj.primary_body) + 1
            return depths[obj.handle]

        return sorted(self._table, key=depth)

    def _tick(self, dt: float) -> bool:
        """One tick of `dt` seconds.

        Returns:
            False if the tick was aborted before propagating.
        """
        self._apply_maneuvers()
        self._handle_events()

        if self._added_event:
            return False
        if (self.mode == SimulationMode.KEPLER_UNIVERSAL_VARIABLE
                and self.propagator.classify(self._table) != self.mode):
            # A maneuver started a burn; the rest must be integrated
            return False

        self._calculate_next_states(dt)
        for obj in self._table:
            obj.update(self._total_time, dt)
        self._total_time += dt
        self._change_soi()
        return True

    def _next_boundary(self, end: float) -> float:
        """Earliest maneuver/event time after now, capped at `end`."""
        boundary = end
        threshold = self._total_time + self.config.events.maneuver_time_epsilon
        for t in [m.time for m in self._maneuvers] + [e.time for e in self._events]:
            if threshold < t < boundary:
                boundary = t
        return boundary

    def _refresh_reference_orbits(self):
        for obj in self._table:
            if not obj.is_reference and not obj.impacted:
                obj.update_reference_orbit()
                if obj.has_engine:
                    self._predict_events(obj)

    def _advance_numeric(self, end: float):
        self._tick(min(self.time_step, self._next_boundary(end) - self._total_time))

    def _advance_analytic(self, end: float):
        """Jump from one maneuver/event to the next until `end` or a mode change."""
        while end - self._total_time > _TIME_TOLERANCE:
            if not self._tick(self._next_boundary(end) - self._total_time):
                break
            if self.propagator.classify(self._table) != SimulationMode.KEPLER_UNIVERSAL_VARIABLE:
                break
        self._added_event = False

    def _drain_results(self):
        while True:
            try:
                result = self._results.get_nowait()
            except queue.Empty:
                return
            result(self)

    def submit(self, result: Callable[[SimulatorEngine], None]):
        """Hand a background computation's result to the engine.

        Safe to call from another thread. `result` is called with the engine
        at the start of the next `advance`/`update`.

        Raises:
            TypeError: If `result` is not callable.
        """
        if not callable(result):
            raise TypeError("Submitted results must be callables taking the engine")
        self._results.put(result)

    def advance(self, duration: float):
        """Advance the simulation by `duration` seconds.

        Raises:
            ValueError: If `duration` is negative.
        """
        if duration < 0.0:
            raise ValueError(f"Cannot advance by a negative duration ({duration})")

        self._drain_results()
        end = self._total_time + duration

        while end - self._total_time > _TIME_TOLERANCE:
            mode = self.propagator.update_mode(self._table)
            if self.propagator.mode_changed and mode == SimulationMode.KEPLER_UNIVERSAL_VARIABLE:
                self._refresh_reference_orbits()

            if mode == SimulationMode.PERTURBATION_COWELL:
                self._advance_numeric(end)
            else:
                self._advance_analytic(end)

        self._total_time = end

    def update(self):
        """Game-loop tick: advance by `simulation_speed` integrator steps."""
        self.advance(self.config.simulation_speed * self.time_step)
