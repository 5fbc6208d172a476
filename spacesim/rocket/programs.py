"""
Rocket control programs.

A control program drives one rocket: it starts and stops the engine, sets
the throttle, and decides where the thrust points. Programs keep their
thrust direction in the world frame and turn the rocket to face it; the
command they hand to the force model is body-relative.

Programs:
    - ExecuteManeuverProgram: finite burn delivering a given ΔV, with a
      PID-controlled throttle that tapers off near the target
    - AscentProgram: vertical climb, gravity turn, coast to apoapsis and
      circularization into a target orbit
"""

from __future__ import annotations

import logging
from enum import Enum, auto

import numpy as np

from ..attitude.kinematics import (
    absolute_to_relative_direction, face_direction, rotate_about_axis
)
from ..core.constants import DEG2RAD, X_AXIS
from ..core.types import ControlCommand

logger = logging.getLogger(__name__)


def _unit(v: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(v)
    return v / n if n > 0.0 else np.zeros(3)


class PIDController:
    """Proportional-integral-derivative controller.

    Attributes:
        kp: Proportional gain.
        ki: Integral gain.
        kd: Derivative gain.
    """

    def __init__(self, kp: float, ki: float, kd: float):
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self._integral = 0.0
        self._previous_error = None

    def compute_command(self, error: float, dt: float) -> float:
        """Controller output for the current error over a step of `dt` seconds.

        The first call has no history and uses the proportional term only.
        """
        derivative = 0.0
        if self._previous_error is not None and dt > 0.0:
            derivative = (error - self._previous_error) / dt
            self._integral += error * dt
        self._previous_error = error
        return self.kp * error + self.ki * self._integral + self.kd * derivative

    def reset(self):
        self._integral = 0.0
        self._previous_error = None


class ControlProgram:
    """Base class for rocket control programs.

    Attributes:
        rocket: The controlled rocket.
        absolute_thrust_direction: World-frame thrust direction.
        torque: Commanded torque [N·m].
    """

    def __init__(self, rocket):
        self.rocket = rocket
        self.absolute_thrust_direction = np.zeros(3)
        self.torque = np.zeros(3)

    @property
    def is_completed(self) -> bool:
        raise NotImplementedError

    @property
    def thrust_direction(self) -> np.ndarray:
        """Body-relative thrust direction."""
        return absolute_to_relative_direction(self.rocket.state.orientation,
                                              self.absolute_thrust_direction)

    def command(self) -> ControlCommand:
        return ControlCommand(self.thrust_direction, self.torque.copy())

    def face_thrust_direction(self):
        """Turn the rocket so its thrust axis points along the thrust direction."""
        if np.linalg.norm(self.absolute_thrust_direction) > 0.0:
            self.rocket.set_orientation(face_direction(self.absolute_thrust_direction))

    def start(self, total_time: float):
        raise NotImplementedError

    def update(self, total_time: float, dt: float) -> ControlCommand:
        raise NotImplementedError


class ExecuteManeuverProgram(ControlProgram):
    """Finite burn along a ΔV vector until the engine has delivered |ΔV|.

    Attributes:
        delta_velocity: World-frame ΔV [m/s], shape (3,).
        applied_delta_velocity: ΔV delivered so far [m/s].
    """

    START_THROTTLE = 0.2
    MIN_THROTTLE = 0.005

    def __init__(self, rocket, delta_velocity: np.ndarray):
        super().__init__(rocket)
        self.delta_velocity = np.asarray(delta_velocity, dtype=float)
        self.applied_delta_velocity = 0.0
        self._done = False
        self._throttle_controller = PIDController(0.01, 0.005, 0.0)
        self.absolute_thrust_direction = _unit(self.delta_velocity)

    @property
    def is_completed(self) -> bool:
        return self._done

    @property
    def remaining_delta_velocity(self) -> float:
        return float(np.linalg.norm(self.delta_velocity)) - self.applied_delta_velocity

    def start(self, total_time: float):
        self.rocket.start_engine()
        self.rocket.engine_throttle = self.START_THROTTLE
        self.face_thrust_direction()
        logger.debug("%s: maneuver burn of %.3f m/s started at t=%.3f s",
                     self.rocket.name, np.linalg.norm(self.delta_velocity), total_time)

    def update(self, total_time: float, dt: float) -> ControlCommand:
        if self._done:
            return self.command()

        if not self.rocket.engine_running:
            # Propellant ran out with no stage left to continue on
            self._done = True
            logger.warning("%s: maneuver aborted with %.3f m/s remaining",
                           self.rocket.name, self.remaining_delta_velocity)
            return self.command()

        self.applied_delta_velocity += float(np.linalg.norm(self.rocket.engine_acceleration())) * dt
        throttle = self._throttle_controller.compute_command(self.remaining_delta_velocity, dt)
        self.rocket.engine_throttle = float(np.clip(throttle, self.MIN_THROTTLE, 1.0))

        if self.applied_delta_velocity >= np.linalg.norm(self.delta_velocity):
            self._done = True
            self.rocket.stop_engine()
            self.rocket.engine_throttle = 1.0
            logger.debug("%s: maneuver burn completed at t=%.3f s", self.rocket.name, total_time)

        self.face_thrust_direction()
        return self.command()


class AscentState(Enum):
    INITIAL_ASCENT = auto()
    TURNING = auto()
    COAST = auto()
    CIRCULARIZING = auto()
    IN_ORBIT = auto()
    FAILED = auto()


class AscentProgram(ControlProgram):
    """Launch from the surface into a target orbit.

    Climbs vertically until `pitch_start` altitude, pitches the thrust
    downrange between `pitch_start` and `pitch_end`, then follows prograde
    until the apoapsis reaches the target. The engine coasts to apoapsis
    and burns again until the orbit matches the target eccentricity and
    periapsis. The first stage is dropped once it is down to 10 % fuel.

    Attributes:
        target_orbit: Orbit to reach.
        pitch_start: Altitude at which the gravity turn starts [m].
        pitch_end: Altitude at which the gravity turn ends [m].
        writer: Receives progress messages.
        state: Current ascent phase.
    """

    TURN_ANGLE = 4.0 * DEG2RAD
    STAGING_FUEL_RATIO = 0.1

    def __init__(self, rocket, target_orbit, pitch_start: float, pitch_end: float, writer):
        super().__init__(rocket)
        self.target_orbit = target_orbit
        self.pitch_start = pitch_start
        self.pitch_end = pitch_end
        self.writer = writer
        self.state = AscentState.INITIAL_ASCENT
        self._pitch_started = False
        self._pitch_completed = False

    @property
    def is_completed(self) -> bool:
        return self.state in (AscentState.IN_ORBIT, AscentState.FAILED)

    def _log_status(self, message: str):
        self.writer.write_line(f"{self.rocket.name}: {message}")

    def _up(self) -> np.ndarray:
        primary = self.rocket.primary_body
        return _unit(self.rocket.state.position - primary.state.position)

    def _downrange(self, up: np.ndarray) -> np.ndarray:
        east = np.cross(self.rocket.primary_body.axis_of_rotation, up)
        if np.linalg.norm(east) < 1e-12:
            east = np.cross(X_AXIS, up)
        return _unit(east)

    def start(self, total_time: float):
        self.absolute_thrust_direction = self._up()
        self.face_thrust_direction()
        self._log_status("Lift off.")

    def update(self, total_time: float, dt: float) -> ControlCommand:
        rocket = self.rocket
        primary = rocket.primary_body
        relative = rocket.state.make_relative(primary.state)
        up = _unit(relative.position)
        prograde = _unit(relative.velocity)
        if not prograde.any():
            prograde = up
        altitude = rocket.altitude()
        position = rocket.orbit_position()
        orbit = position.orbit

        self.absolute_thrust_direction = prograde

        if self.state == AscentState.INITIAL_ASCENT:
            self.absolute_thrust_direction = up
            if altitude >= self.pitch_start:
                self.state = AscentState.TURNING
                self._log_status("Gravity turn started.")

        elif self.state == AscentState.TURNING:
            if self.pitch_start <= altitude <= self.pitch_end:
                axis = np.cross(up, prograde)
                if np.linalg.norm(axis) < 1e-9:
                    axis = np.cross(up, self._downrange(up))
                self.absolute_thrust_direction = rotate_about_axis(prograde, axis, self.TURN_ANGLE)
                if not self._pitch_started:
                    self._log_status("Pitch maneuver started.")
                    self._pitch_started = True
            else:
                if not self._pitch_completed:
                    self._log_status("Pitch maneuver completed.")
                    self._pitch_completed = True
                time_to_apoapsis = position.time_to_apoapsis()
                if (orbit.is_bound and altitude >= 0.9 * (orbit.apoapsis - primary.radius)
                        and time_to_apoapsis is not None and time_to_apoapsis <= 100.0):
                    self.absolute_thrust_direction = _unit(prograde + 0.1 * up)

            if orbit.is_bound:
                time_to_apoapsis = position.time_to_apoapsis()
                if (position.true_anomaly > 190.0 * DEG2RAD
                        and time_to_apoapsis >= 0.8 * orbit.period):
                    self.state = AscentState.FAILED
                    rocket.stop_engine()
                    self._log_status("Failed to reach orbit.")
                elif orbit.apoapsis >= self.target_orbit.apoapsis:
                    rocket.stop_engine()
                    self.state = AscentState.COAST
                    self._log_status("Engine shutdown.")
                    self._log_status("Coasting.")

            if (self.state == AscentState.TURNING
                    and rocket.current_stage.number == 0
                    and rocket.current_stage.fuel_mass_remaining_ratio <= self.STAGING_FUEL_RATIO):
                rocket.stage()

        elif self.state == AscentState.COAST:
            time_to_apoapsis = position.time_to_apoapsis()
            if time_to_apoapsis is not None and time_to_apoapsis <= 10.0:
                rocket.start_engine()
                self.state = AscentState.CIRCULARIZING
                self._log_status("Engine started.")
                self._log_status("Circularizing.")

        elif self.state == AscentState.CIRCULARIZING:
            if (abs(orbit.eccentricity - self.target_orbit.eccentricity) <= 0.01
                    and orbit.periapsis >= 0.99 * self.target_orbit.periapsis):
                rocket.stop_engine()
                self.state = AscentState.IN_ORBIT
                self._log_status("Engine shutdown.")
                self._log_status(f"In orbit at t={total_time:.1f} s, mass {rocket.mass:.1f} kg.")

        if (not self.is_completed and self.state != AscentState.COAST
                and not rocket.engine_running):
            self.state = AscentState.FAILED
            self._log_status("Out of propellant.")
        elif not self.is_completed and rocket.impacted:
            self.state = AscentState.FAILED
            self._log_status("Impacted.")

        self.face_thrust_direction()
        return self.command()
