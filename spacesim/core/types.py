"""
Foundational data types for the simulation.

State, force and maneuver data flows through these dataclasses.
Convention:
    - Distances: m
    - Time: seconds since the simulation epoch
    - Velocity: m/s
    - Mass: kg
    - Angles: radians
    - Thrust / force: Newtons
    - Quaternions: [q1, q2, q3, q4] with q4 the scalar component
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field, replace
from enum import Enum, auto


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ObjectKind(Enum):
    """Role of an object in the gravitational hierarchy."""
    REFERENCE = auto()      # Root of the hierarchy, only rotates
    NATURAL = auto()        # Planets and moons, can act as primary bodies
    ARTIFICIAL = auto()     # Satellites, rockets and spent stages


class SimulationMode(Enum):
    """Propagation strategy used for a tick."""
    PERTURBATION_COWELL = auto()        # Fixed-step numeric integration
    KEPLER_UNIVERSAL_VARIABLE = auto()  # Closed-form two-body propagation


class OrbitType(Enum):
    """Conic section classification."""
    CIRCULAR = auto()
    ELLIPTICAL = auto()
    PARABOLIC = auto()
    HYPERBOLIC = auto()


class SimulationEventType(Enum):
    """Kind of a scheduled simulation event."""
    SPHERE_OF_INFLUENCE_CHANGE = auto()
    CRASH = auto()


# ---------------------------------------------------------------------------
# Object state
# ---------------------------------------------------------------------------

def _identity_quaternion() -> np.ndarray:
    return np.array([0., 0., 0., 1.])


@dataclass
class ObjectState:
    """Kinematic state of an object at a given simulation time.

    A state is either absolute (expressed in the frame of the object of
    reference) or relative to a primary body. The `relative` flag marks
    which representation is live; conversions go through `make_relative`
    and `make_absolute` and refuse to convert twice.

    Attributes:
        time: Simulation time [s].
        position: Position vector [m], shape (3,).
        velocity: Velocity vector [m/s], shape (3,).
        orientation: Body-to-world unit quaternion, shape (4,).
        angular_momentum: Angular momentum vector [kg·m²/s], shape (3,).
        impacted: True while the object rests on its primary's surface.
        relative: True if position/velocity are primary-relative.
    """
    time: float = 0.0
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(default_factory=_identity_quaternion)
    angular_momentum: np.ndarray = field(default_factory=lambda: np.zeros(3))
    impacted: bool = False
    relative: bool = False

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float)
        self.velocity = np.asarray(self.velocity, dtype=float)
        self.orientation = np.asarray(self.orientation, dtype=float)
        self.angular_momentum = np.asarray(self.angular_momentum, dtype=float)

    def copy(self, **changes) -> ObjectState:
        """Deep copy of the state, optionally replacing fields."""
        copied = replace(
            self,
            position=self.position.copy(),
            velocity=self.velocity.copy(),
            orientation=self.orientation.copy(),
            angular_momentum=self.angular_momentum.copy(),
        )
        if changes:
            copied = replace(copied, **changes)
        return copied

    # -- Frame conversion ---------------------------------------------------

    def make_relative(self, primary_state: ObjectState) -> ObjectState:
        """Express this absolute state relative to a primary body.

        Args:
            primary_state: Absolute state of the primary body.

        Returns:
            New primary-relative state.

        Raises:
            ValueError: If the state is already relative, or the primary
                state is not absolute.
        """
        if self.relative:
            raise ValueError("State is already primary-relative")
        if primary_state.relative:
            raise ValueError("Primary state must be absolute")
        return self.copy(
            position=self.position - primary_state.position,
            velocity=self.velocity - primary_state.velocity,
            relative=True,
        )

    def make_absolute(self, primary_state: ObjectState) -> ObjectState:
        """Inverse of `make_relative`.

        Args:
            primary_state: Absolute state of the primary body.

        Returns:
            New absolute state.

        Raises:
            ValueError: If the state is already absolute, or the primary
                state is not absolute.
        """
        if not self.relative:
            raise ValueError("State is already absolute")
        if primary_state.relative:
            raise ValueError("Primary state must be absolute")
        return self.copy(
            position=self.position + primary_state.position,
            velocity=self.velocity + primary_state.velocity,
            relative=False,
        )

    def swap_reference_frame(self, old_primary_state: ObjectState,
                             new_primary_state: ObjectState) -> ObjectState:
        """Carry an absolute state from one primary position to another."""
        return self.make_relative(old_primary_state).make_absolute(new_primary_state)

    # -- Derived quantities -------------------------------------------------

    def distance(self, other: ObjectState) -> float:
        return float(np.linalg.norm(self.position - other.position))

    def angular_velocity(self, moment_of_inertia: float) -> np.ndarray:
        """Angular velocity [rad/s] for a scalar moment of inertia."""
        if moment_of_inertia <= 0.0:
            return np.zeros(3)
        return self.angular_momentum / moment_of_inertia

    @property
    def prograde(self) -> np.ndarray:
        """Unit vector along the velocity."""
        return self.velocity / np.linalg.norm(self.velocity)

    @property
    def normal(self) -> np.ndarray:
        """Unit orbit normal (r × v)."""
        h = np.cross(self.position, self.velocity)
        return h / np.linalg.norm(h)

    @property
    def radial(self) -> np.ndarray:
        """Unit vector completing the prograde/normal/radial triad (outward)."""
        return np.cross(self.prograde, self.normal)

    def is_finite(self) -> bool:
        """True if every numeric component is finite."""
        return bool(
            np.isfinite(self.time)
            and np.all(np.isfinite(self.position))
            and np.all(np.isfinite(self.velocity))
            and np.all(np.isfinite(self.orientation))
            and np.all(np.isfinite(self.angular_momentum))
        )


@dataclass
class AccelerationState:
    """Force model output for one object at one instant.

    Attributes:
        acceleration: Total acceleration [m/s²], shape (3,).
        torque: Total torque [N·m], shape (3,).
        mass_flow: Mass rate of change [kg/s], negative while burning.
    """
    acceleration: np.ndarray
    torque: np.ndarray = field(default_factory=lambda: np.zeros(3))
    mass_flow: float = 0.0


# ---------------------------------------------------------------------------
# Vehicle properties
# ---------------------------------------------------------------------------

@dataclass
class AtmosphericProperties:
    """Aerodynamic properties of an artificial object.

    Attributes:
        reference_area: Cross-section facing the flow [m²].
        drag_coefficient: Dimensionless drag coefficient.
        center_of_pressure: Body-frame offset of the centre of pressure
            from the centre of mass [m], shape (3,).
    """
    reference_area: float = 0.0
    drag_coefficient: float = 0.0
    center_of_pressure: np.ndarray = field(default_factory=lambda: np.zeros(3))


@dataclass
class ControlCommand:
    """Output of a rocket control program for one update.

    Attributes:
        thrust_direction: Body-relative unit thrust direction, shape (3,).
        torque: Commanded torque [N·m], shape (3,).
    """
    thrust_direction: np.ndarray = field(default_factory=lambda: np.zeros(3))
    torque: np.ndarray = field(default_factory=lambda: np.zeros(3))


# ---------------------------------------------------------------------------
# Maneuvers
# ---------------------------------------------------------------------------

@dataclass
class OrbitalManeuver:
    """Impulsive maneuver definition.

    Attributes:
        maneuver_time: Simulation time of the burn [s].
        delta_velocity: Absolute-frame ΔV vector [m/s], shape (3,).
    """
    maneuver_time: float
    delta_velocity: np.ndarray

    def __post_init__(self):
        self.delta_velocity = np.asarray(self.delta_velocity, dtype=float)

    @property
    def dv_magnitude(self) -> float:
        return float(np.linalg.norm(self.delta_velocity))

    def __str__(self) -> str:
        return f"ΔV {self.dv_magnitude:.3f} m/s at t={self.maneuver_time:.3f} s"

