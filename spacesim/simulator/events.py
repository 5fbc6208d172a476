"""
Scheduled simulation events and maneuvers.

Both are time-ordered records referencing an object by handle. A maneuver
also keeps the prograde/normal/radial decomposition of its ΔV, computed
against the state the object is predicted to have at burn time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from ..core.frames import velocity_components
from ..core.types import ObjectState, OrbitalManeuver, SimulationEventType

_EVENT_NAMES = {
    SimulationEventType.SPHERE_OF_INFLUENCE_CHANGE: "Change of sphere-of-influence",
    SimulationEventType.CRASH: "Crash",
}


@dataclass
class SimulationEvent:
    """Something predicted to happen to an object at a given time.

    Attributes:
        type: Kind of event.
        obj: Object the event concerns.
        time: Simulation time of the event [s].
    """
    type: SimulationEventType
    obj: object
    time: float

    def __str__(self) -> str:
        return f"{self.obj.name}: {_EVENT_NAMES[self.type]} at t={self.time:.3f} s"


@dataclass(eq=False)
class SimulationManeuver:
    """A maneuver scheduled for an object.

    Attributes:
        obj: Object performing the burn.
        maneuver: Time and ΔV of the burn.
        prograde: ΔV along the velocity at burn time [m/s].
        normal: ΔV along the orbit normal at burn time [m/s].
        radial: ΔV completing the triad at burn time [m/s].
    """
    obj: object
    maneuver: OrbitalManeuver
    prograde: float = 0.0
    normal: float = 0.0
    radial: float = 0.0
    components_valid: bool = field(default=False)

    @property
    def time(self) -> float:
        return self.maneuver.maneuver_time

    @property
    def delta_velocity(self) -> np.ndarray:
        return self.maneuver.delta_velocity

    def compute_components(self, state_at_burn: ObjectState) -> bool:
        """Decompose the ΔV against a primary-relative state.

        Returns:
            False (keeping the previous components) if the state has no
            well-defined triad.
        """
        components: Optional[tuple[float, float, float]] = velocity_components(
            state_at_burn, self.maneuver.delta_velocity)
        if components is None:
            return False
        self.prograde, self.normal, self.radial = components
        self.components_valid = True
        return True

    def __str__(self) -> str:
        return f"{self.obj.name} - {self.maneuver}"
