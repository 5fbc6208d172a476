"""
Rocket engines and stages.

A rocket is an ordered queue of stages. Only the current stage burns; when
its propellant cannot cover a whole impulse the rocket stages, discarding
the current stage and continuing on the next one.

Mass bookkeeping:
    stage mass  = dry mass + remaining propellant
    rocket mass = initial mass of every queued stage + current stage mass
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np

from ..core.constants import G0
from ..core.types import AtmosphericProperties


# ===================================================================
# Formulas
# ===================================================================

def mass_flow_rate(thrust: float, specific_impulse: float) -> float:
    """Propellant mass flow [kg/s] of an engine, ṁ = T / (g0·Isp)."""
    return thrust / (G0 * specific_impulse)


def effective_exhaust_velocity(specific_impulse: float) -> float:
    """vₑ = Isp·g0 [m/s]."""
    return specific_impulse * G0


def delta_v(exhaust_velocity: float, before_mass: float, after_mass: float) -> float:
    """Tsiolkovsky rocket equation, Δv = vₑ·ln(m0/m1) [m/s]."""
    return exhaust_velocity * np.log(before_mass / after_mass)


# ===================================================================
# Engines and stages
# ===================================================================

@dataclass(frozen=True)
class RocketEngine:
    """Single rocket engine.

    Attributes:
        thrust: Full-throttle thrust [N].
        specific_impulse: Isp [s].
        mass: Engine dry mass [kg].
    """
    thrust: float
    specific_impulse: float
    mass: float = 0.0

    @property
    def mass_flow_rate(self) -> float:
        return mass_flow_rate(self.thrust, self.specific_impulse)

    @property
    def effective_exhaust_velocity(self) -> float:
        return effective_exhaust_velocity(self.specific_impulse)


@dataclass
class RocketStage:
    """One stage of a rocket.

    Attributes:
        number: Position of the stage in its rocket (0 burns first).
        name: Display name.
        engines: Engines of the stage.
        dry_mass: Structure plus engine mass [kg].
        fuel_mass: Initial propellant mass [kg].
        atmospheric_properties: Aerodynamics while this stage leads.
        fuel_mass_remaining: Propellant left [kg].
        throttle: Engine throttle in [0, 1].
    """
    number: int
    name: str
    engines: list[RocketEngine]
    dry_mass: float
    fuel_mass: float
    atmospheric_properties: AtmosphericProperties = field(default_factory=AtmosphericProperties)
    fuel_mass_remaining: float = -1.0
    throttle: float = 1.0

    def __post_init__(self):
        if self.fuel_mass_remaining < 0.0:
            self.fuel_mass_remaining = self.fuel_mass

    @classmethod
    def new(cls, number: int, name: str, engines: Iterable[RocketEngine],
            non_engine_dry_mass: float, fuel_mass: float,
            atmospheric_properties: Optional[AtmosphericProperties] = None) -> RocketStage:
        engines = list(engines)
        dry_mass = non_engine_dry_mass + sum(engine.mass for engine in engines)
        return cls(number, name, engines, dry_mass, fuel_mass,
                   atmospheric_properties or AtmosphericProperties())

    @classmethod
    def from_burn_time(cls, number: int, name: str, number_of_engines: int,
                       thrust: float, specific_impulse: float,
                       non_engine_dry_mass: float, engine_mass: float,
                       atmospheric_properties: AtmosphericProperties,
                       burn_time: float) -> RocketStage:
        """Stage carrying enough propellant for `burn_time` seconds at full throttle.

        Args:
            number: Stage number.
            name: Stage name.
            number_of_engines: Count of identical engines.
            thrust: Thrust per engine [N].
            specific_impulse: Isp per engine [s].
            non_engine_dry_mass: Structure mass [kg].
            engine_mass: Dry mass per engine [kg].
            atmospheric_properties: Aerodynamics of the stage.
            burn_time: Full-throttle burn duration [s].
        """
        engines = [RocketEngine(thrust, specific_impulse, engine_mass) for _ in range(number_of_engines)]
        fuel_mass = number_of_engines * burn_time * mass_flow_rate(thrust, specific_impulse)
        return cls.new(number, name, engines, non_engine_dry_mass, fuel_mass, atmospheric_properties)

    @classmethod
    def payload(cls, number: int, name: str, mass: float,
                atmospheric_properties: Optional[AtmosphericProperties] = None) -> RocketStage:
        """Engineless stage with no propellant."""
        return cls.new(number, name, [], mass, 0.0, atmospheric_properties)

    @property
    def initial_total_mass(self) -> float:
        return self.dry_mass + self.fuel_mass

    @property
    def mass(self) -> float:
        return self.dry_mass + self.fuel_mass_remaining

    @property
    def max_thrust(self) -> float:
        return sum(engine.thrust for engine in self.engines)

    @property
    def total_thrust(self) -> float:
        """Thrust at the current throttle [N]."""
        return self.max_thrust * self.throttle

    @property
    def total_mass_flow_rate(self) -> float:
        """Propellant flow at the current throttle [kg/s]."""
        return sum(engine.mass_flow_rate for engine in self.engines) * self.throttle

    @property
    def effective_exhaust_velocity(self) -> float:
        if not self.engines:
            return 0.0
        return self.engines[0].effective_exhaust_velocity

    @property
    def fuel_mass_remaining_ratio(self) -> float:
        if self.fuel_mass == 0.0:
            return 0.0
        return self.fuel_mass_remaining / self.fuel_mass

    def use_fuel(self, dt: float) -> Optional[float]:
        """Burn propellant for `dt` seconds.

        Returns:
            Mass burned [kg], or None if the remaining propellant cannot
            cover the whole impulse (nothing is burned then).
        """
        delta_mass = self.total_mass_flow_rate * dt
        if self.fuel_mass_remaining - delta_mass > 0.0:
            self.fuel_mass_remaining -= delta_mass
            return delta_mass
        return None

    def clone(self) -> RocketStage:
        return RocketStage(self.number, self.name, list(self.engines), self.dry_mass,
                           self.fuel_mass, self.atmospheric_properties,
                           self.fuel_mass_remaining, self.throttle)


class RocketStages:
    """Ordered stage queue of a rocket.

    Attributes:
        current_stage: The burning stage.
        initial_total_mass: Mass of the full stack at creation [kg].
    """

    def __init__(self, stages: Iterable[RocketStage]):
        stages = list(stages)
        if not stages:
            raise ValueError("A rocket needs at least one stage")
        self.initial_total_mass = sum(stage.initial_total_mass for stage in stages)
        self._stages = deque(stages)
        self.current_stage = self._stages.popleft()

    @classmethod
    def new(cls, *stages: RocketStage) -> RocketStages:
        return cls(stages)

    @property
    def total_mass(self) -> float:
        return (sum(stage.initial_total_mass for stage in self._stages)
                + self.current_stage.dry_mass
                + self.current_stage.fuel_mass_remaining)

    @property
    def fuel_mass_remaining(self) -> float:
        return self.current_stage.fuel_mass_remaining

    @property
    def remaining(self) -> int:
        """Number of stages queued behind the current one."""
        return len(self._stages)

    @property
    def atmospheric_properties(self) -> AtmosphericProperties:
        """Aerodynamics of the leading (top-most) stage."""
        if self._stages:
            return self._stages[-1].atmospheric_properties
        return self.current_stage.atmospheric_properties

    def use_fuel(self, dt: float) -> Optional[float]:
        return self.current_stage.use_fuel(dt)

    def stage(self) -> Optional[RocketStage]:
        """Discard the current stage and continue on the next one.

        The next stage keeps the throttle setting.

        Returns:
            The discarded stage, or None if no stage is left to continue on.
        """
        if not self._stages:
            return None
        old_stage = self.current_stage
        self.current_stage = self._stages.popleft()
        self.current_stage.throttle = old_stage.throttle
        return old_stage

    def clone(self) -> RocketStages:
        cloned = RocketStages([self.current_stage.clone()] + [stage.clone() for stage in self._stages])
        cloned.initial_total_mass = self.initial_total_mass
        return cloned

    def __iter__(self):
        yield self.current_stage
        yield from self._stages

    def __len__(self) -> int:
        return len(self._stages) + 1
