"""
Atmosphere models and aerodynamic drag.

A natural body owns one atmosphere model. The force model asks it whether
an object lies inside the atmosphere and, if so, for the drag force and
torque acting on the object. Drag uses the velocity relative to the primary
body:
    F = -½ ρ |v| v Cd A

The Earth model is the NASA Glenn three-band standard atmosphere
(troposphere, lower stratosphere, upper stratosphere) with temperature in
°C and pressure in kPa.
"""

from __future__ import annotations

import numpy as np

from ..attitude.quaternion import q_rotate_vector
from ..core.constants import ABSOLUTE_ZERO, EARTH_ATMOSPHERE_HEIGHT, EARTH_SPECIFIC_GAS_CONSTANT
from ..core.types import AtmosphericProperties, ObjectState


# ===================================================================
# Formulas
# ===================================================================

def drag_force(velocity: np.ndarray, density_of_air: float,
               reference_area: float, drag_coefficient: float) -> np.ndarray:
    """Aerodynamic drag force [N] opposing `velocity`."""
    return -0.5 * density_of_air * velocity * np.linalg.norm(velocity) * drag_coefficient * reference_area


def density_of_air(pressure: float, temperature: float) -> float:
    """Air density [kg/m^3] from pressure [kPa] and temperature [K]."""
    return pressure / (EARTH_SPECIFIC_GAS_CONSTANT * temperature)


def circle_area(diameter: float) -> float:
    """Area of a circle [m^2]."""
    return np.pi * (diameter / 2.0) ** 2


def cone_nose_surface_area(base_radius: float, height: float) -> float:
    """Lateral surface area of a cone-shaped nose [m^2]."""
    return np.pi * base_radius * np.sqrt(base_radius ** 2 + height ** 2)


# ===================================================================
# Models
# ===================================================================

class AtmosphereModel:
    """Atmosphere of a natural body.

    Attributes:
        top_of_atmosphere: Altitude above which there is no drag [m].
    """

    top_of_atmosphere = 0.0

    def density_of_air(self, altitude: float) -> float:
        raise NotImplementedError

    def inside(self, primary, primary_state: ObjectState, state: ObjectState) -> bool:
        """True if `state` lies within the atmosphere of `primary`.

        Args:
            primary: Body owning the atmosphere (exposes `radius`).
            primary_state: Absolute state of the body.
            state: Absolute state of the object.
        """
        altitude = state.distance(primary_state) - primary.radius
        return altitude < self.top_of_atmosphere

    def calculate_drag(self, primary, primary_state: ObjectState,
                       properties: AtmosphericProperties,
                       state: ObjectState) -> tuple[np.ndarray, np.ndarray]:
        """Drag force [N] and torque [N·m] acting on an object.

        The torque acts about the centre of mass through the body-frame
        centre of pressure.

        Args:
            primary: Body owning the atmosphere.
            primary_state: Absolute state of the body.
            properties: Aerodynamic properties of the object.
            state: Absolute state of the object.

        Returns:
            force, torque: World-frame vectors, shape (3,) each.
        """
        v = state.velocity - primary_state.velocity
        altitude = state.distance(primary_state) - primary.radius
        force = drag_force(v, self.density_of_air(altitude),
                           properties.reference_area, properties.drag_coefficient)
        lever_arm = q_rotate_vector(state.orientation, properties.center_of_pressure)
        return force, np.cross(lever_arm, force)


class NoAtmosphereModel(AtmosphereModel):
    """Body without an atmosphere."""

    def density_of_air(self, altitude: float) -> float:
        return 0.0

    def inside(self, primary, primary_state: ObjectState, state: ObjectState) -> bool:
        return False

    def calculate_drag(self, primary, primary_state, properties, state):
        return np.zeros(3), np.zeros(3)


class EarthAtmosphereModel(AtmosphereModel):
    """Three-band standard atmosphere of the Earth."""

    top_of_atmosphere = EARTH_ATMOSPHERE_HEIGHT

    def density_of_air(self, altitude: float) -> float:
        if altitude >= self.top_of_atmosphere:
            return 0.0

        if altitude < 11000.0:
            temperature = 15.04 - 0.00649 * altitude
            pressure = 101.29 * ((temperature + 273.1) / 288.08) ** 5.256
        elif altitude < 25000.0:
            temperature = -56.46
            pressure = 22.65 * np.exp(1.73 - 0.000157 * altitude)
        else:
            temperature = -131.21 + 0.00299 * altitude
            pressure = 2.488 * ((temperature + 273.1) / 216.6) ** -11.388

        return density_of_air(pressure, temperature + abs(ABSOLUTE_ZERO))
