"""
Solar system environment.

The Sun as the object of reference, the eight planets and Pluto about it,
the Moon about the Earth, and one satellite in low Earth orbit. Every body
starts at the periapsis of its orbit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..astrodynamics.atmosphere import circle_area
from ..astrodynamics.orbit import Orbit, OrbitPosition
from ..core.config import SimConfig
from ..core.constants import DEG2RAD, SECONDS_PER_DAY, SIDEREAL_DAY, Z_AXIS
from ..core.types import AtmosphericProperties
from ..simulator.engine import SimulatorEngine
from ..simulator.objects import NaturalBody
from ..simulator.output import TextOutputWriter

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class SolarSystemBody:
    """Physical and orbital data of a body (angles in degrees)."""
    name: str
    mass: float                         # [kg]
    radius: float                       # Mean radius [m]
    rotational_period: float            # [s], negative for retrograde rotation
    semi_major_axis: float = 0.0        # [m]
    eccentricity: float = 0.0
    inclination: float = 0.0
    longitude_of_ascending_node: float = 0.0
    argument_of_periapsis: float = 0.0

    def orbit(self, primary: NaturalBody, coplanar: bool = False) -> Orbit:
        return Orbit.new(primary.handle, primary.mu,
                         semi_major_axis=self.semi_major_axis,
                         eccentricity=self.eccentricity,
                         inclination=0.0 if coplanar else self.inclination * DEG2RAD,
                         longitude_of_ascending_node=self.longitude_of_ascending_node * DEG2RAD,
                         argument_of_periapsis=self.argument_of_periapsis * DEG2RAD)


SUN = SolarSystemBody("Sun", 1.98855e30, 695700e3, 0.0)

MERCURY = SolarSystemBody("Mercury", 3.3011e23, 2439.7e3, 58.6462 * SECONDS_PER_DAY,
                          57909050e3, 0.20563, 7.005, 48.331, 29.124)
VENUS = SolarSystemBody("Venus", 4.8675e24, 6051.8e3, -243.0185 * SECONDS_PER_DAY,
                        108208000e3, 0.006772, 3.39458, 76.680, 54.884)
EARTH = SolarSystemBody("Earth", 5.9722e24, 6371e3, SIDEREAL_DAY,
                        149598023e3, 0.0167086, 0.00005, -11.26064, 114.20783)
MOON = SolarSystemBody("Moon", 7.342e22, 1737.1e3, 27.321661 * SECONDS_PER_DAY,
                       384399e3, 0.0549, 5.145)
MARS = SolarSystemBody("Mars", 6.4171e23, 3389.5e3, 24.622962 * SECONDS_PER_HOUR,
                       227.9392e9, 0.0934, 1.850, 49.558, 286.502)
JUPITER = SolarSystemBody("Jupiter", 1.8986e27, 69911e3, 9.0 * SECONDS_PER_HOUR + 55.0 * 60.0 + 29.685,
                          778.299e9, 0.048498, 1.303, 100.464, 273.867)
SATURN = SolarSystemBody("Saturn", 5.6836e26, 58232e3, 10.0 * SECONDS_PER_HOUR + 39.0 * 60.0 + 22.4,
                         1429.39e9, 0.05555, 2.485240, 113.665, 339.392)
URANUS = SolarSystemBody("Uranus", 8.6810e25, 25362e3, 17.24 * SECONDS_PER_HOUR,
                         2875.04e9, 0.046381, 0.773, 74.006, 96.998857)
NEPTUNE = SolarSystemBody("Neptune", 1.0243e26, 24622e3, 16.11 * SECONDS_PER_HOUR,
                          4504.45e9, 0.009456, 1.767975, 131.784, 276.336)
PLUTO = SolarSystemBody("Pluto", 1.303e22, 1187e3, 6.387230 * SECONDS_PER_DAY,
                        5915e9, 0.24905, 17.1405, 110.299, 113.834)

# Everything but the Earth system orbits the Sun directly
PLANETS_BEFORE_EARTH = (MERCURY, VENUS)
PLANETS_AFTER_EARTH = (MARS, JUPITER, SATURN, URANUS, NEPTUNE, PLUTO)

SATELLITE_MASS = 1000.0                 # [kg]
SATELLITE_ALTITUDE = 300e3              # [m]


def create_solar_system(config: Optional[SimConfig] = None,
                        coplanar: bool = False,
                        writer: Optional[TextOutputWriter] = None) -> SimulatorEngine:
    """Build the solar system.

    Args:
        config: Simulation configuration (defaults to SimConfig()).
        coplanar: Put every orbit in the reference plane.
        writer: Text sink for program and staging messages.

    Returns:
        The engine, with objects registered in the order Sun, Mercury, Venus,
        Earth, Moon, Mars, Jupiter, Saturn, Uranus, Neptune, Pluto,
        Satellite 1.
    """
    engine = SimulatorEngine(config, writer)
    sun = engine.add_reference_body(SUN.name, SUN.mass, SUN.radius, SUN.rotational_period, Z_AXIS)

    def add_planet(primary: NaturalBody, body: SolarSystemBody) -> NaturalBody:
        return engine.add_planet_in_orbit(body.name, body.mass, body.radius, body.rotational_period,
                                          Z_AXIS, None,
                                          OrbitPosition(body.orbit(primary, coplanar), 0.0))

    for body in PLANETS_BEFORE_EARTH:
        add_planet(sun, body)
    earth = add_planet(sun, EARTH)
    add_planet(earth, MOON)
    for body in PLANETS_AFTER_EARTH:
        add_planet(sun, body)

    engine.add_satellite_in_orbit(
        "Satellite 1", SATELLITE_MASS, AtmosphericProperties(circle_area(10.0), 0.05),
        OrbitPosition(Orbit.new(earth.handle, earth.mu,
                                semi_major_axis=earth.radius + SATELLITE_ALTITUDE), 0.0))

    logger.info("Solar system ready with %d objects", len(engine.objects))
    return engine
