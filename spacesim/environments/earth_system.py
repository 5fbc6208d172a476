"""
Earth system environment.

Earth as the object of reference (with its atmosphere), optionally the
Moon, a Falcon 9 on the pad at Cape Canaveral LC-39A running an ascent
program into a 300 km circular orbit, and two satellites.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..astrodynamics.atmosphere import EarthAtmosphereModel, circle_area
from ..astrodynamics.orbit import Orbit, OrbitPosition
from ..attitude.quaternion import q_rotate_vector
from ..core.config import SimConfig
from ..core.constants import (
    DEG2RAD, EARTH_MASS, EARTH_RADIUS, EARTH_ROTATIONAL_PERIOD,
    MOON_ECCENTRICITY, MOON_INCLINATION, MOON_MASS, MOON_RADIUS,
    MOON_ROTATIONAL_PERIOD, MOON_SEMI_MAJOR_AXIS, Z_AXIS
)
from ..core.frames import spherical_to_cartesian
from ..core.types import AtmosphericProperties
from ..rocket.presets import create_falcon9
from ..rocket.programs import AscentProgram
from ..simulator.engine import SimulatorEngine
from ..simulator.output import TextOutputWriter

logger = logging.getLogger(__name__)

# Launch site and ascent profile
LAUNCH_LATITUDE = 28.524058 * DEG2RAD
LAUNCH_LONGITUDE = -80.65085 * DEG2RAD
FALCON9_PAYLOAD_MASS = 4000.0           # [kg]
FALCON9_TARGET_ALTITUDE = 300e3         # [m]
PITCH_START = 1e3                       # [m]
PITCH_END = 15.7875e3                   # [m]

SATELLITE_MASS = 1000.0                 # [kg]


def create_earth_system(config: Optional[SimConfig] = None,
                        with_moon: bool = False,
                        writer: Optional[TextOutputWriter] = None) -> SimulatorEngine:
    """Build the Earth system.

    Args:
        config: Simulation configuration (defaults to SimConfig()).
        with_moon: Add the Moon in its orbit about the Earth.
        writer: Text sink for program and staging messages.

    Returns:
        The engine, with objects registered in the order Earth, [Moon],
        Falcon 9, Satellite 1, Satellite 2.
    """
    engine = SimulatorEngine(config, writer)

    earth = engine.add_reference_body(
        "Earth", EARTH_MASS, EARTH_RADIUS, EARTH_ROTATIONAL_PERIOD, Z_AXIS,
        EarthAtmosphereModel())

    if with_moon:
        moon_orbit = Orbit.new(earth.handle, earth.mu,
                               semi_major_axis=MOON_SEMI_MAJOR_AXIS,
                               eccentricity=MOON_ECCENTRICITY,
                               inclination=MOON_INCLINATION)
        engine.add_planet_in_orbit("Moon", MOON_MASS, MOON_RADIUS, MOON_ROTATIONAL_PERIOD,
                                   Z_AXIS, None, OrbitPosition(moon_orbit, 0.0))

    # On the pad: 1 m above the surface, resting
    pad = spherical_to_cartesian(earth.radius + 1.0, LAUNCH_LATITUDE, LAUNCH_LONGITUDE)
    pad = earth.state.position + q_rotate_vector(earth.state.orientation, pad)
    falcon9 = engine.add_rocket(earth, "Falcon 9", create_falcon9(FALCON9_PAYLOAD_MASS),
                                pad, earth.state.velocity.copy(), impacted=True)

    target_orbit = Orbit.new(earth.handle, earth.mu,
                             semi_major_axis=earth.radius + FALCON9_TARGET_ALTITUDE,
                             eccentricity=0.0)
    program = AscentProgram(falcon9, target_orbit, PITCH_START, PITCH_END, engine.writer)
    falcon9.start_program(program)

    satellite_properties = AtmosphericProperties(circle_area(10.0), 0.05)
    engine.add_satellite_in_orbit(
        "Satellite 1", SATELLITE_MASS, satellite_properties,
        OrbitPosition(Orbit.new(earth.handle, earth.mu,
                                semi_major_axis=earth.radius + 300e3), 0.0))
    engine.add_satellite_in_orbit(
        "Satellite 2", SATELLITE_MASS, satellite_properties,
        OrbitPosition(Orbit.new(earth.handle, earth.mu,
                                parameter=3.0 * earth.radius,
                                eccentricity=0.2,
                                inclination=30.0 * DEG2RAD),
                      87.2 * DEG2RAD))

    logger.info("Earth system ready with %d objects", len(engine.objects))
    return engine
