"""Shared fixtures: Earth and Earth-Moon systems with satellites and rockets."""

import numpy as np
import pytest

from spacesim.astrodynamics.atmosphere import EarthAtmosphereModel, circle_area
from spacesim.astrodynamics.orbit import Orbit, OrbitPosition
from spacesim.core.config import IntegratorConfig, SimConfig
from spacesim.core.constants import (
    EARTH_MASS, EARTH_RADIUS, EARTH_ROTATIONAL_PERIOD, MOON_MASS, MOON_RADIUS,
    MOON_ROTATIONAL_PERIOD, MOON_SEMI_MAJOR_AXIS, Z_AXIS
)
from spacesim.core.types import AtmosphericProperties
from spacesim.simulator.engine import SimulatorEngine
from spacesim.simulator.output import RecordingTextOutputWriter

LEO_ALTITUDE = 400e3


@pytest.fixture
def config():
    """Coarse step; none of the engine properties depend on it."""
    return SimConfig(integrator=IntegratorConfig(time_step=1.0))


@pytest.fixture
def writer():
    return RecordingTextOutputWriter()


@pytest.fixture
def engine(config, writer):
    return SimulatorEngine(config, writer)


@pytest.fixture
def earth(engine):
    """Earth without an atmosphere, so ballistic objects stay analytic."""
    return engine.add_reference_body("Earth", EARTH_MASS, EARTH_RADIUS,
                                     EARTH_ROTATIONAL_PERIOD, Z_AXIS)


@pytest.fixture
def earth_with_atmosphere(engine):
    return engine.add_reference_body("Earth", EARTH_MASS, EARTH_RADIUS,
                                     EARTH_ROTATIONAL_PERIOD, Z_AXIS,
                                     EarthAtmosphereModel())


@pytest.fixture
def moon(engine, earth):
    orbit = Orbit.new(earth.handle, earth.mu, semi_major_axis=MOON_SEMI_MAJOR_AXIS)
    return engine.add_planet_in_orbit("Moon", MOON_MASS, MOON_RADIUS, MOON_ROTATIONAL_PERIOD,
                                      Z_AXIS, None, OrbitPosition(orbit, 0.0))


@pytest.fixture
def leo_orbit(earth):
    return Orbit.new(earth.handle, earth.mu, semi_major_axis=EARTH_RADIUS + LEO_ALTITUDE)


@pytest.fixture
def satellite(engine, earth, leo_orbit):
    return engine.add_satellite_in_orbit(
        "Satellite", 1000.0, AtmosphericProperties(circle_area(2.0), 2.2),
        OrbitPosition(leo_orbit, 0.0))


def circular_state_about(body, radius):
    """Absolute position/velocity of a prograde circular equatorial orbit about `body`."""
    speed = np.sqrt(body.mu / radius)
    position = body.state.position + np.array([radius, 0.0, 0.0])
    velocity = body.state.velocity + np.array([0.0, speed, 0.0])
    return position, velocity
