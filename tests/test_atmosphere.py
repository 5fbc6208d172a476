"""
Tests for atmosphere models and the force model.

Tests cover:
- Earth standard atmosphere bands and top of atmosphere
- Drag direction and magnitude
- Force model toggles for thrust and drag
"""

import numpy as np
import pytest

from spacesim.astrodynamics.atmosphere import (
    EarthAtmosphereModel, NoAtmosphereModel, circle_area, cone_nose_surface_area, drag_force
)
from spacesim.astrodynamics.eom import ForceModel
from spacesim.astrodynamics.gravity import gravity_acceleration
from spacesim.core.config import ForceModelConfig
from spacesim.core.constants import EARTH_RADIUS
from spacesim.core.types import AtmosphericProperties, ObjectState


class _Body:
    radius = EARTH_RADIUS


class TestEarthAtmosphere:
    """Three-band standard atmosphere."""

    def test_sea_level_density(self):
        assert EarthAtmosphereModel().density_of_air(0.0) == pytest.approx(1.225, rel=0.01)

    def test_density_decreases_with_altitude(self):
        model = EarthAtmosphereModel()
        densities = [model.density_of_air(h) for h in (0.0, 5e3, 11e3, 20e3, 25e3, 40e3, 80e3)]
        assert all(a > b for a, b in zip(densities, densities[1:]))

    def test_no_density_above_top(self):
        model = EarthAtmosphereModel()
        assert model.density_of_air(100e3) == 0.0
        assert model.density_of_air(400e3) == 0.0

    def test_inside(self):
        """Objects below 100 km are inside the atmosphere."""
        model = EarthAtmosphereModel()
        primary = ObjectState()
        assert model.inside(_Body, primary, ObjectState(position=[EARTH_RADIUS + 50e3, 0, 0]))
        assert not model.inside(_Body, primary, ObjectState(position=[EARTH_RADIUS + 150e3, 0, 0]))

    def test_no_atmosphere(self):
        model = NoAtmosphereModel()
        state = ObjectState(position=[EARTH_RADIUS, 0, 0], velocity=[100.0, 0, 0])
        assert not model.inside(_Body, ObjectState(), state)
        force, torque = model.calculate_drag(_Body, ObjectState(), AtmosphericProperties(1.0, 1.0), state)
        np.testing.assert_array_equal(force, np.zeros(3))


class TestDrag:
    """Aerodynamic drag."""

    def test_drag_opposes_velocity(self):
        force = drag_force(np.array([100.0, 0.0, 0.0]), 1.2, 2.0, 0.5)
        assert force[0] == pytest.approx(-0.5 * 1.2 * 100.0 ** 2 * 0.5 * 2.0)
        assert force[1] == 0.0

    def test_drag_uses_velocity_relative_to_primary(self):
        """An object co-moving with its primary feels no drag."""
        model = EarthAtmosphereModel()
        primary = ObjectState(velocity=[0.0, 300.0, 0.0])
        state = ObjectState(position=[EARTH_RADIUS + 1e3, 0, 0], velocity=[0.0, 300.0, 0.0])
        force, _ = model.calculate_drag(_Body, primary, AtmosphericProperties(10.0, 0.5), state)
        np.testing.assert_allclose(force, np.zeros(3))

    def test_offset_center_of_pressure_produces_torque(self):
        model = EarthAtmosphereModel()
        properties = AtmosphericProperties(10.0, 0.5, center_of_pressure=np.array([0.0, 0.0, 2.0]))
        state = ObjectState(position=[EARTH_RADIUS + 1e3, 0, 0], velocity=[0.0, 300.0, 0.0])
        force, torque = model.calculate_drag(_Body, ObjectState(), properties, state)
        np.testing.assert_allclose(torque, np.cross([0.0, 0.0, 2.0], force))
        assert np.linalg.norm(torque) > 0.0

    def test_areas(self):
        assert circle_area(2.0) == pytest.approx(np.pi)
        assert cone_nose_surface_area(3.0, 4.0) == pytest.approx(np.pi * 3.0 * 5.0)


class _Primary:
    def __init__(self, atmosphere):
        self.mass = 5.97237e24
        self.radius = EARTH_RADIUS
        self.mu = 3.986004418e14
        self.atmosphere = atmosphere


class _Satellite:
    is_artificial = True
    has_engine = False
    mass = 100.0
    atmospheric_properties = AtmosphericProperties(1.0, 2.0)

    def __init__(self, primary):
        self.primary_body = primary


class TestForceModel:
    """Gravity plus toggleable perturbations."""

    STATE = ObjectState(position=[EARTH_RADIUS + 50e3, 0, 0], velocity=[0, 7000.0, 0], relative=True)

    def test_gravity_only_outside_atmosphere(self):
        satellite = _Satellite(_Primary(NoAtmosphereModel()))
        result = ForceModel().evaluate(satellite, self.STATE)
        np.testing.assert_allclose(result.acceleration,
                                   gravity_acceleration(satellite.primary_body.mu, self.STATE.position))
        assert result.mass_flow == 0.0

    def test_drag_adds_deceleration(self):
        satellite = _Satellite(_Primary(EarthAtmosphereModel()))
        gravity = gravity_acceleration(satellite.primary_body.mu, self.STATE.position)
        result = ForceModel().evaluate(satellite, self.STATE)
        assert result.acceleration[1] < gravity[1]

    def test_drag_can_be_disabled(self):
        satellite = _Satellite(_Primary(EarthAtmosphereModel()))
        result = ForceModel(ForceModelConfig(enable_drag=False)).evaluate(satellite, self.STATE)
        np.testing.assert_allclose(result.acceleration,
                                   gravity_acceleration(satellite.primary_body.mu, self.STATE.position))

    def test_describe(self):
        assert ForceModelConfig(enable_torque=False).describe() == "Two-body + Thrust + Atmospheric drag"
