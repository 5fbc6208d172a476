"""Stage stacks of real launch vehicles."""

from __future__ import annotations

from ..astrodynamics.atmosphere import circle_area, cone_nose_surface_area
from ..core.types import AtmosphericProperties
from .stages import RocketStage, RocketStages


def create_falcon9(payload_mass: float) -> RocketStages:
    """Falcon 9 Full Thrust with the given payload mass [kg]."""
    return RocketStages.new(
        RocketStage.from_burn_time(
            0, "Stage 1", 9, 845e3, 282, 5000, 470,
            AtmosphericProperties(circle_area(3.75), 0.1), 162),
        RocketStage.from_burn_time(
            1, "Stage 2", 1, 934e3, 348, 500, 470,
            AtmosphericProperties(circle_area(3.75), 0.1), 397),
        RocketStage.payload(
            2, "Payload", payload_mass,
            AtmosphericProperties(cone_nose_surface_area(3.7, 1.5), 0.01)),
    )
