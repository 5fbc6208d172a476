"""
Simulation configuration.

Central configuration object with toggleable force models, integrator,
analytic solver and event scheduling settings.
"""

from dataclasses import dataclass, field


@dataclass
class ForceModelConfig:
    """Toggleable force model configuration.

    Gravity from the current primary body is always on. The non-gravity
    contributions can be disabled independently, e.g. to cross-check the
    numeric propagator against the analytic one.
    """
    enable_thrust: bool = True
    enable_drag: bool = True
    enable_torque: bool = True

    def describe(self) -> str:
        """Human-readable description of active force models."""
        models = ["Two-body"]
        if self.enable_thrust: models.append("Thrust")
        if self.enable_drag: models.append("Atmospheric drag")
        if self.enable_torque: models.append("Torque")
        return " + ".join(models)


@dataclass
class IntegratorConfig:
    """Numerical integrator configuration.

    Fixed-step 4th-order Runge-Kutta. Each tick in numeric mode advances
    by at most one time step.
    """
    time_step: float = 0.02             # [seconds]


@dataclass
class KeplerSolverConfig:
    """Universal-variable Kepler solver configuration.

    Attributes:
        tolerance: Newton convergence tolerance on the universal anomaly [√m].
        max_iterations: Iteration cap before giving up with the last iterate.
    """
    tolerance: float = 1e-6
    max_iterations: int = 1500


@dataclass
class EventConfig:
    """Maneuver and event scheduling configuration.

    Attributes:
        maneuver_time_epsilon: A maneuver or event is due when the clock is
            within this distance of its scheduled time [s].
        min_soi_change_time: Predicted SOI changes closer than this are not
            scheduled; the per-tick SOI check picks them up instead [s].
        crash_margin: A due crash lands objects this close above the
            surface, absorbing solver error at the predicted time [m].
    """
    maneuver_time_epsilon: float = 1e-6
    min_soi_change_time: float = 60.0
    crash_margin: float = 10.0


@dataclass
class StagingConfig:
    """Rocket staging configuration.

    Attributes:
        stage_anchor: State a spent stage is spawned from. "reference" uses
            the parent's last reference state and orbit, "next" uses the
            parent's freshly integrated next state.
    """
    stage_anchor: str = "reference"


@dataclass
class SimConfig:
    """Top-level simulation configuration."""
    force_model: ForceModelConfig = field(default_factory=ForceModelConfig)
    integrator: IntegratorConfig = field(default_factory=IntegratorConfig)
    kepler: KeplerSolverConfig = field(default_factory=KeplerSolverConfig)
    events: EventConfig = field(default_factory=EventConfig)
    staging: StagingConfig = field(default_factory=StagingConfig)
    simulation_speed: int = 1           # Integrator steps per game-loop tick
