"""
Space Simulation Engine
=======================
Hybrid numeric/analytic propagation of natural bodies, satellites and
multi-stage rockets in a hierarchy of spheres of influence.

Architecture:
    - Arena of objects addressed by handle, each with a primary body
    - RK4 (Cowell) integration of gravity, thrust, drag and torque while
      any object is perturbed
    - Universal-variable Kepler propagation between scheduled maneuvers
      and events otherwise
    - Impulsive and finite-burn maneuvers with prograde/normal/radial
      decomposition
    - Predicted crash and sphere-of-influence change events
    - Rocket staging and PID-throttled control programs
"""

__version__ = "0.1.0"
