"""
Physical and mathematical constants.

Sources:
    - CODATA 2014 for the gravitational constant
    - IAU nominal values for Earth and Moon
    - U.S. Standard Atmosphere (NASA Glenn fit) for the Earth air model
"""

import numpy as np

# ---------------------------------------------------------------------------
# Mathematical constants
# ---------------------------------------------------------------------------
TWO_PI = 2.0 * np.pi
DEG2RAD = np.pi / 180.0
RAD2DEG = 180.0 / np.pi

# ---------------------------------------------------------------------------
# Frame axes
# ---------------------------------------------------------------------------
X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])
BODY_FORWARD = Z_AXIS                   # Thrust axis of a vehicle body frame

# ---------------------------------------------------------------------------
# Time constants
# ---------------------------------------------------------------------------
SECONDS_PER_DAY = 86400.0
SIDEREAL_DAY = 23.0 * 3600.0 + 56.0 * 60.0 + 4.0916    # [s]

# ---------------------------------------------------------------------------
# General
# ---------------------------------------------------------------------------
G = 6.67408e-11                         # Gravitational constant [m³/(kg·s²)]
G0 = 9.80665                            # Standard gravitational acceleration [m/s²]

# ---------------------------------------------------------------------------
# Atmosphere
# ---------------------------------------------------------------------------
ABSOLUTE_ZERO = -273.15                 # [°C]
EARTH_SPECIFIC_GAS_CONSTANT = 0.2869    # Dry air, pressure in kPa [kJ/(kg·K)]
EARTH_ATMOSPHERE_HEIGHT = 100e3         # Top of the modelled atmosphere [m]

# ---------------------------------------------------------------------------
# Earth parameters
# ---------------------------------------------------------------------------
EARTH_MASS = 5.97237e24                 # [kg]
EARTH_RADIUS = 6371.0e3                 # Mean radius [m]
EARTH_ROTATIONAL_PERIOD = SIDEREAL_DAY  # [s]

# ---------------------------------------------------------------------------
# Lunar parameters
# ---------------------------------------------------------------------------
MOON_MASS = 7.342e22                    # [kg]
MOON_RADIUS = 1737.1e3                  # [m]
MOON_ROTATIONAL_PERIOD = 27.321661 * SECONDS_PER_DAY
MOON_SEMI_MAJOR_AXIS = 384399.0e3       # [m]
MOON_ECCENTRICITY = 0.0549
MOON_INCLINATION = 5.145 * DEG2RAD      # To the ecliptic, used as-is

# ---------------------------------------------------------------------------
# Orbit classification
# ---------------------------------------------------------------------------
ECCENTRICITY_EPSILON = 1e-4             # |e| or |e - 1| below this snaps the orbit type
