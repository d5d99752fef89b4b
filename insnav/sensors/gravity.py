"""
Normal gravity magnitude for the strapdown mechanization.

The latitude model
    g(φ) = 9.7803 · (1 + 0.0053024·sin²(φ) - 0.000005·sin²(2φ))
is the WGS-84-derived normal gravity on the ellipsoid. It already contains
the centrifugal acceleration of the rotating Earth, so the result is the
plumb-bob gravity a stationary accelerometer senses.

Above the ellipsoid the free-air gradient is applied:
    g(φ, h) = g(φ) - 3.086e-6 · h

Variation:
    - Equator (φ=0°):   g ≈ 9.780 m/s²
    - 45° latitude:     g ≈ 9.806 m/s²
    - Poles (φ=±90°):   g ≈ 9.832 m/s²
"""

from typing import Tuple

import numpy as np

FREE_AIR_GRADIENT = 3.086e-6  # (m/s²) per meter of height


def normal_gravity(lat_rad: float) -> float:
    """
    Gravity magnitude on the ellipsoid surface.

    Args:
        lat_rad: Geodetic latitude in radians, [-π/2, π/2].

    Returns:
        Gravity magnitude g in m/s², approximately within [9.78, 9.84].

    Example:
        >>> round(normal_gravity(0.0), 4)
        9.7803
    """
    sin_lat = np.sin(lat_rad)
    sin_2lat = np.sin(2.0 * lat_rad)
    g = 9.7803 * (1.0 + 0.0053024 * sin_lat * sin_lat - 0.000005 * sin_2lat * sin_2lat)
    return float(g)


def gravity_at_height(lat_rad: float, height_m: float) -> float:
    """
    Gravity magnitude at an ellipsoidal height.

    Args:
        lat_rad: Geodetic latitude in radians.
        height_m: Height above the ellipsoid in meters (positive up).

    Returns:
        Gravity magnitude in m/s², decreasing with height.
    """
    return normal_gravity(lat_rad) - FREE_AIR_GRADIENT * float(height_m)


def gravity_partials(lat_rad: float) -> Tuple[float, float]:
    """
    Sensitivity of ``gravity_at_height`` to latitude and height.

    Args:
        lat_rad: Geodetic latitude in radians.

    Returns:
        Tuple (∂g/∂φ in m/s² per rad, ∂g/∂h in m/s² per m).

    Example:
        >>> dg_dlat, dg_dh = gravity_partials(0.0)
        >>> dg_dlat, dg_dh
        (0.0, -3.086e-06)
    """
    dg_dlat = 9.7803 * (0.0053024 * np.sin(2.0 * lat_rad) - 0.00001 * np.sin(4.0 * lat_rad))
    return float(dg_dlat), -FREE_AIR_GRADIENT
