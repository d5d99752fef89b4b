"""
Angle wrapping utilities.

Heading residuals must be wrapped before they enter a Kalman correction;
otherwise headings near ±180° produce innovations of almost 2π.
"""

from typing import Union

import numpy as np


def wrap_angle(angle: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Wrap angle(s) to the [-π, π] range.

    Args:
        angle: Angle in radians, scalar or array.

    Returns:
        Wrapped angle(s) in [-π, π].

    Example:
        >>> wrap_angle(3.5 * np.pi)
        -1.5707963267948966
    """
    return np.arctan2(np.sin(angle), np.cos(angle))


def angle_diff(angle1: Union[float, np.ndarray],
               angle2: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Shortest signed difference angle1 - angle2, wrapped to [-π, π].

    Example:
        >>> angle_diff(np.deg2rad(179.0), np.deg2rad(-179.0))  # doctest: +ELLIPSIS
        -0.0349...
    """
    return wrap_angle(np.asarray(angle1) - np.asarray(angle2))
