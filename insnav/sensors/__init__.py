"""
Inertial navigation: mechanization, error model and aiding.

Modules:
    types: NavState, nominal/error vector layouts, LinearizationConfig
    gravity: Normal gravity with height correction
    strapdown: Mechanizer interface and the wander-azimuth StrapdownMechanizer
    linearization: Error-state system (A) and input (B) matrices
    ins_ekf: ErrorStateINS filter, EstimatorHooks, error injection
    measurements: GNSS position/velocity, barometer and heading updates

Example:
    >>> import numpy as np
    >>> from insnav.sensors import (
    ...     ErrorStateINS, StrapdownMechanizer, barometric_altitude
    ... )
    >>> mech = StrapdownMechanizer.from_geodetic(
    ...     np.deg2rad(22.3), np.deg2rad(114.2), 10.0)
    >>> ins = ErrorStateINS(mech, P0=np.eye(10) * 1e-4, Q=np.eye(7) * 1e-6)
    >>> accel = np.array([0.0, 0.0, -mech.gravity])
    >>> gyro = mech.dcm_n2b @ mech.omega_ie_n
    >>> for _ in range(100):
    ...     ins.update(accel, gyro, 0.01)
    >>> m = barometric_altitude(mech, 10.0, sigma=0.5)
    >>> x_hat = ins.correct(m.H, m.z, m.R)
"""

from insnav.sensors.gravity import gravity_at_height, normal_gravity
from insnav.sensors.ins_ekf import ErrorStateINS, EstimatorHooks, inject_error_state
from insnav.sensors.linearization import ErrorStateLinearizer
from insnav.sensors.measurements import (
    Measurement,
    barometric_altitude,
    gnss_position,
    gnss_velocity,
    magnetic_heading,
    wander_angle_sensitivity,
)
from insnav.sensors.strapdown import Mechanizer, StrapdownMechanizer
from insnav.sensors.types import LinearizationConfig, NavState, nominal_index

__all__ = [
    # Types
    "NavState",
    "LinearizationConfig",
    "nominal_index",
    # Gravity
    "normal_gravity",
    "gravity_at_height",
    # Mechanization
    "Mechanizer",
    "StrapdownMechanizer",
    # Error model and filter
    "ErrorStateLinearizer",
    "ErrorStateINS",
    "EstimatorHooks",
    "inject_error_state",
    # Aiding
    "Measurement",
    "gnss_position",
    "gnss_velocity",
    "barometric_altitude",
    "magnetic_heading",
    "wander_angle_sensitivity",
]
