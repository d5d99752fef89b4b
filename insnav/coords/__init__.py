"""Coordinate frames, rotations and the Earth model.

This package provides:
- Quaternion and DCM primitives (scalar-first Hamilton quaternions)
- LLH <-> ECEF conversion and the earth-to-navigation frame attitude
- The reference ellipsoid: curvature radii and Earth rotation rate
"""

from insnav.coords.geodesy import (
    EARTH_ROTATION_RATE,
    MEAN_EARTH_RADIUS,
    WGS84,
    EarthModel,
    radius_meridian,
    radius_normal,
)
from insnav.coords.rotations import (
    error_quaternion,
    euler_to_quat,
    euler_to_rotation_matrix,
    quat_from_rotvec,
    quat_multiply,
    quat_normalize,
    quat_to_dcm,
    quat_to_euler,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
    skew_symmetric,
)
from insnav.coords.transforms import (
    dcm_e2n_from_llh,
    dcm_ecef_to_ned,
    ecef_to_llh,
    llh_from_dcm_e2n,
    llh_to_ecef,
    quat_e2n_from_llh,
    wander_rotation,
)

__all__ = [
    # Earth model
    "EARTH_ROTATION_RATE",
    "MEAN_EARTH_RADIUS",
    "WGS84",
    "EarthModel",
    "radius_normal",
    "radius_meridian",
    # Transforms
    "llh_to_ecef",
    "ecef_to_llh",
    "wander_rotation",
    "dcm_ecef_to_ned",
    "dcm_e2n_from_llh",
    "quat_e2n_from_llh",
    "llh_from_dcm_e2n",
    # Rotations
    "skew_symmetric",
    "euler_to_quat",
    "euler_to_rotation_matrix",
    "quat_to_euler",
    "quat_to_rotation_matrix",
    "quat_to_dcm",
    "rotation_matrix_to_quat",
    "quat_multiply",
    "quat_normalize",
    "quat_from_rotvec",
    "error_quaternion",
]
