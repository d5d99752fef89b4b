"""Geodetic position transformations and the earth-to-navigation attitude.

The navigation frame is local-level with its z-axis pointing down. Its
horizontal axes are rotated from north/east by the wander angle α about the
down axis, so with α = 0 the frame is NED.

The earth-to-navigation quaternion q_e2n encodes both the position on the
ellipsoid (latitude, longitude) and the wander angle; ``quat_to_dcm(q_e2n)``
is C_e^n.

WGS84 ellipsoid parameters:
- Semi-major axis (a): 6378137.0 m
- Flattening (f): 1/298.257223563
- First eccentricity squared (e²): 0.00669437999014
"""

from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from insnav.coords.rotations import quat_to_dcm, rotation_matrix_to_quat

# WGS84 ellipsoid parameters
WGS84_A = 6378137.0  # Semi-major axis (m)
WGS84_F = 1.0 / 298.257223563  # Flattening
WGS84_B = WGS84_A * (1.0 - WGS84_F)  # Semi-minor axis (m)
WGS84_E2 = 1.0 - (WGS84_B / WGS84_A) ** 2  # First eccentricity squared


def llh_to_ecef(
    lat: float,
    lon: float,
    height: float,
) -> NDArray[np.float64]:
    """Convert geodetic coordinates (LLH) to ECEF Cartesian coordinates.

    Args:
        lat: Latitude in radians (positive north).
        lon: Longitude in radians (positive east).
        height: Height above the WGS84 ellipsoid in meters (positive up).

    Returns:
        ECEF coordinates [x, y, z] in meters.

    Example:
        >>> xyz = llh_to_ecef(np.deg2rad(51.4769), 0.0, 0.0)
        >>> xyz.shape
        (3,)
    """
    sin_lat = np.sin(lat)
    cos_lat = np.cos(lat)
    N = WGS84_A / np.sqrt(1.0 - WGS84_E2 * sin_lat**2)

    x = (N + height) * cos_lat * np.cos(lon)
    y = (N + height) * cos_lat * np.sin(lon)
    z = (N * (1.0 - WGS84_E2) + height) * sin_lat

    return np.array([x, y, z], dtype=np.float64)


def ecef_to_llh(
    x: float,
    y: float,
    z: float,
    tol: float = 1e-12,
    max_iter: int = 10,
) -> NDArray[np.float64]:
    """Convert ECEF Cartesian coordinates to geodetic coordinates (LLH).

    Uses the classic fixed-point iteration on latitude.

    Args:
        x: ECEF x-coordinate in meters.
        y: ECEF y-coordinate in meters.
        z: ECEF z-coordinate in meters.
        tol: Convergence tolerance on latitude (radians).
        max_iter: Maximum number of iterations.

    Returns:
        [lat, lon, height] with angles in radians and height in meters.
    """
    lon = np.arctan2(y, x)
    p = np.sqrt(x**2 + y**2)

    if p < 1e-10:
        lat = np.copysign(np.pi / 2.0, z)
        height = abs(z) - WGS84_B
        return np.array([lat, lon, height], dtype=np.float64)

    lat = np.arctan2(z, p * (1.0 - WGS84_E2))

    for _ in range(max_iter):
        sin_lat = np.sin(lat)
        N = WGS84_A / np.sqrt(1.0 - WGS84_E2 * sin_lat**2)
        height = p / np.cos(lat) - N
        lat_new = np.arctan2(z, p * (1.0 - WGS84_E2 * N / (N + height)))
        if abs(lat_new - lat) < tol:
            lat = lat_new
            break
        lat = lat_new

    sin_lat = np.sin(lat)
    N = WGS84_A / np.sqrt(1.0 - WGS84_E2 * sin_lat**2)
    height = p / np.cos(lat) - N

    return np.array([lat, lon, height], dtype=np.float64)


def wander_rotation(wander: float) -> NDArray[np.float64]:
    """DCM from NED to the wander-azimuth navigation frame (rotation about down)."""
    ca, sa = np.cos(wander), np.sin(wander)
    return np.array(
        [
            [ca, sa, 0.0],
            [-sa, ca, 0.0],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def dcm_ecef_to_ned(lat: float, lon: float) -> NDArray[np.float64]:
    """C_e^NED: rotates ECEF components into local north-east-down."""
    sl, cl = np.sin(lat), np.cos(lat)
    so, co = np.sin(lon), np.cos(lon)
    return np.array(
        [
            [-sl * co, -sl * so, cl],
            [-so, co, 0.0],
            [-cl * co, -cl * so, -sl],
        ],
        dtype=np.float64,
    )


def dcm_e2n_from_llh(lat: float, lon: float, wander: float = 0.0) -> NDArray[np.float64]:
    """C_e^n for a position and wander angle."""
    return wander_rotation(wander) @ dcm_ecef_to_ned(lat, lon)


def quat_e2n_from_llh(lat: float, lon: float, wander: float = 0.0) -> NDArray[np.float64]:
    """Earth-to-navigation frame quaternion q_e2n.

    Example:
        >>> q = quat_e2n_from_llh(np.deg2rad(35.0), np.deg2rad(139.0))
        >>> np.allclose(quat_to_dcm(q), dcm_e2n_from_llh(np.deg2rad(35.0), np.deg2rad(139.0)))
        True
    """
    # quat_to_dcm(q) == C_e^n requires quat_to_rotation_matrix(q) == C_n^e
    return rotation_matrix_to_quat(dcm_e2n_from_llh(lat, lon, wander).T)


def llh_from_dcm_e2n(dcm_e2n: NDArray[np.float64]) -> Tuple[float, float, float]:
    """Recover (latitude, longitude, wander angle) from C_e^n.

    Row 2 of C_e^n is the down axis expressed in ECEF and column 2 is the
    ECEF polar axis expressed in the navigation frame. Longitude and wander
    angle are undefined at the poles; atan2 then returns an arbitrary
    but finite value.
    """
    dcm_e2n = np.asarray(dcm_e2n)
    if dcm_e2n.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {dcm_e2n.shape}")

    lat = float(np.arcsin(np.clip(-dcm_e2n[2, 2], -1.0, 1.0)))
    lon = float(np.arctan2(-dcm_e2n[2, 1], -dcm_e2n[2, 0]))
    wander = float(np.arctan2(-dcm_e2n[1, 2], dcm_e2n[0, 2]))
    return lat, lon, wander
