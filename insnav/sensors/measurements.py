"""
Aiding measurements for the error-state INS.

Each builder compares an external measurement with the mechanizer's
nominal solution and returns a ``Measurement`` holding:

    H  observation matrix on the error state (k × n)
    z  residual, predicted minus measured (k,)
    R  measurement noise covariance (k × k)

ready for ``ErrorStateINS.correct(H, z, R)``.

Horizontal position and velocity residuals are expressed in north-east-down
axes. The navigation frame is rotated from NED by the wander angle α, whose
sensitivity to the e2n attitude error u is (C = C_e^n)

    ∂α/∂u = 2 [(-C02 C11 + C12 C01), (C02 C10 - C12 C00), 0] / (C02² + C12²)

The denominator is cos²(latitude); near the poles α is ill-defined and the
builders that depend on it emit a RuntimeWarning.
"""

import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Union

import numpy as np

from insnav.coords.transforms import (
    dcm_ecef_to_ned,
    llh_from_dcm_e2n,
    llh_to_ecef,
    wander_rotation,
)
from insnav.sensors.strapdown import Mechanizer
from insnav.sensors.types import (
    ERROR_CORE_DIM,
    ERROR_E2N,
    ERROR_HEIGHT,
    ERROR_N2B,
    ERROR_VELOCITY,
)
from insnav.utils.angles import angle_diff

# cos²(latitude) below which the wander angle is treated as ill-conditioned
POLAR_COS2_THRESHOLD = 1e-6

Sigma = Union[float, Sequence[float], np.ndarray]


@dataclass(frozen=True)
class Measurement:
    """
    Linearized measurement ready for an error-state correction.

    Attributes:
        sensor: Sensor identifier (e.g. 'gnss_position', 'baro').
        H: Observation matrix (k × n).
        z: Residual, predicted minus measured, shape (k,).
        R: Noise covariance (k × k).
        meta: Optional sensor-specific information.
    """

    sensor: str
    H: np.ndarray
    z: np.ndarray
    R: np.ndarray
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.sensor, str) or not self.sensor:
            raise ValueError(f"Sensor must be a non-empty string, got {self.sensor}")
        for name in ("H", "z", "R"):
            if not isinstance(getattr(self, name), np.ndarray):
                raise TypeError(
                    f"Measurement {name} must be numpy array, got {type(getattr(self, name))}"
                )
        if self.z.ndim != 1:
            raise ValueError(f"Residual z must be 1D array, got shape {self.z.shape}")
        k = len(self.z)
        if self.H.ndim != 2 or self.H.shape[0] != k:
            raise ValueError(f"H must have {k} rows, got shape {self.H.shape}")
        if self.R.shape != (k, k):
            raise ValueError(
                f"Covariance R shape {self.R.shape} must match residual dimension ({k}, {k})"
            )

    @property
    def dim(self) -> int:
        return len(self.z)


def _noise_covariance(sigma: Sigma, k: int) -> np.ndarray:
    sigma = np.broadcast_to(np.asarray(sigma, dtype=np.float64), (k,))
    if np.any(sigma <= 0.0):
        raise ValueError(f"Standard deviations must be positive, got {sigma}")
    return np.diag(sigma**2)


def wander_angle_sensitivity(dcm_e2n: np.ndarray) -> np.ndarray:
    """
    Gradient of the wander angle with respect to the e2n attitude error.

    Args:
        dcm_e2n: C_e^n.

    Returns:
        Row vector ∂α/∂u, shape (3,). The third entry is always zero.
    """
    C = np.asarray(dcm_e2n, dtype=np.float64)
    den = C[0, 2] ** 2 + C[1, 2] ** 2
    if den < POLAR_COS2_THRESHOLD:
        warnings.warn(
            f"Wander angle is ill-conditioned near the pole (cos²(lat) = {den:.2e}); "
            f"heading and NED-velocity updates may be unreliable.",
            RuntimeWarning,
        )
        den = POLAR_COS2_THRESHOLD
    return 2.0 * np.array(
        [
            (-C[0, 2] * C[1, 1] + C[1, 2] * C[0, 1]) / den,
            (C[0, 2] * C[1, 0] - C[1, 2] * C[0, 0]) / den,
            0.0,
        ]
    )


def _check_state_dim(state_dim: int) -> None:
    if state_dim < ERROR_CORE_DIM:
        raise ValueError(f"state_dim must be at least {ERROR_CORE_DIM}, got {state_dim}")


def gnss_position(
    mechanizer: Mechanizer,
    llh: Sequence[float],
    sigma_ned: Sigma,
    state_dim: int = ERROR_CORE_DIM,
) -> Measurement:
    """
    GNSS position fix.

    The residual is the ECEF difference between the nominal and measured
    positions, rotated into local NED axes (meters).

    Args:
        mechanizer: Nominal navigation solution.
        llh: Measured [latitude (rad), longitude (rad), height (m)].
        sigma_ned: Standard deviation(s) in north, east, down (m).
        state_dim: Error-state dimension of the filter.

    Returns:
        3-row ``Measurement``.

    Example:
        >>> m = gnss_position(mech, [0.61, 2.43, 40.0], [3.0, 3.0, 5.0])  # doctest: +SKIP
        >>> ins.correct(m.H, m.z, m.R)  # doctest: +SKIP
    """
    _check_state_dim(state_dim)
    llh = np.asarray(llh, dtype=np.float64)
    if llh.shape != (3,):
        raise ValueError(f"llh must have shape (3,), got {llh.shape}")

    C = mechanizer.dcm_e2n
    h = mechanizer.state.height
    lat, lon, wander = llh_from_dcm_e2n(C)
    Rn, Rm = mechanizer.earth.radii(lat)

    r_hat = llh_to_ecef(lat, lon, h)
    r_meas = llh_to_ecef(*llh)
    z = dcm_ecef_to_ned(lat, lon) @ (r_hat - r_meas)

    # Displacement in the navigation frame caused by the e2n error
    H_n = np.zeros((3, state_dim))
    H_n[0:3, ERROR_E2N] = (
        np.array(
            [
                [0.0, -2.0 * (Rm + h), 0.0],
                [2.0 * (Rn + h), 0.0, 0.0],
                [0.0, 0.0, 0.0],
            ]
        )
        @ C
    )
    H_n[2, ERROR_HEIGHT] = -1.0
    H = wander_rotation(wander).T @ H_n

    return Measurement("gnss_position", H, z, _noise_covariance(sigma_ned, 3))


def gnss_velocity(
    mechanizer: Mechanizer,
    velocity_ned: Sequence[float],
    sigma: Sigma,
    state_dim: int = ERROR_CORE_DIM,
) -> Measurement:
    """
    GNSS velocity in north-east-down axes.

    Args:
        mechanizer: Nominal navigation solution.
        velocity_ned: Measured velocity [v_N, v_E, v_D] (m/s).
        sigma: Standard deviation(s) (m/s).
        state_dim: Error-state dimension of the filter.

    Returns:
        3-row ``Measurement``.
    """
    _check_state_dim(state_dim)
    velocity_ned = np.asarray(velocity_ned, dtype=np.float64)
    if velocity_ned.shape != (3,):
        raise ValueError(f"velocity_ned must have shape (3,), got {velocity_ned.shape}")

    C = mechanizer.dcm_e2n
    v = mechanizer.state.velocity
    _, _, wander = llh_from_dcm_e2n(C)
    W_t = wander_rotation(wander).T

    z = W_t @ v - velocity_ned

    ca, sa = np.cos(wander), np.sin(wander)
    dW_t = np.array(
        [
            [-sa, -ca, 0.0],
            [ca, -sa, 0.0],
            [0.0, 0.0, 0.0],
        ]
    )

    H = np.zeros((3, state_dim))
    H[:, ERROR_VELOCITY] = W_t
    H[:, ERROR_E2N] = np.outer(dW_t @ v, wander_angle_sensitivity(C))

    return Measurement("gnss_velocity", H, z, _noise_covariance(sigma, 3))


def barometric_altitude(
    mechanizer: Mechanizer,
    altitude: float,
    sigma: float,
    state_dim: int = ERROR_CORE_DIM,
) -> Measurement:
    """Barometric altitude, taken as ellipsoidal height (m, up positive)."""
    _check_state_dim(state_dim)
    H = np.zeros((1, state_dim))
    H[0, ERROR_HEIGHT] = 1.0
    z = np.array([mechanizer.state.height - float(altitude)])
    return Measurement("baro", H, z, _noise_covariance(sigma, 1))


def magnetic_heading(
    mechanizer: Mechanizer,
    heading: float,
    sigma: float,
    declination: float = 0.0,
    state_dim: int = ERROR_CORE_DIM,
) -> Measurement:
    """
    Magnetic heading of the body x-axis.

    The true heading is the navigation-frame yaw plus the wander angle; the
    measured magnetic heading is converted to true heading with the given
    declination (east positive). The residual is wrapped to [-π, π].

    Args:
        mechanizer: Nominal navigation solution.
        heading: Magnetic heading (rad).
        sigma: Standard deviation (rad).
        declination: Magnetic declination (rad), added to ``heading``.
        state_dim: Error-state dimension of the filter.

    Returns:
        1-row ``Measurement``.
    """
    _check_state_dim(state_dim)
    C = mechanizer.dcm_e2n
    Cbn = mechanizer.dcm_n2b.T
    _, _, wander = llh_from_dcm_e2n(C)

    yaw_nav = np.arctan2(Cbn[1, 0], Cbn[0, 0])
    z = np.array([angle_diff(yaw_nav + wander, heading + declination)])

    den = Cbn[0, 0] ** 2 + Cbn[1, 0] ** 2
    if den < POLAR_COS2_THRESHOLD:
        raise ValueError("Heading is undefined with the body x-axis vertical")

    H = np.zeros((1, state_dim))
    H[0, ERROR_N2B] = 2.0 * np.array(
        [
            -Cbn[0, 0] * Cbn[2, 0] / den,
            -Cbn[1, 0] * Cbn[2, 0] / den,
            1.0,
        ]
    )
    H[0, ERROR_E2N] = wander_angle_sensitivity(C)

    return Measurement(
        "magnetic_heading",
        H,
        z,
        _noise_covariance(sigma, 1),
        meta={"declination": declination},
    )
