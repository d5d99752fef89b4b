"""
Error-state linearization of the wander-azimuth strapdown mechanization.

Builds the continuous-time system matrix A (n×n) and input matrix B (n×m)
of the error dynamics

    ẋ = A x + B u

about the mechanizer's current nominal state. The core error state is
10-dimensional (see ``insnav.sensors.types``); the input vector is

    u = [accelerometer error (3), gyroscope error (3), gravity-model error (1)]

With IMU-bias estimation enabled, six bias errors are appended to x and six
bias-driving noise channels to u.

Derivation summary (x = estimate - truth, left quaternion perturbations,
C = C_e^n, Cb = C_n^b, u_e the e2n error, w the n2b error):

    δω_ie^n = Mie u_e,   Mie = 2Ω [C[:,1], -C[:,0], 0]
    δω_en^n = Dv δv + dh δh
    δv̇     = -[Ω2×] δv + [v×](2 δω_ie + δω_en) - 2 [(Cbᵀ f)×] w + Cbᵀ δf
              + (∂g/∂φ δφ + ∂g/∂h δh + δg) e_z
    δφ     = 2 [sin λ, -cos λ, 0] · u_e
    u̇_e    = ½ Cᵀ δω_en
    δḣ     = -δv_z
    ẇ      = -[ω_in×] w - ½ δω_in + ½ Cbᵀ δω_ib

Entries that are structurally zero are never written; A and B start from
zero matrices.

``LinearizationConfig.include_centripetal`` adds the position sensitivity
of the centrifugal acceleration. Normal gravity already contains that
acceleration along the plumb line, so these terms only belong with a
mechanizer that applies pure gravitation plus an explicit centripetal
term. ``StrapdownMechanizer`` uses normal gravity, hence the default off.
"""

from typing import Optional, Tuple

import numpy as np

from insnav.coords.rotations import skew_symmetric
from insnav.sensors.gravity import gravity_partials
from insnav.sensors.strapdown import Mechanizer
from insnav.sensors.types import (
    ERROR_CORE_DIM,
    IMU_BIAS_DIM,
    INPUT_CORE_DIM,
    LinearizationConfig,
)

_HORIZONTAL = np.diag([1.0, 1.0, 0.0])


def _as_matrix3(name: str, value) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3, 3):
        raise ValueError(f"{name} must have shape (3, 3), got {arr.shape}")
    return arr


def _as_triplet(name: str, value) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {arr.shape}")
    return arr


class ErrorStateLinearizer:
    """
    Produces A and B for the error-state filter.

    The engine is stateless between calls: every matrix is built from the
    arguments plus the mechanizer's current velocity, height, auxiliary
    states and Earth model. Latitude is taken from ``dcm_e2n``.

    Args:
        mechanizer: Source of velocity, height, biases and the Earth model.
        config: Construction-time physics policy. Defaults to
                ``LinearizationConfig()``.

    Example:
        >>> from insnav.sensors.strapdown import StrapdownMechanizer
        >>> mech = StrapdownMechanizer.from_geodetic(0.6, 2.4, 30.0)
        >>> lin = ErrorStateLinearizer(mech)
        >>> A, B = lin.build([0.0, 0.0, -9.8], [0.0, 0.0, 0.0])
        >>> A.shape, B.shape
        ((10, 10), (10, 7))
    """

    def __init__(
        self,
        mechanizer: Mechanizer,
        config: Optional[LinearizationConfig] = None,
    ):
        self.mechanizer = mechanizer
        self.config = config if config is not None else LinearizationConfig()

    @property
    def state_dim(self) -> int:
        return self.config.state_dim

    @property
    def input_dim(self) -> int:
        return self.config.input_dim

    def _attitudes(self, dcm_e2n, dcm_n2b) -> Tuple[np.ndarray, np.ndarray]:
        if dcm_e2n is None:
            dcm_e2n = self.mechanizer.dcm_e2n
        if dcm_n2b is None:
            dcm_n2b = self.mechanizer.dcm_n2b
        return _as_matrix3("dcm_e2n", dcm_e2n), _as_matrix3("dcm_n2b", dcm_n2b)

    def build_A(
        self,
        accel: np.ndarray,
        gyro: np.ndarray,
        dcm_e2n: Optional[np.ndarray] = None,
        dcm_n2b: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        System matrix of the error dynamics.

        Args:
            accel: Measured specific force in body frame (m/s²), shape (3,).
            gyro: Measured angular rate in body frame (rad/s), shape (3,).
                  Not used by the error model but validated for shape.
            dcm_e2n: C_e^n; defaults to the mechanizer's current value.
            dcm_n2b: C_n^b; defaults to the mechanizer's current value.

        Returns:
            A with shape (state_dim, state_dim) and the configured dtype.

        Raises:
            ValueError: If an argument has the wrong shape.
        """
        f_b = _as_triplet("accel", accel)
        _as_triplet("gyro", gyro)
        C, Cb = self._attitudes(dcm_e2n, dcm_n2b)
        cfg = self.config
        earth = self.mechanizer.earth
        state = self.mechanizer.state

        if cfg.estimate_imu_biases:
            f_b = f_b - state.accel_bias

        v = state.velocity
        h = state.height
        lat = np.arcsin(np.clip(-C[2, 2], -1.0, 1.0))
        Rn, Rm = earth.radii(lat, cfg.use_ellipsoid_radii)
        rn = Rn + h
        rm = Rm + h
        omega = earth.rotation_rate

        omega_ie = omega * C[:, 2]
        omega_en = np.array([v[1] / rn, -v[0] / rm, 0.0])
        omega_2 = 2.0 * omega_ie + omega_en
        omega_in = omega_ie + omega_en

        # Partial derivatives of the transport rate
        D_v = np.array(
            [
                [0.0, 1.0 / rn, 0.0],
                [-1.0 / rm, 0.0, 0.0],
                [0.0, 0.0, 0.0],
            ]
        )
        d_h = np.array([-v[1] / rn**2, v[0] / rm**2, 0.0])

        # Partial derivative of the Earth rate w.r.t. the e2n error
        M_ie = np.zeros((3, 3))
        M_ie[:, 0] = 2.0 * omega * C[:, 1]
        M_ie[:, 1] = -2.0 * omega * C[:, 0]

        V = skew_symmetric(v)
        f_n = Cb.T @ f_b

        n = cfg.state_dim
        A = np.zeros((n, n))

        # Velocity error rows
        A[0:3, 0:3] = -skew_symmetric(omega_2) + V @ D_v
        A[0:3, 3:6] = 2.0 * (V @ M_ie)
        A[0:3, 6] = V @ d_h
        A[0:3, 7:10] = -2.0 * skew_symmetric(f_n)

        # Gravity magnitude varies with latitude and height
        dg_dlat, dg_dh = gravity_partials(lat)
        lon = np.arctan2(-C[2, 1], -C[2, 0])
        A[2, 3:6] += dg_dlat * np.array([2.0 * np.sin(lon), -2.0 * np.cos(lon), 0.0])
        A[2, 6] += dg_dh

        if cfg.include_centripetal:
            d = C[2, :]  # down axis in ECEF
            Pd = _HORIZONTAL @ d
            A[0:3, 3:6] += (-2.0 * omega**2 * rn) * (
                C @ (skew_symmetric(Pd) - _HORIZONTAL @ skew_symmetric(d))
            )
            A[0:3, 6] += -(omega**2) * (C @ Pd)

        # Earth-to-navigation attitude error rows
        A[3:6, 0:3] = 0.5 * (C.T @ D_v)
        A[3:6, 6] = 0.5 * (C.T @ d_h)

        # Height error row
        A[6, 2] = -1.0

        # Navigation-to-body attitude error rows
        A[7:10, 0:3] = -0.5 * D_v
        A[7:10, 3:6] = -0.5 * M_ie
        A[7:10, 6] = -0.5 * d_h
        A[7:10, 7:10] = -skew_symmetric(omega_in)

        if cfg.estimate_imu_biases:
            ba = slice(ERROR_CORE_DIM, ERROR_CORE_DIM + 3)
            bg = slice(ERROR_CORE_DIM + 3, ERROR_CORE_DIM + IMU_BIAS_DIM)
            A[0:3, ba] = -Cb.T
            A[7:10, bg] = -0.5 * Cb.T
            if cfg.bias_correlation_time is not None:
                bias = slice(ERROR_CORE_DIM, ERROR_CORE_DIM + IMU_BIAS_DIM)
                A[bias, bias] = -np.eye(IMU_BIAS_DIM) / cfg.bias_correlation_time

        return A.astype(cfg.dtype, copy=False)

    def build_B(
        self,
        accel: np.ndarray,
        gyro: np.ndarray,
        dcm_e2n: Optional[np.ndarray] = None,
        dcm_n2b: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Input matrix mapping sensor and gravity errors into the error rates.

        Only the body-to-navigation rotation enters B; ``accel``, ``gyro``
        and ``dcm_e2n`` are accepted for a uniform call signature and
        validated for shape.

        Returns:
            B with shape (state_dim, input_dim) and the configured dtype.
        """
        _as_triplet("accel", accel)
        _as_triplet("gyro", gyro)
        _, Cb = self._attitudes(dcm_e2n, dcm_n2b)
        cfg = self.config

        B = np.zeros((cfg.state_dim, cfg.input_dim))
        B[0:3, 0:3] = Cb.T
        B[2, 6] = 1.0
        B[7:10, 3:6] = 0.5 * Cb.T

        if cfg.estimate_imu_biases:
            bias = slice(ERROR_CORE_DIM, ERROR_CORE_DIM + IMU_BIAS_DIM)
            noise = slice(INPUT_CORE_DIM, INPUT_CORE_DIM + IMU_BIAS_DIM)
            B[bias, noise] = np.eye(IMU_BIAS_DIM)

        return B.astype(cfg.dtype, copy=False)

    def build(
        self,
        accel: np.ndarray,
        gyro: np.ndarray,
        dcm_e2n: Optional[np.ndarray] = None,
        dcm_n2b: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Return (A, B) at the same linearization point."""
        C, Cb = self._attitudes(dcm_e2n, dcm_n2b)
        return (
            self.build_A(accel, gyro, C, Cb),
            self.build_B(accel, gyro, C, Cb),
        )
