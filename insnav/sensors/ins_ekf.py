"""
Error-state extended Kalman filter for a strapdown INS.

The navigation solution lives in a mechanizer (see ``strapdown.py``). The
filter only tracks the covariance of the 10 (+ auxiliary) error states:

    update(accel, gyro, dt):
        1. linearize A, B at the current (pre-propagation) state
        2. propagate the error covariance
        3. hook: after_predict(A, B, dt)
        4. propagate the nominal state with the same IMU sample

    correct(H, z, R):
        1. K = filter.correct(H, R)
        2. x̂ = K z
        3. hook: before_injection(H, R, K, z, x̂), may replace x̂
        4. correct_ins(x̂)

    correct_ins(x̂): subtract the estimated errors from the nominal state
        (quaternions by left multiplication with [1, -δ]) and renormalize.

The residual z is predicted minus measured, matching the error convention
x = estimate - truth. A zero residual therefore leaves the navigation state
unchanged, while the covariance still shrinks.
"""

from typing import Optional

import numpy as np

from insnav.coords.rotations import error_quaternion, quat_multiply, quat_normalize
from insnav.estimators.base import CovarianceFilter
from insnav.estimators.kalman_filter import ErrorCovarianceFilter
from insnav.sensors.linearization import ErrorStateLinearizer
from insnav.sensors.strapdown import Mechanizer
from insnav.sensors.types import (
    ERROR_AUX_START,
    ERROR_E2N,
    ERROR_HEIGHT,
    ERROR_N2B,
    ERROR_VELOCITY,
    LinearizationConfig,
    NavState,
)


class EstimatorHooks:
    """
    Extension points of ``ErrorStateINS``; the base class does nothing.

    Subclass and override to observe the filter (logging, consistency
    checks) or to post-process the correction before it is injected.
    """

    def after_predict(self, A: np.ndarray, B: np.ndarray, dt: float) -> None:
        """Called after the covariance time update, before mechanization."""

    def before_injection(
        self,
        H: np.ndarray,
        R: np.ndarray,
        K: np.ndarray,
        z: np.ndarray,
        x_hat: np.ndarray,
    ) -> Optional[np.ndarray]:
        """
        Called with the estimated error before it is applied.

        Returns:
            The correction to inject. Returning None keeps ``x_hat``.
        """
        return x_hat


def inject_error_state(state: NavState, x_hat: np.ndarray) -> None:
    """
    Apply an estimated error vector to a nominal state in place.

    Error index i corrects nominal index i for velocity, i + 1 for the
    e2n attitude and height, and i + 2 for the n2b attitude and auxiliary
    states.

    Args:
        state: Nominal state to correct.
        x_hat: Estimated error (estimate - truth), shape (10 + n_aux,).

    Raises:
        ValueError: If x_hat is shorter than 10 or carries more auxiliary
                    entries than the state.
    """
    x_hat = np.asarray(x_hat, dtype=np.float64)
    if x_hat.ndim != 1 or x_hat.shape[0] < ERROR_AUX_START:
        raise ValueError(
            f"x_hat must be 1-D with at least {ERROR_AUX_START} entries, got shape {x_hat.shape}"
        )
    n_aux = x_hat.shape[0] - ERROR_AUX_START
    if n_aux > state.aux_dim:
        raise ValueError(
            f"x_hat carries {n_aux} auxiliary errors but the state has {state.aux_dim}"
        )

    state.velocity = state.velocity - x_hat[ERROR_VELOCITY]
    state.q_e2n = quat_normalize(
        quat_multiply(error_quaternion(x_hat[ERROR_E2N]), state.q_e2n)
    )
    state.height = state.height - float(x_hat[ERROR_HEIGHT])
    state.q_n2b = quat_normalize(
        quat_multiply(error_quaternion(x_hat[ERROR_N2B]), state.q_n2b)
    )
    if n_aux:
        aux = state.aux.copy()
        aux[:n_aux] -= x_hat[ERROR_AUX_START:]
        state.aux = aux


class ErrorStateINS:
    """
    Filtered INS: mechanizer + linearization + covariance filter.

    Args:
        mechanizer: Owner of the nominal navigation state.
        config: Linearization policy (radius mode, centripetal terms,
                bias estimation, dtype). Default ``LinearizationConfig()``.
        covariance_filter: Filter implementing ``CovarianceFilter``. Default
                           ``ErrorCovarianceFilter`` sized from ``config``.
        hooks: ``EstimatorHooks`` instance. Default no-op hooks.
        P0: Initial error covariance. Default identity.
        Q: Process-input covariance. Default identity.

    Raises:
        ValueError: If the filter dimensions do not match the configuration
                    or the mechanizer state lacks the configured auxiliary
                    states, or the radius modes of the mechanizer and the
                    configuration differ.

    Example:
        >>> from insnav.sensors.strapdown import StrapdownMechanizer
        >>> mech = StrapdownMechanizer.from_geodetic(0.6, 2.4, 30.0)
        >>> ins = ErrorStateINS(mech)
        >>> ins.update([0.0, 0.0, -mech.gravity], mech.dcm_n2b @ mech.omega_ie_n, 0.01)
        >>> H = np.zeros((1, 10)); H[0, 6] = 1.0
        >>> x_hat = ins.correct(H, np.array([0.5]), np.array([[1.0]]))
    """

    def __init__(
        self,
        mechanizer: Mechanizer,
        config: Optional[LinearizationConfig] = None,
        covariance_filter: Optional[CovarianceFilter] = None,
        hooks: Optional[EstimatorHooks] = None,
        P0: Optional[np.ndarray] = None,
        Q: Optional[np.ndarray] = None,
    ):
        self.mechanizer = mechanizer
        self.linearizer = ErrorStateLinearizer(mechanizer, config)
        cfg = self.linearizer.config

        if mechanizer.state.aux_dim < cfg.aux_dim:
            raise ValueError(
                f"Configuration needs {cfg.aux_dim} auxiliary states, "
                f"mechanizer state has {mechanizer.state.aux_dim}"
            )
        if mechanizer.use_ellipsoid_radii != cfg.use_ellipsoid_radii:
            raise ValueError(
                f"Radius mode mismatch: mechanizer use_ellipsoid_radii="
                f"{mechanizer.use_ellipsoid_radii}, linearization "
                f"use_ellipsoid_radii={cfg.use_ellipsoid_radii}"
            )

        if covariance_filter is None:
            covariance_filter = ErrorCovarianceFilter(
                cfg.state_dim, cfg.input_dim, P0=P0, Q=Q, dtype=cfg.dtype
            )
        else:
            if (covariance_filter.state_dim, covariance_filter.input_dim) != (
                cfg.state_dim,
                cfg.input_dim,
            ):
                raise ValueError(
                    f"Filter dimensions ({covariance_filter.state_dim}, "
                    f"{covariance_filter.input_dim}) do not match the error model "
                    f"({cfg.state_dim}, {cfg.input_dim})"
                )
            if P0 is not None:
                covariance_filter.P = P0
            if Q is not None:
                covariance_filter.Q = Q

        self.filter = covariance_filter
        self.hooks = hooks if hooks is not None else EstimatorHooks()

    @property
    def config(self) -> LinearizationConfig:
        return self.linearizer.config

    @property
    def state_dim(self) -> int:
        return self.config.state_dim

    @property
    def input_dim(self) -> int:
        return self.config.input_dim

    @property
    def state(self) -> NavState:
        return self.mechanizer.state

    @property
    def P(self) -> np.ndarray:
        return self.filter.P

    @property
    def Q(self) -> np.ndarray:
        return self.filter.Q

    def update(self, accel: np.ndarray, gyro: np.ndarray, dt: float) -> None:
        """
        Time update with one IMU sample.

        Args:
            accel: Specific force in body frame (m/s²), shape (3,).
            gyro: Angular rate in body frame (rad/s), shape (3,).
            dt: Sample interval (s).

        Raises:
            ValueError: On malformed inputs or non-positive dt.
        """
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")
        A, B = self.linearizer.build(accel, gyro)
        self.filter.predict(A, B, dt)
        self.hooks.after_predict(A, B, dt)
        self.mechanizer.propagate(accel, gyro, dt)

    def correct(self, H: np.ndarray, z: np.ndarray, R: np.ndarray) -> np.ndarray:
        """
        Measurement update and error injection.

        Args:
            H: Observation matrix (k×n) on the error state.
            z: Residual, predicted minus measured, shape (k,).
            R: Measurement noise covariance (k×k).

        Returns:
            The injected error estimate x̂, shape (n,).

        Raises:
            ValueError: If H, z, R shapes are inconsistent with each other
                        or with the error-state dimension.
            numpy.linalg.LinAlgError: If the filter finds the innovation
                                      covariance degenerate.
        """
        H = np.asarray(H, dtype=self.config.dtype)
        z = np.asarray(z, dtype=self.config.dtype)
        R = np.asarray(R, dtype=self.config.dtype)
        n = self.state_dim
        if H.ndim != 2 or H.shape[1] != n:
            raise ValueError(f"H must have shape (k, {n}), got {H.shape}")
        k = H.shape[0]
        if z.shape == (k, 1):
            z = z[:, 0]
        if z.shape != (k,):
            raise ValueError(f"z must have shape ({k},), got {z.shape}")
        if R.shape != (k, k):
            raise ValueError(f"R must have shape ({k}, {k}), got {R.shape}")

        K = self.filter.correct(H, R)
        x_hat = K @ z

        modified = self.hooks.before_injection(H, R, K, z, x_hat)
        if modified is not None:
            x_hat = np.asarray(modified)

        self.correct_ins(x_hat)
        return x_hat

    def correct_measurement(self, measurement) -> np.ndarray:
        """Convenience wrapper for a ``Measurement`` from ``measurements.py``."""
        return self.correct(measurement.H, measurement.z, measurement.R)

    def correct_ins(self, x_hat: np.ndarray) -> None:
        """
        Inject an estimated error into the nominal state and refresh the
        mechanizer's derived quantities.

        Raises:
            ValueError: If x_hat does not have shape (state_dim,).
        """
        x_hat = np.asarray(x_hat)
        if x_hat.shape != (self.state_dim,):
            raise ValueError(
                f"x_hat must have shape ({self.state_dim},), got {x_hat.shape}"
            )
        inject_error_state(self.mechanizer.state, x_hat)
        self.mechanizer.recompute_derived()
