"""
Reference error-covariance Kalman filter.

Time update (first-order discretization of ẋ = A x + B u):
    Φ = I + A Δt
    Γ = B Δt
    P ← Φ P Φᵀ + Γ Q Γᵀ

Measurement update:
    S = H P Hᵀ + R
    K = P Hᵀ S⁻¹                      (Cholesky solve; S must be positive definite)
    P ← (I - K H) P                    (conventional)
    P ← (I - K H) P (I - K H)ᵀ + K R Kᵀ  (Joseph form)
"""

from typing import Optional

import numpy as np
from scipy.linalg import cho_factor, cho_solve

from insnav.estimators.base import CovarianceFilter


class ErrorCovarianceFilter(CovarianceFilter):
    """
    Covariance-only Kalman filter with optional Joseph-form update.

    Args:
        state_dim: Error-state dimension n.
        input_dim: Process-input dimension m.
        P0: Initial covariance (n×n). Default identity.
        Q: Process-input covariance (m×m). Default identity.
        joseph: Use the Joseph-form covariance update.
        dtype: numpy.float64 (default) or numpy.float32.

    Example:
        >>> kf = ErrorCovarianceFilter(2, 1)
        >>> kf.predict(np.array([[0.0, 1.0], [0.0, 0.0]]), np.array([[0.0], [1.0]]), 0.1)
        >>> K = kf.correct(np.array([[1.0, 0.0]]), np.array([[0.5]]))
        >>> K.shape
        (2, 1)
    """

    def __init__(
        self,
        state_dim: int,
        input_dim: int,
        P0: Optional[np.ndarray] = None,
        Q: Optional[np.ndarray] = None,
        joseph: bool = False,
        dtype: type = np.float64,
    ):
        self.joseph = joseph
        super().__init__(state_dim, input_dim, P0=P0, Q=Q, dtype=dtype)

    def _init_covariance(self, P: np.ndarray) -> None:
        self._P = P

    def _get_covariance(self) -> np.ndarray:
        return self._P.copy()

    def predict(self, A: np.ndarray, B: np.ndarray, dt: float) -> None:
        A, B = self._check_predict_args(A, B, dt)
        Phi = np.eye(self.state_dim, dtype=self.dtype) + A * dt
        Gamma = B * dt
        P = Phi @ self._P @ Phi.T + Gamma @ self._Q @ Gamma.T
        self._P = 0.5 * (P + P.T)

    def correct(self, H: np.ndarray, R: np.ndarray) -> np.ndarray:
        """
        Measurement update.

        Raises:
            ValueError: If H or R has an inconsistent shape.
            numpy.linalg.LinAlgError: If the innovation covariance is not
                positive definite.
        """
        H, R = self._check_correct_args(H, R)
        PHt = self._P @ H.T
        S = H @ PHt + R

        # K = P Hᵀ S⁻¹  ⇔  S Kᵀ = H P
        K = cho_solve(cho_factor(S, lower=True), PHt.T).T

        I_KH = np.eye(self.state_dim, dtype=self.dtype) - K @ H
        if self.joseph:
            P = I_KH @ self._P @ I_KH.T + K @ R @ K.T
        else:
            P = I_KH @ self._P
        self._P = 0.5 * (P + P.T)
        return K.astype(self.dtype, copy=False)
