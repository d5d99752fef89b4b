"""
Base class for error-covariance filters.

An error-state estimator keeps its navigation solution in a mechanizer and
only asks the filter to maintain the error covariance P. Every filter used
by ``ErrorStateINS`` implements this contract:

    predict(A, B, dt)   time update from the continuous-time error model
    correct(H, R) -> K  measurement update; returns the gain

The filter never sees the measurement residual; applying K to it is the
estimator's job.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np


def _square(name: str, M, dim: int, dtype) -> np.ndarray:
    M = np.asarray(M, dtype=dtype)
    if M.shape != (dim, dim):
        raise ValueError(f"{name} must have shape ({dim}, {dim}), got {M.shape}")
    return M.copy()


def _process_covariance(Q, dim: int, dtype) -> np.ndarray:
    Q = _square("Q", Q, dim, dtype)
    if np.any(np.diag(Q) < 0.0):
        raise ValueError(f"Q must have non-negative variances, got diagonal {np.diag(Q)}")
    return Q


class CovarianceFilter(ABC):
    """
    Abstract error-covariance filter.

    Args:
        state_dim: Error-state dimension n.
        input_dim: Process-input dimension m (columns of B).
        P0: Initial covariance (n×n). Default identity.
        Q: Process-input covariance (m×m). Default identity.
        dtype: Floating-point type of P, Q and every returned gain.

    Raises:
        ValueError: If P0 or Q has the wrong shape or Q has a negative variance.
    """

    def __init__(
        self,
        state_dim: int,
        input_dim: int,
        P0: Optional[np.ndarray] = None,
        Q: Optional[np.ndarray] = None,
        dtype: type = np.float64,
    ):
        if state_dim <= 0 or input_dim <= 0:
            raise ValueError(
                f"Dimensions must be positive, got state_dim={state_dim}, input_dim={input_dim}"
            )
        self.state_dim = state_dim
        self.input_dim = input_dim
        self.dtype = dtype
        self._Q = _process_covariance(np.eye(input_dim) if Q is None else Q, input_dim, dtype)
        self._init_covariance(
            _square("P0", np.eye(state_dim) if P0 is None else P0, state_dim, dtype)
        )

    @property
    def Q(self) -> np.ndarray:
        """Process-input covariance."""
        return self._Q

    @Q.setter
    def Q(self, value: np.ndarray) -> None:
        self._Q = _process_covariance(value, self.input_dim, self.dtype)

    @property
    def P(self) -> np.ndarray:
        """Current error covariance (a copy)."""
        return self._get_covariance()

    @P.setter
    def P(self, value: np.ndarray) -> None:
        self._init_covariance(_square("P", value, self.state_dim, self.dtype))

    @abstractmethod
    def _init_covariance(self, P: np.ndarray) -> None:
        """Store P in the filter's internal representation."""

    @abstractmethod
    def _get_covariance(self) -> np.ndarray:
        """Assemble the full covariance from the internal representation."""

    @abstractmethod
    def predict(self, A: np.ndarray, B: np.ndarray, dt: float) -> None:
        """
        Time update of the covariance.

        Args:
            A: Continuous-time system matrix (n×n).
            B: Continuous-time input matrix (n×m).
            dt: Step length in seconds.
        """

    @abstractmethod
    def correct(self, H: np.ndarray, R: np.ndarray) -> np.ndarray:
        """
        Measurement update of the covariance.

        Args:
            H: Observation matrix (k×n).
            R: Measurement noise covariance (k×k).

        Returns:
            Kalman gain K (n×k).
        """

    def _check_predict_args(self, A, B, dt):
        A = np.asarray(A, dtype=self.dtype)
        B = np.asarray(B, dtype=self.dtype)
        n, m = self.state_dim, self.input_dim
        if A.shape != (n, n):
            raise ValueError(f"A must have shape ({n}, {n}), got {A.shape}")
        if B.shape != (n, m):
            raise ValueError(f"B must have shape ({n}, {m}), got {B.shape}")
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        return A, B

    def _check_correct_args(self, H, R):
        H = np.asarray(H, dtype=self.dtype)
        R = np.asarray(R, dtype=self.dtype)
        if H.ndim != 2 or H.shape[1] != self.state_dim:
            raise ValueError(
                f"H must have shape (k, {self.state_dim}), got {H.shape}"
            )
        k = H.shape[0]
        if R.shape != (k, k):
            raise ValueError(f"R must have shape ({k}, {k}), got {R.shape}")
        return H, R
