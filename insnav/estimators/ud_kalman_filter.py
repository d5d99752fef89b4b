"""
UD-factorized error-covariance filter.

The covariance is stored as P = U D Uᵀ with U unit upper-triangular and D
diagonal, which keeps P symmetric and positive semi-definite under rounding.

    - Time update: Thornton's modified weighted Gram-Schmidt (MWGS)
      orthogonalization of [Φ U, Γ U_Q] with weights diag(D, D_Q), where
      Q = U_Q D_Q U_Qᵀ.
    - Measurement update: Bierman's sequential scalar update. A correlated
      R is first whitened with its Cholesky factor L (R = L Lᵀ), and the
      gains of the scalar updates are combined into the single gain that
      maps the original residual to the state correction.

References:
    G. J. Bierman, Factorization Methods for Discrete Sequential Estimation, 1977.
    C. L. Thornton, Triangular Covariance Factorizations for Kalman Filtering, 1976.
"""

from typing import Optional, Tuple

import numpy as np
from scipy.linalg import solve_triangular

from insnav.estimators.base import CovarianceFilter


def ud_decompose(P: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Factor a symmetric positive-definite matrix as P = U diag(d) Uᵀ.

    Args:
        P: Symmetric positive-definite matrix (n×n).

    Returns:
        Tuple (U, d): unit upper-triangular U and diagonal entries d.

    Raises:
        numpy.linalg.LinAlgError: If P is not positive definite.

    Example:
        >>> U, d = ud_decompose(np.array([[4.0, 2.0], [2.0, 3.0]]))
        >>> np.allclose(U @ np.diag(d) @ U.T, [[4.0, 2.0], [2.0, 3.0]])
        True
    """
    P = np.array(P, dtype=np.float64)
    n = P.shape[0]
    U = np.eye(n)
    d = np.zeros(n)

    for j in range(n - 1, -1, -1):
        d[j] = P[j, j]
        if d[j] <= 0.0:
            raise np.linalg.LinAlgError(
                f"Matrix is not positive definite (pivot {j} = {d[j]:.3e})"
            )
        alpha = 1.0 / d[j]
        for k in range(j):
            beta = P[k, j]
            U[k, j] = alpha * beta
            P[: k + 1, k] -= beta * U[: k + 1, j]

    return U, d


def _mwgs(W: np.ndarray, Dw: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Modified weighted Gram-Schmidt: W diag(Dw) Wᵀ = U diag(d) Uᵀ."""
    W = W.copy()
    n = W.shape[0]
    U = np.eye(n)
    d = np.zeros(n)

    for j in range(n - 1, -1, -1):
        c = W[j] * Dw
        d[j] = W[j] @ c
        if d[j] <= 0.0:
            raise np.linalg.LinAlgError(
                f"Propagated covariance lost positive definiteness at index {j}"
            )
        f = c / d[j]
        for i in range(j):
            U[i, j] = W[i] @ f
            W[i] -= U[i, j] * W[j]

    return U, d


class UDCovarianceFilter(CovarianceFilter):
    """
    Covariance filter that propagates the UD factors of P.

    Same contract and defaults as ``ErrorCovarianceFilter``; results agree
    with it to rounding.

    Args:
        state_dim: Error-state dimension n.
        input_dim: Process-input dimension m.
        P0: Initial covariance (n×n), must be positive definite. Default identity.
        Q: Process-input covariance (m×m). Default identity.
        dtype: numpy.float64 (default) or numpy.float32. Factors are always
               held in float64; P and K are returned in ``dtype``.
    """

    def __init__(
        self,
        state_dim: int,
        input_dim: int,
        P0: Optional[np.ndarray] = None,
        Q: Optional[np.ndarray] = None,
        dtype: type = np.float64,
    ):
        super().__init__(state_dim, input_dim, P0=P0, Q=Q, dtype=dtype)

    def _init_covariance(self, P: np.ndarray) -> None:
        self._U, self._d = ud_decompose(0.5 * (P + P.T))

    def _get_covariance(self) -> np.ndarray:
        P = (self._U * self._d) @ self._U.T
        return P.astype(self.dtype)

    @property
    def U(self) -> np.ndarray:
        return self._U.copy()

    @property
    def D(self) -> np.ndarray:
        return np.diag(self._d)

    def predict(self, A: np.ndarray, B: np.ndarray, dt: float) -> None:
        A, B = self._check_predict_args(A, B, dt)
        Phi = np.eye(self.state_dim) + np.asarray(A, dtype=np.float64) * dt
        Gamma = np.asarray(B, dtype=np.float64) * dt

        Q = np.asarray(self._Q, dtype=np.float64)
        if np.count_nonzero(Q - np.diag(np.diag(Q))) == 0:
            Uq = np.eye(self.input_dim)
            dq = np.diag(Q).copy()
        else:
            Uq, dq = ud_decompose(Q)

        # Inputs with zero variance contribute nothing
        keep = dq > 0.0
        W = np.hstack([Phi @ self._U, (Gamma @ Uq)[:, keep]])
        Dw = np.concatenate([self._d, dq[keep]])
        self._U, self._d = _mwgs(W, Dw)

    def correct(self, H: np.ndarray, R: np.ndarray) -> np.ndarray:
        """
        Bierman measurement update.

        Raises:
            ValueError: If H or R has an inconsistent shape.
            numpy.linalg.LinAlgError: If R is not positive definite.
        """
        H, R = self._check_correct_args(H, R)
        H = np.asarray(H, dtype=np.float64)
        R = np.asarray(R, dtype=np.float64)
        k = H.shape[0]
        n = self.state_dim

        # Whiten: z' = L⁻¹ z has unit, uncorrelated noise
        L = np.linalg.cholesky(R)
        Hw = solve_triangular(L, H, lower=True)

        U, d = self._U, self._d
        # Accumulated gain w.r.t. the whitened residual
        M = np.zeros((n, k))

        for i in range(k):
            h = Hw[i]
            f = U.T @ h
            g = d * f
            alpha = 1.0
            b = np.zeros(n)
            for j in range(n):
                alpha_prev = alpha
                alpha = alpha_prev + f[j] * g[j]
                lam = -f[j] / alpha_prev
                d[j] = d[j] * alpha_prev / alpha
                b[j] = g[j]
                for r in range(j):
                    u_rj = U[r, j]
                    U[r, j] = u_rj + b[r] * lam
                    b[r] = b[r] + u_rj * g[j]
            gain = b / alpha

            # x_i = x_{i-1} + gain (z'_i - h x_{i-1}), with x linear in z'
            M = M - np.outer(gain, h @ M)
            M[:, i] += gain

        self._U, self._d = U, d

        # K = M L⁻¹  ⇔  Lᵀ Kᵀ = Mᵀ
        K = solve_triangular(L, M.T, lower=True, trans="T").T
        return K.astype(self.dtype, copy=False)
