"""Unit tests for the reference error-covariance Kalman filter."""

import unittest

import numpy as np
import pytest

from insnav.estimators import ErrorCovarianceFilter


def _random_spd(rng: np.random.Generator, n: int) -> np.ndarray:
    M = rng.normal(size=(n, n))
    return M @ M.T + n * np.eye(n)


class TestDefaults(unittest.TestCase):
    def test_identity_initialization(self) -> None:
        kf = ErrorCovarianceFilter(10, 7)
        np.testing.assert_array_equal(kf.P, np.eye(10))
        np.testing.assert_array_equal(kf.Q, np.eye(7))

    def test_P_is_a_copy(self) -> None:
        kf = ErrorCovarianceFilter(3, 1)
        P = kf.P
        P[0, 0] = 99.0
        self.assertEqual(kf.P[0, 0], 1.0)

    def test_bad_initial_shapes(self) -> None:
        with self.assertRaises(ValueError):
            ErrorCovarianceFilter(3, 2, P0=np.eye(2))
        with self.assertRaises(ValueError):
            ErrorCovarianceFilter(3, 2, Q=np.eye(3))

    def test_negative_noise_variance_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ErrorCovarianceFilter(3, 2, Q=np.diag([1.0, -1e-6]))


class TestPredict(unittest.TestCase):
    def test_matches_first_order_discretization(self) -> None:
        rng = np.random.default_rng(1)
        n, m, dt = 5, 3, 0.01
        P0 = _random_spd(rng, n)
        Q = _random_spd(rng, m)
        A = rng.normal(size=(n, n))
        B = rng.normal(size=(n, m))

        kf = ErrorCovarianceFilter(n, m, P0=P0, Q=Q)
        kf.predict(A, B, dt)

        Phi = np.eye(n) + A * dt
        Gamma = B * dt
        expected = Phi @ P0 @ Phi.T + Gamma @ Q @ Gamma.T
        np.testing.assert_allclose(kf.P, expected, rtol=1e-12)

    def test_result_is_symmetric(self) -> None:
        rng = np.random.default_rng(2)
        kf = ErrorCovarianceFilter(6, 2, P0=_random_spd(rng, 6))
        kf.predict(rng.normal(size=(6, 6)), rng.normal(size=(6, 2)), 0.1)
        P = kf.P
        np.testing.assert_array_equal(P, P.T)

    def test_shape_mismatch_raises(self) -> None:
        kf = ErrorCovarianceFilter(4, 2)
        with self.assertRaises(ValueError):
            kf.predict(np.zeros((3, 3)), np.zeros((4, 2)), 0.1)
        with self.assertRaises(ValueError):
            kf.predict(np.zeros((4, 4)), np.zeros((4, 3)), 0.1)


class TestCorrect(unittest.TestCase):
    def setUp(self) -> None:
        rng = np.random.default_rng(3)
        self.n = 6
        self.P0 = _random_spd(rng, self.n)
        self.H = rng.normal(size=(2, self.n))
        self.R = np.array([[0.5, 0.1], [0.1, 0.3]])

    def test_gain_and_covariance(self) -> None:
        kf = ErrorCovarianceFilter(self.n, 1, P0=self.P0)
        K = kf.correct(self.H, self.R)

        S = self.H @ self.P0 @ self.H.T + self.R
        K_expected = self.P0 @ self.H.T @ np.linalg.inv(S)
        np.testing.assert_allclose(K, K_expected, rtol=1e-10)
        np.testing.assert_allclose(
            kf.P, (np.eye(self.n) - K_expected @ self.H) @ self.P0, rtol=1e-9, atol=1e-12
        )

    def test_joseph_form_agrees(self) -> None:
        standard = ErrorCovarianceFilter(self.n, 1, P0=self.P0)
        joseph = ErrorCovarianceFilter(self.n, 1, P0=self.P0, joseph=True)
        K1 = standard.correct(self.H, self.R)
        K2 = joseph.correct(self.H, self.R)
        np.testing.assert_allclose(K1, K2)
        np.testing.assert_allclose(standard.P, joseph.P, rtol=1e-9, atol=1e-12)

    def test_covariance_shrinks(self) -> None:
        kf = ErrorCovarianceFilter(self.n, 1, P0=self.P0)
        kf.correct(self.H, self.R)
        self.assertLess(np.trace(kf.P), np.trace(self.P0))

    def test_null_measurement_gives_zero_gain(self) -> None:
        kf = ErrorCovarianceFilter(self.n, 1, P0=self.P0)
        K = kf.correct(np.zeros((1, self.n)), np.eye(1))
        np.testing.assert_array_equal(K, np.zeros((self.n, 1)))
        np.testing.assert_allclose(kf.P, self.P0)

    def test_shape_mismatch_raises(self) -> None:
        kf = ErrorCovarianceFilter(self.n, 1)
        with self.assertRaises(ValueError):
            kf.correct(np.zeros((2, self.n + 1)), np.eye(2))
        with self.assertRaises(ValueError):
            kf.correct(np.zeros((2, self.n)), np.eye(3))

    def test_non_positive_definite_innovation_raises(self) -> None:
        kf = ErrorCovarianceFilter(self.n, 1, P0=np.zeros((self.n, self.n)))
        with self.assertRaises(np.linalg.LinAlgError):
            kf.correct(np.ones((1, self.n)), -np.eye(1))


@pytest.mark.parametrize("dtype", [np.float32, np.float64])
def test_dtype_is_respected(dtype) -> None:
    kf = ErrorCovarianceFilter(3, 1, dtype=dtype)
    kf.predict(np.eye(3), np.ones((3, 1)), 0.1)
    K = kf.correct(np.eye(3)[:1], np.eye(1))
    assert kf.P.dtype == dtype
    assert K.dtype == dtype
