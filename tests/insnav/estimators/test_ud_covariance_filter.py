"""Unit tests for the UD-factorized covariance filter."""

import unittest

import numpy as np

from insnav.estimators import ErrorCovarianceFilter, UDCovarianceFilter, ud_decompose


def _random_spd(rng: np.random.Generator, n: int) -> np.ndarray:
    M = rng.normal(size=(n, n))
    return M @ M.T + n * np.eye(n)


class TestUDDecompose(unittest.TestCase):
    def test_reconstruction(self) -> None:
        P = _random_spd(np.random.default_rng(10), 7)
        U, d = ud_decompose(P)
        np.testing.assert_allclose(U @ np.diag(d) @ U.T, P, rtol=1e-12)
        np.testing.assert_array_equal(np.diag(U), np.ones(7))
        np.testing.assert_array_equal(np.tril(U, -1), np.zeros((7, 7)))
        self.assertTrue(np.all(d > 0))

    def test_not_positive_definite(self) -> None:
        with self.assertRaises(np.linalg.LinAlgError):
            ud_decompose(np.array([[1.0, 2.0], [2.0, 1.0]]))


class TestAgreementWithReference(unittest.TestCase):
    def setUp(self) -> None:
        rng = np.random.default_rng(11)
        self.n, self.m = 10, 7
        self.P0 = _random_spd(rng, self.n)
        self.Q = _random_spd(rng, self.m)
        self.A = 0.1 * rng.normal(size=(self.n, self.n))
        self.B = rng.normal(size=(self.n, self.m))
        self.H = rng.normal(size=(3, self.n))
        L = np.tril(rng.normal(size=(3, 3))) + 3.0 * np.eye(3)
        self.R = L @ L.T

    def _pair(self):
        ref = ErrorCovarianceFilter(self.n, self.m, P0=self.P0, Q=self.Q)
        ud = UDCovarianceFilter(self.n, self.m, P0=self.P0, Q=self.Q)
        return ref, ud

    def test_initial_covariance(self) -> None:
        _, ud = self._pair()
        np.testing.assert_allclose(ud.P, self.P0, rtol=1e-12)

    def test_predict(self) -> None:
        ref, ud = self._pair()
        ref.predict(self.A, self.B, 0.05)
        ud.predict(self.A, self.B, 0.05)
        np.testing.assert_allclose(ud.P, ref.P, rtol=1e-9, atol=1e-12)

    def test_predict_diagonal_noise_with_zero_channel(self) -> None:
        Q = np.diag([1.0, 0.0, 2.0, 0.5, 0.0, 1.0, 3.0])
        ref = ErrorCovarianceFilter(self.n, self.m, P0=self.P0, Q=Q)
        ud = UDCovarianceFilter(self.n, self.m, P0=self.P0, Q=Q)
        ref.predict(self.A, self.B, 0.05)
        ud.predict(self.A, self.B, 0.05)
        np.testing.assert_allclose(ud.P, ref.P, rtol=1e-9, atol=1e-12)

    def test_negative_noise_variance_rejected(self) -> None:
        Q = np.diag([1.0, -0.5, 2.0, 0.5, 0.0, 1.0, 3.0])
        with self.assertRaises(ValueError):
            UDCovarianceFilter(self.n, self.m, P0=self.P0, Q=Q)
        ud = UDCovarianceFilter(self.n, self.m, P0=self.P0)
        with self.assertRaises(ValueError):
            ud.Q = Q
        np.testing.assert_array_equal(ud.Q, np.eye(self.m))

    def test_correct_with_correlated_noise(self) -> None:
        ref, ud = self._pair()
        K_ref = ref.correct(self.H, self.R)
        K_ud = ud.correct(self.H, self.R)
        np.testing.assert_allclose(K_ud, K_ref, rtol=1e-8, atol=1e-12)
        np.testing.assert_allclose(ud.P, ref.P, rtol=1e-8, atol=1e-10)

    def test_sequence(self) -> None:
        ref, ud = self._pair()
        for _ in range(5):
            ref.predict(self.A, self.B, 0.02)
            ud.predict(self.A, self.B, 0.02)
            K_ref = ref.correct(self.H, self.R)
            K_ud = ud.correct(self.H, self.R)
            np.testing.assert_allclose(K_ud, K_ref, rtol=1e-7, atol=1e-10)
        np.testing.assert_allclose(ud.P, ref.P, rtol=1e-7, atol=1e-10)

    def test_null_measurement(self) -> None:
        _, ud = self._pair()
        K = ud.correct(np.zeros((1, self.n)), np.eye(1))
        np.testing.assert_allclose(K, np.zeros((self.n, 1)), atol=0.0)
        np.testing.assert_allclose(ud.P, self.P0, rtol=1e-12)


class TestErrors(unittest.TestCase):
    def test_non_positive_definite_noise(self) -> None:
        ud = UDCovarianceFilter(3, 1)
        with self.assertRaises(np.linalg.LinAlgError):
            ud.correct(np.eye(3)[:2], np.array([[1.0, 2.0], [2.0, 1.0]]))

    def test_shape_mismatch(self) -> None:
        ud = UDCovarianceFilter(3, 1)
        with self.assertRaises(ValueError):
            ud.correct(np.eye(4)[:2], np.eye(2))
        with self.assertRaises(ValueError):
            ud.predict(np.eye(3), np.ones((3, 2)), 0.1)


if __name__ == "__main__":
    unittest.main()
