"""Unit tests for geodetic transforms and the earth-to-navigation attitude."""

import unittest

import numpy as np

from insnav.coords.rotations import quat_to_dcm
from insnav.coords.transforms import (
    WGS84_A,
    WGS84_B,
    dcm_e2n_from_llh,
    dcm_ecef_to_ned,
    ecef_to_llh,
    llh_from_dcm_e2n,
    llh_to_ecef,
    quat_e2n_from_llh,
    wander_rotation,
)


class TestLLHECEF(unittest.TestCase):
    def test_equator_prime_meridian(self) -> None:
        np.testing.assert_allclose(llh_to_ecef(0.0, 0.0, 0.0), [WGS84_A, 0.0, 0.0], atol=1e-6)

    def test_north_pole(self) -> None:
        np.testing.assert_allclose(
            llh_to_ecef(np.pi / 2, 0.0, 0.0), [0.0, 0.0, WGS84_B], atol=1e-6
        )

    def test_round_trip(self) -> None:
        llh = np.array([np.deg2rad(22.3), np.deg2rad(114.2), 120.0])
        out = ecef_to_llh(*llh_to_ecef(*llh))
        np.testing.assert_allclose(out[:2], llh[:2], atol=1e-12)
        self.assertAlmostEqual(out[2], llh[2], places=6)


class TestEarthToNav(unittest.TestCase):
    def setUp(self) -> None:
        self.lat = np.deg2rad(35.7)
        self.lon = np.deg2rad(139.7)

    def test_ned_rows_are_local_axes(self) -> None:
        C = dcm_ecef_to_ned(self.lat, self.lon)
        r = llh_to_ecef(self.lat, self.lon, 0.0)
        up = llh_to_ecef(self.lat, self.lon, 1.0) - r
        # Down row is the negative outward normal
        np.testing.assert_allclose(C[2], -up, atol=1e-8)
        np.testing.assert_allclose(C @ C.T, np.eye(3), atol=1e-12)

    def test_wander_rotation_about_down(self) -> None:
        W = wander_rotation(0.3)
        np.testing.assert_allclose(W @ np.array([0.0, 0.0, 1.0]), [0.0, 0.0, 1.0])
        # Navigation x-axis has azimuth equal to the wander angle
        x_nav_in_ned = W.T @ np.array([1.0, 0.0, 0.0])
        self.assertAlmostEqual(np.arctan2(x_nav_in_ned[1], x_nav_in_ned[0]), 0.3)

    def test_quaternion_matches_dcm(self) -> None:
        q = quat_e2n_from_llh(self.lat, self.lon, 0.4)
        np.testing.assert_allclose(
            quat_to_dcm(q), dcm_e2n_from_llh(self.lat, self.lon, 0.4), atol=1e-12
        )

    def test_recover_position_and_wander(self) -> None:
        for wander in (0.0, 0.4, -2.5):
            lat, lon, alpha = llh_from_dcm_e2n(dcm_e2n_from_llh(self.lat, self.lon, wander))
            self.assertAlmostEqual(lat, self.lat, places=12)
            self.assertAlmostEqual(lon, self.lon, places=12)
            self.assertAlmostEqual(alpha, wander, places=12)

    def test_recover_from_quaternion(self) -> None:
        lat, lon, alpha = llh_from_dcm_e2n(quat_to_dcm(quat_e2n_from_llh(-0.5, -1.0, 0.2)))
        np.testing.assert_allclose([lat, lon, alpha], [-0.5, -1.0, 0.2], atol=1e-12)

    def test_rejects_wrong_shape(self) -> None:
        with self.assertRaises(ValueError):
            llh_from_dcm_e2n(np.eye(2))


if __name__ == "__main__":
    unittest.main()
