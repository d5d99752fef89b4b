"""Unit tests for the normal gravity model."""

import unittest

import numpy as np

from insnav.sensors.gravity import (
    FREE_AIR_GRADIENT,
    gravity_at_height,
    gravity_partials,
    normal_gravity,
)


class TestNormalGravity(unittest.TestCase):
    def test_equator(self) -> None:
        self.assertAlmostEqual(normal_gravity(0.0), 9.7803, places=4)

    def test_pole(self) -> None:
        self.assertAlmostEqual(normal_gravity(np.pi / 2), 9.7803 * 1.0053024, places=6)

    def test_symmetric_in_latitude(self) -> None:
        self.assertAlmostEqual(normal_gravity(0.7), normal_gravity(-0.7), places=12)

    def test_increases_towards_pole(self) -> None:
        lats = np.deg2rad(np.arange(0.0, 91.0, 10.0))
        g = [normal_gravity(lat) for lat in lats]
        self.assertTrue(np.all(np.diff(g) > 0))


class TestHeightCorrection(unittest.TestCase):
    def test_zero_height(self) -> None:
        self.assertEqual(gravity_at_height(0.4, 0.0), normal_gravity(0.4))

    def test_free_air_gradient(self) -> None:
        lat = np.deg2rad(45.0)
        drop = normal_gravity(lat) - gravity_at_height(lat, 1000.0)
        self.assertAlmostEqual(drop, 1000.0 * FREE_AIR_GRADIENT, places=12)


class TestGravityPartials(unittest.TestCase):
    def test_matches_finite_difference(self) -> None:
        lat, h, d_lat, d_h = 0.6, 250.0, 1e-6, 10.0
        dg_dlat, dg_dh = gravity_partials(lat)
        fd_lat = (gravity_at_height(lat + d_lat, h) - gravity_at_height(lat - d_lat, h)) / (2 * d_lat)
        fd_h = (gravity_at_height(lat, h + d_h) - gravity_at_height(lat, h)) / d_h
        self.assertAlmostEqual(dg_dlat, fd_lat, places=7)
        self.assertAlmostEqual(dg_dh, fd_h, places=12)

    def test_no_latitude_sensitivity_at_equator_and_pole(self) -> None:
        self.assertEqual(gravity_partials(0.0)[0], 0.0)
        self.assertAlmostEqual(gravity_partials(np.pi / 2)[0], 0.0, places=12)


if __name__ == "__main__":
    unittest.main()
