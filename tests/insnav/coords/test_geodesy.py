"""Unit tests for the Earth model."""

import unittest

import numpy as np
import pytest

from insnav.coords.geodesy import (
    EARTH_ROTATION_RATE,
    WGS84,
    EarthModel,
    radius_meridian,
    radius_normal,
)


class TestCurvatureRadii(unittest.TestCase):
    def test_equator_values(self) -> None:
        self.assertAlmostEqual(radius_normal(0.0), 6378137.0, places=3)
        self.assertAlmostEqual(radius_meridian(0.0), 6335439.327, places=2)

    def test_normal_exceeds_meridian_away_from_pole(self) -> None:
        for lat_deg in np.linspace(-89.0, 89.0, 37):
            lat = np.deg2rad(lat_deg)
            self.assertGreater(radius_normal(lat), radius_meridian(lat))

    def test_equal_at_poles(self) -> None:
        for lat in (np.pi / 2, -np.pi / 2):
            self.assertAlmostEqual(
                radius_normal(lat) / radius_meridian(lat), 1.0, places=12
            )

    def test_sphere_has_equal_radii(self) -> None:
        sphere = EarthModel(flattening=0.0)
        self.assertEqual(sphere.radius_normal(0.7), sphere.radius_meridian(0.7))


class TestEarthModel(unittest.TestCase):
    def test_default_rotation_rate(self) -> None:
        self.assertEqual(WGS84.rotation_rate, EARTH_ROTATION_RATE)
        self.assertAlmostEqual(EARTH_ROTATION_RATE, 7.292115e-5)

    def test_simplified_radius_mode(self) -> None:
        Rn, Rm = WGS84.radii(0.6, use_ellipsoid=False)
        self.assertEqual(Rn, WGS84.mean_radius)
        self.assertEqual(Rm, WGS84.mean_radius)

    def test_ellipsoid_radius_mode(self) -> None:
        Rn, Rm = WGS84.radii(0.6)
        self.assertEqual(Rn, radius_normal(0.6))
        self.assertEqual(Rm, radius_meridian(0.6))

    def test_non_rotating_earth_allowed(self) -> None:
        self.assertEqual(EarthModel(rotation_rate=0.0).rotation_rate, 0.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"semi_major_axis": 0.0},
        {"flattening": -0.1},
        {"flattening": 1.0},
        {"rotation_rate": -1e-5},
        {"mean_radius": -1.0},
    ],
)
def test_invalid_parameters_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        EarthModel(**kwargs)
