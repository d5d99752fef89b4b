"""Earth model: curvature radii and rotation rate.

Provides the geodetic quantities the strapdown mechanization and the
error-state linearization need:

    - radius_normal(φ)   = a / sqrt(1 - e² sin²φ)          (prime vertical, east-west)
    - radius_meridian(φ) = a (1 - e²) / (1 - e² sin²φ)^1.5  (north-south)
    - rotation_rate      = Ω, Earth's sidereal angular rate

The normal radius is never smaller than the meridian radius; they are
equal at the poles.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from insnav.coords.transforms import WGS84_A, WGS84_F

EARTH_ROTATION_RATE = 7.292115e-5  # rad/s (WGS84)
MEAN_EARTH_RADIUS = 6371008.8  # m (IUGG arithmetic mean radius)


@dataclass(frozen=True)
class EarthModel:
    """
    Reference ellipsoid and rotation parameters.

    Attributes:
        semi_major_axis: Equatorial radius a in meters.
        flattening: Ellipsoid flattening f (0 gives a sphere).
        rotation_rate: Earth rotation rate Ω in rad/s. Setting it to zero
                       removes every Earth-rate term from the mechanization
                       and the error model.
        mean_radius: Single radius used when the simplified (spherical)
                     radius mode is selected.

    Example:
        >>> earth = EarthModel()
        >>> earth.radius_normal(0.0) > earth.radius_meridian(0.0)
        True
        >>> no_spin = EarthModel(rotation_rate=0.0)
    """

    semi_major_axis: float = WGS84_A
    flattening: float = WGS84_F
    rotation_rate: float = EARTH_ROTATION_RATE
    mean_radius: float = MEAN_EARTH_RADIUS

    def __post_init__(self) -> None:
        if self.semi_major_axis <= 0.0:
            raise ValueError(f"semi_major_axis must be positive, got {self.semi_major_axis}")
        if not 0.0 <= self.flattening < 1.0:
            raise ValueError(f"flattening must be in [0, 1), got {self.flattening}")
        if self.rotation_rate < 0.0:
            raise ValueError(f"rotation_rate must be non-negative, got {self.rotation_rate}")
        if self.mean_radius <= 0.0:
            raise ValueError(f"mean_radius must be positive, got {self.mean_radius}")

    @property
    def eccentricity_sq(self) -> float:
        """First eccentricity squared e² = f (2 - f)."""
        return self.flattening * (2.0 - self.flattening)

    def radius_normal(self, lat: float) -> float:
        """Prime-vertical radius of curvature at geodetic latitude ``lat`` (rad)."""
        s = np.sin(lat)
        return float(self.semi_major_axis / np.sqrt(1.0 - self.eccentricity_sq * s * s))

    def radius_meridian(self, lat: float) -> float:
        """Meridian radius of curvature at geodetic latitude ``lat`` (rad)."""
        s = np.sin(lat)
        e2 = self.eccentricity_sq
        return float(self.semi_major_axis * (1.0 - e2) / (1.0 - e2 * s * s) ** 1.5)

    def radii(self, lat: float, use_ellipsoid: bool = True) -> Tuple[float, float]:
        """
        Return (R_normal, R_meridian) for the chosen radius mode.

        Args:
            lat: Geodetic latitude in radians.
            use_ellipsoid: If False, both radii are ``mean_radius``.

        Returns:
            Tuple (Rn, Rm) in meters.
        """
        if not use_ellipsoid:
            return self.mean_radius, self.mean_radius
        return self.radius_normal(lat), self.radius_meridian(lat)


WGS84 = EarthModel()


def radius_normal(lat: float) -> float:
    """WGS84 prime-vertical radius of curvature."""
    return WGS84.radius_normal(lat)


def radius_meridian(lat: float) -> float:
    """WGS84 meridian radius of curvature."""
    return WGS84.radius_meridian(lat)
