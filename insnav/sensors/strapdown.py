"""
Wander-azimuth strapdown mechanization on the rotating ellipsoid.

The mechanizer owns the nominal navigation state (see ``NavState``) and
integrates IMU samples into it:

    v̇      = C_b^n f - (2 ω_ie^n + ω_en^n) × v + [0, 0, g]
    q̇_e2n  = ½ q_e2n ⊗ ω_en^n
    ḣ      = -v_down
    q̇_n2b  = ½ (q_n2b ⊗ ω_ib^b - ω_in^n ⊗ q_n2b)

with
    ω_ie^n = Ω · C_e^n[:, 2]
    ω_en^n = [v_y / (Rn + h), -v_x / (Rm + h), 0]
    ω_in^n = ω_ie^n + ω_en^n

The vertical transport rate is identically zero (wander-azimuth frame), so
the mechanization has no tan(latitude) singularity at the poles.

Quantities derived from the state (DCMs, latitude, radii, rates, gravity)
are cached and refreshed by ``recompute_derived()``. Anything that edits
the state directly (for example error injection) must call it afterwards.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

from insnav.coords.geodesy import WGS84, EarthModel
from insnav.coords.rotations import (
    euler_to_quat,
    quat_from_rotvec,
    quat_multiply,
    quat_normalize,
    quat_to_dcm,
    quat_to_euler,
)
from insnav.coords.transforms import (
    llh_from_dcm_e2n,
    llh_to_ecef,
    quat_e2n_from_llh,
    wander_rotation,
)
from insnav.sensors.gravity import gravity_at_height
from insnav.sensors.types import NavState


def _as_triplet(name: str, value) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {arr.shape}")
    return arr


class Mechanizer(ABC):
    """
    Capability interface an error-state estimator needs from a mechanizer.

    Implementations integrate IMU samples into a nominal ``NavState`` and
    expose the derived quantities the linearization reads. The state object
    is mutable; after editing it, callers invoke ``recompute_derived()``.
    """

    @property
    @abstractmethod
    def state(self) -> NavState:
        """Mutable nominal navigation state."""

    @property
    @abstractmethod
    def earth(self) -> EarthModel:
        """Earth model used by the mechanization."""

    @property
    @abstractmethod
    def use_ellipsoid_radii(self) -> bool:
        """True for latitude-dependent radii, False for the mean radius."""

    @property
    @abstractmethod
    def dcm_e2n(self) -> np.ndarray:
        """C_e^n for the current state."""

    @property
    @abstractmethod
    def dcm_n2b(self) -> np.ndarray:
        """C_n^b for the current state."""

    @abstractmethod
    def propagate(self, accel: np.ndarray, gyro: np.ndarray, dt: float) -> None:
        """Advance the nominal state by one IMU sample."""

    @abstractmethod
    def recompute_derived(self) -> None:
        """Refresh every cached quantity derived from the state."""


class StrapdownMechanizer(Mechanizer):
    """
    Reference strapdown mechanization in a wander-azimuth navigation frame.

    Attributes:
        use_ellipsoid_radii: If False both curvature radii are the Earth
                             model's mean radius.

    Example:
        >>> mech = StrapdownMechanizer.from_geodetic(
        ...     np.deg2rad(35.0), np.deg2rad(139.0), 50.0)
        >>> g = mech.gravity
        >>> mech.propagate([0.0, 0.0, -g], mech.dcm_n2b @ mech.omega_ie_n, 0.01)
        >>> bool(np.allclose(mech.state.velocity, 0.0, atol=1e-9))
        True
    """

    def __init__(
        self,
        state: NavState,
        earth: EarthModel = WGS84,
        use_ellipsoid_radii: bool = True,
    ):
        self._state = state
        self._earth = earth
        self._use_ellipsoid_radii = use_ellipsoid_radii
        self.recompute_derived()

    @classmethod
    def from_geodetic(
        cls,
        lat: float,
        lon: float,
        height: float,
        velocity_ned: Optional[Sequence[float]] = None,
        roll: float = 0.0,
        pitch: float = 0.0,
        yaw: float = 0.0,
        wander: float = 0.0,
        aux: Optional[Sequence[float]] = None,
        earth: EarthModel = WGS84,
        use_ellipsoid_radii: bool = True,
    ) -> "StrapdownMechanizer":
        """
        Build a mechanizer from geodetic position, NED velocity and attitude.

        Args:
            lat: Geodetic latitude (rad).
            lon: Longitude (rad).
            height: Ellipsoidal height (m, up positive).
            velocity_ned: Velocity [north, east, down] in m/s. Default zero.
            roll: Roll (rad).
            pitch: Pitch (rad).
            yaw: True heading from north (rad).
            wander: Initial wander angle of the navigation frame (rad).
            aux: Auxiliary states (e.g. 6 IMU biases). Default empty.
            earth: Earth model.
            use_ellipsoid_radii: Radius mode (see class docstring).

        Returns:
            Initialized mechanizer.
        """
        if velocity_ned is None:
            velocity_ned = np.zeros(3)
        velocity_n = wander_rotation(wander) @ _as_triplet("velocity_ned", velocity_ned)
        state = NavState(
            velocity=velocity_n,
            q_e2n=quat_e2n_from_llh(lat, lon, wander),
            height=height,
            q_n2b=euler_to_quat(roll, pitch, yaw - wander),
            aux=np.zeros(0) if aux is None else aux,
        )
        return cls(state, earth=earth, use_ellipsoid_radii=use_ellipsoid_radii)

    # ------------------------------------------------------------------
    # Mechanizer interface
    # ------------------------------------------------------------------
    @property
    def state(self) -> NavState:
        return self._state

    @property
    def earth(self) -> EarthModel:
        return self._earth

    @property
    def use_ellipsoid_radii(self) -> bool:
        return self._use_ellipsoid_radii

    @property
    def dcm_e2n(self) -> np.ndarray:
        return self._dcm_e2n

    @property
    def dcm_n2b(self) -> np.ndarray:
        return self._dcm_n2b

    def recompute_derived(self) -> None:
        s = self._state
        s.q_e2n = quat_normalize(s.q_e2n)
        s.q_n2b = quat_normalize(s.q_n2b)

        self._dcm_e2n = quat_to_dcm(s.q_e2n)
        self._dcm_n2b = quat_to_dcm(s.q_n2b)
        self._lat, self._lon, self._wander = llh_from_dcm_e2n(self._dcm_e2n)
        self._radii = self._earth.radii(self._lat, self.use_ellipsoid_radii)

        Rn, Rm = self._radii
        h = s.height
        v = s.velocity
        self._omega_ie_n = self._earth.rotation_rate * self._dcm_e2n[:, 2]
        self._omega_en_n = np.array([v[1] / (Rn + h), -v[0] / (Rm + h), 0.0])
        self._gravity = gravity_at_height(self._lat, h)

    def propagate(self, accel: np.ndarray, gyro: np.ndarray, dt: float) -> None:
        """
        Integrate one IMU sample.

        Derived quantities from the start of the interval drive the update
        (first-order integration); quaternions are advanced with the exact
        rotation-vector exponential and renormalized.

        Args:
            accel: Specific force in body frame (m/s²), shape (3,).
            gyro: Angular rate ω_ib^b in body frame (rad/s), shape (3,).
            dt: Time step (s), must be positive.

        Raises:
            ValueError: If shapes are wrong or dt is not positive.
        """
        accel = _as_triplet("accel", accel)
        gyro = _as_triplet("gyro", gyro)
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        s = self._state
        f_b = accel - s.accel_bias
        omega_ib = gyro - s.gyro_bias

        f_n = self._dcm_n2b.T @ f_b
        coriolis = np.cross(2.0 * self._omega_ie_n + self._omega_en_n, s.velocity)
        g_n = np.array([0.0, 0.0, self._gravity])

        v_old = s.velocity
        v_new = v_old + (f_n - coriolis + g_n) * dt

        s.q_e2n = quat_multiply(s.q_e2n, quat_from_rotvec(self._omega_en_n * dt))
        s.height = s.height - 0.5 * (v_old[2] + v_new[2]) * dt

        omega_in = self._omega_ie_n + self._omega_en_n
        s.q_n2b = quat_multiply(
            quat_multiply(quat_from_rotvec(-omega_in * dt), s.q_n2b),
            quat_from_rotvec(omega_ib * dt),
        )
        s.velocity = v_new

        self.recompute_derived()

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------
    @property
    def latitude(self) -> float:
        return self._lat

    @property
    def longitude(self) -> float:
        return self._lon

    @property
    def wander_angle(self) -> float:
        return self._wander

    @property
    def radii(self) -> Tuple[float, float]:
        """(R_normal, R_meridian) at the current latitude."""
        return self._radii

    @property
    def omega_ie_n(self) -> np.ndarray:
        return self._omega_ie_n

    @property
    def omega_en_n(self) -> np.ndarray:
        return self._omega_en_n

    @property
    def omega_in_n(self) -> np.ndarray:
        return self._omega_ie_n + self._omega_en_n

    @property
    def gravity(self) -> float:
        return self._gravity

    @property
    def velocity_ned(self) -> np.ndarray:
        return wander_rotation(self._wander).T @ self._state.velocity

    @property
    def heading(self) -> float:
        """True heading of the body x-axis from north (rad)."""
        yaw_nav = np.arctan2(self._dcm_n2b[0, 1], self._dcm_n2b[0, 0])
        return float(np.arctan2(np.sin(yaw_nav + self._wander), np.cos(yaw_nav + self._wander)))

    def euler_angles(self) -> np.ndarray:
        """[roll, pitch, true heading] in radians."""
        roll, pitch, _ = quat_to_euler(self._state.q_n2b)
        return np.array([roll, pitch, self.heading])

    def llh(self) -> np.ndarray:
        """[latitude, longitude, height]."""
        return np.array([self._lat, self._lon, self._state.height])

    def ecef_position(self) -> np.ndarray:
        return llh_to_ecef(self._lat, self._lon, self._state.height)
