"""
Navigation state containers, vector layouts and engine configuration.

Two layouts are used throughout insnav:

Nominal (full) navigation vector, as held by the mechanizer::

    index   0-2    velocity in navigation frame (m/s, z down)
            3-6    q_e2n  earth-to-navigation quaternion [qw, qx, qy, qz]
            7      height above ellipsoid (m, up positive)
            8-11   q_n2b  navigation-to-body quaternion [qw, qx, qy, qz]
            12-    auxiliary states (e.g. IMU biases)

Error-state vector, as estimated by the filter::

    index   0-2    velocity error
            3-5    earth-to-navigation attitude error (quaternion vector part)
            6      height error
            7-9    navigation-to-body attitude error (quaternion vector part)
            10-    auxiliary state errors

Each quaternion occupies one more slot in the nominal vector than its error
does, so error index i corresponds to nominal index i (i <= 2), i + 1
(3 <= i <= 6) or i + 2 (i >= 7). Vector part k of a quaternion error maps
onto component k + 1 of the quaternion.

Errors are defined as estimate minus truth; attitude errors are left
perturbations, q_estimate = [1, δ] ⊗ q_truth.
"""

import warnings
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

# Nominal vector layout
NOMINAL_VELOCITY = slice(0, 3)
NOMINAL_Q_E2N = slice(3, 7)
NOMINAL_HEIGHT = 7
NOMINAL_Q_N2B = slice(8, 12)
NOMINAL_AUX_START = 12
NOMINAL_CORE_DIM = 12

# Error-state layout
ERROR_VELOCITY = slice(0, 3)
ERROR_E2N = slice(3, 6)
ERROR_HEIGHT = 6
ERROR_N2B = slice(7, 10)
ERROR_AUX_START = 10
ERROR_CORE_DIM = 10

# Process-input layout (columns of B)
INPUT_ACCEL = slice(0, 3)
INPUT_GYRO = slice(3, 6)
INPUT_GRAVITY = 6
INPUT_CORE_DIM = 7

# Auxiliary block layout when IMU biases are carried
AUX_ACCEL_BIAS = slice(0, 3)
AUX_GYRO_BIAS = slice(3, 6)
IMU_BIAS_DIM = 6


def nominal_index(error_index: int) -> int:
    """
    Map an error-state index onto the nominal-vector index it corrects.

    Example:
        >>> [nominal_index(i) for i in (0, 3, 6, 7, 10)]
        [0, 4, 7, 9, 12]
    """
    if error_index < 0:
        raise ValueError(f"error_index must be non-negative, got {error_index}")
    if error_index < 3:
        return error_index
    if error_index < 7:
        return error_index + 1
    return error_index + 2


def _as_vector(name: str, value, size: Optional[int]) -> np.ndarray:
    arr = np.asarray(value, dtype=np.float64)
    if arr.ndim != 1 or (size is not None and arr.shape[0] != size):
        expected = f"({size},)" if size is not None else "(n,)"
        raise ValueError(f"NavState.{name} must have shape {expected}, got {arr.shape}")
    return arr.copy()


@dataclass
class NavState:
    """
    Nominal navigation state held by a mechanizer.

    Attributes:
        velocity: Earth-relative velocity in the navigation frame, shape (3,),
                  m/s. Index 2 is the down component.
        q_e2n: Earth-to-navigation quaternion, shape (4,). Encodes latitude,
               longitude and wander angle.
        height: Ellipsoidal height in meters, positive up.
        q_n2b: Navigation-to-body quaternion, shape (4,).
        aux: Auxiliary states appended after the core 12 entries, shape (n,).
             When IMU biases are carried, aux[0:3] is the accelerometer bias
             (m/s²) and aux[3:6] the gyroscope bias (rad/s).

    Notes:
        - This is a MUTABLE dataclass so the mechanizer and error injection
          can update it in place.
        - Quaternions that are not unit norm trigger a UserWarning at
          construction.

    Example:
        >>> state = NavState(
        ...     velocity=np.zeros(3),
        ...     q_e2n=np.array([1.0, 0.0, 0.0, 0.0]),
        ...     height=10.0,
        ...     q_n2b=np.array([1.0, 0.0, 0.0, 0.0]),
        ... )
        >>> state.to_vector().shape
        (12,)
    """

    velocity: np.ndarray
    q_e2n: np.ndarray
    height: float
    q_n2b: np.ndarray
    aux: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self) -> None:
        self.velocity = _as_vector("velocity", self.velocity, 3)
        self.q_e2n = _as_vector("q_e2n", self.q_e2n, 4)
        self.q_n2b = _as_vector("q_n2b", self.q_n2b, 4)
        self.aux = _as_vector("aux", self.aux, None)
        self.height = float(self.height)

        for name in ("q_e2n", "q_n2b"):
            q_norm = np.linalg.norm(getattr(self, name))
            if not np.isclose(q_norm, 1.0, atol=1e-3):
                warnings.warn(
                    f"NavState initialized with non-unit {name} "
                    f"(||q|| = {q_norm:.6f}). Consider normalizing.",
                    UserWarning,
                )

    @property
    def aux_dim(self) -> int:
        return int(self.aux.shape[0])

    @property
    def accel_bias(self) -> np.ndarray:
        """Accelerometer bias (zeros when biases are not carried)."""
        if self.aux_dim < IMU_BIAS_DIM:
            return np.zeros(3)
        return self.aux[AUX_ACCEL_BIAS]

    @property
    def gyro_bias(self) -> np.ndarray:
        """Gyroscope bias (zeros when biases are not carried)."""
        if self.aux_dim < IMU_BIAS_DIM:
            return np.zeros(3)
        return self.aux[AUX_GYRO_BIAS]

    def to_vector(self) -> np.ndarray:
        """Pack into the contiguous nominal vector."""
        return np.concatenate(
            [self.velocity, self.q_e2n, [self.height], self.q_n2b, self.aux]
        )

    @classmethod
    def from_vector(cls, x: np.ndarray) -> "NavState":
        """Unpack a nominal vector of length 12 + n_aux."""
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] < NOMINAL_CORE_DIM:
            raise ValueError(
                f"Nominal vector must be 1-D with at least {NOMINAL_CORE_DIM} "
                f"entries, got shape {x.shape}"
            )
        return cls(
            velocity=x[NOMINAL_VELOCITY],
            q_e2n=x[NOMINAL_Q_E2N],
            height=x[NOMINAL_HEIGHT],
            q_n2b=x[NOMINAL_Q_N2B],
            aux=x[NOMINAL_AUX_START:],
        )

    def copy(self) -> "NavState":
        return NavState.from_vector(self.to_vector())


_SUPPORTED_DTYPES = (np.float32, np.float64)


@dataclass(frozen=True)
class LinearizationConfig:
    """
    Construction-time policy for the error-state linearization.

    Attributes:
        use_ellipsoid_radii: Use latitude-dependent normal/meridian radii.
                             If False a single mean Earth radius is used for
                             both (simplified mode). Must match the
                             mechanizer's radius mode.
        include_centripetal: Add the sensitivity of the centripetal
                             acceleration to horizontal-position and height
                             errors. Only for a mechanizer that applies
                             gravitation and centripetal acceleration
                             separately; normal gravity already contains it.
        estimate_imu_biases: Append accelerometer and gyroscope bias errors
                             (6 auxiliary states) to the error state.
        bias_correlation_time: First-order Gauss-Markov correlation time of
                               the biases in seconds. None models the
                               biases as random walks.
        dtype: Floating-point type of every matrix produced.

    Example:
        >>> cfg = LinearizationConfig(estimate_imu_biases=True)
        >>> cfg.state_dim, cfg.input_dim
        (16, 13)
    """

    use_ellipsoid_radii: bool = True
    include_centripetal: bool = False
    estimate_imu_biases: bool = False
    bias_correlation_time: Optional[float] = None
    dtype: type = np.float64

    def __post_init__(self) -> None:
        if np.dtype(self.dtype).type not in _SUPPORTED_DTYPES:
            raise TypeError(
                f"dtype must be numpy.float32 or numpy.float64, got {self.dtype}"
            )
        if self.bias_correlation_time is not None and self.bias_correlation_time <= 0.0:
            raise ValueError(
                f"bias_correlation_time must be positive, got {self.bias_correlation_time}"
            )

    @property
    def aux_dim(self) -> int:
        return IMU_BIAS_DIM if self.estimate_imu_biases else 0

    @property
    def state_dim(self) -> int:
        return ERROR_CORE_DIM + self.aux_dim

    @property
    def input_dim(self) -> int:
        return INPUT_CORE_DIM + self.aux_dim
