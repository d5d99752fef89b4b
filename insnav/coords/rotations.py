"""Quaternion and direction-cosine primitives for strapdown navigation.

Conventions:
- Quaternions are scalar-first, q = [qw, qx, qy, qz], Hamilton product.
- A frame quaternion q_a2b rotates frame a onto frame b. Its active rotation
  matrix ``quat_to_rotation_matrix(q_a2b)`` equals C_b^a (maps b-frame
  components into a-frame components) and ``quat_to_dcm(q_a2b)`` equals
  C_a^b, the "a-to-b" direction cosine matrix.
- Euler angles: [roll, pitch, yaw] in radians, ZYX (3-2-1) sequence.
- Small attitude errors are carried as the vector part of a quaternion,
  i.e. half the rotation angle.
"""

import numpy as np
from numpy.typing import NDArray


def skew_symmetric(v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return the cross-product matrix [v×] such that [v×] @ w == v × w.

    Args:
        v: 3-element vector.

    Returns:
        3x3 skew-symmetric matrix.

    Raises:
        ValueError: If v is not a 3-element vector.
    """
    v = np.asarray(v)
    if v.shape != (3,):
        raise ValueError(f"Expected 3-element vector, got shape {v.shape}")

    return np.array(
        [
            [0.0, -v[2], v[1]],
            [v[2], 0.0, -v[0]],
            [-v[1], v[0], 0.0],
        ],
        dtype=v.dtype if np.issubdtype(v.dtype, np.floating) else np.float64,
    )


def euler_to_rotation_matrix(
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """Convert Euler angles to the body-to-navigation rotation matrix.

    Args:
        roll: Roll angle in radians (rotation about x-axis).
        pitch: Pitch angle in radians (rotation about y-axis).
        yaw: Yaw angle in radians (rotation about z-axis).

    Returns:
        3x3 rotation matrix R such that v_nav = R @ v_body.

    Example:
        >>> R = euler_to_rotation_matrix(0.1, 0.2, 0.3)
        >>> float(np.linalg.det(R))  # doctest: +ELLIPSIS
        1.0...
    """
    cr, sr = np.cos(roll), np.sin(roll)
    cp, sp = np.cos(pitch), np.sin(pitch)
    cy, sy = np.cos(yaw), np.sin(yaw)

    return np.array(
        [
            [cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr],
            [sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr],
            [-sp, cp * sr, cp * cr],
        ],
        dtype=np.float64,
    )


def euler_to_quat(
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """Convert Euler angles to the navigation-to-body frame quaternion.

    The returned quaternion q satisfies
    ``quat_to_rotation_matrix(q) == euler_to_rotation_matrix(roll, pitch, yaw)``.

    Args:
        roll: Roll angle in radians.
        pitch: Pitch angle in radians.
        yaw: Yaw angle in radians.

    Returns:
        Unit quaternion [qw, qx, qy, qz].
    """
    cr, sr = np.cos(roll / 2.0), np.sin(roll / 2.0)
    cp, sp = np.cos(pitch / 2.0), np.sin(pitch / 2.0)
    cy, sy = np.cos(yaw / 2.0), np.sin(yaw / 2.0)

    qw = cr * cp * cy + sr * sp * sy
    qx = sr * cp * cy - cr * sp * sy
    qy = cr * sp * cy + sr * cp * sy
    qz = cr * cp * sy - sr * sp * cy

    return np.array([qw, qx, qy, qz], dtype=np.float64)


def quat_to_euler(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a navigation-to-body quaternion to [roll, pitch, yaw].

    Raises:
        ValueError: If q is not a 4-element array.
    """
    q = np.asarray(q)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    qw, qx, qy, qz = q

    roll = np.arctan2(2.0 * (qw * qx + qy * qz), 1.0 - 2.0 * (qx * qx + qy * qy))
    sin_pitch = np.clip(2.0 * (qw * qy - qz * qx), -1.0, 1.0)
    pitch = np.arcsin(sin_pitch)
    yaw = np.arctan2(2.0 * (qw * qz + qx * qy), 1.0 - 2.0 * (qy * qy + qz * qz))

    return np.array([roll, pitch, yaw], dtype=np.float64)


def quat_to_rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a quaternion to its active rotation matrix.

    For a frame quaternion q_a2b the result is C_b^a.

    Args:
        q: Quaternion [qw, qx, qy, qz]. Assumed unit norm.

    Returns:
        3x3 rotation matrix with the same dtype as q (float64 for integer input).

    Raises:
        ValueError: If q is not a 4-element array.
    """
    q = np.asarray(q)
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")

    dtype = q.dtype if np.issubdtype(q.dtype, np.floating) else np.float64
    qw, qx, qy, qz = q

    return np.array(
        [
            [
                1.0 - 2.0 * (qy * qy + qz * qz),
                2.0 * (qx * qy - qw * qz),
                2.0 * (qx * qz + qw * qy),
            ],
            [
                2.0 * (qx * qy + qw * qz),
                1.0 - 2.0 * (qx * qx + qz * qz),
                2.0 * (qy * qz - qw * qx),
            ],
            [
                2.0 * (qx * qz - qw * qy),
                2.0 * (qy * qz + qw * qx),
                1.0 - 2.0 * (qx * qx + qy * qy),
            ],
        ],
        dtype=dtype,
    )


def quat_to_dcm(q_a2b: NDArray[np.float64]) -> NDArray[np.float64]:
    """Direction cosine matrix C_a^b for the frame quaternion q_a2b.

    Maps a-frame components into b-frame components: v_b = C_a^b @ v_a.
    """
    return quat_to_rotation_matrix(q_a2b).T


def rotation_matrix_to_quat(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a rotation matrix to a unit quaternion (Shepperd's method).

    Args:
        R: 3x3 rotation matrix.

    Returns:
        Unit quaternion [qw, qx, qy, qz] such that
        ``quat_to_rotation_matrix(q) == R``.

    Raises:
        ValueError: If R is not a 3x3 matrix.
    """
    R = np.asarray(R)
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")

    trace = np.trace(R)

    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        qw = 0.25 / s
        qx = (R[2, 1] - R[1, 2]) * s
        qy = (R[0, 2] - R[2, 0]) * s
        qz = (R[1, 0] - R[0, 1]) * s
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        qw = (R[2, 1] - R[1, 2]) / s
        qx = 0.25 * s
        qy = (R[0, 1] + R[1, 0]) / s
        qz = (R[0, 2] + R[2, 0]) / s
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        qw = (R[0, 2] - R[2, 0]) / s
        qx = (R[0, 1] + R[1, 0]) / s
        qy = 0.25 * s
        qz = (R[1, 2] + R[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        qw = (R[1, 0] - R[0, 1]) / s
        qx = (R[0, 2] + R[2, 0]) / s
        qy = (R[1, 2] + R[2, 1]) / s
        qz = 0.25 * s

    q = np.array([qw, qx, qy, qz], dtype=np.float64)
    # Keep the scalar part non-negative so equal rotations compare equal
    if q[0] < 0.0:
        q = -q
    return q / np.linalg.norm(q)


def quat_multiply(p: NDArray[np.float64], q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Hamilton product p ⊗ q.

    Raises:
        ValueError: If either operand is not a 4-element array.
    """
    p = np.asarray(p)
    q = np.asarray(q)
    if p.shape != (4,) or q.shape != (4,):
        raise ValueError(
            f"Expected 4-element quaternions, got shapes {p.shape} and {q.shape}"
        )

    pw, px, py, pz = p
    qw, qx, qy, qz = q
    return np.array(
        [
            pw * qw - px * qx - py * qy - pz * qz,
            pw * qx + px * qw + py * qz - pz * qy,
            pw * qy - px * qz + py * qw + pz * qx,
            pw * qz + px * qy - py * qx + pz * qw,
        ],
        dtype=np.result_type(p, q, np.float32),
    )


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Return q scaled to unit norm.

    Raises:
        ValueError: If q has (near) zero norm.
    """
    q = np.asarray(q)
    norm = np.linalg.norm(q)
    if norm < 1e-12:
        raise ValueError("Cannot normalize a zero-norm quaternion")
    return q / norm


def quat_from_rotvec(theta: NDArray[np.float64]) -> NDArray[np.float64]:
    """Quaternion of a rotation vector (exponential map).

    Args:
        theta: Rotation vector in radians; its norm is the rotation angle.

    Returns:
        Unit quaternion [cos(|θ|/2), sin(|θ|/2) θ/|θ|].
    """
    theta = np.asarray(theta)
    if theta.shape != (3,):
        raise ValueError(f"Expected 3-element rotation vector, got shape {theta.shape}")

    dtype = theta.dtype if np.issubdtype(theta.dtype, np.floating) else np.float64
    angle = np.linalg.norm(theta)
    if angle < 1e-10:
        # Second-order series; exact to machine precision at this magnitude
        half = 0.5 * theta
        return quat_normalize(np.array([1.0 - 0.5 * float(half @ half), *half], dtype=dtype))

    half_angle = 0.5 * angle
    axis = theta / angle
    return np.array([np.cos(half_angle), *(np.sin(half_angle) * axis)], dtype=dtype)


def error_quaternion(delta: NDArray[np.float64]) -> NDArray[np.float64]:
    """First-order correction quaternion [1, -δ] for an estimated error δ.

    δ is the vector part of the small-angle error quaternion
    (half the rotation angle). The result is not normalized.
    """
    delta = np.asarray(delta)
    if delta.shape != (3,):
        raise ValueError(f"Expected 3-element error vector, got shape {delta.shape}")
    return np.array([1.0, -delta[0], -delta[1], -delta[2]], dtype=delta.dtype)
