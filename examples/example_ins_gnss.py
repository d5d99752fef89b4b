"""
Example: Loosely Coupled INS/GNSS with an Error-State Kalman Filter

A truth trajectory is produced by integrating an ideal IMU profile (level
acceleration, cruise, coordinated turn). The filter runs on the same
profile corrupted by white noise and constant biases, and is aided by:

    - GNSS position at 1 Hz
    - GNSS velocity at 1 Hz
    - barometric altitude at 10 Hz
    - magnetic heading at 1 Hz

Usage:
    python examples/example_ins_gnss.py
    python examples/example_ins_gnss.py --ud --duration 300
    python examples/example_ins_gnss.py --free-inertial
"""

import argparse
import time
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from insnav.coords import dcm_ecef_to_ned, ecef_to_llh, llh_to_ecef
from insnav.estimators import UDCovarianceFilter
from insnav.sensors import (
    ErrorStateINS,
    LinearizationConfig,
    StrapdownMechanizer,
    barometric_altitude,
    gnss_position,
    gnss_velocity,
    magnetic_heading,
)

IMU_RATE = 100.0  # Hz

# Consumer-grade MEMS IMU
ACCEL_NOISE = 0.02  # m/s² per sample
GYRO_NOISE = np.deg2rad(0.05)  # rad/s per sample
ACCEL_BIAS = np.array([0.05, -0.03, 0.08])  # m/s²
GYRO_BIAS = np.deg2rad(np.array([0.02, -0.01, 0.03]))  # rad/s


def body_profile(t, speed, dcm_n2b, gravity, omega_in_n):
    """
    Ideal IMU output for the demo trajectory at time t.

    Returns:
        Tuple (accel, gyro) in body frame.
    """
    if t < 20.0:
        a_fwd, yaw_rate = 1.0, 0.0
    elif t < 60.0:
        a_fwd, yaw_rate = 0.0, 0.0
    elif t < 120.0:
        a_fwd, yaw_rate = 0.0, np.deg2rad(3.0)
    else:
        a_fwd, yaw_rate = 0.0, 0.0

    accel = np.array([a_fwd, speed * yaw_rate, 0.0]) + dcm_n2b @ np.array([0.0, 0.0, -gravity])
    gyro = np.array([0.0, 0.0, yaw_rate]) + dcm_n2b @ omega_in_n
    return accel, gyro


def run_ins_gnss(duration, use_ud, free_inertial, rng):
    """
    Simulate truth, IMU, aiding sensors and the filter.

    Returns:
        Dict of time histories.
    """
    dt = 1.0 / IMU_RATE
    lat0, lon0, h0 = np.deg2rad(22.30), np.deg2rad(114.18), 20.0

    truth = StrapdownMechanizer.from_geodetic(lat0, lon0, h0, yaw=np.deg2rad(30.0))
    est = StrapdownMechanizer.from_geodetic(
        lat0 + 2e-6,
        lon0 - 2e-6,
        h0 + 3.0,
        velocity_ned=[0.2, -0.1, 0.0],
        yaw=np.deg2rad(33.0),
        aux=np.zeros(6),
    )

    config = LinearizationConfig(estimate_imu_biases=True, bias_correlation_time=3600.0)
    # Quaternion vector parts are half-angles
    sigma_u = 5.0 / (2.0 * 6.4e6)
    P0 = np.diag(
        [0.1] * 3
        + [sigma_u**2] * 3
        + [9.0]
        + [(np.deg2rad(0.5) / 2) ** 2] * 2
        + [(np.deg2rad(3.0) / 2) ** 2]
        + [0.1**2] * 3
        + [np.deg2rad(0.05) ** 2] * 3
    )
    Q = np.diag(
        [ACCEL_NOISE**2 * IMU_RATE] * 3
        + [GYRO_NOISE**2 * IMU_RATE] * 3
        + [1e-6]
        + [1e-8] * 3
        + [1e-12] * 3
    )
    covariance_filter = UDCovarianceFilter(16, 13) if use_ud else None
    ins = ErrorStateINS(est, config, covariance_filter=covariance_filter, P0=P0, Q=Q)

    n = int(duration * IMU_RATE)
    history = {key: np.zeros((n, 3)) for key in ("pos_err", "vel_err", "att_err", "accel_bias")}
    history["t"] = np.arange(1, n + 1) * dt

    speed = 0.0
    for k in range(n):
        t = k * dt
        accel, gyro = body_profile(t, speed, truth.dcm_n2b, truth.gravity, truth.omega_in_n)
        truth.propagate(accel, gyro, dt)
        speed = np.linalg.norm(truth.velocity_ned[0:2])

        accel_meas = accel + ACCEL_BIAS + ACCEL_NOISE * rng.standard_normal(3)
        gyro_meas = gyro + GYRO_BIAS + GYRO_NOISE * rng.standard_normal(3)
        ins.update(accel_meas, gyro_meas, dt)

        if not free_inertial:
            if k % 10 == 9:
                m = barometric_altitude(
                    est, truth.state.height + 0.5 * rng.standard_normal(), 0.5, state_dim=16
                )
                ins.correct_measurement(m)
            if k % int(IMU_RATE) == int(IMU_RATE) - 1:
                llh = truth.llh()
                noise_ned = np.array([2.0, 2.0, 4.0]) * rng.standard_normal(3)
                # Perturb the fix in ECEF and convert back to geodetic
                C_e2ned = dcm_ecef_to_ned(llh[0], llh[1])
                llh_meas = ecef_to_llh(*(llh_to_ecef(*llh) + C_e2ned.T @ noise_ned))
                ins.correct_measurement(
                    gnss_position(est, llh_meas, [2.0, 2.0, 4.0], state_dim=16)
                )
                v_meas = truth.velocity_ned + 0.1 * rng.standard_normal(3)
                ins.correct_measurement(gnss_velocity(est, v_meas, 0.1, state_dim=16))
                heading_meas = truth.heading + np.deg2rad(2.0) * rng.standard_normal()
                ins.correct_measurement(
                    magnetic_heading(est, heading_meas, np.deg2rad(2.0), state_dim=16)
                )

        r_err = llh_to_ecef(*est.llh()) - llh_to_ecef(*truth.llh())
        history["pos_err"][k] = dcm_ecef_to_ned(truth.latitude, truth.longitude) @ r_err
        history["vel_err"][k] = est.velocity_ned - truth.velocity_ned
        att_err = est.euler_angles() - truth.euler_angles()
        history["att_err"][k] = np.rad2deg(np.arctan2(np.sin(att_err), np.cos(att_err)))
        history["accel_bias"][k] = est.state.accel_bias

    return history


def plot_results(history, figs_dir):
    """Plot navigation errors and the accelerometer-bias estimate."""
    figs_dir.mkdir(parents=True, exist_ok=True)
    t = history["t"]
    labels = ["North", "East", "Down"]

    fig1, axes = plt.subplots(3, 1, figsize=(12, 9), sharex=True)
    for i, ax in enumerate(axes):
        ax.plot(t, history["pos_err"][:, i], label=f"{labels[i]} position error")
        ax.set_ylabel("[m]")
        ax.grid(True, alpha=0.3)
        ax.legend(loc="upper right")
    axes[-1].set_xlabel("Time [s]")
    plt.tight_layout()
    fig1.savefig(figs_dir / "ins_gnss_position_error.svg", dpi=300, bbox_inches="tight")
    print(f"  [OK] Saved: {figs_dir / 'ins_gnss_position_error.svg'}")

    fig2, ax2 = plt.subplots(figsize=(12, 5))
    for i, axis in enumerate("XYZ"):
        ax2.plot(t, history["accel_bias"][:, i], label=f"Estimated {axis}")
        ax2.axhline(ACCEL_BIAS[i], linestyle="--", color=f"C{i}", alpha=0.6)
    ax2.set_xlabel("Time [s]")
    ax2.set_ylabel("Accelerometer bias [m/s²]")
    ax2.grid(True, alpha=0.3)
    ax2.legend()
    plt.tight_layout()
    fig2.savefig(figs_dir / "ins_gnss_accel_bias.svg", dpi=300, bbox_inches="tight")
    print(f"  [OK] Saved: {figs_dir / 'ins_gnss_accel_bias.svg'}")

    plt.close("all")


def main():
    """Main entry point for the INS/GNSS demo."""
    parser = argparse.ArgumentParser(description="Error-state INS/GNSS demo")
    parser.add_argument("--duration", type=float, default=180.0, help="Duration [s]")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--ud", action="store_true", help="Use the UD-factorized filter")
    parser.add_argument(
        "--free-inertial", action="store_true", help="Disable all aiding measurements"
    )
    parser.add_argument("--no-plot", action="store_true", help="Skip figure generation")
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)

    print("\n" + "=" * 60)
    print("Error-State INS/GNSS Integration")
    print("=" * 60)
    print(f"  Duration:        {args.duration} s")
    print(f"  IMU Rate:        {IMU_RATE:.0f} Hz")
    print(f"  Filter:          {'UD-factorized' if args.ud else 'conventional'}")
    print(f"  Aiding:          {'none' if args.free_inertial else 'GNSS pos/vel, baro, heading'}\n")

    start = time.time()
    history = run_ins_gnss(args.duration, args.ud, args.free_inertial, rng)
    elapsed = time.time() - start
    print(f"  Computation time: {elapsed:.2f} s")

    pos_rms = np.sqrt(np.mean(history["pos_err"] ** 2, axis=0))
    vel_rms = np.sqrt(np.mean(history["vel_err"] ** 2, axis=0))
    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)
    print(f"  Position RMS (N/E/D):  {pos_rms[0]:.2f} / {pos_rms[1]:.2f} / {pos_rms[2]:.2f} m")
    print(f"  Velocity RMS (N/E/D):  {vel_rms[0]:.3f} / {vel_rms[1]:.3f} / {vel_rms[2]:.3f} m/s")
    print(f"  Final heading error:   {history['att_err'][-1, 2]:.2f} deg")
    print(f"  Final accel bias:      {history['accel_bias'][-1]} (true {ACCEL_BIAS})")

    if not args.no_plot:
        print("\nGenerating plots...")
        plot_results(history, Path(__file__).parent / "figs")
    print()


if __name__ == "__main__":
    main()
