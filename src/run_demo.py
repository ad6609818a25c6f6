from __future__ import annotations

"""Command line demo for the roller-coaster ride simulation.

Running ``python -m src.run_demo`` loads a list of control points, can
splice a loop into the track and then rides it tick by tick, exactly as
the interactive editor would.  Results are written to time-stamped files
under the ``outputs`` directory.

Two files are produced for each run, plus an optional figure:

``ride.csv``
    One row per tick with time, progress, phase, speed, track height and
    the camera pose.
``summary.json``
    Ride time, whether the ride completed, lap count, peak speed and the
    lift release parameter.
``ride.png``
    Plan view, elevation and speed plots (``--plot`` only).
"""

from pathlib import Path
from datetime import datetime
import argparse
import json
import logging
import time

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

try:  # pragma: no cover - import shim
    from . import scale
    from .coaster_session import CoasterSession
    from .io_utils import read_ride_params_csv, read_track_points_csv, write_csv
    from .plots import plot_elevation_profile, plot_plan_view, plot_speed_profile
    from .ride_camera import CameraParams
    from .ride_physics import RideParams
    from .track_points import positions
except ImportError:  # pragma: no cover - direct execution support
    import scale
    from coaster_session import CoasterSession
    from io_utils import read_ride_params_csv, read_track_points_csv, write_csv
    from plots import plot_elevation_profile, plot_plan_view, plot_speed_profile
    from ride_camera import CameraParams
    from ride_physics import RideParams
    from track_points import positions

_logger = logging.getLogger(__name__)


def run(
    track_file: str,
    params_file: str | None = None,
    loop_at: str | None = None,
    closed: bool | None = None,
    chain_lift: bool = True,
    speed: float = 1.0,
    dt: float = 1.0 / 60.0,
    max_time: float = 300.0,
    plot: bool = False,
    out_root: str | Path = "outputs",
) -> tuple[float, Path]:
    """Ride a track and return the ride time and output directory.

    Parameters
    ----------
    track_file:
        CSV of control points, see :func:`io_utils.read_track_points_csv`.
    params_file:
        Optional ``key,value`` CSV overriding ride and camera constants
        (``chain_speed``, ``min_ride_speed``, ``gravity``, ``gravity_scale``,
        ``camera_height``, ``camera_lerp``).
    loop_at:
        Id of the control point to splice a loop after.  Points are named
        ``point-1``, ``point-2``, ... in file order.
    closed:
        Treat the track as a closed circuit.  If ``None`` the track is closed
        when its first and last points coincide.
    chain_lift, speed:
        Chain lift toggle and speed multiplier.
    dt:
        Tick length in seconds.
    max_time:
        Stop after this much ride time even if the ride has not ended.
    plot:
        Also save ``ride.png``.
    """
    if dt <= 0:
        raise ValueError("dt must be positive")
    if max_time <= 0:
        raise ValueError("max_time must be positive")
    start_time = time.perf_counter()

    xyz, tilt = read_track_points_csv(track_file)
    if closed is None:
        closed = bool(len(xyz) > 2 and np.allclose(xyz[0], xyz[-1], atol=1e-6))
    if closed and len(xyz) > 2 and np.allclose(xyz[0], xyz[-1], atol=1e-6):
        # the circuit joins itself; a repeated point would stall the spline
        xyz, tilt = xyz[:-1], tilt[:-1]

    params = read_ride_params_csv(params_file) if params_file else {}
    ride_params = RideParams.from_mapping(params)
    camera_params = CameraParams(
        camera_height=float(params.get("camera_height", scale.CAMERA_HEIGHT)),
        smoothing=float(params.get("camera_lerp", scale.CAMERA_LERP)),
    )

    session = CoasterSession(ride_params, camera_params)
    for position, tilt_deg in zip(xyz, tilt):
        session.add_point(position, tilt_deg)
    if loop_at is not None:
        if session.get_point(loop_at) is None:
            raise ValueError(f"unknown control point '{loop_at}'")
        session.create_loop_at_point(loop_at)
    session.set_closed(closed)
    session.set_chain_lift(chain_lift)
    session.set_speed_multiplier(speed)

    if not session.start_ride():
        raise ValueError("track needs at least two control points")
    curve = session.curve
    _logger.debug(
        "riding %d points, length %.1f, lift releases at t=%.2f",
        len(session.points),
        curve.get_length(),
        session.first_peak_t,
    )

    rows = []
    laps = 0
    elapsed = 0.0
    completed = False
    n_ticks = int(np.ceil(max_time / dt - 1e-9))
    for tick in range(1, n_ticks + 1):
        previous = session.ride.progress
        pose = session.tick(dt)
        elapsed = tick * dt
        if pose is None:
            completed = True
            break
        if session.ride.progress < previous:
            laps += 1
        rows.append(
            {
                "time_s": elapsed,
                "progress": session.ride.progress,
                "phase": session.ride.phase.value,
                "speed_mps": session.ride.speed,
                "height_m": float(curve.get_point(session.ride.progress)[1]),
                "max_height_m": session.ride.max_height_reached,
                "camera_x_m": pose.position[0],
                "camera_y_m": pose.position[1],
                "camera_z_m": pose.position[2],
                "camera_roll_rad": pose.roll,
            }
        )

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_dir = Path(out_root) / timestamp
    out_dir.mkdir(parents=True, exist_ok=True)

    ride_df = pd.DataFrame(rows, columns=[
        "time_s",
        "progress",
        "phase",
        "speed_mps",
        "height_m",
        "max_height_m",
        "camera_x_m",
        "camera_y_m",
        "camera_z_m",
        "camera_roll_rad",
    ])
    write_csv(ride_df, out_dir / "ride.csv")

    summary = {
        "ride_time_s": elapsed,
        "completed": completed,
        "laps": laps,
        "max_speed_mps": float(ride_df["speed_mps"].max()) if len(ride_df) else 0.0,
        "first_peak_t": session.first_peak_t,
        "track_length_m": curve.get_length(),
        "n_points": len(session.points),
    }
    with (out_dir / "summary.json").open("w") as f:
        json.dump(summary, f)

    if plot:
        _save_plots(session, ride_df, out_dir / "ride.png")

    total_runtime = time.perf_counter() - start_time
    print(
        f"Ride: {len(rows)} ticks, "
        f"Laps: {laps}, "
        f"Total runtime: {total_runtime:.3f} s"
    )

    return elapsed, out_dir


def _save_plots(session: CoasterSession, ride_df: pd.DataFrame, path: Path) -> None:
    curve = session.curve
    fig, (ax_plan, ax_elev, ax_speed) = plt.subplots(3, 1, figsize=(8, 12))
    plot_plan_view(
        curve.sample(400),
        positions(session.points),
        [p.loop_meta is not None for p in session.points],
        ax=ax_plan,
    )
    t = np.linspace(0.0, 1.0, 400)
    plot_elevation_profile(
        t, [curve.get_point(ti)[1] for ti in t], session.first_peak_t, ax=ax_elev
    )
    plot_speed_profile(ride_df["time_s"], ride_df["speed_mps"], label="Car", ax=ax_speed)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Ride a roller-coaster track")
    parser.add_argument("--track", default="data/sample_track.csv", help="Control point CSV")
    parser.add_argument("--params", default=None, help="Ride parameter CSV")
    parser.add_argument(
        "--loop-at",
        default=None,
        help="Control point id to splice a loop after, e.g. point-4",
    )
    parser.add_argument(
        "--no-chain-lift",
        dest="chain_lift",
        action="store_false",
        help="Start the ride coasting instead of on the lift",
    )
    parser.add_argument("--speed", type=float, default=1.0, help="Speed multiplier")
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="Tick length in seconds")
    parser.add_argument(
        "--max-time", type=float, default=300.0, help="Maximum ride time in seconds"
    )
    parser.add_argument("--plot", action="store_true", help="Save ride.png")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--open",
        dest="closed",
        action="store_const",
        const=False,
        help="Force track to be treated as open",
    )
    group.add_argument(
        "--closed",
        dest="closed",
        action="store_const",
        const=True,
        help="Force track to be treated as closed",
    )
    parser.set_defaults(closed=None)
    args = parser.parse_args(argv)

    ride_time, out_dir = run(
        args.track,
        args.params,
        loop_at=args.loop_at,
        closed=args.closed,
        chain_lift=args.chain_lift,
        speed=args.speed,
        dt=args.dt,
        max_time=args.max_time,
        plot=args.plot,
    )
    print(f"Ride time: {ride_time:.2f} s")
    print(f"Outputs written to {out_dir}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
