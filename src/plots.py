from __future__ import annotations

"""Plotting helpers for ride simulation results.

This module contains simple functions for visualising a track and the ride
along it.  Plots are produced using :mod:`matplotlib` and return the
:class:`~matplotlib.axes.Axes` instance for further customisation.
"""

from typing import Iterable, Optional

import numpy as np
import matplotlib.pyplot as plt


def plot_plan_view(
    curve_xyz: np.ndarray,
    control_xyz: np.ndarray | None = None,
    loop_mask: Iterable[bool] | None = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Plot the track seen from above.

    Parameters
    ----------
    curve_xyz:
        Array of shape ``(N, 3)`` sampled along the track curve.  The plan
        view shows ``x`` against ``z``.
    control_xyz:
        Optional ``(M, 3)`` control point positions to overlay.
    loop_mask:
        Optional boolean per control point marking points produced by the
        loop generator; they are drawn in a separate colour.
    ax:
        Existing axes to draw on.  If ``None`` a new figure and axes are
        created.
    """
    curve_xyz = np.asarray(curve_xyz, dtype=float)
    if curve_xyz.ndim != 2 or curve_xyz.shape[1] != 3:
        raise ValueError("curve_xyz must have shape (N, 3)")

    if ax is None:
        _, ax = plt.subplots()

    ax.plot(curve_xyz[:, 0], curve_xyz[:, 2], color="k", label="Track")

    if control_xyz is not None:
        control_xyz = np.asarray(control_xyz, dtype=float)
        mask = np.zeros(len(control_xyz), dtype=bool)
        if loop_mask is not None:
            mask = np.asarray(list(loop_mask), dtype=bool)
        ax.scatter(
            control_xyz[~mask, 0], control_xyz[~mask, 2], color="tab:blue", label="Control points"
        )
        if mask.any():
            ax.scatter(
                control_xyz[mask, 0], control_xyz[mask, 2], color="tab:red", label="Loop points"
            )

    ax.set_aspect("equal", adjustable="box")
    ax.set_xlabel("x [m]")
    ax.set_ylabel("z [m]")
    ax.legend()
    return ax


def plot_elevation_profile(
    progress: Iterable[float],
    height: Iterable[float],
    first_peak_t: float | None = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Plot track height against ride progress, marking the lift peak."""
    if ax is None:
        _, ax = plt.subplots()

    ax.plot(progress, height, color="tab:brown", label="Height")
    if first_peak_t is not None:
        ax.axvline(first_peak_t, color="tab:gray", linestyle="--", label="Lift release")
    ax.set_xlabel("Progress [-]")
    ax.set_ylabel("Height [m]")
    ax.legend()
    return ax


def plot_speed_profile(
    time_s: Iterable[float],
    speed: Iterable[float],
    label: str | None = None,
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """Plot car speed as a function of ride time."""
    if ax is None:
        _, ax = plt.subplots()

    ax.plot(time_s, speed, color="tab:blue", label=label)
    ax.set_xlabel("Time [s]")
    ax.set_ylabel("Speed [m/s]")
    if label is not None:
        ax.legend()
    return ax
