"""Continuous track curve through an ordered set of control points.

:class:`TrackCurve` answers the queries the ride simulation needs: the
position and tangent at a parameter ``t`` in ``[0, 1]``, an arc-length
estimate and the interpolated banking angle.  The curve is a cubic spline
through every control point, parameterised uniformly so that point ``i``
sits at ``t = i / (n - 1)`` on an open track and ``t = i / n`` on a closed
one.  Closed tracks use periodic end conditions and wrap ``t = 1`` back to
``t = 0``.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy.interpolate import CubicSpline

try:  # pragma: no cover - import shim
    from .scale import ARC_LENGTH_DIVISIONS, SAMPLES_PER_POINT
    from .track_points import ControlPoint, positions
except ImportError:  # pragma: no cover - direct execution support
    from scale import ARC_LENGTH_DIVISIONS, SAMPLES_PER_POINT
    from track_points import ControlPoint, positions


def _knots(n: int, closed: bool) -> np.ndarray:
    if closed:
        return np.arange(n + 1) / n
    return np.linspace(0.0, 1.0, n)


def tilt_at_progress(points: Sequence[ControlPoint], t: float, closed: bool) -> float:
    """Return the banking angle in degrees at parameter ``t``.

    The per-point tilt is interpolated linearly between neighbouring
    control points on the same parameterisation as :class:`TrackCurve`.
    """
    n = len(points)
    if n == 0:
        return 0.0
    tilts = np.array([p.tilt for p in points], dtype=float)
    if n == 1:
        return float(tilts[0])
    if closed:
        knots = _knots(n, closed=True)[:-1]
        return float(np.interp(t % 1.0, knots, tilts, period=1.0))
    return float(np.interp(min(max(t, 0.0), 1.0), _knots(n, closed=False), tilts))


class TrackCurve:
    """Cubic-spline curve through the control point positions.

    Parameters
    ----------
    points:
        Ordered control points.  At least two are required.
    closed:
        Treat the sequence as a loop, joining the last point back to the
        first with matching first and second derivatives.
    """

    def __init__(self, points: Sequence[ControlPoint], closed: bool = False) -> None:
        if len(points) < 2:
            raise ValueError("a track curve requires at least two points")
        self.points = list(points)
        self.closed = closed
        xyz = positions(self.points)
        if closed:
            xyz = np.vstack((xyz, xyz[:1]))
            bc_type = "periodic"
        else:
            bc_type = "natural"
        self._spline = CubicSpline(_knots(len(self.points), closed), xyz, axis=0, bc_type=bc_type)
        self._length: float | None = None

    @classmethod
    def from_points(cls, points: Sequence[ControlPoint], closed: bool = False) -> TrackCurve | None:
        """Build a curve, or return ``None`` when there are too few points."""
        if len(points) < 2:
            return None
        return cls(points, closed)

    def _wrap(self, t: float) -> float:
        if self.closed:
            return float(t) % 1.0
        return min(max(float(t), 0.0), 1.0)

    def get_point(self, t: float) -> np.ndarray:
        """Position on the curve at ``t``."""
        return np.asarray(self._spline(self._wrap(t)), dtype=float)

    def get_tangent(self, t: float) -> np.ndarray:
        """Derivative ``dP/dt`` at ``t``; not normalised."""
        return np.asarray(self._spline(self._wrap(t), 1), dtype=float)

    def get_length(self) -> float:
        """Arc-length estimate from a dense chord sum.  Cached."""
        if self._length is None:
            divisions = max(ARC_LENGTH_DIVISIONS, len(self.points) * SAMPLES_PER_POINT)
            samples = self._spline(np.linspace(0.0, 1.0, divisions + 1))
            self._length = float(np.sum(np.linalg.norm(np.diff(samples, axis=0), axis=1)))
        return self._length

    def tilt_at(self, t: float) -> float:
        """Banking angle in degrees at ``t``."""
        return tilt_at_progress(self.points, t, self.closed)

    def sample(self, n: int) -> np.ndarray:
        """Return ``n`` evenly spaced (in ``t``) points as an ``(n, 3)`` array."""
        return np.asarray(self._spline(np.linspace(0.0, 1.0, n)), dtype=float)
