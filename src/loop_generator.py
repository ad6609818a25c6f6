r"""Procedural vertical loop insertion.

:func:`generate_loop` splices a loop into a track at an anchor control
point.  The loop is a circle of radius ``R`` in the vertical plane of the
approach direction, with a lateral offset that ramps linearly from ``0`` to
``H`` over the whole loop.  The ramp turns the circle into a shallow
corkscrew so the ascending and descending strands never coincide.

Three groups of points are inserted after the anchor:

``loop body``
    ``N`` points at :math:`\theta = 2\pi i / N`.
``exit easing``
    ``M`` points continuing :math:`\theta` slightly past :math:`2\pi` with
    the circular offsets decaying to zero, so the spline does not pinch
    where the loop closes back onto the horizontal.
``transition``
    Evenly spaced points on the straight line from the loop exit to the
    next original control point, if there is one.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

try:  # pragma: no cover - import shim
    from . import scale
    from .track_points import ControlPoint, LoopMetadata, find_point_index
    from .vector_utils import WORLD_UP, X_AXIS, lerp, normalize
except ImportError:  # pragma: no cover - direct execution support
    import scale
    from track_points import ControlPoint, LoopMetadata, find_point_index
    from vector_utils import WORLD_UP, X_AXIS, lerp, normalize


def ease_out_quad(x: float) -> float:
    return 1.0 - (1.0 - x) * (1.0 - x)


def approach_direction(points: Sequence[ControlPoint], index: int) -> np.ndarray:
    """Horizontal unit direction from the predecessor of ``index`` to it.

    Falls back to +X for the first point or when the horizontal distance is
    below :data:`scale.MIN_FORWARD_LENGTH`.
    """
    if index <= 0:
        return X_AXIS.copy()
    forward = points[index].position - points[index - 1].position
    forward[1] = 0.0
    if np.linalg.norm(forward) < scale.MIN_FORWARD_LENGTH:
        return X_AXIS.copy()
    return normalize(forward)


def generate_loop(
    anchor_id: str,
    points: Sequence[ControlPoint],
    new_id: Callable[[], str],
    radius: float = scale.LOOP_RADIUS,
    helix_separation: float = scale.HELIX_SEPARATION,
    n_loop: int = scale.LOOP_POINTS_COUNT,
    n_ease: int = scale.EXIT_EASE_POINTS,
    n_transition: int = scale.TRANSITION_POINTS,
) -> list[ControlPoint]:
    """Return a new point list with a loop spliced in after ``anchor_id``.

    Parameters
    ----------
    anchor_id:
        Id of the control point the loop starts from.  If no point has this
        id the input points are returned unchanged.
    points:
        Current ordered control points.  They are not modified.
    new_id:
        Callable returning a fresh unique id for each generated point.
    radius, helix_separation:
        Loop radius ``R`` and total lateral corkscrew offset ``H``.
    n_loop, n_ease, n_transition:
        Number of loop body, exit easing and transition points.

    Returns
    -------
    list[ControlPoint]
        ``points[:anchor + 1] + body + easing + transition + points[anchor + 1:]``.
    """
    index = find_point_index(points, anchor_id)
    if index == -1:
        return list(points)

    entry_pos = points[index].position.copy()
    forward = approach_direction(points, index)
    up = WORLD_UP.copy()
    right = normalize(np.cross(forward, up))

    def _meta(theta: float) -> LoopMetadata:
        return LoopMetadata(
            entry_pos=entry_pos.copy(),
            forward=forward.copy(),
            up=up.copy(),
            right=right.copy(),
            radius=radius,
            theta=theta,
        )

    loop_points: list[ControlPoint] = []
    for i in range(1, n_loop + 1):
        t = i / n_loop
        theta = t * 2.0 * np.pi
        offset = (
            forward * np.sin(theta) * radius
            + right * (t * helix_separation)
            + up * (1.0 - np.cos(theta)) * radius
        )
        loop_points.append(ControlPoint(new_id(), entry_pos + offset, 0.0, _meta(theta)))

    for i in range(1, n_ease + 1):
        t = i / n_ease
        eased = ease_out_quad(t)
        decay = 1.0 - eased
        theta = 2.0 * np.pi + t * np.pi * scale.EXIT_THETA_OVERSHOOT
        forward_offset = np.sin(theta) * radius * decay + eased * scale.EXIT_CREEP
        offset = (
            forward * forward_offset
            + right * helix_separation
            + up * (1.0 - np.cos(theta)) * radius * decay
        )
        # orientation stays at the loop base for the whole exit
        loop_points.append(ControlPoint(new_id(), entry_pos + offset, 0.0, _meta(2.0 * np.pi)))

    transition_points: list[ControlPoint] = []
    if index + 1 < len(points):
        exit_pos = loop_points[-1].position
        next_pos = points[index + 1].position
        for i in range(1, n_transition + 1):
            alpha = i / (n_transition + 1)
            transition_points.append(ControlPoint(new_id(), lerp(exit_pos, next_pos, alpha)))

    return [
        *points[: index + 1],
        *loop_points,
        *transition_points,
        *points[index + 1 :],
    ]
