"""Control point data structures used to author a track."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import count
from typing import Callable, Sequence

import numpy as np


@dataclass(frozen=True, eq=False)
class LoopMetadata:
    """Frame of the loop that produced a control point.

    ``right`` is ``normalize(forward x up)`` at generation time.  ``theta``
    is the angle of the point around the loop, ``0`` to ``2*pi``.
    """

    entry_pos: np.ndarray
    forward: np.ndarray
    up: np.ndarray
    right: np.ndarray
    radius: float
    theta: float


@dataclass(eq=False)
class ControlPoint:
    """An authored 3-D point the track curve passes through.

    ``tilt`` is the banking angle in degrees.  ``loop_meta`` is only set on
    points produced by :func:`loop_generator.generate_loop`.
    """

    id: str
    position: np.ndarray
    tilt: float = 0.0
    loop_meta: LoopMetadata | None = None

    def __post_init__(self) -> None:
        self.position = np.array(self.position, dtype=float)
        if self.position.shape != (3,):
            raise ValueError("position must have three components")


def point_id_factory(prefix: str = "point") -> Callable[[], str]:
    """Return a callable yielding ``"<prefix>-1"``, ``"<prefix>-2"``, ..."""
    counter = count(1)
    return lambda: f"{prefix}-{next(counter)}"


def find_point_index(points: Sequence[ControlPoint], point_id: str) -> int:
    """Return the index of ``point_id`` in ``points`` or ``-1``."""
    for i, point in enumerate(points):
        if point.id == point_id:
            return i
    return -1


def positions(points: Sequence[ControlPoint]) -> np.ndarray:
    """Stack the point positions into an ``(n, 3)`` array."""
    if not points:
        return np.empty((0, 3))
    return np.vstack([p.position for p in points])
