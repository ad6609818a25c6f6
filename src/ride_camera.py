"""First-person ride camera.

The camera sits a fixed height above the track along a reference "up"
vector that is carried from tick to tick by parallel transport: each tick
the previous up vector loses its component along the new tangent.  Unlike
a fixed world-up reference this stays well defined on vertical and
inverted track sections, so the camera does not flip or spin through a
loop.

Position, look-at target and roll are smoothed exponentially with a fixed
factor per tick.  The smoothing therefore depends on the frame rate; a
faster renderer converges faster.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np
from scipy.spatial.transform import Rotation

try:  # pragma: no cover - import shim
    from . import scale
    from .track_curve import TrackCurve
    from .vector_utils import WORLD_UP, X_AXIS, lerp, normalize, reject
except ImportError:  # pragma: no cover - direct execution support
    import scale
    from track_curve import TrackCurve
    from vector_utils import WORLD_UP, X_AXIS, lerp, normalize, reject


@dataclass(frozen=True)
class CameraParams:
    camera_height: float = scale.CAMERA_HEIGHT
    smoothing: float = scale.CAMERA_LERP
    look_ahead: float = scale.CAMERA_LOOK_AHEAD_T
    min_transport_length: float = 0.01


@dataclass(frozen=True, eq=False)
class CameraFrameState:
    """Smoothing history carried between ticks."""

    previous_up: np.ndarray = field(default_factory=lambda: WORLD_UP.copy())
    previous_camera_pos: np.ndarray = field(default_factory=lambda: np.zeros(3))
    previous_look_at: np.ndarray = field(default_factory=lambda: np.zeros(3))
    previous_roll: float = 0.0


@dataclass(frozen=True, eq=False)
class CameraPose:
    """Camera placement for one rendered frame.

    ``orientation`` is an ``(x, y, z, w)`` quaternion of a camera looking
    down its local ``-z`` axis, already rolled by ``-roll``.
    """

    position: np.ndarray
    look_at: np.ndarray
    up: np.ndarray
    roll: float
    orientation: np.ndarray


def transport_up(previous_up: np.ndarray, tangent: np.ndarray, min_length: float = 0.01) -> np.ndarray:
    """Carry ``previous_up`` onto the plane normal to the unit ``tangent``.

    When the projection is shorter than ``min_length`` the tangent is nearly
    parallel to the previous up vector and world-up is projected instead.
    """
    up = reject(previous_up, tangent)
    if np.linalg.norm(up) > min_length:
        return normalize(up)
    up = reject(WORLD_UP, tangent)
    if np.linalg.norm(up) > min_length:
        return normalize(up)
    # tangent is vertical
    return normalize(reject(X_AXIS, tangent))


def look_at_rotation(eye: np.ndarray, target: np.ndarray, up: np.ndarray = WORLD_UP) -> Rotation:
    """Rotation aiming a camera at ``eye`` so its ``-z`` axis faces ``target``."""
    z = eye - target
    if np.linalg.norm(z) < 1e-12:
        z = np.array([0.0, 0.0, 1.0])
    z = normalize(z)
    x = np.cross(up, z)
    if np.linalg.norm(x) < 1e-12:
        z = z.copy()
        if abs(abs(up[2]) - 1.0) < 1e-12:
            z[0] += 1e-4
        else:
            z[2] += 1e-4
        z = normalize(z)
        x = np.cross(up, z)
    x = normalize(x)
    y = np.cross(z, x)
    return Rotation.from_matrix(np.column_stack((x, y, z)))


def look_ahead_t(progress: float, look_ahead: float, closed: bool) -> float:
    if closed:
        return (progress + look_ahead) % 1.0
    return min(progress + look_ahead, 0.999)


def camera_targets(
    curve: TrackCurve,
    progress: float,
    previous_up: np.ndarray,
    params: CameraParams,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(up, camera_target, look_at_target)`` at ``progress``."""
    position = curve.get_point(progress)
    tangent = normalize(curve.get_tangent(progress), fallback=X_AXIS)
    up = transport_up(previous_up, tangent, params.min_transport_length)

    offset = up * params.camera_height
    ahead = curve.get_point(look_ahead_t(progress, params.look_ahead, curve.closed))
    return up, position + offset, ahead + offset * 0.5


def reset_camera(curve: TrackCurve | None, params: CameraParams = CameraParams()) -> CameraFrameState:
    """Fresh camera history for a ride starting at ``t = 0``.

    The smoothed position, look-at and roll start at their targets so the
    first frames do not sweep in from a previous ride.
    """
    if curve is None:
        return CameraFrameState()
    up, camera_pos, look_at = camera_targets(curve, 0.0, WORLD_UP, params)
    return CameraFrameState(
        previous_up=up,
        previous_camera_pos=camera_pos,
        previous_look_at=look_at,
        previous_roll=float(np.radians(curve.tilt_at(0.0))),
    )


def update_camera(
    state: CameraFrameState,
    curve: TrackCurve,
    progress: float,
    params: CameraParams = CameraParams(),
) -> Tuple[CameraFrameState, CameraPose]:
    """Compute the camera pose for the car at ``progress``.

    Returns
    -------
    Tuple[CameraFrameState, CameraPose]
        Updated smoothing history and the pose to render.
    """
    up, camera_target, look_at_target = camera_targets(curve, progress, state.previous_up, params)

    camera_pos = lerp(state.previous_camera_pos, camera_target, params.smoothing)
    look_at = lerp(state.previous_look_at, look_at_target, params.smoothing)
    target_roll = float(np.radians(curve.tilt_at(progress)))
    roll = state.previous_roll + (target_roll - state.previous_roll) * params.smoothing

    rotation = look_at_rotation(camera_pos, look_at) * Rotation.from_euler("z", -roll)
    new_state = CameraFrameState(
        previous_up=up,
        previous_camera_pos=camera_pos,
        previous_look_at=look_at,
        previous_roll=roll,
    )
    pose = CameraPose(
        position=camera_pos.copy(),
        look_at=look_at.copy(),
        up=up.copy(),
        roll=roll,
        orientation=rotation.as_quat(),
    )
    return new_state, pose
