"""Track authoring session.

:class:`CoasterSession` owns the control points of one track together with
the state of the ride on it.  The editing layer calls the point and ride
methods; the render loop calls :meth:`CoasterSession.tick` once per frame
and draws the returned :class:`~ride_camera.CameraPose`.

Operations on unknown point ids and ride starts on a track with fewer
than two points are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

import numpy as np

try:  # pragma: no cover - import shim
    from .loop_generator import generate_loop
    from .ride_camera import CameraFrameState, CameraParams, CameraPose, reset_camera, update_camera
    from .ride_physics import RideParams, RidePhase, RideState, advance_ride, find_first_peak, start_ride
    from .track_curve import TrackCurve
    from .track_points import ControlPoint, find_point_index, point_id_factory
except ImportError:  # pragma: no cover - direct execution support
    from loop_generator import generate_loop
    from ride_camera import CameraFrameState, CameraParams, CameraPose, reset_camera, update_camera
    from ride_physics import RideParams, RidePhase, RideState, advance_ride, find_first_peak, start_ride
    from track_curve import TrackCurve
    from track_points import ControlPoint, find_point_index, point_id_factory

_logger = logging.getLogger(__name__)

MODES = ("build", "ride", "preview")


class CoasterSession:
    """Control points, ride state and camera state of one track.

    Parameters
    ----------
    ride_params, camera_params:
        Constants for the ride model and camera.
    """

    def __init__(
        self,
        ride_params: RideParams = RideParams(),
        camera_params: CameraParams = CameraParams(),
    ) -> None:
        self.ride_params = ride_params
        self.camera_params = camera_params
        self._new_id = point_id_factory()

        self.points: List[ControlPoint] = []
        self.selected_point_id: Optional[str] = None
        self.mode = "build"
        self.closed = False
        self.chain_lift = True
        self.speed_multiplier = 1.0
        self.is_adding_points = True
        self.is_dragging_point = False

        self.ride = RideState()
        self.camera = CameraFrameState()
        self.pose: Optional[CameraPose] = None

        self._curve: Optional[TrackCurve] = None
        self._first_peak_t: Optional[float] = None
        self._track_dirty = True

    # ------------------------------------------------------------------
    # Derived track data
    def _invalidate(self) -> None:
        self._track_dirty = True
        self._curve = None
        self._first_peak_t = None

    @property
    def curve(self) -> Optional[TrackCurve]:
        """Curve through the current points, or ``None`` for short tracks."""
        if self._track_dirty:
            self._curve = TrackCurve.from_points(self.points, self.closed)
            self._first_peak_t = None
            self._track_dirty = False
        return self._curve

    @property
    def first_peak_t(self) -> float:
        """Parameter where the chain lift releases the car."""
        curve = self.curve
        if self._first_peak_t is None:
            self._first_peak_t = find_first_peak(curve)
        return self._first_peak_t

    @property
    def is_riding(self) -> bool:
        return self.ride.is_riding

    def get_point(self, point_id: str) -> Optional[ControlPoint]:
        index = find_point_index(self.points, point_id)
        return self.points[index] if index != -1 else None

    # ------------------------------------------------------------------
    # Point editing
    def add_point(self, position: Iterable[float], tilt: float = 0.0) -> ControlPoint:
        """Append a control point at ``position`` and return it."""
        point = ControlPoint(self._new_id(), np.array(position, dtype=float), tilt)
        self.points.append(point)
        self._invalidate()
        return point

    def update_point(self, point_id: str, position: Iterable[float]) -> None:
        point = self.get_point(point_id)
        if point is None:
            _logger.debug("update_point: unknown id %s", point_id)
            return
        point.position = np.array(position, dtype=float)
        self._invalidate()

    def update_point_tilt(self, point_id: str, tilt: float) -> None:
        point = self.get_point(point_id)
        if point is None:
            _logger.debug("update_point_tilt: unknown id %s", point_id)
            return
        point.tilt = float(tilt)
        self._invalidate()

    def remove_point(self, point_id: str) -> None:
        index = find_point_index(self.points, point_id)
        if index == -1:
            _logger.debug("remove_point: unknown id %s", point_id)
            return
        del self.points[index]
        if self.selected_point_id == point_id:
            self.selected_point_id = None
        self._invalidate()

    def select_point(self, point_id: Optional[str]) -> None:
        self.selected_point_id = point_id

    def create_loop_at_point(self, point_id: str) -> None:
        """Splice a loop into the track after ``point_id``."""
        if find_point_index(self.points, point_id) == -1:
            _logger.debug("create_loop_at_point: unknown id %s", point_id)
            return
        before = len(self.points)
        self.points = generate_loop(point_id, self.points, self._new_id)
        _logger.debug("loop at %s added %d points", point_id, len(self.points) - before)
        self._invalidate()

    def clear_track(self) -> None:
        """Remove every point and stop any ride."""
        self.points = []
        self.selected_point_id = None
        self._reset_ride()
        self._invalidate()

    # ------------------------------------------------------------------
    # Settings
    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"unknown mode '{mode}'")
        self.mode = mode

    def set_closed(self, closed: bool) -> None:
        if closed != self.closed:
            self.closed = closed
            self._invalidate()

    def set_chain_lift(self, enabled: bool) -> None:
        self.chain_lift = enabled
        if self.ride.is_riding:
            self.ride = replace(self.ride, chain_lift_active=enabled)

    def set_speed_multiplier(self, multiplier: float) -> None:
        self.speed_multiplier = max(0.0, float(multiplier))
        if self.ride.is_riding:
            self.ride = replace(self.ride, speed_multiplier=self.speed_multiplier)

    # ------------------------------------------------------------------
    # Ride lifecycle
    def start_ride(self) -> bool:
        """Start riding from the beginning of the track.

        Returns ``False`` and leaves the session untouched when the track
        has fewer than two points.
        """
        curve = self.curve
        if curve is None:
            _logger.debug("start_ride: %d points, need at least 2", len(self.points))
            return False
        self.mode = "ride"
        self.ride = start_ride(curve, self.speed_multiplier, self.chain_lift)
        self.camera = reset_camera(curve, self.camera_params)
        self.pose = None
        return True

    def stop_ride(self) -> None:
        self.mode = "build"
        self._reset_ride()

    def _reset_ride(self) -> None:
        self.ride = RideState(speed_multiplier=self.speed_multiplier, chain_lift_active=self.chain_lift)
        self.camera = CameraFrameState()
        self.pose = None

    def tick(self, dt: float) -> Optional[CameraPose]:
        """Advance the ride by ``dt`` seconds and return the camera pose.

        Returns ``None`` when not riding or when the ride ends on this tick.
        """
        if not self.ride.is_riding:
            return None
        curve = self.curve
        if curve is None:
            self.stop_ride()
            return None

        self.ride = advance_ride(
            self.ride, curve, self.ride_params, self.first_peak_t, self.closed, dt
        )
        if self.ride.phase is RidePhase.IDLE:
            _logger.debug("ride reached the end of an open track")
            self.stop_ride()
            return None

        self.camera, self.pose = update_camera(
            self.camera, curve, self.ride.progress, self.camera_params
        )
        return self.pose
