r"""Ride progress model for a car travelling along a :class:`TrackCurve`.

The ride has two phases.  While the chain lift is engaged the car climbs
at a constant speed until it passes the first peak of the track.  After
that it coasts with a speed derived from energy conservation relative to
the highest point reached so far,

.. math::

    v = \max\left(v_{min}, \sqrt{2 g (h_{max} - h)}\right),

scaled by the user's speed multiplier.  Progress is the curve parameter
``t`` and advances by ``v \Delta t / L`` each tick, where ``L`` is the
curve length.

State is carried in a :class:`RideState` that the functions below take
and return without modifying.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping

import numpy as np

try:  # pragma: no cover - import shim
    from . import scale
    from .track_curve import TrackCurve
    from .vector_utils import normalize
except ImportError:  # pragma: no cover - direct execution support
    import scale
    from track_curve import TrackCurve
    from vector_utils import normalize


class RidePhase(str, Enum):
    IDLE = "idle"
    CLIMB = "climb"
    COAST = "coast"


@dataclass(frozen=True)
class RideParams:
    """Physical constants of the ride model.

    ``gravity`` is already multiplied by the scene's gravity scale.
    """

    chain_speed: float = scale.CHAIN_SPEED
    min_ride_speed: float = scale.MIN_RIDE_SPEED
    gravity: float = scale.GRAVITY * scale.GRAVITY_SCALE

    @classmethod
    def from_mapping(cls, params: Mapping[str, float | bool]) -> RideParams:
        """Build parameters from a ``key -> value`` mapping.

        Missing keys keep their defaults.  ``gravity_scale`` multiplies
        ``gravity`` when both are present.
        """
        defaults = cls()
        chain_speed = float(params.get("chain_speed", defaults.chain_speed))
        min_ride_speed = float(params.get("min_ride_speed", defaults.min_ride_speed))
        if "gravity" in params:
            gravity = float(params["gravity"]) * float(params.get("gravity_scale", 1.0))
        else:
            gravity = defaults.gravity
        if chain_speed <= 0:
            raise ValueError("chain_speed must be positive")
        if min_ride_speed < 0:
            raise ValueError("min_ride_speed must be non-negative")
        if gravity <= 0:
            raise ValueError("gravity must be positive")
        return cls(chain_speed, min_ride_speed, gravity)


@dataclass(frozen=True)
class RideState:
    """Snapshot of the ride after a tick.

    ``chain_lift_active`` records whether the lift is enabled; the session
    may toggle it mid-ride.  The phase tells whether the lift is still
    pulling the car at ``progress``.
    ``speed`` is the speed used by the last tick.
    """

    phase: RidePhase = RidePhase.IDLE
    progress: float = 0.0
    max_height_reached: float = 0.0
    speed_multiplier: float = 1.0
    chain_lift_active: bool = False
    speed: float = 0.0

    @property
    def is_riding(self) -> bool:
        return self.phase is not RidePhase.IDLE


def find_first_peak(
    curve: TrackCurve | None,
    steps: int = 50,
    max_t: float = 0.5,
    climb_threshold: float = 0.1,
    fallback: float = 0.2,
) -> float:
    """Locate the top of the lift hill.

    Scans ``t = k * max_t / steps`` for ``k = 0..steps``.  Once the curve is
    climbing (vertical tangent component above ``climb_threshold``) the
    highest point is tracked, and the scan stops when the curve falls
    faster than ``-climb_threshold`` after that peak.

    Returns
    -------
    float
        Parameter of the peak in ``[0, max_t]``, ``fallback`` if no climb
        followed by a peak was found, or ``0.0`` without a curve.
    """
    if curve is None:
        return 0.0

    max_height = -np.inf
    peak_t = 0.0
    found_climb = False
    for k in range(steps + 1):
        t = k * max_t / steps
        height = curve.get_point(t)[1]
        rise = normalize(curve.get_tangent(t))[1]

        if rise > climb_threshold:
            found_climb = True
        if found_climb and height > max_height:
            max_height = height
            peak_t = t
        if found_climb and rise < -climb_threshold and t > peak_t:
            break

    return peak_t if peak_t > 0 else fallback


def start_ride(
    curve: TrackCurve | None,
    speed_multiplier: float = 1.0,
    chain_lift: bool = True,
) -> RideState:
    """Return the state of a ride leaving the station.

    Without a curve the returned state is idle.  Negative multipliers are
    clamped to zero.
    """
    speed_multiplier = max(0.0, float(speed_multiplier))
    if curve is None:
        return RideState(speed_multiplier=speed_multiplier, chain_lift_active=chain_lift)
    return RideState(
        phase=RidePhase.CLIMB if chain_lift else RidePhase.COAST,
        progress=0.0,
        max_height_reached=float(curve.get_point(0.0)[1]),
        speed_multiplier=speed_multiplier,
        chain_lift_active=chain_lift,
    )


def ride_speed(
    state: RideState,
    height: float,
    params: RideParams,
    first_peak_t: float,
) -> tuple[float, float, RidePhase]:
    """Return ``(speed, max_height_reached, phase)`` at the current height."""
    max_height = max(state.max_height_reached, height)
    if state.chain_lift_active and state.progress < first_peak_t:
        return params.chain_speed * state.speed_multiplier, max_height, RidePhase.CLIMB

    drop = max(0.0, max_height - height)
    energy_speed = float(np.sqrt(2.0 * params.gravity * drop))
    speed = max(params.min_ride_speed, energy_speed) * state.speed_multiplier
    return speed, max_height, RidePhase.COAST


def advance_ride(
    state: RideState,
    curve: TrackCurve | None,
    params: RideParams,
    first_peak_t: float,
    closed: bool,
    dt: float,
    min_length: float = 1e-9,
) -> RideState:
    """Advance the ride by ``dt`` seconds.

    Parameters
    ----------
    state:
        Ride state from the previous tick.
    curve:
        Track being ridden.
    params:
        Physical constants.
    first_peak_t:
        Parameter where the chain lift disengages, see
        :func:`find_first_peak`.
    closed:
        Whether the track wraps around.  On an open track reaching the end
        stops the ride.
    dt:
        Elapsed time in seconds.

    Returns
    -------
    RideState
        The new state.  Idle rides, a missing curve and a curve shorter
        than ``min_length`` return ``state`` unchanged.
    """
    if not state.is_riding or curve is None:
        return state
    length = curve.get_length()
    if length < min_length:
        return state

    height = float(curve.get_point(state.progress)[1])
    speed, max_height, _ = ride_speed(state, height, params, first_peak_t)
    progress = state.progress + speed * dt / length

    if progress >= 1.0:
        if not closed:
            return replace(
                state,
                phase=RidePhase.IDLE,
                progress=0.0,
                max_height_reached=max_height,
                speed=0.0,
            )
        progress %= 1.0
        if state.chain_lift_active:
            max_height = float(curve.get_point(0.0)[1])

    # phase reflects where the car ends up after this tick
    if state.chain_lift_active and progress < first_peak_t:
        phase = RidePhase.CLIMB
    else:
        phase = RidePhase.COAST

    return replace(
        state,
        phase=phase,
        progress=progress,
        max_height_reached=max_height,
        speed=speed,
    )
