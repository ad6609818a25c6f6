import sys
from dataclasses import replace
from pathlib import Path

import numpy as np
import pytest

# Add the ``src`` directory to the import path for test execution.
sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from ride_physics import (
    RideParams,
    RidePhase,
    RideState,
    advance_ride,
    find_first_peak,
    start_ride,
)
from track_curve import TrackCurve
from track_points import ControlPoint


def _curve(coords, closed=False):
    return TrackCurve([ControlPoint(f"p{i}", c) for i, c in enumerate(coords)], closed)


def _flat_curve():
    return _curve([(0.0, 0.0, 0.0), (10.0, 0.0, 0.0)])


def _lift_hill_curve(closed=False):
    heights = [0.0, 5.0, 15.0, 20.0, 10.0, 2.0, 2.0, 2.0, 2.0]
    coords = [(10.0 * i, h, 0.0) for i, h in enumerate(heights)]
    if closed:
        coords += [(80.0, 2.0, 30.0), (0.0, 0.0, 30.0)]
    return _curve(coords, closed)


def test_first_peak_of_lift_hill() -> None:
    peak = find_first_peak(_lift_hill_curve())
    assert 0.3 <= peak <= 0.45


def test_first_peak_fallback_without_climb() -> None:
    assert find_first_peak(_flat_curve()) == 0.2
    descending = _curve([(0.0, 20.0, 0.0), (10.0, 10.0, 0.0), (20.0, 0.0, 0.0)])
    assert find_first_peak(descending) == 0.2


def test_first_peak_without_curve() -> None:
    assert find_first_peak(None) == 0.0


def test_first_peak_of_endless_climb_stays_in_range() -> None:
    climb = _curve([(0.0, 0.0, 0.0), (10.0, 10.0, 0.0), (20.0, 20.0, 0.0)])
    peak = find_first_peak(climb)
    assert 0.0 <= peak <= 0.5
    assert np.isclose(peak, 0.5)


def test_start_ride_phases() -> None:
    curve = _lift_hill_curve()
    lift = start_ride(curve, speed_multiplier=2.0, chain_lift=True)
    assert lift.phase is RidePhase.CLIMB
    assert lift.progress == 0.0
    assert lift.speed_multiplier == 2.0
    assert np.isclose(lift.max_height_reached, curve.get_point(0.0)[1])

    coast = start_ride(curve, chain_lift=False)
    assert coast.phase is RidePhase.COAST
    assert start_ride(None).phase is RidePhase.IDLE


def test_idle_state_is_not_advanced() -> None:
    state = RideState()
    assert advance_ride(state, _flat_curve(), RideParams(), 0.2, False, 1.0) is state


def test_zero_length_curve_is_a_noop() -> None:
    curve = _curve([(1.0, 1.0, 1.0), (1.0, 1.0, 1.0)])
    state = start_ride(curve, chain_lift=False)
    assert advance_ride(state, curve, RideParams(), 0.2, False, 1.0) is state


def test_chain_lift_speed() -> None:
    curve = _lift_hill_curve()
    params = RideParams(chain_speed=0.9)
    state = start_ride(curve, speed_multiplier=1.5, chain_lift=True)
    new = advance_ride(state, curve, params, 0.35, False, 0.5)
    assert new.phase is RidePhase.CLIMB
    assert np.isclose(new.speed, 0.9 * 1.5)
    assert np.isclose(new.progress, 0.9 * 1.5 * 0.5 / curve.get_length())


def test_coast_speed_from_height_drop() -> None:
    curve = _flat_curve()
    params = RideParams(min_ride_speed=1.0, gravity=19.6)
    state = RideState(
        phase=RidePhase.COAST, progress=0.1, max_height_reached=10.0, speed_multiplier=2.0
    )
    new = advance_ride(state, curve, params, 0.2, False, 0.01)
    assert np.isclose(new.speed, np.sqrt(2 * 19.6 * 10.0) * 2.0)
    assert new.max_height_reached == 10.0


def test_coast_speed_floor() -> None:
    curve = _flat_curve()
    params = RideParams(min_ride_speed=1.25)
    state = start_ride(curve, speed_multiplier=0.5, chain_lift=False)
    new = advance_ride(state, curve, params, 0.2, False, 0.1)
    assert np.isclose(new.speed, 1.25 * 0.5)


def test_coast_speed_never_below_floor_along_ride() -> None:
    curve = _lift_hill_curve()
    params = RideParams()
    state = start_ride(curve, speed_multiplier=0.8, chain_lift=False)
    for _ in range(10000):
        state = advance_ride(state, curve, params, 0.35, False, 0.05)
        if state.phase is RidePhase.IDLE:
            break
        assert state.speed >= params.min_ride_speed * 0.8 - 1e-12
    assert state.phase is RidePhase.IDLE


def test_max_height_tracks_highest_point() -> None:
    curve = _lift_hill_curve()
    state = start_ride(curve, chain_lift=True)
    peak = find_first_peak(curve)
    heights = []
    for _ in range(10000):
        heights.append(float(curve.get_point(state.progress)[1]))
        state = advance_ride(state, curve, RideParams(), peak, False, 0.1)
        if state.phase is RidePhase.IDLE:
            break
        assert np.isclose(state.max_height_reached, max(heights))


def test_closed_track_wrap_resets_lift() -> None:
    curve = _lift_hill_curve(closed=True)
    state = RideState(
        phase=RidePhase.COAST,
        progress=0.999,
        max_height_reached=50.0,
        chain_lift_active=True,
    )
    new = advance_ride(state, curve, RideParams(), 0.3, True, 1.0)
    assert 0.0 <= new.progress < 1.0
    assert new.progress < state.progress
    assert np.isclose(new.max_height_reached, curve.get_point(0.0)[1])
    assert new.phase is RidePhase.CLIMB


def test_closed_track_wrap_without_lift_keeps_history() -> None:
    curve = _lift_hill_curve(closed=True)
    state = RideState(phase=RidePhase.COAST, progress=0.999, max_height_reached=50.0)
    new = advance_ride(state, curve, RideParams(), 0.3, True, 1.0)
    assert new.progress < 1.0
    assert new.max_height_reached == 50.0
    assert new.phase is RidePhase.COAST


def test_open_track_end_stops_ride() -> None:
    curve = _lift_hill_curve()
    state = replace(start_ride(curve, chain_lift=False), progress=0.999)
    new = advance_ride(state, curve, RideParams(), 0.3, False, 10.0)
    assert new.phase is RidePhase.IDLE
    assert new.progress == 0.0
    assert not new.is_riding


def test_flat_open_track_terminates() -> None:
    curve = _flat_curve()
    params = RideParams(min_ride_speed=1.0)
    state = start_ride(curve, chain_lift=False)
    ticks = 0
    while state.is_riding:
        state = advance_ride(state, curve, params, find_first_peak(curve), False, 1.0)
        ticks += 1
        assert ticks < 100
    assert 10 <= ticks <= 11
    assert state.progress == 0.0


def test_params_from_mapping() -> None:
    params = RideParams.from_mapping({"chain_speed": 2.0, "gravity": 9.8, "gravity_scale": 2.0})
    assert params.chain_speed == 2.0
    assert params.min_ride_speed == RideParams().min_ride_speed
    assert np.isclose(params.gravity, 19.6)
    assert np.isclose(RideParams.from_mapping({}).gravity, 9.8 * 2.0)


@pytest.mark.parametrize(
    "mapping",
    [{"chain_speed": 0.0}, {"min_ride_speed": -1.0}, {"gravity": -9.8}],
)
def test_params_from_mapping_rejects_invalid(mapping) -> None:
    with pytest.raises(ValueError):
        RideParams.from_mapping(mapping)


def test_phase_reports_position_after_tick() -> None:
    curve = _lift_hill_curve()
    params = RideParams(chain_speed=0.9)
    state = replace(start_ride(curve, chain_lift=True), progress=0.349)
    new = advance_ride(state, curve, params, 0.35, False, 1.0)
    assert new.progress > 0.35
    # the lift still set this tick's speed, but the car is now past the peak
    assert np.isclose(new.speed, 0.9)
    assert new.phase is RidePhase.COAST


def test_start_ride_clamps_negative_multiplier() -> None:
    curve = _flat_curve()
    state = start_ride(curve, speed_multiplier=-1.0, chain_lift=False)
    assert state.speed_multiplier == 0.0
    new = advance_ride(state, curve, RideParams(), 0.2, False, 0.5)
    assert new.speed >= 0.0
    assert 0.0 <= new.progress < 1.0
