"""Manual and hands-free calibration."""

import pytest

from pose_builders import CLOSED_JACK, OPEN_JACK, hinge_frame, jack_frame, pull_up_frame
from repcounter.cv import calibration as calib
from repcounter.cv.bar_reference import BarReference
from repcounter.cv.calibration import CalibrationStatus
from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.cv.landmarks import MediaPipeLandmark as L
from repcounter.cv.rep_classifiers import get_classifier

squats = get_classifier("squats")


def _feed(state, classifier, frames, profile=None, bar=None, **kwargs):
    """Run hands-free sampling; returns (state, latest captured profile, capture times)."""
    captured_at = []
    for frame in frames:
        state, captured = calib.update(
            state, classifier, profile, frame, frame.timestamp_ms, bar=bar, **kwargs
        )
        if captured is not None:
            profile = captured
            captured_at.append(frame.timestamp_ms)
    return state, profile, captured_at


def _frames(times, angle):
    return [hinge_frame(t, angle) for t in times]


# =============================================================================
# Manual capture
# =============================================================================

def test_manual_capture_keeps_other_step() -> None:
    prior = CalibrationProfile("squats", {"top_angle": 172.0, "bottom_angle": 95.0})
    profile = calib.capture(squats, prior, hinge_frame(0, 120), step=1)

    assert profile.values["bottom_angle"] == pytest.approx(120.0)
    assert profile.values["top_angle"] == 172.0
    # Prior profile untouched
    assert prior.values["bottom_angle"] == 95.0


def test_manual_capture_fills_defaults() -> None:
    profile = calib.capture(squats, None, hinge_frame(0, 172), step=0)
    assert profile.values["bottom_angle"] == squats.BOTTOM_ANGLE


def test_manual_capture_low_confidence_returns_none() -> None:
    frame = hinge_frame(0, 172, visibility=0.2)
    assert calib.capture(squats, None, frame, step=0) is None
    assert calib.capture(squats, None, None, step=0) is None


def test_manual_capture_invalid_step_or_exercise() -> None:
    with pytest.raises(ValueError):
        calib.capture(squats, None, hinge_frame(0, 172), step=2)
    with pytest.raises(ValueError):
        calib.capture(get_classifier("burpees"), None, hinge_frame(0, 172), step=0)


def test_jumping_jack_capture_writes_ratio_and_lift() -> None:
    jacks = get_classifier("jumping_jacks")
    profile = calib.capture(jacks, None, jack_frame(0, **OPEN_JACK), step=1)
    assert profile.values["open_ratio"] == pytest.approx(1.6)
    assert profile.values["open_lift"] == pytest.approx(0.1)
    assert profile.values["closed_ratio"] == jacks.CALIBRATION_DEFAULTS["closed_ratio"]


def test_pull_up_capture_needs_bar() -> None:
    pull_ups = get_classifier("pull_ups")
    frame = pull_up_frame(0, 0.3, lift=-0.2, elbow_angle=170)
    assert calib.capture(pull_ups, None, frame, step=0) is None

    bar = BarReference(y=0.3, x_min=0.4, x_max=0.6)
    profile = calib.capture(pull_ups, None, frame, step=0, bar=bar)
    assert profile.values["bottom_lift"] == pytest.approx(-0.2)
    assert profile.values["bottom_elbow_angle"] == pytest.approx(170.0)


# =============================================================================
# Hands-free sampling
# =============================================================================

def test_initial_state_samples_only_when_uncalibrated() -> None:
    assert calib.initial_state("squats", has_profile=False, enabled=True).is_sampling
    assert not calib.initial_state("squats", has_profile=True, enabled=True).is_sampling
    assert not calib.initial_state("squats", has_profile=False, enabled=False).is_sampling
    assert not calib.initial_state("burpees", has_profile=False, enabled=True).is_sampling


def test_stability_interrupted_at_890ms_does_not_capture() -> None:
    frames = _frames(range(0, 900, 10), 172)           # stable 0..890ms
    frames.append(hinge_frame(900, 150))                # not top, not bottom
    frames += _frames(range(1000, 1800, 100), 172)      # stable again 800ms

    state, profile, captured_at = _feed(calib.start_sampling(), squats, frames)

    assert captured_at == []
    assert profile is None
    assert state.step == 0
    assert state.stable_ms == pytest.approx(700.0)


def test_full_stability_window_captures_step() -> None:
    frames = _frames(range(0, 1000, 100), 172)
    state, profile, captured_at = _feed(calib.start_sampling(), squats, frames)

    assert captured_at == [900]
    assert state.status == CalibrationStatus.SAMPLING
    assert state.step == 1
    assert profile.values["top_angle"] == pytest.approx(172.0)


def test_gate_failure_resets_stable_duration() -> None:
    frames = _frames(range(0, 600, 100), 172)
    frames.append(hinge_frame(600, 172, hidden=[L.LEFT_KNEE, L.RIGHT_KNEE]))
    frames += _frames(range(700, 1500, 100), 172)

    state, _, captured_at = _feed(calib.start_sampling(), squats, frames)
    assert captured_at == []
    assert state.is_sampling
    assert state.stable_ms == pytest.approx(700.0)


def test_both_steps_complete_with_cooldown() -> None:
    top = _frames(range(0, 1000, 100), 172)
    bottom = _frames(range(1000, 2000, 100), 100)

    state, profile, captured_at = _feed(calib.start_sampling(), squats, top + bottom)

    # Bottom stable from 1000ms, captured after 900ms
    assert captured_at == [900, 1900]
    assert state.status == CalibrationStatus.DONE
    assert profile.values["top_angle"] == pytest.approx(172.0)
    assert profile.values["bottom_angle"] == pytest.approx(100.0)


def test_cooldown_delays_back_to_back_capture() -> None:
    """With a short stability window the cooldown gates the second capture."""
    frames = _frames(range(0, 300, 100), 172) + _frames(range(300, 1400, 100), 100)
    _, _, captured_at = _feed(
        calib.start_sampling(), squats, frames, stable_needed_ms=100.0, cooldown_ms=700.0
    )
    assert captured_at[0] == 100
    assert captured_at[1] - captured_at[0] > 700


def test_sampling_times_out_to_idle() -> None:
    frames = _frames(range(0, 2100, 100), 150)
    state, profile, _ = _feed(calib.start_sampling(), squats, frames, timeout_ms=1500.0)
    assert state == calib.IDLE
    assert profile is None


def test_clock_starts_on_first_frame() -> None:
    """Epoch-style timestamps do not trip the timeout."""
    frames = _frames([1.7e12, 1.7e12 + 100], 150)
    state, _, _ = _feed(calib.start_sampling(), squats, frames, timeout_ms=1500.0)
    assert state.is_sampling
    assert state.sampling_started_ms == 1.7e12


def test_jumping_jack_recipe_predicates() -> None:
    jacks = get_classifier("jumping_jacks")
    recipe = calib.require_recipe("jumping_jacks")
    closed = jacks.measure(jack_frame(0, **CLOSED_JACK))
    opened = jacks.measure(jack_frame(0, **OPEN_JACK))

    assert recipe.step(0).is_stable(closed)
    assert not recipe.step(0).is_stable(opened)
    assert recipe.step(1).is_stable(opened)


def test_state_to_dict_titles_steps() -> None:
    data = calib.start_sampling(0).to_dict("squats")
    assert data["status"] == "sampling"
    assert data["title"] == "Step 1/2: Top position"
    assert data["hint"] == "Stand tall (top of rep)."


def test_state_to_dict_reports_stability_target() -> None:
    state = calib.start_sampling(0)
    assert state.to_dict("squats")["stable_target_ms"] == calib.STABLE_MS
    assert state.to_dict("squats", stable_target_ms=1200.0)["stable_target_ms"] == 1200.0
