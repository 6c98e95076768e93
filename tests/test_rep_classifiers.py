"""Per-exercise hysteresis state machines."""

import pytest

from pose_builders import (
    CLOSED_JACK,
    OPEN_JACK,
    burpee_frame,
    high_knee_frame,
    hinge_frame,
    jack_frame,
    pull_up_frame,
    run,
)
from repcounter.cv import calibration as calib
from repcounter.cv.bar_reference import BarReference
from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.cv.exercise_state import DecisionKind, ExerciseState, Phase, Side
from repcounter.cv.landmarks import MediaPipeLandmark as L
from repcounter.cv.rep_classifiers import (
    ClassifierRegistry,
    SquatClassifier,
    create_default_registry,
    get_classifier,
)


def _events(states):
    return [(s.decision.kind, s.decision.message) for s in states if s.decision.is_event]


def _squat_frames(times, angles):
    return [hinge_frame(t, a) for t, a in zip(times, angles)]


# =============================================================================
# Hinge family
# =============================================================================

def test_squat_full_rep_counts_once() -> None:
    """175, 175, 100, 100, 175 with 1100ms from the bottom to standing."""
    squats = get_classifier("squats")
    states = run(squats, _squat_frames([0, 300, 600, 900, 1700], [175, 175, 100, 100, 175]))

    assert [s.phase for s in states] == [Phase.UP, Phase.UP, Phase.DOWN, Phase.DOWN, Phase.UP]
    assert states[-1].rep_count == 1
    assert _events(states) == [(DecisionKind.REP, "Rep counted.")]
    assert states[-1].decision.rom_pct == 100.0
    assert states[-1].progress.reached_extreme is False


def test_squat_too_fast_is_rejected() -> None:
    squats = get_classifier("squats")
    states = run(squats, _squat_frames([0, 300, 600, 900, 1200], [175, 175, 100, 100, 175]))

    assert states[-1].rep_count == 0
    assert states[-1].decision.kind == DecisionKind.REJECT
    assert "too fast" in states[-1].decision.message.lower()


def test_shallow_squat_never_enters_down() -> None:
    squats = get_classifier("squats")
    states = run(squats, _squat_frames([0, 300, 600, 900, 1700], [175, 140, 140, 140, 175]))

    assert Phase.DOWN not in [s.phase for s in states]
    assert _events(states) == []


def test_debounce_ignores_quick_transition() -> None:
    """A valid DOWN reading 100ms after the last phase change is ignored."""
    squats = get_classifier("squats")
    states = run(squats, _squat_frames([0, 100, 400], [175, 100, 100]))
    assert [s.phase for s in states] == [Phase.UP, Phase.UP, Phase.DOWN]


def test_visibility_gap_preserves_counting_state() -> None:
    squats = get_classifier("squats")
    states = run(squats, _squat_frames([0, 300, 600, 900, 1700], [175, 175, 100, 100, 175]))
    states = run(squats, _squat_frames([2000], [100]), state=states[-1])

    hidden = [hinge_frame(t, 175, hidden=[L.LEFT_KNEE]) for t in (2300, 2400, 2500)]
    gap = run(squats, hidden, state=states[-1])

    assert all(s.phase == Phase.UNKNOWN for s in gap)
    assert all(s.rep_count == 1 for s in gap)
    assert all(s.progress == states[-1].progress for s in gap)
    assert all(not s.decision.is_event for s in gap)

    # No-pose frames behave the same
    lost = squats.classify(gap[-1], None, 2600)
    assert lost.phase == Phase.UNKNOWN
    assert lost.rep_count == 1


def test_calibrated_band_matches_default_transitions() -> None:
    """Calibrating top=175 / bottom=105 keeps the same phase sequence."""
    squats = get_classifier("squats")
    profile = calib.capture(squats, None, hinge_frame(0, 175), step=0)
    profile = calib.capture(squats, profile, hinge_frame(0, 105), step=1)
    assert profile.values["top_angle"] == pytest.approx(175.0)
    assert profile.values["bottom_angle"] == pytest.approx(105.0)

    band = squats.band(profile)
    assert band.down_enter == pytest.approx(115.0)
    assert band.up_enter == pytest.approx(167.0)

    frames = _squat_frames([0, 300, 600, 900, 1700], [175, 175, 100, 100, 175])
    default = run(squats, frames)
    calibrated = run(squats, frames, calibration=profile)

    assert [s.phase for s in calibrated] == [s.phase for s in default]
    assert calibrated[-1].rep_count == default[-1].rep_count == 1


def test_classify_is_pure() -> None:
    squats = get_classifier("squats")
    prev = ExerciseState.initial("squats")
    frame = hinge_frame(0, 175)
    first = squats.classify(prev, frame, 0)
    second = squats.classify(prev, frame, 0)
    assert first == second
    assert prev == ExerciseState.initial("squats")


def test_decision_id_bumps_only_on_events() -> None:
    squats = get_classifier("squats")
    states = run(squats, _squat_frames([0, 300, 600, 900, 1700], [175, 175, 100, 100, 175]))
    assert [s.decision_id for s in states] == [0, 0, 0, 0, 1]


def test_lunge_reports_working_side() -> None:
    lunges = get_classifier("lunges")
    frames = [hinge_frame(0, 175), hinge_frame(300, 175, right_angle=100)]
    states = run(lunges, frames)

    assert states[-1].phase == Phase.DOWN
    assert states[-1].feedback.startswith("Lunge (right) depth:")
    assert states[-1].feedback.endswith("Push up.")


def test_lunge_gap_feedback() -> None:
    lunges = get_classifier("lunges")
    state = lunges.classify(
        ExerciseState.initial("lunges"), hinge_frame(0, 175, hidden=[L.LEFT_ANKLE]), 0
    )
    assert state.feedback == "Step back so hips/knees/ankles are visible."


def test_jump_squat_landing_too_fast() -> None:
    jump = get_classifier("jump_squats")
    states = run(jump, _squat_frames([0, 250, 500], [175, 100, 175]))
    assert states[-1].decision.message == "Too fast. Control the landing."
    assert states[-1].rep_count == 0


def test_jump_squat_counts_with_shorter_interval() -> None:
    jump = get_classifier("jump_squats")
    states = run(jump, _squat_frames([0, 250, 850], [175, 100, 175]))
    assert states[-1].rep_count == 1


# =============================================================================
# Open/close
# =============================================================================

def test_jumping_jack_counts_on_close() -> None:
    jacks = get_classifier("jumping_jacks")
    frames = [
        jack_frame(0, **CLOSED_JACK),
        jack_frame(200, **OPEN_JACK),
        jack_frame(400, **OPEN_JACK),
        jack_frame(800, **CLOSED_JACK),
    ]
    states = run(jacks, frames)

    assert [s.phase for s in states] == [Phase.CLOSED, Phase.OPEN, Phase.OPEN, Phase.CLOSED]
    assert states[-1].rep_count == 1
    assert states[-1].decision.rom_pct == 90.0
    assert states[1].feedback == "Open: 90% legs, 100% arms."


def test_jumping_jack_needs_arms_and_legs() -> None:
    jacks = get_classifier("jumping_jacks")
    frames = [
        jack_frame(0, **CLOSED_JACK),
        jack_frame(200, ratio=1.6, arms_lift=-0.3),
        jack_frame(400, ratio=1.0, arms_lift=0.1),
        jack_frame(800, **CLOSED_JACK),
    ]
    states = run(jacks, frames)
    assert all(s.phase == Phase.CLOSED for s in states)
    assert _events(states) == []


def test_jumping_jack_hysteresis_holds_open() -> None:
    """Spread 1.3 cannot open the legs but keeps them open."""
    jacks = get_classifier("jumping_jacks")
    frames = [
        jack_frame(0, **CLOSED_JACK),
        jack_frame(200, ratio=1.3, arms_lift=0.1),
        jack_frame(400, **OPEN_JACK),
        jack_frame(700, ratio=1.3, arms_lift=0.1),
    ]
    states = run(jacks, frames)
    assert [s.phase for s in states] == [Phase.CLOSED, Phase.CLOSED, Phase.OPEN, Phase.OPEN]


# =============================================================================
# Alternating lift
# =============================================================================

def test_high_knees_count_alternating_lifts() -> None:
    knees = get_classifier("high_knees")
    frames = [
        high_knee_frame(0),
        high_knee_frame(100, left_lift=0.1),
        high_knee_frame(200),
        high_knee_frame(500, right_lift=0.1),
        high_knee_frame(600),
        high_knee_frame(1000, right_lift=0.1),
        high_knee_frame(1100),
        high_knee_frame(1200, left_lift=0.1),
    ]
    states = run(knees, frames)

    assert states[-1].rep_count == 3
    assert _events(states) == [
        (DecisionKind.REP, "Rep counted."),
        (DecisionKind.REP, "Rep counted."),
        (DecisionKind.REJECT, "Alternate legs for clean reps."),
        (DecisionKind.REP, "Rep counted."),
    ]


def test_high_knees_holding_a_lift_counts_once() -> None:
    knees = get_classifier("high_knees")
    frames = [high_knee_frame(t, left_lift=0.1) for t in (0, 400, 800, 1200)]
    states = run(knees, frames)
    assert states[-1].rep_count == 1
    assert _events(states) == [(DecisionKind.REP, "Rep counted.")] + [
        (DecisionKind.REJECT, "Alternate legs for clean reps.")
    ] * 3


def test_high_knees_direct_switch_counts() -> None:
    """Switching knees with no frame where both feet are down."""
    knees = get_classifier("high_knees")
    frames = [
        high_knee_frame(0, left_lift=0.1),
        high_knee_frame(400, right_lift=0.1),
        high_knee_frame(800, left_lift=0.1),
    ]
    states = run(knees, frames)
    assert [s.rep_count for s in states] == [1, 2, 3]
    assert [s.progress.last_side for s in states] == [Side.LEFT, Side.RIGHT, Side.LEFT]


def test_high_knees_held_switch_counts_after_cooldown() -> None:
    knees = get_classifier("high_knees")
    frames = [
        high_knee_frame(0, left_lift=0.1),
        high_knee_frame(200, right_lift=0.1),
        high_knee_frame(350, right_lift=0.1),
    ]
    states = run(knees, frames)
    assert [s.rep_count for s in states] == [1, 1, 2]
    assert states[1].decision.kind == DecisionKind.NONE
    assert states[2].decision.kind == DecisionKind.REP


def test_high_knees_too_quick_switch_is_ignored() -> None:
    knees = get_classifier("high_knees")
    frames = [
        high_knee_frame(0),
        high_knee_frame(100, left_lift=0.1),
        high_knee_frame(150),
        high_knee_frame(200, right_lift=0.1),
    ]
    states = run(knees, frames)
    assert states[-1].rep_count == 1


# =============================================================================
# Multi-gate
# =============================================================================

def test_burpee_configurations_precedence() -> None:
    burpees = get_classifier("burpees")
    assert burpees.configurations(burpee_frame(0, "stand")) == (True, False, False)
    assert burpees.configurations(burpee_frame(0, "crouch")) == (False, True, False)
    stand, crouch, plank = burpees.configurations(burpee_frame(0, "plank"))
    assert plank and crouch and not stand


def test_burpee_counts_after_plank() -> None:
    burpees = get_classifier("burpees")
    frames = [
        burpee_frame(0, "stand"),
        burpee_frame(300, "crouch"),
        burpee_frame(600, "plank"),
        burpee_frame(1000, "crouch"),
        burpee_frame(1700, "stand"),
    ]
    states = run(burpees, frames)

    assert [s.phase for s in states] == [Phase.UP, Phase.DOWN, Phase.OPEN, Phase.DOWN, Phase.UP]
    assert states[-1].rep_count == 1
    assert states[-1].decision.rom_pct is None


def test_burpee_without_plank_is_rejected() -> None:
    burpees = get_classifier("burpees")
    frames = [burpee_frame(0, "stand"), burpee_frame(300, "crouch"), burpee_frame(1400, "stand")]
    states = run(burpees, frames)
    assert states[-1].decision.message == "Hit a solid plank position."
    assert states[-1].rep_count == 0


def test_burpees_are_not_calibratable() -> None:
    burpees = get_classifier("burpees")
    assert not burpees.calibratable
    assert burpees.measure(burpee_frame(0, "stand")) is None


# =============================================================================
# Reference line
# =============================================================================

BAR = BarReference(y=0.3, x_min=0.4, x_max=0.6)


def test_pull_up_counts_on_return_to_hang() -> None:
    pull_ups = get_classifier("pull_ups")
    frames = [
        pull_up_frame(0, BAR.y, lift=-0.2, elbow_angle=175),
        pull_up_frame(300, BAR.y, lift=0.05, elbow_angle=60),
        pull_up_frame(1300, BAR.y, lift=-0.2, elbow_angle=175),
    ]
    states = run(pull_ups, frames, bar=BAR)

    assert [s.phase for s in states] == [Phase.DOWN, Phase.UP, Phase.DOWN]
    assert states[-1].rep_count == 1
    assert states[1].feedback == "Chin over bar. Lower to a full hang."


def test_pull_up_fast_descent_rejected() -> None:
    pull_ups = get_classifier("pull_ups")
    frames = [
        pull_up_frame(0, BAR.y, lift=-0.2, elbow_angle=175),
        pull_up_frame(300, BAR.y, lift=0.05, elbow_angle=60),
        pull_up_frame(700, BAR.y, lift=-0.2, elbow_angle=175),
    ]
    states = run(pull_ups, frames, bar=BAR)
    assert states[-1].decision.message == "Too fast. Control the descent."


def test_pull_up_requires_bar() -> None:
    pull_ups = get_classifier("pull_ups")
    state = pull_ups.classify(
        ExerciseState.initial("pull_ups"), pull_up_frame(0, 0.3, -0.2, 175), 0
    )
    assert state.phase == Phase.UNKNOWN
    assert state.feedback == "Set the bar position first."


def test_pull_up_requires_grip_on_bar() -> None:
    chin_ups = get_classifier("chin_ups")
    frame = pull_up_frame(0, BAR.y, -0.2, 175, wrist_offset=0.2)
    state = chin_ups.classify(ExerciseState.initial("chin_ups"), frame, 0, bar=BAR)
    assert state.phase == Phase.UNKNOWN
    assert state.feedback == "Grip the bar to start."


# =============================================================================
# Registry
# =============================================================================

def test_default_registry_has_every_exercise() -> None:
    registry = create_default_registry()
    assert set(registry.exercise_ids()) == {
        "jumping_jacks", "squats", "lunges", "high_knees",
        "jump_squats", "burpees", "pull_ups", "chin_ups",
    }
    assert "squats" in registry


def test_unknown_exercise_raises() -> None:
    with pytest.raises(ValueError, match="Unsupported exercise"):
        get_classifier("deadlifts")


def test_duplicate_registration_raises() -> None:
    registry = ClassifierRegistry([SquatClassifier()])
    with pytest.raises(ValueError):
        registry.register(SquatClassifier())
