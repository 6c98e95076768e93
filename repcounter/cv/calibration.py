"""
Calibration Subsystem

Personalizes classifier thresholds by measuring the athlete's own extremes.

Each calibratable exercise has a two-step recipe (e.g. top / bottom of a
squat). A step can be captured:

1. Manually: the current frame is measured and the step's values are
   written into the profile, the other step keeping its prior or default
   value.
2. Hands-free: each frame is tested against a step-specific stability
   predicate. After STABLE_MS of continuous stability, and COOLDOWN_MS since
   the previous capture, the step is captured and sampling advances. After
   the second step calibration is done.

State machine:
    IDLE ──start──▶ SAMPLING(0) ──capture──▶ SAMPLING(1) ──capture──▶ DONE
      ▲                  │                        │
      └──── timeout / exercise switch / clear ────┘
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Tuple

from repcounter.cv.bar_reference import BarReference
from repcounter.cv.calibration_profile import CalibrationProfile
from repcounter.cv.landmarks import LandmarkFrame
from repcounter.cv.rep_classifiers import ExerciseClassifier

logger = logging.getLogger(__name__)

STABLE_MS = 900.0
COOLDOWN_MS = 700.0

Measurement = Dict[str, float]


class CalibrationStatus(Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    DONE = "done"


@dataclass(frozen=True)
class CalibrationStep:
    """One pose to capture."""
    title: str
    hint: str
    # profile key -> measurement name
    captures: Mapping[str, str]
    is_stable: Callable[[Measurement], bool]

    def values(self, measurement: Measurement) -> Dict[str, float]:
        return {key: measurement[name] for key, name in self.captures.items()}


@dataclass(frozen=True)
class CalibrationRecipe:
    exercise_id: str
    steps: Tuple[CalibrationStep, CalibrationStep]

    def step(self, index: int) -> CalibrationStep:
        if index not in (0, 1):
            raise ValueError(f"Calibration step must be 0 or 1, got {index}")
        return self.steps[index]


# =============================================================================
# Recipes
# =============================================================================

def _hinge_recipe(exercise_id: str) -> CalibrationRecipe:
    return CalibrationRecipe(exercise_id, (
        CalibrationStep(
            title="Top position",
            hint="Stand tall (top of rep).",
            captures={"top_angle": "angle"},
            is_stable=lambda m: m["angle"] > 165,
        ),
        CalibrationStep(
            title="Bottom position",
            hint="Go to your deepest position (bottom of rep).",
            captures={"bottom_angle": "angle"},
            is_stable=lambda m: m["angle"] < 130,
        ),
    ))


def _jumping_jacks_recipe() -> CalibrationRecipe:
    return CalibrationRecipe("jumping_jacks", (
        CalibrationStep(
            title="Closed position",
            hint="Stand with feet together and arms down.",
            captures={"closed_ratio": "ratio", "closed_lift": "lift"},
            is_stable=lambda m: m["ratio"] < 1.25 and m["lift"] < 0.04,
        ),
        CalibrationStep(
            title="Open position",
            hint="Do a full jumping jack: feet wide and arms overhead.",
            captures={"open_ratio": "ratio", "open_lift": "lift"},
            is_stable=lambda m: m["ratio"] > 1.4 and m["lift"] > 0.06,
        ),
    ))


def _high_knees_recipe() -> CalibrationRecipe:
    return CalibrationRecipe("high_knees", (
        CalibrationStep(
            title="Rest position",
            hint="Stand tall with both feet on the ground.",
            captures={"down_lift": "lift"},
            is_stable=lambda m: m["lift"] < 0.04,
        ),
        CalibrationStep(
            title="Knee-up position",
            hint="Lift one knee as high as you can (above hip if possible).",
            captures={"up_lift": "lift"},
            is_stable=lambda m: m["lift"] > 0.09,
        ),
    ))


def _pull_up_recipe(exercise_id: str) -> CalibrationRecipe:
    return CalibrationRecipe(exercise_id, (
        CalibrationStep(
            title="Dead hang",
            hint="Hang from the bar with straight arms.",
            captures={"bottom_lift": "lift", "bottom_elbow_angle": "elbow_angle"},
            is_stable=lambda m: m["elbow_angle"] > 150 and m["lift"] < 0,
        ),
        CalibrationStep(
            title="Top position",
            hint="Pull up and hold your chin over the bar.",
            captures={"top_lift": "lift"},
            is_stable=lambda m: m["lift"] > 0.02,
        ),
    ))


RECIPES: Dict[str, CalibrationRecipe] = {
    "squats": _hinge_recipe("squats"),
    "lunges": _hinge_recipe("lunges"),
    "jump_squats": _hinge_recipe("jump_squats"),
    "jumping_jacks": _jumping_jacks_recipe(),
    "high_knees": _high_knees_recipe(),
    "pull_ups": _pull_up_recipe("pull_ups"),
    "chin_ups": _pull_up_recipe("chin_ups"),
}


def get_recipe(exercise_id: str) -> Optional[CalibrationRecipe]:
    """Recipe for an exercise, or None when it is not calibratable."""
    return RECIPES.get(exercise_id)


def require_recipe(exercise_id: str) -> CalibrationRecipe:
    recipe = RECIPES.get(exercise_id)
    if recipe is None:
        raise ValueError(f"Exercise {exercise_id} does not support calibration")
    return recipe


# =============================================================================
# Sampling state
# =============================================================================

@dataclass(frozen=True)
class CalibrationState:
    """Hands-free calibration progress for the active exercise."""
    status: CalibrationStatus = CalibrationStatus.IDLE
    step: int = 0
    stable_since_ms: Optional[float] = None
    stable_ms: float = 0.0
    last_capture_ms: Optional[float] = None
    sampling_started_ms: Optional[float] = None

    @property
    def is_sampling(self) -> bool:
        return self.status == CalibrationStatus.SAMPLING

    def to_dict(
        self,
        exercise_id: Optional[str] = None,
        stable_target_ms: float = STABLE_MS
    ) -> dict:
        data = {
            "status": self.status.value,
            "step": self.step,
            "stable_ms": self.stable_ms,
            "stable_target_ms": stable_target_ms,
            "title": None,
            "hint": None,
        }
        recipe = get_recipe(exercise_id) if exercise_id else None
        if recipe is not None and self.status != CalibrationStatus.DONE:
            step = recipe.step(self.step)
            data["title"] = f"Step {self.step + 1}/2: {step.title}"
            data["hint"] = step.hint
        return data


IDLE = CalibrationState()


def start_sampling(now_ms: Optional[float] = None) -> CalibrationState:
    """Begin hands-free sampling; without a timestamp the clock starts on the next frame."""
    logger.info("Hands-free calibration sampling started")
    return CalibrationState(status=CalibrationStatus.SAMPLING, sampling_started_ms=now_ms)


def initial_state(
    exercise_id: str,
    has_profile: bool,
    enabled: bool,
    now_ms: Optional[float] = None
) -> CalibrationState:
    """State after selecting an exercise: sample only when uncalibrated."""
    if enabled and not has_profile and get_recipe(exercise_id) is not None:
        return start_sampling(now_ms)
    return IDLE


def _profile_with(
    classifier: ExerciseClassifier,
    profile: Optional[CalibrationProfile],
    values: Mapping[str, float]
) -> CalibrationProfile:
    """Merge captured values over the prior profile, itself over the defaults."""
    base = CalibrationProfile(classifier.exercise_id, classifier.CALIBRATION_DEFAULTS)
    if profile is not None:
        base = base.updated(profile.values)
    return base.updated(values)


def capture(
    classifier: ExerciseClassifier,
    profile: Optional[CalibrationProfile],
    frame: Optional[LandmarkFrame],
    step: int,
    bar: Optional[BarReference] = None
) -> Optional[CalibrationProfile]:
    """
    Manually capture one calibration step from the current frame.

    Returns:
        Updated profile, or None if the frame is missing or not confident
        enough to measure

    Raises:
        ValueError: if the exercise is not calibratable or the step is invalid
    """
    recipe_step = require_recipe(classifier.exercise_id).step(step)
    if frame is None:
        return None

    measurement = classifier.measure(frame, bar)
    if measurement is None:
        logger.info(f"{classifier.exercise_id}: calibration step {step} skipped, low confidence")
        return None

    values = recipe_step.values(measurement)
    logger.info(f"{classifier.exercise_id}: captured calibration step {step}: {values}")
    return _profile_with(classifier, profile, values)


def update(
    state: CalibrationState,
    classifier: ExerciseClassifier,
    profile: Optional[CalibrationProfile],
    frame: Optional[LandmarkFrame],
    now_ms: float,
    bar: Optional[BarReference] = None,
    stable_needed_ms: float = STABLE_MS,
    cooldown_ms: float = COOLDOWN_MS,
    timeout_ms: Optional[float] = None
) -> Tuple[CalibrationState, Optional[CalibrationProfile]]:
    """
    Advance hands-free calibration by one frame.

    Returns:
        (new state, new profile if a step was captured on this frame else None)
    """
    if not state.is_sampling:
        return state, None
    if state.sampling_started_ms is None:
        state = replace(state, sampling_started_ms=now_ms)

    if (
        timeout_ms is not None
        and now_ms - state.sampling_started_ms > timeout_ms
    ):
        logger.warning(f"{classifier.exercise_id}: calibration sampling timed out "
                      f"after {timeout_ms:.0f}ms, back to idle")
        return IDLE, None

    recipe = get_recipe(classifier.exercise_id)
    if recipe is None:
        return IDLE, None

    measurement = classifier.measure(frame, bar) if frame is not None else None
    stable = measurement is not None and recipe.step(state.step).is_stable(measurement)
    if not stable:
        return replace(state, stable_since_ms=None, stable_ms=0.0), None

    stable_since = state.stable_since_ms if state.stable_since_ms is not None else now_ms
    stable_ms = now_ms - stable_since
    cooldown_ok = state.last_capture_ms is None or now_ms - state.last_capture_ms > cooldown_ms

    if stable_ms < stable_needed_ms or not cooldown_ok:
        return replace(state, stable_since_ms=stable_since, stable_ms=stable_ms), None

    new_profile = _profile_with(classifier, profile, recipe.step(state.step).values(measurement))
    if state.step == 0:
        logger.info(f"{classifier.exercise_id}: calibrated step 1/2")
        next_state = replace(
            state, step=1, stable_since_ms=None, stable_ms=0.0, last_capture_ms=now_ms
        )
    else:
        logger.info(f"{classifier.exercise_id}: calibration complete {new_profile.values}")
        next_state = CalibrationState(status=CalibrationStatus.DONE, last_capture_ms=now_ms)
    return next_state, new_profile
