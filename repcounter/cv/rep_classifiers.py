"""
Exercise Rep Classifiers

Per-exercise hysteresis state machines over smoothed landmark frames.

SHARED ALGORITHM:
1. Confidence gate on the required landmarks. Failure forces the UNKNOWN
   phase and leaves rep count and progress untouched.
2. Scalar discriminant: a joint angle, a normalized ratio or a lift distance.
3. Dual-threshold hysteresis: the threshold to ENTER a phase is stricter than
   the threshold to STAY in it.
4. Debounce: a phase change is honored only after MIN_PHASE_MS.
5. Counting edge: leaving the inner phase counts a rep when the extreme was
   reached and MIN_REP_MS elapsed since the last rep, otherwise the attempt
   is rejected with a reason.

SUPPORTED FAMILIES:
- Open/close (jumping jacks): leg spread ratio AND arm lift
- Hinge angle (squats, lunges, jump squats): smallest knee angle
- Alternating lift (high knees): per-side knee lift, counted on alternation
- Multi-gate (burpees): stand / crouch / plank body configurations
- Reference line (pull-ups, chin-ups): face above the bar AND elbow extension

The threshold literals below reproduce recorded counting behavior and must
not be tuned casually.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from repcounter.cv.bar_reference import BarReference
from repcounter.cv.calibration_profile import CalibrationProfile, resolve
from repcounter.cv.exercise_state import (
    Decision,
    ExerciseState,
    NO_DECISION,
    Phase,
    RepProgress,
    Side,
)
from repcounter.cv.geometry import angle_at_vertex, clamp01, distance, safe_ratio
from repcounter.cv.landmarks import BodyGroup, LandmarkFrame, MediaPipeLandmark as L

logger = logging.getLogger(__name__)

# Visibility used when measuring a frame for calibration
CALIBRATION_MIN_VISIBILITY = 0.35


def _above(value: float, in_phase: bool, enter: float, exit: float) -> bool:
    """Hysteresis test for phases entered by exceeding a threshold."""
    return value > exit if in_phase else value > enter


def _below(value: float, in_phase: bool, enter: float, exit: float) -> bool:
    """Hysteresis test for phases entered by dropping under a threshold."""
    return value < exit if in_phase else value < enter


def _pct(fraction: float) -> float:
    """Fraction to the whole percentage shown in feedback."""
    return float(round(clamp01(fraction) * 100))


def _knee_angles(frame: LandmarkFrame) -> Tuple[float, float]:
    left = angle_at_vertex(frame.get(L.LEFT_HIP), frame.get(L.LEFT_KNEE), frame.get(L.LEFT_ANKLE))
    right = angle_at_vertex(frame.get(L.RIGHT_HIP), frame.get(L.RIGHT_KNEE), frame.get(L.RIGHT_ANKLE))
    return left, right


def _elbow_angles(frame: LandmarkFrame) -> Tuple[float, float]:
    left = angle_at_vertex(frame.get(L.LEFT_SHOULDER), frame.get(L.LEFT_ELBOW), frame.get(L.LEFT_WRIST))
    right = angle_at_vertex(frame.get(L.RIGHT_SHOULDER), frame.get(L.RIGHT_ELBOW), frame.get(L.RIGHT_WRIST))
    return left, right


# =============================================================================
# SECTION 1: Classifier Base
# =============================================================================

class ExerciseClassifier(ABC):
    """
    Strategy for one exercise.

    classify() is a pure function of its inputs: it never mutates prev and
    returns a new ExerciseState carrying this frame's Decision.
    """

    exercise_id: str = ""
    display_name: str = ""

    # landmark index -> minimum visibility
    GATE: Dict[int, float] = {}
    # landmarks per body group, for tracking health hints
    TRACKING_GROUPS: Dict[BodyGroup, Tuple[int, ...]] = {}

    MIN_PHASE_MS = 200.0
    MIN_REP_MS = 650.0

    # None keeps the previous feedback on a visibility gap
    GATE_FEEDBACK: Optional[str] = None
    TOO_FAST_MESSAGE = "Too fast. Slow down."
    SHALLOW_MESSAGE = "Not deep enough."

    # Named extremes captured by calibration, with uncalibrated defaults
    CALIBRATION_DEFAULTS: Dict[str, float] = {}

    def __init__(self, exercise_id: Optional[str] = None, display_name: Optional[str] = None):
        if exercise_id is not None:
            self.exercise_id = exercise_id
        if display_name is not None:
            self.display_name = display_name
        if not self.exercise_id:
            raise ValueError(f"{type(self).__name__} requires an exercise_id")

    @property
    def calibratable(self) -> bool:
        return bool(self.CALIBRATION_DEFAULTS)

    def is_visible(self, frame: LandmarkFrame, min_visibility: Optional[float] = None) -> bool:
        """Confidence gate; min_visibility overrides the per-landmark thresholds."""
        return all(
            frame.confident(idx, min_visibility if min_visibility is not None else conf) is not None
            for idx, conf in self.GATE.items()
        )

    def classify(
        self,
        prev: ExerciseState,
        frame: Optional[LandmarkFrame],
        now_ms: float,
        calibration: Optional[CalibrationProfile] = None,
        bar: Optional[BarReference] = None
    ) -> ExerciseState:
        """
        Advance the state machine by one frame.

        Args:
            prev: State after the previous frame
            frame: Smoothed landmarks, or None when no pose was detected
            now_ms: Frame timestamp in milliseconds
            calibration: Profile for this exercise, None for defaults
            bar: Reference line, used by reference-line exercises only

        Returns:
            New ExerciseState with this frame's decision attached
        """
        if frame is None or not self.is_visible(frame):
            return self._lost(prev)
        return self._update(prev, frame, now_ms, calibration, bar)

    @abstractmethod
    def _update(
        self,
        prev: ExerciseState,
        frame: LandmarkFrame,
        now_ms: float,
        calibration: Optional[CalibrationProfile],
        bar: Optional[BarReference]
    ) -> ExerciseState:
        """Run the state machine on a frame that passed the gate."""

    @abstractmethod
    def measure(
        self,
        frame: LandmarkFrame,
        bar: Optional[BarReference] = None
    ) -> Optional[Dict[str, float]]:
        """
        Raw discriminant values for calibration, or None if the frame is not
        usable at CALIBRATION_MIN_VISIBILITY.
        """

    def _lost(self, prev: ExerciseState, feedback: Optional[str] = None) -> ExerciseState:
        """Visibility gap: UNKNOWN phase, counting state preserved."""
        message = feedback if feedback is not None else self.GATE_FEEDBACK
        return replace(
            prev,
            phase=Phase.UNKNOWN,
            feedback=message if message is not None else prev.feedback,
            rom_pct=None,
            decision=NO_DECISION,
        )

    def _debounced(self, prev: ExerciseState, now_ms: float) -> bool:
        return now_ms - prev.last_phase_change_ms > self.MIN_PHASE_MS

    def _rep_interval_ok(
        self,
        last_rep_ms: Optional[float],
        progress: RepProgress,
        now_ms: float
    ) -> bool:
        """
        Inter-rep gate. Before the first rep the interval runs from the
        start of the current attempt.
        """
        reference = last_rep_ms if last_rep_ms is not None else progress.attempt_started_ms
        if reference is None:
            return True
        return now_ms - reference > self.MIN_REP_MS

    def _settle_attempt(
        self,
        prev: ExerciseState,
        progress: RepProgress,
        now_ms: float
    ) -> Tuple[int, Optional[float], RepProgress, Decision]:
        """Resolve a counting-edge transition into a rep or a rejection."""
        if progress.reached_extreme and self._rep_interval_ok(prev.last_rep_ms, progress, now_ms):
            rep_count = prev.rep_count + 1
            logger.info(f"{self.exercise_id}: rep {rep_count} counted at {now_ms:.0f}ms "
                       f"(rom={progress.peak_rom_pct})")
            return rep_count, now_ms, progress.counted(), Decision.rep(rom_pct=progress.peak_rom_pct)

        message = self.TOO_FAST_MESSAGE if progress.reached_extreme else self.SHALLOW_MESSAGE
        logger.info(f"{self.exercise_id}: attempt rejected at {now_ms:.0f}ms: {message}")
        return prev.rep_count, prev.last_rep_ms, progress, Decision.reject(message)

    def _finish(
        self,
        prev: ExerciseState,
        next_phase: Phase,
        now_ms: float,
        progress: RepProgress,
        feedback: str,
        rom_pct: Optional[float],
        rep_count: int,
        last_rep_ms: Optional[float],
        decision: Decision
    ) -> ExerciseState:
        changed = next_phase != prev.phase
        if changed:
            logger.debug(f"{self.exercise_id}: {prev.phase.name} → {next_phase.name} "
                        f"at {now_ms:.0f}ms")
        state = replace(
            prev,
            phase=next_phase,
            rep_count=rep_count,
            last_phase_change_ms=now_ms if changed else prev.last_phase_change_ms,
            last_rep_ms=last_rep_ms,
            progress=progress,
            feedback=feedback,
            rom_pct=rom_pct,
        )
        return state.with_decision(decision)


@dataclass(frozen=True)
class Reading:
    """Hysteresis verdicts and feedback for one frame of a two-phase exercise."""
    inner: bool
    outer: bool
    feedback: str
    rom_pct: Optional[float] = None
    side: Optional[Side] = None


class TwoPhaseClassifier(ExerciseClassifier):
    """
    Template for exercises alternating between an OUTER rest phase and an
    INNER extreme phase. A rep is counted on the INNER → OUTER edge.
    """

    INNER: Phase = Phase.DOWN
    OUTER: Phase = Phase.UP

    @abstractmethod
    def read(
        self,
        prev_phase: Phase,
        frame: LandmarkFrame,
        calibration: Optional[CalibrationProfile],
        bar: Optional[BarReference]
    ) -> Reading:
        """Evaluate the discriminant against the hysteresis band."""

    def _update(self, prev, frame, now_ms, calibration, bar):
        reading = self.read(prev.phase, frame, calibration, bar)

        next_phase = prev.phase
        if prev.phase == Phase.UNKNOWN:
            next_phase = self.INNER if reading.inner else self.OUTER
        elif self._debounced(prev, now_ms):
            if prev.phase == self.OUTER and reading.inner:
                next_phase = self.INNER
            elif prev.phase == self.INNER and reading.outer:
                next_phase = self.OUTER

        progress = prev.progress.observe_rom(reading.rom_pct)
        if next_phase == self.INNER:
            progress = progress.mark_extreme(
                now_ms, entering=prev.phase != self.INNER, side=reading.side
            )

        rep_count, last_rep_ms, decision = prev.rep_count, prev.last_rep_ms, NO_DECISION
        if prev.phase == self.INNER and next_phase == self.OUTER:
            rep_count, last_rep_ms, progress, decision = self._settle_attempt(prev, progress, now_ms)

        return self._finish(
            prev, next_phase, now_ms, progress, reading.feedback, reading.rom_pct,
            rep_count, last_rep_ms, decision
        )


# =============================================================================
# SECTION 2: Open/Close (Jumping Jacks)
# =============================================================================

class OpenCloseClassifier(TwoPhaseClassifier):
    """
    Jumping jacks.

    OPEN requires both legs spread (ankle width / shoulder width) AND arms
    raised (wrists above the nose). The rep is counted on OPEN → CLOSED.
    """

    exercise_id = "jumping_jacks"
    display_name = "Jumping jacks"

    INNER = Phase.OPEN
    OUTER = Phase.CLOSED

    GATE = {
        L.LEFT_SHOULDER: 0.5,
        L.RIGHT_SHOULDER: 0.5,
        L.LEFT_WRIST: 0.4,
        L.RIGHT_WRIST: 0.4,
        L.LEFT_ANKLE: 0.4,
        L.RIGHT_ANKLE: 0.4,
        L.NOSE: 0.4,
    }
    TRACKING_GROUPS = {
        BodyGroup.LOWER_BODY: (L.LEFT_ANKLE, L.RIGHT_ANKLE),
        BodyGroup.UPPER_BODY: (L.NOSE, L.LEFT_SHOULDER, L.RIGHT_SHOULDER),
        BodyGroup.ARMS: (L.LEFT_WRIST, L.RIGHT_WRIST),
    }

    MIN_PHASE_MS = 180.0
    MIN_REP_MS = 500.0

    TOO_FAST_MESSAGE = "Too fast. Slow down."
    SHALLOW_MESSAGE = "Didn’t reach full open position."

    # Uncalibrated hysteresis band
    OPEN_ENTER_RATIO = 1.45
    OPEN_EXIT_RATIO = 1.25
    ARMS_UP_LIFT = 0.03
    # Floor for the calibrated exit ratio
    MIN_EXIT_RATIO = 1.1
    # Calibrated arm thresholds as fractions of the captured open lift
    ARMS_ENTER_FRACTION = 0.85
    ARMS_EXIT_FRACTION = 0.7
    # Uncalibrated feedback normalization
    RATIO_BASE, RATIO_SPAN = 1.15, 0.5
    LIFT_BASE, LIFT_SPAN = 0.02, 0.08

    CALIBRATION_DEFAULTS = {
        "open_ratio": 1.45,
        "closed_ratio": 1.15,
        "open_lift": 0.08,
        "closed_lift": 0.02,
    }

    def _discriminants(self, frame: LandmarkFrame) -> Tuple[float, float]:
        shoulder_width = distance(frame.get(L.LEFT_SHOULDER), frame.get(L.RIGHT_SHOULDER))
        ankle_width = distance(frame.get(L.LEFT_ANKLE), frame.get(L.RIGHT_ANKLE))
        # Normalize by shoulder width for body-size invariance
        ratio = safe_ratio(ankle_width, shoulder_width)
        wrists_y = (frame.get(L.LEFT_WRIST).y + frame.get(L.RIGHT_WRIST).y) / 2
        arms_lift = frame.get(L.NOSE).y - wrists_y
        return ratio, arms_lift

    def read(self, prev_phase, frame, calibration, bar):
        ratio, arms_lift = self._discriminants(frame)
        is_open = prev_phase == self.INNER

        if calibration is not None:
            open_ratio = calibration.get("open_ratio", self.CALIBRATION_DEFAULTS["open_ratio"])
            closed_ratio = calibration.get("closed_ratio", self.CALIBRATION_DEFAULTS["closed_ratio"])
            open_lift = calibration.get("open_lift", self.CALIBRATION_DEFAULTS["open_lift"])
            closed_lift = calibration.get("closed_lift", self.CALIBRATION_DEFAULTS["closed_lift"])

            enter = open_ratio
            exit = min(open_ratio, max(closed_ratio, self.MIN_EXIT_RATIO))
            arms_up = _above(
                arms_lift, is_open,
                open_lift * self.ARMS_ENTER_FRACTION, open_lift * self.ARMS_EXIT_FRACTION
            )
            openness = clamp01(safe_ratio(ratio - closed_ratio, open_ratio - closed_ratio))
            lift_pct = clamp01(safe_ratio(arms_lift - closed_lift, open_lift - closed_lift))
        else:
            enter, exit = self.OPEN_ENTER_RATIO, self.OPEN_EXIT_RATIO
            arms_up = arms_lift > self.ARMS_UP_LIFT
            openness = clamp01((ratio - self.RATIO_BASE) / self.RATIO_SPAN)
            lift_pct = clamp01((arms_lift - self.LIFT_BASE) / self.LIFT_SPAN)

        legs_open = _above(ratio, is_open, enter, exit)
        opened = arms_up and legs_open

        legs_txt, arms_txt = f"{_pct(openness):.0f}", f"{_pct(lift_pct):.0f}"
        if opened:
            feedback = f"Open: {legs_txt}% legs, {arms_txt}% arms."
        else:
            feedback = f"Aim for: {legs_txt}% legs, {arms_txt}% arms."

        return Reading(
            inner=opened,
            outer=not opened,
            feedback=feedback,
            rom_pct=min(_pct(openness), _pct(lift_pct)),
        )

    def measure(self, frame, bar=None):
        if not self.is_visible(frame, CALIBRATION_MIN_VISIBILITY):
            return None
        ratio, arms_lift = self._discriminants(frame)
        return {"ratio": ratio, "lift": arms_lift}


# =============================================================================
# SECTION 3: Hinge Angle (Squats, Lunges, Jump Squats)
# =============================================================================

@dataclass(frozen=True)
class HingeBand:
    """Resolved knee-angle thresholds for one frame."""
    top: float
    bottom: float
    down_enter: float
    down_exit: float
    up_enter: float
    up_exit: float


class HingeAngleClassifier(TwoPhaseClassifier):
    """
    Knee hinge exercises driven by the smaller of the two knee angles.

    DOWN is entered below DOWN_ENTER and held below DOWN_EXIT; UP is
    entered above UP_ENTER and held above UP_EXIT. With a calibration
    profile the band is placed relative to the measured top/bottom angles,
    keeping the same band widths.
    """

    INNER = Phase.DOWN
    OUTER = Phase.UP

    GATE = {
        L.LEFT_HIP: 0.4,
        L.RIGHT_HIP: 0.4,
        L.LEFT_KNEE: 0.4,
        L.RIGHT_KNEE: 0.4,
        L.LEFT_ANKLE: 0.4,
        L.RIGHT_ANKLE: 0.4,
    }
    TRACKING_GROUPS = {
        BodyGroup.LOWER_BODY: (
            L.LEFT_HIP, L.RIGHT_HIP, L.LEFT_KNEE, L.RIGHT_KNEE, L.LEFT_ANKLE, L.RIGHT_ANKLE,
        ),
    }

    TOP_ANGLE = 175.0
    BOTTOM_ANGLE = 110.0
    DOWN_ENTER = 115.0
    DOWN_EXIT = 135.0
    UP_ENTER = 165.0
    UP_EXIT = 155.0

    # Calibrated band: bottom + offset for DOWN, top - offset for UP
    CALIB_DOWN_ENTER_OFFSET = 10.0
    CALIB_DOWN_EXIT_OFFSET = 25.0
    CALIB_UP_ENTER_OFFSET = 8.0
    CALIB_UP_EXIT_OFFSET = 18.0

    # Depth above which the athlete is told to go lower
    GO_LOWER_DEPTH = 0.45

    BOTTOM_CUE = "(bottom). Drive up."

    def __init__(self, exercise_id: Optional[str] = None, display_name: Optional[str] = None):
        super().__init__(exercise_id, display_name)
        self.CALIBRATION_DEFAULTS = {
            "top_angle": self.TOP_ANGLE,
            "bottom_angle": self.BOTTOM_ANGLE,
        }

    def band(self, calibration: Optional[CalibrationProfile]) -> HingeBand:
        if calibration is None:
            return HingeBand(
                top=self.TOP_ANGLE,
                bottom=self.BOTTOM_ANGLE,
                down_enter=self.DOWN_ENTER,
                down_exit=self.DOWN_EXIT,
                up_enter=self.UP_ENTER,
                up_exit=self.UP_EXIT,
            )
        top = calibration.get("top_angle", self.TOP_ANGLE)
        bottom = calibration.get("bottom_angle", self.BOTTOM_ANGLE)
        return HingeBand(
            top=top,
            bottom=bottom,
            down_enter=bottom + self.CALIB_DOWN_ENTER_OFFSET,
            down_exit=bottom + self.CALIB_DOWN_EXIT_OFFSET,
            up_enter=top - self.CALIB_UP_ENTER_OFFSET,
            up_exit=top - self.CALIB_UP_EXIT_OFFSET,
        )

    def _feedback(self, angle: float, depth: float, band: HingeBand, side: Side) -> str:
        depth_txt = f"{_pct(depth):.0f}"
        if angle < band.down_enter:
            return f"Depth: {depth_txt}% {self.BOTTOM_CUE}"
        if depth > self.GO_LOWER_DEPTH:
            return f"Depth: {depth_txt}% (go lower)."
        return f"Depth: {depth_txt}% (start)."

    def read(self, prev_phase, frame, calibration, bar):
        left, right = _knee_angles(frame)
        side = Side.LEFT if left < right else Side.RIGHT
        angle = min(left, right)
        band = self.band(calibration)

        depth = clamp01(safe_ratio(band.top - angle, band.top - band.bottom))
        return Reading(
            inner=_below(angle, prev_phase == Phase.DOWN, band.down_enter, band.down_exit),
            outer=_above(angle, prev_phase == Phase.UP, band.up_enter, band.up_exit),
            feedback=self._feedback(angle, depth, band, side),
            rom_pct=_pct(depth),
            side=side,
        )

    def measure(self, frame, bar=None):
        if not self.is_visible(frame, CALIBRATION_MIN_VISIBILITY):
            return None
        return {"angle": min(_knee_angles(frame))}


class SquatClassifier(HingeAngleClassifier):
    exercise_id = "squats"
    display_name = "Squats"

    MIN_PHASE_MS = 220.0
    MIN_REP_MS = 700.0


class LungeClassifier(HingeAngleClassifier):
    """Lunges: the working side is the leg with the smaller knee angle."""

    exercise_id = "lunges"
    display_name = "Lunges"

    MIN_PHASE_MS = 220.0
    MIN_REP_MS = 750.0

    BOTTOM_ANGLE = 115.0
    DOWN_ENTER = 120.0
    DOWN_EXIT = 140.0
    UP_ENTER = 170.0
    UP_EXIT = 160.0

    GATE_FEEDBACK = "Step back so hips/knees/ankles are visible."

    def _feedback(self, angle, depth, band, side):
        depth_txt = f"{_pct(depth):.0f}"
        if angle < band.down_enter:
            return f"Lunge ({side.value}) depth: {depth_txt}%. Push up."
        if depth > self.GO_LOWER_DEPTH:
            return f"Lunge ({side.value}) depth: {depth_txt}%. Go lower."
        return f"Lunge ({side.value}) depth: {depth_txt}%."


class JumpSquatClassifier(HingeAngleClassifier):
    """Explosive squats: shorter debounce and rep interval, wider band."""

    exercise_id = "jump_squats"
    display_name = "Jump squats"

    MIN_PHASE_MS = 200.0
    MIN_REP_MS = 520.0

    DOWN_ENTER = 118.0
    DOWN_EXIT = 140.0
    UP_ENTER = 165.0
    UP_EXIT = 155.0

    CALIB_DOWN_ENTER_OFFSET = 12.0
    CALIB_DOWN_EXIT_OFFSET = 28.0
    CALIB_UP_ENTER_OFFSET = 10.0
    CALIB_UP_EXIT_OFFSET = 20.0

    TOO_FAST_MESSAGE = "Too fast. Control the landing."
    BOTTOM_CUE = "(explode up)."


# =============================================================================
# SECTION 4: Alternating Lift (High Knees)
# =============================================================================

class AlternatingLiftClassifier(ExerciseClassifier):
    """
    High knees.

    A knee is "up" when it rises above the hip line by more than a single
    threshold (no hysteresis band). Any frame with exactly one knee up counts
    once the inter-rep minimum has elapsed, provided that knee is opposite
    the previously counted one. The same knee again is rejected.
    """

    exercise_id = "high_knees"
    display_name = "High knees"

    GATE = {
        L.LEFT_HIP: 0.35,
        L.RIGHT_HIP: 0.35,
        L.LEFT_KNEE: 0.35,
        L.RIGHT_KNEE: 0.35,
    }
    TRACKING_GROUPS = {
        BodyGroup.LOWER_BODY: (L.LEFT_HIP, L.RIGHT_HIP, L.LEFT_KNEE, L.RIGHT_KNEE),
    }

    MIN_REP_MS = 300.0
    GATE_FEEDBACK = "Make sure hips and knees are visible."
    ALTERNATE_MESSAGE = "Alternate legs for clean reps."

    UP_LIFT = 0.05
    LIFT_BASE, LIFT_SPAN = 0.02, 0.12

    CALIBRATION_DEFAULTS = {
        "up_lift": 0.1,
        "down_lift": 0.02,
    }

    def _lifts(self, frame: LandmarkFrame) -> Tuple[float, float]:
        hip_y = (frame.get(L.LEFT_HIP).y + frame.get(L.RIGHT_HIP).y) / 2
        return hip_y - frame.get(L.LEFT_KNEE).y, hip_y - frame.get(L.RIGHT_KNEE).y

    def _update(self, prev, frame, now_ms, calibration, bar):
        left_lift, right_lift = self._lifts(frame)

        if calibration is not None:
            up = calibration.get("up_lift", self.CALIBRATION_DEFAULTS["up_lift"])
            down = calibration.get("down_lift", self.CALIBRATION_DEFAULTS["down_lift"])
            threshold = (up + down) / 2
        else:
            threshold = self.UP_LIFT

        left_up = left_lift > threshold
        right_up = right_lift > threshold
        if left_up and not right_up:
            side_up = Side.LEFT
        elif right_up and not left_up:
            side_up = Side.RIGHT
        else:
            side_up = Side.NONE

        lift = max(left_lift, right_lift)
        if calibration is not None:
            lift_pct = clamp01(safe_ratio(lift - down, up - down))
        else:
            lift_pct = clamp01((lift - self.LIFT_BASE) / self.LIFT_SPAN)
        rom_pct = _pct(lift_pct)

        if side_up == Side.NONE:
            feedback = f"Lift: {rom_pct:.0f}%. Drive one knee higher."
        else:
            feedback = f"Lift: {rom_pct:.0f}%. Knee up ({side_up.value}). Alternate."

        progress = prev.progress.observe_rom(rom_pct)
        rep_count, last_rep_ms, decision = prev.rep_count, prev.last_rep_ms, NO_DECISION

        # Every frame with a single knee up is a counting attempt
        if side_up != Side.NONE:
            can_count = last_rep_ms is None or now_ms - last_rep_ms > self.MIN_REP_MS
            alternated = progress.last_side == Side.NONE or progress.last_side != side_up
            if can_count and alternated:
                rep_count += 1
                last_rep_ms = now_ms
                decision = Decision.rep(rom_pct=progress.peak_rom_pct)
                progress = progress.counted(side=side_up)
                logger.info(f"{self.exercise_id}: rep {rep_count} counted ({side_up.value})")
            elif can_count:
                decision = Decision.reject(self.ALTERNATE_MESSAGE)
                logger.info(f"{self.exercise_id}: same leg twice ({side_up.value}), rejected")

        next_phase = Phase.UP if side_up != Side.NONE else Phase.DOWN
        return self._finish(
            prev, next_phase, now_ms, replace(progress, reached_extreme=True),
            feedback, rom_pct, rep_count, last_rep_ms, decision
        )

    def measure(self, frame, bar=None):
        if not self.is_visible(frame, CALIBRATION_MIN_VISIBILITY):
            return None
        return {"lift": max(self._lifts(frame))}


# =============================================================================
# SECTION 5: Multi-Gate Sequence (Burpees)
# =============================================================================

class MultiGateClassifier(ExerciseClassifier):
    """
    Burpees.

    Three body configurations are evaluated independently:
    - stand: knees extended and hips high            → UP
    - crouch: knees bent or hips low                 → DOWN
    - plank: shoulders and hips low and level        → OPEN

    When several match, precedence is plank > crouch > stand. This is a
    heuristic: under some camera angles the configurations overlap.
    A rep counts on the return to stand after visiting plank.
    """

    exercise_id = "burpees"
    display_name = "Burpees"

    GATE = {
        L.LEFT_SHOULDER: 0.35,
        L.RIGHT_SHOULDER: 0.35,
        L.LEFT_HIP: 0.35,
        L.RIGHT_HIP: 0.35,
        L.LEFT_KNEE: 0.35,
        L.RIGHT_KNEE: 0.35,
        L.LEFT_ANKLE: 0.35,
        L.RIGHT_ANKLE: 0.35,
    }
    TRACKING_GROUPS = {
        BodyGroup.LOWER_BODY: (
            L.LEFT_HIP, L.RIGHT_HIP, L.LEFT_KNEE, L.RIGHT_KNEE, L.LEFT_ANKLE, L.RIGHT_ANKLE,
        ),
        BodyGroup.UPPER_BODY: (L.LEFT_SHOULDER, L.RIGHT_SHOULDER),
    }

    MIN_PHASE_MS = 220.0
    MIN_REP_MS = 950.0

    GATE_FEEDBACK = "Keep your full body in frame."
    TOO_FAST_MESSAGE = "Too fast. Control the rep."
    SHALLOW_MESSAGE = "Hit a solid plank position."

    STAND_KNEE_ANGLE = 165.0
    STAND_MAX_HIP_Y = 0.58
    CROUCH_KNEE_ANGLE = 145.0
    CROUCH_MIN_HIP_Y = 0.62
    PLANK_MIN_SHOULDER_Y = 0.52
    PLANK_MIN_HIP_Y = 0.56
    PLANK_MAX_LEVEL_DIFF = 0.16

    FEEDBACK = {
        Phase.UP: "Stand tall, then drop down.",
        Phase.DOWN: "Hands down, kick back to plank.",
        Phase.OPEN: "Plank. Drive feet in, then stand.",
    }

    def configurations(self, frame: LandmarkFrame) -> Tuple[bool, bool, bool]:
        """(stand_like, crouch_like, plank_like) for a gated frame."""
        shoulder_y = (frame.get(L.LEFT_SHOULDER).y + frame.get(L.RIGHT_SHOULDER).y) / 2
        hip_y = (frame.get(L.LEFT_HIP).y + frame.get(L.RIGHT_HIP).y) / 2
        knee_angle = min(_knee_angles(frame))

        stand_like = knee_angle > self.STAND_KNEE_ANGLE and hip_y < self.STAND_MAX_HIP_Y
        crouch_like = knee_angle < self.CROUCH_KNEE_ANGLE or hip_y > self.CROUCH_MIN_HIP_Y
        plank_like = (
            shoulder_y > self.PLANK_MIN_SHOULDER_Y
            and hip_y > self.PLANK_MIN_HIP_Y
            and abs(hip_y - shoulder_y) < self.PLANK_MAX_LEVEL_DIFF
        )
        return stand_like, crouch_like, plank_like

    def _update(self, prev, frame, now_ms, calibration, bar):
        stand_like, crouch_like, plank_like = self.configurations(frame)

        next_phase = prev.phase
        if prev.phase == Phase.UNKNOWN:
            if stand_like:
                next_phase = Phase.UP
            elif plank_like:
                next_phase = Phase.OPEN
            else:
                next_phase = Phase.DOWN
        elif self._debounced(prev, now_ms):
            if plank_like:
                next_phase = Phase.OPEN
            elif crouch_like:
                next_phase = Phase.DOWN
            elif stand_like:
                next_phase = Phase.UP

        progress = prev.progress
        if next_phase == Phase.OPEN:
            progress = progress.mark_extreme(now_ms, entering=prev.phase != Phase.OPEN)

        rep_count, last_rep_ms, decision = prev.rep_count, prev.last_rep_ms, NO_DECISION
        if next_phase == Phase.UP and prev.phase in (Phase.DOWN, Phase.OPEN):
            rep_count, last_rep_ms, progress, decision = self._settle_attempt(prev, progress, now_ms)

        return self._finish(
            prev, next_phase, now_ms, progress, self.FEEDBACK.get(next_phase, prev.feedback),
            None, rep_count, last_rep_ms, decision
        )

    def measure(self, frame, bar=None):
        # Burpees use fixed body configurations and are not calibrated
        return None


# =============================================================================
# SECTION 6: Reference Line (Pull-ups, Chin-ups)
# =============================================================================

class ReferenceLineClassifier(TwoPhaseClassifier):
    """
    Pull-ups against a reference bar.

    UP: the nose rises above the bar (bar.y - nose.y is the lift; image y
    grows downwards). DOWN: elbows extended to a full hang. Both wrists must
    stay near the bar, and without a bar nothing can be counted. A rep
    counts on UP → DOWN.
    """

    exercise_id = "pull_ups"
    display_name = "Pull-ups"

    INNER = Phase.UP
    OUTER = Phase.DOWN

    GATE = {
        L.NOSE: 0.4,
        L.LEFT_SHOULDER: 0.4,
        L.RIGHT_SHOULDER: 0.4,
        L.LEFT_ELBOW: 0.4,
        L.RIGHT_ELBOW: 0.4,
        L.LEFT_WRIST: 0.4,
        L.RIGHT_WRIST: 0.4,
    }
    TRACKING_GROUPS = {
        BodyGroup.UPPER_BODY: (L.NOSE, L.LEFT_SHOULDER, L.RIGHT_SHOULDER),
        BodyGroup.ARMS: (L.LEFT_ELBOW, L.RIGHT_ELBOW, L.LEFT_WRIST, L.RIGHT_WRIST),
    }

    MIN_PHASE_MS = 200.0
    MIN_REP_MS = 900.0

    NO_BAR_FEEDBACK = "Set the bar position first."
    OFF_BAR_FEEDBACK = "Grip the bar to start."
    TOO_FAST_MESSAGE = "Too fast. Control the descent."
    SHALLOW_MESSAGE = "Get your chin over the bar."

    TOP_LIFT = 0.03
    BOTTOM_LIFT = -0.20
    BOTTOM_ELBOW_ANGLE = 165.0
    UP_ENTER = 0.02
    UP_EXIT = -0.02
    DOWN_ENTER = 155.0
    DOWN_EXIT = 140.0

    CALIB_UP_ENTER_OFFSET = 0.01
    CALIB_UP_EXIT_OFFSET = 0.05
    CALIB_DOWN_ENTER_OFFSET = 10.0
    CALIB_DOWN_EXIT_OFFSET = 25.0

    # Max vertical distance between each wrist and the bar
    WRIST_BAR_TOLERANCE = 0.08

    CALIBRATION_DEFAULTS = {
        "top_lift": 0.03,
        "bottom_lift": -0.20,
        "bottom_elbow_angle": 165.0,
    }

    def classify(self, prev, frame, now_ms, calibration=None, bar=None):
        if bar is None:
            return self._lost(prev, self.NO_BAR_FEEDBACK)
        if frame is None or not self.is_visible(frame):
            return self._lost(prev)
        if not self._hanging(frame, bar):
            return self._lost(prev, self.OFF_BAR_FEEDBACK)
        return self._update(prev, frame, now_ms, calibration, bar)

    def _hanging(self, frame: LandmarkFrame, bar: BarReference) -> bool:
        wrists = (frame.get(L.LEFT_WRIST), frame.get(L.RIGHT_WRIST))
        return all(abs(w.y - bar.y) <= self.WRIST_BAR_TOLERANCE for w in wrists)

    def _discriminants(self, frame: LandmarkFrame, bar: BarReference) -> Tuple[float, float]:
        lift = bar.y - frame.get(L.NOSE).y
        return lift, min(_elbow_angles(frame))

    def read(self, prev_phase, frame, calibration, bar):
        lift, elbow = self._discriminants(frame, bar)

        top = resolve(calibration, "top_lift", self.TOP_LIFT)
        bottom = resolve(calibration, "bottom_lift", self.BOTTOM_LIFT)
        if calibration is not None:
            hang = calibration.get("bottom_elbow_angle", self.BOTTOM_ELBOW_ANGLE)
            up_enter = top - self.CALIB_UP_ENTER_OFFSET
            up_exit = top - self.CALIB_UP_EXIT_OFFSET
            down_enter = hang - self.CALIB_DOWN_ENTER_OFFSET
            down_exit = hang - self.CALIB_DOWN_EXIT_OFFSET
        else:
            up_enter, up_exit = self.UP_ENTER, self.UP_EXIT
            down_enter, down_exit = self.DOWN_ENTER, self.DOWN_EXIT

        is_up = _above(lift, prev_phase == Phase.UP, up_enter, up_exit)
        is_down = _above(elbow, prev_phase == Phase.DOWN, down_enter, down_exit) and not is_up

        height = clamp01(safe_ratio(lift - bottom, top - bottom))
        height_txt = f"{_pct(height):.0f}"
        if is_up:
            feedback = "Chin over bar. Lower to a full hang."
        elif elbow > down_enter:
            feedback = f"Full hang. Pull: {height_txt}%."
        else:
            feedback = f"Pull: {height_txt}%. Get your chin over the bar."

        return Reading(inner=is_up, outer=is_down, feedback=feedback, rom_pct=_pct(height))

    def measure(self, frame, bar=None):
        if bar is None or not self.is_visible(frame, CALIBRATION_MIN_VISIBILITY):
            return None
        lift, elbow = self._discriminants(frame, bar)
        return {"lift": lift, "elbow_angle": elbow}


class ChinUpClassifier(ReferenceLineClassifier):
    exercise_id = "chin_ups"
    display_name = "Chin-ups"


# =============================================================================
# SECTION 7: Registry
# =============================================================================

class ClassifierRegistry:
    """Maps exercise ids to classifier strategies."""

    def __init__(self, classifiers: Optional[List[ExerciseClassifier]] = None):
        self._classifiers: Dict[str, ExerciseClassifier] = {}
        for classifier in classifiers or []:
            self.register(classifier)

    def register(self, classifier: ExerciseClassifier) -> None:
        if classifier.exercise_id in self._classifiers:
            raise ValueError(f"Exercise already registered: {classifier.exercise_id}")
        self._classifiers[classifier.exercise_id] = classifier

    def get(self, exercise_id: str) -> ExerciseClassifier:
        try:
            return self._classifiers[exercise_id]
        except KeyError:
            raise ValueError(
                f"Unsupported exercise: {exercise_id}. "
                f"Expected one of {sorted(self._classifiers)}"
            ) from None

    def __contains__(self, exercise_id: str) -> bool:
        return exercise_id in self._classifiers

    def exercise_ids(self) -> List[str]:
        return list(self._classifiers)


def create_default_registry() -> ClassifierRegistry:
    """Registry with every built-in exercise."""
    return ClassifierRegistry([
        OpenCloseClassifier(),
        SquatClassifier(),
        LungeClassifier(),
        AlternatingLiftClassifier(),
        JumpSquatClassifier(),
        MultiGateClassifier(),
        ReferenceLineClassifier(),
        ChinUpClassifier(),
    ])


DEFAULT_REGISTRY = create_default_registry()


def get_classifier(exercise_id: str) -> ExerciseClassifier:
    """Look up a built-in classifier; raises ValueError for unknown ids."""
    return DEFAULT_REGISTRY.get(exercise_id)
