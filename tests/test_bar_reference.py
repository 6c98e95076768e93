"""Manual and automatic bar placement."""

import pytest

from pose_builders import make_frame
from repcounter.cv.bar_reference import BarLocator, LocatorMode
from repcounter.cv.landmarks import MediaPipeLandmark as L


def _hanging(t, wrist_y=0.30, visibility=0.9):
    return make_frame(t, {
        L.LEFT_WRIST: (0.42, wrist_y),
        L.RIGHT_WRIST: (0.58, wrist_y),
    }, visibility=visibility)


def test_two_points_set_the_bar() -> None:
    locator = BarLocator().add_point(0.6, 0.32)
    assert locator.mode == LocatorMode.DRAFT
    assert not locator.is_set

    locator = locator.add_point(0.3, 0.28)
    assert locator.mode == LocatorMode.SET
    assert locator.reference.y == pytest.approx(0.30)
    assert (locator.reference.x_min, locator.reference.x_max) == (0.3, 0.6)


def test_new_draft_after_set_keeps_reference() -> None:
    locator = BarLocator().add_point(0.3, 0.3).add_point(0.6, 0.3).add_point(0.5, 0.5)
    assert locator.mode == LocatorMode.DRAFT
    assert locator.reference.y == pytest.approx(0.3)


def test_auto_places_bar_below_median_wrist() -> None:
    locator = BarLocator().start_auto()
    for i, t in enumerate(range(1000, 2000, 50)):
        locator = locator.update(_hanging(t, wrist_y=0.30 + (0.01 if i % 2 else 0.0)), t)

    assert locator.mode == LocatorMode.SET
    # 10 samples at 0.30, 9 at 0.31
    assert locator.reference.y == pytest.approx(0.30 + BarLocator.AUTO_OFFSET)
    assert locator.reference.x_min == pytest.approx(0.42)
    assert locator.reference.x_max == pytest.approx(0.58)


def test_auto_aborts_without_enough_samples() -> None:
    locator = BarLocator().start_auto()
    for t in range(0, 1000, 100):
        locator = locator.update(_hanging(t, visibility=0.2), t)
    assert locator.mode == LocatorMode.UNSET
    assert locator.reference is None


def test_auto_window_opens_on_first_frame() -> None:
    locator = BarLocator().start_auto()
    locator = locator.update(_hanging(5_000), 5_000)
    assert locator.mode == LocatorMode.AUTO_SAMPLING
    assert locator.sampling_started_ms == 5_000
    assert len(locator.samples_y) == 1


def test_update_is_noop_outside_auto_mode() -> None:
    locator = BarLocator()
    assert locator.update(_hanging(0), 0) is locator


def test_clear() -> None:
    locator = BarLocator().add_point(0.3, 0.3).add_point(0.6, 0.3).clear()
    assert locator.mode == LocatorMode.UNSET
    assert locator.to_dict() == {"mode": "unset", "reference": None, "draft_point": None}
