"""Rep quality labels and session aggregation."""

import pytest

from repcounter.cv.rep_quality import (
    DEFAULT_MIN_TEMPO_MS,
    QualityAggregate,
    QualityLabel,
    QualityTally,
    classify_rep_quality,
    min_tempo_ms,
)


@pytest.mark.parametrize("rom_pct, expected", [
    (72.0, QualityLabel.CLEAN),
    (70.0, QualityLabel.CLEAN),
    (55.0, QualityLabel.OK),
    (30.0, QualityLabel.SLOPPY),
    (None, QualityLabel.OK),
])
def test_label_from_rom(rom_pct, expected) -> None:
    """Tempo of 1000ms is above the squat minimum of 700ms."""
    assert classify_rep_quality("squats", 2000.0, 1000.0, rom_pct) == expected


def test_fast_rep_is_sloppy_regardless_of_rom() -> None:
    assert classify_rep_quality("squats", 1500.0, 1000.0, 95.0) == QualityLabel.SLOPPY


def test_first_rep_has_no_tempo() -> None:
    assert classify_rep_quality("squats", 300.0, None, 80.0) == QualityLabel.CLEAN


def test_minimum_tempo_table() -> None:
    assert min_tempo_ms("jumping_jacks") == 380.0
    assert min_tempo_ms("high_knees") == 300.0
    assert min_tempo_ms("lunges") == 750.0
    assert min_tempo_ms("burpees") == DEFAULT_MIN_TEMPO_MS == 650.0


def test_aggregate_tracks_overall_and_per_exercise() -> None:
    aggregate = QualityAggregate()
    aggregate = aggregate.record("squats", QualityLabel.CLEAN, 80.0)
    aggregate = aggregate.record("squats", QualityLabel.OK, 60.0)
    aggregate = aggregate.record("burpees", QualityLabel.OK, None)

    assert aggregate.overall.total == 3
    assert aggregate.overall.avg_rom_pct == pytest.approx(70.0)
    assert aggregate.by_exercise["squats"].clean == 1
    assert aggregate.by_exercise["burpees"].avg_rom_pct is None


def test_aggregate_is_immutable() -> None:
    empty = QualityAggregate()
    empty.record("squats", QualityLabel.CLEAN, 80.0)
    assert empty.overall.total == 0
    assert empty.by_exercise == {}


def test_snapshot_round_trips_through_dict() -> None:
    aggregate = QualityAggregate().record("lunges", QualityLabel.SLOPPY, 20.0)
    restored = QualityAggregate.from_dict(aggregate.snapshot())
    assert restored == aggregate


def test_tally_merge() -> None:
    a = QualityTally(clean=1, rom_sum=80.0, rom_count=1)
    b = QualityTally(sloppy=2, rom_sum=40.0, rom_count=2)
    merged = a.merged(b)
    assert merged.total == 3
    assert merged.avg_rom_pct == pytest.approx(40.0)
