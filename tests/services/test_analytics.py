"""Analytics core: aggregation, cross-snapshot classification, periods."""

from __future__ import annotations

import math

import pytest

from dashboard.models.learner import LEVEL_ADVANCED, LEVEL_BEGINNER, LEVEL_INTERMEDIATE
from dashboard.services.analytics import (
    aggregate_rows,
    analyze_snapshots,
    average_map,
    bucket_of,
    compute_analytics,
    recent_averages,
    round_half_up,
    summarize_periods,
)
from dashboard.services.ingest import build_snapshot
from tests.conftest import record, report_row, snapshot


def _ids(learners) -> list[int]:
    return [l.id for l in learners]


# ---------------------------------------------------------------------------
# Rounding and buckets
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0.5, 1),
        (1.5, 2),
        (2.5, 3),
        (50.5, 51),
        (100.5, 101),
        (49.49, 49),
        (0.0, 0),
        (0.49999999999999994, 0),
        (-2.5, -2),
        (-2.6, -3),
    ],
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected


@pytest.mark.parametrize(
    ("completion", "bucket"),
    [
        (100, "completed"),
        (150, "completed"),
        (99.9, "in_progress"),
        (1, "in_progress"),
        (0.99, "not_started"),
        (0, "not_started"),
        (-5, "not_started"),
    ],
)
def test_bucket_boundaries(completion: float, bucket: str) -> None:
    assert bucket_of(completion) == bucket


# ---------------------------------------------------------------------------
# Row aggregation
# ---------------------------------------------------------------------------


def test_two_courses_at_50_and_51_average_to_51() -> None:
    learners = aggregate_rows(
        [record(1, 50, course="Math"), record(1, 51, course="Art")]
    )
    assert learners[1].avg_completion == 51
    assert learners[1].total_completion == 101


def test_first_row_supplies_identity() -> None:
    learners = aggregate_rows(
        [
            record(7, 10, first="Ada", email="ada@example.com", district="East"),
            record(7, 20, first="Other", email="other@example.com", district="West"),
        ]
    )
    ada = learners[7]
    assert ada.name == "Ada Learner"
    assert ada.email == "ada@example.com"
    assert ada.district == "East"
    assert [c.completion for c in ada.courses] == [10, 20]


def test_aggregation_preserves_first_appearance_order() -> None:
    learners = aggregate_rows([record(3, 1), record(1, 1), record(3, 2), record(2, 1)])
    assert list(learners) == [3, 1, 2]


def test_bucket_counts_partition_courses() -> None:
    rows = [record(1, c, course=f"C{i}") for i, c in enumerate([100, 120, 50, 1, 0, -3])]
    learner = aggregate_rows(rows)[1]
    assert learner.completed == 2
    assert learner.in_progress == 2
    assert learner.not_started == 2
    assert learner.completed + learner.in_progress + learner.not_started == len(
        learner.courses
    )


@pytest.mark.parametrize(
    ("completions", "level"),
    [
        ([100, 100, 100], LEVEL_ADVANCED),
        ([100, 100, 10], LEVEL_INTERMEDIATE),
        ([100], LEVEL_INTERMEDIATE),
        ([99, 0], LEVEL_BEGINNER),
    ],
)
def test_level_by_completed_courses(completions: list[float], level: str) -> None:
    rows = [record(1, c, course=f"C{i}") for i, c in enumerate(completions)]
    assert aggregate_rows(rows)[1].level == level


def test_average_map_rounds_per_learner() -> None:
    rows = [record(1, 0), record(1, 1), record(2, 100)]
    assert average_map(rows) == {1: 1, 2: 100}


# ---------------------------------------------------------------------------
# Cross-snapshot classification
# ---------------------------------------------------------------------------


def test_end_to_end_alice_improves_bob_finishes() -> None:
    a = snapshot("A", record(1, 40, first="Alice"), record(2, 100, first="Bob"))
    b = snapshot("B", record(1, 60, first="Alice"), record(2, 100, first="Bob"))

    analytics = compute_analytics([a, b])

    assert analytics is not None
    assert _ids(analytics.improved_list) == [1]
    assert analytics.improved_learners == 1
    assert analytics.support_list == ()
    # the headline count still includes Bob; the browsable list does not
    assert _ids(analytics.support_needed) == [2]
    assert _ids(analytics.finished_students) == [2]
    assert _ids(analytics.consistent_completers) == [2]

    alice = analytics.improved_list[0]
    assert alice.week1_avg == 40
    assert alice.week2_avg == 60
    assert alice.avg_completion == 60
    assert alice.recent_avgs == (40, 60, None, None)


def test_regression_is_in_neither_list() -> None:
    a = snapshot("A", record(1, 80))
    b = snapshot("B", record(1, 50))

    analytics = compute_analytics([a, b])

    assert analytics is not None
    assert analytics.improved_list == ()
    assert analytics.support_list == ()


def test_no_movement_needs_support() -> None:
    analytics = compute_analytics(
        [snapshot("A", record(1, 30)), snapshot("B", record(1, 30))]
    )
    assert analytics is not None
    assert _ids(analytics.support_list) == [1]


def test_improved_and_support_are_disjoint() -> None:
    a = snapshot("A", record(1, 10), record(2, 50), record(3, 70), record(4, 0))
    b = snapshot("B", record(1, 20), record(2, 50), record(3, 60), record(4, 0))
    analytics = compute_analytics([a, b])
    assert analytics is not None
    assert set(_ids(analytics.improved_list)).isdisjoint(_ids(analytics.support_list))
    assert _ids(analytics.improved_list) == [1]
    assert _ids(analytics.support_list) == [2, 4]


def test_learner_new_in_current_snapshot_counts_as_improved() -> None:
    a = snapshot("A", record(1, 10))
    b = snapshot("B", record(1, 10), record(2, 40))
    analytics = compute_analytics([a, b])
    assert analytics is not None
    assert _ids(analytics.improved_list) == [2]
    assert analytics.improved_list[0].week1_avg == 0


def test_learner_missing_from_current_snapshot_is_synthesized() -> None:
    a = snapshot("A", record(1, 10), record(5, 0, first="Gone", district="South"))
    b = snapshot("B", record(1, 20))

    analytics = compute_analytics([a, b])

    assert analytics is not None
    gone = next(l for l in analytics.support_list if l.id == 5)
    assert gone.name == "Gone Learner"
    assert gone.district == "South"
    assert gone.level == ""
    assert gone.week1_avg == 0
    assert gone.week2_avg == 0
    assert len(gone.courses) == 1
    # only the last snapshot's learners are counted as current
    assert analytics.total_learners == 1


def test_single_snapshot_has_no_comparison() -> None:
    analytics = compute_analytics([snapshot("Only", record(1, 10), record(2, 100))])
    assert analytics is not None
    assert analytics.improved_list == ()
    assert analytics.support_list == ()
    assert analytics.finished_students == ()
    assert analytics.total_learners == 2


def test_finished_in_first_and_third_snapshot() -> None:
    s1 = snapshot("1", record(1, 100), record(2, 100))
    s2 = snapshot("2", record(1, 50), record(2, 40))
    s3 = snapshot("3", record(1, 100), record(2, 60))

    analytics = compute_analytics([s1, s2, s3])

    assert analytics is not None
    assert _ids(analytics.finished_students) == [1]


def test_finished_learner_dropped_from_support() -> None:
    s1 = snapshot("1", record(1, 100))
    s2 = snapshot("2", record(1, 100))
    analytics = compute_analytics([s1, s2])
    assert analytics is not None
    finished = set(_ids(analytics.finished_students))
    assert finished == {1}
    assert finished.isdisjoint(_ids(analytics.support_list))


def test_recent_avgs_window_with_five_snapshots() -> None:
    snapshots = [snapshot(f"S{i}", record(1, 10 * (i + 1))) for i in range(5)]
    analytics = compute_analytics(snapshots)
    assert analytics is not None
    learner = analytics.improved_list[0]
    assert learner.recent_avgs == (20, 30, 40, 50)


def test_recent_averages_mark_absent_snapshots() -> None:
    maps = [{1: 10}, {}, {1: 30}]
    assert recent_averages(1, maps) == (10, None, 30, None)


def test_failed_needs_low_average_and_a_course_in_progress() -> None:
    s = snapshot(
        "Now",
        record(1, 10),  # in progress, low average
        record(2, 0),  # never started
        record(3, 30),  # above threshold
        record(4, 0, course="A"),
        record(4, 20, course="B"),  # avg 10, one course in progress
    )
    analytics = compute_analytics([s])
    assert analytics is not None
    assert _ids(analytics.failed_students) == [1, 4]


# ---------------------------------------------------------------------------
# Period summaries and totals
# ---------------------------------------------------------------------------


def test_period_summaries_bucket_learner_averages() -> None:
    s1 = snapshot("Sept", record(1, 100), record(2, 50), record(3, 0))
    s2 = snapshot("", record(1, 100), record(2, 100))

    summaries = summarize_periods([s1, s2])

    assert [p.label for p in summaries] == ["Sept", "Week 2"]
    first = summaries[0]
    assert (first.learners, first.avg) == (3, 50)
    assert (first.completed, first.in_progress, first.not_started) == (1, 1, 1)
    assert summaries[1].avg == 100


def test_average_completion_over_current_learners() -> None:
    analytics = compute_analytics(
        [snapshot("A", record(1, 0), record(2, 1), record(3, 0))]
    )
    assert analytics is not None
    assert analytics.average_completion == 0


def test_empty_input_returns_none() -> None:
    assert compute_analytics([]) is None


def test_snapshot_without_rows() -> None:
    analytics = compute_analytics([snapshot("Empty")])
    assert analytics is not None
    assert analytics.total_learners == 0
    assert analytics.average_completion == 0
    assert analytics.monthly_data[0].avg == 0


def test_compute_is_idempotent() -> None:
    snapshots = [
        snapshot("A", record(1, 40), record(2, 100), record(3, 5)),
        snapshot("B", record(1, 60), record(2, 100), record(3, 5)),
    ]
    assert compute_analytics(snapshots) == compute_analytics(snapshots)


def test_analyze_accepts_precomputed_averages() -> None:
    snapshots = [snapshot("A", record(1, 10)), snapshot("B", record(1, 20))]
    learners = aggregate_rows(snapshots[-1].rows)
    result = analyze_snapshots(
        snapshots, learners, [average_map(s.rows) for s in snapshots]
    )
    assert result.improved_count == 1


def test_non_finite_rounds_to_zero() -> None:
    assert round_half_up(math.inf) == 0
    assert round_half_up(math.nan) == 0


def test_overflowing_course_total_degrades_to_zero() -> None:
    snap = build_snapshot(
        [
            report_row(1, "Ann", "1e308"),
            report_row(1, "Ann", "1e308", course="Art"),
            report_row(2, "Bo", 50),
        ],
        name="A",
        position=1,
    )

    analytics = compute_analytics([snap, snap])

    assert analytics is not None
    ann = analytics.learners[0]
    assert ann.avg_completion == 0
    assert ann.total_completion == 0
    assert ann.completed == 2
    assert analytics.monthly_data[0].avg == 25
    assert analytics.average_completion == 25


def test_support_needed_keeps_finished_learners() -> None:
    s1 = snapshot("1", record(1, 100), record(2, 30))
    s2 = snapshot("2", record(1, 100), record(2, 30))

    analytics = compute_analytics([s1, s2])

    assert analytics is not None
    assert _ids(analytics.support_needed) == [1, 2]
    assert _ids(analytics.support_list) == [2]
    assert _ids(analytics.finished_students) == [1]
