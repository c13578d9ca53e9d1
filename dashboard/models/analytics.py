from __future__ import annotations

from dataclasses import dataclass

from dashboard.models.learner import Learner


@dataclass(frozen=True, slots=True)
class PeriodSummary:
    """Aggregate statistics for one snapshot, for time-series charts.

    Buckets count learners by their per-snapshot average, not by course.
    """

    label: str
    learners: int
    avg: int
    completed: int
    in_progress: int
    not_started: int


@dataclass(frozen=True, slots=True)
class Analytics:
    total_learners: int
    improved_learners: int
    support_needed: tuple[Learner, ...]
    improved_list: tuple[Learner, ...]
    support_list: tuple[Learner, ...]
    failed_students: tuple[Learner, ...]
    finished_students: tuple[Learner, ...]
    consistent_completers: tuple[Learner, ...]
    average_completion: int
    learners: tuple[Learner, ...]
    monthly_data: tuple[PeriodSummary, ...]
