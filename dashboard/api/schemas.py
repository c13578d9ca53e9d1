"""Request/response models for the dashboard API.

Responses use camelCase keys (``avgCompletion``, ``monthlyData``), the
shape the dashboard front end has always consumed.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dashboard.models.analytics import Analytics, PeriodSummary
from dashboard.models.learner import Learner
from dashboard.services.ingest import ImportSummary


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


class ReportIn(BaseModel):
    name: str | None = None  # usually the uploaded file name
    rows: list[dict[str, Any]] = Field(default_factory=list)


class ImportIn(BaseModel):
    reports: list[ReportIn] = Field(default_factory=list)


class SnapshotOut(_CamelModel):
    index: int
    name: str
    row_count: int


class ImportSummaryOut(_CamelModel):
    files: int
    rows_added: int
    total_rows: int
    message: str

    @classmethod
    def from_summary(cls, summary: ImportSummary) -> ImportSummaryOut:
        return cls(
            files=summary.files,
            rows_added=summary.rows_added,
            total_rows=summary.total_rows,
            message=summary.message,
        )


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class CourseOut(_CamelModel):
    title: str
    completion: float
    status: str


class LearnerOut(_CamelModel):
    id: int
    name: str
    email: str
    district: str
    courses: list[CourseOut]
    total_completion: float
    completed: int
    in_progress: int
    not_started: int
    avg_completion: int
    level: str
    week1_avg: int | None = None
    week2_avg: int | None = None
    recent_avgs: list[int | None] | None = None

    @classmethod
    def from_learner(cls, learner: Learner) -> LearnerOut:
        return cls.model_validate(asdict(learner))


class PeriodSummaryOut(_CamelModel):
    month: str
    learners: int
    avg: int
    completed: int
    in_progress: int
    not_started: int

    @classmethod
    def from_summary(cls, summary: PeriodSummary) -> PeriodSummaryOut:
        return cls(
            month=summary.label,
            learners=summary.learners,
            avg=summary.avg,
            completed=summary.completed,
            in_progress=summary.in_progress,
            not_started=summary.not_started,
        )


def _learners(items: tuple[Learner, ...]) -> list[LearnerOut]:
    return [LearnerOut.from_learner(l) for l in items]


class AnalyticsOut(_CamelModel):
    total_learners: int
    improved_learners: int
    support_needed: list[LearnerOut]
    improved_list: list[LearnerOut]
    support_list: list[LearnerOut]
    failed_students: list[LearnerOut]
    finished_students: list[LearnerOut]
    consistent_completers: list[LearnerOut]
    average_completion: int
    learners: list[LearnerOut]
    monthly_data: list[PeriodSummaryOut]

    @classmethod
    def from_analytics(cls, analytics: Analytics) -> AnalyticsOut:
        return cls(
            total_learners=analytics.total_learners,
            improved_learners=analytics.improved_learners,
            support_needed=_learners(analytics.support_needed),
            improved_list=_learners(analytics.improved_list),
            support_list=_learners(analytics.support_list),
            failed_students=_learners(analytics.failed_students),
            finished_students=_learners(analytics.finished_students),
            consistent_completers=_learners(analytics.consistent_completers),
            average_completion=analytics.average_completion,
            learners=_learners(analytics.learners),
            monthly_data=[
                PeriodSummaryOut.from_summary(m) for m in analytics.monthly_data
            ],
        )
