"""Cross-snapshot learner analytics.

Everything here is a pure function of the ordered snapshot sequence
(oldest first).  Nothing is cached or updated incrementally: the API calls
compute_analytics() with the full current sequence after every import or
deletion, so a removed snapshot can never leak into a result.

Three stages:

  aggregate_rows()     one snapshot's rows → {learner id: Learner}
  analyze_snapshots()  previous vs. current snapshot → improved / support,
                       whole sequence → finished, last snapshot → failed
  summarize_periods()  one PeriodSummary per snapshot

Rounding everywhere is half-up towards +inf: 0.5 → 1, 2.5 → 3, 50.5 → 51,
-2.5 → -2.  Averages over zero items, or that overflow to a non-finite
value, are 0.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace

from dashboard.models.analytics import Analytics, PeriodSummary
from dashboard.models.learner import Course, Learner, level_for
from dashboard.models.snapshot import RawRecord, Snapshot

COMPLETED_THRESHOLD = 100
IN_PROGRESS_THRESHOLD = 1
FAILED_BELOW = 25
FINISHED_MIN_SNAPSHOTS = 2
RECENT_WINDOW = 4

AverageMap = dict[int, int]


def round_half_up(value: float) -> int:
    if not math.isfinite(value):
        return 0
    whole = math.floor(value)
    # compare the fraction directly; value + 0.5 can round up in binary
    return whole + (1 if value - whole >= 0.5 else 0)


def mean_rounded(total: float, count: int) -> int:
    """Rounded ``total / count``; 0 when there is nothing to average."""
    if count <= 0:
        return 0
    return round_half_up(total / count)


def bucket_of(completion: float) -> str:
    """Classify a completion percentage: completed, in_progress or not_started."""
    if completion >= COMPLETED_THRESHOLD:
        return "completed"
    if completion >= IN_PROGRESS_THRESHOLD:
        return "in_progress"
    return "not_started"


# ---------------------------------------------------------------------------
# Row aggregation
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Tally:
    id: int
    name: str
    email: str
    district: str
    courses: list[Course] = field(default_factory=list)
    total_completion: float = 0.0
    completed: int = 0
    in_progress: int = 0
    not_started: int = 0

    def add(self, row: RawRecord) -> None:
        self.courses.append(
            Course(
                title=row.course_title,
                completion=row.completion,
                status=row.course_status,
            )
        )
        self.total_completion += row.completion
        bucket = bucket_of(row.completion)
        if bucket == "completed":
            self.completed += 1
        elif bucket == "in_progress":
            self.in_progress += 1
        else:
            self.not_started += 1

    def freeze(self, *, level: str) -> Learner:
        # finite cells can still sum past float range
        total = self.total_completion if math.isfinite(self.total_completion) else 0.0
        return Learner(
            id=self.id,
            name=self.name,
            email=self.email,
            district=self.district,
            courses=tuple(self.courses),
            total_completion=total,
            completed=self.completed,
            in_progress=self.in_progress,
            not_started=self.not_started,
            avg_completion=mean_rounded(self.total_completion, len(self.courses)),
            level=level,
        )


def aggregate_rows(rows: Iterable[RawRecord]) -> dict[int, Learner]:
    """Collapse one snapshot's rows into one Learner per learner id.

    The first row seen for an id supplies name, email and district; later
    rows for the same id only contribute courses.  The mapping preserves the
    order in which ids first appear.
    """
    tallies: dict[int, _Tally] = {}
    for row in rows:
        tally = tallies.get(row.user_id)
        if tally is None:
            tally = _Tally(
                id=row.user_id,
                name=row.full_name,
                email=row.email,
                district=row.district,
            )
            tallies[row.user_id] = tally
        tally.add(row)

    return {
        learner_id: tally.freeze(level=level_for(tally.completed))
        for learner_id, tally in tallies.items()
    }


def average_map(rows: Iterable[RawRecord]) -> AverageMap:
    """Per-learner rounded average completion across that learner's rows."""
    totals: dict[int, float] = {}
    counts: dict[int, int] = {}
    for row in rows:
        totals[row.user_id] = totals.get(row.user_id, 0.0) + row.completion
        counts[row.user_id] = counts.get(row.user_id, 0) + 1
    return {
        learner_id: mean_rounded(total, counts[learner_id])
        for learner_id, total in totals.items()
    }


# ---------------------------------------------------------------------------
# Cross-snapshot analysis
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CrossSnapshotResult:
    improved: tuple[Learner, ...]
    support: tuple[Learner, ...]
    # support before finished learners are dropped
    support_needed: tuple[Learner, ...]
    finished: tuple[Learner, ...]
    consistent: tuple[Learner, ...]
    failed: tuple[Learner, ...]

    @property
    def improved_count(self) -> int:
        return len(self.improved)


def recent_window(snapshot_count: int) -> range:
    """Absolute indexes of the (up to) four most recent snapshots."""
    return range(max(0, snapshot_count - RECENT_WINDOW), snapshot_count)


def recent_averages(
    learner_id: int, avg_maps: Sequence[Mapping[int, int]]
) -> tuple[int | None, ...]:
    """The learner's averages over the recent window, oldest first.

    Always four entries: None where the learner is absent from a snapshot,
    and None padding at the end when fewer than four snapshots exist.
    """
    values: list[int | None] = [
        avg_maps[i].get(learner_id) for i in recent_window(len(avg_maps))
    ]
    values.extend([None] * (RECENT_WINDOW - len(values)))
    return tuple(values)


def _latest_row_for(learner_id: int, snapshots: Sequence[Snapshot]) -> RawRecord | None:
    for snapshot in reversed(snapshots):
        for row in snapshot.rows:
            if row.user_id == learner_id:
                return row
    return None


def _synthesize_learner(
    learner_id: int,
    snapshots: Sequence[Snapshot],
    previous: Snapshot,
    current: Snapshot,
) -> Learner:
    """Build a record for a learner missing from the last snapshot.

    Courses come from the current then previous snapshot; identity comes
    from the most recent snapshot that mentions the learner.  No level is
    assigned.
    """
    source = _latest_row_for(learner_id, snapshots)
    tally = _Tally(
        id=learner_id,
        name=source.full_name if source else str(learner_id),
        email=source.email if source else "",
        district=source.district if source else "",
    )
    for snapshot in (current, previous):
        for row in snapshot.rows:
            if row.user_id == learner_id:
                tally.add(row)
    return tally.freeze(level="")


def _ordered_union(*maps: Mapping[int, int]) -> list[int]:
    seen: dict[int, None] = {}
    for m in maps:
        for learner_id in m:
            seen.setdefault(learner_id, None)
    return list(seen)


def analyze_snapshots(
    snapshots: Sequence[Snapshot],
    learners: Mapping[int, Learner],
    avg_maps: Sequence[AverageMap] | None = None,
) -> CrossSnapshotResult:
    """Classify learners across the snapshot sequence.

    Args:
        snapshots: full sequence, oldest first.
        learners: aggregate_rows() of the last snapshot.
        avg_maps: average_map() per snapshot, recomputed when omitted.

    Comparing the previous (second-to-last) and current (last) snapshot
    averages v1 and v2 (0 when absent):

      v1 < v2   → improved
      v1 == v2  → support (needs attention: no movement)
      v1 > v2   → neither list

    A regression is deliberately not flagged for support; callers relying on
    the support list must not assume it covers every stalled learner.

    Learners of the last snapshot whose average reached 100 in at least two
    snapshots are "finished" and are dropped from the support list.  The
    unfiltered list is kept as ``support_needed`` (the headline count).
    """
    if avg_maps is None:
        avg_maps = [average_map(s.rows) for s in snapshots]

    improved: list[Learner] = []
    support: list[Learner] = []

    if len(snapshots) >= 2:
        previous, current = snapshots[-2], snapshots[-1]
        prev_avgs, curr_avgs = avg_maps[-2], avg_maps[-1]

        for learner_id in _ordered_union(prev_avgs, curr_avgs):
            v1 = prev_avgs.get(learner_id, 0)
            v2 = curr_avgs.get(learner_id, 0)

            base = learners.get(learner_id)
            if base is None:
                base = _synthesize_learner(learner_id, snapshots, previous, current)
            enriched = replace(
                base,
                week1_avg=v1,
                week2_avg=v2,
                avg_completion=v2,
                recent_avgs=recent_averages(learner_id, avg_maps),
            )

            if v1 < v2:
                improved.append(enriched)
            elif v1 == v2:
                support.append(enriched)

    finished: list[Learner] = []
    consistent: list[Learner] = []
    if snapshots:
        for learner_id, learner in learners.items():
            hits = sum(
                1 for m in avg_maps if m.get(learner_id, 0) >= COMPLETED_THRESHOLD
            )
            if hits >= FINISHED_MIN_SNAPSHOTS:
                finished.append(learner)
                consistent.append(learner)

    support_needed = tuple(support)
    if finished:
        finished_ids = {f.id for f in finished}
        support = [s for s in support if s.id not in finished_ids]

    failed = [
        learner
        for learner in learners.values()
        if learner.avg_completion < FAILED_BELOW and learner.in_progress > 0
    ]

    return CrossSnapshotResult(
        improved=tuple(improved),
        support=tuple(support),
        support_needed=support_needed,
        finished=tuple(finished),
        consistent=tuple(consistent),
        failed=tuple(failed),
    )


# ---------------------------------------------------------------------------
# Period summaries
# ---------------------------------------------------------------------------


def period_label(snapshot: Snapshot, index: int) -> str:
    return snapshot.name or f"Week {index + 1}"


def summarize_periods(
    snapshots: Sequence[Snapshot],
    avg_maps: Sequence[AverageMap] | None = None,
) -> list[PeriodSummary]:
    """One PeriodSummary per snapshot, in sequence order."""
    if avg_maps is None:
        avg_maps = [average_map(s.rows) for s in snapshots]

    summaries: list[PeriodSummary] = []
    for index, (snapshot, averages) in enumerate(zip(snapshots, avg_maps)):
        counts = {"completed": 0, "in_progress": 0, "not_started": 0}
        for value in averages.values():
            counts[bucket_of(value)] += 1
        summaries.append(
            PeriodSummary(
                label=period_label(snapshot, index),
                learners=len(averages),
                avg=mean_rounded(sum(averages.values()), len(averages)),
                completed=counts["completed"],
                in_progress=counts["in_progress"],
                not_started=counts["not_started"],
            )
        )
    return summaries


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def compute_analytics(snapshots: Sequence[Snapshot]) -> Analytics | None:
    """Full analytics for the snapshot sequence, or None when it is empty."""
    if not snapshots:
        return None

    learners = aggregate_rows(snapshots[-1].rows)
    avg_maps = [average_map(s.rows) for s in snapshots]
    cross = analyze_snapshots(snapshots, learners, avg_maps)

    current = tuple(learners.values())
    return Analytics(
        total_learners=len(learners),
        improved_learners=cross.improved_count,
        support_needed=cross.support_needed,
        improved_list=cross.improved,
        support_list=cross.support,
        failed_students=cross.failed,
        finished_students=cross.finished,
        consistent_completers=cross.consistent,
        average_completion=mean_rounded(
            sum(learner.avg_completion for learner in current), len(current)
        ),
        learners=current,
        monthly_data=tuple(summarize_periods(snapshots, avg_maps)),
    )
