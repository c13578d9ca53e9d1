"""Browsing helpers for the learner lists produced by compute_analytics().

A list is picked by kind, optionally narrowed by a search term and by an
explicit id selection, then sorted.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Literal

from dashboard.models.analytics import Analytics
from dashboard.models.learner import Learner
from dashboard.services.analytics import recent_window

ListKind = Literal[
    "improved", "support", "total", "average", "failed", "finished", "consistent"
]
SortDirection = Literal["asc", "desc"]

REPORT_SORT_PREFIX = "report:"


def select_list(analytics: Analytics, kind: ListKind) -> list[Learner]:
    if kind == "improved":
        return list(analytics.improved_list)
    if kind == "support":
        return list(analytics.support_list)
    if kind == "total":
        return list(analytics.learners)
    if kind == "average":
        return sorted(analytics.learners, key=lambda l: l.avg_completion, reverse=True)
    if kind == "failed":
        return list(analytics.failed_students)
    if kind == "finished":
        return list(analytics.finished_students)
    if kind == "consistent":
        return list(analytics.consistent_completers)
    raise ValueError(f"unknown learner list {kind!r}")


def filter_learners(learners: Iterable[Learner], term: str | None) -> list[Learner]:
    """Case-insensitive match on name or email, or a substring of the id."""
    if not term:
        return list(learners)
    needle = term.lower()
    return [
        l
        for l in learners
        if needle in l.name.lower()
        or needle in str(l.id)
        or needle in l.email.lower()
    ]


def restrict_to(learners: Iterable[Learner], selected_ids: Sequence[int]) -> list[Learner]:
    """Keep only the selected ids; no selection keeps everyone."""
    if not selected_ids:
        return list(learners)
    wanted = set(selected_ids)
    return [l for l in learners if l.id in wanted]


def _report_value(learner: Learner, relative: int) -> float:
    recent = learner.recent_avgs or ()
    if 0 <= relative < len(recent) and recent[relative] is not None:
        return float(recent[relative])  # type: ignore[arg-type]
    return -math.inf


def sort_learners(
    learners: Iterable[Learner],
    key: str,
    direction: SortDirection = "asc",
    *,
    snapshot_count: int = 0,
) -> list[Learner]:
    """Stable sort by ``name``, ``id``, ``avg`` or ``report:{index}``.

    ``report:{index}`` uses the absolute snapshot index and reads the value
    from the learner's recent window; learners without a value for that
    report sort as lowest.  Unknown keys leave the order unchanged.
    """
    items = list(learners)
    reverse = direction == "desc"

    if key == "name":
        return sorted(items, key=lambda l: l.name.casefold(), reverse=reverse)
    if key == "id":
        return sorted(items, key=lambda l: l.id, reverse=reverse)
    if key == "avg":
        return sorted(items, key=lambda l: l.avg_completion, reverse=reverse)
    if key.startswith(REPORT_SORT_PREFIX):
        try:
            absolute = int(key.removeprefix(REPORT_SORT_PREFIX))
        except ValueError:
            return items
        relative = absolute - recent_window(snapshot_count).start
        return sorted(items, key=lambda l: _report_value(l, relative), reverse=reverse)
    return items
