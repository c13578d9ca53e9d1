"""CSV export of a learner list.

Columns, in order:

  id, name, email
  one column per recent report label (up to four, oldest first): "73%" or ""
  Δ            last known recent average minus first known, "+12%" / "-5%" / "0%"
  --- detailed mode only ---
  district, level, avgCompletion ("64%"), courses ("Title (Status - 80%) | ...")

Every field is double-quoted and embedded quotes are doubled.  Lines are
separated by a bare "\\n" with no trailing newline.
"""

from __future__ import annotations

import csv
import datetime
import io
from collections.abc import Sequence
from typing import Literal

from dashboard.models.learner import Course, Learner
from dashboard.models.snapshot import Snapshot
from dashboard.services.analytics import RECENT_WINDOW, period_label, recent_window

ColumnMode = Literal["compact", "detailed"]

DELTA_COLUMN = "Δ"


class NothingToExportError(ValueError):
    """Raised when the selected learner list is empty."""


def recent_period_labels(snapshots: Sequence[Snapshot]) -> list[str]:
    """Header labels lining up with Learner.recent_avgs positions.

    Always four labels.  Positions past the end of the sequence are named
    after the report number they would have had.  Repeated names get a
    " (2)", " (3)", ... suffix so every column stays distinct.
    """
    window = recent_window(len(snapshots))
    start = window.start
    labels: list[str] = []
    for offset in range(RECENT_WINDOW):
        index = start + offset
        if index < len(snapshots):
            labels.append(period_label(snapshots[index], index))
        else:
            labels.append(f"Report {index + 1}")
    return _dedupe(labels)


def _dedupe(labels: list[str]) -> list[str]:
    seen: dict[str, int] = {}
    out = []
    for label in labels:
        seen[label] = seen.get(label, 0) + 1
        out.append(label if seen[label] == 1 else f"{label} ({seen[label]})")
    return out


def _number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_percent(value: float | None) -> str:
    return "" if value is None else f"{_number(value)}%"


def format_delta(recent: Sequence[int | None] | None) -> str:
    known = [v for v in (recent or ()) if v is not None]
    if not known:
        return ""
    delta = known[-1] - known[0]
    return f"+{delta}%" if delta > 0 else f"{delta}%"


def format_course(course: Course) -> str:
    return f"{course.title} ({course.status} - {_number(course.completion)}%)"


def export_row(
    learner: Learner, mode: ColumnMode, labels: Sequence[str]
) -> dict[str, str]:
    recent = learner.recent_avgs or ()
    row: dict[str, str] = {
        "id": str(learner.id),
        "name": learner.name,
        "email": learner.email,
    }
    for i, label in enumerate(labels):
        row[label] = format_percent(recent[i] if i < len(recent) else None)
    row[DELTA_COLUMN] = format_delta(recent)

    if mode == "detailed":
        row["district"] = learner.district
        row["level"] = learner.level
        row["avgCompletion"] = format_percent(learner.avg_completion)
        row["courses"] = " | ".join(format_course(c) for c in learner.courses)
    return row


def export_rows(
    learners: Sequence[Learner], mode: ColumnMode, labels: Sequence[str]
) -> list[dict[str, str]]:
    if not learners:
        raise NothingToExportError("No learners to export")
    return [export_row(learner, mode, labels) for learner in learners]


def render_csv(rows: Sequence[dict[str, str]]) -> str:
    """Serialise rows; the header is taken from the first row's keys."""
    if not rows:
        return ""
    header = list(rows[0])
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow([row.get(h, "") for h in header])
    return buf.getvalue().removesuffix("\n")


def export_filename(now: datetime.datetime | None = None) -> str:
    now = now or datetime.datetime.now(datetime.UTC)
    return f"learners_export_{int(now.timestamp() * 1000)}.csv"
