"""Ingestion boundary: loosely-typed report rows → RawRecord / Snapshot.

Rows arrive as mappings keyed by the report's header row (as decoded from a
spreadsheet or CSV by the client, or as loaded from an older saved
document).  Cells may be strings, numbers or missing.  Coercion happens
once, here:

  numeric cells   "87.5" → 87.5, "" / "n/a" / None / NaN / ±inf → 0
  user id         numeric coercion, then truncated to int
  text cells      stringified and stripped, missing → ""
  timestamps      stringified as-is, missing → ""
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from dashboard.models.snapshot import RawRecord, Snapshot

logger = logging.getLogger(__name__)

# report header → RawRecord attribute
COLUMNS: dict[str, str] = {
    "User ID": "user_id",
    "User First Name": "first_name",
    "User Last Name": "last_name",
    "User Email": "email",
    "District": "district",
    "User Status": "user_status",
    "User Creation Date": "created_at",
    "User last access date": "last_access_at",
    "Curriculum Title (Transcript)": "course_title",
    "Transcript Status Group": "course_status",
    "Curriculum Completion Percentage": "completion",
}

_TEXT_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "district",
    "user_status",
    "course_title",
    "course_status",
)
_RAW_FIELDS = ("created_at", "last_access_at")

_EXTENSION = re.compile(r"\.[^.]+$")


def to_number(value: Any) -> float:
    """Best-effort numeric coercion; anything unusable becomes 0."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _cell(row: Mapping[str, Any], header: str) -> Any:
    if header in row:
        return row[header]
    return row.get(COLUMNS[header])


def coerce_row(row: Mapping[str, Any]) -> RawRecord:
    """Coerce one report row.  Accepts report headers or attribute names."""
    values: dict[str, Any] = {}
    for header, attr in COLUMNS.items():
        raw = _cell(row, header)
        if attr in _TEXT_FIELDS:
            values[attr] = "" if raw is None else str(raw).strip()
        elif attr in _RAW_FIELDS:
            values[attr] = "" if raw is None else str(raw)
        elif attr == "user_id":
            values[attr] = int(to_number(raw))
        else:
            values[attr] = to_number(raw)
    return RawRecord(**values)


def to_report_row(record: RawRecord) -> dict[str, Any]:
    """Inverse of coerce_row(): the record keyed by report headers."""
    return {header: getattr(record, attr) for header, attr in COLUMNS.items()}


def snapshot_name(name: str | None, position: int) -> str:
    """Display name for an imported report.

    A file name loses its extension; a missing or blank name becomes
    ``"Report {position}"`` (1-based position in the sequence).
    """
    base = _EXTENSION.sub("", (name or "").strip())
    return base or f"Report {position}"


def build_snapshot(
    rows: Iterable[Mapping[str, Any]], *, name: str | None, position: int
) -> Snapshot:
    records = [coerce_row(row) for row in rows]
    snapshot = Snapshot.new(name=snapshot_name(name, position), rows=records)
    logger.debug(
        "Built snapshot %r from %d rows",
        snapshot.name,
        len(records),
        extra={"rows": len(records)},
    )
    return snapshot


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """What the import banner shows after an upload (or a clear)."""

    files: int
    rows_added: int
    total_rows: int

    @property
    def is_clear(self) -> bool:
        return self.files == 0 and self.rows_added == 0

    @property
    def message(self) -> str:
        if self.is_clear:
            return "Stored data cleared"
        files = f"{self.files} file{'s' if self.files > 1 else ''}"
        rows = f"{self.rows_added} row{'' if self.rows_added == 1 else 's'}"
        return f"Imported {files} — {rows} added"

    @staticmethod
    def cleared() -> ImportSummary:
        return ImportSummary(files=0, rows_added=0, total_rows=0)


def summarize_import(
    added: Iterable[Snapshot], sequence: Iterable[Snapshot]
) -> ImportSummary:
    added = list(added)
    return ImportSummary(
        files=len(added),
        rows_added=sum(len(s.rows) for s in added),
        total_rows=sum(len(s.rows) for s in sequence),
    )
