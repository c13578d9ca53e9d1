from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One row of an uploaded progress report: one learner × one course.

    Fields are already coerced (see services/ingest.py); the analytics code
    never re-validates them.
    """

    user_id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    district: str = ""
    user_status: str = ""
    created_at: str = ""  # opaque, as exported by the LMS
    last_access_at: str = ""
    course_title: str = ""
    course_status: str = ""  # e.g. Completed|In Progress|Not Started
    completion: float = 0.0  # 0–100 expected, never clamped

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One imported report: a reporting period's rows, in file order."""

    name: str
    rows: tuple[RawRecord, ...] = ()

    @staticmethod
    def new(*, name: str, rows: list[RawRecord] | tuple[RawRecord, ...]) -> Snapshot:
        return Snapshot(name=name, rows=tuple(rows))
