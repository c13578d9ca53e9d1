from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from dashboard.api.dependencies import memory_store
from dashboard.main import app
from dashboard.models.snapshot import RawRecord, Snapshot
from dashboard.services.cache import cache_service
from dashboard.services.scheduler import import_banner

# Ensure repo root is on sys.path so `import dashboard` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeScheduler:
    """Records scheduled callbacks instead of arming real timers."""

    def __init__(self) -> None:
        self.pending: dict[int, tuple[Any, float]] = {}
        self._next = 0

    def schedule(self, fn, delay: float) -> int:
        self._next += 1
        self.pending[self._next] = (fn, delay)
        return self._next

    def cancel(self, handle: int) -> None:
        self.pending.pop(handle, None)

    def fire_all(self) -> None:
        for handle in list(self.pending):
            fn, _ = self.pending.pop(handle)
            fn()


@pytest.fixture(autouse=True)
def reset_snapshot_store() -> None:
    """Start every test with nothing stored."""
    memory_store._documents.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def fake_scheduler() -> FakeScheduler:
    """Swap the banner's timers for a FakeScheduler and clear the banner."""
    scheduler = FakeScheduler()
    import_banner.dismiss()
    import_banner.scheduler = scheduler
    return scheduler


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Report row helpers
# ---------------------------------------------------------------------------


def report_row(
    user_id: int | str,
    first: str,
    completion: Any,
    *,
    course: str = "Math",
    last: str = "Learner",
    email: str | None = None,
    district: str = "North",
    status: str = "In Progress",
) -> dict[str, Any]:
    """One row as it appears in an uploaded progress report."""
    return {
        "User ID": user_id,
        "User First Name": first,
        "User Last Name": last,
        "User Email": email if email is not None else f"{first.lower()}@example.com",
        "District": district,
        "User Status": "Active",
        "User Creation Date": "2025-09-01",
        "User last access date": "2026-01-15",
        "Curriculum Title (Transcript)": course,
        "Transcript Status Group": status,
        "Curriculum Completion Percentage": completion,
    }


def record(
    user_id: int,
    completion: float,
    *,
    first: str = "",
    course: str = "Math",
    last: str = "Learner",
    email: str = "",
    district: str = "North",
) -> RawRecord:
    return RawRecord(
        user_id=user_id,
        first_name=first or f"User{user_id}",
        last_name=last,
        email=email or f"user{user_id}@example.com",
        district=district,
        course_title=course,
        course_status="In Progress",
        completion=completion,
    )


def snapshot(name: str, *rows: RawRecord) -> Snapshot:
    return Snapshot.new(name=name, rows=list(rows))
