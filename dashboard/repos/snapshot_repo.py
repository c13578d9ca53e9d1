"""Snapshot persistence: the full ordered sequence, saved as one document.

Storage layout (shared by every implementation):

  learning_dashboard_snapshots   [{"name": ..., "rows": [...]}, ...]
  learning_dashboard_data        legacy: one flat list of rows, no
                                 snapshot boundaries

Older saves of the first key may also hold a list of row lists.  All three
shapes load into a list of Snapshot; rows pass through coerce_row() so a
document written by any version of the dashboard loads cleanly.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from dashboard.models.snapshot import Snapshot
from dashboard.services.ingest import coerce_row, to_report_row

logger = logging.getLogger(__name__)

SNAPSHOTS_KEY = "learning_dashboard_snapshots"
LEGACY_ROWS_KEY = "learning_dashboard_data"

LEGACY_SNAPSHOT_NAME = "Week 1"
UNNAMED_SNAPSHOT = "Report"


class SnapshotStore(Protocol):
    async def load(self) -> list[Snapshot] | None: ...

    async def load_for_update(self) -> list[Snapshot] | None:
        """Load, holding the sequence until the caller's unit of work ends.

        Mutations (import, delete one) load through this so concurrent
        writers cannot both read the same sequence and drop an update.
        """
        ...

    async def save(self, snapshots: Sequence[Snapshot]) -> None: ...
    async def clear(self) -> None: ...


def encode_snapshots(snapshots: Sequence[Snapshot]) -> list[dict[str, Any]]:
    return [
        {"name": s.name, "rows": [to_report_row(r) for r in s.rows]}
        for s in snapshots
    ]


def snapshot_fingerprint(snapshots: Sequence[Snapshot]) -> str:
    """SHA-256 over the encoded sequence: equal content, equal fingerprint."""
    encoded = json.dumps(
        encode_snapshots(snapshots), sort_keys=True, ensure_ascii=False
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _rows(raw: Any) -> list[Mapping[str, Any]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise TypeError(f"expected a list of rows, got {type(raw).__name__}")
    return raw


def decode_snapshots(payload: Any) -> list[Snapshot] | None:
    """Decode the current-format document (either generation)."""
    if not isinstance(payload, list) or not payload:
        return None

    if isinstance(payload[0], list):
        return [
            Snapshot.new(
                name=f"Week {i + 1}",
                rows=[coerce_row(r) for r in _rows(rows)],
            )
            for i, rows in enumerate(payload)
        ]

    snapshots = []
    for entry in payload:
        if not isinstance(entry, Mapping):
            raise TypeError(f"expected a snapshot object, got {type(entry).__name__}")
        name = entry.get("name")
        snapshots.append(
            Snapshot.new(
                name=UNNAMED_SNAPSHOT if name is None else str(name),
                rows=[coerce_row(r) for r in _rows(entry.get("rows"))],
            )
        )
    return snapshots


def decode_legacy_rows(payload: Any) -> list[Snapshot] | None:
    """A flat row list becomes a single snapshot named "Week 1"."""
    if not isinstance(payload, list) or not payload:
        return None
    return [
        Snapshot.new(
            name=LEGACY_SNAPSHOT_NAME,
            rows=[coerce_row(r) for r in payload],
        )
    ]


def load_documents(current: Any, legacy: Any) -> list[Snapshot] | None:
    """Resolve the stored documents to a snapshot sequence.

    The current key wins when it holds anything; the legacy key is only
    consulted otherwise.  Corrupt documents are logged and read as empty.
    """
    try:
        snapshots = decode_snapshots(current)
        if snapshots:
            return snapshots
        return decode_legacy_rows(legacy)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning("Failed to load saved dashboard data: %s", e)
        return None


class InMemorySnapshotStore:
    """Process-local store; one document per storage key."""

    def __init__(self) -> None:
        self._documents: dict[str, Any] = {}

    async def load(self) -> list[Snapshot] | None:
        return load_documents(
            self._documents.get(SNAPSHOTS_KEY),
            self._documents.get(LEGACY_ROWS_KEY),
        )

    async def load_for_update(self) -> list[Snapshot] | None:
        # single event loop, and nothing between load and save suspends
        return await self.load()

    async def save(self, snapshots: Sequence[Snapshot]) -> None:
        if not snapshots:
            await self.clear()
            return
        self._documents[SNAPSHOTS_KEY] = encode_snapshots(snapshots)

    async def clear(self) -> None:
        self._documents.pop(SNAPSHOTS_KEY, None)
        self._documents.pop(LEGACY_ROWS_KEY, None)

    def put_document(self, key: str, payload: Any) -> None:
        """Write a raw document, as an older dashboard version would have."""
        self._documents[key] = copy.deepcopy(payload)
