"""Snapshot import, listing and deletion.

  POST   /v1/snapshots                  append one snapshot per uploaded report
  GET    /v1/snapshots                  current sequence, oldest first
  DELETE /v1/snapshots/{index}          remove one snapshot
  DELETE /v1/snapshots                  clear all stored data
  GET    /v1/snapshots/import-summary   transient banner for the last import
  DELETE /v1/snapshots/import-summary   dismiss it

Every mutation loads the sequence with load_for_update() and saves it
whole; nothing derived from it is stored.  Analytics are recomputed
from whatever the store holds on the next read.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from dashboard.api.dependencies import get_snapshot_store
from dashboard.api.schemas import ImportIn, ImportSummaryOut, SnapshotOut
from dashboard.core.metrics import ROWS_INGESTED, SNAPSHOT_DELETIONS, SNAPSHOT_IMPORTS
from dashboard.models.snapshot import Snapshot
from dashboard.repos.snapshot_repo import SnapshotStore
from dashboard.services.cache import ANALYTICS_PREFIX, cache_service
from dashboard.services.ingest import ImportSummary, build_snapshot, summarize_import
from dashboard.services.scheduler import import_banner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/snapshots", tags=["snapshots"])

Store = Annotated[SnapshotStore, Depends(get_snapshot_store)]


def _listing(snapshots: list[Snapshot]) -> list[SnapshotOut]:
    return [
        SnapshotOut(index=i, name=s.name, row_count=len(s.rows))
        for i, s in enumerate(snapshots)
    ]


@router.post(
    "",
    response_model=ImportSummaryOut,
    status_code=status.HTTP_201_CREATED,
)
async def import_reports(body: ImportIn, store: Store) -> ImportSummaryOut:
    if not body.reports:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No reports provided"
        )

    sequence = await store.load_for_update() or []
    added: list[Snapshot] = []
    for report in body.reports:
        added.append(
            build_snapshot(
                report.rows,
                name=report.name,
                position=len(sequence) + len(added) + 1,
            )
        )
    sequence = sequence + added
    await store.save(sequence)

    summary = summarize_import(added, sequence)
    SNAPSHOT_IMPORTS.inc(summary.files)
    ROWS_INGESTED.inc(summary.rows_added)
    import_banner.show(summary)

    logger.info(
        "Imported %d report(s), %d row(s); %d snapshot(s) stored",
        summary.files,
        summary.rows_added,
        len(sequence),
        extra={"snapshot_count": len(sequence), "rows": summary.rows_added},
    )
    return ImportSummaryOut.from_summary(summary)


@router.get("", response_model=list[SnapshotOut])
async def list_snapshots(store: Store) -> list[SnapshotOut]:
    return _listing(await store.load() or [])


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_snapshots(store: Store) -> Response:
    # waits out any import or deletion still holding the sequence
    await store.load_for_update()
    await store.clear()
    await cache_service.delete_pattern(f"{ANALYTICS_PREFIX}*")
    SNAPSHOT_DELETIONS.labels(scope="all").inc()
    import_banner.show(ImportSummary.cleared())
    logger.info("Stored dashboard data cleared")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Registered before /{index} so the literal path wins.


@router.get("/import-summary", response_model=ImportSummaryOut | None)
async def get_import_summary() -> ImportSummaryOut | None:
    summary = import_banner.current
    return ImportSummaryOut.from_summary(summary) if summary else None


@router.delete("/import-summary", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_import_summary() -> Response:
    import_banner.dismiss()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{index}", response_model=list[SnapshotOut])
async def delete_snapshot(index: int, store: Store) -> list[SnapshotOut]:
    sequence = await store.load_for_update() or []
    if not 0 <= index < len(sequence):
        raise HTTPException(status_code=404, detail="snapshot not found")

    removed = sequence[index]
    remaining = sequence[:index] + sequence[index + 1 :]
    await store.save(remaining)
    SNAPSHOT_DELETIONS.labels(scope="one").inc()

    logger.info(
        "Deleted snapshot %d (%r); %d remaining",
        index,
        removed.name,
        len(remaining),
        extra={"snapshot_index": index, "snapshot_count": len(remaining)},
    )
    return _listing(remaining)
