"""Analytics endpoints.

  GET /v1/analytics           full analytics, or null when nothing is stored
  GET /v1/analytics/learners  one learner list, searched/selected/sorted
  GET /v1/analytics/export    the same list as a CSV attachment

GET /v1/analytics is read-through cached.  The key is a fingerprint of the
stored snapshot sequence, so any import or deletion produces a new key and
a cached entry can never describe a sequence that no longer exists.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from dashboard.api.dependencies import get_snapshot_store
from dashboard.api.schemas import AnalyticsOut, LearnerOut
from dashboard.core.config import SETTINGS
from dashboard.core.metrics import ANALYTICS_DURATION, CACHE_OPERATIONS, CSV_EXPORTS
from dashboard.models.analytics import Analytics
from dashboard.models.learner import Learner
from dashboard.models.snapshot import Snapshot
from dashboard.repos.snapshot_repo import SnapshotStore, snapshot_fingerprint
from dashboard.services import export as csv_export
from dashboard.services.analytics import compute_analytics
from dashboard.services.cache import ANALYTICS_PREFIX, cache_service
from dashboard.services.learner_query import (
    ListKind,
    SortDirection,
    filter_learners,
    restrict_to,
    select_list,
    sort_learners,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])

Store = Annotated[SnapshotStore, Depends(get_snapshot_store)]


def _compute(snapshots: list[Snapshot]) -> Analytics | None:
    start = time.perf_counter()
    analytics = compute_analytics(snapshots)
    ANALYTICS_DURATION.observe(time.perf_counter() - start)
    return analytics


@router.get("", response_model=AnalyticsOut | None)
async def get_analytics(store: Store) -> AnalyticsOut | None:
    snapshots = await store.load() or []
    if not snapshots:
        return None

    use_cache = SETTINGS.analytics_cache_ttl > 0
    cache_key = f"{ANALYTICS_PREFIX}{snapshot_fingerprint(snapshots)}"

    if use_cache:
        cached = await cache_service.get(cache_key)
        if cached is not None:
            CACHE_OPERATIONS.labels(operation="hit").inc()
            return AnalyticsOut.model_validate(json.loads(cached))
        CACHE_OPERATIONS.labels(operation="miss").inc()

    analytics = _compute(snapshots)
    if analytics is None:
        return None
    out = AnalyticsOut.from_analytics(analytics)

    if use_cache:
        await cache_service.set(
            cache_key,
            out.model_dump_json(by_alias=True),
            SETTINGS.analytics_cache_ttl,
        )
    logger.debug(
        "Analytics recomputed for %d snapshot(s)",
        len(snapshots),
        extra={"snapshot_count": len(snapshots)},
    )
    return out


async def _browse(
    store: SnapshotStore,
    kind: ListKind,
    search: str | None,
    sort: str,
    direction: SortDirection,
    ids: list[int],
) -> tuple[list[Snapshot], list[Learner]]:
    snapshots = await store.load() or []
    analytics = _compute(snapshots)
    if analytics is None:
        return snapshots, []

    learners = select_list(analytics, kind)
    learners = filter_learners(learners, search)
    learners = restrict_to(learners, ids)
    learners = sort_learners(
        learners, sort, direction, snapshot_count=len(snapshots)
    )
    return snapshots, learners


@router.get("/learners", response_model=list[LearnerOut])
async def list_learners(
    store: Store,
    kind: Annotated[ListKind, Query(alias="list")] = "total",
    search: str | None = None,
    sort: str = "name",
    direction: SortDirection = "asc",
    ids: Annotated[list[int], Query()] = [],  # noqa: B006
) -> list[LearnerOut]:
    _, learners = await _browse(store, kind, search, sort, direction, ids)
    return [LearnerOut.from_learner(l) for l in learners]


@router.get("/export")
async def export_learners(
    store: Store,
    kind: Annotated[ListKind, Query(alias="list")] = "total",
    mode: csv_export.ColumnMode = "compact",
    search: str | None = None,
    sort: str = "name",
    direction: SortDirection = "asc",
    ids: Annotated[list[int], Query()] = [],  # noqa: B006
) -> Response:
    snapshots, learners = await _browse(store, kind, search, sort, direction, ids)
    labels = csv_export.recent_period_labels(snapshots)
    try:
        rows = csv_export.export_rows(learners, mode, labels)
    except csv_export.NothingToExportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from None

    CSV_EXPORTS.labels(mode=mode).inc()
    filename = csv_export.export_filename()
    logger.info("Exported %d learner(s) from %s list", len(rows), kind)
    return Response(
        content=csv_export.render_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
