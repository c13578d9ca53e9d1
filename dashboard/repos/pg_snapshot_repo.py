"""PostgreSQL implementation of SnapshotStore."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.db.tables import DashboardDocumentRow
from dashboard.models.snapshot import Snapshot
from dashboard.repos.snapshot_repo import (
    LEGACY_ROWS_KEY,
    SNAPSHOTS_KEY,
    encode_snapshots,
    load_documents,
)

# pg_advisory_xact_lock key guarding the snapshot sequence; any stable bigint
SNAPSHOT_LOCK_ID = 0x5D0C_5EED


class PgSnapshotStore:
    """Satisfies the SnapshotStore Protocol using a JSONB document table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get(self, key: str) -> Any:
        stmt = select(DashboardDocumentRow.payload).where(
            DashboardDocumentRow.storage_key == key
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def load(self) -> list[Snapshot] | None:
        return load_documents(
            await self._get(SNAPSHOTS_KEY),
            await self._get(LEGACY_ROWS_KEY),
        )

    async def load_for_update(self) -> list[Snapshot] | None:
        # Advisory rather than SELECT ... FOR UPDATE: the first import has no
        # row to lock yet.  Released when the request's transaction ends.
        await self._session.execute(
            select(func.pg_advisory_xact_lock(SNAPSHOT_LOCK_ID))
        )
        return await self.load()

    async def save(self, snapshots: Sequence[Snapshot]) -> None:
        if not snapshots:
            await self.clear()
            return
        payload = encode_snapshots(snapshots)
        stmt = insert(DashboardDocumentRow).values(
            storage_key=SNAPSHOTS_KEY, payload=payload
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DashboardDocumentRow.storage_key],
            set_={"payload": stmt.excluded.payload, "updated_at": func.now()},
        )
        await self._session.execute(stmt)

    async def clear(self) -> None:
        stmt = delete(DashboardDocumentRow).where(
            DashboardDocumentRow.storage_key.in_([SNAPSHOTS_KEY, LEGACY_ROWS_KEY])
        )
        await self._session.execute(stmt)
