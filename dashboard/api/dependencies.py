from __future__ import annotations

from collections.abc import AsyncGenerator

from dashboard.db.engine import async_session_factory
from dashboard.repos.pg_snapshot_repo import PgSnapshotStore
from dashboard.repos.snapshot_repo import InMemorySnapshotStore, SnapshotStore

# Used whenever DATABASE_URL is not configured (local dev, tests).
memory_store = InMemorySnapshotStore()


async def get_snapshot_store() -> AsyncGenerator[SnapshotStore, None]:
    """Request-scoped snapshot store.

    With a database, one session per request: committed when the handler
    returns, rolled back if it raises.  The process-wide in-memory store
    otherwise.
    """
    if async_session_factory is None:
        yield memory_store
        return

    async with async_session_factory() as session:
        try:
            yield PgSnapshotStore(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
