"""SQLAlchemy table definitions.

The snapshot sequence is persisted as one JSONB document per storage key,
the same shape the dashboard has always saved: a list of
``{"name": ..., "rows": [...]}`` objects under
``learning_dashboard_snapshots``, and (legacy) a flat row list under
``learning_dashboard_data``.  Repos convert between these documents and the
frozen dataclasses in dashboard/models/.
"""

from __future__ import annotations

import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from dashboard.db.engine import Base


class DashboardDocumentRow(Base):
    __tablename__ = "dashboard_documents"

    storage_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[list] = mapped_column(JSONB, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
