"""Timer collaborator and the transient import-summary banner.

The banner holds the summary of the last import (or "stored data cleared")
for a few seconds.  Expiry goes through a Scheduler so tests can drive it
without waiting on a real clock.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from dashboard.services.ingest import ImportSummary

logger = logging.getLogger(__name__)

IMPORT_BANNER_SECONDS = 6.0
CLEAR_BANNER_SECONDS = 4.0


class Scheduler(Protocol):
    def schedule(self, fn: Callable[[], None], delay: float) -> Any:
        """Run ``fn`` after ``delay`` seconds; returns a cancellable handle."""
        ...

    def cancel(self, handle: Any) -> None: ...


class AsyncioScheduler:
    """Timers on the running event loop (``loop.call_later``)."""

    def schedule(self, fn: Callable[[], None], delay: float) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, fn)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class ImportBanner:
    def __init__(
        self,
        scheduler: Scheduler,
        *,
        import_seconds: float = IMPORT_BANNER_SECONDS,
        clear_seconds: float = CLEAR_BANNER_SECONDS,
    ) -> None:
        self.scheduler = scheduler
        self._import_seconds = import_seconds
        self._clear_seconds = clear_seconds
        self._summary: ImportSummary | None = None
        self._timer: Any = None

    @property
    def current(self) -> ImportSummary | None:
        return self._summary

    def show(self, summary: ImportSummary) -> None:
        """Replace the banner; any pending expiry is cancelled first."""
        self._cancel_timer()
        self._summary = summary
        delay = self._clear_seconds if summary.is_clear else self._import_seconds
        self._timer = self.scheduler.schedule(self._expire, delay)

    def dismiss(self) -> None:
        self._cancel_timer()
        self._summary = None

    def _expire(self) -> None:
        self._timer = None
        self._summary = None
        logger.debug("Import banner expired")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self.scheduler.cancel(self._timer)
            self._timer = None


import_banner = ImportBanner(AsyncioScheduler())
