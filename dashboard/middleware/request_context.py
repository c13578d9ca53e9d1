"""Request ids and per-request access logging.

Each request gets an id: the client's ``X-Request-ID`` header when it sends
one, a fresh UUID4 otherwise.  The id is kept in a ``ContextVar`` so any log
line emitted while the request is being served (import handling, analytics
recomputation, store access) carries it, and it is echoed back on the
response so a client can quote it when reporting a problem.

The ContextVar is per asyncio task; concurrent requests on the same thread
never see each other's id.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Copy the current request id onto every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_request_id_filter(target: logging.Filterer | None = None) -> None:
    """Attach the request id filter to ``target`` (root logger by default).

    Logger filters do not see records propagated from child loggers, so
    main.py also installs it on every root handler after setup_logging().
    Safe to call repeatedly; the filter is only added once.
    """
    target = target or logging.getLogger()
    if not any(isinstance(f, _RequestContextFilter) for f in target.filters):
        target.addFilter(_RequestContextFilter())


install_request_id_filter()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request and log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get(REQUEST_ID_HEADER.lower()) or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers[REQUEST_ID_HEADER] = req_id
            return response
        finally:
            request_id_var.reset(token)
