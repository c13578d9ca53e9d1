"""Prometheus HTTP instrumentation.

Wraps every request except the ``/metrics`` scrape itself:

  - ACTIVE_REQUESTS goes up on entry and down on exit
  - REQUEST_COUNT is labelled with method, path and final status code
  - REQUEST_DURATION observes wall time

Unhandled exceptions are counted as 500 before being re-raised.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from dashboard.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

_UNINSTRUMENTED = frozenset({"/metrics"})


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _UNINSTRUMENTED:
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method, endpoint=path, status_code=status_code
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=path).observe(
                time.monotonic() - start
            )

        return response
