from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashboard.api.analytics import router as analytics_router
from dashboard.api.health import router as health_router
from dashboard.api.metrics_endpoint import router as metrics_router
from dashboard.api.snapshots import router as snapshots_router
from dashboard.core.config import SETTINGS
from dashboard.core.logging import setup_logging
from dashboard.db.engine import lifespan_db
from dashboard.db.redis import lifespan_redis
from dashboard.middleware.metrics import MetricsMiddleware
from dashboard.middleware.request_context import (
    RequestContextMiddleware,
    install_request_id_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
for _handler in logging.getLogger().handlers:
    install_request_id_filter(_handler)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # torn down in reverse order
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="learning-dashboard",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)

# Last added runs first: RequestContext → Metrics → CORS → route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(snapshots_router)
app.include_router(analytics_router)

logger.info(
    "learning-dashboard started  env=%s log_level=%s port=%d cache_ttl=%ds",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.analytics_cache_ttl,
)
