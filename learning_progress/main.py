from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learning_progress.api.activity import router as activity_router
from learning_progress.api.admin import router as admin_router
from learning_progress.api.dashboard import router as dashboard_router
from learning_progress.api.health import router as health_router
from learning_progress.api.metrics_endpoint import router as metrics_router
from learning_progress.api.progress import router as progress_router
from learning_progress.core.config import SETTINGS
from learning_progress.core.logging import setup_logging
from learning_progress.db.redis import lifespan_redis
from learning_progress.middleware.metrics import MetricsMiddleware
from learning_progress.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_redis():
        yield


app = FastAPI(
    title="learning-progress",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext → Metrics → CORS → route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(dashboard_router)
app.include_router(activity_router)
app.include_router(admin_router)

logger.info(
    "learning-progress started  env=%s log_level=%s port=%d store=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "redis" if SETTINGS.redis_url else "in-memory",
)
