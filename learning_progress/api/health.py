"""Liveness and readiness probes.

/health answers 200 whenever the process can respond; ``status`` says
whether the progress store is reachable.  A degraded store does not make
the service unready: reads degrade to "no data" and writes are dropped
and logged, so the learner-facing pages keep rendering.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from learning_progress.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["progress_store"] = "redis"
        except Exception:
            logger.warning("Health check: Redis unreachable", exc_info=True)
            checks["progress_store"] = "degraded"
            overall = "degraded"
    else:
        checks["progress_store"] = "in_memory"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    return Response(status_code=200)
