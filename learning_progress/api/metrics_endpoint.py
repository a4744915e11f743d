"""Prometheus scrape target.

Exposes the inventory in core/metrics.py in text exposition format.
Restrict it to the monitoring network in production: per-route counts
reveal which courses learners are working on.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
