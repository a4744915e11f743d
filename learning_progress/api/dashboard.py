from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from learning_progress.api.dependencies import get_aggregator
from learning_progress.services.dashboard import build_course_dashboard
from learning_progress.services.progress_aggregator import ProgressAggregator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])


class ProgressPointOut(BaseModel):
    name: str
    progress: int


class CompletionSliceOut(BaseModel):
    name: str
    value: int
    color: str


class DashboardOut(BaseModel):
    course_id: str
    overall_progress: int
    modules_completed: int
    total_modules: int
    progress: list[ProgressPointOut]
    completion: list[CompletionSliceOut]


@router.get("/{course_id}", response_model=DashboardOut)
async def get_dashboard(
    course_id: str,
    aggregator: Annotated[ProgressAggregator, Depends(get_aggregator)],
) -> DashboardOut:
    """Everything the course dashboard renders, in one round trip."""
    dashboard = await build_course_dashboard(aggregator, course_id)
    return DashboardOut(
        course_id=dashboard.course_id,
        overall_progress=dashboard.overall_progress,
        modules_completed=dashboard.modules_completed,
        total_modules=dashboard.total_modules,
        progress=[
            ProgressPointOut(name=p.name, progress=p.progress)
            for p in dashboard.progress
        ],
        completion=[
            CompletionSliceOut(name=s.name, value=s.value, color=s.color)
            for s in dashboard.completion
        ],
    )
