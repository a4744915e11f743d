"""Chart-ready dashboard series.

The fallbacks apply only when the aggregator had nothing at all to say
about a course (unknown curriculum, no modules).  A course whose modules
exist but are untouched gets real zeros from the aggregator, not these.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from learning_progress.models.progress import CompletionSlice, ProgressPoint
from learning_progress.services.progress_aggregator import (
    COMPLETED,
    IN_PROGRESS,
    NOT_STARTED,
    SLICE_COLORS,
    ProgressAggregator,
)


def fallback_progress_series(course_id: str) -> list[ProgressPoint]:
    ai_engineering = course_id == "ai-engineering"
    return [
        ProgressPoint(name="Python", progress=0),
        ProgressPoint(name="ML" if ai_engineering else "Machine Learning", progress=0),
        ProgressPoint(name="Deep Learning", progress=0),
        ProgressPoint(name="Generative AI" if ai_engineering else "MLOps", progress=0),
    ]


def fallback_completion_series() -> list[CompletionSlice]:
    return [
        CompletionSlice(name=COMPLETED, value=0, color=SLICE_COLORS[COMPLETED]),
        CompletionSlice(name=IN_PROGRESS, value=0, color=SLICE_COLORS[IN_PROGRESS]),
        CompletionSlice(name=NOT_STARTED, value=100, color=SLICE_COLORS[NOT_STARTED]),
    ]


def progress_series(course_id: str, points: Sequence[ProgressPoint]) -> list[ProgressPoint]:
    return list(points) if points else fallback_progress_series(course_id)


def completion_series(slices: Sequence[CompletionSlice]) -> list[CompletionSlice]:
    return list(slices) if slices else fallback_completion_series()


@dataclass(frozen=True, slots=True)
class CourseDashboard:
    course_id: str
    overall_progress: int
    modules_completed: int
    total_modules: int
    progress: list[ProgressPoint]
    completion: list[CompletionSlice]


async def build_course_dashboard(
    aggregator: ProgressAggregator, course_id: str
) -> CourseDashboard:
    modules = await aggregator.get_all_module_progress(course_id)
    return CourseDashboard(
        course_id=course_id,
        overall_progress=await aggregator.get_course_progress(course_id),
        modules_completed=sum(1 for m in modules if m.is_complete),
        total_modules=len(modules),
        progress=progress_series(
            course_id, await aggregator.get_dashboard_progress_data(course_id)
        ),
        completion=completion_series(await aggregator.get_completion_status(course_id)),
    )
