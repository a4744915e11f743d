"""Lesson completion and derived progress endpoints.

  PUT /v1/progress/lessons                        -> save a completion flag
  GET /v1/progress/lessons/{course}/{module}/{lesson}
  GET /v1/progress/courses/{course}               -> course percentage
  GET /v1/progress/courses/{course}/modules       -> every module, display order
  GET /v1/progress/courses/{course}/modules/{module}

Reads never fail for "no data yet": unknown courses and modules answer
200 with zeros.  The only 4xx a learner can trigger on a valid token is
a 400 for an unusable identifier on the write path.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from learning_progress.api.dependencies import get_aggregator, get_tracker
from learning_progress.core.errors import InvalidIdentifier
from learning_progress.models.progress import ModuleProgress
from learning_progress.services.completion_tracker import LessonCompletionTracker
from learning_progress.services.progress_aggregator import ProgressAggregator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class LessonProgressIn(BaseModel):
    course_id: str
    module_id: str
    lesson_id: str
    completed: bool = True


class LessonProgressOut(BaseModel):
    course_id: str
    module_id: str
    lesson_id: str
    completed: bool


class ModuleProgressOut(BaseModel):
    course_id: str
    module_id: str
    title: str
    completed_count: int
    total_lessons: int
    progress_percent: int

    @staticmethod
    def of(m: ModuleProgress) -> ModuleProgressOut:
        return ModuleProgressOut(
            course_id=m.course_id,
            module_id=m.module_id,
            title=m.title,
            completed_count=m.completed_count,
            total_lessons=m.total_lessons,
            progress_percent=m.progress_percent,
        )


class CourseProgressOut(BaseModel):
    course_id: str
    progress_percent: int
    modules_completed: int
    total_modules: int


@router.put("/lessons", response_model=LessonProgressOut)
async def save_lesson_progress(
    body: LessonProgressIn,
    tracker: Annotated[LessonCompletionTracker, Depends(get_tracker)],
) -> LessonProgressOut:
    try:
        await tracker.save_lesson_progress(
            body.course_id, body.module_id, body.lesson_id, body.completed
        )
    except InvalidIdentifier as e:
        logger.warning("Rejected lesson progress write: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from None

    return LessonProgressOut(
        course_id=body.course_id,
        module_id=body.module_id,
        lesson_id=body.lesson_id,
        completed=await tracker.is_lesson_completed(
            body.course_id, body.module_id, body.lesson_id
        ),
    )


@router.get(
    "/lessons/{course_id}/{module_id}/{lesson_id}", response_model=LessonProgressOut
)
async def get_lesson_progress(
    course_id: str,
    module_id: str,
    lesson_id: str,
    tracker: Annotated[LessonCompletionTracker, Depends(get_tracker)],
) -> LessonProgressOut:
    return LessonProgressOut(
        course_id=course_id,
        module_id=module_id,
        lesson_id=lesson_id,
        completed=await tracker.is_lesson_completed(course_id, module_id, lesson_id),
    )


@router.get("/courses/{course_id}", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: str,
    aggregator: Annotated[ProgressAggregator, Depends(get_aggregator)],
) -> CourseProgressOut:
    modules = await aggregator.get_all_module_progress(course_id)
    return CourseProgressOut(
        course_id=course_id,
        progress_percent=await aggregator.get_course_progress(course_id),
        modules_completed=sum(1 for m in modules if m.is_complete),
        total_modules=len(modules),
    )


@router.get("/courses/{course_id}/modules", response_model=list[ModuleProgressOut])
async def list_module_progress(
    course_id: str,
    aggregator: Annotated[ProgressAggregator, Depends(get_aggregator)],
) -> list[ModuleProgressOut]:
    modules = await aggregator.get_all_module_progress(course_id)
    return [ModuleProgressOut.of(m) for m in modules]


@router.get(
    "/courses/{course_id}/modules/{module_id}", response_model=ModuleProgressOut
)
async def get_module_progress(
    course_id: str,
    module_id: str,
    aggregator: Annotated[ProgressAggregator, Depends(get_aggregator)],
) -> ModuleProgressOut:
    return ModuleProgressOut.of(await aggregator.get_module_progress(course_id, module_id))
