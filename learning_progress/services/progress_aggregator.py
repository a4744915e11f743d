"""Module- and course-level progress, derived on every read.

Nothing here is cached: each call walks the catalog and asks the
tracker for every lesson.  A missing course, module or lesson list is
"0 %", never an error, because every caller is a dashboard.

Rounding
--------
Module percentages round half-up from exact integer arithmetic.  The
course percentage is the unweighted mean of the (already integer)
module percentages, rounded half-up once.  Completion-status slices are
shares of modules reconciled with the largest-remainder method so the
three values always total exactly 100.
"""

from __future__ import annotations

import logging

from learning_progress.models.course import CourseModule
from learning_progress.models.progress import (
    CompletionSlice,
    ModuleProgress,
    ProgressPoint,
    percent,
    round_half_up,
)
from learning_progress.services.catalog import CourseCatalog, curriculum_for
from learning_progress.services.completion_tracker import LessonCompletionTracker

logger = logging.getLogger(__name__)

COMPLETED = "Completed"
IN_PROGRESS = "In Progress"
NOT_STARTED = "Not Started"

SLICE_COLORS = {
    COMPLETED: "#10b981",
    IN_PROGRESS: "#3b82f6",
    NOT_STARTED: "#6b7280",
}


def largest_remainder(counts: list[int], total: int = 100) -> list[int]:
    """Apportion ``total`` across ``counts`` proportionally, summing exactly.

    Each share starts at its floor; the leftover units go to the largest
    fractional remainders, earlier entries winning ties.  All-zero counts
    return all zeros.
    """
    whole = sum(counts)
    if whole <= 0:
        return [0] * len(counts)

    floors = [c * total // whole for c in counts]
    remainders = [c * total % whole for c in counts]
    leftover = total - sum(floors)
    ranked = sorted(range(len(counts)), key=lambda i: (-remainders[i], i))
    for i in ranked[:leftover]:
        floors[i] += 1
    return floors


class ProgressAggregator:
    def __init__(
        self, tracker: LessonCompletionTracker, catalog: CourseCatalog
    ) -> None:
        self._tracker = tracker
        self._catalog = catalog

    async def _modules(self, course_id: str) -> list[CourseModule]:
        try:
            return await self._catalog.list_modules(course_id)
        except Exception:
            logger.exception("Catalog lookup failed for course=%s", course_id)
            return []

    async def _progress_for(self, course_id: str, module: CourseModule) -> ModuleProgress:
        try:
            lessons = await self._catalog.list_lessons(module.id)
        except Exception:
            logger.exception("Lesson lookup failed for module=%s", module.id)
            lessons = []

        lesson_ids = [lesson.id for lesson in lessons]
        done = await self._tracker.completed_lessons(course_id, module.id, lesson_ids)
        return ModuleProgress(
            course_id=course_id,
            module_id=module.id,
            title=module.title,
            completed_count=len(done),
            total_lessons=len(lesson_ids),
            progress_percent=percent(len(done), len(lesson_ids)),
        )

    async def get_module_progress(self, course_id: str, module_id: str) -> ModuleProgress:
        try:
            module = await self._catalog.get_module(module_id)
        except Exception:
            logger.exception("Catalog lookup failed for module=%s", module_id)
            module = None

        # A module id from another course is unknown here
        if module is None or module.course_id != course_id:
            return ModuleProgress(
                course_id=course_id,
                module_id=module_id,
                completed_count=0,
                total_lessons=0,
                progress_percent=0,
            )
        return await self._progress_for(course_id, module)

    async def get_all_module_progress(self, course_id: str) -> list[ModuleProgress]:
        return [
            await self._progress_for(course_id, module)
            for module in await self._modules(course_id)
        ]

    async def get_course_progress(self, course_id: str) -> int:
        modules = await self.get_all_module_progress(course_id)
        if not modules:
            return 0
        total = sum(m.progress_percent for m in modules)
        return round_half_up(total, len(modules))

    async def modules_completed(self, course_id: str) -> int:
        return sum(1 for m in await self.get_all_module_progress(course_id) if m.is_complete)

    async def get_dashboard_progress_data(self, course_id: str) -> list[ProgressPoint]:
        """Pillar-category bars; every category present, zero when unknown."""
        categories = curriculum_for(course_id)
        if not categories:
            return []

        by_subject: dict[str, list[int]] = {}
        for module in await self._modules(course_id):
            if module.subject:
                progress = await self._progress_for(course_id, module)
                by_subject.setdefault(module.subject, []).append(
                    progress.progress_percent
                )

        points = []
        for category in categories:
            values = by_subject.get(category.subject, [])
            progress = round_half_up(sum(values), len(values)) if values else 0
            points.append(ProgressPoint(name=category.name, progress=progress))
        return points

    async def get_completion_status(self, course_id: str) -> list[CompletionSlice]:
        """Completed / In Progress / Not Started shares of the course's modules."""
        modules = await self.get_all_module_progress(course_id)
        if not modules:
            return []

        completed = sum(1 for m in modules if m.is_complete)
        in_progress = sum(1 for m in modules if m.is_started and not m.is_complete)
        not_started = len(modules) - completed - in_progress

        names = (COMPLETED, IN_PROGRESS, NOT_STARTED)
        shares = largest_remainder([completed, in_progress, not_started])
        return [
            CompletionSlice(name=name, value=value, color=SLICE_COLORS[name])
            for name, value in zip(names, shares)
        ]
