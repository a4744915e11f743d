"""Course catalog: which modules a course has and which lessons a module has.

Content CRUD belongs to the content-management service; the progress
core only reads the catalog to know what "100 %" means.  CourseCatalog
is the seam, InMemoryCourseCatalog the dev/test implementation seeded
with the platform's two AI courses.
"""

from __future__ import annotations

import logging
from typing import Protocol

from learning_progress.models.course import (
    Course,
    CourseModule,
    DashboardCategory,
    Lesson,
)

logger = logging.getLogger(__name__)


class CourseCatalog(Protocol):
    async def list_modules(self, course_id: str) -> list[CourseModule]: ...
    async def get_module(self, module_id: str) -> CourseModule | None: ...
    async def list_lessons(self, module_id: str) -> list[Lesson]: ...


def _display_order(module: CourseModule) -> tuple[int, str]:
    return (module.order, module.id)


class InMemoryCourseCatalog:
    def __init__(self) -> None:
        self._courses: dict[str, Course] = {}
        self._modules: dict[str, CourseModule] = {}
        self._lessons: dict[str, list[Lesson]] = {}

    def add_course(self, course: Course) -> None:
        self._courses[course.id] = course

    def add_module(self, module: CourseModule) -> None:
        self._modules[module.id] = module
        self._lessons.setdefault(module.id, [])

    def add_lesson(self, lesson: Lesson) -> None:
        if lesson.module_id not in self._modules:
            raise KeyError(f"module not found: {lesson.module_id}")
        lessons = [x for x in self._lessons[lesson.module_id] if x.id != lesson.id]
        lessons.append(lesson)
        lessons.sort(key=lambda x: (x.order, x.id))
        self._lessons[lesson.module_id] = lessons

    def clear(self) -> None:
        self._courses.clear()
        self._modules.clear()
        self._lessons.clear()

    async def list_modules(self, course_id: str) -> list[CourseModule]:
        modules = [m for m in self._modules.values() if m.course_id == course_id]
        return sorted(modules, key=_display_order)

    async def get_module(self, module_id: str) -> CourseModule | None:
        return self._modules.get(module_id)

    async def list_lessons(self, module_id: str) -> list[Lesson]:
        return list(self._lessons.get(module_id, []))


# ---------------------------------------------------------------------------
# Dashboard curricula: the fixed pillar categories each course charts.
# ---------------------------------------------------------------------------

CURRICULA: dict[str, tuple[DashboardCategory, ...]] = {
    "aiml-engineering": (
        DashboardCategory(name="Python", subject="python"),
        DashboardCategory(name="Machine Learning", subject="machine-learning"),
        DashboardCategory(name="Deep Learning", subject="deep-learning"),
        DashboardCategory(name="MLOps", subject="mlops"),
    ),
    "ai-engineering": (
        DashboardCategory(name="Python", subject="python"),
        DashboardCategory(name="ML", subject="machine-learning"),
        DashboardCategory(name="Deep Learning", subject="deep-learning"),
        DashboardCategory(name="Generative AI", subject="generative-ai"),
    ),
}


def curriculum_for(course_id: str) -> tuple[DashboardCategory, ...]:
    return CURRICULA.get(course_id, ())


_SAMPLE_COURSES = {
    "aiml-engineering": (
        "AI/ML Engineering",
        [
            ("aiml-python", "Python for ML", "python", 4),
            ("aiml-ml", "Machine Learning", "machine-learning", 4),
            ("aiml-dl", "Deep Learning", "deep-learning", 3),
            ("aiml-mlops", "MLOps", "mlops", 3),
        ],
    ),
    "ai-engineering": (
        "AI Engineering",
        [
            ("ai-python", "Python Foundations", "python", 3),
            ("ai-ml", "ML Essentials", "machine-learning", 3),
            ("ai-dl", "Deep Learning", "deep-learning", 3),
            ("ai-genai", "Generative AI", "generative-ai", 4),
        ],
    ),
}


def seed_sample_catalog(catalog: InMemoryCourseCatalog) -> None:
    """Seed both sample courses for development and tests."""
    for course_id, (title, modules) in _SAMPLE_COURSES.items():
        catalog.add_course(Course(id=course_id, title=title))
        for order, (module_id, module_title, subject, lesson_count) in enumerate(
            modules, start=1
        ):
            catalog.add_module(
                CourseModule(
                    id=module_id,
                    course_id=course_id,
                    title=module_title,
                    order=order,
                    subject=subject,
                )
            )
            for n in range(1, lesson_count + 1):
                catalog.add_lesson(
                    Lesson(
                        id=f"{module_id}-l{n}",
                        module_id=module_id,
                        title=f"{module_title} {n}",
                        order=n,
                    )
                )
    logger.debug("Seeded sample catalog with %d courses", len(_SAMPLE_COURSES))


course_catalog = InMemoryCourseCatalog()
seed_sample_catalog(course_catalog)
