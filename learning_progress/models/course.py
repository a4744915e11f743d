from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str


@dataclass(frozen=True, slots=True)
class CourseModule:
    id: str
    course_id: str
    title: str
    order: int = 0
    subject: str | None = None  # pillar category key, see DashboardCategory


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    module_id: str
    title: str = ""
    order: int = 0


@dataclass(frozen=True, slots=True)
class DashboardCategory:
    """One bar of a course's pillar chart.

    ``subject`` is matched against ``CourseModule.subject``; ``name`` is
    the label the chart shows.
    """

    name: str
    subject: str
