from __future__ import annotations

import asyncio

import pytest

from learning_progress.models.course import CourseModule, Lesson
from learning_progress.models.progress import percent, round_half_up
from learning_progress.services.catalog import InMemoryCourseCatalog
from learning_progress.services.completion_tracker import LessonCompletionTracker
from learning_progress.services.progress_aggregator import (
    ProgressAggregator,
    largest_remainder,
)
from learning_progress.services.progress_store import (
    InMemoryKeyValueStore,
    ProgressStore,
)

COURSE = "course-x"


def _catalog(modules: dict[str, int], course_id: str = COURSE, subjects=None):
    """Build a catalog from {module_id: lesson_count}, in insertion order."""
    catalog = InMemoryCourseCatalog()
    for order, (module_id, count) in enumerate(modules.items()):
        catalog.add_module(
            CourseModule(
                id=module_id,
                course_id=course_id,
                title=module_id.upper(),
                order=order,
                subject=(subjects or {}).get(module_id),
            )
        )
        for n in range(count):
            catalog.add_lesson(Lesson(id=f"{module_id}{n}", module_id=module_id, order=n))
    return catalog


def _setup(modules: dict[str, int], done: dict[str, int], course_id=COURSE, subjects=None):
    tracker = LessonCompletionTracker(ProgressStore(InMemoryKeyValueStore(), "u"))
    catalog = _catalog(modules, course_id, subjects)

    async def complete() -> None:
        for module_id, k in done.items():
            for n in range(k):
                await tracker.save_lesson_progress(course_id, module_id, f"{module_id}{n}", True)

    asyncio.run(complete())
    return ProgressAggregator(tracker, catalog)


# ---- rounding helpers ----


@pytest.mark.parametrize(
    ("part", "whole", "expected"),
    [(0, 0, 0), (0, 5, 0), (3, 5, 60), (1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 5, 100), (7, 5, 100)],
)
def test_percent(part: int, whole: int, expected: int) -> None:
    assert percent(part, whole) == expected


def test_round_half_up_rounds_halves_up() -> None:
    assert round_half_up(25, 2) == 13
    assert round_half_up(5, 2) == 3
    assert round_half_up(1, 4) == 0


@pytest.mark.parametrize(
    ("counts", "expected"),
    [
        ([1, 1, 1], [34, 33, 33]),
        ([2, 1, 0], [67, 33, 0]),
        ([0, 0, 5], [0, 0, 100]),
        ([1, 2, 4], [14, 29, 57]),
        ([0, 0, 0], [0, 0, 0]),
    ],
)
def test_largest_remainder(counts: list[int], expected: list[int]) -> None:
    shares = largest_remainder(counts)
    assert shares == expected
    if any(counts):
        assert sum(shares) == 100


# ---- module progress ----


def test_module_progress_counts_completions() -> None:
    agg = _setup({"a": 5}, {"a": 3})
    m = asyncio.run(agg.get_module_progress(COURSE, "a"))
    assert (m.completed_count, m.total_lessons, m.progress_percent) == (3, 5, 60)
    assert m.title == "A"


def test_module_without_lessons_is_zero() -> None:
    agg = _setup({"b": 0}, {})
    assert asyncio.run(agg.get_module_progress(COURSE, "b")).progress_percent == 0


def test_unknown_module_is_zero_not_error() -> None:
    agg = _setup({}, {})
    m = asyncio.run(agg.get_module_progress(COURSE, "nope"))
    assert (m.completed_count, m.total_lessons, m.progress_percent) == (0, 0, 0)


def test_module_from_another_course_is_unknown() -> None:
    agg = _setup({"a": 4}, {"a": 2})
    m = asyncio.run(agg.get_module_progress("other-course", "a"))
    assert m.course_id == "other-course"
    assert (m.completed_count, m.total_lessons, m.progress_percent) == (0, 0, 0)


def test_completions_for_lessons_outside_the_module_are_ignored() -> None:
    agg = _setup({"a": 2}, {"a": 2})
    asyncio.run(agg._tracker.save_lesson_progress(COURSE, "a", "retired-lesson", True))
    assert asyncio.run(agg.get_module_progress(COURSE, "a")).progress_percent == 100


# ---- course progress ----


def test_scenario_two_modules_one_empty() -> None:
    agg = _setup({"a": 5, "b": 0}, {"a": 3})
    modules = asyncio.run(agg.get_all_module_progress(COURSE))
    assert [(m.module_id, m.progress_percent) for m in modules] == [("a", 60), ("b", 0)]
    assert asyncio.run(agg.get_course_progress(COURSE)) == 30


def test_course_progress_is_unweighted_mean() -> None:
    # 1/1 and 0/9 average to 50 regardless of lesson counts
    agg = _setup({"a": 1, "b": 9}, {"a": 1})
    assert asyncio.run(agg.get_course_progress(COURSE)) == 50


def test_course_progress_rounds_final_mean_half_up() -> None:
    # modules 50, 0, 0, 25 average to 18.75
    agg = _setup({"a": 2, "b": 2, "c": 1, "d": 4}, {"a": 1, "d": 1})
    assert asyncio.run(agg.get_course_progress(COURSE)) == 19


def test_empty_course_is_zero() -> None:
    agg = _setup({}, {})
    assert asyncio.run(agg.get_course_progress("unknown")) == 0
    assert asyncio.run(agg.get_all_module_progress("unknown")) == []


def test_modules_follow_display_order() -> None:
    catalog = InMemoryCourseCatalog()
    for module_id, order in (("late", 3), ("early", 1), ("mid", 2)):
        catalog.add_module(
            CourseModule(id=module_id, course_id=COURSE, title=module_id, order=order)
        )
    tracker = LessonCompletionTracker(ProgressStore(InMemoryKeyValueStore(), "u"))
    modules = asyncio.run(ProgressAggregator(tracker, catalog).get_all_module_progress(COURSE))
    assert [m.module_id for m in modules] == ["early", "mid", "late"]


def test_modules_completed_counts_full_modules() -> None:
    agg = _setup({"a": 2, "b": 2, "c": 1}, {"a": 2, "b": 1, "c": 1})
    assert asyncio.run(agg.modules_completed(COURSE)) == 2


# ---- completion status ----


def test_completion_status_one_of_each() -> None:
    agg = _setup({"a": 1, "b": 2, "c": 1}, {"a": 1, "b": 1})
    slices = asyncio.run(agg.get_completion_status(COURSE))
    assert [(s.name, s.value) for s in slices] == [
        ("Completed", 34),
        ("In Progress", 33),
        ("Not Started", 33),
    ]
    assert sum(s.value for s in slices) == 100


def test_completion_status_colors() -> None:
    agg = _setup({"a": 1}, {})
    colors = {s.name: s.color for s in asyncio.run(agg.get_completion_status(COURSE))}
    assert colors == {
        "Completed": "#10b981",
        "In Progress": "#3b82f6",
        "Not Started": "#6b7280",
    }


def test_completion_status_empty_course_has_no_slices() -> None:
    agg = _setup({}, {})
    assert asyncio.run(agg.get_completion_status(COURSE)) == []


@pytest.mark.parametrize("module_count", [1, 2, 3, 6, 7, 11])
def test_completion_status_always_sums_to_100(module_count: int) -> None:
    modules = {f"m{i}": 3 for i in range(module_count)}
    done = {f"m{i}": i % 4 for i in range(module_count)}
    agg = _setup(modules, done)
    assert sum(s.value for s in asyncio.run(agg.get_completion_status(COURSE))) == 100


# ---- dashboard bars ----


def test_dashboard_data_covers_every_category() -> None:
    agg = _setup(
        {"py": 4, "ml": 2},
        {"py": 2, "ml": 2},
        course_id="aiml-engineering",
        subjects={"py": "python", "ml": "machine-learning"},
    )
    points = asyncio.run(agg.get_dashboard_progress_data("aiml-engineering"))
    assert [(p.name, p.progress) for p in points] == [
        ("Python", 50),
        ("Machine Learning", 100),
        ("Deep Learning", 0),
        ("MLOps", 0),
    ]


def test_dashboard_data_uses_course_labels() -> None:
    agg = _setup({}, {}, course_id="ai-engineering")
    names = [p.name for p in asyncio.run(agg.get_dashboard_progress_data("ai-engineering"))]
    assert names == ["Python", "ML", "Deep Learning", "Generative AI"]


def test_dashboard_data_averages_modules_sharing_a_subject() -> None:
    agg = _setup(
        {"py1": 2, "py2": 2},
        {"py1": 2, "py2": 1},
        course_id="aiml-engineering",
        subjects={"py1": "python", "py2": "python"},
    )
    points = asyncio.run(agg.get_dashboard_progress_data("aiml-engineering"))
    assert points[0].name == "Python"
    assert points[0].progress == 75


def test_dashboard_data_empty_without_curriculum() -> None:
    agg = _setup({"a": 1}, {"a": 1})
    assert asyncio.run(agg.get_dashboard_progress_data(COURSE)) == []


# ---- failing catalog ----


class _BrokenCatalog:
    async def list_modules(self, course_id: str):
        raise RuntimeError("content service down")

    async def get_module(self, module_id: str):
        raise RuntimeError("content service down")

    async def list_lessons(self, module_id: str):
        raise RuntimeError("content service down")


def test_catalog_failure_degrades_to_zero() -> None:
    tracker = LessonCompletionTracker(ProgressStore(InMemoryKeyValueStore(), "u"))
    agg = ProgressAggregator(tracker, _BrokenCatalog())
    assert asyncio.run(agg.get_course_progress(COURSE)) == 0
    assert asyncio.run(agg.get_module_progress(COURSE, "a")).progress_percent == 0
    assert asyncio.run(agg.get_completion_status(COURSE)) == []
