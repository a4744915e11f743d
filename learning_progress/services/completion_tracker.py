"""Per-lesson completion flags.

The write path validates identifiers before touching storage and skips
the write entirely when the stored flag already matches, so marking a
lesson complete twice keeps the first timestamp and counts once.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Iterable

from learning_progress.core.errors import InvalidIdentifier, MalformedRecord
from learning_progress.core.metrics import LESSON_COMPLETIONS
from learning_progress.models.progress import CompletionRecord
from learning_progress.services.progress_store import COMPLETION, ProgressStore

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def validate_identifier(field: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip() or ":" in value:
        raise InvalidIdentifier(field, value)
    return value


class LessonCompletionTracker:
    def __init__(
        self, store: ProgressStore, clock: Callable[[], int] = _now
    ) -> None:
        self._store = store
        self._clock = clock

    def _key(self, course_id: str, module_id: str, lesson_id: str) -> str:
        return self._store.key(COMPLETION, course_id, module_id, lesson_id)

    async def get_record(
        self, course_id: str, module_id: str, lesson_id: str
    ) -> CompletionRecord | None:
        if not (course_id and module_id and lesson_id):
            return None
        raw = await self._store.get(self._key(course_id, module_id, lesson_id))
        if raw is None:
            return None
        try:
            return CompletionRecord.from_json(raw)
        except MalformedRecord as e:
            logger.warning(
                "Ignoring malformed completion record: %s",
                e,
                extra={
                    "user_id": self._store.user_id,
                    "course_id": course_id,
                    "module_id": module_id,
                    "lesson_id": lesson_id,
                },
            )
            return None

    async def is_lesson_completed(
        self, course_id: str, module_id: str, lesson_id: str
    ) -> bool:
        record = await self.get_record(course_id, module_id, lesson_id)
        return record is not None and record.completed

    async def save_lesson_progress(
        self, course_id: str, module_id: str, lesson_id: str, completed: bool
    ) -> None:
        """Persist one completion flag.

        Raises InvalidIdentifier for an empty or unusable id.  Storage
        failures are logged by the store and not raised.
        """
        validate_identifier("course_id", course_id)
        validate_identifier("module_id", module_id)
        validate_identifier("lesson_id", lesson_id)
        completed = bool(completed)

        existing = await self.get_record(course_id, module_id, lesson_id)
        if existing is not None and existing.completed == completed:
            logger.debug(
                "Lesson %s/%s/%s already completed=%s",
                course_id,
                module_id,
                lesson_id,
                completed,
            )
            return

        record = CompletionRecord(completed=completed, updated_at=self._clock())
        written = await self._store.set(
            self._key(course_id, module_id, lesson_id), record.to_json()
        )
        if not written:
            return

        if completed:
            await self._store.mark_tracked()
        LESSON_COMPLETIONS.labels(completed=str(completed).lower()).inc()
        logger.info(
            "Lesson progress saved %s/%s/%s completed=%s",
            course_id,
            module_id,
            lesson_id,
            completed,
            extra={
                "user_id": self._store.user_id,
                "course_id": course_id,
                "module_id": module_id,
                "lesson_id": lesson_id,
            },
        )

    async def completed_lessons(
        self, course_id: str, module_id: str, lesson_ids: Iterable[str]
    ) -> set[str]:
        """The subset of ``lesson_ids`` this user has completed."""
        done: set[str] = set()
        for lesson_id in lesson_ids:
            if await self.is_lesson_completed(course_id, module_id, lesson_id):
                done.add(lesson_id)
        return done
