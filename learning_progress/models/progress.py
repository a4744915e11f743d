from __future__ import annotations

import json
import math
from dataclasses import dataclass

from learning_progress.core.errors import MalformedRecord


@dataclass(frozen=True, slots=True)
class CompletionRecord:
    """Stored completion flag for one (course, module, lesson)."""

    completed: bool
    updated_at: int

    def to_json(self) -> str:
        return json.dumps({"completed": self.completed, "updated_at": self.updated_at})

    @staticmethod
    def from_json(raw: str) -> CompletionRecord:
        """Decode a stored record.  Raises MalformedRecord on any shape error."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedRecord(f"completion record is not JSON: {raw!r}") from e

        # Older writers stored the bare boolean
        if isinstance(data, bool):
            return CompletionRecord(completed=data, updated_at=0)

        if not isinstance(data, dict) or not isinstance(data.get("completed"), bool):
            raise MalformedRecord(f"completion record has no boolean flag: {raw!r}")

        updated_at = data.get("updated_at", 0)
        if isinstance(updated_at, bool) or not isinstance(updated_at, int):
            updated_at = 0
        return CompletionRecord(completed=data["completed"], updated_at=updated_at)


@dataclass(frozen=True, slots=True)
class ModuleProgress:
    """Derived on read, never persisted."""

    course_id: str
    module_id: str
    completed_count: int
    total_lessons: int
    progress_percent: int
    title: str = ""

    @property
    def is_complete(self) -> bool:
        return self.progress_percent == 100

    @property
    def is_started(self) -> bool:
        return self.progress_percent > 0


@dataclass(frozen=True, slots=True)
class ActivitySummary:
    today_seconds: int = 0
    last_7_days_seconds: int = 0

    @property
    def has_activity(self) -> bool:
        return self.today_seconds > 0 or self.last_7_days_seconds > 0


@dataclass(frozen=True, slots=True)
class ProgressPoint:
    """Bar-chart point."""

    name: str
    progress: int


@dataclass(frozen=True, slots=True)
class CompletionSlice:
    """Pie-chart slice; ``value`` is a share of modules in percent."""

    name: str
    value: int
    color: str


def round_half_up(numerator: int, denominator: int) -> int:
    """Round numerator/denominator to the nearest int, halves going up.

    Integer arithmetic only, so 100 * 1 / 8 == 12.5 rounds to 13 with no
    float representation error.  Both arguments must be non-negative.
    """
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def percent(part: int, whole: int) -> int:
    """Half-up integer percentage, clamped to 0..100; 0 when whole is 0."""
    if whole <= 0:
        return 0
    part = min(max(part, 0), whole)
    return round_half_up(100 * part, whole)


def coerce_seconds(value: object) -> int:
    """Interpret one activity log value; anything but a positive number is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0
    if isinstance(value, float):
        if not math.isfinite(value) or value <= 0:
            return 0
        return int(value)
    return 0
