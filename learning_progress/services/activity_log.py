"""Time-on-platform accounting.

The client sends a tick every N seconds while the learner's tab is
visible and focused; each tick adds its elapsed seconds to today's
counter.  Ticking incrementally means a closed tab or a crash loses at
most one tick, and because the write is an increment (INCRBY on Redis),
two ticks arriving together both count.

Day keys are ``YYYY-MM-DD`` in the server's local time zone.  A learner
who crosses time zones will see day boundaries shift; that is accepted
for a personal tracker.
"""

from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Callable, Mapping
from numbers import Real

from learning_progress.core.errors import InvalidDuration
from learning_progress.core.metrics import ACTIVITY_SECONDS
from learning_progress.models.progress import ActivitySummary, coerce_seconds
from learning_progress.services.progress_store import ACTIVITY, ProgressStore

logger = logging.getLogger(__name__)

WINDOW_DAYS = 7


def local_today() -> datetime.date:
    return datetime.datetime.now().astimezone().date()


def date_key(day: datetime.date) -> str:
    return day.isoformat()


def compute_activity_summary(
    activity_log: object, today: datetime.date | None = None
) -> ActivitySummary:
    """Sum today's seconds and the 7 calendar days ending today.

    Pure over the snapshot it is given.  A missing or non-mapping log is
    empty; entries that are not positive numbers count as 0.
    """
    if not isinstance(activity_log, Mapping):
        return ActivitySummary()

    today = today or local_today()
    today_seconds = coerce_seconds(activity_log.get(date_key(today)))

    last_7_days = 0
    for offset in range(WINDOW_DAYS):
        day = today - datetime.timedelta(days=offset)
        last_7_days += coerce_seconds(activity_log.get(date_key(day)))

    return ActivitySummary(today_seconds=today_seconds, last_7_days_seconds=last_7_days)


def format_duration(total_seconds: object) -> str:
    """Render seconds as at most two units, largest first.

    3725 -> "1h 2m", 7200 -> "2h", 45 -> "45s", 0 or less -> "0m".
    Seconds only show when hours and minutes are both zero.
    """
    if isinstance(total_seconds, bool) or not isinstance(total_seconds, Real):
        return "0m"
    if not math.isfinite(total_seconds):
        return "0m"
    seconds = int(total_seconds)
    if seconds <= 0:
        return "0m"

    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if not parts:
        parts.append(f"{secs}s")
    return " ".join(parts[:2])


def activity_label(summary: ActivitySummary) -> str:
    """One-line text for the admin user list."""
    if not summary.has_activity:
        return "No data"
    return (
        f"{format_duration(summary.today_seconds)} today • "
        f"{format_duration(summary.last_7_days_seconds)} / 7d"
    )


def _parse_day(key: str) -> datetime.date | None:
    try:
        return datetime.date.fromisoformat(key)
    except ValueError:
        return None


class ActivityLogAggregator:
    def __init__(
        self,
        store: ProgressStore,
        today: Callable[[], datetime.date] = local_today,
    ) -> None:
        self._store = store
        self._today = today

    async def record_activity(self, seconds_elapsed: int) -> None:
        """Add one tick to today's counter.

        Raises InvalidDuration for a negative or non-integer tick.  A zero
        tick is accepted and writes nothing.
        """
        if isinstance(seconds_elapsed, bool) or not isinstance(seconds_elapsed, int):
            raise InvalidDuration(
                f"seconds_elapsed must be an integer (got {seconds_elapsed!r})"
            )
        if seconds_elapsed < 0:
            raise InvalidDuration(
                f"seconds_elapsed must be >= 0 (got {seconds_elapsed})"
            )
        if seconds_elapsed == 0:
            return

        day = date_key(self._today())
        total = await self._store.incr_by(self._store.key(ACTIVITY, day), seconds_elapsed)
        if total is None:
            return

        await self._store.mark_tracked()
        ACTIVITY_SECONDS.inc(seconds_elapsed)
        logger.debug(
            "Activity +%ds on %s (total %ds)",
            seconds_elapsed,
            day,
            total,
            extra={"user_id": self._store.user_id},
        )

    def _parse_entry(self, key: str, raw: str) -> int | None:
        try:
            seconds = int(raw)
        except (TypeError, ValueError):
            seconds = -1
        if _parse_day(key) is None or seconds < 0:
            logger.warning(
                "Skipping malformed activity entry %s=%r",
                key,
                raw,
                extra={"user_id": self._store.user_id},
            )
            return None
        return seconds

    async def get_activity_log(self) -> dict[str, int]:
        """Snapshot of every stored day; malformed entries are dropped.

        Walks the user's whole history.  Use ``summary`` for the rolling
        window, which reads only its own days.
        """
        log: dict[str, int] = {}
        for key, raw in (await self._store.scan(ACTIVITY)).items():
            seconds = self._parse_entry(key, raw)
            if seconds is not None:
                log[key] = seconds
        return log

    async def get_window(self, today: datetime.date) -> dict[str, int]:
        """The WINDOW_DAYS entries ending at ``today``, one key read per day."""
        window: dict[str, int] = {}
        for offset in range(WINDOW_DAYS):
            day = date_key(today - datetime.timedelta(days=offset))
            raw = await self._store.get(self._store.key(ACTIVITY, day))
            if raw is None:
                continue
            seconds = self._parse_entry(day, raw)
            if seconds is not None:
                window[day] = seconds
        return window

    async def summary(self) -> ActivitySummary:
        today = self._today()
        return compute_activity_summary(await self.get_window(today), today)
