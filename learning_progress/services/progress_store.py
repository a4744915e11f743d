"""Key-value persistence for completion records and activity logs.

Two layers:

  KeyValueStore (protocol): a raw async string store.
    InMemoryKeyValueStore for dev/tests, RedisKeyValueStore for
    production.  Backends raise StorageUnavailable when the store is
    unreachable and MalformedRecord when an increment hits a value that
    is not an integer.

  ProgressStore: one user's view over a KeyValueStore.
    Builds the namespaced keys and absorbs backend failures: reads
    degrade to "absent", writes are dropped after a WARNING log line
    and a progress_store_errors_total tick.  Nothing in this class
    raises to the caller, so a broken store shows up as an empty
    dashboard, never as a 500.

KEY SHAPE
---------
  progress:{user_id}:completion:{course_id}:{module_id}:{lesson_id}
  progress:{user_id}:activity:{YYYY-MM-DD}
  progress-users:{user_id}            (index for the admin user list)

The user id is percent-encoded so one user's prefix can never be a
prefix of another's.  Completion records and activity counters never
share a prefix, and no key expires.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable
from urllib.parse import quote, unquote

import redis.exceptions

from learning_progress.core.errors import MalformedRecord, StorageUnavailable
from learning_progress.core.metrics import STORE_ERRORS
from learning_progress.db.redis import redis_pool

logger = logging.getLogger(__name__)

COMPLETION = "completion"
ACTIVITY = "activity"

_KEY_PREFIX = "progress"
_USER_INDEX_PREFIX = "progress-users:"


@runtime_checkable
class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a value.  Returns None when the key is absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value with no expiry."""
        ...

    async def incr_by(self, key: str, amount: int) -> int:
        """Atomically add ``amount`` to an integer value (absent = 0)."""
        ...

    async def scan(self, prefix: str) -> dict[str, str]:
        """Return every key starting with ``prefix`` and its value."""
        ...


class InMemoryKeyValueStore:
    """Dict-backed store for dev and tests.

    The autouse fixture in conftest.py clears ``_store`` between tests.
    Increments are a read-modify-write, which is safe because everything
    runs inside one event loop step.
    """

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str) -> None:
        self._store[key] = value

    async def incr_by(self, key: str, amount: int) -> int:
        current = self._store.get(key)
        try:
            base = int(current) if current is not None else 0
        except ValueError:
            raise MalformedRecord(f"{key} holds a non-integer value") from None
        total = base + amount
        self._store[key] = str(total)
        return total

    async def scan(self, prefix: str) -> dict[str, str]:
        return {k: v for k, v in self._store.items() if k.startswith(prefix)}


def _escape_glob(text: str) -> str:
    # SCAN MATCH is a glob; user and course ids are data, not patterns
    return "".join(f"\\{c}" if c in "*?[]\\" else c for c in text)


class RedisKeyValueStore:
    """Redis-backed store shared by every API instance."""

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except redis.exceptions.RedisError as e:
            raise StorageUnavailable(f"GET {key} failed: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(key, value)
        except redis.exceptions.RedisError as e:
            raise StorageUnavailable(f"SET {key} failed: {e}") from e

    async def incr_by(self, key: str, amount: int) -> int:
        # INCRBY is atomic on the server: two ticks from two instances
        # both land, neither overwrites the other.
        try:
            return int(await self._redis.incrby(key, amount))
        except redis.exceptions.ResponseError as e:
            raise MalformedRecord(f"{key} holds a non-integer value") from e
        except redis.exceptions.RedisError as e:
            raise StorageUnavailable(f"INCRBY {key} failed: {e}") from e

    async def scan(self, prefix: str) -> dict[str, str]:
        # Cursor-based SCAN instead of KEYS so a large keyspace never
        # blocks the server.
        found: dict[str, str] = {}
        try:
            cursor = 0
            while True:
                cursor, keys = await self._redis.scan(
                    cursor, match=f"{_escape_glob(prefix)}*", count=100
                )
                if keys:
                    values = await self._redis.mget(keys)
                    for key, value in zip(keys, values):
                        if value is not None:
                            found[key] = value
                if cursor == 0:
                    break
        except redis.exceptions.RedisError as e:
            raise StorageUnavailable(f"SCAN {prefix}* failed: {e}") from e
        return found


class ProgressStore:
    """One user's namespaced, failure-absorbing view of a KeyValueStore."""

    def __init__(self, backend: KeyValueStore, user_id: str) -> None:
        self._backend = backend
        self.user_id = user_id
        self._prefix = f"{_KEY_PREFIX}:{quote(user_id, safe='')}:"

    def key(self, entity: str, *parts: str) -> str:
        return f"{self._prefix}{entity}:{':'.join(parts)}"

    def _degraded(self, operation: str, key: str, error: Exception) -> None:
        STORE_ERRORS.labels(operation=operation).inc()
        logger.warning(
            "Progress store %s failed for %s: %s",
            operation,
            key,
            error,
            extra={"user_id": self.user_id, "operation": operation},
        )

    async def get(self, key: str) -> str | None:
        try:
            return await self._backend.get(key)
        except StorageUnavailable as e:
            self._degraded("get", key, e)
            return None

    async def set(self, key: str, value: str) -> bool:
        """Write one key.  Returns False when the write was dropped."""
        try:
            await self._backend.set(key, value)
        except StorageUnavailable as e:
            self._degraded("set", key, e)
            return False
        return True

    async def incr_by(self, key: str, amount: int) -> int | None:
        """Add to a counter.  Returns the new total, or None when dropped."""
        try:
            return await self._backend.incr_by(key, amount)
        except MalformedRecord:
            # A corrupt counter reads as 0, so restart it from this tick
            logger.warning(
                "Resetting malformed counter %s",
                key,
                extra={"user_id": self.user_id},
            )
            if await self.set(key, str(amount)):
                return amount
            return None
        except StorageUnavailable as e:
            self._degraded("incr_by", key, e)
            return None

    async def scan(self, entity: str) -> dict[str, str]:
        """All of this user's keys for one entity, keyed by the id suffix."""
        prefix = f"{self._prefix}{entity}:"
        try:
            found = await self._backend.scan(prefix)
        except StorageUnavailable as e:
            self._degraded("scan", prefix, e)
            return {}
        return {k[len(prefix) :]: v for k, v in found.items()}

    async def mark_tracked(self) -> None:
        """Register this user in the admin index (idempotent)."""
        await self.set(f"{_USER_INDEX_PREFIX}{quote(self.user_id, safe='')}", "1")


async def list_tracked_users(backend: KeyValueStore) -> list[str]:
    """Every user id that has ever written progress, sorted."""
    try:
        found = await backend.scan(_USER_INDEX_PREFIX)
    except StorageUnavailable as e:
        STORE_ERRORS.labels(operation="scan").inc()
        logger.warning("Tracked-user scan failed: %s", e)
        return []
    return sorted(unquote(k[len(_USER_INDEX_PREFIX) :]) for k in found)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    progress_backend: KeyValueStore = RedisKeyValueStore(redis_pool)
else:
    progress_backend = InMemoryKeyValueStore()
