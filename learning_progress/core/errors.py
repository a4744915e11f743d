"""Error taxonomy for the progress core.

Only the write boundary lets errors escape to callers:
InvalidIdentifier and InvalidDuration are developer-facing bugs in the
calling code.  StorageUnavailable and MalformedRecord are raised by the
low layers and absorbed before they reach a dashboard read.
"""

from __future__ import annotations


class ProgressError(Exception):
    pass


class InvalidIdentifier(ProgressError, ValueError):
    """A course/module/lesson id is empty or cannot be used in a store key."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"{field} must be a non-empty identifier (got {value!r})")
        self.field = field
        self.value = value


class InvalidDuration(ProgressError, ValueError):
    """An activity tick is not a non-negative integer number of seconds."""


class StorageUnavailable(ProgressError):
    """The key-value backend could not be read or written."""


class MalformedRecord(ProgressError, ValueError):
    """A stored value does not have the expected shape."""
