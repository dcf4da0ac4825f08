"""
Time provider abstraction and timestamp normalization

Log timestamps are compared as text inside SQLite, so every timestamp is
normalized to UTC with a fixed microsecond-precision ISO format before it is
stored or used as a query bound.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class TimeProvider(Protocol):
    """Protocol for time providers - allows deterministic testing"""

    def now(self) -> datetime:
        """Return current UTC datetime"""
        ...


class RealTimeProvider:
    """Production time provider using system clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class TestTimeProvider:
    """
    Controllable time provider for deterministic tests

    Allows tests to freeze and advance time so entries get
    reproducible timestamps.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, initial_time: datetime | None = None) -> None:
        self._current_time = initial_time or datetime(1970, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        self._current_time = dt

    def advance_seconds(self, seconds: int) -> None:
        self._current_time += timedelta(seconds=seconds)


def ensure_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime; naive values are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_storage(dt: datetime) -> str:
    """Serialize a timestamp into its sortable storage form."""
    return ensure_utc(dt).isoformat(timespec="microseconds")


def from_storage(value: str) -> datetime:
    """Parse a timestamp previously written by to_storage()."""
    return ensure_utc(datetime.fromisoformat(value))
