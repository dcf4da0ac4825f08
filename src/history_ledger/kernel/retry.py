"""
Retry logic with exponential backoff for the append path.

Only writes are retried. Queries never retry: transient store failures on
reads propagate to the caller unchanged.
"""

import sqlite3
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from history_ledger.kernel.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def retry_on_sqlite_lock(
    max_attempts: int = 3,
    min_wait_ms: int = 100,
    max_wait_ms: int = 1000,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry decorator for SQLite lock contention (OperationalError).

    SQLite uses file-based locking and can report "database is locked"
    while another writer holds the lock.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        min_wait_ms: Minimum wait time in milliseconds (default: 100)
        max_wait_ms: Maximum wait time in milliseconds (default: 1000)

    Example:
        @retry_on_sqlite_lock()
        def append(self, entry):
            ...
    """
    return retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=min_wait_ms / 1000.0,
            max=max_wait_ms / 1000.0,
        ),
        before_sleep=lambda retry_state: logger.warning(
            "SQLite lock detected, retrying",
            attempt=retry_state.attempt_number,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        ),
        reraise=True,
    )
