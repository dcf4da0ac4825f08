"""
HistoryLedger - Main façade class

Wires a SQLite log store, an entity resolver and the query engine behind one
object, and offers a small append helper for the write path.

Example:
    >>> from history_ledger import HistoryLedger
    >>> from history_ledger.log import ElementCreated
    >>> ledger = HistoryLedger("audit.db")
    >>> ledger.record(ElementCreated(), target=part, user=alice)
    >>> ledger.get_element_history(part)
    >>> ledger.get_creating_user(part)
"""

from datetime import datetime
from pathlib import Path
from typing import Any

from history_ledger.kernel.logging import get_logger
from history_ledger.kernel.time import RealTimeProvider, TimeProvider
from history_ledger.log.models import LogEntry, LogEntryKind, LogLevel, LogPayload, UserRecord
from history_ledger.log.repository import LogEntryRepository
from history_ledger.log.resolver import EntityResolver
from history_ledger.log.store import LogFilter, SortDirection, SQLiteLogEntryStore
from history_ledger.log.targets import Auditable, TargetRef, as_target

logger = get_logger(__name__)


class HistoryLedger:
    """
    History Ledger main façade

    Provides a unified API for:
    - Recording audit entries
    - Element history and global listing
    - Undelete data and time travel data
    - Existence checks and actor attribution
    """

    def __init__(
        self,
        sqlite_path: str | Path,
        resolver: EntityResolver | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        """
        Initialize the ledger

        Args:
            sqlite_path: Path to SQLite database
            resolver: Resolver for live entities (targets never resolve if None)
            time_provider: Time provider (uses real time if None)
        """
        self.sqlite_path = Path(sqlite_path)
        self.time_provider = time_provider or RealTimeProvider()
        self.store = SQLiteLogEntryStore(self.sqlite_path)
        self.repository = LogEntryRepository(self.store, resolver)

    # Write path

    def record(
        self,
        payload: LogPayload,
        target: Auditable | TargetRef | None = None,
        user: UserRecord | None = None,
        level: LogLevel = LogLevel.INFO,
        timestamp: datetime | None = None,
    ) -> LogEntry:
        """
        Append a new entry stamped with the current time

        Args:
            payload: Kind-specific payload (ElementCreated, ElementEdited, ...)
            target: Element or reference the entry is about; None for system entries
            user: Acting user, if any
            level: Severity
            timestamp: Explicit event time (defaults to the time provider)
        """
        entry = LogEntry(
            timestamp=timestamp or self.time_provider.now(),
            target=as_target(target) if target is not None else None,
            user_id=user.id if user else None,
            username=user.name if user else None,
            level=level,
            payload=payload,
        )
        stored = self.store.append(entry)
        logger.info(
            "Log entry recorded",
            entry_id=stored.id,
            kind=stored.kind.value,
            target=str(stored.target) if stored.target else None,
        )
        return stored

    def save_user(self, user: UserRecord) -> None:
        self.store.save_user(user)

    def delete_user(self, user_id: int) -> None:
        self.store.delete_user(user_id)

    # Queries

    def get_element_history(
        self,
        target: Auditable | TargetRef,
        order: str | SortDirection = SortDirection.DESC,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        return self.repository.get_element_history(target, order, limit, offset)

    def get_undelete_data(self, category_or_class: Any, element_id: int) -> LogEntry:
        return self.repository.get_undelete_data(category_or_class, element_id)

    def get_time_travel_data(
        self, target: Auditable | TargetRef, until: datetime
    ) -> list[LogEntry]:
        return self.repository.get_time_travel_data(target, until)

    def element_existed_at(self, target: Auditable | TargetRef, timestamp: datetime) -> bool:
        return self.repository.element_existed_at(target, timestamp)

    def get_last_editing_user(self, target: Auditable | TargetRef) -> UserRecord | None:
        return self.repository.get_last_editing_user(target)

    def get_creating_user(self, target: Auditable | TargetRef) -> UserRecord | None:
        return self.repository.get_creating_user(target)

    def get_last_user(
        self, target: Auditable | TargetRef, kind: LogEntryKind
    ) -> UserRecord | None:
        return self.repository.get_last_user(target, kind)

    def get_target_element(self, entry: LogEntry) -> Any | None:
        return self.repository.get_target_element(entry)

    def get_logs_ordered_by_timestamp(
        self,
        order: str | SortDirection = SortDirection.DESC,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        return self.repository.get_logs_ordered_by_timestamp(order, limit, offset)

    def count_entries(self) -> int:
        """Total number of entries in the log"""
        return self.store.count(LogFilter())
