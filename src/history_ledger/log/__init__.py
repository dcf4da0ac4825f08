"""
Log Module - audit entries, target addressing, stores and queries

- Tagged-variant log entries with a shared envelope
- Stable (type, id) addressing of audited entities
- Append-only stores (SQLite, in-memory)
- Query engine for history, undelete, time travel and attribution
"""

from history_ledger.log.models import (
    CollectionElementDeleted,
    ElementCreated,
    ElementDeleted,
    ElementEdited,
    LogEntry,
    LogEntryKind,
    LogLevel,
    UserRecord,
)
from history_ledger.log.repository import LogEntryRepository
from history_ledger.log.resolver import EntityResolver, LoaderEntityResolver
from history_ledger.log.store import (
    InMemoryLogEntryStore,
    LogEntryStore,
    LogFilter,
    Ordering,
    SortDirection,
    SQLiteLogEntryStore,
)
from history_ledger.log.targets import (
    Auditable,
    LogTargetType,
    TargetRef,
    target_for,
    target_from,
)

__all__ = [
    "LogEntry",
    "LogEntryKind",
    "LogLevel",
    "UserRecord",
    "ElementCreated",
    "ElementEdited",
    "ElementDeleted",
    "CollectionElementDeleted",
    "Auditable",
    "LogTargetType",
    "TargetRef",
    "target_for",
    "target_from",
    "LogEntryStore",
    "LogFilter",
    "Ordering",
    "SortDirection",
    "SQLiteLogEntryStore",
    "InMemoryLogEntryStore",
    "EntityResolver",
    "LoaderEntityResolver",
    "LogEntryRepository",
]
