"""
Log Entry Store - append-only persistence for audit records

Queries are expressed as a typed LogFilter plus an Ordering, never as a
free-form criteria mapping. Two implementations share the LogEntryStore
protocol: SQLite for real use and an in-memory store for tests and
embedding.

Ordering is always by timestamp with the surrogate id as tie-break in the
same direction, so reversing the direction reverses the result exactly.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterator, Protocol

from pydantic import BaseModel, ValidationError

from history_ledger.kernel.errors import LogStoreError
from history_ledger.kernel.logging import get_logger
from history_ledger.kernel.metrics import entries_appended_total
from history_ledger.kernel.retry import retry_on_sqlite_lock
from history_ledger.kernel.time import ensure_utc, from_storage, to_storage
from history_ledger.log.models import LogEntry, LogEntryKind, LogLevel, UserRecord, payload_adapter
from history_ledger.log.targets import LogTargetType, TargetRef

logger = get_logger(__name__)


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Ordering(BaseModel):
    """Order by (timestamp, id), both in the given direction"""

    direction: SortDirection = SortDirection.DESC

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, order: "str | SortDirection") -> "Ordering":
        if isinstance(order, SortDirection):
            return cls(direction=order)
        return cls(direction=SortDirection(order.upper()))


NEWEST_FIRST = Ordering(direction=SortDirection.DESC)
OLDEST_FIRST = Ordering(direction=SortDirection.ASC)


class LogFilter(BaseModel):
    """
    Conjunction of conditions over log entries

    Attributes:
        target: Restrict to one (target_type, target_id) stream
        kinds: Restrict to these entry kinds (None = all kinds)
        since: timestamp >= since (inclusive)
        before: timestamp < before (exclusive)
    """

    target: TargetRef | None = None
    kinds: frozenset[LogEntryKind] | None = None
    since: datetime | None = None
    before: datetime | None = None

    model_config = {"frozen": True}

    def matches(self, entry: LogEntry) -> bool:
        if self.target is not None and entry.target != self.target:
            return False
        if self.kinds is not None and entry.kind not in self.kinds:
            return False
        if self.since is not None and entry.timestamp < ensure_utc(self.since):
            return False
        if self.before is not None and entry.timestamp >= ensure_utc(self.before):
            return False
        return True


def stream_filter(
    target: TargetRef,
    *kinds: LogEntryKind,
    since: datetime | None = None,
) -> LogFilter:
    """Filter for one entity's stream, optionally narrowed by kind and start time"""
    return LogFilter(target=target, kinds=frozenset(kinds) if kinds else None, since=since)


class LogEntryStore(Protocol):
    """Collaborator contract consumed by the query engine"""

    def query(
        self,
        log_filter: LogFilter,
        ordering: Ordering = NEWEST_FIRST,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        ...

    def count(self, log_filter: LogFilter) -> int:
        ...

    def append(self, entry: LogEntry) -> LogEntry:
        ...


def _check_unsaved(entry: LogEntry) -> None:
    if entry.id is not None:
        raise LogStoreError(f"Log entry {entry.id} was already persisted; entries are append-only")


def _check_page(limit: int | None, offset: int | None) -> None:
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    if offset is not None and offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")


# =============================================================================
# SQLite
# =============================================================================

_SELECT_ENTRIES = """
    SELECT
        log.id, log.kind, log.timestamp, log.level, log.target_type, log.target_id,
        log.user_id, log.username, log.payload_json,
        actor.id AS joined_user_id, actor.name AS user_name, actor.full_name AS user_full_name
    FROM log_entries AS log
    LEFT JOIN users AS actor ON actor.id = log.user_id
"""


class SQLiteLogEntryStore:
    """
    SQLite-based log store with append-only semantics

    Uses WAL mode so readers are never blocked by the external append path.

    Schema:
    - log_entries: append-only log, INTEGER PRIMARY KEY AUTOINCREMENT ids
    - users: acting users; log_entries.user_id has no foreign key, and a
      deleted user leaves its entries in place
    - Indices: (target_type, target_id, timestamp), (kind), (timestamp)
    """

    def __init__(self, db_path: str | Path) -> None:
        """
        Initialize log store with SQLite database

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        """Create tables and indices if they don't exist"""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS log_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    level INTEGER NOT NULL,
                    target_type INTEGER NOT NULL DEFAULT 0,
                    target_id INTEGER,
                    user_id INTEGER,
                    username TEXT,
                    payload_json TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    full_name TEXT
                )
            """)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_log_target "
                "ON log_entries(target_type, target_id, timestamp)"
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_log_kind ON log_entries(kind)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_log_time ON log_entries(timestamp)")

            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections"""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @staticmethod
    def _where(log_filter: LogFilter) -> tuple[str, list[object]]:
        conditions: list[str] = []
        params: list[object] = []

        if log_filter.target is not None:
            conditions.append("log.target_type = ?")
            params.append(int(log_filter.target.target_type))
            conditions.append("log.target_id = ?")
            params.append(log_filter.target.target_id)

        if log_filter.kinds is not None:
            if not log_filter.kinds:
                conditions.append("0")
            else:
                placeholders = ", ".join("?" for _ in log_filter.kinds)
                conditions.append(f"log.kind IN ({placeholders})")
                params.extend(sorted(kind.value for kind in log_filter.kinds))

        if log_filter.since is not None:
            conditions.append("log.timestamp >= ?")
            params.append(to_storage(log_filter.since))

        if log_filter.before is not None:
            conditions.append("log.timestamp < ?")
            params.append(to_storage(log_filter.before))

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        return where_clause, params

    def query(
        self,
        log_filter: LogFilter,
        ordering: Ordering = NEWEST_FIRST,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        """
        Load entries matching the filter

        Args:
            log_filter: Conditions to apply
            ordering: Direction for (timestamp, id)
            limit: Maximum number of entries, or None for all
            offset: Number of leading entries to skip

        Returns:
            Matching entries with `user` resolved through a LEFT JOIN
        """
        _check_page(limit, offset)
        where_clause, params = self._where(log_filter)
        direction = ordering.direction.value
        query = (
            f"{_SELECT_ENTRIES} WHERE {where_clause} "
            f"ORDER BY log.timestamp {direction}, log.id {direction}"
        )

        if limit is not None or offset:
            # SQLite requires LIMIT before OFFSET; -1 means unbounded
            query += " LIMIT ? OFFSET ?"
            params.extend([limit if limit is not None else -1, offset or 0])

        with self._connect() as conn:
            cursor = conn.execute(query, params)
            return [self._row_to_entry(row) for row in cursor.fetchall()]

    def count(self, log_filter: LogFilter) -> int:
        """Count entries matching the filter"""
        where_clause, params = self._where(log_filter)
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT COUNT(*) FROM log_entries AS log WHERE {where_clause}", params
            )
            return cursor.fetchone()[0]

    @retry_on_sqlite_lock()
    def append(self, entry: LogEntry) -> LogEntry:
        """
        Persist a new entry and return it with its assigned id

        Raises:
            LogStoreError: If the entry already has an id or the insert fails
        """
        _check_unsaved(entry)
        target = entry.target

        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO log_entries (
                        kind, timestamp, level, target_type, target_id,
                        user_id, username, payload_json
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        entry.kind.value,
                        to_storage(entry.timestamp),
                        int(entry.level),
                        int(target.target_type) if target else int(LogTargetType.NONE),
                        target.target_id if target else None,
                        entry.user_id,
                        entry.username,
                        entry.payload.model_dump_json(),
                    ),
                )
                conn.commit()
                entry_id = cursor.lastrowid
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise LogStoreError(f"Failed to append log entry: {e}") from e

        entries_appended_total.labels(kind=entry.kind.value).inc()
        logger.debug("Log entry appended", entry_id=entry_id, kind=entry.kind.value)
        return entry.model_copy(update={"id": entry_id, "user": None})

    def save_user(self, user: UserRecord) -> None:
        """Insert or update a user record"""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, name, full_name) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    full_name = excluded.full_name
            """,
                (user.id, user.name, user.full_name),
            )
            conn.commit()

    def delete_user(self, user_id: int) -> None:
        """Remove a user; their log entries keep a dangling user_id"""
        with self._connect() as conn:
            conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.commit()

    def _row_to_entry(self, row: sqlite3.Row) -> LogEntry:
        """Convert a joined SQLite row to a LogEntry"""
        try:
            payload = payload_adapter.validate_python(json.loads(row["payload_json"]))
            kind = LogEntryKind(row["kind"])
            target_type = LogTargetType(row["target_type"])
        except (ValueError, ValidationError) as e:
            raise LogStoreError(f"Corrupt log entry {row['id']}: {e}") from e

        if payload.kind is not kind:
            raise LogStoreError(
                f"Corrupt log entry {row['id']}: kind column {kind.value} "
                f"does not match payload kind {payload.kind.value}"
            )

        target = None
        if target_type is not LogTargetType.NONE and row["target_id"] is not None:
            target = TargetRef(target_type=target_type, target_id=row["target_id"])

        user = None
        if row["joined_user_id"] is not None:
            user = UserRecord(
                id=row["joined_user_id"],
                name=row["user_name"],
                full_name=row["user_full_name"],
            )

        return LogEntry(
            id=row["id"],
            timestamp=from_storage(row["timestamp"]),
            level=LogLevel(row["level"]),
            target=target,
            user_id=row["user_id"],
            username=row["username"],
            user=user,
            payload=payload,
        )


# =============================================================================
# In-memory
# =============================================================================


class InMemoryLogEntryStore:
    """
    In-memory log store for tests and embedding

    Uses a list with linear scans. Users live in a dict and are attached
    to entries at read time, mirroring the SQLite join.
    """

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []
        self._users: dict[int, UserRecord] = {}
        self._next_id = 1

    def query(
        self,
        log_filter: LogFilter,
        ordering: Ordering = NEWEST_FIRST,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        _check_page(limit, offset)
        results = sorted(
            (entry for entry in self._entries if log_filter.matches(entry)),
            key=lambda entry: (entry.timestamp, entry.id),
            reverse=ordering.direction is SortDirection.DESC,
        )
        start = offset or 0
        end = start + limit if limit is not None else None
        return [self._with_user(entry) for entry in results[start:end]]

    def count(self, log_filter: LogFilter) -> int:
        return sum(1 for entry in self._entries if log_filter.matches(entry))

    def append(self, entry: LogEntry) -> LogEntry:
        _check_unsaved(entry)
        stored = entry.model_copy(update={"id": self._next_id, "user": None})
        self._next_id += 1
        self._entries.append(stored)
        entries_appended_total.labels(kind=entry.kind.value).inc()
        return stored

    def save_user(self, user: UserRecord) -> None:
        self._users[user.id] = user

    def delete_user(self, user_id: int) -> None:
        self._users.pop(user_id, None)

    def _with_user(self, entry: LogEntry) -> LogEntry:
        user = self._users.get(entry.user_id) if entry.user_id is not None else None
        return entry.model_copy(update={"user": user})
