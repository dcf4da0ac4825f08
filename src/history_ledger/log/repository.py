"""
Log Entry Repository - history, time travel and attribution queries

The query engine over the append-only log. Every operation turns its
arguments into a typed LogFilter and an Ordering, runs it against a
LogEntryStore and maps the rows to entries or derived answers.

Instant-based queries share one boundary convention: they describe the
state immediately before the given instant. Time travel therefore includes
edits made exactly at `until` (they must be undone to get there), and an
element created exactly at `timestamp` did not exist yet.
"""

from datetime import datetime
from typing import Any

from history_ledger.kernel.errors import UndeleteDataNotFound
from history_ledger.kernel.logging import LogOperation, get_logger
from history_ledger.kernel.metrics import track_query, undelete_misses_total
from history_ledger.log.models import LogEntry, LogEntryKind, UserRecord
from history_ledger.log.resolver import EntityResolver, NullEntityResolver
from history_ledger.log.store import (
    NEWEST_FIRST,
    LogEntryStore,
    LogFilter,
    Ordering,
    SortDirection,
    stream_filter,
)
from history_ledger.log.targets import Auditable, TargetRef, as_target, target_from

logger = get_logger(__name__)

TIME_TRAVEL_KINDS = (
    LogEntryKind.ELEMENT_EDITED,
    LogEntryKind.COLLECTION_ELEMENT_DELETED,
)


class LogEntryRepository:
    """
    Read-only query engine over a log store

    Targets can be given as live entities (anything Auditable) or as
    TargetRef values; both address the same stream.
    """

    def __init__(
        self,
        store: LogEntryStore,
        resolver: EntityResolver | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver or NullEntityResolver()

    def find_by(
        self,
        log_filter: LogFilter,
        order: str | SortDirection = SortDirection.DESC,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        """Run an arbitrary typed filter, ordered by (timestamp, id)"""
        return self.store.query(log_filter, Ordering.parse(order), limit, offset)

    @track_query("element_history")
    def get_element_history(
        self,
        target: Auditable | TargetRef,
        order: str | SortDirection = SortDirection.DESC,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        """
        Find log entries associated with the given element (its history)

        Args:
            target: Element or reference whose history is requested
            order: DESC (newest first, default) or ASC
            limit: Maximum number of entries
            offset: Number of entries to skip

        Returns:
            Entries of the element's stream; empty if it has none
        """
        ref = as_target(target)
        ordering = Ordering.parse(order)
        with LogOperation(
            logger, "element_history", target=str(ref), order=ordering.direction.value
        ):
            entries = self.store.query(stream_filter(ref), ordering, limit, offset)
        logger.debug("History loaded", target=str(ref), count=len(entries))
        return entries

    @track_query("undelete_data")
    def get_undelete_data(self, category_or_class: Any, element_id: int) -> LogEntry:
        """
        Get the most recent deletion entry for an element, to undelete it

        Args:
            category_or_class: Category name or Auditable class of the element
            element_id: ID of the deleted element

        Raises:
            UnmappedCategory: If the category has no target type
            UndeleteDataNotFound: If no deletion entry exists for the element
        """
        ref = target_from(category_or_class, element_id)
        with LogOperation(logger, "undelete_data", target=str(ref)):
            results = self.store.query(
                stream_filter(ref, LogEntryKind.ELEMENT_DELETED), NEWEST_FIRST, limit=1
            )
        logger.debug("Undelete data looked up", target=str(ref), count=len(results))
        if not results:
            undelete_misses_total.inc()
            raise UndeleteDataNotFound(ref.category or str(ref.target_type), element_id)
        return results[0]

    @track_query("time_travel_data")
    def get_time_travel_data(
        self, target: Auditable | TargetRef, until: datetime
    ) -> list[LogEntry]:
        """
        Get every mutation that must be undone to see the element as of `until`

        Args:
            target: Element or reference to roll back
            until: Instant to travel back to; entries at exactly this instant
                are included

        Returns:
            Edit and collection-element-deletion entries, newest first, to be
            reverted in the returned order
        """
        ref = as_target(target)
        with LogOperation(logger, "time_travel_data", target=str(ref), until=until.isoformat()):
            entries = self.store.query(
                stream_filter(ref, *TIME_TRAVEL_KINDS, since=until), NEWEST_FIRST
            )
        logger.debug("Time travel data loaded", target=str(ref), count=len(entries))
        return entries

    @track_query("existed_at")
    def element_existed_at(self, target: Auditable | TargetRef, timestamp: datetime) -> bool:
        """
        Check if the given element had been created before the given instant

        An element without any creation entry counts as existing (it pre-dates
        the log). Deletions are not considered.
        """
        ref = as_target(target)
        with LogOperation(logger, "existed_at", target=str(ref), at=timestamp.isoformat()):
            created_later = self.store.count(
                stream_filter(ref, LogEntryKind.ELEMENT_CREATED, since=timestamp)
            )
        logger.debug(
            "Existence checked", target=str(ref), count=created_later, existed=created_later == 0
        )
        return created_later == 0

    @track_query("logs_by_timestamp")
    def get_logs_ordered_by_timestamp(
        self,
        order: str | SortDirection = SortDirection.DESC,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[LogEntry]:
        """All entries, including untargeted system entries"""
        ordering = Ordering.parse(order)
        with LogOperation(logger, "logs_by_timestamp", order=ordering.direction.value):
            entries = self.store.query(LogFilter(), ordering, limit, offset)
        logger.debug("Global log page loaded", count=len(entries))
        return entries

    def get_target_element(self, entry: LogEntry) -> Any | None:
        """
        Get the live element an entry refers to

        Returns:
            The element, or None if the entry has no target or the element
            no longer exists
        """
        if entry.target is None:
            return None
        category = entry.target.category
        if category is None:
            return None
        return self.resolver.resolve(category, entry.target.target_id)

    def get_last_editing_user(self, target: Auditable | TargetRef) -> UserRecord | None:
        """Returns the last user that has edited the given element, if known"""
        return self.get_last_user(target, LogEntryKind.ELEMENT_EDITED)

    def get_creating_user(self, target: Auditable | TargetRef) -> UserRecord | None:
        """Returns the user that has created the given element, if known"""
        return self.get_last_user(target, LogEntryKind.ELEMENT_CREATED)

    @track_query("last_user")
    def get_last_user(
        self, target: Auditable | TargetRef, kind: LogEntryKind
    ) -> UserRecord | None:
        """
        Returns the user of the newest entry of the given kind for the element

        Ties on timestamp go to the higher id. The user comes from the store's
        join, so a since-deleted user is None rather than a dangling reference.
        """
        ref = as_target(target)
        with LogOperation(logger, "last_user", target=str(ref), kind=kind.value):
            results = self.store.query(stream_filter(ref, kind), NEWEST_FIRST, limit=1)
        logger.debug("Last user looked up", target=str(ref), kind=kind.value, count=len(results))
        if not results:
            return None
        return results[0].user
