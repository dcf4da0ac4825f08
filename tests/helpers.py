"""
Test Helper Functions - entity stand-ins and entry builders

Timestamps in tests are written as seconds after BASE_TIME, so a scenario
like "created at t=100, edited at t=200" reads as at(100), at(200).
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar

from history_ledger.log.models import (
    CollectionElementDeleted,
    ElementCreated,
    ElementDeleted,
    ElementEdited,
    LogEntry,
    LogPayload,
    UserRecord,
)
from history_ledger.log.store import LogEntryStore
from history_ledger.log.targets import LogTargetType, TargetRef, target_for

BASE_TIME = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@dataclass
class Part:
    id: int | None
    name: str = "Resistor 10k"
    audit_category: ClassVar[str] = "part"


@dataclass
class Footprint:
    id: int | None
    name: str = "0805"
    audit_category: ClassVar[str] = "footprint"


@dataclass
class Widget:
    """An entity whose category has no target type mapping"""

    id: int | None
    audit_category: ClassVar[str] = "widget"


def at(seconds: float) -> datetime:
    """Instant `seconds` after BASE_TIME"""
    return BASE_TIME + timedelta(seconds=seconds)


def make_entry(
    payload: LogPayload,
    target: Any = None,
    seconds: float = 0,
    user: UserRecord | None = None,
) -> LogEntry:
    """
    Builder for unsaved log entries

    Args:
        payload: Kind-specific payload
        target: Entity, TargetRef or None for a system entry
        seconds: Offset from BASE_TIME
        user: Acting user
    """
    if target is not None and not isinstance(target, TargetRef):
        target = target_for(target)
    return LogEntry(
        timestamp=at(seconds),
        target=target,
        user_id=user.id if user else None,
        username=user.name if user else None,
        payload=payload,
    )


def created(target: Any, seconds: float, user: UserRecord | None = None) -> LogEntry:
    return make_entry(ElementCreated(), target, seconds, user)


def edited(
    target: Any,
    seconds: float,
    user: UserRecord | None = None,
    old: dict[str, Any] | None = None,
    new: dict[str, Any] | None = None,
) -> LogEntry:
    return make_entry(
        ElementEdited(old_data=old or {"name": "old"}, new_data=new or {"name": "new"}),
        target,
        seconds,
        user,
    )


def deleted(target: Any, seconds: float, user: UserRecord | None = None) -> LogEntry:
    return make_entry(
        ElementDeleted(old_data={"name": getattr(target, "name", None)}),
        target,
        seconds,
        user,
    )


def collection_element_deleted(
    target: Any, seconds: float, user: UserRecord | None = None
) -> LogEntry:
    return make_entry(
        CollectionElementDeleted(
            collection_name="parameters",
            deleted_element_type=LogTargetType.PARAMETER,
            deleted_element_id=77,
        ),
        target,
        seconds,
        user,
    )


def append_all(store: LogEntryStore, *entries: LogEntry) -> list[LogEntry]:
    """Append entries in order and return them with their assigned ids"""
    return [store.append(entry) for entry in entries]


def ids(entries: list[LogEntry]) -> list[int | None]:
    return [entry.id for entry in entries]
