"""
Log Entry Models - typed, immutable audit records

Every entry shares one envelope (id, timestamp, target, acting user, level)
and carries exactly one kind-specific payload. The payload is a tagged
variant discriminated by its `kind` field, so stores and queries branch on
LogEntryKind instead of on Python classes.
"""

from datetime import datetime
from enum import Enum, IntEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator
from sqlmodel import SQLModel

from history_ledger.kernel.time import ensure_utc
from history_ledger.log.targets import LogTargetType, TargetRef


class LogEntryKind(str, Enum):
    """Closed set of entry kinds understood by the query engine"""

    ELEMENT_CREATED = "element_created"
    ELEMENT_EDITED = "element_edited"
    ELEMENT_DELETED = "element_deleted"
    COLLECTION_ELEMENT_DELETED = "collection_element_deleted"


class LogLevel(IntEnum):
    """Syslog severities (lower is more severe)"""

    EMERGENCY = 0
    ALERT = 1
    CRITICAL = 2
    ERROR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


class UserRecord(SQLModel):
    """
    Display-capable user record

    Read back through an explicit join when entries are loaded. A user that
    was deleted after acting simply never materializes.
    """

    id: int
    name: str
    full_name: str | None = None

    def display_name(self) -> str:
        return self.full_name or self.name


# =============================================================================
# Payloads
# =============================================================================


class ElementCreated(BaseModel):
    """First existence instant of the target"""

    kind: Literal[LogEntryKind.ELEMENT_CREATED] = LogEntryKind.ELEMENT_CREATED
    comment: str | None = None
    instock: float | None = Field(
        default=None,
        description="Stock level at creation, for stock-tracked entities",
    )

    model_config = {"frozen": True}


class ElementEdited(BaseModel):
    """
    Field-level change of the target

    old_data holds the values before the change, new_data the values after.
    Both are opaque to the query engine; time travel hands them back to the
    caller to roll the entity back.
    """

    kind: Literal[LogEntryKind.ELEMENT_EDITED] = LogEntryKind.ELEMENT_EDITED
    old_data: dict[str, Any] = Field(default_factory=dict)
    new_data: dict[str, Any] = Field(default_factory=dict)
    comment: str | None = None

    model_config = {"frozen": True}

    def changed_fields(self) -> list[str]:
        """Names of all fields touched by this edit, sorted"""
        return sorted(set(self.old_data) | set(self.new_data))


class ElementDeleted(BaseModel):
    """Deletion of the target, with the serialized data needed to undelete it"""

    kind: Literal[LogEntryKind.ELEMENT_DELETED] = LogEntryKind.ELEMENT_DELETED
    old_data: dict[str, Any] = Field(default_factory=dict)
    old_name: str | None = None
    comment: str | None = None

    model_config = {"frozen": True}


class CollectionElementDeleted(BaseModel):
    """Removal of a child element from a collection owned by the target"""

    kind: Literal[LogEntryKind.COLLECTION_ELEMENT_DELETED] = (
        LogEntryKind.COLLECTION_ELEMENT_DELETED
    )
    collection_name: str
    deleted_element_type: LogTargetType
    deleted_element_id: int
    old_data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


LogPayload = Annotated[
    Union[ElementCreated, ElementEdited, ElementDeleted, CollectionElementDeleted],
    Field(discriminator="kind"),
]

payload_adapter: TypeAdapter[LogPayload] = TypeAdapter(LogPayload)


# =============================================================================
# Envelope
# =============================================================================


class LogEntry(BaseModel):
    """
    Immutable audit record

    Entries are written once by the append path and never modified. `id` is
    assigned by the store and breaks ties between equal timestamps; `user`
    is only populated on entries read back from a store.
    """

    id: int | None = Field(
        default=None,
        description="Surrogate key assigned on append (monotonically increasing)",
    )

    timestamp: datetime = Field(
        ...,
        description="Event time of the action, UTC; not guaranteed unique",
    )

    target: TargetRef | None = Field(
        default=None,
        description="Audited entity; None for global/system entries",
    )

    user_id: int | None = Field(
        default=None,
        description="Weak reference to the acting user",
    )

    username: str | None = Field(
        default=None,
        description="Name of the acting user captured at write time",
    )

    user: UserRecord | None = Field(
        default=None,
        description="Acting user resolved at read time; None if unattributed or deleted",
    )

    level: LogLevel = LogLevel.INFO

    payload: LogPayload

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def kind(self) -> LogEntryKind:
        return self.payload.kind

    @property
    def has_target(self) -> bool:
        return self.target is not None
