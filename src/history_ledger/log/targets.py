"""
Target Addressing - stable references to audited entities

A log entry never holds a live object. It holds a (target_type, target_id)
pair that stays valid after the entity itself is gone, and that can be
resolved back to a live entity on demand.
"""

from enum import IntEnum
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator

from history_ledger.kernel.errors import UnmappedCategory


class LogTargetType(IntEnum):
    """
    Discriminator stored with every log entry

    The integer values are persisted, so existing members must never be
    renumbered. NONE marks global/system entries without a target.
    """

    NONE = 0
    USER = 1
    ATTACHMENT = 2
    ATTACHMENT_TYPE = 3
    CATEGORY = 4
    PROJECT = 5
    BOM_ENTRY = 6
    FOOTPRINT = 7
    GROUP = 8
    MANUFACTURER = 9
    PART = 10
    STORAGE_LOCATION = 11
    SUPPLIER = 12
    PART_LOT = 13
    CURRENCY = 14
    ORDERDETAIL = 15
    PRICEDETAIL = 16
    MEASUREMENT_UNIT = 17
    PARAMETER = 18
    LABEL_PROFILE = 19
    PART_ASSOCIATION = 20


CATEGORY_TARGET_TYPES: dict[str, LogTargetType] = {
    "user": LogTargetType.USER,
    "attachment": LogTargetType.ATTACHMENT,
    "attachment_type": LogTargetType.ATTACHMENT_TYPE,
    "category": LogTargetType.CATEGORY,
    "project": LogTargetType.PROJECT,
    "bom_entry": LogTargetType.BOM_ENTRY,
    "footprint": LogTargetType.FOOTPRINT,
    "group": LogTargetType.GROUP,
    "manufacturer": LogTargetType.MANUFACTURER,
    "part": LogTargetType.PART,
    "storage_location": LogTargetType.STORAGE_LOCATION,
    "supplier": LogTargetType.SUPPLIER,
    "part_lot": LogTargetType.PART_LOT,
    "currency": LogTargetType.CURRENCY,
    "orderdetail": LogTargetType.ORDERDETAIL,
    "pricedetail": LogTargetType.PRICEDETAIL,
    "measurement_unit": LogTargetType.MEASUREMENT_UNIT,
    "parameter": LogTargetType.PARAMETER,
    "label_profile": LogTargetType.LABEL_PROFILE,
    "part_association": LogTargetType.PART_ASSOCIATION,
}

TARGET_TYPE_CATEGORIES: dict[LogTargetType, str] = {
    target_type: category for category, target_type in CATEGORY_TARGET_TYPES.items()
}


@runtime_checkable
class Auditable(Protocol):
    """
    Identity contract for audited entities

    Any object with a numeric id and a class-level audit_category can be
    addressed by the log. The id is None for entities not yet persisted.
    """

    audit_category: ClassVar[str]
    id: int | None


class TargetRef(BaseModel):
    """
    Stable (type, id) address of an audited entity

    Equal refs address the same logical stream, whether they were built from
    a live entity or from an explicit category and id.
    """

    target_type: LogTargetType
    target_id: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @field_validator("target_type")
    @classmethod
    def _reject_untargeted(cls, value: LogTargetType) -> LogTargetType:
        if value is LogTargetType.NONE:
            raise ValueError("NONE marks untargeted entries; use target=None instead")
        return value

    @property
    def category(self) -> str | None:
        return category_for(self.target_type)

    def __str__(self) -> str:
        return f"{self.category or self.target_type.name.lower()}#{self.target_id}"


def _category_of(category_or_class: Any) -> str:
    if isinstance(category_or_class, str):
        return category_or_class
    category = getattr(category_or_class, "audit_category", None)
    if category is None:
        raise UnmappedCategory(getattr(category_or_class, "__name__", repr(category_or_class)))
    return category


def target_type_for(category_or_class: Any) -> LogTargetType:
    """
    Map an entity category (or an Auditable class) to its target type

    Raises:
        UnmappedCategory: If the category has no mapping
    """
    category = _category_of(category_or_class)
    try:
        return CATEGORY_TARGET_TYPES[category]
    except KeyError:
        raise UnmappedCategory(category) from None


def category_for(target_type: LogTargetType) -> str | None:
    """Reverse lookup of target_type_for(); None for untargeted entries"""
    return TARGET_TYPE_CATEGORIES.get(target_type)


def target_from(category_or_class: Any, element_id: int) -> TargetRef:
    """Build a target reference from an explicit category (or class) and id"""
    return TargetRef(target_type=target_type_for(category_or_class), target_id=element_id)


def target_for(element: Auditable) -> TargetRef:
    """
    Build a target reference from a live entity

    Raises:
        UnmappedCategory: If the entity's category has no mapping
        ValueError: If the entity has not been persisted yet (id is None)
    """
    if element.id is None:
        raise ValueError(f"Cannot address unsaved {type(element).__name__}: id is None")
    return target_from(type(element), element.id)


def as_target(target: Auditable | TargetRef) -> TargetRef:
    """Accept either a live entity or an existing reference"""
    if isinstance(target, TargetRef):
        return target
    return target_for(target)
