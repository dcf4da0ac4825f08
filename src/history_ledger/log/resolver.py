"""
Entity Resolver - from a stored target back to a live entity

The log never owns the audited entities. Resolution is delegated to
per-category loaders supplied by the surrounding application (an ORM
session lookup, a repository call, a dict in tests).
"""

from collections.abc import Callable, Mapping
from typing import Any, Protocol

from history_ledger.kernel.logging import get_logger

logger = get_logger(__name__)

EntityLoader = Callable[[int], Any]


class EntityResolver(Protocol):
    """Collaborator contract: resolve(category, id) -> entity or None"""

    def resolve(self, category: str, element_id: int) -> Any | None:
        ...


class LoaderEntityResolver:
    """
    Dispatch resolution to one loader per entity category

    Categories without a loader resolve to None, the same answer a caller
    gets for an entity that no longer exists.
    """

    def __init__(self, loaders: Mapping[str, EntityLoader] | None = None) -> None:
        self._loaders: dict[str, EntityLoader] = dict(loaders or {})

    def register(self, category: str, loader: EntityLoader) -> None:
        self._loaders[category] = loader

    def resolve(self, category: str, element_id: int) -> Any | None:
        loader = self._loaders.get(category)
        if loader is None:
            logger.debug("No loader registered for category", category=category)
            return None
        return loader(element_id)


class NullEntityResolver:
    """Resolver for setups without access to the live entities"""

    def resolve(self, category: str, element_id: int) -> Any | None:
        return None
