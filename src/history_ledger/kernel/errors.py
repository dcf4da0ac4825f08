"""
Custom exceptions for History Ledger

A small, explicit error hierarchy. Absent-but-expected outcomes (no actor,
empty history, vanished target) are returned as None or empty lists; the
exceptions here are reserved for genuinely exceptional conditions.
"""


class LedgerError(Exception):
    """Base exception for all History Ledger errors"""

    pass


class LogStoreError(LedgerError):
    """Raised when the log store cannot append or decode an entry"""

    pass


class UnmappedCategory(LedgerError):
    """
    Raised when an entity category has no target type mapping

    This is a programming or configuration error upstream: every auditable
    category must map to exactly one target type.
    """

    def __init__(self, category: str) -> None:
        self.category = category
        super().__init__(f"No log target type is mapped for category '{category}'")


class NotFound(LedgerError):
    """Base class for lookups whose absence is an error for the caller"""

    pass


class UndeleteDataNotFound(NotFound):
    """
    Raised when undelete data is requested for a target without a deletion record

    Undeleting presupposes a prior deletion entry; without one there is
    nothing to restore from.
    """

    def __init__(self, category: str, element_id: int) -> None:
        self.category = category
        self.element_id = element_id
        super().__init__(
            f"No undelete data could be found for {category} #{element_id}"
        )
