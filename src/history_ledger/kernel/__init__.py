"""
Kernel - shared infrastructure

Errors, structured logging, metrics, time handling and settings used by the
log model, the stores and the query engine.
"""

from history_ledger.kernel.errors import (
    LedgerError,
    LogStoreError,
    NotFound,
    UndeleteDataNotFound,
    UnmappedCategory,
)
from history_ledger.kernel.settings import LedgerSettings
from history_ledger.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    # Settings
    "LedgerSettings",
    # Errors
    "LedgerError",
    "LogStoreError",
    "NotFound",
    "UndeleteDataNotFound",
    "UnmappedCategory",
]
