"""
History Ledger - append-only audit log with time travel queries

Records what happened to tracked entities and answers questions about their
past: full history, who created or last edited them, whether they existed at
a given instant, and what is needed to undelete them.
"""

from history_ledger.ledger import HistoryLedger

__version__ = "0.1.0"
__all__ = ["HistoryLedger", "__version__"]
