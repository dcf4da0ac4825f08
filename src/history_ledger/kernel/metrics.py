"""
Prometheus metrics collection for History Ledger.

Provides observability into log queries and appends.
"""

import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from prometheus_client import Counter, Histogram

# ============================================================================
# Query Metrics
# ============================================================================

queries_total = Counter(
    "ledger_queries_total",
    "Total number of log queries executed",
    ["operation", "status"],  # status: success, failure
)

query_duration_seconds = Histogram(
    "ledger_query_duration_seconds",
    "Duration of log queries in seconds",
    ["operation"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

undelete_misses_total = Counter(
    "ledger_undelete_misses_total",
    "Total number of undelete lookups without a deletion record",
)

# ============================================================================
# Append Metrics
# ============================================================================

entries_appended_total = Counter(
    "ledger_entries_appended_total",
    "Total number of log entries appended to the store",
    ["kind"],
)

# ============================================================================
# Helper Functions
# ============================================================================

P = ParamSpec("P")
R = TypeVar("R")


def track_query(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator to track query duration and outcome.

    Args:
        operation: Name of the query operation (e.g. "element_history")
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            status = "success"
            try:
                return func(*args, **kwargs)
            except Exception:
                status = "failure"
                raise
            finally:
                query_duration_seconds.labels(operation=operation).observe(
                    time.perf_counter() - start
                )
                queries_total.labels(operation=operation, status=status).inc()

        return wrapper

    return decorator
