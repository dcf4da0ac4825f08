"""
Structured logging for History Ledger.

Log lines are rendered for a console during development and as JSON in
production. Audit content (who acted, entity snapshots) is redacted before
it reaches a log line, since the log itself is where that content belongs.
"""

import logging
import os
import sys
import time
from typing import Any

import structlog


def configure_logging(
    *,
    json_output: bool = False,
    log_level: str = "INFO",
    stream: Any = None,
) -> None:
    """
    Configure structlog on top of the standard logging module.

    Args:
        json_output: Render JSON lines instead of console output
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Where log lines go (defaults to stdout; the CLI passes stderr)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [
            structlog.processors.ExceptionRenderer(),
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger; call with __name__."""
    return structlog.get_logger(name)


def is_production() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


# User identity and entity snapshots stay in the log store, not in log lines
REDACTED_FIELDS = frozenset(
    {"user_id", "username", "old_data", "new_data", "password", "token", "secret", "api_key"}
)


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Replace values of sensitive keys.

    Example:
        >>> redact_context({"username": "alice", "target": "part#1"})
        {"username": "***REDACTED***", "target": "part#1"}
    """
    return {key: "***REDACTED***" if key in REDACTED_FIELDS else value for key, value in context.items()}


class LogOperation:
    """
    Time a query and log its start, completion or failure.

    Start and completion go to debug; failures go to error with the
    traceback attached outside production.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, operation: str, **context: Any):
        self.logger = logger
        self.operation = operation
        self.context = redact_context(context)
        self.started = 0.0

    def __enter__(self) -> "LogOperation":
        self.started = time.perf_counter()
        self.logger.debug(f"{self.operation} started", operation=self.operation, **self.context)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        duration_ms = round((time.perf_counter() - self.started) * 1000, 2)
        if exc_type is None:
            self.logger.debug(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=duration_ms,
                **self.context,
            )
            return
        self.logger.error(
            f"{self.operation} failed",
            operation=self.operation,
            duration_ms=duration_ms,
            error=str(exc_val),
            exc_info=not is_production(),
            **self.context,
        )
