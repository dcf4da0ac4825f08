"""
Ledger Settings - runtime configuration

Settings are a validated pydantic model. They can be built explicitly or
read from the environment with LedgerSettings.from_env().
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from history_ledger.kernel.logging import is_production

LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LedgerSettings(BaseModel):
    """Configuration for a ledger instance and the CLI"""

    db_path: Path = Field(
        default=Path(".ledger.db"),
        description="Path to the SQLite database holding the log",
    )

    log_level: LogLevelName = Field(
        default="INFO",
        description="Minimum level for structured log output",
    )

    json_logs: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )

    default_page_size: int = Field(
        default=50,
        ge=1,
        le=10_000,
        description="Page size used by the CLI when no explicit limit is given",
    )

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        """
        Build settings from environment variables

        LEDGER_DB_PATH, LEDGER_LOG_LEVEL and LEDGER_PAGE_SIZE override the
        defaults; ENVIRONMENT=production switches on JSON logs.
        """
        values: dict[str, object] = {"json_logs": is_production()}
        if db_path := os.getenv("LEDGER_DB_PATH"):
            values["db_path"] = Path(db_path)
        if log_level := os.getenv("LEDGER_LOG_LEVEL"):
            values["log_level"] = log_level.upper()
        if page_size := os.getenv("LEDGER_PAGE_SIZE"):
            values["default_page_size"] = int(page_size)
        return cls.model_validate(values)
